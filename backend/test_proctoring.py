"""
Proctoring collector: bounded log, warning count and observer lifecycle.
"""
from datetime import datetime, timezone

from codecoach.utils.proctoring import (
    EVENT_LOG_LIMIT,
    EnvironmentEvent,
    EnvironmentSignal,
    ProctorCollector,
    SignalBus,
)


def _attached():
    bus = SignalBus()
    collector = ProctorCollector()
    collector.attach(bus)
    return bus, collector


def test_log_is_bounded_but_warnings_keep_counting():
    bus, collector = _attached()
    for _ in range(60):
        bus.emit(EnvironmentEvent(EnvironmentSignal.BLUR))
    assert len(collector.events) == EVENT_LOG_LIMIT == 50
    assert collector.warnings == 60


def test_oldest_events_are_dropped_first():
    collector = ProctorCollector(limit=2)
    for detail in ("one", "two", "three"):
        collector.capture("window_blur", detail)
    assert [e.detail for e in collector.events] == ["two", "three"]


def test_visibility_only_counts_when_hidden():
    bus, collector = _attached()
    bus.emit(EnvironmentEvent(EnvironmentSignal.VISIBILITY_CHANGE, visibility="visible"))
    assert collector.warnings == 0
    bus.emit(EnvironmentEvent(EnvironmentSignal.VISIBILITY_CHANGE, visibility="hidden"))
    assert collector.events[-1].type == "tab_hidden"
    assert collector.warnings == 1


def test_clipboard_and_context_menu_are_suppressed():
    bus, collector = _attached()
    for signal, event_type in [
        (EnvironmentSignal.COPY, "copy_attempt"),
        (EnvironmentSignal.PASTE, "paste_attempt"),
        (EnvironmentSignal.CONTEXT_MENU, "context_menu"),
    ]:
        event = bus.emit(EnvironmentEvent(signal))
        assert event.suppressed is True
        assert collector.events[-1].type == event_type
    assert bus.emit(EnvironmentEvent(EnvironmentSignal.BLUR)).suppressed is False


def test_detach_removes_every_observer():
    bus, collector = _attached()
    assert bus.observer_count() == 5
    collector.attach(bus)
    assert bus.observer_count() == 5
    collector.detach()
    collector.detach()
    assert bus.observer_count() == 0
    assert collector.active is False
    event = bus.emit(EnvironmentEvent(EnvironmentSignal.COPY))
    assert event.suppressed is False
    assert collector.warnings == 0


def test_unattached_collector_sees_nothing():
    bus = SignalBus()
    collector = ProctorCollector()
    bus.emit(EnvironmentEvent(EnvironmentSignal.BLUR))
    assert collector.events == []


def test_summary_and_reset():
    collector = ProctorCollector()
    at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    collector.capture("window_blur", "Window lost focus", at=at)
    summary = collector.summary(True)
    assert summary.enabled is True
    assert summary.warnings == 1
    assert summary.to_dict()["events"][0]["at"].startswith("2024-01-01T00:00:00")
    collector.reset()
    assert collector.summary(False).to_dict() == {"enabled": False, "warnings": 0, "events": []}
