"""
Behavioural signal logging for proctored attempts.

The browser forwards environment signals (focus loss, tab visibility,
clipboard and context-menu use) to a ``SignalBus``. A ``ProctorCollector``
only sees them while it is attached, and it is attached only while a session
is taking an attempt with proctoring enabled.
"""
import logging
from collections import defaultdict, deque
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from codecoach.models.quiz import ProctorEvent, ProctorSummary


logger = logging.getLogger(__name__)

EVENT_LOG_LIMIT = 50


class EnvironmentSignal(str, Enum):
    VISIBILITY_CHANGE = "visibilitychange"
    BLUR = "blur"
    COPY = "copy"
    PASTE = "paste"
    CONTEXT_MENU = "contextmenu"


@dataclass
class EnvironmentEvent:
    signal: EnvironmentSignal
    visibility: str | None = None
    suppressed: bool = False

    def prevent_default(self) -> None:
        self.suppressed = True


Observer = Callable[[EnvironmentEvent], None]


class SignalBus:
    def __init__(self) -> None:
        self._observers: dict[EnvironmentSignal, list[Observer]] = defaultdict(list)

    def subscribe(self, signal: EnvironmentSignal, observer: Observer) -> Callable[[], None]:
        self._observers[signal].append(observer)

        def unsubscribe() -> None:
            if observer in self._observers[signal]:
                self._observers[signal].remove(observer)

        return unsubscribe

    def emit(self, event: EnvironmentEvent) -> EnvironmentEvent:
        for observer in list(self._observers[event.signal]):
            observer(event)
        return event

    def observer_count(self) -> int:
        return sum(len(observers) for observers in self._observers.values())


# signal -> (event type, detail, suppress the browser action)
CAPTURED_SIGNALS: dict[EnvironmentSignal, tuple[str, str, bool]] = {
    EnvironmentSignal.VISIBILITY_CHANGE: ("tab_hidden", "User switched tabs or minimized window", False),
    EnvironmentSignal.BLUR: ("window_blur", "Window lost focus", False),
    EnvironmentSignal.COPY: ("copy_attempt", "Copy was attempted during proctored quiz", True),
    EnvironmentSignal.PASTE: ("paste_attempt", "Paste was attempted during proctored quiz", True),
    EnvironmentSignal.CONTEXT_MENU: ("context_menu", "Right click blocked in proctored mode", True),
}


class ProctorCollector:
    def __init__(self, limit: int = EVENT_LOG_LIMIT) -> None:
        self._events: deque[ProctorEvent] = deque(maxlen=limit)
        self.warnings = 0
        self._observers: ExitStack | None = None

    @property
    def active(self) -> bool:
        return self._observers is not None

    @property
    def events(self) -> list[ProctorEvent]:
        return list(self._events)

    def attach(self, bus: SignalBus) -> None:
        if self._observers is not None:
            return
        stack = ExitStack()
        for signal in CAPTURED_SIGNALS:
            stack.callback(bus.subscribe(signal, self._on_signal))
        self._observers = stack

    def detach(self) -> None:
        if self._observers is None:
            return
        observers, self._observers = self._observers, None
        observers.close()

    def _on_signal(self, event: EnvironmentEvent) -> None:
        event_type, detail, suppress = CAPTURED_SIGNALS[event.signal]
        if event.signal is EnvironmentSignal.VISIBILITY_CHANGE and event.visibility != "hidden":
            return
        if suppress:
            event.prevent_default()
        self.capture(event_type, detail)

    def capture(self, event_type: str, detail: str, at: datetime | None = None) -> ProctorEvent:
        event = ProctorEvent(type=event_type, detail=detail, at=at or datetime.now(timezone.utc))
        self._events.append(event)
        self.warnings += 1
        logger.debug("Proctor signal captured", extra={"type": event_type, "warnings": self.warnings})
        return event

    def reset(self) -> None:
        self._events.clear()
        self.warnings = 0

    def summary(self, enabled: bool) -> ProctorSummary:
        return ProctorSummary(enabled=enabled, warnings=self.warnings, events=tuple(self._events))
