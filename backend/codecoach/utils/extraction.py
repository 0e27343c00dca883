"""
Recover a JSON value from free-form model output.

Strategies run in order and the first one that parses wins:
whole text, fenced code block, first ``{`` to last ``}``.
"""
import json
import re
from collections.abc import Callable
from typing import Any

from codecoach.core.errors import NoJSONFoundError


FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def parse_whole(text: str) -> Any:
    return json.loads(text)


def parse_fenced(text: str) -> Any:
    match = FENCED_BLOCK.search(text)
    if not match or not match.group(1):
        raise ValueError("no fenced block")
    return json.loads(match.group(1))


def parse_braced(text: str) -> Any:
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        raise ValueError("no braced object")
    return json.loads(text[first:last + 1])


STRATEGIES: tuple[Callable[[str], Any], ...] = (parse_whole, parse_fenced, parse_braced)


def extract_json(text: Any) -> Any:
    if not isinstance(text, str) or not text:
        raise NoJSONFoundError("Model response was empty")
    for strategy in STRATEGIES:
        try:
            return strategy(text)
        except (ValueError, RecursionError):
            # deeply nested input overflows the decoder
            continue
    raise NoJSONFoundError("Model response was not valid JSON")
