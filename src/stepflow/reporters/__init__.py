from __future__ import annotations

from typing import TextIO

from .base import DEFAULT_THEME, NO_COLOR_THEME, Reporter, Theme
from .dot_reporter import DotReporter
from .json_reporter import JsonReporter
from .list_reporter import ListReporter
from .tap_reporter import TapReporter

REPORTERS: dict[str, type[Reporter]] = {
    "list": ListReporter,
    "dot": DotReporter,
    "tap": TapReporter,
    "json": JsonReporter,
}


def create_reporter(
    name: str,
    stream: TextIO | None = None,
    *,
    no_color: bool | None = None,
) -> Reporter:
    try:
        reporter_cls = REPORTERS[name]
    except KeyError:
        msg = f"Unknown reporter: {name}. Available: {sorted(REPORTERS)}"
        raise ValueError(msg) from None
    return reporter_cls(stream, no_color=no_color)


__all__ = [
    "DEFAULT_THEME",
    "DotReporter",
    "JsonReporter",
    "ListReporter",
    "NO_COLOR_THEME",
    "REPORTERS",
    "Reporter",
    "TapReporter",
    "Theme",
    "create_reporter",
]
