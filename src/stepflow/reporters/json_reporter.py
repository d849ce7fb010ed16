from __future__ import annotations

import dataclasses
import json
from enum import Enum
from typing import Any

from ..events import Event
from .base import Reporter


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseException):
        return {"type": type(value).__name__, "message": str(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


class JsonReporter(Reporter):
    """Emit every event as one JSON object per line."""

    def handle(self, event: Event) -> None:
        payload = {"type": event.kind, **_to_jsonable(event)}
        self.write(json.dumps(payload, default=repr, ensure_ascii=False) + "\n")
