from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Literal, Sequence

from .dsl.model import ScenarioDefinition

SelectorType = Literal["tag", "name"]


@dataclass(frozen=True, slots=True)
class Selector:
    type: SelectorType
    pattern: re.Pattern[str]
    negated: bool = False

    def matches(self, definition: ScenarioDefinition) -> bool:
        if self.type == "tag":
            hit = any(self.pattern.search(tag) for tag in definition.tags)
        else:
            hit = self.pattern.search(definition.name) is not None
        return hit != self.negated


def parse_selector(text: str) -> list[Selector]:
    """Parse ``"tag:api,!tag:slow"`` style input; parts are AND-ed together."""

    selectors: list[Selector] = []
    for part in (p.strip() for p in text.split(",")):
        if not part:
            continue
        negated = part.startswith("!")
        if negated:
            part = part[1:].strip()
        kind: str = "name"
        if ":" in part:
            kind, part = part.split(":", 1)
            if kind not in ("tag", "name"):
                msg = f'Invalid selector type: {kind}. Must be "tag" or "name".'
                raise ValueError(msg)
        selectors.append(
            Selector(type=kind, pattern=re.compile(part, re.IGNORECASE), negated=negated)  # type: ignore[arg-type]
        )
    return selectors


def apply_selectors(
    definitions: Sequence[ScenarioDefinition], inputs: Iterable[str]
) -> list[ScenarioDefinition]:
    """Keep definitions matching any input string (OR); all parts of one string must match (AND)."""

    groups = [parse_selector(text) for text in inputs]
    groups = [group for group in groups if group]
    if not groups:
        return list(definitions)
    return [
        definition
        for definition in definitions
        if any(all(sel.matches(definition) for sel in group) for group in groups)
    ]
