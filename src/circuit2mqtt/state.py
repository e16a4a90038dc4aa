# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from dataclasses import asdict, dataclass, fields
from enum import Enum
import logging

from deepmerge.merger import Merger

from typing import Any

INTENSITY_LEVELS = (0, 25, 50, 75, 100)
COLORS = ("red", "green", "blue")
EFFECT_COLORFUL = "colorful"
EFFECT_CHRISTMAS = "christmas"

MERGER = Merger(
    [(dict, "merge"), (list, "append_unique"), (set, "union")],
    ["override"],
    ["override"],
)


class FormPhase(Enum):
    UNPOSTED = "unposted"
    CREATING = "creating"
    POSTED = "posted"


@dataclass(frozen=True)
class LightState:
    """What the light is doing now, plus the id of the posted control form."""

    intensity: int = 0
    color: str = "red"
    effect: str = EFFECT_COLORFUL
    item_id: str | None = None

    @property
    def is_colorful(self) -> bool:
        return self.effect == EFFECT_COLORFUL


class LightStateStore:
    def __init__(self, initial: LightState | None = None) -> None:
        self.logger = logging.getLogger(__name__)
        self._state = initial or LightState()
        self._field_names = {f.name for f in fields(LightState)}
        self.changed = False

    def get(self) -> LightState:
        return self._state

    def apply(self, **kwargs: Any) -> LightState:
        """Merge the given fields into the current state and return the new snapshot.

        Fields passed as None are treated as absent. Values are not validated
        against the known levels/colors/effects; unknown field names are logged
        and dropped.
        """
        update: dict[str, Any] = {}
        for key, value in kwargs.items():
            if key not in self._field_names:
                self.logger.warning(f"ignoring unknown light state field '{key}' = {value!r}")
                continue
            if value is not None:
                update[key] = value

        prev = self._state
        merged = MERGER.merge(asdict(prev), update)
        self._state = LightState(**merged)
        self.changed = prev != self._state
        return self._state
