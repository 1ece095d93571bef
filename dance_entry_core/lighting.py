"""Lighting cue layout shared by the finals rules and the synchronizer.

Semifinals and finals records store five numbered scenes plus one
chaser/exit cue as flat columns (``scene3_color_type``, ``chaser_exit_notes``).
This module gives them a fixed-size, numerically indexed shape so callers
never build column names by hand.
"""
from __future__ import annotations

from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, Mapping

SCENE_COUNT = 5
SCENE_NUMBERS: tuple[int, ...] = tuple(range(1, SCENE_COUNT + 1))
CHASER_EXIT_PREFIX = "chaser_exit"


def scene_prefix(number: int) -> str:
    if number not in SCENE_NUMBERS:
        raise ValueError(f"scene number must be in 1..{SCENE_COUNT}, got {number}")
    return f"scene{number}"


# Column prefixes in record order: scene1..scene5, then chaser/exit.
CUE_PREFIXES: tuple[str, ...] = tuple(scene_prefix(n) for n in SCENE_NUMBERS) + (
    CHASER_EXIT_PREFIX,
)


@dataclass(frozen=True)
class LightingCue:
    time: str = ""
    trigger: str = ""
    color_type: str = ""
    color_other: str = ""
    image: str = ""
    image_path: str = ""
    notes: str = ""

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any], prefix: str) -> "LightingCue":
        # Falsy source values collapse to "" like the form layer stores them.
        values = {
            attr: _text(fields.get(f"{prefix}_{attr}")) for attr in CUE_ATTRIBUTES
        }
        return cls(**values)

    def to_fields(self, prefix: str) -> dict[str, str]:
        return {f"{prefix}_{attr}": getattr(self, attr) for attr in CUE_ATTRIBUTES}


CUE_ATTRIBUTES: tuple[str, ...] = tuple(f.name for f in dataclass_fields(LightingCue))
# Notes are free text and never gate completeness.
REQUIRED_CUE_ATTRIBUTES: tuple[str, ...] = tuple(a for a in CUE_ATTRIBUTES if a != "notes")


@dataclass(frozen=True)
class LightingPlan:
    dance_start_timing: str
    scenes: tuple[LightingCue, ...]
    chaser_exit: LightingCue

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> "LightingPlan":
        return cls(
            dance_start_timing=_text(fields.get("dance_start_timing")),
            scenes=tuple(
                LightingCue.from_fields(fields, scene_prefix(n)) for n in SCENE_NUMBERS
            ),
            chaser_exit=LightingCue.from_fields(fields, CHASER_EXIT_PREFIX),
        )

    def scene(self, number: int) -> LightingCue:
        scene_prefix(number)
        return self.scenes[number - 1]

    def to_fields(self) -> dict[str, str]:
        out: dict[str, str] = {"dance_start_timing": self.dance_start_timing}
        for number, cue in zip(SCENE_NUMBERS, self.scenes):
            out.update(cue.to_fields(scene_prefix(number)))
        out.update(self.chaser_exit.to_fields(CHASER_EXIT_PREFIX))
        return out


def required_cue_fields(prefixes: tuple[str, ...] = CUE_PREFIXES) -> tuple[str, ...]:
    return tuple(
        f"{prefix}_{attr}" for prefix in prefixes for attr in REQUIRED_CUE_ATTRIBUTES
    )


def _text(value: Any) -> str:
    if not value:
        return ""
    return value if isinstance(value, str) else str(value)
