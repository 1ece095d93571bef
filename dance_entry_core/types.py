"""Type definitions for entries, stage records and stage statuses."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Literal, Optional, TypedDict


StageName = Literal[
    "basic_info",
    "preliminary_info",
    "program_info",
    "semifinals_info",
    "finals_info",
    "sns_info",
    "applications_info",
]

# Dashboard order; the batch evaluates stages in this order too.
STAGES: tuple[StageName, ...] = (
    "basic_info",
    "preliminary_info",
    "program_info",
    "semifinals_info",
    "finals_info",
    "sns_info",
    "applications_info",
)


def status_field(stage: str) -> str:
    """Entry column holding the status of ``stage``."""
    return f"{stage}_status"


# Stage records are flat field bags keyed by column name.
FieldBag = Dict[str, Any]


class StageStatus(str, Enum):
    """Three-valued completion status stored on the entry per stage."""

    NOT_REGISTERED = "not_registered"
    IN_PROGRESS = "in_progress"
    REGISTERED = "registered"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @classmethod
    def parse(cls, raw: Any) -> Optional["StageStatus"]:
        """Accept an enum value or a portal label ("未登録" etc.).

        Returns None for empty or unknown input so callers can treat a
        never-written status as "differs from anything".
        """
        if isinstance(raw, StageStatus):
            return raw
        if not isinstance(raw, str):
            return None
        stripped = raw.strip()
        for status in cls:
            if stripped == status.value or stripped == _STATUS_LABELS[status]:
                return status
        return None


_STATUS_LABELS = {
    StageStatus.NOT_REGISTERED: "未登録",
    StageStatus.IN_PROGRESS: "入力中",
    StageStatus.REGISTERED: "登録済み",
}


class Entry(TypedDict, total=False):
    """Root aggregate per participant submission.

    Only the status columns matter here; other entry attributes pass
    through untouched.
    """
    id: str
    dance_style: str
    basic_info_status: str
    preliminary_info_status: str
    program_info_status: str
    semifinals_info_status: str
    finals_info_status: str
    sns_info_status: str
    applications_info_status: str

