"""Stage completeness rules (pure, no store access).

Each stage has a fixed required-field list plus small conditional sets that
depend on other fields of the same record:

- basic_info: guardian fields when the representative / partner is a minor
- program_info: final_story when two songs are performed
- semifinals_info / finals_info: props_details when props are used
- finals_info: detail groups for every "changed from semifinals" switch set to True

Conditional sets are plain functions returning field-name tuples and are
composed by union in required_fields(). Attachment requirements are declared
in REQUIRED_FILES and evaluated from a purpose -> exists mapping the caller
supplies, so evaluate_stage() never performs I/O and never raises on field
content.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Protocol

from .config import EngineSettings, default_settings
from .lighting import required_cue_fields
from .types import FieldBag
from .validation import EvaluationRequest, InputSanitizer

logger = logging.getLogger(__name__)

PROPS_IN_USE = "あり"
TWO_SONGS = "2曲"

BASIC_INFO_REQUIRED = (
    "dance_style",
    "category_division",
    "representative_name",
    "representative_furigana",
    "representative_romaji",
    "representative_birthdate",
    "representative_email",
    "phone_number",
    "emergency_contact_name_1",
    "emergency_contact_phone_1",
    "partner_name",
    "partner_furigana",
    "partner_romaji",
    "partner_birthdate",
)
BASIC_INFO_CONSENTS = (
    "agreement_checked",
    "privacy_policy_checked",
    "media_consent_checked",
)
REPRESENTATIVE_GUARDIAN_FIELDS = ("guardian_name", "guardian_phone", "guardian_email")
PARTNER_GUARDIAN_FIELDS = (
    "partner_guardian_name",
    "partner_guardian_phone",
    "partner_guardian_email",
)

PRELIMINARY_INFO_REQUIRED = (
    "work_title",
    "work_title_kana",
    "work_story",
    "music_title",
    "cd_title",
    "artist",
    "record_number",
    "music_type",
    "music_rights_cleared",
    "choreographer1_name",
    "choreographer1_furigana",
)

PROGRAM_INFO_REQUIRED = ("player_photo_path", "semifinal_story")

# music_change_from_preliminary goes through the plain emptiness check, so an
# explicit False ("no change") still leaves the stage incomplete.
SEMIFINALS_INFO_REQUIRED = (
    "music_change_from_preliminary",
    "copyright_permission",
    "chaser_song_designation",
    *required_cue_fields(("scene1", "chaser_exit")),
    "props_usage",
    "bank_name",
    "branch_name",
    "account_type",
    "account_number",
    "account_holder",
)

FINALS_SWITCHES = (
    "music_change",
    "sound_change_from_semifinals",
    "lighting_change_from_semifinals",
    "choreographer_change",
)
FINALS_INFO_REQUIRED = (
    "props_usage",
    "choreographer_photo_permission",
    "choreographer_photo_path",
)
# Detail groups that become required when their switch is True.
FINALS_CHANGE_GROUPS: dict[str, tuple[str, ...]] = {
    "music_change": ("copyright_permission", "music_data_path"),
    "sound_change_from_semifinals": (),
    "lighting_change_from_semifinals": required_cue_fields(),
    "choreographer_change": (),
}


@dataclass(frozen=True)
class FileRequirement:
    purpose: str
    file_type: str | None = None  # None matches any file type

    @property
    def key(self) -> str:
        return f"file:{self.purpose}"


REQUIRED_FILES: dict[str, tuple[FileRequirement, ...]] = {
    "basic_info": (),
    "preliminary_info": (FileRequirement("preliminary", "video"),),
    "program_info": (),
    "semifinals_info": (FileRequirement("semifinals_payment_slip"),),
    "finals_info": (),
    "sns_info": (
        FileRequirement("sns_practice_video", "video"),
        FileRequirement("sns_introduction_highlight", "video"),
    ),
    "applications_info": (),
}


@dataclass(frozen=True)
class StageEvaluation:
    """Verdict of one stage's completeness check."""

    stage: str
    complete: bool
    missing: tuple[str, ...] = ()


class FileExistence(Protocol):
    def exists(self, entry_id: str, purpose: str, file_type: str | None = None) -> bool:
        ...


def is_filled(value: Any) -> bool:
    """True for values that survive the form layer's emptiness check."""
    if not value:
        return False
    return str(value).strip() != ""


def calculate_age(
    birthdate: date | datetime | str | None,
    today: date | None = None,
    *,
    unknown_age: int = 999,
) -> int:
    """Age in whole years on ``today``.

    Calendar-year difference, minus one if this year's birthday has not
    happened yet. Missing or unparsable birthdates give ``unknown_age``.

    Examples (today = 2026-10-18):
        - "2008-10-18" -> 18
        - "2008-10-19" -> 17
        - None -> 999
    """
    born = _parse_birthdate(birthdate)
    if born is None:
        return unknown_age
    today = today or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def _parse_birthdate(value: date | datetime | str | None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    if not stripped:
        return None
    # Date part only: "2008-01-05", "2008-01-05T09:00:00", "2008/1/5".
    head = re.split(r"[T\s]", stripped, maxsplit=1)[0]
    parts = re.split(r"[-/]", head)
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    try:
        return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except ValueError:
        return None


# ==================== CONDITIONAL FIELD SETS ====================


def guardian_fields(
    fields: Mapping[str, Any],
    today: date | None = None,
    *,
    adult_age: int = 18,
    unknown_age: int = 999,
) -> tuple[str, ...]:
    required: tuple[str, ...] = ()
    rep_age = calculate_age(fields.get("representative_birthdate"), today, unknown_age=unknown_age)
    if rep_age < adult_age:
        required += REPRESENTATIVE_GUARDIAN_FIELDS
    partner_age = calculate_age(fields.get("partner_birthdate"), today, unknown_age=unknown_age)
    if partner_age < adult_age:
        required += PARTNER_GUARDIAN_FIELDS
    return required


def song_count_fields(fields: Mapping[str, Any]) -> tuple[str, ...]:
    return ("final_story",) if fields.get("song_count") == TWO_SONGS else ()


def props_fields(fields: Mapping[str, Any]) -> tuple[str, ...]:
    return ("props_details",) if fields.get("props_usage") == PROPS_IN_USE else ()


def finals_change_fields(fields: Mapping[str, Any]) -> tuple[str, ...]:
    required: tuple[str, ...] = ()
    for switch in FINALS_SWITCHES:
        if fields.get(switch) is True:
            required += FINALS_CHANGE_GROUPS[switch]
    return required


def unset_switches(
    fields: Mapping[str, Any], switches: tuple[str, ...] = FINALS_SWITCHES
) -> tuple[str, ...]:
    # Only real booleans count as answered.
    return tuple(s for s in switches if not isinstance(fields.get(s), bool))


def missing_consents(fields: Mapping[str, Any]) -> tuple[str, ...]:
    return tuple(c for c in BASIC_INFO_CONSENTS if fields.get(c) is not True)


def _union(*groups: tuple[str, ...]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for group in groups:
        for name in group:
            seen.setdefault(name, None)
    return tuple(seen)


def required_fields(
    stage: str,
    fields: Mapping[str, Any] | None,
    *,
    today: date | None = None,
    settings: EngineSettings | None = None,
) -> tuple[str, ...]:
    """Text fields that must be filled for ``stage`` given the current values."""
    stage = InputSanitizer.normalize_stage_name(stage)
    fields = fields or {}
    if stage == "basic_info":
        settings = settings or default_settings()
        return _union(
            BASIC_INFO_REQUIRED,
            guardian_fields(
                fields,
                today,
                adult_age=settings.adult_age,
                unknown_age=settings.unknown_age,
            ),
        )
    if stage == "preliminary_info":
        return PRELIMINARY_INFO_REQUIRED
    if stage == "program_info":
        return _union(PROGRAM_INFO_REQUIRED, song_count_fields(fields))
    if stage == "semifinals_info":
        return _union(SEMIFINALS_INFO_REQUIRED, props_fields(fields))
    if stage == "finals_info":
        return _union(FINALS_INFO_REQUIRED, finals_change_fields(fields), props_fields(fields))
    return ()


# ==================== EVALUATION ====================


def evaluate_stage(
    stage: str,
    fields: FieldBag | None,
    files: Mapping[str, bool] | None = None,
    *,
    today: date | None = None,
    settings: EngineSettings | None = None,
) -> StageEvaluation:
    """Check one stage record for completeness.

    Args:
        stage: Stage name (basic_info, ..., applications_info)
        fields: The stage record's field bag; None/empty is simply incomplete
        files: Attachment existence keyed by purpose tag; absent keys count as missing
        today: Reference date for age-gated fields (defaults to date.today())

    Returns:
        StageEvaluation with the verdict and the failing field names. Missing
        switches (finals) and consents (basic) are reported by their own
        names, missing attachments as ``file:<purpose>``.
    """
    stage = InputSanitizer.normalize_stage_name(stage)
    fields = fields or {}
    files = files or {}

    if stage == "applications_info":
        # No terminal rule exists for applications: a record is "in progress" at best.
        return StageEvaluation(stage=stage, complete=False, missing=())

    missing = [
        name
        for name in required_fields(stage, fields, today=today, settings=settings)
        if not is_filled(fields.get(name))
    ]
    if stage == "basic_info":
        missing.extend(missing_consents(fields))
    if stage == "finals_info":
        missing = list(unset_switches(fields)) + missing
    for requirement in REQUIRED_FILES[stage]:
        if files.get(requirement.purpose) is not True:
            missing.append(requirement.key)

    result = StageEvaluation(stage=stage, complete=not missing, missing=tuple(missing))
    logger.debug(f"[{stage}] complete={result.complete} missing={list(result.missing)}")
    return result


def evaluate_payload(payload: dict, *, settings: EngineSettings | None = None) -> StageEvaluation:
    """Validate an untyped request dict and evaluate it.

    Age thresholds come from ``settings``, falling back to the shared defaults.

    Raises:
        ValueError: if the payload does not validate
    """
    try:
        request = EvaluationRequest(**payload)
    except Exception as e:
        logger.warning(f"Evaluation request validation failed: {e}")
        raise ValueError(f"Invalid evaluation request: {str(e)}")
    return evaluate_stage(
        request.stage,
        request.fields,
        request.files,
        today=request.today,
        settings=settings or default_settings(),
    )


def lookup_required_files(
    file_store: FileExistence, entry_id: str, stage: str
) -> dict[str, bool]:
    """Ask the file store about every attachment ``stage`` depends on.

    Store errors propagate; this is the step that can fail during evaluation.
    """
    stage = InputSanitizer.normalize_stage_name(stage)
    return {
        req.purpose: bool(file_store.exists(entry_id, req.purpose, req.file_type))
        for req in REQUIRED_FILES[stage]
    }

