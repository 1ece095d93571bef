"""Per-section diagnostics for the semifinals and finals forms.

These mirror what the forms check before letting a participant save a
section. They list missing fields per section and are advisory: stage
status is always decided by rules.evaluate_stage().
"""
from __future__ import annotations

from typing import Any, Callable, Mapping

from .lighting import CHASER_EXIT_PREFIX, required_cue_fields, scene_prefix
from .rules import PROPS_IN_USE, is_filled

SEMIFINALS_SECTIONS: tuple[tuple[str, str], ...] = (
    ("music", "楽曲情報"),
    ("sound", "音響指示情報"),
    ("lighting", "照明指示情報"),
    ("choreographer", "振付情報"),
    ("bank", "本大会エントリー料振込確認 / 賞金振込先情報"),
)
FINALS_SECTIONS: tuple[tuple[str, str], ...] = (
    ("music", "楽曲情報"),
    ("sound", "音響指示情報"),
    ("lighting", "照明指示情報"),
    ("choreographer", "振付変更情報・作品振付師出席情報"),
)

_LIGHTING_CUES = required_cue_fields((scene_prefix(1), CHASER_EXIT_PREFIX))


def _missing(data: Mapping[str, Any], names: tuple[str, ...]) -> list[str]:
    return [name for name in names if not is_filled(data.get(name))]


def _music(data: Mapping[str, Any], commercial: str) -> list[str]:
    errors = _missing(
        data,
        ("work_title", "work_character_story", "copyright_permission", "music_title"),
    )
    # JASRAC code only applies to commercially released music.
    if data.get("copyright_permission") == commercial and not is_filled(data.get("jasrac_code")):
        errors.append("jasrac_code")
    errors += _missing(data, ("music_type", "music_data_path"))
    return errors


def _sound(data: Mapping[str, Any], required_marker: str) -> list[str]:
    errors = _missing(data, ("sound_start_timing", "chaser_song_designation"))
    if data.get("chaser_song_designation") == required_marker and not is_filled(
        data.get("chaser_song")
    ):
        errors.append("chaser_song")
    errors += _missing(data, ("fade_out_start_time", "fade_out_complete_time"))
    return errors


def _lighting(data: Mapping[str, Any]) -> list[str]:
    return _missing(data, ("dance_start_timing",) + _LIGHTING_CUES)


def _props(data: Mapping[str, Any]) -> list[str]:
    errors = _missing(data, ("props_usage",))
    if data.get("props_usage") == PROPS_IN_USE and not is_filled(data.get("props_details")):
        errors.append("props_details")
    return errors


def _semifinals_section(section_id: str, data: Mapping[str, Any]) -> list[str]:
    if section_id == "music":
        errors = []
        if not isinstance(data.get("music_change_from_preliminary"), bool):
            errors.append("music_change_from_preliminary")
        return errors + _music(data, "commercial")
    if section_id == "sound":
        return _sound(data, "required")
    if section_id == "lighting":
        return _lighting(data)
    if section_id == "choreographer":
        return _props(data)
    if section_id == "bank":
        return _missing(
            data, ("bank_name", "branch_name", "account_type", "account_number", "account_holder")
        )
    raise ValueError(f"unknown semifinals section: {section_id}")


def _switched(switch: str, check: Callable[[], list[str]], data: Mapping[str, Any]) -> list[str]:
    value = data.get(switch)
    if not isinstance(value, bool):
        return [switch]
    return check() if value else []


def _finals_section(section_id: str, data: Mapping[str, Any]) -> list[str]:
    if section_id == "music":
        return _switched("music_change", lambda: _music(data, "A"), data)
    if section_id == "sound":
        return _switched("sound_change_from_semifinals", lambda: _sound(data, "必要"), data)
    if section_id == "lighting":
        return _switched("lighting_change_from_semifinals", lambda: _lighting(data), data)
    if section_id == "choreographer":
        errors = _switched(
            "choreographer_change",
            lambda: _missing(data, ("choreographer_name", "choreographer2_name")),
            data,
        )
        return errors + _props(data) + _missing(
            data,
            (
                "choreographer_attendance",
                "choreographer_photo_permission",
                "choreographer_photo_path",
            ),
        )
    raise ValueError(f"unknown finals section: {section_id}")


def validate_semifinals_sections(data: Mapping[str, Any] | None) -> dict[str, list[str]]:
    data = data or {}
    result = {sid: _semifinals_section(sid, data) for sid, _ in SEMIFINALS_SECTIONS}
    return {sid: errors for sid, errors in result.items() if errors}


def validate_finals_sections(data: Mapping[str, Any] | None) -> dict[str, list[str]]:
    data = data or {}
    result = {sid: _finals_section(sid, data) for sid, _ in FINALS_SECTIONS}
    return {sid: errors for sid, errors in result.items() if errors}


def validate_section(stage: str, section_id: str, data: Mapping[str, Any] | None) -> list[str]:
    """Missing fields for one section of the semifinals or finals form."""
    data = data or {}
    if stage == "semifinals_info":
        return _semifinals_section(section_id, data)
    if stage == "finals_info":
        return _finals_section(section_id, data)
    raise ValueError(f"section diagnostics only exist for semifinals/finals, got {stage}")
