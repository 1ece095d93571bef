"""Semifinals -> finals synchronization.

After a semifinals save, every finals section whose "changed from
semifinals" switch is explicitly False receives a copy of the semifinals
values. Sections are independent: any subset may qualify. The copy happens
on save, not on read, so finals is stale between a semifinals save and the
sync that follows it.

Guarantees:
- no finals record -> no write (the finals record is never created here)
- at most one update call per invocation, combining all qualifying sections
- store failures are logged and returned as a SyncOutcome, never raised
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Mapping

from .config import EngineSettings, default_settings
from .lighting import LightingPlan
from .stores import RecordStore, StoreConflictError, StoreError, StoreWriteError
from .types import FieldBag

logger = logging.getLogger(__name__)

SyncKind = Literal[
    "synced",
    "skipped",  # no finals record yet
    "nothing_to_sync",  # finals exists but no switch is False
    "read_failed",
    "write_failed",
    "conflict",
]

MUSIC_FIELDS = (
    "work_title",
    "work_title_kana",
    "work_character_story",
    "copyright_permission",
    "music_title",
    "artist",
    "cd_title",
    "record_number",
    "jasrac_code",
    "music_type",
    "music_data_path",
)
SOUND_FIELDS = (
    "sound_start_timing",
    "chaser_song_designation",
    "chaser_song",
    "fade_out_start_time",
    "fade_out_complete_time",
)
CHOREOGRAPHER_FIELDS = (
    "choreographer_name",
    "choreographer_name_kana",
    "choreographer2_name",
    "choreographer2_name_kana",
)


def _copy_fields(semifinals: Mapping[str, Any], names: tuple[str, ...]) -> dict[str, Any]:
    return {name: semifinals.get(name) or "" for name in names}


def _lighting_fields(semifinals: Mapping[str, Any]) -> dict[str, Any]:
    return LightingPlan.from_fields(semifinals).to_fields()


@dataclass(frozen=True)
class SyncSection:
    name: str
    switch: str
    build: Callable[[Mapping[str, Any]], dict[str, Any]]


SYNC_SECTIONS: tuple[SyncSection, ...] = (
    SyncSection("music", "music_change", lambda s: _copy_fields(s, MUSIC_FIELDS)),
    SyncSection("sound", "sound_change_from_semifinals", lambda s: _copy_fields(s, SOUND_FIELDS)),
    SyncSection("lighting", "lighting_change_from_semifinals", _lighting_fields),
    SyncSection(
        "choreographer", "choreographer_change", lambda s: _copy_fields(s, CHOREOGRAPHER_FIELDS)
    ),
)


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one synchronization attempt."""

    entry_id: str
    kind: SyncKind
    sections: tuple[str, ...] = ()
    updates: dict[str, Any] = field(default_factory=dict)
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind in {"synced", "skipped", "nothing_to_sync"}


def plan_finals_updates(
    finals: Mapping[str, Any], semifinals: Mapping[str, Any]
) -> tuple[tuple[str, ...], dict[str, Any]]:
    """Pure part of the sync: which sections qualify and what they write.

    A section qualifies only when its switch is exactly False; None (not
    answered) and True (changed for finals) both leave finals alone.
    """
    sections: list[str] = []
    updates: dict[str, Any] = {}
    for section in SYNC_SECTIONS:
        if finals.get(section.switch) is False:
            sections.append(section.name)
            updates.update(section.build(semifinals))
        else:
            logger.debug(f"[SYNC FINALS] {section.name} not synced ({section.switch}={finals.get(section.switch)!r})")
    return tuple(sections), updates


def synchronize_finals_from_semifinals(
    store: RecordStore,
    entry_id: str,
    semifinals_fields: FieldBag,
    *,
    settings: EngineSettings | None = None,
    now: datetime | None = None,
) -> SyncOutcome:
    """Copy semifinals values into the entry's finals record where allowed.

    Args:
        store: Record store holding the finals_info rows
        entry_id: Entry whose semifinals record was just saved
        semifinals_fields: The saved semifinals field bag
        settings: EngineSettings; sync_conditional_update sends the finals
            updated_at as a precondition on the write
        now: Timestamp written to updated_at (defaults to current UTC time)
    """
    settings = settings or default_settings()
    try:
        finals = store.get(entry_id, "finals_info")
    except StoreError as e:
        logger.error(f"[SYNC FINALS] finals_info read failed for {entry_id}: {e}")
        return SyncOutcome(entry_id=entry_id, kind="read_failed", message=str(e))

    if finals is None:
        logger.info(f"[SYNC FINALS] no finals_info for {entry_id}, skipping")
        return SyncOutcome(entry_id=entry_id, kind="skipped")

    sections, updates = plan_finals_updates(finals, semifinals_fields or {})
    if not sections:
        logger.info(f"[SYNC FINALS] nothing to sync for {entry_id}")
        return SyncOutcome(entry_id=entry_id, kind="nothing_to_sync")

    updates["updated_at"] = (now or datetime.now(timezone.utc)).isoformat()
    if_match = finals.get("updated_at") if settings.sync_conditional_update else None

    try:
        store.update(entry_id, "finals_info", updates, if_match=if_match)
    except StoreConflictError as e:
        logger.warning(f"[SYNC FINALS] finals_info for {entry_id} changed concurrently: {e}")
        return SyncOutcome(
            entry_id=entry_id, kind="conflict", sections=sections, message=str(e)
        )
    except StoreWriteError as e:
        logger.error(f"[SYNC FINALS] finals_info update failed for {entry_id}: {e}")
        return SyncOutcome(
            entry_id=entry_id, kind="write_failed", sections=sections, message=str(e)
        )

    logger.info(f"[SYNC FINALS] {entry_id} synced sections {list(sections)}")
    return SyncOutcome(entry_id=entry_id, kind="synced", sections=sections, updates=updates)
