"""Save flow for a stage form: upsert -> evaluate -> resolve -> (semifinals) sync."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from .config import EngineSettings, default_settings
from .status import StageRefresh, refresh_stage_status
from .stores import FileStore, RecordStore, StoreError
from .sync import SyncOutcome, synchronize_finals_from_semifinals
from .types import FieldBag
from .validation import InputSanitizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveResult:
    entry_id: str
    stage: str
    refresh: StageRefresh | None
    sync: SyncOutcome | None = None
    error: str | None = None


def save_stage(
    record_store: RecordStore,
    file_store: FileStore,
    entry_id: str,
    stage: str,
    fields: FieldBag,
    *,
    settings: EngineSettings | None = None,
    today: date | None = None,
    now: datetime | None = None,
) -> SaveResult:
    """Persist a stage form and bring its status (and finals) up to date.

    The record upsert is the caller's operation: its failure propagates.
    Everything after it is follow-up work whose failures are reported in the
    SaveResult without undoing the save.
    """
    entry_id = InputSanitizer.sanitize_entry_id(entry_id)
    stage = InputSanitizer.normalize_stage_name(stage)
    settings = settings or default_settings()

    record_store.upsert(entry_id, stage, fields)

    refresh: StageRefresh | None = None
    error: str | None = None
    try:
        refresh = refresh_stage_status(
            record_store, file_store, entry_id, stage, today=today, settings=settings
        )
    except StoreError as e:
        logger.error(f"Status refresh after {stage} save failed for {entry_id}: {e}")
        error = str(e)

    sync: SyncOutcome | None = None
    if stage == "semifinals_info":
        # Sync from the stored record: a section save only carries part of it.
        try:
            semifinals = record_store.get(entry_id, "semifinals_info")
        except StoreError as e:
            logger.error(f"Semifinals re-read for finals sync failed for {entry_id}: {e}")
            sync = SyncOutcome(entry_id=entry_id, kind="read_failed", message=str(e))
        else:
            sync = synchronize_finals_from_semifinals(
                record_store, entry_id, semifinals or fields, settings=settings, now=now
            )

    return SaveResult(entry_id=entry_id, stage=stage, refresh=refresh, sync=sync, error=error)
