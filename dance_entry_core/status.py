"""Stage status resolution and persistence.

Status rules:
- no record for the stage           -> not_registered
- record exists, evaluator complete -> registered
- record exists, otherwise          -> in_progress

resolve_status() is pure. record_stage_status() performs the single write
onto the entry and reports failure instead of raising, so a rejected write
leaves the previous status in place and the caller decides what to do.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from .config import EngineSettings
from .rules import StageEvaluation, evaluate_stage, lookup_required_files
from .stores import FileStore, RecordStore, StoreError
from .types import StageStatus, status_field
from .validation import InputSanitizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageRefresh:
    """Result of re-evaluating one stage of one entry."""

    entry_id: str
    stage: str
    status: StageStatus
    evaluation: StageEvaluation | None
    persisted: bool


def resolve_status(stage: str, record_exists: bool, complete: bool) -> StageStatus:
    """Map record presence and the evaluator verdict to a stage status.

    Without a record the verdict is ignored: absence is always not_registered.
    """
    InputSanitizer.normalize_stage_name(stage)
    if not record_exists:
        return StageStatus.NOT_REGISTERED
    if complete:
        return StageStatus.REGISTERED
    return StageStatus.IN_PROGRESS


def record_stage_status(
    store: RecordStore, entry_id: str, stage: str, status: StageStatus
) -> bool:
    """Write ``status`` onto the entry's column for ``stage``.

    Returns False (and logs) when the store rejects the write.
    """
    try:
        store.set_entry_status(entry_id, stage, status)
    except StoreError as e:
        logger.error(f"[STATUS UPDATE ERROR] {entry_id} {status_field(stage)}: {e}")
        return False
    logger.info(f"[STATUS UPDATE] {entry_id} {status_field(stage)} -> {status.value}")
    return True


def compute_stage_status(
    record_store: RecordStore,
    file_store: FileStore,
    entry_id: str,
    stage: str,
    *,
    today: date | None = None,
    settings: EngineSettings | None = None,
) -> tuple[StageStatus, StageEvaluation | None]:
    """Read the stage record and its attachments, evaluate, resolve.

    Store read errors propagate to the caller before anything is written.
    """
    stage = InputSanitizer.normalize_stage_name(stage)
    record = record_store.get(entry_id, stage)
    if record is None:
        return resolve_status(stage, False, False), None
    files = lookup_required_files(file_store, entry_id, stage)
    evaluation = evaluate_stage(stage, record, files, today=today, settings=settings)
    return resolve_status(stage, True, evaluation.complete), evaluation


def refresh_stage_status(
    record_store: RecordStore,
    file_store: FileStore,
    entry_id: str,
    stage: str,
    *,
    today: date | None = None,
    settings: EngineSettings | None = None,
) -> StageRefresh:
    status, evaluation = compute_stage_status(
        record_store, file_store, entry_id, stage, today=today, settings=settings
    )
    persisted = record_stage_status(record_store, entry_id, stage, status)
    return StageRefresh(
        entry_id=entry_id,
        stage=InputSanitizer.normalize_stage_name(stage),
        status=status,
        evaluation=evaluation,
        persisted=persisted,
    )
