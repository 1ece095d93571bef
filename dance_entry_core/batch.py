"""Completion batch: recompute every stage status for every entry.

Used to repair stale statuses (rule changes, imports, missed saves) without
waiting for participants to save again. Entries are processed strictly one
at a time; within an entry the status writes are serialized. Only statuses
that differ from the persisted value are written, so a second run over
unchanged data performs no writes at all.

A failing entry (read or write) is logged and listed in BatchReport.errors;
the run continues with the next entry.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from .config import EngineSettings, default_settings
from .status import compute_stage_status, record_stage_status
from .stores import FileStore, RecordStore, StoreError, StoreReadError
from .types import STAGES, Entry, StageStatus, status_field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusChange:
    entry_id: str
    stage: str
    before: StageStatus | None
    after: StageStatus


@dataclass
class BatchReport:
    processed: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)
    changes: list[StatusChange] = field(default_factory=list)
    dry_run: bool = False


def compute_entry_statuses(
    record_store: RecordStore,
    file_store: FileStore,
    entry_id: str,
    *,
    today: date | None = None,
    settings: EngineSettings | None = None,
) -> dict[str, StageStatus]:
    """Status of every stage for one entry, in STAGES order.

    Store read errors propagate.
    """
    return {
        stage: compute_stage_status(
            record_store, file_store, entry_id, stage, today=today, settings=settings
        )[0]
        for stage in STAGES
    }


def _diff_statuses(
    entry_id: str, entry: Entry, computed: dict[str, StageStatus]
) -> list[StatusChange]:
    changes: list[StatusChange] = []
    for stage, after in computed.items():
        # Stores filled by the portal hold the Japanese labels; parse() maps both.
        before = StageStatus.parse(entry.get(status_field(stage)))
        if before != after:
            changes.append(StatusChange(entry_id=entry_id, stage=stage, before=before, after=after))
    return changes


def run_completion_batch(
    record_store: RecordStore,
    file_store: FileStore,
    *,
    settings: EngineSettings | None = None,
    today: date | None = None,
) -> BatchReport:
    """Re-evaluate all entries and persist changed statuses.

    Returns:
        BatchReport with processed (entries visited), updated (entries with
        at least one status write), errors (entry ids that failed) and the
        individual changes applied (or, in dry-run mode, that would apply).
    """
    settings = settings or default_settings()
    today = today or date.today()
    report = BatchReport(dry_run=settings.batch_dry_run)

    entry_ids = record_store.list_entry_ids()
    logger.info(f"Completion batch started: {len(entry_ids)} entries")

    for entry_id in entry_ids:
        report.processed += 1
        try:
            entry = record_store.get_entry(entry_id)
            if entry is None:
                raise StoreReadError("entry disappeared during batch", entry_id=entry_id)
            computed = compute_entry_statuses(
                record_store, file_store, entry_id, today=today, settings=settings
            )
        except StoreError as e:
            logger.error(f"Entry {entry_id}: status evaluation failed: {e}")
            report.errors.append(entry_id)
            continue

        changes = _diff_statuses(entry_id, entry, computed)
        if not changes:
            logger.debug(f"Entry {entry_id}: statuses up to date")
            continue

        if settings.batch_dry_run:
            report.changes.extend(changes)
            report.updated += 1
            continue

        applied: list[StatusChange] = []
        for change in changes:
            if not record_stage_status(record_store, entry_id, change.stage, change.after):
                break
            applied.append(change)
        report.changes.extend(applied)
        if applied:
            report.updated += 1
        if len(applied) != len(changes):
            report.errors.append(entry_id)

    logger.info(
        f"Completion batch finished: {report.updated}/{report.processed} entries updated,"
        f" {len(report.errors)} errors"
    )
    return report
