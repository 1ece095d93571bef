"""Record / file store collaborators.

The core never talks to a database directly. It depends on two small
protocols and a family of typed store errors; production code plugs in an
adapter for its backend, tests and the command line use the in-memory
adapters below.
"""
from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from .types import Entry, FieldBag, StageStatus, status_field
from .validation import InputSanitizer, ValidatedEntryFile

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base for record / file store failures."""

    def __init__(self, message: str, *, entry_id: str | None = None, stage: str | None = None):
        super().__init__(message)
        self.entry_id = entry_id
        self.stage = stage


class StoreReadError(StoreError):
    """A read could not be completed; nothing was written."""


class StoreWriteError(StoreError):
    """A write was rejected; the stored value is unchanged."""


class StoreConflictError(StoreWriteError):
    """A conditional write found a newer version than expected."""


class RecordStore(Protocol):
    def get(self, entry_id: str, stage: str) -> FieldBag | None:
        ...

    def upsert(self, entry_id: str, stage: str, fields: FieldBag) -> None:
        ...

    def update(
        self, entry_id: str, stage: str, fields: FieldBag, *, if_match: Any = None
    ) -> None:
        ...

    def set_entry_status(self, entry_id: str, stage: str, status: StageStatus) -> None:
        ...

    def get_entry(self, entry_id: str) -> Entry | None:
        ...

    def list_entry_ids(self) -> list[str]:
        ...


class FileStore(Protocol):
    def exists(self, entry_id: str, purpose: str, file_type: str | None = None) -> bool:
        ...


@dataclass(frozen=True)
class StoreWrite:
    """One write observed by the in-memory record store."""

    op: str  # 'upsert' | 'update' | 'set_entry_status'
    entry_id: str
    stage: str
    fields: dict[str, Any]


@dataclass
class InMemoryRecordStore:
    """Dict-backed RecordStore.

    Rows are deep-copied in and out so callers cannot mutate stored state by
    accident. ``fail_reads`` / ``fail_writes`` hold entry ids whose operations
    should raise, which is how tests exercise the error paths.
    """

    entries: dict[str, Entry] = field(default_factory=dict)
    records: dict[str, dict[str, FieldBag]] = field(default_factory=dict)
    writes: list[StoreWrite] = field(default_factory=list)
    fail_reads: set[str] = field(default_factory=set)
    fail_writes: set[str] = field(default_factory=set)

    def add_entry(self, entry_id: str, **attrs: Any) -> Entry:
        entry_id = InputSanitizer.sanitize_entry_id(entry_id)
        entry: Entry = {"id": entry_id, **attrs}
        self.entries[entry_id] = entry
        return deepcopy(entry)

    def seed(self, entry_id: str, stage: str, fields: FieldBag) -> None:
        """Store a record without logging it as a write (fixtures, snapshots)."""
        stage = InputSanitizer.normalize_stage_name(stage)
        self.records.setdefault(stage, {})[entry_id] = {"entry_id": entry_id, **deepcopy(fields)}

    def _check_read(self, entry_id: str, stage: str) -> None:
        if entry_id in self.fail_reads:
            raise StoreReadError(f"read failed for {stage}", entry_id=entry_id, stage=stage)

    def _check_write(self, entry_id: str, stage: str) -> None:
        if entry_id in self.fail_writes:
            raise StoreWriteError(f"write failed for {stage}", entry_id=entry_id, stage=stage)

    def get(self, entry_id: str, stage: str) -> FieldBag | None:
        stage = InputSanitizer.normalize_stage_name(stage)
        self._check_read(entry_id, stage)
        row = self.records.get(stage, {}).get(entry_id)
        return deepcopy(row) if row is not None else None

    def upsert(self, entry_id: str, stage: str, fields: FieldBag) -> None:
        stage = InputSanitizer.normalize_stage_name(stage)
        self._check_write(entry_id, stage)
        table = self.records.setdefault(stage, {})
        row = table.get(entry_id, {"entry_id": entry_id})
        row.update(deepcopy(fields))
        table[entry_id] = row
        self.writes.append(StoreWrite("upsert", entry_id, stage, deepcopy(fields)))

    def update(
        self, entry_id: str, stage: str, fields: FieldBag, *, if_match: Any = None
    ) -> None:
        stage = InputSanitizer.normalize_stage_name(stage)
        self._check_write(entry_id, stage)
        row = self.records.get(stage, {}).get(entry_id)
        if row is None:
            raise StoreWriteError(f"no {stage} row to update", entry_id=entry_id, stage=stage)
        if if_match is not None and row.get("updated_at") != if_match:
            logger.debug(f"Conditional update rejected for {entry_id}/{stage}")
            raise StoreConflictError(
                f"{stage} changed since read (expected updated_at={if_match})",
                entry_id=entry_id,
                stage=stage,
            )
        row.update(deepcopy(fields))
        self.writes.append(StoreWrite("update", entry_id, stage, deepcopy(fields)))

    def set_entry_status(self, entry_id: str, stage: str, status: StageStatus) -> None:
        self._check_write(entry_id, "entries")
        entry = self.entries.get(entry_id)
        if entry is None:
            raise StoreWriteError("no such entry", entry_id=entry_id, stage=stage)
        column = status_field(stage)
        entry[column] = StageStatus(status).value
        self.writes.append(
            StoreWrite("set_entry_status", entry_id, stage, {column: entry[column]})
        )

    def get_entry(self, entry_id: str) -> Entry | None:
        self._check_read(entry_id, "entries")
        entry = self.entries.get(entry_id)
        return deepcopy(entry) if entry is not None else None

    def list_entry_ids(self) -> list[str]:
        return list(self.entries)

    def writes_for(self, entry_id: str) -> list[StoreWrite]:
        return [w for w in self.writes if w.entry_id == entry_id]


@dataclass
class InMemoryFileStore:
    """List-backed FileStore keyed by (entry_id, purpose, file_type)."""

    files: list[ValidatedEntryFile] = field(default_factory=list)
    fail_reads: set[str] = field(default_factory=set)
    lookups: int = 0

    def add(self, entry_id: str, purpose: str, file_type: str = "video", **extra: Any) -> None:
        self.files.append(
            ValidatedEntryFile(entry_id=entry_id, purpose=purpose, file_type=file_type, **extra)
        )

    def extend(self, files: Iterable[ValidatedEntryFile]) -> None:
        self.files.extend(files)

    def exists(self, entry_id: str, purpose: str, file_type: str | None = None) -> bool:
        self.lookups += 1
        if entry_id in self.fail_reads:
            raise StoreReadError(f"file lookup failed for {purpose}", entry_id=entry_id)
        return any(
            f.entry_id == entry_id
            and f.purpose == purpose
            and (file_type is None or f.file_type == file_type)
            for f in self.files
        )

