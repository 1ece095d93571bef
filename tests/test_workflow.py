from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from dance_entry_core import (
    InMemoryFileStore,
    InMemoryRecordStore,
    StageStatus,
    StoreWriteError,
    save_stage,
)
from dance_entry_core.rules import SEMIFINALS_INFO_REQUIRED

TODAY = date(2026, 10, 18)
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _semifinals():
    fields = {name: f"semi-{name}" for name in SEMIFINALS_INFO_REQUIRED}
    fields.update(music_change_from_preliminary=True, props_usage="なし")
    return fields


def test_semifinals_save_updates_status_and_syncs_finals():
    records = InMemoryRecordStore()
    files = InMemoryFileStore()
    records.add_entry("e1")
    records.seed("e1", "finals_info", {"lighting_change_from_semifinals": False, "music_change": True})
    files.add("e1", "semifinals_payment_slip", "pdf")

    result = save_stage(records, files, "e1", "semifinals_info", _semifinals(), today=TODAY, now=NOW)

    assert result.error is None
    assert result.refresh.status is StageStatus.REGISTERED
    assert records.entries["e1"]["semifinals_info_status"] == "registered"
    assert result.sync.kind == "synced"
    assert result.sync.sections == ("lighting",)
    assert records.get("e1", "finals_info")["scene1_time"] == "semi-scene1_time"


def test_semifinals_save_without_slip_is_in_progress():
    records = InMemoryRecordStore()
    records.add_entry("e1")
    result = save_stage(records, InMemoryFileStore(), "e1", "semifinals_info", _semifinals())
    assert result.refresh.status is StageStatus.IN_PROGRESS
    assert result.sync.kind == "skipped"


def test_other_stages_do_not_sync():
    records = InMemoryRecordStore()
    records.add_entry("e1")
    records.seed("e1", "finals_info", {"music_change": False})
    result = save_stage(records, InMemoryFileStore(), "e1", "program_info", {"song_count": "1曲"})
    assert result.sync is None
    assert [w.op for w in records.writes] == ["upsert", "set_entry_status"]


def test_upsert_failure_propagates():
    records = InMemoryRecordStore()
    records.add_entry("e1")
    records.fail_writes.add("e1")
    with pytest.raises(StoreWriteError):
        save_stage(records, InMemoryFileStore(), "e1", "basic_info", {})
    assert records.get("e1", "basic_info") is None


def test_sync_failure_does_not_block_the_save():
    records = InMemoryRecordStore()
    files = InMemoryFileStore()
    records.add_entry("e1")
    records.seed("e1", "finals_info", {"music_change": False})

    class _FinalsUpdateFails:
        def __getattr__(self, name):
            return getattr(records, name)

        def update(self, entry_id, stage, fields, *, if_match=None):
            raise StoreWriteError("finals_info is read-only", entry_id=entry_id, stage=stage)

    result = save_stage(_FinalsUpdateFails(), files, "e1", "semifinals_info", _semifinals())
    assert records.get("e1", "semifinals_info") is not None
    assert result.sync.kind == "write_failed"
    assert result.refresh.persisted is True


def test_partial_semifinals_save_keeps_synced_finals_values():
    records = InMemoryRecordStore()
    records.add_entry("e1")
    records.seed("e1", "semifinals_info", {"scene1_time": "0:10", "scene1_trigger": "音先"})
    records.seed(
        "e1",
        "finals_info",
        {"lighting_change_from_semifinals": False, "scene1_time": "0:10", "scene1_trigger": "音先"},
    )

    result = save_stage(
        records, InMemoryFileStore(), "e1", "semifinals_info", {"bank_name": "みずほ"}, now=NOW
    )

    assert result.sync.kind == "synced"
    finals = records.get("e1", "finals_info")
    assert finals["scene1_time"] == "0:10"
    assert finals["scene1_trigger"] == "音先"
    assert records.get("e1", "semifinals_info")["bank_name"] == "みずほ"


def test_semifinals_reread_failure_reported_not_raised():
    records = InMemoryRecordStore()
    records.add_entry("e1")
    records.seed("e1", "finals_info", {"music_change": False})
    records.fail_reads.add("e1")

    result = save_stage(records, InMemoryFileStore(), "e1", "semifinals_info", _semifinals())

    assert records.records["semifinals_info"]["e1"]["bank_name"] == "semi-bank_name"
    assert result.error is not None
    assert result.sync.kind == "read_failed"
    assert records.records["finals_info"]["e1"] == {"entry_id": "e1", "music_change": False}
