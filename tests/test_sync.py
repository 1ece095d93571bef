from __future__ import annotations

from datetime import datetime, timezone

from dance_entry_core import (
    EngineSettings,
    InMemoryRecordStore,
    LightingPlan,
    plan_finals_updates,
    synchronize_finals_from_semifinals,
)
from dance_entry_core.lighting import CUE_PREFIXES, SCENE_NUMBERS
from dance_entry_core.sync import MUSIC_FIELDS

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _semifinals():
    fields = {
        "work_title": "Semi work",
        "work_title_kana": "せみ",
        "music_title": "Semi song",
        "copyright_permission": "commercial",
        "music_data_path": "e1/semi.mp3",
        "sound_start_timing": "音先",
        "fade_out_start_time": "3:20",
        "fade_out_complete_time": "3:30",
        "dance_start_timing": "板付き",
        "choreographer_name": "Choreo",
        "choreographer_name_kana": "ちょれお",
    }
    for prefix in CUE_PREFIXES:
        fields[f"{prefix}_time"] = f"{prefix}-time"
        fields[f"{prefix}_trigger"] = f"{prefix}-trigger"
        fields[f"{prefix}_color_type"] = "暖色系"
        fields[f"{prefix}_notes"] = f"{prefix}-notes"
    return fields


def _store_with_finals(**finals):
    store = InMemoryRecordStore()
    store.add_entry("e1")
    store.seed("e1", "finals_info", {"updated_at": "2026-10-01T00:00:00+00:00", **finals})
    return store


def test_lighting_synced_music_untouched():
    store = _store_with_finals(
        music_change=True,
        lighting_change_from_semifinals=False,
        work_title="Finals work",
        music_title="Finals song",
        scene3_time="old",
    )
    outcome = synchronize_finals_from_semifinals(store, "e1", _semifinals(), now=NOW)

    assert outcome.kind == "synced"
    assert outcome.sections == ("lighting",)
    finals = store.get("e1", "finals_info")
    for n in SCENE_NUMBERS:
        assert finals[f"scene{n}_time"] == f"scene{n}-time"
        assert finals[f"scene{n}_notes"] == f"scene{n}-notes"
        assert finals[f"scene{n}_image_path"] == ""
    assert finals["chaser_exit_trigger"] == "chaser_exit-trigger"
    assert finals["dance_start_timing"] == "板付き"
    assert finals["work_title"] == "Finals work"
    assert finals["music_title"] == "Finals song"
    assert finals["updated_at"] == NOW.isoformat()


def test_no_finals_record_means_no_writes():
    store = InMemoryRecordStore()
    store.add_entry("e1")
    outcome = synchronize_finals_from_semifinals(store, "e1", _semifinals())
    assert outcome.kind == "skipped"
    assert outcome.ok
    assert store.writes == []
    assert store.get("e1", "finals_info") is None


def test_unanswered_or_true_switches_do_not_sync():
    store = _store_with_finals(
        music_change=None,
        sound_change_from_semifinals=True,
        choreographer_change="false",
    )
    outcome = synchronize_finals_from_semifinals(store, "e1", _semifinals())
    assert outcome.kind == "nothing_to_sync"
    assert store.writes == []


def test_all_sections_combined_into_one_update():
    store = _store_with_finals(
        music_change=False,
        sound_change_from_semifinals=False,
        lighting_change_from_semifinals=False,
        choreographer_change=False,
    )
    outcome = synchronize_finals_from_semifinals(store, "e1", _semifinals(), now=NOW)
    assert outcome.sections == ("music", "sound", "lighting", "choreographer")
    updates = [w for w in store.writes if w.op == "update"]
    assert len(updates) == 1
    finals = store.get("e1", "finals_info")
    assert finals["copyright_permission"] == "commercial"
    # Missing semifinals values are copied as empty strings.
    assert finals["jasrac_code"] == ""
    assert finals["sound_start_timing"] == "音先"
    assert finals["choreographer_name_kana"] == "ちょれお"
    assert finals["choreographer2_name"] == ""


def test_plan_is_pure_and_covers_music_fields():
    finals = {"music_change": False}
    sections, updates = plan_finals_updates(finals, _semifinals())
    assert sections == ("music",)
    assert set(updates) == set(MUSIC_FIELDS)
    assert finals == {"music_change": False}


def test_read_failure_aborts_without_write():
    store = _store_with_finals(lighting_change_from_semifinals=False)
    store.fail_reads.add("e1")
    outcome = synchronize_finals_from_semifinals(store, "e1", _semifinals())
    assert outcome.kind == "read_failed"
    assert not outcome.ok
    assert store.writes == []


def test_write_failure_leaves_finals_unchanged():
    store = _store_with_finals(lighting_change_from_semifinals=False, scene1_time="keep")
    store.fail_writes.add("e1")
    outcome = synchronize_finals_from_semifinals(store, "e1", _semifinals())
    assert outcome.kind == "write_failed"
    assert store.records["finals_info"]["e1"]["scene1_time"] == "keep"


class _RacingStore:
    """Delegates to a store but lets someone else save finals right after our read."""

    def __init__(self, store):
        self.store = store

    def __getattr__(self, name):
        return getattr(self.store, name)

    def get(self, entry_id, stage):
        row = self.store.get(entry_id, stage)
        self.store.records["finals_info"][entry_id]["updated_at"] = "2026-10-18T11:59:00+00:00"
        return row


def test_concurrent_finals_edit_is_detected():
    store = _store_with_finals(lighting_change_from_semifinals=False, scene1_time="keep")
    outcome = synchronize_finals_from_semifinals(_RacingStore(store), "e1", _semifinals(), now=NOW)
    assert outcome.kind == "conflict"
    assert store.records["finals_info"]["e1"]["scene1_time"] == "keep"


def test_conditional_update_can_be_disabled():
    store = _store_with_finals(lighting_change_from_semifinals=False, scene1_time="keep")
    settings = EngineSettings(sync_conditional_update=False)
    outcome = synchronize_finals_from_semifinals(
        _RacingStore(store), "e1", _semifinals(), settings=settings
    )
    assert outcome.kind == "synced"
    assert store.records["finals_info"]["e1"]["scene1_time"] == "scene1-time"


def test_lighting_plan_indexes_scenes_numerically():
    plan = LightingPlan.from_fields(_semifinals())
    assert len(plan.scenes) == 5
    assert plan.scene(2).trigger == "scene2-trigger"
    assert plan.chaser_exit.time == "chaser_exit-time"
    assert plan.to_fields()["scene5_color_type"] == "暖色系"
