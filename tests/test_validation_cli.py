from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from dance_entry_core import EngineSettings, InMemoryFileStore, InputSanitizer, ValidatedEntryFile
from dance_entry_core.__main__ import load_snapshot, main
from dance_entry_core.validation import StoreSnapshot


def test_entry_file_validation():
    f = ValidatedEntryFile(entry_id=" e1 ", file_type="VIDEO", purpose=" sns_practice_video ")
    assert f.entry_id == "e1"
    assert f.file_type == "video"
    assert f.purpose == "sns_practice_video"

    with pytest.raises(ValidationError):
        ValidatedEntryFile(entry_id="e1", file_type="exe", purpose="x")
    with pytest.raises(ValidationError):
        ValidatedEntryFile(entry_id="   ", file_type="video")


def test_file_store_rejects_invalid_attachment():
    store = InMemoryFileStore()
    with pytest.raises(ValidationError):
        store.add("e1", "preliminary", "spreadsheet")


def test_sanitizer_stage_names():
    assert InputSanitizer.normalize_stage_name(" FINALS_INFO ") == "finals_info"
    with pytest.raises(ValueError):
        InputSanitizer.normalize_stage_name("finals")
    with pytest.raises(ValueError):
        InputSanitizer.normalize_stage_name(None)
    assert InputSanitizer.sanitize_string("a\0b  ") == "ab"


def test_settings_defaults_and_env(monkeypatch):
    settings = EngineSettings()
    assert settings.adult_age == 18
    assert settings.unknown_age == 999
    assert settings.sync_conditional_update is True

    monkeypatch.setenv("DANCE_ENTRY_ADULT_AGE", "20")
    monkeypatch.setenv("DANCE_ENTRY_BATCH_DRY_RUN", "true")
    settings = EngineSettings()
    assert settings.adult_age == 20
    assert settings.batch_dry_run is True


def test_snapshot_requires_entry_ids():
    with pytest.raises(ValidationError):
        StoreSnapshot(entries=[{"dance_style": "ballroom"}])
    with pytest.raises(ValidationError):
        StoreSnapshot(entries=[{"id": "e1"}], records={"bogus_info": []})


def _write_snapshot(tmp_path):
    snapshot = {
        "entries": [{"id": "e1", "program_info_status": "未登録"}],
        "records": {
            "program_info": [
                {"entry_id": "e1", "player_photo_path": "p.jpg", "semifinal_story": "s"}
            ],
            "sns_info": [{"entry_id": "e1"}],
        },
        "files": [
            {"entry_id": "e1", "file_type": "video", "purpose": "sns_practice_video"},
            {"entry_id": "e1", "file_type": "video", "purpose": "sns_introduction_highlight"},
        ],
    }
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(snapshot, ensure_ascii=False), encoding="utf-8")
    return path


def test_load_snapshot_fills_stores(tmp_path):
    records, files = load_snapshot(_write_snapshot(tmp_path))
    assert records.list_entry_ids() == ["e1"]
    assert records.get("e1", "program_info")["player_photo_path"] == "p.jpg"
    assert files.exists("e1", "sns_practice_video", "video")


def test_cli_batch_writes_output(tmp_path, capsys):
    out_path = tmp_path / "out.json"
    code = main(
        ["batch", str(_write_snapshot(tmp_path)), "--today", "2026-10-18", "--output", str(out_path)]
    )
    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["processed"] == 1
    assert report["updated"] == 1
    entry = json.loads(out_path.read_text(encoding="utf-8"))["entries"][0]
    assert entry["program_info_status"] == "registered"
    assert entry["sns_info_status"] == "registered"
    assert entry["basic_info_status"] == "not_registered"


def test_cli_dry_run_changes_nothing(tmp_path, capsys):
    out_path = tmp_path / "out.json"
    code = main(["batch", str(_write_snapshot(tmp_path)), "--dry-run", "--output", str(out_path)])
    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["dry_run"] is True
    assert report["changes"]
    entry = json.loads(out_path.read_text(encoding="utf-8"))["entries"][0]
    assert entry["program_info_status"] == "未登録"
