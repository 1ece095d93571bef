"""Command line entry point.

    python -m dance_entry_core batch snapshot.json [--dry-run] [--output out.json]

Runs the completion batch against a JSON export of entries, stage records
and attachments, prints the report and optionally writes the updated
entries back out.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Sequence

from .batch import BatchReport, run_completion_batch
from .config import EngineSettings
from .stores import InMemoryFileStore, InMemoryRecordStore
from .validation import StoreSnapshot

logger = logging.getLogger("dance_entry_core")


def load_snapshot(path: Path) -> tuple[InMemoryRecordStore, InMemoryFileStore]:
    snapshot = StoreSnapshot(**json.loads(path.read_text(encoding="utf-8")))
    records = InMemoryRecordStore()
    for entry in snapshot.entries:
        attrs = {k: v for k, v in entry.items() if k != "id"}
        records.add_entry(str(entry["id"]), **attrs)
    for stage, rows in snapshot.records.items():
        for row in rows:
            fields = row.model_dump()
            records.seed(row.entry_id, stage, fields)
    files = InMemoryFileStore()
    files.extend(snapshot.files)
    return records, files


def report_to_dict(report: BatchReport) -> dict:
    return {
        "processed": report.processed,
        "updated": report.updated,
        "errors": list(report.errors),
        "dry_run": report.dry_run,
        "changes": [
            {
                "entry_id": c.entry_id,
                "stage": c.stage,
                "before": c.before.value if c.before else None,
                "after": c.after.value,
            }
            for c in report.changes
        ],
    }


def _cmd_batch(args: argparse.Namespace, settings: EngineSettings) -> int:
    if args.dry_run:
        settings = settings.model_copy(update={"batch_dry_run": True})
    records, files = load_snapshot(Path(args.snapshot))
    today = date.fromisoformat(args.today) if args.today else None
    report = run_completion_batch(records, files, settings=settings, today=today)
    print(json.dumps(report_to_dict(report), ensure_ascii=False, indent=2))
    if args.output:
        out = {"entries": list(records.entries.values())}
        Path(args.output).write_text(
            json.dumps(out, ensure_ascii=False, indent=2), encoding="utf-8"
        )
    return 1 if report.errors else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dance_entry_core")
    sub = parser.add_subparsers(dest="command", required=True)
    batch = sub.add_parser("batch", help="recompute stage statuses for a snapshot")
    batch.add_argument("snapshot", help="JSON export with entries, records, files")
    batch.add_argument("--dry-run", action="store_true", help="report changes without applying")
    batch.add_argument("--today", help="reference date for age rules (YYYY-MM-DD)")
    batch.add_argument("--output", help="write updated entries to this JSON file")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    settings = EngineSettings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    args = build_parser().parse_args(argv)
    if args.command == "batch":
        return _cmd_batch(args, settings)
    return 2


if __name__ == "__main__":
    sys.exit(main())
