#!/usr/bin/env python3
"""
One-shot migration that stamps legacy emotion records with a cycle number.

Usage:
  python scripts/migrate_legacy_records.py [DATA_DIR]

Records written before cycles existed have no cycleNumber. The tracker reads
them as cycle 1 already; this writes that value back so other readers of the
files see the same thing. Prints a summary of changes.
"""
import json
import sys
from pathlib import Path

from journal import config
from journal.tracker import RECORDS_KEY


def load(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def save(path: Path, records):
    with path.open("w", encoding="utf-8") as f:
        json.dump(records, f, ensure_ascii=False)


def migrate_file(path: Path) -> int:
    try:
        records = load(path)
    except ValueError as e:
        print(f"Skipping {path.name}: not valid JSON ({e})")
        return 0
    if not isinstance(records, list):
        print(f"Skipping {path.name}: expected a list of records")
        return 0
    changed = 0
    for record in records:
        if isinstance(record, dict) and not record.get("cycleNumber"):
            record["cycleNumber"] = 1
            changed += 1
    if changed:
        save(path, records)
    return changed


def main(argv):
    data_dir = Path(argv[1]) if len(argv) > 1 else config.DATA_DIR
    if not data_dir.exists():
        print("no data directory found at", data_dir)
        return
    total = 0
    for path in sorted(data_dir.glob(f"*__{RECORDS_KEY}.json")):
        changed = migrate_file(path)
        if changed:
            print(f"Stamped {changed} records in {path.name}")
        total += changed
    if total:
        print(f"Updated {total} records in {data_dir}")
    else:
        print("No legacy records found; no changes made.")


if __name__ == '__main__':
    main(sys.argv)
