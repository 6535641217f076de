#!/usr/bin/env python3
"""
Import case records from a JSON file into the case store.

Used to seed development and test databases. The file holds a list of
objects with camelCase keys (caseNumber, applicantName, nationalId, ...)
and an optional clientName.

Usage:
    python scripts/import_cases.py --json data/cases.json --db data/cases.db
"""

import argparse
import json
from datetime import datetime
from pathlib import Path
import sys

from casededup.database import Case, Client, init_database, get_session
from casededup.normalize import blank_to_none, normalize_national_id


def parse_timestamp(ts_str):
    """Parse ISO timestamp string, handle missing timestamps."""
    if not ts_str:
        return datetime.now()
    try:
        return datetime.fromisoformat(ts_str)
    except (ValueError, TypeError):
        return datetime.now()


def _client_id(session, name, cache):
    if not name:
        return None
    if name not in cache:
        client = session.query(Client).filter_by(name=name).first()
        if client is None:
            client = Client(name=name)
            session.add(client)
            session.flush()
        cache[name] = client.id
    return cache[name]


def import_cases(json_path: Path, db_path: Path, dry_run: bool = False) -> bool:
    """
    Import cases from JSON into the database.

    Args:
        json_path: Path to JSON file with a list of case objects
        db_path: Path to SQLite database file (or a database URL)
        dry_run: If True, don't write to database
    """
    print(f"Loading cases from {json_path}...")
    with open(json_path, encoding="utf-8") as f:
        records = json.load(f)

    print(f"Found {len(records)} cases in {json_path}")

    if dry_run:
        print("\n[DRY RUN] Would import the following cases:")
        for i, record in enumerate(records[:5], 1):
            print(f"  {i}. {record.get('caseNumber')}: {record.get('applicantName')}")
        if len(records) > 5:
            print(f"  ... and {len(records) - 5} more")
        return True

    print(f"\nInitializing database at {db_path}...")
    engine = init_database(db_path)
    session = get_session(engine)

    imported = 0
    skipped = 0
    clients = {}

    for record in records:
        case_number = blank_to_none(record.get("caseNumber"))
        if not case_number:
            print("Skipping record without caseNumber")
            skipped += 1
            continue

        if session.query(Case).filter_by(case_number=case_number).first():
            print(f"Case {case_number} already exists, skipping")
            skipped += 1
            continue

        national_id = blank_to_none(record.get("nationalId"))
        created_at = parse_timestamp(record.get("createdAt"))
        case = Case(
            case_number=case_number,
            applicant_name=blank_to_none(record.get("applicantName")),
            national_id=normalize_national_id(national_id) if national_id else None,
            secondary_national_id=blank_to_none(record.get("secondaryNationalId")),
            phone=blank_to_none(record.get("phone")),
            email=blank_to_none(record.get("email")),
            bank_account_number=blank_to_none(record.get("bankAccountNumber")),
            status=record.get("status") or "PENDING",
            client_id=_client_id(session, blank_to_none(record.get("clientName")), clients),
            created_at=created_at,
            updated_at=created_at,
        )
        if record.get("id"):
            case.id = str(record["id"])
        session.add(case)
        imported += 1

        if imported % 20 == 0:
            print(f"  Imported {imported} cases...")

    try:
        session.commit()
        print("\nImport complete!")
        print(f"   Imported: {imported}")
        print(f"   Skipped:  {skipped}")
    except Exception as e:
        session.rollback()
        print(f"Failed to commit: {e}")
        return False
    finally:
        session.close()

    return True


def main():
    parser = argparse.ArgumentParser(description="Import case records from JSON")
    parser.add_argument("--json", type=Path, default=Path("data/cases.json"),
                       help="Path to JSON file with case records")
    parser.add_argument("--db", default="data/cases.db",
                       help="SQLite database path or database URL")
    parser.add_argument("--dry-run", action="store_true",
                       help="Show what would be imported without writing")

    args = parser.parse_args()

    if not args.json.exists():
        print(f"JSON file not found: {args.json}")
        sys.exit(1)

    ok = import_cases(args.json, args.db, dry_run=args.dry_run)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
