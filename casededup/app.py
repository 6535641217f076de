import argparse
import json
import sys
from pathlib import Path

from . import __version__
from .config import get_settings
from .database import init_database
from .env import load_env
from .errors import (
    DeduplicationError,
    InvalidCriteriaError,
    InvalidDecisionError,
    InvalidSelectionError,
    MissingRationaleError,
)
from .logger import get_logger
from .models import DecisionType, DeduplicationResult
from .schema import clean_criteria, validate_identity_formats
from .service import DeduplicationService

# Caller mistakes exit 2, store failures exit 1
VALIDATION_ERRORS = (
    InvalidCriteriaError,
    InvalidDecisionError,
    InvalidSelectionError,
    MissingRationaleError,
)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _criteria_from_args(args: argparse.Namespace) -> dict:
    return {
        "name": args.name,
        "nationalId": args.national_id,
        "secondaryNationalId": args.secondary_id,
        "phone": args.phone,
        "email": args.email,
        "bankAccountNumber": args.bank_account,
    }


def cmd_init_db(args: argparse.Namespace) -> None:
    settings = get_settings()
    init_database(settings.database_url)
    print(f"Database ready: {settings.database_url}")


def cmd_search(args: argparse.Namespace) -> None:
    criteria = clean_criteria(_criteria_from_args(args))
    if args.strict:
        errors = validate_identity_formats(criteria)
        if errors:
            print("Invalid:", file=sys.stderr)
            for e in errors:
                print(f" - {e}", file=sys.stderr)
            raise SystemExit(2)

    service = DeduplicationService.from_settings()
    result = service.search_duplicates(criteria)
    payload = result.to_dict()

    if args.save:
        save_path = Path(args.save)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        save_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        print(f"Saved {result.total_matches} candidate(s) to {save_path}", file=sys.stderr)

    _print_json(payload)


def cmd_decide(args: argparse.Namespace) -> None:
    result_path = Path(args.result)
    if not result_path.exists():
        raise SystemExit(f"Search result file not found: {result_path}")

    try:
        with result_path.open("r", encoding="utf-8") as f:
            shown = DeduplicationResult.model_validate(json.load(f))
    except ValueError as e:
        # JSONDecodeError and pydantic ValidationError
        raise InvalidDecisionError(f"Search result file {result_path} is not a saved search result") from e

    decision = {
        "caseId": args.case_id,
        "decision": args.decision,
        "rationale": args.rationale,
        "selectedExistingCaseId": args.selected,
    }
    service = DeduplicationService.from_settings()
    entry = service.record_decision(decision, shown.matches, shown.criteria, args.performed_by)
    _print_json(entry.to_dict())


def cmd_history(args: argparse.Namespace) -> None:
    service = DeduplicationService.from_settings()
    entries = service.get_history(args.case_id)
    if not entries:
        print(f"No deduplication history for case {args.case_id}", file=sys.stderr)
    _print_json([e.to_dict() for e in entries])


def cmd_clusters(args: argparse.Namespace) -> None:
    service = DeduplicationService.from_settings()
    _print_json(service.get_duplicate_clusters(page=args.page, limit=args.limit))


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _add_criteria_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--name", help="Applicant name (fuzzy matched)")
    parser.add_argument("--national-id", help="Primary government ID, e.g. ABCDE1234F")
    parser.add_argument("--secondary-id", help="Secondary government ID")
    parser.add_argument("--phone", help="Phone number (non-digits are stripped)")
    parser.add_argument("--email", help="Email address (case-insensitive)")
    parser.add_argument("--bank-account", help="Bank account number")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="casededup", description="Duplicate-case search and decision audit")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    ini = subparsers.add_parser("init-db", help="Create the case and audit tables")
    ini.set_defaults(func=cmd_init_db)

    src = subparsers.add_parser("search", help="Search for cases that may belong to the same person")
    _add_criteria_arguments(src)
    src.add_argument("--strict", action="store_true", help="Reject badly formatted IDs, phones and emails")
    src.add_argument("--save", help="Also write the result JSON here for a later 'decide'")
    src.set_defaults(func=cmd_search)

    dec = subparsers.add_parser("decide", help="Record a decision against a saved search result")
    dec.add_argument("--case-id", required=True, help="Case being created or resolved")
    dec.add_argument("--decision", required=True, choices=[d.value for d in DecisionType])
    dec.add_argument("--rationale", required=True, help="Why this decision was made")
    dec.add_argument("--selected", help="Existing case id (required for USE_EXISTING and MERGE_CASES)")
    dec.add_argument("--performed-by", required=True, help="Actor identifier")
    dec.add_argument("--result", required=True, help="Search result JSON written by 'search --save'")
    dec.set_defaults(func=cmd_decide)

    his = subparsers.add_parser("history", help="Show recorded decisions for a case")
    his.add_argument("--case-id", required=True)
    his.set_defaults(func=cmd_history)

    clu = subparsers.add_parser("clusters", help="List groups of cases sharing an identity key")
    clu.add_argument("--page", type=_positive_int, default=1)
    clu.add_argument("--limit", type=_positive_int, default=20)
    clu.set_defaults(func=cmd_clusters)

    return parser


def main(argv=None):
    # Load .env if present (DEDUP_DATABASE_URL, DEDUP_CANDIDATE_LIMIT, etc.)
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    logger = get_logger()
    logger.set_level(get_settings().log_level)
    try:
        args.func(args)
    except VALIDATION_ERRORS as e:
        print(f"[{e.code}] {e.message}", file=sys.stderr)
        raise SystemExit(2)
    except DeduplicationError as e:
        print(f"[{e.code}] {e.message}", file=sys.stderr)
        raise SystemExit(1)
    finally:
        logger.log_metrics_summary()


if __name__ == "__main__":
    main()
