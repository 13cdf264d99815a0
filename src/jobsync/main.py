#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from jobsync.adapters.profile_document import (
    load_profile_file,
    profile_to_json,
    save_profile_file,
)
from jobsync.app import (
    audit_partner_source,
    auto_match_engineers,
    default_profile_repository,
    load_stored_profile,
    run_partner_import,
)
from jobsync.config import configure_logging, get_import_config
from jobsync.domain.errors import PartnerImportError
from jobsync.domain.orchestrator import CancellationToken
from jobsync.domain.ports import SourceDescriptor
from jobsync.domain.reporting import export_issues

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from jobsync.domain.audit import AuditReport
    from jobsync.domain.orchestrator import ImportProgress, OrchestratedRun
    from jobsync.domain.profile import MappingProfile

log = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {number}")
    return number


def _add_profile_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--profile", type=Path, help="Path to a mapping profile JSON file")
    group.add_argument("--profile-id", type=str, help="Id of a stored mapping profile")


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--csv",
        type=Path,
        help="Read rows from this CSV file instead of the profile's Google Sheet",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import partner jobs into the job store")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Import (or preview) partner rows")
    _add_profile_arguments(run)
    _add_source_arguments(run)
    run.add_argument(
        "--live",
        action="store_true",
        help="Write changes to the job store (default is a dry run)",
    )
    run.add_argument(
        "--no-create",
        action="store_true",
        help="Do not create jobs that are missing from the store",
    )
    run.add_argument(
        "--chunk-size",
        type=_positive_int,
        default=None,
        help="Rows per chunk (defaults to config)",
    )
    run.add_argument(
        "--parallel",
        type=_positive_int,
        default=None,
        help="Number of leading chunks to run concurrently (defaults to config)",
    )
    run.add_argument("--verbose", action="store_true", help="Log every row decision")
    run.add_argument(
        "--export-issues",
        type=Path,
        help="Write all errors and warnings to this CSV file",
    )

    audit = subparsers.add_parser("audit", help="Check source data quality against the store")
    _add_profile_arguments(audit)
    _add_source_arguments(audit)

    profile = subparsers.add_parser("profile", help="Mapping profile commands")
    profile_sub = profile.add_subparsers(dest="profile_command", required=True)

    show = profile_sub.add_parser("show", help="Print a mapping profile as JSON")
    _add_profile_arguments(show)

    duplicate = profile_sub.add_parser("duplicate", help="Copy a mapping profile (inactive)")
    _add_profile_arguments(duplicate)
    duplicate.add_argument("--name", type=str, help="Name of the copy")
    duplicate.add_argument("--output", type=Path, help="Write the copy to this file")

    auto_match = profile_sub.add_parser(
        "auto-match",
        help="Map unmapped source engineers onto engineers with matching names",
    )
    _add_profile_arguments(auto_match)
    _add_source_arguments(auto_match)

    store = profile_sub.add_parser("store", help="Save a profile file into the database")
    store.add_argument("path", type=Path, help="Path to a mapping profile JSON file")

    return parser.parse_args(list(argv))


def _load_profile(args: argparse.Namespace) -> MappingProfile:
    if args.profile is not None:
        return load_profile_file(args.profile)
    try:
        profile_id = UUID(args.profile_id)
    except ValueError as exc:
        raise ValueError(f"Invalid profile id: {args.profile_id}") from exc
    return load_stored_profile(profile_id)


def _save_profile(args: argparse.Namespace, profile: MappingProfile, *, path: Path | None = None) -> None:
    target = path or (args.profile if args.profile is not None else None)
    if target is not None:
        save_profile_file(profile, target)
        log.info(f"Saved mapping profile to {target}")
    else:
        default_profile_repository().add(profile)
        log.info(f"Stored mapping profile {profile.id}")


def _descriptor(args: argparse.Namespace, profile: MappingProfile) -> SourceDescriptor:
    return SourceDescriptor.for_profile(profile, csv_path=getattr(args, "csv", None))


def _print_progress(progress: ImportProgress) -> None:
    print(
        f"Chunk {progress.current_chunk}/{progress.total_chunks}: "
        f"{progress.processed_rows}/{progress.total_rows} rows processed",
        file=sys.stderr,
    )


def _print_run(run: OrchestratedRun, *, inline_limit: int) -> None:
    summary = run.summary
    if run.unmapped_engineers:
        print("Import blocked: map these engineers first:")
        for identifier in run.unmapped_engineers:
            print(f"  - {identifier}")
        return
    mode = "Dry run" if summary.dry_run else "Import"
    status = "cancelled" if run.cancelled else ("succeeded" if run.success else "finished with errors")
    print(f"{mode} {status}: {summary.processed} of {run.total_rows} rows processed")
    print(
        f"  inserted={summary.inserted} updated={summary.updated} skipped={summary.skipped} "
        f"duplicates={summary.duplicates} errors={len(summary.errors)} "
        f"warnings={len(summary.warnings)}"
    )
    for issue in summary.inline_errors(inline_limit):
        print(f"  error row {issue.row}: {issue.message}")
    hidden = len(summary.errors) - inline_limit
    if hidden > 0:
        print(f"  ... {hidden} more error(s); use --export-issues to see all")


def _print_audit(report: AuditReport) -> None:
    print(f"Rows: {report.total_rows}")
    print(
        f"External IDs: {report.unique_external_ids} unique, "
        f"{len(report.duplicate_external_ids)} duplicated, {report.blank_external_ids} blank"
    )
    print(
        f"Client emails: {report.unique_emails} unique, "
        f"{len(report.duplicate_emails)} duplicated, {report.blank_emails} blank"
    )
    print(f"Blank client names: {report.blank_names}")
    print(
        f"Job store: {len(report.existing_external_ids)} existing, "
        f"{len(report.missing_external_ids)} missing"
    )
    for recommendation in report.recommendations:
        print(f"- {recommendation}")


def _run_import(args: argparse.Namespace) -> int:
    profile = _load_profile(args)
    token = CancellationToken()

    def cancel_handler(_signal_received: int, _frame: FrameType | None) -> None:
        log.warning("Cancellation requested; stopping after the current chunk")
        token.cancel()

    previous = signal(SIGINT, cancel_handler)
    try:
        run = run_partner_import(
            profile,
            _descriptor(args, profile),
            dry_run=not args.live,
            create_missing_records=not args.no_create,
            chunk_size=args.chunk_size,
            parallel_chunks=args.parallel,
            verbose=args.verbose,
            progress=_print_progress,
            cancel_token=token,
        )
    finally:
        signal(SIGINT, previous)

    _print_run(run, inline_limit=get_import_config().inline_error_limit)
    if args.export_issues is not None:
        count = export_issues(run.summary, args.export_issues)
        print(f"Wrote {count} issue(s) to {args.export_issues}")
    return 0 if run.success else 1


def _run_profile_command(args: argparse.Namespace) -> int:
    if args.profile_command == "store":
        profile = load_profile_file(args.path)
        default_profile_repository().add(profile)
        print(profile.id)
        return 0

    profile = _load_profile(args)
    if args.profile_command == "show":
        print(profile_to_json(profile, indent=2))
        return 0
    if args.profile_command == "duplicate":
        copy = profile.duplicate(name=args.name)
        _save_profile(args, copy, path=args.output)
        print(copy.id)
        return 0
    if args.profile_command == "auto-match":
        matched, remaining = auto_match_engineers(profile, _descriptor(args, profile))
        if matched:
            _save_profile(args, profile)
        print(f"Matched {matched} engineer(s)")
        for identifier in remaining:
            print(f"  unmapped: {identifier}")
        return 0 if not remaining else 1
    raise ValueError(f"Unsupported profile command: {args.profile_command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    if getattr(parsed_args, "verbose", False):
        configure_logging(level=logging.DEBUG, force=True)

    try:
        if parsed_args.command == "run":
            exit_code = _run_import(parsed_args)
        elif parsed_args.command == "audit":
            profile = _load_profile(parsed_args)
            _print_audit(audit_partner_source(profile, _descriptor(parsed_args, profile)))
            exit_code = 0
        elif parsed_args.command == "profile":
            exit_code = _run_profile_command(parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (PartnerImportError, ValueError) as exc:
        log.error(f"{exc}")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during import")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()
