# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from shelfsync.app import (
    build_catalog_store,
    enrich_items,
    lookup_book,
    merge_all_duplicates,
    preview_enrichment,
    search_books,
    start_duplicate_review,
)
from shelfsync.config import configure_logging
from shelfsync.domain.errors import InvalidTransitionError
from shelfsync.domain.lookup.query import SearchHints
from shelfsync.domain.reconciliation.diff import format_diff_value, group_by_category
from shelfsync.domain.reconciliation.review import GoTo, NotDuplicates, Skip

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from shelfsync.domain.enrichment import BatchEnrichmentResult, EnrichmentResult
    from shelfsync.domain.reconciliation.review import DuplicateReviewSession
    from shelfsync.domain.records import CandidateRecord, DuplicateGroup

log = logging.getLogger(__name__)

REVIEW_PROMPT = "[m]erge  [n]ot duplicates  [s]kip  [t]oggle N  [g]oto N  [q]uit > "


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile catalog records with book metadata")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    lookup = subparsers.add_parser("lookup", help="Look up a book by ISBN")
    lookup.add_argument("key", help="ISBN-10 or ISBN-13 (hyphens allowed)")

    search = subparsers.add_parser("search", help="Search providers by title and author")
    search.add_argument(
        "query",
        help='Free text, e.g. "the name of the rose by eco" or publisher:"Penguin" ...',
    )
    search.add_argument("--publisher", type=str, help="Publisher hint")
    search.add_argument("--year", type=str, help="Publication year hint")
    search.add_argument("--language", type=str, help="Language hint (e.g. en, de)")
    search.add_argument("--subject", type=str, help="Subject hint")
    search.add_argument("--place", type=str, help="Place of publication hint")
    search.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of results to show (default: %(default)s)",
    )

    enrich = subparsers.add_parser("enrich", help="Enrich catalog records from providers")
    enrich.add_argument("item_ids", nargs="+", help="Catalog item ids")
    enrich.add_argument(
        "--all-fields",
        action="store_true",
        help="Apply changed fields too, not only fields the record lacks",
    )
    enrich.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the differences without writing anything",
    )

    duplicates = subparsers.add_parser("duplicates", help="Find and merge duplicate copies")
    duplicates_sub = duplicates.add_subparsers(dest="duplicates_command", required=True)
    duplicates_sub.add_parser("list", help="List duplicate groups")
    duplicates_sub.add_parser("review", help="Review duplicate groups one at a time")
    merge_all = duplicates_sub.add_parser(
        "merge-all", help="Keep the oldest copy in every group and delete the rest"
    )
    merge_all.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command == "search":
        if args.limit < 1:
            raise ValueError("--limit must be at least 1")
        if args.year is not None and not args.year.strip().isdigit():
            raise ValueError(f"Invalid year: {args.year}")


def _hints_from_args(args: argparse.Namespace) -> SearchHints | None:
    hints = SearchHints(
        publisher=args.publisher,
        place=args.place,
        year=args.year,
        language=args.language,
        subject=args.subject,
    )
    return None if hints.is_empty() else hints


def _log_progress(current: int, total: int, label: str) -> None:
    log.info("[%d/%d] %s", current, total, label)


def _print_candidate(candidate: CandidateRecord, *, prefix: str = "") -> None:
    print(f"{prefix}{candidate.title}" + (f" by {candidate.author}" if candidate.author else ""))
    details = [
        value
        for value in (
            candidate.publisher,
            candidate.published_date,
            candidate.isbn13 or candidate.isbn10,
        )
        if value
    ]
    indent = " " * len(prefix)
    if details:
        print(f"{indent}{' | '.join(str(d) for d in details)}")
    if candidate.data_sources:
        print(f"{indent}sources: {', '.join(candidate.data_sources)}")


def _print_enrichment_preview(result: EnrichmentResult) -> None:
    print(f"{result.item_id}: {result.title}" if result.title else result.item_id)
    if result.error is not None:
        print(f"  {result.error}")
        return
    if not result.diffs:
        print("  up to date")
        return
    for category, diffs in group_by_category(result.diffs).items():
        print(f"  {category}")
        for diff in diffs:
            marker = "+" if diff.is_new_field else "~"
            print(
                f"    {marker} {diff.label}: {format_diff_value(diff.current_value)}"
                f" -> {format_diff_value(diff.candidate_value)}"
            )
    print(f"  sources: {', '.join(result.data_sources)}")


def _print_batch(result: BatchEnrichmentResult) -> None:
    for report in result.reports:
        line = f"{report.item_id}: {report.outcome}"
        if report.applied_fields:
            line += f" ({', '.join(report.applied_fields)})"
        if report.error:
            line += f" - {report.error}"
        print(line)
    tally = result.tally()
    print(", ".join(f"{outcome}={count}" for outcome, count in sorted(tally.items())))


def _print_group(group: DuplicateGroup, *, keep: dict[str, bool] | None = None) -> None:
    print(f"{group.title}" + (f" by {group.author}" if group.author else ""))
    for position, item in enumerate(group.items, start=1):
        details = [
            value
            for value in (
                item.isbn,
                item.publisher,
                item.published_year,
                item.location,
                item.condition,
                item.created_at.date().isoformat() if item.created_at else None,
            )
            if value
        ]
        flag = ""
        if keep is not None:
            flag = "[keep]   " if keep.get(item.item_id) else "[delete] "
        print(f"  {position}. {flag}{item.item_id} {' | '.join(str(d) for d in details)}")


def _parse_position(argument: str, count: int) -> int:
    try:
        position = int(argument)
    except ValueError as exc:
        raise ValueError(f"Expected a number, got {argument!r}") from exc
    if not 1 <= position <= count:
        raise ValueError(f"Number must be between 1 and {count}")
    return position - 1


def run_review(session: DuplicateReviewSession, *, prompt: Callable[[str], str] = input) -> None:
    """Drive ``session`` from typed commands until every group is decided or the user quits."""

    total = len(session.groups)
    while not session.is_complete:
        group = session.current_group
        if group is None:
            break
        index = session.current_index
        print(
            f"\nGroup {index + 1}/{total} [{session.decision(index)}] "
            f"({session.pending_count} pending)"
        )
        _print_group(group, keep=session.keep_map)
        if session.error:
            print(f"Error: {session.error}")
            session.clear_error()

        command, _, argument = prompt(REVIEW_PROMPT).strip().lower().partition(" ")
        try:
            match command:
                case "m" | "merge":
                    session.merge_current()
                case "n" | "not":
                    session.dispatch(NotDuplicates(index))
                case "s" | "skip":
                    session.dispatch(Skip(index))
                case "t" | "toggle":
                    position = _parse_position(argument.strip(), len(group.items))
                    session.toggle_keep(group.items[position].item_id)
                case "g" | "goto":
                    session.dispatch(GoTo(_parse_position(argument.strip(), total)))
                case "q" | "quit":
                    break
                case _:
                    print(f"Unknown command: {command!r}")
        except (InvalidTransitionError, ValueError) as exc:
            print(f"Error: {exc}")

    stats = session.stats
    print(
        f"\nReviewed {session.reviewed_count}/{total}: merged={stats.merged}, "
        f"skipped={stats.skipped}, not duplicates={stats.not_duplicates}, "
        f"deleted={stats.total_deleted}"
    )


def _run_duplicates(args: argparse.Namespace) -> None:
    if args.duplicates_command == "list":
        groups = build_catalog_store().get_duplicate_groups()
        for position, group in enumerate(groups, start=1):
            print(f"\n{position}. ", end="")
            _print_group(group)
        print(f"\n{len(groups)} group(s), {sum(len(g.items) - 1 for g in groups)} duplicate(s)")
    elif args.duplicates_command == "review":
        session = start_duplicate_review()
        if not session.groups:
            print("No duplicates found")
            return
        run_review(session)
    elif args.duplicates_command == "merge-all":
        store = build_catalog_store()
        if not args.yes:
            groups = store.get_duplicate_groups()
            if not groups:
                print("No duplicates found")
                return
            doomed = sum(len(g.items) - 1 for g in groups)
            answer = input(f"Merge {len(groups)} group(s) and delete {doomed} record(s)? [y/N] ")
            if answer.strip().lower() not in {"y", "yes"}:
                print("Cancelled")
                return
        result = merge_all_duplicates(store=store)
        print(f"Merged {result.groups_merged} group(s), deleted {result.total_deleted} record(s)")
    else:
        raise ValueError(f"Unsupported duplicates command: {args.duplicates_command}")


def _run(args: argparse.Namespace) -> None:
    if args.command == "lookup":
        candidate = lookup_book(args.key, progress=_log_progress)
        if candidate is None:
            print("No data found from any provider")
            return
        _print_candidate(candidate)
    elif args.command == "search":
        results = search_books(
            args.query, _hints_from_args(args), limit=args.limit, progress=_log_progress
        )
        if not results:
            print("No data found from any provider")
            return
        for position, candidate in enumerate(results, start=1):
            _print_candidate(candidate, prefix=f"{position:>2}. ")
    elif args.command == "enrich":
        if args.dry_run:
            for result in preview_enrichment(args.item_ids):
                _print_enrichment_preview(result)
            return
        _print_batch(
            enrich_items(
                args.item_ids, apply_new_only=not args.all_fields, progress=_log_progress
            )
        )
    elif args.command == "duplicates":
        _run_duplicates(args)
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        _run(parsed_args)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    main()
