"""CLI entry point for the ZAO Nexus link admin tool.

Provides auto-tagging, tag-driven recategorisation, batch import, backups and
one-off tag suggestions over the links JSON document. Each command delegates
its workflow segments to small helper functions.
"""

from __future__ import annotations

# Standard library imports (alphabetical within groups)
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

# Third-party imports
from dotenv import load_dotenv

# Internal imports
from zao_nexus.config import DEFAULT_DATA_FILE
from zao_nexus.extractor import TagExtractor
from zao_nexus.importer import import_links, read_import_file
from zao_nexus.keywords import default_category_mappings
from zao_nexus.metadata import enrich_with_page_content
from zao_nexus.models import LinksDocument
from zao_nexus.orchestrator import auto_tag_links
from zao_nexus.recategorize import recategorize_by_tags
from zao_nexus.resolver import load_mappings
from zao_nexus.storage import DocumentError, backup_document, load_document, save_document
from zao_nexus.suggester import AITagSuggester, TaggingRequest

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable

    from zao_nexus.models import Link
    from zao_nexus.recategorize import ProposedChange, RecategorizationResult

STAGES: dict[int, str] = {
    1: "Load links document",
    2: "Fetch page content",
    3: "Tag & categorise links",
    4: "Persist links document",
}

LOGGER = logging.getLogger("zao_nexus")


def configure_logging(*, verbose: bool) -> None:
    """Configure root logging (debug when verbose)."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def log_stage(stage_number: int, message: str, *args: object) -> None:
    """Log a message prefixed with a stage label."""
    stage_label = STAGES.get(stage_number, f"Stage {stage_number}")
    LOGGER.info("[%s] %s", stage_label, message % args if args else message)


def _add_data_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--data",
        help=(
            "Path to the links JSON document. Defaults to the environment variable"
            f" NEXUS_DATA_FILE, else {DEFAULT_DATA_FILE}."
        ),
    )


def _add_dry_run_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview changes without writing the document",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zao-nexus", description="ZAO Nexus admin tools for batch link operations",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    auto_tag = sub.add_parser("auto-tag", help="Generate tags for every link")
    _add_data_option(auto_tag)
    _add_dry_run_option(auto_tag)
    auto_tag.add_argument(
        "--use-ai",
        action="store_true",
        help="Ask the OpenAI model for tags (falls back to keyword tagging)",
    )
    auto_tag.add_argument("--model", default=None, help="OpenAI model for --use-ai")
    auto_tag.add_argument(
        "--fetch-content",
        action="store_true",
        help="Fetch page descriptions for links that have none before tagging",
    )

    recategorize = sub.add_parser("recategorize", help="Move links based on their tags")
    recategorize.add_argument(
        "mapping_file",
        nargs="?",
        type=Path,
        help="JSON file with tag-to-category mappings (built-in mappings when omitted)",
    )
    _add_data_option(recategorize)
    _add_dry_run_option(recategorize)
    recategorize.add_argument(
        "--interactive",
        action="store_true",
        help="Prompt for confirmation before applying each change",
    )

    importer = sub.add_parser("import", help="Import links from a CSV or JSON file")
    importer.add_argument("file", type=Path, help="CSV or JSON file containing links")
    _add_data_option(importer)
    _add_dry_run_option(importer)
    importer.add_argument(
        "--generate-tags",
        action="store_true",
        help="Generate tags for imported links without tags",
    )
    importer.add_argument(
        "--mapping-file",
        type=Path,
        help="Tag-to-category mappings used to place links without a category",
    )

    backup = sub.add_parser("backup", help="Create a backup of the links document")
    _add_data_option(backup)

    suggest = sub.add_parser("suggest", help="Suggest tags for a single link")
    suggest.add_argument("--title", required=True)
    suggest.add_argument("--description", default="")
    suggest.add_argument("--url", default="")
    suggest.add_argument("--tags", default="", help="Comma-separated existing tags")
    suggest.add_argument("--use-ai", action="store_true", help="Ask the OpenAI model first")
    suggest.add_argument("--model", default=None, help="OpenAI model for --use-ai")
    return parser


def _resolve_data_path(path_arg: str | None) -> Path:
    return Path(path_arg or os.getenv("NEXUS_DATA_FILE") or DEFAULT_DATA_FILE)


def _make_suggester(
    args: argparse.Namespace, extractor: TagExtractor, document: LinksDocument | None,
) -> AITagSuggester | None:
    if not args.use_ai:
        return None
    kwargs: dict[str, object] = {"extractor": extractor}
    if document is not None:
        kwargs["registry"] = document.tags
    if args.model:
        kwargs["model"] = args.model
    suggester = AITagSuggester(**kwargs)  # type: ignore[arg-type]
    if not suggester.uses_ai:
        LOGGER.warning("OPENAI_API_KEY not set; using local keyword tagging")
    return suggester


def _backup_unless_dry_run(data_path: Path, *, dry_run: bool) -> None:
    if dry_run:
        return
    backup_path = backup_document(data_path)
    LOGGER.info("Created backup: %s", backup_path)


def _save_unless_dry_run(document: LinksDocument, data_path: Path, *, dry_run: bool) -> None:
    if dry_run:
        LOGGER.info("This was a dry run. No changes were made.")
        return
    log_stage(4, "Writing %s", data_path)
    save_document(document, data_path)


def _handle_auto_tag(args: argparse.Namespace) -> None:
    data_path = _resolve_data_path(args.data)
    log_stage(1, "Reading %s", data_path)
    document = load_document(data_path)
    _backup_unless_dry_run(data_path, dry_run=args.dry_run)
    if args.fetch_content:
        log_stage(2, "Fetching page content for links without a description")
        enrich_with_page_content(document.links)
    extractor = TagExtractor()
    suggester = _make_suggester(args, extractor, document)
    log_stage(3, "Tagging %d links", len(document.links))
    result = auto_tag_links(document, extractor, suggester=suggester)
    LOGGER.info(
        "Added %d new tags to %d links; total tags in registry: %d",
        result.tags_added,
        result.links_updated,
        result.total_tags,
    )
    if result.links_failed:
        LOGGER.warning("%d links could not be tagged", result.links_failed)
    _save_unless_dry_run(document, data_path, dry_run=args.dry_run)


def _confirm_change(change: ProposedChange) -> bool:
    print(f'\nProposed change for "{change.title}":')  # noqa: T201
    print(f"  Current: {change.current_category} > {change.current_subcategory}")  # noqa: T201
    suggested = f"{change.suggested_category} > {change.suggested_subcategory}"
    print(f"  Suggested: {suggested}")  # noqa: T201
    print(f"  Based on tags: {', '.join(change.matched_tags)}")  # noqa: T201
    answer = input("Apply this change? (y/n) ")
    return answer.strip().lower() in {"y", "yes"}


def _report_recategorization(result: RecategorizationResult) -> None:
    LOGGER.info(
        "Total links: %d | proposed: %d | applied: %d | unchanged: %d",
        result.total_links,
        result.changes_proposed,
        result.changes_applied,
        result.unchanged,
    )
    for change in result.proposed_changes:
        LOGGER.info(
            '"%s": %s > %s -> %s > %s (tags: %s, applied: %s)',
            change.title,
            change.current_category,
            change.current_subcategory,
            change.suggested_category,
            change.suggested_subcategory,
            ", ".join(change.matched_tags),
            "yes" if change.applied else "no",
        )


def _handle_recategorize(args: argparse.Namespace) -> None:
    mappings = (
        load_mappings(args.mapping_file) if args.mapping_file else default_category_mappings()
    )
    data_path = _resolve_data_path(args.data)
    log_stage(1, "Reading %s", data_path)
    document = load_document(data_path)
    _backup_unless_dry_run(data_path, dry_run=args.dry_run)
    log_stage(3, "Recategorising with %d tag mappings", len(mappings))
    result = recategorize_by_tags(
        document,
        mappings,
        dry_run=args.dry_run,
        confirm=_confirm_change if args.interactive else None,
    )
    _report_recategorization(result)
    if result.changes_applied:
        document.refresh_metadata()
        _save_unless_dry_run(document, data_path, dry_run=args.dry_run)
    elif args.dry_run:
        LOGGER.info("This was a dry run. No changes were made.")


def _make_tagger(
    document: LinksDocument, extractor: TagExtractor,
) -> Callable[[Link], list[str]]:
    def _tag(link: Link) -> list[str]:
        return extractor.extract_tags(link, document.tags)

    return _tag


def _load_or_create(data_path: Path, *, dry_run: bool) -> LinksDocument:
    if data_path.exists():
        document = load_document(data_path)
        _backup_unless_dry_run(data_path, dry_run=dry_run)
        return document
    LOGGER.info("No document at %s yet; starting an empty one", data_path)
    return LinksDocument()


def _handle_import(args: argparse.Namespace) -> None:
    rows = read_import_file(args.file)
    mappings = (
        load_mappings(args.mapping_file) if args.mapping_file else default_category_mappings()
    )
    data_path = _resolve_data_path(args.data)
    log_stage(1, "Reading %s", data_path)
    document = _load_or_create(data_path, dry_run=args.dry_run)
    tagger = _make_tagger(document, TagExtractor()) if args.generate_tags else None

    log_stage(3, "Importing %d rows from %s", len(rows), args.file)
    result = import_links(
        document, rows, tagger=tagger, mappings=mappings, dry_run=args.dry_run,
    )
    LOGGER.info(
        "Total processed: %d | added: %d | updated: %d | skipped/errors: %d",
        result.total_processed,
        result.added,
        result.updated,
        result.skipped,
    )
    for issue in result.errors:
        LOGGER.warning("- %s", issue.describe())
    _save_unless_dry_run(document, data_path, dry_run=args.dry_run)


def _handle_backup(args: argparse.Namespace) -> None:
    data_path = _resolve_data_path(args.data)
    backup_path = backup_document(data_path)
    LOGGER.info("Backup created: %s", backup_path)


def _handle_suggest(args: argparse.Namespace) -> None:
    extractor = TagExtractor()
    suggester = _make_suggester(args, extractor, None)
    if suggester is None:
        suggester = AITagSuggester(extractor=extractor)
        suggester.set_client(None)
    request = TaggingRequest(
        title=args.title,
        description=args.description,
        url=args.url,
        existing_tags=[tag.strip() for tag in args.tags.split(",") if tag.strip()],
    )
    response = suggester.generate_tags(request)
    print(response.model_dump_json(indent=2))  # noqa: T201


HANDLERS = {
    "auto-tag": _handle_auto_tag,
    "recategorize": _handle_recategorize,
    "import": _handle_import,
    "backup": _handle_backup,
    "suggest": _handle_suggest,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ZAO Nexus admin CLI."""
    load_dotenv()
    args = _build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    try:
        HANDLERS[args.command](args)
    except (DocumentError, FileNotFoundError, ValueError) as exc:
        LOGGER.error("%s failed: %s", args.command, exc)  # noqa: TRY400
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
