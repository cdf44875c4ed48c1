"""Batch import of links from CSV or JSON files."""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import DEFAULT_SUBCATEGORY, MAX_TAGS_PER_LINK
from .links import favicon_url, generate_link_id, normalize_tag, unique_tags
from .models import Link, LinkMetadata, Placement, utc_now_iso
from .registry import recompute_related, recount_tags
from .resolver import resolve_category, sort_mappings

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from .models import CategoryMapping, LinksDocument

LOGGER = logging.getLogger(__name__)

MISSING_FIELDS_ERROR = "Missing required fields (title, url)"
EXTRA_COLUMNS_ERROR = "Unexpected extra columns"

# csv.DictReader collects fields beyond the header under this key.
EXTRA_COLUMNS_KEY = "_extra"


class ImportRow(BaseModel):
    """One incoming row; every field optional so validation can report what is missing."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    title: str = ""
    url: str = ""
    description: str = ""
    category: str | None = None
    subcategory: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "url", "description", mode="before")
    @classmethod
    def _strip(cls, value: object) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("id", "category", "subcategory", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: object) -> list[str]:
        if not value:
            return []
        items = value.split(",") if isinstance(value, str) else value
        if not isinstance(items, list):
            return []
        return unique_tags(items, limit=MAX_TAGS_PER_LINK)


@dataclass(slots=True)
class ImportIssue:
    item: dict[str, object]
    error: str

    def describe(self) -> str:
        label = self.item.get("title") or self.item.get("url") or "<unnamed>"
        return f"{label}: {self.error}"


@dataclass(slots=True)
class ImportResult:
    total_processed: int = 0
    added: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[ImportIssue] = field(default_factory=list)
    links_added: list[Link] = field(default_factory=list)
    links_updated: list[Link] = field(default_factory=list)


def read_import_file(path: Path) -> list[dict[str, object]]:
    """Read raw rows from a ``.csv`` file or a JSON array file."""
    if not path.exists():
        msg = f"File not found: {path}"
        raise FileNotFoundError(msg)
    text = path.read_text(encoding="utf-8-sig")
    if path.suffix.lower() == ".csv":
        reader = csv.DictReader(text.splitlines(), restkey=EXTRA_COLUMNS_KEY)
        return [dict(row) for row in reader if not _is_blank_row(row)]
    try:
        raw: object = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in {path}: {exc}"
        raise ValueError(msg) from exc
    if not isinstance(raw, list):
        msg = "JSON file must contain an array of links"
        raise ValueError(msg)
    return [item if isinstance(item, dict) else {"value": item} for item in raw]


def _is_blank_row(row: dict[str, object]) -> bool:
    for value in row.values():
        cells = value if isinstance(value, list) else [value]
        if any(isinstance(cell, str) and cell.strip() for cell in cells):
            return False
    return True


def _has_extra_columns(row: dict[str, object]) -> bool:
    extra = row.get(EXTRA_COLUMNS_KEY)
    if not isinstance(extra, list):
        return False
    return any(isinstance(cell, str) and cell.strip() for cell in extra)


def import_links(
    document: LinksDocument,
    rows: Sequence[dict[str, object]],
    *,
    tagger: Callable[[Link], list[str]] | None = None,
    mappings: Sequence[CategoryMapping] = (),
    dry_run: bool = False,
    now: str | None = None,
) -> ImportResult:
    """Add new links and update existing ones (matched by id, then url).

    Rows missing a title or url, and CSV rows with more fields than the header,
    are reported in ``errors`` and skipped. When ``tagger`` is given it fills in
    tags for rows that carry none. Rows without a category are placed by
    resolving their tags against ``mappings``. A dry run reports the same counts
    without touching the document.
    """
    timestamp = now or utc_now_iso()
    ordered = sort_mappings(mappings)
    result = ImportResult(total_processed=len(rows))

    for raw in rows:
        if _has_extra_columns(raw):
            result.errors.append(ImportIssue(item=raw, error=EXTRA_COLUMNS_ERROR))
            result.skipped += 1
            continue
        try:
            row = ImportRow.model_validate(raw)
        except ValidationError as exc:
            result.errors.append(ImportIssue(item=raw, error=str(exc)))
            result.skipped += 1
            continue
        if not row.title or not row.url:
            result.errors.append(ImportIssue(item=raw, error=MISSING_FIELDS_ERROR))
            result.skipped += 1
            continue

        link_id = row.id or generate_link_id(row.url, row.title)
        existing = document.find_link(link_id) or document.find_link_by_url(row.url)
        candidate = Link(
            id=existing.id if existing else link_id,
            title=row.title,
            url=row.url,
            description=row.description,
            tags=list(row.tags),
            favicon=favicon_url(row.url),
        )
        if tagger is not None and not candidate.tags:
            try:
                candidate.tags = unique_tags(tagger(candidate), limit=MAX_TAGS_PER_LINK)
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Failed to generate tags for %r: %s", row.title, exc)

        placement = _placement_for(row, candidate, existing, ordered)
        if existing is not None:
            result.updated += 1
            result.links_updated.append(candidate)
            if not dry_run:
                _update_existing(document, existing, candidate, placement, timestamp)
        else:
            result.added += 1
            result.links_added.append(candidate)
            if not dry_run:
                candidate.metadata = LinkMetadata(
                    created_at=timestamp, updated_at=timestamp, last_checked=timestamp,
                )
                document.links.append(candidate)
                document.place_link(candidate, placement)

    if not dry_run and (result.added or result.updated):
        recount_tags(document.tags, document.links)
        recompute_related(document.tags, document.links)
        document.refresh_metadata(timestamp)
    LOGGER.info(
        "Import processed %d rows: %d added, %d updated, %d skipped",
        result.total_processed,
        result.added,
        result.updated,
        result.skipped,
    )
    return result


def _placement_for(
    row: ImportRow,
    link: Link,
    existing: Link | None,
    ordered: Sequence[CategoryMapping],
) -> Placement:
    if row.category:
        return Placement(row.category, row.subcategory or DEFAULT_SUBCATEGORY)
    if existing is not None and existing.category:
        return Placement(existing.category, existing.subcategory or DEFAULT_SUBCATEGORY)
    return resolve_category(link.tags, ordered, presorted=True)


def _update_existing(
    document: LinksDocument,
    existing: Link,
    incoming: Link,
    placement: Placement,
    timestamp: str,
) -> None:
    existing.title = incoming.title
    existing.url = incoming.url
    existing.description = incoming.description or existing.description
    if incoming.tags:
        existing.tags = [normalize_tag(tag) for tag in incoming.tags]
    existing.favicon = existing.favicon or incoming.favicon
    existing.metadata.updated_at = timestamp
    document.place_link(existing, placement)
