"""Batch auto-tagging over a whole links document."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .registry import apply_tag, recompute_related, recount_tags
from .suggester import TaggingRequest

if TYPE_CHECKING:  # pragma: no cover
    from .extractor import TagExtractor
    from .models import Link, LinksDocument
    from .suggester import AITagSuggester

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AutoTagResult:
    """Aggregate counters reported by :func:`auto_tag_links`."""

    links_processed: int = 0
    links_updated: int = 0
    links_failed: int = 0
    tags_added: int = 0
    total_tags: int = 0


def auto_tag_links(
    document: LinksDocument,
    extractor: TagExtractor,
    *,
    suggester: AITagSuggester | None = None,
    now: str | None = None,
) -> AutoTagResult:
    """Tag every link in ``document`` and rebuild the tag registry.

    Links are processed strictly in order. A link whose tagging raises keeps its
    current tags and the batch carries on. Once all links are done, registry counts
    are recomputed from a full scan, related tags are recomputed once and the
    document counters are refreshed. Persisting is left to the caller.
    """
    result = AutoTagResult()
    palette = extractor.tables.palette
    for link in document.links:
        result.links_processed += 1
        try:
            generated = _generate(link, document, extractor, suggester)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Tagging failed for %s (%s); keeping existing tags", link.url, exc)
            result.links_failed += 1
            continue

        before = list(link.tags)
        merged = extractor.merge(before, generated)
        added = [tag for tag in merged if tag not in before]
        if merged == before:
            continue
        link.tags = merged
        result.links_updated += 1
        result.tags_added += len(added)
        for tag in added:
            apply_tag(document.tags, tag, palette)
        if added:
            LOGGER.info("Added tags to %r: %s", link.title, ", ".join(added))

    recount_tags(document.tags, document.links, palette)
    recompute_related(document.tags, document.links)
    document.refresh_metadata(now)
    result.total_tags = len(document.tags)
    LOGGER.info(
        "Auto-tagging finished: %d new tags on %d of %d links (%d failed); registry holds %d tags",
        result.tags_added,
        result.links_updated,
        result.links_processed,
        result.links_failed,
        result.total_tags,
    )
    return result


def _generate(
    link: Link,
    document: LinksDocument,
    extractor: TagExtractor,
    suggester: AITagSuggester | None,
) -> list[str]:
    if suggester is None:
        return extractor.extract_tags(link, document.tags)
    response = suggester.generate_tags(
        TaggingRequest(
            title=link.title,
            description=link.description,
            url=link.url,
            existing_tags=list(link.tags),
        ),
    )
    return response.suggested_tags
