"""Move links between categories according to tag-to-category mappings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .config import DEFAULT_SUBCATEGORY
from .models import Placement, utc_now_iso
from .resolver import matching_mappings, sort_mappings

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable, Iterable

    from .models import CategoryMapping, LinksDocument

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ProposedChange:
    """A single suggested move of a link to a new placement."""

    link_id: str
    title: str
    current_category: str
    current_subcategory: str
    suggested_category: str
    suggested_subcategory: str
    matched_tags: list[str]
    applied: bool = False


@dataclass(slots=True)
class RecategorizationResult:
    total_links: int = 0
    changes_proposed: int = 0
    changes_applied: int = 0
    unchanged: int = 0
    proposed_changes: list[ProposedChange] = field(default_factory=list)


def recategorize_by_tags(
    document: LinksDocument,
    mappings: Iterable[CategoryMapping],
    *,
    dry_run: bool = False,
    confirm: Callable[[ProposedChange], bool] | None = None,
    now: str | None = None,
) -> RecategorizationResult:
    """Propose, and unless ``dry_run`` apply, tag-driven category moves.

    Links without tags, or whose tags match no mapping, stay where they are. When
    ``confirm`` is given each change is applied only if it returns True. After any
    move, empty subcategories and then empty categories are pruned. A dry run never
    touches the document.
    """
    ordered = sort_mappings(mappings)
    index = document.link_index()
    result = RecategorizationResult()
    timestamp = now or utc_now_iso()

    # Snapshot placements first; moves below mutate the subcategory lists.
    placements = [
        (category.name, subcategory.name, link_id)
        for category in document.categories
        for subcategory in category.subcategories
        for link_id in subcategory.links
    ]

    for category_name, subcategory_name, link_id in placements:
        result.total_links += 1
        link = index.get(link_id)
        if link is None:
            LOGGER.warning(
                "Link id %s listed under %s > %s is missing from the link list",
                link_id,
                category_name,
                subcategory_name,
            )
            result.unchanged += 1
            continue
        if not link.tags:
            result.unchanged += 1
            continue
        matches = matching_mappings(link.tags, ordered)
        if not matches:
            result.unchanged += 1
            continue

        best = matches[0]
        target = Placement(best.category, best.subcategory or DEFAULT_SUBCATEGORY)
        if target.matches(category_name, subcategory_name):
            result.unchanged += 1
            continue

        change = ProposedChange(
            link_id=link.id,
            title=link.title,
            current_category=category_name,
            current_subcategory=subcategory_name,
            suggested_category=target.category,
            suggested_subcategory=target.subcategory,
            matched_tags=[mapping.tag for mapping in matches],
        )
        result.proposed_changes.append(change)
        result.changes_proposed += 1

        if dry_run:
            continue
        if confirm is not None and not confirm(change):
            LOGGER.info("Skipped move of %r on request", link.title)
            continue

        source_category = document.find_category(category_name)
        source = source_category.find_subcategory(subcategory_name) if source_category else None
        if source is not None:
            source.remove_link(link.id)
        target_category = document.get_or_create_category(target.category)
        target_subcategory = target_category.get_or_create_subcategory(target.subcategory)
        target_subcategory.links.append(link.id)
        link.category = target_category.name
        link.subcategory = target_subcategory.name
        link.metadata.updated_at = timestamp
        change.applied = True
        result.changes_applied += 1
        LOGGER.debug(
            "Moved %r from %s > %s to %s > %s",
            link.title,
            category_name,
            subcategory_name,
            target_category.name,
            target_subcategory.name,
        )

    if result.changes_applied:
        document.prune_empty()
    return result
