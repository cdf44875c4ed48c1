"""Tests for tag-driven recategorisation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from zao_nexus.keywords import default_category_mappings
from zao_nexus.recategorize import recategorize_by_tags

if TYPE_CHECKING:
    from zao_nexus.models import LinksDocument
    from zao_nexus.recategorize import ProposedChange

NOW = "2025-03-01T12:00:00.000Z"


def _tree(document: LinksDocument) -> dict[str, dict[str, list[str]]]:
    return {
        category.name: {sub.name: list(sub.links) for sub in category.subcategories}
        for category in document.categories
    }


def test_dry_run_proposes_without_touching_document(sample_document: LinksDocument) -> None:
    before = sample_document.to_model().model_dump()
    result = recategorize_by_tags(sample_document, default_category_mappings(), dry_run=True)

    if (result.total_links, result.changes_proposed, result.unchanged) != (4, 2, 2):
        msg = f"Unexpected counters: {result}"
        raise AssertionError(msg)
    if result.changes_applied != 0:
        raise AssertionError("A dry run must not apply changes")
    proposed = {change.link_id: change for change in result.proposed_changes}
    if set(proposed) != {"l1", "l3"}:
        msg = f"Unexpected proposals: {sorted(proposed)}"
        raise AssertionError(msg)
    music = proposed["l3"]
    if (music.suggested_category, music.suggested_subcategory) != ("Entertainment", "Music"):
        msg = f"Unexpected target for the music link: {music}"
        raise AssertionError(msg)
    if music.matched_tags != ["music"]:
        raise AssertionError("Matched tags must list the mapping tags that applied")
    if sample_document.to_model().model_dump() != before:
        raise AssertionError("Dry run modified the document")


def test_apply_moves_links_and_stamps_updated_at(sample_document: LinksDocument) -> None:
    result = recategorize_by_tags(sample_document, default_category_mappings(), now=NOW)

    if result.changes_applied != 2:  # noqa: PLR2004
        msg = f"Expected two applied changes, got {result.changes_applied}"
        raise AssertionError(msg)
    tree = _tree(sample_document)
    expected = {
        "Misc": {"General": ["l2"]},
        "Development": {"Tools": ["l4", "l1"]},
        "Entertainment": {"Music": ["l3"]},
    }
    if tree != expected:
        msg = f"Unexpected tree after recategorising: {tree}"
        raise AssertionError(msg)
    moved = sample_document.find_link("l1")
    if moved is None or (moved.category, moved.subcategory) != ("Development", "Tools"):
        raise AssertionError("Link labels must follow the move")
    if moved.metadata.updated_at != NOW:
        raise AssertionError("Moved links must be stamped with the run time")
    untouched = sample_document.find_link("l2")
    if untouched is None or untouched.metadata.updated_at:
        raise AssertionError("Links without tags must not be touched")


def test_emptied_nodes_are_pruned(sample_document: LinksDocument) -> None:
    untagged = sample_document.find_link("l2")
    if untagged is None:
        raise AssertionError("fixture missing l2")
    untagged.tags = ["code"]
    recategorize_by_tags(sample_document, default_category_mappings(), now=NOW)
    if sample_document.find_category("Misc") is not None:
        raise AssertionError("Empty Misc category should have been pruned")
    programming = sample_document.find_category("Development")
    if programming is None or programming.find_subcategory("Programming") is None:
        raise AssertionError("Target subcategory should have been created")


def test_declined_changes_are_not_applied(sample_document: LinksDocument) -> None:
    seen: list[str] = []

    def _confirm(change: ProposedChange) -> bool:
        seen.append(change.link_id)
        return change.link_id == "l3"

    result = recategorize_by_tags(sample_document, default_category_mappings(), confirm=_confirm)
    if seen != ["l1", "l3"]:
        msg = f"Every proposal should be offered once, got {seen}"
        raise AssertionError(msg)
    if result.changes_applied != 1:
        raise AssertionError("Only the confirmed change should be applied")
    applied = {change.link_id: change.applied for change in result.proposed_changes}
    if applied != {"l1": False, "l3": True}:
        msg = f"Unexpected applied flags: {applied}"
        raise AssertionError(msg)
    if "l1" not in _tree(sample_document)["Misc"]["General"]:
        raise AssertionError("Declined link must stay where it was")


def test_links_already_in_place_are_unchanged(sample_document: LinksDocument) -> None:
    result = recategorize_by_tags(sample_document, default_category_mappings(), dry_run=True)
    if any(change.link_id == "l4" for change in result.proposed_changes):
        raise AssertionError("A link already at its target must not be proposed")
