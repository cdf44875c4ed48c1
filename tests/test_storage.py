"""Tests for loading, saving and backing up the links document."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from zao_nexus.links import generate_link_id
from zao_nexus.registry import recount_tags
from zao_nexus.storage import DocumentError, backup_document, load_document, save_document

if TYPE_CHECKING:
    from pathlib import Path

    from zao_nexus.models import LinksDocument

NOW = "2025-03-01T12:00:00.000Z"


def test_save_writes_camel_case_layout(sample_document: LinksDocument, tmp_path: Path) -> None:
    sample_document.links[0].metadata.created_at = NOW
    sample_document.refresh_metadata(NOW)
    path = tmp_path / "links.json"
    save_document(sample_document, path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    if raw["lastUpdated"] != NOW or raw["metadata"]["totalLinks"] != 4:  # noqa: PLR2004
        msg = f"Unexpected top-level layout: {sorted(raw)}"
        raise AssertionError(msg)
    if raw["links"][0]["metadata"]["createdAt"] != NOW:
        raise AssertionError("Link metadata must use camelCase keys")
    if raw["categories"][0]["subcategories"][0]["links"] != ["l1", "l2", "l3"]:
        raise AssertionError("Subcategories must reference links by id")
    if list(tmp_path.glob(".*.tmp")):
        raise AssertionError("Temporary file left behind")


def test_round_trip_preserves_structure(sample_document: LinksDocument, tmp_path: Path) -> None:
    path = tmp_path / "links.json"
    save_document(sample_document, path)
    loaded = load_document(path)

    if [link.id for link in loaded.links] != ["l1", "l2", "l3", "l4"]:
        raise AssertionError("Link order not preserved")
    tools = loaded.find_link("l4")
    if tools is None or (tools.category, tools.subcategory) != ("Development", "Tools"):
        raise AssertionError("Placement labels not restored from the tree")
    if tools.favicon != "https://github.com/favicon.ico":
        raise AssertionError("Missing favicons should be derived from the url")


def test_legacy_embedded_links_are_merged(legacy_document_path: Path) -> None:
    document = load_document(legacy_document_path)

    if len(document.links) != 1:
        msg = f"Expected the embedded link in the flat list, got {len(document.links)}"
        raise AssertionError(msg)
    link = document.links[0]
    if link.id != generate_link_id("https://discord.com/invite/zao", "ZAO Discord"):
        raise AssertionError("Embedded links without an id get a generated one")
    if link.tags != ["community", "chat"]:
        msg = f"Tags must be normalised and de-duplicated, got {link.tags}"
        raise AssertionError(msg)
    if (link.category, link.subcategory) != ("Community", "Chat"):
        raise AssertionError("Embedded links take their placement from the tree")
    if link.metadata.created_at != "2024-01-01T00:00:00.000Z":
        raise AssertionError("Legacy createdAt must move into metadata")
    if document.categories[0].subcategories[0].links != [link.id]:
        raise AssertionError("Tree must reference the embedded link by id")


def test_legacy_document_saves_in_current_layout(legacy_document_path: Path) -> None:
    document = load_document(legacy_document_path)
    save_document(document, legacy_document_path)
    raw = json.loads(legacy_document_path.read_text(encoding="utf-8"))
    if raw["categories"][0]["subcategories"][0]["links"] != [raw["links"][0]["id"]]:
        raise AssertionError("Saved tree must hold link ids only")


@pytest.mark.parametrize(
    "content",
    [
        b"{not json",
        b'{"links": [{"tags": 5}]}',
        b'{"categories": [{}]}',
        b'{"links": [{"title": "\xff\xfe"}]}',
    ],
)
def test_invalid_document_raises(tmp_path: Path, content: bytes) -> None:
    path = tmp_path / "links.json"
    path.write_bytes(content)
    with pytest.raises(DocumentError, match="links document"):
        load_document(path)


def test_missing_document_raises(tmp_path: Path) -> None:
    with pytest.raises(DocumentError, match="Cannot read"):
        load_document(tmp_path / "absent.json")


def test_backup_copies_document(sample_document: LinksDocument, tmp_path: Path) -> None:
    path = tmp_path / "links.json"
    save_document(sample_document, path)
    backup = backup_document(path)

    if backup.parent != tmp_path / "backups":
        msg = f"Backup written to unexpected location {backup}"
        raise AssertionError(msg)
    if not backup.name.startswith("links-") or backup.suffix != ".json":
        msg = f"Unexpected backup name {backup.name}"
        raise AssertionError(msg)
    if backup.read_text(encoding="utf-8") != path.read_text(encoding="utf-8"):
        raise AssertionError("Backup content differs from the document")


def test_backup_of_missing_document_raises(tmp_path: Path) -> None:
    with pytest.raises(DocumentError, match="not found"):
        backup_document(tmp_path / "absent.json")


def test_registry_keys_are_normalised_on_load(tmp_path: Path) -> None:
    payload = {
        "links": [
            {"id": "w", "title": "Web3 hub", "url": "https://web3.example", "tags": ["web3"]},
        ],
        "tags": {
            "Web3": {"count": 1, "color": "#111111", "related": ["dao"]},
            " web3 ": {"count": 2, "color": "#222222"},
        },
    }
    path = tmp_path / "links.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    document = load_document(path)

    if list(document.tags) != ["web3"]:
        msg = f"Registry keys must be normalised and merged, got {list(document.tags)}"
        raise AssertionError(msg)
    meta = document.tags["web3"]
    if (meta.count, meta.color, meta.related) != (3, "#111111", ["dao"]):
        msg = f"First entry must win with counts summed, got {meta}"
        raise AssertionError(msg)
    recount_tags(document.tags, document.links)
    if len(document.tags) != 1 or document.tags["web3"].count != 1:
        raise AssertionError("Recount must not split the merged entry")
