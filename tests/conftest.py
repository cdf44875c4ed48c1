"""Shared pytest fixtures for ZAO Nexus tests."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from zao_nexus.extractor import TagExtractor
from zao_nexus.models import Category, Link, LinksDocument, Subcategory

if TYPE_CHECKING:
    from pathlib import Path


def _make_link(link_id: str, url: str = "", title: str = "", **kwargs: object) -> Link:
    """Build a link with sensible defaults for tests."""
    return Link(id=link_id, title=title or link_id, url=url, **kwargs)  # type: ignore[arg-type]


@pytest.fixture
def extractor() -> TagExtractor:
    return TagExtractor()


@pytest.fixture
def sample_document() -> LinksDocument:
    """A small directory: three links filed under Misc, one already under Development."""
    links = [
        _make_link("l1", "https://github.com/zao/nexus", "Nexus repo", tags=["github"]),
        _make_link("l2", "https://example.com", "Untagged page"),
        _make_link("l3", "https://audius.co/zao", "ZAO on Audius", tags=["music"]),
        _make_link("l4", "https://github.com/zao/cli", "CLI repo", tags=["github"]),
    ]
    for link in links[:3]:
        link.category, link.subcategory = "Misc", "General"
    links[3].category, links[3].subcategory = "Development", "Tools"
    categories = [
        Category(name="Misc", subcategories=[Subcategory(name="General", links=["l1", "l2", "l3"])]),
        Category(name="Development", subcategories=[Subcategory(name="Tools", links=["l4"])]),
    ]
    return LinksDocument(links=links, categories=categories)


@pytest.fixture
def legacy_document_path(tmp_path: Path) -> Path:
    """Write an old-style document whose subcategories embed full link objects."""
    payload = {
        "categories": [
            {
                "name": "Community",
                "subcategories": [
                    {
                        "name": "Chat",
                        "links": [
                            {
                                "title": "ZAO Discord",
                                "url": "https://discord.com/invite/zao",
                                "description": "Community chat",
                                "tags": ["Community", "community", " chat "],
                                "createdAt": "2024-01-01T00:00:00.000Z",
                            },
                        ],
                    },
                ],
            },
        ],
        "links": [],
    }
    path = tmp_path / "links.json"
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path
