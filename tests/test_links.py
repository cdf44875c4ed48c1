"""Tests for link ids, URL helpers and tag normalisation."""

from __future__ import annotations

import pytest

from zao_nexus.links import (
    favicon_url,
    generate_link_id,
    is_valid_url,
    normalize_url,
    unique_tags,
)


def test_link_id_is_deterministic() -> None:
    link_id = generate_link_id("https://github.com/foo/bar", "My Project")
    if link_id != "link_i5i9yqadeoikl4b0wpk":
        msg = f"Unexpected id {link_id}"
        raise AssertionError(msg)
    if generate_link_id("https://github.com/foo/bar", "Other title") == link_id:
        raise AssertionError("Different titles must yield different ids")


@pytest.mark.parametrize(
    ("url", "valid"),
    [
        ("https://Example.com/path", True),
        ("http://sub.example.org", True),
        ("ftp://example.com", False),
        ("example.com", False),
        ("http://[::1", False),
    ],
)
def test_is_valid_url(url: str, valid: bool) -> None:  # noqa: FBT001
    if is_valid_url(url) is not valid:
        msg = f"is_valid_url({url!r}) should be {valid}"
        raise AssertionError(msg)


def test_favicon_and_normalised_url() -> None:
    if favicon_url("https://audius.co/zao") != "https://audius.co/favicon.ico":
        raise AssertionError("Favicon should live at the host root")
    if favicon_url("nonsense") is not None:
        raise AssertionError("Unparseable urls have no favicon")
    if normalize_url("  https://zao.network/festivals/ ") != "https://zao.network/festivals":
        raise AssertionError("Trailing slash should be stripped")
    if normalize_url("https://zao.network/?q=1") != "https://zao.network/?q=1":
        raise AssertionError("URLs with a query are left alone")


def test_unique_tags_normalises_and_caps() -> None:
    tags = unique_tags([" Web3", "web3", "", "DAO ", "nft"], limit=2)
    if tags != ["web3", "dao"]:
        msg = f"Unexpected tags {tags}"
        raise AssertionError(msg)
    if unique_tags(["a"], limit=0):
        raise AssertionError("A zero limit yields no tags")
