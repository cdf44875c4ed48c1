"""Helpers for working with individual links: ids, URLs and tag normalisation."""

from __future__ import annotations

import base64
import hashlib
from typing import TYPE_CHECKING
from urllib.parse import urlparse, urlsplit

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable

_ID_PREFIX = "link_"
_ID_HASH_CHARS = 20
_WEB_SCHEMES = frozenset({"http", "https"})


def generate_link_id(url: str, title: str) -> str:
    """Return a deterministic id derived from the link's url and title.

    Importing the same url/title pair twice always yields the same id.
    """
    digest = hashlib.sha256(f"{url}|{title}".encode()).digest()
    encoded = base64.b64encode(digest).decode("ascii")[:_ID_HASH_CHARS]
    for char in "+/=":
        encoded = encoded.replace(char, "")
    return f"{_ID_PREFIX}{encoded.lower()}"


def web_hostname(url: str) -> str | None:
    """Return the lowercased hostname of an absolute http(s) URL, else None."""
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
    except ValueError:
        return None
    if parts.scheme.lower() not in _WEB_SCHEMES or not hostname:
        return None
    return hostname


def is_valid_url(url: str) -> bool:
    """Check whether ``url`` is an absolute http(s) URL with a host."""
    return web_hostname(url) is not None


def favicon_url(url: str) -> str | None:
    hostname = web_hostname(url)
    if hostname is None:
        return None
    return f"https://{hostname}/favicon.ico"


def normalize_url(url: str) -> str:
    """Strip whitespace and a single trailing slash from a parseable URL."""
    cleaned = url.strip()
    if web_hostname(cleaned) is None:
        return cleaned
    parsed = urlparse(cleaned)
    if parsed.path.endswith("/") and not parsed.query and not parsed.fragment:
        return cleaned[:-1]
    return cleaned


def normalize_tag(tag: object) -> str:
    return str(tag).strip().lower()


def unique_tags(tags: Iterable[object], limit: int | None = None) -> list[str]:
    """Normalise tags, dropping blanks and case-insensitive duplicates.

    First occurrence wins; the result is truncated to ``limit`` when given.
    """
    seen: set[str] = set()
    result: list[str] = []
    if limit is not None and limit <= 0:
        return result
    for raw in tags:
        tag = normalize_tag(raw)
        if not tag or tag in seen:
            continue
        seen.add(tag)
        result.append(tag)
        if limit is not None and len(result) >= limit:
            break
    return result
