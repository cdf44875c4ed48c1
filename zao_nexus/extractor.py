"""Deterministic keyword and domain based tag extraction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlsplit

from .config import (
    KEYWORD_MATCH_MIN_COUNT,
    KEYWORD_MATCH_THRESHOLD,
    MAX_TAGS_PER_LINK,
    MIN_PATH_TAG_LENGTH,
    SIGNIFICANT_KEYWORD_LENGTH,
)
from .keywords import DEFAULT_TABLES, TaggingTables
from .links import unique_tags, web_hostname

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable, Mapping

    from .models import TagMeta

LOGGER = logging.getLogger(__name__)


class TaggableLink(Protocol):
    """Anything exposing the fields the extractor reads."""

    url: str
    title: str
    description: str
    tags: list[str]


class TagExtractor:
    """Rule-based tagger driven by an explicit :class:`TaggingTables` bundle.

    Candidate tags are produced in a fixed order and then capped:

    1. tags the link already carries,
    2. domain tags (exact domain table hit, else brand/subdomain labels; then path),
    3. keyword-category tags (category names whose keywords matched strongly),
    4. individual significant keywords found in the text,
    5. related-tag suggestions from the registry.

    Keeping existing tags first means a tagging pass never evicts a tag a link
    already has in favour of a freshly generated one.
    """

    def __init__(
        self,
        tables: TaggingTables = DEFAULT_TABLES,
        max_tags: int = MAX_TAGS_PER_LINK,
    ) -> None:
        self._tables = tables
        self._max_tags = max(0, max_tags)

    @property
    def tables(self) -> TaggingTables:
        return self._tables

    @property
    def max_tags(self) -> int:
        return self._max_tags

    def extract_tags(
        self,
        link: TaggableLink,
        registry: Mapping[str, TagMeta] | None = None,
    ) -> list[str]:
        """Return the capped, de-duplicated tag list for ``link``. Never raises on bad input."""
        existing = unique_tags(link.tags or [])
        candidates: list[str] = list(existing)
        candidates.extend(self.domain_tags(link.url or ""))
        category_tags, keyword_tags = self.keyword_tags(
            f"{link.title or ''} {link.description or ''}",
        )
        candidates.extend(category_tags)
        candidates.extend(keyword_tags)
        if existing and registry:
            candidates.extend(self.related_suggestions(existing, registry))
        return unique_tags(candidates, limit=self._max_tags)

    def merge(self, existing: Iterable[str], generated: Iterable[str]) -> list[str]:
        """Union two tag lists (existing first) under the configured cap."""
        return unique_tags([*existing, *generated], limit=self._max_tags)

    def domain_tags(self, url: str) -> list[str]:
        """Tags derived from the hostname and the first path segment."""
        hostname = web_hostname(url)
        if hostname is None:
            if url:
                LOGGER.debug("No domain tags for unparseable or non-web URL %r", url)
            return []

        tags: list[str] = []
        mapped = self._tables.domain_tags.get(hostname)
        if mapped:
            tags.extend(mapped)
        else:
            labels = hostname.split(".")
            if len(labels) > 1:
                brand = labels[-2]
                if brand and brand not in self._tables.generic_domain_labels:
                    tags.append(brand)
            if len(labels) > 2:  # noqa: PLR2004
                subdomain = labels[0]
                if subdomain and subdomain not in self._tables.ignored_subdomains:
                    tags.append(subdomain)

        segments = [part for part in urlsplit(url.strip()).path.split("/") if part]
        if segments:
            first = segments[0].lower()
            if (
                len(first) > MIN_PATH_TAG_LENGTH
                and first not in self._tables.ignored_path_segments
            ):
                tags.append(first)
        return tags

    def keyword_tags(self, text: str) -> tuple[list[str], list[str]]:
        """Return ``(category_tags, keyword_tags)`` found in ``text``.

        A category name qualifies when at least 70% of its keywords, or at least
        three of them, occur as substrings. Independently every keyword that is
        multi-word or longer than five characters qualifies on its own.
        """
        content = text.lower()
        if not content.strip():
            return [], []
        category_tags: list[str] = []
        keyword_tags: list[str] = []
        for category, keywords in self._tables.keyword_maps.items():
            if not keywords:
                continue
            matched = [keyword for keyword in keywords if keyword in content]
            ratio = len(matched) / len(keywords)
            if ratio >= KEYWORD_MATCH_THRESHOLD or len(matched) >= KEYWORD_MATCH_MIN_COUNT:
                category_tags.append(category)
            keyword_tags.extend(
                keyword
                for keyword in matched
                if " " in keyword or len(keyword) > SIGNIFICANT_KEYWORD_LENGTH
            )
        return category_tags, keyword_tags

    @staticmethod
    def related_suggestions(
        existing: Iterable[str],
        registry: Mapping[str, TagMeta],
    ) -> list[str]:
        """Registry-related tags of ``existing`` that the link does not carry yet."""
        current = list(existing)
        present = set(current)
        suggestions: list[str] = []
        for tag in current:
            meta = registry.get(tag)
            if meta is None:
                continue
            for related in meta.related:
                if related not in present and related not in suggestions:
                    suggestions.append(related)
        return suggestions
