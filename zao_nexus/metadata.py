"""Fill in missing link text from the linked page before tagging."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from html import unescape
from typing import TYPE_CHECKING
from urllib.parse import urlsplit, urlunsplit

import requests
from bs4 import BeautifulSoup

from .links import is_valid_url

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable

    from .models import Link

LOGGER = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36"
)

# Page keywords appended to the description are capped to keep matching focused.
KEYWORD_TRIM_LIMIT = 20

# Status codes after which the site root is tried instead of the deep link.
_ROOT_RETRY_STATUSES = frozenset({401, 403, 407})
_SEQUENTIAL_LIMIT = 3

_TITLE_SOURCES = (
    {"property": "og:title"},
    {"name": "twitter:title"},
)
_DESCRIPTION_SOURCES = (
    {"property": "og:description"},
    {"name": "description"},
    {"name": "twitter:description"},
)


class ContentFetchMode(Enum):
    """Which links to fetch page content for.

    ALL: every link with a web URL.
    ONLY_MISSING: links with an empty description.
    """

    ALL = "all"
    ONLY_MISSING = "only-missing"


@dataclass(slots=True)
class PageContent:
    title: str = ""
    description: str = ""
    keywords: list[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        """Description followed by the comma-joined keywords."""
        parts = [self.description] if self.description else []
        if self.keywords:
            parts.append(", ".join(self.keywords))
        return " ".join(parts)


def enrich_with_page_content(
    links: Iterable[Link],
    timeout: float = 8.0,
    workers: int = 12,
    mode: ContentFetchMode = ContentFetchMode.ONLY_MISSING,
) -> int:
    """Fetch page text for ``links`` and merge it into them in place.

    An empty title is replaced by the page title; the page description and
    keywords are appended to the link description. Failed or non-HTML fetches
    leave a link as it was. Returns the number of links that changed.
    """
    pending = [link for link in links if _wants_content(link, mode)]
    if not pending:
        return 0
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})

    def _fetch(link: Link) -> PageContent | None:
        try:
            return fetch_page_content(session, link.url, timeout)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to fetch page content for %s: %s", link.url, exc)
            return None

    if len(pending) <= _SEQUENTIAL_LIMIT:
        pages = [_fetch(link) for link in pending]
    else:
        with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
            pages = list(executor.map(_fetch, pending))

    changed = sum(
        1
        for link, page in zip(pending, pages)
        if page is not None and apply_page_content(link, page)
    )
    LOGGER.info("Fetched page content for %d of %d links", changed, len(pending))
    return changed


def _wants_content(link: Link, mode: ContentFetchMode) -> bool:
    if not is_valid_url(link.url):
        return False
    return mode is ContentFetchMode.ALL or not link.description.strip()


def apply_page_content(link: Link, page: PageContent) -> bool:
    changed = False
    if page.title and not link.title.strip():
        link.title = page.title
        changed = True
    summary = page.summary
    if summary:
        current = link.description.strip()
        link.description = f"{current} {summary}" if current else summary
        changed = True
    return changed


def fetch_page_content(session: requests.Session, url: str, timeout: float) -> PageContent | None:
    """Download ``url`` and parse it, or return None for failed and non-HTML responses."""
    response = _get_with_root_fallback(session, url, timeout)
    if response is None:
        return None
    content_type = response.headers.get("Content-Type", "")
    if "text/html" not in content_type.lower():
        LOGGER.debug("Skipping non-HTML content for %s (content-type=%s)", url, content_type)
        return None
    return parse_page_content(response.text, source=url)


def parse_page_content(html: str, source: str = "") -> PageContent:
    soup = BeautifulSoup(html, "html.parser")
    title = _meta_content(soup, _TITLE_SOURCES)
    if not title and soup.title is not None:
        title = soup.title.get_text(strip=True)
    keywords: list[str] = []
    tag = soup.find("meta", attrs={"name": "keywords"})
    raw = tag.get("content") if tag is not None else None
    if isinstance(raw, str):
        keywords = [item.strip() for item in raw.split(",") if item.strip()]
        if len(keywords) > KEYWORD_TRIM_LIMIT:
            LOGGER.debug(
                "Trimming %d keywords to %d for %s",
                len(keywords),
                KEYWORD_TRIM_LIMIT,
                source,
            )
            del keywords[KEYWORD_TRIM_LIMIT:]
    return PageContent(
        title=unescape(title),
        description=unescape(_meta_content(soup, _DESCRIPTION_SOURCES)),
        keywords=keywords,
    )


def _meta_content(soup: BeautifulSoup, sources: Iterable[dict[str, str]]) -> str:
    for attrs in sources:
        tag = soup.find("meta", attrs=attrs)
        value = tag.get("content") if tag is not None else None
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _get_with_root_fallback(
    session: requests.Session,
    url: str,
    timeout: float,
) -> requests.Response | None:
    candidates = [url]
    for candidate in candidates:
        try:
            response = session.get(candidate, timeout=timeout, allow_redirects=True)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            root = _site_root(candidate)
            if status in _ROOT_RETRY_STATUSES and root and root not in candidates:
                LOGGER.debug(
                    "Permission error (%s) for %s; retrying with root %s",
                    status,
                    candidate,
                    root,
                )
                candidates.append(root)
            else:
                LOGGER.debug("Request to %s failed: %s", candidate, exc)
        except requests.RequestException as exc:
            LOGGER.debug("Request to %s failed: %s", candidate, exc)
        else:
            return response
    return None


def _site_root(url: str) -> str | None:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return None
    return urlunsplit((parts.scheme, parts.netloc, "/", "", ""))
