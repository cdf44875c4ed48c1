"""Tests for page content enrichment and skip logic."""
from __future__ import annotations

import types

import requests

from zao_nexus import metadata
from zao_nexus.models import Link


class DummyResponse:
    def __init__(self, text: str, status: int = 200, content_type: str = "text/html") -> None:
        self.text = text
        self.status_code = status
        self._headers = {"Content-Type": content_type}

    @property
    def headers(self):  # simple property shim
        return self._headers

    def raise_for_status(self) -> None:
        if self.status_code >= 400:  # noqa: PLR2004
            msg = f"HTTP {self.status_code}"
            raise requests.HTTPError(msg, response=self)  # type: ignore[arg-type]


def _dummy_html(title: str, desc: str = "", keywords: str = "") -> str:
    parts = ["<html><head>"]
    if title:
        parts.append(f"<title>{title}</title>")
    if desc:
        parts.append(f'<meta name="description" content="{desc}" />')
    if keywords:
        parts.append(f'<meta name="keywords" content="{keywords}" />')
    parts.append("</head><body></body></html>")
    return "".join(parts)


def _run(monkeypatch, responses: dict[str, DummyResponse], links: list[Link], **kwargs) -> int:
    # unused args retained to match requests.Session.get signature
    def fake_get(url: str, timeout: float | None = None, allow_redirects: bool = True):  # noqa: ARG001
        return responses[url]

    session = types.SimpleNamespace(get=fake_get, headers={})
    monkeypatch.setattr(metadata.requests, "Session", lambda: session)
    return metadata.enrich_with_page_content(links, **kwargs)


def test_only_missing_skips_described_links(monkeypatch) -> None:
    described = Link(id="a", title="Alpha", url="https://alpha.example", description="Existing")
    bare = Link(id="b", title="", url="https://beta.example")
    responses = {
        described.url: DummyResponse(_dummy_html("Alpha Title", "Alpha Desc")),
        bare.url: DummyResponse(_dummy_html("Beta Title", "Beta Desc", "beta,two")),
    }
    updated = _run(monkeypatch, responses, [described, bare])

    if updated != 1:
        msg = f"Expected one updated link, got {updated}"
        raise AssertionError(msg)
    if described.description != "Existing" or described.title != "Alpha":
        raise AssertionError("Described link must be left alone")
    if bare.title != "Beta Title":
        raise AssertionError("Empty titles are filled from the page")
    if bare.description != "Beta Desc beta, two":
        msg = f"Unexpected description: {bare.description!r}"
        raise AssertionError(msg)


def test_all_mode_appends_to_existing_description(monkeypatch) -> None:
    link = Link(id="a", title="Alpha", url="https://alpha.example", description="Existing")
    responses = {link.url: DummyResponse(_dummy_html("Alpha Title", "Alpha Desc"))}
    _run(monkeypatch, responses, [link], mode=metadata.ContentFetchMode.ALL)
    if link.description != "Existing Alpha Desc":
        msg = f"Unexpected description: {link.description!r}"
        raise AssertionError(msg)
    if link.title != "Alpha":
        raise AssertionError("Existing titles are never replaced")


def test_keywords_are_trimmed(monkeypatch) -> None:
    link = Link(id="a", title="Alpha", url="https://alpha.example")
    keywords = ",".join(f"k{i}" for i in range(30))
    responses = {link.url: DummyResponse(_dummy_html("", "", keywords))}
    _run(monkeypatch, responses, [link])
    if len(link.description.split(", ")) != metadata.KEYWORD_TRIM_LIMIT:
        msg = f"Keywords not trimmed: {link.description!r}"
        raise AssertionError(msg)


def test_non_html_and_failures_leave_links_untouched(monkeypatch) -> None:
    pdf = Link(id="a", title="Doc", url="https://docs.example/file.pdf")
    missing = Link(id="b", title="Gone", url="https://gone.example")
    local = Link(id="c", title="Local", url="not a url")
    responses = {
        pdf.url: DummyResponse("%PDF", content_type="application/pdf"),
        missing.url: DummyResponse("", status=404),
    }
    updated = _run(monkeypatch, responses, [pdf, missing, local])
    if updated != 0:
        raise AssertionError("No link should have changed")
    if pdf.description or missing.description or local.description:
        raise AssertionError("Failed fetches must not alter descriptions")


def test_many_links_use_worker_pool(monkeypatch) -> None:
    links = [Link(id=str(i), title="", url=f"https://site{i}.example") for i in range(6)]
    responses = {
        link.url: DummyResponse(_dummy_html(f"Site {link.id}", f"About {link.id}")) for link in links
    }
    updated = _run(monkeypatch, responses, links, workers=3)
    if updated != len(links):
        msg = f"Expected every link to be updated, got {updated}"
        raise AssertionError(msg)
    if [link.title for link in links] != [f"Site {i}" for i in range(6)]:
        raise AssertionError("Titles must be written back to the right links")
