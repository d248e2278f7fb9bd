"""OpenAlex works search and normalization helpers."""

from __future__ import annotations

import logging
import os
from typing import Any
from urllib.parse import quote

import requests

from models import Paper

OPENALEX_API_URL = os.getenv("OPENALEX_API_URL", "https://api.openalex.org").rstrip("/")
OPENALEX_PER_PAGE = int(os.getenv("OPENALEX_PER_PAGE", "10"))
REQUEST_TIMEOUT_SECONDS = 20
_DOI_PREFIX = "https://doi.org/"

LOGGER = logging.getLogger(__name__)


def search_papers(query: str, page: int = 1, per_page: int | None = None) -> list[Paper]:
    """Search OpenAlex works and return normalized papers in relevance order.

    Retrieval failure is not fatal: a network error, a non-success status or
    a malformed body is logged and degrades to an empty list.

    Args:
        query: Free-text search string.
        page: 1-based result page.
        per_page: Page size. Reads OPENALEX_PER_PAGE if not supplied.
    """
    params: dict[str, Any] = {
        "search": query,
        "page": page,
        "per_page": per_page or OPENALEX_PER_PAGE,
        "sort": "relevance_score:desc",
        "filter": "has_doi:true",
    }
    mailto = os.getenv("OPENALEX_MAILTO")
    if mailto:
        params["mailto"] = mailto

    try:
        response = requests.get(
            f"{OPENALEX_API_URL}/works",
            params=params,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        works = _parse_works_payload(response.json())
    except (requests.RequestException, ValueError) as exc:
        LOGGER.warning("OpenAlex search failed for query=%r: %s", query, exc)
        return []

    papers = _normalize_works(works)
    LOGGER.info(
        "OpenAlex search: query=%r raw_count=%s returned=%s",
        query,
        len(works),
        len(papers),
    )
    return papers


def get_paper_by_doi(doi: str) -> Paper | None:
    """Look up a single work by DOI; returns None on any failure."""
    bare = doi.replace(_DOI_PREFIX, "")
    url = f"{OPENALEX_API_URL}/works/doi:{quote(bare, safe='/')}"
    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        LOGGER.warning("OpenAlex DOI lookup failed for doi=%s: %s", doi, exc)
        return None

    if not isinstance(payload, dict):
        return None
    return normalize_work(payload)


def _parse_works_payload(payload: Any) -> list[dict[str, Any]]:
    """Validate the search response shape and return the raw work records."""
    if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
        raise ValueError("Unexpected OpenAlex payload shape: expected an object with a results list")
    return [item for item in payload["results"] if isinstance(item, dict)]


def _normalize_works(works: list[dict[str, Any]]) -> list[Paper]:
    """Normalize every record, skipping ones that are missing fields or malformed."""
    papers: list[Paper] = []
    for work in works:
        try:
            paper = normalize_work(work)
        except (TypeError, AttributeError, ValueError) as exc:
            LOGGER.warning("Skipping malformed OpenAlex record id=%r: %s", work.get("id"), exc)
            continue
        if paper is not None:
            papers.append(paper)
    return papers


def normalize_work(work: dict[str, Any]) -> Paper | None:
    """Map one raw OpenAlex work into a Paper, or None if it lacks an id or title."""
    paper_id = _as_str(work.get("id"))
    title = _as_str(work.get("title"))
    if not paper_id or not title:
        return None

    authors: list[str] = []
    authorships = work.get("authorships")
    for authorship in authorships if isinstance(authorships, list) else []:
        author = authorship.get("author") if isinstance(authorship, dict) else None
        name = _as_str(author.get("display_name")) if isinstance(author, dict) else None
        if name:
            authors.append(name)

    location = work.get("primary_location") if isinstance(work.get("primary_location"), dict) else {}
    source = location.get("source") if isinstance(location.get("source"), dict) else {}

    url = _as_str(location.get("landing_page_url"))
    doi = _as_str(work.get("doi"))
    if not url and doi:
        url = _DOI_PREFIX + doi.replace(_DOI_PREFIX, "")

    inverted_index = work.get("abstract_inverted_index")
    abstract = reconstruct_abstract(inverted_index) if isinstance(inverted_index, dict) else ""

    year = work.get("publication_year")
    return Paper(
        id=paper_id,
        title=title,
        authors=tuple(authors),
        year=year if isinstance(year, int) else 0,
        journal=_as_str(source.get("display_name")),
        url=url or "",
        abstract=abstract or None,
    )


def reconstruct_abstract(inverted_index: dict[str, list[int]] | None) -> str:
    """Rebuild abstract text from OpenAlex's word -> positions index.

    >>> reconstruct_abstract({"a": [0, 2], "b": [1]})
    'a b a'
    """
    if not inverted_index:
        return ""

    placed = [
        (position, word)
        for word, positions in inverted_index.items()
        for position in (positions if isinstance(positions, list) else [])
        if isinstance(position, int)
    ]
    placed.sort(key=lambda item: item[0])
    return " ".join(word for _, word in placed)


def _as_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None
