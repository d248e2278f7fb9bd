"""HTTP client for the paper-stream server."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator

import requests

from stream_consumer import CancelToken

CONNECT_TIMEOUT_SECONDS = 10
READ_TIMEOUT_SECONDS = 120
REQUEST_TIMEOUT_SECONDS = 60

LOGGER = logging.getLogger(__name__)


def _base_url(base_url: str | None) -> str:
    return (base_url or os.getenv("PAPER_STREAM_URL", "http://localhost:8000")).rstrip("/")


def stream_search(
    query: str,
    token: CancelToken | None = None,
    base_url: str | None = None,
) -> Iterator[bytes]:
    """Yield raw body chunks of POST /api/search/stream as they arrive.

    Cancelling token closes the response, which ends the read. Raises
    requests.RequestException on connection errors and non-2xx statuses.
    """
    response = requests.post(
        f"{_base_url(base_url)}/api/search/stream",
        json={"query": query},
        stream=True,
        timeout=(CONNECT_TIMEOUT_SECONDS, READ_TIMEOUT_SECONDS),
    )
    if token is not None:
        token.add_abort_callback(response.close)

    with response:
        response.raise_for_status()
        for chunk in response.iter_content(chunk_size=None):
            if token is not None and token.cancelled:
                return
            if chunk:
                yield chunk


def fetch_follow_up(query: str, answer: str, base_url: str | None = None) -> list[str]:
    """POST /api/follow-up; failures are logged and yield []."""
    try:
        response = requests.post(
            f"{_base_url(base_url)}/api/follow-up",
            json={"query": query, "aiResponse": answer},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        body = response.json()
    except (requests.RequestException, ValueError) as exc:
        LOGGER.warning("Follow-up request failed for query=%r: %s", query, exc)
        return []

    questions = body.get("questions") if isinstance(body, dict) else None
    if not isinstance(questions, list):
        return []
    return [item for item in questions if isinstance(item, str)]


def fetch_suggestions(partial_query: str, base_url: str | None = None) -> list[str]:
    """GET /api/autocomplete; failures are logged and yield []."""
    try:
        response = requests.get(
            f"{_base_url(base_url)}/api/autocomplete",
            params={"q": partial_query},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        body = response.json()
    except (requests.RequestException, ValueError) as exc:
        LOGGER.warning("Autocomplete request failed for q=%r: %s", partial_query, exc)
        return []

    suggestions = body.get("suggestions") if isinstance(body, dict) else None
    if not isinstance(suggestions, list):
        return []
    return [item for item in suggestions if isinstance(item, str)]
