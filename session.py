"""Client-held search session and the controller that owns it.

At most one pipeline is active per controller. Starting a new query cancels
the previous run's token and resets the session under a lock, and every
frame is applied under the same lock only if its token is still the active
one, so a superseded stream can never write into the new session.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

import requests

from api_client import fetch_follow_up, stream_search
from frames import Frame
from models import Paper
from stream_consumer import CancelToken, apply_frame, consume_stream

MAX_FOLLOW_UPS = 5
FETCH_FAILED_MESSAGE = "Failed to fetch search results. Please try again."

LOGGER = logging.getLogger(__name__)

StreamFn = Callable[[str, CancelToken], Iterator[bytes]]
FollowUpFn = Callable[[str, str], list[str]]


@dataclass
class SearchSession:
    query: str = ""
    papers: list[Paper] = field(default_factory=list)
    accumulated_answer: str = ""
    stream_complete: bool = False
    error: str | None = None
    follow_up_questions: list[str] = field(default_factory=list)
    highlighted_paper_id: str | None = None

    def reset(self, query: str) -> None:
        self.query = query
        self.papers = []
        self.accumulated_answer = ""
        self.stream_complete = False
        self.error = None
        self.follow_up_questions = []
        self.highlighted_paper_id = None

    def paper_by_id(self, paper_id: str) -> Paper | None:
        return next((paper for paper in self.papers if paper.id == paper_id), None)


class SearchController:
    """Runs queries against the server and folds the stream into one SearchSession.

    Args:
        stream_fn: Returns the byte chunks for a query; defaults to
            api_client.stream_search.
        follow_up_fn: Returns follow-up questions for (query, answer);
            defaults to api_client.fetch_follow_up.
        on_frame: Called after each applied frame (e.g. live printing).
        on_highlight: Called with the newly highlighted paper id, or None
            when cleared (the UI's scroll-into-view hook).
    """

    def __init__(
        self,
        stream_fn: StreamFn | None = None,
        follow_up_fn: FollowUpFn | None = None,
        on_frame: Callable[[Frame], None] | None = None,
        on_highlight: Callable[[str | None], None] | None = None,
    ) -> None:
        self.session = SearchSession()
        self._stream_fn = stream_fn or (lambda query, token: stream_search(query, token))
        self._follow_up_fn = follow_up_fn or fetch_follow_up
        self._on_frame = on_frame
        self._on_highlight = on_highlight
        self._lock = threading.RLock()
        self._token: CancelToken | None = None
        self._follow_up_requested = False

    def start(self, query: str) -> CancelToken:
        """Supersede any in-flight run and reset the session for query."""
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._token = CancelToken()
            self._follow_up_requested = False
            self.session.reset(query)
            return self._token

    def cancel(self) -> None:
        """Abort the active run without starting another (navigating away)."""
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._token = None

    def is_active(self, token: CancelToken) -> bool:
        with self._lock:
            return token is self._token and not token.cancelled

    def dispatch(self, token: CancelToken, frame: Frame) -> bool:
        """Apply frame if token still owns the session; returns whether it was applied."""
        with self._lock:
            if token is not self._token or token.cancelled:
                return False
            apply_frame(self.session, frame)
        if self._on_frame is not None:
            self._on_frame(frame)
        return True

    def run(self, query: str) -> SearchSession:
        """Submit query and consume its stream to the end (or until superseded)."""
        token = self.start(query)
        try:
            consume_stream(
                self._stream_fn(query, token),
                lambda frame: self.dispatch(token, frame),
                token,
            )
        except requests.RequestException as exc:
            if token.cancelled:
                LOGGER.info("Search for query=%r cancelled mid-read", query)
                return self.session
            LOGGER.warning("Search stream failed for query=%r: %s", query, exc)
            with self._lock:
                if token is self._token:
                    self.session.error = FETCH_FAILED_MESSAGE
            return self.session

        with self._lock:
            # End of input closes the session even without a done frame.
            if token is self._token and not token.cancelled and self.session.error is None:
                self.session.stream_complete = True
        return self.session

    def retry(self) -> SearchSession:
        """Manual retry after a failure: rerun the current query from scratch."""
        return self.run(self.session.query)

    def toggle_highlight(self, paper_id: str) -> str | None:
        """Highlight paper_id, or clear the highlight if it is already set."""
        with self._lock:
            if self.session.paper_by_id(paper_id) is None:
                return self.session.highlighted_paper_id
            new_id = None if self.session.highlighted_paper_id == paper_id else paper_id
            self.session.highlighted_paper_id = new_id
        if self._on_highlight is not None:
            self._on_highlight(new_id)
        return new_id

    def ensure_follow_ups(self) -> list[str]:
        """Fetch follow-up questions once per completed session.

        Safe to call repeatedly and from several threads: the request is
        made at most once per session.
        """
        with self._lock:
            session = self.session
            token = self._token
            if (
                token is None
                or not session.stream_complete
                or session.error is not None
                or not session.accumulated_answer
                or session.follow_up_questions
                or self._follow_up_requested
            ):
                return list(session.follow_up_questions)
            self._follow_up_requested = True
            query, answer = session.query, session.accumulated_answer

        questions = self._follow_up_fn(query, answer)

        with self._lock:
            if token is self._token and not token.cancelled:
                self.session.follow_up_questions = list(questions)[:MAX_FOLLOW_UPS]
            return list(self.session.follow_up_questions)
