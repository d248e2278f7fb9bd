"""Resolve inline [n] citations in a completed answer against its paper list.

Citations are a token type of their own inside the markdown parse: an inline
processor registered ahead of the link, reference and emphasis patterns
turns each in-range ``[n]`` into a citation button bound to
``papers[n - 1].id``. The button text is atomic, so it is never re-read as
markdown. Out-of-range ordinals are declined and stay literal text.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as etree
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor
from markdown.util import AtomicString

from models import Paper

if TYPE_CHECKING:
    from session import SearchSession

CITATION_RE = r"\[(\d+)\]"
# Above reference (170) and link (160); below escape (180) and code spans (190).
CITATION_PRIORITY = 175
_CITATION_PATTERN = re.compile(CITATION_RE)


@dataclass(frozen=True, slots=True)
class Citation:
    ordinal: int
    paper: Paper
    start: int
    end: int


def resolve_ordinal(papers: Sequence[Paper], ordinal: int) -> Paper | None:
    """Paper for a 1-based citation ordinal, or None when out of range."""
    if 1 <= ordinal <= len(papers):
        return papers[ordinal - 1]
    return None


def find_citations(answer: str, papers: Sequence[Paper]) -> list[Citation]:
    """Every in-range [n] reference in answer, in text order."""
    found: list[Citation] = []
    for match in _CITATION_PATTERN.finditer(answer):
        ordinal = int(match.group(1))
        paper = resolve_ordinal(papers, ordinal)
        if paper is not None:
            found.append(Citation(ordinal=ordinal, paper=paper, start=match.start(), end=match.end()))
    return found


class CitationInlineProcessor(InlineProcessor):
    def __init__(self, papers: Sequence[Paper], md: markdown.Markdown | None = None) -> None:
        super().__init__(CITATION_RE, md)
        self.papers = tuple(papers)

    def handleMatch(self, m: re.Match[str], data: str):  # noqa: N802 - Markdown API name
        ordinal = int(m.group(1))
        paper = resolve_ordinal(self.papers, ordinal)
        if paper is None:
            return None, None, None

        button = etree.Element("button")
        button.set("type", "button")
        button.set("class", "citation")
        button.set("data-citation-id", paper.id)
        button.set("title", paper.title)
        button.text = AtomicString(str(ordinal))
        return button, m.start(0), m.end(0)


class CitationExtension(Extension):
    """Python-Markdown extension binding [n] citations to a fixed paper list."""

    def __init__(self, papers: Sequence[Paper], **kwargs) -> None:
        self.papers = tuple(papers)
        super().__init__(**kwargs)

    def extendMarkdown(self, md: markdown.Markdown) -> None:  # noqa: N802 - Markdown API name
        # Raw HTML in an answer renders as escaped text.
        md.preprocessors.deregister("html_block")
        md.inlinePatterns.deregister("html")
        md.inlinePatterns.register(CitationInlineProcessor(self.papers, md), "citation", CITATION_PRIORITY)


def render_answer(answer: str, papers: Sequence[Paper]) -> str:
    """Render a complete answer to HTML with citation buttons."""
    return markdown.markdown(answer, extensions=[CitationExtension(papers)])


def render_session_answer(session: SearchSession) -> str | None:
    """HTML for the session's answer, or None while the stream is still open.

    Partial text is never resolved: a reference whose digits have not fully
    arrived would otherwise flicker between link and plain text.
    """
    if not session.stream_complete:
        return None
    return render_answer(session.accumulated_answer, session.papers)


def cited_papers(answer: str, papers: Sequence[Paper]) -> list[tuple[int, Paper]]:
    """Distinct (ordinal, paper) pairs cited in answer, by ordinal."""
    cited: dict[int, Paper] = {}
    for citation in find_citations(answer, papers):
        cited.setdefault(citation.ordinal, citation.paper)
    return sorted(cited.items())


def render_answer_text(answer: str, papers: Sequence[Paper]) -> str:
    """Plain-text rendering for terminals: the answer plus its cited references."""
    cited = cited_papers(answer, papers)
    if not cited:
        return answer

    lines = [answer.rstrip(), "", "References:"]
    lines.extend(f"[{ordinal}] {format_reference(paper)}" for ordinal, paper in cited)
    return "\n".join(lines)


def format_reference(paper: Paper) -> str:
    authors = ", ".join(paper.authors[:3])
    if len(paper.authors) > 3:
        authors += ", et al."
    parts = [paper.title]
    if authors:
        parts.append(authors.rstrip("."))
    detail = f"({paper.year})" if paper.year else ""
    if paper.journal:
        detail = f"{detail} {paper.journal}".strip()
    if detail:
        parts.append(detail)
    if paper.url:
        parts.append(paper.url)
    return ". ".join(parts)
