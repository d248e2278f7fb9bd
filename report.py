"""Standalone HTML rendering of a completed search session.

The page mirrors the interactive view:

  Answer            : markdown with [n] citations rendered as buttons bound
                      to the cited paper's id.
  Referenced Papers : one card per paper, numbered by citation ordinal,
                      with id="paper-<paper id>" so a citation can scroll
                      its card into view. The highlighted card is marked.
  You may also ask  : follow-up questions, when any were generated.

A small inline script wires citation clicks to highlight toggling.
"""

from __future__ import annotations

import html
import logging
from pathlib import Path

from citations import render_session_answer
from models import Paper
from session import SearchSession

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Page chrome
# ---------------------------------------------------------------------------

_STYLE = """
body { font-family: system-ui, sans-serif; max-width: 72rem; margin: 2rem auto; padding: 0 1rem; }
.layout { display: flex; gap: 1.5rem; align-items: flex-start; }
.answer { flex: 7; }
.papers { flex: 3; }
.citation { border: 1px solid #cbd5e1; background: #dbeafe; border-radius: 0.375rem;
            padding: 0 0.4rem; margin: 0 0.1rem; font-size: 0.75rem; cursor: pointer; }
.paper { border: 1px solid #e2e8f0; border-radius: 0.5rem; padding: 0.75rem; margin-bottom: 0.75rem; }
.paper.highlighted { outline: 2px solid #3b82f6; background: #eff6ff; }
.paper .ordinal { font-weight: 600; margin-right: 0.5rem; }
.paper .meta { color: #64748b; font-size: 0.875rem; }
.error { color: #dc2626; }
"""

_SCRIPT = """
document.addEventListener("click", function (event) {
  var button = event.target.closest("[data-citation-id]");
  if (!button) { return; }
  var id = button.getAttribute("data-citation-id");
  var card = document.getElementById("paper-" + id);
  document.querySelectorAll(".paper.highlighted").forEach(function (el) {
    if (el !== card) { el.classList.remove("highlighted"); }
  });
  if (card) {
    card.classList.toggle("highlighted");
    card.scrollIntoView({ behavior: "smooth", block: "center" });
  }
});
"""

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def _paper_card(ordinal: int, paper: Paper, highlighted: bool) -> str:
    authors = ", ".join(paper.authors[:3])
    if len(paper.authors) > 3:
        authors += ", et al."
    meta = f"{authors} ({paper.year})" if paper.year else authors
    if paper.journal:
        meta += f" • {paper.journal}"

    title = html.escape(paper.title)
    if paper.url:
        title = f'<a href="{html.escape(paper.url)}" target="_blank" rel="noopener noreferrer">{title}</a>'

    classes = "paper highlighted" if highlighted else "paper"
    abstract = f"<p>{html.escape(paper.abstract)}</p>" if paper.abstract else ""
    return (
        f'<div class="{classes}" id="paper-{html.escape(paper.id)}">'
        f'<span class="ordinal">{ordinal}</span><strong>{title}</strong>'
        f'<div class="meta">{html.escape(meta)}</div>{abstract}</div>'
    )


def _answer_section(session: SearchSession) -> str:
    if session.error:
        return f'<p class="error">{html.escape(session.error)}</p>'
    rendered = render_session_answer(session)
    if rendered is None:
        # Still streaming: show the raw text without resolving citations.
        return f"<pre>{html.escape(session.accumulated_answer)}</pre>"
    return rendered


def _follow_up_section(questions: list[str]) -> str:
    if not questions:
        return ""
    items = "".join(f"<li>{html.escape(question)}</li>" for question in questions)
    return f"<h3>You may also ask</h3><ul>{items}</ul>"


def render_report(session: SearchSession) -> str:
    """Render the whole session as one HTML document."""
    if session.papers:
        cards = "".join(
            _paper_card(index, paper, paper.id == session.highlighted_paper_id)
            for index, paper in enumerate(session.papers, start=1)
        )
    else:
        cards = "<p>No papers found for this query.</p>"

    return (
        "<!DOCTYPE html>\n"
        '<html lang="en"><head><meta charset="utf-8">'
        f"<title>{html.escape(session.query)}</title><style>{_STYLE}</style></head><body>"
        f"<h1>{html.escape(session.query)}</h1>"
        '<div class="layout">'
        f'<section class="answer"><h2>Answer</h2>{_answer_section(session)}'
        f"{_follow_up_section(session.follow_up_questions)}</section>"
        f'<aside class="papers"><h2>Referenced Papers</h2>{cards}</aside>'
        "</div>"
        f"<script>{_SCRIPT}</script></body></html>\n"
    )


def write_report(session: SearchSession, path: str | Path) -> Path:
    """Write render_report(session) to path and return the resolved path."""
    output = Path(path)
    output.write_text(render_report(session), encoding="utf-8")
    LOGGER.info("Wrote HTML report for query=%r to %s", session.query, output)
    return output
