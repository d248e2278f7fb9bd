"""Answer synthesis: papers + query -> framed, citation-annotated token stream."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import aclosing

from frames import AnswerFrame, ErrorFrame, Frame, PapersFrame
from llm_client import stream_completion
from models import Paper
from openalex_feed import search_papers

ANSWER_MAX_TOKENS = int(os.getenv("ANSWER_MAX_TOKENS", "1500"))
ANSWER_TEMPERATURE = float(os.getenv("ANSWER_TEMPERATURE", "0.5"))
ABSTRACT_MAX_CHARS = 1200

NO_RESULTS_MESSAGE = (
    "I couldn't find any relevant papers for your query. Please try different search terms."
)
ANSWER_FAILED_MESSAGE = "Failed to generate AI response"

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are DeepScience, an AI research assistant that helps users understand scientific papers and research topics.
Your goal is to provide accurate, concise, and helpful information based on scientific papers.

When responding to queries:
1. Provide clear, concise explanations that are accessible to someone with a basic understanding of the field
2. Cite specific papers when making claims using the paper's number in square brackets, e.g. [1] or [2] [3]
3. Acknowledge limitations or uncertainties in the research
4. Avoid speculation beyond what the papers support
5. Format your response in markdown for readability
6. Don't include other references or citations in your response

Remember that you are helping researchers understand complex topics, so clarity and accuracy are essential."""

StreamFn = Callable[..., AsyncIterator[str]]


def _truncate(text: str, max_len: int = ABSTRACT_MAX_CHARS) -> str:
    """Truncate text to max_len characters, appending '…' if clipped."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"


def _paper_context(ordinal: int, paper: Paper) -> str:
    authors = ", ".join(paper.authors) or "Unknown authors"
    lines = [
        f"Paper {ordinal}:",
        f"Title: {paper.title}",
        f"Authors: {authors}",
        f"Year: {paper.year}",
    ]
    if paper.abstract:
        lines.append(f"Abstract: {_truncate(paper.abstract)}")
    return "\n".join(lines)


def build_user_message(query: str, papers: Sequence[Paper]) -> str:
    """Query plus every paper, numbered by its 1-based citation ordinal."""
    contexts = "\n\n".join(_paper_context(index, paper) for index, paper in enumerate(papers, start=1))
    return (
        f"User Query: {query}\n\n"
        "Here are some relevant scientific papers that might help answer this query:\n\n"
        f"{contexts}\n\n"
        "Based on these papers, please provide a comprehensive answer to the user's query."
    )


async def synthesize(
    query: str,
    papers: Sequence[Paper],
    stream_fn: StreamFn | None = None,
) -> AsyncIterator[Frame]:
    """Yield the frame sequence for one query.

    Always starts with a papers frame and ends with exactly one terminal
    frame. With no papers the completion service is not called.
    """
    papers = tuple(papers)
    yield PapersFrame(content=papers)

    if not papers:
        LOGGER.info("No papers for query=%r; skipping completion", query)
        yield AnswerFrame(content=NO_RESULTS_MESSAGE, done=True)
        return

    stream_fn = stream_fn or stream_completion
    user_message = build_user_message(query, papers)
    chunks = 0
    try:
        async with aclosing(
            stream_fn(
                SYSTEM_PROMPT,
                user_message,
                max_tokens=ANSWER_MAX_TOKENS,
                temperature=ANSWER_TEMPERATURE,
            )
        ) as tokens:
            async for text in tokens:
                if not text:
                    continue
                chunks += 1
                yield AnswerFrame(content=text)
    except Exception as exc:
        LOGGER.warning("Answer stream failed for query=%r after %s chunks: %s", query, chunks, exc)
        yield ErrorFrame(content=ANSWER_FAILED_MESSAGE)
        return

    LOGGER.info("Answer stream complete for query=%r chunks=%s", query, chunks)
    yield AnswerFrame(content="", done=True)


async def answer_query(
    query: str,
    search_fn: Callable[[str], list[Paper]] | None = None,
    stream_fn: StreamFn | None = None,
) -> AsyncIterator[Frame]:
    """Full server-side pipeline: retrieve papers, then synthesize.

    Retrieval uses blocking HTTP and runs in a worker thread. A retrieval
    failure takes the no-results path so the frame sequence stays intact.
    """
    search_fn = search_fn or search_papers
    try:
        papers = await asyncio.to_thread(search_fn, query)
    except Exception:
        LOGGER.exception("Paper retrieval failed for query=%r", query)
        papers = []
    async with aclosing(synthesize(query, papers, stream_fn=stream_fn)) as frames:
        async for frame in frames:
            yield frame
