"""CLI entrypoint: run the server or ask it a research question."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from api_client import fetch_suggestions
from citations import cited_papers, format_reference
from frames import AnswerFrame, Frame, PapersFrame
from report import write_report
from session import SearchController, SearchSession


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Streaming research-query assistant over OpenAlex papers")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    serve.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")

    ask = subparsers.add_parser("ask", help="Ask a running server a research question")
    ask.add_argument("query", help="Free-text research question")
    ask.add_argument("--html", metavar="PATH", default=None, help="Also write an HTML report to PATH")
    ask.add_argument("--no-follow-ups", action="store_true", help="Skip follow-up question generation")

    suggest = subparsers.add_parser("suggest", help="Print search suggestions for a partial query")
    suggest.add_argument("partial", help="Partial query text")

    return parser.parse_args(argv)


def _print_frame(frame: Frame) -> None:
    if isinstance(frame, PapersFrame):
        print(f"Found {len(frame.content)} papers.\n", flush=True)
    elif isinstance(frame, AnswerFrame) and frame.content:
        sys.stdout.write(frame.content)
        sys.stdout.flush()


def _print_summary(session: SearchSession) -> None:
    print()
    if session.error:
        print(f"\nError: {session.error}", file=sys.stderr)
        print("Run the same command again to retry.", file=sys.stderr)
        return

    cited = cited_papers(session.accumulated_answer, session.papers)
    if cited:
        print("\nReferences:")
        for ordinal, paper in cited:
            print(f"  [{ordinal}] {format_reference(paper)}")

    if session.follow_up_questions:
        print("\nYou may also ask:")
        for question in session.follow_up_questions:
            print(f"  - {question}")


def ask(query: str, html_path: str | None = None, follow_ups: bool = True) -> SearchSession:
    """Run one query end to end against the server and print it."""
    controller = SearchController(on_frame=_print_frame)
    session = controller.run(query)
    logging.info(
        "Query finished: papers=%s answer_chars=%s complete=%s error=%s",
        len(session.papers),
        len(session.accumulated_answer),
        session.stream_complete,
        session.error,
    )

    if follow_ups:
        controller.ensure_follow_ups()

    _print_summary(session)
    if html_path:
        write_report(session, html_path)
    return session


def serve(host: str, port: int, reload: bool) -> None:
    import uvicorn  # noqa: PLC0415 - only needed for the server command

    logging.info("Starting server on %s:%s", host, port)
    uvicorn.run("server:app", host=host, port=port, reload=reload)


def main(argv: list[str] | None = None) -> int:
    """Initialize config and dispatch the subcommand."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    args = parse_args(argv)

    if args.command == "serve":
        serve(args.host, args.port, args.reload)
        return 0

    if args.command == "suggest":
        for suggestion in fetch_suggestions(args.partial):
            print(suggestion)
        return 0

    session = ask(args.query, html_path=args.html, follow_ups=not args.no_follow_ups)
    return 1 if session.error else 0


if __name__ == "__main__":
    sys.exit(main())
