"""FastAPI application exposing the streaming search, follow-up and autocomplete endpoints."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import AsyncIterator
from contextlib import aclosing
from datetime import UTC, datetime
from json import JSONDecodeError
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ValidationError

from autocomplete import generate_suggestions
from follow_up import generate_follow_up_questions
from frames import encode_frame
from schemas import (
    ErrorResponse,
    FollowUpRequest,
    FollowUpResponse,
    HealthResponse,
    SearchRequest,
    SuggestionsResponse,
)
from synthesizer import answer_query

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}

LOGGER = logging.getLogger(__name__)


class BadRequest(Exception):
    """Structurally invalid request body; answered with HTTP 400."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


app = FastAPI(
    title="paper-stream",
    description="Streaming research-query assistant over OpenAlex papers",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(BadRequest)
async def bad_request_handler(request: Request, exc: BadRequest) -> JSONResponse:
    LOGGER.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=400, content=ErrorResponse(error=exc.message).model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content=ErrorResponse(error="Internal server error").model_dump())


async def _parse_body(request: Request, model: type[BaseModel], missing_message: str) -> Any:
    raw = await request.body()
    if not raw.strip():
        raise BadRequest("No request body provided")
    try:
        data = json.loads(raw)
    except (JSONDecodeError, UnicodeDecodeError):
        raise BadRequest("Invalid JSON body") from None
    if not isinstance(data, dict):
        raise BadRequest("Invalid JSON body")
    try:
        return model.model_validate(data)
    except ValidationError:
        raise BadRequest(missing_message) from None


async def _frame_stream(request: Request, query: str) -> AsyncIterator[bytes]:
    """Encode pipeline frames, stopping early once the client has gone away."""
    async with aclosing(answer_query(query)) as frames:
        async for frame in frames:
            if await request.is_disconnected():
                LOGGER.info("Client disconnected; abandoning stream for query=%r", query)
                return
            yield encode_frame(frame)


@app.post("/api/search/stream")
async def search_stream(request: Request) -> StreamingResponse:
    """Stream newline-delimited frames: papers, answer increments, terminal frame."""
    body = await _parse_body(request, SearchRequest, "No query provided")
    LOGGER.info("Search stream requested for query=%r", body.query)
    return StreamingResponse(
        _frame_stream(request, body.query),
        media_type="application/json",
        headers=STREAM_HEADERS,
    )


@app.post("/api/follow-up", response_model=FollowUpResponse)
async def follow_up(request: Request) -> FollowUpResponse:
    body = await _parse_body(request, FollowUpRequest, "Query and AI response are required")
    questions = await run_in_threadpool(generate_follow_up_questions, body.query, body.ai_response)
    return FollowUpResponse(questions=questions)


@app.get("/api/autocomplete")
def autocomplete(q: str = Query("", description="Partial query")) -> JSONResponse:
    suggestions = generate_suggestions(q)
    return JSONResponse(
        content=SuggestionsResponse(suggestions=suggestions).model_dump(),
        headers={"Cache-Control": "no-store"},
    )


@app.get("/api/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", timestamp=datetime.now(UTC).isoformat())
