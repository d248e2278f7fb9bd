"""Newline-delimited JSON frames carried from server to client.

Each frame is one compact JSON object terminated by a single newline. The
server writes frames in emission order; physical chunk boundaries on the
wire are not controlled, so readers must reassemble lines themselves (see
stream_consumer.FrameBuffer).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from json import JSONDecodeError
from typing import Any, Union

from models import Paper

PAPERS = "papers"
AI_RESPONSE = "aiResponse"
ERROR = "error"


class FrameError(ValueError):
    """Raised when a line cannot be decoded into a known frame."""


@dataclass(frozen=True, slots=True)
class PapersFrame:
    content: tuple[Paper, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"type": PAPERS, "content": [paper.to_dict() for paper in self.content]}


@dataclass(frozen=True, slots=True)
class AnswerFrame:
    content: str
    done: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"type": AI_RESPONSE, "content": self.content, "done": self.done}


@dataclass(frozen=True, slots=True)
class ErrorFrame:
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": ERROR, "content": self.content}


Frame = Union[PapersFrame, AnswerFrame, ErrorFrame]


def is_terminal(frame: Frame) -> bool:
    """True for the frame that closes a stream: a done answer or an error."""
    return isinstance(frame, ErrorFrame) or (isinstance(frame, AnswerFrame) and frame.done)


def encode_frame(frame: Frame) -> bytes:
    """Serialize a frame as one JSON line."""
    return (json.dumps(frame.to_dict(), ensure_ascii=False, separators=(",", ":")) + "\n").encode("utf-8")


def decode_frame(line: str) -> Frame:
    """Parse one JSON line into a frame.

    Raises FrameError for invalid JSON, an unknown type, or content of the
    wrong shape.
    """
    try:
        data = json.loads(line)
    except JSONDecodeError as exc:
        raise FrameError(f"Invalid frame JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise FrameError("Frame must be a JSON object")

    frame_type = data.get("type")
    content = data.get("content")

    if frame_type == PAPERS:
        if not isinstance(content, list):
            raise FrameError("papers frame content must be a list")
        try:
            return PapersFrame(content=tuple(Paper.from_dict(item) for item in content if isinstance(item, dict)))
        except ValueError as exc:
            raise FrameError(str(exc)) from exc

    if frame_type == AI_RESPONSE:
        if content is None:
            content = ""
        if not isinstance(content, str):
            raise FrameError("aiResponse frame content must be a string")
        return AnswerFrame(content=content, done=bool(data.get("done", False)))

    if frame_type == ERROR:
        return ErrorFrame(content=str(content) if content is not None else "")

    raise FrameError(f"Unknown frame type: {frame_type!r}")
