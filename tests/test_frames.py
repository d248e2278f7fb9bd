import json

import pytest

from frames import (
    AnswerFrame,
    ErrorFrame,
    FrameError,
    PapersFrame,
    decode_frame,
    encode_frame,
    is_terminal,
)
from models import Paper


def _paper(paper_id: str = "W1") -> Paper:
    return Paper(id=paper_id, title="Title", authors=("A. Author",), year=2020, url="https://x")


def test_encode_frame_is_one_compact_line() -> None:
    line = encode_frame(AnswerFrame(content="hé\nllo", done=False))

    assert line.endswith(b"\n")
    assert line.count(b"\n") == 1
    assert json.loads(line) == {"type": "aiResponse", "content": "hé\nllo", "done": False}
    assert "hé".encode("utf-8") in line


def test_papers_frame_wire_shape() -> None:
    data = json.loads(encode_frame(PapersFrame(content=(_paper(),))))

    assert data["type"] == "papers"
    assert data["content"] == [
        {
            "id": "W1",
            "title": "Title",
            "authors": ["A. Author"],
            "year": 2020,
            "journal": None,
            "url": "https://x",
            "abstract": None,
        }
    ]


def test_error_frame_wire_shape() -> None:
    assert json.loads(encode_frame(ErrorFrame(content="boom"))) == {"type": "error", "content": "boom"}


def test_decode_frame_restores_papers() -> None:
    frame = decode_frame(encode_frame(PapersFrame(content=(_paper("W1"), _paper("W2")))).decode())

    assert isinstance(frame, PapersFrame)
    assert [p.id for p in frame.content] == ["W1", "W2"]


def test_decode_frame_treats_missing_answer_content_as_empty() -> None:
    frame = decode_frame('{"type":"aiResponse","content":null,"done":true}')

    assert frame == AnswerFrame(content="", done=True)


@pytest.mark.parametrize(
    "line",
    [
        "{not json",
        "[1, 2]",
        '{"type":"mystery","content":"x"}',
        '{"type":"papers","content":"x"}',
        '{"type":"papers","content":[{"title":"no id"}]}',
        '{"type":"aiResponse","content":42}',
    ],
)
def test_decode_frame_rejects_bad_lines(line: str) -> None:
    with pytest.raises(FrameError):
        decode_frame(line)


def test_is_terminal() -> None:
    assert is_terminal(AnswerFrame(content="", done=True))
    assert is_terminal(ErrorFrame(content="x"))
    assert not is_terminal(AnswerFrame(content="x"))
    assert not is_terminal(PapersFrame(content=()))
