from unittest.mock import patch

import pytest

from follow_up import ANSWER_EXCERPT_CHARS, MAX_QUESTIONS, extract_questions, generate_follow_up_questions


@pytest.mark.parametrize(
    "parsed",
    [
        ["What next?", "Why?"],
        {"questions": ["What next?", "Why?"]},
        {"followUpQuestions": ["What next?", "Why?"]},
        {"follow_up_questions": ["What next?", "Why?"]},
    ],
)
def test_extract_questions_accepts_known_shapes(parsed: object) -> None:
    assert extract_questions(parsed) == ["What next?", "Why?"]


def test_extract_questions_scans_malformed_object() -> None:
    parsed = {"What about mice?": 1, "q": "Is it safe?", "note": "no question here", "more": ["How long?", 3]}

    assert extract_questions(parsed) == ["What about mice?", "Is it safe?", "How long?"]


def test_extract_questions_caps_and_filters_non_strings() -> None:
    parsed = {"questions": ["a?", None, 3, "b?", "c?", "d?", "e?", "f?", "g?"]}

    result = extract_questions(parsed)

    assert len(result) == MAX_QUESTIONS
    assert result == ["a?", "b?", "c?", "d?", "e?"]


@pytest.mark.parametrize("parsed", ["just text", 42, None, {"questions": "not a list"}])
def test_extract_questions_rejects_other_shapes(parsed: object) -> None:
    assert extract_questions(parsed) == []


def test_generate_follow_up_questions_truncates_answer() -> None:
    answer = "x" * (ANSWER_EXCERPT_CHARS + 100)

    with patch("follow_up.complete_json", return_value={"questions": ["Why?"]}) as mock_complete:
        result = generate_follow_up_questions("q", answer)

    assert result == ["Why?"]
    user_prompt = mock_complete.call_args.args[1]
    assert "x" * ANSWER_EXCERPT_CHARS + "..." in user_prompt
    assert "x" * (ANSWER_EXCERPT_CHARS + 1) not in user_prompt
    assert mock_complete.call_args.kwargs["max_tokens"] == 500


def test_generate_follow_up_questions_returns_empty_on_failure() -> None:
    with patch("follow_up.complete_json", side_effect=RuntimeError("OPENAI_API_KEY environment variable is required")):
        assert generate_follow_up_questions("q", "answer") == []
