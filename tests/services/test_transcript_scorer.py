"""Transcript Scorer: tests for prompt wiring and reply parsing.

Tests cover:
    - Reply JSON parsed into EvaluationMetrics (with surrounding prose)
    - Missing duration falls back to local timing
    - API errors, empty, malformed and incomplete replies raise ScoringFailureError
"""

import json

import pytest

from coach.core.errors import AnthropicAPIError, ScoringFailureError
from coach.services.scoring_prompt import RESPONSE_KEYS, SCORING_SYSTEM_PROMPT
from coach.services.transcript_scorer import AnthropicTranscriptScorer, parse_evaluation
from tests.services.mock_anthropic import MockAnthropicClient, text_reply

TRANSCRIPT = (
    "// Conversation starts at 19/10/2026, 14:00\n"
    "User (14:00:10): I think fruit is healthier\n"
    "// Conversation ends at 19/10/2026, 14:05\n"
)
TIMING = {"duration": "5 min 0 sec", "user_words": 5, "session_seconds": 300.0}
REPLY = {
    "strengths": ["You gave a reason for your idea"],
    "improvements": ["Ask teammates what they think"],
    "tips": ['Try: "What do you all think?"'],
    "big_picture_thinking": ["Who is coming? (because numbers change the order)"],
    "words_per_min": 80,
    "filler_words_per_min": 1,
    "participation_percentage": 35.5,
    "duration": "5 min 0 sec",
    "pisa_shared_understanding": 3,
    "pisa_problem_solving_action": 2,
    "pisa_team_organization": 2,
}


def _scorer(*replies):
    client = MockAnthropicClient(*replies)
    return AnthropicTranscriptScorer(client, model="claude-test"), client


async def test_score_parses_reply():
    scorer, client = _scorer(text_reply(json.dumps(REPLY)))
    metrics = await scorer.score([], TRANSCRIPT, TIMING)
    assert metrics.strengths == ("You gave a reason for your idea",)
    assert metrics.participation_percentage == 35.5
    assert metrics.pisa_team_organization == 2


async def test_request_carries_rubric_and_transcript():
    scorer, client = _scorer(text_reply(json.dumps(REPLY)))
    await scorer.score([], TRANSCRIPT, TIMING)
    call = client.calls[0]
    assert call["model"] == "claude-test"
    assert call["system"] == SCORING_SYSTEM_PROMPT
    content = call["messages"][0]["content"]
    assert "I think fruit is healthier" in content
    assert '"user_words": 5' in content


async def test_reply_wrapped_in_prose_is_parsed():
    scorer, _ = _scorer(text_reply(f"Here is the evaluation:\n{json.dumps(REPLY)}\nGood luck!"))
    metrics = await scorer.score([], TRANSCRIPT, TIMING)
    assert metrics.tips == ('Try: "What do you all think?"',)


async def test_api_error_becomes_scoring_failure():
    scorer, _ = _scorer(AnthropicAPIError("overloaded", "connection_error"))
    with pytest.raises(ScoringFailureError):
        await scorer.score([], TRANSCRIPT, TIMING)


async def test_empty_transcript_is_not_sent():
    scorer, client = _scorer()
    with pytest.raises(ScoringFailureError):
        await scorer.score([], "  ", TIMING)
    assert client.calls == []


def test_missing_duration_uses_local_timing():
    data = {k: v for k, v in REPLY.items() if k != "duration"}
    assert parse_evaluation(json.dumps(data), TIMING).duration == "5 min 0 sec"


@pytest.mark.parametrize("text", ["", "not json at all {", "[1, 2]"])
def test_unusable_replies_raise(text):
    with pytest.raises(ScoringFailureError):
        parse_evaluation(text)


def test_reply_missing_tips_raises():
    data = {k: v for k, v in REPLY.items() if k != "tips"}
    with pytest.raises(ScoringFailureError, match="tips"):
        parse_evaluation(json.dumps(data))


def test_prompt_lists_every_response_key():
    for key in RESPONSE_KEYS:
        assert f'"{key}"' in SCORING_SYSTEM_PROMPT
