"""Transcript Scorer: grades a finished conversation through the Anthropic API.

Invariants:
    - score() returns a complete EvaluationMetrics or raises ScoringFailureError
    - The first {...} block in the reply is parsed, surrounding prose is ignored
    - Missing speech statistics fall back to the locally computed timing
"""

import json
import logging
import re
from collections.abc import Sequence

from coach.core.errors import AnthropicAPIError, ErrorContext, ScoringFailureError
from coach.core.evaluation import EvaluationMetrics
from coach.core.message import Message
from coach.infrastructure.anthropic_client import ResilientAnthropicClient
from coach.services.scoring_prompt import SCORING_SYSTEM_PROMPT, build_scoring_request

logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


class AnthropicTranscriptScorer:
    """TranscriptScorer backed by ResilientAnthropicClient."""

    def __init__(
        self,
        client: ResilientAnthropicClient,
        model: str,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def score(
        self, messages: Sequence[Message], transcript: str, timing: dict,
    ) -> EvaluationMetrics:
        if not transcript.strip():
            raise ScoringFailureError("transcript is empty")
        try:
            response = await self.client.create_message(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SCORING_SYSTEM_PROMPT,
                messages=[{
                    "role": "user",
                    "content": build_scoring_request(transcript, timing),
                }],
                temperature=self.temperature,
                context=ErrorContext(debug_info={"turns": len(messages)}),
            )
        except AnthropicAPIError as e:
            raise ScoringFailureError(e.message) from e

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
        return parse_evaluation(text, timing)


def parse_evaluation(text: str, timing: dict | None = None) -> EvaluationMetrics:
    """Parse the scorer reply into EvaluationMetrics."""
    if not text:
        raise ScoringFailureError("no evaluation received")
    match = _JSON_BLOCK.search(text)
    try:
        data = json.loads(match.group(0) if match else text)
    except json.JSONDecodeError as e:
        logger.error(f"Unparseable evaluation reply: {text[:200]!r}")
        raise ScoringFailureError("failed to parse evaluation response") from e
    if not isinstance(data, dict):
        raise ScoringFailureError("evaluation response is not an object")

    if timing and not data.get("duration"):
        data["duration"] = timing.get("duration")
    try:
        return EvaluationMetrics.from_dict(data)
    except ValueError as e:
        raise ScoringFailureError(f"invalid evaluation format: {e}") from e
