"""Evaluation Metrics: the AI-graded outcome of one conversation.

Invariants:
    - EvaluationMetrics is frozen; list fields are tuples
    - Recomputing a score produces a new value, never a partial in-place update
    - from_dict requires the three feedback lists; numeric ranges are not validated or clamped
"""

from dataclasses import dataclass, field


_FEEDBACK_LISTS = ("strengths", "improvements", "tips")


@dataclass(frozen=True)
class EvaluationMetrics:
    strengths: tuple[str, ...]
    improvements: tuple[str, ...]
    tips: tuple[str, ...]
    big_picture_thinking: tuple[str, ...] = field(default_factory=tuple)

    # Speech statistics (student only)
    words_per_min: float | None = None
    filler_words_per_min: float | None = None
    participation_percentage: float | None = None
    duration: str | None = None

    # PISA collaborative problem solving rubric, 1-4
    pisa_shared_understanding: float | None = None
    pisa_problem_solving_action: float | None = None
    pisa_team_organization: float | None = None

    overall_score: float | None = None
    detailed_feedback: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "EvaluationMetrics":
        """Build from scorer output. Raises ValueError if a feedback list is missing."""
        missing = [k for k in _FEEDBACK_LISTS if not data.get(k)]
        if missing:
            raise ValueError(f"Evaluation missing {', '.join(missing)}")
        return cls(
            strengths=_strings(data["strengths"]),
            improvements=_strings(data["improvements"]),
            tips=_strings(data["tips"]),
            big_picture_thinking=_strings(data.get("big_picture_thinking") or []),
            words_per_min=_number(data.get("words_per_min")),
            filler_words_per_min=_number(data.get("filler_words_per_min")),
            participation_percentage=_number(data.get("participation_percentage")),
            duration=_optional_str(data.get("duration")),
            pisa_shared_understanding=_number(data.get("pisa_shared_understanding")),
            pisa_problem_solving_action=_number(data.get("pisa_problem_solving_action")),
            pisa_team_organization=_number(data.get("pisa_team_organization")),
            overall_score=_number(data.get("overall_score")),
            detailed_feedback=_optional_str(data.get("detailed_feedback")),
        )

    def to_dict(self) -> dict:
        return {
            "strengths": list(self.strengths),
            "improvements": list(self.improvements),
            "tips": list(self.tips),
            "big_picture_thinking": list(self.big_picture_thinking),
            "words_per_min": self.words_per_min,
            "filler_words_per_min": self.filler_words_per_min,
            "participation_percentage": self.participation_percentage,
            "duration": self.duration,
            "pisa_shared_understanding": self.pisa_shared_understanding,
            "pisa_problem_solving_action": self.pisa_problem_solving_action,
            "pisa_team_organization": self.pisa_team_organization,
            "overall_score": self.overall_score,
            "detailed_feedback": self.detailed_feedback,
        }

    @property
    def feedback(self) -> dict:
        """Qualitative part, stored as one JSON document."""
        return {
            "strengths": list(self.strengths),
            "improvements": list(self.improvements),
            "tips": list(self.tips),
            "big_picture_thinking": list(self.big_picture_thinking),
        }


def _strings(value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    raise ValueError(f"Expected a list of strings, got {type(value).__name__}")


def _number(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)
