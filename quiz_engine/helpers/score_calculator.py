import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional


@dataclass(frozen=True)
class ScoreResult:
    score: float
    percentage: int
    all_graded: bool


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_percentage(score: float, max_score: float) -> int:
    if not max_score or max_score <= 0:
        return 0
    return round_half_up(score / max_score * 100)


def calculate_score(
    answers: Iterable[Dict[str, Any]],
    max_score: float,
    manual_score: Optional[float] = None,
) -> ScoreResult:
    """
    Aggregates per-question points into an attempt score.

    A manual score, while set, replaces the per-question sum entirely.
    `all_graded` is True only when every answer carries awarded points.
    """
    total_awarded = 0
    all_graded = True

    for answer in answers:
        points = answer.get("points_awarded")
        if points is None:
            all_graded = False
        else:
            total_awarded += points

    score = manual_score if manual_score is not None else total_awarded

    return ScoreResult(
        score=score,
        percentage=calculate_percentage(score, max_score),
        all_graded=all_graded,
    )


def apply_score(attempt, passing_score: float) -> ScoreResult:
    """Writes score, percentage and pass flag onto an attempt record."""
    result = calculate_score(attempt.answers or [], attempt.max_score, attempt.manual_score)

    attempt.score = result.score
    attempt.percentage = result.percentage
    if passing_score and passing_score > 0:
        attempt.is_passed = result.percentage >= passing_score

    return result
