# vocab_practice/services/results.py
"""
Rolls per-question correctness up into session results, plus the feedback
helpers the results screen uses (rating, pacing, strengths, trend).
"""
import math
from typing import Dict, List, Mapping, Optional, Sequence

from vocab_practice.models.answer import Answer
from vocab_practice.models.enums import PerformanceRating
from vocab_practice.models.question import PracticeQuestions, Question
from vocab_practice.models.session import CategoryResult, SessionResults
from vocab_practice.services.scoring import is_answer_correct, round_half_up
from vocab_practice.utils.scheduler import now_ms as current_ms


def _percentage(correct: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round_half_up((correct / total) * 100)


def calculate_category_result(questions: Sequence[Question], answers: Mapping[str, Answer]) -> CategoryResult:
    correct = sum(1 for question in questions if is_answer_correct(question, answers.get(question.id)))
    total = len(questions)
    return CategoryResult(total=total, correct=correct, score=_percentage(correct, total))


def calculate_session_results(
    questions: PracticeQuestions,
    answers: Mapping[str, Answer],
    start_time: int,
    session_id: str,
    now_ms: Optional[int] = None,
) -> SessionResults:
    """
    Scores every question and builds the breakdown for the categories that
    actually appear in the practice set. `start_time` and `now_ms` are epoch ms.
    """
    end_time = now_ms if now_ms is not None else current_ms()
    duration = max(0, math.floor((end_time - start_time) / 1000))

    categories = {
        "matching": questions.matching,
        "fill_blank": questions.fill_blank,
        "multiple_choice": questions.multiple_choice,
    }
    breakdown: Dict[str, CategoryResult] = {}
    for name, category_questions in categories.items():
        if category_questions:
            breakdown[name] = calculate_category_result(category_questions, answers)

    total_questions = sum(len(category_questions) for category_questions in categories.values())
    total_correct = sum(result.correct for result in breakdown.values())

    return SessionResults(
        session_id=session_id,
        total_questions=total_questions,
        correct_answers=total_correct,
        score=_percentage(total_correct, total_questions),
        duration_seconds=duration,
        breakdown=breakdown,
    )


RATING_MESSAGES = {
    PerformanceRating.EXCELLENT: "Excellent work! You have mastered this vocabulary.",
    PerformanceRating.GOOD: "Good job! Keep practicing to improve further.",
    PerformanceRating.FAIR: "Fair performance. Review the material and try again.",
    PerformanceRating.NEEDS_IMPROVEMENT: "Keep practicing! Review the vocabulary and try again.",
}


def performance_rating(score: float) -> PerformanceRating:
    if score >= 90:
        return PerformanceRating.EXCELLENT
    if score >= 75:
        return PerformanceRating.GOOD
    if score >= 60:
        return PerformanceRating.FAIR
    return PerformanceRating.NEEDS_IMPROVEMENT


def time_metrics(duration_seconds: int, total_questions: int) -> dict:
    """Average time per question, an M:SS duration and a coarse pace label."""
    average = duration_seconds / total_questions if total_questions > 0 else 0
    minutes, seconds = divmod(duration_seconds, 60)

    # ~30 seconds per question is considered moderate
    if average < 20:
        pace = "fast"
    elif average < 40:
        pace = "moderate"
    else:
        pace = "slow"

    return {
        "average_time_per_question": math.floor(average + 0.5),
        "formatted_duration": f"{minutes}:{seconds:02d}",
        "pace": pace,
    }


_CATEGORY_FEEDBACK = {
    "matching": ("Strong performance on matching questions", "Practice word-translation associations more"),
    "fill_blank": ("Excellent contextual understanding", "Focus on using words in context"),
    "multiple_choice": ("Good recognition of word meanings", "Review word definitions and meanings"),
}


def session_feedback(results: SessionResults) -> dict:
    strengths: List[str] = []
    improvements: List[str] = []
    for category, (strength, improvement) in _CATEGORY_FEEDBACK.items():
        category_result = results.breakdown.get(category)
        if category_result is None:
            continue
        if category_result.score >= 80:
            strengths.append(strength)
        elif category_result.score < 60:
            improvements.append(improvement)

    return {
        "overall": RATING_MESSAGES[performance_rating(results.score)],
        "strengths": strengths,
        "improvements": improvements,
    }


def compare_with_previous(current: SessionResults, previous: Sequence[SessionResults]) -> dict:
    """Compares against the most recent previous attempt; a swing of more than 5 points is a trend."""
    if not previous:
        return {"improvement": 0, "trend": "stable", "message": "This is your first attempt!"}

    improvement = current.score - previous[-1].score
    if improvement > 5:
        trend = "improving"
        message = f"Great progress! You improved by {abs(improvement):.1f}%"
    elif improvement < -5:
        trend = "declining"
        message = f"Score decreased by {abs(improvement):.1f}%. Keep practicing!"
    else:
        trend = "stable"
        message = "Your performance is consistent. Keep it up!"

    return {"improvement": round(improvement, 2), "trend": trend, "message": message}
