# vocab_practice/services/scoring.py
"""
Correctness predicates for each question variant.

Every predicate is pure and never raises: a missing answer, or an answer of
the wrong variant, simply scores False.
"""
import math
from typing import Dict, Optional, assert_never

from vocab_practice.models.answer import (
    Answer,
    FillBlankAnswer,
    MatchingAnswer,
    MultipleChoiceAnswer,
)
from vocab_practice.models.question import (
    FillBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    Question,
)
from vocab_practice.services.similarity import string_similarity
from vocab_practice.utils.config import settings


def round_half_up(value: float, digits: int = 2) -> float:
    """Rounds halves away from zero for non-negative values (3.125 -> 3.13)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _normalize(text: str) -> str:
    return text.strip().casefold()


def is_matching_answer_correct(question: MatchingQuestion, answer: MatchingAnswer) -> bool:
    """All pairs must be supplied and every one must map to its canonical target."""
    if not answer.pairs or len(answer.pairs) != len(question.pairs):
        return False
    canonical = {pair.source: pair.target for pair in question.pairs}
    return all(
        pair.source in canonical and canonical[pair.source] == pair.selected_target
        for pair in answer.pairs
    )


def matching_partial_score(question: MatchingQuestion, answer: Optional[MatchingAnswer]) -> Dict[str, float]:
    """Partial credit for feedback display; does not affect correctness."""
    total = len(question.pairs)
    if answer is None or not answer.pairs:
        return {"correct": 0, "total": total, "percentage": 0}

    canonical = {pair.source: pair.target for pair in question.pairs}
    correct = sum(
        1 for pair in answer.pairs
        if pair.source in canonical and canonical[pair.source] == pair.selected_target
    )
    percentage = (correct / total) * 100 if total > 0 else 0
    return {"correct": correct, "total": total, "percentage": round_half_up(percentage)}


def is_fill_blank_answer_correct(
    question: FillBlankQuestion,
    answer: FillBlankAnswer,
    threshold: Optional[float] = None,
) -> bool:
    if not answer.user_answer:
        return False
    threshold = threshold if threshold is not None else settings.fuzzy_match_threshold

    user_answer = _normalize(answer.user_answer)
    correct_answer = _normalize(question.correct_answer)

    if user_answer == correct_answer:
        return True
    if any(_normalize(variation) == user_answer for variation in question.acceptable_variations):
        return True
    # Typo tolerance
    return string_similarity(user_answer, correct_answer) >= threshold


def fill_blank_similarity(question: FillBlankQuestion, answer: Optional[FillBlankAnswer]) -> float:
    if answer is None or not answer.user_answer:
        return 0.0
    return string_similarity(_normalize(answer.user_answer), _normalize(question.correct_answer))


def is_multiple_choice_answer_correct(question: MultipleChoiceQuestion, answer: MultipleChoiceAnswer) -> bool:
    if not answer.selected_option:
        return False
    for option in question.options:
        if option.text == answer.selected_option:
            return option.is_correct
    return False


def correct_option_text(question: MultipleChoiceQuestion) -> Optional[str]:
    for option in question.options:
        if option.is_correct:
            return option.text
    return None


def is_answer_correct(question: Question, answer: Optional[Answer]) -> bool:
    """Dispatches to the predicate for the question's variant."""
    if answer is None:
        return False
    if isinstance(question, MatchingQuestion):
        return isinstance(answer, MatchingAnswer) and is_matching_answer_correct(question, answer)
    elif isinstance(question, FillBlankQuestion):
        return isinstance(answer, FillBlankAnswer) and is_fill_blank_answer_correct(question, answer)
    elif isinstance(question, MultipleChoiceQuestion):
        return isinstance(answer, MultipleChoiceAnswer) and is_multiple_choice_answer_correct(question, answer)
    else:
        assert_never(question)
