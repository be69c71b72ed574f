# tests/test_results.py
import pytest

from vocab_practice.models.answer import FillBlankAnswer, MatchingAnswer, MatchingSelection, MultipleChoiceAnswer
from vocab_practice.models.enums import PerformanceRating
from vocab_practice.models.question import FillBlankQuestion, PracticeQuestions
from vocab_practice.models.session import CategoryResult, SessionResults
from vocab_practice.services.results import (
    calculate_session_results,
    compare_with_previous,
    performance_rating,
    session_feedback,
    time_metrics,
)

START = 1_000_000


def _all_correct():
    return {
        "m1": MatchingAnswer(
            question_id="m1",
            pairs=[
                MatchingSelection(source="hond", selected_target="dog"),
                MatchingSelection(source="kat", selected_target="cat"),
                MatchingSelection(source="vogel", selected_target="bird"),
            ],
        ),
        "f1": FillBlankAnswer(question_id="f1", user_answer="dog"),
        "f2": FillBlankAnswer(question_id="f2", user_answer="elephant"),
        "mc1": MultipleChoiceAnswer(question_id="mc1", selected_option="cat"),
    }


def _results(score, breakdown=None):
    return SessionResults(
        session_id="s", total_questions=4, correct_answers=0, score=score, duration_seconds=0,
        breakdown=breakdown or {},
    )


@pytest.mark.results
class TestCalculateSessionResults:
    def test_perfect_session(self, practice_set):
        results = calculate_session_results(practice_set.questions, _all_correct(), START, "s1", now_ms=START + 12_345)
        assert results.session_id == "s1"
        assert results.total_questions == 4
        assert results.correct_answers == 4
        assert results.score == 100.0
        assert results.duration_seconds == 12
        assert set(results.breakdown) == {"matching", "fill_blank", "multiple_choice"}

    def test_partial_session(self, practice_set):
        answers = _all_correct()
        answers["f2"] = FillBlankAnswer(question_id="f2", user_answer="giraffe")
        del answers["mc1"]
        results = calculate_session_results(practice_set.questions, answers, START, "s1", now_ms=START)
        assert results.correct_answers == 2
        assert results.score == 50.0
        assert results.breakdown["fill_blank"] == CategoryResult(total=2, correct=1, score=50.0)
        assert results.breakdown["multiple_choice"] == CategoryResult(total=1, correct=0, score=0.0)

    def test_score_is_rounded_to_two_decimals(self):
        questions = PracticeQuestions(fill_blank=[
            FillBlankQuestion(id=f"q{i}", sentence="___", correct_answer="x") for i in range(3)
        ])
        answers = {"q0": FillBlankAnswer(question_id="q0", user_answer="x")}
        results = calculate_session_results(questions, answers, START, "s1", now_ms=START)
        assert results.score == 33.33

    def test_score_rounds_halves_up(self):
        questions = PracticeQuestions(fill_blank=[
            FillBlankQuestion(id=f"q{i}", sentence="___", correct_answer="x") for i in range(32)
        ])
        answers = {"q0": FillBlankAnswer(question_id="q0", user_answer="x")}
        results = calculate_session_results(questions, answers, START, "s1", now_ms=START)
        assert results.score == 3.13
        assert results.breakdown["fill_blank"].score == 3.13

    def test_breakdown_only_has_present_categories(self):
        questions = PracticeQuestions(fill_blank=[FillBlankQuestion(id="q", sentence="___", correct_answer="x")])
        results = calculate_session_results(questions, {}, START, "s1", now_ms=START)
        assert list(results.breakdown) == ["fill_blank"]

    def test_empty_practice_set(self):
        results = calculate_session_results(PracticeQuestions(), {}, START, "s1", now_ms=START + 5000)
        assert results.total_questions == 0
        assert results.score == 0.0
        assert results.breakdown == {}

    def test_duration_never_negative(self, practice_set):
        results = calculate_session_results(practice_set.questions, {}, START, "s1", now_ms=START - 10_000)
        assert results.duration_seconds == 0

    def test_answers_for_unknown_questions_are_ignored(self, practice_set):
        answers = {"zzz": FillBlankAnswer(question_id="zzz", user_answer="dog")}
        results = calculate_session_results(practice_set.questions, answers, START, "s1", now_ms=START)
        assert results.correct_answers == 0


@pytest.mark.results
class TestFeedbackHelpers:
    @pytest.mark.parametrize("score,rating", [
        (100, PerformanceRating.EXCELLENT),
        (90, PerformanceRating.EXCELLENT),
        (89.99, PerformanceRating.GOOD),
        (75, PerformanceRating.GOOD),
        (60, PerformanceRating.FAIR),
        (59.9, PerformanceRating.NEEDS_IMPROVEMENT),
    ])
    def test_performance_rating(self, score, rating):
        assert performance_rating(score) == rating

    def test_time_metrics(self):
        metrics = time_metrics(125, 5)
        assert metrics == {"average_time_per_question": 25, "formatted_duration": "2:05", "pace": "moderate"}
        assert time_metrics(0, 0)["pace"] == "fast"
        assert time_metrics(300, 5)["pace"] == "slow"

    def test_session_feedback(self):
        results = _results(70, {
            "matching": CategoryResult(total=1, correct=1, score=100),
            "fill_blank": CategoryResult(total=2, correct=1, score=50),
        })
        feedback = session_feedback(results)
        assert feedback["strengths"] == ["Strong performance on matching questions"]
        assert feedback["improvements"] == ["Focus on using words in context"]
        assert feedback["overall"].startswith("Fair performance")

    def test_compare_first_attempt(self):
        assert compare_with_previous(_results(80), [])["trend"] == "stable"

    def test_compare_trends(self):
        assert compare_with_previous(_results(80), [_results(60)])["trend"] == "improving"
        assert compare_with_previous(_results(60), [_results(80)])["trend"] == "declining"
        comparison = compare_with_previous(_results(82), [_results(50), _results(80)])
        assert comparison["trend"] == "stable"
        assert comparison["improvement"] == 2
