# tests/test_scoring.py
import pytest

from vocab_practice.models.answer import FillBlankAnswer, MatchingAnswer, MatchingSelection, MultipleChoiceAnswer
from vocab_practice.models.question import FillBlankQuestion, MatchingPair, MatchingQuestion
from vocab_practice.services.scoring import (
    correct_option_text,
    fill_blank_similarity,
    is_answer_correct,
    is_fill_blank_answer_correct,
    is_matching_answer_correct,
    is_multiple_choice_answer_correct,
    matching_partial_score,
    round_half_up,
)


def _matching_answer(selections):
    return MatchingAnswer(
        question_id="m1",
        pairs=[MatchingSelection(source=s, selected_target=t) for s, t in selections],
    )


@pytest.fixture
def matching(practice_set):
    return practice_set.questions.matching[0]

@pytest.fixture
def fill_dog(practice_set):
    return practice_set.questions.fill_blank[0]

@pytest.fixture
def fill_elephant(practice_set):
    return practice_set.questions.fill_blank[1]

@pytest.fixture
def multiple_choice(practice_set):
    return practice_set.questions.multiple_choice[0]


@pytest.mark.scoring
class TestMatching:
    def test_all_pairs_correct(self, matching):
        answer = _matching_answer([("hond", "dog"), ("kat", "cat"), ("vogel", "bird")])
        assert is_matching_answer_correct(matching, answer) is True

    def test_order_does_not_matter(self, matching):
        answer = _matching_answer([("vogel", "bird"), ("hond", "dog"), ("kat", "cat")])
        assert is_matching_answer_correct(matching, answer) is True

    def test_one_wrong_pair(self, matching):
        answer = _matching_answer([("hond", "cat"), ("kat", "dog"), ("vogel", "bird")])
        assert is_matching_answer_correct(matching, answer) is False

    def test_incomplete_answer(self, matching):
        answer = _matching_answer([("hond", "dog"), ("kat", "cat")])
        assert is_matching_answer_correct(matching, answer) is False

    def test_empty_answer(self, matching):
        assert is_matching_answer_correct(matching, _matching_answer([])) is False

    def test_unknown_source(self, matching):
        answer = _matching_answer([("hond", "dog"), ("kat", "cat"), ("paard", "bird")])
        assert is_matching_answer_correct(matching, answer) is False

    def test_partial_score(self, matching):
        answer = _matching_answer([("hond", "dog"), ("kat", "cat"), ("vogel", "dog")])
        assert matching_partial_score(matching, answer) == {"correct": 2, "total": 3, "percentage": 66.67}

    def test_partial_score_without_answer(self, matching):
        assert matching_partial_score(matching, None) == {"correct": 0, "total": 3, "percentage": 0}


@pytest.mark.scoring
class TestFillBlank:
    def test_exact_match(self, fill_dog):
        assert is_fill_blank_answer_correct(fill_dog, FillBlankAnswer(question_id="f1", user_answer="dog"))

    def test_case_and_whitespace_insensitive(self, fill_dog):
        assert is_fill_blank_answer_correct(fill_dog, FillBlankAnswer(question_id="f1", user_answer="  DOG "))

    def test_acceptable_variation(self, fill_dog):
        assert is_fill_blank_answer_correct(fill_dog, FillBlankAnswer(question_id="f1", user_answer="Doggy"))

    def test_small_typo_is_accepted(self, fill_elephant):
        # one deletion: similarity 7/8
        assert is_fill_blank_answer_correct(fill_elephant, FillBlankAnswer(question_id="f2", user_answer="elephan"))

    def test_large_typo_is_rejected(self, fill_elephant):
        # two substitutions: similarity 6/8
        answer = FillBlankAnswer(question_id="f2", user_answer="elephnat")
        assert not is_fill_blank_answer_correct(fill_elephant, answer)

    def test_custom_threshold(self, fill_elephant):
        answer = FillBlankAnswer(question_id="f2", user_answer="elephnat")
        assert is_fill_blank_answer_correct(fill_elephant, answer, threshold=0.75)

    def test_empty_answer(self, fill_dog):
        assert not is_fill_blank_answer_correct(fill_dog, FillBlankAnswer(question_id="f1", user_answer=""))

    def test_similarity_helper(self, fill_elephant):
        assert fill_blank_similarity(fill_elephant, FillBlankAnswer(question_id="f2", user_answer="ELEPHANT")) == 1.0
        assert fill_blank_similarity(fill_elephant, None) == 0.0


@pytest.mark.scoring
class TestMultipleChoice:
    def test_correct_option(self, multiple_choice):
        answer = MultipleChoiceAnswer(question_id="mc1", selected_option="cat")
        assert is_multiple_choice_answer_correct(multiple_choice, answer) is True

    def test_wrong_option(self, multiple_choice):
        answer = MultipleChoiceAnswer(question_id="mc1", selected_option="dog")
        assert is_multiple_choice_answer_correct(multiple_choice, answer) is False

    def test_option_text_is_exact(self, multiple_choice):
        answer = MultipleChoiceAnswer(question_id="mc1", selected_option="Cat")
        assert is_multiple_choice_answer_correct(multiple_choice, answer) is False

    def test_unknown_or_empty_option(self, multiple_choice):
        assert not is_multiple_choice_answer_correct(
            multiple_choice, MultipleChoiceAnswer(question_id="mc1", selected_option="horse")
        )
        assert not is_multiple_choice_answer_correct(multiple_choice, MultipleChoiceAnswer(question_id="mc1"))

    def test_correct_option_text(self, multiple_choice):
        assert correct_option_text(multiple_choice) == "cat"


@pytest.mark.scoring
class TestDispatch:
    def test_missing_answer_is_incorrect(self, fill_dog):
        assert is_answer_correct(fill_dog, None) is False

    def test_mismatched_variant_is_incorrect(self, fill_dog):
        assert is_answer_correct(fill_dog, MultipleChoiceAnswer(question_id="f1", selected_option="dog")) is False

    def test_dispatches_by_variant(self, matching, fill_dog, multiple_choice):
        assert is_answer_correct(fill_dog, FillBlankAnswer(question_id="f1", user_answer="dog"))
        assert is_answer_correct(multiple_choice, MultipleChoiceAnswer(question_id="mc1", selected_option="cat"))
        assert is_answer_correct(
            matching, _matching_answer([("hond", "dog"), ("kat", "cat"), ("vogel", "bird")])
        )


@pytest.mark.scoring
def test_similarity_just_below_threshold_is_rejected():
    question = FillBlankQuestion(id="q", sentence="___ world", correct_answer="hello")
    # similarity("helo", "hello") == 0.8
    assert not is_fill_blank_answer_correct(question, FillBlankAnswer(question_id="q", user_answer="helo"))


@pytest.mark.scoring
def test_matching_requires_every_pair():
    question = MatchingQuestion(id="m", pairs=[MatchingPair(source="a", target="1"), MatchingPair(source="b", target="2")])
    answer = MatchingAnswer(question_id="m", pairs=[MatchingSelection(source="a", selected_target="1")])
    assert is_matching_answer_correct(question, answer) is False


@pytest.mark.scoring
@pytest.mark.parametrize("value, expected", [(3.125, 3.13), (0.5, 0.5), (66.6666, 66.67), (33.3333, 33.33), (12.5, 12.5)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected
