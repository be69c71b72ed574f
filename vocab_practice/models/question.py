# vocab_practice/models/question.py
# Data models for practice questions and the practice sets that bundle them
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, List, Literal, Optional, Union


class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts either spelling on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MatchingPair(CamelModel):
    source: str
    target: str


class MatchingQuestion(CamelModel):
    type: Literal["matching"] = "matching"
    id: str
    pairs: List[MatchingPair]
    shuffled_targets: List[str] = []


class FillBlankQuestion(CamelModel):
    type: Literal["fill-blank"] = "fill-blank"
    id: str
    sentence: str
    correct_answer: str
    acceptable_variations: List[str] = []
    hint: Optional[str] = None


class MultipleChoiceOption(CamelModel):
    text: str
    is_correct: bool = False


class MultipleChoiceQuestion(CamelModel):
    type: Literal["multiple-choice"] = "multiple-choice"
    id: str
    sentence: str
    target_word: str
    options: List[MultipleChoiceOption]


Question = Annotated[
    Union[MatchingQuestion, FillBlankQuestion, MultipleChoiceQuestion],
    Field(discriminator="type"),
]


class PracticeQuestions(CamelModel):
    matching: List[MatchingQuestion] = []
    fill_blank: List[FillBlankQuestion] = []
    multiple_choice: List[MultipleChoiceQuestion] = []

    def all_questions(self) -> List[Question]:
        """Flattened in presentation order: matching, fill-blank, multiple choice."""
        return [*self.matching, *self.fill_blank, *self.multiple_choice]

    def question_types(self) -> List[str]:
        return (
            ["matching"] * len(self.matching)
            + ["fill-blank"] * len(self.fill_blank)
            + ["multiple-choice"] * len(self.multiple_choice)
        )


class PracticeSet(CamelModel):
    id: str
    wordlist_id: str
    wordlist_name: Optional[str] = None
    questions: PracticeQuestions
