# vocab_practice/models/answer.py
from pydantic import Field
from typing import Annotated, List, Literal, Union

from vocab_practice.models.question import CamelModel


class MatchingSelection(CamelModel):
    source: str
    selected_target: str


class MatchingAnswer(CamelModel):
    type: Literal["matching"] = "matching"
    question_id: str
    pairs: List[MatchingSelection] = []


class FillBlankAnswer(CamelModel):
    type: Literal["fill-blank"] = "fill-blank"
    question_id: str
    user_answer: str = ""


class MultipleChoiceAnswer(CamelModel):
    type: Literal["multiple-choice"] = "multiple-choice"
    question_id: str
    selected_option: str = ""


Answer = Annotated[
    Union[MatchingAnswer, FillBlankAnswer, MultipleChoiceAnswer],
    Field(discriminator="type"),
]
