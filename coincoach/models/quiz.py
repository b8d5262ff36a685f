"""Quiz models."""
import uuid
from typing import Optional

from pydantic import Field, field_validator, model_validator

from coincoach.models.base import CamelModel

OPTIONS_PER_QUESTION = 4


class QuizQuestion(CamelModel):
    id: str
    question: str
    options: list[str] = Field(min_length=OPTIONS_PER_QUESTION, max_length=OPTIONS_PER_QUESTION)
    correct_answer: int = Field(ge=0, le=OPTIONS_PER_QUESTION - 1)
    explanation: str = ""


class ScoreResult(CamelModel):
    score: int
    passed: bool


def _check_answers(answers: list[Optional[int]]) -> list[Optional[int]]:
    for answer in answers:
        if answer is not None and not 0 <= answer < OPTIONS_PER_QUESTION:
            raise ValueError(f"answer {answer} is not a valid option index")
    return answers


class QuizSession(CamelModel):
    """One attempt at the quiz.

    ``user_answers`` always has one slot per question; ``None`` means the
    question has not been answered yet.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    questions: list[QuizQuestion]
    user_answers: list[Optional[int]] = Field(default_factory=list)
    score: int = 0
    passed: bool = False
    completed: bool = False

    @field_validator("user_answers")
    @classmethod
    def answers_in_range(cls, v):
        return _check_answers(v)

    @model_validator(mode="after")
    def one_answer_per_question(self):
        if not self.user_answers:
            self.user_answers = [None] * len(self.questions)
        elif len(self.user_answers) != len(self.questions):
            raise ValueError("userAnswers must have one entry per question")
        return self

    def to_wire(self) -> dict:
        # Unanswered slots stay in the list as null
        return self.model_dump(mode="json", by_alias=True)


class ScoreRequest(CamelModel):
    questions: list[QuizQuestion]
    user_answers: list[Optional[int]]

    @field_validator("user_answers")
    @classmethod
    def answers_in_range(cls, v):
        return _check_answers(v)
