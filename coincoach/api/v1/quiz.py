"""Safety quiz endpoints."""
from fastapi import APIRouter, Depends
from pydantic import Field

from coincoach.core.exceptions import InvalidRequest
from coincoach.models.base import CamelModel
from coincoach.models.quiz import QuizSession, ScoreRequest
from coincoach.services.quiz import (
    QuizGenerator,
    answer_question,
    finalize_session,
    get_quiz_generator,
)

router = APIRouter(prefix="/quiz", tags=["quiz"])


class AnswerRequest(CamelModel):
    session: QuizSession
    question_index: int = Field(ge=0)
    option: int = Field(ge=0)


@router.post("/generate")
async def generate_quiz(generator: QuizGenerator = Depends(get_quiz_generator)):
    """Start a new quiz session with ten questions."""
    session = await generator.start_session()
    return session.to_wire()


@router.post("/answer")
async def answer(request: AnswerRequest):
    """Record one answer on an open session and return the updated session."""
    session = answer_question(request.session, request.question_index, request.option)
    return session.to_wire()


@router.post("/score")
async def score_quiz(request: ScoreRequest):
    """Score a completed attempt. Passing is 80% or above."""
    if len(request.user_answers) != len(request.questions):
        raise InvalidRequest("userAnswers must have one entry per question")

    session = QuizSession(questions=request.questions, user_answers=request.user_answers)
    return finalize_session(session).to_wire()
