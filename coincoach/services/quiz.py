"""Safety quiz: question generation and scoring.

Questions come from Gemini when it is available and answers in the right
shape; otherwise a fixed set with the same topic bands is used, so starting
a quiz never depends on the upstream API.
"""
import logging
import math
from typing import Optional, Sequence

from pydantic import ValidationError

from coincoach.core.exceptions import CoinCoachError, InvalidRequest
from coincoach.core.parsing import extract_fenced_json
from coincoach.integrations.gemini import GeminiClient, get_gemini_client
from coincoach.models.quiz import QuizQuestion, QuizSession, ScoreResult

logger = logging.getLogger(__name__)

QUESTION_COUNT = 10
PASS_THRESHOLD = 80

QUIZ_PROMPT = """Generate 10 multiple choice quiz questions about cryptocurrency and blockchain safety. Each question should test understanding of crypto wallets, market analysis, and risk management.

Return ONLY a valid JSON array with this exact structure (no markdown, no extra text):
[
  {
    "id": "q1",
    "question": "Question text here?",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correctAnswer": 0,
    "explanation": "Why this answer is correct"
  }
]

Make questions progressively harder. Ensure questions cover: wallets (q1-q3), market analysis (q4-q7), risk management (q8-q10)."""


def _q(id: str, question: str, options: list[str], correct: int, explanation: str) -> QuizQuestion:
    return QuizQuestion(id=id, question=question, options=options, correct_answer=correct, explanation=explanation)


FALLBACK_QUESTIONS: tuple[QuizQuestion, ...] = (
    # Wallets
    _q("q1", "What is a cryptocurrency wallet?", [
        "A physical wallet to store coins",
        "A digital tool to manage public and private keys",
        "A bank account for crypto",
        "An exchange platform",
    ], 1, "A crypto wallet is a digital tool that stores your public key (for receiving) and private key (for sending)."),
    _q("q2", "What does market cap represent?", [
        "The price of one token",
        "Total value = current price × circulating supply",
        "The maximum price ever reached",
        "The trading volume per day",
    ], 1, "Market cap is calculated by multiplying the current price by the total circulating supply."),
    _q("q3", "What is a private key?", [
        "A public identifier for your wallet",
        "A secret code that grants access to your funds",
        "A transaction ID",
        "A password that changes daily",
    ], 1, "A private key is a secret code that you must never share - it grants full access to your funds."),
    # Market analysis
    _q("q4", "How do candlestick charts display price movement?", [
        "Using only closing prices",
        "With open, high, low, and close prices in time intervals",
        "Using pie charts",
        "With random data points",
    ], 1, "Candlestick charts show open, high, low, and close prices for each time period (e.g., hourly, daily)."),
    _q("q5", "What is a bullish signal in trading?", [
        "Price moving downward",
        "Price moving upward, indicating buying interest",
        "High trading volume decrease",
        "Portfolio losses",
    ], 1, "A bullish signal indicates an upward price movement and buying interest in the market."),
    _q("q6", "What does volatility measure?", [
        "The total amount traded",
        "How quickly prices change up and down",
        "The oldest price history",
        "Exchange transaction fees",
    ], 1, "Volatility measures how rapidly and significantly price changes occur over time."),
    _q("q7", "How should you assess your risk tolerance?", [
        "Based on others recommendations",
        "Your financial situation, goals, and comfort with losses",
        "Only market trends",
        "Random selection",
    ], 1, "Risk tolerance is personal and should be based on your financial situation, time horizon, and emotional comfort."),
    # Risk management
    _q("q8", "What is diversification?", [
        "Investing all money in one asset",
        "Spreading investments across different assets to reduce risk",
        "Trading more frequently",
        "Using only cryptocurrency",
    ], 1, "Diversification reduces risk by spreading your investment across multiple different assets."),
    _q("q9", "What is FOMO in crypto trading?", [
        "Fear of Missing Out - making hasty decisions",
        "A type of technical indicator",
        "A blockchain protocol",
        "A mining strategy",
    ], 0, "FOMO is the fear of missing out, which can lead to poor investment decisions based on emotion."),
    _q("q10", "What should you do with your private keys?", [
        "Share them with trusted friends",
        "Store them in plain text on your computer",
        "Keep them secure and never share them",
        "Write them on public forums for backup",
    ], 2, "Private keys should be kept secure and never shared. Anyone with your private key can access your funds."),
)


def fallback_questions() -> list[QuizQuestion]:
    return [q.model_copy() for q in FALLBACK_QUESTIONS]


def parse_questions(text: str) -> list[QuizQuestion]:
    """Validate a model response as a full question set.

    Raises:
        ValueError: not JSON, not an array, wrong length, or an item that
            does not fit the question shape.
    """
    result = extract_fenced_json(text)
    if not result.ok:
        raise ValueError(result.reason)
    if not isinstance(result.value, list):
        raise ValueError("Response is not an array")
    if len(result.value) != QUESTION_COUNT:
        raise ValueError(f"Expected {QUESTION_COUNT} questions, got {len(result.value)}")

    questions = []
    for index, item in enumerate(result.value):
        if not isinstance(item, dict):
            raise ValueError(f"Question {index + 1} is not an object")
        item = {**item, "id": str(item.get("id") or f"q{index + 1}")}
        try:
            questions.append(QuizQuestion.model_validate(item))
        except ValidationError as e:
            raise ValueError(f"Question {index + 1} is malformed: {e.error_count()} errors") from e
    return questions


class QuizGenerator:
    def __init__(self, gemini: GeminiClient):
        self.gemini = gemini

    async def generate_quiz(self) -> list[QuizQuestion]:
        """Return ten questions, from Gemini when possible."""
        if not self.gemini.configured:
            logger.info("No Gemini key configured, using fallback quiz")
            return fallback_questions()

        try:
            text = await self.gemini.generate_content(QUIZ_PROMPT, max_output_tokens=2048)
            return parse_questions(text)
        except (CoinCoachError, ValueError) as e:
            logger.warning("Error generating quiz, using fallback questions: %s", e)
            return fallback_questions()

    async def start_session(self) -> QuizSession:
        return QuizSession(questions=await self.generate_quiz())


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_score(questions: Sequence[QuizQuestion], user_answers: Sequence[Optional[int]]) -> ScoreResult:
    """Percentage of exact matches, rounded; passing is 80 or above."""
    if not questions:
        return ScoreResult(score=0, passed=False)

    correct = sum(
        1
        for index, question in enumerate(questions)
        if index < len(user_answers) and user_answers[index] == question.correct_answer
    )
    score = _round_half_up(correct / len(questions) * 100)
    return ScoreResult(score=score, passed=score >= PASS_THRESHOLD)


def answer_question(session: QuizSession, index: int, option: int) -> QuizSession:
    """Record the answer for one question of an open session."""
    if session.completed:
        raise InvalidRequest("Quiz has already been submitted")
    if not 0 <= index < len(session.questions):
        raise InvalidRequest(f"Question index {index} is out of range")
    if not 0 <= option < len(session.questions[index].options):
        raise InvalidRequest(f"Option {option} is out of range")
    session.user_answers[index] = option
    return session


def finalize_session(session: QuizSession) -> QuizSession:
    """Score the session and mark it complete. Only allowed once."""
    if session.completed:
        raise InvalidRequest("Quiz has already been submitted")
    result = calculate_score(session.questions, session.user_answers)
    session.score = result.score
    session.passed = result.passed
    session.completed = True
    return session


# Singleton
_generator: QuizGenerator | None = None


def get_quiz_generator() -> QuizGenerator:
    global _generator
    if _generator is None:
        _generator = QuizGenerator(get_gemini_client())
    return _generator
