"""API and domain models."""
from coincoach.models.chat import ChatMessage, ChatRequest, ChatResponse, SimulatorSession
from coincoach.models.lesson import LessonContent, LessonSection
from coincoach.models.market import CoinMarketData, CoinWithRisk, PriceHistory, SimplePrice
from coincoach.models.quiz import QuizQuestion, QuizSession, ScoreRequest, ScoreResult
from coincoach.models.trading import AnalysisRequest, PatternAnalysis, PricePoint, TradeRecord

__all__ = [
    "AnalysisRequest",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "CoinMarketData",
    "CoinWithRisk",
    "LessonContent",
    "LessonSection",
    "PatternAnalysis",
    "PricePoint",
    "PriceHistory",
    "QuizQuestion",
    "QuizSession",
    "ScoreRequest",
    "ScoreResult",
    "SimplePrice",
    "SimulatorSession",
    "TradeRecord",
]
