"""CoinCoach chat assistant."""
import logging
import re
from typing import Any, Optional

from coincoach.config import get_settings
from coincoach.core.exceptions import ConfigurationError, InvalidRequest
from coincoach.integrations.gemini import Contents, GeminiClient, get_gemini_client, model_text, user_text
from coincoach.models.chat import ChatMessage, ChatRequest, SimulatorSession

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10

_SCRIPT_TAG = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JS_SCHEME = re.compile(r"javascript:", re.IGNORECASE)

EDUCATOR_PROMPT = """You are CoinCoach, a friendly and knowledgeable crypto education assistant.
You help beginners learn about cryptocurrency safely.

Your expertise includes:
- Explaining crypto concepts in simple terms
- Teaching about different cryptocurrencies and their uses
- Explaining blockchain technology
- Helping users understand market analysis
- Teaching about risk management and safe trading practices
- Warning about common scams and how to avoid them
- Explaining DeFi, NFTs, wallets, and exchanges

Be friendly, encouraging, and educational. Use simple language and examples.
Always emphasize safety and warn about risks when relevant.
If asked about specific investment advice, remind users to do their own research (DYOR)."""

ACKNOWLEDGEMENT = "Understood. I am your trading assistant. How can I help you today?"


def _fmt(value: Optional[float], spec: str, default: str) -> str:
    return format(value, spec) if value is not None else default


def simulator_prompt(session: SimulatorSession) -> str:
    return f"""You are an expert crypto trading assistant helping users learn about trading in a simulator.
You have access to their current session data:
- Current BTC Price: ${_fmt(session.current_price, ",", "N/A")}
- Cash Balance: ${_fmt(session.balance, ".2f", "N/A")}
- BTC Holdings: {_fmt(session.holdings, ".4f", "0")} BTC
- Portfolio Value: ${_fmt(session.portfolio_value, ".2f", "N/A")}
- ROI: {_fmt(session.roi, ".2f", "0")}%
- Total Trades Made: {len(session.trades)}
- Trading Status: {"Active" if session.is_playing else "Paused"}

Provide detailed, comprehensive advice about their trades, market analysis, and crypto trading strategies. Include:
- Specific analysis of their current position
- Trading tips and techniques
- Market insights
- Recommendations with reasoning

Be encouraging, educational, and thorough in your responses."""


def sanitize_message(message: Any, max_length: int) -> str:
    """Validate and clean a user message.

    Raises:
        InvalidRequest: missing, not a string, too long, or empty once cleaned.
    """
    if not message or not isinstance(message, str):
        raise InvalidRequest("Message is required and must be a string")
    if len(message) > max_length:
        raise InvalidRequest(f"Message too long. Maximum {max_length} characters allowed.")

    cleaned = _JS_SCHEME.sub("", _SCRIPT_TAG.sub("", message)).strip()
    if not cleaned:
        raise InvalidRequest("Message cannot be empty")
    return cleaned


def build_contents(message: str, session: Optional[SimulatorSession], history: list[ChatMessage]) -> Contents:
    """Assemble the Gemini conversation for one chat turn."""
    contents = [
        {"role": "user" if m.type == "user" else "model", "parts": [{"text": m.content}]}
        for m in history[-HISTORY_LIMIT:]
    ]
    contents.append(user_text(message))

    if not history:
        system = simulator_prompt(session) if session and session.is_playing is not None else EDUCATOR_PROMPT
        contents[:0] = [user_text(system), model_text(ACKNOWLEDGEMENT)]

    return [c for c in contents if c["parts"][0]["text"]]


class ChatAssistant:
    def __init__(self, gemini: GeminiClient, max_message_length: int = 2000):
        self.gemini = gemini
        self.max_message_length = max_message_length

    async def reply(self, request: ChatRequest) -> str:
        """Answer one message. Upstream errors propagate with their status."""
        if not self.gemini.configured:
            logger.error("GEMINI_API_KEY is not set")
            raise ConfigurationError("API key not configured")
        message = sanitize_message(request.message, self.max_message_length)
        contents = build_contents(message, request.session_data, request.conversation_history)
        logger.debug("Sending %d turns to Gemini", len(contents))
        return await self.gemini.generate_content(contents, max_output_tokens=8000)


# Singleton
_assistant: ChatAssistant | None = None


def get_chat_assistant() -> ChatAssistant:
    global _assistant
    if _assistant is None:
        _assistant = ChatAssistant(get_gemini_client(), get_settings().max_message_length)
    return _assistant
