"""Lesson content generation with a permanent file cache.

A lesson is generated by Gemini the first time it is requested and written
to a single JSON document. After that the cached copy is served as-is;
there is no expiry and no regeneration short of ``generate_all``.

Cache layout::

    {"lessons": {"<id>": LessonContent}, "generatedAt": "<iso timestamp>"}
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from coincoach.config import get_settings
from coincoach.core.exceptions import CoinCoachError, ConfigurationError, LessonNotFound
from coincoach.core.parsing import ParseResult, extract_json_object
from coincoach.integrations.gemini import GeminiClient, get_gemini_client
from coincoach.models.lesson import LessonContent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LessonTopic:
    id: int
    title: str
    prompt: str
    videos: tuple[str, ...]


_WALLETS_PROMPT = """Generate comprehensive educational content about cryptocurrency wallets for beginners. Include:
- A clear, beginner-friendly explanation of what a cryptocurrency wallet is
- Different types of wallets: hot wallets (software, mobile, web) vs cold wallets (hardware, paper)
- How wallets work: public keys (addresses) and private keys
- Security best practices: seed phrases, backups, 2FA
- Common wallet mistakes beginners make and how to avoid them
- Examples of popular wallet options

Provide the response as a JSON object with this exact structure:
{
  "content": "A comprehensive introduction paragraph explaining cryptocurrency wallets in simple terms (3-4 sentences)",
  "sections": [
    {"title": "What is a Cryptocurrency Wallet?", "content": "Detailed explanation here"},
    {"title": "Types of Wallets", "content": "Explain hot vs cold wallets with examples"},
    {"title": "How Wallets Work", "content": "Explain public/private keys, addresses, transactions"},
    {"title": "Security Best Practices", "content": "Important security tips and precautions"},
    {"title": "Common Mistakes to Avoid", "content": "List of mistakes and how to prevent them"}
  ],
  "keyPoints": [
    "A cryptocurrency wallet stores your private keys, not the coins themselves",
    "Cold wallets (hardware/paper) are more secure than hot wallets",
    "Never share your private key or seed phrase with anyone",
    "Always backup your wallet and store backups securely",
    "Research wallet options before choosing one"
  ]
}"""

_MARKET_CAP_PROMPT = """Generate comprehensive educational content about Market Cap vs Price in cryptocurrency. Include:
- Clear explanation of what market capitalization means in crypto
- How market cap is calculated: price × circulating supply
- Why market cap matters more than price alone (examples: Bitcoin vs Shiba Inu)
- Real-world examples comparing cryptocurrencies with similar market caps but different prices
- How to use market cap for investment decisions
- Common misconceptions about price vs market cap

Provide the response as a JSON object with this exact structure:
{
  "content": "A comprehensive introduction explaining why market cap matters more than price in cryptocurrency (3-4 sentences)",
  "sections": [
    {"title": "Understanding Market Capitalization", "content": "Definition and calculation formula"},
    {"title": "Price vs Market Cap: Why the Difference Matters", "content": "Explain with examples like Bitcoin vs meme coins"},
    {"title": "Real-World Examples", "content": "Compare different cryptocurrencies to illustrate the concept"},
    {"title": "Using Market Cap for Investment Decisions", "content": "Practical guidance on evaluating investments"},
    {"title": "Common Misconceptions", "content": "Debunk myths about price vs market cap"}
  ],
  "keyPoints": [
    "Market cap = Price × Circulating Supply",
    "A lower-priced coin isn't necessarily cheaper to invest in",
    "Market cap shows the total value of a cryptocurrency",
    "Compare market caps, not prices, when evaluating investments",
    "Price alone can be misleading; always consider market cap"
  ]
}"""

_CANDLESTICKS_PROMPT = """Generate comprehensive educational content about candlestick charts in cryptocurrency trading. Include:
- History and origin of candlestick charts (Japanese rice trading)
- Anatomy of a candlestick: open, high, low, close (OHLC)
- Bullish vs bearish candles explained
- Essential candlestick patterns: doji, hammer, engulfing patterns, shooting star
- How to read candlestick patterns for trading signals
- Practical tips for using candlesticks in crypto trading
- Common mistakes when reading candlesticks

Provide the response as a JSON object with this exact structure:
{
  "content": "A comprehensive introduction to candlestick charts and their importance in trading (3-4 sentences)",
  "sections": [
    {"title": "What are Candlestick Charts?", "content": "History and basic explanation"},
    {"title": "Reading a Candlestick", "content": "Explain OHLC and candle anatomy"},
    {"title": "Bullish vs Bearish Patterns", "content": "Green/red candles and what they mean"},
    {"title": "Essential Candlestick Patterns", "content": "Doji, hammer, engulfing, shooting star with examples"},
    {"title": "Trading with Candlesticks", "content": "Practical tips and strategies"},
    {"title": "Common Mistakes", "content": "What to avoid when reading candlestick charts"}
  ],
  "keyPoints": [
    "Candlesticks show open, high, low, and close prices in one visual",
    "Green candles indicate price went up; red candles show price went down",
    "Patterns like doji suggest market indecision",
    "Never rely on candlesticks alone; use with other indicators",
    "Practice reading patterns on historical charts before trading"
  ]
}"""

LESSONS: dict[int, LessonTopic] = {
    1: LessonTopic(1, "Cryptocurrency Wallets", _WALLETS_PROMPT, ("AdXpYGnFhs0",)),
    2: LessonTopic(2, "Market Cap vs Price", _MARKET_CAP_PROMPT, ("KkE3kweQKgE",)),
    3: LessonTopic(3, "Candlestick Charts", _CANDLESTICKS_PROMPT, ("AOz1YPOKvEs",)),
}


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class LessonCache:
    """Single JSON file mapping lesson id to generated content."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        try:
            if self.path.exists():
                data = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(data, dict) and isinstance(data.get("lessons"), dict):
                    return data
                logger.warning("Ignoring malformed lesson cache at %s", self.path)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error loading lesson cache: %s", e)
        return {"lessons": {}, "generatedAt": None}

    def get(self, lesson_id: int) -> Optional[dict[str, Any]]:
        return self.load()["lessons"].get(str(lesson_id))

    def save(self, lesson_id: int, content: dict[str, Any]) -> None:
        cache = self.load()
        cache["lessons"][str(lesson_id)] = content
        cache["generatedAt"] = now_iso()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(cache, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            # The lesson is still returned; it will be generated again next time
            logger.error("Error saving lesson %s to cache: %s", lesson_id, e)


def degraded_lesson(text: str) -> dict[str, Any]:
    """Best-effort structure for a response that was not valid JSON."""
    paragraphs = text.split("\n\n")
    intro = paragraphs[0] or text
    rest = "\n\n".join(paragraphs[1:]) or text
    return {
        "content": intro,
        "sections": [
            {"title": "Introduction", "content": intro},
            {"title": "Key Concepts", "content": rest},
        ],
        "keyPoints": [],
    }


def parse_lesson_text(text: str) -> ParseResult:
    """Turn raw model output into lesson fields, degrading when it is not JSON."""
    result = extract_json_object(text)
    if result.ok:
        return result
    return ParseResult.degraded(degraded_lesson(text), result.reason or "unparseable")


def error_lesson(lesson_id: int, error: str, content: str, message: Optional[str] = None) -> LessonContent:
    topic = LESSONS.get(lesson_id)
    return LessonContent(
        id=lesson_id,
        error=error,
        message=message,
        content=content,
        youtube_videos=list(topic.videos) if topic else [],
    )


class LessonGenerator:
    """Serves lessons from the file cache, generating missing ones with Gemini."""

    def __init__(
        self,
        cache: LessonCache,
        gemini: GeminiClient,
        generation_delay_seconds: float = 2.0,
    ):
        self.cache = cache
        self.gemini = gemini
        self.generation_delay_seconds = generation_delay_seconds

    async def get_lesson(self, lesson_id: int) -> dict[str, Any]:
        """Return the cached lesson, or generate and cache it.

        Raises:
            LessonNotFound: ``lesson_id`` is not one of the known lessons.
            ConfigurationError: nothing is cached and no API key is set.
        """
        if lesson_id not in LESSONS:
            raise LessonNotFound(lesson_id)

        cached = self.cache.get(lesson_id)
        if cached is not None:
            return cached

        if not self.gemini.configured:
            raise ConfigurationError("Gemini API key not configured")

        lesson = await self.generate(lesson_id)
        payload = lesson.to_wire()
        self.cache.save(lesson_id, payload)
        return payload

    async def generate(self, lesson_id: int) -> LessonContent:
        """Call Gemini for one lesson and normalize whatever comes back."""
        topic = LESSONS[lesson_id]
        text = await self.gemini.generate_content(topic.prompt, max_output_tokens=8192)

        result = parse_lesson_text(text)
        if not result.ok:
            logger.warning("Lesson %s response was not JSON (%s); using raw text", lesson_id, result.reason)

        fields = dict(result.value)
        fields["youtubeVideos"] = list(topic.videos)
        fields["id"] = lesson_id
        fields["generatedAt"] = now_iso()
        for key in ("error", "message"):
            fields.pop(key, None)

        try:
            return LessonContent.model_validate(fields)
        except ValidationError as e:
            logger.warning("Lesson %s JSON had unexpected shape: %s", lesson_id, e.error_count())
            fallback = degraded_lesson(text)
            fallback.update(id=lesson_id, youtubeVideos=list(topic.videos), generatedAt=fields["generatedAt"])
            return LessonContent.model_validate(fallback)

    async def generate_all(self) -> list[dict[str, Any]]:
        """Regenerate every lesson in order, caching each success.

        Failures are reported per lesson rather than aborting the batch.
        """
        if not self.gemini.configured:
            raise ConfigurationError("Gemini API key not configured")

        results = []
        lesson_ids = sorted(LESSONS)
        for position, lesson_id in enumerate(lesson_ids):
            try:
                lesson = await self.generate(lesson_id)
                payload = lesson.to_wire()
                self.cache.save(lesson_id, payload)
                results.append(payload)
            except CoinCoachError as e:
                logger.error("Failed to generate lesson %s: %s", lesson_id, e.message)
                results.append(error_lesson(
                    lesson_id, f"Failed to generate lesson {lesson_id}: {e.message}", ""
                ).to_wire())

            # Space out calls to stay under the free-tier request rate
            if position < len(lesson_ids) - 1 and self.generation_delay_seconds > 0:
                await asyncio.sleep(self.generation_delay_seconds)

        return results


# Singleton
_generator: LessonGenerator | None = None


def get_lesson_generator() -> LessonGenerator:
    global _generator
    if _generator is None:
        settings = get_settings()
        _generator = LessonGenerator(
            cache=LessonCache(settings.lesson_cache_path),
            gemini=get_gemini_client(),
            generation_delay_seconds=settings.lesson_generation_delay_seconds,
        )
    return _generator
