"""Trading pattern insights for the simulator.

Sessions with enough trades are summarized and sent to Gemini for a short
structured read. Whenever that is unavailable or returns something unusable,
a rule-based classifier over trade counts, ROI and cash position answers
instead.
"""
import logging
from dataclasses import dataclass

from coincoach.core.exceptions import CoinCoachError
from coincoach.core.parsing import extract_fenced_json
from coincoach.integrations.gemini import GeminiClient, get_gemini_client
from coincoach.models.trading import AnalysisRequest, PatternAnalysis

logger = logging.getLogger(__name__)

MIN_TRADES = 3
MAX_PATTERNS = 4
TREND_WINDOW = 20

NOT_ENOUGH_TRADES = PatternAnalysis(
    patterns=["Continue trading to identify patterns"],
    insights="Make more trades to unlock AI-powered pattern analysis.",
)

UNAVAILABLE = PatternAnalysis(
    patterns=["Analysis temporarily unavailable"],
    insights="Keep trading to build your pattern recognition skills!",
)


@dataclass
class TradingStats:
    total_trades: int
    buy_count: int
    sell_count: int
    avg_buy_price: float
    avg_sell_price: float
    price_trend_pct: float
    roi: float


def compute_stats(request: AnalysisRequest) -> TradingStats:
    buys = [t for t in request.trades if t.type == "buy"]
    sells = [t for t in request.trades if t.type == "sell"]
    avg_buy = sum(t.price for t in buys) / len(buys) if buys else 0.0
    avg_sell = sum(t.price for t in sells) / len(sells) if sells else 0.0

    recent = request.price_history[-TREND_WINDOW:]
    if len(recent) > 1:
        first = recent[0].price or 1
        trend = (recent[-1].price - recent[0].price) / first * 100
    else:
        trend = 0.0

    return TradingStats(
        total_trades=len(request.trades),
        buy_count=len(buys),
        sell_count=len(sells),
        avg_buy_price=avg_buy,
        avg_sell_price=avg_sell,
        price_trend_pct=trend,
        roi=request.roi,
    )


def build_prompt(request: AnalysisRequest, stats: TradingStats) -> str:
    return f"""Analyze this crypto trading session and identify 3-4 specific trading patterns or insights. Be concise and educational.

Trading Data:
- Total trades: {stats.total_trades} ({stats.buy_count} buys, {stats.sell_count} sells)
- Average buy price: ${stats.avg_buy_price:.2f}
- Average sell price: ${stats.avg_sell_price:.2f}
- Current price: ${request.current_price:.2f}
- Price trend (last {TREND_WINDOW} ticks): {stats.price_trend_pct:+.2f}%
- Portfolio ROI: {stats.roi:.2f}%
- Current holdings: {request.holdings:.4f} BTC
- Cash balance: ${request.balance:.2f}

Return a JSON object with this exact structure (no markdown):
{{
  "patterns": ["Pattern 1 description", "Pattern 2 description", "Pattern 3 description"],
  "insights": "A brief 1-2 sentence overall insight about their trading behavior",
  "suggestion": "One actionable tip for improvement"
}}

Focus on:
- Buy/sell timing patterns
- Position sizing behavior
- Risk management observations
- Trend recognition ability"""


def fallback_patterns(request: AnalysisRequest) -> list[str]:
    """Rule-based observations, at most four."""
    patterns = []
    buys = sum(1 for t in request.trades if t.type == "buy")
    sells = sum(1 for t in request.trades if t.type == "sell")

    if buys > sells * 2:
        patterns.append("Heavy accumulation strategy detected - building position")
    elif sells > buys * 2:
        patterns.append("Profit-taking behavior observed - securing gains")
    elif buys > 0 and sells > 0:
        patterns.append("Balanced trading approach - active position management")

    if request.roi > 5:
        patterns.append("Strong positive returns - effective entry timing")
    elif request.roi < -5:
        patterns.append("Learning opportunity - consider waiting for dips to buy")
    else:
        patterns.append("Steady performance - maintaining capital preservation")

    if request.holdings > 0 and request.balance > request.portfolio_value * 0.3:
        patterns.append("Diversified position - good risk management with cash reserve")
    elif request.holdings > 0 and request.balance < 1000:
        patterns.append("Fully invested - high conviction play, monitor closely")

    if len(request.trades) > 10:
        patterns.append("Active trader profile - high engagement with market movements")

    return patterns[:MAX_PATTERNS] if patterns else ["Complete more trades to identify patterns"]


def parse_analysis(text: str) -> PatternAnalysis | None:
    """Read the model's JSON; ``None`` if it lacks a usable pattern list."""
    result = extract_fenced_json(text)
    if not result.ok or not isinstance(result.value, dict):
        return None

    patterns = result.value.get("patterns")
    if not isinstance(patterns, list):
        return None
    patterns = [str(p) for p in patterns if isinstance(p, str) and p.strip()]
    if not patterns:
        return None

    insights = result.value.get("insights")
    suggestion = result.value.get("suggestion")
    return PatternAnalysis(
        patterns=patterns[:MAX_PATTERNS],
        insights=insights if isinstance(insights, str) else None,
        suggestion=suggestion if isinstance(suggestion, str) else None,
    )


class PatternAnalyzer:
    def __init__(self, gemini: GeminiClient):
        self.gemini = gemini

    async def analyze(self, request: AnalysisRequest) -> PatternAnalysis:
        if len(request.trades) < MIN_TRADES:
            return NOT_ENOUGH_TRADES.model_copy()

        try:
            if not self.gemini.configured:
                return PatternAnalysis(patterns=fallback_patterns(request))

            stats = compute_stats(request)
            try:
                text = await self.gemini.generate_content(
                    build_prompt(request, stats), max_output_tokens=500
                )
            except CoinCoachError as e:
                logger.warning("Pattern analysis falling back to rules: %s", e.message)
                return PatternAnalysis(patterns=fallback_patterns(request))

            analysis = parse_analysis(text)
            if analysis is None:
                logger.info("Pattern analysis response unusable, falling back to rules")
                return PatternAnalysis(patterns=fallback_patterns(request))
            return analysis
        except Exception:
            logger.exception("Pattern analysis error")
            return UNAVAILABLE.model_copy()


# Singleton
_analyzer: PatternAnalyzer | None = None


def get_pattern_analyzer() -> PatternAnalyzer:
    global _analyzer
    if _analyzer is None:
        _analyzer = PatternAnalyzer(get_gemini_client())
    return _analyzer
