"""Trading pattern analysis endpoint."""
from fastapi import APIRouter, Depends

from coincoach.api.deps import limit_patterns
from coincoach.models.trading import AnalysisRequest
from coincoach.services.patterns import PatternAnalyzer, get_pattern_analyzer

router = APIRouter(prefix="/patterns", tags=["patterns"])


@router.post("", dependencies=[Depends(limit_patterns)])
async def analyze_patterns(request: AnalysisRequest, analyzer: PatternAnalyzer = Depends(get_pattern_analyzer)):
    """Identify trading patterns in a simulator session. Limited to 10 requests per minute per client."""
    analysis = await analyzer.analyze(request)
    return analysis.to_wire()
