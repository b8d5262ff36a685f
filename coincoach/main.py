"""CoinCoach API - market data proxy, lesson/quiz generation and trading insights."""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from coincoach.config import get_settings
from coincoach.core.exceptions import CoinCoachError, TooManyRequests
from coincoach.core.logging_config import configure_logging
from coincoach.core.rate_limiting import client_identifier
from coincoach.api.deps import get_chat_limiter, get_pattern_limiter
from coincoach.api.v1.router import router as api_v1_router

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# App-wide per-client ceiling; the chat and pattern endpoints add their own tighter windows
limiter = Limiter(
    key_func=client_identifier,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Startup: periodically drop expired rate-limit windows
    sweepers = [
        asyncio.create_task(limiter_.run_sweeper(settings.rate_limit_sweep_seconds))
        for limiter_ in (get_chat_limiter(), get_pattern_limiter())
    ]
    logger.info("%s started (%s)", settings.app_name, settings.environment.value)
    yield
    # Shutdown
    for task in sweepers:
        task.cancel()
    for task in sweepers:
        with contextlib.suppress(asyncio.CancelledError):
            await task


app = FastAPI(
    title=settings.app_name,
    description="Crypto education API: market data, AI lessons, quiz and trading insights",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,  # Disable docs in production
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS - strict in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    max_age=600,  # Cache preflight for 10 minutes
)


@app.exception_handler(CoinCoachError)
async def coincoach_error_handler(request: Request, exc: CoinCoachError):
    """Render service errors as ``{"error": message}``."""
    headers = exc.headers if isinstance(exc, TooManyRequests) else None
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and parameters are 400, not 422."""
    errors = exc.errors()
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()) if part != 'body')}: {err.get('msg')}"
        for err in errors[:3]
    )
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {detail}"})


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    if settings.is_production:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log requests in development."""
    if settings.is_development:
        logger.info("[%s] %s", request.method, request.url.path)
    return await call_next(request)


# Include API routes
app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "status": "healthy",
        "environment": settings.environment.value,
    }
