"""Error types raised by services and rendered by the API as ``{"error": ...}``."""


class CoinCoachError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(CoinCoachError):
    """A required setting (usually an API key) is missing."""

    status_code = 500


class InvalidRequest(CoinCoachError):
    status_code = 400


class LessonNotFound(CoinCoachError):
    status_code = 404

    def __init__(self, lesson_id: int | str):
        super().__init__("Lesson not found")
        self.lesson_id = lesson_id


class UpstreamError(CoinCoachError):
    """A third-party API answered with a non-2xx status or could not be reached."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code)


class UpstreamRateLimited(UpstreamError):
    """Upstream returned 429 and there was nothing cached to fall back on."""

    def __init__(self, message: str = "Rate limited. Please wait a moment and try again."):
        super().__init__(message, 429)


class TooManyRequests(CoinCoachError):
    """A client used up its request quota for the current window."""

    status_code = 429

    def __init__(self, message: str, limit: int, remaining: int = 0, retry_after: int = 60):
        super().__init__(message)
        self.limit = limit
        self.remaining = remaining
        self.retry_after = retry_after

    @property
    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "Retry-After": str(self.retry_after),
        }
