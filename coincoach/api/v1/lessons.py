"""Lesson content endpoints."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from coincoach.core.exceptions import ConfigurationError, LessonNotFound, UpstreamError
from coincoach.services.lessons import LessonGenerator, error_lesson, get_lesson_generator, now_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lessons", tags=["lessons"])


@router.get("/{lesson_id}")
async def get_lesson(lesson_id: str, generator: LessonGenerator = Depends(get_lesson_generator)):
    """
    Get lesson content, generating it on first request.

    Unknown or non-numeric ids are 404. Generation problems still return a
    lesson-shaped body (empty sections, placeholder text) with an ``error``
    field and status 500.
    """
    try:
        lesson_number = int(lesson_id)
    except ValueError:
        raise LessonNotFound(lesson_id) from None

    try:
        return await generator.get_lesson(lesson_number)
    except ConfigurationError as e:
        body = error_lesson(lesson_number, e.message, "Please set GEMINI_API_KEY in your environment variables.")
        return JSONResponse(status_code=500, content=body.to_wire())
    except UpstreamError as e:
        logger.error("Error generating lesson content: %s", e.message)
        body = error_lesson(
            lesson_number,
            "Failed to generate lesson content",
            "Unable to fetch content from Gemini API. Please check your API key and try again.",
            message=e.message,
        )
        return JSONResponse(status_code=500, content=body.to_wire())


@router.post("/generate-all")
async def generate_all_lessons(generator: LessonGenerator = Depends(get_lesson_generator)):
    """Regenerate and cache every lesson. Per-lesson failures are listed, not raised."""
    try:
        lessons = await generator.generate_all()
    except ConfigurationError as e:
        return JSONResponse(
            status_code=500,
            content={"error": e.message, "message": "Please set GEMINI_API_KEY in your .env file"},
        )

    return {
        "success": True,
        "lessons": lessons,
        "generatedAt": now_iso(),
    }
