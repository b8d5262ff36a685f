"""Lesson content models."""
from typing import Optional

from pydantic import Field, field_validator

from coincoach.models.base import CamelModel


class LessonSection(CamelModel):
    title: str = ""
    content: str = ""


class LessonContent(CamelModel):
    """Generated lesson as cached on disk and served to the UI."""

    id: int
    content: str = ""
    sections: list[LessonSection] = Field(default_factory=list)
    key_points: list[str] = Field(default_factory=list)
    youtube_videos: list[str] = Field(default_factory=list)
    generated_at: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None

    @field_validator("sections", mode="before")
    @classmethod
    def sections_list(cls, v):
        # Non-list becomes empty; stray non-object items are dropped
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, (dict, LessonSection))]

    @field_validator("key_points", "youtube_videos", mode="before")
    @classmethod
    def string_list(cls, v):
        if not isinstance(v, list):
            return []
        return [str(item) for item in v if item is not None]

    @field_validator("content", mode="before")
    @classmethod
    def force_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)
