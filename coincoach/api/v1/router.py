"""Main API v1 router."""
from fastapi import APIRouter

from coincoach.api.v1 import chat, crypto, health, lessons, patterns, quiz

router = APIRouter()

router.include_router(health.router, tags=["health"])
router.include_router(crypto.router)
router.include_router(lessons.router)
router.include_router(quiz.router)
router.include_router(chat.router)
router.include_router(patterns.router)
