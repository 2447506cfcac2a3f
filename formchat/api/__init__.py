"""API router for /api endpoints."""

from fastapi import APIRouter

from formchat.api import auth, chat, forms, responses, sessions, settings

router = APIRouter()

router.include_router(forms.router)
router.include_router(responses.router)
router.include_router(chat.router)
router.include_router(settings.router)
router.include_router(auth.router)
router.include_router(sessions.router)
