"""API module.

Contains the chat, speech and image routes served to the front end.
"""

from fastapi import APIRouter

from gateway.api.chat import router as chat_router
from gateway.api.images import router as images_router
from gateway.api.speech import router as speech_router

router = APIRouter()
router.include_router(chat_router)
router.include_router(speech_router)
router.include_router(images_router)

__all__ = ["router"]
