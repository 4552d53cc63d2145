"""Chat API endpoint.

Endpoints:
    POST /chat - Answer a chat message

Examples:
    >>> POST /chat
    >>> {"message": "Hello", "history": [{"role": "model", "text": "Hi!"}]}
    >>> {"ok": true, "reply": "Hello! How can I help?", "model": "gemini-2.5-flash"}

Tests:
    - tests/unit/test_api.py::TestChatEndpoint
"""

import logging

from fastapi import APIRouter, Depends

from gateway.api.dependencies import enforce_rate_limit, get_services
from gateway.core.fallback import run_with_deadline
from gateway.schemas import ChatRequest, ChatResponse
from gateway.services import GatewayServices

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    services: GatewayServices = Depends(get_services),
    client_id: str = Depends(enforce_rate_limit),
) -> ChatResponse:
    """Answer a chat message, falling back across models if needed.

    Args:
        request: Message, optional history and model override

    Returns:
        ChatResponse with the reply text
    """
    history = [turn.model_dump() for turn in request.history]
    reply = await run_with_deadline(
        services.orchestrator.chat(request.message, history=history, model=request.model),
        services.settings.REQUEST_DEADLINE_SECONDS,
    )
    return ChatResponse(reply=reply.text, model=reply.model)
