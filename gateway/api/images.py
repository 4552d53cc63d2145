"""Image API endpoint.

Endpoints:
    POST /image - Generate an image from a prompt

Examples:
    >>> POST /image
    >>> {"prompt": "a red fox in fresh snow", "aspectRatio": "16:9"}
    >>> {"ok": true, "imageBase64": "iVBOR...", "imageDataUrl": "data:image/png;base64,iVBOR...", ...}

Tests:
    - tests/unit/test_api.py::TestImageEndpoint
"""

import base64
import logging

from fastapi import APIRouter, Depends

from gateway.api.dependencies import get_services
from gateway.core.fallback import run_with_deadline
from gateway.schemas import ImageRequest, ImageResponse
from gateway.services import GatewayServices

logger = logging.getLogger(__name__)

router = APIRouter(tags=["image"])


@router.post("/image", response_model=ImageResponse)
async def generate_image(
    request: ImageRequest,
    services: GatewayServices = Depends(get_services),
) -> ImageResponse:
    """Generate an image; the prompt may be rewritten once if nothing comes back."""
    image = await run_with_deadline(
        services.orchestrator.imagine(request.prompt, aspect_ratio=request.aspect_ratio),
        services.settings.REQUEST_DEADLINE_SECONDS,
    )
    encoded = base64.b64encode(image.data).decode("ascii")
    return ImageResponse(
        image_base64=encoded,
        image_data_url=f"data:{image.mime_type};base64,{encoded}",
        mime_type=image.mime_type,
        prompt=image.prompt,
        rewritten=image.rewritten,
    )
