"""Request assembly: tool choice, multimodal content and the chat payload.

All functions here are pure. Capabilities are looked up from the model id
passed in, so a mid-conversation model switch takes effect on the next
request.
"""

from collections.abc import Mapping, Sequence

import structlog

from duckchat.api.schemas import (
    ChatPayload,
    ImageInput,
    ImagePart,
    Message,
    MessageContent,
    Metadata,
    TextPart,
    ToolChoice,
)
from duckchat.core.config import ToolCapabilities
from duckchat.core.models import supports_images, supports_web_search

logger = structlog.get_logger(__name__)


def build_tool_choice(tools: ToolCapabilities, model_id: str) -> ToolChoice:
    """Translate tool flags into the service's ToolChoice block.

    WebSearch is only included for web-search-capable models; for any other
    model the key is absent from the serialized payload, not set to false.
    """
    return ToolChoice(
        web_search=tools.web_search if supports_web_search(model_id) else None,
        news_search=tools.news_search,
        videos_search=tools.videos_search,
        local_search=tools.local_search,
        weather_forecast=tools.weather_forecast,
    )


def _as_image(image: ImageInput | Mapping) -> ImageInput:
    if isinstance(image, ImageInput):
        return image
    return ImageInput.model_validate(dict(image))


def format_content(
    text: str,
    images: Sequence[ImageInput | Mapping] | None,
    model_id: str,
) -> MessageContent:
    """Build message content, attaching images when the model accepts them.

    Args:
        text: User message text.
        images: Optional images ({base64, mimeType}); incomplete ones are skipped.
        model_id: Model that will receive the message.

    Returns:
        The text unchanged, or [TextPart, ImagePart, ...] for image-capable models.
    """
    if not images or not supports_images(model_id):
        if images:
            logger.debug("payload.images_dropped", model=model_id, count=len(images))
        return text

    parts: list[TextPart | ImagePart] = [TextPart(text=text)]
    for raw in images:
        image = _as_image(raw)
        if not image.is_complete():
            logger.debug("payload.image_skipped", reason="missing base64 or mime type")
            continue
        parts.append(ImagePart(
            mime_type=image.mime_type,
            image=f"data:{image.mime_type};base64,{image.base64}",
        ))
    return parts


def build_payload(
    model_id: str,
    tools: ToolCapabilities,
    history: Sequence[Message],
) -> ChatPayload:
    """Assemble {model, metadata.toolChoice, messages, canUseTools} verbatim."""
    return ChatPayload(
        model=model_id,
        metadata=Metadata(tool_choice=build_tool_choice(tools, model_id)),
        messages=list(history),
        can_use_tools=True,
    )
