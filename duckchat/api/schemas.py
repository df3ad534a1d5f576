"""Pydantic models for the chat service wire format.

Field aliases carry the exact JSON names the service expects. Serialize
through `to_wire()` so that optional fields such as ToolChoice.WebSearch are
omitted rather than sent as null.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ImageInput(BaseModel):
    """Caller-supplied image: raw base64 data plus its mime type."""
    model_config = ConfigDict(populate_by_name=True)

    base64: str | None = None
    mime_type: str | None = Field(default=None, alias="mimeType")

    def is_complete(self) -> bool:
        return bool(self.base64) and bool(self.mime_type)


class TextPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Image part; `image` is a data URI (data:<mime>;base64,<data>)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["image"] = "image"
    mime_type: str = Field(..., alias="mimeType")
    image: str


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]
MessageContent = Union[str, list[ContentPart]]


class Message(BaseModel):
    """Single conversation turn. Frozen once built."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: MessageContent

    def text(self) -> str:
        """Plain-text view of the content (image parts are left out)."""
        if isinstance(self.content, str):
            return self.content
        return "".join(part.text for part in self.content if isinstance(part, TextPart))


class ToolChoice(BaseModel):
    """Tool flags. WebSearch is None (omitted) for models that lack it."""
    model_config = ConfigDict(populate_by_name=True)

    web_search: bool | None = Field(default=None, alias="WebSearch")
    news_search: bool = Field(default=False, alias="NewsSearch")
    videos_search: bool = Field(default=False, alias="VideosSearch")
    local_search: bool = Field(default=False, alias="LocalSearch")
    weather_forecast: bool = Field(default=False, alias="WeatherForecast")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class Metadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tool_choice: ToolChoice = Field(..., alias="toolChoice")


class ChatPayload(BaseModel):
    """JSON body of a chat exchange."""
    model_config = ConfigDict(populate_by_name=True)

    model: str
    metadata: Metadata
    messages: list[Message]
    can_use_tools: bool = Field(default=True, alias="canUseTools")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


history_adapter = TypeAdapter(list[Message])
