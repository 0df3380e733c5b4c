from __future__ import annotations

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field, field_validator

SYSTEM_ROLE = "system"
DEVELOPER_ROLE = "developer"
USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
Role = Literal["system", "developer", "user", "assistant"]


class ImageURL(BaseModel):
    url: str


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str = ""


class ImagePart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageURL

    @classmethod
    def from_base64(cls, data: str, mime_type: str = "image/jpeg") -> "ImagePart":
        return cls(image_url=ImageURL(url=f"data:{mime_type};base64,{data}"))


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]


class Message(BaseModel):
    """A provider-agnostic chat message."""

    role: Role
    content: Union[str, List[ContentPart]]

    @field_validator("content")
    @classmethod
    def _never_empty(cls, value):
        if isinstance(value, list) and not value:
            return [TextPart(text="")]
        return value

    def has_image(self) -> bool:
        if isinstance(self.content, str):
            return False
        return any(isinstance(part, ImagePart) for part in self.content)


__all__ = [
    "ASSISTANT_ROLE",
    "DEVELOPER_ROLE",
    "SYSTEM_ROLE",
    "USER_ROLE",
    "ContentPart",
    "ImagePart",
    "ImageURL",
    "Message",
    "Role",
    "TextPart",
]
