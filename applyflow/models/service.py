"""
Generative Service Boundary Models

Request/response shapes exchanged with the external generative service.
"""

import base64
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class ContentPart(BaseModel):
    """One piece of request content: text, or binary data with a media type."""

    kind: Literal["text", "binary"]
    text: Optional[str] = None
    data: Optional[bytes] = None
    media_type: Optional[str] = None

    @model_validator(mode="after")
    def check_payload(self) -> "ContentPart":
        """Text parts carry text; binary parts carry bytes and a media type."""
        if self.kind == "text" and self.text is None:
            raise ValueError("Text content part requires text")
        if self.kind == "binary" and (self.data is None or not self.media_type):
            raise ValueError("Binary content part requires data and media_type")
        return self

    @classmethod
    def from_text(cls, text: str) -> "ContentPart":
        return cls(kind="text", text=text)

    @classmethod
    def from_bytes(cls, data: bytes, media_type: str) -> "ContentPart":
        return cls(kind="binary", data=data, media_type=media_type)

    def encoded(self) -> str:
        """Base64 payload for transmission (binary parts only)."""
        if self.data is None:
            raise ValueError("Only binary content parts can be encoded")
        return base64.b64encode(self.data).decode("ascii")


class GenerationRequest(BaseModel):
    """A single call to the generative service."""

    parts: list[ContentPart] = Field(..., min_length=1)
    use_search: bool = Field(
        default=False, description="Activate live web search grounding"
    )
    response_schema: Optional[dict[str, Any]] = Field(
        default=None, description="JSON schema the response text must satisfy"
    )
    system_prompt: Optional[str] = None

    @property
    def has_binary(self) -> bool:
        return any(part.kind == "binary" for part in self.parts)


class GroundingSource(BaseModel):
    """Citation returned by a search-augmented call."""

    url: str
    title: str = ""


class GenerationResponse(BaseModel):
    """Primary text output plus any grounding sources."""

    text: str = ""
    grounding_sources: list[GroundingSource] = Field(default_factory=list)
