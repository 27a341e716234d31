"""Pydantic models shared by the tool handlers and the MCP layer."""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .prompts import get_style_enhanced_prompt

ImageSize = Literal["1024x1024", "1024x1536", "1536x1024"]
ImageQuality = Literal["standard", "hd"]

DEFAULT_SIZE: ImageSize = "1024x1024"
DEFAULT_QUALITY: ImageQuality = "standard"
MIN_IMAGES = 1
MAX_IMAGES = 4


class ErrorKind(str, Enum):
    """Failure categories. Only configuration and upstream errors are fatal."""

    CONFIGURATION = "configuration"
    UPSTREAM = "upstream"
    PERSISTENCE = "persistence"

    @property
    def is_fatal(self) -> bool:
        return self is not ErrorKind.PERSISTENCE


class GenerationRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="The text prompt describing what you want to see")
    size: ImageSize = Field(default=DEFAULT_SIZE, description="The size of the generated image")
    n: int = Field(default=1, ge=MIN_IMAGES, le=MAX_IMAGES, description="Number of images to generate (1-4)")


class VariationRequest(GenerationRequest):
    style: Optional[str] = Field(default=None, description="Optional style guidance for the image generation")
    quality: ImageQuality = Field(default=DEFAULT_QUALITY, description="The quality of the generated image")

    @property
    def enhanced_prompt(self) -> str:
        return get_style_enhanced_prompt(self.prompt, self.style)


class ImagePayload(BaseModel):
    """One image as returned by the upstream API."""

    b64_json: Optional[str] = None
    url: Optional[str] = None
    revised_prompt: Optional[str] = None


class ImageOutcome(BaseModel):
    """Result of persisting one payload of a batch."""

    index: int = Field(..., ge=1, description="1-based position in the upstream response")
    path: Optional[str] = Field(default=None, description="Local path of the saved image")
    revised_prompt: Optional[str] = None
    error: Optional[str] = Field(default=None, description="Why the image could not be saved")
    error_kind: Optional[ErrorKind] = None

    @property
    def saved(self) -> bool:
        return self.path is not None


class ToolResult(BaseModel):
    text: str
    error_kind: Optional[ErrorKind] = None

    @property
    def is_error(self) -> bool:
        return self.error_kind is not None and self.error_kind.is_fatal

    @classmethod
    def failure(cls, kind: ErrorKind, text: str) -> "ToolResult":
        return cls(text=text, error_kind=kind)

