from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from ..schemas import ImagePayload


class ImageGenerationError(RuntimeError):
    """Raised when the upstream image API call fails or returns an unusable response.

    ``status_code`` carries the HTTP status when the API answered with an error.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ImageGenerationClient(ABC):
    """Abstract interface for an image generation client.

    Implementations must provide synchronous generation methods
    used by the rest of the application.
    """

    @abstractmethod
    def generate(
        self,
        prompt: str,
        size: str,
        n: int = 1,
        quality: Optional[str] = None,
    ) -> List[ImagePayload]:
        """Generate ``n`` images from a prompt with a single upstream request.

        Returns the payloads in upstream order. May return fewer than ``n``.
        Must raise :class:`ImageGenerationError` for any failure of the call itself.
        """

    @abstractmethod
    def list_image_models(self) -> List[str]:
        """Return the ids of the image-capable models visible to the credential."""
