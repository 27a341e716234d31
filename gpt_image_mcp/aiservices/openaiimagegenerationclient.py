# aiservices/openaiimagegenerationclient.py
from __future__ import annotations

import logging
from typing import Any, List, Optional

from openai import APIStatusError, OpenAI, OpenAIError
from pydantic import ValidationError

from ..config import Settings, get_settings
from ..schemas import ImagePayload
from .imagegenerationclient import ImageGenerationClient, ImageGenerationError

logger = logging.getLogger(__name__)

IMAGE_MODEL_MARKERS = ("gpt-image", "dall-e")


class OpenAIImageGenerationClient(ImageGenerationClient):
    """
    Works with:
      - api.openai.com (native)
      - OpenAI-compatible image endpoints (set base_url)
    """

    def __init__(self, settings: Optional[Settings] = None, client: Any = None) -> None:
        self.settings = settings or get_settings()

        if client is not None:
            self._client = client
        else:
            self._client = OpenAI(
                api_key=self.settings.openai_api_key.get_secret_value(),
                base_url=self.settings.openai_base_url,
            )

        self._model = self.settings.image_model_id
        self._response_format = self.settings.image_response_format

    @property
    def model(self) -> str:
        return self._model

    # --- Image generation ----------------------------------------------------

    def generate(
        self,
        prompt: str,
        size: str,
        n: int = 1,
        quality: Optional[str] = None,
    ) -> List[ImagePayload]:
        params = {
            "model": self._model,
            "prompt": prompt,
            "size": size,
            "n": n,
        }
        if quality is not None:
            params["quality"] = quality
        if self._response_format:
            params["response_format"] = self._response_format

        try:
            resp = self._client.images.generate(**params)
        except OpenAIError as exc:
            raise self._wrap_error(exc) from exc

        payloads = self._parse_images(resp)
        logger.debug("Image API returned %s of %s requested image(s)", len(payloads), n)
        return payloads

    # --- Model discovery -----------------------------------------------------

    def list_image_models(self) -> List[str]:
        try:
            page = self._client.models.list()
        except OpenAIError as exc:
            raise self._wrap_error(exc) from exc

        return sorted(
            model.id
            for model in page.data
            if any(marker in model.id for marker in IMAGE_MODEL_MARKERS)
        )

    # --- Internals ------------------------------------------------------------

    @staticmethod
    def _wrap_error(exc: OpenAIError) -> ImageGenerationError:
        status_code = exc.status_code if isinstance(exc, APIStatusError) else None
        return ImageGenerationError(str(exc), status_code=status_code)

    @staticmethod
    def _parse_images(resp: Any) -> List[ImagePayload]:
        """Validate the images response into payload models.

        A response without a ``data`` list, or with items that are not objects,
        is an upstream error. Items lacking base64 data are kept; the caller
        reports them per image.
        """
        data = getattr(resp, "data", None)
        if data is None and isinstance(resp, dict):
            data = resp.get("data")
        if not isinstance(data, list):
            raise ImageGenerationError(f"Malformed image response: expected a 'data' list, got {type(data).__name__}")

        payloads: List[ImagePayload] = []
        for position, item in enumerate(data, start=1):
            raw = item.model_dump() if hasattr(item, "model_dump") else item
            try:
                payloads.append(ImagePayload.model_validate(raw))
            except ValidationError as exc:
                raise ImageGenerationError(f"Malformed image {position} in response: {exc}") from exc
        return payloads
