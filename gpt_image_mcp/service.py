"""Tool handlers turning generation requests into saved images and a report."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from .aiservices.imagegenerationclient import ImageGenerationClient, ImageGenerationError
from .aiservices.openaiimagegenerationclient import OpenAIImageGenerationClient
from .config import Settings, get_settings
from .schemas import (
    ErrorKind,
    GenerationRequest,
    ImageOutcome,
    ImagePayload,
    ToolResult,
    VariationRequest,
)
from .storageservice.storageservice import (
    ImageSaveError,
    ImageStorageService,
    get_image_storage_service,
)
from .utils import build_batch_report, generate_image_filename

logger = logging.getLogger(__name__)

MODEL_LABEL = "GPT-Image-1"
MISSING_API_KEY_MESSAGE = (
    "Error: OPENAI_API_KEY environment variable is not set. "
    "Please configure your OpenAI API key."
)


def build_image_client(settings: Settings) -> Optional[ImageGenerationClient]:
    """Return an OpenAI-backed client, or ``None`` when no API key is configured."""
    if not settings.has_api_key:
        logger.error("OPENAI_API_KEY environment variable is required")
        logger.error("Please set your OpenAI API key: export OPENAI_API_KEY=your_api_key_here")
        return None
    return OpenAIImageGenerationClient(settings)


class ImageGenerationService:
    """Runs one upstream generation call per request and saves every returned image."""

    def __init__(
        self,
        client: Optional[ImageGenerationClient],
        storage: ImageStorageService,
    ) -> None:
        self._client = client
        self._storage = storage

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Basic generation
    # ------------------------------------------------------------------
    def generate_images(self, request: GenerationRequest) -> ToolResult:
        if self._client is None:
            return ToolResult.failure(ErrorKind.CONFIGURATION, MISSING_API_KEY_MESSAGE)

        logger.info('Generating %s image(s) with prompt: "%s"', request.n, request.prompt)
        try:
            payloads = self._client.generate(prompt=request.prompt, size=request.size, n=request.n)
        except ImageGenerationError as exc:
            logger.exception("Error generating image: %s", exc)
            return ToolResult.failure(
                ErrorKind.UPSTREAM,
                f"Failed to generate image with {MODEL_LABEL}. Error: {exc}",
            )

        outcomes = self._save_payloads(payloads, request.prompt)
        parameters = [
            ("Prompt", f'"{request.prompt}"'),
            ("Size", request.size),
            ("Number of Images", str(request.n)),
        ]
        return ToolResult(text=self._report(MODEL_LABEL, parameters, outcomes))

    # ------------------------------------------------------------------
    # Generation with style and quality
    # ------------------------------------------------------------------
    def generate_images_with_variations(self, request: VariationRequest) -> ToolResult:
        if self._client is None:
            return ToolResult.failure(ErrorKind.CONFIGURATION, MISSING_API_KEY_MESSAGE)

        enhanced_prompt = request.enhanced_prompt
        logger.info('Generating %s image(s) with enhanced prompt: "%s"', request.n, enhanced_prompt)
        try:
            payloads = self._client.generate(
                prompt=enhanced_prompt,
                size=request.size,
                n=request.n,
                quality=request.quality,
            )
        except ImageGenerationError as exc:
            logger.exception("Error generating image with variations: %s", exc)
            return ToolResult.failure(
                ErrorKind.UPSTREAM,
                f"Failed to generate image with {MODEL_LABEL} variations. Error: {exc}",
            )

        outcomes = self._save_payloads(payloads, enhanced_prompt)
        parameters = [("Original Prompt", f'"{request.prompt}"')]
        if enhanced_prompt != request.prompt:
            parameters.append(("Style", request.style.strip()))
        parameters += [
            ("Enhanced Prompt", f'"{enhanced_prompt}"'),
            ("Size", request.size),
            ("Quality", request.quality),
            ("Number of Images", str(request.n)),
        ]
        return ToolResult(text=self._report(f"{MODEL_LABEL} with variations", parameters, outcomes))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _save_payloads(self, payloads: Sequence[ImagePayload], prompt: str) -> List[ImageOutcome]:
        logger.info("Saving images locally...")
        return [
            self._save_payload(index, payload, prompt)
            for index, payload in enumerate(payloads, start=1)
        ]

    def _save_payload(self, index: int, payload: ImagePayload, prompt: str) -> ImageOutcome:
        filename = generate_image_filename(prompt, index)
        try:
            if not payload.b64_json:
                raise ImageSaveError(self._missing_data_reason(payload))
            local_path = self._storage.save_base64_image(payload.b64_json, filename)
        except ImageSaveError as exc:
            logger.warning("Failed to save image %s: %s", index, exc)
            return ImageOutcome(
                index=index,
                revised_prompt=payload.revised_prompt,
                error=str(exc),
                error_kind=ErrorKind.PERSISTENCE,
            )

        logger.info("Saved: %s", filename)
        return ImageOutcome(index=index, path=local_path, revised_prompt=payload.revised_prompt)

    @staticmethod
    def _missing_data_reason(payload: ImagePayload) -> str:
        if payload.url:
            return f"No base64 data received (upstream returned a URL instead: {payload.url})"
        return "No base64 data received"

    def _report(
        self,
        model_label: str,
        parameters: Sequence[Tuple[str, str]],
        outcomes: Sequence[ImageOutcome],
    ) -> str:
        return build_batch_report(
            model_label,
            parameters,
            outcomes,
            images_dir_name=self._storage.images_dir_name,
        )


@lru_cache
def get_image_service() -> ImageGenerationService:
    settings = get_settings()
    return ImageGenerationService(
        build_image_client(settings),
        get_image_storage_service(settings.images_dir),
    )
