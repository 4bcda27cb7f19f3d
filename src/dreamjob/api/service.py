"""Generation pipeline shared by the API routes.

:class:`GenerationService` owns the request lifecycle behind
``POST /api/generate`` and ``POST /api/jobs/{id}/generate``:

1. Check that the provider key is configured.
2. Check that an image was uploaded.
3. Check that the occupation text is not blank.
4. Check that the declared MIME type is an image type.
5. Normalise the photo to the configured size (threadpool).
6. Build the prompt and call the provider once (threadpool).

The first failing step raises the matching
:class:`~dreamjob.core.errors.DreamjobError`.  Anything unexpected is logged
and re-raised as :class:`~dreamjob.core.errors.UnknownServerError`.  The
service holds no per-request state, so one instance serves every request.
"""

from __future__ import annotations

import logging
from typing import Protocol

from fastapi.concurrency import run_in_threadpool

from dreamjob.api.models import GenerationRequest, GenerationResult
from dreamjob.core.config import DreamjobConfig
from dreamjob.core.errors import (
    ConfigurationError,
    DreamjobError,
    InvalidImageType,
    MissingImage,
    MissingOccupation,
    UnknownServerError,
)
from dreamjob.core.image_normalizer import normalize_image
from dreamjob.core.prompt_builder import build_prompt

logger = logging.getLogger(__name__)


class ImageGenerator(Protocol):
    """What the service needs from a provider client."""

    def generate(self, image: bytes, prompt: str, file_name: str = ...) -> str: ...


class GenerationService:
    """Validate uploads and drive normalisation plus the provider call.

    Args:
        cfg: Application configuration (API key, target size).
        client: Provider client used for generation.
    """

    def __init__(self, cfg: DreamjobConfig, client: ImageGenerator) -> None:
        self.config = cfg
        self.client = client

    def validate(
        self,
        image: bytes | None,
        content_type: str | None,
        file_name: str | None,
        job_text: str | None,
    ) -> GenerationRequest:
        """Run validation steps 1-4 and return the validated request.

        Raises:
            ConfigurationError: Provider key missing or still the placeholder.
            MissingImage: No image bytes were uploaded.
            MissingOccupation: Occupation text missing or blank.
            InvalidImageType: Declared MIME type is not ``image/*``.
        """
        if not self.config.is_api_key_configured:
            raise ConfigurationError()
        if not image:
            raise MissingImage()

        occupation = (job_text or "").strip()
        if not occupation:
            raise MissingOccupation()

        declared = (content_type or "").lower()
        if not declared.startswith("image/"):
            raise InvalidImageType()

        return GenerationRequest(
            image=image,
            content_type=declared,
            file_name=file_name or "upload",
            job_text=occupation,
        )

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Normalise the photo and request a portrait from the provider.

        Raises:
            ProcessingError: The photo could not be normalised.
            InvalidCredentials, InsufficientCredits, EmptyResult,
            ProviderTimeout, ProviderError: Provider failures.
            UnknownServerError: Any other exception.
        """
        try:
            normalized = await run_in_threadpool(
                normalize_image,
                request.image,
                self.config.target_width,
                self.config.target_height,
            )

            prompt = build_prompt(request.job_text)
            image_data = await run_in_threadpool(
                self.client.generate, normalized, prompt, _jpeg_name(request.file_name)
            )
        except DreamjobError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error during generation: {e}", exc_info=True)
            raise UnknownServerError() from e

        logger.info(f"Generated portrait for occupation {request.job_text!r}")
        return GenerationResult(image_data=image_data, job_text=request.job_text, prompt=prompt)

    async def run(
        self,
        image: bytes | None,
        content_type: str | None,
        file_name: str | None,
        job_text: str | None,
    ) -> GenerationResult:
        """Validate then generate in one call."""
        request = self.validate(image, content_type, file_name, job_text)
        return await self.generate(request)


def _jpeg_name(file_name: str) -> str:
    stem = file_name.rsplit(".", 1)[0] if "." in file_name else file_name
    return f"{stem or 'upload'}.jpg"
