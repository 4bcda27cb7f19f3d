"""Stability AI image-to-image REST client.

:class:`StabilityClient` performs exactly one HTTP call per
:meth:`~StabilityClient.generate` invocation and classifies the outcome into
the error taxonomy from :mod:`dreamjob.core.errors`.  There is no retry at
this layer; a failed call surfaces to the caller immediately.

Request
-------
``POST {api_host}/v1/generation/{engine_id}/image-to-image`` as
``multipart/form-data``:

===========================  ==================================
Field                        Value
===========================  ==================================
``init_image``               normalised JPEG bytes
``init_image_mode``          ``IMAGE_STRENGTH``
``image_strength``           ``0.6``
``text_prompts[0][text]``    compiled prompt
``text_prompts[0][weight]``  ``1``
``cfg_scale``                ``7``
``samples``                  ``1``
``steps``                    ``30``
===========================  ==================================

Output dimensions cannot be requested in image-to-image mode; the generated
image has the size of the init image.

Response classification
-----------------------
========================  ========================
Provider outcome          Raised
========================  ========================
401                       InvalidCredentials
402                       InsufficientCredits
other non-2xx             ProviderError
2xx, no artifacts         EmptyResult
timeout                   ProviderTimeout
connection failure        ProviderError
========================  ========================
"""

from __future__ import annotations

import logging

import requests

from dreamjob.core.config import DreamjobConfig
from dreamjob.core.errors import (
    DreamjobError,
    EmptyResult,
    InsufficientCredits,
    InvalidCredentials,
    ProviderError,
    ProviderTimeout,
)

logger = logging.getLogger(__name__)

# Provider tuning constants.  Opaque to this application.
IMAGE_STRENGTH = 0.6
PROMPT_WEIGHT = 1
CFG_SCALE = 7
SAMPLES = 1
STEPS = 30


class StabilityClient:
    """Thin wrapper around the Stability AI image-to-image endpoint.

    Args:
        api_key: Bearer token for the Stability AI API.
        api_host: Base URL of the API (no trailing slash needed).
        engine_id: Engine identifier used in the request path.
        timeout: Seconds to wait for a response.
        session: Optional :class:`requests.Session` to send requests through.
    """

    def __init__(
        self,
        api_key: str,
        *,
        api_host: str = "https://api.stability.ai",
        engine_id: str = "stable-diffusion-xl-1024-v1-0",
        timeout: float = 120.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_host = api_host.rstrip("/")
        self.engine_id = engine_id
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg: DreamjobConfig) -> StabilityClient:
        """Build a client from the application configuration."""
        return cls(
            cfg.stability_api_key,
            api_host=cfg.stability_api_host,
            engine_id=cfg.stability_engine_id,
            timeout=cfg.provider_timeout,
        )

    @property
    def endpoint(self) -> str:
        return f"{self.api_host}/v1/generation/{self.engine_id}/image-to-image"

    def build_form(self, prompt: str) -> dict[str, str]:
        """Return the non-file multipart fields for a generation request."""
        return {
            "init_image_mode": "IMAGE_STRENGTH",
            "image_strength": str(IMAGE_STRENGTH),
            "text_prompts[0][text]": prompt,
            "text_prompts[0][weight]": str(PROMPT_WEIGHT),
            "cfg_scale": str(CFG_SCALE),
            "samples": str(SAMPLES),
            "steps": str(STEPS),
        }

    def generate(self, image: bytes, prompt: str, file_name: str = "init_image.jpg") -> str:
        """Submit one image-to-image request.

        Args:
            image: JPEG bytes of the init image.
            prompt: Compiled text prompt.
            file_name: File name reported for the init image part.

        Returns:
            Base64-encoded payload of the first generated artifact.

        Raises:
            InvalidCredentials: Provider answered 401.
            InsufficientCredits: Provider answered 402.
            EmptyResult: Provider answered 2xx without artifacts.
            ProviderTimeout: No response within ``timeout`` seconds.
            ProviderError: Any other provider or transport failure.
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        files = {"init_image": (file_name, image, "image/jpeg")}

        logger.info(f"Sending image-to-image request to Stability AI ({self.engine_id})")
        try:
            response = self.session.post(
                self.endpoint,
                headers=headers,
                files=files,
                data=self.build_form(prompt),
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            logger.error(f"Stability AI request timed out after {self.timeout}s")
            raise ProviderTimeout() from e
        except requests.RequestException as e:
            logger.error(f"Stability AI request failed: {e}", exc_info=True)
            raise ProviderError() from e

        if not response.ok:
            raise self._classify_error(response)

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("Stability AI returned a non-JSON success body")
            raise ProviderError() from e

        artifacts = payload.get("artifacts") if isinstance(payload, dict) else None
        if not artifacts:
            logger.warning("Stability AI response contained no artifacts")
            raise EmptyResult()

        first = artifacts[0]
        image_data = first.get("base64") if isinstance(first, dict) else None
        if not image_data:
            raise EmptyResult()

        logger.info(f"Stability AI response received (finishReason={first.get('finishReason')})")
        return image_data

    def _classify_error(self, response: requests.Response) -> DreamjobError:
        body = response.text
        logger.error(f"Stability AI API error: {response.status_code} {body[:200]}")

        if response.status_code == 401:
            return InvalidCredentials()
        if response.status_code == 402:
            return InsufficientCredits()

        message = None
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("message"), str) and data["message"]:
            message = data["message"]
        return ProviderError(message)

    def close(self) -> None:
        self.session.close()
