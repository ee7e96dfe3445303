"""
Stability AI provider (Stable Image Core).

Requires an API key. The v2beta endpoint takes multipart form data and
returns raw image bytes when asked for ``image/*``.
"""

import time

import requests

from zoombg.core.config import DEFAULT_STABILITY_BASE_URL, SERVICE_STABILITY
from zoombg.core.image_gen import GenerationResult, build_result
from zoombg.core.providers.base import (
    ProfileMixin,
    ServiceProfile,
    bearer_headers,
    raise_for_status,
    translate_request_exception,
)
from zoombg.logging_config import get_logger, log_prompts
from zoombg.utils.exceptions import APIError, ConfigurationError

logger = get_logger(__name__)

STABILITY_PROFILE = ServiceProfile(
    name=SERVICE_STABILITY,
    display_name="Stability",
    requires_api_key=True,
    timeout_ms=90_000,
    key_help="Get your API key from https://platform.stability.ai/account/keys "
    "and set it with: zoombg config set-key stability YOUR_KEY",
)


class StabilityAdapter(ProfileMixin):
    """Text-to-image through Stability AI's Stable Image Core endpoint."""

    profile = STABILITY_PROFILE

    def __init__(
        self,
        base_url: str = DEFAULT_STABILITY_BASE_URL,
        aspect_ratio: str = "16:9",
        output_format: str = "png",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.aspect_ratio = aspect_ratio
        self.output_format = output_format

    def _build_form(self, prompt: str) -> dict[str, str]:
        return {
            "prompt": prompt,
            "aspect_ratio": self.aspect_ratio,
            "output_format": self.output_format,
        }

    def generate_image(
        self,
        prompt: str,
        api_key: str | None = None,
        *,
        session: requests.Session,
    ) -> GenerationResult:
        """Generate an image via Stability AI."""
        if not api_key:
            raise ConfigurationError(
                "Stability AI API key is required.", remedy=self.profile.key_help
            )
        url = f"{self.base_url}/v2beta/stable-image/generate/core"
        headers = bearer_headers(api_key, {"Accept": "image/*"})
        logger.info("Generating image via Stability aspect_ratio=%s", self.aspect_ratio)
        if log_prompts():
            logger.info("Prompt (used): %s", prompt)
        try:
            start_time = time.monotonic()
            # files= forces multipart/form-data, which this endpoint requires
            response = session.post(
                url,
                headers=headers,
                data=self._build_form(prompt),
                files={"none": ("", b"")},
                timeout=self.profile.timeout_seconds,
            )
            generation_time = time.monotonic() - start_time
        except requests.exceptions.RequestException as e:
            raise translate_request_exception(e, self.profile) from e
        logger.debug(
            "Stability response status=%s content_type=%s time=%.2fs",
            response.status_code,
            response.headers.get("content-type", ""),
            generation_time,
        )
        raise_for_status(response, self.profile)
        if not response.headers.get("content-type", "").startswith("image/"):
            raise APIError(
                "Stability returned no image.",
                status_code=response.status_code,
                response=response.text[:500],
            )
        return build_result(response.content, self.profile.name, prompt, generation_time)
