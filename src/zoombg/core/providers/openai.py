"""
OpenAI Images API provider (DALL-E 3).

Requires an API key. Asks for base64 output; if the API answers with a URL
instead, the image bytes are fetched from it with the same session.
"""

import base64
import binascii
import time
from typing import Any

import requests

from zoombg.core.config import DEFAULT_OPENAI_BASE_URL, DEFAULT_OPENAI_MODEL, SERVICE_OPENAI
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

OPENAI_PROFILE = ServiceProfile(
    name=SERVICE_OPENAI,
    display_name="OpenAI",
    requires_api_key=True,
    timeout_ms=60_000,
    key_help="Get your API key from https://platform.openai.com/api-keys "
    "and set it with: zoombg config set-key openai YOUR_KEY",
)

DEFAULT_SIZE = "1792x1024"  # landscape, closest DALL-E 3 size to a 16:9 background


class OpenAIAdapter(ProfileMixin):
    """Text-to-image through the OpenAI Images API."""

    profile = OPENAI_PROFILE

    def __init__(
        self,
        base_url: str = DEFAULT_OPENAI_BASE_URL,
        model: str = DEFAULT_OPENAI_MODEL,
        size: str = DEFAULT_SIZE,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.size = size

    def _build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "prompt": prompt,
            "n": 1,  # DALL-E 3 only supports a single image
            "size": self.size,
            "response_format": "b64_json",
        }

    def _parse_response(
        self,
        session: requests.Session,
        response: requests.Response,
        prompt: str,
        generation_time: float,
    ) -> GenerationResult:
        """Extract image bytes from the JSON body. Raises APIError on failure."""
        try:
            result = response.json()
        except ValueError as e:
            raise APIError(
                f"Failed to parse OpenAI response as JSON: {e}",
                response=response.text,
            ) from e
        data = result.get("data") if isinstance(result, dict) else None
        if not data:
            raise APIError("No image data returned from OpenAI", response=str(result)[:500])
        item = data[0] or {}
        if item.get("b64_json"):
            try:
                image_bytes = base64.b64decode(item["b64_json"], validate=True)
            except (binascii.Error, ValueError) as e:
                raise APIError(f"Invalid base64 image in OpenAI response: {e}") from e
        elif item.get("url"):
            image_bytes = self._fetch(session, item["url"])
        else:
            raise APIError("No image data returned from OpenAI", response=str(result)[:500])
        return build_result(image_bytes, self.profile.name, prompt, generation_time)

    def _fetch(self, session: requests.Session, url: str) -> bytes:
        logger.debug("Fetching OpenAI image from returned URL")
        response = session.get(url, timeout=self.profile.timeout_seconds)
        raise_for_status(response, self.profile)
        return response.content

    def generate_image(
        self,
        prompt: str,
        api_key: str | None = None,
        *,
        session: requests.Session,
    ) -> GenerationResult:
        """Generate an image via OpenAI."""
        if not api_key:
            raise ConfigurationError("OpenAI API key is required.", remedy=self.profile.key_help)
        url = f"{self.base_url}/images/generations"
        headers = bearer_headers(api_key, {"Content-Type": "application/json"})
        logger.info("Generating image via OpenAI model=%s size=%s", self.model, self.size)
        if log_prompts():
            logger.info("Prompt (used): %s", prompt)
        try:
            start_time = time.monotonic()
            response = session.post(
                url,
                headers=headers,
                json=self._build_payload(prompt),
                timeout=self.profile.timeout_seconds,
            )
            logger.debug("OpenAI response status=%s", response.status_code)
            raise_for_status(response, self.profile)
            result = self._parse_response(
                session, response, prompt, time.monotonic() - start_time
            )
        except requests.exceptions.RequestException as e:
            raise translate_request_exception(e, self.profile) from e
        return result
