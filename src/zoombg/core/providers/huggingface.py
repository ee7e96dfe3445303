"""
Hugging Face Inference API provider.

Works without an API key on the free tier (slower, tighter rate limits); a
token is sent as a bearer header when one is configured.
"""

import time

import requests

from zoombg.core.config import (
    DEFAULT_HUGGINGFACE_BASE_URL,
    DEFAULT_HUGGINGFACE_MODEL,
    SERVICE_HUGGINGFACE,
)
from zoombg.core.image_gen import GenerationResult, build_result
from zoombg.core.providers.base import (
    ProfileMixin,
    ServiceProfile,
    bearer_headers,
    raise_for_status,
    translate_request_exception,
)
from zoombg.logging_config import get_logger, log_prompts
from zoombg.utils.exceptions import APIError, RateLimitError

logger = get_logger(__name__)

HUGGINGFACE_PROFILE = ServiceProfile(
    name=SERVICE_HUGGINGFACE,
    display_name="HuggingFace",
    requires_api_key=False,
    timeout_ms=120_000,  # free tier can be slow under load
    key_help="Check your token at https://huggingface.co/settings/tokens "
    "and set it with: zoombg config set-key huggingface YOUR_TOKEN",
)


class HuggingFaceAdapter(ProfileMixin):
    """Text-to-image through the Hugging Face Inference API."""

    profile = HUGGINGFACE_PROFILE

    def __init__(
        self,
        base_url: str = DEFAULT_HUGGINGFACE_BASE_URL,
        model: str = DEFAULT_HUGGINGFACE_MODEL,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model

    def _build_payload(self, prompt: str) -> dict:
        return {"inputs": prompt}

    def _parse_response(
        self, response: requests.Response, prompt: str, generation_time: float
    ) -> GenerationResult:
        """Parse an image body into GenerationResult. JSON bodies are errors."""
        content_type = response.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            raise APIError(
                f"HuggingFace returned no image: {detail}",
                status_code=response.status_code,
                response=str(detail),
            )
        return build_result(response.content, self.profile.name, prompt, generation_time)

    def _do_request(
        self,
        session: requests.Session,
        url: str,
        headers: dict[str, str],
        payload: dict,
        prompt: str,
    ) -> GenerationResult:
        """Perform HTTP POST and parse response. Maps status codes to exceptions."""
        logger.debug("HuggingFace request url=%s model=%s", url, self.model)
        start_time = time.monotonic()
        response = session.post(
            url, headers=headers, json=payload, timeout=self.profile.timeout_seconds
        )
        generation_time = time.monotonic() - start_time
        logger.debug(
            "HuggingFace response status=%s content_type=%s time=%.2fs",
            response.status_code,
            response.headers.get("content-type", ""),
            generation_time,
        )
        # The free tier answers 503 while the model is loading, with an estimate
        if response.status_code == 503:
            estimated = _estimated_time(response)
            if estimated is not None:
                raise RateLimitError(
                    "HuggingFace model is loading.",
                    retry_after=estimated,
                    status_code=503,
                    response=response.text,
                )
        raise_for_status(response, self.profile)
        return self._parse_response(response, prompt, generation_time)

    def generate_image(
        self,
        prompt: str,
        api_key: str | None = None,
        *,
        session: requests.Session,
    ) -> GenerationResult:
        """Generate an image via the Hugging Face Inference API."""
        url = f"{self.base_url}/models/{self.model}"
        headers = bearer_headers(api_key, {"Accept": "image/png"})
        logger.info(
            "Generating image via HuggingFace model=%s free_tier=%s", self.model, not api_key
        )
        if log_prompts():
            logger.info("Prompt (used): %s", prompt)
        try:
            return self._do_request(session, url, headers, self._build_payload(prompt), prompt)
        except requests.exceptions.RequestException as e:
            raise translate_request_exception(e, self.profile) from e


def _estimated_time(response: requests.Response) -> float | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get("estimated_time"), (int, float)):
        return float(data["estimated_time"])
    return None
