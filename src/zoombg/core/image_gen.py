"""
Generation data model.

``GenerationRequest`` is what the workflow asks for, ``GenerationResult`` is
what an adapter hands back. Both are immutable; the workflow derives new
results (e.g. marking dry-run) with ``dataclasses.replace``.
"""

import io
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from PIL import Image, UnidentifiedImageError

from zoombg.core.config import validate_service_name
from zoombg.utils.exceptions import APIError, ValidationError


def validate_prompt(prompt: str | None) -> str:
    """Return the stripped prompt or raise ValidationError if it is empty."""
    if prompt is None or not prompt.strip():
        raise ValidationError(
            "Prompt cannot be empty",
            field="prompt",
            remedy="Describe the background you want, e.g. 'ocean waves at sunset'.",
        )
    return prompt.strip()


def format_from_content_type(content_type: str) -> str:
    """Infer image format from Content-Type header (e.g. 'image/jpeg' -> 'jpeg')."""
    if not content_type or not content_type.strip().lower().startswith("image/"):
        return "png"
    return content_type.split("/", 1)[1].lower().split(";")[0].strip() or "png"


def decode_image(data: bytes, service: str) -> tuple[str, tuple[int, int]]:
    """Check that ``data`` decodes as an image; return (format, size).

    Raises:
        APIError: If the bytes are empty or not a recognisable image
    """
    if not data:
        raise APIError(f"{service} returned an empty image.")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            fmt = (img.format or "png").lower()
            size = img.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise APIError(
            f"{service} returned data that is not a decodable image: {e}",
            response=f"<{len(data)} bytes>",
        ) from e
    return fmt, size


@dataclass(frozen=True)
class GenerationRequest:
    """A single generation request. Immutable once created."""

    prompt: str
    service_name: str
    timeout_ms: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "prompt", validate_prompt(self.prompt))
        object.__setattr__(self, "service_name", validate_service_name(self.service_name))
        if self.timeout_ms <= 0:
            raise ValidationError(
                f"timeout_ms must be positive, got {self.timeout_ms}", field="timeout_ms"
            )


@dataclass(frozen=True)
class GenerationMetadata:
    """Metadata reported for both real and simulated saves."""

    service_name: str
    prompt_used: str
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    dry_run: bool = False

    def as_dict(self) -> dict:
        return {
            "serviceName": self.service_name,
            "promptUsed": self.prompt_used,
            "generatedAt": self.generated_at.isoformat(),
            "dryRun": self.dry_run,
        }


@dataclass(frozen=True)
class GenerationResult:
    """Result of one successful provider call.

    ``image_bytes`` holds exactly what the provider returned; it has been
    checked to decode as an image but is not re-encoded.
    """

    image_bytes: bytes = field(repr=False)
    metadata: GenerationMetadata
    format: str = "png"
    size: tuple[int, int] = (0, 0)
    generation_time: float = 0.0  # seconds spent in the provider call

    @property
    def service_name(self) -> str:
        return self.metadata.service_name

    @property
    def prompt_used(self) -> str:
        return self.metadata.prompt_used

    @property
    def extension(self) -> str:
        return "jpg" if self.format in ("jpeg", "jpg") else self.format

    def as_dry_run(self, dry_run: bool = True) -> "GenerationResult":
        """Return a copy whose metadata carries the dry-run flag."""
        return replace(self, metadata=replace(self.metadata, dry_run=dry_run))


def build_result(
    image_bytes: bytes,
    service: str,
    prompt: str,
    generation_time: float,
) -> GenerationResult:
    """Validate provider bytes and wrap them in a GenerationResult."""
    fmt, size = decode_image(image_bytes, service)
    return GenerationResult(
        image_bytes=image_bytes,
        metadata=GenerationMetadata(service_name=service, prompt_used=prompt),
        format=fmt,
        size=size,
        generation_time=generation_time,
    )
