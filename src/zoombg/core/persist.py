"""
Saving approved images.

Real saves write to a hidden temporary file in the target directory and then
``os.replace`` it onto the final name, so the final path is either absent or
complete. Dry-run saves touch nothing and return the same shape of result.
"""

import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from zoombg.core.image_gen import GenerationMetadata, GenerationResult
from zoombg.logging_config import get_logger
from zoombg.utils.exceptions import FilesystemError, ValidationError

logger = get_logger(__name__)

IMAGE_FILE_MODE = 0o644
FILENAME_PREFIX = "zoombg"
_SLUG_MAX = 40
_UNSAFE = re.compile(r"[^a-z0-9]+")


def slugify(text: str, max_length: int = _SLUG_MAX) -> str:
    """Lowercase ASCII slug of ``text``, at most ``max_length`` characters."""
    slug = _UNSAFE.sub("-", text.lower()).strip("-")
    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")
    return slug


def default_filename(prompt: str, extension: str = "png", now: datetime | None = None) -> str:
    """Return zoombg-<prompt slug>-<YYYYmmdd-HHMMSS>.<ext>."""
    timestamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    slug = slugify(prompt)
    stem = f"{FILENAME_PREFIX}-{slug}-{timestamp}" if slug else f"{FILENAME_PREFIX}-{timestamp}"
    return f"{stem}.{extension or 'png'}"


def filename_from_name(name: str, extension: str = "png") -> str:
    """Turn a user-supplied name into a safe basename with the image extension.

    Raises:
        ValidationError: If nothing usable is left after sanitising
    """
    stem = Path(name).name
    suffix = Path(stem).suffix.lower().lstrip(".")
    if suffix in ("png", "jpg", "jpeg", "webp"):
        stem = stem[: -(len(suffix) + 1)]
    slug = slugify(stem, max_length=80)
    if not slug:
        raise ValidationError(
            f"Cannot build a filename from {name!r}.",
            field="name",
            remedy="Use letters or digits in --name.",
        )
    return f"{slug}.{extension or 'png'}"


def available_path(directory: Path, filename: str) -> Path:
    """Return directory/filename, or the first free ``stem-N.ext`` when it is taken."""
    path = directory / filename
    stem, suffix = path.stem, path.suffix
    counter = 2
    while path.exists():
        path = directory / f"{stem}-{counter}{suffix}"
        counter += 1
    return path


@dataclass(frozen=True)
class SaveResult:
    """Where the image went (or would have gone) and what it was."""

    path: Path
    metadata: GenerationMetadata
    bytes_written: int

    @property
    def dry_run(self) -> bool:
        return self.metadata.dry_run


class Persister:
    """Writes GenerationResult bytes into a target directory."""

    def __init__(self, mode: int = IMAGE_FILE_MODE) -> None:
        self.mode = mode

    def save(
        self,
        result: GenerationResult,
        directory: Path | str,
        filename: str,
        dry_run: bool = False,
    ) -> SaveResult:
        """
        Save ``result`` as ``directory/filename`` without replacing an existing
        background: a taken name gets a numeric suffix.

        Under dry-run nothing on disk is touched; the returned path is the one
        a real save would have used.

        Raises:
            FilesystemError: If the target directory does not exist
            OSError: Any failure while writing, re-raised unchanged after the
                temporary file is removed
        """
        directory = Path(directory)
        path = available_path(directory, filename)
        if path.name != filename:
            logger.info("%s already exists; using %s", filename, path.name)
        metadata = result.as_dry_run(dry_run).metadata

        if dry_run:
            logger.info("[dry-run] Would save %d bytes to %s", len(result.image_bytes), path)
            return SaveResult(path=path, metadata=metadata, bytes_written=0)

        if not directory.is_dir():
            raise FilesystemError(
                f"Target directory does not exist: {directory}",
                path=str(directory),
                remedy="Open Zoom, sign in, and add a virtual background once so the "
                "directory is created.",
            )

        self._atomic_write(path, result.image_bytes)
        logger.info("Saved %d bytes to %s", len(result.image_bytes), path)
        return SaveResult(path=path, metadata=metadata, bytes_written=len(result.image_bytes))

    def _atomic_write(self, path: Path, data: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".zoombg-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_name, self.mode)
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError as cleanup_error:
                logger.warning("Could not remove temporary file %s: %s", tmp_name, cleanup_error)
            raise
