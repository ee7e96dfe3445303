"""
Zoom host application checks and background directory discovery.

Zoom has renamed its custom background directory across versions, so known
names are tried first and a recursive search is the fallback.
"""

from pathlib import Path

from zoombg.core.config import Config
from zoombg.logging_config import get_logger
from zoombg.utils.exceptions import FilesystemError, HostApplicationError

logger = get_logger(__name__)

BACKGROUND_DIR_NAMES = (
    "VirtualBkgnd_Custom",
    "VirtualBackground_Custom",
    "Backgrounds",
    "CustomBackgrounds",
)
BACKGROUND_DIR_PATTERN = "*Virtual*Custom*"


class ZoomHost:
    """Answers questions about the local Zoom installation."""

    def __init__(self, app_path: Path | str, data_dir: Path | str) -> None:
        self.app_path = Path(app_path)
        self.data_dir = Path(data_dir)

    @classmethod
    def from_config(cls, config: Config) -> "ZoomHost":
        return cls(config.zoom_app_path, config.zoom_data_dir)

    def is_installed(self) -> bool:
        return self.app_path.exists()

    def is_logged_in(self) -> bool:
        """Zoom creates its data directory after the first sign-in."""
        return self.data_dir.is_dir()

    def verify(self) -> None:
        """
        Check that Zoom is installed and signed in.

        Raises:
            HostApplicationError: With a remedy for whichever check failed
        """
        if not self.is_installed():
            raise HostApplicationError(
                f"Zoom app not found at {self.app_path}",
                remedy="Zoom is not installed. Install it from https://zoom.us/download "
                "and try again.",
            )
        if not self.is_logged_in():
            raise HostApplicationError(
                f"Zoom data directory not found at {self.data_dir}",
                remedy="Please open Zoom and sign in before using this tool.",
            )
        logger.debug("Zoom installed at %s and signed in", self.app_path)

    def expected_backgrounds_directory(self) -> Path:
        """Where backgrounds would go on a current Zoom. Does not touch the filesystem."""
        return self.data_dir / BACKGROUND_DIR_NAMES[0]

    def get_backgrounds_directory(self) -> Path:
        """
        Find the custom virtual backgrounds directory.

        Raises:
            HostApplicationError: If the Zoom data directory is missing
            FilesystemError: If no backgrounds directory can be found
        """
        if not self.data_dir.is_dir():
            raise HostApplicationError(
                f"Zoom data directory not found at {self.data_dir}",
                remedy="Please open Zoom and sign in before using this tool.",
            )
        for name in BACKGROUND_DIR_NAMES:
            candidate = self.data_dir / name
            if candidate.is_dir():
                return candidate

        matches = sorted(p for p in self.data_dir.rglob(BACKGROUND_DIR_PATTERN) if p.is_dir())
        if matches:
            logger.debug("Found backgrounds directory by search: %s", matches[0])
            return matches[0]

        raise FilesystemError(
            f"Could not find Zoom virtual backgrounds directory under {self.data_dir}",
            path=str(self.data_dir),
            remedy=f"Expected one of: {', '.join(BACKGROUND_DIR_NAMES)}. Add a virtual "
            "background in Zoom once so the directory is created.",
        )
