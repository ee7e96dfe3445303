"""
Configuration management for zoombg.

Two pieces live here:

- ``Config``: process settings read from the environment (retry tunables,
  provider endpoints, host paths). Built once per invocation with
  ``Config.from_env()`` and passed explicitly to the components that need it.
- ``ConfigStore``: the small JSON file holding API keys and the last-used
  service. It is read at most once per process and written with owner-only
  permissions on every write.
"""

import json
import os
import stat
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from zoombg.logging_config import get_logger
from zoombg.utils.exceptions import ConfigurationError, ValidationError

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Service ids accepted everywhere; do not import from zoombg.core.providers (circular import)
SERVICE_HUGGINGFACE = "huggingface"
SERVICE_OPENAI = "openai"
SERVICE_STABILITY = "stability"
KNOWN_SERVICES = (SERVICE_HUGGINGFACE, SERVICE_OPENAI, SERVICE_STABILITY)
DEFAULT_SERVICE = SERVICE_HUGGINGFACE

DEFAULT_HUGGINGFACE_BASE_URL = "https://api-inference.huggingface.co"
DEFAULT_HUGGINGFACE_MODEL = "black-forest-labs/FLUX.1-schnell"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "dall-e-3"
DEFAULT_STABILITY_BASE_URL = "https://api.stability.ai"

DEFAULT_ZOOM_APP_PATH = "/Applications/zoom.us.app"

# Environment variables that override stored keys, checked in order
API_KEY_ENV_VARS: dict[str, tuple[str, ...]] = {
    SERVICE_HUGGINGFACE: ("HF_TOKEN", "HUGGINGFACE_API_KEY"),
    SERVICE_OPENAI: ("OPENAI_API_KEY",),
    SERVICE_STABILITY: ("STABILITY_API_KEY",),
}

LAST_USED_SERVICE_KEY = "lastUsedService"
CONFIG_FILE_MODE = 0o600
CONFIG_DIR_MODE = 0o700


def default_config_path() -> Path:
    """Return $XDG_CONFIG_HOME/zoombg/config.json (or ~/.config/zoombg/config.json)."""
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "zoombg" / "config.json"


def default_zoom_data_dir() -> Path:
    """Return the Zoom data directory that exists once the user has signed in."""
    return Path.home() / "Library" / "Application Support" / "zoom.us" / "data"


def api_key_field(service: str) -> str:
    """Return the stored field name for a service key (e.g. 'openaiApiKey')."""
    return f"{service}ApiKey"


@dataclass
class Config:
    """Process settings for zoombg."""

    # Retry policy tunables
    max_attempts: int = 3
    backoff_base: float = 1.0  # seconds before the second attempt
    backoff_multiplier: float = 2.0
    backoff_cap: float = 30.0  # upper bound for computed delays (seconds)
    backoff_jitter: float = 0.0  # fraction of the computed delay added at random

    # Provider endpoints
    huggingface_base_url: str = DEFAULT_HUGGINGFACE_BASE_URL
    huggingface_model: str = DEFAULT_HUGGINGFACE_MODEL
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    openai_model: str = DEFAULT_OPENAI_MODEL
    stability_base_url: str = DEFAULT_STABILITY_BASE_URL

    # Paths
    config_path: Path = field(default_factory=default_config_path)
    zoom_app_path: Path = field(default_factory=lambda: Path(DEFAULT_ZOOM_APP_PATH))
    zoom_data_dir: Path = field(default_factory=default_zoom_data_dir)

    # Debug: log HTTP request/response summaries (never keys or image bytes)
    debug_api: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create a Config instance from environment variables.

        Environment variables:
            ZOOMBG_MAX_ATTEMPTS, ZOOMBG_BACKOFF_BASE, ZOOMBG_BACKOFF_MULTIPLIER,
            ZOOMBG_BACKOFF_CAP, ZOOMBG_BACKOFF_JITTER: retry tunables
            ZOOMBG_HUGGINGFACE_BASE_URL, ZOOMBG_HUGGINGFACE_MODEL,
            ZOOMBG_OPENAI_BASE_URL, ZOOMBG_OPENAI_MODEL,
            ZOOMBG_STABILITY_BASE_URL: provider endpoints
            ZOOMBG_CONFIG_PATH: location of the key/preference file
            ZOOMBG_ZOOM_APP_PATH, ZOOMBG_ZOOM_DATA_DIR: Zoom install locations
            ZOOMBG_DEBUG_API: log request/response summaries

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """

        def _num_env(name: str, default: float, cast: type) -> Any:
            val = os.getenv(name)
            if val is None or val.strip() == "":
                return default
            try:
                return cast(val)
            except ValueError as e:
                raise ConfigurationError(
                    f"{name} must be a number, got {val!r}.",
                    remedy=f"Unset {name} or give it a numeric value.",
                ) from e

        def _path_env(name: str, default: Path) -> Path:
            val = os.getenv(name)
            return Path(val).expanduser() if val else default

        debug_api = os.getenv("ZOOMBG_DEBUG_API", "").strip().lower() in ("1", "true", "yes")

        return cls(
            max_attempts=_num_env("ZOOMBG_MAX_ATTEMPTS", 3, int),
            backoff_base=_num_env("ZOOMBG_BACKOFF_BASE", 1.0, float),
            backoff_multiplier=_num_env("ZOOMBG_BACKOFF_MULTIPLIER", 2.0, float),
            backoff_cap=_num_env("ZOOMBG_BACKOFF_CAP", 30.0, float),
            backoff_jitter=_num_env("ZOOMBG_BACKOFF_JITTER", 0.0, float),
            huggingface_base_url=os.getenv(
                "ZOOMBG_HUGGINGFACE_BASE_URL", DEFAULT_HUGGINGFACE_BASE_URL
            ),
            huggingface_model=os.getenv("ZOOMBG_HUGGINGFACE_MODEL", DEFAULT_HUGGINGFACE_MODEL),
            openai_base_url=os.getenv("ZOOMBG_OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL),
            openai_model=os.getenv("ZOOMBG_OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            stability_base_url=os.getenv("ZOOMBG_STABILITY_BASE_URL", DEFAULT_STABILITY_BASE_URL),
            config_path=_path_env("ZOOMBG_CONFIG_PATH", default_config_path()),
            zoom_app_path=_path_env("ZOOMBG_ZOOM_APP_PATH", Path(DEFAULT_ZOOM_APP_PATH)),
            zoom_data_dir=_path_env("ZOOMBG_ZOOM_DATA_DIR", default_zoom_data_dir()),
            debug_api=debug_api,
        )

    def validate(self) -> None:
        """
        Validate retry tunables.

        Raises:
            ConfigurationError: If any tunable is out of range
        """
        logger.debug("Validating config")
        if self.max_attempts < 1:
            raise ConfigurationError(
                f"max_attempts must be at least 1, got {self.max_attempts}.",
                remedy="Set ZOOMBG_MAX_ATTEMPTS to 1 or more.",
            )
        if self.backoff_base < 0 or self.backoff_cap < 0:
            raise ConfigurationError(
                "Backoff delays must not be negative.",
                remedy="Check ZOOMBG_BACKOFF_BASE and ZOOMBG_BACKOFF_CAP.",
            )
        if self.backoff_multiplier < 1:
            raise ConfigurationError(
                f"backoff_multiplier must be >= 1, got {self.backoff_multiplier}.",
                remedy="Set ZOOMBG_BACKOFF_MULTIPLIER to 1 or more.",
            )
        if not 0 <= self.backoff_jitter <= 1:
            raise ConfigurationError(
                f"backoff_jitter must be between 0 and 1, got {self.backoff_jitter}.",
                remedy="Set ZOOMBG_BACKOFF_JITTER to a fraction such as 0.3.",
            )


def validate_service_name(service: str) -> str:
    """Return the normalised service name or raise ValidationError."""
    name = (service or "").strip().lower()
    if name not in KNOWN_SERVICES:
        raise ValidationError(
            f"Invalid service {service!r}.",
            field="service",
            remedy=f"Valid services: {', '.join(KNOWN_SERVICES)}",
        )
    return name


class ConfigStore:
    """JSON-backed store for API keys and the last-used service.

    The file is loaded lazily on first read and cached for the rest of the
    process. Writes replace the file atomically and force mode 0600, since the
    file holds credentials. Concurrent writers are not coordinated: the last
    writer wins.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else default_config_path()
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        if not self.path.exists():
            logger.debug("No config file at %s; using defaults", self.path)
            self._data = {}
            return self._data
        try:
            raw = self.path.read_text(encoding="utf-8")
            data = json.loads(raw) if raw.strip() else {}
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Could not read configuration file {self.path}: {e}",
                remedy=f"Fix or delete {self.path} and set your keys again.",
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {self.path} does not contain a JSON object.",
                remedy=f"Delete {self.path} and set your keys again.",
            )
        self._data = data
        return self._data

    def _write(self) -> None:
        data = self._load()
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True, mode=CONFIG_DIR_MODE)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=".config-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2, sort_keys=True)
                    fh.write("\n")
                os.chmod(tmp_name, CONFIG_FILE_MODE)
                os.replace(tmp_name, self.path)
            except BaseException:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Could not remove temporary config file %s", tmp_name)
                raise
        except OSError as e:
            raise ConfigurationError(
                f"Could not write configuration file {self.path}: {e}",
                remedy=f"Check permissions on {directory}.",
            ) from e
        self._enforce_permissions()

    def _enforce_permissions(self) -> None:
        try:
            os.chmod(self.path, CONFIG_FILE_MODE)
        except OSError as e:
            logger.warning("Could not set secure permissions on %s: %s", self.path, e)

    def file_mode(self) -> int | None:
        """Return the permission bits of the config file, or None if absent."""
        try:
            return stat.S_IMODE(self.path.stat().st_mode)
        except FileNotFoundError:
            return None

    def get_api_key(self, service: str) -> str | None:
        """Return the key for a service: environment first, then the stored value."""
        for var in API_KEY_ENV_VARS.get(service, ()):
            value = os.getenv(var, "").strip()
            if value:
                return value
        value = self._load().get(api_key_field(service), "")
        return value or None

    def set_api_key(self, service: str, key: str) -> None:
        """Store a key for a service.

        Raises:
            ValidationError: If the service is unknown
            ConfigurationError: If the key is empty or the file cannot be written
        """
        service = validate_service_name(service)
        if not key or not key.strip():
            raise ConfigurationError("API key cannot be empty")
        self._load()[api_key_field(service)] = key.strip()
        self._write()
        logger.info("Stored API key for %s", service)

    def get_last_used_service(self) -> str:
        """Return the remembered service, or the default if none is stored."""
        value = self._load().get(LAST_USED_SERVICE_KEY) or DEFAULT_SERVICE
        return str(value)

    def has_last_used_service(self) -> bool:
        return bool(self._load().get(LAST_USED_SERVICE_KEY))

    def set_last_used_service(self, service: str) -> None:
        service = validate_service_name(service)
        self._load()[LAST_USED_SERVICE_KEY] = service
        self._write()
        logger.debug("Remembered last-used service %s", service)

    def masked(self) -> dict[str, str]:
        """Return stored values with keys masked, for display."""
        shown: dict[str, str] = {}
        for service in KNOWN_SERVICES:
            key = self.get_api_key(service)
            shown[api_key_field(service)] = _mask(key) if key else ""
        shown[LAST_USED_SERVICE_KEY] = self.get_last_used_service()
        return shown


def _mask(key: str) -> str:
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}…{key[-4:]}"
