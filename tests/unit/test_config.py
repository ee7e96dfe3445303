"""Unit tests for config and the persistent key store."""

import json
import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from zoombg.core.config import (
    DEFAULT_SERVICE,
    KNOWN_SERVICES,
    LAST_USED_SERVICE_KEY,
    Config,
    ConfigStore,
    api_key_field,
    default_config_path,
    validate_service_name,
)
from zoombg.utils.exceptions import ConfigurationError, ValidationError


@pytest.mark.unit
class TestConfig:
    def test_defaults(self):
        c = Config()
        assert c.max_attempts == 3
        assert c.backoff_base == 1.0
        assert c.backoff_multiplier == 2.0
        assert c.debug_api is False
        c.validate()

    def test_from_env_uses_env_vars(self, tmp_path):
        env = {
            "ZOOMBG_MAX_ATTEMPTS": "5",
            "ZOOMBG_BACKOFF_BASE": "0.5",
            "ZOOMBG_OPENAI_MODEL": "dall-e-2",
            "ZOOMBG_CONFIG_PATH": str(tmp_path / "c.json"),
            "ZOOMBG_ZOOM_DATA_DIR": str(tmp_path / "zoom"),
            "ZOOMBG_DEBUG_API": "true",
        }
        with patch.dict(os.environ, env, clear=False):
            c = Config.from_env()
        assert c.max_attempts == 5
        assert c.backoff_base == 0.5
        assert c.openai_model == "dall-e-2"
        assert c.config_path == tmp_path / "c.json"
        assert c.zoom_data_dir == tmp_path / "zoom"
        assert c.debug_api is True

    def test_from_env_rejects_non_numeric(self):
        with patch.dict(os.environ, {"ZOOMBG_MAX_ATTEMPTS": "lots"}, clear=False):
            with pytest.raises(ConfigurationError) as exc_info:
                Config.from_env()
        assert "ZOOMBG_MAX_ATTEMPTS" in str(exc_info.value)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"backoff_base": -1.0},
            {"backoff_multiplier": 0.5},
            {"backoff_jitter": 2.0},
        ],
    )
    def test_validate_rejects_out_of_range(self, kwargs):
        with pytest.raises(ConfigurationError):
            Config(**kwargs).validate()

    def test_default_config_path_honours_xdg(self, tmp_path):
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}, clear=False):
            assert default_config_path() == tmp_path / "zoombg" / "config.json"


@pytest.mark.unit
class TestValidateServiceName:
    def test_known_services_pass_and_normalise(self):
        for name in KNOWN_SERVICES:
            assert validate_service_name(name) == name
        assert validate_service_name("  OpenAI ") == "openai"

    def test_unknown_service_lists_valid_ones(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_service_name("midjourney")
        assert exc_info.value.field == "service"
        for name in KNOWN_SERVICES:
            assert name in exc_info.value.remedy

    def test_empty_is_invalid(self):
        with pytest.raises(ValidationError):
            validate_service_name("")


@pytest.mark.unit
class TestConfigStore:
    def _store(self, tmp_path: Path) -> ConfigStore:
        return ConfigStore(tmp_path / "cfg" / "config.json")

    def test_missing_file_means_defaults(self, tmp_path):
        store = self._store(tmp_path)
        assert store.get_api_key("openai") is None
        assert store.get_last_used_service() == DEFAULT_SERVICE
        assert store.has_last_used_service() is False
        assert store.file_mode() is None

    def test_set_api_key_persists_with_owner_only_mode(self, tmp_path):
        store = self._store(tmp_path)
        store.set_api_key("openai", "  sk-test-123  ")
        assert store.file_mode() == 0o600
        data = json.loads(store.path.read_text())
        assert data[api_key_field("openai")] == "sk-test-123"
        assert ConfigStore(store.path).get_api_key("openai") == "sk-test-123"

    def test_every_write_restores_mode(self, tmp_path):
        store = self._store(tmp_path)
        store.set_api_key("stability", "key-1")
        os.chmod(store.path, 0o644)
        store.set_last_used_service("stability")
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    def test_empty_key_rejected(self, tmp_path):
        store = self._store(tmp_path)
        with pytest.raises(ConfigurationError):
            store.set_api_key("openai", "   ")
        assert not store.path.exists()

    def test_unknown_service_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            self._store(tmp_path).set_api_key("dalle", "k")

    def test_environment_overrides_stored_key(self, tmp_path, monkeypatch):
        store = self._store(tmp_path)
        store.set_api_key("openai", "stored")
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        assert store.get_api_key("openai") == "from-env"

    def test_hf_token_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HF_TOKEN", "hf_abc")
        assert self._store(tmp_path).get_api_key("huggingface") == "hf_abc"

    def test_last_used_round_trip(self, tmp_path):
        store = self._store(tmp_path)
        store.set_last_used_service("stability")
        fresh = ConfigStore(store.path)
        assert fresh.has_last_used_service() is True
        assert fresh.get_last_used_service() == "stability"
        assert json.loads(store.path.read_text())[LAST_USED_SERVICE_KEY] == "stability"

    def test_file_read_once_per_process(self, tmp_path):
        store = self._store(tmp_path)
        store.set_api_key("openai", "sk-1")
        reader = ConfigStore(store.path)
        assert reader.get_api_key("openai") == "sk-1"
        store.path.write_text(json.dumps({api_key_field("openai"): "sk-2"}))
        assert reader.get_api_key("openai") == "sk-1"

    def test_corrupt_file_raises_configuration_error(self, tmp_path):
        store = self._store(tmp_path)
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        with pytest.raises(ConfigurationError) as exc_info:
            store.get_api_key("openai")
        assert str(store.path) in exc_info.value.remedy

    def test_non_object_file_raises(self, tmp_path):
        store = self._store(tmp_path)
        store.path.parent.mkdir(parents=True)
        store.path.write_text("[1, 2]")
        with pytest.raises(ConfigurationError):
            store.get_last_used_service()

    def test_masked_hides_keys(self, tmp_path):
        store = self._store(tmp_path)
        store.set_api_key("openai", "sk-abcdefghijklmnop")
        shown = store.masked()
        assert shown[api_key_field("openai")] == "sk-a…mnop"
        assert shown[api_key_field("stability")] == ""
        assert "sk-abcdefghijklmnop" not in json.dumps(shown)
