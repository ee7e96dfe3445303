"""Unit tests for service resolution."""

import pytest

from zoombg.core.config import ConfigStore
from zoombg.core.providers import build_registry
from zoombg.core.resolver import (
    SOURCE_DEFAULT,
    SOURCE_EXPLICIT,
    SOURCE_REMEMBERED,
    choose_service_name,
    resolve_service,
)
from zoombg.utils.exceptions import ConfigurationError, ValidationError


@pytest.fixture
def store(tmp_path) -> ConfigStore:
    return ConfigStore(tmp_path / "config.json")


@pytest.mark.unit
class TestChooseServiceName:
    def test_explicit_wins(self):
        assert choose_service_name("openai", "stability") == ("openai", SOURCE_EXPLICIT)

    def test_remembered_next(self):
        assert choose_service_name(None, "stability") == ("stability", SOURCE_REMEMBERED)
        assert choose_service_name("  ", "stability") == ("stability", SOURCE_REMEMBERED)

    def test_default_last(self):
        assert choose_service_name(None, None) == ("huggingface", SOURCE_DEFAULT)


@pytest.mark.unit
class TestResolveService:
    def test_default_needs_no_key(self, store):
        resolved = resolve_service(None, store, build_registry())
        assert resolved.name == "huggingface"
        assert resolved.api_key is None
        assert resolved.source == SOURCE_DEFAULT
        assert resolved.timeout_ms == 120_000

    def test_remembered_service_used(self, store):
        store.set_api_key("stability", "sk-stab")
        store.set_last_used_service("stability")
        resolved = resolve_service(None, store, build_registry())
        assert resolved.name == "stability"
        assert resolved.api_key == "sk-stab"
        assert resolved.source == SOURCE_REMEMBERED

    def test_explicit_is_normalised(self, store):
        store.set_api_key("openai", "sk-open")
        resolved = resolve_service(" OpenAI ", store, build_registry())
        assert resolved.name == "openai"
        assert resolved.adapter.get_service_name() == "openai"

    def test_invalid_name_lists_valid_services(self, store):
        with pytest.raises(ValidationError) as exc_info:
            resolve_service("dalle", store, build_registry())
        assert "huggingface" in exc_info.value.remedy

    def test_missing_key_fails_before_network(self, store):
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_service("openai", store, build_registry())
        assert "zoombg config set-key openai" in exc_info.value.remedy

    def test_env_key_satisfies_requirement(self, store, monkeypatch):
        monkeypatch.setenv("STABILITY_API_KEY", "env-key")
        assert resolve_service("stability", store, build_registry()).api_key == "env-key"

    def test_hf_token_passed_when_present(self, store, monkeypatch):
        monkeypatch.setenv("HF_TOKEN", "hf_x")
        assert resolve_service(None, store, build_registry()).api_key == "hf_x"
