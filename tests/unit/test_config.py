"""Unit tests for settings loading."""

import pytest

from config import ConfigError, Settings, load_settings


class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings(env={})
        assert settings.store_backend == "json"
        assert settings.research_workers == 3
        assert settings.research_stale_after_seconds == 0
        assert settings.share_inflight_fetches is False

    def test_env_overrides(self):
        settings = load_settings(env={
            "STORE_BACKEND": "redis",
            "REDIS_HOST": "cache.local",
            "REDIS_PORT": "6380",
            "REDIS_TLS_ENABLED": "true",
            "SHARE_INFLIGHT_FETCHES": "yes",
            "RESEARCH_WORKERS": "5",
        })
        assert settings.store_backend == "redis"
        assert settings.redis_host == "cache.local"
        assert settings.redis_port == 6380
        assert settings.redis_tls is True
        assert settings.share_inflight_fetches is True
        assert settings.research_workers == 5

    def test_yaml_then_env(self, tmp_path):
        path = tmp_path / "scout.yaml"
        path.write_text("store_backend: memory\nport: 8080\nllm_model: yaml-model\nbogus: 1\n")

        settings = load_settings(path, env={"LLM_MODEL": "env-model"})

        assert settings.store_backend == "memory"
        assert settings.port == 8080
        assert settings.llm_model == "env-model"

    def test_config_path_from_env(self, tmp_path):
        path = tmp_path / "scout.yaml"
        path.write_text("store_backend: memory\n")
        settings = load_settings(env={"PROFILE_SCOUT_CONFIG": str(path)})
        assert settings.store_backend == "memory"

    def test_missing_yaml_is_fine(self, tmp_path):
        assert load_settings(tmp_path / "absent.yaml", env={}).store_backend == "json"

    def test_yaml_must_be_mapping(self, tmp_path):
        path = tmp_path / "scout.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_settings(path, env={})

    @pytest.mark.parametrize("env", [
        {"STORE_BACKEND": "mongo"},
        {"STORE_BACKEND": "redis"},  # no connection details
        {"RESEARCH_WORKERS": "0"},
        {"RESEARCH_WORKERS": "many"},
        {"REDIS_TLS_ENABLED": "maybe"},
        {"LLM_PROVIDER": "carrier-pigeon"},
    ])
    def test_invalid(self, env):
        with pytest.raises(ConfigError):
            load_settings(env=env)

    def test_validate_returns_settings(self):
        settings = Settings(store_backend="memory")
        assert settings.validate() is settings
