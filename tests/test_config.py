"""
Unit tests for configuration loading and validation.

Tests environment parsing, YAML overrides and strict validation.
"""

import logging
import os
import tempfile

import pytest
import yaml
from pydantic import ValidationError

from rental_assistant.catalog.loader import DEFAULT_DATA_PATH
from rental_assistant.config.loader import (
    CONFIG_FILE_ENV,
    AssistantConfig,
    ConfigurationError,
    load_config,
    load_config_file,
)


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-1234567890")


@pytest.mark.usefixtures("api_key")
class TestEnvironmentLoading:
    """Test building the configuration from environment variables."""

    def test_defaults(self):
        config = load_config()

        assert config.openai_model == "gpt-3.5-turbo"
        assert config.temperature == 0.2
        assert config.max_tokens == 400
        assert config.data_path == str(DEFAULT_DATA_PATH)
        assert config.response_timeout == 30000
        assert config.timeout_seconds == 30.0
        assert config.debug_mode is False
        assert config.enable_cost_tracking is True
        assert config.cache_system_prompt is True
        assert config.enable_animations is True
        assert config.animation_style == "brain"
        assert config.welcome_message == "default"
        assert config.show_performance_metrics is True

    def test_overrides(self, monkeypatch):
        env = {
            "OPENAI_MODEL": "gpt-4o-mini",
            "TEMPERATURE": "0.7",
            "MAX_TOKENS": "250",
            "RESPONSE_TIMEOUT": "15000",
            "DEBUG_MODE": "true",
            "ENABLE_COST_TRACKING": "false",
            "CACHE_SYSTEM_PROMPT": "0",
            "ENABLE_ANIMATIONS": "no",
            "ANIMATION_STYLE": "dots",
            "WELCOME_MESSAGE": "custom",
            "SHOW_PERFORMANCE_METRICS": "OFF",
            "JSON_DATA_PATH": "/tmp/props.json",
        }
        for name, value in env.items():
            monkeypatch.setenv(name, value)

        config = load_config()

        assert config.openai_model == "gpt-4o-mini"
        assert config.temperature == 0.7
        assert config.max_tokens == 250
        assert config.timeout_seconds == 15.0
        assert config.debug_mode is True
        assert config.enable_cost_tracking is False
        assert config.cache_system_prompt is False
        assert config.enable_animations is False
        assert config.animation_style == "dots"
        assert config.welcome_message == "custom"
        assert config.show_performance_metrics is False
        assert config.data_path == "/tmp/props.json"

    def test_empty_values_use_defaults(self, monkeypatch):
        monkeypatch.setenv("OPENAI_MODEL", "")
        monkeypatch.setenv("MAX_TOKENS", "")

        config = load_config()

        assert config.openai_model == "gpt-3.5-turbo"
        assert config.max_tokens == 400

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY")
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY is required"):
            load_config()

    def test_placeholder_api_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "your-openai-api-key-here")
        with pytest.raises(ConfigurationError, match="placeholder"):
            load_config()

    @pytest.mark.parametrize("var,value,field", [
        ("TEMPERATURE", "warm", "temperature"),
        ("MAX_TOKENS", "lots", "max_tokens"),
        ("RESPONSE_TIMEOUT", "1.5s", "response_timeout"),
        ("DEBUG_MODE", "maybe", "debug_mode"),
    ])
    def test_unparseable_values(self, monkeypatch, var, value, field):
        monkeypatch.setenv(var, value)
        with pytest.raises(ConfigurationError, match=field):
            load_config()


class TestValidation:
    """Test AssistantConfig value checks."""

    @pytest.mark.parametrize("temperature", [-0.1, 2.5])
    def test_temperature_range(self, temperature):
        with pytest.raises(ValidationError, match="Invalid temperature"):
            AssistantConfig(openai_api_key="sk-test", temperature=temperature)

    @pytest.mark.parametrize("max_tokens", [0, 4001])
    def test_max_tokens_range(self, max_tokens):
        with pytest.raises(ValidationError, match="Invalid max tokens"):
            AssistantConfig(openai_api_key="sk-test", max_tokens=max_tokens)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError, match="response_timeout must be > 0"):
            AssistantConfig(openai_api_key="sk-test", response_timeout=0)

    def test_missing_api_key(self):
        with pytest.raises(ValidationError, match="OPENAI_API_KEY is required"):
            AssistantConfig()

    def test_unpriced_model_rejected_with_cost_tracking(self):
        with pytest.raises(ValidationError, match="No pricing for model 'llama3'"):
            AssistantConfig(openai_api_key="sk-test", openai_model="llama3")

    def test_unpriced_model_allowed_without_cost_tracking(self):
        config = AssistantConfig(
            openai_api_key="sk-test", openai_model="llama3", enable_cost_tracking=False
        )
        assert config.openai_model == "llama3"

    def test_unknown_animation_style(self):
        with pytest.raises(ValidationError, match="animation_style"):
            AssistantConfig(openai_api_key="sk-test", animation_style="fireworks")

    def test_unknown_welcome_message(self):
        with pytest.raises(ValidationError, match="welcome_message"):
            AssistantConfig(openai_api_key="sk-test", welcome_message="loud")

    def test_masked_api_key(self):
        config = AssistantConfig(openai_api_key="sk-abcdefghijklmnop")
        assert config.masked_api_key == "sk-a...mnop"
        assert AssistantConfig(openai_api_key="short").masked_api_key == "*****"

    def test_config_is_immutable(self):
        config = AssistantConfig(openai_api_key="sk-test")
        with pytest.raises(ValidationError):
            config.temperature = 1.0


@pytest.mark.usefixtures("api_key")
class TestConfigFile:
    """Test YAML configuration overrides."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_file_values_applied(self):
        path = self._write_config({"temperature": 0.5, "welcome_message": "custom"})
        config = load_config(config_file=path)

        assert config.temperature == 0.5
        assert config.welcome_message == "custom"

    def test_environment_beats_file(self, monkeypatch):
        path = self._write_config({
            "temperature": 0.5,
            "max_tokens": 100,
            "data_path": "/tmp/from-file.json",
        })
        monkeypatch.setenv("TEMPERATURE", "0.9")
        monkeypatch.setenv("JSON_DATA_PATH", "/tmp/from-env.json")

        config = load_config(config_file=path)

        assert config.temperature == 0.9
        assert config.max_tokens == 100
        assert config.data_path == "/tmp/from-env.json"

    def test_file_named_by_environment(self, monkeypatch):
        path = self._write_config({"max_tokens": 321})
        monkeypatch.setenv(CONFIG_FILE_ENV, path)

        assert load_config().max_tokens == 321

    def test_file_values_are_coerced(self):
        path = self._write_config({"enable_cost_tracking": "false", "debug_mode": "yes"})
        config = load_config(config_file=path)

        assert config.enable_cost_tracking is False
        assert config.debug_mode is True

    def test_fractional_max_tokens_rejected(self):
        path = self._write_config({"max_tokens": 2.5})
        with pytest.raises(ConfigurationError, match="max_tokens"):
            load_config(config_file=path)

    def test_timeout_uses_milliseconds_like_the_environment(self, monkeypatch):
        path = self._write_config({"response_timeout": 30000})
        from_file = load_config(config_file=path)

        monkeypatch.setenv("RESPONSE_TIMEOUT", "30000")
        from_env = load_config()

        assert from_file.timeout_seconds == 30.0
        assert from_env.timeout_seconds == from_file.timeout_seconds

    def test_empty_file(self):
        path = self._write_config(None)
        assert load_config_file(path) == {}

    def test_unknown_keys_rejected(self):
        path = self._write_config({"temperature": 0.5, "colour": "blue"})
        with pytest.raises(ConfigurationError, match="Unknown configuration keys"):
            load_config_file(path)

    def test_non_mapping_rejected(self):
        path = self._write_config(["a", "b"])
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_config_file(path)

    def test_missing_file(self):
        with pytest.raises(ConfigurationError, match="Config file not found"):
            load_config_file(os.path.join(self.temp_dir, "missing.yaml"))

    def test_invalid_yaml(self):
        path = os.path.join(self.temp_dir, "bad.yaml")
        with open(path, 'w', encoding='utf-8') as f:
            f.write("temperature: [0.5\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config_file(path)

    def test_wrong_type_in_file(self):
        path = self._write_config({"temperature": "hot"})
        with pytest.raises(ConfigurationError, match="temperature"):
            load_config(config_file=path)


class TestLoggingSetup:
    """Test logging configuration."""

    def test_noisy_libraries_quieted(self):
        AssistantConfig(openai_api_key="sk-test", debug_mode=True).setup_logging()

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("openai").level == logging.WARNING
