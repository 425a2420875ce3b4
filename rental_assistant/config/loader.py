"""
Configuration management and loading.

AssistantConfig is a pydantic-settings model built once at startup.
Values come from defaults, an optional YAML file and environment
variables, with environment variables taking precedence.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Tuple, Type, Union

import yaml
from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from ..catalog.loader import DEFAULT_DATA_PATH
from ..core.pricing import PRICING_TABLE

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "RENTAL_ASSISTANT_CONFIG"

API_KEY_PLACEHOLDER = "your-openai-api-key-here"

ANIMATION_STYLES = ("dots", "brain", "gears", "pulse", "search")
WELCOME_MESSAGES = ("default", "custom")


class ConfigurationError(ValueError):
    """Raised when the configuration is missing or invalid."""


class AssistantConfig(BaseSettings):
    """Validated runtime configuration, constructed once at startup.

    Each field is read from the environment variable of the same name
    (case-insensitive), except data_path which reads JSON_DATA_PATH.
    Constructor arguments carry the YAML file overrides and lose to
    the environment.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra="forbid",
        env_ignore_empty=True,
        str_strip_whitespace=True,
    )

    openai_api_key: str = Field(default="", validate_default=True, description="OpenAI API key")
    openai_model: str = Field(default="gpt-3.5-turbo", description="Chat model name")
    temperature: float = Field(default=0.2, description="Sampling temperature (0-2)")
    max_tokens: int = Field(default=400, description="Answer token limit (1-4000)")
    data_path: str = Field(
        default=str(DEFAULT_DATA_PATH),
        validation_alias=AliasChoices("JSON_DATA_PATH", "data_path"),
        description="Properties JSON file",
    )
    response_timeout: int = Field(default=30000, description="Per-question timeout in milliseconds")
    debug_mode: bool = Field(default=False, description="Debug logging and error details")
    enable_cost_tracking: bool = Field(default=True, description="Price every answer")
    cache_system_prompt: bool = Field(default=True, description="Build the system prompt once")
    enable_animations: bool = Field(default=True, description="Show the thinking spinner")
    animation_style: str = Field(default="brain", description="Spinner style")
    welcome_message: str = Field(default="default", description="Welcome banner variant")
    show_performance_metrics: bool = Field(default=True, description="Print the cost line")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # .env is loaded into the process environment by the CLI
        return env_settings, init_settings

    @field_validator("openai_api_key")
    @classmethod
    def _check_api_key(cls, value: str) -> str:
        if not value:
            raise ValueError("OPENAI_API_KEY is required. Please set it in your .env file.")
        if value == API_KEY_PLACEHOLDER:
            raise ValueError("OPENAI_API_KEY still holds the placeholder value")
        return value

    @field_validator("openai_model")
    @classmethod
    def _check_model(cls, value: str) -> str:
        if not value:
            raise ValueError("openai_model cannot be empty")
        return value

    @field_validator("temperature")
    @classmethod
    def _check_temperature(cls, value: float) -> float:
        if not 0 <= value <= 2:
            raise ValueError(f"Invalid temperature: {value} (must be 0-2)")
        return value

    @field_validator("max_tokens")
    @classmethod
    def _check_max_tokens(cls, value: int) -> int:
        if not 1 <= value <= 4000:
            raise ValueError(f"Invalid max tokens: {value} (must be 1-4000)")
        return value

    @field_validator("response_timeout")
    @classmethod
    def _check_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("response_timeout must be > 0 milliseconds")
        return value

    @field_validator("animation_style")
    @classmethod
    def _check_animation_style(cls, value: str) -> str:
        if value not in ANIMATION_STYLES:
            raise ValueError(f"animation_style must be one of: {list(ANIMATION_STYLES)}")
        return value

    @field_validator("welcome_message")
    @classmethod
    def _check_welcome_message(cls, value: str) -> str:
        if value not in WELCOME_MESSAGES:
            raise ValueError(f"welcome_message must be one of: {list(WELCOME_MESSAGES)}")
        return value

    @model_validator(mode="after")
    def _check_pricing(self) -> "AssistantConfig":
        if self.enable_cost_tracking and not PRICING_TABLE.supports(self.openai_model):
            raise ValueError(
                f"No pricing for model '{self.openai_model}'. "
                f"Supported models: {', '.join(PRICING_TABLE.models())}"
            )
        return self

    @property
    def timeout_seconds(self) -> float:
        return self.response_timeout / 1000

    @property
    def masked_api_key(self) -> str:
        key = self.openai_api_key
        if len(key) <= 8:
            return "*" * len(key)
        return f"{key[:4]}...{key[-4:]}"

    def setup_logging(self) -> None:
        """Configure Python logging based on the debug flag."""
        level = logging.DEBUG if self.debug_mode else logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        # Quiet noisy libraries
        for name in ("httpx", "httpcore", "openai"):
            logging.getLogger(name).setLevel(logging.WARNING)
        logger.debug("Logging configured: level=%s", logging.getLevelName(level))


def describe_errors(error: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one readable line."""
    problems = []
    for item in error.errors():
        message = item["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        location = ".".join(str(part) for part in item["loc"])
        problems.append(f"{location}: {message}" if location else message)
    return "; ".join(problems)


def load_config(config_file: Union[str, Path, None] = None) -> AssistantConfig:
    """Load and validate the assistant configuration.

    Args:
        config_file: Optional YAML file; falls back to the file named by
            RENTAL_ASSISTANT_CONFIG when not given

    Returns:
        Validated AssistantConfig

    Raises:
        ConfigurationError: If any value is missing or invalid
    """
    path = config_file or os.environ.get(CONFIG_FILE_ENV)
    file_values = load_config_file(path) if path else {}

    try:
        return AssistantConfig(**file_values)
    except ValidationError as e:
        raise ConfigurationError(describe_errors(e))


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read configuration overrides from a YAML file.

    Keys are AssistantConfig field names; unknown keys are rejected.
    Values are coerced and validated along with the rest of the
    configuration.

    Raises:
        ConfigurationError: If the file is missing, invalid or has unknown keys
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    allowed_keys = set(AssistantConfig.model_fields)
    unknown_keys = set(raw_config.keys()) - allowed_keys
    if unknown_keys:
        raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown_keys)}")

    return dict(raw_config)
