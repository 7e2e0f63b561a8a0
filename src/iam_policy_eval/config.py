"""Application configuration for iam-policy-eval.

Defines configuration models for logging and evaluation defaults. The config
file is optional; without one every setting takes its default. It is looked
up at the OS-appropriate location (via platformdirs) unless --config names
another path.

Example config.json:
    {
      "logging": {"log_level": "INFO", "log_file": "/tmp/iam-policy-eval.jsonl"},
      "evaluation": {"default_context": {"aws:SecureTransport": "true"}}
    }

Example usage:
    config = AppConfig.load_from_file(get_config_path())
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from iam_policy_eval.constants import CONFIG_FILE_NAME, DEFAULT_LOG_LEVEL
from iam_policy_eval.context.request import ContextValues, normalize_context_keys
from iam_policy_eval.utils.file_helpers import get_app_dir, load_validated_json

__all__ = [
    "AppConfig",
    "EvaluationConfig",
    "LoggingConfig",
    "get_config_path",
]


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration settings.

    Attributes:
        log_level: Logging level. DEBUG also logs every applicable statement.
        log_file: Write JSON lines to this file instead of stderr.
    """

    log_level: Literal["DEBUG", "INFO", "WARNING"] = DEFAULT_LOG_LEVEL
    log_file: Path | None = None

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# Evaluation Configuration
# =============================================================================


class EvaluationConfig(BaseModel):
    """Evaluation defaults.

    Attributes:
        default_context: Context keys added to every request, before keys from
            --context-file and --context.
    """

    default_context: ContextValues = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    @field_validator("default_context", mode="before")
    @classmethod
    def _normalize_keys(cls, value: object) -> object:
        if isinstance(value, dict):
            return normalize_context_keys(value)
        return value


class AppConfig(BaseModel):
    """Main application configuration for iam-policy-eval.

    Attributes:
        logging: Logging configuration (level, optional file).
        evaluation: Evaluation defaults (default context keys).
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from JSON file.

        Args:
            config_path: Path to the config file.

        Returns:
            AppConfig instance with loaded configuration.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config file is invalid or has unknown fields.
        """
        return load_validated_json(
            config_path,
            cls,
            file_type="config",
            recovery_hint="Fix the config file or pass --config with another path.",
            encoding="utf-8",
        )


def get_config_path() -> Path:
    """Get the default config file path.

    Returns:
        Path to config.json in the OS-appropriate config directory.
    """
    return get_app_dir() / CONFIG_FILE_NAME
