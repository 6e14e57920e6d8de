"""Configuration for erasearch runs.

Two layers:

- :class:`OptimizationSettings` reads process-wide defaults from ``ERASEARCH_*``
  environment variables (or a ``.env`` file) through pydantic-settings.
- :class:`HyperOptConfig` is the immutable per-run value object handed to the
  evaluation harness and the optimizers. It is built once and never mutated;
  use ``model_copy(update=...)`` to derive a variant.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from erasearch.core.exceptions import ConfigurationError


class BaseConfig(BaseSettings):
    """Base settings class with the common environment-variable behaviour."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )


class OptimizationSettings(BaseConfig):
    """Process-wide defaults for logging and optimizer runs."""

    model_config = SettingsConfigDict(env_prefix="ERASEARCH_")

    environment: str = Field(default="development", description="Deployment environment")
    log_level: str = Field(default="INFO", description="Root log level")
    log_file: str | None = Field(default=None, description="Optional rotating log file path")

    default_seed: int = Field(default=42, description="Seed used when a run does not set one")
    default_n_splits: int = Field(default=3, ge=1, description="Default cross-validation folds")
    max_workers: int | None = Field(
        default=None, ge=1, description="Worker threads for parallel candidate evaluation"
    )
    n_candidates: int = Field(
        default=2000, ge=1, description="Latin hypercube candidates per Bayesian step"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid = ["development", "staging", "production"]
        if v.lower() not in valid:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid}")
        return v.upper()


class HyperOptConfig(BaseModel):
    """
    Immutable configuration for one hyperparameter optimization run.

    Invalid values raise :class:`ConfigurationError` from the constructor.

    ``validation_eras`` is the fixed validation window: when non-empty it
    replaces the computed validation block for every fold.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_type: str = Field(description="Model identifier passed through to the trainer")
    objective: str = Field(default="correlation", description="Objective scorer identifier")
    n_splits: int = Field(default=3, description="Number of cross-validation folds")
    validation_eras: tuple[Any, ...] = Field(
        default=(), description="Fixed validation window applied to every fold"
    )
    targets: tuple[str, ...] = Field(default=(), description="Target names used by the scorer")
    era_column: str = Field(default="era", description="Ordered era column name")
    early_stopping_rounds: int = Field(
        default=10, ge=0, description="Forwarded to trainers that support early stopping"
    )
    verbose: bool = Field(default=True, description="Emit periodic progress logs")
    parallel: bool = Field(default=True, description="Evaluate independent candidates concurrently")
    max_workers: int | None = Field(default=None, ge=1, description="Worker thread cap")
    seed: int = Field(default=42, ge=0, lt=2**32, description="Random seed")

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid optimization configuration: {e}",
                config_section="HyperOptConfig",
            ) from e

    @field_validator("n_splits")
    @classmethod
    def validate_n_splits(cls, v: int) -> int:
        if v <= 0:
            raise ConfigurationError(
                "n_splits must be positive",
                config_section="HyperOptConfig",
                field_name="n_splits",
                field_value=v,
            )
        return v

    @field_validator("objective")
    @classmethod
    def validate_objective(cls, v: str) -> str:
        return v.lower()

    @classmethod
    def create(cls, **kwargs: Any) -> "HyperOptConfig":
        return cls(**kwargs)

    @classmethod
    def from_settings(
        cls,
        model_type: str,
        settings: OptimizationSettings | None = None,
        **overrides: Any,
    ) -> "HyperOptConfig":
        """Build a run config from process-wide settings plus explicit overrides."""
        settings = settings or OptimizationSettings()
        values: dict[str, Any] = {
            "model_type": model_type,
            "n_splits": settings.default_n_splits,
            "max_workers": settings.max_workers,
            "seed": settings.default_seed,
        }
        values.update(overrides)
        return cls.create(**values)
