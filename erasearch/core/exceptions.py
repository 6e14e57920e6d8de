"""Unified exception hierarchy for the erasearch hyperparameter search engine.

Every error raised by the engine derives from :class:`ErasearchError` and
carries a standardized error code, a category and free-form context so callers
can log or serialize failures uniformly.

Two families behave very differently:

- Fatal errors (:class:`ConfigurationError`, :class:`ParameterValidationError`,
  :class:`OptimizationError`) are raised immediately and abort the run.
- Recovered errors (:class:`EvaluationError`, :class:`SurrogateNumericalError`)
  are captured where they happen. An evaluation failure becomes a trial scored
  ``-inf``; a surrogate failure falls back to a regularized inverse.

Example Usage:
    from erasearch.core.exceptions import ConfigurationError

    raise ConfigurationError(
        "n_splits must be positive",
        field_name="n_splits",
        field_value=0,
    )
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categorization for automated handling."""

    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    EVALUATION = "evaluation"
    NUMERICAL = "numerical"
    SYSTEM = "system"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErasearchError(Exception):
    """Base exception for all erasearch errors.

    Attributes:
        message: Human-readable error message
        error_code: Standardized error code (e.g., 'OPT_001')
        category: Error category for automated handling
        severity: Error severity level
        details: Additional context data
        suggested_action: Recommended resolution steps
        context: Additional contextual information
        timestamp: When the error occurred
        logger_name: Logger name for this error type
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: dict[str, Any] | None = None,
        suggested_action: str | None = None,
        context: dict[str, Any] | None = None,
        logger_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.suggested_action = suggested_action
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)
        self.logger_name = logger_name or self.__class__.__module__

        # Add any additional keyword arguments to context
        self.context.update(kwargs)

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with a level derived from its severity."""
        logger = logging.getLogger(self.logger_name)
        log_data = {
            "error_code": self.error_code,
            "category": self.category.value,
            "severity": self.severity.value,
            "details": self.details,
            "context": self.context,
        }

        if self.severity == ErrorSeverity.CRITICAL:
            logger.critical(self.message, extra={"error": log_data})
        elif self.severity == ErrorSeverity.HIGH:
            logger.error(self.message, extra={"error": log_data})
        elif self.severity == ErrorSeverity.MEDIUM:
            logger.warning(self.message, extra={"error": log_data})
        else:
            logger.debug(self.message, extra={"error": log_data})

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "category": self.category.value,
            "severity": self.severity.value,
            "details": self.details,
            "suggested_action": self.suggested_action,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        parts = []
        if self.error_code:
            parts.append(f"[{self.error_code}]")
        parts.append(self.message)
        error_str = " ".join(parts)

        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in list(self.details.items())[:3])
            error_str += f" (Details: {details_str})"

        return error_str

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"category={self.category}, "
            f"severity={self.severity}"
            f")"
        )


# =============================================================================
# VALIDATION EXCEPTIONS
# =============================================================================


class ValidationError(ErasearchError):
    """Base class for input and configuration validation errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "VALID_000",
        field_name: str | None = None,
        field_value: Any | None = None,
        validation_rule: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        context.update(
            {
                "field_name": field_name,
                "field_value": field_value,
                "validation_rule": validation_rule,
            }
        )
        kwargs["context"] = context

        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault("logger_name", "erasearch.validation")

        super().__init__(message, error_code, **kwargs)


class ConfigurationError(ValidationError):
    """Fatal configuration errors.

    Raised for unknown model or objective identifiers, non-positive fold
    counts, mismatched parameter-name sets and empty datasets.
    """

    def __init__(
        self,
        message: str,
        config_section: str | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("error_code", "VALID_001")
        kwargs.setdefault("category", ErrorCategory.CONFIGURATION)
        kwargs.setdefault("suggested_action", "Review the optimization configuration")

        context = kwargs.get("context", {})
        context.update({"config_section": config_section})
        kwargs["context"] = context

        super().__init__(message, **kwargs)


# =============================================================================
# OPTIMIZATION EXCEPTIONS
# =============================================================================


class OptimizationError(ErasearchError):
    """Base class for optimization run failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "OPT_000",
        optimization_algorithm: str | None = None,
        parameters: dict[str, Any] | None = None,
        optimization_stage: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        context.update(
            {
                "optimization_algorithm": optimization_algorithm,
                "parameters": parameters,
                "optimization_stage": optimization_stage,
            }
        )
        kwargs["context"] = context

        kwargs.setdefault("category", ErrorCategory.SYSTEM)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("logger_name", "erasearch.optimization")

        super().__init__(message, error_code, **kwargs)


class ParameterValidationError(OptimizationError):
    """Parameter space definition errors."""

    def __init__(
        self,
        message: str,
        parameter_name: str | None = None,
        parameter_value: Any | None = None,
        parameter_bounds: tuple[Any, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("error_code", "OPT_001")
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault("suggested_action", "Review parameter bounds and values")

        context = kwargs.get("context", {})
        context.update(
            {
                "parameter_name": parameter_name,
                "parameter_value": parameter_value,
                "parameter_bounds": parameter_bounds,
            }
        )
        kwargs["context"] = context

        super().__init__(message, **kwargs)


class EvaluationError(ErasearchError):
    """Failure while training, predicting or scoring one fold.

    Never propagated out of the evaluation harness; it is recorded on the
    evaluation outcome so the search can continue.
    """

    def __init__(
        self,
        message: str,
        fold_index: int | None = None,
        parameters: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("error_code", "EVAL_001")
        kwargs.setdefault("category", ErrorCategory.EVALUATION)
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        kwargs.setdefault("logger_name", "erasearch.evaluation")

        context = kwargs.get("context", {})
        context.update({"fold_index": fold_index, "parameters": parameters})
        kwargs["context"] = context

        super().__init__(message, **kwargs)


class SurrogateNumericalError(ErasearchError):
    """Gaussian-process linear algebra failure."""

    def __init__(self, message: str, matrix_size: int | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "GP_001")
        kwargs.setdefault("category", ErrorCategory.NUMERICAL)
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        kwargs.setdefault("logger_name", "erasearch.surrogate")

        context = kwargs.get("context", {})
        context.update({"matrix_size": matrix_size})
        kwargs["context"] = context

        super().__init__(message, **kwargs)


__all__ = [
    "ConfigurationError",
    "ErasearchError",
    "ErrorCategory",
    "ErrorSeverity",
    "EvaluationError",
    "OptimizationError",
    "ParameterValidationError",
    "SurrogateNumericalError",
    "ValidationError",
]
