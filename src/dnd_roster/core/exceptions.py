"""Custom exception hierarchy for the D&D 5E character roster.

Every error raised by the library derives from RosterError, so the UI
can catch a single type at its boundary while each domain keeps its own
context in ``details``.

Example:
    >>> from dnd_roster.core.exceptions import RuleLookupError
    >>> raise RuleLookupError("Unknown class", table="classes", key="gunslinger")
"""

from __future__ import annotations

from typing import Any


class RosterError(Exception):
    """Base exception for all character roster errors.

    Attributes:
        message: Human-readable error description.
        details: Additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(RosterError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(RosterError):
    """Raised when user input or a record fails validation."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


# =============================================================================
# Rule Data Exceptions
# =============================================================================


class RuleDataError(RosterError):
    """Raised when a bundled rule table cannot be loaded or indexed.

    This covers unreadable JSON, schema violations and index key
    collisions between two different entries.
    """

    def __init__(
        self,
        message: str,
        *,
        source_file: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if source_file:
            combined_details["source_file"] = source_file
        super().__init__(message, details=combined_details)


class RuleLookupError(RosterError):
    """Raised when a race, class, feat or other rule entry is not found."""

    def __init__(
        self,
        message: str,
        *,
        table: str | None = None,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if table:
            combined_details["table"] = table
        if key is not None:
            combined_details["key"] = key
        super().__init__(message, details=combined_details)


# =============================================================================
# Rules Engine Exceptions
# =============================================================================


class RulesError(RosterError):
    """Base exception for character-building rule violations."""


class AbilityScoreError(RulesError):
    """Raised when ability score generation or assignment breaks a rule.

    This includes point buy budgets, standard array misuse and racial
    choice bonuses placed on abilities that already have a fixed bonus.
    """


class FeatPrerequisiteError(RulesError):
    """Raised when a feat is taken without meeting its prerequisites."""

    def __init__(
        self,
        message: str,
        *,
        feat: str | None = None,
        status: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if feat:
            combined_details["feat"] = feat
        if status:
            combined_details["status"] = status
        super().__init__(message, details=combined_details)


class EquipmentError(RulesError):
    """Raised when starting equipment or gold choices are invalid."""


class DiceRollError(RulesError):
    """Raised when dice rolling operations fail.

    This typically occurs when parsing invalid dice notation.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


# =============================================================================
# Progression Exceptions
# =============================================================================


class ProgressionError(RosterError):
    """Base exception for level-up and companion progression errors."""


class LevelUpError(ProgressionError):
    """Raised when level-up choices are invalid (bad HP roll, bad ASI)."""


class MaxLevelError(ProgressionError):
    """Raised when a character or companion is already level 20."""


class InsufficientExperienceError(ProgressionError):
    """Raised when a character lacks the XP for the next level."""

    def __init__(
        self,
        message: str,
        *,
        current_xp: int | None = None,
        xp_needed: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the XP shortfall.

        Args:
            message: Human-readable error description.
            current_xp: The character's current experience.
            xp_needed: Experience required for the next level.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_xp is not None:
            combined_details["current_xp"] = current_xp
        if xp_needed is not None:
            combined_details["xp_needed"] = xp_needed
        super().__init__(message, details=combined_details)


class MulticlassRequirementError(ProgressionError):
    """Raised when multiclass ability prerequisites are not met."""

    def __init__(
        self,
        message: str,
        *,
        class_name: str | None = None,
        requirements: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if class_name:
            combined_details["class_name"] = class_name
        if requirements:
            combined_details["requirements"] = requirements
        super().__init__(message, details=combined_details)


class CompanionProgressionError(ProgressionError):
    """Raised when a companion operation does not fit its progression type."""

    def __init__(
        self,
        message: str,
        *,
        progression_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if progression_type:
            combined_details["progression_type"] = progression_type
        super().__init__(message, details=combined_details)


# =============================================================================
# Wizard Exceptions
# =============================================================================


class WizardStepError(RosterError):
    """Raised when the creation wizard cannot move past its current step."""

    def __init__(
        self,
        message: str,
        *,
        step: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if step:
            combined_details["step"] = step
        super().__init__(message, details=combined_details)


# =============================================================================
# REST Client Exceptions
# =============================================================================


class ApiError(RosterError):
    """Base exception for all backend API errors."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API error with request context.

        Args:
            message: Human-readable error description.
            endpoint: The request path that failed.
            status_code: HTTP status code, when a response was received.
            details: Optional dictionary containing additional error context.
        """
        self.status_code = status_code
        combined_details = details or {}
        if endpoint:
            combined_details["endpoint"] = endpoint
        if status_code is not None:
            combined_details["status_code"] = status_code
        super().__init__(message, details=combined_details)


class ApiConnectionError(ApiError):
    """Raised when the backend cannot be reached or the request times out."""


class ApiResponseError(ApiError):
    """Raised when the backend answers with a non-2xx status."""


class NotFoundError(ApiResponseError):
    """Raised when the backend answers 404 for a character or companion."""


class ApiParseError(ApiError):
    """Raised when a response body is not the JSON the endpoint promises."""


__all__ = [
    # Base exception
    "RosterError",
    # Configuration
    "ConfigurationError",
    "ValidationError",
    # Rule data
    "RuleDataError",
    "RuleLookupError",
    # Rules engine
    "RulesError",
    "AbilityScoreError",
    "FeatPrerequisiteError",
    "EquipmentError",
    "DiceRollError",
    # Progression
    "ProgressionError",
    "LevelUpError",
    "MaxLevelError",
    "InsufficientExperienceError",
    "MulticlassRequirementError",
    "CompanionProgressionError",
    # Wizard
    "WizardStepError",
    # REST client
    "ApiError",
    "ApiConnectionError",
    "ApiResponseError",
    "NotFoundError",
    "ApiParseError",
]
