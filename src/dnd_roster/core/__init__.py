"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        RosterError: Base exception for all application errors.
        ConfigurationError: Configuration-related errors.
        ValidationError: Data validation errors.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
"""

from __future__ import annotations

from dnd_roster.core.config import (
    ApiSettings,
    RulesSettings,
    Settings,
    UISettings,
    clear_settings_cache,
    get_settings,
)
from dnd_roster.core.exceptions import (
    AbilityScoreError,
    ApiConnectionError,
    ApiError,
    ApiParseError,
    ApiResponseError,
    CompanionProgressionError,
    ConfigurationError,
    DiceRollError,
    EquipmentError,
    FeatPrerequisiteError,
    InsufficientExperienceError,
    LevelUpError,
    MaxLevelError,
    MulticlassRequirementError,
    NotFoundError,
    ProgressionError,
    RosterError,
    RuleDataError,
    RuleLookupError,
    RulesError,
    ValidationError,
    WizardStepError,
)
from dnd_roster.core.logging import (
    bind_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Base exception
    "RosterError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Rule data exceptions
    "RuleDataError",
    "RuleLookupError",
    # Rules exceptions
    "RulesError",
    "AbilityScoreError",
    "FeatPrerequisiteError",
    "EquipmentError",
    "DiceRollError",
    # Progression exceptions
    "ProgressionError",
    "LevelUpError",
    "MaxLevelError",
    "InsufficientExperienceError",
    "MulticlassRequirementError",
    "CompanionProgressionError",
    "WizardStepError",
    # API exceptions
    "ApiError",
    "ApiConnectionError",
    "ApiResponseError",
    "NotFoundError",
    "ApiParseError",
    # Configuration
    "Settings",
    "ApiSettings",
    "RulesSettings",
    "UISettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
]
