"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the D&D character roster test suite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator

    from dnd_roster.engine.dice import DiceRoller
    from dnd_roster.models.character import Character
    from dnd_roster.rules.tables import RuleBook


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings and rule table caches around each test."""
    from dnd_roster.core.config import clear_settings_cache
    from dnd_roster.rules.tables import clear_rulebook_cache

    clear_settings_cache()
    clear_rulebook_cache()
    yield
    clear_settings_cache()
    clear_rulebook_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DND_ROSTER_API_BASE_URL": "http://roster.test:8080/",
        "DND_ROSTER_DEBUG": "true",
        "DND_ROSTER_LOG_LEVEL": "DEBUG",
        "DND_ROSTER_RULES_ENFORCE_MULTICLASS_PREREQUISITES": "false",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Rule Fixtures
# =============================================================================


@pytest.fixture
def rulebook() -> RuleBook:
    """Provide the bundled rule tables."""
    from dnd_roster.rules.tables import get_rulebook

    return get_rulebook()


@pytest.fixture
def dice_roller() -> DiceRoller:
    """Provide a seeded dice roller for reproducible tests."""
    from dnd_roster.engine.dice import DiceRoller

    return DiceRoller(seed=42)


# =============================================================================
# Record Fixtures
# =============================================================================


@pytest.fixture
def sample_ability_scores() -> dict[str, int]:
    """Provide final ability scores for a fighter.

    Returns:
        Scores keyed by the backend's short names.
    """
    return {
        "str": 16,
        "dex": 14,
        "con": 15,
        "int": 10,
        "wis": 12,
        "cha": 8,
    }


@pytest.fixture
def sample_character_record(sample_ability_scores: dict[str, int]) -> dict[str, Any]:
    """Provide a character row as the backend returns it.

    JSON columns are strings, as stored.
    """
    import json

    return {
        "id": 7,
        "name": "Thorin Oakenshield",
        "first_name": "Thorin",
        "last_name": "Oakenshield",
        "race": "dwarf",
        "subrace": "Mountain Dwarf",
        "class": "fighter",
        "subclass": None,
        "background": "soldier",
        "alignment": "LG",
        "lifestyle": "modest",
        "level": 3,
        "class_levels": json.dumps([{"class": "fighter", "level": 3, "subclass": "Champion"}]),
        "hit_dice": json.dumps({"d10": 3}),
        "experience": 2700,
        "experience_to_next_level": 2700,
        "current_hp": 20,
        "max_hp": 28,
        "armor_class": 12,
        "speed": 25,
        "gold_gp": 10,
        "ability_scores": json.dumps(sample_ability_scores),
        "skills": json.dumps(["athletics", "perception", "intimidation"]),
        "feats": "[]",
        "languages": json.dumps(["Common", "Dwarvish"]),
        "inventory": json.dumps([{"name": "Chain Mail", "quantity": 1}, {"name": "Torch", "quantity": 10}]),
        "spell_slots_used": None,
    }


@pytest.fixture
def fighter(sample_character_record: dict[str, Any]) -> Character:
    """Provide a level 3 fighter with enough XP for level 4."""
    from dnd_roster.models.character import Character

    return Character.from_record(sample_character_record)
