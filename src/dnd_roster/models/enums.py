"""Enumeration types for the D&D 5E character roster.

Values match the strings the backend stores, so enum members can be
written straight into request payloads.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """D&D 5E ability scores, keyed by the backend's short names."""

    STR = "str"
    DEX = "dex"
    CON = "con"
    INT = "int"
    WIS = "wis"
    CHA = "cha"

    @property
    def full_name(self) -> str:
        """Get the full name of the ability.

        Returns:
            Full ability name (e.g., 'Strength' for STR).
        """
        return _ABILITY_NAMES[self]

    @property
    def abbreviation(self) -> str:
        """Get the three-letter abbreviation (e.g., 'STR')."""
        return self.name

    @classmethod
    def from_name(cls, name: str) -> Ability:
        """Resolve a short key or full name ('con', 'Constitution').

        Raises:
            ValueError: If the name matches no ability.
        """
        lowered = name.strip().lower()
        for ability in cls:
            if lowered in (ability.value, ability.full_name.lower()):
                return ability
        raise ValueError(f"Unknown ability: {name!r}")


_ABILITY_NAMES = {
    Ability.STR: "Strength",
    Ability.DEX: "Dexterity",
    Ability.CON: "Constitution",
    Ability.INT: "Intelligence",
    Ability.WIS: "Wisdom",
    Ability.CHA: "Charisma",
}


class AbilityMethod(StrEnum):
    """How base ability scores are generated."""

    STANDARD_ARRAY = "standard_array"
    POINT_BUY = "point_buy"
    ROLL = "roll"
    MANUAL = "manual"


class EquipmentChoice(StrEnum):
    """Starting kit path: the class equipment or gold to buy with."""

    EQUIPMENT = "equipment"
    GOLD = "gold"


class GoldMethod(StrEnum):
    """How starting gold is determined on the gold path."""

    ROLLED = "rolled"
    AVERAGE = "average"
    MANUAL = "manual"


class HpMethod(StrEnum):
    """Hit point gain method on level-up."""

    AVERAGE = "average"
    ROLL = "roll"


class AsiChoiceType(StrEnum):
    """What an Ability Score Improvement is spent on."""

    ASI = "asi"
    FEAT = "feat"


class FeatStatus(StrEnum):
    """Result of evaluating a feat's prerequisites.

    UNAVAILABLE failures can be fixed by reallocating ability scores;
    RESTRICTED failures come from class or proficiency and cannot.
    """

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    RESTRICTED = "restricted"


class ArmorCategory(StrEnum):
    """Armor proficiency tags used by feat prerequisites."""

    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"
    SHIELDS = "shields"


class ProgressionType(StrEnum):
    """Companion progression model."""

    NPC_STATS = "npc_stats"
    CLASS_BASED = "class_based"


class CompanionStatus(StrEnum):
    """Companion membership status."""

    ACTIVE = "active"
    DECEASED = "deceased"


class RestType(StrEnum):
    """Rest duration."""

    SHORT = "short"
    LONG = "long"


class CasterType(StrEnum):
    """Spellcasting progression used for multiclass slot totals."""

    FULL = "full"
    HALF = "half"
    HALF_ROUNDED_UP = "half-rounded-up"
    THIRD = "third"
    PACT = "pact"
    NONE = "none"


class LevelUpOptionType(StrEnum):
    """Whether a level-up option advances an owned class or adds one."""

    EXISTING = "existing"
    MULTICLASS = "multiclass"


class WizardStep(StrEnum):
    """Character creation wizard steps, in order."""

    IDENTITY = "identity"
    ABILITIES = "abilities"
    DETAILS = "details"
    EQUIPMENT = "equipment"
    REVIEW = "review"

    @property
    def number(self) -> int:
        """1-based position of the step."""
        return list(WizardStep).index(self) + 1


__all__ = [
    "Ability",
    "AbilityMethod",
    "EquipmentChoice",
    "GoldMethod",
    "HpMethod",
    "AsiChoiceType",
    "FeatStatus",
    "ArmorCategory",
    "ProgressionType",
    "CompanionStatus",
    "RestType",
    "CasterType",
    "LevelUpOptionType",
    "WizardStep",
]
