"""Pydantic V2 schemas for the D&D 5E character roster.

Submodules:
    enums: Enumeration types (Ability, HpMethod, ProgressionType, etc.)
    fields: Lenient JSON codecs for the backend's string-encoded columns
    character: Character records (AbilityScores, ClassLevel, Character)
    companion: NPC and companion records
    rules: Rule table entries (Race, CharacterClassDef, Feat, etc.)
    leveling: Level-up choices, previews and results (camelCase on the wire)

Example:
    >>> from dnd_roster.models import Character, Ability
    >>> hero = Character.from_record({"name": "Mira", "class": "wizard"})
    >>> hero.modifier(Ability.DEX)
    0
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from dnd_roster.models.enums import (
    Ability,
    AbilityMethod,
    ArmorCategory,
    AsiChoiceType,
    CasterType,
    CompanionStatus,
    EquipmentChoice,
    FeatStatus,
    GoldMethod,
    HpMethod,
    LevelUpOptionType,
    ProgressionType,
    RestType,
    WizardStep,
)

# =============================================================================
# Records
# =============================================================================
from dnd_roster.models.character import (
    AbilityScores,
    Character,
    ClassLevel,
    InventoryItem,
    ability_modifier,
    parse_inventory,
    proficiency_bonus_for,
)
from dnd_roster.models.companion import (
    COMPANION_UPDATE_FIELDS,
    Companion,
    NpcRecord,
    PartyMemberDraft,
    PartyMemberProfile,
)
from dnd_roster.models.fields import dump_json, parse_json_list, parse_json_object
from dnd_roster.models.leveling import (
    AsiChoice,
    CamelModel,
    ClassChoices,
    ClassOption,
    CompanionLevelUpInfo,
    CompanionLevelUpResult,
    HpGain,
    LevelUpChoices,
    LevelUpInfo,
    LevelUpResult,
    LevelUpSummary,
    ProficiencyChange,
    RestResult,
)

# =============================================================================
# Rule Entries
# =============================================================================
from dnd_roster.models.rules import (
    AbilityChoices,
    AbilityRequirement,
    Background,
    CharacterClassDef,
    Deity,
    EquipmentChoiceGroup,
    EquipmentPack,
    EquipmentTables,
    Feat,
    FeatAbilityBonus,
    FeatPrerequisites,
    Race,
    RuleEntry,
    Spell,
    StartingEquipment,
    StartingGold,
    Subclass,
    Subrace,
    Weapon,
    WeaponGroup,
)


__all__ = [
    # Enums
    "Ability",
    "AbilityMethod",
    "ArmorCategory",
    "AsiChoiceType",
    "CasterType",
    "CompanionStatus",
    "EquipmentChoice",
    "FeatStatus",
    "GoldMethod",
    "HpMethod",
    "LevelUpOptionType",
    "ProgressionType",
    "RestType",
    "WizardStep",
    # Fields
    "dump_json",
    "parse_json_list",
    "parse_json_object",
    # Character
    "ability_modifier",
    "proficiency_bonus_for",
    "AbilityScores",
    "ClassLevel",
    "InventoryItem",
    "parse_inventory",
    "Character",
    # Companion
    "NpcRecord",
    "Companion",
    "COMPANION_UPDATE_FIELDS",
    "PartyMemberProfile",
    "PartyMemberDraft",
    # Level-up
    "CamelModel",
    "AsiChoice",
    "LevelUpChoices",
    "HpGain",
    "ClassChoices",
    "ClassOption",
    "ProficiencyChange",
    "LevelUpInfo",
    "LevelUpSummary",
    "LevelUpResult",
    "CompanionLevelUpInfo",
    "CompanionLevelUpResult",
    "RestResult",
    # Rule entries
    "RuleEntry",
    "AbilityChoices",
    "Subrace",
    "Race",
    "EquipmentChoiceGroup",
    "StartingEquipment",
    "StartingGold",
    "Subclass",
    "CharacterClassDef",
    "Background",
    "AbilityRequirement",
    "FeatPrerequisites",
    "FeatAbilityBonus",
    "Feat",
    "Spell",
    "Deity",
    "Weapon",
    "WeaponGroup",
    "EquipmentPack",
    "EquipmentTables",
]
