"""D&D 5E Level Progression Data.

Static progression tables used by the level-up and companion engines:
- XP thresholds and proficiency bonus
- Hit dice, ASI levels and subclass levels by class
- Spell slots (full, half, third, pact, artificer) and multiclass totals
- Cantrips and spells known
- Class resources (martial arts, sneak attack, rage, ki, sorcery points)
- Multiclass ability prerequisites

Class keys are lowercase (``"fighter"``). Features gained per level live
with the class entries in ``data/classes.json``.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from dnd_roster.core.constants import (
    DEFAULT_HIT_DIE,
    DEFAULT_SUBCLASS_LEVEL,
    MAX_CHARACTER_LEVEL,
    MULTICLASS_MINIMUM_SCORE,
)
from dnd_roster.models.enums import Ability, CasterType


# =============================================================================
# XP Thresholds (PHB p.15)
# =============================================================================

XP_THRESHOLDS: dict[int, int] = {
    1: 0,
    2: 300,
    3: 900,
    4: 2700,
    5: 6500,
    6: 14000,
    7: 23000,
    8: 34000,
    9: 48000,
    10: 64000,
    11: 85000,
    12: 100000,
    13: 120000,
    14: 140000,
    15: 165000,
    16: 195000,
    17: 225000,
    18: 265000,
    19: 305000,
    20: 355000,
}


def get_level_for_xp(xp: int) -> int:
    """Determine character level based on XP."""
    for level in range(MAX_CHARACTER_LEVEL, 0, -1):
        if xp >= XP_THRESHOLDS[level]:
            return level
    return 1


def get_xp_for_next_level(current_level: int) -> int | None:
    """Get XP needed for the next level. Returns None at level 20."""
    if current_level >= MAX_CHARACTER_LEVEL:
        return None
    return XP_THRESHOLDS[max(1, current_level) + 1]


def can_level_up(current_level: int, current_xp: int) -> bool:
    needed = get_xp_for_next_level(current_level)
    return needed is not None and current_xp >= needed


# =============================================================================
# Proficiency Bonus (PHB p.15)
# =============================================================================


def get_proficiency_bonus(level: int) -> int:
    """Proficiency bonus for a total level: ceil(level / 4) + 1."""
    return math.ceil(max(1, level) / 4) + 1


# =============================================================================
# Hit Dice, ASI and Subclass Levels
# =============================================================================

CLASS_HIT_DIE: dict[str, int] = {
    "barbarian": 12,
    "fighter": 10,
    "paladin": 10,
    "ranger": 10,
    "bard": 8,
    "cleric": 8,
    "druid": 8,
    "monk": 8,
    "rogue": 8,
    "warlock": 8,
    "artificer": 8,
    "sorcerer": 6,
    "wizard": 6,
}


def get_hit_die(class_key: str) -> int:
    """Get hit die size for a class."""
    return CLASS_HIT_DIE.get(class_key.lower(), DEFAULT_HIT_DIE)


def hit_dice_breakdown(class_levels: Iterable[tuple[str, int]]) -> dict[str, int]:
    """Count hit dice by size, e.g. ``{"d10": 5, "d8": 2}``."""
    breakdown: dict[str, int] = {}
    for class_key, level in class_levels:
        die = f"d{get_hit_die(class_key)}"
        breakdown[die] = breakdown.get(die, 0) + level
    return breakdown


# Standard ASI levels for most classes
STANDARD_ASI_LEVELS = frozenset({4, 8, 12, 16, 19})

# Fighter gets extra ASIs
FIGHTER_ASI_LEVELS = frozenset({4, 6, 8, 12, 14, 16, 19})

# Rogue gets extra ASI
ROGUE_ASI_LEVELS = frozenset({4, 8, 10, 12, 16, 19})


def is_asi_level(class_key: str, class_level: int) -> bool:
    """Check if this class level grants an ASI or Feat."""
    key = class_key.lower()
    if key == "fighter":
        return class_level in FIGHTER_ASI_LEVELS
    if key == "rogue":
        return class_level in ROGUE_ASI_LEVELS
    return class_level in STANDARD_ASI_LEVELS


SUBCLASS_LEVELS: dict[str, int] = {
    "barbarian": 3,
    "bard": 3,
    "cleric": 1,
    "druid": 2,
    "fighter": 3,
    "monk": 3,
    "paladin": 3,
    "ranger": 3,
    "rogue": 3,
    "sorcerer": 1,
    "warlock": 1,
    "wizard": 2,
    "artificer": 3,
}


def get_subclass_level(class_key: str) -> int:
    return SUBCLASS_LEVELS.get(class_key.lower(), DEFAULT_SUBCLASS_LEVEL)


# =============================================================================
# Spell Slots
# =============================================================================

# Full casters: Bard, Cleric, Druid, Sorcerer, Wizard; also the multiclass table
FULL_CASTER_SLOTS: dict[int, dict[int, int]] = {
    1: {1: 2},
    2: {1: 3},
    3: {1: 4, 2: 2},
    4: {1: 4, 2: 3},
    5: {1: 4, 2: 3, 3: 2},
    6: {1: 4, 2: 3, 3: 3},
    7: {1: 4, 2: 3, 3: 3, 4: 1},
    8: {1: 4, 2: 3, 3: 3, 4: 2},
    9: {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    10: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
    11: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1},
    12: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1},
    13: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1},
    14: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1},
    15: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1},
    16: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1},
    17: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1, 9: 1},
    18: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 1, 7: 1, 8: 1, 9: 1},
    19: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 2, 7: 1, 8: 1, 9: 1},
    20: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 2, 7: 2, 8: 1, 9: 1},
}

# Half casters: Paladin, Ranger (start at level 2)
HALF_CASTER_SLOTS: dict[int, dict[int, int]] = {
    1: {},
    2: {1: 2},
    3: {1: 3},
    4: {1: 3},
    5: {1: 4, 2: 2},
    6: {1: 4, 2: 2},
    7: {1: 4, 2: 3},
    8: {1: 4, 2: 3},
    9: {1: 4, 2: 3, 3: 2},
    10: {1: 4, 2: 3, 3: 2},
    11: {1: 4, 2: 3, 3: 3},
    12: {1: 4, 2: 3, 3: 3},
    13: {1: 4, 2: 3, 3: 3, 4: 1},
    14: {1: 4, 2: 3, 3: 3, 4: 1},
    15: {1: 4, 2: 3, 3: 3, 4: 2},
    16: {1: 4, 2: 3, 3: 3, 4: 2},
    17: {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    18: {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    19: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
    20: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
}

# Artificer: half caster that starts at level 1
ARTIFICER_SLOTS: dict[int, dict[int, int]] = {
    1: {1: 2},
    2: {1: 2},
    **{level: HALF_CASTER_SLOTS[level] for level in range(3, 21)},
}

# Third casters: Eldritch Knight, Arcane Trickster (start at level 3)
THIRD_CASTER_SLOTS: dict[int, dict[int, int]] = {
    1: {},
    2: {},
    3: {1: 2},
    4: {1: 3},
    5: {1: 3},
    6: {1: 3},
    7: {1: 4, 2: 2},
    8: {1: 4, 2: 2},
    9: {1: 4, 2: 2},
    10: {1: 4, 2: 3},
    11: {1: 4, 2: 3},
    12: {1: 4, 2: 3},
    13: {1: 4, 2: 3, 3: 2},
    14: {1: 4, 2: 3, 3: 2},
    15: {1: 4, 2: 3, 3: 2},
    16: {1: 4, 2: 3, 3: 3},
    17: {1: 4, 2: 3, 3: 3},
    18: {1: 4, 2: 3, 3: 3},
    19: {1: 4, 2: 3, 3: 3, 4: 1},
    20: {1: 4, 2: 3, 3: 3, 4: 1},
}

# Warlock pact magic: level -> (num_slots, slot_level)
WARLOCK_PACT_SLOTS: dict[int, tuple[int, int]] = {
    1: (1, 1),
    2: (2, 1),
    3: (2, 2),
    4: (2, 2),
    5: (2, 3),
    6: (2, 3),
    7: (2, 4),
    8: (2, 4),
    9: (2, 5),
    10: (2, 5),
    11: (3, 5),
    12: (3, 5),
    13: (3, 5),
    14: (3, 5),
    15: (3, 5),
    16: (3, 5),
    17: (4, 5),
    18: (4, 5),
    19: (4, 5),
    20: (4, 5),
}

CASTER_TYPE: dict[str, CasterType] = {
    "bard": CasterType.FULL,
    "cleric": CasterType.FULL,
    "druid": CasterType.FULL,
    "sorcerer": CasterType.FULL,
    "wizard": CasterType.FULL,
    "paladin": CasterType.HALF,
    "ranger": CasterType.HALF,
    "artificer": CasterType.HALF_ROUNDED_UP,
    "warlock": CasterType.PACT,
    "fighter": CasterType.THIRD,
    "rogue": CasterType.THIRD,
    "barbarian": CasterType.NONE,
    "monk": CasterType.NONE,
}

# Subclasses that grant spellcasting to third-caster classes
SPELLCASTING_SUBCLASSES: dict[str, frozenset[str]] = {
    "fighter": frozenset({"eldritch knight"}),
    "rogue": frozenset({"arcane trickster"}),
}


def get_caster_type(class_key: str) -> CasterType:
    return CASTER_TYPE.get(class_key.lower(), CasterType.NONE)


def _has_spellcasting_subclass(class_key: str, subclass: str | None) -> bool:
    if not subclass:
        return False
    return subclass.strip().lower() in SPELLCASTING_SUBCLASSES.get(class_key.lower(), frozenset())


def get_spell_slots(class_key: str, level: int, subclass: str | None = None) -> dict[int, int]:
    """Get spell slots for a single class at a given class level.

    Args:
        class_key: Lowercase class key.
        level: Level in that class.
        subclass: Subclass name (for third casters like Eldritch Knight).

    Returns:
        Dict of {spell_level: num_slots}. Warlocks return {} here; their
        slots come from get_pact_magic.
    """
    caster_type = get_caster_type(class_key)
    if caster_type == CasterType.FULL:
        return dict(FULL_CASTER_SLOTS.get(level, {}))
    if caster_type == CasterType.HALF:
        return dict(HALF_CASTER_SLOTS.get(level, {}))
    if caster_type == CasterType.HALF_ROUNDED_UP:
        return dict(ARTIFICER_SLOTS.get(level, {}))
    if caster_type == CasterType.THIRD and _has_spellcasting_subclass(class_key, subclass):
        return dict(THIRD_CASTER_SLOTS.get(level, {}))
    return {}


def get_pact_magic(level: int) -> dict[str, int] | None:
    """Get Warlock pact magic as ``{"slots": n, "level": slot_level}``."""
    entry = WARLOCK_PACT_SLOTS.get(level)
    if entry is None:
        return None
    return {"slots": entry[0], "level": entry[1]}


def caster_level(class_key: str, level: int, subclass: str | None = None) -> int:
    """Contribution of one class to the multiclass caster level."""
    caster_type = get_caster_type(class_key)
    if caster_type == CasterType.FULL:
        return level
    if caster_type == CasterType.HALF:
        return level // 2
    if caster_type == CasterType.HALF_ROUNDED_UP:
        return math.ceil(level / 2)
    if caster_type == CasterType.THIRD and _has_spellcasting_subclass(class_key, subclass):
        return level // 3
    return 0


def multiclass_spell_slots(
    class_levels: Iterable[tuple[str, int, str | None]],
) -> dict[str, Any]:
    """Combine class levels into multiclass spell slots.

    Caster levels are summed (full 1, half 1/2 down, artificer 1/2 up,
    third 1/3 down) and looked up on the full-caster table. Pact magic
    is tracked separately under ``pactMagic``.

    Returns:
        ``{"spellSlots": {...}}`` plus ``"pactMagic"`` for warlocks.
    """
    total = 0
    pact_level = 0
    for class_key, level, subclass in class_levels:
        if get_caster_type(class_key) == CasterType.PACT:
            pact_level = level
        total += caster_level(class_key, level, subclass)

    total = min(total, MAX_CHARACTER_LEVEL)
    result: dict[str, Any] = {"spellSlots": dict(FULL_CASTER_SLOTS.get(total, {}))}
    if pact_level:
        result["pactMagic"] = get_pact_magic(pact_level)
    return result


# =============================================================================
# Cantrips and Spells Known
# =============================================================================

CANTRIPS_KNOWN: dict[str, dict[int, int]] = {
    "bard": {1: 2, 4: 3, 10: 4},
    "cleric": {1: 3, 4: 4, 10: 5},
    "druid": {1: 2, 4: 3, 10: 4},
    "sorcerer": {1: 4, 4: 5, 10: 6},
    "warlock": {1: 2, 4: 3, 10: 4},
    "wizard": {1: 3, 4: 4, 10: 5},
    "artificer": {1: 2, 10: 3, 14: 4},
}


def get_cantrips_known(class_key: str, level: int) -> int:
    """Get number of cantrips known at a class level."""
    progression = CANTRIPS_KNOWN.get(class_key.lower())
    if not progression:
        return 0
    known = 0
    for threshold, count in sorted(progression.items()):
        if level >= threshold:
            known = count
    return known


# Spontaneous casters only; prepared casters are absent
SPELLS_KNOWN: dict[str, tuple[int, ...]] = {
    "bard": (4, 5, 6, 7, 8, 9, 10, 11, 12, 14, 15, 15, 16, 18, 19, 19, 20, 22, 22, 22),
    "ranger": (0, 2, 3, 3, 4, 4, 5, 5, 6, 6, 7, 7, 8, 8, 9, 9, 10, 10, 11, 11),
    "sorcerer": (2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 12, 13, 13, 14, 14, 15, 15, 15, 15),
    "warlock": (2, 3, 4, 5, 6, 7, 8, 9, 10, 10, 11, 11, 12, 12, 13, 13, 14, 14, 15, 15),
}


def get_spells_known(class_key: str, level: int) -> int | None:
    """Spells known at a class level; None for classes that prepare spells."""
    progression = SPELLS_KNOWN.get(class_key.lower())
    if progression is None:
        return None
    if not 1 <= level <= MAX_CHARACTER_LEVEL:
        return 0
    return progression[level - 1]


# =============================================================================
# Class Resources
# =============================================================================

# Martial arts die by monk level threshold
MARTIAL_ARTS_DIE: dict[int, str] = {1: "d4", 5: "d6", 11: "d8", 17: "d10"}

# Rage uses by barbarian level threshold; 20 is unlimited
RAGE_USES: dict[int, int | str] = {1: 2, 3: 3, 6: 4, 12: 5, 17: 6, 20: "Unlimited"}

# Rage damage bonus by barbarian level threshold
RAGE_DAMAGE: dict[int, int] = {1: 2, 9: 3, 16: 4}

ARTIFICER_INFUSIONS: dict[str, tuple[int, ...]] = {
    "known": (0, 4, 4, 4, 4, 6, 6, 6, 6, 8, 8, 8, 8, 10, 10, 10, 10, 12, 12, 12),
    "infused": (0, 2, 2, 2, 2, 3, 3, 3, 3, 4, 4, 4, 4, 5, 5, 5, 5, 6, 6, 6),
}


def _by_threshold(table: Mapping[int, Any], level: int) -> Any:
    value = None
    for threshold, entry in sorted(table.items()):
        if level >= threshold:
            value = entry
    return value


def get_martial_arts_die(level: int) -> str:
    return _by_threshold(MARTIAL_ARTS_DIE, level) or "d4"


def get_sneak_attack_dice(level: int) -> int:
    """Rogue sneak attack dice: ceil(level / 2)."""
    return math.ceil(max(1, level) / 2)


def get_rage(level: int) -> dict[str, int | str]:
    return {
        "damage": _by_threshold(RAGE_DAMAGE, level) or 2,
        "uses": _by_threshold(RAGE_USES, level) or 2,
    }


def get_ki_points(level: int) -> int:
    """Monk ki points: none at level 1, then equal to the monk level."""
    return 0 if level < 2 else level


def get_sorcery_points(level: int) -> int:
    """Sorcery points: none at level 1, then equal to the sorcerer level."""
    return 0 if level < 2 else level


def class_resources(class_key: str, level: int) -> dict[str, Any]:
    """Resource values a class has at a class level, for display."""
    key = class_key.lower()
    if key == "monk":
        return {"martialArtsDie": get_martial_arts_die(level), "kiPoints": get_ki_points(level)}
    if key == "rogue":
        return {"sneakAttackDice": f"{get_sneak_attack_dice(level)}d6"}
    if key == "barbarian":
        rage = get_rage(level)
        return {"rageDamage": rage["damage"], "rageUses": rage["uses"]}
    if key == "sorcerer":
        return {"sorceryPoints": get_sorcery_points(level)}
    if key == "artificer" and 1 <= level <= MAX_CHARACTER_LEVEL:
        return {
            "infusionsKnown": ARTIFICER_INFUSIONS["known"][level - 1],
            "infusedItems": ARTIFICER_INFUSIONS["infused"][level - 1],
        }
    return {}


# =============================================================================
# Multiclass Prerequisites (PHB p.163)
# =============================================================================

# Each entry: (abilities, needs_all). Fighter needs STR 13 or DEX 13.
MULTICLASS_REQUIREMENTS: dict[str, tuple[tuple[Ability, ...], bool]] = {
    "barbarian": ((Ability.STR,), True),
    "bard": ((Ability.CHA,), True),
    "cleric": ((Ability.WIS,), True),
    "druid": ((Ability.WIS,), True),
    "fighter": ((Ability.STR, Ability.DEX), False),
    "monk": ((Ability.DEX, Ability.WIS), True),
    "paladin": ((Ability.STR, Ability.CHA), True),
    "ranger": ((Ability.DEX, Ability.WIS), True),
    "rogue": ((Ability.DEX,), True),
    "sorcerer": ((Ability.CHA,), True),
    "warlock": ((Ability.CHA,), True),
    "wizard": ((Ability.INT,), True),
    "artificer": ((Ability.INT,), True),
}


def multiclass_requirements(class_key: str) -> dict[str, Any]:
    """Requirements in the backend's shape, e.g. ``{"str": 13, "dex": 13, "either": True}``."""
    entry = MULTICLASS_REQUIREMENTS.get(class_key.lower())
    if entry is None:
        return {}
    abilities, needs_all = entry
    shaped: dict[str, Any] = {ability.value: MULTICLASS_MINIMUM_SCORE for ability in abilities}
    if not needs_all:
        shaped["either"] = True
    return shaped


def meets_multiclass_requirements(scores: Mapping[str, int], class_key: str) -> bool:
    """Check ability prerequisites for entering or leaving a class.

    Unknown classes never qualify.
    """
    entry = MULTICLASS_REQUIREMENTS.get(class_key.lower())
    if entry is None:
        return False
    abilities, needs_all = entry
    checks = (scores.get(ability.value, 0) >= MULTICLASS_MINIMUM_SCORE for ability in abilities)
    return all(checks) if needs_all else any(checks)


__all__ = [
    "XP_THRESHOLDS",
    "get_level_for_xp",
    "get_xp_for_next_level",
    "can_level_up",
    "get_proficiency_bonus",
    "CLASS_HIT_DIE",
    "get_hit_die",
    "hit_dice_breakdown",
    "STANDARD_ASI_LEVELS",
    "FIGHTER_ASI_LEVELS",
    "ROGUE_ASI_LEVELS",
    "is_asi_level",
    "SUBCLASS_LEVELS",
    "get_subclass_level",
    "FULL_CASTER_SLOTS",
    "HALF_CASTER_SLOTS",
    "ARTIFICER_SLOTS",
    "THIRD_CASTER_SLOTS",
    "WARLOCK_PACT_SLOTS",
    "CASTER_TYPE",
    "SPELLCASTING_SUBCLASSES",
    "get_caster_type",
    "get_spell_slots",
    "get_pact_magic",
    "caster_level",
    "multiclass_spell_slots",
    "CANTRIPS_KNOWN",
    "get_cantrips_known",
    "SPELLS_KNOWN",
    "get_spells_known",
    "MARTIAL_ARTS_DIE",
    "RAGE_USES",
    "RAGE_DAMAGE",
    "ARTIFICER_INFUSIONS",
    "get_martial_arts_die",
    "get_sneak_attack_dice",
    "get_rage",
    "get_ki_points",
    "get_sorcery_points",
    "class_resources",
    "MULTICLASS_REQUIREMENTS",
    "multiclass_requirements",
    "meets_multiclass_requirements",
]
