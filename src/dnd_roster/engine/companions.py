"""Companion recruitment and progression.

Companions come in two flavors. ``npc_stats`` companions keep the stat
block they were recruited with and never level. ``class_based``
companions get a class and level of their own and level up with the
same HP, ASI and subclass rules as characters.

Converting from ``npc_stats`` to ``class_based`` is one-way.
"""

from __future__ import annotations

from dnd_roster.core.constants import MAX_CHARACTER_LEVEL
from dnd_roster.core.exceptions import CompanionProgressionError, LevelUpError, MaxLevelError
from dnd_roster.core.logging import get_logger
from dnd_roster.engine.dice import DiceRoller
from dnd_roster.engine.leveling import (
    apply_asi,
    hp_gain_for,
    level_hp_gain,
    retroactive_con_hp,
)
from dnd_roster.models.character import AbilityScores, Character, ability_modifier
from dnd_roster.models.companion import Companion, NpcRecord
from dnd_roster.models.enums import Ability, AsiChoiceType, ProgressionType
from dnd_roster.models.leveling import (
    ClassChoices,
    CompanionLevelUpInfo,
    CompanionLevelUpResult,
    LevelUpChoices,
    ProficiencyChange,
)
from dnd_roster.rules import progression
from dnd_roster.rules.tables import RuleBook, normalize_key


logger = get_logger(__name__)


def companion_max_hp(hit_die: int, con_score: int, level: int) -> int:
    """Max HP for a class-based companion built at ``level``.

    Full hit die plus CON at level 1, then the average plus CON for each
    level after, with a floor of 1 on the total.
    """
    con_mod = ability_modifier(con_score)
    total = hit_die + con_mod
    total += sum(hit_die // 2 + 1 + con_mod for _ in range(2, level + 1))
    return max(1, total)


def _hit_die(class_name: str, rulebook: RuleBook | None) -> int:
    class_def = rulebook.classes.get(class_name) if rulebook else None
    return class_def.hit_die if class_def else progression.get_hit_die(normalize_key(class_name))


def _starting_level(starting_level: int | None, character_level: int | None) -> int:
    level = starting_level or character_level or 1
    if not 1 <= level <= MAX_CHARACTER_LEVEL:
        raise CompanionProgressionError(
            f"Companion level must be between 1 and {MAX_CHARACTER_LEVEL}",
            details={"level": level},
        )
    return level


def _require_class_based(companion: Companion) -> tuple[str, int]:
    if not companion.is_class_based or not companion.companion_class:
        raise CompanionProgressionError(
            "Only class-based companions can level up. Convert to class-based first.",
            progression_type=companion.progression_type.value,
        )
    level = companion.companion_level or 1
    if level >= MAX_CHARACTER_LEVEL:
        raise MaxLevelError("Companion is already at maximum level", details={"level": level})
    return companion.companion_class, level


# =============================================================================
# Recruitment and Conversion
# =============================================================================


def recruit_companion(
    npc: NpcRecord,
    character: Character,
    progression_type: ProgressionType = ProgressionType.NPC_STATS,
    companion_class: str | None = None,
    starting_level: int | None = None,
    *,
    rulebook: RuleBook | None = None,
    companion_subclass: str | None = None,
    notes: str | None = None,
) -> Companion:
    """Build the companion an NPC becomes when it joins a character.

    The NPC's stats are snapshot either way. Class-based companions also
    get a level (``starting_level`` or the character's level), the NPC's
    ability scores, and HP from ``companion_max_hp``.

    Raises:
        CompanionProgressionError: A class-based recruit has no class.
    """
    companion = Companion(
        npc_id=npc.id,
        recruited_by_character_id=character.id,
        progression_type=progression_type,
        original_stats_snapshot=npc.stats_snapshot(),
        name=npc.name,
        nickname=npc.nickname,
        race=npc.race,
        npc_ability_scores=npc.ability_scores,
        notes=notes,
    )

    if progression_type == ProgressionType.CLASS_BASED:
        if not companion_class:
            raise CompanionProgressionError(
                "companion_class is required for class-based companions",
                progression_type=progression_type.value,
            )
        level = _starting_level(starting_level, character.total_level)
        max_hp = companion_max_hp(
            _hit_die(companion_class, rulebook),
            npc.ability_scores.get(Ability.CON),
            level,
        )
        companion = companion.model_copy(
            update={
                "companion_class": companion_class,
                "companion_subclass": companion_subclass,
                "companion_level": level,
                "companion_max_hp": max_hp,
                "companion_current_hp": max_hp,
                "companion_ability_scores": npc.ability_scores,
            }
        )

    logger.info(
        "Companion recruited",
        npc=npc.name,
        character=character,
        progression_type=progression_type.value,
    )
    return companion


def convert_to_class_based(
    companion: Companion,
    companion_class: str | None,
    *,
    character_level: int | None = None,
    starting_level: int | None = None,
    rulebook: RuleBook | None = None,
) -> Companion:
    """Switch an ``npc_stats`` companion to class-based progression.

    Raises:
        CompanionProgressionError: No class given, or already class-based.
    """
    if not companion_class:
        raise CompanionProgressionError("companion_class is required")
    if companion.is_class_based:
        raise CompanionProgressionError(
            "Companion is already class-based",
            progression_type=companion.progression_type.value,
        )

    level = _starting_level(starting_level, character_level)
    scores = companion.npc_ability_scores or AbilityScores()
    max_hp = companion_max_hp(_hit_die(companion_class, rulebook), scores.get(Ability.CON), level)
    converted = companion.model_copy(
        update={
            "progression_type": ProgressionType.CLASS_BASED,
            "companion_class": companion_class,
            "companion_level": level,
            "companion_max_hp": max_hp,
            "companion_current_hp": max_hp,
            "companion_ability_scores": scores,
        }
    )
    logger.info("Companion converted to class-based", companion=companion, level=level)
    return converted


# =============================================================================
# Level-Up
# =============================================================================


def _needs_subclass(companion: Companion, class_key: str, current_level: int) -> bool:
    return not companion.companion_subclass and current_level >= progression.get_subclass_level(class_key)


def companion_level_up_info(companion: Companion, rulebook: RuleBook | None = None) -> CompanionLevelUpInfo:
    """Preview a class-based companion's next level.

    Raises:
        CompanionProgressionError: The companion is not class-based.
        MaxLevelError: The companion is level 20.
    """
    class_name, current = _require_class_based(companion)
    class_key = normalize_key(class_name)
    new_level = current + 1
    class_def = rulebook.classes.get(class_name) if rulebook else None
    con_mod = companion.ability_scores.modifier(Ability.CON)

    current_bonus = progression.get_proficiency_bonus(current)
    new_bonus = progression.get_proficiency_bonus(new_level)
    return CompanionLevelUpInfo(
        companion_name=companion.display_name,
        current_level=current,
        new_level=new_level,
        class_name=class_name,
        subclass=companion.companion_subclass,
        new_features=class_def.features_at(new_level) if class_def else [],
        choices=ClassChoices(
            needs_subclass=_needs_subclass(companion, class_key, current),
            needs_asi=progression.is_asi_level(class_key, new_level),
        ),
        hp_gain=hp_gain_for(_hit_die(class_name, rulebook), con_mod),
        proficiency_bonus=ProficiencyChange(
            current=current_bonus,
            new=new_bonus,
            increased=new_bonus > current_bonus,
        ),
        subclass_level=progression.get_subclass_level(class_key),
    )


def apply_companion_level_up(
    companion: Companion,
    choices: LevelUpChoices,
    rulebook: RuleBook | None = None,
    *,
    roller: DiceRoller | None = None,
) -> CompanionLevelUpResult:
    """Level a class-based companion once.

    Raises:
        CompanionProgressionError: The companion is not class-based.
        MaxLevelError: The companion is level 20.
        LevelUpError: Invalid HP roll or ASI, or a feat was chosen.
    """
    class_name, current = _require_class_based(companion)
    class_key = normalize_key(class_name)
    new_level = current + 1
    old_scores = companion.ability_scores

    hp_gain = level_hp_gain(
        _hit_die(class_name, rulebook),
        old_scores.modifier(Ability.CON),
        choices.hp_method,
        choices.roll_value,
        roller=roller,
    )

    new_scores = old_scores
    changes: dict[str, int] | None = None
    if progression.is_asi_level(class_key, new_level):
        asi = choices.asi_choice
        if asi is None:
            raise LevelUpError("Choose an Ability Score Improvement")
        if asi.type == AsiChoiceType.FEAT:
            raise LevelUpError("Companions take ability score increases, not feats")
        new_scores = apply_asi(old_scores, asi)
        changes = {
            ability.value: new_scores.get(ability) - old_scores.get(ability)
            for ability in Ability
            if new_scores.get(ability) != old_scores.get(ability)
        }
        hp_gain += retroactive_con_hp(old_scores.get(Ability.CON), new_scores.get(Ability.CON), new_level)
    elif choices.asi_choice is not None:
        raise LevelUpError(f"{class_name.title()} level {new_level} does not grant an Ability Score Improvement")

    subclass = companion.companion_subclass
    new_subclass: str | None = None
    if choices.subclass and _needs_subclass(companion, class_key, current):
        subclass = new_subclass = choices.subclass

    old_max = companion.companion_max_hp or 1
    new_max = max(1, old_max + hp_gain)
    new_current = min(new_max, max(1, (companion.companion_current_hp or old_max) + hp_gain))
    updated = companion.model_copy(
        update={
            "companion_level": new_level,
            "companion_subclass": subclass,
            "companion_max_hp": new_max,
            "companion_current_hp": new_current,
            "companion_ability_scores": new_scores,
        }
    )
    logger.info("Companion leveled up", companion=companion, level=new_level)
    return CompanionLevelUpResult(
        companion=updated,
        previous_level=current,
        new_level=new_level,
        hp_gained=new_max - old_max,
        new_subclass=new_subclass,
        ability_score_changes=changes,
    )


__all__ = [
    "companion_max_hp",
    "recruit_companion",
    "convert_to_class_based",
    "companion_level_up_info",
    "apply_companion_level_up",
]
