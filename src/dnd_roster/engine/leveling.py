"""Level-up and rest engine.

Mirrors the backend's level-up endpoints so a character can be advanced
locally with the same arithmetic:

- HP gain: class hit-die average (``floor(d/2) + 1 + CON``) or a rolled
  die plus CON, never below 1.
- ASI: exactly two points, no score above 20. Raising CON adds
  ``(new_mod - old_mod) * level`` HP retroactively.
- Multiclassing: ability prerequisites of the new class and of every
  current class must hold.
- Subclass: picked once, at or after the class's subclass level.

Example:
    >>> info = build_level_up_info(character, get_rulebook())
    >>> info.option_for("fighter").hp_gain.average
    8
"""

from __future__ import annotations

import math

from dnd_roster.core.config import Settings, get_settings
from dnd_roster.core.constants import ASI_POINTS, MAX_CHARACTER_LEVEL, PC_ABILITY_SCORE_CAP, SHORT_REST_HEAL_FRACTION
from dnd_roster.core.exceptions import (
    InsufficientExperienceError,
    LevelUpError,
    MaxLevelError,
    MulticlassRequirementError,
    ProgressionError,
    RuleLookupError,
    RulesError,
)
from dnd_roster.core.logging import get_logger
from dnd_roster.engine.dice import DiceRoller
from dnd_roster.engine.feats import evaluate_feat_for_character, feat_ability_bonus, require_available
from dnd_roster.models.character import AbilityScores, Character, ClassLevel, ability_modifier
from dnd_roster.models.enums import Ability, AsiChoiceType, HpMethod, LevelUpOptionType, RestType
from dnd_roster.models.leveling import (
    AsiChoice,
    ClassChoices,
    ClassOption,
    HpGain,
    LevelUpChoices,
    LevelUpInfo,
    LevelUpResult,
    LevelUpSummary,
    ProficiencyChange,
    RestResult,
)
from dnd_roster.models.rules import CharacterClassDef
from dnd_roster.rules import progression
from dnd_roster.rules.tables import RuleBook, normalize_key


logger = get_logger(__name__)


# =============================================================================
# Hit Points
# =============================================================================


def average_hp_gain(hit_die: int, con_mod: int) -> int:
    """Average HP for one level: floor(hit_die / 2) + 1 + CON, at least 1."""
    return max(1, hit_die // 2 + 1 + con_mod)


def hp_gain_for(hit_die: int, con_mod: int) -> HpGain:
    """HP range for one level, every value floored at 1."""
    return HpGain(
        hit_die=hit_die,
        con_mod=con_mod,
        average=average_hp_gain(hit_die, con_mod),
        minimum=max(1, 1 + con_mod),
        maximum=max(1, hit_die + con_mod),
    )


def level_hp_gain(
    hit_die: int,
    con_mod: int,
    method: HpMethod = HpMethod.AVERAGE,
    roll_value: int | None = None,
    *,
    roller: DiceRoller | None = None,
) -> int:
    """HP gained for one level.

    A ROLL without ``roll_value`` rolls the hit die.

    Raises:
        LevelUpError: If ``roll_value`` is outside 1..hit_die.
    """
    if method == HpMethod.AVERAGE:
        return average_hp_gain(hit_die, con_mod)
    if roll_value is None:
        roll_value = (roller or DiceRoller()).roll_hit_die(hit_die)
    if not 1 <= roll_value <= hit_die:
        raise LevelUpError(
            f"Invalid HP roll. Must be between 1 and {hit_die}",
            details={"roll_value": roll_value, "hit_die": hit_die},
        )
    return max(1, roll_value + con_mod)


def retroactive_con_hp(old_con: int, new_con: int, level: int) -> int:
    """Extra HP for all levels when the CON modifier changes."""
    return (ability_modifier(new_con) - ability_modifier(old_con)) * level


# =============================================================================
# Class Helpers
# =============================================================================


def _class_def(rulebook: RuleBook, class_name: str) -> CharacterClassDef | None:
    return rulebook.classes.get(class_name)


def _class_key(rulebook: RuleBook, class_name: str) -> str:
    return rulebook.classes.key_for(class_name) or normalize_key(class_name)


def _hit_die(rulebook: RuleBook, class_name: str) -> int:
    class_def = _class_def(rulebook, class_name)
    return class_def.hit_die if class_def else progression.get_hit_die(normalize_key(class_name))


def _subclass_level(rulebook: RuleBook, class_name: str) -> int:
    class_def = _class_def(rulebook, class_name)
    if class_def is not None and class_def.subclass_level is not None:
        return class_def.subclass_level
    return progression.get_subclass_level(normalize_key(class_name))


def _features(rulebook: RuleBook, class_name: str, level: int) -> list[str]:
    class_def = _class_def(rulebook, class_name)
    return class_def.features_at(level) if class_def else []


def _new_spells_known(class_key: str, current: int, new: int) -> int:
    before = progression.get_spells_known(class_key, current) if current else 0
    after = progression.get_spells_known(class_key, new)
    if before is None or after is None:
        return 0
    return max(0, after - before)


def _choices(rulebook: RuleBook, class_key: str, current: int, new: int, subclass: str | None) -> ClassChoices:
    return ClassChoices(
        needs_subclass=new >= _subclass_level(rulebook, class_key) and not subclass,
        needs_asi=progression.is_asi_level(class_key, new),
        new_cantrips=max(
            0,
            progression.get_cantrips_known(class_key, new) - progression.get_cantrips_known(class_key, current),
        ),
        new_spells_known=_new_spells_known(class_key, current, new),
    )


def multiclass_allowed(scores: AbilityScores, class_levels: list[ClassLevel], target: str) -> bool:
    """Prerequisites for the new class and every current class must hold."""
    values = scores.to_dict()
    if not progression.meets_multiclass_requirements(values, target):
        return False
    return all(
        progression.meets_multiclass_requirements(values, normalize_key(entry.class_name))
        for entry in class_levels
    )


def _check_can_level(character: Character) -> None:
    total = character.total_level
    if total >= MAX_CHARACTER_LEVEL:
        raise MaxLevelError(
            "Character is already at maximum level",
            details={"level": total},
        )
    if not progression.can_level_up(total, character.experience):
        raise InsufficientExperienceError(
            "Character does not have enough XP to level up",
            current_xp=character.experience,
            xp_needed=progression.get_xp_for_next_level(total),
        )


# =============================================================================
# Level-Up Info
# =============================================================================


def build_level_up_info(
    character: Character,
    rulebook: RuleBook,
    *,
    settings: Settings | None = None,
) -> LevelUpInfo:
    """Options for the character's next level.

    Lists every owned class below 20 and every class the character could
    multiclass into, with HP, feature and choice previews.

    Raises:
        MaxLevelError: At total level 20.
        InsufficientExperienceError: Below the next XP threshold.
    """
    settings = settings or get_settings()
    _check_can_level(character)

    total = character.total_level
    con_mod = character.modifier(Ability.CON)
    options: list[ClassOption] = []

    for entry in character.class_levels:
        key = _class_key(rulebook, entry.class_name)
        new_level = entry.level + 1
        if new_level > MAX_CHARACTER_LEVEL:
            continue
        options.append(
            ClassOption(
                type=LevelUpOptionType.EXISTING,
                class_name=entry.class_name.title(),
                class_key=key,
                current_level=entry.level,
                new_level=new_level,
                subclass=entry.subclass,
                new_features=_features(rulebook, key, new_level),
                choices=_choices(rulebook, key, entry.level, new_level, entry.subclass),
                hp_gain=hp_gain_for(_hit_die(rulebook, key), con_mod),
                subclass_level=_subclass_level(rulebook, key),
                resources=progression.class_resources(key, new_level),
            )
        )

    owned = {normalize_key(entry.class_name) for entry in character.class_levels}
    any_eligible = False
    for key, class_def in rulebook.classes.items():
        if key in owned or normalize_key(class_def.name) in owned:
            continue
        meets = multiclass_allowed(character.ability_scores, character.class_levels, key)
        any_eligible = any_eligible or meets
        if settings.rules.enforce_multiclass_prerequisites and not meets:
            continue
        options.append(
            ClassOption(
                type=LevelUpOptionType.MULTICLASS,
                class_name=class_def.name,
                class_key=key,
                current_level=0,
                new_level=1,
                new_features=class_def.features_at(1),
                choices=_choices(rulebook, key, 0, 1, None),
                hp_gain=hp_gain_for(class_def.hit_die, con_mod),
                subclass_level=_subclass_level(rulebook, key),
                resources=progression.class_resources(key, 1),
                requirements=progression.multiclass_requirements(key),
                meets_requirements=meets,
            )
        )

    current_bonus = progression.get_proficiency_bonus(total)
    new_bonus = progression.get_proficiency_bonus(total + 1)
    slots = progression.multiclass_spell_slots(
        (normalize_key(entry.class_name), entry.level, entry.subclass) for entry in character.class_levels
    )
    logger.debug("Level-up info built", character=character, options=len(options))
    return LevelUpInfo(
        current_level=total,
        new_level=total + 1,
        class_levels=list(character.class_levels),
        class_options=options,
        can_multiclass=any_eligible or not settings.rules.enforce_multiclass_prerequisites,
        multiclass_spell_slots=slots,
        proficiency_bonus=ProficiencyChange(
            current=current_bonus,
            new=new_bonus,
            increased=new_bonus > current_bonus,
        ),
    )


# =============================================================================
# Applying a Level
# =============================================================================


def apply_asi(scores: AbilityScores, choice: AsiChoice) -> AbilityScores:
    """Apply a two-point ASI.

    Raises:
        LevelUpError: If the points do not add up to two, an ability gets
            more than two, or a score would pass 20.
    """
    increases = {Ability(ability): amount for ability, amount in choice.increases.items() if amount}
    if any(amount < 0 or amount > ASI_POINTS for amount in increases.values()):
        raise LevelUpError("Each ability can receive 0 to 2 points", details={"increases": choice.to_payload()})
    if choice.points_spent != ASI_POINTS:
        raise LevelUpError(
            f"Distribute exactly {ASI_POINTS} ability points",
            details={"points_spent": choice.points_spent},
        )
    updated: dict[str, int] = {}
    for ability, amount in increases.items():
        new_value = scores.get(ability) + amount
        if new_value > PC_ABILITY_SCORE_CAP:
            raise LevelUpError(
                f"{ability.full_name} cannot exceed {PC_ABILITY_SCORE_CAP}",
                details={"ability": ability.value, "value": new_value},
            )
        updated[ability.value] = new_value
    return scores.with_scores(updated)


def _apply_feat(
    character: Character,
    choice: AsiChoice,
    rulebook: RuleBook,
) -> tuple[str, AbilityScores]:
    if not choice.feat:
        raise LevelUpError("Choose a feat")
    feat = rulebook.feats.require(choice.feat)
    if any(normalize_key(owned) == normalize_key(feat.name) for owned in character.feats):
        raise LevelUpError(f"{feat.name} is already known", details={"feat": feat.name})
    require_available(feat, evaluate_feat_for_character(feat, character, rulebook))

    scores = character.ability_scores
    bonus = feat_ability_bonus(feat, choice.feat_ability)
    updated = {
        ability.value: min(PC_ABILITY_SCORE_CAP, scores.get(ability) + amount)
        for ability, amount in bonus.items()
    }
    return feat.name, scores.with_scores(updated)


def _resolve_subclass(
    rulebook: RuleBook,
    class_key: str,
    class_level: int,
    current: str | None,
    requested: str | None,
) -> str | None:
    if not requested or current:
        return current
    threshold = _subclass_level(rulebook, class_key)
    if class_level < threshold:
        raise LevelUpError(
            f"Subclass is chosen at {class_key.title()} level {threshold}",
            details={"class_level": class_level},
        )
    class_def = _class_def(rulebook, class_key)
    if class_def is not None and class_def.subclasses:
        wanted = normalize_key(requested)
        for subclass in class_def.subclasses:
            if normalize_key(subclass.name) == wanted:
                return subclass.name
        raise LevelUpError(
            f"Unknown {class_def.subclass_title}: {requested}",
            details={"class": class_def.name},
        )
    return requested


def _append_unique(existing: list[str], added: list[str]) -> list[str]:
    merged = list(existing)
    for name in added:
        if name not in merged:
            merged.append(name)
    return merged


def apply_level_up(
    character: Character,
    choices: LevelUpChoices,
    rulebook: RuleBook,
    *,
    roller: DiceRoller | None = None,
    settings: Settings | None = None,
) -> LevelUpResult:
    """Advance a character by one level.

    Args:
        character: Character to level; not modified.
        choices: Class, HP method, ASI or feat, subclass and spells.
        rulebook: Rule tables.
        roller: Dice roller for HP rolls without a given value.
        settings: Settings; multiclass enforcement is read from ``rules``.

    Returns:
        LevelUpResult with the updated character and a summary.

    Raises:
        MaxLevelError: At total level 20.
        InsufficientExperienceError: Below the next XP threshold.
        MulticlassRequirementError: Prerequisites fail for a new class.
        LevelUpError: Invalid HP roll, ASI, subclass or spell picks.
        FeatPrerequisiteError: The chosen feat is not available.
    """
    settings = settings or get_settings()
    _check_can_level(character)

    total = character.total_level
    new_total = total + 1
    target = choices.selected_class or character.class_name
    class_levels = list(character.class_levels)
    existing = character.find_class(target)
    is_multiclass = existing is None

    if is_multiclass:
        class_def = rulebook.classes.require(target)
        class_key = _class_key(rulebook, target)
        requirements = progression.multiclass_requirements(class_key)
        if settings.rules.enforce_multiclass_prerequisites and not multiclass_allowed(
            character.ability_scores, class_levels, class_key
        ):
            raise MulticlassRequirementError(
                f"Ability scores do not meet the multiclass prerequisites for {class_def.name}",
                class_name=class_def.name,
                requirements=requirements,
            )
        new_class_level = 1
        subclass = _resolve_subclass(rulebook, class_key, 1, None, choices.subclass)
        class_levels.append(ClassLevel(class_name=class_key, level=1, subclass=subclass))
        leveled_name = class_key
    else:
        class_key = _class_key(rulebook, existing.class_name)
        new_class_level = existing.level + 1
        subclass = _resolve_subclass(rulebook, class_key, new_class_level, existing.subclass, choices.subclass)
        index = class_levels.index(existing)
        class_levels[index] = ClassLevel(class_name=existing.class_name, level=new_class_level, subclass=subclass)
        leveled_name = existing.class_name
    previous_subclass = existing.subclass if existing else None
    new_subclass = subclass if subclass != previous_subclass else None

    hit_die = _hit_die(rulebook, class_key)
    old_scores = character.ability_scores
    hp_gain = level_hp_gain(
        hit_die,
        old_scores.modifier(Ability.CON),
        choices.hp_method,
        choices.roll_value,
        roller=roller,
    )

    # ASI / feat
    new_scores = old_scores
    feats = list(character.feats)
    ability_changes: dict[str, int] | None = None
    new_feat: str | None = None
    asi_level = progression.is_asi_level(class_key, new_class_level)
    if choices.asi_choice is not None and not asi_level:
        raise LevelUpError(
            f"{class_key.title()} level {new_class_level} does not grant an Ability Score Improvement",
        )
    if asi_level:
        if choices.asi_choice is None:
            raise LevelUpError("Choose an Ability Score Improvement or a feat")
        if choices.asi_choice.type == AsiChoiceType.FEAT:
            new_feat, new_scores = _apply_feat(character, choices.asi_choice, rulebook)
            feats.append(new_feat)
        else:
            new_scores = apply_asi(old_scores, choices.asi_choice)
        ability_changes = {
            ability.value: new_scores.get(ability) - old_scores.get(ability)
            for ability in Ability
            if new_scores.get(ability) != old_scores.get(ability)
        }
        hp_gain += retroactive_con_hp(old_scores.get(Ability.CON), new_scores.get(Ability.CON), new_total)

    # Spells
    choice_info = _choices(rulebook, class_key, new_class_level - 1, new_class_level, subclass)
    if len(choices.cantrips) > choice_info.new_cantrips:
        raise LevelUpError(
            f"Only {choice_info.new_cantrips} new cantrips at this level",
            details={"chosen": len(choices.cantrips)},
        )
    knows_spells = progression.get_spells_known(class_key, new_class_level) is not None
    if knows_spells and len(choices.spells) > choice_info.new_spells_known:
        raise LevelUpError(
            f"Only {choice_info.new_spells_known} new spells at this level",
            details={"chosen": len(choices.spells)},
        )

    new_max_hp = max(1, character.max_hp + hp_gain)
    new_current_hp = min(new_max_hp, max(1, character.current_hp + hp_gain))
    hit_dice = progression.hit_dice_breakdown(
        (_class_key(rulebook, entry.class_name), entry.level) for entry in class_levels
    )
    primary = max(class_levels, key=lambda entry: entry.level)
    class_display = " / ".join(f"{entry.class_name.title()} {entry.level}" for entry in class_levels)

    updated = character.model_copy(
        update={
            "level": new_total,
            "class_name": primary.class_name,
            "subclass": primary.subclass or character.subclass,
            "class_levels": class_levels,
            "hit_dice": hit_dice,
            "max_hp": new_max_hp,
            "current_hp": new_current_hp,
            "ability_scores": new_scores,
            "feats": feats,
            "known_cantrips": _append_unique(character.known_cantrips, choices.cantrips),
            "known_spells": _append_unique(character.known_spells, choices.spells),
            "experience_to_next_level": progression.get_xp_for_next_level(new_total),
        }
    )

    summary = LevelUpSummary(
        previous_level=total,
        new_level=new_total,
        leveled_class=leveled_name,
        new_class_level=new_class_level,
        is_multiclass=is_multiclass,
        class_levels=class_levels,
        class_display=class_display,
        hp_gained=new_max_hp - character.max_hp,
        new_max_hp=new_max_hp,
        hit_dice=hit_dice,
        new_features=_features(rulebook, class_key, new_class_level),
        proficiency_bonus=progression.get_proficiency_bonus(new_total),
        ability_score_changes=ability_changes,
        new_feat=new_feat,
        new_subclass=new_subclass,
    )
    logger.info(
        "Character leveled up",
        character=character,
        class_display=class_display,
        hp_gained=summary.hp_gained,
        multiclass=is_multiclass,
    )
    return LevelUpResult(character=updated, summary=summary)


# =============================================================================
# Choice Checks
# =============================================================================


def level_up_problems(
    character: Character,
    option: ClassOption,
    choices: LevelUpChoices,
    rulebook: RuleBook,
) -> list[str]:
    """Everything that keeps ``choices`` from being submitted for ``option``.

    The HP roll must be in range, a subclass must be picked when the level
    unlocks one, and an ASI level needs exactly two valid points or an
    available feat. An empty list means the level-up can be sent.
    """
    problems: list[str] = []
    hit_die = option.hp_gain.hit_die
    if choices.hp_method == HpMethod.ROLL:
        if choices.roll_value is None:
            problems.append(f"Roll your d{hit_die}")
        elif not 1 <= choices.roll_value <= hit_die:
            problems.append(f"Invalid HP roll. Must be between 1 and {hit_die}")

    if option.choices.needs_subclass and not choices.subclass:
        class_def = _class_def(rulebook, option.class_key or option.class_name)
        title = class_def.subclass_title if class_def else "subclass"
        problems.append(f"Choose a {title}")

    if option.choices.needs_asi:
        choice = choices.asi_choice
        if choice is None:
            problems.append("Choose an Ability Score Improvement or a feat")
        else:
            try:
                if choice.type == AsiChoiceType.FEAT:
                    _apply_feat(character, choice, rulebook)
                else:
                    apply_asi(character.ability_scores, choice)
            except (ProgressionError, RulesError, RuleLookupError) as e:
                problems.append(e.message)

    if len(choices.cantrips) > option.choices.new_cantrips:
        problems.append(f"Only {option.choices.new_cantrips} new cantrips at this level")
    if len(choices.spells) > option.choices.new_spells_known:
        problems.append(f"Only {option.choices.new_spells_known} new spells at this level")
    return problems


# =============================================================================
# Rest
# =============================================================================


def rest(character: Character, rest_type: RestType = RestType.LONG) -> RestResult:
    """Recover HP and spell slots.

    A long rest heals to full and clears used spell slots. A short rest
    heals half the missing HP (at least 1, never past max); warlocks also
    get their pact slots back.
    """
    missing = max(0, character.max_hp - character.current_hp)
    has_pact_magic = any(normalize_key(entry.class_name) == "warlock" for entry in character.class_levels)

    if rest_type == RestType.LONG:
        new_hp = character.max_hp
        slots_restored = True
    else:
        heal = max(1, math.floor(missing * SHORT_REST_HEAL_FRACTION))
        new_hp = min(character.max_hp, character.current_hp + heal)
        slots_restored = has_pact_magic

    update: dict[str, object] = {"current_hp": new_hp}
    if slots_restored:
        update["spell_slots_used"] = {}
    updated = character.model_copy(update=update)
    logger.info("Rest taken", character=character, rest_type=rest_type.value, hp=new_hp)
    return RestResult(
        character=updated,
        rest_type=rest_type,
        hp_restored=new_hp - character.current_hp,
        new_hp=new_hp,
        spell_slots_restored=slots_restored,
    )


__all__ = [
    "average_hp_gain",
    "hp_gain_for",
    "level_hp_gain",
    "retroactive_con_hp",
    "apply_asi",
    "multiclass_allowed",
    "build_level_up_info",
    "apply_level_up",
    "level_up_problems",
    "rest",
]
