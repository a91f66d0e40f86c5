"""Party member creation.

Builds a class-based companion from scratch, the way a player builds a
character: base scores from one of the four methods, racial bonuses,
class skills, spells and a starting kit or gold. The result is a
``PartyMemberDraft`` whose ``to_payload`` is the body of
``POST /api/companion/create-party-member``.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

from dnd_roster.core.constants import BASE_ARMOR_CLASS, MAX_CHARACTER_LEVEL, PC_ABILITY_SCORE_CAP
from dnd_roster.core.exceptions import ValidationError
from dnd_roster.core.logging import get_logger
from dnd_roster.engine.abilities import (
    compute_final_scores,
    racial_bonuses,
    resolve_base_scores,
    validate_racial_choices,
)
from dnd_roster.engine.companions import companion_max_hp
from dnd_roster.engine.dice import DiceRoller
from dnd_roster.engine.equipment import (
    compile_starting_equipment,
    resolve_gold,
    starting_gold,
    to_inventory,
)
from dnd_roster.models.character import AbilityScores, Character
from dnd_roster.models.companion import PartyMemberDraft, PartyMemberProfile
from dnd_roster.models.enums import Ability, AbilityMethod, EquipmentChoice, GoldMethod
from dnd_roster.models.rules import CharacterClassDef, Race, Subrace
from dnd_roster.rules import progression
from dnd_roster.rules.tables import RuleBook, normalize_key


logger = get_logger(__name__)


class PartyMemberChoices(BaseModel):
    """What the player picked in the party builder.

    Attributes:
        level: Companion level; the recruiting character's level if unset.
        base_scores: Base scores before racial bonuses; None is unassigned.
        racial_choices: Abilities picked for "choose N" racial bonuses.
        gold: Gold already rolled or entered; resolved from
            ``gold_method`` when unset.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = ""
    race: str = ""
    subrace: str | None = None
    companion_class: str = ""
    companion_subclass: str | None = None
    level: int | None = None
    background: str | None = None
    npc_id: int | None = None

    ability_method: AbilityMethod = AbilityMethod.STANDARD_ARRAY
    base_scores: dict[Ability, int | None] = Field(default_factory=dict)
    racial_choices: list[Ability] = Field(default_factory=list)

    skills: list[str] = Field(default_factory=list)
    cantrips: list[str] = Field(default_factory=list)
    spells_known: list[str] = Field(default_factory=list)

    equipment_choice: EquipmentChoice = EquipmentChoice.EQUIPMENT
    equipment_selections: dict[int, str | None] = Field(default_factory=dict)
    equipment_sub_selections: dict[int, str | None] = Field(default_factory=dict)
    gold_method: GoldMethod = GoldMethod.AVERAGE
    manual_gold: int | str | None = None
    gold: int | None = None

    profile: PartyMemberProfile = Field(default_factory=PartyMemberProfile)


# =============================================================================
# Validation Helpers
# =============================================================================


def _require_text(value: str | None, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name.replace('_', ' ').capitalize()} is required", field_name=field_name)
    return value.strip()


def _resolve_subrace(race: Race, name: str | None) -> Subrace | None:
    if not name:
        return None
    subrace = race.find_subrace(name)
    if subrace is None:
        raise ValidationError(
            f"{race.name} has no subrace {name!r}",
            field_name="subrace",
            invalid_value=name,
        )
    return subrace


def _resolve_level(level: int | None, character: Character) -> int:
    resolved = level or character.total_level
    if not 1 <= resolved <= MAX_CHARACTER_LEVEL:
        raise ValidationError(
            f"Level must be between 1 and {MAX_CHARACTER_LEVEL}",
            field_name="level",
            invalid_value=resolved,
        )
    return resolved


def _resolve_subclass(class_def: CharacterClassDef, class_key: str, subclass: str | None, level: int) -> str | None:
    if not subclass:
        return None
    if level < progression.get_subclass_level(class_key):
        raise ValidationError(
            f"{class_def.name} picks a {class_def.subclass_title} at level {progression.get_subclass_level(class_key)}",
            field_name="companion_subclass",
            invalid_value=subclass,
        )
    known = {normalize_key(entry.name): entry.name for entry in class_def.subclasses}
    if known and normalize_key(subclass) not in known:
        raise ValidationError(
            f"Unknown {class_def.subclass_title} for {class_def.name}: {subclass!r}",
            field_name="companion_subclass",
            invalid_value=subclass,
        )
    return known.get(normalize_key(subclass), subclass)


def validate_class_skills(class_def: CharacterClassDef, skills: Sequence[str]) -> list[str]:
    """Check class skill picks: exactly ``skill_choices``, all from the list.

    Raises:
        ValidationError: Wrong count, a duplicate, or a skill the class
            does not offer.
    """
    picked = [normalize_key(skill) for skill in skills]
    if len(set(picked)) != len(picked):
        raise ValidationError("Each skill can only be picked once", field_name="skills")
    if len(picked) != class_def.skill_choices:
        raise ValidationError(
            f"Choose {class_def.skill_choices} skills from the {class_def.name} list",
            field_name="skills",
            invalid_value=len(picked),
        )
    if class_def.skill_options:
        foreign = [skill for skill in picked if skill not in class_def.skill_options]
        if foreign:
            raise ValidationError(
                f"{class_def.name} cannot pick {', '.join(foreign)}",
                field_name="skills",
                invalid_value=foreign,
            )
    return picked


def _validate_spell_counts(class_key: str, level: int, cantrips: Sequence[str], spells: Sequence[str]) -> None:
    cantrip_limit = progression.get_cantrips_known(class_key, level)
    if len(cantrips) > cantrip_limit:
        raise ValidationError(
            f"At most {cantrip_limit} cantrips at level {level}",
            field_name="cantrips",
            invalid_value=len(cantrips),
        )
    spell_limit = progression.get_spells_known(class_key, level)
    if spell_limit is not None and len(spells) > spell_limit:
        raise ValidationError(
            f"At most {spell_limit} spells known at level {level}",
            field_name="spells_known",
            invalid_value=len(spells),
        )


def _cap_scores(scores: AbilityScores) -> AbilityScores:
    return AbilityScores.model_validate(
        {ability.value: min(PC_ABILITY_SCORE_CAP, scores.get(ability)) for ability in Ability}
    )


# =============================================================================
# Creation
# =============================================================================


def create_party_member(
    character: Character,
    choices: PartyMemberChoices,
    rulebook: RuleBook,
    *,
    roller: DiceRoller | None = None,
) -> PartyMemberDraft:
    """Resolve party builder choices into a companion ready to create.

    Final scores are base plus racial bonuses, capped at 20. HP follows
    the companion formula for the chosen level, AC is 10 + DEX and speed
    comes from the subrace or race.

    Raises:
        ValidationError: Missing identity fields, unknown subrace or
            subclass, bad skill or spell picks, or no character id.
        RuleLookupError: Unknown race, class or background.
        AbilityScoreError: Incomplete or invalid base scores or racial
            choices.
        EquipmentError: Invalid gold on the gold path.
    """
    if character.id is None:
        raise ValidationError("The recruiting character must be saved first", field_name="recruited_by_character_id")

    name = _require_text(choices.name, "name")
    race = rulebook.races.require(_require_text(choices.race, "race"))
    class_def = rulebook.classes.require(_require_text(choices.companion_class, "companion_class"))
    class_key = normalize_key(rulebook.classes.key_for(choices.companion_class) or class_def.name)
    background = rulebook.backgrounds.require(choices.background) if choices.background else None
    subrace = _resolve_subrace(race, choices.subrace)

    level = _resolve_level(choices.level, character)
    subclass = _resolve_subclass(class_def, class_key, choices.companion_subclass, level)

    base = resolve_base_scores(choices.ability_method, choices.base_scores)
    validate_racial_choices(race, subrace, choices.racial_choices, require_complete=True)
    scores = _cap_scores(compute_final_scores(base, racial_bonuses(race, subrace, choices.racial_choices)))

    skills = validate_class_skills(class_def, choices.skills)
    _validate_spell_counts(class_key, level, choices.cantrips, choices.spells_known)

    items = compile_starting_equipment(
        class_def,
        background,
        choices.equipment_choice,
        choices.equipment_selections,
        choices.equipment_sub_selections,
        rulebook.equipment,
    )
    class_gold = None
    if choices.equipment_choice == EquipmentChoice.GOLD:
        class_gold = choices.gold
        if class_gold is None:
            class_gold = resolve_gold(
                class_def,
                choices.gold_method,
                manual_amount=choices.manual_gold,
                roller=roller,
            )

    draft = PartyMemberDraft(
        recruited_by_character_id=character.id,
        npc_id=choices.npc_id,
        name=name,
        race=race.name,
        subrace=subrace.name if subrace else None,
        companion_class=class_key,
        companion_subclass=subclass,
        level=level,
        background=background.name if background else None,
        ability_scores=scores,
        skill_proficiencies=skills,
        cantrips=list(choices.cantrips),
        spells_known=list(choices.spells_known),
        starting_equipment=to_inventory(items),
        starting_gold_gp=starting_gold(choices.equipment_choice, class_gold, background),
        armor_class=BASE_ARMOR_CLASS + scores.modifier(Ability.DEX),
        speed=(subrace.speed if subrace and subrace.speed else race.speed),
        max_hp=companion_max_hp(class_def.hit_die, scores.get(Ability.CON), level),
        profile=choices.profile,
    )
    logger.info(
        "Party member built",
        name=draft.name,
        companion_class=draft.companion_class,
        level=draft.level,
        character=character.name,
    )
    return draft


__all__ = [
    "PartyMemberChoices",
    "validate_class_skills",
    "create_party_member",
]
