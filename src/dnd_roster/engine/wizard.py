"""Character creation wizard as a state machine.

The wizard walks through five steps:

    IDENTITY -> ABILITIES -> DETAILS -> EQUIPMENT -> REVIEW

Each step has a pure predicate (``step_problems`` / ``can_advance``) that
decides whether the player may move on. ``advance`` and ``back`` return
a new ``WizardState``; the state itself is a plain pydantic model the UI
keeps in its session.

``build_character`` turns a finished state into a ``Character``; with an
``existing`` record it produces an edit instead, keeping everything the
character has earned since creation.

Example:
    >>> state = WizardState(first_name="Mira", race="elf", subrace="High Elf",
    ...                     class_name="wizard", background="sage")
    >>> can_advance(WizardStep.IDENTITY, state, get_rulebook())
    True
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dnd_roster.core.constants import (
    BASE_ARMOR_CLASS,
    DEFAULT_SPEED,
    FALLBACK_CHARACTER_NAME,
    FALLBACK_CLASS,
    FALLBACK_RACE,
)
from dnd_roster.core.exceptions import AbilityScoreError, WizardStepError
from dnd_roster.core.logging import get_logger
from dnd_roster.engine.abilities import (
    compute_final_scores,
    missing_scores,
    racial_bonuses,
    recover_base_scores,
    resolve_base_scores,
    validate_racial_choices,
)
from dnd_roster.engine.dice import DiceRoller
from dnd_roster.engine.equipment import (
    background_items,
    compile_starting_equipment,
    expand_packs,
    resolve_gold,
    starting_gold,
    to_inventory,
)
from dnd_roster.models.character import AbilityScores, Character, ClassLevel
from dnd_roster.models.enums import Ability, AbilityMethod, EquipmentChoice, GoldMethod, WizardStep
from dnd_roster.models.rules import Background, CharacterClassDef, Race, Subrace
from dnd_roster.rules import progression
from dnd_roster.rules.tables import RuleBook, normalize_key


logger = get_logger(__name__)

STEPS: tuple[WizardStep, ...] = tuple(WizardStep)


# =============================================================================
# State
# =============================================================================


class WizardState(BaseModel):
    """Everything entered in the wizard so far.

    Keys for race, class, background and faith are rule table keys;
    subrace and subclass are display names, as stored on characters.
    ``character_id`` is set when editing a saved character.
    """

    model_config = ConfigDict(extra="forbid")

    step: WizardStep = WizardStep.IDENTITY
    character_id: int | None = None

    # Identity
    first_name: str = ""
    last_name: str = ""
    nickname: str | None = None
    gender: str | None = None
    race: str = ""
    subrace: str | None = None
    class_name: str = ""
    subclass: str | None = None
    background: str = ""
    level: int = Field(default=1, ge=1, le=20)
    avatar: str | None = None

    # Abilities and skills
    ability_method: AbilityMethod = AbilityMethod.STANDARD_ARRAY
    base_scores: dict[Ability, int | None] = Field(default_factory=lambda: dict.fromkeys(Ability))
    racial_choices: list[Ability] = Field(default_factory=list)
    selected_skills: list[str] = Field(default_factory=list)

    # Details
    alignment: str | None = None
    faith: str | None = None
    lifestyle: str | None = None
    hair_color: str | None = None
    skin_color: str | None = None
    eye_color: str | None = None
    height: str | None = None
    weight: str | None = None
    age: str | int | None = None
    personality_traits: str | None = None
    ideals: str | None = None
    bonds: str | None = None
    flaws: str | None = None
    organizations: str | None = None
    allies: str | None = None
    enemies: str | None = None
    backstory: str | None = None
    other_notes: str | None = None
    current_location: str | None = "Starting Town"
    current_quest: str | None = None

    # Equipment
    equipment_choice: EquipmentChoice = EquipmentChoice.EQUIPMENT
    equipment_selections: dict[int, str | None] = Field(default_factory=dict)
    equipment_sub_selections: dict[int, str | None] = Field(default_factory=dict)
    gold_method: GoldMethod | None = None
    starting_gold: int | None = None

    @classmethod
    def from_character(cls, record: Character | Mapping[str, Any], rulebook: RuleBook) -> WizardState:
        """Rebuild wizard state for editing a saved character.

        Stored names are mapped back to table keys, racial bonuses are
        stripped to recover base scores, and background skills are
        removed so only class picks remain selected.
        """
        character = record if isinstance(record, Character) else Character.from_record(record)

        name_parts = character.name.split(" ") if character.name else [""]
        first_name = character.first_name or name_parts[0]
        last_name = character.last_name or " ".join(name_parts[1:])

        race_key = rulebook.races.key_for(character.race) or character.race
        race = rulebook.races.get(race_key)
        subrace = race.find_subrace(character.subrace) if race else None
        background_key = rulebook.backgrounds.key_for(character.background) or (character.background or "")
        background = rulebook.backgrounds.get(background_key)

        background_skills = {normalize_key(skill) for skill in background.skill_proficiencies} if background else set()
        selected = [skill for skill in character.skills if normalize_key(skill) not in background_skills]

        return cls(
            character_id=character.id,
            first_name=first_name,
            last_name=last_name,
            nickname=character.nickname,
            gender=character.gender,
            race=race_key,
            subrace=subrace.name if subrace else character.subrace,
            class_name=rulebook.classes.key_for(character.class_name) or character.class_name,
            subclass=character.subclass or character.class_levels[0].subclass,
            background=background_key,
            level=character.level,
            avatar=character.avatar,
            ability_method=AbilityMethod.MANUAL,
            base_scores=recover_base_scores(character.ability_scores, race, subrace),
            selected_skills=selected,
            alignment=character.alignment,
            faith=rulebook.deities.key_for(character.faith) or character.faith,
            lifestyle=character.lifestyle,
            hair_color=character.hair_color,
            skin_color=character.skin_color,
            eye_color=character.eye_color,
            height=character.height,
            weight=character.weight,
            age=character.age,
            personality_traits=character.personality_traits,
            ideals=character.ideals,
            bonds=character.bonds,
            flaws=character.flaws,
            organizations=character.organizations,
            allies=character.allies,
            enemies=character.enemies,
            backstory=character.backstory,
            other_notes=character.other_notes,
            current_location=character.current_location,
            current_quest=character.current_quest,
        )

    def with_race(self, race: str, subrace: str | None = None) -> WizardState:
        """Change race; racial choices belong to the old race and are dropped."""
        return self.model_copy(update={"race": race, "subrace": subrace, "racial_choices": []})

    def with_class(self, class_name: str) -> WizardState:
        """Change class; skills, subclass and kit picks are reset."""
        return self.model_copy(
            update={
                "class_name": class_name,
                "subclass": None,
                "selected_skills": [],
                "equipment_selections": {},
                "equipment_sub_selections": {},
                "gold_method": None,
                "starting_gold": None,
            }
        )

    def with_ability_method(self, method: AbilityMethod) -> WizardState:
        """Switch score method; all base scores go back to unassigned."""
        return self.model_copy(update={"ability_method": method, "base_scores": dict.fromkeys(Ability)})


# =============================================================================
# Rule Lookups
# =============================================================================


def _race(state: WizardState, rulebook: RuleBook) -> Race | None:
    return rulebook.races.get(state.race)


def _subrace(state: WizardState, race: Race | None) -> Subrace | None:
    return race.find_subrace(state.subrace) if race else None


def _class(state: WizardState, rulebook: RuleBook) -> CharacterClassDef | None:
    return rulebook.classes.get(state.class_name)


def _background(state: WizardState, rulebook: RuleBook) -> Background | None:
    return rulebook.backgrounds.get(state.background)


def skill_options(state: WizardState, rulebook: RuleBook) -> list[str]:
    """Class skills the player can still pick; background skills are excluded."""
    class_def = _class(state, rulebook)
    if class_def is None:
        return []
    background = _background(state, rulebook)
    granted = {normalize_key(skill) for skill in background.skill_proficiencies} if background else set()
    return [skill for skill in class_def.skill_options if skill not in granted]


def final_scores(state: WizardState, rulebook: RuleBook) -> AbilityScores:
    """Base scores plus race, subrace and racial choice bonuses."""
    race = _race(state, rulebook)
    if race is None:
        return compute_final_scores(state.base_scores)
    subrace = _subrace(state, race)
    return compute_final_scores(state.base_scores, racial_bonuses(race, subrace, state.racial_choices))


# =============================================================================
# Step Predicates
# =============================================================================


def _identity_problems(state: WizardState, rulebook: RuleBook) -> list[str]:
    problems = []
    if not state.first_name.strip():
        problems.append("Enter a first name")
    race = _race(state, rulebook)
    if race is None:
        problems.append("Choose a race")
    elif race.subraces and _subrace(state, race) is None:
        problems.append(f"Choose a subrace for {race.name}")
    if _background(state, rulebook) is None:
        problems.append("Choose a background")
    if _class(state, rulebook) is None:
        problems.append("Choose a class")
    return problems


def _ability_problems(state: WizardState, rulebook: RuleBook) -> list[str]:
    problems = []
    if missing_scores(state.base_scores):
        problems.append("Assign all six ability scores")
    else:
        try:
            resolve_base_scores(state.ability_method, state.base_scores)
        except AbilityScoreError as exc:
            problems.append(exc.message)

    race = _race(state, rulebook)
    # Saved characters do not record racial choices; they stay in the recovered base.
    if race is not None and race.ability_choices is not None and state.character_id is None:
        try:
            validate_racial_choices(race, _subrace(state, race), state.racial_choices, require_complete=True)
        except AbilityScoreError as exc:
            problems.append(exc.message)

    class_def = _class(state, rulebook)
    if class_def is not None and len(state.selected_skills) < class_def.skill_choices:
        problems.append(f"Choose {class_def.skill_choices} skills")
    return problems


def _detail_problems(state: WizardState) -> list[str]:
    problems = []
    if not state.alignment:
        problems.append("Choose an alignment")
    if not state.lifestyle:
        problems.append("Choose a lifestyle")
    return problems


def _equipment_problems(state: WizardState) -> list[str]:
    if state.equipment_choice == EquipmentChoice.GOLD and state.starting_gold is None:
        return ["Roll, take the average or enter your starting gold"]
    return []


def step_problems(step: WizardStep, state: WizardState, rulebook: RuleBook) -> list[str]:
    """Everything that keeps ``step`` from being complete.

    REVIEW is terminal, so it always reports one problem.
    """
    if step == WizardStep.IDENTITY:
        return _identity_problems(state, rulebook)
    if step == WizardStep.ABILITIES:
        return _ability_problems(state, rulebook)
    if step == WizardStep.DETAILS:
        return _detail_problems(state)
    if step == WizardStep.EQUIPMENT:
        return _equipment_problems(state)
    return ["Review is the last step"]


def can_advance(step: WizardStep, state: WizardState, rulebook: RuleBook) -> bool:
    return not step_problems(step, state, rulebook)


def advance(state: WizardState, rulebook: RuleBook) -> WizardState:
    """Move to the next step.

    Raises:
        WizardStepError: The current step is incomplete, or is REVIEW.
    """
    problems = step_problems(state.step, state, rulebook)
    if problems:
        raise WizardStepError(
            "; ".join(problems),
            step=state.step.value,
            details={"problems": problems},
        )
    next_step = STEPS[STEPS.index(state.step) + 1]
    logger.debug("Wizard advanced", step=next_step.value)
    return state.model_copy(update={"step": next_step})


def back(state: WizardState) -> WizardState:
    """Move to the previous step.

    Raises:
        WizardStepError: Already at the first step.
    """
    index = STEPS.index(state.step)
    if index == 0:
        raise WizardStepError("Already at the first step", step=state.step.value)
    return state.model_copy(update={"step": STEPS[index - 1]})


def choose_gold(
    state: WizardState,
    rulebook: RuleBook,
    method: GoldMethod,
    *,
    manual_amount: int | str | None = None,
    roller: DiceRoller | None = None,
) -> WizardState:
    """Settle class starting gold for the gold path.

    Raises:
        EquipmentError: Bad manual amount, or the class has no gold entry.
    """
    class_def = rulebook.classes.require(state.class_name)
    amount = resolve_gold(class_def, method, manual_amount=manual_amount, roller=roller)
    return state.model_copy(
        update={
            "equipment_choice": EquipmentChoice.GOLD,
            "gold_method": method,
            "starting_gold": amount,
        }
    )


# =============================================================================
# Submission
# =============================================================================


_DETAIL_FIELDS = (
    "nickname",
    "gender",
    "avatar",
    "alignment",
    "lifestyle",
    "hair_color",
    "skin_color",
    "eye_color",
    "height",
    "weight",
    "age",
    "personality_traits",
    "ideals",
    "bonds",
    "flaws",
    "organizations",
    "allies",
    "enemies",
    "backstory",
    "other_notes",
    "current_location",
    "current_quest",
)


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _starting_items(state: WizardState, rulebook: RuleBook, class_def: CharacterClassDef | None) -> list[str]:
    background = _background(state, rulebook)
    if class_def is None:
        return expand_packs(background_items(background), rulebook.equipment)
    return compile_starting_equipment(
        class_def,
        background,
        state.equipment_choice,
        state.equipment_selections,
        state.equipment_sub_selections,
        rulebook.equipment,
    )


def _edit_class_levels(existing: Character, class_name: str, subclass: str | None) -> list[ClassLevel]:
    # Multiclass progression is only changed through level-up.
    if len(existing.class_levels) > 1:
        return list(existing.class_levels)
    return [ClassLevel(class_name=class_name, level=existing.level, subclass=subclass)]


def build_character(
    state: WizardState,
    rulebook: RuleBook,
    existing: Character | None = None,
) -> Character:
    """Compile wizard state into a character record.

    New characters start with ``max(1, hit die + CON)`` HP, AC 10 + DEX
    and the compiled kit or gold. Edits keep level, experience, gold and
    advantages, keep the inventory unless it is empty, and shift HP by
    the change in CON modifier times the level.
    """
    race = _race(state, rulebook)
    subrace = _subrace(state, race)
    class_def = _class(state, rulebook)
    background = _background(state, rulebook)

    scores = final_scores(state, rulebook)
    con_mod = scores.modifier(Ability.CON)
    class_name = state.class_name or FALLBACK_CLASS
    hit_die = class_def.hit_die if class_def else progression.get_hit_die(normalize_key(class_name))

    items = _starting_items(state, rulebook, class_def)
    background_skills = background.skill_proficiencies if background else []

    fields: dict[str, Any] = {name: getattr(state, name) for name in _DETAIL_FIELDS}
    fields.update(
        name=f"{state.first_name} {state.last_name}".strip() or FALLBACK_CHARACTER_NAME,
        first_name=state.first_name,
        last_name=state.last_name,
        race=state.race or FALLBACK_RACE,
        subrace=state.subrace or None,
        class_name=class_name,
        subclass=state.subclass or None,
        background=state.background or None,
        faith=state.faith or None,
        ability_scores=scores,
        skills=_unique([*state.selected_skills, *background_skills]),
        armor_class=BASE_ARMOR_CLASS + scores.modifier(Ability.DEX),
        speed=(subrace.speed if subrace and subrace.speed else race.speed if race else DEFAULT_SPEED),
    )

    if existing is None:
        max_hp = max(1, hit_die + con_mod)
        character = Character(
            **fields,
            level=state.level,
            class_levels=[ClassLevel(class_name=class_name, level=state.level, subclass=fields["subclass"])],
            hit_dice={f"d{hit_die}": state.level},
            max_hp=max_hp,
            current_hp=max_hp,
            experience=0,
            experience_to_next_level=progression.get_xp_for_next_level(state.level),
            gold_cp=0,
            gold_sp=0,
            gold_gp=starting_gold(state.equipment_choice, state.starting_gold, background),
            inventory=to_inventory(items),
            equipment=items,
            languages=race.languages if race else [],
            tool_proficiencies=background.tool_proficiencies if background else [],
        )
        logger.info("Character compiled", name=character.name, race=character.race, class_name=class_name)
        return character

    adjustment = (con_mod - existing.ability_scores.modifier(Ability.CON)) * existing.level
    max_hp = max(1, existing.max_hp + adjustment)
    current_hp = max(1, min(existing.current_hp + adjustment, max_hp))
    class_levels = _edit_class_levels(existing, class_name, fields["subclass"])
    fields.update(
        class_levels=class_levels,
        max_hp=max_hp,
        current_hp=current_hp,
    )
    if len(class_levels) == 1:
        fields["hit_dice"] = {f"d{hit_die}": existing.level}
    if not existing.inventory and items:
        fields.update(inventory=to_inventory(items), equipment=items)

    character = existing.model_copy(update=fields)
    logger.info("Character edit compiled", name=character.name, hp_adjustment=adjustment)
    return character


def build_character_payload(
    state: WizardState,
    rulebook: RuleBook,
    existing: Character | None = None,
) -> dict[str, Any]:
    """``build_character`` flattened into the create or update body."""
    return build_character(state, rulebook, existing).to_payload()


__all__ = [
    "STEPS",
    "WizardState",
    "skill_options",
    "final_scores",
    "step_problems",
    "can_advance",
    "advance",
    "back",
    "choose_gold",
    "build_character",
    "build_character_payload",
]
