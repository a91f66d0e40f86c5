"""Tests for the character creation wizard."""

from __future__ import annotations

from typing import Any

import pytest

from dnd_roster.core.exceptions import WizardStepError
from dnd_roster.engine import wizard
from dnd_roster.engine.wizard import WizardState
from dnd_roster.models.character import Character, ClassLevel
from dnd_roster.models.enums import Ability, AbilityMethod, EquipmentChoice, GoldMethod, WizardStep
from dnd_roster.rules.tables import RuleBook


STANDARD_WIZARD_SCORES = {
    Ability.STR: 8,
    Ability.DEX: 14,
    Ability.CON: 13,
    Ability.INT: 15,
    Ability.WIS: 12,
    Ability.CHA: 10,
}


def make_state(**overrides: Any) -> WizardState:
    """A complete high elf wizard with a sage background."""
    values: dict[str, Any] = {
        "first_name": "Mira",
        "last_name": "Vell",
        "race": "elf",
        "subrace": "High Elf",
        "class_name": "wizard",
        "background": "sage",
        "base_scores": dict(STANDARD_WIZARD_SCORES),
        "selected_skills": ["insight", "medicine"],
        "alignment": "NG",
        "lifestyle": "modest",
    }
    values.update(overrides)
    return WizardState(**values)


class TestStateChanges:
    """Tests for the resetting setters."""

    def test_with_race_drops_choices(self) -> None:
        state = make_state(race="half_elf", subrace=None, racial_choices=[Ability.STR, Ability.DEX])
        changed = state.with_race("dwarf", "Hill Dwarf")

        assert changed.race == "dwarf"
        assert changed.subrace == "Hill Dwarf"
        assert changed.racial_choices == []
        assert state.racial_choices == [Ability.STR, Ability.DEX]

    def test_with_class_resets_picks(self) -> None:
        state = make_state(
            subclass="School of Evocation",
            equipment_selections={0: "Dagger"},
            gold_method=GoldMethod.AVERAGE,
            starting_gold=100,
        )
        changed = state.with_class("rogue")

        assert changed.class_name == "rogue"
        assert changed.subclass is None
        assert changed.selected_skills == []
        assert changed.equipment_selections == {}
        assert changed.starting_gold is None
        assert changed.base_scores == state.base_scores

    def test_with_ability_method_clears_scores(self) -> None:
        changed = make_state().with_ability_method(AbilityMethod.POINT_BUY)

        assert changed.ability_method == AbilityMethod.POINT_BUY
        assert all(score is None for score in changed.base_scores.values())

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValueError):
            WizardState(hit_points=12)  # type: ignore[call-arg]


class TestSkillsAndScores:
    """Tests for derived wizard values."""

    def test_background_skills_excluded(self, rulebook: RuleBook) -> None:
        assert wizard.skill_options(make_state(), rulebook) == ["insight", "investigation", "medicine", "religion"]

    def test_no_class(self, rulebook: RuleBook) -> None:
        assert wizard.skill_options(make_state(class_name=""), rulebook) == []

    def test_final_scores(self, rulebook: RuleBook) -> None:
        scores = wizard.final_scores(make_state(), rulebook)

        assert scores.dexterity == 16
        assert scores.intelligence == 16
        assert scores.constitution == 13

    def test_racial_choices_applied(self, rulebook: RuleBook) -> None:
        state = make_state(race="half_elf", subrace=None, racial_choices=[Ability.STR, Ability.CON])
        scores = wizard.final_scores(state, rulebook)

        assert scores.strength == 9
        assert scores.constitution == 14
        assert scores.charisma == 12


class TestStepProblems:
    """Tests for step predicates."""

    def test_empty_identity(self, rulebook: RuleBook) -> None:
        problems = wizard.step_problems(WizardStep.IDENTITY, WizardState(), rulebook)

        assert problems == ["Enter a first name", "Choose a race", "Choose a background", "Choose a class"]

    def test_subrace_required(self, rulebook: RuleBook) -> None:
        problems = wizard.step_problems(WizardStep.IDENTITY, make_state(subrace=None), rulebook)
        assert problems == ["Choose a subrace for Elf"]

    def test_race_without_subraces(self, rulebook: RuleBook) -> None:
        state = make_state(race="half_elf", subrace=None)
        assert wizard.can_advance(WizardStep.IDENTITY, state, rulebook)

    def test_complete_state(self, rulebook: RuleBook) -> None:
        state = make_state()

        for step in (WizardStep.IDENTITY, WizardStep.ABILITIES, WizardStep.DETAILS, WizardStep.EQUIPMENT):
            assert wizard.step_problems(step, state, rulebook) == []

    def test_unassigned_scores(self, rulebook: RuleBook) -> None:
        state = make_state(base_scores={**STANDARD_WIZARD_SCORES, Ability.CHA: None})
        assert "Assign all six ability scores" in wizard.step_problems(WizardStep.ABILITIES, state, rulebook)

    def test_bad_standard_array(self, rulebook: RuleBook) -> None:
        state = make_state(base_scores={**STANDARD_WIZARD_SCORES, Ability.CHA: 15})
        problems = wizard.step_problems(WizardStep.ABILITIES, state, rulebook)

        assert problems[0].startswith("Standard array scores")

    def test_too_few_skills(self, rulebook: RuleBook) -> None:
        state = make_state(selected_skills=["insight"])
        assert wizard.step_problems(WizardStep.ABILITIES, state, rulebook) == ["Choose 2 skills"]

    def test_racial_choices_required_for_new(self, rulebook: RuleBook) -> None:
        state = make_state(race="half_elf", subrace=None, racial_choices=[Ability.STR])
        problems = wizard.step_problems(WizardStep.ABILITIES, state, rulebook)

        assert len(problems) == 1
        assert "Choose 2" in problems[0]

    def test_racial_choices_skipped_for_edit(self, rulebook: RuleBook) -> None:
        state = make_state(race="half_elf", subrace=None, character_id=7)
        assert wizard.can_advance(WizardStep.ABILITIES, state, rulebook)

    def test_details(self, rulebook: RuleBook) -> None:
        state = make_state(alignment=None, lifestyle="")
        problems = wizard.step_problems(WizardStep.DETAILS, state, rulebook)

        assert problems == ["Choose an alignment", "Choose a lifestyle"]

    def test_gold_path_needs_amount(self, rulebook: RuleBook) -> None:
        state = make_state(equipment_choice=EquipmentChoice.GOLD)
        assert wizard.step_problems(WizardStep.EQUIPMENT, state, rulebook) == [
            "Roll, take the average or enter your starting gold"
        ]

    def test_review_is_terminal(self, rulebook: RuleBook) -> None:
        assert wizard.can_advance(WizardStep.REVIEW, make_state(), rulebook) is False


class TestNavigation:
    """Tests for advance and back."""

    def test_advance_through_all_steps(self, rulebook: RuleBook) -> None:
        state = make_state()
        visited = [state.step]
        while state.step != WizardStep.REVIEW:
            state = wizard.advance(state, rulebook)
            visited.append(state.step)

        assert tuple(visited) == wizard.STEPS

    def test_advance_blocked(self, rulebook: RuleBook) -> None:
        with pytest.raises(WizardStepError, match="Enter a first name") as exc_info:
            wizard.advance(make_state(first_name=" "), rulebook)

        assert exc_info.value.details["step"] == "identity"
        assert exc_info.value.details["problems"] == ["Enter a first name"]

    def test_advance_past_review(self, rulebook: RuleBook) -> None:
        with pytest.raises(WizardStepError, match="last step"):
            wizard.advance(make_state(step=WizardStep.REVIEW), rulebook)

    def test_back(self) -> None:
        assert wizard.back(make_state(step=WizardStep.DETAILS)).step == WizardStep.ABILITIES

    def test_back_at_start(self) -> None:
        with pytest.raises(WizardStepError, match="first step"):
            wizard.back(make_state())

    def test_choose_gold(self, rulebook: RuleBook) -> None:
        state = wizard.choose_gold(make_state(), rulebook, GoldMethod.MANUAL, manual_amount="50")

        assert state.equipment_choice == EquipmentChoice.GOLD
        assert state.gold_method == GoldMethod.MANUAL
        assert state.starting_gold == 50
        assert wizard.can_advance(WizardStep.EQUIPMENT, state, rulebook)


class TestBuildNewCharacter:
    """Tests for compiling a new character."""

    def test_derived_values(self, rulebook: RuleBook) -> None:
        character = wizard.build_character(make_state(), rulebook)

        assert character.id is None
        assert character.name == "Mira Vell"
        assert character.class_name == "wizard"
        assert character.level == 1
        assert character.max_hp == 7
        assert character.current_hp == 7
        assert character.armor_class == 13
        assert character.speed == 30
        assert character.hit_dice == {"d6": 1}
        assert character.class_levels == [ClassLevel(class_name="wizard", level=1)]
        assert character.experience == 0

    def test_skills_include_background(self, rulebook: RuleBook) -> None:
        character = wizard.build_character(make_state(), rulebook)
        assert character.skills == ["insight", "medicine", "arcana", "history"]

    def test_languages_and_tools(self, rulebook: RuleBook) -> None:
        character = wizard.build_character(make_state(race="dwarf", subrace="Mountain Dwarf", background="soldier"), rulebook)

        assert character.languages == ["Common", "Dwarvish"]
        assert character.tool_proficiencies == rulebook.backgrounds.require("soldier").tool_proficiencies
        assert character.speed == 25

    def test_equipment_path(self, rulebook: RuleBook) -> None:
        character = wizard.build_character(make_state(), rulebook)
        names = [item.name for item in character.inventory]

        assert "Spellbook" in names
        assert "Bottle of Black Ink" in names
        assert character.equipment == names
        assert character.gold_gp == 10

    def test_gold_path(self, rulebook: RuleBook) -> None:
        state = wizard.choose_gold(make_state(), rulebook, GoldMethod.MANUAL, manual_amount=50)
        character = wizard.build_character(state, rulebook)

        assert character.gold_gp == 60
        assert "Spellbook" not in character.equipment

    def test_fallbacks(self, rulebook: RuleBook) -> None:
        character = wizard.build_character(WizardState(), rulebook)

        assert character.name == "Unnamed Hero"
        assert character.race == "human"
        assert character.class_name == "fighter"
        assert character.max_hp >= 1

    def test_payload(self, rulebook: RuleBook) -> None:
        payload = wizard.build_character_payload(make_state(), rulebook)

        assert payload["class"] == "wizard"
        assert '"int":16' in payload["ability_scores"]
        assert "id" not in payload


class TestEditCharacter:
    """Tests for editing a saved character."""

    def test_from_character(self, fighter: Character, rulebook: RuleBook) -> None:
        state = WizardState.from_character(fighter, rulebook)

        assert state.character_id == 7
        assert state.first_name == "Thorin"
        assert state.last_name == "Oakenshield"
        assert state.race == "dwarf"
        assert state.subrace == "Mountain Dwarf"
        assert state.subclass == "Champion"
        assert state.ability_method == AbilityMethod.MANUAL
        assert state.base_scores[Ability.STR] == 14
        assert state.base_scores[Ability.CON] == 13
        assert state.selected_skills == ["perception"]

    def test_from_record(self, sample_character_record: dict[str, Any], rulebook: RuleBook) -> None:
        assert WizardState.from_character(sample_character_record, rulebook).background == "soldier"

    def test_round_trip_keeps_character(self, fighter: Character, rulebook: RuleBook) -> None:
        state = WizardState.from_character(fighter, rulebook)
        edited = wizard.build_character(state, rulebook, existing=fighter)

        assert edited.id == 7
        assert edited.ability_scores == fighter.ability_scores
        assert edited.max_hp == 28
        assert edited.current_hp == 20
        assert edited.experience == 2700
        assert edited.gold_gp == 10
        assert edited.inventory == fighter.inventory
        assert edited.class_levels == [ClassLevel(class_name="fighter", level=3, subclass="Champion")]
        assert sorted(edited.skills) == ["athletics", "intimidation", "perception"]

    def test_con_change_shifts_hp(self, fighter: Character, rulebook: RuleBook) -> None:
        state = WizardState.from_character(fighter, rulebook)
        state = state.model_copy(update={"base_scores": {**state.base_scores, Ability.CON: 15}})
        edited = wizard.build_character(state, rulebook, existing=fighter)

        assert edited.ability_scores.constitution == 17
        assert edited.max_hp == 31
        assert edited.current_hp == 23

    def test_multiclass_levels_kept(self, fighter: Character, rulebook: RuleBook) -> None:
        levels = [ClassLevel(class_name="fighter", level=3, subclass="Champion"), ClassLevel(class_name="rogue", level=1)]
        multiclass = fighter.model_copy(update={"level": 4, "class_levels": levels, "hit_dice": {"d10": 3, "d8": 1}})
        state = WizardState.from_character(multiclass, rulebook)
        edited = wizard.build_character(state, rulebook, existing=multiclass)

        assert edited.class_levels == levels
        assert edited.hit_dice == {"d10": 3, "d8": 1}

    def test_empty_inventory_filled(self, fighter: Character, rulebook: RuleBook) -> None:
        bare = fighter.model_copy(update={"inventory": [], "equipment": []})
        edited = wizard.build_character(WizardState.from_character(bare, rulebook), rulebook, existing=bare)

        assert "Insignia of Rank" in edited.equipment
