"""Integration tests for the character lifecycle.

Tests the complete flow: create through the wizard, save and load as a
backend record, level up, rest, and recruit and level a companion.
"""

from __future__ import annotations

import pytest

from dnd_roster.engine import companions, leveling, wizard
from dnd_roster.engine.wizard import WizardState
from dnd_roster.models.character import AbilityScores, Character
from dnd_roster.models.companion import NpcRecord
from dnd_roster.models.enums import Ability, ProgressionType, RestType, WizardStep
from dnd_roster.models.leveling import LevelUpChoices
from dnd_roster.rules.tables import RuleBook


@pytest.fixture
def new_fighter_state() -> WizardState:
    return WizardState(
        first_name="Brenna",
        last_name="Stonefist",
        race="dwarf",
        subrace="Mountain Dwarf",
        class_name="fighter",
        background="soldier",
        base_scores={
            Ability.STR: 15,
            Ability.DEX: 13,
            Ability.CON: 14,
            Ability.INT: 8,
            Ability.WIS: 12,
            Ability.CHA: 10,
        },
        selected_skills=["perception", "survival"],
        alignment="LG",
        lifestyle="modest",
    )


class TestCharacterFlow:
    """Test character creation, saving, loading and progression."""

    def test_create_character(self, new_fighter_state: WizardState, rulebook: RuleBook) -> None:
        """Walk every wizard step and compile the character."""
        state = new_fighter_state
        while state.step != WizardStep.REVIEW:
            state = wizard.advance(state, rulebook)

        character = wizard.build_character(state, rulebook)

        assert character.name == "Brenna Stonefist"
        assert character.ability_scores.strength == 17
        assert character.ability_scores.constitution == 16
        assert character.max_hp == 13
        assert character.armor_class == 11
        assert character.speed == 25
        assert character.skills == ["perception", "survival", "athletics", "intimidation"]

    def test_save_and_load_character(self, new_fighter_state: WizardState, rulebook: RuleBook) -> None:
        """The create payload parses back into the same character."""
        character = wizard.build_character(new_fighter_state, rulebook)

        record = {**character.to_payload(), "id": 12}
        loaded = Character.from_record(record)

        assert loaded.id == 12
        assert loaded.ability_scores == character.ability_scores
        assert loaded.class_levels == character.class_levels
        assert loaded.hit_dice == {"d10": 1}
        assert loaded.inventory == character.inventory
        assert loaded.skills == character.skills

    def test_level_up_and_rest(self, new_fighter_state: WizardState, rulebook: RuleBook) -> None:
        """Level to 2 with average HP, take damage and long rest."""
        character = wizard.build_character(new_fighter_state, rulebook)
        character = character.model_copy(update={"id": 12, "experience": 300})

        result = leveling.apply_level_up(character, LevelUpChoices(), rulebook)
        leveled = result.character

        assert leveled.level == 2
        assert leveled.max_hp == 22
        assert leveled.hit_dice == {"d10": 2}
        assert result.summary.hp_gained == 9

        wounded = leveled.model_copy(update={"current_hp": 5})
        rested = leveling.rest(wounded, RestType.LONG)

        assert rested.character.current_hp == 22
        assert rested.hp_restored == 17

    def test_companion_progression(self, new_fighter_state: WizardState, rulebook: RuleBook) -> None:
        """Recruit a class-based cleric at the character's level and level it."""
        character = wizard.build_character(new_fighter_state, rulebook)
        character = character.model_copy(update={"id": 12, "experience": 300})
        character = leveling.apply_level_up(character, LevelUpChoices(), rulebook).character
        npc = NpcRecord(id=3, name="Sister Maelis", ability_scores=AbilityScores(con=14, wis=16))

        companion = companions.recruit_companion(
            npc, character, ProgressionType.CLASS_BASED, "cleric", rulebook=rulebook
        )
        assert companion.companion_level == 2
        assert companion.companion_max_hp == 17

        result = companions.apply_companion_level_up(companion, LevelUpChoices(), rulebook)

        assert result.new_level == 3
        assert result.companion.companion_max_hp == 24
        assert result.companion.recruited_by_character_id == 12
