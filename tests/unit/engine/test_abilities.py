"""Tests for ability score generation and racial bonuses."""

from __future__ import annotations

from typing import Any

import pytest

from dnd_roster.core.constants import MAX_ABILITY_SCORE
from dnd_roster.core.exceptions import AbilityScoreError
from dnd_roster.engine import abilities
from dnd_roster.engine.abilities import ScorePoolAssignment, StandardArrayAssignment
from dnd_roster.engine.dice import DiceRoller
from dnd_roster.models.character import AbilityScores
from dnd_roster.models.enums import Ability, AbilityMethod
from dnd_roster.rules.tables import RuleBook


class TestSanitize:
    """Tests for score sanitizing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(12, 12), ("14", 14), (13.9, 13), ("x", 10), (None, 10), (True, 10), (float("inf"), 10)],
    )
    def test_sanitize_score(self, raw: Any, expected: int) -> None:
        assert abilities.sanitize_score(raw) == expected

    def test_sanitize_scores_fills_missing(self) -> None:
        scores = abilities.sanitize_scores({"str": 15, "Dexterity": "13"})

        assert scores[Ability.STR] == 15
        assert scores[Ability.DEX] == 13
        assert scores[Ability.CHA] == 10


class TestFinalScores:
    """Tests for compute_final_scores."""

    def test_bonuses_stack(self, sample_ability_scores: dict[str, int]) -> None:
        final = abilities.compute_final_scores(
            sample_ability_scores,
            {Ability.CON: 2, Ability.STR: 2},
            {"str": 1},
        )

        assert final.strength == 19
        assert final.constitution == 17
        assert final.charisma == 8

    def test_missing_base_counts_as_ten(self) -> None:
        final = abilities.compute_final_scores({"str": None, "dex": 14})
        assert final.strength == 10
        assert final.wisdom == 10

    def test_floor_and_cap(self) -> None:
        final = abilities.compute_final_scores({"str": 3, "dex": 29}, {"str": -5, "dex": 4})

        assert final.strength == 1
        assert final.dexterity == MAX_ABILITY_SCORE


class TestRacialBonuses:
    """Tests for racial bonus resolution."""

    def test_race_and_subrace_stack(self, rulebook: RuleBook) -> None:
        dwarf = rulebook.races.require("dwarf")
        mountain = dwarf.find_subrace("Mountain Dwarf")

        assert abilities.fixed_racial_bonuses(dwarf, mountain) == {Ability.CON: 2, Ability.STR: 2}

    def test_choices_add_amount(self, rulebook: RuleBook) -> None:
        half_elf = rulebook.races.require("half_elf")
        bonuses = abilities.racial_bonuses(half_elf, None, ["dex", "con"])

        assert bonuses == {Ability.CHA: 2, Ability.DEX: 1, Ability.CON: 1}

    def test_choices_on_race_without_choices(self, rulebook: RuleBook) -> None:
        with pytest.raises(AbilityScoreError, match="no ability score choices"):
            abilities.validate_racial_choices(rulebook.races.require("human"), None, ["str"])

    def test_no_choices_is_fine(self, rulebook: RuleBook) -> None:
        assert abilities.validate_racial_choices(rulebook.races.require("human"), None, []) == []

    @pytest.mark.parametrize(
        ("choices", "message"),
        [
            (["dex", "dex"], "different ability"),
            (["dex", "con", "wis"], "allows 2"),
            (["cha", "dex"], "fixed racial bonus"),
        ],
    )
    def test_invalid_choices(self, rulebook: RuleBook, choices: list[str], message: str) -> None:
        with pytest.raises(AbilityScoreError, match=message):
            abilities.validate_racial_choices(rulebook.races.require("half_elf"), None, choices)

    def test_require_complete(self, rulebook: RuleBook) -> None:
        half_elf = rulebook.races.require("half_elf")

        assert abilities.validate_racial_choices(half_elf, None, ["dex"]) == [Ability.DEX]
        with pytest.raises(AbilityScoreError, match="Choose 2"):
            abilities.validate_racial_choices(half_elf, None, ["dex"], require_complete=True)

    def test_recover_base_scores(self, rulebook: RuleBook) -> None:
        """Test that fixed bonuses are removed from stored scores."""
        dwarf = rulebook.races.require("dwarf")
        stored = AbilityScores(str=18, dex=14, con=17, int=10, wis=12, cha=8)

        base = abilities.recover_base_scores(stored, dwarf, dwarf.find_subrace("Mountain Dwarf"))

        assert base[Ability.STR] == 16
        assert base[Ability.CON] == 15
        assert base[Ability.DEX] == 14

    def test_recover_without_race(self) -> None:
        base = abilities.recover_base_scores(AbilityScores(str=12), None)
        assert base[Ability.STR] == 12


class TestManualEntry:
    """Tests for manual score entry."""

    @pytest.mark.parametrize(("raw", "expected"), [(25, 18), (1, 3), ("12", 12), ("abc", 10)])
    def test_clamp(self, raw: Any, expected: int) -> None:
        assert abilities.clamp_manual_score(raw) == expected

    def test_set_manual_score_keeps_raw_value(self) -> None:
        """Test that out-of-range values are kept while typing."""
        scores = abilities.set_manual_score({}, "str", " 25 ")
        assert scores == {Ability.STR: 25}

    def test_set_manual_score_non_numeric(self) -> None:
        scores = abilities.set_manual_score({Ability.STR: 14}, Ability.STR, "abc")
        assert scores[Ability.STR] is None


class TestScorePool:
    """Tests for standard array and rolled pool assignment."""

    def test_assign(self) -> None:
        pool = StandardArrayAssignment()
        pool.assign(Ability.STR, 15)

        assert pool.score_for(Ability.STR) == 15
        assert pool.score_for("dex") is None

    def test_assign_moves_taken_value(self) -> None:
        """Test that reusing a taken value unassigns the previous holder."""
        pool = StandardArrayAssignment()
        pool.assign(Ability.STR, 15)
        pool.assign(Ability.DEX, 15)

        assert pool.score_for(Ability.STR) is None
        assert pool.score_for(Ability.DEX) == 15

    def test_reassign_same_value_is_noop(self) -> None:
        pool = StandardArrayAssignment()
        pool.assign(Ability.STR, 15)
        pool.assign(Ability.STR, 15)
        assert pool.as_scores()[Ability.STR] == 15

    def test_value_not_in_pool(self) -> None:
        with pytest.raises(AbilityScoreError, match="not in the score pool"):
            StandardArrayAssignment().assign(Ability.STR, 17)

    def test_duplicate_values_use_free_slot(self) -> None:
        pool = ScorePoolAssignment([12, 12, 10, 9, 8, 15])
        pool.assign(Ability.STR, 12)
        pool.assign(Ability.DEX, 12)

        assert pool.score_for(Ability.STR) == 12
        assert pool.score_for(Ability.DEX) == 12

    def test_assign_slot(self) -> None:
        pool = ScorePoolAssignment([12, 12, 10, 9, 8, 15])
        pool.assign_slot(Ability.STR, 5)
        pool.assign_slot(Ability.CON, 5)

        assert pool.score_for(Ability.STR) is None
        assert pool.score_for(Ability.CON) == 15
        with pytest.raises(AbilityScoreError):
            pool.assign_slot(Ability.WIS, 6)

    def test_available_values(self) -> None:
        pool = StandardArrayAssignment()
        pool.assign(Ability.STR, 15)

        assert pool.available_values(Ability.DEX) == [14, 13, 12, 10, 8]
        assert pool.available_values(Ability.STR) == [15, 14, 13, 12, 10, 8]

    def test_complete(self) -> None:
        pool = StandardArrayAssignment()
        for ability, value in zip(Ability, (15, 14, 13, 12, 10, 8)):
            pool.assign(ability, value)

        assert pool.is_complete is True
        pool.unassign("cha")
        assert pool.is_complete is False

    def test_pool_size(self) -> None:
        with pytest.raises(AbilityScoreError, match="needs 6 values"):
            ScorePoolAssignment([15, 14])

    def test_roll_score_pool(self, dice_roller: DiceRoller) -> None:
        pool = abilities.roll_score_pool(dice_roller)

        assert len(pool.values) == 6
        assert all(3 <= value <= 18 for value in pool.values)


class TestPointBuy:
    """Tests for point-buy validation."""

    def test_default(self) -> None:
        scores = abilities.default_point_buy()

        assert set(scores.values()) == {8}
        assert abilities.point_buy_remaining(scores) == 27

    def test_full_budget(self) -> None:
        scores = {"str": 15, "dex": 15, "con": 15, "int": 8, "wis": 8, "cha": 8}

        assert abilities.point_buy_cost(scores) == 27
        assert abilities.validate_point_buy(scores)[Ability.STR] == 15

    def test_over_budget(self) -> None:
        scores = dict.fromkeys(("str", "dex", "con", "int", "wis", "cha"), 15)

        with pytest.raises(AbilityScoreError, match="over budget") as exc_info:
            abilities.validate_point_buy(scores)

        assert exc_info.value.details["spent"] == 54

    @pytest.mark.parametrize("score", [7, 16])
    def test_out_of_range(self, score: int) -> None:
        with pytest.raises(AbilityScoreError, match="between 8 and 15"):
            abilities.point_buy_cost({"str": score})

    def test_missing_abilities(self) -> None:
        with pytest.raises(AbilityScoreError, match="all six") as exc_info:
            abilities.validate_point_buy({"str": 10})

        assert "cha" in exc_info.value.details["missing"]


class TestResolveBaseScores:
    """Tests for method dispatch."""

    def test_standard_array(self, sample_ability_scores: dict[str, int]) -> None:
        scores = {"str": 15, "dex": 14, "con": 13, "int": 12, "wis": 10, "cha": 8}
        resolved = abilities.resolve_base_scores(AbilityMethod.STANDARD_ARRAY, scores)
        assert resolved[Ability.INT] == 12

        with pytest.raises(AbilityScoreError, match="Standard array"):
            abilities.resolve_base_scores(AbilityMethod.STANDARD_ARRAY, sample_ability_scores)

    def test_unassigned(self) -> None:
        with pytest.raises(AbilityScoreError, match="Assign all six") as exc_info:
            abilities.resolve_base_scores(AbilityMethod.ROLL, {"str": 12, "dex": None})

        assert "dex" in exc_info.value.details["missing"]

    def test_manual_is_clamped(self) -> None:
        scores = {"str": 25, "dex": 1, "con": 10, "int": 10, "wis": 10, "cha": 10}
        resolved = abilities.resolve_base_scores(AbilityMethod.MANUAL, scores)

        assert resolved[Ability.STR] == 18
        assert resolved[Ability.DEX] == 3

    def test_roll_out_of_range(self) -> None:
        scores = {"str": 19, "dex": 10, "con": 10, "int": 10, "wis": 10, "cha": 10}
        with pytest.raises(AbilityScoreError, match="between 3 and 18"):
            abilities.resolve_base_scores(AbilityMethod.ROLL, scores)

    def test_point_buy(self) -> None:
        scores = {"str": 15, "dex": 14, "con": 13, "int": 10, "wis": 10, "cha": 8}
        assert abilities.resolve_base_scores(AbilityMethod.POINT_BUY, scores)[Ability.DEX] == 14
