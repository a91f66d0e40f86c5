"""Tests for dice rolling mechanics."""

from __future__ import annotations

import pytest

from dnd_roster.core.exceptions import DiceRollError
from dnd_roster.engine.dice import DiceExpression, DiceRoller, roll
from dnd_roster.models.rules import StartingGold


class TestDiceRoller:
    """Tests for the DiceRoller class."""

    def test_simple_d20_roll(self, dice_roller: DiceRoller) -> None:
        """Test simple d20 roll."""
        result = dice_roller.roll("1d20")

        assert isinstance(result, DiceExpression)
        assert 1 <= result.total <= 20
        assert len(result.dice) == 1

    def test_roll_with_modifier(self, dice_roller: DiceRoller) -> None:
        """Test roll with positive modifier."""
        result = dice_roller.roll("1d20+5")

        assert result.modifier == 5
        assert 6 <= result.total <= 25

    def test_roll_with_negative_modifier(self, dice_roller: DiceRoller) -> None:
        result = dice_roller.roll("1d20-3")
        assert result.modifier == -3

    def test_multiple_dice(self, dice_roller: DiceRoller) -> None:
        result = dice_roller.roll("3d6")

        assert 3 <= result.total <= 18
        assert len(result.dice) == 3

    def test_keep_highest(self, dice_roller: DiceRoller) -> None:
        """Test that dropped dice are not reported."""
        result = dice_roller.roll("4d6kh3")

        assert len(result.dice) == 3
        assert result.total == sum(result.dice)

    @pytest.mark.parametrize("expression", ["", "   ", "banana", "2d6++"])
    def test_invalid_expression(self, dice_roller: DiceRoller, expression: str) -> None:
        with pytest.raises(DiceRollError) as exc_info:
            dice_roller.roll(expression)

        assert exc_info.value.details.get("expression", "") == expression

    def test_seed_is_reproducible(self) -> None:
        first = DiceRoller(seed=99).roll_ability_scores()
        second = DiceRoller(seed=99).roll_ability_scores()
        assert first == second


class TestCharacterRolls:
    """Tests for the character-building rolls."""

    def test_ability_scores(self, dice_roller: DiceRoller) -> None:
        """Test six scores, each within 3-18."""
        scores = dice_roller.roll_ability_scores()

        assert len(scores) == 6
        assert all(3 <= score <= 18 for score in scores)

    @pytest.mark.parametrize("hit_die", [6, 8, 10, 12])
    def test_hit_die(self, dice_roller: DiceRoller, hit_die: int) -> None:
        for _ in range(20):
            assert 1 <= dice_roller.roll_hit_die(hit_die) <= hit_die

    @pytest.mark.parametrize("hit_die", [4, 20, 0])
    def test_invalid_hit_die(self, dice_roller: DiceRoller, hit_die: int) -> None:
        with pytest.raises(DiceRollError, match="Not a hit die"):
            dice_roller.roll_hit_die(hit_die)

    def test_starting_gold(self, dice_roller: DiceRoller) -> None:
        """Test 5d4 x 10 gold lands on a multiple of ten."""
        gold = dice_roller.roll_starting_gold(StartingGold(dice="5d4", multiplier=10))

        assert gold % 10 == 0
        assert 50 <= gold <= 200

    def test_starting_gold_without_multiplier(self, dice_roller: DiceRoller) -> None:
        gold = dice_roller.roll_starting_gold(StartingGold(dice="4d4"))
        assert 4 <= gold <= 16


class TestConvenienceFunction:
    """Tests for the module-level roll function."""

    def test_roll_function(self) -> None:
        result = roll("2d6+3")
        assert 5 <= result.total <= 15
