"""Dice rolling for character building.

Wraps the d20 library for the rolls a character sheet needs: 4d6-drop-
lowest ability scores, hit dice on level-up and starting gold.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

import d20

from dnd_roster.core.exceptions import DiceRollError
from dnd_roster.core.logging import get_logger
from dnd_roster.models.rules import StartingGold


logger = get_logger(__name__)

ABILITY_SCORE_EXPRESSION = "4d6kh3"


@dataclass(frozen=True)
class DiceExpression:
    """A rolled dice expression.

    Attributes:
        expression: The original dice expression string.
        total: The total result of the roll.
        dice: Kept dice results, in roll order.
        modifier: Static modifier applied.
    """

    expression: str
    total: int
    dice: list[int]
    modifier: int


class DiceRoller:
    """Dice rolling backed by the d20 library.

    Example:
        >>> roller = DiceRoller(seed=7)
        >>> scores = roller.roll_ability_scores()
        >>> len(scores)
        6
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            seed: Optional random seed for reproducible rolls.
        """
        self._seed = seed
        if seed is not None:
            random.seed(seed)
        logger.debug("DiceRoller initialized", seed=seed)

    def roll(self, expression: str) -> DiceExpression:
        """Roll dice according to the given expression.

        Args:
            expression: Dice expression (e.g., '4d6kh3', '5d4*10').

        Returns:
            DiceExpression containing roll results.

        Raises:
            DiceRollError: If the expression is invalid.
        """
        if not expression or not expression.strip():
            raise DiceRollError("Empty dice expression", expression=expression)

        try:
            result = d20.roll(expression)
        except d20.RollError as exc:
            raise DiceRollError(
                f"Invalid dice expression: {exc}",
                expression=expression,
            ) from exc

        dice_values = self._extract_dice_values(result.expr)
        rolled = DiceExpression(
            expression=expression,
            total=result.total,
            dice=dice_values,
            modifier=result.total - sum(dice_values),
        )
        logger.debug("Dice rolled", expression=expression, total=result.total)
        return rolled

    def _extract_dice_values(self, expr: Any) -> list[int]:
        """Collect kept die faces from a d20 expression tree."""
        values: list[int] = []

        def traverse(node: Any) -> None:
            if isinstance(node, d20.Dice):
                for die in node.values:
                    if die.kept:
                        values.append(die.number)
            elif hasattr(node, "children"):
                for child in node.children:
                    traverse(child)

        traverse(expr)
        return values

    def roll_ability_score(self) -> int:
        """Roll 4d6 and keep the highest three."""
        return self.roll(ABILITY_SCORE_EXPRESSION).total

    def roll_ability_scores(self) -> list[int]:
        """Roll a full set of six ability scores."""
        scores = [self.roll_ability_score() for _ in range(6)]
        logger.info("Ability scores rolled", scores=scores)
        return scores

    def roll_hit_die(self, hit_die: int) -> int:
        """Roll one hit die (d6, d8, d10 or d12)."""
        if hit_die not in (6, 8, 10, 12):
            raise DiceRollError(f"Not a hit die: d{hit_die}", expression=f"1d{hit_die}")
        return self.roll(f"1d{hit_die}").total

    def roll_starting_gold(self, starting_gold: StartingGold) -> int:
        """Roll class starting wealth: NdM times the multiplier, in gp."""
        dice_total = self.roll(starting_gold.dice).total
        gold = dice_total * starting_gold.multiplier
        logger.info("Starting gold rolled", dice=starting_gold.dice, gold=gold)
        return gold


# Module-level convenience roller
_default_roller: DiceRoller | None = None


def roll(expression: str) -> DiceExpression:
    """Convenience function to roll dice.

    Example:
        >>> result = roll("1d20+5")
        >>> print(result.total)
    """
    global _default_roller  # noqa: PLW0603
    if _default_roller is None:
        _default_roller = DiceRoller()
    return _default_roller.roll(expression)


__all__ = [
    "ABILITY_SCORE_EXPRESSION",
    "DiceExpression",
    "DiceRoller",
    "roll",
]
