"""Ability score resolution.

Base scores come from one of four methods (standard array, point buy,
4d6-drop-lowest rolls or manual entry). Final scores add the racial,
subrace and feat bonuses on top:

    final = base + race + subrace + racial choices + feat

Missing base scores count as 10 and no final score drops below 1.

Example:
    >>> base = {"str": 15, "dex": 14, "con": 13, "int": 12, "wis": 10, "cha": 8}
    >>> compute_final_scores(base, {Ability.STR: 2}).to_dict()["str"]
    17
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from dnd_roster.core.constants import (
    DEFAULT_ABILITY_SCORE,
    MANUAL_SCORE_MAX,
    MANUAL_SCORE_MIN,
    MAX_ABILITY_SCORE,
    MIN_ABILITY_SCORE,
    POINT_BUY_COSTS,
    POINT_BUY_MAX,
    POINT_BUY_MIN,
    POINT_BUY_TOTAL,
    STANDARD_ARRAY,
)
from dnd_roster.core.exceptions import AbilityScoreError
from dnd_roster.core.logging import get_logger
from dnd_roster.engine.dice import DiceRoller
from dnd_roster.models.character import AbilityScores
from dnd_roster.models.enums import Ability, AbilityMethod
from dnd_roster.models.rules import Race, Subrace


logger = get_logger(__name__)

BaseScores = Mapping[Ability | str, int | float | None]
"""Base scores keyed by ability; ``None`` marks an unassigned score."""


def _as_ability(key: Ability | str) -> Ability:
    if isinstance(key, Ability):
        return key
    return Ability.from_name(str(key))


# =============================================================================
# Final Scores
# =============================================================================


def sanitize_score(value: Any) -> int:
    """Turn any stored or computed value into a usable integer score.

    Non-numeric, NaN and infinite values become 10.
    """
    if isinstance(value, bool) or value is None:
        return DEFAULT_ABILITY_SCORE
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return DEFAULT_ABILITY_SCORE
    if isinstance(value, (int, float)) and math.isfinite(value):
        return int(value)
    return DEFAULT_ABILITY_SCORE


def sanitize_scores(values: Mapping[Ability | str, Any]) -> dict[Ability, int]:
    """Sanitize a full score block; abilities missing from ``values`` get 10."""
    by_ability = {_as_ability(key): value for key, value in values.items()}
    return {ability: sanitize_score(by_ability.get(ability)) for ability in Ability}


def _sum_bonuses(*bonus_sets: Mapping[Ability | str, int] | None) -> dict[Ability, int]:
    totals = dict.fromkeys(Ability, 0)
    for bonuses in bonus_sets:
        for key, amount in (bonuses or {}).items():
            totals[_as_ability(key)] += amount
    return totals


def compute_final_scores(
    base: BaseScores,
    racial: Mapping[Ability | str, int] | None = None,
    feat: Mapping[Ability | str, int] | None = None,
) -> AbilityScores:
    """Combine base scores with racial and feat bonuses.

    Args:
        base: Base scores; missing or ``None`` entries count as 10.
        racial: Combined race, subrace and racial choice bonuses.
        feat: Feat ability bonus, if a feat grants one.

    Returns:
        Final scores, each floored at 1.
    """
    scores = sanitize_scores(base)
    bonuses = _sum_bonuses(racial, feat)
    final = {
        ability.value: min(MAX_ABILITY_SCORE, max(MIN_ABILITY_SCORE, scores[ability] + bonuses[ability]))
        for ability in Ability
    }
    return AbilityScores.model_validate(final)


# =============================================================================
# Racial Bonuses
# =============================================================================


def fixed_racial_bonuses(race: Race, subrace: Subrace | None = None) -> dict[Ability, int]:
    """Race plus subrace fixed increases; the two stack."""
    bonuses = _sum_bonuses(race.ability_score_increase, subrace.ability_score_increase if subrace else None)
    return {ability: amount for ability, amount in bonuses.items() if amount}


def validate_racial_choices(
    race: Race,
    subrace: Subrace | None,
    choices: Iterable[Ability | str],
    *,
    require_complete: bool = False,
) -> list[Ability]:
    """Check "choose N abilities" picks against the race's rules.

    Raises:
        AbilityScoreError: If the race offers no choice, an ability is picked
            twice, too many are picked, or a pick lands on an ability that
            already has a fixed racial bonus.
    """
    picked = [_as_ability(choice) for choice in choices]
    rule = race.ability_choices
    if rule is None:
        if picked:
            raise AbilityScoreError(
                f"{race.name} has no ability score choices",
                details={"race": race.name, "choices": [a.value for a in picked]},
            )
        return []

    if len(set(picked)) != len(picked):
        raise AbilityScoreError("Each racial choice must be a different ability")
    if len(picked) > rule.count:
        raise AbilityScoreError(
            f"{race.name} allows {rule.count} ability choices, got {len(picked)}",
            details={"race": race.name},
        )
    if require_complete and len(picked) < rule.count:
        raise AbilityScoreError(
            f"Choose {rule.count} abilities for {race.name}",
            details={"race": race.name, "chosen": len(picked)},
        )

    if rule.exclude_fixed:
        fixed = fixed_racial_bonuses(race, subrace)
        clashes = [ability.value for ability in picked if ability in fixed]
        if clashes:
            raise AbilityScoreError(
                "Racial choice bonuses cannot go to abilities with a fixed racial bonus",
                details={"race": race.name, "abilities": clashes},
            )
    return picked


def racial_bonuses(
    race: Race,
    subrace: Subrace | None = None,
    choices: Iterable[Ability | str] = (),
) -> dict[Ability, int]:
    """All racial bonuses: fixed race and subrace increases plus choices."""
    bonuses = fixed_racial_bonuses(race, subrace)
    picked = validate_racial_choices(race, subrace, choices)
    if race.ability_choices is not None:
        for ability in picked:
            bonuses[ability] = bonuses.get(ability, 0) + race.ability_choices.amount
    return bonuses


def recover_base_scores(
    stored: AbilityScores,
    race: Race | None,
    subrace: Subrace | None = None,
) -> dict[Ability, int]:
    """Strip fixed race and subrace bonuses from stored final scores.

    Choice bonuses are not recorded on the character, so they stay in the
    recovered base.
    """
    bonuses = fixed_racial_bonuses(race, subrace) if race else {}
    return {
        ability: max(MIN_ABILITY_SCORE, stored.get(ability) - bonuses.get(ability, 0))
        for ability in Ability
    }


# =============================================================================
# Manual Entry
# =============================================================================


def clamp_manual_score(value: Any) -> int:
    """Clamp a manually entered score into [3, 18] once the field is left."""
    return max(MANUAL_SCORE_MIN, min(MANUAL_SCORE_MAX, sanitize_score(value)))


def set_manual_score(
    scores: Mapping[Ability, int | None],
    ability: Ability | str,
    raw: Any,
) -> dict[Ability, int | None]:
    """Store a score while it is being typed.

    Any integer is accepted here, out-of-range values included. Text
    that is not a number leaves the ability unassigned.
    """
    updated = dict(scores)
    try:
        updated[_as_ability(ability)] = int(str(raw).strip())
    except ValueError:
        updated[_as_ability(ability)] = None
    return updated


# =============================================================================
# Standard Array and Rolled Pools
# =============================================================================


class ScorePoolAssignment:
    """Assigns a fixed pool of values to abilities, one slot per ability.

    Each pool slot is held by at most one ability at a time. Assigning a
    value whose slots are all taken moves it: the previous holder goes
    back to unassigned.

    Example:
        >>> pool = StandardArrayAssignment()
        >>> pool.assign(Ability.STR, 15)
        >>> pool.assign(Ability.DEX, 15)
        >>> pool.score_for(Ability.STR) is None
        True
    """

    def __init__(self, values: Sequence[int]) -> None:
        if len(values) != len(Ability):
            raise AbilityScoreError(
                f"A score pool needs {len(Ability)} values, got {len(values)}",
                details={"values": list(values)},
            )
        self.values: tuple[int, ...] = tuple(values)
        self._slots: dict[Ability, int] = {}

    def _holder(self, slot: int) -> Ability | None:
        for ability, held in self._slots.items():
            if held == slot:
                return ability
        return None

    def assign(self, ability: Ability | str, value: int) -> None:
        ability = _as_ability(ability)
        candidates = [slot for slot, v in enumerate(self.values) if v == value]
        if not candidates:
            raise AbilityScoreError(
                f"{value} is not in the score pool",
                details={"pool": list(self.values)},
            )
        current = self._slots.get(ability)
        if current in candidates:
            return

        free = [slot for slot in candidates if self._holder(slot) is None]
        slot = free[0] if free else candidates[0]
        previous = self._holder(slot)
        if previous is not None:
            del self._slots[previous]
            logger.debug("Score moved between abilities", value=value, previous=previous.value, ability=ability.value)
        self._slots[ability] = slot

    def assign_slot(self, ability: Ability | str, slot: int) -> None:
        """Assign a specific pool position (rolled pools may repeat values)."""
        if not 0 <= slot < len(self.values):
            raise AbilityScoreError(f"No score at position {slot}", details={"pool": list(self.values)})
        ability = _as_ability(ability)
        previous = self._holder(slot)
        if previous is not None and previous != ability:
            del self._slots[previous]
        self._slots[ability] = slot

    def unassign(self, ability: Ability | str) -> None:
        self._slots.pop(_as_ability(ability), None)

    def score_for(self, ability: Ability | str) -> int | None:
        slot = self._slots.get(_as_ability(ability))
        return None if slot is None else self.values[slot]

    def available_values(self, ability: Ability | str) -> list[int]:
        """Values this ability can take without displacing another ability."""
        ability = _as_ability(ability)
        return [
            value
            for slot, value in enumerate(self.values)
            if self._holder(slot) in (None, ability)
        ]

    @property
    def is_complete(self) -> bool:
        return len(self._slots) == len(Ability)

    def as_scores(self) -> dict[Ability, int | None]:
        return {ability: self.score_for(ability) for ability in Ability}


class StandardArrayAssignment(ScorePoolAssignment):
    """Standard array (15, 14, 13, 12, 10, 8) assignment."""

    def __init__(self) -> None:
        super().__init__(STANDARD_ARRAY)


def roll_score_pool(roller: DiceRoller | None = None) -> ScorePoolAssignment:
    """Roll six 4d6-drop-lowest scores into an empty assignment pool."""
    roller = roller or DiceRoller()
    return ScorePoolAssignment(roller.roll_ability_scores())


# =============================================================================
# Point Buy
# =============================================================================


def point_buy_cost(scores: Mapping[Ability | str, int]) -> int:
    """Total point-buy cost of a set of base scores.

    Raises:
        AbilityScoreError: If a score is outside 8 to 15.
    """
    total = 0
    for key, score in scores.items():
        if score not in POINT_BUY_COSTS:
            raise AbilityScoreError(
                f"Point buy scores must be between {POINT_BUY_MIN} and {POINT_BUY_MAX}",
                details={"ability": _as_ability(key).value, "score": score},
            )
        total += POINT_BUY_COSTS[score]
    return total


def point_buy_remaining(scores: Mapping[Ability | str, int]) -> int:
    return POINT_BUY_TOTAL - point_buy_cost(scores)


def validate_point_buy(scores: Mapping[Ability | str, int]) -> dict[Ability, int]:
    """Validate a full point-buy allocation.

    Returns:
        The scores keyed by Ability.

    Raises:
        AbilityScoreError: If any ability is missing or out of range, or
            the allocation spends more than 27 points.
    """
    by_ability = {_as_ability(key): score for key, score in scores.items()}
    missing = [ability.value for ability in Ability if ability not in by_ability]
    if missing:
        raise AbilityScoreError("Point buy needs all six abilities", details={"missing": missing})

    spent = point_buy_cost(by_ability)
    if spent > POINT_BUY_TOTAL:
        raise AbilityScoreError(
            f"Point buy over budget: {spent} of {POINT_BUY_TOTAL} points",
            details={"spent": spent},
        )
    return by_ability


def default_point_buy() -> dict[Ability, int]:
    """Starting point-buy allocation: every ability at 8."""
    return dict.fromkeys(Ability, POINT_BUY_MIN)


# =============================================================================
# Method Dispatch
# =============================================================================


def missing_scores(scores: Mapping[Ability | str, int | None]) -> list[Ability]:
    """Abilities that have no base score yet."""
    by_ability = {_as_ability(key): value for key, value in scores.items()}
    return [ability for ability in Ability if by_ability.get(ability) is None]


def resolve_base_scores(
    method: AbilityMethod,
    scores: Mapping[Ability | str, int | None],
) -> dict[Ability, int]:
    """Check a complete set of base scores against its generation method.

    Manual scores are clamped into [3, 18]; the other methods must already
    be in range.

    Raises:
        AbilityScoreError: If a score is unassigned, or the scores do not
            fit the method (not the standard array, over the point-buy
            budget, an impossible 4d6 roll).
    """
    missing = missing_scores(scores)
    if missing:
        raise AbilityScoreError(
            "Assign all six ability scores",
            details={"missing": [ability.value for ability in missing]},
        )
    by_ability = {_as_ability(key): int(value) for key, value in scores.items() if value is not None}

    if method == AbilityMethod.POINT_BUY:
        return validate_point_buy(by_ability)
    if method == AbilityMethod.MANUAL:
        return {ability: clamp_manual_score(score) for ability, score in by_ability.items()}
    if method == AbilityMethod.STANDARD_ARRAY:
        if sorted(by_ability.values()) != sorted(STANDARD_ARRAY):
            raise AbilityScoreError(
                "Standard array scores must use each of 15, 14, 13, 12, 10, 8 once",
                details={"scores": {a.value: s for a, s in by_ability.items()}},
            )
        return by_ability

    out_of_range = {
        ability.value: score
        for ability, score in by_ability.items()
        if not MANUAL_SCORE_MIN <= score <= MANUAL_SCORE_MAX
    }
    if out_of_range:
        raise AbilityScoreError("Rolled scores must be between 3 and 18", details={"scores": out_of_range})
    return by_ability


__all__ = [
    "BaseScores",
    "sanitize_score",
    "sanitize_scores",
    "compute_final_scores",
    "fixed_racial_bonuses",
    "validate_racial_choices",
    "racial_bonuses",
    "recover_base_scores",
    "clamp_manual_score",
    "set_manual_score",
    "ScorePoolAssignment",
    "StandardArrayAssignment",
    "roll_score_pool",
    "point_buy_cost",
    "point_buy_remaining",
    "validate_point_buy",
    "default_point_buy",
    "missing_scores",
    "resolve_base_scores",
]
