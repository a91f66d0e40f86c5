"""Rules engine for the D&D 5E character roster.

Everything here is pure computation over the rule tables: nothing in
this package talks to the backend.

Submodules:
    dice: Dice rolling (d20 library)
    abilities: Base score methods and racial bonuses
    feats: Feat prerequisite evaluation
    equipment: Starting kit, pack expansion and starting gold
    leveling: Level-up previews, HP gain, ASIs and rests
    companions: Companion recruitment and class-based progression
    party: Party members built from scratch
    wizard: The character creation wizard state machine

Example:
    >>> from dnd_roster.engine import WizardState, advance
    >>> from dnd_roster.rules import get_rulebook
    >>>
    >>> state = WizardState(first_name="Mira", race="human", class_name="wizard", background="sage")
    >>> state = advance(state, get_rulebook())
    >>> state.step
    <WizardStep.ABILITIES: 'abilities'>
"""

from __future__ import annotations

# =============================================================================
# Dice Rolling
# =============================================================================
from dnd_roster.engine.dice import (
    DiceExpression,
    DiceRoller,
    roll,
)

# =============================================================================
# Ability Scores
# =============================================================================
from dnd_roster.engine.abilities import (
    ScorePoolAssignment,
    StandardArrayAssignment,
    clamp_manual_score,
    compute_final_scores,
    default_point_buy,
    point_buy_cost,
    point_buy_remaining,
    racial_bonuses,
    recover_base_scores,
    resolve_base_scores,
    roll_score_pool,
    sanitize_scores,
    set_manual_score,
    validate_point_buy,
    validate_racial_choices,
)

# =============================================================================
# Feats and Equipment
# =============================================================================
from dnd_roster.engine.feats import (
    FeatEvaluation,
    evaluate_feat,
    evaluate_feat_for_character,
    feat_options,
    parse_prerequisite,
)
from dnd_roster.engine.equipment import (
    compile_starting_equipment,
    expand_packs,
    resolve_gold,
    starting_gold,
    sub_options_for,
    to_inventory,
)

# =============================================================================
# Progression
# =============================================================================
from dnd_roster.engine.leveling import (
    apply_level_up,
    build_level_up_info,
    level_hp_gain,
    rest,
)
from dnd_roster.engine.companions import (
    apply_companion_level_up,
    companion_level_up_info,
    companion_max_hp,
    convert_to_class_based,
    recruit_companion,
)
from dnd_roster.engine.party import PartyMemberChoices, create_party_member

# =============================================================================
# Creation Wizard
# =============================================================================
from dnd_roster.engine.wizard import (
    WizardState,
    advance,
    back,
    build_character,
    build_character_payload,
    can_advance,
    choose_gold,
    final_scores,
    step_problems,
)


__all__ = [
    # Dice
    "DiceExpression",
    "DiceRoller",
    "roll",
    # Ability scores
    "ScorePoolAssignment",
    "StandardArrayAssignment",
    "clamp_manual_score",
    "compute_final_scores",
    "default_point_buy",
    "point_buy_cost",
    "point_buy_remaining",
    "racial_bonuses",
    "recover_base_scores",
    "resolve_base_scores",
    "roll_score_pool",
    "sanitize_scores",
    "set_manual_score",
    "validate_point_buy",
    "validate_racial_choices",
    # Feats
    "FeatEvaluation",
    "evaluate_feat",
    "evaluate_feat_for_character",
    "feat_options",
    "parse_prerequisite",
    # Equipment
    "compile_starting_equipment",
    "expand_packs",
    "resolve_gold",
    "starting_gold",
    "sub_options_for",
    "to_inventory",
    # Leveling
    "apply_level_up",
    "build_level_up_info",
    "level_hp_gain",
    "rest",
    # Companions
    "apply_companion_level_up",
    "companion_level_up_info",
    "companion_max_hp",
    "convert_to_class_based",
    "recruit_companion",
    "PartyMemberChoices",
    "create_party_member",
    # Wizard
    "WizardState",
    "advance",
    "back",
    "build_character",
    "build_character_payload",
    "can_advance",
    "choose_gold",
    "final_scores",
    "step_problems",
]
