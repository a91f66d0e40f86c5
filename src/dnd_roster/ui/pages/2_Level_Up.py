"""Level Up Page - Advance Characters and Rest.

This page allows users to:
- Preview the next level for every class option, including multiclassing
- Pick HP, subclass, ASI or feat, cantrips and spells, then level up
- Take short and long rests
"""

from __future__ import annotations

from typing import Any

import streamlit as st

from dnd_roster.core.config import get_settings
from dnd_roster.core.constants import ASI_POINTS, PC_ABILITY_SCORE_CAP
from dnd_roster.engine import leveling
from dnd_roster.engine.dice import DiceRoller
from dnd_roster.engine.feats import feat_options
from dnd_roster.models.character import Character
from dnd_roster.models.enums import Ability, AsiChoiceType, HpMethod, LevelUpOptionType, RestType
from dnd_roster.models.leveling import AsiChoice, ClassOption, LevelUpChoices, LevelUpInfo
from dnd_roster.rules import progression
from dnd_roster.rules.tables import RuleBook
from dnd_roster.ui.state import attempt, flash, get_client, load_rulebook, select_character, show_flash
from dnd_roster.ui.theme import apply_theme, render_ability_scores, render_hp_bar, render_spell_slots


# =============================================================================
# Page Configuration
# =============================================================================


st.set_page_config(
    page_title=f"Level Up | {get_settings().ui.page_title}",
    page_icon="⬆️",
    layout="wide",
    initial_sidebar_state="expanded",
)

apply_theme()


HP_ROLL_KEY = "hp_roll"


# =============================================================================
# Character Status
# =============================================================================


def render_status(character: Character) -> None:
    """HP, XP and spell slots."""
    col1, col2 = st.columns([2, 1])
    with col1:
        render_hp_bar(character.current_hp, character.max_hp)
        render_ability_scores(character.ability_scores)
    with col2:
        st.metric("Level", character.total_level)
        if character.experience_to_next_level:
            st.metric("Experience", f"{character.experience}/{character.experience_to_next_level}")
            st.progress(min(1.0, character.experience / character.experience_to_next_level))
        else:
            st.metric("Experience", character.experience)

    slots = progression.multiclass_spell_slots(
        (entry.class_name.lower(), entry.level, entry.subclass) for entry in character.class_levels
    )
    if slots["spellSlots"]:
        st.markdown("#### Spell Slots")
        render_spell_slots(slots["spellSlots"], character.spell_slots_used)
    pact = slots.get("pactMagic")
    if pact:
        st.caption(f"Pact Magic: {pact['slots']} slots of level {pact['level']}")


def render_rest(character: Character) -> None:
    """Short and long rest buttons."""
    client = get_client()
    col1, col2 = st.columns(2)
    with col1:
        if st.button("☕ Short Rest", use_container_width=True):
            result = attempt(client.rest, character.id, RestType.SHORT)
            if result is not None:
                flash("success", result.message)
                st.rerun()
    with col2:
        if st.button("🛏️ Long Rest", use_container_width=True):
            result = attempt(client.rest, character.id, RestType.LONG)
            if result is not None:
                flash("success", result.message)
                st.rerun()


# =============================================================================
# Level-Up Choices
# =============================================================================


def _option_label(option: ClassOption) -> str:
    label = f"{option.class_name} {option.current_level} → {option.new_level}"
    if option.type == LevelUpOptionType.MULTICLASS:
        label = f"{option.class_name} 1 (multiclass)"
        if option.meets_requirements is False:
            label += " ⚠️ requirements not met"
    return label


def render_asi(character: Character, rulebook: RuleBook) -> AsiChoice | None:
    """ASI or feat picker."""
    kind = st.radio(
        "Ability Score Improvement",
        options=list(AsiChoiceType),
        format_func=lambda t: "+2 ability points" if t == AsiChoiceType.ASI else "Feat",
        horizontal=True,
    )
    if kind == AsiChoiceType.ASI:
        increases: dict[Ability, int] = {}
        cols = st.columns(len(Ability))
        for col, ability in zip(cols, Ability):
            with col:
                headroom = max(0, PC_ABILITY_SCORE_CAP - character.ability_scores.get(ability))
                amount = st.number_input(
                    ability.abbreviation,
                    min_value=0,
                    max_value=min(ASI_POINTS, headroom),
                    value=0,
                    key=f"asi_{ability.value}",
                )
                if amount:
                    increases[ability] = int(amount)
        st.caption(f"Points spent: {sum(increases.values())}/{ASI_POINTS}")
        return AsiChoice(type=AsiChoiceType.ASI, increases=increases)

    options = feat_options(character, rulebook)
    show_all = st.checkbox("Show unavailable feats", value=False)
    shown = [entry for entry in options if show_all or entry[2].is_available]
    if not shown:
        st.warning("No feats available.")
        return None
    by_key = {key: (feat, evaluation) for key, feat, evaluation in shown}
    feat_key = st.selectbox(
        "Feat",
        options=list(by_key),
        format_func=lambda key: by_key[key][0].name + ("" if by_key[key][1].is_available else " (unavailable)"),
    )
    feat, evaluation = by_key[feat_key]
    if feat.prerequisite:
        st.caption(f"Prerequisite: {feat.prerequisite}")
    for reason in evaluation.reasons:
        st.caption(f"⚠️ {reason}")
    if evaluation.unparsed:
        st.caption("Prerequisite could not be checked automatically.")
    if feat.description:
        st.markdown(feat.description)

    feat_ability = None
    if feat.ability_bonus and len(feat.ability_bonus.abilities) > 1:
        feat_ability = st.selectbox(
            f"+{feat.ability_bonus.amount} to",
            options=feat.ability_bonus.abilities,
            format_func=lambda a: a.full_name,
        )
    return AsiChoice(type=AsiChoiceType.FEAT, feat=feat_key, feat_ability=feat_ability)


def render_spell_picks(option: ClassOption, rulebook: RuleBook, character: Character) -> tuple[list[str], list[str]]:
    """New cantrips and spells for the level."""
    cantrips: list[str] = []
    spells: list[str] = []
    if option.choices.new_cantrips:
        known = set(character.known_cantrips)
        names = [s.name for s in rulebook.spells_for(option.class_key, 0) if s.name not in known]
        cantrips = st.multiselect(
            f"New cantrips ({option.choices.new_cantrips})",
            options=names,
            max_selections=option.choices.new_cantrips,
        )
    if option.choices.new_spells_known:
        known = set(character.known_spells)
        slots = progression.get_spell_slots(option.class_key, option.new_level, option.subclass)
        pact = progression.get_pact_magic(option.new_level) if option.class_key == "warlock" else None
        top = max(slots) if slots else (pact["level"] if pact else 1)
        names = [
            spell.name
            for level in range(1, top + 1)
            for spell in rulebook.spells_for(option.class_key, level)
            if spell.name not in known
        ]
        spells = st.multiselect(
            f"New spells ({option.choices.new_spells_known})",
            options=names,
            max_selections=option.choices.new_spells_known,
        )
    return cantrips, spells


def _reset_hp_roll() -> None:
    st.session_state.pop(HP_ROLL_KEY, None)


def render_level_up(character: Character, info: LevelUpInfo, rulebook: RuleBook) -> None:
    """Option picker and submission."""
    options = [o for o in info.class_options if o.type == LevelUpOptionType.EXISTING]
    if info.can_multiclass:
        options += [o for o in info.class_options if o.type == LevelUpOptionType.MULTICLASS]
    if not options:
        st.info("No level-up options.")
        return

    option = st.selectbox("Advance", options=options, format_func=_option_label, on_change=_reset_hp_roll)
    st.caption(
        f"Proficiency bonus +{info.proficiency_bonus.current} → +{info.proficiency_bonus.new}"
        + (" ⬆️" if info.proficiency_bonus.increased else "")
    )
    if option.requirements and option.meets_requirements is False:
        st.warning(f"Multiclass requirements: {option.requirements}")
    if option.new_features:
        st.markdown("**New features:** " + ", ".join(option.new_features))

    choices: dict[str, Any] = {"selected_class": option.class_key}

    gain = option.hp_gain
    method = st.radio(
        f"Hit points (d{gain.hit_die}{gain.con_mod:+d})",
        options=list(HpMethod),
        format_func=lambda m: f"Average ({gain.average})" if m == HpMethod.AVERAGE else f"Roll ({gain.minimum}-{gain.maximum})",
        horizontal=True,
        key="hp_method",
        on_change=_reset_hp_roll,
    )
    choices["hp_method"] = method
    if method == HpMethod.ROLL:
        if st.button(f"🎲 Roll d{gain.hit_die}", key="hp_roll_button"):
            st.session_state[HP_ROLL_KEY] = DiceRoller().roll_hit_die(gain.hit_die)
        rolled = st.session_state.get(HP_ROLL_KEY)
        if rolled is not None:
            st.success(f"Rolled {rolled}: +{max(1, rolled + gain.con_mod)} HP")
        choices["roll_value"] = rolled

    if option.choices.needs_subclass:
        class_def = rulebook.classes.get(option.class_key)
        names = [entry.name for entry in class_def.subclasses] if class_def else []
        title = class_def.subclass_title if class_def else "Subclass"
        if names:
            choices["subclass"] = st.selectbox(title, options=["", *names], format_func=lambda n: n or "-") or None
        else:
            choices["subclass"] = st.text_input(title).strip() or None

    if option.choices.needs_asi:
        choices["asi_choice"] = render_asi(character, rulebook)

    choices["cantrips"], choices["spells"] = render_spell_picks(option, rulebook, character)

    level_choices = LevelUpChoices(**choices)
    problems = leveling.level_up_problems(character, option, level_choices, rulebook)
    for problem in problems:
        st.caption(f"⚠️ {problem}")

    if st.button(f"⬆️ Level up to {info.new_level}", type="primary", disabled=bool(problems), key="level_up_submit"):
        result = attempt(get_client().level_up, character.id, level_choices)
        if result is not None:
            _reset_hp_roll()
            summary = result.summary
            lines = [result.message, f"+{summary.hp_gained} HP (max {summary.new_max_hp})"]
            if summary.new_subclass:
                lines.append(f"Subclass: {summary.new_subclass}")
            if summary.new_feat:
                lines.append(f"Feat: {summary.new_feat}")
            if summary.ability_score_changes:
                lines.append(
                    "Scores: " + ", ".join(f"{k.upper()} {v:+d}" for k, v in summary.ability_score_changes.items())
                )
            flash("success", " · ".join(lines))
            st.rerun()


# =============================================================================
# Main
# =============================================================================


def main() -> None:
    """Render the level-up page."""
    st.markdown("# ⬆️ Level Up")
    show_flash()

    character = select_character()
    if character is None:
        return
    rulebook = load_rulebook()

    st.markdown(f"## {character.name}")
    st.caption(character.class_display)
    render_status(character)
    render_rest(character)

    st.divider()
    if not progression.can_level_up(character.total_level, character.experience):
        st.info("Not enough experience to level up yet.")
        return

    info = attempt(get_client().level_up_info, character.id)
    if info is not None:
        render_level_up(character, info, rulebook)


main()
