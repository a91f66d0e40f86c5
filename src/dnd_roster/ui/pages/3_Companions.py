"""Companions Page - Recruit, Convert, Level and Build Companions.

This page allows users to:
- Review the selected character's companions
- Convert NPC-stat companions to class-based progression
- Level up class-based companions
- Dismiss companions or mark them deceased
- Recruit available NPCs
- Build a class-based party member from scratch
"""

from __future__ import annotations

from typing import Any

import streamlit as st

from dnd_roster.core.config import get_settings
from dnd_roster.core.constants import ALIGNMENTS, ASI_POINTS, LIFESTYLES, STANDARD_ARRAY
from dnd_roster.engine.abilities import default_point_buy, point_buy_remaining
from dnd_roster.engine.companions import convert_to_class_based, recruit_companion
from dnd_roster.engine.dice import DiceRoller
from dnd_roster.engine.party import PartyMemberChoices, create_party_member
from dnd_roster.models.character import Character
from dnd_roster.models.companion import Companion, PartyMemberProfile
from dnd_roster.models.enums import Ability, AbilityMethod, AsiChoiceType, CompanionStatus, HpMethod, ProgressionType
from dnd_roster.models.leveling import AsiChoice, LevelUpChoices
from dnd_roster.rules import progression
from dnd_roster.rules.tables import RuleBook, normalize_key
from dnd_roster.ui.state import attempt, flash, get_client, load_rulebook, select_character, show_flash
from dnd_roster.ui.theme import apply_theme, render_ability_scores, render_hp_bar


# =============================================================================
# Page Configuration
# =============================================================================


st.set_page_config(
    page_title=f"Companions | {get_settings().ui.page_title}",
    page_icon="🤝",
    layout="wide",
    initial_sidebar_state="expanded",
)

apply_theme()

PARTY_POOL_KEY = "party_rolled_pool"


def _class_picker(rulebook: RuleBook, label: str, key: str) -> str:
    keys = rulebook.classes.keys()
    return st.selectbox(label, options=keys, format_func=lambda k: rulebook.classes.require(k).name, key=key)


# =============================================================================
# Party
# =============================================================================


def render_companion_level_up(companion: Companion, rulebook: RuleBook) -> None:
    """Level-up preview and choices for a class-based companion."""
    client = get_client()
    info = attempt(client.companion_level_up_info, companion.id)
    if info is None:
        return

    st.markdown(f"**{info.class_name.title()} {info.current_level} → {info.new_level}**")
    if info.new_features:
        st.caption("New features: " + ", ".join(info.new_features))

    gain = info.hp_gain
    method = st.radio(
        "Hit points",
        options=list(HpMethod),
        format_func=lambda m: f"Average (+{gain.average})" if m == HpMethod.AVERAGE else f"Roll d{gain.hit_die}",
        horizontal=True,
        key=f"comp_hp_{companion.id}",
    )
    choices: dict[str, Any] = {"hp_method": method}
    if method == HpMethod.ROLL:
        choices["roll_value"] = DiceRoller().roll_hit_die(gain.hit_die)

    if info.choices.needs_subclass:
        class_def = rulebook.classes.get(info.class_name)
        names = [entry.name for entry in class_def.subclasses] if class_def else []
        if names:
            choices["subclass"] = st.selectbox("Subclass", options=names, key=f"comp_sub_{companion.id}")

    if info.choices.needs_asi:
        increases: dict[Ability, int] = {}
        cols = st.columns(len(Ability))
        for col, ability in zip(cols, Ability):
            with col:
                amount = st.number_input(
                    ability.abbreviation,
                    min_value=0,
                    max_value=ASI_POINTS,
                    value=0,
                    key=f"comp_asi_{companion.id}_{ability.value}",
                )
                if amount:
                    increases[ability] = int(amount)
        choices["asi_choice"] = AsiChoice(type=AsiChoiceType.ASI, increases=increases)

    if st.button("⬆️ Level up", key=f"comp_level_{companion.id}", type="primary"):
        result = attempt(client.companion_level_up, companion.id, LevelUpChoices(**choices))
        if result is not None:
            flash(
                "success",
                f"{result.companion.display_name} reached level {result.new_level} (+{result.hp_gained} HP)",
            )
            st.rerun()


def render_convert(companion: Companion, character: Character, rulebook: RuleBook) -> None:
    """Convert an NPC-stat companion to class-based."""
    class_key = _class_picker(rulebook, "Class", key=f"convert_class_{companion.id}")
    level = st.number_input(
        "Starting level",
        min_value=1,
        max_value=20,
        value=character.total_level,
        key=f"convert_level_{companion.id}",
    )
    preview = attempt(
        convert_to_class_based,
        companion,
        class_key,
        character_level=character.total_level,
        starting_level=int(level),
        rulebook=rulebook,
    )
    if preview is not None:
        st.caption(f"Max HP after conversion: {preview.companion_max_hp}")
    st.caption("Conversion is one-way.")
    if st.button("Convert to class-based", key=f"convert_{companion.id}"):
        converted = attempt(get_client().convert_companion, companion.id, class_key, int(level))
        if converted is not None:
            flash("success", f"{converted.display_name} is now a level {converted.companion_level} {class_key}")
            st.rerun()


def render_party(character: Character, rulebook: RuleBook) -> None:
    """Companions of the selected character."""
    client = get_client()
    companions = attempt(client.list_companions, character.id) or []
    if not companions:
        st.info(f"{character.name} has no companions.")
        return

    for companion in companions:
        title = companion.display_name
        if companion.is_class_based:
            title += f" · {(companion.companion_class or '').title()} {companion.companion_level}"
        if companion.status == CompanionStatus.DECEASED:
            title += " · ☠️"
        with st.expander(title):
            if companion.is_class_based and companion.companion_max_hp:
                render_hp_bar(companion.companion_current_hp or 0, companion.companion_max_hp)
            render_ability_scores(companion.ability_scores)
            st.caption(f"{(companion.race or '').title()} · AC {companion.armor_class} · Speed {companion.speed} ft.")
            if companion.notes:
                st.markdown(companion.notes)

            if companion.status != CompanionStatus.ACTIVE:
                continue
            if companion.is_class_based:
                render_companion_level_up(companion, rulebook)
            else:
                render_convert(companion, character, rulebook)

            col1, col2 = st.columns(2)
            with col1:
                if st.button("Dismiss", key=f"dismiss_{companion.id}"):
                    if attempt(client.dismiss_companion, companion.id) is not None:
                        flash("success", f"{companion.display_name} left the party")
                        st.rerun()
            with col2:
                if st.button("Mark deceased", key=f"deceased_{companion.id}"):
                    if attempt(client.mark_companion_deceased, companion.id) is not None:
                        flash("warning", f"{companion.display_name} has fallen")
                        st.rerun()


# =============================================================================
# Recruit
# =============================================================================


def render_recruit(character: Character, rulebook: RuleBook) -> None:
    """Recruit one of the NPCs available to this character."""
    client = get_client()
    npcs = attempt(client.available_npcs, character.id) or []
    if not npcs:
        st.info("No NPCs available to recruit.")
        return

    by_id = {npc.id: npc for npc in npcs if npc.id is not None}
    npc_id = st.selectbox(
        "NPC",
        options=list(by_id),
        format_func=lambda i: f"{by_id[i].name} ({by_id[i].occupation or by_id[i].race})",
    )
    npc = by_id[npc_id]
    render_ability_scores(npc.ability_scores)

    progression_type = st.radio(
        "Progression",
        options=list(ProgressionType),
        format_func=lambda p: "Keep NPC stats" if p == ProgressionType.NPC_STATS else "Class-based",
        horizontal=True,
    )
    companion_class = None
    level = None
    if progression_type == ProgressionType.CLASS_BASED:
        companion_class = _class_picker(rulebook, "Class", key="recruit_class")
        level = int(st.number_input("Starting level", min_value=1, max_value=20, value=character.total_level))
    notes = st.text_input("Notes") or None

    preview = attempt(
        recruit_companion,
        npc,
        character,
        progression_type,
        companion_class,
        level,
        rulebook=rulebook,
        notes=notes,
    )
    if preview is not None and preview.is_class_based:
        st.caption(f"Level {preview.companion_level} · {preview.companion_max_hp} HP")

    if st.button("🤝 Recruit", type="primary"):
        recruited = attempt(
            client.recruit_companion,
            npc.id,
            character.id,
            progression_type=progression_type,
            companion_class=companion_class,
            starting_level=level,
            notes=notes,
        )
        if recruited is not None:
            flash("success", f"{recruited.display_name} joined {character.name}")
            st.rerun()


# =============================================================================
# Party Builder
# =============================================================================


def _base_score_inputs(method: AbilityMethod) -> dict[Ability, int | None]:
    scores: dict[Ability, int | None] = {}
    cols = st.columns(len(Ability))
    if method in (AbilityMethod.STANDARD_ARRAY, AbilityMethod.ROLL):
        if method == AbilityMethod.ROLL:
            if st.button("🎲 Roll scores"):
                st.session_state[PARTY_POOL_KEY] = DiceRoller().roll_ability_scores()
            values = st.session_state.get(PARTY_POOL_KEY)
            if values is None:
                return dict.fromkeys(Ability)
            st.caption("Rolled: " + ", ".join(str(v) for v in values))
        else:
            values = list(STANDARD_ARRAY)
        for col, ability in zip(cols, Ability):
            with col:
                scores[ability] = st.selectbox(
                    ability.abbreviation,
                    options=[None, *values],
                    format_func=lambda v: "-" if v is None else str(v),
                    key=f"party_pool_{method.value}_{ability.value}",
                )
        return scores

    defaults = default_point_buy()
    for col, ability in zip(cols, Ability):
        with col:
            scores[ability] = int(
                st.number_input(
                    ability.abbreviation,
                    min_value=8 if method == AbilityMethod.POINT_BUY else 3,
                    max_value=15 if method == AbilityMethod.POINT_BUY else 18,
                    value=defaults[ability],
                    key=f"party_score_{method.value}_{ability.value}",
                )
            )
    if method == AbilityMethod.POINT_BUY:
        st.caption(f"Points remaining: {point_buy_remaining(scores)}")
    return scores


def render_party_builder(character: Character, rulebook: RuleBook) -> None:
    """Build a class-based companion from scratch."""
    col1, col2, col3 = st.columns(3)
    with col1:
        name = st.text_input("Name", key="party_name")
        race_key = st.selectbox(
            "Race",
            options=rulebook.races.keys(),
            format_func=lambda k: rulebook.races.require(k).name,
            key="party_race",
        )
        race = rulebook.races.require(race_key)
        subrace = None
        if race.subraces:
            subrace = st.selectbox("Subrace", options=[s.name for s in race.subraces], key="party_subrace")
    with col2:
        class_key = _class_picker(rulebook, "Class", key="party_class")
        class_def = rulebook.classes.require(class_key)
        level = int(
            st.number_input("Level", min_value=1, max_value=20, value=character.total_level, key="party_level")
        )
        subclass = None
        if class_def.subclasses and level >= progression.get_subclass_level(normalize_key(class_key)):
            subclass = st.selectbox(
                class_def.subclass_title,
                options=[s.name for s in class_def.subclasses],
                key="party_subclass",
            )
    with col3:
        background = st.selectbox(
            "Background",
            options=[None, *rulebook.backgrounds.keys()],
            format_func=lambda k: "-" if k is None else rulebook.backgrounds.require(k).name,
            key="party_background",
        )
        alignment = st.selectbox(
            "Alignment",
            options=[None, *ALIGNMENTS],
            format_func=lambda k: "-" if k is None else ALIGNMENTS[k],
            key="party_alignment",
        )
        lifestyle = st.selectbox(
            "Lifestyle",
            options=[None, *LIFESTYLES],
            format_func=lambda k: "-" if k is None else LIFESTYLES[k],
            key="party_lifestyle",
        )

    method = st.radio(
        "Ability scores",
        options=list(AbilityMethod),
        format_func=lambda m: m.value.replace("_", " ").title(),
        horizontal=True,
        key="party_method",
    )
    base_scores = _base_score_inputs(method)

    racial_choices: list[Ability] = []
    if race.ability_choices:
        racial_choices = st.multiselect(
            f"{race.name}: +{race.ability_choices.amount} to {race.ability_choices.count} abilities",
            options=list(Ability),
            format_func=lambda a: a.full_name,
            max_selections=race.ability_choices.count,
            key="party_racial",
        )

    skills = st.multiselect(
        f"Skills (choose {class_def.skill_choices})",
        options=class_def.skill_options,
        format_func=lambda s: s.replace("_", " ").title(),
        max_selections=class_def.skill_choices,
        key="party_skills",
    )
    cantrips: list[str] = []
    spells: list[str] = []
    if class_def.is_spellcaster:
        cantrip_limit = progression.get_cantrips_known(class_key, level)
        if cantrip_limit:
            cantrips = st.multiselect(
                f"Cantrips (up to {cantrip_limit})",
                options=[s.name for s in rulebook.spells_for(class_key, 0)],
                max_selections=cantrip_limit,
                key="party_cantrips",
            )
        spell_limit = progression.get_spells_known(class_key, level)
        top = max(progression.get_spell_slots(class_key, level, subclass) or {1: 0})
        spells = st.multiselect(
            "Spells" + (f" (up to {spell_limit})" if spell_limit is not None else ""),
            options=[s.name for lvl in range(1, top + 1) for s in rulebook.spells_for(class_key, lvl)],
            max_selections=spell_limit,
            key="party_spells",
        )

    with st.expander("Personality & appearance"):
        col1, col2 = st.columns(2)
        with col1:
            nickname = st.text_input("Nickname", key="party_nickname")
            gender = st.text_input("Gender", key="party_gender")
            voice = st.text_input("Voice", key="party_voice")
            motivation = st.text_input("Motivation", key="party_motivation")
        with col2:
            ideals = st.text_input("Ideals", key="party_ideals")
            bonds = st.text_input("Bonds", key="party_bonds")
            flaws = st.text_input("Flaws", key="party_flaws")
            relationship = st.text_input("Relationship to party", key="party_relationship")
        backstory = st.text_area("Backstory", key="party_backstory")

    profile = PartyMemberProfile(
        nickname=nickname,
        gender=gender,
        voice=voice,
        motivation=motivation,
        alignment=alignment,
        lifestyle=lifestyle,
        ideals=ideals,
        bonds=bonds,
        flaws=flaws,
        backstory=backstory,
        relationship_to_party=relationship,
    )
    choices = PartyMemberChoices(
        name=name,
        race=race_key,
        subrace=subrace,
        companion_class=class_key,
        companion_subclass=subclass,
        level=level,
        background=background,
        ability_method=method,
        base_scores=base_scores,
        racial_choices=racial_choices,
        skills=skills,
        cantrips=cantrips,
        spells_known=spells,
        profile=profile,
    )

    if st.button("✨ Create party member", type="primary"):
        draft = attempt(create_party_member, character, choices, rulebook)
        if draft is None:
            return
        created = attempt(get_client().create_party_member, draft)
        if created is not None:
            st.session_state.pop(PARTY_POOL_KEY, None)
            flash("success", f"{created.display_name} joined {character.name} ({draft.max_hp} HP)")
            st.rerun()


# =============================================================================
# Main
# =============================================================================


def main() -> None:
    """Render the companions page."""
    st.markdown("# 🤝 Companions")
    show_flash()

    character = select_character()
    if character is None:
        return
    rulebook = load_rulebook()

    party_tab, recruit_tab, builder_tab = st.tabs(["Party", "Recruit", "Build Party Member"])
    with party_tab:
        render_party(character, rulebook)
    with recruit_tab:
        render_recruit(character, rulebook)
    with builder_tab:
        render_party_builder(character, rulebook)


main()
