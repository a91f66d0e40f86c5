"""Characters Page - Create, Edit and Review Characters.

This page allows users to:
- Browse saved characters with their sheets
- Create a character through the five-step wizard
- Edit a character through the same wizard, keeping its progression
- Delete characters
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

import streamlit as st

from dnd_roster.core.config import get_settings
from dnd_roster.core.constants import ALIGNMENTS, ALLOWED_AVATAR_TYPES, LIFESTYLES, POINT_BUY_MAX, POINT_BUY_MIN
from dnd_roster.core.constants import MANUAL_SCORE_MAX, MANUAL_SCORE_MIN, MAX_ABILITY_SCORE, MIN_ABILITY_SCORE, STANDARD_ARRAY
from dnd_roster.core.exceptions import AbilityScoreError, RosterError
from dnd_roster.core.logging import get_logger
from dnd_roster.engine.abilities import (
    ScorePoolAssignment,
    fixed_racial_bonuses,
    point_buy_remaining,
    roll_score_pool,
)
from dnd_roster.engine.equipment import choice_label, sub_options_for
from dnd_roster.engine.wizard import (
    STEPS,
    WizardState,
    advance,
    back,
    build_character,
    build_character_payload,
    choose_gold,
    final_scores,
    skill_options,
)
from dnd_roster.models.character import Character
from dnd_roster.models.enums import Ability, AbilityMethod, EquipmentChoice, GoldMethod, WizardStep
from dnd_roster.rules import progression
from dnd_roster.rules.tables import RuleBook, normalize_key
from dnd_roster.ui.state import attempt, flash, get_client, load_characters, load_rulebook, show_flash
from dnd_roster.ui.theme import apply_theme, render_ability_scores, render_hp_bar


logger = get_logger(__name__)


# =============================================================================
# Page Configuration
# =============================================================================


st.set_page_config(
    page_title=f"Characters | {get_settings().ui.page_title}",
    page_icon="🧙",
    layout="wide",
    initial_sidebar_state="expanded",
)

apply_theme()


WIZARD_KEY = "wizard_state"
EXISTING_KEY = "wizard_existing"
GENERATION_KEY = "wizard_generation"
POOL_KEY = "wizard_rolled_pool"

STEP_TITLES = {
    WizardStep.IDENTITY: "Identity",
    WizardStep.ABILITIES: "Abilities & Skills",
    WizardStep.DETAILS: "Details",
    WizardStep.EQUIPMENT: "Equipment",
    WizardStep.REVIEW: "Review",
}


# =============================================================================
# Session State
# =============================================================================


def init_session_state() -> None:
    """Initialize wizard session keys."""
    if WIZARD_KEY not in st.session_state:
        st.session_state[WIZARD_KEY] = None
    if EXISTING_KEY not in st.session_state:
        st.session_state[EXISTING_KEY] = None
    if GENERATION_KEY not in st.session_state:
        st.session_state[GENERATION_KEY] = 0


def start_wizard(state: WizardState, existing: Character | None = None) -> None:
    # A new generation gives every widget a fresh key so stale values are dropped.
    st.session_state[GENERATION_KEY] += 1
    st.session_state[WIZARD_KEY] = state
    st.session_state[EXISTING_KEY] = existing
    st.session_state.pop(POOL_KEY, None)


def close_wizard() -> None:
    st.session_state[WIZARD_KEY] = None
    st.session_state[EXISTING_KEY] = None
    st.session_state.pop(POOL_KEY, None)


def wkey(name: str) -> str:
    """Widget key scoped to the current wizard run."""
    return f"wiz_{st.session_state[GENERATION_KEY]}_{name}"


def _index(options: list[Any], value: Any) -> int:
    return options.index(value) if value in options else 0


# =============================================================================
# Character List
# =============================================================================


def render_character_list(rulebook: RuleBook) -> None:
    """Render saved characters with edit and delete actions."""
    client = get_client()
    characters = load_characters()

    if not characters:
        st.info("No characters saved yet.")
        return

    for character in characters:
        with st.expander(f"**{character.name}** · {character.race.title()} {character.class_display}"):
            col1, col2 = st.columns([3, 1])
            with col1:
                render_hp_bar(character.current_hp, character.max_hp)
                render_ability_scores(character.ability_scores)
                st.caption(
                    f"AC {character.armor_class} · Speed {character.speed} ft. · "
                    f"Proficiency +{character.proficiency_bonus} · {character.gold_gp} gp"
                )
                if character.skills:
                    st.markdown("**Skills:** " + ", ".join(s.replace("_", " ").title() for s in character.skills))
                if character.feats:
                    st.markdown("**Feats:** " + ", ".join(character.feats))
                if character.inventory:
                    st.markdown(
                        "**Inventory:** "
                        + ", ".join(
                            f"{item.name} ×{item.quantity}" if item.quantity > 1 else item.name
                            for item in character.inventory
                        )
                    )
            with col2:
                if st.button("✏️ Edit", key=f"edit_{character.id}", use_container_width=True):
                    state = attempt(WizardState.from_character, character, rulebook)
                    if state is not None:
                        start_wizard(state, existing=character)
                        st.rerun()
                if st.button("🗑️ Delete", key=f"delete_{character.id}", use_container_width=True):
                    try:
                        client.delete_character(character.id)
                    except RosterError as e:
                        st.error(e.message)
                    else:
                        flash("success", f"Deleted {character.name}")
                        st.rerun()


# =============================================================================
# Wizard Steps
# =============================================================================


def render_identity(state: WizardState, rulebook: RuleBook) -> WizardState:
    """Name, race, class and background."""
    col1, col2 = st.columns(2)
    with col1:
        first_name = st.text_input("First Name", value=state.first_name, key=wkey("first_name"))
        nickname = st.text_input("Nickname", value=state.nickname or "", key=wkey("nickname"))
    with col2:
        last_name = st.text_input("Last Name", value=state.last_name, key=wkey("last_name"))
        gender = st.text_input("Gender", value=state.gender or "", key=wkey("gender"))
    state = state.model_copy(
        update={
            "first_name": first_name.strip(),
            "last_name": last_name.strip(),
            "nickname": nickname.strip() or None,
            "gender": gender.strip() or None,
        }
    )

    race_keys = rulebook.races.keys()
    col1, col2 = st.columns(2)
    with col1:
        race_key = st.selectbox(
            "Race",
            options=race_keys,
            index=_index(race_keys, state.race),
            format_func=lambda key: rulebook.races.require(key).name,
            key=wkey("race"),
        )
    race = rulebook.races.require(race_key)
    if race_key != state.race:
        state = state.with_race(race_key)
    with col2:
        if race.subraces:
            names = [subrace.name for subrace in race.subraces]
            subrace = st.selectbox("Subrace", options=names, index=_index(names, state.subrace), key=wkey("subrace"))
            if subrace != state.subrace:
                state = state.with_race(race_key, subrace)
    st.caption(race.description)

    # Multiclass characters change classes only through level-up.
    existing = st.session_state[EXISTING_KEY]
    multiclassed = existing is not None and len(existing.class_levels) > 1
    class_keys = rulebook.classes.keys()
    col1, col2 = st.columns(2)
    with col1:
        class_key = st.selectbox(
            "Class",
            options=class_keys,
            index=_index(class_keys, state.class_name),
            format_func=lambda key: rulebook.classes.require(key).name,
            key=wkey("class"),
            disabled=multiclassed,
        )
    if class_key != state.class_name:
        state = state.with_class(class_key)
    class_def = rulebook.classes.require(class_key)
    with col2:
        background_keys = rulebook.backgrounds.keys()
        background = st.selectbox(
            "Background",
            options=background_keys,
            index=_index(background_keys, state.background),
            format_func=lambda key: rulebook.backgrounds.require(key).name,
            key=wkey("background"),
        )
        state = state.model_copy(update={"background": background})

    if class_def.subclasses and state.level >= progression.get_subclass_level(normalize_key(class_key)):
        names = ["", *[entry.name for entry in class_def.subclasses]]
        subclass = st.selectbox(
            class_def.subclass_title,
            options=names,
            index=_index(names, state.subclass or ""),
            key=wkey("subclass"),
        )
        state = state.model_copy(update={"subclass": subclass or None})

    st.caption(f"Hit die d{class_def.hit_die} · Choose {class_def.skill_choices} skills")

    avatar = st.file_uploader(
        "Avatar",
        type=[suffix.lstrip(".") for suffix in ALLOWED_AVATAR_TYPES],
        key=wkey("avatar"),
    )
    if avatar is not None and st.button("Upload avatar", key=wkey("avatar_upload")):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / avatar.name
            path.write_bytes(avatar.getvalue())
            stored = attempt(get_client().upload_avatar, path)
        if stored:
            state = state.model_copy(update={"avatar": stored})
            st.success("Avatar uploaded")
    if state.avatar:
        st.caption(f"Avatar: {state.avatar}")
    return state


def _pool_key(ability: Ability) -> str:
    return wkey(f"pool_{ability.value}")


def _clear_pool_widgets() -> None:
    for ability in Ability:
        st.session_state.pop(_pool_key(ability), None)


def _claim_pool_value(ability: Ability, values: tuple[int, ...]) -> None:
    """Give the value just picked for ``ability`` to it; a displaced holder is cleared."""
    pool = ScorePoolAssignment(values)
    for other in Ability:
        picked = st.session_state.get(_pool_key(other))
        if other != ability and picked is not None:
            pool.assign(other, picked)
    picked = st.session_state.get(_pool_key(ability))
    if picked is None:
        return
    pool.assign(ability, picked)
    for other, score in pool.as_scores().items():
        if score is None and st.session_state.get(_pool_key(other)) is not None:
            st.session_state[_pool_key(other)] = None


def _pool_scores(values: tuple[int, ...]) -> dict[Ability, int | None]:
    pool = ScorePoolAssignment(values)
    for ability in Ability:
        picked = st.session_state.get(_pool_key(ability))
        if picked is not None:
            pool.assign(ability, picked)
    return pool.as_scores()


def _score_bounds(method: AbilityMethod, current: int | None) -> tuple[int, int]:
    """Input range for a typed score.

    Manual entry stretches to hold a score recovered from a saved
    character, which can sit outside 3..18.
    """
    if method == AbilityMethod.POINT_BUY:
        return POINT_BUY_MIN, POINT_BUY_MAX
    if current is None:
        return MANUAL_SCORE_MIN, MANUAL_SCORE_MAX
    return (
        max(MIN_ABILITY_SCORE, min(MANUAL_SCORE_MIN, current)),
        min(MAX_ABILITY_SCORE, max(MANUAL_SCORE_MAX, current)),
    )


def render_base_scores(state: WizardState) -> WizardState:
    """Score inputs for the selected method."""
    methods = list(AbilityMethod)
    method = st.radio(
        "Method",
        options=methods,
        index=_index(methods, state.ability_method),
        format_func=lambda m: m.value.replace("_", " ").title(),
        horizontal=True,
        key=wkey("method"),
    )
    if method != state.ability_method:
        state = state.with_ability_method(method)
        st.session_state.pop(POOL_KEY, None)
        _clear_pool_widgets()

    if method in (AbilityMethod.STANDARD_ARRAY, AbilityMethod.ROLL):
        if method == AbilityMethod.ROLL:
            if st.button("🎲 Roll 4d6 drop lowest", key=wkey("roll")):
                st.session_state[POOL_KEY] = roll_score_pool().values
                _clear_pool_widgets()
                state = state.with_ability_method(method)
            values = st.session_state.get(POOL_KEY)
            if values is None:
                st.info("Roll to get your six scores.")
                return state
            st.caption("Rolled: " + ", ".join(str(v) for v in values))
        else:
            values = STANDARD_ARRAY

        options = [None, *sorted(set(values), reverse=True)]
        cols = st.columns(len(Ability))
        for col, ability in zip(cols, Ability):
            with col:
                current = state.base_scores.get(ability)
                st.session_state.setdefault(_pool_key(ability), current if current in options else None)
                st.selectbox(
                    ability.abbreviation,
                    options=options,
                    format_func=lambda v: "-" if v is None else str(v),
                    key=_pool_key(ability),
                    on_change=_claim_pool_value,
                    args=(ability, tuple(values)),
                )
        try:
            scores = _pool_scores(tuple(values))
        except AbilityScoreError as e:
            st.error(e.message)
            return state
        return state.model_copy(update={"base_scores": scores})

    scores: dict[Ability, int | None] = {}
    cols = st.columns(len(Ability))
    for col, ability in zip(cols, Ability):
        with col:
            current = state.base_scores.get(ability)
            low, high = _score_bounds(method, current)
            scores[ability] = int(
                st.number_input(
                    ability.abbreviation,
                    min_value=low,
                    max_value=high,
                    value=current if current is not None and low <= current <= high else max(low, 8),
                    key=wkey(f"score_{ability.value}"),
                )
            )
    if method == AbilityMethod.POINT_BUY:
        remaining = point_buy_remaining(scores)
        st.caption(f"Points remaining: {remaining}")
    return state.model_copy(update={"base_scores": scores})


def render_abilities(state: WizardState, rulebook: RuleBook) -> WizardState:
    """Base scores, racial choices and class skills."""
    state = render_base_scores(state)

    race = rulebook.races.get(state.race)
    if race and race.ability_choices and state.character_id is None:
        rule = race.ability_choices
        fixed = fixed_racial_bonuses(race, race.find_subrace(state.subrace)) if rule.exclude_fixed else {}
        options = [ability for ability in Ability if ability not in fixed]
        chosen = st.multiselect(
            f"{race.name}: +{rule.amount} to {rule.count} abilities",
            options=options,
            default=[a for a in state.racial_choices if a in options],
            format_func=lambda a: a.full_name,
            max_selections=rule.count,
            key=wkey("racial_choices"),
        )
        state = state.model_copy(update={"racial_choices": chosen})

    st.markdown("#### Final Scores")
    render_ability_scores(final_scores(state, rulebook))

    class_def = rulebook.classes.get(state.class_name)
    if class_def:
        options = skill_options(state, rulebook)
        skills = st.multiselect(
            f"Skills (choose {class_def.skill_choices})",
            options=options,
            default=[s for s in state.selected_skills if s in options],
            format_func=lambda s: s.replace("_", " ").title(),
            max_selections=class_def.skill_choices,
            key=wkey("skills"),
        )
        state = state.model_copy(update={"selected_skills": skills})
        background = rulebook.backgrounds.get(state.background)
        if background and background.skill_proficiencies:
            st.caption(
                "From background: "
                + ", ".join(s.replace("_", " ").title() for s in background.skill_proficiencies)
            )
    return state


_DETAIL_TEXT_FIELDS = (
    ("hair_color", "Hair"),
    ("eye_color", "Eyes"),
    ("skin_color", "Skin"),
    ("height", "Height"),
    ("weight", "Weight"),
    ("age", "Age"),
)

_DETAIL_AREA_FIELDS = (
    ("personality_traits", "Personality Traits"),
    ("ideals", "Ideals"),
    ("bonds", "Bonds"),
    ("flaws", "Flaws"),
    ("backstory", "Backstory"),
    ("organizations", "Organizations"),
    ("allies", "Allies"),
    ("enemies", "Enemies"),
    ("other_notes", "Other Notes"),
)


def render_details(state: WizardState, rulebook: RuleBook) -> WizardState:
    """Alignment, faith, lifestyle, appearance and personality."""
    update: dict[str, Any] = {}
    col1, col2, col3 = st.columns(3)
    with col1:
        alignments = [None, *ALIGNMENTS]
        update["alignment"] = st.selectbox(
            "Alignment",
            options=alignments,
            index=_index(alignments, state.alignment),
            format_func=lambda key: "-" if key is None else ALIGNMENTS[key],
            key=wkey("alignment"),
        )
    with col2:
        deities = [None, *rulebook.deities.keys()]
        update["faith"] = st.selectbox(
            "Faith",
            options=deities,
            index=_index(deities, state.faith),
            format_func=lambda key: "-" if key is None else rulebook.deities.require(key).name,
            key=wkey("faith"),
        )
    with col3:
        lifestyles = [None, *LIFESTYLES]
        update["lifestyle"] = st.selectbox(
            "Lifestyle",
            options=lifestyles,
            index=_index(lifestyles, state.lifestyle),
            format_func=lambda key: "-" if key is None else LIFESTYLES[key],
            key=wkey("lifestyle"),
        )

    cols = st.columns(len(_DETAIL_TEXT_FIELDS))
    for col, (field, label) in zip(cols, _DETAIL_TEXT_FIELDS):
        with col:
            value = getattr(state, field)
            update[field] = st.text_input(label, value="" if value is None else str(value), key=wkey(field)).strip() or None

    for field, label in _DETAIL_AREA_FIELDS:
        update[field] = st.text_area(label, value=getattr(state, field) or "", key=wkey(field)).strip() or None

    col1, col2 = st.columns(2)
    with col1:
        update["current_location"] = st.text_input(
            "Current Location", value=state.current_location or "", key=wkey("location")
        ).strip() or None
    with col2:
        update["current_quest"] = st.text_input(
            "Current Quest", value=state.current_quest or "", key=wkey("quest")
        ).strip() or None
    return state.model_copy(update=update)


def render_equipment(state: WizardState, rulebook: RuleBook) -> WizardState:
    """Class kit choices or starting gold."""
    class_def = rulebook.classes.get(state.class_name)
    if class_def is None:
        return state

    paths = list(EquipmentChoice)
    path = st.radio(
        "Starting equipment",
        options=paths,
        index=_index(paths, state.equipment_choice),
        format_func=lambda p: "Class equipment" if p == EquipmentChoice.EQUIPMENT else "Starting gold",
        horizontal=True,
        key=wkey("equipment_choice"),
    )
    state = state.model_copy(update={"equipment_choice": path})

    if path == EquipmentChoice.EQUIPMENT:
        kit = class_def.starting_equipment
        if kit.given:
            st.markdown("**You receive:** " + ", ".join(kit.given))
        selections = dict(state.equipment_selections)
        sub_selections = dict(state.equipment_sub_selections)
        for index, group in enumerate(kit.choices):
            selections[index] = st.selectbox(
                choice_label(group, index),
                options=group.options,
                index=_index(group.options, selections.get(index)),
                key=wkey(f"kit_{index}"),
            )
            sub_options = sub_options_for(selections[index], rulebook.equipment)
            if sub_options:
                sub_selections[index] = st.selectbox(
                    f"{choice_label(group, index)}: pick one",
                    options=sub_options,
                    index=_index(sub_options, sub_selections.get(index)),
                    key=wkey(f"kit_sub_{index}"),
                )
            else:
                sub_selections.pop(index, None)
        return state.model_copy(
            update={"equipment_selections": selections, "equipment_sub_selections": sub_selections}
        )

    if class_def.starting_gold:
        st.caption(f"{class_def.name} starting gold: {class_def.starting_gold.dice} × {class_def.starting_gold.multiplier} gp")
    methods = list(GoldMethod)
    method = st.radio(
        "Gold",
        options=methods,
        index=_index(methods, state.gold_method),
        format_func=lambda m: m.value.title(),
        horizontal=True,
        key=wkey("gold_method"),
    )
    manual = None
    if method == GoldMethod.MANUAL:
        manual = st.number_input("Amount (gp)", min_value=0, value=state.starting_gold or 0, key=wkey("gold_manual"))
    label = "🎲 Roll gold" if method == GoldMethod.ROLLED else "Set gold"
    if st.button(label, key=wkey("gold_apply")):
        updated = attempt(choose_gold, state, rulebook, method, manual_amount=manual)
        if updated is not None:
            state = updated
    if state.starting_gold is not None:
        st.success(f"Starting gold: {state.starting_gold} gp")
    return state


def render_review(state: WizardState, rulebook: RuleBook, existing: Character | None) -> None:
    """Preview the compiled character and submit it."""
    character = attempt(build_character, state, rulebook, existing)
    if character is None:
        return

    st.markdown(f"### {character.name}")
    st.caption(f"{character.race.title()} {character.class_display} · {character.background or 'No background'}")
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("HP", f"{character.current_hp}/{character.max_hp}")
    with col2:
        st.metric("AC", character.armor_class)
    with col3:
        st.metric("Speed", f"{character.speed} ft.")
    with col4:
        st.metric("Gold", f"{character.gold_gp} gp")
    render_ability_scores(character.ability_scores)
    st.markdown("**Skills:** " + ", ".join(s.replace("_", " ").title() for s in character.skills))
    if character.equipment:
        st.markdown("**Equipment:** " + ", ".join(character.equipment))

    label = "💾 Save changes" if existing else "✨ Create character"
    if st.button(label, type="primary", key=wkey("submit")):
        client = get_client()
        payload = build_character_payload(state, rulebook, existing)
        if existing is not None and existing.id is not None:
            saved = attempt(client.update_character, existing.id, payload)
        else:
            saved = attempt(client.create_character, payload)
        if saved is not None:
            logger.info("Character saved", name=saved.name, id=saved.id)
            close_wizard()
            flash("success", f"Saved **{saved.name}**")
            st.rerun()


# =============================================================================
# Wizard
# =============================================================================


def render_wizard(rulebook: RuleBook) -> None:
    """Render the current wizard step with navigation."""
    state: WizardState = st.session_state[WIZARD_KEY]
    existing: Character | None = st.session_state[EXISTING_KEY]

    title = f"Editing {existing.name}" if existing else "New Character"
    st.markdown(f"## {title}")
    st.progress(state.step.number / len(STEPS), text=f"Step {state.step.number} of {len(STEPS)}: {STEP_TITLES[state.step]}")

    if state.step == WizardStep.IDENTITY:
        state = render_identity(state, rulebook)
    elif state.step == WizardStep.ABILITIES:
        state = render_abilities(state, rulebook)
    elif state.step == WizardStep.DETAILS:
        state = render_details(state, rulebook)
    elif state.step == WizardStep.EQUIPMENT:
        state = render_equipment(state, rulebook)
    else:
        render_review(state, rulebook, existing)
    st.session_state[WIZARD_KEY] = state

    st.divider()
    col1, col2, col3 = st.columns([1, 1, 4])
    with col1:
        if st.button("← Back", disabled=state.step == STEPS[0], key=wkey(f"back_{state.step.value}")):
            previous = attempt(back, state)
            if previous is not None:
                st.session_state[WIZARD_KEY] = previous
                st.rerun()
    with col2:
        if state.step != WizardStep.REVIEW and st.button("Next →", type="primary", key=wkey(f"next_{state.step.value}")):
            moved = attempt(advance, state, rulebook)
            if moved is not None:
                st.session_state[WIZARD_KEY] = moved
                st.rerun()
    with col3:
        if st.button("Cancel", key=wkey("cancel")):
            close_wizard()
            st.rerun()


# =============================================================================
# Main
# =============================================================================


def main() -> None:
    """Render the characters page."""
    init_session_state()
    rulebook = load_rulebook()

    st.markdown("# 🧙 Characters")
    show_flash()

    if st.session_state[WIZARD_KEY] is not None:
        render_wizard(rulebook)
        return

    if st.button("✨ New Character", type="primary"):
        start_wizard(WizardState())
        st.rerun()

    render_character_list(rulebook)


main()
