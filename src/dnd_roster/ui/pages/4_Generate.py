"""Generate Page - Backend Content Generation.

This page sends generation requests for the selected character's
campaign: quests, locations, faction goals, world events and companion
backstories. Responses are shown as returned.
"""

from __future__ import annotations

from typing import Any

import streamlit as st

from dnd_roster.core.config import get_settings
from dnd_roster.models.character import Character
from dnd_roster.ui.state import attempt, get_client, select_character, show_flash
from dnd_roster.ui.theme import apply_theme


# =============================================================================
# Page Configuration
# =============================================================================


st.set_page_config(
    page_title=f"Generate | {get_settings().ui.page_title}",
    page_icon="📜",
    layout="wide",
    initial_sidebar_state="expanded",
)

apply_theme()


def _optional_id(label: str, key: str) -> int | None:
    value = st.number_input(label, min_value=0, value=0, step=1, key=key)
    return int(value) or None


def _show(result: dict[str, Any] | None) -> None:
    if result is None:
        return
    title = result.get("title") or result.get("name")
    if title:
        st.success(f"Generated: **{title}**")
    st.json(result)


# =============================================================================
# Generators
# =============================================================================


def render_quests(character: Character, campaign_id: int | None) -> None:
    kind = st.selectbox("Quest type", options=["main", "side", "one-time", "companion"])
    fields: dict[str, Any] = {"character_id": character.id, "campaign_id": campaign_id}
    if kind in ("main", "side"):
        fields["theme"] = st.text_input("Theme", key="quest_theme") or None
    if kind == "main":
        fields["antagonist_type"] = st.text_input("Antagonist", key="quest_antagonist") or None
        fields["setting"] = st.text_input("Setting", key="quest_setting") or None
    if kind in ("side", "one-time"):
        fields["location"] = st.text_input("Location", value=character.current_location or "", key="quest_location") or None
    if kind == "side":
        fields["hook_type"] = st.text_input("Hook", key="quest_hook") or None
    if kind == "one-time":
        fields["quest_type"] = st.text_input("Quest kind", key="quest_kind") or None
    if kind == "companion":
        fields["companion_id"] = _optional_id("Companion id", key="quest_companion")
    if st.button("📜 Generate quest", type="primary"):
        _show(attempt(get_client().generate_quest, kind, **fields))


def render_locations(campaign_id: int | None) -> None:
    kind = st.selectbox(
        "Generate",
        options=[None, "region", "dungeon"],
        format_func=lambda k: "Single location" if k is None else k.title(),
    )
    fields: dict[str, Any] = {"campaign_id": campaign_id}
    fields["theme"] = st.text_input("Theme", key="loc_theme") or None
    if kind is None:
        fields["location_type"] = st.text_input("Location type", key="loc_type") or None
        fields["region"] = st.text_input("Region", key="loc_region") or None
        fields["danger_level"] = st.slider("Danger level", 1, 10, 3, key="loc_danger")
    if st.button("🗺️ Generate location", type="primary"):
        _show(attempt(get_client().generate_location, kind, **fields))


def render_world(campaign_id: int | None) -> None:
    col1, col2 = st.columns(2)
    with col1:
        faction_id = _optional_id("Faction id", key="world_faction")
        if st.button("Generate faction goal", disabled=faction_id is None):
            _show(attempt(get_client().generate_faction_goal, faction_id))
    with col2:
        if st.button("Generate world event", disabled=campaign_id is None):
            _show(attempt(get_client().generate_world_event, campaign_id))


def render_backstory(character: Character) -> None:
    companions = attempt(get_client().list_companions, character.id) or []
    if not companions:
        st.info(f"{character.name} has no companions.")
        return
    by_id = {c.id: c for c in companions if c.id is not None}
    companion_id = st.selectbox("Companion", options=list(by_id), format_func=lambda i: by_id[i].display_name)
    if st.button("Generate backstory", type="primary"):
        _show(attempt(get_client().generate_companion_backstory, companion_id))


# =============================================================================
# Main
# =============================================================================


def main() -> None:
    """Render the generation page."""
    st.markdown("# 📜 Generate")
    show_flash()

    character = select_character()
    if character is None:
        return
    campaign_id = _optional_id("Campaign id", key="campaign_id")

    quests, locations, world, backstory = st.tabs(["Quests", "Locations", "Living World", "Backstories"])
    with quests:
        render_quests(character, campaign_id)
    with locations:
        render_locations(campaign_id)
    with world:
        render_world(campaign_id)
    with backstory:
        render_backstory(character)


main()
