"""Character Roster - Main Application Entry Point.

Landing page of the multi-page Streamlit app. Shows the party at a
glance and links to the working pages:
- Characters: create, edit and review characters
- Level Up: level-up previews, choices and rests
- Companions: recruit, convert, level and build party members
- Generate: quests, locations and world events from the backend
"""

from __future__ import annotations

import streamlit as st

from dnd_roster.core.config import get_settings
from dnd_roster.ui.state import get_client, load_characters, load_rulebook
from dnd_roster.ui.theme import apply_theme, render_hp_bar


# =============================================================================
# Page Configuration
# =============================================================================


st.set_page_config(
    page_title=get_settings().ui.page_title,
    page_icon="🐉",
    layout="wide",
    initial_sidebar_state="expanded",
)

apply_theme()


# =============================================================================
# Main Content
# =============================================================================


def main() -> None:
    """Render the landing page."""
    settings = get_settings()
    st.markdown(f"# 🐉 {settings.app_name}")
    st.caption(f"Backend: {get_client().base_url}")

    characters = load_characters()
    rulebook = load_rulebook()

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Characters", len(characters))
    with col2:
        st.metric("Races", len(rulebook.races))
    with col3:
        st.metric("Classes", len(rulebook.classes))
    with col4:
        st.metric("Feats", len(rulebook.feats))

    st.markdown("## Party")
    if not characters:
        st.info("No characters yet.")
    for character in characters:
        with st.container(border=True):
            left, right = st.columns([3, 2])
            with left:
                st.markdown(f"### {character.name}")
                st.caption(f"{character.race.title()} · {character.class_display} · {character.experience} XP")
            with right:
                render_hp_bar(character.current_hp, character.max_hp)

    st.divider()

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        if st.button("🧙 Characters", use_container_width=True):
            st.switch_page("pages/1_Characters.py")
    with col2:
        if st.button("⬆️ Level Up", use_container_width=True):
            st.switch_page("pages/2_Level_Up.py")
    with col3:
        if st.button("🤝 Companions", use_container_width=True):
            st.switch_page("pages/3_Companions.py")
    with col4:
        if st.button("📜 Generate", use_container_width=True):
            st.switch_page("pages/4_Generate.py")


# =============================================================================
# Entry Point
# =============================================================================


main()
