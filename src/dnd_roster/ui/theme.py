"""Roster theme: dark parchment styling and sheet widgets.

The CSS is injected once per page by ``apply_theme``. The render helpers
draw the pieces of a character sheet the pages share: HP bar, ability
grid and spell slot pips.
"""

from __future__ import annotations

from collections.abc import Mapping

import streamlit as st

from dnd_roster.core.config import get_settings
from dnd_roster.models.character import AbilityScores
from dnd_roster.models.enums import Ability


# =============================================================================
# Color Palette
# =============================================================================


class Colors:
    """Palette shared by the CSS and inline styles."""

    CRIMSON = "#8B2020"
    CRIMSON_DARK = "#6B1818"
    AMBER = "#C9A227"

    BG_DARK = "#1C1410"
    BG_CARD = "#2A201A"
    BG_ELEVATED = "#3D2E24"

    TEXT_PRIMARY = "#F5EDE4"
    TEXT_SECONDARY = "#C4B5A5"
    TEXT_MUTED = "#8B7355"

    BORDER = "#5C4A3A"

    HP_HEALTHY = "#4A7C3F"
    HP_WOUNDED = "#C9A227"
    HP_CRITICAL = "#8B2020"


# =============================================================================
# CSS
# =============================================================================


BASE_CSS = f"""
<style>
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&family=Cinzel:wght@500;600&display=swap');

    :root {{
        --crimson: {Colors.CRIMSON};
        --crimson-dark: {Colors.CRIMSON_DARK};
        --amber: {Colors.AMBER};
        --bg-card: {Colors.BG_CARD};
        --bg-elevated: {Colors.BG_ELEVATED};
        --text-primary: {Colors.TEXT_PRIMARY};
        --text-secondary: {Colors.TEXT_SECONDARY};
        --text-muted: {Colors.TEXT_MUTED};
        --border: {Colors.BORDER};
        --font-display: 'Cinzel', serif;
    }}

    #MainMenu {{visibility: hidden;}}
    footer {{visibility: hidden;}}
    .stDeployButton {{display: none;}}

    h1, h2, h3 {{
        font-family: var(--font-display) !important;
        letter-spacing: 0.02em;
    }}

    h1 {{
        padding-bottom: 0.75rem;
        border-bottom: 2px solid var(--crimson);
    }}

    .stButton > button {{
        border-radius: 6px;
        transition: all 0.15s ease;
    }}

    [data-testid="stMetric"] {{
        background: var(--bg-card);
        border: 1px solid var(--border);
        border-radius: 8px;
        padding: 1rem;
    }}

    .ability-grid {{
        display: grid;
        grid-template-columns: repeat(6, 1fr);
        gap: 0.5rem;
        margin: 1rem 0;
    }}

    .ability-box {{
        background: var(--bg-elevated);
        border: 1px solid var(--border);
        border-radius: 6px;
        padding: 0.5rem;
        text-align: center;
    }}

    .ability-label {{
        font-size: 0.625rem;
        font-weight: 600;
        color: var(--text-muted);
        text-transform: uppercase;
    }}

    .ability-score {{
        font-family: var(--font-display);
        font-size: 1.25rem;
        color: var(--text-primary);
    }}

    .ability-mod {{
        font-size: 0.875rem;
        color: var(--amber);
    }}

    .hp-bar {{
        height: 20px;
        background: var(--bg-elevated);
        border-radius: 10px;
        overflow: hidden;
        position: relative;
    }}

    .hp-fill {{
        height: 100%;
        border-radius: 10px;
    }}

    .hp-text {{
        position: absolute;
        top: 0;
        width: 100%;
        text-align: center;
        line-height: 20px;
        font-size: 0.75rem;
        font-weight: 600;
        color: white;
    }}

    .spell-slots {{
        display: flex;
        gap: 4px;
    }}

    .spell-slot {{
        width: 14px;
        height: 14px;
        border-radius: 50%;
        border: 2px solid var(--crimson);
    }}

    .spell-slot.available {{
        background: var(--crimson);
    }}

    @media (max-width: 768px) {{
        .ability-grid {{
            grid-template-columns: repeat(3, 1fr);
        }}
    }}
</style>
"""

DARK_CSS = f"""
<style>
    .main, header[data-testid="stHeader"] {{
        background: {Colors.BG_DARK};
    }}

    .main .block-container {{
        color: var(--text-primary);
    }}

    .stButton > button {{
        background: var(--crimson);
        color: white;
        border: none;
    }}

    .stButton > button:hover {{
        background: var(--crimson-dark);
    }}
</style>
"""


def apply_theme() -> None:
    """Inject the roster CSS, plus the dark overrides unless the theme is light."""
    st.markdown(BASE_CSS, unsafe_allow_html=True)
    if get_settings().ui.theme != "light":
        st.markdown(DARK_CSS, unsafe_allow_html=True)


# =============================================================================
# Sheet Widgets
# =============================================================================


def hp_color(current: int, maximum: int) -> str:
    """Bar color for an HP fraction: healthy above half, critical at a quarter."""
    pct = current / maximum if maximum > 0 else 0
    if pct > 0.5:
        return Colors.HP_HEALTHY
    if pct > 0.25:
        return Colors.HP_WOUNDED
    return Colors.HP_CRITICAL


def render_hp_bar(current: int, maximum: int) -> None:
    """Render an HP bar with color coding."""
    pct = max(0, min(100, current / maximum * 100)) if maximum > 0 else 0
    st.markdown(
        f"""
        <div class="hp-bar">
            <div class="hp-fill" style="width: {pct:.0f}%; background: {hp_color(current, maximum)};"></div>
            <span class="hp-text">{current}/{maximum}</span>
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_ability_scores(scores: AbilityScores) -> None:
    """Render the six scores with their modifiers in a grid."""
    boxes = "".join(
        f"""
        <div class="ability-box">
            <div class="ability-label">{ability.abbreviation}</div>
            <div class="ability-score">{scores.get(ability)}</div>
            <div class="ability-mod">{scores.modifier(ability):+d}</div>
        </div>
        """
        for ability in Ability
    )
    st.markdown(f'<div class="ability-grid">{boxes}</div>', unsafe_allow_html=True)


def render_spell_slots(totals: Mapping[int, int], used: Mapping[str, int] | None = None) -> None:
    """Render spell slot pips: filled for available, hollow for used."""
    used = used or {}
    for level, total in sorted(totals.items()):
        if total <= 0:
            continue
        spent = min(total, used.get(str(level), 0))
        dots = "".join(
            f'<span class="spell-slot {"available" if i < total - spent else "used"}"></span>'
            for i in range(total)
        )
        st.markdown(
            f"""
            <div style="display: flex; align-items: center; gap: 8px; margin: 4px 0;">
                <span style="width: 60px; color: var(--text-secondary);">Level {level}</span>
                <div class="spell-slots">{dots}</div>
                <span style="color: var(--text-muted);">({total - spent}/{total})</span>
            </div>
            """,
            unsafe_allow_html=True,
        )


__all__ = [
    "Colors",
    "apply_theme",
    "hp_color",
    "render_hp_bar",
    "render_ability_scores",
    "render_spell_slots",
]
