"""Session helpers shared by the roster pages.

Pages never let a ``RosterError`` escape: ``attempt`` runs an action,
shows the error with ``st.error`` and returns None, so whatever the page
held in ``st.session_state`` stays as it was.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import streamlit as st

from dnd_roster.client.api import RosterClient
from dnd_roster.core.config import get_settings
from dnd_roster.core.exceptions import RosterError
from dnd_roster.core.logging import bind_context, configure_logging, get_logger
from dnd_roster.models.character import Character
from dnd_roster.rules.tables import RuleBook, get_rulebook


logger = get_logger(__name__)

T = TypeVar("T")

FLASH_KEY = "roster_flash"
SELECTED_CHARACTER_KEY = "selected_character_id"


@st.cache_resource
def get_client() -> RosterClient:
    """One REST client per Streamlit server process."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    return RosterClient(settings=settings)


def load_rulebook() -> RuleBook:
    return get_rulebook()


# =============================================================================
# Errors and Messages
# =============================================================================


def attempt(action: Callable[..., T], *args: Any, **kwargs: Any) -> T | None:
    """Run ``action`` and turn a RosterError into an on-page error.

    Returns:
        The action's result, or None when it raised.
    """
    try:
        return action(*args, **kwargs)
    except RosterError as e:
        logger.warning("UI action failed", action=getattr(action, "__name__", repr(action)), error=str(e))
        st.error(e.message)
        problems = e.details.get("problems")
        if problems:
            st.markdown("\n".join(f"- {problem}" for problem in problems))
        return None


def flash(kind: str, text: str) -> None:
    """Queue a message for the next rerun."""
    st.session_state[FLASH_KEY] = (kind, text)


def show_flash() -> None:
    message = st.session_state.pop(FLASH_KEY, None)
    if not message:
        return
    kind, text = message
    if kind == "success":
        st.success(text)
    elif kind == "warning":
        st.warning(text)
    else:
        st.error(text)


# =============================================================================
# Character Selection
# =============================================================================


def load_characters() -> list[Character]:
    return attempt(get_client().list_characters) or []


def select_character(label: str = "Character", *, key: str = "character_picker") -> Character | None:
    """Sidebar picker over saved characters; remembers the choice across pages."""
    characters = [c for c in load_characters() if c.id is not None]
    if not characters:
        st.info("No characters yet. Create one on the Characters page.")
        return None

    ids = [c.id for c in characters]
    remembered = st.session_state.get(SELECTED_CHARACTER_KEY)
    index = ids.index(remembered) if remembered in ids else 0
    by_id = {c.id: c for c in characters}
    chosen = st.sidebar.selectbox(
        label,
        options=ids,
        index=index,
        format_func=lambda cid: f"{by_id[cid].name} ({by_id[cid].class_display})",
        key=key,
    )
    st.session_state[SELECTED_CHARACTER_KEY] = chosen
    bind_context(character_id=chosen)
    return by_id[chosen]


__all__ = [
    "FLASH_KEY",
    "SELECTED_CHARACTER_KEY",
    "get_client",
    "load_rulebook",
    "attempt",
    "flash",
    "show_flash",
    "load_characters",
    "select_character",
]
