"""dnd-roster - D&D 5E Character Roster.

Character creation, level-up and companion rules for a D&D 5E roster,
plus a REST client for the backend that stores the records.

RULES ARE LOCAL, RECORDS ARE REMOTE:
- The engine computes everything derived (scores, HP, slots, kits)
  from the bundled rule tables
- The backend stores characters and companions and returns them
- Stored JSON is parsed leniently; malformed fields fall back to defaults

Example:
    >>> from dnd_roster import RosterClient, WizardState, build_character_payload, get_rulebook
    >>>
    >>> rulebook = get_rulebook()
    >>> state = WizardState(first_name="Thorin", race="dwarf", subrace="Mountain Dwarf",
    ...                     class_name="fighter", background="soldier")
    >>> with RosterClient() as client:
    ...     thorin = client.create_character(build_character_payload(state, rulebook))

Modules:
    core: Configuration, logging, exceptions and rule constants.
    models: Pydantic V2 records for characters, companions and level-ups.
    rules: Bundled rule tables and level progression.
    engine: Ability scores, feats, equipment, leveling, companions, wizard.
    client: REST client for the ``/api`` endpoints.
    ui: Streamlit interface.
"""

from __future__ import annotations

# Core
from dnd_roster.core.config import Settings, get_settings
from dnd_roster.core.exceptions import RosterError
from dnd_roster.core.logging import configure_logging, get_logger

# Records
from dnd_roster.models.character import AbilityScores, Character, ClassLevel
from dnd_roster.models.companion import Companion, PartyMemberDraft

# Rules
from dnd_roster.rules.tables import RuleBook, get_rulebook

# Engine
from dnd_roster.engine.leveling import apply_level_up, build_level_up_info, rest
from dnd_roster.engine.companions import recruit_companion
from dnd_roster.engine.party import create_party_member
from dnd_roster.engine.wizard import WizardState, build_character, build_character_payload

# Client
from dnd_roster.client.api import RosterClient


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "RosterError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Records
    "AbilityScores",
    "Character",
    "ClassLevel",
    "Companion",
    "PartyMemberDraft",
    # Rules
    "RuleBook",
    "get_rulebook",
    # Engine
    "apply_level_up",
    "build_level_up_info",
    "rest",
    "recruit_companion",
    "create_party_member",
    "WizardState",
    "build_character",
    "build_character_payload",
    # Client
    "RosterClient",
]
