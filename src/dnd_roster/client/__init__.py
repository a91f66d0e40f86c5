"""REST client for the roster backend.

Exports:
    RosterClient: Session-backed client for every ``/api`` endpoint.
"""

from __future__ import annotations

from dnd_roster.client.api import LocationKind, QuestKind, RosterClient


__all__ = [
    "RosterClient",
    "QuestKind",
    "LocationKind",
]
