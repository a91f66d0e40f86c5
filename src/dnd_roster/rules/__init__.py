"""Rule data: the bundled JSON tables and the level progression tables.

Exports:
    normalize_key: Canonical lookup key for any rule table.
    RuleIndex: Read-only alias-indexed table.
    RuleBook: All tables bundled together.
    load_rulebook: Load tables from a directory.
    get_rulebook: Cached RuleBook for the configured data directory.
"""

from __future__ import annotations

from dnd_roster.rules.tables import (
    RuleBook,
    RuleIndex,
    clear_rulebook_cache,
    get_rulebook,
    load_rulebook,
    normalize_key,
)


__all__ = [
    "normalize_key",
    "RuleIndex",
    "RuleBook",
    "load_rulebook",
    "get_rulebook",
    "clear_rulebook_cache",
]
