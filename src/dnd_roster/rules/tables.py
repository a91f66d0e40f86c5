"""Immutable rule tables.

Rule data (races, classes, backgrounds, feats, spells, deities and
equipment) is read once from JSON, validated into frozen pydantic
entries, and indexed so every lookup is a single dictionary hit.

Keys:
    Each entry is reachable by its table key, by ``normalize_key`` of the
    table key, and by ``normalize_key`` of its display name. So
    ``"Half-Elf"``, ``"half elf"`` and ``"half_elf"`` all find the same
    race. Two different entries claiming the same index key is a data
    error and fails the load.

Example:
    >>> book = get_rulebook()
    >>> book.races.require("Half-Elf").name
    'Half-Elf'
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dnd_roster.core.config import get_settings
from dnd_roster.core.exceptions import RuleDataError, RuleLookupError
from dnd_roster.core.logging import get_logger
from dnd_roster.models.rules import (
    Background,
    CharacterClassDef,
    Deity,
    EquipmentTables,
    Feat,
    Race,
    RuleEntry,
    Spell,
)


logger = get_logger(__name__)

EntryT = TypeVar("EntryT", bound=RuleEntry)

_SEPARATORS = re.compile(r"[\s\-_]+")


def normalize_key(text: str) -> str:
    """Canonical lookup key: lowercase, separator runs become one underscore.

    >>> normalize_key("  Half-Elf ")
    'half_elf'
    >>> normalize_key("Hill  Dwarf")
    'hill_dwarf'
    """
    return _SEPARATORS.sub("_", text.strip().lower()).strip("_")


# =============================================================================
# Rule Index
# =============================================================================


class RuleIndex(Generic[EntryT]):
    """Read-only table of rule entries with a precomputed alias index.

    Attributes:
        table: Table name used in errors and logs ("races", "feats" ...).
    """

    def __init__(self, table: str, entries: Mapping[str, EntryT]) -> None:
        self.table = table
        self._entries: Mapping[str, EntryT] = MappingProxyType(dict(entries))

        index: dict[str, str] = {}
        for key, entry in self._entries.items():
            for alias in (key, normalize_key(key), normalize_key(entry.name)):
                owner = index.setdefault(alias, key)
                if owner != key:
                    raise RuleDataError(
                        f"Duplicate {table} key {alias!r}",
                        details={"table": table, "entries": [owner, key]},
                    )
        self._index: Mapping[str, str] = MappingProxyType(index)

    def key_for(self, text: str | None) -> str | None:
        """Resolve any accepted spelling to the canonical table key."""
        if not text:
            return None
        return self._index.get(text) or self._index.get(normalize_key(text))

    def get(self, text: str | None) -> EntryT | None:
        key = self.key_for(text)
        return self._entries[key] if key is not None else None

    def require(self, text: str | None) -> EntryT:
        """Look up an entry or raise.

        Raises:
            RuleLookupError: If nothing matches.
        """
        entry = self.get(text)
        if entry is None:
            raise RuleLookupError(
                f"Unknown {self.table} entry: {text!r}",
                table=self.table,
                key=text,
            )
        return entry

    def keys(self) -> list[str]:
        return list(self._entries)

    def values(self) -> list[EntryT]:
        return list(self._entries.values())

    def items(self) -> list[tuple[str, EntryT]]:
        return list(self._entries.items())

    def __contains__(self, text: object) -> bool:
        return isinstance(text, str) and self.key_for(text) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"RuleIndex(table={self.table!r}, entries={len(self)})"


# =============================================================================
# Rule Book
# =============================================================================


@dataclass(frozen=True)
class RuleBook:
    """All rule tables, loaded together."""

    races: RuleIndex[Race]
    classes: RuleIndex[CharacterClassDef]
    backgrounds: RuleIndex[Background]
    feats: RuleIndex[Feat]
    spells: RuleIndex[Spell]
    deities: RuleIndex[Deity]
    equipment: EquipmentTables

    def spells_for(self, class_key: str, level: int) -> list[Spell]:
        """Spells of one level on a class's list, sorted by name."""
        class_name = self.classes.require(class_key).name.lower()
        return sorted(
            (
                spell
                for spell in self.spells.values()
                if spell.level == level and class_name in (c.lower() for c in spell.classes)
            ),
            key=lambda spell: spell.name,
        )


_TABLES: dict[str, type[RuleEntry]] = {
    "races": Race,
    "classes": CharacterClassDef,
    "backgrounds": Background,
    "feats": Feat,
    "spells": Spell,
    "deities": Deity,
}


def _read_json(path: Path) -> object:
    try:
        with path.open(encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise RuleDataError(f"Rule table missing: {path.name}", source_file=str(path)) from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise RuleDataError(
            f"Rule table unreadable: {path.name}: {exc}",
            source_file=str(path),
        ) from exc


def _load_model(model: type[BaseModel], raw: object, path: Path, key: str | None = None) -> BaseModel:
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        raise RuleDataError(
            f"Invalid entry in {path.name}",
            source_file=str(path),
            details={"key": key, "errors": exc.error_count()},
        ) from exc


def _load_table(data_dir: Path, table: str, model: type[EntryT]) -> RuleIndex[EntryT]:
    path = data_dir / f"{table}.json"
    raw = _read_json(path)
    if not isinstance(raw, dict):
        raise RuleDataError(f"{path.name} must map keys to entries", source_file=str(path))

    entries = {key: _load_model(model, value, path, key) for key, value in raw.items()}
    return RuleIndex(table, entries)  # type: ignore[arg-type]


def load_rulebook(data_dir: Path) -> RuleBook:
    """Read and validate every rule table in a directory.

    Args:
        data_dir: Directory holding races.json, classes.json, etc.

    Returns:
        The loaded RuleBook.

    Raises:
        RuleDataError: If a file is missing, malformed or has colliding keys.
    """
    tables = {table: _load_table(data_dir, table, model) for table, model in _TABLES.items()}

    equipment_path = data_dir / "equipment.json"
    equipment = _load_model(EquipmentTables, _read_json(equipment_path), equipment_path)

    book = RuleBook(equipment=equipment, **tables)  # type: ignore[arg-type]
    logger.info(
        "Rule tables loaded",
        data_dir=str(data_dir),
        **{table: len(index) for table, index in tables.items()},
        packs=len(book.equipment.packs),
    )
    return book


@lru_cache(maxsize=1)
def get_rulebook() -> RuleBook:
    """Load the configured rule tables once per process."""
    return load_rulebook(get_settings().rules.data_dir)


def clear_rulebook_cache() -> None:
    """Forget the cached RuleBook, forcing a reload on next access."""
    get_rulebook.cache_clear()


__all__ = [
    "normalize_key",
    "RuleIndex",
    "RuleBook",
    "load_rulebook",
    "get_rulebook",
    "clear_rulebook_cache",
]
