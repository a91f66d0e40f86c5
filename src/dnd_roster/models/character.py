"""Pydantic V2 schemas for character records.

A Character mirrors one row of the backend ``characters`` table. Fields the
backend keeps as JSON strings (ability scores, class levels, inventory,
skill lists ...) are decoded into real Python values on the way in and
re-encoded by ``to_payload`` on the way out, with the backend's field
names preserved exactly.

Example:
    >>> record = {"name": "Mira", "class": "wizard", "level": 1,
    ...           "ability_scores": '{"str":8,"dex":14,"con":13,"int":15,"wis":12,"cha":10}'}
    >>> character = Character.from_record(record)
    >>> character.ability_scores.modifier(Ability.INT)
    2
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from dnd_roster.core.constants import (
    DEFAULT_ABILITY_SCORE,
    MAX_ABILITY_SCORE,
    MAX_CHARACTER_LEVEL,
    MIN_ABILITY_SCORE,
)
from dnd_roster.models.enums import Ability
from dnd_roster.models.fields import dump_json, parse_json_list, parse_json_object


def ability_modifier(score: int) -> int:
    """Calculate an ability modifier: floor((score - 10) / 2)."""
    return (score - 10) // 2


def proficiency_bonus_for(level: int) -> int:
    """Proficiency bonus for a total character level: ceil(level / 4) + 1."""
    return math.ceil(max(1, level) / 4) + 1


# =============================================================================
# Ability Scores
# =============================================================================


_FIELD_BY_ABILITY = {
    Ability.STR: "strength",
    Ability.DEX: "dexterity",
    Ability.CON: "constitution",
    Ability.INT: "intelligence",
    Ability.WIS: "wisdom",
    Ability.CHA: "charisma",
}


def _coerce_score(value: Any) -> int:
    """Turn a stored score into an int, falling back to 10."""
    if isinstance(value, bool):
        return DEFAULT_ABILITY_SCORE
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return DEFAULT_ABILITY_SCORE
    if isinstance(value, (int, float)) and math.isfinite(value):
        return max(MIN_ABILITY_SCORE, int(value))
    return DEFAULT_ABILITY_SCORE


class AbilityScores(BaseModel):
    """The six ability scores, serialized with the backend's short keys.

    Attributes:
        strength: Strength score (alias ``str``).
        dexterity: Dexterity score (alias ``dex``).
        constitution: Constitution score (alias ``con``).
        intelligence: Intelligence score (alias ``int``).
        wisdom: Wisdom score (alias ``wis``).
        charisma: Charisma score (alias ``cha``).
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )

    strength: int = Field(default=DEFAULT_ABILITY_SCORE, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE, alias="str")
    dexterity: int = Field(default=DEFAULT_ABILITY_SCORE, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE, alias="dex")
    constitution: int = Field(default=DEFAULT_ABILITY_SCORE, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE, alias="con")
    intelligence: int = Field(default=DEFAULT_ABILITY_SCORE, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE, alias="int")
    wisdom: int = Field(default=DEFAULT_ABILITY_SCORE, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE, alias="wis")
    charisma: int = Field(default=DEFAULT_ABILITY_SCORE, ge=MIN_ABILITY_SCORE, le=MAX_ABILITY_SCORE, alias="cha")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> AbilityScores:
        """Build scores from a short-key mapping; unusable entries become 10."""
        values = values or {}
        scores: dict[str, int] = {}
        for ability, field in _FIELD_BY_ABILITY.items():
            raw = values.get(ability.value, values.get(field))
            scores[field] = min(MAX_ABILITY_SCORE, _coerce_score(raw))
        return cls(**scores)

    @classmethod
    def from_json(cls, value: Any) -> AbilityScores:
        """Decode the ``ability_scores`` JSON string leniently."""
        if isinstance(value, AbilityScores):
            return value
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        return cls.from_mapping(parse_json_object(value, field="ability_scores"))

    def get(self, ability: Ability) -> int:
        """Return the score for an ability."""
        return getattr(self, _FIELD_BY_ABILITY[Ability(ability)])

    def modifier(self, ability: Ability) -> int:
        """Return the modifier for an ability."""
        return ability_modifier(self.get(ability))

    def modifiers(self) -> dict[str, int]:
        """Return all six modifiers keyed by short name."""
        return {ability.value: self.modifier(ability) for ability in Ability}

    def with_scores(self, updates: Mapping[str, int]) -> AbilityScores:
        """Return a copy with some scores replaced."""
        merged = self.to_dict()
        merged.update({Ability(k).value: v for k, v in updates.items()})
        return AbilityScores(**merged)

    def to_dict(self) -> dict[str, int]:
        """Return scores keyed by the short names, in canonical order."""
        return {ability.value: self.get(ability) for ability in Ability}

    def to_json(self) -> str:
        """Encode as the backend's compact JSON string."""
        return dump_json(self.to_dict())


# =============================================================================
# Class Levels and Items
# =============================================================================


class ClassLevel(BaseModel):
    """One class a character has levels in.

    Serialized as ``{"class": ..., "level": ..., "subclass": ...}``.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )

    class_name: str = Field(min_length=1, alias="class")
    level: int = Field(ge=1, le=MAX_CHARACTER_LEVEL)
    subclass: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"class": self.class_name, "level": self.level, "subclass": self.subclass}


class InventoryItem(BaseModel):
    """A stack of identical items in an inventory."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)

    @classmethod
    def coerce(cls, value: Any) -> InventoryItem | None:
        """Accept a bare name or a ``{name, quantity}`` mapping."""
        if isinstance(value, InventoryItem):
            return value
        if isinstance(value, str) and value.strip():
            return cls(name=value)
        if isinstance(value, Mapping) and value.get("name"):
            quantity = value.get("quantity") or 1
            try:
                quantity = max(1, int(quantity))
            except (TypeError, ValueError):
                quantity = 1
            return cls(name=str(value["name"]), quantity=quantity)
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "quantity": self.quantity}


def parse_inventory(value: Any) -> list[InventoryItem]:
    """Decode an ``inventory`` field, skipping unusable entries."""
    raw = value if isinstance(value, list) else parse_json_list(value, field="inventory")
    items = (InventoryItem.coerce(entry) for entry in raw)
    return [item for item in items if item is not None]


# =============================================================================
# Character
# =============================================================================


_JSON_LIST_FIELDS = (
    "skills",
    "known_cantrips",
    "known_spells",
    "feats",
    "languages",
    "tool_proficiencies",
    "advantages",
    "equipment",
)


class Character(BaseModel):
    """A player character record.

    Attributes:
        ability_scores: Final scores, racial and feat bonuses included.
        class_levels: Per-class levels; the character level is their sum.
        hit_dice: Hit dice by die size, e.g. ``{"d10": 5}``.
        inventory: Flat list of ``{name, quantity}`` stacks.
        equipment: Plain item names, as compiled at creation.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
    )

    id: int | None = None

    # Identity
    name: str = ""
    first_name: str = ""
    last_name: str = ""
    nickname: str | None = None
    gender: str | None = None
    race: str = "human"
    subrace: str | None = None
    class_name: str = Field(default="fighter", alias="class")
    subclass: str | None = None
    background: str | None = None
    alignment: str | None = None
    faith: str | None = None
    lifestyle: str | None = None
    avatar: str | None = None

    # Appearance and personality
    hair_color: str | None = None
    skin_color: str | None = None
    eye_color: str | None = None
    height: str | None = None
    weight: str | None = None
    age: str | int | None = None
    personality_traits: str | None = None
    ideals: str | None = None
    bonds: str | None = None
    flaws: str | None = None
    organizations: str | None = None
    allies: str | None = None
    enemies: str | None = None
    backstory: str | None = None
    other_notes: str | None = None
    current_location: str | None = None
    current_quest: str | None = None

    # Progression
    level: int = Field(default=1, ge=1, le=MAX_CHARACTER_LEVEL)
    class_levels: list[ClassLevel] = Field(default_factory=list)
    hit_dice: dict[str, int] = Field(default_factory=dict)
    experience: int = Field(default=0, ge=0)
    experience_to_next_level: int | None = 300

    # Vitals
    current_hp: int = 1
    max_hp: int = Field(default=1, ge=1)
    armor_class: int = 10
    speed: int = 30

    # Currency
    gold_cp: int = 0
    gold_sp: int = 0
    gold_gp: int = 0

    ability_scores: AbilityScores = Field(default_factory=AbilityScores)
    skills: list[str] = Field(default_factory=list)
    known_cantrips: list[str] = Field(default_factory=list)
    known_spells: list[str] = Field(default_factory=list)
    feats: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    tool_proficiencies: list[str] = Field(default_factory=list)
    advantages: list[Any] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    inventory: list[InventoryItem] = Field(default_factory=list)
    spell_slots_used: dict[str, int] = Field(default_factory=dict)

    @field_validator("ability_scores", mode="before")
    @classmethod
    def decode_ability_scores(cls, value: Any) -> AbilityScores:
        return AbilityScores.from_json(value)

    @field_validator(*_JSON_LIST_FIELDS, mode="before")
    @classmethod
    def decode_json_list(cls, value: Any) -> list[Any]:
        if isinstance(value, list):
            return value
        return parse_json_list(value)

    @field_validator("equipment", "skills", mode="after")
    @classmethod
    def keep_names_only(cls, value: list[Any]) -> list[str]:
        return [str(v) for v in value if isinstance(v, (str, int))]

    @field_validator("inventory", mode="before")
    @classmethod
    def decode_inventory(cls, value: Any) -> list[InventoryItem]:
        return parse_inventory(value)

    @field_validator("class_levels", mode="before")
    @classmethod
    def decode_class_levels(cls, value: Any) -> list[Any]:
        raw = value if isinstance(value, list) else parse_json_list(value, field="class_levels")
        return [entry for entry in raw if isinstance(entry, (Mapping, ClassLevel))]

    @field_validator("hit_dice", "spell_slots_used", mode="before")
    @classmethod
    def decode_json_object(cls, value: Any) -> dict[str, Any]:
        decoded = value if isinstance(value, Mapping) else parse_json_object(value)
        return {str(k): v for k, v in decoded.items() if isinstance(v, int)}

    @model_validator(mode="after")
    def fill_legacy_class_levels(self) -> Character:
        """Records without class_levels get one entry from class/level/subclass."""
        if not self.class_levels:
            legacy = ClassLevel(class_name=self.class_name, level=self.level, subclass=self.subclass)
            object.__setattr__(self, "class_levels", [legacy])
        return self

    # -------------------------------------------------------------------------
    # Construction and serialization
    # -------------------------------------------------------------------------

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Character:
        """Parse a backend record; null columns fall back to defaults."""
        return cls.model_validate({k: v for k, v in record.items() if v is not None})

    def to_payload(self) -> dict[str, Any]:
        """Flatten into the backend's create/update body.

        JSON-typed columns are encoded as compact JSON strings.
        """
        payload = self.model_dump(
            by_alias=True,
            exclude={
                "id",
                "ability_scores",
                "class_levels",
                "hit_dice",
                "inventory",
                "spell_slots_used",
                *_JSON_LIST_FIELDS,
            },
        )
        payload["ability_scores"] = self.ability_scores.to_json()
        payload["class_levels"] = dump_json([c.to_dict() for c in self.class_levels])
        payload["hit_dice"] = dump_json(self.hit_dice)
        payload["inventory"] = dump_json([item.to_dict() for item in self.inventory])
        payload["spell_slots_used"] = dump_json(self.spell_slots_used)
        for field in _JSON_LIST_FIELDS:
            payload[field] = dump_json(getattr(self, field))
        return payload

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_level(self) -> int:
        """Sum of all class levels."""
        return sum(c.level for c in self.class_levels)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def proficiency_bonus(self) -> int:
        """Proficiency bonus for the total level."""
        return proficiency_bonus_for(self.total_level)

    @property
    def primary_class(self) -> ClassLevel:
        """Highest-level class; the first listed wins ties."""
        return max(self.class_levels, key=lambda c: c.level)

    @property
    def class_display(self) -> str:
        """Class summary such as 'Fighter 5 / Rogue 2'."""
        return " / ".join(f"{c.class_name.title()} {c.level}" for c in self.class_levels)

    def modifier(self, ability: Ability) -> int:
        return self.ability_scores.modifier(ability)

    def find_class(self, class_key: str) -> ClassLevel | None:
        """Find an owned class by case-insensitive name."""
        wanted = class_key.strip().lower()
        for entry in self.class_levels:
            if entry.class_name.strip().lower() == wanted:
                return entry
        return None


__all__ = [
    "ability_modifier",
    "proficiency_bonus_for",
    "AbilityScores",
    "ClassLevel",
    "InventoryItem",
    "parse_inventory",
    "Character",
]
