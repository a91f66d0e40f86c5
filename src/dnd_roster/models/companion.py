"""Pydantic V2 schemas for NPCs and the companions recruited from them.

A companion row joins two records: the ``companions`` row (progression,
HP, gold, inventory) and the ``npcs`` row it was recruited from (name,
race, stat block). Both are parsed leniently like ``Character``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dnd_roster.core.constants import MAX_CHARACTER_LEVEL
from dnd_roster.models.character import AbilityScores, InventoryItem, parse_inventory
from dnd_roster.models.enums import CompanionStatus, ProgressionType
from dnd_roster.models.fields import dump_json, parse_json_list, parse_json_object


class NpcRecord(BaseModel):
    """The NPC fields used when recruiting a companion."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    name: str = Field(min_length=1)
    nickname: str | None = None
    race: str = "human"
    gender: str | None = None
    occupation: str | None = None
    stat_block: str | None = None
    cr: str | None = None
    ac: int = 10
    hp: int = 4
    speed: str | int | None = "30 ft."
    ability_scores: AbilityScores = Field(default_factory=AbilityScores)
    skills: list[Any] = Field(default_factory=list)
    campaign_availability: str | None = None

    @field_validator("ability_scores", mode="before")
    @classmethod
    def decode_ability_scores(cls, value: Any) -> AbilityScores:
        return AbilityScores.from_json(value)

    @field_validator("skills", mode="before")
    @classmethod
    def decode_skills(cls, value: Any) -> list[Any]:
        return value if isinstance(value, list) else parse_json_list(value, field="skills")

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> NpcRecord:
        return cls.model_validate({k: v for k, v in record.items() if v is not None})

    def stats_snapshot(self) -> dict[str, Any]:
        """Stat block captured at recruitment, with JSON fields as strings."""
        return {
            "name": self.name,
            "stat_block": self.stat_block,
            "cr": self.cr,
            "ac": self.ac,
            "hp": self.hp,
            "speed": self.speed,
            "ability_scores": self.ability_scores.to_json(),
            "skills": dump_json(self.skills),
        }


class Companion(BaseModel):
    """A companion joined with its NPC's display fields.

    ``npc_stats`` companions keep ``original_stats_snapshot`` and have no
    class, level or HP of their own; ``class_based`` companions progress
    through ``companion_level`` like a character.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int | None = None
    npc_id: int | None = None
    recruited_by_character_id: int | None = None
    recruited_session_id: int | None = None
    progression_type: ProgressionType = ProgressionType.NPC_STATS
    status: CompanionStatus = CompanionStatus.ACTIVE

    companion_class: str | None = None
    companion_subclass: str | None = None
    companion_level: int | None = Field(default=None, ge=1, le=MAX_CHARACTER_LEVEL)
    companion_max_hp: int | None = None
    companion_current_hp: int | None = None
    companion_experience: int = 0
    companion_ability_scores: AbilityScores | None = None
    original_stats_snapshot: dict[str, Any] = Field(default_factory=dict)

    skill_proficiencies: list[str] = Field(default_factory=list)
    cantrips: list[str] = Field(default_factory=list)
    spells_known: list[str] = Field(default_factory=list)
    inventory: list[InventoryItem] = Field(default_factory=list)
    equipment: Any = None
    gold_gp: int = 0
    gold_sp: int = 0
    gold_cp: int = 0

    alignment: str | None = None
    faith: str | None = None
    lifestyle: str | None = None
    ideals: str | None = None
    bonds: str | None = None
    flaws: str | None = None
    armor_class: int = 10
    speed: int = 30
    subrace: str | None = None
    background: str | None = None
    notes: str | None = None

    # Joined from the NPC row
    name: str = ""
    nickname: str | None = None
    race: str | None = None
    npc_ability_scores: AbilityScores | None = None

    @field_validator("companion_ability_scores", "npc_ability_scores", mode="before")
    @classmethod
    def decode_scores(cls, value: Any) -> AbilityScores | None:
        if value is None or value == "":
            return None
        return AbilityScores.from_json(value)

    @field_validator("original_stats_snapshot", mode="before")
    @classmethod
    def decode_snapshot(cls, value: Any) -> dict[str, Any]:
        if isinstance(value, Mapping):
            return dict(value)
        return parse_json_object(value, field="original_stats_snapshot")

    @field_validator("skill_proficiencies", "cantrips", "spells_known", mode="before")
    @classmethod
    def decode_name_list(cls, value: Any) -> list[str]:
        raw = value if isinstance(value, list) else parse_json_list(value)
        return [str(v) for v in raw if isinstance(v, str)]

    @field_validator("inventory", mode="before")
    @classmethod
    def decode_inventory(cls, value: Any) -> list[InventoryItem]:
        return parse_inventory(value)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Companion:
        """Parse a joined companion row.

        The list endpoints alias the inventory column as
        ``companion_inventory``; either spelling is accepted.
        """
        data = {k: v for k, v in record.items() if v is not None}
        if "companion_inventory" in data:
            data.setdefault("inventory", data.pop("companion_inventory"))
        return cls.model_validate(data)

    @property
    def is_class_based(self) -> bool:
        return self.progression_type == ProgressionType.CLASS_BASED

    @property
    def ability_scores(self) -> AbilityScores:
        """Companion scores, then the NPC's, then all 10s."""
        return self.companion_ability_scores or self.npc_ability_scores or AbilityScores()

    @property
    def display_name(self) -> str:
        return self.nickname or self.name or "Companion"

    def to_payload(self) -> dict[str, Any]:
        """Fields accepted by ``PUT /api/companion/:id``."""
        payload: dict[str, Any] = {
            "companion_class": self.companion_class,
            "companion_level": self.companion_level,
            "companion_subclass": self.companion_subclass,
            "companion_max_hp": self.companion_max_hp,
            "companion_current_hp": self.companion_current_hp,
            "companion_ability_scores": (
                self.companion_ability_scores.to_json() if self.companion_ability_scores else None
            ),
            "progression_type": self.progression_type.value,
            "status": self.status.value,
            "notes": self.notes,
            "skill_proficiencies": dump_json(self.skill_proficiencies),
            "inventory": dump_json([item.to_dict() for item in self.inventory]),
            "gold_gp": self.gold_gp,
            "gold_sp": self.gold_sp,
            "gold_cp": self.gold_cp,
            "equipment": dump_json(self.equipment if self.equipment is not None else {}),
            "alignment": self.alignment,
            "faith": self.faith,
            "lifestyle": self.lifestyle,
            "ideals": self.ideals,
            "bonds": self.bonds,
            "flaws": self.flaws,
            "armor_class": self.armor_class,
            "speed": self.speed,
            "subrace": self.subrace,
            "background": self.background,
        }
        return payload


COMPANION_UPDATE_FIELDS = frozenset(
    {
        "companion_class",
        "companion_level",
        "companion_subclass",
        "companion_max_hp",
        "companion_current_hp",
        "companion_ability_scores",
        "progression_type",
        "status",
        "notes",
        "skill_proficiencies",
        "inventory",
        "gold_gp",
        "gold_sp",
        "gold_cp",
        "equipment",
        "alignment",
        "faith",
        "lifestyle",
        "ideals",
        "bonds",
        "flaws",
        "armor_class",
        "speed",
        "subrace",
        "background",
    }
)
"""Columns the backend lets ``PUT /api/companion/:id`` change."""


# =============================================================================
# Party Members
# =============================================================================


class PartyMemberProfile(BaseModel):
    """Descriptive fields for a companion built from scratch.

    None of these affect mechanics; they are stored on the NPC and
    companion rows as given.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    nickname: str | None = None
    gender: str | None = None
    age: str | int | None = None
    height: str | None = None
    build: str | None = None
    hair_color: str | None = None
    hair_style: str | None = None
    eye_color: str | None = None
    skin_tone: str | None = None
    distinguishing_marks: str | None = None
    personality_trait_1: str | None = None
    personality_trait_2: str | None = None
    voice: str | None = None
    mannerism: str | None = None
    motivation: str | None = None
    alignment: str | None = None
    faith: str | None = None
    lifestyle: str | None = None
    ideals: str | None = None
    bonds: str | None = None
    flaws: str | None = None
    backstory: str | None = None
    relationship_to_party: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class PartyMemberDraft(BaseModel):
    """A fully resolved class-based companion, ready to create.

    Attributes:
        ability_scores: Final scores with racial bonuses, capped at 20.
        starting_equipment: Compiled kit, packs expanded.
        max_hp: HP the backend will compute for this class and level.
    """

    model_config = ConfigDict(frozen=True)

    recruited_by_character_id: int
    npc_id: int | None = None
    name: str = Field(min_length=1)
    race: str = Field(min_length=1)
    subrace: str | None = None
    companion_class: str = Field(min_length=1)
    companion_subclass: str | None = None
    level: int = Field(ge=1, le=MAX_CHARACTER_LEVEL)
    background: str | None = None
    ability_scores: AbilityScores
    skill_proficiencies: list[str] = Field(default_factory=list)
    cantrips: list[str] = Field(default_factory=list)
    spells_known: list[str] = Field(default_factory=list)
    starting_equipment: list[InventoryItem] = Field(default_factory=list)
    starting_gold_gp: int = Field(default=0, ge=0)
    starting_gold_sp: int = Field(default=0, ge=0)
    starting_gold_cp: int = Field(default=0, ge=0)
    armor_class: int = 10
    speed: int = 30
    max_hp: int = Field(default=1, ge=1)
    profile: PartyMemberProfile = Field(default_factory=PartyMemberProfile)

    def to_payload(self) -> dict[str, Any]:
        """Body for ``POST /api/companion/create-party-member``.

        Ability scores go as an object here, not a JSON string; the
        endpoint encodes them itself.
        """
        payload: dict[str, Any] = {
            "recruited_by_character_id": self.recruited_by_character_id,
            "npc_id": self.npc_id,
            "name": self.name,
            "race": self.race,
            "subrace": self.subrace,
            "companion_class": self.companion_class,
            "companion_subclass": self.companion_subclass,
            "level": self.level,
            "background": self.background,
            "ability_scores": self.ability_scores.to_dict(),
            "skill_proficiencies": list(self.skill_proficiencies),
            "cantrips": list(self.cantrips),
            "spells_known": list(self.spells_known),
            "starting_equipment": [item.to_dict() for item in self.starting_equipment],
            "starting_gold_gp": self.starting_gold_gp,
            "starting_gold_sp": self.starting_gold_sp,
            "starting_gold_cp": self.starting_gold_cp,
            "armor_class": self.armor_class,
            "speed": self.speed,
        }
        payload.update(self.profile.model_dump())
        return payload


__all__ = [
    "NpcRecord",
    "Companion",
    "COMPANION_UPDATE_FIELDS",
    "PartyMemberProfile",
    "PartyMemberDraft",
]
