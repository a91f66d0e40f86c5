"""Pydantic V2 schemas for the bundled rule tables.

Each table entry is validated once at load time and frozen, so the
engines can share entries freely without copying.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dnd_roster.core.constants import DEFAULT_HIT_DIE, DEFAULT_SPEED
from dnd_roster.models.enums import Ability, ArmorCategory


_DICE_PATTERN = re.compile(r"^\s*(\d+)d(\d+)\s*$", re.IGNORECASE)


class RuleEntry(BaseModel):
    """Common base: a display name plus optional prose."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    name: str = Field(min_length=1)
    description: str = ""


# =============================================================================
# Races
# =============================================================================


class AbilityChoices(BaseModel):
    """A "choose N different abilities, +amount each" racial bonus."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    count: int = Field(ge=1, le=6)
    amount: int = Field(default=1, ge=1)
    exclude_fixed: bool = True


class Subrace(RuleEntry):
    ability_score_increase: dict[Ability, int] = Field(default_factory=dict)
    speed: int | None = None
    traits: list[str] = Field(default_factory=list)


class Race(RuleEntry):
    """A playable race.

    Attributes:
        ability_score_increase: Fixed racial bonuses.
        ability_choices: Free +1 bonuses the player places (Half-Elf).
        subraces: Subraces, whose bonuses stack with the race's.
    """

    ability_score_increase: dict[Ability, int] = Field(default_factory=dict)
    ability_choices: AbilityChoices | None = None
    speed: int = DEFAULT_SPEED
    size: str = "Medium"
    languages: list[str] = Field(default_factory=list)
    traits: list[str] = Field(default_factory=list)
    subraces: list[Subrace] = Field(default_factory=list)

    def find_subrace(self, name: str | None) -> Subrace | None:
        """Find a subrace by display name, ignoring case and separators."""
        if not name:
            return None
        wanted = _fold(name)
        for subrace in self.subraces:
            if _fold(subrace.name) == wanted:
                return subrace
        return None


def _fold(text: str) -> str:
    return re.sub(r"[\s_\-]+", "", text).casefold()


# =============================================================================
# Classes
# =============================================================================


class EquipmentChoiceGroup(BaseModel):
    """Pick ``choose`` entries from ``options`` (serialized as ``from``)."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    choose: int = Field(default=1, ge=1)
    options: list[str] = Field(alias="from", min_length=1)


class StartingEquipment(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    given: list[str] = Field(default_factory=list)
    choices: list[EquipmentChoiceGroup] = Field(default_factory=list)


class StartingGold(BaseModel):
    """Starting wealth rolled as ``dice`` times ``multiplier`` gp."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    dice: str
    multiplier: int = Field(default=1, ge=1)
    average: int | None = None

    @field_validator("dice")
    @classmethod
    def validate_dice(cls, value: str) -> str:
        if not _DICE_PATTERN.match(value):
            raise ValueError(f"Starting gold dice must look like '5d4', got {value!r}")
        return value.strip().lower()

    @property
    def dice_count(self) -> int:
        return int(_DICE_PATTERN.match(self.dice).group(1))  # type: ignore[union-attr]

    @property
    def die_size(self) -> int:
        return int(_DICE_PATTERN.match(self.dice).group(2))  # type: ignore[union-attr]

    @property
    def computed_average(self) -> int:
        """Average gold when the table gives none: floor(N*(M+1)/2) * mult."""
        return (self.dice_count * (self.die_size + 1)) // 2 * self.multiplier


class Subclass(RuleEntry):
    pass


class CharacterClassDef(RuleEntry):
    """A character class and the data the builders need from it.

    Attributes:
        hit_die: Hit die size (6, 8, 10 or 12).
        skill_choices: Number of class skills picked at creation.
        armor_proficiencies: Armor tags (light, medium, heavy, shields).
        subclass_level: Level at which the subclass is chosen; None means
            the progression table decides.
        features_by_level: Class features gained at each class level.
    """

    hit_die: int = Field(default=DEFAULT_HIT_DIE)
    primary_ability: list[Ability] = Field(default_factory=list)
    saving_throws: list[Ability] = Field(default_factory=list)
    skill_choices: int = Field(default=2, ge=0)
    skill_options: list[str] = Field(default_factory=list)
    armor_proficiencies: list[ArmorCategory] = Field(default_factory=list)
    weapon_proficiencies: list[str] = Field(default_factory=list)
    spellcasting_ability: Ability | None = None
    subclass_title: str = "Subclass"
    subclass_level: int | None = Field(default=None, ge=1, le=20)
    subclasses: list[Subclass] = Field(default_factory=list)
    starting_equipment: StartingEquipment = Field(default_factory=StartingEquipment)
    starting_gold: StartingGold | None = None
    features_by_level: dict[int, list[str]] = Field(default_factory=dict)

    @field_validator("hit_die")
    @classmethod
    def validate_hit_die(cls, value: int) -> int:
        if value not in (6, 8, 10, 12):
            raise ValueError(f"Hit die must be 6, 8, 10 or 12, got {value}")
        return value

    def features_at(self, level: int) -> list[str]:
        return list(self.features_by_level.get(level, []))

    @property
    def is_spellcaster(self) -> bool:
        return self.spellcasting_ability is not None


# =============================================================================
# Backgrounds, Feats, Spells, Deities
# =============================================================================


class Background(RuleEntry):
    skill_proficiencies: list[str] = Field(default_factory=list)
    tool_proficiencies: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    feature: str = ""


class AbilityRequirement(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    ability: Ability
    minimum: int = Field(default=13, ge=1, le=30)


class FeatPrerequisites(BaseModel):
    """Machine-readable feat prerequisites.

    ``abilities`` is an any-of list: one satisfied requirement is enough
    ("Intelligence or Wisdom 13 or higher").
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    abilities: list[AbilityRequirement] = Field(default_factory=list)
    proficiency: ArmorCategory | None = None
    spellcasting: bool = False
    classes: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.abilities or self.proficiency or self.spellcasting or self.classes)


class FeatAbilityBonus(BaseModel):
    """A feat's ability increase; more than one ability means a choice."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    abilities: list[Ability] = Field(min_length=1)
    amount: int = Field(default=1, ge=1)

    @property
    def is_choice(self) -> bool:
        return len(self.abilities) > 1


class Feat(RuleEntry):
    prerequisite: str | None = None
    prerequisites: FeatPrerequisites | None = None
    ability_bonus: FeatAbilityBonus | None = None
    benefits: list[str] = Field(default_factory=list)


class Spell(RuleEntry):
    level: int = Field(ge=0, le=9)
    school: str = ""
    classes: list[str] = Field(default_factory=list)
    ritual: bool = False
    concentration: bool = False

    @property
    def is_cantrip(self) -> bool:
        return self.level == 0


class Deity(RuleEntry):
    alignment: str = ""
    domains: list[str] = Field(default_factory=list)
    symbol: str = ""
    pantheon: str = ""


# =============================================================================
# Equipment
# =============================================================================


class Weapon(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    damage: str = ""
    damage_type: str = ""
    properties: list[str] = Field(default_factory=list)


class WeaponGroup(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    melee: list[Weapon] = Field(default_factory=list)
    ranged: list[Weapon] = Field(default_factory=list)

    @property
    def melee_names(self) -> list[str]:
        return [weapon.name for weapon in self.melee]

    @property
    def all_names(self) -> list[str]:
        return [weapon.name for weapon in (*self.melee, *self.ranged)]


class EquipmentPack(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    cost: str = ""
    contents: list[str] = Field(min_length=1)


class EquipmentTables(BaseModel):
    """Packs, weapon lists and instruments used by equipment choices."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    packs: dict[str, EquipmentPack] = Field(default_factory=dict)
    simple_weapons: WeaponGroup = Field(default_factory=WeaponGroup)
    martial_weapons: WeaponGroup = Field(default_factory=WeaponGroup)
    musical_instruments: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_pack_contents(self) -> EquipmentTables:
        for name, pack in self.packs.items():
            if any(item in self.packs for item in pack.contents):
                raise ValueError(f"Pack {name!r} contains another pack")
        return self

    def pack(self, name: str) -> EquipmentPack | None:
        """Exact pack lookup by item name."""
        return self.packs.get(name)


__all__ = [
    "RuleEntry",
    "AbilityChoices",
    "Subrace",
    "Race",
    "EquipmentChoiceGroup",
    "StartingEquipment",
    "StartingGold",
    "Subclass",
    "CharacterClassDef",
    "Background",
    "AbilityRequirement",
    "FeatPrerequisites",
    "FeatAbilityBonus",
    "Feat",
    "Spell",
    "Deity",
    "Weapon",
    "WeaponGroup",
    "EquipmentPack",
    "EquipmentTables",
]
