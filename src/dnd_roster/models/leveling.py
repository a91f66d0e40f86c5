"""Pydantic V2 schemas for level-up requests and results.

Field names are snake_case in Python and camelCase on the wire, matching
what the backend's level-up endpoints send and accept.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from dnd_roster.models.character import Character, ClassLevel
from dnd_roster.models.companion import Companion
from dnd_roster.models.enums import Ability, AsiChoiceType, HpMethod, LevelUpOptionType, RestType


class CamelModel(BaseModel):
    """Base for wire models: camelCase aliases, populate by either name."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Choices
# =============================================================================


class AsiChoice(CamelModel):
    """Ability Score Improvement spent on scores or on a feat.

    Attributes:
        increases: Points per ability; two points in total.
        feat: Feat key or name when ``type`` is feat.
        feat_ability: Ability picked for a feat with a choice of bonus.
    """

    type: AsiChoiceType = AsiChoiceType.ASI
    increases: dict[Ability, int] = Field(default_factory=dict)
    feat: str | None = None
    feat_ability: Ability | None = None

    @property
    def points_spent(self) -> int:
        return sum(self.increases.values())

    def to_payload(self) -> dict[str, Any]:
        if self.type == AsiChoiceType.FEAT:
            return {"type": self.type.value, "feat": self.feat}
        return {
            "type": self.type.value,
            "increases": {ability.value: amount for ability, amount in self.increases.items() if amount},
        }


class LevelUpChoices(CamelModel):
    """Everything the player picks for one level-up."""

    selected_class: str | None = None
    hp_method: HpMethod = Field(default=HpMethod.AVERAGE, alias="hpRoll")
    roll_value: int | None = None
    subclass: str | None = None
    asi_choice: AsiChoice | None = None
    cantrips: list[str] = Field(default_factory=list)
    spells: list[str] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """Body for ``POST /api/character/level-up/:id``."""
        payload = super().to_payload()
        payload["asiChoice"] = self.asi_choice.to_payload() if self.asi_choice else None
        return {key: value for key, value in payload.items() if value is not None}


# =============================================================================
# Level-Up Info
# =============================================================================


class HpGain(CamelModel):
    hit_die: int
    con_mod: int
    average: int
    minimum: int
    maximum: int


class ClassChoices(CamelModel):
    needs_subclass: bool = False
    needs_asi: bool = Field(default=False, alias="needsASI")
    new_cantrips: int = 0
    new_spells_known: int = 0


class ClassOption(CamelModel):
    """One class the character could take the next level in."""

    type: LevelUpOptionType
    class_name: str = Field(alias="class")
    class_key: str = ""
    current_level: int
    new_level: int
    subclass: str | None = None
    new_features: list[str] = Field(default_factory=list)
    choices: ClassChoices = Field(default_factory=ClassChoices)
    hp_gain: HpGain
    subclass_level: int | None = None
    resources: dict[str, Any] = Field(default_factory=dict)
    requirements: dict[str, Any] | None = None
    meets_requirements: bool | None = None

    @model_validator(mode="after")
    def fill_class_key(self) -> ClassOption:
        if not self.class_key:
            object.__setattr__(self, "class_key", self.class_name.strip().lower().replace(" ", "_"))
        return self


class ProficiencyChange(CamelModel):
    current: int
    new: int
    increased: bool = False

    @model_validator(mode="before")
    @classmethod
    def derive_increased(cls, data: Any) -> Any:
        if isinstance(data, dict) and "increased" not in data and "current" in data and "new" in data:
            return {**data, "increased": data["new"] > data["current"]}
        return data


class LevelUpInfo(CamelModel):
    """What ``GET /api/character/level-up-info/:id`` describes."""

    current_level: int
    new_level: int
    class_levels: list[ClassLevel]
    class_options: list[ClassOption]
    can_multiclass: bool
    multiclass_spell_slots: dict[str, Any] = Field(default_factory=dict)
    proficiency_bonus: ProficiencyChange

    @field_validator("multiclass_spell_slots", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return value or {}

    def option_for(self, class_key: str) -> ClassOption | None:
        wanted = class_key.strip().lower()
        for option in self.class_options:
            if wanted in (option.class_key, option.class_name.lower()):
                return option
        return None


# =============================================================================
# Results
# =============================================================================


class LevelUpSummary(CamelModel):
    previous_level: int
    new_level: int
    leveled_class: str
    new_class_level: int
    is_multiclass: bool
    class_levels: list[ClassLevel]
    class_display: str
    hp_gained: int
    new_max_hp: int
    hit_dice: dict[str, int]
    new_features: list[str]
    proficiency_bonus: int
    ability_score_changes: dict[str, int] | None = None
    new_feat: str | None = None
    new_subclass: str | None = None


class LevelUpResult(BaseModel):
    """Updated character plus the summary shown after leveling."""

    model_config = ConfigDict(frozen=True)

    character: Character
    summary: LevelUpSummary

    @property
    def message(self) -> str:
        return f"Congratulations! {self.character.name} is now {self.summary.class_display}!"


class CompanionLevelUpInfo(CamelModel):
    """What ``GET /api/companion/:id/level-up-info`` describes."""

    companion_name: str
    current_level: int
    new_level: int
    class_name: str
    subclass: str | None = None
    new_features: list[str] = Field(default_factory=list)
    choices: ClassChoices = Field(default_factory=ClassChoices)
    hp_gain: HpGain
    proficiency_bonus: ProficiencyChange
    subclass_level: int | None = None


class CompanionLevelUpResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    companion: Companion
    previous_level: int
    new_level: int
    hp_gained: int
    new_subclass: str | None = None
    ability_score_changes: dict[str, int] | None = None


class RestResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    character: Character
    rest_type: RestType
    hp_restored: int
    new_hp: int
    spell_slots_restored: bool

    @property
    def message(self) -> str:
        if self.rest_type == RestType.LONG:
            return f"Long rest complete. Restored {self.hp_restored} HP and all spell slots."
        suffix = " Spell slots restored." if self.spell_slots_restored else ""
        return f"Short rest complete. Restored {self.hp_restored} HP.{suffix}"


__all__ = [
    "CamelModel",
    "AsiChoice",
    "LevelUpChoices",
    "HpGain",
    "ClassChoices",
    "ClassOption",
    "ProficiencyChange",
    "LevelUpInfo",
    "LevelUpSummary",
    "LevelUpResult",
    "CompanionLevelUpInfo",
    "CompanionLevelUpResult",
    "RestResult",
]
