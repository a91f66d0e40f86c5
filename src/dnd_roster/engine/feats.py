"""Feat prerequisite evaluation.

Feats carry a structured ``prerequisites`` block where the data has one;
older entries only have prose such as "Strength 13 or higher". Prose is
parsed into the same structure before evaluation, so both paths share
one checker.

A failed ability check makes a feat UNAVAILABLE (the player can still
move scores around); a failed class, proficiency or spellcasting check
makes it RESTRICTED. RESTRICTED wins when both fail.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from dnd_roster.core.exceptions import AbilityScoreError, FeatPrerequisiteError
from dnd_roster.core.logging import get_logger
from dnd_roster.models.character import AbilityScores, Character
from dnd_roster.models.enums import Ability, ArmorCategory, FeatStatus
from dnd_roster.models.rules import (
    AbilityRequirement,
    CharacterClassDef,
    Feat,
    FeatPrerequisites,
)
from dnd_roster.rules.progression import SPELLCASTING_SUBCLASSES
from dnd_roster.rules.tables import RuleBook, normalize_key


logger = get_logger(__name__)

_ABILITY_WORDS = "strength|dexterity|constitution|intelligence|wisdom|charisma"

_ABILITY_CLAUSE = re.compile(
    rf"\b((?:{_ABILITY_WORDS})(?:\s*(?:,|\bor\b)\s*(?:{_ABILITY_WORDS}))*)\s+(\d+)\s+or\s+higher",
    re.IGNORECASE,
)
_ABILITY_WORD = re.compile(rf"\b({_ABILITY_WORDS})\b", re.IGNORECASE)
_ARMOR_CLAUSE = re.compile(r"proficiency\s+with\s+(light|medium|heavy)\s+armor", re.IGNORECASE)
_SHIELD_CLAUSE = re.compile(r"proficiency\s+with\s+shields", re.IGNORECASE)
_SPELLCASTING_CLAUSE = re.compile(r"ability\s+to\s+cast\s+at\s+least\s+one\s+spell", re.IGNORECASE)


# =============================================================================
# Parsing
# =============================================================================


@dataclass(frozen=True)
class ParsedPrerequisite:
    """Prose prerequisite turned into structure.

    Attributes:
        prerequisites: The recognized clauses.
        unparsed: True when the text had content but no clause matched.
    """

    prerequisites: FeatPrerequisites
    unparsed: bool = False


def parse_prerequisite(text: str | None) -> ParsedPrerequisite:
    """Parse a free-text prerequisite.

    >>> parse_prerequisite("Intelligence or Wisdom 13 or higher").prerequisites.abilities[1].ability
    <Ability.WIS: 'wis'>
    """
    if not text or not text.strip():
        return ParsedPrerequisite(FeatPrerequisites())

    abilities: list[AbilityRequirement] = []
    for match in _ABILITY_CLAUSE.finditer(text):
        minimum = int(match.group(2))
        for word in _ABILITY_WORD.findall(match.group(1)):
            abilities.append(AbilityRequirement(ability=Ability.from_name(word), minimum=minimum))

    proficiency: ArmorCategory | None = None
    armor = _ARMOR_CLAUSE.search(text)
    if armor:
        proficiency = ArmorCategory(armor.group(1).lower())
    elif _SHIELD_CLAUSE.search(text):
        proficiency = ArmorCategory.SHIELDS

    prerequisites = FeatPrerequisites(
        abilities=abilities,
        proficiency=proficiency,
        spellcasting=bool(_SPELLCASTING_CLAUSE.search(text)),
    )
    if prerequisites.is_empty:
        logger.debug("Unrecognized feat prerequisite treated as met", text=text)
        return ParsedPrerequisite(prerequisites, unparsed=True)
    return ParsedPrerequisite(prerequisites)


def prerequisites_for(feat: Feat) -> ParsedPrerequisite:
    """Structured prerequisites win; otherwise parse the prose."""
    if feat.prerequisites is not None:
        return ParsedPrerequisite(feat.prerequisites)
    return parse_prerequisite(feat.prerequisite)


# =============================================================================
# Evaluation
# =============================================================================


@dataclass(frozen=True)
class FeatEvaluation:
    """Outcome of checking one feat against a character."""

    status: FeatStatus
    reasons: list[str] = field(default_factory=list)
    unparsed: bool = False

    @property
    def is_available(self) -> bool:
        return self.status == FeatStatus.AVAILABLE


def armor_proficiencies(
    classes: Iterable[CharacterClassDef],
    extra: Iterable[ArmorCategory | str] = (),
) -> set[ArmorCategory]:
    """Armor proficiencies granted by classes plus any extras."""
    owned: set[ArmorCategory] = set()
    for class_def in classes:
        owned.update(class_def.armor_proficiencies)
    owned.update(ArmorCategory(str(tag).lower()) for tag in extra)
    return owned


def evaluate_feat(
    feat: Feat,
    scores: AbilityScores | Mapping[str, int],
    classes: Sequence[CharacterClassDef] = (),
    *,
    extra_proficiencies: Iterable[ArmorCategory | str] = (),
    can_cast_spells: bool | None = None,
) -> FeatEvaluation:
    """Classify a feat as available, unavailable or restricted.

    Args:
        feat: The feat to check.
        scores: Final ability scores.
        classes: Class definitions the character has levels in.
        extra_proficiencies: Armor proficiencies from outside class data.
        can_cast_spells: Override for the spellcasting check; by default
            any spellcasting class counts.
    """
    if not isinstance(scores, AbilityScores):
        scores = AbilityScores.from_mapping(scores)
    parsed = prerequisites_for(feat)
    prereq = parsed.prerequisites

    restricted: list[str] = []
    unavailable: list[str] = []

    if prereq.abilities and not any(scores.get(req.ability) >= req.minimum for req in prereq.abilities):
        wanted = " or ".join(f"{req.ability.full_name} {req.minimum}" for req in prereq.abilities)
        unavailable.append(f"Requires {wanted} or higher")

    if prereq.proficiency is not None:
        if prereq.proficiency not in armor_proficiencies(classes, extra_proficiencies):
            restricted.append(f"Requires proficiency with {prereq.proficiency.value} armor")

    if prereq.spellcasting:
        casts = can_cast_spells if can_cast_spells is not None else any(c.is_spellcaster for c in classes)
        if not casts:
            restricted.append("Requires the ability to cast at least one spell")

    if prereq.classes:
        owned = {normalize_key(c.name) for c in classes}
        if not owned.intersection(normalize_key(name) for name in prereq.classes):
            restricted.append(f"Requires class: {', '.join(prereq.classes)}")

    if restricted:
        status = FeatStatus.RESTRICTED
    elif unavailable:
        status = FeatStatus.UNAVAILABLE
    else:
        status = FeatStatus.AVAILABLE
    return FeatEvaluation(status=status, reasons=restricted + unavailable, unparsed=parsed.unparsed)


def _character_classes(character: Character, rulebook: RuleBook) -> list[CharacterClassDef]:
    found = (rulebook.classes.get(entry.class_name) for entry in character.class_levels)
    return [class_def for class_def in found if class_def is not None]


def character_can_cast(character: Character, rulebook: RuleBook) -> bool:
    """Spellcasting class, or a spellcasting subclass of a martial class."""
    for entry in character.class_levels:
        class_def = rulebook.classes.get(entry.class_name)
        if class_def is not None and class_def.is_spellcaster:
            return True
        key = normalize_key(entry.class_name)
        if entry.subclass and entry.subclass.strip().lower() in SPELLCASTING_SUBCLASSES.get(key, frozenset()):
            return True
    return False


def evaluate_feat_for_character(
    feat: Feat,
    character: Character,
    rulebook: RuleBook,
    *,
    scores: AbilityScores | None = None,
) -> FeatEvaluation:
    """Evaluate a feat using the character's classes and scores."""
    return evaluate_feat(
        feat,
        scores or character.ability_scores,
        _character_classes(character, rulebook),
        can_cast_spells=character_can_cast(character, rulebook),
    )


def feat_options(
    character: Character,
    rulebook: RuleBook,
) -> list[tuple[str, Feat, FeatEvaluation]]:
    """Every feat with its evaluation; feats the character has are skipped."""
    taken = {normalize_key(name) for name in character.feats}
    options = []
    for key, feat in rulebook.feats.items():
        if normalize_key(key) in taken or normalize_key(feat.name) in taken:
            continue
        options.append((key, feat, evaluate_feat_for_character(feat, character, rulebook)))
    return options


def require_available(feat: Feat, evaluation: FeatEvaluation) -> None:
    """Raise unless the evaluation says the feat can be taken.

    Raises:
        FeatPrerequisiteError: With the evaluation status and reasons.
    """
    if not evaluation.is_available:
        raise FeatPrerequisiteError(
            f"Cannot take {feat.name}: {'; '.join(evaluation.reasons)}",
            feat=feat.name,
            status=evaluation.status.value,
        )


# =============================================================================
# Ability Bonus
# =============================================================================


def feat_ability_bonus(feat: Feat, choice: Ability | str | None = None) -> dict[Ability, int]:
    """The ability increase a feat grants.

    Raises:
        AbilityScoreError: If the feat offers a choice and ``choice`` is
            missing or not one of its options.
    """
    bonus = feat.ability_bonus
    if bonus is None:
        return {}
    if not bonus.is_choice:
        return {bonus.abilities[0]: bonus.amount}

    if choice is None:
        raise AbilityScoreError(
            f"{feat.name} needs an ability choice",
            details={"options": [a.value for a in bonus.abilities]},
        )
    picked = choice if isinstance(choice, Ability) else Ability.from_name(str(choice))
    if picked not in bonus.abilities:
        raise AbilityScoreError(
            f"{feat.name} cannot increase {picked.full_name}",
            details={"options": [a.value for a in bonus.abilities]},
        )
    return {picked: bonus.amount}


__all__ = [
    "ParsedPrerequisite",
    "parse_prerequisite",
    "prerequisites_for",
    "FeatEvaluation",
    "armor_proficiencies",
    "evaluate_feat",
    "character_can_cast",
    "evaluate_feat_for_character",
    "feat_options",
    "require_available",
    "feat_ability_bonus",
]
