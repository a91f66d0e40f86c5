"""Starting equipment and gold resolution.

A new character either takes the class starting kit or buys gear with
class starting gold. Background equipment is added either way. Packs
such as "Explorer's Pack" are expanded into their contents, and gold
pouches are dropped from the item list and counted as gold instead.

Example:
    >>> book = get_rulebook()
    >>> items = compile_starting_equipment(
    ...     book.classes.require("fighter"), book.backgrounds.require("soldier"),
    ...     EquipmentChoice.EQUIPMENT, {}, {}, book.equipment,
    ... )
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence

from dnd_roster.core.exceptions import EquipmentError
from dnd_roster.core.logging import get_logger
from dnd_roster.engine.dice import DiceRoller
from dnd_roster.models.character import InventoryItem
from dnd_roster.models.enums import EquipmentChoice, GoldMethod
from dnd_roster.models.rules import (
    Background,
    CharacterClassDef,
    EquipmentChoiceGroup,
    EquipmentTables,
    StartingGold,
)


logger = get_logger(__name__)

_GOLD_PATTERN = re.compile(r"(\d+)\s*gp")

GOLD_POUCH_MARKER = "pouch containing"

SUB_SELECTION_PHRASES = (
    "any simple weapon",
    "any simple melee weapon",
    "any martial weapon",
    "any martial melee weapon",
    "any other musical instrument",
    "martial weapon and shield",
    "two martial weapons",
    "two simple melee weapons",
)

Selections = Mapping[int, str | None]
"""Choice-group index to the picked option (or sub-option)."""


# =============================================================================
# Generic Options
# =============================================================================


def needs_sub_selection(option: str) -> bool:
    """True for generic options like "Any martial weapon" that need a pick."""
    lowered = option.lower()
    return any(phrase in lowered for phrase in SUB_SELECTION_PHRASES)


def sub_options_for(option: str, tables: EquipmentTables) -> list[str]:
    """Concrete items a generic option stands for; [] for concrete options."""
    lowered = option.lower()
    simple = tables.simple_weapons
    martial = tables.martial_weapons

    if "any simple melee weapon" in lowered or lowered == "any simple weapon":
        return simple.melee_names
    if "any simple weapon" in lowered:
        return simple.all_names
    if "any martial melee weapon" in lowered:
        return martial.melee_names
    if (
        "any martial weapon" in lowered
        or "martial weapon and shield" in lowered
        or "two martial weapons" in lowered
    ):
        return martial.all_names
    if "two simple melee weapons" in lowered:
        return simple.melee_names
    if "any other musical instrument" in lowered:
        return list(tables.musical_instruments)
    return []


_WEAPON_WORDS = (
    "weapon", "sword", "axe", "mace", "crossbow", "bow", "dagger", "hammer",
    "javelin", "spear", "staff", "rapier", "scimitar", "shortsword", "longsword",
)
_ARMOR_WORDS = ("armor", "mail", "leather", "scale", "shield")
_FOCUS_WORDS = ("focus", "component", "pouch", "symbol")
_INSTRUMENT_WORDS = ("instrument", "lute", "flute", "drum", "lyre", "horn")


def choice_label(group: EquipmentChoiceGroup, index: int) -> str:
    """Heading for a choice group, guessed from its options."""
    options = [option.lower() for option in group.options]

    def mentions(words: Iterable[str]) -> bool:
        return any(word in option for option in options for word in words)

    has_weapon = mentions(_WEAPON_WORDS)
    if mentions(("pack",)):
        return "Adventure Pack"
    if mentions(_ARMOR_WORDS) and not has_weapon:
        return "Armor"
    if mentions(_FOCUS_WORDS):
        return "Spellcasting Focus"
    if mentions(_INSTRUMENT_WORDS):
        return "Musical Instrument"
    if has_weapon:
        if mentions(("martial",)):
            return "Primary Weapon"
        if mentions(("ranged", "crossbow", "bow")):
            return "Ranged Weapon"
        return "Primary Weapon" if index == 0 else "Secondary Weapon"
    return f"Option {index + 1}"


# =============================================================================
# Item Lists
# =============================================================================


def _items_for_choice(choice: str, sub_selection: str | None) -> list[str]:
    if not sub_selection:
        return [choice]
    lowered = choice.lower()
    if "and shield" in lowered:
        return [sub_selection, "Shield"]
    if "two martial" in lowered or "two simple" in lowered:
        return [sub_selection, sub_selection]
    return [sub_selection]


def resolve_class_kit(
    class_def: CharacterClassDef,
    selections: Selections,
    sub_selections: Selections | None = None,
) -> list[str]:
    """Raw class kit: given items plus each selected option.

    Groups without a selection are skipped. When nothing at all was
    selected and the class has no given items, the first option of every
    group is used so the kit is never empty.
    """
    kit = class_def.starting_equipment
    sub_selections = sub_selections or {}
    items = list(kit.given)

    picked = {index: choice for index, choice in selections.items() if choice}
    if not picked and not kit.given:
        logger.debug("No kit selections, using first options", class_name=class_def.name)
        return [group.options[0] for group in kit.choices]

    for index in sorted(picked):
        items.extend(_items_for_choice(picked[index], sub_selections.get(index)))
    return items


def background_items(background: Background | None) -> list[str]:
    """Background equipment minus gold pouches."""
    if background is None:
        return []
    return [item for item in background.equipment if GOLD_POUCH_MARKER not in item.lower()]


def background_gold(background: Background | None) -> int:
    """Gold from the first background item that mentions gp."""
    if background is None:
        return 0
    for item in background.equipment:
        if "gp" in item.lower():
            match = _GOLD_PATTERN.search(item)
            return int(match.group(1)) if match else 0
    return 0


def expand_packs(items: Sequence[str], tables: EquipmentTables) -> list[str]:
    """Replace pack names with their contents.

    Lists without pack names come back unchanged, so expanding twice is
    the same as expanding once.
    """
    expanded: list[str] = []
    for item in items:
        pack = tables.pack(item)
        if pack is not None:
            expanded.extend(pack.contents)
        else:
            expanded.append(item)
    return expanded


def compile_starting_equipment(
    class_def: CharacterClassDef,
    background: Background | None,
    choice: EquipmentChoice,
    selections: Selections,
    sub_selections: Selections | None,
    tables: EquipmentTables,
) -> list[str]:
    """Final item names for a new character, packs expanded."""
    raw: list[str] = []
    if choice == EquipmentChoice.EQUIPMENT:
        raw.extend(resolve_class_kit(class_def, selections, sub_selections))
    raw.extend(background_items(background))
    return expand_packs(raw, tables)


def to_inventory(items: Iterable[str]) -> list[InventoryItem]:
    """One inventory stack of quantity 1 per item, order preserved."""
    return [InventoryItem(name=item) for item in items]


# =============================================================================
# Gold
# =============================================================================


def average_gold(starting_gold: StartingGold) -> int:
    """Table average, or floor(N*(M+1)/2) times the multiplier."""
    if starting_gold.average is not None:
        return starting_gold.average
    return starting_gold.computed_average


def resolve_gold(
    class_def: CharacterClassDef,
    method: GoldMethod,
    *,
    manual_amount: int | str | None = None,
    roller: DiceRoller | None = None,
) -> int:
    """Class starting gold for the gold path.

    Raises:
        EquipmentError: If the class has no starting gold, or a manual
            amount is not a non-negative integer.
    """
    if method == GoldMethod.MANUAL:
        try:
            amount = int(str(manual_amount).strip())
        except ValueError as exc:
            raise EquipmentError(
                "Manual gold must be a whole number",
                details={"value": manual_amount},
            ) from exc
        if amount < 0:
            raise EquipmentError("Manual gold cannot be negative", details={"value": amount})
        return amount

    starting_gold = class_def.starting_gold
    if starting_gold is None:
        raise EquipmentError(f"{class_def.name} has no starting gold", details={"class": class_def.name})
    if method == GoldMethod.AVERAGE:
        return average_gold(starting_gold)
    return (roller or DiceRoller()).roll_starting_gold(starting_gold)


def starting_gold(
    choice: EquipmentChoice,
    class_gold: int | None,
    background: Background | None,
    *,
    is_new: bool = True,
) -> int:
    """Total gp a character starts with.

    Class gold only counts on the gold path; background gold always does.
    Edited characters keep their existing purse, so this is 0 for them.
    """
    if not is_new:
        return 0
    total = (class_gold or 0) if choice == EquipmentChoice.GOLD else 0
    return total + background_gold(background)


__all__ = [
    "GOLD_POUCH_MARKER",
    "SUB_SELECTION_PHRASES",
    "Selections",
    "needs_sub_selection",
    "sub_options_for",
    "choice_label",
    "resolve_class_kit",
    "background_items",
    "background_gold",
    "expand_packs",
    "compile_starting_equipment",
    "to_inventory",
    "average_gold",
    "resolve_gold",
    "starting_gold",
]
