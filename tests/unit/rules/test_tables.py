"""Tests for loading and indexing the bundled rule tables."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

from dnd_roster.core.config import BUNDLED_DATA_DIR
from dnd_roster.core.exceptions import RuleDataError, RuleLookupError
from dnd_roster.models.enums import Ability
from dnd_roster.models.rules import Race
from dnd_roster.rules.tables import RuleBook, RuleIndex, get_rulebook, load_rulebook, normalize_key


@pytest.fixture
def data_copy(tmp_path: Path) -> Path:
    """A writable copy of the bundled tables."""
    target = tmp_path / "data"
    shutil.copytree(BUNDLED_DATA_DIR, target)
    return target


class TestNormalizeKey:
    """Tests for lookup key normalization."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Half-Elf", "half_elf"),
            ("  Hill  Dwarf ", "hill_dwarf"),
            ("animal_handling", "animal_handling"),
            ("Animal Handling", "animal_handling"),
            ("-Fighter-", "fighter"),
        ],
    )
    def test_normalize(self, text: str, expected: str) -> None:
        assert normalize_key(text) == expected


class TestRuleIndex:
    """Tests for RuleIndex lookups."""

    def test_lookup_by_key_and_name(self, rulebook: RuleBook) -> None:
        """Test that keys, display names and spacing variants all resolve."""
        races = rulebook.races

        assert races.get("half_elf").name == "Half-Elf"
        assert races.get("Half-Elf").name == "Half-Elf"
        assert races.get("half elf").name == "Half-Elf"
        assert races.key_for("HALF-ELF") == "half_elf"

    def test_missing_entry(self, rulebook: RuleBook) -> None:
        assert rulebook.races.get("warforged") is None
        assert rulebook.races.get(None) is None
        assert "warforged" not in rulebook.races
        assert "dwarf" in rulebook.races

    def test_require_raises(self, rulebook: RuleBook) -> None:
        with pytest.raises(RuleLookupError) as exc_info:
            rulebook.classes.require("gunslinger")

        assert exc_info.value.details == {"table": "classes", "key": "gunslinger"}

    def test_collision_rejected(self) -> None:
        """Test that two entries normalizing to the same key are rejected."""
        entries = {"half_elf": Race(name="Half-Elf"), "halfelf": Race(name="Half Elf")}

        with pytest.raises(RuleDataError, match="Duplicate"):
            RuleIndex("races", entries)

    def test_read_only(self, rulebook: RuleBook) -> None:
        assert len(rulebook.classes) == 13
        assert "fighter" in list(rulebook.classes)
        assert ("wizard", rulebook.classes.get("wizard")) in rulebook.classes.items()


class TestBundledTables:
    """Tests for the shipped rule data."""

    def test_race_bonuses(self, rulebook: RuleBook) -> None:
        dwarf = rulebook.races.require("dwarf")

        assert dwarf.ability_score_increase == {Ability.CON: 2}
        assert dwarf.speed == 25
        assert dwarf.find_subrace("mountain dwarf").ability_score_increase == {Ability.STR: 2}
        assert dwarf.find_subrace("Deep Dwarf") is None

    def test_half_elf_choices(self, rulebook: RuleBook) -> None:
        choices = rulebook.races.require("half_elf").ability_choices

        assert choices.count == 2
        assert choices.amount == 1
        assert choices.exclude_fixed is True

    def test_class_definition(self, rulebook: RuleBook) -> None:
        fighter = rulebook.classes.require("Fighter")

        assert fighter.hit_die == 10
        assert fighter.skill_choices == 2
        assert fighter.subclass_title == "Martial Archetype"
        assert fighter.features_at(1) == ["Fighting Style", "Second Wind"]
        assert fighter.is_spellcaster is False
        assert rulebook.classes.require("wizard").is_spellcaster is True

    def test_starting_gold(self, rulebook: RuleBook) -> None:
        gold = rulebook.classes.require("fighter").starting_gold

        assert gold.dice_count == 5
        assert gold.die_size == 4
        assert gold.multiplier == 10
        assert gold.computed_average == 120

    def test_spells_for(self, rulebook: RuleBook) -> None:
        """Test that class spell lists are filtered by level and sorted."""
        cantrips = rulebook.spells_for("warlock", 0)
        names = [spell.name for spell in cantrips]

        assert "Eldritch Blast" in names
        assert "Fire Bolt" not in names
        assert names == sorted(names)
        assert all(spell.is_cantrip for spell in cantrips)

    def test_packs(self, rulebook: RuleBook) -> None:
        pack = rulebook.equipment.pack("Explorer's Pack")

        assert pack is not None
        assert "Bedroll" in pack.contents
        assert rulebook.equipment.pack("Bag of Holding") is None


class TestLoadRulebook:
    """Tests for reading tables from disk."""

    def test_cached(self) -> None:
        assert get_rulebook() is get_rulebook()

    def test_missing_file(self, data_copy: Path) -> None:
        (data_copy / "feats.json").unlink()

        with pytest.raises(RuleDataError, match="missing"):
            load_rulebook(data_copy)

    def test_malformed_json(self, data_copy: Path) -> None:
        (data_copy / "races.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(RuleDataError, match="unreadable"):
            load_rulebook(data_copy)

    def test_invalid_entry(self, data_copy: Path) -> None:
        """Test that a schema violation names the offending key."""
        races = json.loads((data_copy / "races.json").read_text(encoding="utf-8"))
        races["dwarf"]["speed"] = "fast"
        (data_copy / "races.json").write_text(json.dumps(races), encoding="utf-8")

        with pytest.raises(RuleDataError) as exc_info:
            load_rulebook(data_copy)

        assert exc_info.value.details["key"] == "dwarf"

    def test_table_must_be_object(self, data_copy: Path) -> None:
        (data_copy / "deities.json").write_text("[]", encoding="utf-8")

        with pytest.raises(RuleDataError, match="must map keys"):
            load_rulebook(data_copy)

    def test_nested_packs_rejected(self, data_copy: Path) -> None:
        equipment = json.loads((data_copy / "equipment.json").read_text(encoding="utf-8"))
        equipment["packs"]["Explorer's Pack"]["contents"].append("Scholar's Pack")
        (data_copy / "equipment.json").write_text(json.dumps(equipment), encoding="utf-8")

        with pytest.raises(RuleDataError):
            load_rulebook(data_copy)
