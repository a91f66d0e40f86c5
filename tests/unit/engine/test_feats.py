"""Tests for feat prerequisite parsing and evaluation."""

from __future__ import annotations

import pytest

from dnd_roster.core.exceptions import AbilityScoreError, FeatPrerequisiteError
from dnd_roster.engine import feats
from dnd_roster.models.character import AbilityScores, Character, ClassLevel
from dnd_roster.models.enums import Ability, ArmorCategory, FeatStatus
from dnd_roster.models.rules import AbilityRequirement, Feat, FeatPrerequisites
from dnd_roster.rules.tables import RuleBook


class TestParsePrerequisite:
    """Tests for prose prerequisite parsing."""

    def test_single_ability(self) -> None:
        parsed = feats.parse_prerequisite("Strength 13 or higher")

        assert parsed.unparsed is False
        assert parsed.prerequisites.abilities == [AbilityRequirement(ability=Ability.STR, minimum=13)]

    def test_ability_alternatives(self) -> None:
        parsed = feats.parse_prerequisite("Intelligence or Wisdom 13 or higher")
        found = [(req.ability, req.minimum) for req in parsed.prerequisites.abilities]

        assert found == [(Ability.INT, 13), (Ability.WIS, 13)]

    @pytest.mark.parametrize(
        ("text", "category"),
        [
            ("Proficiency with light armor", ArmorCategory.LIGHT),
            ("Proficiency with Heavy Armor", ArmorCategory.HEAVY),
            ("Proficiency with shields", ArmorCategory.SHIELDS),
        ],
    )
    def test_proficiency(self, text: str, category: ArmorCategory) -> None:
        assert feats.parse_prerequisite(text).prerequisites.proficiency == category

    def test_spellcasting(self) -> None:
        parsed = feats.parse_prerequisite("The ability to cast at least one spell")
        assert parsed.prerequisites.spellcasting is True

    def test_unrecognized_text(self) -> None:
        """Test that prose with no known clause is flagged, not rejected."""
        parsed = feats.parse_prerequisite("Dwarf or a Small race")

        assert parsed.unparsed is True
        assert parsed.prerequisites.is_empty

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty(self, text: str | None) -> None:
        parsed = feats.parse_prerequisite(text)
        assert parsed.unparsed is False
        assert parsed.prerequisites.is_empty

    def test_structured_wins(self, rulebook: RuleBook) -> None:
        parsed = feats.prerequisites_for(rulebook.feats.require("heavily_armored"))
        assert parsed.prerequisites.proficiency == ArmorCategory.MEDIUM


class TestEvaluateFeat:
    """Tests for feat evaluation."""

    def test_available(self, rulebook: RuleBook, sample_ability_scores: dict[str, int]) -> None:
        evaluation = feats.evaluate_feat(rulebook.feats.require("grappler"), sample_ability_scores)

        assert evaluation.status == FeatStatus.AVAILABLE
        assert evaluation.is_available is True
        assert evaluation.reasons == []

    def test_low_ability_is_unavailable(self, rulebook: RuleBook, sample_ability_scores: dict[str, int]) -> None:
        evaluation = feats.evaluate_feat(rulebook.feats.require("ritual_caster"), sample_ability_scores)

        assert evaluation.status == FeatStatus.UNAVAILABLE
        assert evaluation.reasons == ["Requires Intelligence 13 or Wisdom 13 or higher"]

    def test_any_of_abilities(self, rulebook: RuleBook) -> None:
        evaluation = feats.evaluate_feat(rulebook.feats.require("ritual_caster"), AbilityScores(wis=13))
        assert evaluation.status == FeatStatus.AVAILABLE

    def test_missing_proficiency_is_restricted(self, rulebook: RuleBook) -> None:
        wizard = rulebook.classes.require("wizard")
        evaluation = feats.evaluate_feat(rulebook.feats.require("heavily_armored"), AbilityScores(), [wizard])

        assert evaluation.status == FeatStatus.RESTRICTED
        assert "medium armor" in evaluation.reasons[0]

    def test_extra_proficiency(self, rulebook: RuleBook) -> None:
        wizard = rulebook.classes.require("wizard")
        evaluation = feats.evaluate_feat(
            rulebook.feats.require("heavily_armored"),
            AbilityScores(),
            [wizard],
            extra_proficiencies=["medium"],
        )
        assert evaluation.is_available

    def test_restricted_wins(self) -> None:
        """Test that a restriction outranks a low ability score."""
        feat = Feat(
            name="Bulwark",
            prerequisites=FeatPrerequisites(
                abilities=[AbilityRequirement(ability=Ability.STR, minimum=13)],
                proficiency=ArmorCategory.HEAVY,
            ),
        )
        evaluation = feats.evaluate_feat(feat, AbilityScores(str=8))

        assert evaluation.status == FeatStatus.RESTRICTED
        assert len(evaluation.reasons) == 2

    def test_spellcasting(self, rulebook: RuleBook) -> None:
        war_caster = rulebook.feats.require("war_caster")
        fighter = rulebook.classes.require("fighter")
        cleric = rulebook.classes.require("cleric")

        assert feats.evaluate_feat(war_caster, AbilityScores(), [fighter]).status == FeatStatus.RESTRICTED
        assert feats.evaluate_feat(war_caster, AbilityScores(), [cleric]).is_available
        assert feats.evaluate_feat(war_caster, AbilityScores(), [fighter], can_cast_spells=True).is_available

    def test_class_requirement(self, rulebook: RuleBook) -> None:
        feat = Feat(name="Oath Sworn", prerequisites=FeatPrerequisites(classes=["Paladin"]))

        assert feats.evaluate_feat(feat, AbilityScores(), [rulebook.classes.require("paladin")]).is_available
        assert feats.evaluate_feat(feat, AbilityScores()).status == FeatStatus.RESTRICTED

    def test_unparsed_is_available(self, rulebook: RuleBook) -> None:
        evaluation = feats.evaluate_feat(rulebook.feats.require("squat_nimbleness"), AbilityScores())

        assert evaluation.is_available
        assert evaluation.unparsed is True


class TestCharacterFeats:
    """Tests for evaluating feats against a stored character."""

    def test_options_for_fighter(self, fighter: Character, rulebook: RuleBook) -> None:
        options = {key: evaluation.status for key, _, evaluation in feats.feat_options(fighter, rulebook)}

        assert options["grappler"] == FeatStatus.AVAILABLE
        assert options["heavy_armor_master"] == FeatStatus.AVAILABLE
        assert options["war_caster"] == FeatStatus.RESTRICTED
        assert options["inspiring_leader"] == FeatStatus.UNAVAILABLE

    def test_owned_feats_skipped(self, fighter: Character, rulebook: RuleBook) -> None:
        veteran = fighter.model_copy(update={"feats": ["Grappler", "tough"]})
        keys = [key for key, _, _ in feats.feat_options(veteran, rulebook)]

        assert "grappler" not in keys
        assert "tough" not in keys
        assert "alert" in keys

    def test_spellcasting_subclass(self, rulebook: RuleBook) -> None:
        knight = Character(name="Knight", class_levels=[ClassLevel(class_name="fighter", level=3, subclass="Eldritch Knight")])
        champion = Character(name="Champ", class_levels=[ClassLevel(class_name="fighter", level=3, subclass="Champion")])

        assert feats.character_can_cast(knight, rulebook) is True
        assert feats.character_can_cast(champion, rulebook) is False

    def test_require_available(self, fighter: Character, rulebook: RuleBook) -> None:
        war_caster = rulebook.feats.require("war_caster")
        evaluation = feats.evaluate_feat_for_character(war_caster, fighter, rulebook)

        with pytest.raises(FeatPrerequisiteError) as exc_info:
            feats.require_available(war_caster, evaluation)

        assert exc_info.value.details["status"] == "restricted"
        assert exc_info.value.details["feat"] == "War Caster"

    def test_require_available_passes(self, fighter: Character, rulebook: RuleBook) -> None:
        grappler = rulebook.feats.require("grappler")
        feats.require_available(grappler, feats.evaluate_feat_for_character(grappler, fighter, rulebook))


class TestFeatAbilityBonus:
    """Tests for feat ability increases."""

    def test_no_bonus(self, rulebook: RuleBook) -> None:
        assert feats.feat_ability_bonus(rulebook.feats.require("alert")) == {}

    def test_fixed_bonus(self, rulebook: RuleBook) -> None:
        assert feats.feat_ability_bonus(rulebook.feats.require("actor")) == {Ability.CHA: 1}

    def test_choice(self, rulebook: RuleBook) -> None:
        assert feats.feat_ability_bonus(rulebook.feats.require("athlete"), "dex") == {Ability.DEX: 1}

    def test_choice_missing(self, rulebook: RuleBook) -> None:
        with pytest.raises(AbilityScoreError, match="needs an ability choice") as exc_info:
            feats.feat_ability_bonus(rulebook.feats.require("athlete"))

        assert exc_info.value.details["options"] == ["str", "dex"]

    def test_choice_not_offered(self, rulebook: RuleBook) -> None:
        with pytest.raises(AbilityScoreError, match="cannot increase Wisdom"):
            feats.feat_ability_bonus(rulebook.feats.require("athlete"), Ability.WIS)
