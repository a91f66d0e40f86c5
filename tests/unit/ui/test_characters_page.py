"""Tests for the Characters page wizard."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import MagicMock, patch

import pytest
from streamlit.testing.v1 import AppTest

from dnd_roster.engine import wizard
from dnd_roster.engine.wizard import WizardState
from dnd_roster.models.character import AbilityScores
from dnd_roster.models.enums import Ability, AbilityMethod, WizardStep


if TYPE_CHECKING:
    from collections.abc import Generator

    from dnd_roster.models.character import Character
    from dnd_roster.rules.tables import RuleBook


PAGE = Path(__file__).parents[3] / "src" / "dnd_roster" / "ui" / "pages" / "1_Characters.py"


@pytest.fixture(autouse=True)
def client() -> Generator[MagicMock, None, None]:
    client = MagicMock()
    client.list_characters.return_value = []
    with patch("dnd_roster.ui.state.get_client", return_value=client):
        yield client


def open_wizard(state: WizardState, existing: Character | None = None) -> AppTest:
    """Start the page on the abilities step of a wizard run."""
    app = AppTest.from_file(str(PAGE), default_timeout=30)
    app.session_state["wizard_state"] = state.model_copy(update={"step": WizardStep.ABILITIES})
    app.session_state["wizard_existing"] = existing
    app.session_state["wizard_generation"] = 1
    return app.run()


class TestEditScores:
    """Tests that editing keeps recovered base scores."""

    @pytest.fixture
    def champion(self, fighter: Character) -> Character:
        """A human fighter whose STR reached 20 through ASIs."""
        return fighter.model_copy(
            update={
                "race": "human",
                "subrace": None,
                "ability_scores": AbilityScores(str=20, dex=14, con=15, int=10, wis=12, cha=8),
            }
        )

    def test_score_above_manual_range_survives(self, champion: Character, rulebook: RuleBook) -> None:
        state = WizardState.from_character(champion, rulebook)
        assert state.base_scores[Ability.STR] == 19

        app = open_wizard(state, champion)

        assert not app.exception
        assert app.number_input(key="wiz_1_score_str").value == 19
        assert app.session_state["wizard_state"].base_scores[Ability.STR] == 19

    def test_edit_round_trip(self, champion: Character, rulebook: RuleBook) -> None:
        app = open_wizard(WizardState.from_character(champion, rulebook), champion)
        app.run()

        edited = wizard.build_character(app.session_state["wizard_state"], rulebook, champion)

        assert edited.ability_scores == champion.ability_scores


class TestScorePool:
    """Tests for standard array selectboxes."""

    @pytest.fixture
    def app(self) -> AppTest:
        return open_wizard(WizardState(ability_method=AbilityMethod.STANDARD_ARRAY))

    def test_assign(self, app: AppTest) -> None:
        app.selectbox(key="wiz_1_pool_str").set_value(15).run()

        assert not app.exception
        assert app.session_state["wizard_state"].base_scores[Ability.STR] == 15

    def test_latest_pick_takes_the_value(self, app: AppTest) -> None:
        app.selectbox(key="wiz_1_pool_str").set_value(15).run()
        app.selectbox(key="wiz_1_pool_dex").set_value(15).run()

        scores = app.session_state["wizard_state"].base_scores
        assert scores[Ability.DEX] == 15
        assert scores[Ability.STR] is None
        assert app.selectbox(key="wiz_1_pool_str").value is None
        assert app.selectbox(key="wiz_1_pool_dex").value == 15

    def test_latest_pick_wins_in_any_order(self, app: AppTest) -> None:
        app.selectbox(key="wiz_1_pool_cha").set_value(8).run()
        app.selectbox(key="wiz_1_pool_str").set_value(8).run()

        scores = app.session_state["wizard_state"].base_scores
        assert scores[Ability.STR] == 8
        assert scores[Ability.CHA] is None
        assert app.selectbox(key="wiz_1_pool_cha").value is None
