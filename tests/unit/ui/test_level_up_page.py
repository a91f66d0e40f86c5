"""Tests for the Level Up page."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import MagicMock, patch

import pytest
from streamlit.testing.v1 import AppTest

from dnd_roster.core.config import Settings
from dnd_roster.engine import leveling
from dnd_roster.models.enums import Ability, HpMethod


if TYPE_CHECKING:
    from collections.abc import Generator

    from dnd_roster.models.character import Character
    from dnd_roster.rules.tables import RuleBook


PAGE = Path(__file__).parents[3] / "src" / "dnd_roster" / "ui" / "pages" / "2_Level_Up.py"


@pytest.fixture
def client(fighter: Character, rulebook: RuleBook) -> Generator[MagicMock, None, None]:
    """A mocked REST client serving the level 3 fighter."""
    client = MagicMock()
    client.list_characters.return_value = [fighter]
    client.level_up_info.return_value = leveling.build_level_up_info(fighter, rulebook, settings=Settings())
    client.level_up.return_value = MagicMock(
        message="Thorin Oakenshield reached level 4!",
        summary=MagicMock(
            hp_gained=8, new_max_hp=36, new_subclass=None, new_feat=None, ability_score_changes={"str": 1, "con": 1}
        ),
    )
    with patch("dnd_roster.ui.state.get_client", return_value=client):
        yield client


@pytest.fixture
def app(client: MagicMock) -> AppTest:
    app = AppTest.from_file(str(PAGE), default_timeout=30)
    app.run()
    return app


def problems(app: AppTest) -> list[str]:
    return [caption.value for caption in app.caption if caption.value.startswith("⚠️")]


def spend(app: AppTest, **points: int) -> AppTest:
    for ability, amount in points.items():
        app.number_input(key=f"asi_{ability}").set_value(amount)
    return app.run()


class TestSubmitGuard:
    """Tests that the level-up button only submits complete choices."""

    def test_no_points_spent(self, app: AppTest, client: MagicMock) -> None:
        assert not app.exception
        assert app.button(key="level_up_submit").disabled
        assert "⚠️ Distribute exactly 2 ability points" in problems(app)
        client.level_up.assert_not_called()

    def test_too_many_points(self, app: AppTest) -> None:
        spend(app, str=2, dex=2)

        assert app.button(key="level_up_submit").disabled
        assert "⚠️ Distribute exactly 2 ability points" in problems(app)

    def test_one_point(self, app: AppTest) -> None:
        spend(app, wis=1)
        assert app.button(key="level_up_submit").disabled

    def test_valid_asi_submits(self, app: AppTest, client: MagicMock) -> None:
        spend(app, str=1, con=1)
        assert not app.button(key="level_up_submit").disabled
        assert problems(app) == []

        app.button(key="level_up_submit").click().run()

        client.level_up.assert_called_once()
        character_id, choices = client.level_up.call_args.args
        assert character_id == 7
        assert choices.asi_choice.increases == {Ability.STR: 1, Ability.CON: 1}
        assert choices.hp_method == HpMethod.AVERAGE

    def test_roll_needs_a_die(self, app: AppTest) -> None:
        spend(app, str=2)
        app.radio(key="hp_method").set_value(HpMethod.ROLL).run()

        assert app.button(key="level_up_submit").disabled
        assert "⚠️ Roll your d10" in problems(app)

    def test_rolled_value_submits(self, app: AppTest, client: MagicMock) -> None:
        app.radio(key="hp_method").set_value(HpMethod.ROLL).run()
        app.session_state["hp_roll"] = 6
        spend(app, str=2)

        assert not app.button(key="level_up_submit").disabled
        app.button(key="level_up_submit").click().run()

        assert client.level_up.call_args.args[1].roll_value == 6


class TestHpRoll:
    """Tests for the stored hit die roll."""

    def test_switching_method_discards_roll(self, app: AppTest) -> None:
        app.radio(key="hp_method").set_value(HpMethod.ROLL).run()
        app.session_state["hp_roll"] = 9
        app.run()
        assert "Rolled 9: +11 HP" in [message.value for message in app.success]

        app.radio(key="hp_method").set_value(HpMethod.AVERAGE).run()

        assert "hp_roll" not in app.session_state

        app.radio(key="hp_method").set_value(HpMethod.ROLL).run()
        assert "⚠️ Roll your d10" in problems(app)
