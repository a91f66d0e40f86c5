"""Tests for the roster REST client."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from dnd_roster.client.api import RosterClient
from dnd_roster.core.config import ApiSettings, Settings
from dnd_roster.core.exceptions import (
    ApiConnectionError,
    ApiParseError,
    ApiResponseError,
    NotFoundError,
    ValidationError,
)
from dnd_roster.engine import leveling
from dnd_roster.models.character import Character
from dnd_roster.models.companion import PartyMemberDraft
from dnd_roster.models.enums import Ability, ProgressionType, RestType
from dnd_roster.models.leveling import AsiChoice, LevelUpChoices
from dnd_roster.rules.tables import RuleBook


BASE_URL = "http://roster.test"

_NO_BODY = object()


def make_response(body: Any = _NO_BODY, status_code: int = 200) -> MagicMock:
    """A stand-in for ``requests.Response``; no body means invalid JSON."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    if body is _NO_BODY:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def session() -> MagicMock:
    mock_session = MagicMock()
    mock_session.headers = {}
    mock_session.request.return_value = make_response({})
    return mock_session


@pytest.fixture
def client(session: MagicMock) -> RosterClient:
    return RosterClient(BASE_URL + "/", timeout=5, session=session)


def sent(session: MagicMock) -> tuple[str, str, dict[str, Any]]:
    """Method, URL and keyword arguments of the last request."""
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs


class TestTransport:
    """Tests for URL building and error mapping."""

    def test_request_shape(self, client: RosterClient, session: MagicMock, sample_character_record: dict[str, Any]) -> None:
        session.request.return_value = make_response(sample_character_record)

        character = client.get_character(7)
        method, url, kwargs = sent(session)

        assert character.name == "Thorin Oakenshield"
        assert method == "GET"
        assert url == "http://roster.test/api/character/7"
        assert kwargs == {"json": None, "files": None, "timeout": 5}

    def test_defaults_from_settings(self, session: MagicMock) -> None:
        settings = Settings(api=ApiSettings(base_url="http://backend:4000", timeout_seconds=30))
        client = RosterClient(session=session, settings=settings)

        assert client.base_url == "http://backend:4000"
        assert client.timeout == 30
        assert session.headers["Accept"] == "application/json"

    def test_not_found(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response({"error": "Character not found"}, status_code=404)

        with pytest.raises(NotFoundError, match="Character not found") as exc_info:
            client.get_character(99)

        assert exc_info.value.status_code == 404
        assert exc_info.value.details["endpoint"] == "character/99"

    def test_error_body(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response({"error": "Not enough XP"}, status_code=400)

        with pytest.raises(ApiResponseError, match="Not enough XP") as exc_info:
            client.level_up(7, LevelUpChoices())

        assert not isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.details["status_code"] == 400

    def test_error_without_body(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response(status_code=502)

        with pytest.raises(ApiResponseError, match="Request failed with status 502"):
            client.list_characters()

    def test_invalid_json(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response()

        with pytest.raises(ApiParseError, match="not JSON"):
            client.list_characters()

    def test_unexpected_shape(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response({"characters": []})

        with pytest.raises(ApiParseError, match="Expected a list"):
            client.list_characters()

    def test_timeout(self, client: RosterClient, session: MagicMock) -> None:
        session.request.side_effect = requests.Timeout("read timed out")

        with pytest.raises(ApiConnectionError, match="timed out") as exc_info:
            client.get_character(7)

        assert exc_info.value.details["endpoint"] == "character/7"
        assert exc_info.value.status_code is None

    def test_connection_error(self, client: RosterClient, session: MagicMock) -> None:
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ApiConnectionError, match="Could not reach the backend"):
            client.list_characters()

        assert session.request.call_count == 1

    def test_context_manager_closes_session(self, session: MagicMock) -> None:
        with RosterClient(BASE_URL, session=session):
            pass

        session.close.assert_called_once()


class TestCharacters:
    """Tests for the character endpoints."""

    def test_list(self, client: RosterClient, session: MagicMock, sample_character_record: dict[str, Any]) -> None:
        session.request.return_value = make_response([sample_character_record])

        characters = client.list_characters()

        assert [c.id for c in characters] == [7]
        assert sent(session)[1] == "http://roster.test/api/character"

    def test_create_sends_payload(self, client: RosterClient, session: MagicMock, fighter: Character, sample_character_record: dict[str, Any]) -> None:
        session.request.return_value = make_response(sample_character_record)

        created = client.create_character(fighter.model_copy(update={"id": None}))
        method, _, kwargs = sent(session)

        assert created.id == 7
        assert method == "POST"
        assert kwargs["json"]["class"] == "fighter"
        assert "id" not in kwargs["json"]

    def test_update_with_mapping(self, client: RosterClient, session: MagicMock, sample_character_record: dict[str, Any]) -> None:
        session.request.return_value = make_response(sample_character_record)

        client.update_character(7, {"current_hp": 28})
        method, url, kwargs = sent(session)

        assert method == "PUT"
        assert url.endswith("/api/character/7")
        assert kwargs["json"] == {"current_hp": 28}

    def test_delete(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response({"message": "Character deleted"})

        client.delete_character(7)

        assert sent(session)[:2] == ("DELETE", "http://roster.test/api/character/7")

    def test_level_up_info(self, client: RosterClient, session: MagicMock, fighter: Character, rulebook: RuleBook) -> None:
        expected = leveling.build_level_up_info(fighter, rulebook, settings=Settings())
        session.request.return_value = make_response(expected.to_payload())

        info = client.level_up_info(7)

        assert info.new_level == 4
        assert info.option_for("fighter") is not None
        assert sent(session)[1].endswith("/api/character/level-up-info/7")

    def test_level_up(self, client: RosterClient, session: MagicMock, sample_character_record: dict[str, Any]) -> None:
        summary = {
            "previousLevel": 3,
            "newLevel": 4,
            "leveledClass": "Fighter",
            "newClassLevel": 4,
            "isMulticlass": False,
            "classLevels": [{"class": "fighter", "level": 4, "subclass": "Champion"}],
            "classDisplay": "Fighter 4",
            "hpGained": 8,
            "newMaxHp": 36,
            "hitDice": {"d10": 4},
            "newFeatures": [],
            "proficiencyBonus": 2,
        }
        session.request.return_value = make_response({"character": sample_character_record, "levelUpSummary": summary})
        choices = LevelUpChoices(asi_choice=AsiChoice(increases={Ability.STR: 2}))

        result = client.level_up(7, choices)

        assert result.summary.new_max_hp == 36
        assert result.character.id == 7
        assert sent(session)[2]["json"] == choices.to_payload()

    def test_level_up_missing_summary(self, client: RosterClient, session: MagicMock, sample_character_record: dict[str, Any]) -> None:
        session.request.return_value = make_response({"character": sample_character_record})

        with pytest.raises(ApiParseError, match="levelUpSummary"):
            client.level_up(7, LevelUpChoices())

    def test_rest(self, client: RosterClient, session: MagicMock, sample_character_record: dict[str, Any]) -> None:
        body = {"character": sample_character_record, "hp_restored": 5, "newHp": 25}
        session.request.return_value = make_response(body)

        result = client.rest(7, RestType.SHORT)

        assert sent(session)[2]["json"] == {"restType": "short"}
        assert result.hp_restored == 5
        assert result.new_hp == 25
        assert result.spell_slots_restored is False


class TestAvatarUpload:
    """Tests for avatar uploads."""

    def test_upload(self, client: RosterClient, session: MagicMock, tmp_path: Path) -> None:
        image = tmp_path / "hero.png"
        image.write_bytes(b"\x89PNG fake")
        session.request.return_value = make_response({"success": True, "avatarPath": "/uploads/avatars/hero.png"})

        assert client.upload_avatar(image) == "/uploads/avatars/hero.png"
        method, url, kwargs = sent(session)
        name, _, content_type = kwargs["files"]["avatar"]

        assert (method, url) == ("POST", "http://roster.test/api/upload/avatar")
        assert (name, content_type) == ("hero.png", "image/png")

    def test_wrong_type(self, client: RosterClient, session: MagicMock, tmp_path: Path) -> None:
        image = tmp_path / "hero.bmp"
        image.write_bytes(b"BM")

        with pytest.raises(ValidationError, match="JPEG, PNG, WebP or GIF") as exc_info:
            client.upload_avatar(image)

        assert exc_info.value.details["field_name"] == "avatar"
        session.request.assert_not_called()

    def test_too_large(self, session: MagicMock, tmp_path: Path) -> None:
        client = RosterClient(BASE_URL, session=session, settings=Settings(api=ApiSettings(max_avatar_bytes=10)))
        image = tmp_path / "hero.jpg"
        image.write_bytes(b"x" * 20)

        with pytest.raises(ValidationError, match="at most"):
            client.upload_avatar(image)

        session.request.assert_not_called()

    def test_rejected_by_backend(self, client: RosterClient, session: MagicMock, tmp_path: Path) -> None:
        image = tmp_path / "hero.gif"
        image.write_bytes(b"GIF89a")
        session.request.return_value = make_response({"success": False, "error": "Corrupt image"})

        with pytest.raises(ApiResponseError, match="Corrupt image"):
            client.upload_avatar(image)


class TestCompanions:
    """Tests for the companion endpoints."""

    COMPANION = {"id": 4, "npc_id": 11, "name": "Brother Aldous", "progression_type": "class_based", "companion_class": "cleric", "companion_level": 3}

    def test_list_accepts_inventory_alias(self, client: RosterClient, session: MagicMock) -> None:
        row = {**self.COMPANION, "companion_inventory": '[{"name": "Holy Symbol", "quantity": 1}]'}
        session.request.return_value = make_response([row])

        companions = client.list_companions(7)

        assert companions[0].inventory[0].name == "Holy Symbol"
        assert sent(session)[1].endswith("/api/companion/character/7")

    def test_available_npcs(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response([{"id": 11, "name": "Brother Aldous", "ac": 12}])

        npcs = client.available_npcs(7)

        assert npcs[0].ac == 12

    def test_recruit(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response({"companion": self.COMPANION})

        companion = client.recruit_companion(
            11, 7, progression_type=ProgressionType.CLASS_BASED, companion_class="cleric", starting_level=3
        )
        body = sent(session)[2]["json"]

        assert companion.companion_level == 3
        assert body["npc_id"] == 11
        assert body["recruited_by_character_id"] == 7
        assert body["progression_type"] == "class_based"
        assert body["notes"] is None

    def test_update_drops_unknown_fields(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response(self.COMPANION)

        client.update_companion(4, {"companion_level": 4, "name": "Renamed", "npc_id": 2})

        assert sent(session)[2]["json"] == {"companion_level": 4}

    def test_convert_omits_missing_level(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response({"companion": self.COMPANION})

        client.convert_companion(4, "cleric")
        _, url, kwargs = sent(session)

        assert url.endswith("/api/companion/4/convert-to-class")
        assert kwargs["json"] == {"companion_class": "cleric"}

    def test_level_up(self, client: RosterClient, session: MagicMock) -> None:
        body = {
            "companion": {**self.COMPANION, "companion_level": 4},
            "levelUpSummary": {"previousLevel": 3, "newLevel": 4, "hpGained": 7},
        }
        session.request.return_value = make_response(body)
        choices = LevelUpChoices(selected_class="wizard", asi_choice=AsiChoice(increases={Ability.WIS: 2}), cantrips=["Light"])

        result = client.companion_level_up(4, choices)
        sent_body = sent(session)[2]["json"]

        assert set(sent_body) == {"hpRoll", "asiChoice"}
        assert result.new_level == 4
        assert result.hp_gained == 7
        assert result.ability_score_changes == {"wis": 2}

    def test_dismiss(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response({"message": "Companion dismissed"})

        assert client.dismiss_companion(4) == {"message": "Companion dismissed"}
        assert sent(session)[2]["json"] == {}

    def test_create_party_member(self, client: RosterClient, session: MagicMock) -> None:
        draft = MagicMock(spec=PartyMemberDraft)
        draft.name = "Kestra"
        draft.to_payload.return_value = {"name": "Kestra", "companion_class": "ranger"}
        session.request.return_value = make_response({"companion": {"id": 9, "name": "Kestra"}})

        companion = client.create_party_member(draft)

        assert companion.id == 9
        assert sent(session)[2]["json"] == {"name": "Kestra", "companion_class": "ranger"}


class TestGeneration:
    """Tests for the content generation endpoints."""

    def test_quest(self, client: RosterClient, session: MagicMock) -> None:
        session.request.return_value = make_response({"quest": {"title": "The Lost Mine"}})

        result = client.generate_quest("side", campaign_id=1, character_id=7, theme=None)
        _, url, kwargs = sent(session)

        assert result["quest"]["title"] == "The Lost Mine"
        assert url.endswith("/api/quest/generate/side")
        assert kwargs["json"] == {"campaign_id": 1, "character_id": 7}

    def test_unknown_quest_kind(self, client: RosterClient, session: MagicMock) -> None:
        with pytest.raises(ValidationError, match="Unknown quest kind"):
            client.generate_quest("epic")  # type: ignore[arg-type]

        session.request.assert_not_called()

    @pytest.mark.parametrize(
        ("kind", "path"),
        [(None, "/api/location/generate"), ("dungeon", "/api/location/generate/dungeon")],
    )
    def test_location(self, client: RosterClient, session: MagicMock, kind: str | None, path: str) -> None:
        client.generate_location(kind)  # type: ignore[arg-type]
        assert sent(session)[1].endswith(path)

    def test_living_world(self, client: RosterClient, session: MagicMock) -> None:
        client.generate_faction_goal(3)
        assert sent(session)[1].endswith("/api/living-world/generate/faction-goal/3")

        client.generate_world_event(2)
        assert sent(session)[1].endswith("/api/living-world/generate/world-event/2")

    def test_companion_backstory(self, client: RosterClient, session: MagicMock) -> None:
        client.generate_companion_backstory(4)
        assert sent(session)[1].endswith("/api/companion/4/backstory/generate")
