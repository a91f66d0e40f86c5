"""REST client for the roster backend.

One ``requests.Session`` per client; use the client as a context manager
so the session is closed. Every method maps to one backend endpoint and
returns parsed records where the endpoint returns one, or the decoded
JSON body otherwise.

Errors:
    ApiConnectionError: The backend could not be reached or timed out.
    NotFoundError: The backend answered 404.
    ApiResponseError: Any other non-2xx answer; the message is the
        body's ``error`` field when there is one.
    ApiParseError: A 2xx answer whose body is not the expected JSON.

Example:
    >>> with RosterClient() as client:
    ...     hero = client.get_character(1)
    ...     info = client.level_up_info(hero.id)
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import requests

from dnd_roster.core.config import Settings, get_settings
from dnd_roster.core.constants import ALLOWED_AVATAR_TYPES
from dnd_roster.core.exceptions import (
    ApiConnectionError,
    ApiParseError,
    ApiResponseError,
    NotFoundError,
    ValidationError,
)
from dnd_roster.core.logging import get_logger
from dnd_roster.models.character import Character
from dnd_roster.models.companion import (
    COMPANION_UPDATE_FIELDS,
    Companion,
    NpcRecord,
    PartyMemberDraft,
)
from dnd_roster.models.enums import ProgressionType, RestType
from dnd_roster.models.leveling import (
    CompanionLevelUpInfo,
    CompanionLevelUpResult,
    LevelUpChoices,
    LevelUpInfo,
    LevelUpResult,
    LevelUpSummary,
    RestResult,
)


logger = get_logger(__name__)

QuestKind = Literal["main", "side", "one-time", "companion"]
LocationKind = Literal["region", "dungeon"]

_QUEST_KINDS = frozenset({"main", "side", "one-time", "companion"})
_LOCATION_KINDS = frozenset({"region", "dungeon"})


def _compact(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Drop keyword arguments left as None."""
    return {key: value for key, value in fields.items() if value is not None}


class RosterClient:
    """Client for the ``/api`` endpoints of the roster backend.

    Args:
        base_url: Backend root; defaults to the configured API base URL.
        timeout: Per-request timeout in seconds.
        session: Session to use instead of creating one.
        settings: Settings to read defaults from.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        session: requests.Session | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.base_url = (base_url or settings.api.base_url).rstrip("/")
        self.timeout = timeout or settings.api.timeout_seconds
        self.max_avatar_bytes = settings.api.max_avatar_bytes
        self._session = session or requests.Session()
        self._session.headers.setdefault("Accept", "application/json")

    def __enter__(self) -> RosterClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def __repr__(self) -> str:
        return f"RosterClient(base_url={self.base_url!r})"

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/{path.lstrip('/')}"

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, Mapping) and body.get("error"):
            return str(body["error"])
        return f"Request failed with status {response.status_code}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        files: Mapping[str, Any] | None = None,
    ) -> Any:
        url = self._url(path)
        logger.debug("API request", method=method, path=path)
        try:
            response = self._session.request(method, url, json=json, files=files, timeout=self.timeout)
        except requests.Timeout as exc:
            raise ApiConnectionError(f"Request to {path} timed out", endpoint=path) from exc
        except requests.RequestException as exc:
            raise ApiConnectionError(f"Could not reach the backend: {exc}", endpoint=path) from exc

        if response.status_code == 404:
            raise NotFoundError(self._error_message(response), endpoint=path, status_code=404)
        if not response.ok:
            message = self._error_message(response)
            logger.warning("API error", method=method, path=path, status_code=response.status_code, error=message)
            raise ApiResponseError(message, endpoint=path, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise ApiParseError(
                "Response body is not JSON",
                endpoint=path,
                status_code=response.status_code,
            ) from exc

    def _get(self, path: str) -> Any:
        return self._request("GET", path)

    def _post(self, path: str, body: Any = None) -> Any:
        return self._request("POST", path, json=body if body is not None else {})

    def _put(self, path: str, body: Any) -> Any:
        return self._request("PUT", path, json=body)

    @staticmethod
    def _expect_mapping(data: Any, path: str, key: str | None = None) -> Mapping[str, Any]:
        value = data.get(key) if key is not None and isinstance(data, Mapping) else data
        if not isinstance(value, Mapping):
            raise ApiParseError(
                f"Expected an object{f' under {key!r}' if key else ''}",
                endpoint=path,
            )
        return value

    @staticmethod
    def _expect_list(data: Any, path: str) -> list[Any]:
        if not isinstance(data, list):
            raise ApiParseError("Expected a list", endpoint=path)
        return data

    # -------------------------------------------------------------------------
    # Characters
    # -------------------------------------------------------------------------

    def list_characters(self) -> list[Character]:
        path = "character"
        return [Character.from_record(row) for row in self._expect_list(self._get(path), path)]

    def get_character(self, character_id: int) -> Character:
        path = f"character/{character_id}"
        return Character.from_record(self._expect_mapping(self._get(path), path))

    def create_character(self, character: Character | Mapping[str, Any]) -> Character:
        """Create a character from a record or a ready-made payload."""
        path = "character"
        body = character.to_payload() if isinstance(character, Character) else dict(character)
        created = Character.from_record(self._expect_mapping(self._post(path, body), path))
        logger.info("Character created", character_id=created.id, name=created.name)
        return created

    def update_character(self, character_id: int, character: Character | Mapping[str, Any]) -> Character:
        path = f"character/{character_id}"
        body = character.to_payload() if isinstance(character, Character) else dict(character)
        return Character.from_record(self._expect_mapping(self._put(path, body), path))

    def delete_character(self, character_id: int) -> None:
        self._request("DELETE", f"character/{character_id}")
        logger.info("Character deleted", character_id=character_id)

    def level_up_info(self, character_id: int) -> LevelUpInfo:
        path = f"character/level-up-info/{character_id}"
        return LevelUpInfo.model_validate(self._expect_mapping(self._get(path), path))

    def level_up(self, character_id: int, choices: LevelUpChoices) -> LevelUpResult:
        path = f"character/level-up/{character_id}"
        data = self._expect_mapping(self._post(path, choices.to_payload()), path)
        return LevelUpResult(
            character=Character.from_record(self._expect_mapping(data, path, "character")),
            summary=LevelUpSummary.model_validate(self._expect_mapping(data, path, "levelUpSummary")),
        )

    def rest(self, character_id: int, rest_type: RestType = RestType.LONG) -> RestResult:
        path = f"character/rest/{character_id}"
        data = self._expect_mapping(self._post(path, {"restType": RestType(rest_type).value}), path)
        return RestResult(
            character=Character.from_record(self._expect_mapping(data, path, "character")),
            rest_type=rest_type,
            hp_restored=data.get("hp_restored", 0),
            new_hp=data.get("newHp", 0),
            spell_slots_restored=bool(data.get("spell_slots_restored")),
        )

    def upload_avatar(self, file: str | Path) -> str:
        """Upload an avatar image and return its stored path.

        Raises:
            ValidationError: Not a jpeg, png, webp or gif, or over the size
                limit. Checked before anything is sent.
        """
        file = Path(file)
        content_type = ALLOWED_AVATAR_TYPES.get(file.suffix.lower())
        if content_type is None:
            raise ValidationError(
                "Avatar must be a JPEG, PNG, WebP or GIF image",
                field_name="avatar",
                invalid_value=file.name,
            )
        size = file.stat().st_size
        if size > self.max_avatar_bytes:
            raise ValidationError(
                f"Avatar must be at most {self.max_avatar_bytes // (1024 * 1024)} MB",
                field_name="avatar",
                invalid_value=size,
            )

        path = "upload/avatar"
        with file.open("rb") as handle:
            data = self._expect_mapping(
                self._request("POST", path, files={"avatar": (file.name, handle, content_type)}),
                path,
            )
        if not data.get("success"):
            raise ApiResponseError(data.get("error") or "Avatar upload failed", endpoint=path)
        return str(data["avatarPath"])

    # -------------------------------------------------------------------------
    # Companions
    # -------------------------------------------------------------------------

    def list_companions(self, character_id: int) -> list[Companion]:
        path = f"companion/character/{character_id}"
        return [Companion.from_record(row) for row in self._expect_list(self._get(path), path)]

    def get_companion(self, companion_id: int) -> Companion:
        path = f"companion/{companion_id}"
        return Companion.from_record(self._expect_mapping(self._get(path), path))

    def available_npcs(self, character_id: int) -> list[NpcRecord]:
        """NPCs that can still be recruited by this character."""
        path = f"companion/available/{character_id}"
        return [NpcRecord.from_record(row) for row in self._expect_list(self._get(path), path)]

    def recruit_companion(
        self,
        npc_id: int,
        character_id: int,
        *,
        progression_type: ProgressionType = ProgressionType.NPC_STATS,
        companion_class: str | None = None,
        companion_subclass: str | None = None,
        starting_level: int | None = None,
        recruited_session_id: int | None = None,
        notes: str | None = None,
    ) -> Companion:
        path = "companion/recruit"
        body = {
            "npc_id": npc_id,
            "recruited_by_character_id": character_id,
            "recruited_session_id": recruited_session_id,
            "progression_type": ProgressionType(progression_type).value,
            "companion_class": companion_class,
            "companion_subclass": companion_subclass,
            "starting_level": starting_level,
            "notes": notes,
        }
        data = self._post(path, body)
        companion = Companion.from_record(self._expect_mapping(data, path, "companion"))
        logger.info("Companion recruited", companion_id=companion.id, npc_id=npc_id)
        return companion

    def update_companion(self, companion_id: int, updates: Companion | Mapping[str, Any]) -> Companion:
        """Send the changeable companion columns; anything else is dropped."""
        path = f"companion/{companion_id}"
        raw = updates.to_payload() if isinstance(updates, Companion) else dict(updates)
        body = {key: value for key, value in raw.items() if key in COMPANION_UPDATE_FIELDS}
        return Companion.from_record(self._expect_mapping(self._put(path, body), path))

    def convert_companion(
        self,
        companion_id: int,
        companion_class: str,
        starting_level: int | None = None,
    ) -> Companion:
        path = f"companion/{companion_id}/convert-to-class"
        body = _compact({"companion_class": companion_class, "starting_level": starting_level})
        return Companion.from_record(self._expect_mapping(self._post(path, body), path, "companion"))

    def companion_level_up_info(self, companion_id: int) -> CompanionLevelUpInfo:
        path = f"companion/{companion_id}/level-up-info"
        return CompanionLevelUpInfo.model_validate(self._expect_mapping(self._get(path), path))

    def companion_level_up(self, companion_id: int, choices: LevelUpChoices) -> CompanionLevelUpResult:
        path = f"companion/{companion_id}/level-up"
        body = {
            key: value
            for key, value in choices.to_payload().items()
            if key in ("hpRoll", "rollValue", "subclass", "asiChoice")
        }
        data = self._expect_mapping(self._post(path, body), path)
        summary = self._expect_mapping(data, path, "levelUpSummary")
        return CompanionLevelUpResult(
            companion=Companion.from_record(self._expect_mapping(data, path, "companion")),
            previous_level=summary.get("previousLevel", 0),
            new_level=summary.get("newLevel", 0),
            hp_gained=summary.get("hpGained", 0),
            new_subclass=choices.subclass,
            ability_score_changes=(
                {ability.value: amount for ability, amount in choices.asi_choice.increases.items()}
                if choices.asi_choice and choices.asi_choice.increases
                else None
            ),
        )

    def dismiss_companion(self, companion_id: int) -> dict[str, Any]:
        """Dismiss a companion; the NPC becomes recruitable again."""
        path = f"companion/{companion_id}/dismiss"
        return dict(self._expect_mapping(self._post(path), path))

    def mark_companion_deceased(self, companion_id: int) -> Companion:
        path = f"companion/{companion_id}/deceased"
        return Companion.from_record(self._expect_mapping(self._post(path), path, "companion"))

    def create_party_member(self, draft: PartyMemberDraft) -> Companion:
        path = "companion/create-party-member"
        data = self._post(path, draft.to_payload())
        companion = Companion.from_record(self._expect_mapping(data, path, "companion"))
        logger.info("Party member created", companion_id=companion.id, name=draft.name)
        return companion

    # -------------------------------------------------------------------------
    # Content Generation
    # -------------------------------------------------------------------------

    def generate_quest(self, kind: QuestKind, **fields: Any) -> dict[str, Any]:
        """Ask the backend to generate a main, side, one-time or companion quest.

        Raises:
            ValidationError: Unknown quest kind.
        """
        if kind not in _QUEST_KINDS:
            raise ValidationError(f"Unknown quest kind: {kind!r}", field_name="kind", invalid_value=kind)
        path = f"quest/generate/{kind}"
        return dict(self._expect_mapping(self._post(path, _compact(fields)), path))

    def generate_location(self, kind: LocationKind | None = None, **fields: Any) -> dict[str, Any]:
        """Generate a location, or a whole region or dungeon."""
        if kind is not None and kind not in _LOCATION_KINDS:
            raise ValidationError(f"Unknown location kind: {kind!r}", field_name="kind", invalid_value=kind)
        path = "location/generate" if kind is None else f"location/generate/{kind}"
        return dict(self._expect_mapping(self._post(path, _compact(fields)), path))

    def generate_faction_goal(self, faction_id: int, **fields: Any) -> dict[str, Any]:
        path = f"living-world/generate/faction-goal/{faction_id}"
        return dict(self._expect_mapping(self._post(path, _compact(fields)), path))

    def generate_world_event(self, campaign_id: int, **fields: Any) -> dict[str, Any]:
        path = f"living-world/generate/world-event/{campaign_id}"
        return dict(self._expect_mapping(self._post(path, _compact(fields)), path))

    def generate_companion_backstory(self, companion_id: int, **fields: Any) -> dict[str, Any]:
        path = f"companion/{companion_id}/backstory/generate"
        return dict(self._expect_mapping(self._post(path, _compact(fields)), path))


__all__ = [
    "QuestKind",
    "LocationKind",
    "RosterClient",
]
