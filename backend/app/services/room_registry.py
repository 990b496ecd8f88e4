from collections.abc import Iterator
from dataclasses import dataclass
import logging
import random
import secrets

from pydantic import ValidationError

from app.core.config import Settings
from app.schemas.room import RoomCreateRequest, RoomSettingsPayload
from app.services.errors import (
    AlreadyInRoomError,
    InvalidSettingsError,
    RoomFullError,
    RoomNotFoundError,
    WrongPasswordError,
)
from app.services.map_generator import generate_territories
from app.services.room_state import Player, PlayerResources, Room, RoomPhase, RoomSettings
from app.services.turn_rotation import next_player_id

logger = logging.getLogger(__name__)

ROOM_ID_BYTES = 3


@dataclass
class LeaveResult:
    room_id: str
    player: Player
    room_deleted: bool
    new_host_id: str | None = None
    new_host_name: str | None = None

    @property
    def host_changed(self) -> bool:
        return self.new_host_id is not None


class RoomListing:
    """Live view over the registry's rooms; every iteration starts from the current set."""

    def __init__(self, rooms: dict[str, Room]) -> None:
        self._rooms = rooms

    def __iter__(self) -> Iterator[dict]:
        for room in list(self._rooms.values()):
            yield room.summary()

    def __len__(self) -> int:
        return len(self._rooms)


class RoomRegistry:
    def __init__(self, settings: Settings, rng: random.Random | None = None) -> None:
        self._settings = settings
        self._rng = rng or random.Random(settings.rng_seed)
        self._rooms: dict[str, Room] = {}
        self._player_rooms: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def _new_room_id(self) -> str:
        while True:
            room_id = secrets.token_hex(ROOM_ID_BYTES).upper()
            if room_id not in self._rooms:
                return room_id

    def _build_settings(self, payload: RoomCreateRequest) -> RoomSettings:
        requested = payload.settings or RoomSettingsPayload()
        defaults = self._settings
        return RoomSettings(
            map_size=requested.map_size or defaults.default_map_size,
            game_speed=requested.game_speed or defaults.default_game_speed,
            max_players=requested.max_players or defaults.default_max_players,
            starting_money=(
                requested.starting_money
                if requested.starting_money is not None
                else defaults.default_starting_money
            ),
            starting_military=(
                requested.starting_military
                if requested.starting_military is not None
                else defaults.default_starting_military
            ),
        )

    def _random_color(self) -> str:
        return f"#{self._rng.randrange(0x1000000):06x}"

    def create(self, data: RoomCreateRequest | dict | None, host_id: str | None = None) -> str:
        if isinstance(data, RoomCreateRequest):
            payload = data
        else:
            try:
                payload = RoomCreateRequest.model_validate(data if data is not None else {})
            except ValidationError as exc:
                raise InvalidSettingsError("Invalid server settings.") from exc

        room_id = self._new_room_id()
        settings = self._build_settings(payload)
        room = Room(
            id=room_id,
            name=(payload.server_name or "").strip() or f"Game {room_id}",
            host_id=host_id,
            host_name=(payload.host_name or "").strip() or "Host",
            password=payload.password or None,
            settings=settings,
            territories=generate_territories(
                settings.map_size,
                self._rng,
                width=self._settings.map_width,
                height=self._settings.map_height,
                production_min=self._settings.production_min,
                production_max=self._settings.production_max,
            ),
        )
        self._rooms[room_id] = room
        logger.info(
            "Room %s created by %s (map=%s, territories=%d)",
            room_id,
            room.host_name,
            settings.map_size,
            len(room.territories),
        )
        return room_id

    def get(self, room_id: str | None) -> Room | None:
        if not room_id:
            return None
        return self._rooms.get(room_id)

    def list(self) -> RoomListing:
        return RoomListing(self._rooms)

    def room_id_for_player(self, player_id: str) -> str | None:
        return self._player_rooms.get(player_id)

    def check_joinable(self, room_id: str, password: str | None = None) -> Room:
        """Raise the error a join would fail with, without touching any state."""
        room = self._rooms.get(room_id)
        if not room:
            raise RoomNotFoundError()
        if room.password and room.password != password:
            raise WrongPasswordError()
        if room.player_count >= room.settings.max_players:
            raise RoomFullError()
        return room

    def join(
        self,
        room_id: str,
        player_id: str,
        password: str | None = None,
        requested_name: str | None = None,
    ) -> tuple[Room, Player]:
        room = self.check_joinable(room_id, password)
        seated_in = self._player_rooms.get(player_id)
        if seated_in is not None:
            raise AlreadyInRoomError()

        name = (requested_name or "").strip() or f"Player {room.player_count + 1}"
        player = Player(
            id=player_id,
            name=name,
            color=self._random_color(),
            resources=PlayerResources(
                money=room.settings.starting_money,
                military=room.settings.starting_military,
            ),
        )
        room.players[player_id] = player
        room.turn_order.append(player_id)
        self._player_rooms[player_id] = room_id

        if room.current_turn_player_id is None:
            room.current_turn_player_id = player_id
            room.phase = RoomPhase.ACTIVE

        logger.info("Player %s (%s) joined room %s", name, player_id, room_id)
        return room, player

    def leave(self, room_id: str, player_id: str) -> LeaveResult | None:
        room = self._rooms.get(room_id)
        if not room or player_id not in room.players:
            return None

        if room.current_turn_player_id == player_id:
            # The departing holder's END_TURN normally moves the turn before we get here.
            room.current_turn_player_id = next_player_id(room)

        player = room.players.pop(player_id)
        room.turn_order.remove(player_id)
        self._player_rooms.pop(player_id, None)
        if room.current_turn_player_id == player_id:
            room.current_turn_player_id = room.turn_order[0] if room.turn_order else None

        if not room.players:
            self.delete(room_id)
            return LeaveResult(room_id=room_id, player=player, room_deleted=True)

        result = LeaveResult(room_id=room_id, player=player, room_deleted=False)
        if room.host_id == player_id:
            successor = room.players[room.turn_order[0]]
            room.host_id = successor.id
            room.host_name = successor.name
            result.new_host_id = successor.id
            result.new_host_name = successor.name
            logger.info("Room %s host moved from %s to %s", room_id, player.name, successor.name)

        logger.info("Player %s (%s) left room %s", player.name, player_id, room_id)
        return result

    def delete(self, room_id: str) -> bool:
        room = self._rooms.pop(room_id, None)
        if not room:
            return False
        for player_id in room.players:
            self._player_rooms.pop(player_id, None)
        logger.info("Room %s deleted", room_id)
        return True

    def end_game(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if not room:
            raise RoomNotFoundError()
        room.phase = RoomPhase.ENDED
        logger.info("Room %s ended on turn %d", room_id, room.current_turn)
        return room

    def clear(self) -> None:
        self._rooms.clear()
        self._player_rooms.clear()
