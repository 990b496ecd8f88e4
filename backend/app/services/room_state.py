from dataclasses import dataclass, field
from enum import Enum


class RoomPhase(str, Enum):
    LOBBY = "LOBBY"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


@dataclass
class Territory:
    id: str
    name: str
    production_value: int
    x: float
    y: float
    owner_id: str | None = None
    military_units: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "ownerId": self.owner_id,
            "militaryUnits": self.military_units,
            "productionValue": self.production_value,
            "coords": {"x": self.x, "y": self.y},
        }


@dataclass
class PlayerResources:
    money: int
    military: int
    production: int = 0
    research: int = 0

    def to_dict(self) -> dict:
        return {
            "money": self.money,
            "military": self.military,
            "production": self.production,
            "research": self.research,
        }


@dataclass
class Player:
    id: str
    name: str
    color: str
    resources: PlayerResources
    is_ready: bool = False

    def to_dict(self, is_turn: bool = False) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "isReady": self.is_ready,
            "isTurn": is_turn,
            "resources": self.resources.to_dict(),
        }


@dataclass(frozen=True)
class RoomSettings:
    map_size: str
    game_speed: str
    max_players: int
    starting_money: int
    starting_military: int

    def to_dict(self) -> dict:
        return {
            "mapSize": self.map_size,
            "gameSpeed": self.game_speed,
            "maxPlayers": self.max_players,
            "startingMoney": self.starting_money,
            "startingMilitary": self.starting_military,
        }


@dataclass
class Room:
    id: str
    name: str
    host_id: str | None
    host_name: str
    settings: RoomSettings
    territories: dict[str, Territory]
    password: str | None = None
    phase: RoomPhase = RoomPhase.LOBBY
    current_turn: int = 1
    current_turn_player_id: str | None = None
    players: dict[str, Player] = field(default_factory=dict)
    # Seating order; the turn rotation walks this list, never the players mapping.
    turn_order: list[str] = field(default_factory=list)

    @property
    def has_password(self) -> bool:
        return bool(self.password)

    @property
    def player_count(self) -> int:
        return len(self.players)

    def owned_territories(self, player_id: str) -> list[Territory]:
        return [territory for territory in self.territories.values() if territory.owner_id == player_id]

    def unclaimed_territories(self) -> list[Territory]:
        return [territory for territory in self.territories.values() if territory.owner_id is None]

    def summary(self) -> dict:
        return {
            "id": self.id,
            "serverName": self.name,
            "hostName": self.host_name,
            "currentPlayers": self.player_count,
            "maxPlayers": self.settings.max_players,
            "hasPassword": self.has_password,
            "gamePhase": self.phase.value,
        }

    def serialize_players(self) -> dict:
        return {
            player_id: player.to_dict(is_turn=player_id == self.current_turn_player_id)
            for player_id, player in self.players.items()
        }

    def serialize_state(self) -> dict:
        return {
            "currentTurn": self.current_turn,
            "gamePhase": self.phase.value,
            "currentTurnPlayerId": self.current_turn_player_id,
            "turnOrder": list(self.turn_order),
            "territories": {
                territory_id: territory.to_dict()
                for territory_id, territory in self.territories.items()
            },
            "players": self.serialize_players(),
        }

    def initial_state_for(self, player_id: str) -> dict:
        player = self.players[player_id]
        payload = self.serialize_state()
        payload["playerID"] = player_id
        payload["server"] = {
            "id": self.id,
            "serverName": self.name,
            "hostName": self.host_name,
            "gameSpeed": self.settings.game_speed,
            "mapSize": self.settings.map_size,
            "maxPlayers": self.settings.max_players,
            "currentPlayers": self.player_count,
        }
        payload["player"] = {
            "name": player.name,
            "resources": player.resources.to_dict(),
        }
        return payload
