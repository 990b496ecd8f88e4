from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SERVER_NAME_MAX_LENGTH = 60
PLAYER_NAME_MAX_LENGTH = 40
SETTING_TEXT_MAX_LENGTH = 20
MAX_PLAYERS_LIMIT = 32


def _as_text(value):
    # Clients may send numeric passwords and ids.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _clip(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    return value.strip()[:limit]


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RoomSettingsPayload(_WireModel):
    """Overrides for the room defaults; out-of-range values fall back to the default."""

    map_size: str | None = None
    game_speed: str | None = None
    max_players: int | None = None
    starting_money: int | None = None
    starting_military: int | None = None

    @field_validator("map_size", "game_speed")
    @classmethod
    def clip_text(cls, value: str | None) -> str | None:
        return value[:SETTING_TEXT_MAX_LENGTH] if value else None

    @field_validator("max_players")
    @classmethod
    def players_in_range(cls, value: int | None) -> int | None:
        if value is None or not 1 <= value <= MAX_PLAYERS_LIMIT:
            return None
        return value

    @field_validator("starting_money", "starting_military")
    @classmethod
    def non_negative(cls, value: int | None) -> int | None:
        if value is None or value < 0:
            return None
        return value


class RoomCreateRequest(_WireModel):
    server_name: str | None = None
    host_name: str | None = None
    password: str | None = None
    settings: RoomSettingsPayload | None = None

    @field_validator("password", mode="before")
    @classmethod
    def password_as_text(cls, value):
        return _as_text(value)

    @field_validator("server_name")
    @classmethod
    def clip_server_name(cls, value: str | None) -> str | None:
        return _clip(value, SERVER_NAME_MAX_LENGTH)

    @field_validator("host_name")
    @classmethod
    def clip_host_name(cls, value: str | None) -> str | None:
        return _clip(value, PLAYER_NAME_MAX_LENGTH)


class RoomJoinRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    server_id: str = Field(alias="serverID", min_length=1)
    password: str | None = None
    # Clients send the display name under "hostName".
    display_name: str | None = Field(default=None, alias="hostName")

    @field_validator("server_id", "password", mode="before")
    @classmethod
    def text_fields(cls, value):
        return _as_text(value)

    @field_validator("display_name")
    @classmethod
    def clip_display_name(cls, value: str | None) -> str | None:
        return _clip(value, PLAYER_NAME_MAX_LENGTH)


class RoomSummaryRead(_WireModel):
    id: str
    server_name: str
    host_name: str
    current_players: int
    max_players: int
    has_password: bool
    game_phase: str
