from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Conquest Session Server"
    debug: bool = False
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    socketio_path: str = "socket.io"
    log_level: str = "INFO"

    default_map_size: str = "medium"
    default_game_speed: str = "Standard"
    default_max_players: int = 8
    default_starting_money: int = 5000
    default_starting_military: int = 20

    claim_cost: int = 500
    unit_cost: int = 100
    starting_garrison: int = 1
    maintenance_per_territory: int = 10

    map_width: float = 1000.0
    map_height: float = 700.0
    production_min: int = 100
    production_max: int = 599

    territory_selection_policy: Literal["random", "first"] = "random"
    rng_seed: int | None = None

    rate_limit_enabled: bool = True
    rate_limit_global_limit: int = 180
    rate_limit_global_window_seconds: int = 60
    websocket_connect_limit: int = 20
    websocket_connect_window_seconds: int = 60
    websocket_event_limit: int = 240
    websocket_event_window_seconds: int = 60
    max_chat_message_length: int = 240

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
