"""Game server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from fibber.logic.settings import GameSettings
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class GameServerSettings(BaseSettings):
    model_config = {"env_prefix": "FIBBER_"}

    max_rooms: int = Field(default=100, ge=1)
    max_players_per_room: int = Field(default=20, ge=2, le=100)
    log_dir: str = Field(default="backend/logs/fibber", min_length=1)
    cors_origins: list[str] = ["http://localhost:3000"]

    # Idle eviction. A room is evicted after room_idle_ttl_seconds without
    # activity, or sooner once every player has been disconnected for
    # abandoned_room_grace_seconds.
    room_idle_ttl_seconds: int = Field(default=7200, ge=60)
    abandoned_room_grace_seconds: int = Field(default=300, ge=0)
    reaper_interval_seconds: int = Field(default=60, ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    def game_settings(self) -> GameSettings:
        return GameSettings(max_players=self.max_players_per_room)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
