from __future__ import annotations

from functools import lru_cache
from uuid import UUID

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


SERVICE_DESK_GROUP_ID = UUID("5e7d1c2a-0000-4000-8000-000000000001")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SERVICEDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    archive_after_days: int = Field(default=3, ge=0)

    service_desk_group_id: UUID = SERVICE_DESK_GROUP_ID
    service_desk_group_name: str = "SERVICE-DESK"

    description_min_chars: int = 8
    description_max_chars: int = 255
    comment_max_chars: int = 255

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
