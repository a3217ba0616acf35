"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Mapping

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .dimensions import DEFAULT_CLIP_BOUNDS, DIFFICULTY_TIER_MAP
from .groups import GroupMapping, parse_category_ids


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Tomster", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=5000, alias="PORT")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./tomster.db", alias="DATABASE_URL"
    )

    # Colon separated category ids, e.g. ``CATEGORY_ROCK=id1:id2``.
    category_pop: str = Field(default="", alias="CATEGORY_POP")
    category_rap: str = Field(default="", alias="CATEGORY_RAP")
    category_rock: str = Field(default="", alias="CATEGORY_ROCK")
    category_other: str = Field(default="", alias="CATEGORY_OTHER")

    build_concurrency: int = Field(default=8, alias="BUILD_CONCURRENCY", ge=1, le=64)
    catalog_timeout_seconds: float = Field(
        default=5.0, alias="CATALOG_TIMEOUT", gt=0, le=120
    )
    refresh_interval_seconds: int = Field(
        default=300, alias="REFRESH_INTERVAL", ge=10
    )
    clip_bounds: dict[str, tuple[int, int]] = Field(
        default_factory=dict, alias="CLIP_BOUNDS"
    )
    clip_start_snap_seconds: int = Field(
        default=10, alias="CLIP_START_SNAP_SECONDS", ge=0, le=120
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator(
        "category_pop",
        "category_rap",
        "category_rock",
        "category_other",
        mode="before",
    )
    @classmethod
    def _normalise_category_ids(cls, value: object) -> str:
        """Accept either the colon separated form or a list of ids."""

        return ":".join(sorted(parse_category_ids(value)))

    @field_validator("clip_bounds")
    @classmethod
    def _validate_clip_bounds(
        cls, value: Mapping[str, tuple[int, int]]
    ) -> dict[str, tuple[int, int]]:
        cleaned: dict[str, tuple[int, int]] = {}
        for raw_tier, bounds in value.items():
            tier = raw_tier.strip().upper()
            if tier not in DIFFICULTY_TIER_MAP:
                raise ValueError(f"Unknown difficulty tier {raw_tier!r} in CLIP_BOUNDS")
            minimum, maximum = bounds
            if minimum < 1 or maximum < minimum:
                raise ValueError(
                    f"CLIP_BOUNDS for {tier} must satisfy 1 <= min <= max"
                )
            cleaned[tier] = (minimum, maximum)
        return cleaned

    @property
    def group_mapping(self) -> GroupMapping:
        """Return an immutable snapshot of the configured genre groups."""

        return GroupMapping(
            pop=parse_category_ids(self.category_pop),
            rap=parse_category_ids(self.category_rap),
            rock=parse_category_ids(self.category_rock),
            other=parse_category_ids(self.category_other),
        )

    @property
    def clip_bounds_table(self) -> dict[str, tuple[int, int]]:
        """Return clip bounds per tier with configured overrides applied."""

        return {**DEFAULT_CLIP_BOUNDS, **self.clip_bounds}

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
