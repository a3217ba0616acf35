"""Pydantic models describing API payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ReportCategory = Literal["WRONG_SONG_DATA", "SONG_ISSUE", "OTHER"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RandomSongResponse(_CamelModel):
    """A sampled song plus the clip the client should play."""

    id: str
    title: str
    artists: list[str] = Field(default_factory=list)
    youtube_id: str = Field(alias="youtubeId")
    clip_duration: int = Field(alias="clipDuration", ge=0)
    clip_start_time: int = Field(alias="clipStartTime", ge=0)
    release_year: int | None = Field(default=None, alias="releaseYear")
    songs_amount: int = Field(alias="songsAmount", ge=0)

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


class ReportRequest(_CamelModel):
    category: ReportCategory
    message: str | None = Field(default=None, max_length=2_000)


class ReportResponse(_CamelModel):
    success: bool = True
    report_id: str = Field(alias="reportId")
    song_id: str = Field(alias="songId")
    category: ReportCategory

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


class VariantEntry(_CamelModel):
    key: str
    songs_amount: int = Field(alias="songsAmount")
    ordinal_number: int = Field(alias="ordinalNumber")
    wildcards: int
