"""Filter dimensions used to build and address variants."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from .errors import InvalidKeyFormat

WILDCARD = "RANDOM"
KEY_SEPARATOR = "-"

_SEGMENT_RE = re.compile(r"^[A-Z0-9]+(?:-[A-Z0-9]+){3}$")


@dataclass(frozen=True)
class DifficultyTier:
    """A concrete difficulty tier and the song ratings it covers."""

    key: str
    rating_min: int
    rating_max: int
    clip_min: int
    clip_max: int
    start_from_beginning_chance: float = 0.0


@dataclass(frozen=True)
class RegionBucket:
    key: str
    country_origin: str


@dataclass(frozen=True)
class EraBucket:
    """Inclusive release-year bounds; ``None`` leaves a side open."""

    key: str
    year_min: int | None
    year_max: int | None


DIFFICULTY_TIERS: tuple[DifficultyTier, ...] = (
    DifficultyTier(
        key="VERYEASY",
        rating_min=1,
        rating_max=2,
        clip_min=45,
        clip_max=60,
        start_from_beginning_chance=0.5,
    ),
    DifficultyTier(key="EASY", rating_min=1, rating_max=3, clip_min=30, clip_max=45),
    DifficultyTier(key="MEDIUM", rating_min=2, rating_max=4, clip_min=20, clip_max=30),
    DifficultyTier(key="HARD", rating_min=3, rating_max=5, clip_min=15, clip_max=20),
    DifficultyTier(key="VERYHARD", rating_min=4, rating_max=5, clip_min=6, clip_max=12),
)

GENRE_GROUPS: tuple[str, ...] = ("ROCK", "RAP", "POP", "OTHER")
NAMED_GENRE_GROUPS: tuple[str, ...] = ("POP", "RAP", "ROCK")
OTHER_GROUP = "OTHER"

REGION_BUCKETS: tuple[RegionBucket, ...] = (
    RegionBucket(key="LOCAL", country_origin="local"),
    RegionBucket(key="INTERNATIONAL", country_origin="international"),
)

ERA_BUCKETS: tuple[EraBucket, ...] = (
    EraBucket(key="PRE2000", year_min=None, year_max=1999),
    EraBucket(key="2000TO2015", year_min=2000, year_max=2015),
    EraBucket(key="POST2015", year_min=2016, year_max=None),
)


DIFFICULTY_TIER_MAP = {tier.key: tier for tier in DIFFICULTY_TIERS}
REGION_BUCKET_MAP = {bucket.key: bucket for bucket in REGION_BUCKETS}
ERA_BUCKET_MAP = {bucket.key: bucket for bucket in ERA_BUCKETS}
DEFAULT_CLIP_BOUNDS: dict[str, tuple[int, int]] = {
    tier.key: (tier.clip_min, tier.clip_max) for tier in DIFFICULTY_TIERS
}

DIFFICULTY_VALUES: tuple[str, ...] = (*DIFFICULTY_TIER_MAP, WILDCARD)
GENRE_VALUES: tuple[str, ...] = (*GENRE_GROUPS, WILDCARD)
REGION_VALUES: tuple[str, ...] = (*REGION_BUCKET_MAP, WILDCARD)
ERA_VALUES: tuple[str, ...] = (*ERA_BUCKET_MAP, WILDCARD)

DIMENSIONS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("difficulty", DIFFICULTY_VALUES),
    ("genre", GENRE_VALUES),
    ("region", REGION_VALUES),
    ("era", ERA_VALUES),
)


@dataclass(frozen=True, order=True)
class VariantKey:
    """One value per dimension, in key order."""

    difficulty: str
    genre: str
    region: str
    era: str

    def __str__(self) -> str:
        return KEY_SEPARATOR.join(self.values())

    def values(self) -> tuple[str, str, str, str]:
        return (self.difficulty, self.genre, self.region, self.era)

    def count_randoms(self) -> int:
        """Return how many dimensions are left as wildcards."""

        return sum(1 for value in self.values() if value == WILDCARD)

    @property
    def genre_ref(self) -> str | None:
        return None if self.genre == WILDCARD else self.genre


def iter_variant_keys() -> Iterator[VariantKey]:
    """Yield every combination of dimension values in declaration order."""

    for difficulty in DIFFICULTY_VALUES:
        for genre in GENRE_VALUES:
            for region in REGION_VALUES:
                for era in ERA_VALUES:
                    yield VariantKey(difficulty, genre, region, era)


def variant_space_size() -> int:
    size = 1
    for _, values in DIMENSIONS:
        size *= len(values)
    return size


def parse_variant_key(raw: str) -> VariantKey:
    """Validate ``raw`` against the ``DIFFICULTY-GENRE-REGION-ERA`` grammar."""

    if not isinstance(raw, str) or not _SEGMENT_RE.match(raw):
        raise InvalidKeyFormat(
            "Expected 4 uppercase segments, e.g. EASY-ROCK-LOCAL-POST2015"
        )
    segments = raw.split(KEY_SEPARATOR)
    for (name, allowed), segment in zip(DIMENSIONS, segments):
        if segment not in allowed:
            raise InvalidKeyFormat(f"Unknown {name} value {segment!r}")
    return VariantKey(*segments)
