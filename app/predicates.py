"""Filter values stored per variant and resolved at query time."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .dimensions import (
    DIFFICULTY_TIER_MAP,
    ERA_BUCKET_MAP,
    REGION_BUCKET_MAP,
    WILDCARD,
    VariantKey,
)
from .groups import ResolvedGroups


@dataclass(frozen=True)
class ValueRange:
    """Inclusive integer range; ``None`` bounds are open."""

    gte: int | None = None
    lte: int | None = None

    def to_payload(self) -> dict[str, int]:
        payload: dict[str, int] = {}
        if self.gte is not None:
            payload["gte"] = self.gte
        if self.lte is not None:
            payload["lte"] = self.lte
        return payload

    @classmethod
    def from_payload(cls, data: Mapping[str, Any] | None) -> "ValueRange | None":
        if not data:
            return None
        return cls(gte=data.get("gte"), lte=data.get("lte"))


@dataclass(frozen=True)
class ResolvedPredicate:
    """Clauses fixed when the variant table is built.

    The genre clause is deliberately absent; see :class:`GroupReference`.
    """

    difficulty: ValueRange | None = None
    country_origin: str | None = None
    release_year: ValueRange | None = None

    @classmethod
    def for_key(cls, key: VariantKey) -> "ResolvedPredicate":
        difficulty = None
        if key.difficulty != WILDCARD:
            tier = DIFFICULTY_TIER_MAP[key.difficulty]
            difficulty = ValueRange(gte=tier.rating_min, lte=tier.rating_max)

        country_origin = None
        if key.region != WILDCARD:
            country_origin = REGION_BUCKET_MAP[key.region].country_origin

        release_year = None
        if key.era != WILDCARD:
            era = ERA_BUCKET_MAP[key.era]
            release_year = ValueRange(gte=era.year_min, lte=era.year_max)

        return cls(
            difficulty=difficulty,
            country_origin=country_origin,
            release_year=release_year,
        )

    def is_empty(self) -> bool:
        return (
            self.difficulty is None
            and self.country_origin is None
            and self.release_year is None
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.difficulty is not None:
            payload["difficulty"] = self.difficulty.to_payload()
        if self.country_origin is not None:
            payload["countryOrigin"] = self.country_origin
        if self.release_year is not None:
            payload["releaseYear"] = self.release_year.to_payload()
        return payload

    @classmethod
    def from_payload(cls, data: Mapping[str, Any] | None) -> "ResolvedPredicate":
        data = data or {}
        return cls(
            difficulty=ValueRange.from_payload(data.get("difficulty")),
            country_origin=data.get("countryOrigin"),
            release_year=ValueRange.from_payload(data.get("releaseYear")),
        )


@dataclass(frozen=True)
class GroupReference:
    """Genre group name kept unresolved until the filter is used."""

    group: str

    def resolve(self, groups: ResolvedGroups) -> frozenset[str]:
        return groups.ids_for(self.group)


@dataclass(frozen=True)
class SongFilter:
    """Fully resolved filter handed to the song catalog.

    ``category_ids`` of ``None`` means no genre constraint; an empty set
    matches nothing.
    """

    predicate: ResolvedPredicate
    category_ids: frozenset[str] | None = None

    @classmethod
    def build(
        cls,
        predicate: ResolvedPredicate,
        group: GroupReference | None,
        groups: ResolvedGroups,
    ) -> "SongFilter":
        category_ids = group.resolve(groups) if group is not None else None
        return cls(predicate=predicate, category_ids=category_ids)
