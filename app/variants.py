"""Precomputed variant table, named subsets and reporting helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

from .dimensions import VariantKey, parse_variant_key
from .errors import BuildInconsistency, UnknownVariant
from .predicates import GroupReference, ResolvedPredicate


@dataclass(frozen=True)
class Variant:
    """One precomputed combination of dimension values."""

    key: VariantKey
    predicate: ResolvedPredicate
    genre_ref: str | None
    match_count: int
    rank: int = 0

    @property
    def group(self) -> GroupReference | None:
        return GroupReference(self.genre_ref) if self.genre_ref else None

    def to_payload(self) -> dict[str, Any]:
        return {
            "query": self.predicate.to_payload(),
            "categoryRef": self.genre_ref,
            "songsAmount": self.match_count,
            "ordinalNumber": self.rank,
        }


class VariantTable:
    """Immutable snapshot of the published variants, keyed by string key."""

    def __init__(
        self,
        variants: Iterable[Variant],
        *,
        build_id: int | None = None,
        built_at: datetime | None = None,
    ) -> None:
        ordered = sorted(variants, key=lambda variant: variant.rank)
        entries: dict[str, Variant] = {}
        for variant in ordered:
            entries[str(variant.key)] = variant
        self._entries: Mapping[str, Variant] = MappingProxyType(entries)
        self.build_id = build_id
        self.built_at = built_at

    @classmethod
    def empty(cls) -> "VariantTable":
        return cls(())

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Variant]:
        return iter(self._entries.values())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> Variant | None:
        return self._entries.get(key)

    def resolve(self, raw_key: str) -> Variant:
        """Validate ``raw_key`` and return its variant.

        Raises :class:`InvalidKeyFormat` for malformed keys and
        :class:`UnknownVariant` for well-formed keys missing from the table.
        """

        key = parse_variant_key(raw_key)
        variant = self._entries.get(str(key))
        if variant is None:
            raise UnknownVariant(
                f"Variant {key} is not part of the published table",
                buildId=self.build_id,
            )
        return variant

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Return the comparable ``key -> payload`` view of the table."""

        return {key: variant.to_payload() for key, variant in self._entries.items()}

    def subset(self, subset: "VariantSubset") -> list[Variant]:
        return [variant for variant in self if subset.matches(variant)]


def rank_variants(variants: Iterable[Variant]) -> list[Variant]:
    """Order by match count descending, ties by key, and assign dense ranks."""

    ordered = sorted(variants, key=lambda variant: (-variant.match_count, str(variant.key)))
    return [
        Variant(
            key=variant.key,
            predicate=variant.predicate,
            genre_ref=variant.genre_ref,
            match_count=variant.match_count,
            rank=position,
        )
        for position, variant in enumerate(ordered, start=1)
    ]


def validate_variants(variants: list[Variant], *, expected: int) -> None:
    """Raise :class:`BuildInconsistency` when table invariants do not hold."""

    seen: set[str] = set()
    for variant in variants:
        key = str(variant.key)
        if key in seen:
            raise BuildInconsistency(f"Duplicate variant key {key}")
        seen.add(key)
        if variant.match_count < 0:
            raise BuildInconsistency(f"Negative match count for {key}")
    if len(variants) != expected:
        raise BuildInconsistency(
            f"Expected {expected} variants but built {len(variants)}"
        )
    by_rank = sorted(variants, key=lambda variant: variant.rank)
    if [variant.rank for variant in by_rank] != list(range(1, len(variants) + 1)):
        raise BuildInconsistency("Variant ranks are not a dense 1..N permutation")
    for previous, current in zip(by_rank, by_rank[1:]):
        if current.match_count > previous.match_count:
            raise BuildInconsistency("Variant ranks do not follow match counts")


@dataclass(frozen=True)
class VariantSubset:
    """Named slice of the table defined by the number of wildcard dimensions."""

    name: str
    description: str
    min_randoms: int
    max_randoms: int

    def matches(self, variant: Variant) -> bool:
        return self.min_randoms <= variant.key.count_randoms() <= self.max_randoms


VARIANT_SUBSETS: tuple[VariantSubset, ...] = (
    VariantSubset("all-possible", "Every combination of dimension values.", 0, 4),
    VariantSubset("max-one-info", "At most one dimension constrained.", 3, 4),
    VariantSubset("two-info", "Exactly two dimensions constrained.", 2, 2),
    VariantSubset("three-info", "Exactly three dimensions constrained.", 1, 1),
    VariantSubset("four-info", "Every dimension constrained.", 0, 0),
)

VARIANT_SUBSET_MAP = {subset.name: subset for subset in VARIANT_SUBSETS}
DEFAULT_SUBSET = VARIANT_SUBSETS[0]


def get_subset(name: str | None) -> VariantSubset:
    if not name:
        return DEFAULT_SUBSET
    try:
        return VARIANT_SUBSET_MAP[name.strip().lower()]
    except KeyError as exc:
        raise ValueError(f"Unknown variant subset {name!r}") from exc


def subset_payload(table: VariantTable, subset: VariantSubset) -> dict[str, Any]:
    """Return the JSON document written for a subset export."""

    return {str(variant.key): variant.to_payload() for variant in table.subset(subset)}


def summarize_variants(variants: Iterable[Variant]) -> dict[str, Any]:
    """Read-only aggregation used by the stats endpoint and CLI."""

    items = list(variants)
    total = len(items)
    with_songs = [variant for variant in items if variant.match_count > 0]
    total_songs = sum(variant.match_count for variant in items)
    summary: dict[str, Any] = {
        "totalVariants": total,
        "variantsWithSongs": len(with_songs),
        "variantsWithoutSongs": total - len(with_songs),
        "averageSongsPerVariant": round(total_songs / total, 2) if total else 0.0,
        "mostSongs": None,
        "leastSongs": None,
    }
    if with_songs:
        ordered = sorted(with_songs, key=lambda v: (-v.match_count, str(v.key)))
        most, least = ordered[0], ordered[-1]
        summary["mostSongs"] = {"key": str(most.key), "songsAmount": most.match_count}
        summary["leastSongs"] = {
            "key": str(least.key),
            "songsAmount": least.match_count,
        }
    return summary
