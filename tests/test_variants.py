"""Ranking, validation, subsets and aggregation over variant tables."""

from __future__ import annotations

import pytest

from app.dimensions import iter_variant_keys, parse_variant_key
from app.errors import BuildInconsistency, InvalidKeyFormat, UnknownVariant
from app.predicates import ResolvedPredicate
from app.variants import (
    VARIANT_SUBSETS,
    Variant,
    VariantTable,
    get_subset,
    rank_variants,
    subset_payload,
    summarize_variants,
    validate_variants,
)


def _variant(raw_key: str, match_count: int, rank: int = 0) -> Variant:
    key = parse_variant_key(raw_key)
    return Variant(
        key=key,
        predicate=ResolvedPredicate.for_key(key),
        genre_ref=key.genre_ref,
        match_count=match_count,
        rank=rank,
    )


def _full_table() -> VariantTable:
    variants = [
        _variant(str(key), 4 - key.count_randoms() + key.count_randoms() * 10)
        for key in iter_variant_keys()
    ]
    return VariantTable(rank_variants(variants))


def test_rank_orders_by_count_then_key() -> None:
    ranked = rank_variants(
        [
            _variant("HARD-POP-LOCAL-PRE2000", 3),
            _variant("EASY-POP-LOCAL-PRE2000", 3),
            _variant("RANDOM-RANDOM-RANDOM-RANDOM", 9),
            _variant("MEDIUM-RAP-LOCAL-PRE2000", 0),
        ]
    )

    assert [(str(v.key), v.rank) for v in ranked] == [
        ("RANDOM-RANDOM-RANDOM-RANDOM", 1),
        ("EASY-POP-LOCAL-PRE2000", 2),
        ("HARD-POP-LOCAL-PRE2000", 3),
        ("MEDIUM-RAP-LOCAL-PRE2000", 4),
    ]


def test_validate_rejects_duplicates() -> None:
    variants = rank_variants(
        [_variant("EASY-POP-LOCAL-PRE2000", 1), _variant("EASY-POP-LOCAL-PRE2000", 1)]
    )

    with pytest.raises(BuildInconsistency, match="Duplicate"):
        validate_variants(variants, expected=2)


def test_validate_rejects_negative_counts() -> None:
    variants = rank_variants([_variant("EASY-POP-LOCAL-PRE2000", -1)])

    with pytest.raises(BuildInconsistency, match="Negative"):
        validate_variants(variants, expected=1)


def test_validate_rejects_gaps_in_ranks() -> None:
    variants = [_variant("EASY-POP-LOCAL-PRE2000", 2, 1), _variant("HARD-POP-LOCAL-PRE2000", 1, 3)]

    with pytest.raises(BuildInconsistency, match="dense"):
        validate_variants(variants, expected=2)


def test_validate_rejects_missing_variants() -> None:
    variants = rank_variants([_variant("EASY-POP-LOCAL-PRE2000", 2)])

    with pytest.raises(BuildInconsistency, match="Expected 2"):
        validate_variants(variants, expected=2)


def test_table_distinguishes_bad_and_unknown_keys() -> None:
    table = VariantTable(rank_variants([_variant("EASY-POP-LOCAL-PRE2000", 2)]))

    assert table.resolve("EASY-POP-LOCAL-PRE2000").match_count == 2
    with pytest.raises(InvalidKeyFormat):
        table.resolve("EASY-POP-LOCAL")
    with pytest.raises(UnknownVariant):
        table.resolve("HARD-POP-LOCAL-PRE2000")


def test_subsets_partition_the_full_table() -> None:
    table = _full_table()
    partition = [get_subset(name) for name in ("max-one-info", "two-info", "three-info", "four-info")]

    sizes = [len(table.subset(subset)) for subset in partition]

    assert sum(sizes) == len(table) == 360
    assert len(table.subset(get_subset("all-possible"))) == 360
    assert sizes[-1] == 5 * 4 * 2 * 3
    # Subsets keep the ranks of the full table.
    ranks = {str(v.key): v.rank for v in table}
    for subset in VARIANT_SUBSETS:
        for variant in table.subset(subset):
            assert variant.rank == ranks[str(variant.key)]


def test_subset_lookup_is_case_insensitive_and_strict() -> None:
    assert get_subset(None).name == "all-possible"
    assert get_subset("TWO-INFO").name == "two-info"
    with pytest.raises(ValueError):
        get_subset("five-info")


def test_subset_payload_uses_key_mapping() -> None:
    table = _full_table()

    payload = subset_payload(table, get_subset("max-one-info"))

    entry = payload["RANDOM-RANDOM-RANDOM-RANDOM"]
    assert entry["categoryRef"] is None
    assert entry["query"] == {}
    assert entry["ordinalNumber"] == 1
    assert payload["RANDOM-POP-RANDOM-RANDOM"]["categoryRef"] == "POP"


def test_summarize_reports_extremes() -> None:
    summary = summarize_variants(
        [
            _variant("EASY-POP-LOCAL-PRE2000", 4, 1),
            _variant("HARD-POP-LOCAL-PRE2000", 1, 2),
            _variant("MEDIUM-POP-LOCAL-PRE2000", 0, 3),
        ]
    )

    assert summary["totalVariants"] == 3
    assert summary["variantsWithSongs"] == 2
    assert summary["variantsWithoutSongs"] == 1
    assert summary["averageSongsPerVariant"] == pytest.approx(1.67)
    assert summary["mostSongs"] == {"key": "EASY-POP-LOCAL-PRE2000", "songsAmount": 4}
    assert summary["leastSongs"] == {"key": "HARD-POP-LOCAL-PRE2000", "songsAmount": 1}


def test_summarize_empty_table() -> None:
    summary = summarize_variants([])

    assert summary["totalVariants"] == 0
    assert summary["averageSongsPerVariant"] == 0.0
    assert summary["mostSongs"] is None
