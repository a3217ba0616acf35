"""Dimension definitions and variant key grammar."""

from __future__ import annotations

import pytest

from app.dimensions import (
    DIFFICULTY_VALUES,
    DIMENSIONS,
    WILDCARD,
    VariantKey,
    iter_variant_keys,
    parse_variant_key,
    variant_space_size,
)
from app.errors import InvalidKeyFormat


def test_every_dimension_has_a_wildcard() -> None:
    for name, values in DIMENSIONS:
        assert values[-1] == WILDCARD, name
        assert len(set(values)) == len(values), name


def test_difficulty_has_at_least_five_concrete_tiers() -> None:
    concrete = [value for value in DIFFICULTY_VALUES if value != WILDCARD]
    assert concrete == ["VERYEASY", "EASY", "MEDIUM", "HARD", "VERYHARD"]


def test_enumeration_covers_the_cartesian_product_once() -> None:
    keys = list(iter_variant_keys())

    assert len(keys) == variant_space_size() == 6 * 5 * 3 * 4
    assert len({str(key) for key in keys}) == len(keys)


def test_parse_variant_key_round_trips_to_string() -> None:
    key = parse_variant_key("EASY-ROCK-LOCAL-POST2015")

    assert key == VariantKey("EASY", "ROCK", "LOCAL", "POST2015")
    assert str(key) == "EASY-ROCK-LOCAL-POST2015"
    assert key.genre_ref == "ROCK"
    assert key.count_randoms() == 0


def test_all_wildcards_key() -> None:
    key = parse_variant_key("RANDOM-RANDOM-RANDOM-RANDOM")

    assert key.count_randoms() == 4
    assert key.genre_ref is None


def test_era_segment_may_contain_digits() -> None:
    key = parse_variant_key("MEDIUM-RANDOM-INTERNATIONAL-2000TO2015")
    assert key.era == "2000TO2015"


@pytest.mark.parametrize(
    "raw",
    [
        "EASY-ROCK-LOCAL",
        "EASY-ROCK-LOCAL-POST2015-EXTRA",
        "easy-rock-local-post2015",
        "EASY-ROCK--POST2015",
        "EASY_ROCK_LOCAL_POST2015",
        "",
        "ROCK-EASY-LOCAL-POST2015",
        "EASY-JAZZ-LOCAL-POST2015",
        "EASY-ROCK-LOCAL-POST2030",
    ],
)
def test_parse_variant_key_rejects_malformed_keys(raw: str) -> None:
    with pytest.raises(InvalidKeyFormat):
        parse_variant_key(raw)
