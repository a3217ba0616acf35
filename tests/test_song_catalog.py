from __future__ import annotations

import asyncio
from collections import Counter

import pytest

from app.database import Database
from app.errors import CatalogUnavailable
from app.predicates import ResolvedPredicate, SongFilter, ValueRange
from app.services.song_catalog import SongCatalog

from factories import SONGS, database_url, seed_catalog

EVERYTHING = SongFilter(ResolvedPredicate())


def test_find_one_draws_uniformly_over_all_matches(tmp_path) -> None:
    draws = 700

    async def runner() -> Counter[str]:
        database = Database(database_url(tmp_path))
        try:
            await seed_catalog(database)
            catalog = SongCatalog(database.session_factory)
            picks: Counter[str] = Counter()
            for _ in range(draws):
                song = await catalog.find_one(EVERYTHING)
                assert song is not None
                picks[song.id] += 1
            return picks
        finally:
            await database.dispose()

    picks = asyncio.run(runner())

    assert set(picks) == {seed.id for seed in SONGS}
    # Expected share is 100 per song; 50 is far outside random variation.
    assert min(picks.values()) > 50


def test_find_one_respects_filter_and_ordering(tmp_path) -> None:
    hard = SongFilter(
        ResolvedPredicate(difficulty=ValueRange(gte=5, lte=5)),
        category_ids=frozenset({"cat-rap", "cat-jazz"}),
    )
    nothing = SongFilter(ResolvedPredicate(), category_ids=frozenset())

    async def runner():
        database = Database(database_url(tmp_path))
        try:
            await seed_catalog(database)
            catalog = SongCatalog(database.session_factory)
            return (
                await catalog.count(hard),
                await catalog.find_one(hard, randomize=False),
                await catalog.count(nothing),
                await catalog.find_one(nothing),
            )
        finally:
            await database.dispose()

    count, first, empty_count, empty_pick = asyncio.run(runner())

    assert count == 2
    assert first is not None and first.id == "song-jazz-sting"
    assert empty_count == 0
    assert empty_pick is None


def test_query_timeout_becomes_catalog_unavailable(tmp_path) -> None:
    async def runner() -> CatalogUnavailable:
        database = Database(database_url(tmp_path))
        try:
            await seed_catalog(database)
            catalog = SongCatalog(database.session_factory, timeout_seconds=1e-6)
            with pytest.raises(CatalogUnavailable) as excinfo:
                await catalog.count(EVERYTHING)
            return excinfo.value
        finally:
            await database.dispose()

    error = asyncio.run(runner())

    assert error.retryable is True
    assert error.status_code == 503
    assert isinstance(error.__cause__, asyncio.TimeoutError)


def test_database_error_becomes_catalog_unavailable(tmp_path) -> None:
    async def runner() -> list[CatalogUnavailable]:
        # No schema: every query fails with "no such table".
        database = Database(database_url(tmp_path, "empty.db"))
        try:
            catalog = SongCatalog(database.session_factory)
            errors: list[CatalogUnavailable] = []
            for query in (
                catalog.count(EVERYTHING),
                catalog.find_one(EVERYTHING),
                catalog.find_all_groups(),
            ):
                with pytest.raises(CatalogUnavailable) as excinfo:
                    await query
                errors.append(excinfo.value)
            return errors
        finally:
            await database.dispose()

    errors = asyncio.run(runner())

    assert len(errors) == 3
    assert all(error.retryable for error in errors)
    assert all(error.code == "catalog_unavailable" for error in errors)
