"""Read-only access to the song catalog."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy import Select, exists, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import Category, Song, SongCategory
from ..errors import CatalogUnavailable
from ..predicates import SongFilter

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class SongRecord:
    """Plain view of a song returned by catalog queries."""

    id: str
    title: str
    artists: list[str]
    youtube_id: str
    duration: int
    release_year: int | None


@dataclass(slots=True)
class CategoryRecord:
    id: str
    name: str


class SongCatalog:
    """Implements ``count``, ``find_one`` and ``find_all_groups`` over SQL."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._session_factory = session_factory
        self._timeout_seconds = timeout_seconds

    async def count(self, song_filter: SongFilter) -> int:
        """Return how many songs satisfy ``song_filter``."""

        async def _query(session: AsyncSession) -> int:
            stmt = self._apply_filter(select(func.count(Song.id)), song_filter)
            result = await session.execute(stmt)
            return int(result.scalar_one())

        return await self._run(_query)

    async def find_one(
        self, song_filter: SongFilter, *, randomize: bool = True
    ) -> SongRecord | None:
        """Return one matching song, uniformly random unless told otherwise."""

        async def _query(session: AsyncSession) -> SongRecord | None:
            stmt = self._apply_filter(select(Song), song_filter)
            stmt = stmt.order_by(func.random() if randomize else Song.id).limit(1)
            result = await session.execute(stmt)
            song = result.scalar_one_or_none()
            if song is None:
                return None
            return SongRecord(
                id=song.id,
                title=song.title,
                artists=list(song.artists or []),
                youtube_id=song.youtube_id,
                duration=int(song.duration),
                release_year=song.release_year,
            )

        return await self._run(_query)

    async def find_all_groups(self) -> list[CategoryRecord]:
        """Return every category, ordered by identifier."""

        async def _query(session: AsyncSession) -> list[CategoryRecord]:
            result = await session.execute(select(Category).order_by(Category.id))
            return [
                CategoryRecord(id=category.id, name=category.name)
                for category in result.scalars().all()
            ]

        return await self._run(_query)

    async def song_exists(self, song_id: str) -> bool:
        async def _query(session: AsyncSession) -> bool:
            song = await session.get(Song, song_id)
            return song is not None

        return await self._run(_query)

    @staticmethod
    def _apply_filter(stmt: Select[Any], song_filter: SongFilter) -> Select[Any]:
        predicate = song_filter.predicate
        if predicate.difficulty is not None:
            if predicate.difficulty.gte is not None:
                stmt = stmt.where(Song.difficulty >= predicate.difficulty.gte)
            if predicate.difficulty.lte is not None:
                stmt = stmt.where(Song.difficulty <= predicate.difficulty.lte)
        if predicate.country_origin is not None:
            stmt = stmt.where(Song.country_origin == predicate.country_origin)
        if predicate.release_year is not None:
            if predicate.release_year.gte is not None:
                stmt = stmt.where(Song.release_year >= predicate.release_year.gte)
            if predicate.release_year.lte is not None:
                stmt = stmt.where(Song.release_year <= predicate.release_year.lte)
        if song_filter.category_ids is not None:
            # An empty id set renders as a false IN clause and matches nothing.
            membership = exists().where(
                SongCategory.song_id == Song.id,
                SongCategory.category_id.in_(sorted(song_filter.category_ids)),
            )
            stmt = stmt.where(membership)
        return stmt

    async def _run(self, query: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def _execute() -> T:
            async with self._session_factory() as session:
                return await query(session)

        try:
            return await asyncio.wait_for(_execute(), timeout=self._timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.warning(
                "Catalog query exceeded %.1fs timeout", self._timeout_seconds
            )
            raise CatalogUnavailable("Song catalog query timed out") from exc
        except SQLAlchemyError as exc:
            logger.exception("Catalog query failed: %s", exc)
            raise CatalogUnavailable("Song catalog is unavailable") from exc
