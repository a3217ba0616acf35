"""Request-time orchestration: resolve a variant, sample a song, cut a clip."""

from __future__ import annotations

import asyncio
import logging
import random
from contextlib import suppress
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings
from ..db_models import Report
from ..errors import CatalogUnavailable, NoContent
from ..groups import GroupMapping, ResolvedGroups
from ..models import RandomSongResponse, ReportCategory, ReportResponse, VariantEntry
from ..predicates import SongFilter
from ..variants import VariantSubset, summarize_variants
from .clip_sampler import compute_clip_window
from .song_catalog import SongCatalog
from .variant_store import VariantStore

logger = logging.getLogger(__name__)


class GameService:
    """Serves random clips from the published variant table."""

    def __init__(
        self,
        settings: Settings,
        catalog: SongCatalog,
        store: VariantStore,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings
        self._catalog = catalog
        self._store = store
        self._session_factory = session_factory
        self._group_mapping: GroupMapping = settings.group_mapping
        self._groups: ResolvedGroups | None = None
        self._rng = rng or random.Random()
        self._refresh_task: asyncio.Task[None] | None = None
        self._refresh_seconds = settings.refresh_interval_seconds

    @property
    def store(self) -> VariantStore:
        return self._store

    async def start(self) -> None:
        """Load the current snapshots and launch the refresh loop."""

        await self.refresh()
        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def stop(self) -> None:
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._refresh_task
        self._refresh_task = None

    async def refresh(self) -> ResolvedGroups:
        """Re-read group memberships and pick up a newer variant table."""

        categories = await self._catalog.find_all_groups()
        groups = self._group_mapping.resolve(category.id for category in categories)
        self._groups = groups
        await self._store.reload()
        return groups

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self._refresh_seconds)
            try:
                await self.refresh()
            except Exception as exc:  # pragma: no cover - background safety net
                logger.exception("Scheduled refresh failed: %s", exc)

    async def current_groups(self) -> ResolvedGroups:
        if self._groups is None:
            return await self.refresh()
        return self._groups

    async def play(self, raw_key: str) -> RandomSongResponse:
        """Return a random song and clip window for ``raw_key``.

        Raises ``InvalidKeyFormat`` and ``UnknownVariant`` before touching the
        catalog, ``NoContent`` when the variant is empty and
        ``CatalogUnavailable`` when the catalog query fails.
        """

        variant = self._store.table.resolve(raw_key)
        if variant.match_count == 0:
            raise NoContent(
                "No available songs found for this block variant", songsAmount=0
            )

        groups = await self.current_groups()
        song_filter = SongFilter.build(variant.predicate, variant.group, groups)
        song = await self._catalog.find_one(song_filter, randomize=True)
        if song is None:
            logger.warning(
                "Variant %s expected %s songs but none matched; table may be stale",
                variant.key,
                variant.match_count,
            )
            raise NoContent(
                "No available songs found for this block variant", songsAmount=0
            )

        window = compute_clip_window(
            song.duration,
            variant.key.difficulty,
            rng=self._rng,
            bounds=self._settings.clip_bounds_table,
            snap_seconds=self._settings.clip_start_snap_seconds,
        )
        if window.clamped:
            logger.info(
                "Song %s (%ss) shorter than %s clip; playing whole song",
                song.id,
                song.duration,
                window.tier,
            )
        return RandomSongResponse(
            id=song.id,
            title=song.title,
            artists=song.artists,
            youtube_id=song.youtube_id,
            clip_duration=window.duration,
            clip_start_time=window.start_offset,
            release_year=song.release_year,
            songs_amount=variant.match_count,
        )

    async def report_song(
        self, song_id: str, category: ReportCategory, message: str | None = None
    ) -> ReportResponse:
        """Store a problem report. Raises ``KeyError`` for unknown songs."""

        if not await self._catalog.song_exists(song_id):
            raise KeyError(f"Song {song_id} not found")
        try:
            async with self._session_factory() as session:
                report = Report(song_id=song_id, category=category, message=message or "")
                session.add(report)
                await session.commit()
                report_id = report.id
        except SQLAlchemyError as exc:
            logger.exception("Storing report for song %s failed", song_id)
            raise CatalogUnavailable("Could not store the report") from exc
        return ReportResponse(report_id=report_id, song_id=song_id, category=category)

    def list_variants(self, subset: VariantSubset) -> list[VariantEntry]:
        return [
            VariantEntry(
                key=str(variant.key),
                songs_amount=variant.match_count,
                ordinal_number=variant.rank,
                wildcards=variant.key.count_randoms(),
            )
            for variant in self._store.table.subset(subset)
        ]

    def variant_stats(self, subset: VariantSubset) -> dict[str, Any]:
        table = self._store.table
        summary = summarize_variants(table.subset(subset))
        return {
            "subset": subset.name,
            "buildId": table.build_id,
            "builtAt": table.built_at.isoformat() if table.built_at else None,
            **summary,
        }
