"""Offline precomputation of the variant table."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from ..dimensions import VariantKey, iter_variant_keys, variant_space_size
from ..groups import GroupMapping, ResolvedGroups
from ..predicates import GroupReference, ResolvedPredicate, SongFilter
from ..variants import Variant, VariantTable, rank_variants, validate_variants
from .song_catalog import SongCatalog
from .variant_store import VariantStore

logger = logging.getLogger(__name__)


class VariantBuilder:
    """Enumerates every dimension combination and counts matching songs."""

    def __init__(
        self,
        catalog: SongCatalog,
        group_mapping: GroupMapping,
        *,
        concurrency: int = 8,
    ) -> None:
        self._catalog = catalog
        self._group_mapping = group_mapping
        self._concurrency = max(1, concurrency)

    async def resolve_groups(self) -> ResolvedGroups:
        categories = await self._catalog.find_all_groups()
        return self._group_mapping.resolve(category.id for category in categories)

    async def build(self, keys: Iterable[VariantKey] | None = None) -> VariantTable:
        """Return a ranked, validated table. Nothing is persisted here."""

        groups = await self.resolve_groups()
        selected = list(keys) if keys is not None else list(iter_variant_keys())
        expected = len(selected) if keys is not None else variant_space_size()
        logger.info(
            "Building %s variants (OTHER ids: %s, derived=%s)",
            len(selected),
            len(groups.ids_for("OTHER")),
            groups.other_derived,
        )

        semaphore = asyncio.Semaphore(self._concurrency)
        processed = 0

        async def _evaluate(key: VariantKey) -> Variant:
            nonlocal processed
            predicate = ResolvedPredicate.for_key(key)
            group = GroupReference(key.genre_ref) if key.genre_ref else None
            song_filter = SongFilter.build(predicate, group, groups)
            async with semaphore:
                match_count = await self._catalog.count(song_filter)
            processed += 1
            if processed % 50 == 0:
                logger.info("Processed %s/%s variants", processed, len(selected))
            return Variant(
                key=key,
                predicate=predicate,
                genre_ref=key.genre_ref,
                match_count=match_count,
            )

        tasks = [asyncio.create_task(_evaluate(key)) for key in selected]
        try:
            evaluated = await asyncio.gather(*tasks)
        except Exception:
            # No count queries may outlive a failed build.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        ranked = rank_variants(evaluated)
        validate_variants(ranked, expected=expected)

        empty = sum(1 for variant in ranked if variant.match_count == 0)
        if empty:
            logger.warning("%s variants have no matching songs", empty)
        return VariantTable(ranked)

    async def build_and_publish(self, store: VariantStore) -> VariantTable:
        """Build a table and publish it atomically, then serve it from ``store``."""

        published = await store.publish(await self.build())
        store.swap(published)
        return published
