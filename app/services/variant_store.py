"""Persistence and in-memory snapshot of the published variant table."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import VariantBuild, VariantRecord
from ..dimensions import WILDCARD, VariantKey, parse_variant_key
from ..errors import BuildInconsistency, InvalidKeyFormat
from ..predicates import ResolvedPredicate
from ..variants import Variant, VariantTable

logger = logging.getLogger(__name__)


def _catalog_size(table: VariantTable) -> int:
    everything = table.get(str(VariantKey(WILDCARD, WILDCARD, WILDCARD, WILDCARD)))
    return everything.match_count if everything is not None else 0


class VariantStore:
    """Owns the currently served table and its database copy.

    The served :class:`VariantTable` is never mutated; reloading replaces the
    reference in one assignment so concurrent readers always see a complete
    table.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._table = VariantTable.empty()

    @property
    def table(self) -> VariantTable:
        return self._table

    def swap(self, table: VariantTable) -> None:
        self._table = table

    async def publish(self, table: VariantTable) -> VariantTable:
        """Replace the persisted table in a single transaction.

        Returns ``table`` stamped with its new build id and time. On failure the
        transaction is rolled back and the previous table stays in place.
        """

        now = datetime.utcnow()
        async with self._session_factory() as session:
            try:
                build = VariantBuild(
                    built_at=now,
                    variant_count=len(table),
                    catalog_size=_catalog_size(table),
                )
                session.add(build)
                await session.flush()
                await session.execute(delete(VariantRecord))
                for variant in table:
                    session.add(
                        VariantRecord(
                            key=str(variant.key),
                            build_id=build.id,
                            predicate=variant.predicate.to_payload(),
                            genre_ref=variant.genre_ref,
                            match_count=variant.match_count,
                            rank=variant.rank,
                        )
                    )
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            build_id = build.id

        logger.info("Published variant build %s with %s variants", build_id, len(table))
        return VariantTable(table, build_id=build_id, built_at=now)

    async def latest_build_id(self) -> int | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(VariantRecord.build_id).limit(1)
            )
            return result.scalar_one_or_none()

    async def load(self) -> VariantTable:
        """Read the persisted table from the database."""

        async with self._session_factory() as session:
            result = await session.execute(
                select(VariantRecord).order_by(VariantRecord.rank)
            )
            records = result.scalars().all()
            build: VariantBuild | None = None
            if records:
                build = await session.get(VariantBuild, records[0].build_id)

        variants: list[Variant] = []
        for record in records:
            try:
                key = parse_variant_key(record.key)
            except InvalidKeyFormat:
                logger.warning("Skipping stored variant with invalid key %s", record.key)
                continue
            variants.append(
                Variant(
                    key=key,
                    predicate=ResolvedPredicate.from_payload(record.predicate),
                    genre_ref=record.genre_ref,
                    match_count=record.match_count,
                    rank=record.rank,
                )
            )
        if len({record.build_id for record in records}) > 1:
            raise BuildInconsistency("Stored variants belong to more than one build")
        return VariantTable(
            variants,
            build_id=build.id if build else None,
            built_at=build.built_at if build else None,
        )

    async def reload(self) -> bool:
        """Load the newest published table if it differs from the served one."""

        build_id = await self.latest_build_id()
        if build_id is None:
            if len(self._table):
                logger.warning("No published variant table found; keeping current table")
            return False
        if build_id == self._table.build_id:
            return False
        table = await self.load()
        self.swap(table)
        logger.info("Serving variant build %s (%s variants)", build_id, len(table))
        return True
