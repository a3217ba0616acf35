"""Module executed when running ``python -m tomster``."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Sequence

import uvicorn

from app.config import Settings, settings
from app.database import Database
from app.services.song_catalog import SongCatalog
from app.services.variant_builder import VariantBuilder
from app.services.variant_store import VariantStore
from app.variants import VARIANT_SUBSETS, VariantTable, subset_payload, summarize_variants

logger = logging.getLogger("tomster")


def serve() -> None:
    """Start the uvicorn server using the configured settings."""

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )


def export_subsets(table: VariantTable, directory: Path) -> list[Path]:
    """Write one JSON document per named subset into ``directory``."""

    directory.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for subset in VARIANT_SUBSETS:
        path = directory / f"{subset.name}-variants.json"
        path.write_text(
            json.dumps(subset_payload(table, subset), indent=2), encoding="utf-8"
        )
        written.append(path)
    return written


async def build_variants(
    config: Settings, *, export_dir: Path | None = None, dry_run: bool = False
) -> VariantTable:
    """Rebuild the variant table and publish it unless ``dry_run`` is set."""

    database = Database(config.database_url)
    try:
        await database.create_all()
        catalog = SongCatalog(
            database.session_factory, timeout_seconds=config.catalog_timeout_seconds
        )
        builder = VariantBuilder(
            catalog, config.group_mapping, concurrency=config.build_concurrency
        )
        if dry_run:
            table = await builder.build()
        else:
            table = await builder.build_and_publish(VariantStore(database.session_factory))
    finally:
        await database.dispose()

    if export_dir is not None:
        for path in export_subsets(table, export_dir):
            logger.info("Saved %s", path)
    return table


async def load_stats(config: Settings) -> list[tuple[str, dict[str, object]]]:
    database = Database(config.database_url)
    try:
        await database.create_all()
        table = await VariantStore(database.session_factory).load()
    finally:
        await database.dispose()
    return [
        (subset.name, summarize_variants(table.subset(subset)))
        for subset in VARIANT_SUBSETS
    ]


def _print_stats(stats: list[tuple[str, dict[str, object]]]) -> None:
    for name, summary in stats:
        print(f"\n{name}:")
        for field, value in summary.items():
            print(f"  {field}: {value}")


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="tomster", description=__doc__)
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("serve", help="run the HTTP API (default)")
    build = commands.add_parser("build", help="rebuild and publish the variant table")
    build.add_argument("--export-dir", type=Path, default=None)
    build.add_argument(
        "--dry-run", action="store_true", help="build without publishing"
    )
    commands.add_parser("stats", help="summarise the published variant table")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    if args.command == "build":
        table = asyncio.run(
            build_variants(settings, export_dir=args.export_dir, dry_run=args.dry_run)
        )
        _print_stats([("all-possible", summarize_variants(table))])
    elif args.command == "stats":
        _print_stats(asyncio.run(load_stats(settings)))
    else:
        serve()


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
