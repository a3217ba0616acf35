"""Entry point for the FastAPI-powered game API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import settings
from .database import Database
from .errors import TomsterError
from .models import ReportRequest
from .services.game import GameService
from .services.song_catalog import SongCatalog
from .services.variant_store import VariantStore
from .variants import get_subset

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    database = Database(settings.database_url)
    await database.create_all()

    catalog = SongCatalog(
        database.session_factory, timeout_seconds=settings.catalog_timeout_seconds
    )
    store = VariantStore(database.session_factory)
    game_service = GameService(settings, catalog, store, database.session_factory)

    fastapi_app.state.game_service = game_service
    fastapi_app.state.database = database
    await game_service.start()
    if not len(store.table):
        logger.warning("No variant table published yet; run `python -m tomster build`")

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await game_service.stop()
        await database.dispose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Random song clips filtered by difficulty, genre, region and era",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_game_service(app: FastAPI) -> GameService:
    service = getattr(app.state, "game_service", None)
    if not isinstance(service, GameService):
        raise RuntimeError("Game service not initialised")
    return service


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.exception_handler(TomsterError)
    async def _tomster_error_handler(_: Request, exc: TomsterError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("Request failed with %s: %s", exc.code, exc.message)
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @fastapi_app.get("/")
    async def root() -> dict[str, str]:
        return {
            "status": "ok",
            "message": f"{settings.app_name} Music Game API",
            "version": "1.0.0",
        }

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/health")
    async def database_health() -> JSONResponse:
        database = getattr(fastapi_app.state, "database", None)
        timestamp = datetime.utcnow().isoformat()
        try:
            if database is None:
                raise RuntimeError("Database not initialised")
            await database.ping()
        except Exception as exc:
            logger.warning("Health check failed: %s", exc)
            return JSONResponse(
                {
                    "status": "unhealthy",
                    "database": "disconnected",
                    "timestamp": timestamp,
                },
                status_code=503,
            )
        return JSONResponse(
            {"status": "healthy", "database": "connected", "timestamp": timestamp}
        )

    @fastapi_app.get("/api/game/play/{variant_key}")
    async def play(variant_key: str) -> JSONResponse:
        service = get_game_service(fastapi_app)
        response = await service.play(variant_key)
        return JSONResponse(response.to_payload())

    @fastapi_app.post("/api/game/songs/{song_id}/report")
    async def report_song(song_id: str, request: Request) -> JSONResponse:
        service = get_game_service(fastapi_app)
        try:
            payload = await request.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        if not payload.get("category"):
            raise HTTPException(status_code=400, detail="Category is required")
        try:
            report = ReportRequest.model_validate(payload)
        except ValidationError as exc:
            failed = sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]})
            if not failed or "category" in failed:
                failed = ["category"]
            raise HTTPException(
                status_code=400, detail=f"Invalid {', '.join(failed)}"
            ) from exc
        try:
            result = await service.report_song(song_id, report.category, report.message)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return JSONResponse(result.to_payload())

    @fastapi_app.get("/api/game/variants")
    async def list_variants(subset: str | None = None) -> dict[str, Any]:
        service = get_game_service(fastapi_app)
        try:
            selected = get_subset(subset)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        entries = service.list_variants(selected)
        return {
            "subset": selected.name,
            "buildId": service.store.table.build_id,
            "variants": [entry.model_dump(by_alias=True) for entry in entries],
        }

    @fastapi_app.get("/api/game/variants/stats")
    async def variant_stats(subset: str | None = None) -> dict[str, Any]:
        service = get_game_service(fastapi_app)
        try:
            selected = get_subset(subset)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return service.variant_stats(selected)


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
