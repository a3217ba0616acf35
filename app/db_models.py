"""SQLAlchemy ORM models backing the persistent state."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class Category(Base):
    """Genre-like grouping entity songs are tagged with."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(120), unique=True)

    songs: Mapped[list["SongCategory"]] = relationship(
        back_populates="category", cascade="all, delete-orphan"
    )


class Song(Base):
    """A playable catalog entry."""

    __tablename__ = "songs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255))
    artists: Mapped[list[str]] = mapped_column(JSON, default=list)
    youtube_id: Mapped[str] = mapped_column(String(64))
    duration: Mapped[int] = mapped_column(Integer)
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    country_origin: Mapped[str | None] = mapped_column(String(64), nullable=True)
    difficulty: Mapped[int] = mapped_column(Integer, default=3)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    categories: Mapped[list["SongCategory"]] = relationship(
        back_populates="song", cascade="all, delete-orphan"
    )


class SongCategory(Base):
    __tablename__ = "song_categories"

    song_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("songs.id", ondelete="CASCADE"), primary_key=True
    )
    category_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True
    )

    song: Mapped[Song] = relationship(back_populates="categories")
    category: Mapped[Category] = relationship(back_populates="songs")


class Report(Base):
    """Player-submitted problem report for a song."""

    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    song_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("songs.id", ondelete="CASCADE")
    )
    category: Mapped[str] = mapped_column(String(32))
    message: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class VariantBuild(Base):
    """One successfully published variant table."""

    __tablename__ = "variant_builds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    built_at: Mapped[datetime] = mapped_column(DateTime)
    variant_count: Mapped[int] = mapped_column(Integer)
    # Songs matched by the all-wildcard variant at build time.
    catalog_size: Mapped[int] = mapped_column(Integer)


class VariantRecord(Base):
    """Persisted row of the published variant table."""

    __tablename__ = "variants"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    build_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("variant_builds.id", ondelete="CASCADE")
    )
    predicate: Mapped[dict[str, Any]] = mapped_column(JSON)
    genre_ref: Mapped[str | None] = mapped_column(String(16), nullable=True)
    match_count: Mapped[int] = mapped_column(Integer)
    rank: Mapped[int] = mapped_column(Integer)
