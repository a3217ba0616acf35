"""Playback window computation for sampled songs."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Mapping

from ..dimensions import (
    DEFAULT_CLIP_BOUNDS,
    DIFFICULTY_TIER_MAP,
    DIFFICULTY_TIERS,
    WILDCARD,
)

# Clip starts fall within this fraction of the time left after the clip.
PLACEMENT_FRACTION = 0.8


@dataclass(frozen=True, slots=True)
class ClipWindow:
    start_offset: int
    duration: int
    tier: str
    clamped: bool = False


def pick_tier(difficulty: str, rng: random.Random) -> str:
    """Return the concrete tier for a difficulty dimension value."""

    if difficulty == WILDCARD:
        return rng.choice(DIFFICULTY_TIERS).key
    if difficulty not in DIFFICULTY_TIER_MAP:
        raise ValueError(f"Unknown difficulty tier {difficulty!r}")
    return difficulty


def compute_clip_window(
    song_duration: int,
    difficulty: str,
    *,
    rng: random.Random | None = None,
    bounds: Mapping[str, tuple[int, int]] | None = None,
    snap_seconds: int = 10,
) -> ClipWindow:
    """Draw a clip duration and start offset for a song.

    The duration is drawn uniformly from the tier bounds (inclusive). The start
    is drawn from the first 80% of the time left after the clip; offsets below
    ``snap_seconds`` start from the beginning. Songs shorter than the clip are
    played whole from the start.
    """

    rng = rng or random.Random()
    table = bounds or DEFAULT_CLIP_BOUNDS
    tier = pick_tier(difficulty, rng)
    clip_min, clip_max = table[tier]
    duration = rng.randint(clip_min, clip_max)

    total = max(0, int(song_duration))
    remaining = total - duration
    if remaining <= 0:
        return ClipWindow(start_offset=0, duration=total, tier=tier, clamped=True)

    max_start = math.floor(remaining * PLACEMENT_FRACTION)
    start_offset = rng.randrange(0, max(1, max_start))
    if start_offset < snap_seconds:
        start_offset = 0
    elif rng.random() < DIFFICULTY_TIER_MAP[tier].start_from_beginning_chance:
        start_offset = 0
    return ClipWindow(start_offset=start_offset, duration=duration, tier=tier)
