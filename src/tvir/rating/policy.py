# src/tvir/rating/policy.py
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Source fractions are in [0, 1]; ratings live on a 0-10 scale.
RATING_SCALE = 10.0


@dataclass(frozen=True)
class RatingConfig:
    """
    Tunables of the implicit rating.
      - start/end_tolerance_pct: grace window as % of the program's epg duration
      - p1: curve exponent when only the start was watched
      - p2: curve exponent when only the end was watched
    """
    start_tolerance_pct: float = 5.0
    end_tolerance_pct: float = 5.0
    p1: float = 1.5
    p2: float = 1.5

    def __post_init__(self) -> None:
        if self.start_tolerance_pct < 0 or self.end_tolerance_pct < 0:
            raise ValueError("tolerance percentages must be >= 0")
        if self.p1 <= 0 or self.p2 <= 0:
            raise ValueError("curve exponents p1/p2 must be > 0")


class RatingBranch(str, Enum):
    NO_EPG = "no_epg"
    FULL = "full"
    START_ONLY = "start_only"
    END_ONLY = "end_only"
    NEITHER = "neither"


@dataclass(frozen=True)
class BoundaryClassification:
    started_on_time: bool
    ended_on_time: bool


@dataclass(frozen=True)
class RatingResult:
    """Structured outcome for one record; callers decide what to log or aggregate."""
    scaled_fraction: float
    branch: RatingBranch
    rating: float
    started_on_time: Optional[bool] = None
    ended_on_time: Optional[bool] = None


def scale_fraction(watched_fraction: float) -> float:
    return float(watched_fraction) * RATING_SCALE


def started_only_rating(f: float, p1: float = 1.5) -> float:
    """f^p1 / 10^(p1-1): maps 0->0 and 10->10, below linear in between for p1 > 1."""
    return math.pow(f, p1) / math.pow(RATING_SCALE, p1 - 1.0)


def ended_only_rating(f: float, p2: float = 1.5) -> float:
    """Mirror of started_only_rating around the midpoint: 10 - (10-f)^p2 / 10^(p2-1)."""
    return RATING_SCALE - math.pow(RATING_SCALE - f, p2) / math.pow(RATING_SCALE, p2 - 1.0)


def rate(
    watched_fraction: float,
    classification: Optional[BoundaryClassification],
    cfg: RatingConfig | None = None,
) -> RatingResult:
    """
    Implicit rating from the source watched fraction.
    classification=None means no usable EPG entry (unknown program or schedule).
    """
    cfg = cfg or RatingConfig()
    f = scale_fraction(watched_fraction)

    if classification is None:
        return RatingResult(scaled_fraction=f, branch=RatingBranch.NO_EPG, rating=f)

    started = classification.started_on_time
    ended = classification.ended_on_time

    if started and ended:
        branch, rating = RatingBranch.FULL, f
    elif started:
        branch, rating = RatingBranch.START_ONLY, started_only_rating(f, cfg.p1)
    elif ended:
        branch, rating = RatingBranch.END_ONLY, ended_only_rating(f, cfg.p2)
    else:
        branch, rating = RatingBranch.NEITHER, f

    return RatingResult(
        scaled_fraction=f,
        branch=branch,
        rating=float(rating),
        started_on_time=started,
        ended_on_time=ended,
    )

