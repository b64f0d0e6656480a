# src/tvir/rating/classifier.py
from __future__ import annotations

from tvir.common.time import to_epoch_seconds, tolerance_seconds
from tvir.data.types import EpgEntry, UsageRecord
from tvir.rating.policy import BoundaryClassification, RatingConfig


def started_on_time(scheduled_start_s: int, session_start_s: int, tol_s: float) -> bool:
    # one-sided: starting any time before the scheduled start counts
    return scheduled_start_s + tol_s >= session_start_s


def ended_on_time(scheduled_end_s: int, session_end_s: int, tol_s: float) -> bool:
    # one-sided: running past the scheduled end counts
    return scheduled_end_s - tol_s <= session_end_s


def classify(usage: UsageRecord, entry: EpgEntry, cfg: RatingConfig | None = None) -> BoundaryClassification:
    """
    Did the session catch the program's scheduled start and end (within tolerance)?

    Tolerances are a percentage of usage.epg_duration, not of the EPG start/end span.
    The entry must carry both scheduled instants.
    """
    cfg = cfg or RatingConfig()
    if entry.scheduled_start is None or entry.scheduled_end is None:
        raise ValueError(f"EPG entry {entry.program_id!r} has no known schedule")

    start_s = to_epoch_seconds(entry.scheduled_start)
    end_s = to_epoch_seconds(entry.scheduled_end)

    return BoundaryClassification(
        started_on_time=started_on_time(
            start_s, usage.session_start, tolerance_seconds(usage.epg_duration, cfg.start_tolerance_pct)
        ),
        ended_on_time=ended_on_time(
            end_s, usage.session_end, tolerance_seconds(usage.epg_duration, cfg.end_tolerance_pct)
        ),
    )
