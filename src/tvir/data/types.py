# src/tvir/data/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, NewType, Optional

# Catalog key. A distinct type so a user/channel id can't be passed where a program id is expected.
ProgramId = NewType("ProgramId", str)


@dataclass(frozen=True)
class EpgEntry:
    """
    One scheduled program of the EPG.

    scheduled_start / scheduled_end are None when the export marked them unknown.
    The remaining fields are descriptive only (never used in rating math).
    """
    program_id: ProgramId
    scheduled_start: Optional[datetime]
    scheduled_end: Optional[datetime]
    channel_id: str = ""
    title: str = ""
    episode_title: str = ""
    genres: str = ""

    @property
    def has_schedule(self) -> bool:
        return self.scheduled_start is not None and self.scheduled_end is not None


@dataclass(frozen=True)
class UsageRecord:
    """
    One program-viewing session of one user.

    Times are epoch seconds, durations seconds. watched_fraction is on the source
    scale [0, 1] and aggregated at user/program level, not per session.
    raw holds the untouched source strings so output rows can be passed through verbatim.
    """
    user_id: str
    watched_fraction: float
    session_start: int
    session_duration: int
    program_id: ProgramId
    epg_duration: int
    raw: Mapping[str, str] = field(default_factory=dict, repr=False, compare=False)

    @property
    def session_end(self) -> int:
        # sessions are modelled as start + duration; the export has no separate end field
        return self.session_start + self.session_duration
