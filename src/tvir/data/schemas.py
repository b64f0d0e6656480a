# src/tvir/data/schemas.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Tuple

# Literal used by the EPG export for an unknown scheduled start/end.
UNKNOWN_SENTINEL: Final[str] = "null"


@dataclass(frozen=True)
class EpgSchema:
    """
    Column names of the EPG (program guide) export.
    Order matches the source files.
    """
    PROGRAM_ID: Final[str] = "# epg:id"
    START: Final[str] = "epg:start"
    END: Final[str] = "epg:end"
    CHANNEL_ID: Final[str] = "channel:id"
    TITLE: Final[str] = "epg:title"
    EPISODE_TITLE: Final[str] = "epg:episode_title"
    GENRES: Final[str] = "epg:genres"

    @property
    def columns(self) -> Tuple[str, ...]:
        return (
            self.PROGRAM_ID,
            self.START,
            self.END,
            self.CHANNEL_ID,
            self.TITLE,
            self.EPISODE_TITLE,
            self.GENRES,
        )

    @property
    def required_columns(self) -> Tuple[str, ...]:
        return (self.PROGRAM_ID, self.START, self.END)


@dataclass(frozen=True)
class UsageSchema:
    """
    Column names of the usage (viewing session) export and of the rated output.
    Keep this stable: output column order is derived from it.
    """
    USER_ID: Final[str] = "# user:id"
    TOTAL_PROGRAM_DURATION: Final[str] = "aggregation:totalUserProgramDuration"
    WATCHED_FRACTION: Final[str] = "aggregation:totalUserProgramFraction"
    CHANNEL_SESSION_START: Final[str] = "channel_session:start_time"
    CHANNEL_SESSION_DURATION: Final[str] = "channel_session:duration"
    CHANNEL_ID: Final[str] = "channel:id"
    CHANNEL_SESSION_ID: Final[str] = "channel_session:id"
    SESSION_START: Final[str] = "program_session:start_time"
    SESSION_DURATION: Final[str] = "program_session:duration"
    SESSION_POSITION: Final[str] = "program_session:position"
    SESSION_POSITION_TYPE: Final[str] = "program_session:position_type"
    PROGRAM_ID: Final[str] = "epg:id"
    EPG_DURATION: Final[str] = "epg:duration"

    IMPLICIT_RATING: Final[str] = "implicit_rating"

    @property
    def columns(self) -> Tuple[str, ...]:
        return (
            self.USER_ID,
            self.TOTAL_PROGRAM_DURATION,
            self.WATCHED_FRACTION,
            self.CHANNEL_SESSION_START,
            self.CHANNEL_SESSION_DURATION,
            self.CHANNEL_ID,
            self.CHANNEL_SESSION_ID,
            self.SESSION_START,
            self.SESSION_DURATION,
            self.SESSION_POSITION,
            self.SESSION_POSITION_TYPE,
            self.PROGRAM_ID,
            self.EPG_DURATION,
        )

    @property
    def required_columns(self) -> Tuple[str, ...]:
        return (
            self.USER_ID,
            self.WATCHED_FRACTION,
            self.SESSION_START,
            self.SESSION_DURATION,
            self.PROGRAM_ID,
            self.EPG_DURATION,
        )

    @property
    def required_int_columns(self) -> Tuple[str, ...]:
        return (self.SESSION_START, self.SESSION_DURATION, self.EPG_DURATION)

    @property
    def optional_int_columns(self) -> Tuple[str, ...]:
        # passthrough only, but must still be integers when present
        return (
            self.TOTAL_PROGRAM_DURATION,
            self.CHANNEL_SESSION_START,
            self.CHANNEL_SESSION_DURATION,
            self.SESSION_POSITION,
        )

    @property
    def output_columns(self) -> Tuple[str, ...]:
        return self.columns + (self.IMPLICIT_RATING,)


EPG_SCHEMA = EpgSchema()
USAGE_SCHEMA = UsageSchema()
