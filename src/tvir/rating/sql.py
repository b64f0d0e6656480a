# src/tvir/rating/sql.py
from __future__ import annotations

from typing import List

import duckdb
import pandas as pd

from tvir.catalog.epg import EpgCatalog
from tvir.common.time import to_epoch_seconds
from tvir.data.validation import coerce_usage_frame
from tvir.rating.policy import RatingBranch, RatingConfig, RatingResult


def epg_frame(catalog: EpgCatalog) -> pd.DataFrame:
    """Catalog as a frame: program_id, start_s, end_s (epoch seconds, <NA> when unknown)."""
    ids, starts, ends = [], [], []
    for entry in catalog:
        ids.append(str(entry.program_id))
        starts.append(None if entry.scheduled_start is None else to_epoch_seconds(entry.scheduled_start))
        ends.append(None if entry.scheduled_end is None else to_epoch_seconds(entry.scheduled_end))
    return pd.DataFrame(
        {
            "program_id": pd.Series(ids, dtype="string"),
            "start_s": pd.Series(starts, dtype="Int64"),
            "end_s": pd.Series(ends, dtype="Int64"),
        }
    )


def _optional_bool(v) -> bool | None:
    return None if pd.isna(v) else bool(v)


class DuckDBRatingEngine:
    """
    Set-based engine: rates a whole usage chunk with one SQL statement.

    Same arithmetic as the python engine (double tolerances, BIGINT epoch seconds,
    C pow), so both engines produce identical ratings.
    """

    name = "duckdb"

    def __init__(self, catalog: EpgCatalog, cfg: RatingConfig | None = None, *, threads: int = 1):
        self.cfg = cfg or RatingConfig()
        self.con = duckdb.connect(database=":memory:")
        self.con.execute(f"PRAGMA threads={int(threads)};")

        self._epg = epg_frame(catalog)
        self.con.register("epg_df", self._epg)
        self.con.execute(
            """
            CREATE OR REPLACE TABLE epg AS
            SELECT
                CAST(program_id AS VARCHAR) AS program_id,
                CAST(start_s AS BIGINT)     AS start_s,
                CAST(end_s AS BIGINT)       AS end_s
            FROM epg_df;
            """
        )
        self.con.unregister("epg_df")

    def _sql(self) -> str:
        c = self.cfg
        start_pct = f"CAST({float(c.start_tolerance_pct)!r} AS DOUBLE)"
        end_pct = f"CAST({float(c.end_tolerance_pct)!r} AS DOUBLE)"
        p1 = f"CAST({float(c.p1)!r} AS DOUBLE)"
        p2 = f"CAST({float(c.p2)!r} AS DOUBLE)"

        return f"""
        WITH classified AS (
            SELECT
                u._row,
                CAST(u.watched_fraction AS DOUBLE) * 10.0 AS f,
                (e.start_s IS NOT NULL AND e.end_s IS NOT NULL) AS has_schedule,
                e.start_s + CAST(u.epg_duration AS DOUBLE) * {start_pct} / 100.0
                    >= CAST(u.session_start AS BIGINT) AS started_on_time,
                e.end_s - CAST(u.epg_duration AS DOUBLE) * {end_pct} / 100.0
                    <= CAST(u.session_start AS BIGINT) + CAST(u.session_duration AS BIGINT) AS ended_on_time
            FROM usage_chunk u
            LEFT JOIN epg e ON CAST(u.program_id AS VARCHAR) = e.program_id
        ),
        branched AS (
            SELECT
                _row,
                f,
                CASE WHEN has_schedule THEN started_on_time ELSE NULL END AS started_on_time,
                CASE WHEN has_schedule THEN ended_on_time ELSE NULL END AS ended_on_time,
                CASE
                    WHEN NOT has_schedule THEN '{RatingBranch.NO_EPG.value}'
                    WHEN started_on_time AND ended_on_time THEN '{RatingBranch.FULL.value}'
                    WHEN started_on_time THEN '{RatingBranch.START_ONLY.value}'
                    WHEN ended_on_time THEN '{RatingBranch.END_ONLY.value}'
                    ELSE '{RatingBranch.NEITHER.value}'
                END AS branch
            FROM classified
        )
        SELECT
            _row,
            f AS scaled_fraction,
            started_on_time,
            ended_on_time,
            branch,
            CASE
                WHEN branch = '{RatingBranch.START_ONLY.value}'
                    THEN POWER(f, {p1}) / POWER(10.0, {p1} - 1.0)
                WHEN branch = '{RatingBranch.END_ONLY.value}'
                    THEN 10.0 - POWER(10.0 - f, {p2}) / POWER(10.0, {p2} - 1.0)
                ELSE f
            END AS rating
        FROM branched
        ORDER BY _row;
        """

    def rate_typed(self, typed: pd.DataFrame) -> List[RatingResult]:
        """Rate a frame shaped like coerce_usage_frame() output. Results follow row order."""
        frame = typed.reset_index(drop=True)
        frame["_row"] = range(len(frame))
        frame["program_id"] = frame["program_id"].astype("string")

        self.con.register("usage_chunk", frame)
        try:
            out = self.con.execute(self._sql()).df()
        finally:
            self.con.unregister("usage_chunk")

        if len(out) != len(frame):
            raise RuntimeError(f"duckdb engine returned {len(out)} rows for {len(frame)} usage rows")

        return [
            RatingResult(
                scaled_fraction=float(row.scaled_fraction),
                branch=RatingBranch(row.branch),
                rating=float(row.rating),
                started_on_time=_optional_bool(row.started_on_time),
                ended_on_time=_optional_bool(row.ended_on_time),
            )
            for row in out.itertuples(index=False)
        ]

    def rate_chunk(self, chunk: pd.DataFrame) -> List[RatingResult]:
        return self.rate_typed(coerce_usage_frame(chunk))

    def close(self) -> None:
        self.con.close()
