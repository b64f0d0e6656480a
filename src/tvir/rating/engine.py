# src/tvir/rating/engine.py
from __future__ import annotations

from typing import Iterable, Iterator, List, Tuple

import pandas as pd

from tvir.catalog.epg import EpgCatalog
from tvir.data.ingestion import usage_records
from tvir.data.types import UsageRecord
from tvir.rating.classifier import classify
from tvir.rating.policy import RatingConfig, RatingResult, rate


def rate_usage(usage: UsageRecord, catalog: EpgCatalog, cfg: RatingConfig | None = None) -> RatingResult:
    """
    Resolve the record's EPG entry and rate it.
    Unknown program, or an entry without both scheduled instants, falls back to the raw fraction.
    """
    cfg = cfg or RatingConfig()
    entry = catalog.lookup(usage.program_id)
    if entry is None or not entry.has_schedule:
        return rate(usage.watched_fraction, None, cfg)
    return rate(usage.watched_fraction, classify(usage, entry, cfg), cfg)


def rate_records(
    records: Iterable[UsageRecord],
    catalog: EpgCatalog,
    cfg: RatingConfig | None = None,
) -> Iterator[Tuple[UsageRecord, RatingResult]]:
    """One (record, result) pair per input record, in input order."""
    cfg = cfg or RatingConfig()
    for usage in records:
        yield usage, rate_usage(usage, catalog, cfg)


class PythonRatingEngine:
    """Record-at-a-time engine: the reference implementation of the rating policy."""

    name = "python"

    def __init__(self, catalog: EpgCatalog, cfg: RatingConfig | None = None):
        self.catalog = catalog
        self.cfg = cfg or RatingConfig()

    def rate_chunk(self, chunk: pd.DataFrame) -> List[RatingResult]:
        return [result for _, result in rate_records(usage_records(chunk), self.catalog, self.cfg)]

    def close(self) -> None:
        return None


ENGINES: Tuple[str, ...] = ("python", "duckdb")


def make_engine(name: str, catalog: EpgCatalog, cfg: RatingConfig | None = None):
    if name == "python":
        return PythonRatingEngine(catalog, cfg)
    if name == "duckdb":
        from tvir.rating.sql import DuckDBRatingEngine

        return DuckDBRatingEngine(catalog, cfg)
    raise ValueError(f"unknown rating engine {name!r}; expected one of {ENGINES}")
