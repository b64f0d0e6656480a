# src/tvir/data/ingestion.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Iterator, Optional, Sequence

import pandas as pd

from tvir.catalog.epg import EpgCatalog, EpgCatalogBuilder
from tvir.common.io import require_file
from tvir.common.time import fixed_offset
from tvir.data.schemas import EPG_SCHEMA, USAGE_SCHEMA
from tvir.data.types import EpgEntry, ProgramId, UsageRecord
from tvir.data.validation import (
    DataValidationError,
    coerce_usage_frame,
    parse_epg_datetime,
    validate_non_empty,
    validate_required_columns,
)

DEFAULT_EPG_DATE_FORMAT = "%m/%d/%y %I:%M %p"
DEFAULT_EPG_UTC_OFFSET_HOURS = -1.0


@dataclass(frozen=True)
class TsvFormat:
    """Delimited-text dialect shared by the EPG, usage and output files."""
    delimiter: str = "\t"
    quotechar: str = '"'
    write_header: bool = True


def _log(msg: str) -> None:
    print(msg, flush=True)


def _read_tsv(path: Path, fmt: TsvFormat, **kwargs):
    # Everything stays a string: no NA inference, so passthrough cells are written back verbatim.
    # index_col=False: a trailing delimiter on data rows must not turn the first column into the index.
    return pd.read_csv(
        path,
        sep=fmt.delimiter,
        quotechar=fmt.quotechar,
        index_col=False,
        dtype=str,
        keep_default_na=False,
        na_filter=False,
        **kwargs,
    )


def read_epg_entries(
    path: Path,
    *,
    date_format: str = DEFAULT_EPG_DATE_FORMAT,
    tz: Optional[tzinfo] = None,
    fmt: TsvFormat = TsvFormat(),
) -> Iterator[EpgEntry]:
    """
    Read a whole EPG file and yield one EpgEntry per row, in file order.
    Any malformed row raises DataValidationError.
    """
    path = Path(path)
    require_file(path, "EPG file")
    tz = tz or fixed_offset(DEFAULT_EPG_UTC_OFFSET_HOURS)
    name = f"EPG {path.name}"

    df = _read_tsv(path, fmt)
    validate_required_columns(df, EPG_SCHEMA.required_columns, name)
    validate_non_empty(df, EPG_SCHEMA.PROGRAM_ID, name)

    for row_no, row in enumerate(df.to_dict("records"), start=1):
        start = parse_epg_datetime(
            row[EPG_SCHEMA.START], date_format, tz, column=f"{name} {EPG_SCHEMA.START} (data row {row_no})"
        )
        end = parse_epg_datetime(
            row[EPG_SCHEMA.END], date_format, tz, column=f"{name} {EPG_SCHEMA.END} (data row {row_no})"
        )
        yield EpgEntry(
            program_id=ProgramId(row[EPG_SCHEMA.PROGRAM_ID]),
            scheduled_start=start,
            scheduled_end=end,
            channel_id=row.get(EPG_SCHEMA.CHANNEL_ID, ""),
            title=row.get(EPG_SCHEMA.TITLE, ""),
            episode_title=row.get(EPG_SCHEMA.EPISODE_TITLE, ""),
            genres=row.get(EPG_SCHEMA.GENRES, ""),
        )


def load_epg_catalog(
    paths: Sequence[Optional[Path]],
    *,
    base: Optional[EpgCatalog] = None,
    date_format: str = DEFAULT_EPG_DATE_FORMAT,
    tz: Optional[tzinfo] = None,
    fmt: TsvFormat = TsvFormat(),
) -> EpgCatalog:
    """
    Build a frozen catalog from zero or more EPG files (None entries are skipped).
    Later files override earlier ones, and all of them override base.
    """
    builder = EpgCatalogBuilder(base)
    for path in paths:
        if path is None:
            continue
        n = builder.ingest_many(read_epg_entries(Path(path), date_format=date_format, tz=tz, fmt=fmt))
        _log(f"[epg] ingested {n:,} entries from {path} | catalog size: {len(builder):,}")
    return builder.freeze()


def read_usage_columns(path: Path, fmt: TsvFormat = TsvFormat()) -> list[str]:
    """Header of the usage file, checked for the required columns."""
    path = Path(path)
    require_file(path, "Usage file")
    header = _read_tsv(path, fmt, nrows=0)
    validate_required_columns(header, USAGE_SCHEMA.required_columns, f"usage {path.name}")
    return list(header.columns)


def iter_usage_chunks(path: Path, chunksize: int, fmt: TsvFormat = TsvFormat()) -> Iterator[pd.DataFrame]:
    """Stream the usage file as all-string DataFrames; the index counts data rows across chunks."""
    if chunksize < 1:
        raise ValueError("chunksize must be >= 1")
    path = Path(path)
    require_file(path, "Usage file")
    with _read_tsv(path, fmt, chunksize=chunksize) as reader:
        for chunk in reader:
            yield chunk


def usage_records(chunk: pd.DataFrame, name: str = "usage") -> Iterator[UsageRecord]:
    """Typed UsageRecords for an all-string usage chunk, in row order."""
    typed = coerce_usage_frame(chunk, name)
    raw_cols = [c for c in USAGE_SCHEMA.columns if c in chunk.columns]
    raws = chunk[raw_cols].to_dict("records")
    if len(raws) != len(typed):
        raise DataValidationError(f"{name}: typed/raw row count mismatch ({len(typed)} vs {len(raws)})")

    for raw, t in zip(raws, typed.itertuples(index=False)):
        yield UsageRecord(
            user_id=t.user_id,
            watched_fraction=float(t.watched_fraction),
            session_start=int(t.session_start),
            session_duration=int(t.session_duration),
            program_id=ProgramId(t.program_id),
            epg_duration=int(t.epg_duration),
            raw=raw,
        )
