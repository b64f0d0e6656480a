# src/tvir/data/validation.py
from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from tvir.data.schemas import UNKNOWN_SENTINEL, USAGE_SCHEMA

_INT_RE = r"[+-]?\d+"


class DataValidationError(ValueError):
    pass


def _row_no(index_label) -> str:
    # index labels are 0-based data rows (header excluded)
    try:
        return str(int(index_label) + 1)
    except (TypeError, ValueError):
        return str(index_label)


def validate_required_columns(df: pd.DataFrame, required: Iterable[str], name: str = "input") -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DataValidationError(f"{name} missing required columns: {missing}. Found: {list(df.columns)}")


def validate_non_empty(df: pd.DataFrame, column: str, name: str = "input") -> None:
    empty = df[column].isna() | (df[column].astype(str) == "")
    if empty.any():
        first = df.index[empty.to_numpy()][0]
        raise DataValidationError(f"{name}: empty {column!r} at data row {_row_no(first)}")


def parse_int_column(s: pd.Series, *, required: bool, name: str = "input") -> pd.Series:
    """
    Strict integer parse of a string column (no whitespace, no decimals).
    Empty cells are allowed only when required=False and come back as <NA>.
    """
    values = s.fillna("").astype(str)
    empty = values == ""
    if required and empty.any():
        first = s.index[empty.to_numpy()][0]
        raise DataValidationError(f"{name}: empty {s.name!r} at data row {_row_no(first)}")

    ok = values.str.fullmatch(_INT_RE) | empty
    if not ok.all():
        first = s.index[(~ok).to_numpy()][0]
        raise DataValidationError(
            f"{name}: {s.name!r} is not an integer at data row {_row_no(first)}: {values.loc[first]!r}"
        )
    return pd.to_numeric(values.where(~empty), errors="raise").astype("Int64")


def parse_fraction_column(s: pd.Series, name: str = "input") -> pd.Series:
    """Parse a watched-fraction column. Values must be finite and within [0, 1]."""
    values = s.fillna("").astype(str)
    empty = values.str.strip() == ""
    if empty.any():
        first = s.index[empty.to_numpy()][0]
        raise DataValidationError(f"{name}: empty {s.name!r} at data row {_row_no(first)}")

    try:
        out = pd.to_numeric(values, errors="raise").astype("float64")
    except (ValueError, TypeError) as e:
        raise DataValidationError(f"{name}: {s.name!r} contains a non-numeric value ({e})") from e

    bad = ~np.isfinite(out.to_numpy()) | (out.to_numpy() < 0.0) | (out.to_numpy() > 1.0)
    if bad.any():
        first = s.index[bad][0]
        raise DataValidationError(
            f"{name}: {s.name!r} must be within [0, 1] at data row {_row_no(first)}: {values.loc[first]!r}"
        )
    return out


def parse_epg_datetime(value: Optional[str], fmt: str, tz: tzinfo, *, column: str = "date") -> Optional[datetime]:
    """
    Parse an EPG wall-clock date in a fixed zone.
    The unknown sentinel resolves to None; anything else must match fmt exactly.
    """
    if value is None or value == "":
        raise DataValidationError(f"{column}: missing value (expected a date or {UNKNOWN_SENTINEL!r})")
    if value == UNKNOWN_SENTINEL:
        return None
    try:
        return datetime.strptime(value, fmt).replace(tzinfo=tz)
    except ValueError as e:
        raise DataValidationError(f"{column}: {value!r} could not be parsed as a date ({fmt})") from e


def coerce_usage_frame(df: pd.DataFrame, name: str = "usage") -> pd.DataFrame:
    """
    Typed view of an all-string usage chunk, one row per input row (index preserved).

    Columns: user_id, watched_fraction, session_start, session_duration, program_id, epg_duration.
    Passthrough-only integer columns are checked too but not returned.
    """
    validate_required_columns(df, USAGE_SCHEMA.required_columns, name)
    validate_non_empty(df, USAGE_SCHEMA.USER_ID, name)
    validate_non_empty(df, USAGE_SCHEMA.PROGRAM_ID, name)

    for col in USAGE_SCHEMA.optional_int_columns:
        if col in df.columns:
            parse_int_column(df[col], required=False, name=name)

    out = pd.DataFrame(index=df.index)
    out["user_id"] = df[USAGE_SCHEMA.USER_ID].astype(str)
    out["watched_fraction"] = parse_fraction_column(df[USAGE_SCHEMA.WATCHED_FRACTION], name)
    out["session_start"] = parse_int_column(df[USAGE_SCHEMA.SESSION_START], required=True, name=name).astype("int64")
    out["session_duration"] = parse_int_column(df[USAGE_SCHEMA.SESSION_DURATION], required=True, name=name).astype("int64")
    out["program_id"] = df[USAGE_SCHEMA.PROGRAM_ID].astype(str)
    out["epg_duration"] = parse_int_column(df[USAGE_SCHEMA.EPG_DURATION], required=True, name=name).astype("int64")
    return out

