from __future__ import annotations

from datetime import datetime, timezone

import pandas as pd
import pytest

from conftest import usage_row
from tvir.common.time import fixed_offset
from tvir.data.schemas import USAGE_SCHEMA
from tvir.data.validation import (
    DataValidationError,
    coerce_usage_frame,
    parse_epg_datetime,
    parse_fraction_column,
    parse_int_column,
    validate_required_columns,
)

FMT = "%m/%d/%y %I:%M %p"


def _frame(rows):
    return pd.DataFrame(rows, dtype=str)


def test_validation_error_is_value_error():
    assert issubclass(DataValidationError, ValueError)


def test_required_columns_missing():
    df = pd.DataFrame({"a": ["1"]})
    with pytest.raises(DataValidationError, match="missing required columns"):
        validate_required_columns(df, ["a", "b"])


def test_int_column_parses_and_keeps_index():
    s = pd.Series(["1", "-2", "+3"], index=[5, 6, 7], name="n")
    out = parse_int_column(s, required=True)
    assert out.tolist() == [1, -2, 3]
    assert out.index.tolist() == [5, 6, 7]


@pytest.mark.parametrize("bad", ["1.5", "abc", " 1", "1e3"])
def test_int_column_rejects_non_integers(bad):
    s = pd.Series(["1", bad], name="n")
    with pytest.raises(DataValidationError, match="not an integer at data row 2"):
        parse_int_column(s, required=True)


def test_int_column_empty_required_vs_optional():
    s = pd.Series(["1", ""], name="n")
    with pytest.raises(DataValidationError, match="empty"):
        parse_int_column(s, required=True)
    out = parse_int_column(s, required=False)
    assert out.iloc[0] == 1
    assert pd.isna(out.iloc[1])


def test_fraction_column_in_range():
    out = parse_fraction_column(pd.Series(["0", "0.5", "1", "1e-1"], name="f"))
    assert out.tolist() == pytest.approx([0.0, 0.5, 1.0, 0.1])


@pytest.mark.parametrize("bad", ["1.01", "-0.1", "nan", "inf"])
def test_fraction_column_out_of_domain(bad):
    with pytest.raises(DataValidationError):
        parse_fraction_column(pd.Series(["0.5", bad], name="f"))


def test_fraction_column_non_numeric():
    with pytest.raises(DataValidationError, match="non-numeric"):
        parse_fraction_column(pd.Series(["half"], name="f"))


def test_epg_datetime_sentinel_is_none():
    assert parse_epg_datetime("null", FMT, timezone.utc) is None


def test_epg_datetime_fixed_offset():
    dt = parse_epg_datetime("10/01/13 8:00 PM", FMT, fixed_offset(-1.0))
    assert dt == datetime(2013, 10, 1, 21, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("bad", ["", "2013-10-01 20:00", "13/45/13 8:00 PM", "NULL"])
def test_epg_datetime_rejects_garbage(bad):
    with pytest.raises(DataValidationError):
        parse_epg_datetime(bad, FMT, timezone.utc)


def test_coerce_usage_frame_types():
    typed = coerce_usage_frame(_frame([usage_row(fraction="0.25"), usage_row(user_id="u2")]))
    assert list(typed.columns) == [
        "user_id",
        "watched_fraction",
        "session_start",
        "session_duration",
        "program_id",
        "epg_duration",
    ]
    assert typed["watched_fraction"].tolist() == pytest.approx([0.25, 0.8])
    assert str(typed["session_start"].dtype) == "int64"
    assert typed["user_id"].tolist() == ["u1", "u2"]


def test_coerce_usage_frame_rejects_missing_required():
    df = _frame([usage_row()]).drop(columns=[USAGE_SCHEMA.EPG_DURATION])
    with pytest.raises(DataValidationError, match="missing required columns"):
        coerce_usage_frame(df)


def test_coerce_usage_frame_rejects_empty_program_id():
    with pytest.raises(DataValidationError, match="epg:id"):
        coerce_usage_frame(_frame([usage_row(program_id="")]))


def test_coerce_usage_frame_checks_passthrough_integers():
    bad = usage_row(SESSION_POSITION="first")
    with pytest.raises(DataValidationError, match="program_session:position"):
        coerce_usage_frame(_frame([bad]))

    # empty passthrough integers are fine
    coerce_usage_frame(_frame([usage_row(SESSION_POSITION="")]))
