# src/tvir/data/writers.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional, Sequence

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from tvir.data.ingestion import TsvFormat
from tvir.data.schemas import USAGE_SCHEMA

OutFormat = Literal["tsv", "parquet"]
OUT_FORMATS: tuple[str, ...] = ("tsv", "parquet")


def build_output_frame(chunk: pd.DataFrame, ratings: Sequence[float]) -> pd.DataFrame:
    """
    Output rows for a usage chunk: the documented usage columns in fixed order
    (missing optional columns as empty strings) with implicit_rating appended last.
    """
    if len(ratings) != len(chunk):
        raise ValueError(f"got {len(ratings)} ratings for {len(chunk)} usage rows")
    out = chunk.reindex(columns=list(USAGE_SCHEMA.columns), fill_value="")
    out[USAGE_SCHEMA.IMPLICIT_RATING] = pd.Series(ratings, index=chunk.index, dtype="float64")
    return out


def _parquet_schema() -> pa.Schema:
    fields = [pa.field(c, pa.string()) for c in USAGE_SCHEMA.columns]
    fields.append(pa.field(USAGE_SCHEMA.IMPLICIT_RATING, pa.float64()))
    return pa.schema(fields)


class RatingsWriter:
    """
    Streaming sink for rated usage rows.

    tsv: header once (if configured), then rows appended chunk by chunk.
    parquet: one row group per chunk via pyarrow's ParquetWriter (zstd).

    Rows go to a sibling "<name>.part" file that replaces path only when the
    context exits cleanly; on an exception it is removed and path is left untouched.
    """

    def __init__(self, path: Path, *, out_format: OutFormat = "tsv", fmt: TsvFormat = TsvFormat()):
        if out_format not in OUT_FORMATS:
            raise ValueError(f"unknown output format {out_format!r}; expected one of {OUT_FORMATS}")
        self.path = Path(path)
        self.part_path = self.path.with_name(self.path.name + ".part")
        self.out_format = out_format
        self.fmt = fmt
        self.rows_written = 0
        self._fh = None
        self._pq: Optional[pq.ParquetWriter] = None

    def __enter__(self) -> "RatingsWriter":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.out_format == "tsv":
            self._fh = open(self.part_path, "w", encoding="utf-8", newline="")
            if self.fmt.write_header:
                self._to_csv(pd.DataFrame(columns=list(USAGE_SCHEMA.output_columns)), header=True)
        else:
            self._pq = pq.ParquetWriter(self.part_path, _parquet_schema(), compression="zstd")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.close()
        except BaseException:
            self.part_path.unlink(missing_ok=True)
            raise
        if exc_type is None:
            os.replace(self.part_path, self.path)
        else:
            self.part_path.unlink(missing_ok=True)

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
        if self._pq is not None:
            self._pq.close()
            self._pq = None

    def _to_csv(self, frame: pd.DataFrame, *, header: bool) -> None:
        frame.to_csv(
            self._fh,
            sep=self.fmt.delimiter,
            quotechar=self.fmt.quotechar,
            index=False,
            header=header,
            lineterminator="\n",
        )

    def write(self, frame: pd.DataFrame) -> int:
        """Append a frame produced by build_output_frame. Returns the number of rows written."""
        if list(frame.columns) != list(USAGE_SCHEMA.output_columns):
            raise ValueError(f"unexpected output columns: {list(frame.columns)}")
        if self._fh is None and self._pq is None:
            raise RuntimeError("RatingsWriter used outside of its context")

        if self.out_format == "tsv":
            self._to_csv(frame, header=False)
        else:
            table = pa.Table.from_pandas(frame, schema=_parquet_schema(), preserve_index=False)
            self._pq.write_table(table)

        self.rows_written += len(frame)
        return len(frame)
