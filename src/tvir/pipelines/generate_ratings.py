# src/tvir/pipelines/generate_ratings.py
from __future__ import annotations

import argparse
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd

from tvir.catalog.epg import EpgCatalog
from tvir.common.io import write_json
from tvir.common.time import fixed_offset, utc_now
from tvir.data.ingestion import (
    DEFAULT_EPG_DATE_FORMAT,
    DEFAULT_EPG_UTC_OFFSET_HOURS,
    TsvFormat,
    iter_usage_chunks,
    load_epg_catalog,
    read_usage_columns,
)
from tvir.data.schemas import USAGE_SCHEMA
from tvir.data.writers import OUT_FORMATS, RatingsWriter, build_output_frame
from tvir.rating.engine import ENGINES, make_engine
from tvir.rating.policy import RatingConfig, RatingResult
from tvir.reporting.summary import RunSummary


@dataclass(frozen=True)
class GenerateRatingsConfig:
    """
    One rating run: EPG + usage TSV in, rated usage TSV (or parquet) out.

    epg_path is ingested once when the generator is built; extra_epg_path is layered
    on top for this run only (same program id -> extra wins).
    """
    epg_path: Optional[Path] = Path("data/external/epg/epg_data.tsv")
    usage_path: Path = Path("data/external/usage/all_fractions.tsv")
    out_path: Path = Path("outputs/ratings/implicit_ratings.tsv")
    extra_epg_path: Optional[Path] = None
    meta_path: Optional[Path] = Path("outputs/ratings/implicit_ratings_meta.json")

    rating: RatingConfig = RatingConfig()
    tsv: TsvFormat = TsvFormat()

    # EPG dates are wall-clock strings in a fixed zone (GMT-1 in the BBC export)
    epg_date_format: str = DEFAULT_EPG_DATE_FORMAT
    epg_utc_offset_hours: float = DEFAULT_EPG_UTC_OFFSET_HOURS

    chunksize: int = 100_000
    engine: str = "python"
    out_format: str = "tsv"
    verbose: bool = False


class RatingPipelineError(RuntimeError):
    pass


def _log(msg: str) -> None:
    print(msg, flush=True)


def _check_cfg(cfg: GenerateRatingsConfig) -> None:
    if cfg.engine not in ENGINES:
        raise RatingPipelineError(f"unknown engine {cfg.engine!r}; expected one of {ENGINES}")
    if cfg.out_format not in OUT_FORMATS:
        raise RatingPipelineError(f"unknown out_format {cfg.out_format!r}; expected one of {OUT_FORMATS}")
    if cfg.chunksize < 1:
        raise RatingPipelineError("chunksize must be >= 1")


def _log_results(chunk: pd.DataFrame, results: List[RatingResult]) -> None:
    users = chunk[USAGE_SCHEMA.USER_ID].tolist()
    programs = chunk[USAGE_SCHEMA.PROGRAM_ID].tolist()
    for user, program, r in zip(users, programs, results):
        _log(
            f"[ratings] user {user} | epg-id {program} | watched {r.scaled_fraction:.3f} "
            f"| {r.branch.value} | rating {r.rating:.3f}"
        )


class RatingGenerator:
    """
    Rates usage files against an EPG catalog.

    The initial EPG (optional) is read once here; generate() may layer a
    supplementary EPG over it without touching the generator's own catalog.
    """

    def __init__(self, epg_path: Optional[Path] = None, cfg: GenerateRatingsConfig | None = None):
        self.cfg = cfg or GenerateRatingsConfig(epg_path=epg_path)
        _check_cfg(self.cfg)
        self.catalog: EpgCatalog = self._load_epg([epg_path], base=None)

    def _load_epg(self, paths: Sequence[Optional[Path]], base: Optional[EpgCatalog]) -> EpgCatalog:
        return load_epg_catalog(
            paths,
            base=base,
            date_format=self.cfg.epg_date_format,
            tz=fixed_offset(self.cfg.epg_utc_offset_hours),
            fmt=self.cfg.tsv,
        )

    def generate(self, usage_path: Path, out_path: Path, epg_path: Optional[Path] = None) -> RunSummary:
        """
        Write one output row per usage row, in input order, with implicit_rating appended.
        Any malformed input aborts the run.
        """
        if usage_path is None:
            raise RatingPipelineError("usage_path must not be None")
        cfg = self.cfg

        catalog = self.catalog if epg_path is None else self._load_epg([epg_path], base=self.catalog)
        read_usage_columns(Path(usage_path), cfg.tsv)

        _log(f"[ratings] reading usage : {usage_path}")
        _log(f"[ratings] writing       : {out_path} ({cfg.out_format}, engine={cfg.engine})")
        _log(f"[ratings] epg programs  : {len(catalog):,}")

        summary = RunSummary()
        engine = make_engine(cfg.engine, catalog, cfg.rating)
        try:
            with RatingsWriter(Path(out_path), out_format=cfg.out_format, fmt=cfg.tsv) as writer:
                for part, chunk in enumerate(iter_usage_chunks(Path(usage_path), cfg.chunksize, cfg.tsv), start=1):
                    results = engine.rate_chunk(chunk)
                    writer.write(build_output_frame(chunk, [r.rating for r in results]))
                    summary.add_many(results)

                    if cfg.verbose:
                        _log_results(chunk, results)
                    if part % 10 == 0:
                        _log(f"[ratings] wrote {part} chunks | rows so far: {summary.n_rows:,}")
        finally:
            engine.close()

        _log(f"[ratings] done. rows: {summary.n_rows:,} | branches: {summary.branch_counts}")
        return summary


def run(cfg: GenerateRatingsConfig) -> RunSummary:
    started_at = utc_now()
    generator = RatingGenerator(cfg.epg_path, cfg)
    summary = generator.generate(cfg.usage_path, cfg.out_path, cfg.extra_epg_path)

    if cfg.meta_path is not None:
        meta = {
            "strategy": "implicit_rating_epg_boundaries",
            "started_at": started_at.isoformat(),
            "finished_at": utc_now().isoformat(),
            "config": asdict(cfg),
            "summary": summary.to_dict(),
            "columns": list(USAGE_SCHEMA.output_columns),
        }
        write_json(cfg.meta_path, meta)
        _log(f"✅ Meta : {cfg.meta_path}")

    _log(f"✅ Wrote: {cfg.out_path}")
    return summary


def build_arg_parser() -> argparse.ArgumentParser:
    d = GenerateRatingsConfig()
    ap = argparse.ArgumentParser(
        prog="tvir-generate",
        description="Derive implicit ratings for TV viewing sessions from EPG boundaries.",
    )
    ap.add_argument("--epg", type=Path, default=d.epg_path, help="initial EPG tsv")
    ap.add_argument("--no-epg", action="store_true", help="run without an initial EPG")
    ap.add_argument("--extra-epg", type=Path, default=None, help="supplementary EPG tsv (overrides --epg)")
    ap.add_argument("--usage", type=Path, default=d.usage_path)
    ap.add_argument("--out", type=Path, default=d.out_path)
    ap.add_argument("--meta", type=Path, default=d.meta_path)
    ap.add_argument("--no-meta", action="store_true", help="skip the JSON run summary")

    ap.add_argument("--start-tolerance-pct", type=float, default=d.rating.start_tolerance_pct)
    ap.add_argument("--end-tolerance-pct", type=float, default=d.rating.end_tolerance_pct)
    ap.add_argument("--p1", type=float, default=d.rating.p1, help="start-only curve exponent")
    ap.add_argument("--p2", type=float, default=d.rating.p2, help="end-only curve exponent")

    ap.add_argument("--epg-date-format", default=d.epg_date_format)
    ap.add_argument("--epg-utc-offset-hours", type=float, default=d.epg_utc_offset_hours)
    ap.add_argument("--delimiter", default=d.tsv.delimiter)
    ap.add_argument("--no-header", action="store_true", help="do not write a header row")

    ap.add_argument("--chunksize", type=int, default=d.chunksize)
    ap.add_argument("--engine", choices=ENGINES, default=d.engine)
    ap.add_argument("--out-format", choices=OUT_FORMATS, default=d.out_format)
    ap.add_argument("-v", "--verbose", action="store_true", help="log every rated record")
    return ap


def config_from_args(args: argparse.Namespace) -> GenerateRatingsConfig:
    d = GenerateRatingsConfig()
    return replace(
        d,
        epg_path=None if args.no_epg else args.epg,
        usage_path=args.usage,
        out_path=args.out,
        extra_epg_path=args.extra_epg,
        meta_path=None if args.no_meta else args.meta,
        rating=RatingConfig(
            start_tolerance_pct=args.start_tolerance_pct,
            end_tolerance_pct=args.end_tolerance_pct,
            p1=args.p1,
            p2=args.p2,
        ),
        tsv=replace(d.tsv, delimiter=args.delimiter, write_header=not args.no_header),
        epg_date_format=args.epg_date_format,
        epg_utc_offset_hours=args.epg_utc_offset_hours,
        chunksize=args.chunksize,
        engine=args.engine,
        out_format=args.out_format,
        verbose=args.verbose,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    run(config_from_args(args))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
