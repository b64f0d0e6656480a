# tests/conftest.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pytest

from tvir.common.time import to_epoch_seconds
from tvir.data.schemas import EPG_SCHEMA, USAGE_SCHEMA

# Program P1 airs 20:00-21:00 GMT-1 on 2013-10-01, i.e. 21:00-22:00 UTC.
P1_START_UTC = datetime(2013, 10, 1, 21, 0, tzinfo=timezone.utc)
P1_START = to_epoch_seconds(P1_START_UTC)
P1_DURATION = 3600
P1_END = P1_START + P1_DURATION


def _write_tsv(path: Path, header: Sequence[str], rows: Sequence[Sequence[str]]) -> Path:
    lines = ["\t".join(header)] + ["\t".join(r) for r in rows]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def read_json(path: Path) -> Dict[str, Any]:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def usage_row(
    user_id: str = "u1",
    fraction: str = "0.8",
    session_start: int | str = P1_START,
    session_duration: int | str = P1_DURATION,
    program_id: str = "P1",
    epg_duration: int | str = P1_DURATION,
    **overrides: str,
) -> Dict[str, str]:
    """One usage row as strings, keyed by source column name."""
    row = {
        USAGE_SCHEMA.USER_ID: user_id,
        USAGE_SCHEMA.TOTAL_PROGRAM_DURATION: "2880",
        USAGE_SCHEMA.WATCHED_FRACTION: fraction,
        USAGE_SCHEMA.CHANNEL_SESSION_START: str(P1_START - 600),
        USAGE_SCHEMA.CHANNEL_SESSION_DURATION: "5400",
        USAGE_SCHEMA.CHANNEL_ID: "bbc_one",
        USAGE_SCHEMA.CHANNEL_SESSION_ID: "cs-001",
        USAGE_SCHEMA.SESSION_START: str(session_start),
        USAGE_SCHEMA.SESSION_DURATION: str(session_duration),
        USAGE_SCHEMA.SESSION_POSITION: "0",
        USAGE_SCHEMA.SESSION_POSITION_TYPE: "live",
        USAGE_SCHEMA.PROGRAM_ID: program_id,
        USAGE_SCHEMA.EPG_DURATION: str(epg_duration),
    }
    for key, value in overrides.items():
        row[getattr(USAGE_SCHEMA, key)] = value
    return row


def epg_row(
    program_id: str = "P1",
    start: str = "10/01/13 8:00 PM",
    end: str = "10/01/13 9:00 PM",
    title: str = "Evening News",
) -> Dict[str, str]:
    return {
        EPG_SCHEMA.PROGRAM_ID: program_id,
        EPG_SCHEMA.START: start,
        EPG_SCHEMA.END: end,
        EPG_SCHEMA.CHANNEL_ID: "bbc_one",
        EPG_SCHEMA.TITLE: title,
        EPG_SCHEMA.EPISODE_TITLE: "",
        EPG_SCHEMA.GENRES: "news",
    }


@pytest.fixture()
def sandbox(tmp_path: Path) -> Path:
    """Per-test filesystem sandbox."""
    return tmp_path


@pytest.fixture()
def project_root() -> Path:
    """Repo root (where pyproject.toml lives)."""
    return Path(__file__).resolve().parents[1]


@pytest.fixture()
def chdir_sandbox(monkeypatch, sandbox: Path):
    """Run as-if repo root is sandbox so relative data/... outputs/... paths land inside it."""
    monkeypatch.chdir(sandbox)
    return sandbox


@pytest.fixture()
def write_epg(sandbox: Path):
    def _write(rows: List[Dict[str, str]], name: str = "epg.tsv") -> Path:
        header = list(EPG_SCHEMA.columns)
        return _write_tsv(sandbox / name, header, [[r[c] for c in header] for r in rows])

    return _write


@pytest.fixture()
def write_usage(sandbox: Path):
    def _write(rows: List[Dict[str, str]], name: str = "usage.tsv") -> Path:
        header = list(USAGE_SCHEMA.columns)
        return _write_tsv(sandbox / name, header, [[r[c] for c in header] for r in rows])

    return _write


@pytest.fixture()
def small_epg(write_epg) -> Path:
    """P1 fully scheduled, P2 with unknown schedule."""
    return write_epg(
        [
            epg_row("P1"),
            epg_row("P2", start="null", end="null", title="Mystery Film"),
        ]
    )


@pytest.fixture()
def scenario_usage(write_usage) -> Path:
    """
    Rows cover the four documented scenarios:
      A: on time both ends        -> 8.0
      B: on time start, left early -> 5^1.5/10^0.5
      C: unknown program           -> 3.0
      D: unknown schedule          -> raw fraction
    """
    return write_usage(
        [
            usage_row("uA", fraction="0.8"),
            usage_row("uB", fraction="0.5", session_duration=1200),
            usage_row("uC", fraction="0.3", program_id="NOPE"),
            usage_row("uD", fraction="0.65", program_id="P2", session_start=P1_START + 1800, session_duration=60),
        ]
    )
