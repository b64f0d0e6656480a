from __future__ import annotations

import json

import pytest

from tvir.rating.policy import RatingBranch, RatingResult
from tvir.reporting.summary import HISTOGRAM_EDGES, RunSummary


def _r(rating: float, branch: RatingBranch = RatingBranch.NO_EPG, f: float | None = None) -> RatingResult:
    return RatingResult(scaled_fraction=rating if f is None else f, branch=branch, rating=rating)


def test_empty_summary_is_stable():
    d = RunSummary().to_dict()
    assert d["n_rows"] == 0
    assert d["mean_rating"] == 0.0
    assert set(d["branch_counts"]) == {b.value for b in RatingBranch}
    assert sum(d["rating_histogram"]["counts"]) == 0
    json.dumps(d)


def test_counts_means_and_histogram():
    s = RunSummary()
    s.add(_r(8.0, RatingBranch.FULL))
    s.add_many([_r(1.0, RatingBranch.START_ONLY, f=2.0), _r(10.0, RatingBranch.NO_EPG), _r(0.0)])

    assert s.n_rows == 4
    assert s.branch_counts["full"] == 1
    assert s.branch_counts["start_only"] == 1
    assert s.branch_counts["no_epg"] == 2
    assert s.mean_rating == pytest.approx(19.0 / 4)
    assert s.mean_scaled_fraction == pytest.approx(20.0 / 4)

    hist = s.to_dict()["rating_histogram"]
    assert len(hist["edges"]) == len(HISTOGRAM_EDGES) == 11
    assert hist["counts"][0] == 1  # 0.0
    assert hist["counts"][1] == 1  # 1.0
    assert hist["counts"][8] == 1  # 8.0
    assert hist["counts"][9] == 1  # 10.0 lands in the closed last bin
    assert s.to_dict()["frac_with_epg"] == pytest.approx(0.5)


def test_top_of_scale_overshoot_still_counted():
    s = RunSummary()
    s.add(_r(10.000000000000002, RatingBranch.START_ONLY))
    assert s.to_dict()["rating_histogram"]["counts"][9] == 1


def test_add_many_empty_is_noop():
    s = RunSummary()
    s.add_many([])
    assert s.n_rows == 0
