# src/tvir/reporting/summary.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

import numpy as np

from tvir.rating.policy import RATING_SCALE, RatingBranch, RatingResult

# 10 equal-width rating bins over [0, 10]; the last bin is closed on the right.
HISTOGRAM_EDGES = np.linspace(0.0, RATING_SCALE, 11)


@dataclass
class RunSummary:
    """
    Running aggregate over the RatingResults of one run.
    Kept small on purpose: counts, sums and a fixed histogram, never the rows.
    """
    n_rows: int = 0
    branch_counts: Dict[str, int] = field(default_factory=lambda: {b.value: 0 for b in RatingBranch})
    rating_sum: float = 0.0
    scaled_fraction_sum: float = 0.0
    histogram: List[int] = field(default_factory=lambda: [0] * (len(HISTOGRAM_EDGES) - 1))

    def add(self, result: RatingResult) -> None:
        self.add_many([result])

    def add_many(self, results: Iterable[RatingResult]) -> None:
        results = list(results)
        if not results:
            return
        ratings = np.fromiter((r.rating for r in results), dtype=float, count=len(results))
        # pow() can land a hair above 10.0 at the top of the scale
        counts, _ = np.histogram(np.clip(ratings, 0.0, RATING_SCALE), bins=HISTOGRAM_EDGES)

        self.n_rows += len(results)
        self.rating_sum += float(ratings.sum())
        self.scaled_fraction_sum += float(sum(r.scaled_fraction for r in results))
        self.histogram = [int(a + b) for a, b in zip(self.histogram, counts)]
        for r in results:
            self.branch_counts[r.branch.value] += 1

    @property
    def mean_rating(self) -> float:
        return self.rating_sum / self.n_rows if self.n_rows else 0.0

    @property
    def mean_scaled_fraction(self) -> float:
        return self.scaled_fraction_sum / self.n_rows if self.n_rows else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_rows": int(self.n_rows),
            "branch_counts": dict(self.branch_counts),
            "frac_with_epg": float(
                (self.n_rows - self.branch_counts[RatingBranch.NO_EPG.value]) / max(self.n_rows, 1)
            ),
            "mean_rating": float(self.mean_rating),
            "mean_scaled_fraction": float(self.mean_scaled_fraction),
            "rating_histogram": {
                "edges": [float(x) for x in HISTOGRAM_EDGES],
                "counts": list(self.histogram),
            },
        }
