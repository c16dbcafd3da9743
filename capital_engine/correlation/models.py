"""Correlation Estimation Data Models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import numpy as np
import pandas as pd

from capital_engine.correlation.config import AlignmentMode
from capital_engine.errors import DegradedResultWarning


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AlignedReturns:
    """Log returns of several assets over a common set of observations.

    ``returns`` is a T x N DataFrame with one column per ticker.
    """

    returns: pd.DataFrame
    mode: AlignmentMode
    n_prices: int  # Common price points before differencing
    warnings: tuple[DegradedResultWarning, ...] = ()

    @property
    def tickers(self) -> list[str]:
        return [str(c) for c in self.returns.columns]

    @property
    def n_observations(self) -> int:
        return int(len(self.returns))


@dataclass(frozen=True)
class NearIdenticalPair:
    """Two assets whose correlation is close enough to make the matrix singular."""
    ticker_a: str
    ticker_b: str
    correlation: float

    def to_dict(self) -> dict:
        return {
            "ticker_a": self.ticker_a,
            "ticker_b": self.ticker_b,
            "correlation": round(self.correlation, 4),
        }


@dataclass(frozen=True)
class CorrelationStats:
    """Summary of off-diagonal correlations."""
    average: float = 0.0
    max: float = 0.0
    min: float = 0.0

    def to_dict(self) -> dict:
        return {
            "average": round(self.average, 2),
            "max": round(self.max, 2),
            "min": round(self.min, 2),
        }


@dataclass(frozen=True)
class CorrelationResult:
    """Shrinkage-corrected correlation, covariance and distance matrices.

    All three matrices are N x N DataFrames labelled by ticker. The
    covariance is of daily log returns.
    """

    correlation: pd.DataFrame
    covariance: pd.DataFrame
    distance: pd.DataFrame
    stats: CorrelationStats
    n_observations: int
    alignment: AlignmentMode
    shrinkage: float = 0.0
    near_identical_pairs: tuple[NearIdenticalPair, ...] = ()
    warnings: tuple[DegradedResultWarning, ...] = ()
    returns: Optional[pd.DataFrame] = field(default=None, repr=False)
    computed_at: datetime = field(default_factory=_utc_now)

    @property
    def tickers(self) -> list[str]:
        return [str(c) for c in self.correlation.columns]

    @property
    def n_assets(self) -> int:
        return len(self.correlation.columns)

    @property
    def std_devs(self) -> np.ndarray:
        """Daily standard deviation per asset."""
        return np.sqrt(np.clip(np.diag(self.covariance.to_numpy()), 0.0, None))

    def get_pair(self, ticker_a: str, ticker_b: str) -> float:
        return float(self.correlation.loc[ticker_a, ticker_b])

    def to_dict(self) -> dict:
        values = self.correlation.to_numpy()
        return {
            "matrix": [
                {"ticker": t, "values": [round(float(v), 2) for v in values[i]]}
                for i, t in enumerate(self.tickers)
            ],
            "raw_distance_matrix": self.distance.to_numpy().tolist(),
            "stats": self.stats.to_dict(),
            "n_observations": self.n_observations,
            "alignment": self.alignment.value,
            "shrinkage": round(self.shrinkage, 4),
            "near_identical_pairs": [p.to_dict() for p in self.near_identical_pairs],
            "warnings": [w.to_dict() for w in self.warnings],
        }
