"""Shared Data Models.

Asset records supplied by the upstream scanner and the allocated
positions that flow from the allocation engine into the risk engine.
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from capital_engine.errors import DataValidationError

MIN_SCORE = 0.0
MAX_SCORE = 100.0


def _to_series(values, name: str) -> pd.Series:
    """Coerce prices into a float Series without altering the index."""
    if isinstance(values, pd.Series):
        series = values.astype(float)
    elif isinstance(values, dict):
        series = pd.Series(values, dtype=float)
        try:
            series.index = pd.to_datetime(series.index)
        except (ValueError, TypeError) as exc:
            raise DataValidationError(f"{name}: price dates could not be parsed", field="prices") from exc
        series = series.sort_index()
    else:
        series = pd.Series(list(values), dtype=float)
    series.name = name
    return series


def _validate_prices(series: pd.Series, ticker: str, field_name: str) -> None:
    if series.isna().any():
        raise DataValidationError(f"{ticker}: {field_name} contain null/NaN values", field=field_name)
    values = series.to_numpy()
    if not np.all(np.isfinite(values)):
        raise DataValidationError(f"{ticker}: {field_name} contain non-finite values", field=field_name)
    if np.any(values <= 0):
        raise DataValidationError(f"{ticker}: {field_name} must be strictly positive", field=field_name)
    if isinstance(series.index, pd.DatetimeIndex) and series.index.has_duplicates:
        raise DataValidationError(f"{ticker}: duplicate price dates", field=field_name)


@dataclass(frozen=True, eq=False)
class Asset:
    """A scored instrument with its daily price history.

    ``prices`` is an ordered close-price series. When it is indexed by a
    ``DatetimeIndex`` the risk engine aligns assets on common dates;
    otherwise alignment falls back to position.

    ``volatility`` is annualized and expressed in percent (20.0 = 20%).
    ``score`` is the 0-100 quality score produced by the scanner.
    """

    ticker: str
    name: str = ""
    prices: pd.Series = field(default_factory=lambda: pd.Series(dtype=float))
    volatility: Optional[float] = None
    score: float = 50.0
    highs: Optional[pd.Series] = None
    lows: Optional[pd.Series] = None

    def __post_init__(self):
        if not self.ticker:
            raise DataValidationError("ticker is required", field="ticker")

        prices = _to_series(self.prices, self.ticker)
        _validate_prices(prices, self.ticker, "prices")
        object.__setattr__(self, "prices", prices)

        for extra in ("highs", "lows"):
            values = getattr(self, extra)
            if values is not None:
                series = _to_series(values, self.ticker)
                _validate_prices(series, self.ticker, extra)
                object.__setattr__(self, extra, series)

        if self.score is None or not math.isfinite(float(self.score)):
            raise DataValidationError(f"{self.ticker}: score must be a finite number", field="score")
        if not MIN_SCORE <= float(self.score) <= MAX_SCORE:
            raise DataValidationError(
                f"{self.ticker}: score {self.score} outside [{MIN_SCORE:.0f}, {MAX_SCORE:.0f}]",
                field="score",
            )

        if self.volatility is not None:
            vol = float(self.volatility)
            if not math.isfinite(vol) or vol <= 0:
                raise DataValidationError(
                    f"{self.ticker}: volatility must be a positive finite percentage",
                    field="volatility",
                )

        if not self.name:
            object.__setattr__(self, "name", self.ticker)

    @property
    def n_prices(self) -> int:
        return int(self.prices.size)

    @property
    def has_dates(self) -> bool:
        return isinstance(self.prices.index, pd.DatetimeIndex)

    def volatility_or(self, default: float) -> float:
        """Annualized volatility in percent, or *default* when unknown."""
        return float(self.volatility) if self.volatility is not None else float(default)

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "name": self.name,
            "volatility": self.volatility,
            "score": self.score,
            "n_prices": self.n_prices,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Asset":
        """Build an asset from a scanner record.

        Accepts ``prices`` either as a list of closes or as a list of
        ``{"date": ..., "close": ...}`` rows.
        """
        raw = data.get("prices", [])
        if raw and isinstance(raw[0], dict):
            prices = {row["date"]: row["close"] for row in raw}
        else:
            prices = raw
        return cls(
            ticker=data["ticker"],
            name=data.get("name", ""),
            prices=prices,
            volatility=data.get("volatility"),
            score=data.get("score", 50.0),
        )


@dataclass(frozen=True)
class AllocatedPosition:
    """An asset together with its allocated weight."""

    asset: Asset
    weight: float
    recommended_capital: Optional[float] = None

    @property
    def ticker(self) -> str:
        return self.asset.ticker

    @property
    def weight_pct(self) -> float:
        return self.weight * 100.0

    def exposure(self, capital: float) -> float:
        """Capital at risk in this position."""
        if self.recommended_capital is not None:
            return float(self.recommended_capital)
        return self.weight * capital

    def to_dict(self) -> dict:
        return {
            "ticker": self.asset.ticker,
            "name": self.asset.name,
            "weight": round(self.weight, 6),
            "weight_pct": round(self.weight_pct, 2),
            "score": self.asset.score,
            "volatility": self.asset.volatility,
            "recommended_capital": (
                round(self.recommended_capital, 2)
                if self.recommended_capital is not None
                else None
            ),
        }


def positions_of(portfolio) -> list[AllocatedPosition]:
    """Return the positions held by an allocation or a plain sequence."""
    positions = getattr(portfolio, "positions", portfolio)
    if positions is None:
        return []
    return list(positions)


def total_weight(positions: Sequence[AllocatedPosition]) -> float:
    return float(sum(p.weight for p in positions))
