"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from capital_engine.models import AllocatedPosition, Asset  # noqa: E402


def make_asset(
    ticker: str,
    n_days: int = 120,
    volatility: float = 20.0,
    score: float = 50.0,
    seed: int = 0,
    dated: bool = True,
    common: np.ndarray = None,
    start: str = "2024-01-01",
) -> Asset:
    """Asset with a geometric random-walk price history.

    ``common`` adds a shared daily return factor to correlate assets.
    """
    rng = np.random.default_rng(seed)
    daily = volatility / 100.0 / np.sqrt(252)
    returns = rng.normal(0.0003, daily, n_days - 1)
    if common is not None:
        returns = returns + common[: n_days - 1]
    prices = 100.0 * np.exp(np.concatenate([[0.0], np.cumsum(returns)]))
    if dated:
        series = pd.Series(prices, index=pd.bdate_range(start, periods=n_days))
    else:
        series = pd.Series(prices)
    return Asset(ticker=ticker, prices=series, volatility=volatility, score=score)


def make_positions(assets, weights, capital=None):
    return [
        AllocatedPosition(asset=a, weight=w, recommended_capital=w * capital if capital else None)
        for a, w in zip(assets, weights)
    ]


@pytest.fixture
def scanner_assets():
    """Three assets with scores [90, 70, 50] and volatilities [15, 20, 30]."""
    rng = np.random.default_rng(7)
    common = rng.normal(0, 0.006, 200)
    return [
        make_asset("AAA", volatility=15.0, score=90.0, seed=1, common=common),
        make_asset("BBB", volatility=20.0, score=70.0, seed=2, common=common),
        make_asset("CCC", volatility=30.0, score=50.0, seed=3, common=common),
    ]


@pytest.fixture
def universe():
    """Ten correlated assets with spread-out scores and volatilities."""
    rng = np.random.default_rng(11)
    common = rng.normal(0, 0.008, 300)
    return [
        make_asset(
            f"SYM{i}",
            n_days=150,
            volatility=12.0 + 4.0 * i,
            score=95.0 - 7.0 * i,
            seed=100 + i,
            common=common,
        )
        for i in range(10)
    ]
