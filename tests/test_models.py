"""Tests for shared data models, errors and settings."""

import math

import pandas as pd
import pytest

from capital_engine.errors import (
    CapitalEngineError,
    DataValidationError,
    DegradedResultWarning,
    InsufficientDataError,
)
from capital_engine.models import AllocatedPosition, Asset, positions_of, total_weight
from capital_engine.settings import Settings, get_settings

from conftest import make_asset, make_positions


# =========================================================================
# Asset
# =========================================================================


class TestAsset:
    def test_list_prices(self):
        asset = Asset("AAA", prices=[100, 101, 102])
        assert asset.n_prices == 3
        assert not asset.has_dates
        assert asset.name == "AAA"
        assert asset.prices.dtype == float

    def test_dated_prices(self):
        asset = make_asset("AAA", n_days=40)
        assert asset.has_dates
        assert asset.n_prices == 40

    def test_dict_prices_sorted_by_date(self):
        asset = Asset("AAA", prices={"2024-01-03": 102.0, "2024-01-02": 101.0})
        assert asset.has_dates
        assert list(asset.prices) == [101.0, 102.0]

    def test_unparseable_dates(self):
        with pytest.raises(DataValidationError):
            Asset("AAA", prices={"not a date": 1.0, "also not": 2.0})

    @pytest.mark.parametrize("prices", [
        [100.0, math.nan, 101.0],
        [100.0, math.inf],
        [100.0, 0.0],
        [100.0, -5.0],
    ])
    def test_invalid_prices(self, prices):
        with pytest.raises(DataValidationError) as exc_info:
            Asset("AAA", prices=prices)
        assert exc_info.value.field == "prices"

    def test_duplicate_dates(self):
        index = pd.DatetimeIndex(["2024-01-02", "2024-01-02"])
        with pytest.raises(DataValidationError):
            Asset("AAA", prices=pd.Series([1.0, 2.0], index=index))

    @pytest.mark.parametrize("score", [-1.0, 101.0, math.nan])
    def test_invalid_score(self, score):
        with pytest.raises(DataValidationError):
            Asset("AAA", prices=[1.0, 2.0], score=score)

    @pytest.mark.parametrize("vol", [0.0, -10.0, math.inf])
    def test_invalid_volatility(self, vol):
        with pytest.raises(DataValidationError):
            Asset("AAA", prices=[1.0, 2.0], volatility=vol)

    def test_missing_ticker(self):
        with pytest.raises(DataValidationError):
            Asset("", prices=[1.0])

    def test_invalid_highs(self):
        with pytest.raises(DataValidationError):
            Asset("AAA", prices=[1.0, 2.0], highs=[1.5, -1.0])

    def test_volatility_or(self):
        assert Asset("AAA", prices=[1.0]).volatility_or(20.0) == 20.0
        assert Asset("AAA", prices=[1.0], volatility=35.0).volatility_or(20.0) == 35.0

    def test_from_dict_rows(self):
        asset = Asset.from_dict({
            "ticker": "AAA",
            "name": "Alpha",
            "score": 80,
            "volatility": 18.5,
            "prices": [
                {"date": "2024-01-02", "close": 100.0},
                {"date": "2024-01-03", "close": 101.5},
            ],
        })
        assert asset.has_dates
        assert asset.name == "Alpha"
        assert asset.to_dict()["n_prices"] == 2

    def test_from_dict_plain_list(self):
        asset = Asset.from_dict({"ticker": "AAA", "prices": [1.0, 2.0, 3.0]})
        assert not asset.has_dates
        assert asset.score == 50.0
        assert asset.volatility is None


class TestAllocatedPosition:
    def test_exposure(self):
        asset = make_asset("AAA")
        assert AllocatedPosition(asset, 0.25).exposure(1_000) == 250.0
        assert AllocatedPosition(asset, 0.25, 300.0).exposure(1_000) == 300.0

    def test_to_dict(self):
        position = AllocatedPosition(make_asset("AAA"), 0.123456789, 1234.567)
        data = position.to_dict()
        assert data["weight_pct"] == 12.35
        assert data["recommended_capital"] == 1234.57

    def test_positions_helpers(self):
        positions = make_positions([make_asset("A"), make_asset("B")], [0.4, 0.6])
        assert positions_of(positions) == positions
        assert positions_of(None) == []
        assert total_weight(positions) == pytest.approx(1.0)


# =========================================================================
# Errors
# =========================================================================


class TestErrors:
    def test_hierarchy(self):
        assert issubclass(InsufficientDataError, CapitalEngineError)
        assert issubclass(DataValidationError, ValueError)

    def test_insufficient_data_details(self):
        err = InsufficientDataError("short", observations=20, required=30)
        assert err.details == [{"observations": 20, "required": 30}]
        assert str(err) == "short"

    def test_warning_equality(self):
        a = DegradedResultWarning("code", "msg")
        assert a == DegradedResultWarning("code", "msg")
        assert a != DegradedResultWarning("other", "msg")
        assert len({a, DegradedResultWarning("code", "msg")}) == 1
        assert a.to_dict() == {"code": "code", "message": "msg"}


# =========================================================================
# Settings
# =========================================================================


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.default_allocation_method == "hybrid"
        assert settings.var_confidence == 0.95
        assert settings.max_assets_in_portfolio == 30

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CAPITAL_ENGINE_DEFAULT_CAPITAL", "250000")
        monkeypatch.setenv("CAPITAL_ENGINE_LOG_FORMAT", "json")
        settings = Settings()
        assert settings.default_capital == 250_000.0
        assert settings.log_format == "json"

    def test_cached(self):
        assert get_settings() is get_settings()
