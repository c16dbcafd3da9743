"""Tests for the allocation engine."""

import numpy as np
import pytest

from capital_engine.allocation import (
    ALLOCATION_METHODS,
    AllocationConfig,
    AllocationEngine,
    AllocationMethod,
    PortfolioAllocation,
    capital_recommendations,
    clip_and_normalize,
    compute_portfolio_risk,
    drawdown_estimate,
    resolve_method,
)
from capital_engine.allocation.weights import (
    equal_weights,
    erc_weights,
    score_weights,
    volatility_target_weights,
)
from capital_engine.errors import ConfigurationError
from capital_engine.models import AllocatedPosition, Asset

from conftest import make_asset, make_positions


def _flat_asset(ticker: str, volatility=20.0, score=50.0) -> Asset:
    return Asset(ticker=ticker, prices=[100.0, 101.0, 102.0], volatility=volatility, score=score)


# =========================================================================
# Config
# =========================================================================


class TestAllocationConfig:
    def test_defaults(self):
        cfg = AllocationConfig()
        assert cfg.max_position_weight == 1.0
        assert cfg.min_position_weight == 0.02
        assert cfg.target_volatility == 15.0
        assert cfg.max_assets_in_portfolio == 30
        assert cfg.min_assets_in_portfolio == 1
        assert cfg.validate() == []

    def test_min_above_max_invalid(self):
        cfg = AllocationConfig(min_position_weight=0.3, max_position_weight=0.2)
        assert any("cannot exceed" in e for e in cfg.validate())

    def test_every_method_has_metadata(self):
        assert set(ALLOCATION_METHODS) == set(AllocationMethod)


class TestResolveMethod:
    def test_enum_passthrough(self):
        assert resolve_method(AllocationMethod.ERC) is AllocationMethod.ERC

    def test_string_lookup(self):
        assert resolve_method("Score_Weighted") is AllocationMethod.SCORE_WEIGHTED

    def test_unknown_method_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown allocation method"):
            resolve_method("hrp")


# =========================================================================
# Raw weight policies
# =========================================================================


class TestWeightPolicies:
    def test_equal_weights(self):
        assets = [_flat_asset(f"A{i}") for i in range(4)]
        np.testing.assert_allclose(equal_weights(assets, AllocationConfig()), [0.25] * 4)

    def test_score_weights_proportional(self):
        assets = [_flat_asset("A", score=80), _flat_asset("B", score=40)]
        np.testing.assert_allclose(score_weights(assets, AllocationConfig()), [2 / 3, 1 / 3])

    def test_zero_scores_fall_back_to_equal(self):
        assets = [_flat_asset("A", score=0), _flat_asset("B", score=0)]
        np.testing.assert_allclose(score_weights(assets, AllocationConfig()), [0.5, 0.5])

    def test_erc_prefers_low_volatility(self):
        assets = [_flat_asset("LOW", volatility=10), _flat_asset("HIGH", volatility=40)]
        w = erc_weights(assets, AllocationConfig())
        assert w[0] > w[1]
        np.testing.assert_allclose(w, [0.8, 0.2])

    def test_erc_uses_default_volatility(self):
        assets = [_flat_asset("A", volatility=None), _flat_asset("B", volatility=20)]
        np.testing.assert_allclose(erc_weights(assets, AllocationConfig()), [0.5, 0.5])

    def test_volatility_target_shape(self):
        assets = [_flat_asset("A", volatility=10), _flat_asset("B", volatility=30)]
        raw = volatility_target_weights(assets, AllocationConfig(target_volatility=15))
        # (1/2) * (15/10) * (15/20) and (1/2) * (15/30) * (15/20)
        np.testing.assert_allclose(raw, [0.5625, 0.1875])


# =========================================================================
# Clip and renormalize
# =========================================================================


class TestClipAndNormalize:
    def test_inside_bounds_untouched(self):
        raw = np.array([0.5, 0.3, 0.2])
        weights, feasible = clip_and_normalize(raw, 0.02, 1.0)
        assert feasible
        np.testing.assert_array_equal(weights, raw)

    def test_caps_and_redistributes(self):
        weights, feasible = clip_and_normalize(np.array([0.7, 0.2, 0.05, 0.05]), 0.05, 0.4)
        assert feasible
        np.testing.assert_allclose(weights, [0.4, 0.4, 0.1, 0.1], atol=1e-9)

    def test_raises_floor(self):
        weights, _ = clip_and_normalize(np.array([0.5, 0.5, 0.0]), 0.2, 0.45)
        np.testing.assert_allclose(weights, [0.4, 0.4, 0.2], atol=1e-9)

    def test_random_weights_respect_bounds(self):
        rng = np.random.default_rng(3)
        for _ in range(50):
            raw = rng.exponential(1.0, 12)
            weights, feasible = clip_and_normalize(raw, 0.03, 0.15)
            assert feasible
            assert weights.sum() == pytest.approx(1.0, abs=1e-9)
            assert weights.min() >= 0.03 - 1e-9
            assert weights.max() <= 0.15 + 1e-9

    def test_infeasible_bounds_flagged(self):
        weights, feasible = clip_and_normalize(np.array([0.9, 0.1]), 0.02, 0.3)
        assert not feasible
        assert weights.sum() == pytest.approx(1.0)


# =========================================================================
# Engine
# =========================================================================


class TestAllocationEngine:
    def test_hybrid_scenario(self, scanner_assets):
        allocation = AllocationEngine().allocate(scanner_assets, "hybrid")
        assert allocation.total_weight == pytest.approx(1.0, abs=1e-3)
        weights = allocation.weights
        assert weights["AAA"] == max(weights.values())
        np.testing.assert_allclose(
            [weights["AAA"], weights["BBB"], weights["CCC"]],
            [0.43651, 0.33333, 0.23016],
            atol=1e-4,
        )
        risk = allocation.risk
        assert risk.portfolio_volatility < risk.weighted_average_volatility

    def test_empty_allocation_raises(self):
        with pytest.raises(ConfigurationError):
            AllocationEngine().allocate([], "hybrid", AllocationConfig(min_assets_in_portfolio=1))

    def test_too_few_assets_raises(self, scanner_assets):
        with pytest.raises(ConfigurationError, match="at least 5"):
            AllocationEngine().allocate(scanner_assets, "erc", AllocationConfig(min_assets_in_portfolio=5))

    def test_unknown_method_raises(self, scanner_assets):
        with pytest.raises(ConfigurationError):
            AllocationEngine().allocate(scanner_assets, "magic")

    def test_invalid_config_raises(self, scanner_assets):
        with pytest.raises(ConfigurationError, match="Invalid allocation config"):
            AllocationEngine().allocate(scanner_assets, "erc", AllocationConfig(target_volatility=0))

    def test_truncates_preserving_order(self, universe):
        cfg = AllocationConfig(max_assets_in_portfolio=4)
        allocation = AllocationEngine(cfg).allocate(universe, AllocationMethod.SCORE_WEIGHTED)
        assert [p.ticker for p in allocation.positions] == ["SYM0", "SYM1", "SYM2", "SYM3"]

    def test_equal_weight_exact(self, universe):
        allocation = AllocationEngine().allocate(universe[:7], AllocationMethod.EQUAL_WEIGHT)
        for position in allocation.positions:
            assert position.weight == 1.0 / 7
        assert allocation.risk.effective_n_assets == pytest.approx(7.0)

    @pytest.mark.parametrize("method", list(AllocationMethod))
    def test_all_methods_respect_bounds(self, universe, method):
        cfg = AllocationConfig(min_position_weight=0.05, max_position_weight=0.2)
        allocation = AllocationEngine(cfg).allocate(universe, method)
        assert allocation.total_weight == pytest.approx(1.0, abs=1e-3)
        for position in allocation.positions:
            assert 0.05 - 1e-9 <= position.weight <= 0.2 + 1e-9

    @pytest.mark.parametrize("method", list(AllocationMethod))
    def test_effective_n_at_most_n(self, universe, method):
        allocation = AllocationEngine().allocate(universe, method)
        n = allocation.n_assets
        if method is AllocationMethod.EQUAL_WEIGHT:
            assert allocation.risk.effective_n_assets == pytest.approx(n)
        else:
            assert allocation.risk.effective_n_assets < n

    @pytest.mark.parametrize("method", list(AllocationMethod))
    def test_diversification_ratio_at_least_one(self, universe, method):
        allocation = AllocationEngine().allocate(universe, method)
        assert allocation.risk.diversification_ratio >= 1.0

    def test_capital_fills_recommendations(self, scanner_assets):
        allocation = AllocationEngine().allocate(scanner_assets, "erc", capital=50_000)
        total = sum(p.recommended_capital for p in allocation.positions)
        assert total == pytest.approx(50_000)

    def test_infeasible_bounds_warn(self, scanner_assets):
        cfg = AllocationConfig(max_position_weight=0.2)
        allocation = AllocationEngine(cfg).allocate(scanner_assets, "erc")
        assert "infeasible_bounds" in [w.code for w in allocation.warnings]
        assert allocation.total_weight == pytest.approx(1.0)

    def test_missing_volatility_warns(self):
        assets = [_flat_asset("A", volatility=None), _flat_asset("B", volatility=25)]
        allocation = AllocationEngine().allocate(assets, "erc")
        assert [w.code for w in allocation.warnings] == ["default_volatility"]

    def test_provenance(self, scanner_assets):
        allocation = AllocationEngine().allocate(scanner_assets, "hybrid")
        data = allocation.to_dict()
        assert data["method"] == "hybrid"
        assert data["n_assets"] == 3
        assert allocation.timestamp.tzinfo is not None

    def test_result_is_immutable(self, scanner_assets):
        allocation = AllocationEngine().allocate(scanner_assets, "hybrid")
        with pytest.raises(AttributeError):
            allocation.method = AllocationMethod.ERC


# =========================================================================
# Risk estimate
# =========================================================================


class TestComputePortfolioRisk:
    def test_single_asset(self):
        positions = [AllocatedPosition(_flat_asset("A", volatility=25), 1.0)]
        risk = compute_portfolio_risk(positions)
        assert risk.portfolio_volatility == pytest.approx(25.0)
        assert risk.diversification_ratio == pytest.approx(1.0)
        assert risk.effective_n_assets == pytest.approx(1.0)

    def test_two_asset_formula(self):
        positions = make_positions(
            [_flat_asset("A", volatility=10), _flat_asset("B", volatility=20)],
            [0.5, 0.5],
        )
        risk = compute_portfolio_risk(positions, average_correlation=0.3)
        expected = np.sqrt(25 + 100 + 2 * 0.3 * 5 * 10)
        assert risk.portfolio_volatility == pytest.approx(expected)
        assert risk.concentration == pytest.approx(0.5)

    def test_marginal_risk_sums_to_100(self, universe):
        allocation = AllocationEngine().allocate(universe, "hybrid")
        total = sum(m.contribution for m in allocation.risk.marginal_risk)
        assert total == pytest.approx(100.0)

    def test_drawdown_steps(self):
        assert drawdown_estimate(90) == 15.0
        assert drawdown_estimate(70) == 25.0
        assert drawdown_estimate(60) == 25.0
        assert drawdown_estimate(50) == 35.0

    def test_estimated_drawdown_weighted(self):
        positions = make_positions(
            [_flat_asset("A", score=80), _flat_asset("B", score=40)],
            [0.5, 0.5],
        )
        assert compute_portfolio_risk(positions).estimated_max_drawdown == pytest.approx(25.0)

    def test_empty_positions(self):
        assert compute_portfolio_risk([]).portfolio_volatility == 0.0


class TestCapitalRecommendations:
    def test_fills_capital(self, scanner_assets):
        allocation = AllocationEngine().allocate(scanner_assets, "equal_weight")
        funded = capital_recommendations(allocation, 30_000)
        assert isinstance(funded, PortfolioAllocation)
        assert [p.recommended_capital for p in funded.positions] == pytest.approx([10_000] * 3)
        assert allocation.positions[0].recommended_capital is None

    def test_negative_capital_raises(self, scanner_assets):
        allocation = AllocationEngine().allocate(scanner_assets, "equal_weight")
        with pytest.raises(ConfigurationError):
            capital_recommendations(allocation, -1)


def test_make_asset_helper_builds_dated_series():
    asset = make_asset("X", n_days=40)
    assert asset.has_dates
    assert asset.n_prices == 40
