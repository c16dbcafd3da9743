"""CLI entry point: python main.py --input assets.json --capital 100000"""

import argparse
import json
import logging
import sys
from pathlib import Path

from capital_engine import (
    AllocationConfig,
    AllocationEngine,
    Asset,
    CapitalEngineError,
    ConfigurationError,
    DynamicGovernanceEngine,
    MarketConditions,
    RiskEngine,
)
from capital_engine.logging_config import LogFormat, LoggingConfig, LogLevel, configure_logging, run_context
from capital_engine.risk import RiskEngineConfig
from capital_engine.settings import get_settings

logger = logging.getLogger(__name__)


def load_assets(path: Path) -> list[Asset]:
    """Read scanner output: a list of asset records or {"assets": [...]}."""
    with open(path) as f:
        data = json.load(f)
    records = data.get("assets", []) if isinstance(data, dict) else data
    return [Asset.from_dict(r) for r in records]


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Capital allocation, portfolio risk and adaptive governance"
    )
    parser.add_argument(
        "--input", type=Path, required=True,
        help="JSON file with scored assets and price histories"
    )
    parser.add_argument(
        "--method", default=settings.default_allocation_method,
        help="Allocation method: equal_weight, score_weighted, erc, volatility_target, hybrid"
    )
    parser.add_argument(
        "--capital", type=float, default=settings.default_capital,
        help="Capital to allocate"
    )
    parser.add_argument(
        "--confidence", type=float, default=settings.var_confidence,
        help="VaR confidence level (default: 0.95)"
    )
    parser.add_argument(
        "--volatility", type=float, default=None,
        help="Market volatility %% for dynamic limits (default: allocation estimate)"
    )
    parser.add_argument(
        "--stress", type=float, default=0.0,
        help="Market stress level between 0 and 1"
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Print results as JSON instead of tables"
    )
    return parser


def format_allocation(allocation, capital: float) -> str:
    lines = [f"{'Ticker':<10}{'Weight':>10}{'Capital':>14}{'Score':>8}{'Vol %':>8}"]
    for p in allocation.positions:
        vol = f"{p.asset.volatility:.1f}" if p.asset.volatility is not None else "n/a"
        lines.append(
            f"{p.ticker:<10}{p.weight_pct:>9.2f}%{p.exposure(capital):>14,.2f}"
            f"{p.asset.score:>8.0f}{vol:>8}"
        )
    risk = allocation.risk
    lines.append("")
    lines.append(f"  Portfolio volatility:  {risk.portfolio_volatility:.2f}%")
    lines.append(f"  Diversification ratio: {risk.diversification_ratio:.2f}")
    lines.append(f"  Effective N:           {risk.effective_n_assets:.1f}")
    lines.append(f"  Est. max drawdown:     {risk.estimated_max_drawdown:.1f}%")
    return "\n".join(lines)


def format_risk_report(report) -> str:
    var = report.portfolio_var
    if var.error:
        lines = [f"  VaR unavailable: {var.error}"]
    else:
        lines = [
            f"  1-day VaR ({var.confidence:.0%}):   {var.diversified_var:,.2f}",
            f"  Undiversified VaR:    {var.undiversified_var:,.2f}",
            f"  CVaR:                 {report.portfolio_cvar.cvar:,.2f}",
            f"  Annualized vol:       {var.portfolio_volatility:.2f}%",
        ]
    lines.append(f"  Concentration risk:   {report.concentration_risk.value}")
    lines.append(f"  Diversification:      {report.diversification_score:.0f}/100")
    lines.append(f"  Riskiest asset:       {report.riskiest_asset.ticker}")
    for s in report.stress_tests:
        lines.append(
            f"  {s.scenario:<22}{s.market_drop * 100:>6.0f}%  loss {s.estimated_loss:>12,.2f}"
            f"  remaining {s.remaining_capital:>12,.2f}"
        )
    for w in report.warnings:
        lines.append(f"  ! {w.message}")
    return "\n".join(lines)


def format_limits(limits) -> str:
    rules = limits.rules
    lines = [
        f"  Regime: {limits.volatility_regime.name} / {limits.correlation_regime.name}"
        f" (combined x{limits.multipliers.combined:.2f})",
        f"  Max position:   {rules.max_position_weight:.1%}",
        f"  Max sector:     {rules.max_sector_weight:.1%}",
        f"  Max top 3:      {rules.max_top3_concentration:.1%}",
        f"  Rebalance at:   {rules.rebalance_threshold:.1%}",
    ]
    for rec in limits.recommendations:
        lines.append(f"  [{rec.level.value}] {rec.message}")
    return "\n".join(lines)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(LoggingConfig(
        level=LogLevel(settings.log_level.upper()),
        format=LogFormat(settings.log_format.lower()),
    ))

    with run_context(portfolio_id=args.input.stem):
        try:
            assets = load_assets(args.input)
            allocation = AllocationEngine(AllocationConfig.from_settings(settings)).allocate(
                assets, args.method, capital=args.capital
            )
            risk_config = RiskEngineConfig.from_settings(settings, confidence=args.confidence)
            errors = risk_config.validate()
            if errors:
                raise ConfigurationError(f"Invalid risk configuration: {'; '.join(errors)}")
            report = RiskEngine(risk_config).generate_risk_report(allocation, args.capital)

            correlation = report.correlation.correlation if report.correlation is not None else None
            conditions = MarketConditions(
                portfolio_volatility=(
                    args.volatility if args.volatility is not None
                    else allocation.risk.portfolio_volatility
                ),
                correlation_matrix=correlation,
                stress_level=args.stress,
            )
            limits = DynamicGovernanceEngine().calculate_dynamic_limits(conditions)
        except (CapitalEngineError, OSError, json.JSONDecodeError, KeyError) as e:
            logger.error("Run failed: %s", e)
            print(f"Error: {e}", file=sys.stderr)
            return 1

    if args.json:
        print(json.dumps({
            "allocation": allocation.to_dict(),
            "risk_report": report.to_dict(),
            "dynamic_limits": limits.to_dict(),
        }, indent=2, default=str))
        return 0

    print("=" * 60)
    print("CAPITAL ENGINE")
    print(f"Capital: {args.capital:,.2f}  Method: {allocation.method.value}")
    print("=" * 60)
    print("\n[1/3] Allocation")
    print(format_allocation(allocation, args.capital))
    print("\n[2/3] Risk report")
    print(format_risk_report(report))
    print("\n[3/3] Dynamic limits")
    print(format_limits(limits))
    return 0


if __name__ == "__main__":
    sys.exit(main())
