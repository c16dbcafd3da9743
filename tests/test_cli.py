"""Tests for the command-line entry point."""

import json
import logging

import pytest

from main import build_parser, load_assets, main

from conftest import make_asset


def _records(asset):
    return {
        "ticker": asset.ticker,
        "score": asset.score,
        "volatility": asset.volatility,
        "prices": [
            {"date": ts.strftime("%Y-%m-%d"), "close": float(close)}
            for ts, close in asset.prices.items()
        ],
    }


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def assets_file(tmp_path, scanner_assets):
    path = tmp_path / "scan.json"
    path.write_text(json.dumps({"assets": [_records(a) for a in scanner_assets]}))
    return path


class TestLoadAssets:
    def test_wrapped_records(self, assets_file):
        assets = load_assets(assets_file)
        assert [a.ticker for a in assets] == ["AAA", "BBB", "CCC"]
        assert all(a.has_dates for a in assets)

    def test_plain_list(self, tmp_path):
        path = tmp_path / "plain.json"
        path.write_text(json.dumps([{"ticker": "AAA", "prices": [1.0, 2.0]}]))
        assert load_assets(path)[0].n_prices == 2


class TestMain:
    def test_parser_defaults(self):
        args = build_parser().parse_args(["--input", "x.json"])
        assert args.method == "hybrid"
        assert args.stress == 0.0
        assert not args.json

    def test_json_output(self, assets_file, capsys):
        assert main(["--input", str(assets_file), "--json", "--capital", "50000"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert set(data) == {"allocation", "risk_report", "dynamic_limits"}
        weights = [p["weight"] for p in data["allocation"]["allocation"]]
        assert sum(weights) == pytest.approx(1.0, abs=1e-5)
        assert len(data["risk_report"]["stress_tests"]) == 4
        assert "rules" in data["dynamic_limits"]

    def test_table_output(self, assets_file, capsys):
        assert main(["--input", str(assets_file), "--method", "erc", "--stress", "0.6"]) == 0
        out = capsys.readouterr().out
        assert "CAPITAL ENGINE" in out
        assert "Method: erc" in out
        assert "Systemic Crisis" in out
        assert "[WARNING]" in out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["--input", str(tmp_path / "missing.json")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_unknown_method(self, assets_file, capsys):
        assert main(["--input", str(assets_file), "--method", "magic"]) == 1
        assert "magic" in capsys.readouterr().err

    def test_confidence_reaches_risk_report(self, assets_file, capsys):
        assert main(["--input", str(assets_file), "--json", "--confidence", "0.99"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["risk_report"]["portfolio_var"]["confidence"] == 0.99

    def test_invalid_confidence_rejected(self, assets_file, capsys):
        assert main(["--input", str(assets_file), "--confidence", "1.5"]) == 1
        assert "confidence must be between 0.5 and 1" in capsys.readouterr().err
