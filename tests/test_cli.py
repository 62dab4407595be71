"""CLI smoke tests (JSON output)."""

import json
import sys

import pytest

import main


@pytest.fixture
def cli_files(tmp_path, make_wave):
    csv_path = tmp_path / "wave.csv"
    make_wave(n=150).to_csv(csv_path, index=False)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "engine:\n"
        "  fast_period: 5\n"
        "  slow_period: 15\n"
        "  atr_period: 5\n"
        "logging:\n"
        "  level: WARNING\n"
        "  log_file: ''\n",
        encoding="utf-8",
    )
    return csv_path, config_path


def _reject_constant(name):
    raise ValueError(f"non-standard JSON constant {name}")


def _run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["main.py", *argv])
    return main.main()


def test_analyze_json(monkeypatch, capsys, cli_files):
    csv_path, config_path = cli_files
    code = _run(monkeypatch, "analyze", "--config", str(config_path), "--data", str(csv_path),
                "--symbol", "wave", "--json")
    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["symbol"] == "WAVE"
    assert payload["total_days"] == 150
    assert payload["trades"]


def test_compare_json(monkeypatch, capsys, cli_files):
    csv_path, config_path = cli_files
    code = _run(monkeypatch, "compare", "--config", str(config_path), "--data", str(csv_path),
                "--pairs", "5,20|6,25", "--json")
    assert code == 0
    payload = json.loads(capsys.readouterr().out, parse_constant=_reject_constant)
    assert {(r["fast_period"], r["slow_period"]) for r in payload["results"]} <= {(5, 20), (6, 25)}


def test_invalid_pairs_exit_code(monkeypatch, cli_files):
    csv_path, config_path = cli_files
    code = _run(monkeypatch, "compare", "--config", str(config_path), "--data", str(csv_path),
                "--pairs", "20,10")
    assert code == 1
