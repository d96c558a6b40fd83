"""Tests for the ledgerd CLI."""
from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from trade_ledger.services.ledgerd.main import app
from trade_ledger.storage.ledger import read_ledger

runner = CliRunner()


def _base(tmp_path: Path) -> list[str]:
    return ["--env-file", str(tmp_path / "absent.env"), "--root", str(tmp_path), "--portfolio", "p"]


def test_apply_and_show(tmp_path: Path) -> None:
    res = runner.invoke(app, [*_base(tmp_path), "apply", "--multiplier", "1", "--", "SPY", "2024-01-02", "100", "10"])
    assert res.exit_code == 0, res.output
    res = runner.invoke(
        app, [*_base(tmp_path), "apply", "--fee=-1", "--multiplier", "1", "--", "SPY", "2024-01-03", "-150", "12"]
    )
    assert res.exit_code == 0, res.output
    assert "appended 2 record(s)" in res.output

    led = read_ledger(tmp_path / "p" / "SPY.parquet", "SPY")
    assert led.transactions["txn_qty"].tolist() == [100.0, -100.0, -50.0]

    res = runner.invoke(app, [*_base(tmp_path), "show", "SPY"])
    assert res.exit_code == 0
    assert "pos_avg_cost" in res.output


def test_apply_rebate_rejected(tmp_path: Path) -> None:
    res = runner.invoke(app, [*_base(tmp_path), "apply", "--fee=1", "--multiplier", "1", "--", "SPY", "2024-01-02", "1", "10"])
    assert res.exit_code != 0
    assert not (tmp_path / "p" / "SPY.parquet").exists()


def test_apply_batch_and_snapshot(tmp_path: Path) -> None:
    table = tmp_path / "txns.csv"
    pd.DataFrame(
        {"txn_qty": [100.0, -150.0], "txn_price": [10.0, 12.0], "txn_fees": [0.0, -1.5]},
        index=pd.Index(["2024-01-02", "2024-01-03"], name="ts"),
    ).to_csv(table)

    res = runner.invoke(app, [*_base(tmp_path), "apply-batch", "--multiplier", "1", "SPY", str(table)])
    assert res.exit_code == 0, res.output
    assert "appended 3 record(s)" in res.output

    out = tmp_path / "positions.parquet"
    res = runner.invoke(app, [*_base(tmp_path), "snapshot", "--out", str(out)])
    assert res.exit_code == 0, res.output
    assert "SPY qty=-50" in res.output
    assert out.exists()


def test_apply_batch_missing_table(tmp_path: Path) -> None:
    res = runner.invoke(app, [*_base(tmp_path), "apply-batch", "SPY", str(tmp_path / "nope.csv")])
    assert res.exit_code == 1
