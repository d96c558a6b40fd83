from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
import typer

from trade_ledger.accounting.snapshot import position_snapshot, write_snapshot
from trade_ledger.accounting.transactions import apply_transaction, apply_transactions
from trade_ledger.config.settings import LedgerSettings
from trade_ledger.storage.ledger import ledger_path, load_portfolio, read_ledger, write_ledger

app = typer.Typer(help="ledgerd: apply trades to per-instrument ledgers (average cost, realized P&L)")

_settings: dict[str, LedgerSettings] = {}


def _cfg() -> LedgerSettings:
    if "cfg" not in _settings:
        _settings["cfg"] = LedgerSettings.from_env()
    return _settings["cfg"]


@app.callback()
def main(
    env_file: str | None = typer.Option(None, help="Path to a .env file"),
    root: str | None = typer.Option(None, help="Ledger root directory"),
    portfolio: str | None = typer.Option(None, help="Portfolio name"),
) -> None:
    cfg = LedgerSettings.from_env(env_file)
    if root is not None:
        cfg.ledger_root = Path(root)
    if portfolio is not None:
        cfg.portfolio = portfolio
    _settings["cfg"] = cfg
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    logging.captureWarnings(True)


def _read_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        df = pd.read_parquet(path)
        if "ts" in df.columns:
            df = df.set_index("ts")
    else:
        df = pd.read_csv(path, index_col=0)
    df.index = pd.to_datetime(df.index)
    return df


@app.command()
def apply(
    symbol: str,
    ts: str,
    qty: float,
    price: float,
    fee: str = typer.Option("0", help="Fee amount (negative) or registered fee rule name"),
    multiplier: float | None = typer.Option(None, help="Contract multiplier override"),
    allow_rebates: bool | None = typer.Option(None, "--allow-rebates/--no-allow-rebates"),
) -> None:
    cfg = _cfg()
    port = load_portfolio(cfg.ledger_root, cfg.portfolio, cfg.init_ts)
    recs = apply_transaction(
        port, symbol, ts, qty, price,
        fee=fee,
        allow_rebates=cfg.allow_rebates if allow_rebates is None else allow_rebates,
        contract_multiplier=multiplier,
        eps=cfg.eps,
        verbose=cfg.verbose,
    )
    out = ledger_path(cfg.ledger_root, cfg.portfolio, symbol)
    write_ledger(out, port.ledger(symbol))
    typer.echo(f"[ledgerd] appended {len(recs)} record(s) to {out}")


@app.command("apply-batch")
def apply_batch(
    symbol: str,
    table: Path,
    multiplier: float | None = typer.Option(None, help="Contract multiplier override"),
    allow_rebates: bool | None = typer.Option(None, "--allow-rebates/--no-allow-rebates"),
) -> None:
    cfg = _cfg()
    if not table.exists():
        typer.echo(f"missing {table}")
        raise typer.Exit(1)
    port = load_portfolio(cfg.ledger_root, cfg.portfolio, cfg.init_ts)
    out_df = apply_transactions(
        port, symbol, _read_table(table),
        allow_rebates=cfg.allow_rebates if allow_rebates is None else allow_rebates,
        contract_multiplier=multiplier,
        eps=cfg.eps,
        verbose=cfg.verbose,
    )
    out = ledger_path(cfg.ledger_root, cfg.portfolio, symbol)
    write_ledger(out, port.ledger(symbol))
    typer.echo(f"[ledgerd] appended {len(out_df)} record(s) to {out}")


@app.command()
def show(symbol: str) -> None:
    cfg = _cfg()
    p = ledger_path(cfg.ledger_root, cfg.portfolio, symbol)
    if not p.exists():
        typer.echo(f"missing {p}")
        raise typer.Exit(1)
    led = read_ledger(p, symbol, cfg.init_ts)
    typer.echo(led.transactions.to_string())


@app.command()
def snapshot(out: Path | None = typer.Option(None, help="Write positions parquet here")) -> None:
    cfg = _cfg()
    port = load_portfolio(cfg.ledger_root, cfg.portfolio, cfg.init_ts)
    for s in position_snapshot(port).values():
        typer.echo(
            f"{s.symbol} qty={s.qty:g} avg_cost={s.avg_cost:.4f} "
            f"realized={s.realized_pnl:.2f} fees={s.fees:.2f} txns={s.n_txns}"
        )
    if out is not None:
        write_snapshot(port, out)
        typer.echo(f"[ledgerd] wrote {out}")


if __name__ == "__main__":
    app()
