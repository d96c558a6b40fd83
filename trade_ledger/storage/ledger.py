from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

from trade_ledger.core.schemas import TXN_COLUMNS, to_ledger_index
from trade_ledger.portfolio.portfolio import DEFAULT_INIT_TS, InstrumentLedger, Portfolio

from .atomic import FileLock, atomic_write_parquet

PathLike = str | Path


def _coerce(df: pd.DataFrame) -> pd.DataFrame:
    for c in TXN_COLUMNS:
        if c not in df.columns:
            df[c] = float("nan")
        df[c] = pd.to_numeric(df[c], errors="coerce").astype(float)
    df.index = to_ledger_index(df.index)
    return df[TXN_COLUMNS]


def ledger_path(root: PathLike, portfolio: str, symbol: str) -> Path:
    return Path(root) / portfolio / f"{symbol}.parquet"


def write_ledger(path: PathLike, ledger: InstrumentLedger) -> None:
    """Persist the full ledger (initialization row included)."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with FileLock(p, timeout=5.0):
        atomic_write_parquet(p, ledger.txns, index=True)


def read_ledger(path: PathLike, symbol: str, init_ts: Any = DEFAULT_INIT_TS) -> InstrumentLedger:
    p = Path(path)
    if not p.exists():
        return InstrumentLedger(symbol, init_ts)
    df = pd.read_parquet(p)
    if df.empty:
        return InstrumentLedger(symbol, init_ts)
    if "ts" in df.columns:
        df = df.set_index("ts")
    return InstrumentLedger(symbol, txns=_coerce(df))


def load_portfolio(root: PathLike, name: str, init_ts: Any = DEFAULT_INIT_TS) -> Portfolio:
    port = Portfolio(name=name, init_ts=init_ts)
    d = Path(root) / name
    if d.exists():
        for f in sorted(d.glob("*.parquet")):
            port.symbols[f.stem] = read_ledger(f, f.stem, init_ts)
    return port


def save_portfolio(root: PathLike, portfolio: Portfolio) -> list[Path]:
    out = []
    for sym, led in portfolio.symbols.items():
        p = ledger_path(root, portfolio.name, sym)
        write_ledger(p, led)
        out.append(p)
    return out
