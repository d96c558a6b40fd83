from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path

import pandas as pd

from trade_ledger.portfolio.portfolio import InstrumentLedger, Portfolio


@dataclass
class PositionSnapshot:
    symbol: str
    qty: float
    avg_cost: float
    realized_pnl: float
    fees: float
    n_txns: int


def _empty_df() -> pd.DataFrame:
    return pd.DataFrame(columns=["ts", "symbol", "realized_pnl_delta", "realized_pnl_cum", "position_qty", "avg_cost"])


def realized_pnl_timeseries(ledger: InstrumentLedger) -> pd.DataFrame:
    """Net realized P&L per record and its running total."""
    txns = ledger.transactions
    if txns.empty:
        return _empty_df()
    out = pd.DataFrame({"ts": txns.index, "symbol": ledger.symbol})
    out["realized_pnl_delta"] = txns["net_txn_realized_pl"].to_numpy()
    out["realized_pnl_cum"] = out["realized_pnl_delta"].cumsum()
    out["position_qty"] = txns["pos_qty"].to_numpy()
    out["avg_cost"] = txns["pos_avg_cost"].to_numpy()
    return out


def snapshot_ledger(ledger: InstrumentLedger) -> PositionSnapshot:
    txns = ledger.transactions
    pos = ledger.position()
    return PositionSnapshot(
        symbol=ledger.symbol,
        qty=pos.qty,
        avg_cost=pos.avg_cost,
        realized_pnl=float(txns["net_txn_realized_pl"].sum()),
        fees=float(txns["txn_fees"].sum()),
        n_txns=len(txns),
    )


def position_snapshot(portfolio: Portfolio) -> dict[str, PositionSnapshot]:
    return {sym: snapshot_ledger(led) for sym, led in portfolio.symbols.items()}


def write_snapshot(portfolio: Portfolio, out_path: str | Path) -> None:
    rows = [asdict(s) for s in position_snapshot(portfolio).values()]
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    if not rows:
        pd.DataFrame(
            columns=["symbol", "qty", "avg_cost", "realized_pnl", "fees", "n_txns"]
        ).to_parquet(out_path, index=False)
        return
    pd.DataFrame(rows).to_parquet(out_path, index=False)
