from __future__ import annotations

import logging
import warnings
from typing import Any

import numpy as np
import pandas as pd

from trade_ledger.accounting.calc import calc_txn
from trade_ledger.accounting.fees import check_fee_column, resolve_fee
from trade_ledger.accounting.split import expand_zero_crosses, split_transaction
from trade_ledger.core.errors import (
    InstrumentResolutionWarning,
    MissingColumnWarning,
    TimestampOrderingWarning,
)
from trade_ledger.core.schemas import (
    TXN_COLUMNS,
    PositionState,
    TransactionRecord,
    TxnRequest,
    to_ledger_index,
    to_ledger_ts,
)
from trade_ledger.portfolio.portfolio import InstrumentLedger, InstrumentRegistry, Portfolio

logger = logging.getLogger(__name__)

DEFAULT_EPS = 1e-6


def resolve_multiplier(
    symbol: str,
    contract_multiplier: float | None = None,
    instruments: InstrumentRegistry | None = None,
) -> float:
    if contract_multiplier is not None:
        return float(contract_multiplier)
    mult = instruments.resolve_multiplier(symbol) if instruments is not None else None
    if mult is None:
        warnings.warn(
            f"Instrument {symbol} not found, using contract multiplier of 1",
            InstrumentResolutionWarning,
            stacklevel=3,
        )
        return 1.0
    return mult


def _warn_if_not_after_first(ledger: InstrumentLedger, ts: pd.Timestamp) -> None:
    if ts <= ledger.first_ts:
        warnings.warn(
            f"Transaction timestamp ({ts}) is not after initDate ({ledger.first_ts}).",
            TimestampOrderingWarning,
            stacklevel=3,
        )


def _summary(ts: pd.Timestamp, symbol: str, qty: float, price: float) -> str:
    return f"{ts:%Y-%m-%d %H:%M:%S} {symbol} {qty:g} @ {price:g}"


def _batch_summary(out: pd.DataFrame, symbol: str) -> str:
    size = out["txn_qty"].abs()
    total = size.sum()
    # size-weighted price over the whole batch
    price = float((size * out["txn_price"]).sum() / total) if total else float("nan")
    return f"{_summary(out.index[0], symbol, float(out['txn_qty'].sum()), price)} ({len(out)} records)"


def _record(leg: TxnRequest, prev: PositionState, multiplier: float) -> TransactionRecord:
    c = calc_txn(prev, leg.qty, leg.price, leg.fee, multiplier)
    return TransactionRecord(
        ts=leg.ts,
        txn_qty=leg.qty,
        txn_price=leg.price,
        txn_fees=leg.fee,
        con_mult=multiplier,
        **c._asdict(),
    )


def apply_transaction(
    portfolio: Portfolio,
    symbol: str,
    ts: Any,
    qty: float,
    price: float,
    fee: Any = 0.0,
    allow_rebates: bool = False,
    contract_multiplier: float | None = None,
    eps: float = DEFAULT_EPS,
    verbose: bool = True,
    instruments: InstrumentRegistry | None = None,
) -> list[TransactionRecord]:
    """Apply one trade to ``symbol`` in ``portfolio`` and append its record(s).

    ``fee`` may be a number, a callable or registered rule name called as
    ``fee(qty, price, symbol)``, or a FixedFee/ComputedFee. A trade that
    would flip the position through zero is recorded as two legs, the
    re-opening one ``2 * eps`` seconds later. Nothing is appended if the fee
    policy check fails.
    """
    ts = to_ledger_ts(ts)
    qty = float(qty)
    price = float(price)

    txn_fee = resolve_fee(fee, qty, price, symbol, allow_rebates)
    ledger = portfolio.ledger(symbol)
    prev = ledger.position(ts)
    legs = split_transaction(prev.qty, TxnRequest(ts=ts, qty=qty, price=price, fee=txn_fee), eps)
    multiplier = resolve_multiplier(symbol, contract_multiplier, instruments)

    records: list[TransactionRecord] = []
    state = prev
    for leg in legs:
        rec = _record(leg, state, multiplier)
        _warn_if_not_after_first(ledger, rec.ts)
        records.append(rec)
        state = rec.position
    ledger.append(records)

    if verbose:
        logger.info(_summary(ts, symbol, qty, price))
    return records


def _column(txns: pd.DataFrame, name: str) -> np.ndarray:
    if name not in txns.columns:
        warnings.warn(f"No {name} column found, what did you call it?", MissingColumnWarning, stacklevel=3)
        return np.full(len(txns), np.nan)
    return pd.to_numeric(txns[name], errors="coerce").to_numpy(dtype=float)


def apply_transactions(
    portfolio: Portfolio,
    symbol: str,
    txns: pd.DataFrame,
    allow_rebates: bool = False,
    contract_multiplier: float | None = None,
    eps: float = DEFAULT_EPS,
    verbose: bool = False,
    instruments: InstrumentRegistry | None = None,
) -> pd.DataFrame:
    """Apply an ordered batch of trades to ``symbol`` in ``portfolio``.

    ``txns`` is indexed by timestamp with ``txn_qty``, ``txn_price`` and an
    optional ``txn_fees`` column. The appended records are the same ones
    repeated ``apply_transaction`` calls would produce, split legs included.
    Returns the appended records.
    """
    multiplier = resolve_multiplier(symbol, contract_multiplier, instruments)
    if len(txns) == 0:
        return pd.DataFrame(columns=TXN_COLUMNS, index=to_ledger_index([]), dtype=float)

    frame = pd.DataFrame(index=to_ledger_index(txns.index))
    frame["txn_qty"] = _column(txns, "txn_qty")
    frame["txn_price"] = _column(txns, "txn_price")
    if "txn_fees" in txns.columns:
        frame["txn_fees"] = check_fee_column(txns["txn_fees"], allow_rebates).to_numpy()
    else:
        frame["txn_fees"] = 0.0

    ledger = portfolio.ledger(symbol)
    start = frame.index[0]
    prev = ledger.position(start)
    frame = expand_zero_crosses(frame, prev.qty, eps)

    if bool((frame.index <= ledger.first_ts).any()):
        warnings.warn(
            f"First transaction timestamp ({start}) is not after initDate ({ledger.first_ts}).",
            TimestampOrderingWarning,
            stacklevel=2,
        )

    rows = []
    state = prev
    for qty, price, fee in zip(
        frame["txn_qty"].to_numpy(), frame["txn_price"].to_numpy(), frame["txn_fees"].to_numpy(), strict=True
    ):
        c = calc_txn(state, float(qty), float(price), float(fee), multiplier)
        rows.append((qty, price, c.txn_value, c.txn_avg_cost, c.pos_qty, c.pos_avg_cost,
                     c.gross_txn_realized_pl, fee, c.net_txn_realized_pl, multiplier))
        state = PositionState(qty=c.pos_qty, avg_cost=c.pos_avg_cost)

    out = pd.DataFrame(rows, index=frame.index.rename("ts"), columns=TXN_COLUMNS).astype(float)
    ledger.append(out)

    if verbose:
        logger.info(_batch_summary(out, symbol))
    return out
