from __future__ import annotations

import numpy as np
import pandas as pd

from trade_ledger.accounting.fees import prorate_fee
from trade_ledger.core.schemas import TxnRequest


def reopen_offset(eps: float) -> pd.Timedelta:
    """Forward shift of a re-opening leg; two eps keep it clear of other events."""
    return pd.Timedelta(seconds=2 * eps)


def zero_cross_mask(prev_qty: np.ndarray, qty: np.ndarray) -> np.ndarray:
    """True where applying ``qty`` to ``prev_qty`` flips the position through zero.

    Landing exactly on zero is an ordinary flattening trade, not a crossing.
    """
    prev_qty = np.asarray(prev_qty, dtype=float)
    qty = np.asarray(qty, dtype=float)
    with np.errstate(invalid="ignore"):
        return (
            np.isfinite(prev_qty)
            & np.isfinite(qty)
            & (prev_qty != 0)
            & (np.sign(prev_qty + qty) != np.sign(prev_qty))
            & (prev_qty != -qty)
        )


def needs_split(prev_qty: float, qty: float) -> bool:
    return bool(zero_cross_mask(np.array([prev_qty]), np.array([qty]))[0])


def split_transaction(prev_qty: float, request: TxnRequest, eps: float = 1e-6) -> list[TxnRequest]:
    """Break a zero-crossing request into a flattening and a re-opening leg.

    Non-crossing requests come back unchanged as a one element list.
    """
    if not needs_split(prev_qty, request.qty):
        return [request]
    flat_qty = -prev_qty
    open_qty = request.qty + prev_qty
    flat = TxnRequest(
        ts=request.ts,
        qty=flat_qty,
        price=request.price,
        fee=float(prorate_fee(request.fee, request.qty, flat_qty)),
    )
    reopen = TxnRequest(
        ts=request.ts + reopen_offset(eps),
        qty=open_qty,
        price=request.price,
        fee=float(prorate_fee(request.fee, request.qty, open_qty)),
    )
    return [flat, reopen]


def expand_zero_crosses(txns: pd.DataFrame, init_qty: float, eps: float = 1e-6) -> pd.DataFrame:
    """Batch form of ``split_transaction`` over a timestamp-indexed frame.

    ``txns`` carries ``txn_qty``, ``txn_price`` and ``txn_fees``. Crossings are
    detected on the cumulative position, the first row's previous quantity
    being ``init_qty``. Each flagged row is replaced by its flatten and
    re-open pair and the result is stably re-sorted by timestamp.
    """
    qty = txns["txn_qty"].to_numpy(dtype=float)
    pos = np.cumsum(np.concatenate(([init_qty], qty)))
    prev = pos[:-1]
    cross = zero_cross_mask(prev, qty)
    if not cross.any():
        return txns

    n = len(txns)
    # crossing rows appear twice: flatten leg, then re-open leg
    src = np.repeat(np.arange(n), np.where(cross, 2, 1))
    out = txns.iloc[src].copy()
    is_cross = cross[src]
    reopen = np.zeros(len(out), dtype=bool)
    reopen[1:] = is_cross[1:] & (src[1:] == src[:-1])

    orig_qty = qty[src]
    new_qty = orig_qty.copy()
    new_qty[is_cross & ~reopen] = -prev[src][is_cross & ~reopen]
    new_qty[reopen] = orig_qty[reopen] + prev[src][reopen]
    fees = out["txn_fees"].to_numpy(dtype=float).copy()
    fees[is_cross] = prorate_fee(fees[is_cross], orig_qty[is_cross], new_qty[is_cross])

    out["txn_qty"] = new_qty
    out["txn_fees"] = fees
    shift = np.where(reopen, reopen_offset(eps).value, 0)
    out.index = (out.index + pd.to_timedelta(shift, unit="ns")).rename(txns.index.name)
    # a re-open leg may land past a row less than 2*eps after its source
    return out.sort_index(kind="stable")
