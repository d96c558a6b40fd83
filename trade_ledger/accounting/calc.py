"""Per-transaction accounting math shared by the single and batch processors.

Every function here is pure and works on one already single-directional
transaction (zero crossings are split before they get here).
"""
from __future__ import annotations

from typing import NamedTuple

from trade_ledger.core.schemas import PositionState


class TxnCalc(NamedTuple):
    txn_value: float
    txn_avg_cost: float
    pos_qty: float
    pos_avg_cost: float
    gross_txn_realized_pl: float
    net_txn_realized_pl: float


def calc_txn_value(qty: float, price: float, multiplier: float) -> float:
    """Gross transaction value, before fees."""
    return qty * price * multiplier


def calc_txn_avg_cost(value: float, qty: float, multiplier: float) -> float:
    denom = qty * multiplier
    if denom == 0:
        return float("nan")
    return value / denom


def calc_pos_avg_cost(
    prev_qty: float, prev_avg_cost: float, qty: float, txn_avg_cost: float, pos_qty: float
) -> float:
    """Average cost of the position after the transaction.

    Opening or growing a position blends the costs weighted by quantity;
    reducing it carries the previous average cost forward.
    """
    if prev_qty == 0 or abs(pos_qty) > abs(prev_qty):
        if pos_qty == 0:
            return 0.0
        return (prev_qty * prev_avg_cost + qty * txn_avg_cost) / pos_qty
    return prev_avg_cost


def calc_realized_pl(
    prev_qty: float, prev_avg_cost: float, qty: float, txn_avg_cost: float,
    pos_qty: float, multiplier: float,
) -> float:
    # nothing is realized on an opening or growing trade
    if prev_qty == 0 or abs(prev_qty) < abs(pos_qty):
        return 0.0
    return qty * multiplier * (prev_avg_cost - txn_avg_cost)


def calc_txn(
    prev: PositionState, qty: float, price: float, fee: float, multiplier: float
) -> TxnCalc:
    value = calc_txn_value(qty, price, multiplier)
    txn_avg_cost = calc_txn_avg_cost(value, qty, multiplier)
    pos_qty = prev.qty + qty
    pos_avg_cost = calc_pos_avg_cost(prev.qty, prev.avg_cost, qty, txn_avg_cost, pos_qty)
    gross = calc_realized_pl(prev.qty, prev.avg_cost, qty, txn_avg_cost, pos_qty, multiplier)
    return TxnCalc(
        txn_value=value,
        txn_avg_cost=txn_avg_cost,
        pos_qty=pos_qty,
        pos_avg_cost=pos_avg_cost,
        gross_txn_realized_pl=gross,
        net_txn_realized_pl=gross + fee,
    )
