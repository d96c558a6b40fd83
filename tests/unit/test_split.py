import numpy as np
import pandas as pd
import pytest

from trade_ledger.accounting.split import (
    expand_zero_crosses,
    needs_split,
    split_transaction,
    zero_cross_mask,
)
from trade_ledger.core.schemas import TxnRequest


def test_needs_split_rule() -> None:
    assert needs_split(100, -150)
    assert needs_split(-10, 20)
    assert not needs_split(100, -100)  # lands on zero
    assert not needs_split(100, -40)
    assert not needs_split(0, -5)
    assert not needs_split(-10, -5)
    assert not needs_split(100, float("nan"))


def test_zero_cross_mask_vectorized() -> None:
    prev = np.array([100.0, 100.0, 0.0, -10.0, 5.0])
    qty = np.array([-150.0, -100.0, 7.0, 20.0, 1.0])
    assert zero_cross_mask(prev, qty).tolist() == [True, False, False, True, False]


def test_split_transaction_legs() -> None:
    ts = pd.Timestamp("2024-01-03 10:00:00")
    legs = split_transaction(100, TxnRequest(ts=ts, qty=-150, price=12.0, fee=-1.5), eps=1e-6)
    assert len(legs) == 2
    flat, reopen = legs
    assert flat.qty == -100 and flat.ts == ts and flat.price == 12.0
    assert reopen.qty == -50 and reopen.price == 12.0
    assert flat.fee == pytest.approx(-1.0)
    assert reopen.fee == pytest.approx(-0.5)
    assert reopen.ts - ts == pd.Timedelta(microseconds=2)
    assert reopen.ts > flat.ts


def test_split_transaction_passthrough() -> None:
    req = TxnRequest(ts="2024-01-03", qty=-40, price=12.0, fee=-1.0)
    assert split_transaction(100, req) == [req]


def test_expand_zero_crosses_in_place() -> None:
    idx = pd.DatetimeIndex(["2024-01-02", "2024-01-03", "2024-01-04"], name="ts")
    txns = pd.DataFrame(
        {"txn_qty": [100.0, -150.0, 20.0], "txn_price": [10.0, 12.0, 11.0], "txn_fees": [0.0, -3.0, 0.0]},
        index=idx,
    )
    out = expand_zero_crosses(txns, init_qty=0.0, eps=1e-6)
    assert out["txn_qty"].tolist() == [100.0, -100.0, -50.0, 20.0]
    assert out["txn_price"].tolist() == [10.0, 12.0, 12.0, 11.0]
    assert out["txn_fees"].tolist() == pytest.approx([0.0, -2.0, -1.0, 0.0])
    assert out.index[1] == pd.Timestamp("2024-01-03")
    assert out.index[2] == pd.Timestamp("2024-01-03") + pd.Timedelta(microseconds=2)
    assert out.index.is_monotonic_increasing


def test_expand_uses_pre_batch_position_for_first_row() -> None:
    idx = pd.DatetimeIndex(["2024-01-02"], name="ts")
    txns = pd.DataFrame({"txn_qty": [-30.0], "txn_price": [5.0], "txn_fees": [-0.3]}, index=idx)
    out = expand_zero_crosses(txns, init_qty=10.0)
    assert out["txn_qty"].tolist() == [-10.0, -20.0]
    assert out["txn_fees"].tolist() == pytest.approx([-0.1, -0.2])


def test_expand_without_crossing_returns_input() -> None:
    idx = pd.DatetimeIndex(["2024-01-02", "2024-01-03"], name="ts")
    txns = pd.DataFrame({"txn_qty": [5.0, -5.0], "txn_price": [1.0, 1.0], "txn_fees": [0.0, 0.0]}, index=idx)
    assert expand_zero_crosses(txns, init_qty=0.0) is txns


def test_expand_resorts_reopen_leg_past_close_row() -> None:
    t0 = pd.Timestamp("2024-01-02 10:00:00")
    idx = pd.DatetimeIndex([t0, t0 + pd.Timedelta(microseconds=1)], name="ts")
    txns = pd.DataFrame({"txn_qty": [-150.0, 10.0], "txn_price": [12.0, 12.5], "txn_fees": [0.0, 0.0]}, index=idx)
    out = expand_zero_crosses(txns, init_qty=100.0, eps=1e-6)
    assert out.index.is_monotonic_increasing
    assert out.index.name == "ts"
    assert out["txn_qty"].tolist() == [-100.0, 10.0, -50.0]
