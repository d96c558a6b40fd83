from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Any, Literal

import pandas as pd
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def to_ledger_ts(v: Any) -> pd.Timestamp:
    """Ledger timestamps are tz-naive UTC at nanosecond resolution."""
    ts = pd.Timestamp(v)
    if ts is pd.NaT:
        raise ValueError(f"invalid timestamp: {v!r}")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.as_unit("ns")


def to_ledger_index(values: Any) -> pd.DatetimeIndex:
    idx = pd.DatetimeIndex(pd.to_datetime(values, utc=True)).tz_localize(None)
    return idx.as_unit("ns").rename("ts")


Timestamp = Annotated[pd.Timestamp, BeforeValidator(to_ledger_ts)]

# ledger column order; records are indexed by ts
TXN_COLUMNS = [
    "txn_qty", "txn_price", "txn_value", "txn_avg_cost", "pos_qty", "pos_avg_cost",
    "gross_txn_realized_pl", "txn_fees", "net_txn_realized_pl", "con_mult",
]


class PositionState(BaseModel):
    qty: float = 0.0
    avg_cost: float = 0.0


class Instrument(BaseModel):
    symbol: str
    multiplier: float = 1.0
    currency: str | None = None


class FixedFee(BaseModel):
    kind: Literal["fixed"] = "fixed"
    amount: float | None = 0.0


class ComputedFee(BaseModel):
    """Fee computed per transaction by a rule called as ``rule(qty, price, symbol)``.

    ``rule`` is either a callable or the name of a registered fee rule.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: Literal["computed"] = "computed"
    rule: Callable[..., Any] | str


FeeSpec = Annotated[FixedFee | ComputedFee, Field(discriminator="kind")]


class TxnRequest(BaseModel):
    """One directional leg waiting to be applied to a position."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ts: Timestamp
    qty: float
    price: float
    fee: float = 0.0


class TransactionRecord(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ts: Timestamp = Field(..., description="Record timestamp, strictly increasing per instrument")
    txn_qty: float
    txn_price: float
    txn_value: float
    txn_avg_cost: float
    pos_qty: float
    pos_avg_cost: float
    gross_txn_realized_pl: float
    txn_fees: float
    net_txn_realized_pl: float
    con_mult: float

    @property
    def position(self) -> PositionState:
        return PositionState(qty=self.pos_qty, avg_cost=self.pos_avg_cost)

    def to_row(self) -> dict[str, float]:
        return {c: getattr(self, c) for c in TXN_COLUMNS}
