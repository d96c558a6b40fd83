from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from trade_ledger.core.schemas import (
    TXN_COLUMNS,
    Instrument,
    PositionState,
    TransactionRecord,
    to_ledger_index,
    to_ledger_ts,
)

DEFAULT_INIT_TS = pd.Timestamp("1950-01-01")


def empty_txns(init_ts: Any = DEFAULT_INIT_TS) -> pd.DataFrame:
    """Ledger frame holding only the zero initialization row at ``init_ts``."""
    idx = to_ledger_index([to_ledger_ts(init_ts)])
    return pd.DataFrame([[0.0] * len(TXN_COLUMNS)], index=idx, columns=TXN_COLUMNS)


class InstrumentRegistry:
    """Contract details for the instruments a portfolio may trade."""

    def __init__(self, instruments: list[Instrument] | None = None) -> None:
        self._by_symbol: dict[str, Instrument] = {}
        for i in instruments or []:
            self.add(i)

    def add(self, instrument: Instrument) -> None:
        self._by_symbol[instrument.symbol] = instrument

    def get(self, symbol: str) -> Instrument | None:
        return self._by_symbol.get(symbol)

    def resolve_multiplier(self, symbol: str) -> float | None:
        inst = self.get(symbol)
        return None if inst is None else float(inst.multiplier)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._by_symbol


class InstrumentLedger:
    """Append-only transaction records of one instrument in one portfolio.

    The first row is the zero initialization row at the portfolio's init
    timestamp; position lookups before any trade therefore return zero.
    Callers must serialize access per instrument.
    """

    def __init__(self, symbol: str, init_ts: Any = DEFAULT_INIT_TS, txns: pd.DataFrame | None = None) -> None:
        self.symbol = symbol
        if txns is None:
            self._txns = empty_txns(init_ts)
        else:
            self._txns = txns[TXN_COLUMNS].astype(float)
            self._txns.index = to_ledger_index(self._txns.index)

    @property
    def txns(self) -> pd.DataFrame:
        return self._txns.copy()

    @property
    def transactions(self) -> pd.DataFrame:
        """Recorded transactions, without the initialization row."""
        return self._txns.iloc[1:].copy()

    @property
    def first_ts(self) -> pd.Timestamp:
        return self._txns.index[0]

    @property
    def last_ts(self) -> pd.Timestamp:
        return self._txns.index[-1]

    def _row_asof(self, asof: Any | None) -> pd.Series:
        if asof is None:
            return self._txns.iloc[-1]
        upto = self._txns.loc[self._txns.index <= to_ledger_ts(asof)]
        if upto.empty:
            return self._txns.iloc[0] * 0.0
        return upto.iloc[-1]

    def pos_qty(self, asof: Any | None = None) -> float:
        return float(self._row_asof(asof)["pos_qty"])

    def pos_avg_cost(self, asof: Any | None = None) -> float:
        return float(self._row_asof(asof)["pos_avg_cost"])

    def position(self, asof: Any | None = None) -> PositionState:
        row = self._row_asof(asof)
        return PositionState(qty=float(row["pos_qty"]), avg_cost=float(row["pos_avg_cost"]))

    def append(self, records: pd.DataFrame | list[TransactionRecord]) -> None:
        if isinstance(records, list):
            records = records_frame(records)
        if records.empty:
            return
        records = records[TXN_COLUMNS].astype(float)
        records.index = to_ledger_index(records.index)
        # init row stays first; stable sort keeps append order for equal timestamps
        body = pd.concat([self._txns.iloc[1:], records]).sort_index(kind="stable")
        self._txns = pd.concat([self._txns.iloc[:1], body])

    def __len__(self) -> int:
        return len(self._txns) - 1


def records_frame(records: list[TransactionRecord]) -> pd.DataFrame:
    idx = to_ledger_index([r.ts for r in records])
    return pd.DataFrame([r.to_row() for r in records], index=idx, columns=TXN_COLUMNS)


@dataclass
class Portfolio:
    name: str
    init_ts: pd.Timestamp = DEFAULT_INIT_TS
    symbols: dict[str, InstrumentLedger] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.init_ts = to_ledger_ts(self.init_ts)

    def add_instrument(self, symbol: str) -> InstrumentLedger:
        if symbol not in self.symbols:
            self.symbols[symbol] = InstrumentLedger(symbol, self.init_ts)
        return self.symbols[symbol]

    def ledger(self, symbol: str) -> InstrumentLedger:
        return self.add_instrument(symbol)
