from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from trade_ledger.utils.env_loader import load_env

_PREFIX = "TRADE_LEDGER_"
_TRUE = {"1", "true", "yes", "on"}


def _env(name: str, default: str) -> str:
    return os.environ.get(_PREFIX + name, default)


@dataclass
class LedgerSettings:
    eps: float = 1e-6
    allow_rebates: bool = False
    verbose: bool = True
    ledger_root: Path = Path("data/ledger")
    portfolio: str = "default"
    init_ts: str = "1950-01-01"

    @staticmethod
    def from_env(env_path: str | Path | None = None) -> LedgerSettings:
        load_env(env_path)
        return LedgerSettings(
            eps=float(_env("EPS", "1e-6")),
            allow_rebates=_env("ALLOW_REBATES", "false").strip().lower() in _TRUE,
            verbose=_env("VERBOSE", "true").strip().lower() in _TRUE,
            ledger_root=Path(_env("ROOT", "data/ledger")),
            portfolio=_env("PORTFOLIO", "default"),
            init_ts=_env("INIT_TS", "1950-01-01"),
        )
