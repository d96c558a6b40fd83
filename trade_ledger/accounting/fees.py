from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

import numpy as np
import pandas as pd

from trade_ledger.core.errors import FeePolicyViolation
from trade_ledger.core.schemas import ComputedFee, FixedFee

FeeRule = Callable[..., Any]

_RULES: dict[str, FeeRule] = {}


def register_fee_rule(name: str, rule: FeeRule) -> FeeRule:
    _RULES[name] = rule
    return rule


def get_fee_rule(name: str) -> FeeRule:
    try:
        return _RULES[name]
    except KeyError:
        raise KeyError(f"unknown fee rule {name!r}; registered: {sorted(_RULES)}") from None


def penny_per_share(qty: float, *args: Any) -> float:  # noqa: ARG001
    """Example fee rule: one cent per unit transacted, charged as a cost."""
    return abs(qty) * -0.01


register_fee_rule("penny_per_share", penny_per_share)


def fee_spec(value: Any) -> FixedFee | ComputedFee:
    """Coerce a plain fee argument (number, callable, rule name) into a FeeSpec."""
    if isinstance(value, FixedFee | ComputedFee):
        return value
    if callable(value):
        return ComputedFee(rule=value)
    if isinstance(value, str):
        if value in _RULES:
            return ComputedFee(rule=value)
        return FixedFee(amount=_as_number(value))
    return FixedFee(amount=_as_number(value))


def _as_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        out = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(out) else out


def resolve_fee(
    spec: Any,
    qty: float,
    price: float,
    symbol: str,
    allow_rebates: bool = False,
) -> float:
    """Turn a fee specification into the fee for one transaction.

    Fees are costs and therefore negative; a positive value is a rebate and
    raises FeePolicyViolation unless ``allow_rebates`` is set.
    """
    spec = fee_spec(spec)
    if isinstance(spec, ComputedFee):
        rule = get_fee_rule(spec.rule) if isinstance(spec.rule, str) else spec.rule
        fee = _as_number(rule(qty, price, symbol))
    else:
        fee = _as_number(spec.amount)
    if fee > 0 and not allow_rebates:
        raise FeePolicyViolation(fee, spec.rule if isinstance(spec, ComputedFee) else None)
    return fee


def check_fee_column(fees: pd.Series, allow_rebates: bool = False) -> pd.Series:
    """Coerce a batch fee column to floats (NaN -> 0) and apply the rebate policy."""
    out = pd.to_numeric(fees, errors="coerce").astype(float).fillna(0.0)
    if not allow_rebates and bool((out > 0).any()):
        first = float(out[out > 0].iloc[0])
        raise FeePolicyViolation(first)
    return out


def prorate_fee(fee: float | np.ndarray, qty: float | np.ndarray, leg_qty: float | np.ndarray) -> Any:
    """Share of ``fee`` carried by a leg of ``leg_qty`` out of ``qty``."""
    return fee / np.abs(qty) * np.abs(leg_qty)
