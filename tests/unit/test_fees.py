import math

import pandas as pd
import pytest
from pydantic import TypeAdapter

from trade_ledger.accounting.fees import (
    check_fee_column,
    fee_spec,
    get_fee_rule,
    penny_per_share,
    register_fee_rule,
    resolve_fee,
)
from trade_ledger.core.errors import FeePolicyViolation
from trade_ledger.core.schemas import ComputedFee, FeeSpec, FixedFee


def test_fixed_fee() -> None:
    assert resolve_fee(-2.5, 100, 10.0, "SPY") == -2.5
    assert resolve_fee(FixedFee(amount=-1), 100, 10.0, "SPY") == -1.0


def test_null_and_garbage_fees_become_zero() -> None:
    assert resolve_fee(None, 100, 10.0, "SPY") == 0.0
    assert resolve_fee(float("nan"), 100, 10.0, "SPY") == 0.0
    assert resolve_fee("not-a-number", 100, 10.0, "SPY") == 0.0
    assert resolve_fee(lambda *a: None, 100, 10.0, "SPY") == 0.0


def test_rule_called_with_qty_price_symbol() -> None:
    seen = []

    def rule(qty: float, price: float, symbol: str) -> float:
        seen.append((qty, price, symbol))
        return -0.001 * abs(qty) * price

    assert resolve_fee(rule, -200, 5.0, "ABC") == pytest.approx(-1.0)
    assert seen == [(-200, 5.0, "ABC")]


def test_named_rule() -> None:
    assert resolve_fee("penny_per_share", -300, 5.0, "ABC") == pytest.approx(-3.0)
    assert penny_per_share(50) == pytest.approx(-0.5)
    register_fee_rule("flat_two", lambda *a: -2)
    assert resolve_fee(ComputedFee(rule="flat_two"), 1, 1.0, "X") == -2.0
    with pytest.raises(KeyError):
        get_fee_rule("nope")


def test_rebate_gate() -> None:
    with pytest.raises(FeePolicyViolation):
        resolve_fee(1, 100, 10.0, "SPY")
    with pytest.raises(FeePolicyViolation):
        resolve_fee(lambda *a: 0.25, 100, 10.0, "SPY")
    assert resolve_fee(1, 100, 10.0, "SPY", allow_rebates=True) == 1.0


def test_fee_spec_tagged_variant() -> None:
    ta = TypeAdapter(FeeSpec)
    assert isinstance(ta.validate_python({"kind": "fixed", "amount": -1}), FixedFee)
    assert isinstance(ta.validate_python({"kind": "computed", "rule": "penny_per_share"}), ComputedFee)
    assert isinstance(fee_spec(penny_per_share), ComputedFee)
    assert fee_spec("-0.5") == FixedFee(amount=-0.5)


def test_fee_column() -> None:
    out = check_fee_column(pd.Series([-1.0, None, "x"]))
    assert out.tolist() == [-1.0, 0.0, 0.0]
    with pytest.raises(FeePolicyViolation):
        check_fee_column(pd.Series([-1.0, 0.5]))
    assert not math.isnan(check_fee_column(pd.Series([0.5]), allow_rebates=True).iloc[0])
