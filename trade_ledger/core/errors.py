from __future__ import annotations


class FeePolicyViolation(ValueError):
    """Positive (rebate) fee supplied without rebates being allowed."""

    def __init__(self, fee: float, source: object = None) -> None:
        self.fee = fee
        self.source = source
        where = f" for fee spec {source!r}" if source is not None else ""
        super().__init__(
            f"positive transaction fee {fee}{where}: "
            "positive fees are only valid for broker/exchange rebates (pass allow_rebates=True)"
        )


class LedgerWarning(UserWarning):
    """Base category for non-fatal ledger conditions."""


class InstrumentResolutionWarning(LedgerWarning):
    """Contract multiplier could not be resolved; 1 is used instead."""


class TimestampOrderingWarning(LedgerWarning):
    """A new record is not after the first record of the instrument ledger."""


class MissingColumnWarning(LedgerWarning):
    """A required column is absent from a transaction batch."""
