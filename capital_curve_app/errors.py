"""
Engine errors.

Every error aborts the whole operation: the ledger only commits cursor state
after a converter has returned successfully.
"""


class CurveError(Exception):
    status_code: int = 409


class ZeroAmount(CurveError):
    status_code = 422

    def __init__(self, what: str = "amount"):
        super().__init__(f"{what} must be > 0")


class PoolExhausted(CurveError):
    def __init__(self, pool_balance: int, tokens_sold: int):
        super().__init__(
            f"No tokens left in the pool (balance={pool_balance}, sold={tokens_sold})"
        )


class InsufficientSellableTokens(CurveError):
    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot sell {requested} tokens: only {available} can be priced on the curve"
        )


class InsufficientReserve(CurveError):
    def __init__(self, payout: int, support_balance: int):
        super().__init__(
            f"Payout {payout} exceeds the support reserve {support_balance}"
        )


class NoUnbackedSupply(CurveError):
    def __init__(self):
        super().__init__("Offset supply is already fully backed")


class ProfitShareError(CurveError):
    pass


class CursorInvariantError(CurveError):
    status_code = 500
