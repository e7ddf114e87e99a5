# smart_contracts/escrow_sell/pool.py
# Treasury / pool liquidity totals and the per-sale requirement math.

from dataclasses import dataclass

from .constants import POOL_SHARE, PRICE_SCALE, SPLIT_SCALE, TREASURY_SHARE
from .errors import InsufficientLiquidity


def required_treasury(amount: int) -> int:
    return amount * TREASURY_SHARE // SPLIT_SCALE


def required_pool(amount: int) -> int:
    return amount * POOL_SHARE // SPLIT_SCALE


def required_currency(amount: int, price: int) -> int:
    return amount * price // PRICE_SCALE


@dataclass
class LiquidityPool:
    treasury_tokens: int = 0
    pool_tokens: int = 0
    queued_tokens: int = 0

    def covers(self, amount: int) -> bool:
        """True when both liquidity sides can settle a sale of `amount`."""
        return (
            self.treasury_tokens >= required_treasury(amount)
            and self.pool_tokens >= required_pool(amount)
        )

    def add_treasury(self, amount: int) -> None:
        self.treasury_tokens += amount

    def add_pool(self, amount: int) -> None:
        self.pool_tokens += amount

    def enqueue(self, amount: int) -> None:
        self.queued_tokens += amount

    def dequeue(self, amount: int) -> None:
        if amount > self.queued_tokens:
            raise InsufficientLiquidity("Escrow: queue underflow")
        self.queued_tokens -= amount

    def consume(self, treasury_amt: int, pool_amt: int, queued_amt: int) -> None:
        if (
            treasury_amt > self.treasury_tokens
            or pool_amt > self.pool_tokens
            or queued_amt > self.queued_tokens
        ):
            raise InsufficientLiquidity()
        self.treasury_tokens -= treasury_amt
        self.pool_tokens -= pool_amt
        self.queued_tokens -= queued_amt

    def snapshot(self) -> "LiquidityPool":
        return LiquidityPool(self.treasury_tokens, self.pool_tokens, self.queued_tokens)

    def restore(self, snapshot: "LiquidityPool") -> None:
        self.treasury_tokens = snapshot.treasury_tokens
        self.pool_tokens = snapshot.pool_tokens
        self.queued_tokens = snapshot.queued_tokens
