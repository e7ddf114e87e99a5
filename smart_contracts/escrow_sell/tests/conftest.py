# smart_contracts/escrow_sell/tests/conftest.py
# Deploy fixture: escrow + in-memory token/currency rails + manual block clock.

from dataclasses import dataclass

import pytest

from smart_contracts.escrow_sell import (
    EscrowSell,
    InMemoryPayments,
    InMemoryToken,
    ManualClock,
)

PRICE = 100                     # 1.00 currency per token
FEE_RATE = 5_000                # 5%
ESCROW_BLOCKS = 50
ESCROW_BALANCE = 100_000_00     # tokens seeded into the escrow account

OWNER = "OWNER"
SELLER = "SELLER"
TREASURY = "TREASURY"
POOL = "POOL"
ESCROW = "ESCROW"


@dataclass
class Deployment:
    escrow: EscrowSell
    token: InMemoryToken
    payments: InMemoryPayments
    clock: ManualClock

    def sell(self, amount: int, seller: str = SELLER) -> int:
        total = amount + amount * FEE_RATE // 100_000
        self.token.transfer(OWNER, seller, total)
        self.token.approve(seller, self.escrow.address, total)
        return self.escrow.submit(seller, amount)

    def fund_all(self) -> None:
        """Top up treasury and pool so every queued sale can settle."""
        need = self.escrow.treasury_shortfall()
        if need:
            self.token.transfer(OWNER, TREASURY, need)
            self.token.approve(TREASURY, self.escrow.address, need)
            self.escrow.fund_treasury(TREASURY, need)

        tokens, currency = self.escrow.pool_shortfall()
        if tokens or currency:
            self.token.transfer(OWNER, POOL, tokens)
            self.token.approve(POOL, self.escrow.address, tokens)
            self.payments.deposit(POOL, currency)
            self.escrow.fund_pool(POOL, tokens, currency)


@pytest.fixture
def deployed() -> Deployment:
    token = InMemoryToken()
    payments = InMemoryPayments()
    clock = ManualClock(height=1)
    escrow = EscrowSell(
        ESCROW,
        token,
        payments,
        clock,
        price=PRICE,
        fee_rate=FEE_RATE,
        escrow_duration=ESCROW_BLOCKS,
        owner=OWNER,
        treasury_role=TREASURY,
        pool_role=POOL,
    )
    token.mint(OWNER, 1_000_000_000)
    token.transfer(OWNER, ESCROW, ESCROW_BALANCE)
    return Deployment(escrow=escrow, token=token, payments=payments, clock=clock)
