# smart_contracts/escrow_sell/escrow_sell.py
# Dual-funded escrow sell: a seller locks tokens + fee, the treasury and pool
# roles co-fund settlement, and unsettled sales are reclaimable after expiry.

import functools
import logging
import sys
import threading
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from .collaborators import Transfer, TransferExecutor, execute_sequential
from .config import EscrowConfig, EscrowSettings, load_settings, require_address
from .constants import FEE_SCALE
from .errors import (
    EscrowError,
    InsufficientFunds,
    InsufficientLiquidity,
    InvalidAmount,
    InvalidState,
    InvalidTiming,
    ReentrantCall,
    Unauthorized,
)
from .ledger import EscrowLedger, SaleEntry, SaleStatus
from .pool import LiquidityPool, required_currency, required_pool, required_treasury

logger = logging.getLogger(__name__)


# ---------------- Return records ----------------
@dataclass(frozen=True)
class Settlement:
    currency_paid: int
    fee_forwarded: int
    burned: int


@dataclass(frozen=True)
class Quote:
    amount: int
    fee_amount: int
    total_pull: int
    required_treasury: int
    required_pool: int
    required_currency: int


def quote(amount: int, price: int, fee_rate: int) -> Quote:
    fee = amount * fee_rate // FEE_SCALE
    return Quote(
        amount=amount,
        fee_amount=fee,
        total_pull=amount + fee,
        required_treasury=required_treasury(amount),
        required_pool=required_pool(amount),
        required_currency=required_currency(amount, price),
    )


def _require_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount()
    return amount


def entrypoint(fn):
    """Serialize the call, refuse re-entry, and roll internal state back if it raises."""

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            if self._entered:
                logger.warning(f"Rejected re-entrant call to {fn.__name__}")
                raise ReentrantCall()
            self._entered = True
            self.ledger.begin()
            totals = self.pool.snapshot()
            try:
                result = fn(self, *args, **kwargs)
            except Exception:
                self.ledger.rollback()
                self.pool.restore(totals)
                raise
            else:
                self.ledger.commit()
                return result
            finally:
                self._entered = False

    return wrapper


class EscrowSell:
    """
    `address` is the escrow's own account on the token and payment rails.
    `clock` returns the current logical tick (block height / round).
    """

    def __init__(
        self,
        address: str,
        token,
        payments,
        clock: Callable[[], int],
        *,
        price: int,
        fee_rate: int,
        escrow_duration: int,
        owner: str,
        treasury_role: str,
        pool_role: str,
        execute_transfers: Optional[TransferExecutor] = None,
    ):
        self.address = require_address(address, "escrow")
        self.config = EscrowConfig(
            price=price,
            fee_rate=fee_rate,
            escrow_duration=escrow_duration,
            owner=owner,
            treasury_role=treasury_role,
            pool_role=pool_role,
            token=token,
        )
        self.payments = payments
        self.clock = clock
        self.execute_transfers = execute_transfers or execute_sequential
        self.ledger = EscrowLedger()
        self.pool = LiquidityPool()
        self._lock = threading.RLock()
        self._entered = False

    @classmethod
    def from_settings(
        cls, settings: EscrowSettings, address: str, token, payments, clock, execute_transfers=None
    ) -> "EscrowSell":
        return cls(
            address,
            token,
            payments,
            clock,
            price=settings.price,
            fee_rate=settings.fee_rate,
            escrow_duration=settings.escrow_duration,
            owner=settings.owner,
            treasury_role=settings.treasury_role,
            pool_role=settings.pool_role,
            execute_transfers=execute_transfers,
        )

    # ===================== VIEWS =====================
    @property
    def token(self):
        return self.config.token

    @property
    def price(self) -> int:
        return self.config.price

    @property
    def fee_rate(self) -> int:
        return self.config.fee_rate

    @property
    def escrow_duration(self) -> int:
        return self.config.escrow_duration

    @property
    def owner(self) -> str:
        return self.config.owner

    @property
    def treasury_role(self) -> str:
        return self.config.treasury_role

    @property
    def pool_role(self) -> str:
        return self.config.pool_role

    @property
    def treasury_tokens(self) -> int:
        return self.pool.treasury_tokens

    @property
    def pool_tokens(self) -> int:
        return self.pool.pool_tokens

    @property
    def queued_tokens(self) -> int:
        return self.pool.queued_tokens

    def required_treasury(self, amount: int) -> int:
        return required_treasury(amount)

    def required_pool(self, amount: int) -> int:
        return required_pool(amount)

    def required_currency(self, amount: int) -> int:
        return required_currency(amount, self.config.price)

    def quote(self, amount: int) -> Quote:
        return quote(amount, self.config.price, self.config.fee_rate)

    def treasury_shortfall(self) -> int:
        with self._lock:
            return max(0, required_treasury(self.pool.queued_tokens) - self.pool.treasury_tokens)

    def pool_shortfall(self) -> Tuple[int, int]:
        """Returns (tokens, currency) the pool role still owes for the whole queue."""
        with self._lock:
            queued = self.pool.queued_tokens
            tokens = max(0, required_pool(queued) - self.pool.pool_tokens)
            held = self.payments.balance_of(self.address)
            return tokens, max(0, self.required_currency(queued) - held)

    def get_user_sales(self, seller: str) -> List[SaleEntry]:
        with self._lock:
            return self.ledger.list(seller)

    def sale_info(self, seller: str, index: int) -> SaleEntry:
        with self._lock:
            return replace(self.ledger.get(seller, index))

    def status(self, seller: str, index: int) -> SaleStatus:
        with self._lock:
            entry = self.ledger.get(seller, index)
            if entry.status != SaleStatus.PENDING:
                return entry.status
            now = self.clock()
            if now <= entry.expires_at and self.pool.covers(entry.amount):
                return SaleStatus.SETTLE_READY
            if now > entry.expires_at:
                return SaleStatus.RECLAIM_READY
            return SaleStatus.PENDING

    # ===================== SALE LIFECYCLE =====================
    @entrypoint
    def submit(self, sender: str, amount: int) -> int:
        """
        Lock `amount` + fee from `sender` into escrow.
        Returns: index of the new sale in the sender's list.
        """
        _require_amount(amount)
        now = self.clock()
        fee = amount * self.config.fee_rate // FEE_SCALE
        entry = SaleEntry(
            amount=amount,
            fee_amount=fee,
            opened_at=now,
            expires_at=now + self.config.escrow_duration,
        )
        index = self.ledger.append(sender, entry)
        self.pool.enqueue(amount)

        # pull last
        self.token.transfer_from(self.address, sender, self.address, entry.total)

        logger.info(f"Sale {sender}#{index} opened: amount={amount} fee={fee} expires_at={entry.expires_at}")
        return index

    @entrypoint
    def settle(self, sender: str, seller: str, index: int) -> Settlement:
        self._only_seller(sender, seller)
        entry = self.ledger.get(seller, index)
        if entry.status != SaleStatus.PENDING:
            raise InvalidState()
        now = self.clock()
        if not entry.opened_at < now <= entry.expires_at:
            raise InvalidTiming()

        treasury_amt = required_treasury(entry.amount)
        pool_amt = required_pool(entry.amount)
        currency = self.required_currency(entry.amount)
        if not self.pool.covers(entry.amount):
            raise InsufficientLiquidity()
        if self.payments.balance_of(self.address) < currency:
            raise InsufficientFunds()
        if self.token.balance_of(self.address) < entry.total:
            raise InsufficientFunds("Escrow: token balance too low")

        self.pool.consume(treasury_amt, pool_amt, entry.amount)
        self.ledger.set_status(seller, index, SaleStatus.SETTLED)

        self.execute_transfers([
            Transfer(self.payments, self.address, seller, currency),
            Transfer(self.token, self.address, self.config.treasury_role, entry.fee_amount),
            Transfer(self.token, self.address, None, entry.amount, burn=True),
        ])

        logger.info(f"Sale {seller}#{index} settled: paid={currency} fee={entry.fee_amount} burned={entry.amount}")
        return Settlement(currency_paid=currency, fee_forwarded=entry.fee_amount, burned=entry.amount)

    @entrypoint
    def reclaim(self, sender: str, seller: str, index: int) -> int:
        """
        After expiry, return amount + fee of an unsettled sale.
        Returns: tokens refunded.
        """
        self._only_seller(sender, seller)
        entry = self.ledger.get(seller, index)
        if entry.status != SaleStatus.PENDING:
            raise InvalidState()
        if self.clock() <= entry.expires_at:
            raise InvalidTiming()

        self.ledger.set_status(seller, index, SaleStatus.RECLAIMED)
        self.pool.dequeue(entry.amount)
        self.token.transfer(self.address, seller, entry.total)

        logger.info(f"Sale {seller}#{index} reclaimed: refunded={entry.total}")
        return entry.total

    # ===================== LIQUIDITY =====================
    @entrypoint
    def fund_treasury(self, sender: str, amount: int) -> None:
        if sender != self.config.treasury_role:
            raise Unauthorized("Escrow: caller is not the treasury role")
        _require_amount(amount)
        self.pool.add_treasury(amount)
        self.token.transfer_from(self.address, sender, self.address, amount)
        logger.info(f"Treasury funded {amount}, total={self.pool.treasury_tokens}")

    @entrypoint
    def fund_pool(self, sender: str, amount: int, payment: int) -> None:
        """Pool role adds tokens and the currency that backs them (`payment`)."""
        if sender != self.config.pool_role:
            raise Unauthorized("Escrow: caller is not the pool role")
        if amount < 0 or payment < 0 or amount + payment == 0:
            raise InvalidAmount()
        if payment < self.required_currency(amount):
            raise InsufficientFunds("Escrow: payment below required currency")
        if self.payments.balance_of(sender) < payment:
            raise InsufficientFunds("Escrow: caller cannot cover payment")

        self.pool.add_pool(amount)
        legs = []
        if amount:
            legs.append(Transfer(self.token, sender, self.address, amount, spender=self.address))
        if payment:
            legs.append(Transfer(self.payments, sender, self.address, payment))
        self.execute_transfers(legs)
        logger.info(f"Pool funded {amount} tokens + {payment} currency, total={self.pool.pool_tokens}")

    # ===================== ADMIN =====================
    @entrypoint
    def set_price(self, sender: str, price: int) -> None:
        self._only_owner(sender)
        self.config.set_price(price)

    @entrypoint
    def set_fee_rate(self, sender: str, fee_rate: int) -> None:
        self._only_owner(sender)
        self.config.set_fee_rate(fee_rate)

    @entrypoint
    def set_escrow_duration(self, sender: str, escrow_duration: int) -> None:
        self._only_owner(sender)
        self.config.set_escrow_duration(escrow_duration)

    @entrypoint
    def set_treasury_role(self, sender: str, treasury_role: str) -> None:
        self._only_owner(sender)
        self.config.set_treasury_role(treasury_role)

    @entrypoint
    def set_pool_role(self, sender: str, pool_role: str) -> None:
        self._only_owner(sender)
        self.config.set_pool_role(pool_role)

    @entrypoint
    def set_token(self, sender: str, token) -> None:
        self._only_owner(sender)
        self.config.set_token(token)

    @entrypoint
    def transfer_ownership(self, sender: str, new_owner: str) -> None:
        self._only_owner(sender)
        self.config.set_owner(new_owner)
        logger.info(f"Ownership transferred to {new_owner}")

    @entrypoint
    def withdraw_token(self, sender: str, token, amount: int) -> None:
        self._only_owner(sender)
        token.transfer(self.address, self.config.owner, amount)
        logger.info(f"Owner withdrew {amount} tokens")

    @entrypoint
    def withdraw_currency(self, sender: str, amount: int) -> None:
        self._only_owner(sender)
        self.payments.transfer(self.address, self.config.owner, amount)
        logger.info(f"Owner withdrew {amount} currency")

    # ---------------- guards ----------------
    def _only_owner(self, sender: str) -> None:
        if sender != self.config.owner:
            raise Unauthorized("Ownable: caller is not the owner")

    def _only_seller(self, sender: str, seller: str) -> None:
        if sender != seller:
            raise Unauthorized("Escrow: caller is not the seller")


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print("usage: python -m smart_contracts.escrow_sell.escrow_sell <amount>")
        return 2
    logging.basicConfig(level=logging.INFO)
    try:
        settings = load_settings()
        q = quote(_require_amount(int(argv[0])), settings.price, settings.fee_rate)
    except (EscrowError, ValueError) as e:
        print(f"error: {e}")
        return 1
    print(f"# --- QUOTE (price={settings.price}, fee_rate={settings.fee_rate}) ---")
    for field, value in vars(q).items():
        print(f"{field:>18}: {value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
