# smart_contracts/escrow_sell/collaborators.py
# Value-transfer collaborators the escrow talks to, plus in-memory versions
# used as local fixtures (token, native currency, logical block clock).

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .errors import InsufficientAllowance, TransferFailed

logger = logging.getLogger(__name__)

TransferHook = Callable[[str, str, int], None]


class TokenLedger(Protocol):
    def balance_of(self, addr: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None: ...

    def burn(self, holder: str, amount: int) -> None: ...


class PaymentRail(Protocol):
    def balance_of(self, addr: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> None: ...


# ---------------- in-memory fixtures ----------------
class InMemoryToken:
    """Fungible token with allowances and burn; `on_transfer` fires after every move."""

    def __init__(self, symbol: str = "TOK", on_transfer: Optional[TransferHook] = None):
        self.symbol = symbol
        self.on_transfer = on_transfer
        self.total_supply = 0
        self._balances: Dict[str, int] = defaultdict(int)
        self._allowances: Dict[Tuple[str, str], int] = defaultdict(int)

    def mint(self, to: str, amount: int) -> None:
        self._balances[to] += amount
        self.total_supply += amount

    def balance_of(self, addr: str) -> int:
        return self._balances[addr]

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances[(owner, spender)]

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        self._move(sender, to, amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        allowed = self._allowances[(owner, spender)]
        if allowed < amount:
            raise InsufficientAllowance()
        self._move(owner, to, amount)
        self._allowances[(owner, spender)] = allowed - amount

    def burn(self, holder: str, amount: int) -> None:
        if self._balances[holder] < amount:
            raise TransferFailed("ERC20: burn amount exceeds balance")
        self._balances[holder] -= amount
        self.total_supply -= amount

    def _move(self, sender: str, to: str, amount: int) -> None:
        if amount < 0 or self._balances[sender] < amount:
            raise TransferFailed("ERC20: transfer amount exceeds balance")
        self._balances[sender] -= amount
        self._balances[to] += amount
        if self.on_transfer is not None:
            self.on_transfer(sender, to, amount)


class InMemoryPayments:
    """Native currency balances; `on_transfer` plays the receiver's fallback."""

    def __init__(self, on_transfer: Optional[TransferHook] = None):
        self.on_transfer = on_transfer
        self._balances: Dict[str, int] = defaultdict(int)

    def deposit(self, to: str, amount: int) -> None:
        self._balances[to] += amount

    def balance_of(self, addr: str) -> int:
        return self._balances[addr]

    def transfer(self, sender: str, to: str, amount: int) -> None:
        if amount < 0 or self._balances[sender] < amount:
            raise TransferFailed("Escrow: currency transfer failed")
        self._balances[sender] -= amount
        self._balances[to] += amount
        if self.on_transfer is not None:
            self.on_transfer(sender, to, amount)


class ManualClock:
    """Logical block height; callable so it can be handed to the escrow as its clock."""

    def __init__(self, height: int = 0):
        self.height = height

    def __call__(self) -> int:
        return self.height

    def advance(self, blocks: int = 1) -> int:
        self.height += blocks
        return self.height

    def mine_up_to(self, height: int) -> int:
        if height < self.height:
            raise ValueError(f"cannot rewind clock from {self.height} to {height}")
        self.height = height
        return self.height


# ---------------- transfer batches ----------------
@dataclass(frozen=True)
class Transfer:
    """
    One leg of a multi-transfer operation. `spender` set means a pull
    (`transfer_from`); `burn` means the amount leaves supply. Burns go last.
    """

    rail: Any
    sender: str
    to: Optional[str]
    amount: int
    spender: Optional[str] = None
    burn: bool = False


def _apply(t: Transfer) -> None:
    if t.burn:
        t.rail.burn(t.sender, t.amount)
    elif t.spender is not None:
        t.rail.transfer_from(t.spender, t.sender, t.to, t.amount)
    else:
        t.rail.transfer(t.sender, t.to, t.amount)


def execute_sequential(transfers: Sequence[Transfer]) -> None:
    """
    Run the legs in order. If one fails, send every completed leg back
    (newest first) and re-raise, so the batch is all-or-nothing.
    """
    done: List[Transfer] = []
    try:
        for t in transfers:
            _apply(t)
            done.append(t)
    except Exception as failure:
        for t in reversed(done):
            if t.burn:
                raise TransferFailed("Escrow: burn must be the last leg") from failure
            try:
                t.rail.transfer(t.to, t.sender, t.amount)
            except Exception as e:
                logger.error(f"Could not reverse {t.amount} from {t.to} to {t.sender}: {e}")
                raise TransferFailed(f"Escrow: reversal failed: {e}") from failure
        raise


TransferExecutor = Callable[[Sequence[Transfer]], None]
