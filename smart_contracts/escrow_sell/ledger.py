# smart_contracts/escrow_sell/ledger.py
# Per-seller append-only list of sale entries, addressed by (seller, index).

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Dict, List, Optional, Tuple

from .errors import InvalidState, NotFound


class SaleStatus(IntEnum):
    PENDING = 0
    SETTLED = 1
    RECLAIMED = 2
    # derived on read, never stored
    SETTLE_READY = 3
    RECLAIM_READY = 4


PERSISTED = (SaleStatus.PENDING, SaleStatus.SETTLED, SaleStatus.RECLAIMED)


@dataclass
class SaleEntry:
    amount: int
    fee_amount: int
    opened_at: int
    expires_at: int
    status: SaleStatus = SaleStatus.PENDING

    @property
    def total(self) -> int:
        return self.amount + self.fee_amount


class EscrowLedger:
    def __init__(self):
        self._sales: Dict[str, List[SaleEntry]] = {}
        # undo log for the running call: (seller, index, previous status); None marks an append
        self._journal: Optional[List[Tuple[str, int, Optional[SaleStatus]]]] = None

    def append(self, seller: str, entry: SaleEntry) -> int:
        sales = self._sales.setdefault(seller, [])
        sales.append(entry)
        index = len(sales) - 1
        self._record(seller, index, None)
        return index

    def get(self, seller: str, index: int) -> SaleEntry:
        sales = self._sales.get(seller, [])
        if not isinstance(index, int) or index < 0 or index >= len(sales):
            raise NotFound(f"Escrow: no sale {index} for {seller}")
        return sales[index]

    def list(self, seller: str) -> List[SaleEntry]:
        return [replace(e) for e in self._sales.get(seller, [])]

    def set_status(self, seller: str, index: int, status: SaleStatus) -> None:
        entry = self.get(seller, index)
        if entry.status != SaleStatus.PENDING:
            raise InvalidState()
        if status not in PERSISTED:
            raise ValueError(f"{status.name} is derived and cannot be stored")
        self._record(seller, index, entry.status)
        entry.status = status

    # ---------------- journal ----------------
    def begin(self) -> None:
        self._journal = []

    def commit(self) -> None:
        self._journal = None

    def rollback(self) -> None:
        for seller, index, previous in reversed(self._journal or []):
            sales = self._sales[seller]
            if previous is None:
                sales.pop(index)
                if not sales:
                    del self._sales[seller]
            else:
                sales[index].status = previous
        self._journal = None

    def _record(self, seller: str, index: int, previous: Optional[SaleStatus]) -> None:
        if self._journal is not None:
            self._journal.append((seller, index, previous))
