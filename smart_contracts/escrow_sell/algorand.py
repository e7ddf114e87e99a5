# smart_contracts/escrow_sell/algorand.py
# Algorand-backed collaborators: an ASA as the sale token, ALGO as the
# native currency, and the node's last round as the escrow clock.

import logging
from typing import Callable, Dict, Mapping, Optional, Sequence, Tuple

from algosdk import error, transaction as tx
from algosdk.atomic_transaction_composer import (
    AccountTransactionSigner,
    AtomicTransactionComposer,
    TransactionWithSigner,
)
from algosdk.v2client import algod

from .collaborators import Transfer, TransferExecutor
from .config import EscrowSettings
from .errors import InsufficientAllowance, TransferFailed

logger = logging.getLogger(__name__)

WAIT_ROUNDS = 10
NODE_ERRORS = (
    error.AlgodHTTPError,
    error.ConfirmationTimeoutError,
    error.TransactionRejectedError,
    error.AtomicTransactionComposerError,
)


def algod_client_from_settings(settings: EscrowSettings) -> algod.AlgodClient:
    return algod.AlgodClient(settings.algod_token, settings.algod_server)


def algod_round_clock(algod_client) -> Callable[[], int]:
    def now() -> int:
        return algod_client.status()["last-round"]
    return now


def algorand_group_executor(algod_client) -> TransferExecutor:
    """
    Submit every leg of a batch as one atomic group: either all of them
    confirm or none does. Legs must come from AsaTokenLedger / AlgoPaymentRail.
    """

    def execute(transfers: Sequence[Transfer]) -> None:
        if not transfers:
            return
        sp = algod_client.suggested_params()
        atc = AtomicTransactionComposer()
        for t in transfers:
            txn, sk = t.rail.prepare(t, sp)
            atc.add_transaction(TransactionWithSigner(txn, AccountTransactionSigner(sk)))
        try:
            atc.execute(algod_client, WAIT_ROUNDS)
        except NODE_ERRORS as e:
            logger.warning(f"Atomic group of {len(transfers)} transfers failed: {e}")
            raise TransferFailed(f"Escrow: transaction group failed: {e}")

    return execute


class _Signer:
    """Holds private keys for the accounts this process may move value from."""

    def __init__(self, algod_client, signers: Optional[Mapping[str, str]] = None):
        self.algod_client = algod_client
        self.signers: Dict[str, str] = dict(signers or {})

    def add_signer(self, addr: str, sk: str) -> None:
        self.signers[addr] = sk

    def _key(self, sender: str) -> str:
        sk = self.signers.get(sender)
        if sk is None:
            raise TransferFailed(f"Escrow: no signer for {sender}")
        return sk

    def _submit(self, txn, sk: str) -> str:
        stx = txn.sign(sk)
        try:
            txid = self.algod_client.send_transaction(stx)
            tx.wait_for_confirmation(self.algod_client, txid, WAIT_ROUNDS)
        except NODE_ERRORS as e:
            logger.warning(f"Transaction from {txn.sender} failed: {e}")
            raise TransferFailed(f"Escrow: transaction failed: {e}")
        return txid


class AsaTokenLedger(_Signer):
    """
    Sale token backed by an ASA. `transfer_from` only succeeds for owners whose
    key has been registered: on Algorand that registration is the allowance.
    Burned units go to `burn_address` (typically the asset reserve).
    """

    def __init__(self, algod_client, asset_id: int, burn_address: str, signers: Optional[Mapping[str, str]] = None):
        super().__init__(algod_client, signers)
        self.asset_id = asset_id
        self.burn_address = burn_address

    def balance_of(self, addr: str) -> int:
        info = self.algod_client.account_info(addr)
        for a in info.get("assets", []):
            if a["asset-id"] == self.asset_id:
                return a.get("amount", 0)
        return 0

    def transfer(self, sender: str, to: str, amount: int) -> None:
        self._submit(self._xfer(sender, to, amount, self.algod_client.suggested_params()), self._key(sender))

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        if owner not in self.signers:
            raise InsufficientAllowance(f"ERC20: insufficient allowance for {spender}")
        self.transfer(owner, to, amount)

    def burn(self, holder: str, amount: int) -> None:
        self.transfer(holder, self.burn_address, amount)

    def prepare(self, t: Transfer, sp) -> Tuple[tx.AssetTransferTxn, str]:
        """Unsigned transfer + signing key for one batch leg."""
        if t.spender is not None and t.sender not in self.signers:
            raise InsufficientAllowance(f"ERC20: insufficient allowance for {t.spender}")
        to = self.burn_address if t.burn else t.to
        return self._xfer(t.sender, to, t.amount, sp), self._key(t.sender)

    def _xfer(self, sender: str, to: str, amount: int, sp) -> tx.AssetTransferTxn:
        return tx.AssetTransferTxn(sender, sp, to, amount, self.asset_id)


class AlgoPaymentRail(_Signer):
    """Native currency in microAlgos."""

    def balance_of(self, addr: str) -> int:
        # spendable: the account must keep its minimum balance
        info = self.algod_client.account_info(addr)
        return max(0, info.get("amount", 0) - info.get("min-balance", 0))

    def transfer(self, sender: str, to: str, amount: int) -> None:
        sk = self._key(sender)
        self._submit(tx.PaymentTxn(sender, self.algod_client.suggested_params(), to, amount), sk)

    def prepare(self, t: Transfer, sp) -> Tuple[tx.PaymentTxn, str]:
        return tx.PaymentTxn(t.sender, sp, t.to, t.amount), self._key(t.sender)
