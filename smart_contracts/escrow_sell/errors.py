# smart_contracts/escrow_sell/errors.py
# Revert kinds raised by the escrow sell contract and its collaborators.


class EscrowError(Exception):
    """Base class; `code` is the stable revert reason."""

    code = "Escrow: failed"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidAmount(EscrowError):
    code = "Escrow: Amount cannot be 0"


class NotFound(EscrowError):
    code = "Escrow: sale not found"


class InvalidState(EscrowError):
    code = "Escrow: invalid status"


class InvalidTiming(EscrowError):
    code = "Escrow: invalid block"


class InsufficientLiquidity(EscrowError):
    code = "Escrow: insufficient liquidity"


class InsufficientFunds(EscrowError):
    code = "Escrow: insufficient funds"


class TransferFailed(EscrowError):
    code = "Escrow: transfer failed"


class InsufficientAllowance(TransferFailed):
    code = "ERC20: insufficient allowance"


class Unauthorized(EscrowError):
    code = "Escrow: unauthorized"


class InvalidConfiguration(EscrowError):
    code = "Escrow: invalid configuration"


class ReentrantCall(EscrowError):
    code = "ReentrancyGuard: reentrant call"
