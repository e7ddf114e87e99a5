from .collaborators import (
    InMemoryPayments,
    InMemoryToken,
    ManualClock,
    PaymentRail,
    TokenLedger,
    Transfer,
    TransferExecutor,
    execute_sequential,
)
from .config import EscrowConfig, EscrowSettings, load_settings
from .errors import (
    EscrowError,
    InsufficientAllowance,
    InsufficientFunds,
    InsufficientLiquidity,
    InvalidAmount,
    InvalidConfiguration,
    InvalidState,
    InvalidTiming,
    NotFound,
    ReentrantCall,
    TransferFailed,
    Unauthorized,
)
from .escrow_sell import EscrowSell, Quote, Settlement, quote
from .ledger import EscrowLedger, SaleEntry, SaleStatus
from .pool import LiquidityPool, required_currency, required_pool, required_treasury
