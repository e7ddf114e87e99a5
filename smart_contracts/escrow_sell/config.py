# smart_contracts/escrow_sell/config.py
# Configuration store for the escrow sell contract + .env settings loader.

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv

from .constants import FEE_SCALE, ZERO_ADDRESS
from .errors import InvalidConfiguration


def require_address(addr: Optional[str], field: str) -> str:
    if not addr or addr == ZERO_ADDRESS:
        raise InvalidConfiguration(f"Escrow: zero address for {field}")
    return addr


def require_uint(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidConfiguration(f"Escrow: {field} must be an unsigned integer")
    return value


@dataclass
class EscrowConfig:
    price: int                  # currency per token, scale PRICE_SCALE
    fee_rate: int               # scale FEE_SCALE
    escrow_duration: int        # clock ticks
    owner: str
    treasury_role: str
    pool_role: str
    token: Any                  # TokenLedger collaborator

    def __post_init__(self):
        self.set_price(self.price)
        self.set_fee_rate(self.fee_rate)
        self.set_escrow_duration(self.escrow_duration)
        self.set_owner(self.owner)
        self.set_treasury_role(self.treasury_role)
        self.set_pool_role(self.pool_role)
        self.set_token(self.token)

    # ---------------- validated writes ----------------
    def set_price(self, price: int) -> None:
        self.price = require_uint(price, "price")

    def set_fee_rate(self, fee_rate: int) -> None:
        require_uint(fee_rate, "fee_rate")
        if fee_rate > FEE_SCALE:
            raise InvalidConfiguration("Escrow: fee above 100%")
        self.fee_rate = fee_rate

    def set_escrow_duration(self, escrow_duration: int) -> None:
        self.escrow_duration = require_uint(escrow_duration, "escrow_duration")

    def set_owner(self, owner: str) -> None:
        self.owner = require_address(owner, "owner")

    def set_treasury_role(self, treasury_role: str) -> None:
        self.treasury_role = require_address(treasury_role, "treasury_role")

    def set_pool_role(self, pool_role: str) -> None:
        self.pool_role = require_address(pool_role, "pool_role")

    def set_token(self, token: Any) -> None:
        if token is None:
            raise InvalidConfiguration("Escrow: zero address for token")
        self.token = token


# ---------------- .env settings ----------------
@dataclass(frozen=True)
class EscrowSettings:
    price: int
    fee_rate: int
    escrow_duration: int
    owner: Optional[str]
    treasury_role: Optional[str]
    pool_role: Optional[str]
    asset_id: int
    algod_server: str
    algod_token: str


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.replace("_", ""))
    except ValueError:
        raise InvalidConfiguration(f"{name} is not an integer: {raw!r}")


def load_settings(env_path: Optional[Union[str, Path]] = None) -> EscrowSettings:
    """
    Load settings from the process environment, after merging a .env file
    (defaults to the one next to this package).
    """
    if env_path is None:
        env_path = Path(__file__).resolve().parent / ".env"
    load_dotenv(dotenv_path=env_path)

    return EscrowSettings(
        price=_env_int("ESCROW_PRICE", 100),
        fee_rate=_env_int("ESCROW_FEE_RATE", 5_000),
        escrow_duration=_env_int("ESCROW_DURATION", 50),
        owner=os.getenv("ESCROW_OWNER"),
        treasury_role=os.getenv("ESCROW_TREASURY_ROLE"),
        pool_role=os.getenv("ESCROW_POOL_ROLE"),
        asset_id=_env_int("ESCROW_ASSET_ID", 0),
        algod_server=os.getenv("ALGOD_SERVER", "https://testnet-api.algonode.cloud"),
        algod_token=os.getenv("ALGOD_TOKEN", ""),
    )
