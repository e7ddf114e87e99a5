# smart_contracts/escrow_sell/constants.py
# Protocol constants shared by the escrow sell contract.

from algosdk import encoding

# ---------------- Fixed-point scales ----------------
PRICE_SCALE = 100           # price: currency units per token, 2 decimals
FEE_SCALE = 100_000         # fee_rate: 100_000 == 100%
SPLIT_SCALE = 100

# ---------------- Liquidity split ----------------
TREASURY_SHARE = 20         # % of each sale covered by the treasury role
POOL_SHARE = 80             # % of each sale covered by the pool role

# ---------------- Addresses ----------------
ZERO_ADDRESS = encoding.encode_address(bytes(32))
