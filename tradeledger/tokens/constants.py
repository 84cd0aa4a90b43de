"""Token-of-interest, swap router, stablecoin and pool-label constants for Asset Chain."""

from decimal import Decimal

# cNGN (Compliant Naira) on Asset Chain
CNGN_ADDRESS = "0x7923c0f6fa3d1ba6eafcaedaad93e737fd22fc4f"

# Asset Chain USDT
USDT_ADDRESS = "0x26e490d30e73c36800788dc6d6315946c4bbea24"

# Swap router whose interactions define a trade for VWAP purposes
SWAP_ROUTER_ADDRESS = "0xec2b2209d710d4283b5d1e29441df0dbb9cee5c3"
SWAP_ROUTER_NAME = "SwapRouter"

# Approx 1/1522 USD per cNGN; last-resort valuation rate
CNGN_USD_FALLBACK = Decimal("0.000657")

# Symbols treated as 1:1 USD
STABLECOIN_SYMBOLS: frozenset[str] = frozenset({"USDT", "USDC"})

# Substrings that mark an explorer label as a liquidity pool
POOL_LABEL_MARKERS: tuple[str, ...] = ("Pool", "Uniswap")

# ERC-20 tokens without explicit decimals metadata
DEFAULT_DECIMALS = 18
