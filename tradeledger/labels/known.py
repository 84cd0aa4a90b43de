"""Hardcoded known contracts on Asset Chain."""

from tradeledger.tokens.constants import CNGN_ADDRESS, SWAP_ROUTER_ADDRESS, SWAP_ROUTER_NAME, USDT_ADDRESS

# address -> (label, category)
KNOWN_LABELS: dict[str, tuple[str, str]] = {
    CNGN_ADDRESS: ("cNGN Token", "token"),
    USDT_ADDRESS: ("USDT", "token"),
    "0xe2a45a102b00fad6447d0ad859b43baf8bf6def1": ("UniswapV3Pool (cNGN/USDT)", "pool"),
    "0x54527b09aeb2be23f99958db8f2f827dab863a28": ("UniswapV3Router", "dex"),
    SWAP_ROUTER_ADDRESS: (SWAP_ROUTER_NAME, "dex"),
    "0x8804e26b04f52b0183ece80b797d1c1079956e56": ("NonfungiblePositionManager", "dex"),
}


def get_label(address: str) -> tuple[str, str] | None:
    """Get (label, category) for a known address, or None."""
    return KNOWN_LABELS.get(address.lower())


def contract_name(address: str, explorer_name: str | None = None, is_contract: bool | None = None) -> str:
    """Best display name for an interacted contract.

    The explorer's own label wins, then the static table; unnamed contracts
    become "Unknown Contract" and plain wallets stay blank.
    """
    if explorer_name:
        return explorer_name
    entry = get_label(address)
    if entry:
        return entry[0]
    if is_contract:
        return "Unknown Contract"
    return ""


def is_dex_router(address: str) -> bool:
    entry = get_label(address)
    return entry is not None and entry[1] == "dex"
