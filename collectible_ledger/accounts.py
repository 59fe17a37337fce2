from __future__ import annotations

import hashlib
import re

ZERO_ADDRESS = "0x" + "0" * 40

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def normalize_address(address: str) -> str:
    """Return the lower-case `0x`-prefixed form of an account address.

    Raises ValueError for anything that is not 20 bytes of hex.
    """
    if not isinstance(address, str):
        raise ValueError(f"address must be a string, got {type(address).__name__}")
    addr = address.strip().lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr
    if not _ADDRESS_RE.match(addr):
        raise ValueError(f"invalid address: {address!r}")
    return addr


def is_zero_address(address: str) -> bool:
    return normalize_address(address) == ZERO_ADDRESS


def derive_address(seed: str) -> str:
    """Deterministic address from an arbitrary seed (last 20 bytes of sha256)."""
    digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return "0x" + digest[-40:]


def contract_address_for(deployer: str, nonce: int = 0) -> str:
    return derive_address(f"{normalize_address(deployer)}:{int(nonce)}")
