"""Native-currency balances and value transfer.

The bank is the boundary collaborator that moves native value between
accounts: callers paying for a mint, the contract paying out a withdrawal.
Amounts are `Decimal` in whole native units (1 == one ether).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from .accounts import normalize_address
from .errors import InsufficientFundsError, InvalidAmountError, TransferRejectedError

ZERO = Decimal("0")


def parse_amount(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmountError(f"invalid amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(f"invalid amount: {value!r}")
    if not amount.is_finite():
        raise InvalidAmountError(f"amount must be finite: {value!r}")
    if amount < 0:
        raise InvalidAmountError(f"amount must be >= 0, got {value!r}")
    return amount


class NativeBank:
    """In-memory native balances keyed by normalized address."""

    def __init__(
        self,
        balances: Optional[Dict[str, Any]] = None,
        rejecting: Iterable[str] = (),
    ) -> None:
        self._balances: Dict[str, Decimal] = {}
        self._rejecting: set[str] = set()
        for addr, amount in (balances or {}).items():
            self.credit(addr, amount)
        for addr in rejecting:
            self.reject_deposits(addr)

    def balance_of(self, address: str) -> Decimal:
        return self._balances.get(normalize_address(address), ZERO)

    def credit(self, address: str, amount: Any) -> Decimal:
        """Mint native funds out of thin air (faucet for harnesses and tests)."""
        addr = normalize_address(address)
        value = parse_amount(amount)
        self._balances[addr] = self._balances.get(addr, ZERO) + value
        return self._balances[addr]

    def reject_deposits(self, address: str, flag: bool = True) -> None:
        addr = normalize_address(address)
        if flag:
            self._rejecting.add(addr)
        else:
            self._rejecting.discard(addr)

    def rejects_deposits(self, address: str) -> bool:
        return normalize_address(address) in self._rejecting

    def transfer(self, sender: str, recipient: str, amount: Any) -> Decimal:
        src = normalize_address(sender)
        dst = normalize_address(recipient)
        value = parse_amount(amount)

        available = self._balances.get(src, ZERO)
        if value > available:
            raise InsufficientFundsError(
                f"sender {src} has {available} but tried to send {value}"
            )
        if dst in self._rejecting:
            raise TransferRejectedError()
        if value == 0 or src == dst:
            return value

        self._balances[src] = available - value
        self._balances[dst] = self._balances.get(dst, ZERO) + value
        return value

    def snapshot(self) -> dict:
        return {"balances": dict(self._balances), "rejecting": set(self._rejecting)}

    def restore(self, snap: dict) -> None:
        self._balances = dict(snap["balances"])
        self._rejecting = set(snap["rejecting"])

    def to_dict(self) -> dict:
        return {
            "balances": {addr: str(v) for addr, v in sorted(self._balances.items())},
            "rejecting": sorted(self._rejecting),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NativeBank":
        return cls(balances=data.get("balances") or {}, rejecting=data.get("rejecting") or [])
