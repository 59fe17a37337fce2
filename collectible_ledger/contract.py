"""Token ledger & policy engine for a fixed-supply collectible.

Every public method is one transaction: it takes the contract lock, validates
its preconditions against the role registry and the switch state, mutates,
commits, then publishes its notifications. Any exception before the commit
restores the ledger, the role registry and the bank balances to their pre-call
values and drops the pending notifications. Subscribers only ever see
committed transactions.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

from . import events as ev
from .accounts import contract_address_for, is_zero_address, normalize_address
from .bank import NativeBank, parse_amount
from .errors import (
    AlreadyPausedError,
    AlreadyUnpausedError,
    ContractError,
    InsufficientPaymentError,
    InvalidRecipientError,
    NonexistentTokenError,
    NotTokenOwnerError,
    PausedError,
    SaleInactiveError,
    SupplyExhaustedError,
)
from .roles import Role, RoleRegistry, role_id

MINT_PRICE = Decimal("0.01")
MAX_SUPPLY = 100


def _token_key(token_id: Any) -> int:
    """Token ids are plain ints; anything else names no token."""
    if isinstance(token_id, bool) or not isinstance(token_id, int):
        raise NonexistentTokenError()
    return token_id


@dataclass
class ContractState:
    """Switches, issuance counter and ownership map."""

    paused: bool = False
    sale_active: bool = False
    counter: int = 0
    owners: Dict[int, str] = field(default_factory=dict)

    def copy(self) -> "ContractState":
        return replace(self, owners=dict(self.owners))


class CollectibleContract:
    def __init__(
        self,
        deployer: str,
        *,
        bank: Optional[NativeBank] = None,
        address: Optional[str] = None,
        mint_price: Any = MINT_PRICE,
        max_supply: int = MAX_SUPPLY,
        bus: Optional[ev.EventBus] = None,
    ) -> None:
        if int(max_supply) < 0:
            raise ValueError("max_supply must be >= 0")

        self.deployer = normalize_address(deployer)
        self.address = normalize_address(address) if address else contract_address_for(self.deployer)
        self.mint_price = parse_amount(mint_price)
        self.max_supply = int(max_supply)
        self.bank = bank if bank is not None else NativeBank()
        self.bus = bus if bus is not None else ev.EventBus()

        self.state = ContractState()
        self.roles = RoleRegistry({role: [self.deployer] for role in Role})

        self._lock = threading.RLock()
        self._tx_count = 0

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[List[tuple[str, dict]]]:
        with self._lock:
            state = self.state.copy()
            roles = self.roles.snapshot()
            balances = self.bank.snapshot()
            pending: List[tuple[str, dict]] = []
            try:
                yield pending
            except BaseException:
                self.state = state
                self.roles.restore(roles)
                self.bank.restore(balances)
                raise

            tx_index = self._tx_count
            self._tx_count += 1
            # Committed: a failing subscriber surfaces its error but cannot undo the transaction.
            self.bus.publish_all(
                [
                    ev.Event(name=name, args=args, contract=self.address, tx_index=tx_index, log_index=log_index)
                    for log_index, (name, args) in enumerate(pending)
                ]
            )

    def _require_not_paused(self) -> None:
        if self.state.paused:
            raise PausedError()

    def _require_supply(self) -> None:
        if self.state.counter >= self.max_supply:
            raise SupplyExhaustedError()

    def _issue(self, to: str, pending: List[tuple[str, dict]]) -> int:
        self.state.counter += 1
        token_id = self.state.counter
        self.state.owners[token_id] = to
        pending.append((ev.MINTED, {"to": to, "token_id": token_id}))
        return token_id

    @staticmethod
    def _recipient(to: str, reason: str) -> str:
        if is_zero_address(to):
            raise InvalidRecipientError(reason)
        return normalize_address(to)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def has_role(self, role: "Role | str", account: str) -> bool:
        with self._lock:
            return self.roles.has_role(role, account)

    def role_id(self, role: "Role | str") -> str:
        return role_id(role)

    def members(self, role: "Role | str") -> List[str]:
        with self._lock:
            return self.roles.members(role)

    @property
    def paused(self) -> bool:
        return self.state.paused

    @property
    def is_sale_active(self) -> bool:
        return self.state.sale_active

    def total_minted(self) -> int:
        return self.state.counter

    def treasury_balance(self) -> Decimal:
        return self.bank.balance_of(self.address)

    def owner_of(self, token_id: int) -> str:
        with self._lock:
            key = _token_key(token_id)
            if key not in self.state.owners:
                raise NonexistentTokenError()
            return self.state.owners[key]

    def balance_of(self, owner: str) -> int:
        addr = normalize_address(owner)
        with self._lock:
            return sum(1 for holder in self.state.owners.values() if holder == addr)

    def tokens_of(self, owner: str) -> List[int]:
        addr = normalize_address(owner)
        with self._lock:
            return sorted(tid for tid, holder in self.state.owners.items() if holder == addr)

    # ------------------------------------------------------------------
    # Minting
    # ------------------------------------------------------------------

    def admin_mint(self, caller: str, to: str) -> int:
        with self._transaction() as pending:
            self.roles.check_role(Role.MINTER, caller)
            self._require_not_paused()
            self._require_supply()
            recipient = self._recipient(to, "ERC721: mint to the zero address")
            return self._issue(recipient, pending)

    def paid_mint(self, caller: str, to: str, value: Any = 0) -> int:
        """Public mint; `value` leaves the caller's balance and stays in the contract.

        Checks run in a fixed order: paused, sale active, payment, supply.
        Paying more than the mint price is accepted and nothing is refunded.
        """
        with self._transaction() as pending:
            self._require_not_paused()
            payer = normalize_address(caller)
            amount = parse_amount(value)
            if not self.state.sale_active:
                raise SaleInactiveError()
            if amount < self.mint_price:
                raise InsufficientPaymentError()
            self._require_supply()
            recipient = self._recipient(to, "ERC721: mint to the zero address")

            self.bank.transfer(payer, self.address, amount)
            return self._issue(recipient, pending)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def flip_sale_status(self, caller: str) -> bool:
        with self._transaction() as pending:
            self.roles.check_role(Role.ADMIN, caller)
            self.state.sale_active = not self.state.sale_active
            pending.append((ev.SALE_STATUS_FLIPPED, {"active": self.state.sale_active}))
            return self.state.sale_active

    def pause(self, caller: str) -> None:
        with self._transaction() as pending:
            self.roles.check_role(Role.PAUSER, caller)
            if self.state.paused:
                raise AlreadyPausedError()
            self.state.paused = True
            pending.append((ev.PAUSED, {"account": normalize_address(caller)}))

    def unpause(self, caller: str) -> None:
        with self._transaction() as pending:
            self.roles.check_role(Role.PAUSER, caller)
            if not self.state.paused:
                raise AlreadyUnpausedError()
            self.state.paused = False
            pending.append((ev.UNPAUSED, {"account": normalize_address(caller)}))

    def withdraw(self, caller: str) -> Decimal:
        """Send the whole treasury to `caller`. An empty treasury sends 0."""
        with self._transaction() as pending:
            self.roles.check_role(Role.ADMIN, caller)
            to = normalize_address(caller)
            amount = self.bank.balance_of(self.address)
            self.bank.transfer(self.address, to, amount)
            pending.append((ev.WITHDRAWAL, {"to": to, "amount": str(amount)}))
            return amount

    def grant_role(self, caller: str, role: "Role | str", account: str) -> bool:
        with self._transaction() as pending:
            self.roles.check_role(Role.ADMIN, caller)
            r = Role.parse(role)
            granted = self.roles.grant(r, account)
            if granted:
                pending.append(
                    (
                        ev.ROLE_GRANTED,
                        {"role": r.value, "account": normalize_address(account), "sender": normalize_address(caller)},
                    )
                )
            return granted

    def revoke_role(self, caller: str, role: "Role | str", account: str) -> bool:
        with self._transaction() as pending:
            self.roles.check_role(Role.ADMIN, caller)
            return self._revoke(Role.parse(role), account, caller, pending)

    def renounce_role(self, caller: str, role: "Role | str", account: str) -> bool:
        with self._transaction() as pending:
            if normalize_address(account) != normalize_address(caller):
                raise ContractError("AccessControl: can only renounce roles for self", code="BAD_CONFIRMATION")
            return self._revoke(Role.parse(role), account, caller, pending)

    def _revoke(self, role: Role, account: str, caller: str, pending: List[tuple[str, dict]]) -> bool:
        revoked = self.roles.revoke(role, account)
        if revoked:
            pending.append(
                (
                    ev.ROLE_REVOKED,
                    {"role": role.value, "account": normalize_address(account), "sender": normalize_address(caller)},
                )
            )
        return revoked

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def transfer(self, caller: str, from_addr: str, to: str, token_id: int) -> None:
        with self._transaction() as pending:
            self._require_not_paused()
            owner = self.owner_of(token_id)
            sender = normalize_address(caller)
            if sender != owner or normalize_address(from_addr) != owner:
                raise NotTokenOwnerError()
            recipient = self._recipient(to, "ERC721: transfer to the zero address")
            self.state.owners[token_id] = recipient
            pending.append((ev.TRANSFER, {"from": owner, "to": recipient, "token_id": token_id}))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "address": self.address,
                "deployer": self.deployer,
                "mint_price": str(self.mint_price),
                "max_supply": self.max_supply,
                "paused": self.state.paused,
                "sale_active": self.state.sale_active,
                "counter": self.state.counter,
                "owners": {str(tid): holder for tid, holder in sorted(self.state.owners.items())},
                "roles": self.roles.to_dict(),
                "tx_count": self._tx_count,
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, bank: Optional[NativeBank] = None) -> "CollectibleContract":
        contract = cls(
            str(data["deployer"]),
            bank=bank,
            address=str(data["address"]),
            mint_price=data.get("mint_price", MINT_PRICE),
            max_supply=int(data.get("max_supply", MAX_SUPPLY)),
        )
        owners = {int(tid): normalize_address(holder) for tid, holder in (data.get("owners") or {}).items()}
        counter = int(data.get("counter", 0))
        if counter != len(owners) or set(owners) != set(range(1, counter + 1)):
            raise ValueError("corrupt state: owners do not match issuance counter")
        if counter > contract.max_supply:
            raise ValueError("corrupt state: issuance counter exceeds max_supply")

        contract.state = ContractState(
            paused=bool(data.get("paused", False)),
            sale_active=bool(data.get("sale_active", False)),
            counter=counter,
            owners=owners,
        )
        if "roles" in data:
            contract.roles = RoleRegistry.from_dict(data["roles"])
        contract._tx_count = int(data.get("tx_count", 0))
        return contract
