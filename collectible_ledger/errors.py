"""Contract exceptions.

Every failed operation raises one of these. A failure is terminal for the
attempted call: the ledger is left exactly as it was before the call.
"""

from __future__ import annotations


class ContractError(Exception):
    """Base class for all reverted contract calls."""

    code = "REVERTED"
    default_reason = "Transaction reverted"

    def __init__(self, reason: str | None = None, *, code: str | None = None) -> None:
        self.reason = reason or self.default_reason
        if code is not None:
            self.code = code
        super().__init__(self.reason)

    def to_dict(self) -> dict:
        return {"code": self.code, "reason": self.reason}


class UnauthorizedError(ContractError):
    """Raised when the caller lacks the role an operation requires."""

    code = "UNAUTHORIZED"
    default_reason = "AccessControl: missing role"

    def __init__(self, account: str, role_id: str) -> None:
        self.account = account
        self.role_id = role_id
        super().__init__(f"AccessControl: account {account} is missing role {role_id}")


class PausedError(ContractError):
    code = "PAUSED"
    default_reason = "Pausable: paused"


class AlreadyPausedError(ContractError):
    code = "ALREADY_PAUSED"
    default_reason = "Pausable: paused"


class AlreadyUnpausedError(ContractError):
    code = "ALREADY_UNPAUSED"
    default_reason = "Pausable: not paused"


class SaleInactiveError(ContractError):
    code = "SALE_INACTIVE"
    default_reason = "Sale not active"


class InsufficientPaymentError(ContractError):
    code = "INSUFFICIENT_PAYMENT"
    default_reason = "Send to low ETH to mint NFT"


class SupplyExhaustedError(ContractError):
    code = "SUPPLY_EXHAUSTED"
    default_reason = "Mint limit achieved"


class NonexistentTokenError(ContractError):
    code = "NONEXISTENT_TOKEN"
    default_reason = "ERC721: invalid token ID"


class NotTokenOwnerError(ContractError):
    code = "NOT_TOKEN_OWNER"
    default_reason = "ERC721: caller is not token owner or approved"


class InvalidRecipientError(ContractError):
    code = "INVALID_RECIPIENT"
    default_reason = "ERC721: mint to the zero address"


# =========================
# Value transfer failures
# =========================

class InvalidAmountError(ContractError):
    code = "INVALID_AMOUNT"
    default_reason = "amount must be a finite, non-negative number"


class InsufficientFundsError(ContractError):
    code = "INSUFFICIENT_FUNDS"
    default_reason = "sender doesn't have enough funds to send tx"


class TransferRejectedError(ContractError):
    """Raised when the recipient of a native transfer refuses the funds."""

    code = "TRANSFER_REJECTED"
    default_reason = "Address: unable to send value, recipient may have reverted"
