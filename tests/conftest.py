from decimal import Decimal

import pytest

from collectible_ledger.accounts import derive_address
from collectible_ledger.bank import NativeBank
from collectible_ledger.contract import CollectibleContract

STARTING_BALANCE = Decimal("10")


@pytest.fixture
def owner():
    return derive_address("owner")


@pytest.fixture
def accounts():
    return [derive_address(f"account-{i}") for i in range(10)]


@pytest.fixture
def bank(owner, accounts):
    b = NativeBank()
    for addr in [owner, *accounts]:
        b.credit(addr, STARTING_BALANCE)
    return b


@pytest.fixture
def fresh_contract(owner, bank):
    """Contract as deployed: sale inactive, unpaused."""
    return CollectibleContract(owner, bank=bank)


@pytest.fixture
def contract(fresh_contract, owner):
    """Deployed contract with the sale switched on."""
    fresh_contract.flip_sale_status(owner)
    return fresh_contract
