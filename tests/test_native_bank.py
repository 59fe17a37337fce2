from decimal import Decimal

import pytest

from collectible_ledger.accounts import derive_address, normalize_address
from collectible_ledger.bank import NativeBank, parse_amount
from collectible_ledger.errors import InsufficientFundsError, InvalidAmountError, TransferRejectedError

ALICE = derive_address("alice")
BOB = derive_address("bob")


class TestParseAmount:
    @pytest.mark.parametrize("value,expected", [("0.01", Decimal("0.01")), (0, Decimal("0")), (Decimal("2.5"), Decimal("2.5"))])
    def test_valid(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", ["-0.01", "abc", "NaN", "Infinity", True, None])
    def test_invalid(self, value):
        with pytest.raises(InvalidAmountError):
            parse_amount(value)

    def test_float_goes_through_str(self):
        assert parse_amount(0.01) == Decimal("0.01")


class TestAddresses:
    def test_normalizes_case_and_prefix(self):
        raw = "AB" * 20
        assert normalize_address(raw) == "0x" + "ab" * 20

    @pytest.mark.parametrize("value", ["", "0x123", "0x" + "zz" * 20, 42])
    def test_rejects_garbage(self, value):
        with pytest.raises(ValueError):
            normalize_address(value)


class TestNativeBank:
    def test_transfer_moves_value(self):
        bank = NativeBank({ALICE: "1"})
        bank.transfer(ALICE, BOB, "0.25")
        assert bank.balance_of(ALICE) == Decimal("0.75")
        assert bank.balance_of(BOB) == Decimal("0.25")

    def test_insufficient_funds_changes_nothing(self):
        bank = NativeBank({ALICE: "0.1"})
        with pytest.raises(InsufficientFundsError):
            bank.transfer(ALICE, BOB, "0.2")
        assert bank.balance_of(ALICE) == Decimal("0.1")
        assert bank.balance_of(BOB) == Decimal("0")

    def test_rejecting_recipient(self):
        bank = NativeBank({ALICE: "1"}, rejecting=[BOB])
        with pytest.raises(TransferRejectedError):
            bank.transfer(ALICE, BOB, "0.5")
        assert bank.balance_of(ALICE) == Decimal("1")

        bank.reject_deposits(BOB, False)
        bank.transfer(ALICE, BOB, "0.5")
        assert bank.balance_of(BOB) == Decimal("0.5")

    def test_snapshot_restore(self):
        bank = NativeBank({ALICE: "1"})
        snap = bank.snapshot()
        bank.transfer(ALICE, BOB, "1")
        bank.reject_deposits(ALICE)
        bank.restore(snap)
        assert bank.balance_of(ALICE) == Decimal("1")
        assert not bank.rejects_deposits(ALICE)

    def test_dict_round_trip(self):
        bank = NativeBank({ALICE: "1.5"}, rejecting=[BOB])
        again = NativeBank.from_dict(bank.to_dict())
        assert again.balance_of(ALICE) == Decimal("1.5")
        assert again.rejects_deposits(BOB)
