import json
import tempfile
import unittest
from pathlib import Path

from collectible_ledger.accounts import derive_address
from collectible_ledger.bank import NativeBank
from collectible_ledger.contract import CollectibleContract
from collectible_ledger.journal import EventJournal, JournalSigner


class TestEventJournal(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.journal_path = Path(self.tmp.name) / "journal.jsonl"

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_append_and_verify(self) -> None:
        journal = EventJournal(self.journal_path)
        h1 = journal.append("Minted", {"to": "0x01", "token_id": 1})
        h2 = journal.append("Minted", {"to": "0x01", "token_id": 2})
        self.assertTrue(isinstance(h1, str) and len(h1) == 64)
        self.assertNotEqual(h1, h2)

        report = journal.verify()
        self.assertTrue(report.get("ok"), msg=json.dumps(report, indent=2))
        self.assertEqual(report.get("total_entries"), 2)
        self.assertEqual(journal.tail(1)[0]["previous_hash"], h1)

    def test_tamper_detection(self) -> None:
        journal = EventJournal(self.journal_path)
        journal.append("Withdrawal", {"to": "0x01", "amount": "0.01"})

        text = self.journal_path.read_text(encoding="utf-8").replace('"0.01"', '"9.99"')
        self.journal_path.write_text(text, encoding="utf-8")

        report = journal.verify()
        self.assertFalse(report.get("ok"))
        self.assertIn("line 1: hash mismatch", report["reasons"])

    def test_malformed_line(self) -> None:
        journal = EventJournal(self.journal_path)
        journal.append("Paused", {"account": "0x01"})
        self.journal_path.write_text(self.journal_path.read_text(encoding="utf-8") + "{not-json\n", encoding="utf-8")
        self.assertFalse(journal.verify().get("ok"))

    def test_signed_entries(self) -> None:
        key_path = Path(self.tmp.name) / "journal_key.pem"
        signer = JournalSigner.load_or_create(key_path)
        self.assertTrue(key_path.exists())

        journal = EventJournal(self.journal_path, signer=signer)
        journal.append("Paused", {"account": "0x01"})
        self.assertTrue(journal.verify().get("ok"))

        # Same key reloaded from disk still verifies.
        reloaded = EventJournal(self.journal_path, signer=JournalSigner.load_or_create(key_path))
        self.assertTrue(reloaded.verify().get("ok"))

        # A different key does not.
        stranger = EventJournal(self.journal_path, signer=JournalSigner.generate())
        report = stranger.verify()
        self.assertFalse(report.get("ok"))
        self.assertIn("line 1: bad signature", report["reasons"])

    def test_records_contract_events(self) -> None:
        owner = derive_address("owner")
        payer = derive_address("payer")
        contract = CollectibleContract(owner, bank=NativeBank({payer: "1"}))
        journal = EventJournal(self.journal_path)
        contract.bus.subscribe(journal.record)

        contract.flip_sale_status(owner)
        contract.paid_mint(payer, payer, "0.01")
        contract.withdraw(owner)

        entries = journal.tail(10)
        self.assertEqual([e["event"] for e in entries], ["SaleStatusFlipped", "Minted", "Withdrawal"])
        self.assertEqual(entries[1]["data"], {"to": payer, "token_id": 1})
        self.assertEqual(entries[2]["data"]["amount"], "0.01")
        self.assertTrue(all(e["contract"] == contract.address for e in entries))
        self.assertTrue(journal.verify().get("ok"))


if __name__ == "__main__":
    unittest.main()
