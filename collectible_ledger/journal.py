"""Append-only event journal (JSONL).

Every committed contract notification becomes one line. Lines are chained by
`previous_hash` and, when a signer is configured, carry an ECDSA signature
over their hash.
"""
from __future__ import annotations

import hashlib
import json
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from .events import Event
from .locking import exclusive_file_lock


def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _canonical_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class JournalSigner:
    """ECDSA (P-384) signer for journal entry hashes."""

    def __init__(self, private_key: ec.EllipticCurvePrivateKey) -> None:
        self.private_key = private_key
        self.public_key = private_key.public_key()

    @classmethod
    def generate(cls) -> "JournalSigner":
        return cls(ec.generate_private_key(ec.SECP384R1()))

    @classmethod
    def load_or_create(cls, key_path: str | Path) -> "JournalSigner":
        path = Path(key_path)
        if path.exists():
            key = load_pem_private_key(path.read_bytes(), password=None)
            if not isinstance(key, ec.EllipticCurvePrivateKey):
                raise ValueError(f"{path} is not an EC private key")
            return cls(key)

        signer = cls.generate()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(
            signer.private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        return signer

    @property
    def public_key_pem(self) -> str:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()

    def sign(self, data: bytes) -> str:
        return self.private_key.sign(data, ec.ECDSA(hashes.SHA256())).hex()

    def verify(self, signature_hex: str, data: bytes) -> bool:
        try:
            self.public_key.verify(bytes.fromhex(signature_hex), data, ec.ECDSA(hashes.SHA256()))
        except (InvalidSignature, ValueError):
            return False
        return True


@dataclass
class JournalEntry:
    ts_utc: str
    ts_unix: float
    event: str
    contract: str
    tx_index: int
    log_index: int
    data: dict
    previous_hash: str
    hash: str | None = None
    signature: str | None = None

    def to_dict(self) -> dict:
        d = {
            "ts_utc": self.ts_utc,
            "ts_unix": self.ts_unix,
            "event": self.event,
            "contract": self.contract,
            "tx_index": self.tx_index,
            "log_index": self.log_index,
            "data": self.data,
            "previous_hash": self.previous_hash,
        }
        if self.hash is not None:
            d["hash"] = self.hash
        if self.signature is not None:
            d["signature"] = self.signature
        return d

    def compute_hash(self) -> str:
        d = self.to_dict()
        d.pop("hash", None)
        d.pop("signature", None)
        return _sha256_text(_canonical_json(d))


class EventJournal:
    """Hash-chained JSONL journal of contract events."""

    def __init__(self, journal_path: str | Path, signer: Optional[JournalSigner] = None) -> None:
        self.journal_path = Path(journal_path)
        self.signer = signer
        self.journal_path.parent.mkdir(parents=True, exist_ok=True)

    def _iter_entries(self) -> Iterable[dict]:
        if not self.journal_path.exists():
            return
        with self.journal_path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError:
                    # verify() reports corrupt lines.
                    continue

    def record(self, event: Event) -> str:
        """EventBus subscriber: append a published event."""
        return self.append(
            event.name,
            event.args,
            contract=event.contract,
            tx_index=event.tx_index,
            log_index=event.log_index,
        )

    def append(self, event: str, data: dict, *, contract: str = "", tx_index: int = 0, log_index: int = 0) -> str:
        if not event or not isinstance(event, str):
            raise ValueError("event must be a non-empty string")
        if not isinstance(data, dict):
            raise ValueError("data must be a dict")

        with self.journal_path.open("a+", encoding="utf-8") as f:
            with exclusive_file_lock(f):
                f.seek(0)
                prev = ""
                for line in f:
                    raw = line.strip()
                    if not raw:
                        continue
                    try:
                        obj = json.loads(raw)
                    except json.JSONDecodeError:
                        continue
                    h = obj.get("hash")
                    if isinstance(h, str):
                        prev = h

                entry = JournalEntry(
                    ts_utc=utc_iso(),
                    ts_unix=time.time(),
                    event=event,
                    contract=contract,
                    tx_index=int(tx_index),
                    log_index=int(log_index),
                    data=data,
                    previous_hash=prev,
                )
                entry.hash = entry.compute_hash()
                if self.signer is not None:
                    entry.signature = self.signer.sign(entry.hash.encode("ascii"))

                f.seek(0, os.SEEK_END)
                f.write(_canonical_json(entry.to_dict()) + "\n")
                f.flush()
                return entry.hash

    def verify(self) -> dict:
        """Check hashes, chaining and (with a signer) signatures.

        Returns a structured report.
        """

        ok = True
        reasons: list[str] = []
        total = 0
        prev = ""

        if self.journal_path.exists():
            with self.journal_path.open("r", encoding="utf-8") as f:
                for idx, line in enumerate(f, start=1):
                    raw = line.strip()
                    if not raw:
                        continue
                    total += 1
                    try:
                        obj = json.loads(raw)
                    except json.JSONDecodeError:
                        ok = False
                        reasons.append(f"line {idx}: invalid json")
                        continue

                    h = obj.get("hash")
                    if not isinstance(h, str):
                        ok = False
                        reasons.append(f"line {idx}: missing hash")
                        continue

                    body = dict(obj)
                    body.pop("hash", None)
                    signature = body.pop("signature", None)
                    if _sha256_text(_canonical_json(body)) != h:
                        ok = False
                        reasons.append(f"line {idx}: hash mismatch")

                    if obj.get("previous_hash", "") != prev:
                        ok = False
                        reasons.append(f"line {idx}: previous_hash mismatch")
                    prev = h

                    if self.signer is not None:
                        if not isinstance(signature, str):
                            ok = False
                            reasons.append(f"line {idx}: missing signature")
                        elif not self.signer.verify(signature, h.encode("ascii")):
                            ok = False
                            reasons.append(f"line {idx}: bad signature")

        return {
            "ok": ok,
            "journal_path": str(self.journal_path),
            "total_entries": total,
            "signed": self.signer is not None,
            "reasons": reasons,
            "ts_utc": utc_iso(),
        }

    def tail(self, n: int = 10) -> list[dict]:
        if n <= 0:
            return []
        entries = list(self._iter_entries())
        return entries[-n:]
