from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .bank import NativeBank
from .contract import CollectibleContract

STATE_SCHEMA_VERSION = "1"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2, sort_keys=True)
        f.write("\n")
    tmp.replace(path)


def save_contract(contract: CollectibleContract, path: str | Path) -> Path:
    """Persist contract + bank as one JSON document.

    Format:
    {"schema_version": "1", "saved_at": "...", "contract": {...}, "bank": {...}}
    """
    p = Path(path)
    payload = {
        "schema_version": STATE_SCHEMA_VERSION,
        "saved_at": _utc_now_iso(),
        "contract": contract.to_dict(),
        "bank": contract.bank.to_dict(),
    }
    _write_json_atomic(p, payload)
    return p


def load_contract(path: str | Path) -> CollectibleContract:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"No contract state at {p}; run `deploy` first")
    with p.open("r", encoding="utf-8") as f:
        data = json.load(f)

    version = str(data.get("schema_version", ""))
    if version != STATE_SCHEMA_VERSION:
        raise ValueError(f"Unsupported state schema_version {version!r} in {p}")

    bank = NativeBank.from_dict(data.get("bank") or {})
    return CollectibleContract.from_dict(data["contract"], bank=bank)
