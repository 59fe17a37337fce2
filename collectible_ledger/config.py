"""
Collectible Ledger: configuration.
Paths and contract parameters. Values come from a YAML file, then env vars.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .bank import parse_amount
from .contract import MAX_SUPPLY, MINT_PRICE
from .errors import InvalidAmountError

# --- Environment ---
ENV_CONFIG = "COLLECTIBLE_CONFIG"
ENV_STATE = "COLLECTIBLE_STATE"
ENV_JOURNAL = "COLLECTIBLE_JOURNAL"

# --- Default paths ---
DEFAULT_CONFIG_PATH = Path("config") / "collectible.yaml"
DEFAULT_STATE_PATH = Path("data") / "collectible" / "state.json"
DEFAULT_JOURNAL_PATH = Path("data") / "collectible" / "journal.jsonl"

_KNOWN_KEYS = {"mint_price", "max_supply", "state_path", "journal_path", "signing_key_path"}


@dataclass(frozen=True)
class LedgerSettings:
    mint_price: Decimal
    max_supply: int
    state_path: Path
    journal_path: Path
    signing_key_path: Optional[Path] = None

    @staticmethod
    def defaults() -> "LedgerSettings":
        return LedgerSettings(
            mint_price=MINT_PRICE,
            max_supply=MAX_SUPPLY,
            state_path=DEFAULT_STATE_PATH,
            journal_path=DEFAULT_JOURNAL_PATH,
        )

    @staticmethod
    def from_mapping(obj: Mapping[str, Any]) -> "LedgerSettings":
        d = LedgerSettings.defaults()
        unknown = set(obj) - _KNOWN_KEYS
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        max_supply = obj.get("max_supply", d.max_supply)
        if isinstance(max_supply, bool) or not isinstance(max_supply, int) or max_supply < 0:
            raise ValueError(f"max_supply must be a non-negative integer, got {max_supply!r}")

        try:
            mint_price = parse_amount(obj.get("mint_price", d.mint_price))
        except InvalidAmountError as e:
            raise ValueError(f"mint_price: {e.reason}") from e

        signing_key = obj.get("signing_key_path")
        return LedgerSettings(
            mint_price=mint_price,
            max_supply=max_supply,
            state_path=Path(obj.get("state_path") or d.state_path),
            journal_path=Path(obj.get("journal_path") or d.journal_path),
            signing_key_path=Path(signing_key) if signing_key else None,
        )

    @staticmethod
    def load(path: str | Path | None = None, env: Mapping[str, str] | None = None) -> "LedgerSettings":
        """Read YAML settings (missing file -> defaults) and apply env overrides."""
        env = os.environ if env is None else env
        config_path = Path(path or env.get(ENV_CONFIG) or DEFAULT_CONFIG_PATH)

        settings = LedgerSettings.defaults()
        if config_path.exists():
            with config_path.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
            if not isinstance(raw, dict):
                raise ValueError(f"{config_path}: top level must be a mapping")
            settings = LedgerSettings.from_mapping(raw)

        if env.get(ENV_STATE):
            settings = replace(settings, state_path=Path(env[ENV_STATE]))
        if env.get(ENV_JOURNAL):
            settings = replace(settings, journal_path=Path(env[ENV_JOURNAL]))
        return settings
