from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict

from .config import LedgerSettings
from .contract import CollectibleContract
from .errors import ContractError
from .journal import EventJournal, JournalSigner
from .locking import sidecar_lock
from .roles import Role
from .store import load_contract, save_contract


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Collectible ledger (role-gated minting, pause, treasury)")
    p.add_argument("--config", default=None, help="YAML settings (default: COLLECTIBLE_CONFIG or config/collectible.yaml)")
    p.add_argument("--state", default=None, help="State JSON path (overrides settings)")
    p.add_argument("--journal", default=None, help="Event journal JSONL path (overrides settings)")
    sub = p.add_subparsers(dest="cmd", required=True)

    dp = sub.add_parser("deploy", help="Create a fresh contract owned by DEPLOYER")
    dp.add_argument("deployer")
    dp.add_argument("--force", action="store_true", help="Overwrite existing state")

    fp = sub.add_parser("fund", help="Credit native funds to an account (dev faucet)")
    fp.add_argument("account")
    fp.add_argument("amount")

    rp = sub.add_parser("reject-deposits", help="Mark an account as refusing native transfers")
    rp.add_argument("account")
    rp.add_argument("--off", action="store_true", help="Accept deposits again")

    def _caller(sp: argparse.ArgumentParser) -> argparse.ArgumentParser:
        sp.add_argument("--as", dest="caller", required=True, help="Calling account address")
        return sp

    mp = _caller(sub.add_parser("mint", help="MINTER mint to an address"))
    mp.add_argument("to")

    pp = _caller(sub.add_parser("pay-mint", help="Public paid mint"))
    pp.add_argument("to")
    pp.add_argument("--value", required=True, help="Native amount sent with the call")

    _caller(sub.add_parser("flip-sale"))
    _caller(sub.add_parser("pause"))
    _caller(sub.add_parser("unpause"))
    _caller(sub.add_parser("withdraw"))

    tp = _caller(sub.add_parser("transfer"))
    tp.add_argument("from_addr")
    tp.add_argument("to")
    tp.add_argument("token_id", type=int)

    for name in ("grant-role", "revoke-role"):
        gp = _caller(sub.add_parser(name))
        gp.add_argument("role", choices=[r.name for r in Role])
        gp.add_argument("account")

    hp = sub.add_parser("has-role")
    hp.add_argument("role", choices=[r.name for r in Role])
    hp.add_argument("account")

    op = sub.add_parser("owner-of")
    op.add_argument("token_id", type=int)

    sub.add_parser("status")

    jp = sub.add_parser("journal")
    jsub = jp.add_subparsers(dest="journal_cmd", required=True)
    jsub.add_parser("verify")
    jsub.add_parser("pubkey", help="Print the journal signing public key (PEM)")
    jt = jsub.add_parser("tail")
    jt.add_argument("-n", type=int, default=10)

    return p


def _status(contract: CollectibleContract) -> Dict[str, Any]:
    return {
        "address": contract.address,
        "paused": contract.paused,
        "sale_active": contract.is_sale_active,
        "total_minted": contract.total_minted(),
        "max_supply": contract.max_supply,
        "mint_price": str(contract.mint_price),
        "treasury_balance": str(contract.treasury_balance()),
        "roles": contract.roles.to_dict(),
    }


_CALLS: Dict[str, Callable[[CollectibleContract, argparse.Namespace], Any]] = {
    "mint": lambda c, a: c.admin_mint(a.caller, a.to),
    "pay-mint": lambda c, a: c.paid_mint(a.caller, a.to, a.value),
    "flip-sale": lambda c, a: c.flip_sale_status(a.caller),
    "pause": lambda c, a: c.pause(a.caller),
    "unpause": lambda c, a: c.unpause(a.caller),
    "withdraw": lambda c, a: c.withdraw(a.caller),
    "transfer": lambda c, a: c.transfer(a.caller, a.from_addr, a.to, a.token_id),
    "grant-role": lambda c, a: c.grant_role(a.caller, a.role, a.account),
    "revoke-role": lambda c, a: c.revoke_role(a.caller, a.role, a.account),
    "fund": lambda c, a: c.bank.credit(a.account, a.amount),
    "reject-deposits": lambda c, a: c.bank.reject_deposits(a.account, not a.off),
}


def _run(args: argparse.Namespace, settings: LedgerSettings, state_path: Path, journal: EventJournal) -> int:
    if args.cmd == "deploy":
        if state_path.exists() and not args.force:
            print(f"ERROR: state already exists at {state_path} (use --force)", file=sys.stderr)
            return 2
        contract = CollectibleContract(
            args.deployer,
            mint_price=settings.mint_price,
            max_supply=settings.max_supply,
        )
        save_contract(contract, state_path)
        print(json.dumps(_status(contract), indent=2))
        return 0

    try:
        contract = load_contract(state_path)
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if args.cmd == "status":
        print(json.dumps(_status(contract), indent=2))
        return 0

    try:
        if args.cmd == "has-role":
            print(json.dumps(contract.has_role(args.role, args.account)))
            return 0
        if args.cmd == "owner-of":
            print(contract.owner_of(args.token_id))
            return 0

        contract.bus.subscribe(journal.record)
        result = _CALLS[args.cmd](contract, args)
    except ContractError as e:
        print(f"REVERT code={e.code} reason={e.reason}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    save_contract(contract, state_path)
    if result is not None:
        print(result)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    settings = LedgerSettings.load(args.config)
    state_path = Path(args.state) if args.state else settings.state_path
    journal_path = Path(args.journal) if args.journal else settings.journal_path
    signer = JournalSigner.load_or_create(settings.signing_key_path) if settings.signing_key_path else None
    journal = EventJournal(journal_path, signer=signer)

    if args.cmd == "journal":
        if args.journal_cmd == "verify":
            report = journal.verify()
            print(json.dumps(report, indent=2))
            return 0 if report.get("ok") else 1
        if args.journal_cmd == "pubkey":
            if signer is None:
                print("ERROR: no signing_key_path configured", file=sys.stderr)
                return 2
            print(signer.public_key_pem, end="")
            return 0
        print(json.dumps(journal.tail(args.n), indent=2))
        return 0

    # One command at a time per state file: load, operate and save are a unit.
    with sidecar_lock(state_path):
        return _run(args, settings, state_path, journal)


if __name__ == "__main__":
    raise SystemExit(main())
