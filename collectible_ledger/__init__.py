"""Collectible Ledger.

Fixed-supply collectible issuance:
- Role-gated minting and administration (ADMIN / MINTER / PAUSER)
- Global pause switch, sale-active switch, hard supply cap
- Paid public minting into a withdrawable treasury
- Append-only, hash-chained event journal
"""
from .contract import MAX_SUPPLY, MINT_PRICE, CollectibleContract
from .roles import Role
