"""In-memory collaborators for tests, simulation and local use."""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Hashable, List, Sequence, Tuple

from .interfaces import AssetProbe, ReserveCollaborator, TokenCollaborator

POOL_ACCOUNT = "__pool__"


class InMemoryTokenLedger(TokenCollaborator):
    """Token balances and total supply per token id."""

    def __init__(self):
        self.balances: Dict[Tuple[Hashable, Hashable], int] = defaultdict(int)
        self.supply: Dict[Hashable, int] = defaultdict(int)

    def mint_to(self, token_id: Hashable, receiver: Hashable, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"negative mint amount: {amount}")
        self.balances[(token_id, receiver)] += amount
        self.supply[token_id] += amount

    def burn_from(self, token_id: Hashable, holder: Hashable, amount: int) -> None:
        balance = self.balances[(token_id, holder)]
        if amount > balance:
            raise ValueError(f"burn amount exceeds balance: {amount} > {balance}")
        self.balances[(token_id, holder)] = balance - amount
        self.supply[token_id] -= amount

    def total_supply(self, token_id: Hashable) -> int:
        return self.supply[token_id]

    def balance_of(self, token_id: Hashable, holder: Hashable) -> int:
        return self.balances[(token_id, holder)]


class InMemoryReserveLedger(ReserveCollaborator):
    """Reserve asset balances; the pool's custody is POOL_ACCOUNT."""

    def __init__(self, pool_account: Hashable = POOL_ACCOUNT):
        self.pool_account = pool_account
        self.balances: Dict[Tuple[Hashable, Hashable], int] = defaultdict(int)

    def fund(self, asset_id: Hashable, account: Hashable, amount: int) -> None:
        self.balances[(asset_id, account)] += amount

    def balance_of(self, asset_id: Hashable, account: Hashable) -> int:
        return self.balances[(asset_id, account)]

    def pool_balance(self, asset_id: Hashable) -> int:
        return self.balances[(asset_id, self.pool_account)]

    def _move(self, asset_id: Hashable, sender: Hashable, receiver: Hashable, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"negative transfer amount: {amount}")
        balance = self.balances[(asset_id, sender)]
        if amount > balance:
            raise ValueError(f"transfer amount exceeds balance: {amount} > {balance}")
        self.balances[(asset_id, sender)] = balance - amount
        self.balances[(asset_id, receiver)] += amount

    def transfer_in(self, asset_id: Hashable, sender: Hashable, amount: int) -> None:
        self._move(asset_id, sender, self.pool_account, amount)

    def transfer_out(self, asset_id: Hashable, receiver: Hashable, amount: int) -> None:
        self._move(asset_id, self.pool_account, receiver, amount)


@dataclass
class AssetDescriptor:
    """What an asset reports about itself."""
    standard: str = "fungible"
    decimals: int = 18
    total_supply: int = 0
    interfaces: Tuple[str, ...] = ("fungible",)


class InMemoryAssetRegistry(AssetProbe):
    """AssetProbe over registered descriptors. Unknown assets raise LookupError."""

    def __init__(self):
        self.assets: Dict[Hashable, AssetDescriptor] = {}

    def register(self, asset_id: Hashable, descriptor: AssetDescriptor = None) -> AssetDescriptor:
        descriptor = descriptor or AssetDescriptor()
        self.assets[asset_id] = descriptor
        return descriptor

    def register_fungible(self, asset_id: Hashable, decimals: int = 18, total_supply: int = 0) -> AssetDescriptor:
        return self.register(asset_id, AssetDescriptor(
            standard="fungible",
            decimals=decimals,
            total_supply=total_supply,
            interfaces=("fungible",),
        ))

    def register_semi_fungible(self, asset_id: Hashable) -> AssetDescriptor:
        return self.register(asset_id, AssetDescriptor(
            standard="semi-fungible",
            decimals=0,
            interfaces=("semi-fungible",),
        ))

    def _lookup(self, asset_id: Hashable) -> AssetDescriptor:
        try:
            return self.assets[asset_id]
        except KeyError:
            raise LookupError(f"unknown asset {asset_id!r}") from None

    def token_standard(self, asset_id: Hashable) -> str:
        return self._lookup(asset_id).standard

    def supports_interface(self, asset_id: Hashable, interface: str) -> bool:
        return interface in self._lookup(asset_id).interfaces

    def decimals(self, asset_id: Hashable) -> int:
        return self._lookup(asset_id).decimals

    def total_supply(self, asset_id: Hashable) -> int:
        return self._lookup(asset_id).total_supply

    def balance_of(self, asset_id: Hashable, holder: Hashable) -> int:
        self._lookup(asset_id)
        return 0

    def balance_of_batch(
        self,
        asset_id: Hashable,
        holders: Sequence[Hashable],
        ids: Sequence[int]
    ) -> List[int]:
        self._lookup(asset_id)
        return [0 for _ in holders]
