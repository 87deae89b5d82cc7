"""Interfaces of the external systems the bonding engine drives."""

from abc import ABC, abstractmethod
from typing import Hashable, List, Sequence


class TokenCollaborator(ABC):
    """Holds balances and total supply of the bonded tokens (token id = bond id)."""

    @abstractmethod
    def mint_to(self, token_id: Hashable, receiver: Hashable, amount: int) -> None:
        pass

    @abstractmethod
    def burn_from(self, token_id: Hashable, holder: Hashable, amount: int) -> None:
        pass

    @abstractmethod
    def total_supply(self, token_id: Hashable) -> int:
        pass


class ReserveCollaborator(ABC):
    """Moves reserve assets between accounts and the pool's custody.

    Each call either moves exactly `amount` or raises without moving anything.
    """

    @abstractmethod
    def transfer_in(self, asset_id: Hashable, sender: Hashable, amount: int) -> None:
        pass

    @abstractmethod
    def transfer_out(self, asset_id: Hashable, receiver: Hashable, amount: int) -> None:
        pass


class AssetProbe(ABC):
    """Introspection calls used to decide whether an asset can be a reserve.

    Implementations talk to untrusted assets: any call may raise, hang or
    return a value of the wrong type. AssetValidator guards every call.
    """

    @abstractmethod
    def token_standard(self, asset_id: Hashable) -> str:
        pass

    @abstractmethod
    def supports_interface(self, asset_id: Hashable, interface: str) -> bool:
        pass

    @abstractmethod
    def decimals(self, asset_id: Hashable) -> int:
        pass

    @abstractmethod
    def total_supply(self, asset_id: Hashable) -> int:
        pass

    @abstractmethod
    def balance_of(self, asset_id: Hashable, holder: Hashable) -> int:
        pass

    @abstractmethod
    def balance_of_batch(
        self,
        asset_id: Hashable,
        holders: Sequence[Hashable],
        ids: Sequence[int]
    ) -> List[int]:
        pass
