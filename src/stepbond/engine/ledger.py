"""Bond Ledger - Durable per-bond state and invariant-preserving transitions."""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Hashable, Iterator, List, Optional, Tuple

from ..errors import (
    InsufficientReserve,
    InsufficientSupply,
    ReentrantCall,
    SupplyExceeded,
    UnknownBond,
)
from .intmath import add_u256, check_u128, require_int, sub_u256
from .schedule import StepSchedule


@dataclass(frozen=True)
class Bond:
    """Bond record. Replaced wholesale on every transition, never edited in place.

    Reserve Identity:
    reserve_balance = net_deposited - net_withdrawn

    Supply Bound:
    0 <= current_supply <= max_supply
    """
    bond_id: int
    creator: Hashable
    mint_royalty_bps: int
    burn_royalty_bps: int
    reserve_asset_id: Hashable
    max_supply: int
    steps: StepSchedule
    created_at: datetime
    price_unit: int = 1
    name: Optional[str] = None
    symbol: Optional[str] = None
    reserve_balance: int = 0
    current_supply: int = 0
    net_deposited: int = 0  # Sum of net reserve added by mints
    net_withdrawn: int = 0  # Sum of net reserve paid out by burns

    def validate_conservation(self) -> Tuple[bool, Optional[str]]:
        """
        Validate reserve identity and supply bound.

        Returns:
            (is_valid, error_message)
        """
        if self.reserve_balance != self.net_deposited - self.net_withdrawn:
            return False, (
                f"Reserve violation on bond {self.bond_id}: "
                f"reserve={self.reserve_balance}, "
                f"deposited={self.net_deposited}, withdrawn={self.net_withdrawn}"
            )
        if not 0 <= self.current_supply <= self.max_supply:
            return False, (
                f"Supply violation on bond {self.bond_id}: "
                f"supply={self.current_supply}, max={self.max_supply}"
            )
        return True, None


@dataclass(frozen=True)
class LedgerEntry:
    """One committed mint or burn, as seen by the ledger."""
    kind: str  # "mint" or "burn"
    amount: int
    gross_reserve: int
    net_reserve: int
    supply_after: int
    reserve_after: int


class BondLedger:
    """Arena of bonds addressed by integer id, with per-bond transition guards."""

    def __init__(self):
        self._bonds: List[Bond] = []
        self._history: Dict[int, List[LedgerEntry]] = {}
        self._locks: Dict[int, threading.RLock] = {}
        self._active: set = set()
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._bonds)

    def __iter__(self) -> Iterator[Bond]:
        return iter(list(self._bonds))

    def next_id(self) -> int:
        return len(self._bonds)

    def add(self, bond: Bond) -> Bond:
        """Append a freshly created bond; its id must be the next arena slot."""
        with self._registry_lock:
            if bond.bond_id != len(self._bonds):
                raise ValueError(f"bond id {bond.bond_id} is not the next slot {len(self._bonds)}")
            self._bonds.append(bond)
            self._history[bond.bond_id] = []
            self._locks[bond.bond_id] = threading.RLock()
        return bond

    def get(self, bond_id: int) -> Bond:
        if isinstance(bond_id, bool) or not isinstance(bond_id, int) or not 0 <= bond_id < len(self._bonds):
            raise UnknownBond(bond_id)
        return self._bonds[bond_id]

    def exists(self, bond_id: int) -> bool:
        try:
            self.get(bond_id)
        except UnknownBond:
            return False
        return True

    def history(self, bond_id: int) -> List[LedgerEntry]:
        self.get(bond_id)
        return list(self._history[bond_id])

    @contextmanager
    def transition(self, bond_id: int):
        """
        Hold the bond's guard for the duration of one transition.

        Other threads block until the transition finishes; re-entering the
        same bond from inside the transition raises ReentrantCall.
        """
        self.get(bond_id)
        lock = self._locks[bond_id]
        with lock:
            if bond_id in self._active:
                raise ReentrantCall(f"bond {bond_id} is already in a transition")
            self._active.add(bond_id)
            try:
                yield
            finally:
                self._active.discard(bond_id)

    def snapshot(self, bond_id: int) -> Tuple[Bond, int]:
        return self.get(bond_id), len(self._history[bond_id])

    def restore(self, snapshot: Tuple[Bond, int]) -> None:
        bond, history_len = snapshot
        self._bonds[bond.bond_id] = bond
        del self._history[bond.bond_id][history_len:]

    def apply_mint(self, bond_id: int, amount: int, gross_reserve: int, net_reserve: int) -> Bond:
        """
        Commit a mint: supply += amount, reserve += net_reserve.

        Raises:
            SupplyExceeded: If supply would pass max_supply
        """
        require_int(amount)
        bond = self.get(bond_id)
        new_supply = bond.current_supply + amount
        if new_supply > bond.max_supply:
            raise SupplyExceeded(
                f"bond {bond_id}: supply {bond.current_supply} + {amount} > {bond.max_supply}"
            )
        updated = replace(
            bond,
            current_supply=check_u128(new_supply, "current_supply"),
            reserve_balance=add_u256(bond.reserve_balance, net_reserve),
            net_deposited=add_u256(bond.net_deposited, net_reserve),
        )
        return self._commit(updated, "mint", amount, gross_reserve, net_reserve)

    def apply_burn(self, bond_id: int, amount: int, gross_reserve: int, net_reserve: int) -> Bond:
        """
        Commit a burn: supply -= amount, reserve -= net_reserve.

        Raises:
            InsufficientSupply: If amount exceeds current supply
            InsufficientReserve: If net_reserve exceeds the reserve balance
        """
        require_int(amount)
        bond = self.get(bond_id)
        if amount > bond.current_supply:
            raise InsufficientSupply(
                f"bond {bond_id}: burning {amount} with supply {bond.current_supply}"
            )
        if net_reserve > bond.reserve_balance:
            raise InsufficientReserve(
                f"bond {bond_id}: paying {net_reserve} from reserve {bond.reserve_balance}"
            )
        updated = replace(
            bond,
            current_supply=bond.current_supply - amount,
            reserve_balance=sub_u256(bond.reserve_balance, net_reserve),
            net_withdrawn=add_u256(bond.net_withdrawn, net_reserve),
        )
        return self._commit(updated, "burn", amount, gross_reserve, net_reserve)

    def apply_creator(self, bond_id: int, creator: Hashable) -> Bond:
        """Point the bond's future mint royalties at a new creator."""
        updated = replace(self.get(bond_id), creator=creator)
        self._bonds[bond_id] = updated
        return updated

    def _commit(self, updated: Bond, kind: str, amount: int, gross: int, net: int) -> Bond:
        is_valid, error_msg = updated.validate_conservation()
        if not is_valid:
            raise ValueError(error_msg)

        self._bonds[updated.bond_id] = updated
        self._history[updated.bond_id].append(LedgerEntry(
            kind=kind,
            amount=amount,
            gross_reserve=gross,
            net_reserve=net,
            supply_after=updated.current_supply,
            reserve_after=updated.reserve_balance,
        ))
        return updated
