"""Outward event records for indexers, plus subscriber fan-out."""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BondCreated:
    bond_id: int
    creator: Hashable
    reserve_asset_id: Hashable
    max_supply: int
    symbol: Optional[str] = None


@dataclass(frozen=True)
class Minted:
    bond_id: int
    receiver: Hashable
    amount: int
    gross_reserve: int
    royalty: int
    supply_after: int
    reserve_after: int


@dataclass(frozen=True)
class Burned:
    bond_id: int
    receiver: Hashable
    amount: int
    gross_reserve: int
    royalty: int
    refund: int
    supply_after: int
    reserve_after: int


@dataclass(frozen=True)
class BondCreatorUpdated:
    bond_id: int
    creator: Hashable


@dataclass(frozen=True)
class RoyaltyClaimed:
    recipient: Hashable
    asset_id: Hashable
    amount: int


class EventLog:
    """Ordered record of committed events plus subscriber fan-out."""

    def __init__(self):
        self.events: List[Any] = []
        self._subscribers: List[Callable[[Any], None]] = []

    def subscribe(self, callback: Callable[[Any], None]) -> None:
        self._subscribers.append(callback)

    def emit(self, event: Any) -> None:
        self.events.append(event)
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception:
                # The transition is already committed; a subscriber cannot undo it
                logger.exception("Event subscriber failed on %s", type(event).__name__)

    def of_type(self, event_type: Type) -> List[Any]:
        return [e for e in self.events if isinstance(e, event_type)]

    def for_bond(self, bond_id: int) -> List[Any]:
        return [e for e in self.events if getattr(e, "bond_id", None) == bond_id]

    def as_records(self) -> List[Dict[str, Any]]:
        """Flatten events to dicts with an `event` name column."""
        return [{"event": type(e).__name__, **asdict(e)} for e in self.events]
