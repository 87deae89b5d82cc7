"""Royalty split and claimable royalty balances."""

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Tuple

from ..errors import InvalidRoyalty, NothingToClaim
from .intmath import BPS_DENOMINATOR, add_u256, apply_bps, check_u256


@dataclass(frozen=True)
class RoyaltySplit:
    """Gross reserve movement split into the fee and the remainder."""
    gross: int
    royalty: int
    net: int  # Mint: net to pool, Burn: net to user


class RoyaltyCalculator:
    """Basis-point royalty math. Rounding always floors the royalty."""

    @staticmethod
    def validate_bps(bps: Any, name: str = "royalty_bps", max_bps: int = BPS_DENOMINATOR) -> int:
        if isinstance(bps, bool) or not isinstance(bps, int):
            raise InvalidRoyalty(f"{name} must be an integer, got {bps!r}")
        if bps < 0 or bps > min(max_bps, BPS_DENOMINATOR):
            raise InvalidRoyalty(f"{name}={bps} outside 0..{min(max_bps, BPS_DENOMINATOR)}")
        return bps

    @staticmethod
    def _split(gross: int, bps: int) -> RoyaltySplit:
        check_u256(gross, "gross")
        RoyaltyCalculator.validate_bps(bps)
        royalty = apply_bps(gross, bps)
        return RoyaltySplit(gross=gross, royalty=royalty, net=gross - royalty)

    @staticmethod
    def split_mint(gross: int, mint_royalty_bps: int) -> RoyaltySplit:
        """Caller pays gross; the pool keeps net; royalty goes to the creator."""
        return RoyaltyCalculator._split(gross, mint_royalty_bps)

    @staticmethod
    def split_burn(gross: int, burn_royalty_bps: int) -> RoyaltySplit:
        """Pool releases gross; the user receives net; royalty stays in the pool."""
        return RoyaltyCalculator._split(gross, burn_royalty_bps)


@dataclass
class RoyaltyBalance:
    """Royalty for one (recipient, asset).

    `pending` belongs to mints whose collaborator calls are still running;
    it becomes claimable only once the mint completes.
    """
    claimable: int = 0
    claimed: int = 0
    pending: int = 0


@dataclass
class RoyaltyBook:
    """Royalty balances keyed by (recipient, reserve asset)."""
    balances: Dict[Tuple[Hashable, Hashable], RoyaltyBalance] = field(default_factory=dict)

    def credit(self, recipient: Hashable, asset_id: Hashable, amount: int) -> None:
        if amount == 0:
            return
        balance = self.balances.setdefault((recipient, asset_id), RoyaltyBalance())
        balance.claimable = add_u256(balance.claimable, amount)

    def hold(self, recipient: Hashable, asset_id: Hashable, amount: int) -> None:
        """Book an in-flight mint royalty that cannot be claimed yet."""
        if amount == 0:
            return
        balance = self.balances.setdefault((recipient, asset_id), RoyaltyBalance())
        balance.pending = add_u256(balance.pending, amount)

    def settle(self, recipient: Hashable, asset_id: Hashable, amount: int) -> None:
        """Make a held royalty claimable."""
        if amount == 0:
            return
        self.release(recipient, asset_id, amount)
        self.credit(recipient, asset_id, amount)

    def release(self, recipient: Hashable, asset_id: Hashable, amount: int) -> None:
        """Drop a held royalty after its mint failed."""
        if amount == 0:
            return
        balance = self.balances[(recipient, asset_id)]
        if amount > balance.pending:
            raise ValueError(f"release {amount} exceeds pending {balance.pending}")
        balance.pending -= amount

    def info(self, recipient: Hashable, asset_id: Hashable) -> Tuple[int, int]:
        """Return (claimable, claimed)."""
        balance = self.balances.get((recipient, asset_id))
        if balance is None:
            return 0, 0
        return balance.claimable, balance.claimed

    def take(self, recipient: Hashable, asset_id: Hashable) -> int:
        """Move the whole claimable balance to claimed and return it."""
        balance = self.balances.get((recipient, asset_id))
        if balance is None or balance.claimable == 0:
            raise NothingToClaim(f"{recipient!r} has nothing to claim in {asset_id!r}")
        amount = balance.claimable
        balance.claimable = 0
        balance.claimed = add_u256(balance.claimed, amount)
        return amount

    def restore_claim(self, recipient: Hashable, asset_id: Hashable, amount: int) -> None:
        """Undo take() after a failed payout."""
        balance = self.balances[(recipient, asset_id)]
        balance.claimed -= amount
        balance.claimable += amount

    def total_claimable(self, asset_id: Hashable) -> int:
        return sum(b.claimable for (_, asset), b in self.balances.items() if asset == asset_id)
