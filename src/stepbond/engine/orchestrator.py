"""Bond Orchestrator - Public create/mint/burn operations.

Every transition follows the same order:
1. Checks: amounts, supply cap, pricing, royalty split, slippage bound
2. Effects: ledger committed and the mint royalty held under the bond's guard
3. Interactions: reserve and token collaborators, compensated in reverse
   and rolled back if any of them fails
4. The held royalty becomes claimable and the event is emitted, still
   under the guard so events follow ledger order
"""

import logging
import threading
from bisect import insort
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from ..collaborators.interfaces import AssetProbe, ReserveCollaborator, TokenCollaborator
from ..config.schema import Config
from ..errors import (
    CollaboratorError,
    InsufficientFee,
    InsufficientSupply,
    InvalidSchedule,
    SlippageExceeded,
    SupplyExceeded,
    SymbolAlreadyExists,
)
from ..events import BondCreated, BondCreatorUpdated, Burned, EventLog, Minted, RoyaltyClaimed
from ..validation.asset_check import AssetValidator
from .intmath import require_int
from .ledger import Bond, BondLedger, LedgerEntry
from .pricing import PricingEngine
from .royalty import RoyaltyBook, RoyaltyCalculator
from .schedule import BondStep, steps_from_lists, validate_schedule

logger = logging.getLogger(__name__)

# (label, action, compensation)
Interaction = Tuple[str, Callable[[], None], Callable[[], None]]


@dataclass(frozen=True)
class MintQuote:
    """What a mint of `amount` would cost right now."""
    amount: int
    gross: int  # Charged to the caller
    royalty: int  # Credited to the creator
    net_to_pool: int  # Added to the bond reserve


@dataclass(frozen=True)
class BurnQuote:
    """What a burn of `amount` would pay right now."""
    amount: int
    gross: int  # Released from the curve
    royalty: int  # Retained in the bond reserve
    net_to_user: int  # Paid to the receiver


def _clean_label(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class BondOrchestrator:
    """Creates bonds and runs mint/burn transitions against collaborators."""

    def __init__(
        self,
        token: TokenCollaborator,
        reserve: ReserveCollaborator,
        asset_probe: AssetProbe = None,
        config: Config = None,
        asset_validator: AssetValidator = None,
        clock: Callable[[], datetime] = None
    ):
        """
        Initialize orchestrator.

        Args:
            token: TokenCollaborator for the bonded tokens (token id = bond id)
            reserve: ReserveCollaborator moving reserve assets in and out of the pool
            asset_probe: AssetProbe used to validate reserve assets
            config: Protocol configuration (defaults to Config())
            asset_validator: Prebuilt validator, overrides asset_probe
            clock: Returns the creation timestamp (defaults to UTC now)
        """
        self.config = config or Config()
        self.token = token
        self.reserve = reserve
        if asset_validator is None:
            if asset_probe is None:
                raise ValueError("asset_probe or asset_validator is required")
            asset_validator = AssetValidator(asset_probe, self.config.asset_validation)
        self.asset_validator = asset_validator
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.ledger = BondLedger()
        self.royalties = RoyaltyBook()
        self.events = EventLog()
        self.collected_creation_fees = 0

        self._symbols: Dict[str, int] = {}
        self._by_reserve: Dict[Hashable, List[int]] = {}
        self._by_creator: Dict[Hashable, List[int]] = {}
        self._create_lock = threading.Lock()
        self._royalty_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_bond(
        self,
        steps: Optional[Iterable[Any]],
        max_supply: int,
        mint_royalty_bps: int,
        burn_royalty_bps: int,
        reserve_asset_id: Hashable,
        creator: Hashable,
        name: Optional[str] = None,
        symbol: Optional[str] = None,
        fee_paid: int = 0,
        price_unit: Optional[int] = None,
        ranges: Optional[List[int]] = None,
        prices: Optional[List[int]] = None
    ) -> int:
        """
        Validate parameters and open a new bond with zero supply and reserve.

        Steps may be given directly or as parallel `ranges`/`prices` lists.

        Returns:
            The new bond id

        Raises:
            InvalidRoyalty, InvalidReserveAsset, InvalidSchedule,
            SymbolAlreadyExists, InsufficientFee
        """
        protocol = self.config.protocol
        RoyaltyCalculator.validate_bps(mint_royalty_bps, "mint_royalty_bps", protocol.max_royalty_bps)
        RoyaltyCalculator.validate_bps(burn_royalty_bps, "burn_royalty_bps", protocol.max_royalty_bps)

        self.asset_validator.validate(reserve_asset_id)

        if steps is None:
            steps = steps_from_lists(ranges or [], prices or [])
        schedule = validate_schedule(steps, max_supply, protocol.max_steps)

        if price_unit is None:
            price_unit = protocol.price_unit
        if isinstance(price_unit, bool) or not isinstance(price_unit, int) or price_unit <= 0:
            raise InvalidSchedule("INVALID_PRICE_UNIT", f"price_unit={price_unit!r}")

        name = _clean_label(name)
        symbol = _clean_label(symbol)
        fee_paid = require_int(fee_paid, "fee_paid")

        with self._create_lock:
            if symbol is not None and symbol in self._symbols:
                raise SymbolAlreadyExists(symbol)
            if fee_paid < protocol.creation_fee:
                raise InsufficientFee(f"paid {fee_paid}, creation fee is {protocol.creation_fee}")

            bond = Bond(
                bond_id=self.ledger.next_id(),
                creator=creator,
                mint_royalty_bps=mint_royalty_bps,
                burn_royalty_bps=burn_royalty_bps,
                reserve_asset_id=reserve_asset_id,
                max_supply=max_supply,
                steps=schedule,
                created_at=self.clock(),
                price_unit=price_unit,
                name=name,
                symbol=symbol,
            )
            self.ledger.add(bond)
            self.collected_creation_fees += fee_paid
            if symbol is not None:
                self._symbols[symbol] = bond.bond_id
            self._by_reserve.setdefault(reserve_asset_id, []).append(bond.bond_id)
            self._by_creator.setdefault(creator, []).append(bond.bond_id)

        logger.info(
            "Bond %d created by %r: %d steps, max_supply=%d, reserve=%r",
            bond.bond_id, creator, len(schedule), max_supply, reserve_asset_id
        )
        self.events.emit(BondCreated(
            bond_id=bond.bond_id,
            creator=creator,
            reserve_asset_id=reserve_asset_id,
            max_supply=max_supply,
            symbol=symbol,
        ))
        return bond.bond_id

    def update_bond_creator(self, bond_id: int, creator: Hashable) -> Bond:
        """
        Send the bond's future mint royalties to `creator`.

        Royalty already credited stays claimable by the previous creator.
        """
        with self.ledger.transition(bond_id):
            previous = self.ledger.get(bond_id).creator
            updated = self.ledger.apply_creator(bond_id, creator)
            if creator != previous:
                with self._create_lock:
                    self._by_creator[previous].remove(bond_id)
                    insort(self._by_creator.setdefault(creator, []), bond_id)

            logger.info("Bond %d creator changed from %r to %r", bond_id, previous, creator)
            self.events.emit(BondCreatorUpdated(bond_id=bond_id, creator=creator))
        return updated

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    def _quote_mint(self, bond: Bond, amount: int) -> MintQuote:
        if bond.current_supply + amount > bond.max_supply:
            raise SupplyExceeded(
                f"bond {bond.bond_id}: supply {bond.current_supply} + {amount} > {bond.max_supply}"
            )
        gross = PricingEngine.cost_to_mint(bond.steps, bond.current_supply, amount, bond.price_unit)
        split = RoyaltyCalculator.split_mint(gross, bond.mint_royalty_bps)
        return MintQuote(amount=amount, gross=gross, royalty=split.royalty, net_to_pool=split.net)

    def _quote_burn(self, bond: Bond, amount: int) -> BurnQuote:
        if amount > bond.current_supply:
            raise InsufficientSupply(
                f"bond {bond.bond_id}: burning {amount} with supply {bond.current_supply}"
            )
        gross = PricingEngine.refund_for_burn(bond.steps, bond.current_supply, amount, bond.price_unit)
        split = RoyaltyCalculator.split_burn(gross, bond.burn_royalty_bps)
        return BurnQuote(amount=amount, gross=gross, royalty=split.royalty, net_to_user=split.net)

    def quote_mint(self, bond_id: int, amount: int) -> MintQuote:
        """Cost of minting `amount` at the current supply. Does not mutate state."""
        require_int(amount)
        return self._quote_mint(self.ledger.get(bond_id), amount)

    def quote_burn(self, bond_id: int, amount: int) -> BurnQuote:
        """Refund for burning `amount` at the current supply. Does not mutate state."""
        require_int(amount)
        return self._quote_burn(self.ledger.get(bond_id), amount)

    def tokens_for_reserve(self, bond_id: int, reserve_amount: int) -> int:
        """Largest mint amount whose gross cost fits in `reserve_amount`."""
        bond = self.ledger.get(bond_id)
        return PricingEngine.tokens_for_reserve(
            bond.steps, bond.current_supply, reserve_amount, bond.price_unit
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def mint(
        self,
        bond_id: int,
        amount: int,
        max_reserve_amount: int,
        receiver: Hashable,
        caller: Hashable = None
    ) -> int:
        """
        Mint `amount` units to `receiver`, paid by `caller` (defaults to receiver).

        Returns:
            Gross reserve charged to the caller (0 for a zero amount)

        Raises:
            UnknownBond, InvalidAmount, SupplyExceeded, SlippageExceeded,
            ArithmeticOverflow, ReentrantCall, CollaboratorError
        """
        require_int(amount)
        require_int(max_reserve_amount, "max_reserve_amount")
        payer = receiver if caller is None else caller

        with self.ledger.transition(bond_id):
            bond = self.ledger.get(bond_id)
            if amount == 0:
                return 0

            quote = self._quote_mint(bond, amount)
            if quote.gross > max_reserve_amount:
                raise SlippageExceeded(quote.gross, max_reserve_amount)

            asset = bond.reserve_asset_id
            snapshot = self.ledger.snapshot(bond_id)
            held = False
            try:
                updated = self.ledger.apply_mint(bond_id, amount, quote.gross, quote.net_to_pool)
                # Held royalty stays unclaimable until every collaborator call succeeds
                with self._royalty_lock:
                    self.royalties.hold(bond.creator, asset, quote.royalty)
                held = True
                self._interact([
                    ("transfer_in",
                     lambda: self.reserve.transfer_in(asset, payer, quote.gross),
                     lambda: self.reserve.transfer_out(asset, payer, quote.gross)),
                    ("mint_to",
                     lambda: self.token.mint_to(bond_id, receiver, amount),
                     lambda: self.token.burn_from(bond_id, receiver, amount)),
                ])
            except Exception:
                self.ledger.restore(snapshot)
                if held:
                    with self._royalty_lock:
                        self.royalties.release(bond.creator, asset, quote.royalty)
                raise

            with self._royalty_lock:
                self.royalties.settle(bond.creator, asset, quote.royalty)

            logger.info(
                "Bond %d mint: %d units to %r for %d (royalty %d), supply=%d reserve=%d",
                bond_id, amount, receiver, quote.gross, quote.royalty,
                updated.current_supply, updated.reserve_balance
            )
            self.events.emit(Minted(
                bond_id=bond_id,
                receiver=receiver,
                amount=amount,
                gross_reserve=quote.gross,
                royalty=quote.royalty,
                supply_after=updated.current_supply,
                reserve_after=updated.reserve_balance,
            ))
        return quote.gross

    def burn(
        self,
        bond_id: int,
        amount: int,
        min_refund: int,
        receiver: Hashable,
        caller: Hashable = None
    ) -> int:
        """
        Burn `amount` units held by `caller` (defaults to receiver) and pay `receiver`.

        Returns:
            Net reserve paid to the receiver (0 for a zero amount)

        Raises:
            UnknownBond, InvalidAmount, InsufficientSupply, InsufficientReserve,
            SlippageExceeded, ArithmeticOverflow, ReentrantCall, CollaboratorError
        """
        require_int(amount)
        require_int(min_refund, "min_refund")
        holder = receiver if caller is None else caller

        with self.ledger.transition(bond_id):
            bond = self.ledger.get(bond_id)
            if amount == 0:
                return 0

            quote = self._quote_burn(bond, amount)
            if quote.net_to_user < min_refund:
                raise SlippageExceeded(quote.net_to_user, min_refund)

            asset = bond.reserve_asset_id
            snapshot = self.ledger.snapshot(bond_id)
            try:
                updated = self.ledger.apply_burn(bond_id, amount, quote.gross, quote.net_to_user)
                self._interact([
                    ("burn_from",
                     lambda: self.token.burn_from(bond_id, holder, amount),
                     lambda: self.token.mint_to(bond_id, holder, amount)),
                    ("transfer_out",
                     lambda: self.reserve.transfer_out(asset, receiver, quote.net_to_user),
                     lambda: self.reserve.transfer_in(asset, receiver, quote.net_to_user)),
                ])
            except Exception:
                self.ledger.restore(snapshot)
                raise

            logger.info(
                "Bond %d burn: %d units from %r refund %d (royalty %d), supply=%d reserve=%d",
                bond_id, amount, holder, quote.net_to_user, quote.royalty,
                updated.current_supply, updated.reserve_balance
            )
            self.events.emit(Burned(
                bond_id=bond_id,
                receiver=receiver,
                amount=amount,
                gross_reserve=quote.gross,
                royalty=quote.royalty,
                refund=quote.net_to_user,
                supply_after=updated.current_supply,
                reserve_after=updated.reserve_balance,
            ))
        return quote.net_to_user

    def _interact(self, interactions: List[Interaction]) -> None:
        """Run collaborator calls in order; on failure undo completed ones in reverse."""
        done: List[Interaction] = []
        for interaction in interactions:
            label, action, _ = interaction
            try:
                action()
            except Exception as exc:
                logger.warning("Collaborator call %s failed, rolling back: %s", label, exc)
                for undo_label, _, compensate in reversed(done):
                    try:
                        compensate()
                    except Exception:
                        logger.exception("Compensation for %s failed", undo_label)
                raise CollaboratorError(label, exc) from exc
            done.append(interaction)

    # ------------------------------------------------------------------
    # Royalties
    # ------------------------------------------------------------------

    def royalty_info(self, recipient: Hashable, asset_id: Hashable) -> Tuple[int, int]:
        """Return (claimable, claimed) royalty for a recipient in one reserve asset."""
        with self._royalty_lock:
            return self.royalties.info(recipient, asset_id)

    def claim_royalties(self, recipient: Hashable, asset_id: Hashable) -> int:
        """
        Pay out the recipient's whole claimable royalty balance.

        Raises:
            NothingToClaim: If the balance is zero
            CollaboratorError: If the payout fails (balance is restored)
        """
        with self._royalty_lock:
            amount = self.royalties.take(recipient, asset_id)

        # The balance is already moved to claimed; the lock is not held across the payout
        try:
            self.reserve.transfer_out(asset_id, recipient, amount)
        except Exception as exc:
            logger.warning("Royalty payout to %r failed, restoring balance: %s", recipient, exc)
            with self._royalty_lock:
                self.royalties.restore_claim(recipient, asset_id, amount)
            raise CollaboratorError("transfer_out", exc) from exc

        logger.info("Royalty claimed by %r: %d of %r", recipient, amount, asset_id)
        self.events.emit(RoyaltyClaimed(recipient=recipient, asset_id=asset_id, amount=amount))
        return amount

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_bond(self, bond_id: int) -> Bond:
        return self.ledger.get(bond_id)

    def get_steps(self, bond_id: int) -> Tuple[BondStep, ...]:
        return self.ledger.get(bond_id).steps.steps

    def history(self, bond_id: int) -> List[LedgerEntry]:
        return self.ledger.history(bond_id)

    def bond_count(self) -> int:
        return len(self.ledger)

    def exists(self, bond_id: int) -> bool:
        return self.ledger.exists(bond_id)

    def current_price(self, bond_id: int) -> int:
        """Price of the next unit to be minted on this bond."""
        bond = self.ledger.get(bond_id)
        return PricingEngine.current_price(bond.steps, bond.current_supply)

    def bond_ids_by_reserve_asset(self, asset_id: Hashable) -> List[int]:
        return list(self._by_reserve.get(asset_id, []))

    def bond_ids_by_creator(self, creator: Hashable) -> List[int]:
        return list(self._by_creator.get(creator, []))

    def bond_id_by_symbol(self, symbol: str) -> Optional[int]:
        return self._symbols.get(symbol)
