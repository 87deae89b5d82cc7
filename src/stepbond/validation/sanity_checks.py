"""Sanity checks over bond state and collaborator balances."""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional

from ..engine.ledger import Bond
from ..engine.pricing import PricingEngine
from ..engine.royalty import RoyaltyCalculator


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "conservation", "supply", "custody"
    message: str
    details: Optional[str] = None


class SanityChecker:
    """Run sanity checks on bonds managed by an orchestrator."""

    def __init__(self, orchestrator):
        """Initialize with the orchestrator whose bonds are checked."""
        self.orchestrator = orchestrator

    def check_bond(self, bond: Bond) -> List[ValidationWarning]:
        """
        Check one bond's invariants and its token supply.

        Args:
            bond: Bond record to check

        Returns:
            List of validation warnings
        """
        warnings = []

        # Reserve identity and supply bound
        is_valid, error_msg = bond.validate_conservation()
        if not is_valid:
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message=f"Bond {bond.bond_id} ledger invariant violated",
                details=error_msg
            ))

        # Ledger supply vs token collaborator supply
        token_supply = self.orchestrator.token.total_supply(bond.bond_id)
        if token_supply != bond.current_supply:
            warnings.append(ValidationWarning(
                severity="error",
                category="supply",
                message=f"Bond {bond.bond_id} supply differs from token supply",
                details=f"Ledger: {bond.current_supply}, token: {token_supply}"
            ))

        # A full burn must be payable; royalty asymmetry can leave the reserve short
        if bond.current_supply > 0:
            gross = PricingEngine.refund_for_burn(
                bond.steps, bond.current_supply, bond.current_supply, bond.price_unit
            )
            payout = RoyaltyCalculator.split_burn(gross, bond.burn_royalty_bps).net
            if payout > bond.reserve_balance:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="solvency",
                    message=f"Bond {bond.bond_id} reserve cannot cover a full burn",
                    details=f"Full-burn payout: {payout}, reserve: {bond.reserve_balance}"
                ))

        return warnings

    def check_custody(self) -> List[ValidationWarning]:
        """
        Check that pool custody equals bond reserves plus claimable royalties.

        Only runs when the reserve collaborator exposes pool_balance().
        """
        warnings = []
        reserve = self.orchestrator.reserve
        if not hasattr(reserve, "pool_balance"):
            return warnings

        expected: Dict[Hashable, int] = defaultdict(int)
        for bond in self.orchestrator.ledger:
            expected[bond.reserve_asset_id] += bond.reserve_balance

        for asset_id, reserves in expected.items():
            owed = reserves + self.orchestrator.royalties.total_claimable(asset_id)
            held = reserve.pool_balance(asset_id)
            if held != owed:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="custody",
                    message=f"Pool custody mismatch for {asset_id!r}",
                    details=f"Held: {held}, reserves + claimable royalties: {owed}"
                ))
        return warnings


def validate_orchestrator(orchestrator) -> List[ValidationWarning]:
    """
    Run all sanity checks across every bond.

    Args:
        orchestrator: BondOrchestrator to check

    Returns:
        List of all validation warnings
    """
    checker = SanityChecker(orchestrator)
    warnings = []

    for bond in orchestrator.ledger:
        warnings.extend(checker.check_bond(bond))

    warnings.extend(checker.check_custody())
    return warnings
