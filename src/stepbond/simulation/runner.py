"""Trade simulation - Seeded random mints and burns against one bond.

Key Features:
- Traders mint and burn random amounts with slippage bounds taken from quotes
- A share of trades set bounds one unit too tight to exercise rejections
- Sanity checks run after every trade; any error is recorded against it
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from ..config.schema import Config
from ..engine.ledger import Bond
from ..errors import BondError
from ..validation.sanity_checks import SanityChecker, ValidationWarning, validate_orchestrator

logger = logging.getLogger(__name__)


@dataclass
class TradeRecord:
    """Outcome of one simulated trade."""
    index: int
    trader: str
    kind: str  # "mint" or "burn"
    amount: int
    reserve: int  # Gross paid on mint, net refund on burn, 0 on failure
    outcome: str  # "ok" or the error class name
    supply_after: int
    reserve_after: int


@dataclass
class SimulationResult:
    """Complete simulation result."""
    config: Config
    bond_id: int
    trades: List[TradeRecord]
    final_bond: Bond
    invariant_errors: List[str] = field(default_factory=list)
    final_warnings: List[ValidationWarning] = field(default_factory=list)

    @property
    def outcome_counts(self) -> Dict[str, int]:
        return dict(Counter(t.outcome for t in self.trades))


class TradeSimulation:
    """Drive an orchestrator with random trades and check invariants."""

    def __init__(self, orchestrator, bond_id: int, config: Config = None):
        """
        Initialize trade simulation.

        Args:
            orchestrator: BondOrchestrator with in-memory collaborators
                (token must expose balance_of, reserve must expose fund)
            bond_id: Bond to trade against
            config: Simulation configuration (defaults to orchestrator config)
        """
        self.orchestrator = orchestrator
        self.bond_id = bond_id
        self.config = config or orchestrator.config
        self.checker = SanityChecker(orchestrator)

    def run(self, random_seed: Optional[int] = None) -> SimulationResult:
        """
        Run the configured number of trades.

        Args:
            random_seed: Random seed (defaults to config value)

        Returns:
            Simulation result with per-trade records
        """
        settings = self.config.simulation
        seed = settings.random_seed if random_seed is None else random_seed
        rng = np.random.default_rng(seed)

        orch = self.orchestrator
        bond = orch.get_bond(self.bond_id)
        traders = [f"trader-{i}" for i in range(settings.num_traders)]
        for trader in traders:
            orch.reserve.fund(bond.reserve_asset_id, trader, settings.trader_funding)

        max_mint = max(1, int(bond.max_supply * settings.max_trade_fraction))
        trades: List[TradeRecord] = []
        invariant_errors: List[str] = []

        for index in range(settings.num_trades):
            trader = traders[int(rng.integers(len(traders)))]
            holding = orch.token.balance_of(self.bond_id, trader)
            tight = bool(rng.random() < settings.slippage_miss_probability)

            if holding > 0 and rng.random() < settings.burn_probability:
                amount = 1 + int(rng.random() * holding)
                amount = min(amount, holding)
                record = self._burn(index, trader, amount, tight)
            else:
                amount = 1 + int(rng.random() * max_mint)
                record = self._mint(index, trader, amount, tight)
            trades.append(record)

            current = orch.get_bond(self.bond_id)
            for warning in self.checker.check_bond(current) + self.checker.check_custody():
                if warning.severity == "error":
                    invariant_errors.append(f"trade {index}: {warning.message} ({warning.details})")

        result = SimulationResult(
            config=self.config,
            bond_id=self.bond_id,
            trades=trades,
            final_bond=orch.get_bond(self.bond_id),
            invariant_errors=invariant_errors,
            final_warnings=validate_orchestrator(orch),
        )
        logger.info(
            "Simulated %d trades on bond %d: %s",
            len(trades), self.bond_id, result.outcome_counts
        )
        return result

    def _mint(self, index: int, trader: str, amount: int, tight: bool) -> TradeRecord:
        orch = self.orchestrator
        try:
            bound = orch.quote_mint(self.bond_id, amount).gross
        except BondError:
            bound = 0
        if tight and bound > 0:
            bound -= 1

        try:
            paid = orch.mint(self.bond_id, amount, bound, trader)
            outcome = "ok"
        except BondError as exc:
            paid = 0
            outcome = type(exc).__name__
        return self._record(index, trader, "mint", amount, paid, outcome)

    def _burn(self, index: int, trader: str, amount: int, tight: bool) -> TradeRecord:
        orch = self.orchestrator
        bound = orch.quote_burn(self.bond_id, amount).net_to_user
        if tight:
            bound += 1

        try:
            refund = orch.burn(self.bond_id, amount, bound, trader)
            outcome = "ok"
        except BondError as exc:
            refund = 0
            outcome = type(exc).__name__
        return self._record(index, trader, "burn", amount, refund, outcome)

    def _record(self, index: int, trader: str, kind: str, amount: int, reserve: int, outcome: str) -> TradeRecord:
        bond = self.orchestrator.get_bond(self.bond_id)
        return TradeRecord(
            index=index,
            trader=trader,
            kind=kind,
            amount=amount,
            reserve=reserve,
            outcome=outcome,
            supply_after=bond.current_supply,
            reserve_after=bond.reserve_balance,
        )
