"""Unit tests for the bond ledger.

Tests verify:
- Mint/burn transitions keep the reserve identity and supply bound
- Failed transitions leave the bond untouched
- Snapshot/restore and the per-bond transition guard
"""

import pytest
import sys
import os
from dataclasses import replace
from datetime import datetime, timezone

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from stepbond.engine.ledger import Bond, BondLedger, LedgerEntry
from stepbond.engine.schedule import validate_schedule
from stepbond.errors import (
    InsufficientReserve,
    InsufficientSupply,
    ReentrantCall,
    SupplyExceeded,
    UnknownBond,
)


def make_ledger(max_supply: int = 300) -> BondLedger:
    ledger = BondLedger()
    ledger.add(Bond(
        bond_id=0,
        creator="carol",
        mint_royalty_bps=0,
        burn_royalty_bps=0,
        reserve_asset_id="USDC",
        max_supply=max_supply,
        steps=validate_schedule([(100, 1), (max_supply, 2)], max_supply),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    ))
    return ledger


class TestBondRecord:
    """Tests for the Bond conservation check."""

    def test_fresh_bond_is_valid(self):
        bond = make_ledger().get(0)
        assert bond.validate_conservation() == (True, None)
        assert bond.current_supply == 0
        assert bond.reserve_balance == 0

    def test_detects_reserve_mismatch(self):
        bond = replace(make_ledger().get(0), reserve_balance=5)
        is_valid, msg = bond.validate_conservation()
        assert not is_valid
        assert "Reserve violation" in msg

    def test_detects_supply_over_cap(self):
        bond = replace(make_ledger().get(0), current_supply=301)
        is_valid, msg = bond.validate_conservation()
        assert not is_valid
        assert "Supply violation" in msg


class TestArena:
    """Tests for id allocation and lookup."""

    def test_ids_are_sequential(self):
        ledger = make_ledger()
        assert len(ledger) == 1
        assert ledger.next_id() == 1

    def test_add_rejects_wrong_slot(self):
        ledger = make_ledger()
        bond = replace(ledger.get(0), bond_id=5)
        with pytest.raises(ValueError):
            ledger.add(bond)

    def test_unknown_bond(self):
        ledger = make_ledger()
        for bad in (1, -1, "0", True):
            with pytest.raises(UnknownBond):
                ledger.get(bad)
            assert not ledger.exists(bad)

    def test_unknown_bond_is_key_error(self):
        with pytest.raises(KeyError):
            BondLedger().get(0)


class TestTransitions:
    """Tests for apply_mint and apply_burn."""

    def test_mint_updates_all_fields(self):
        ledger = make_ledger()
        bond = ledger.apply_mint(0, 110, 120, 120)
        assert bond.current_supply == 110
        assert bond.reserve_balance == 120
        assert bond.net_deposited == 120
        assert ledger.get(0) is bond
        assert ledger.history(0) == [LedgerEntry("mint", 110, 120, 120, 110, 120)]

    def test_mint_past_cap(self):
        ledger = make_ledger()
        ledger.apply_mint(0, 300, 500, 500)
        before = ledger.get(0)
        with pytest.raises(SupplyExceeded):
            ledger.apply_mint(0, 1, 2, 2)
        assert ledger.get(0) is before

    def test_burn_updates_all_fields(self):
        ledger = make_ledger()
        ledger.apply_mint(0, 110, 120, 120)
        bond = ledger.apply_burn(0, 20, 30, 30)
        assert bond.current_supply == 90
        assert bond.reserve_balance == 90
        assert bond.net_withdrawn == 30
        assert bond.validate_conservation() == (True, None)

    def test_burn_more_than_supply(self):
        ledger = make_ledger()
        ledger.apply_mint(0, 10, 10, 10)
        with pytest.raises(InsufficientSupply):
            ledger.apply_burn(0, 11, 11, 11)

    def test_burn_more_than_reserve(self):
        ledger = make_ledger()
        ledger.apply_mint(0, 10, 10, 9)
        with pytest.raises(InsufficientReserve):
            ledger.apply_burn(0, 10, 10, 10)
        assert ledger.get(0).current_supply == 10

    def test_supply_can_return_to_zero(self):
        """A fully burned bond stays active and mintable."""
        ledger = make_ledger()
        ledger.apply_mint(0, 50, 50, 50)
        ledger.apply_burn(0, 50, 50, 50)
        assert ledger.get(0).current_supply == 0
        ledger.apply_mint(0, 5, 5, 5)
        assert ledger.get(0).current_supply == 5


class TestSnapshotAndGuard:
    """Tests for rollback support and the transition guard."""

    def test_restore_discards_transition(self):
        ledger = make_ledger()
        ledger.apply_mint(0, 10, 10, 10)
        snapshot = ledger.snapshot(0)
        ledger.apply_mint(0, 10, 10, 10)
        ledger.restore(snapshot)
        assert ledger.get(0).current_supply == 10
        assert len(ledger.history(0)) == 1

    def test_reentry_rejected(self):
        ledger = make_ledger()
        with ledger.transition(0):
            with pytest.raises(ReentrantCall):
                with ledger.transition(0):
                    pass

    def test_guard_released_after_exit(self):
        ledger = make_ledger()
        with ledger.transition(0):
            pass
        with ledger.transition(0):
            pass

    def test_guard_released_after_error(self):
        ledger = make_ledger()
        with pytest.raises(RuntimeError):
            with ledger.transition(0):
                raise RuntimeError("boom")
        with ledger.transition(0):
            pass

    def test_transition_on_unknown_bond(self):
        with pytest.raises(UnknownBond):
            with make_ledger().transition(3):
                pass
