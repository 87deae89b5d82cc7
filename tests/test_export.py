"""Tests for DataFrame export, file export and charts."""

import json

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pandas as pd
import plotly.graph_objects as go

from stepbond.collaborators.memory import (
    InMemoryAssetRegistry,
    InMemoryReserveLedger,
    InMemoryTokenLedger,
)
from stepbond.config import config_from_dict
from stepbond.engine.orchestrator import BondOrchestrator
from stepbond.reporting.charts import create_price_curve_chart, create_reserve_chart
from stepbond.reporting.export import (
    bonds_frame,
    events_frame,
    export_csv,
    export_json,
    history_frame,
    steps_frame,
    trades_frame,
)
from stepbond.simulation.runner import TradeSimulation


def make_orchestrator():
    registry = InMemoryAssetRegistry()
    registry.register_fungible("USDC")
    reserve = InMemoryReserveLedger()
    reserve.fund("USDC", "alice", 10**6)
    orch = BondOrchestrator(
        InMemoryTokenLedger(),
        reserve,
        asset_probe=registry,
        config=config_from_dict({"simulation": {"num_trades": 30, "num_traders": 3}}),
    )
    bond_id = orch.create_bond([(100, 1), (300, 2)], 300, 1000, 0, "USDC", "carol", symbol="STEP")
    return orch, bond_id


class TestFrames:
    """Tests for pandas views of engine state."""

    def test_steps_frame(self):
        orch, bond_id = make_orchestrator()
        df = steps_frame(orch.get_bond(bond_id))
        assert list(df['range_from']) == [0, 100]
        assert list(df['range_to']) == [100, 300]
        assert list(df['units']) == [100, 200]
        assert list(df['step_reserve']) == [100, 400]

    def test_bonds_frame(self):
        orch, bond_id = make_orchestrator()
        orch.mint(bond_id, 110, 120, "alice")
        df = bonds_frame(orch)
        assert len(df) == 1
        row = df.iloc[0]
        assert row['symbol'] == "STEP"
        assert row['current_supply'] == 110
        assert row['reserve_balance'] == 108
        assert row['current_price'] == 2

    def test_events_frame(self):
        orch, bond_id = make_orchestrator()
        orch.mint(bond_id, 10, 10, "alice")
        orch.burn(bond_id, 5, 0, "alice")
        df = events_frame(orch)
        assert list(df['event']) == ["BondCreated", "Minted", "Burned"]

    def test_history_frame(self):
        orch, bond_id = make_orchestrator()
        assert list(history_frame(orch, bond_id).columns) == [
            'kind', 'amount', 'gross_reserve', 'net_reserve', 'supply_after', 'reserve_after'
        ]
        orch.mint(bond_id, 10, 10, "alice")
        df = history_frame(orch, bond_id)
        assert list(df['kind']) == ["mint"]
        assert df.iloc[0]['net_reserve'] == 9


class TestFileExport:
    """Tests for CSV and JSON export of simulation results."""

    def test_export_csv(self, tmp_path):
        orch, bond_id = make_orchestrator()
        result = TradeSimulation(orch, bond_id).run(random_seed=1)
        path = tmp_path / "trades.csv"
        export_csv(result, str(path))
        df = pd.read_csv(path)
        assert len(df) == 30
        assert list(df.columns) == list(trades_frame(result).columns)

    def test_export_json(self, tmp_path):
        orch, bond_id = make_orchestrator()
        result = TradeSimulation(orch, bond_id).run(random_seed=1)
        path = tmp_path / "result.json"
        export_json(result, str(path))
        with open(path) as f:
            data = json.load(f)
        assert data['config_hash'] == result.config.compute_hash()
        assert data['bond']['steps'] == [[100, 1], [300, 2]]
        assert len(data['trades']) == 30
        assert data['invariant_errors'] == []


class TestCharts:
    """Tests for plotly figures."""

    def test_price_curve_chart(self):
        orch, bond_id = make_orchestrator()
        fig = create_price_curve_chart(orch.get_bond(bond_id))
        assert isinstance(fig, go.Figure)
        assert list(fig.data[0].x) == [0, 100, 300]
        assert list(fig.data[0].y) == [1, 1, 2]

    def test_reserve_chart(self):
        orch, bond_id = make_orchestrator()
        result = TradeSimulation(orch, bond_id).run(random_seed=2)
        fig = create_reserve_chart(result.trades)
        assert isinstance(fig, go.Figure)
        assert len(fig.data) >= 2
