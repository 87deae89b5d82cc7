"""Export functionality for DataFrames, CSV and JSON."""

import json
from dataclasses import asdict

import pandas as pd

from ..engine.ledger import Bond
from ..simulation.runner import SimulationResult


def steps_frame(bond: Bond) -> pd.DataFrame:
    """One row per step: supply range covered, price and full-step reserve."""
    data = []
    range_from = 0
    for i, step in enumerate(bond.steps):
        data.append({
            'step': i,
            'range_from': range_from,
            'range_to': step.range_to,
            'units': step.range_to - range_from,
            'price': step.price,
            'step_reserve': (step.range_to - range_from) * step.price // bond.price_unit,
        })
        range_from = step.range_to
    return pd.DataFrame(data)


def bonds_frame(orchestrator) -> pd.DataFrame:
    """One row per bond with its current supply, reserve and price."""
    data = []
    for bond in orchestrator.ledger:
        data.append({
            'bond_id': bond.bond_id,
            'symbol': bond.symbol,
            'name': bond.name,
            'creator': bond.creator,
            'reserve_asset_id': bond.reserve_asset_id,
            'steps': len(bond.steps),
            'max_supply': bond.max_supply,
            'current_supply': bond.current_supply,
            'reserve_balance': bond.reserve_balance,
            'current_price': orchestrator.current_price(bond.bond_id),
            'mint_royalty_bps': bond.mint_royalty_bps,
            'burn_royalty_bps': bond.burn_royalty_bps,
            'created_at': bond.created_at,
        })
    return pd.DataFrame(data)


def events_frame(orchestrator) -> pd.DataFrame:
    """All emitted events in order; columns absent from an event are NaN."""
    return pd.DataFrame(orchestrator.events.as_records())


def history_frame(orchestrator, bond_id: int) -> pd.DataFrame:
    """Committed mints and burns for one bond, oldest first."""
    return pd.DataFrame(
        [asdict(entry) for entry in orchestrator.history(bond_id)],
        columns=['kind', 'amount', 'gross_reserve', 'net_reserve', 'supply_after', 'reserve_after']
    )


def trades_frame(result: SimulationResult) -> pd.DataFrame:
    return pd.DataFrame([asdict(t) for t in result.trades])


def export_csv(result: SimulationResult, filepath: str):
    """Export simulated trades to CSV."""
    df = trades_frame(result)
    df.to_csv(filepath, index=False)


def export_json(result: SimulationResult, filepath: str):
    """Export simulation results to JSON."""
    bond = result.final_bond
    export_data = {
        'config': result.config.to_dict(),
        'config_hash': result.config.compute_hash(),
        'bond': {
            'bond_id': bond.bond_id,
            'symbol': bond.symbol,
            'max_supply': bond.max_supply,
            'current_supply': bond.current_supply,
            'reserve_balance': bond.reserve_balance,
            'steps': [[s.range_to, s.price] for s in bond.steps],
        },
        'trades': [asdict(t) for t in result.trades],
        'outcome_counts': result.outcome_counts,
        'invariant_errors': result.invariant_errors,
        'warnings': [asdict(w) for w in result.final_warnings],
    }

    with open(filepath, 'w') as f:
        json.dump(export_data, f, indent=2, default=str)
