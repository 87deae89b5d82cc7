"""Seeded trade simulation against a bond."""

from .runner import SimulationResult, TradeRecord, TradeSimulation

__all__ = ["SimulationResult", "TradeRecord", "TradeSimulation"]
