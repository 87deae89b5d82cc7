"""Stepped bonding curve engine: pricing, royalties and reserve accounting."""

from .config import Config, load_config
from .engine import (
    Bond,
    BondOrchestrator,
    BondStep,
    PricingEngine,
    RoyaltyCalculator,
    StepSchedule,
    validate_schedule,
)
from .errors import BondError

__version__ = "0.1.0"

__all__ = [
    "Bond",
    "BondError",
    "BondOrchestrator",
    "BondStep",
    "Config",
    "PricingEngine",
    "RoyaltyCalculator",
    "StepSchedule",
    "load_config",
    "validate_schedule",
]
