"""Pricing, royalty and ledger engines for stepped bonding curves."""

from .ledger import Bond, BondLedger, LedgerEntry
from .orchestrator import BondOrchestrator, BurnQuote, MintQuote
from .pricing import PricingEngine, StepSegment
from .royalty import RoyaltyBook, RoyaltyCalculator, RoyaltySplit
from .schedule import BondStep, StepSchedule, validate_schedule

__all__ = [
    "Bond",
    "BondLedger",
    "LedgerEntry",
    "BondOrchestrator",
    "BurnQuote",
    "MintQuote",
    "PricingEngine",
    "StepSegment",
    "RoyaltyBook",
    "RoyaltyCalculator",
    "RoyaltySplit",
    "BondStep",
    "StepSchedule",
    "validate_schedule",
]
