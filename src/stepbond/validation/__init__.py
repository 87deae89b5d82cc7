"""Reserve asset validation and bond sanity checks."""

from .asset_check import AssetValidator
from .sanity_checks import SanityChecker, ValidationWarning, validate_orchestrator

__all__ = [
    "AssetValidator",
    "SanityChecker",
    "ValidationWarning",
    "validate_orchestrator"
]
