"""Collaborator interfaces and in-memory implementations."""

from .interfaces import AssetProbe, ReserveCollaborator, TokenCollaborator
from .memory import (
    POOL_ACCOUNT,
    AssetDescriptor,
    InMemoryAssetRegistry,
    InMemoryReserveLedger,
    InMemoryTokenLedger,
)

__all__ = [
    "AssetProbe",
    "ReserveCollaborator",
    "TokenCollaborator",
    "POOL_ACCOUNT",
    "AssetDescriptor",
    "InMemoryAssetRegistry",
    "InMemoryReserveLedger",
    "InMemoryTokenLedger",
]
