"""Error taxonomy for bond creation, pricing and mint/burn transitions.

Every error is local and non-retryable: repeating a call with identical
inputs fails identically. A raised error always means durable state was
left untouched.
"""

from typing import Optional


class BondError(Exception):
    """Base class for all bonding engine failures."""


class InvalidSchedule(BondError, ValueError):
    """Malformed step table or supply cap."""

    def __init__(self, reason: str, details: Optional[str] = None):
        self.reason = reason
        self.details = details
        message = reason if details is None else f"{reason}: {details}"
        super().__init__(message)


class InvalidRoyalty(BondError, ValueError):
    """Royalty basis points outside the allowed range."""


class InvalidReserveAsset(BondError, ValueError):
    """Reserve asset failed token-type validation."""

    def __init__(self, asset_id, reason: str, details: Optional[str] = None):
        self.asset_id = asset_id
        self.reason = reason
        self.details = details
        message = f"{asset_id!r} rejected ({reason})"
        if details:
            message += f": {details}"
        super().__init__(message)


class InsufficientFee(BondError, ValueError):
    """Creation fee paid is below the configured fee."""


class InvalidAmount(BondError, ValueError):
    """Amount is negative or not an integer."""


class SymbolAlreadyExists(BondError, ValueError):
    """Another bond already uses this symbol."""


class SupplyExceeded(BondError):
    """Mint would push supply past max_supply."""


class InsufficientSupply(BondError):
    """Burn amount exceeds current supply."""


class InsufficientReserve(BondError):
    """Burn payout exceeds the bond's reserve balance."""


class SlippageExceeded(BondError):
    """Price moved past the caller's bound."""

    def __init__(self, expected: int, limit: int):
        self.expected = expected
        self.limit = limit
        super().__init__(f"expected {expected}, limit {limit}")


class ArithmeticOverflow(BondError, ArithmeticError):
    """A checked integer operation left its declared width."""


class UnknownBond(BondError, KeyError):
    """No bond is registered under the given id."""

    def __str__(self):
        return f"unknown bond: {self.args[0]!r}"


class NothingToClaim(BondError):
    """Recipient has no claimable royalty for the asset."""


class ReentrantCall(BondError, RuntimeError):
    """A transition on a bond was entered while one is already in progress."""


class CollaboratorError(BondError):
    """A token or reserve collaborator failed; the transition was rolled back."""

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")
