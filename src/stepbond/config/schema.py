"""Pydantic schema for configuration validation."""

import hashlib
import json
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator


class Protocol(BaseModel):
    """Protocol-wide bond parameters."""
    max_steps: int = Field(default=1000, gt=0, description="Maximum steps per bond schedule")
    max_royalty_bps: int = Field(
        default=10000, ge=0, le=10000,
        description="Upper bound for mint and burn royalty basis points"
    )
    creation_fee: int = Field(default=0, ge=0, description="Flat fee charged by create_bond")
    price_unit: int = Field(
        default=1, gt=0,
        description="Supply units each step price is quoted for (e.g. 10**18)"
    )


class AssetValidation(BaseModel):
    """Reserve asset introspection limits."""
    call_timeout_seconds: float = Field(
        default=2.0, gt=0,
        description="Budget for each introspection call before the asset is rejected"
    )
    max_decimals: int = Field(default=255, ge=0, le=255, description="Largest accepted decimals value")
    allowed_standards: List[str] = Field(
        default_factory=lambda: ["fungible", "semi-fungible"],
        description="Token standards accepted as reserve assets"
    )

    @field_validator("allowed_standards")
    @classmethod
    def validate_standards(cls, v):
        """Only the two supported standards may be listed."""
        unknown = set(v) - {"fungible", "semi-fungible"}
        if unknown:
            raise ValueError(f"Unsupported standards: {sorted(unknown)}")
        if not v:
            raise ValueError("allowed_standards must not be empty")
        return v


class Simulation(BaseModel):
    """Random trade simulation parameters."""
    num_trades: int = Field(default=200, gt=0, description="Trades per simulation run")
    num_traders: int = Field(default=5, gt=0, description="Distinct trader accounts")
    random_seed: int = Field(default=42, description="Random seed for reproducibility")
    max_trade_fraction: float = Field(
        default=0.05, gt=0, le=1,
        description="Largest single mint as a fraction of max supply"
    )
    burn_probability: float = Field(default=0.4, ge=0, le=1, description="Chance a trade is a burn")
    slippage_miss_probability: float = Field(
        default=0.1, ge=0, le=1,
        description="Chance a trade sets a bound one unit too tight"
    )
    trader_funding: int = Field(default=10**30, gt=0, description="Reserve funded to each trader")


class Config(BaseModel):
    """Complete configuration for the bonding engine."""
    protocol: Protocol = Field(default_factory=Protocol)
    asset_validation: AssetValidation = Field(default_factory=AssetValidation)
    simulation: Simulation = Field(default_factory=Simulation)

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
