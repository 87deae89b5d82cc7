"""Tests for reserve asset validation.

Each registry here misbehaves in one way: wrong standard, malformed
answers, reverting calls, or calls that never return in time.
"""

import threading

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from stepbond.collaborators.memory import AssetDescriptor, InMemoryAssetRegistry
from stepbond.config.schema import AssetValidation
from stepbond.errors import InvalidReserveAsset
from stepbond.validation.asset_check import AssetValidator


def reason_of(validator: AssetValidator, asset_id) -> str:
    with pytest.raises(InvalidReserveAsset) as excinfo:
        validator.validate(asset_id)
    return excinfo.value.reason


class MalformedBatchRegistry(InMemoryAssetRegistry):
    """Answers a two-holder batch query with one balance."""

    def balance_of_batch(self, asset_id, holders, ids):
        return [0]


class IntInterfaceRegistry(InMemoryAssetRegistry):
    """Answers supports_interface with an int instead of a bool."""

    def supports_interface(self, asset_id, interface):
        return 1


class RevertingDecimalsRegistry(InMemoryAssetRegistry):
    def decimals(self, asset_id):
        raise RuntimeError("execution reverted")


class HangingRegistry(InMemoryAssetRegistry):
    """token_standard blocks until released."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def token_standard(self, asset_id):
        self.release.wait(5)
        return super().token_standard(asset_id)


class HangingDecimalsRegistry(InMemoryAssetRegistry):
    """decimals blocks until released for assets whose id starts with SLOW."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def decimals(self, asset_id):
        if asset_id.startswith("SLOW"):
            self.release.wait(10)
        return super().decimals(asset_id)


class TestAcceptedAssets:
    """Well-behaved assets validate to their standard."""

    def test_fungible(self):
        registry = InMemoryAssetRegistry()
        registry.register_fungible("USDC", decimals=6, total_supply=10**12)
        assert AssetValidator(registry).validate("USDC") == "fungible"

    def test_semi_fungible(self):
        registry = InMemoryAssetRegistry()
        registry.register_semi_fungible("ITEMS")
        assert AssetValidator(registry).validate("ITEMS") == "semi-fungible"


class TestRejectedAssets:
    """Each failure mode maps to its reason code."""

    def test_unknown_asset(self):
        validator = AssetValidator(InMemoryAssetRegistry())
        assert reason_of(validator, "NOPE") == "UNKNOWN_ASSET"
        assert reason_of(validator, None) == "UNKNOWN_ASSET"
        assert reason_of(validator, "") == "UNKNOWN_ASSET"

    def test_reports_one_standard_implements_another(self):
        registry = InMemoryAssetRegistry()
        registry.register("FAKE", AssetDescriptor(standard="fungible", interfaces=("semi-fungible",)))
        assert reason_of(AssetValidator(registry), "FAKE") == "STANDARD_MISMATCH"

    def test_claims_both_standards(self):
        registry = InMemoryAssetRegistry()
        registry.register("BOTH", AssetDescriptor(standard="fungible", interfaces=("fungible", "semi-fungible")))
        assert reason_of(AssetValidator(registry), "BOTH") == "STANDARD_MISMATCH"

    def test_unsupported_standard(self):
        registry = InMemoryAssetRegistry()
        registry.register("NFT", AssetDescriptor(standard="non-fungible", interfaces=("non-fungible",)))
        assert reason_of(AssetValidator(registry), "NFT") == "UNSUPPORTED_STANDARD"

    def test_standard_disabled_by_settings(self):
        registry = InMemoryAssetRegistry()
        registry.register_semi_fungible("ITEMS")
        validator = AssetValidator(registry, AssetValidation(allowed_standards=["fungible"]))
        assert reason_of(validator, "ITEMS") == "UNSUPPORTED_STANDARD"

    def test_oversized_standard_string(self):
        registry = InMemoryAssetRegistry()
        registry.register("LONG", AssetDescriptor(standard="f" * 1000))
        assert reason_of(AssetValidator(registry), "LONG") == "MALFORMED_RESPONSE"

    def test_wrong_length_batch_response(self):
        registry = MalformedBatchRegistry()
        registry.register_semi_fungible("ITEMS")
        assert reason_of(AssetValidator(registry), "ITEMS") == "MALFORMED_RESPONSE"

    def test_non_bool_interface_answer(self):
        registry = IntInterfaceRegistry()
        registry.register_fungible("USDC")
        assert reason_of(AssetValidator(registry), "USDC") == "MALFORMED_RESPONSE"

    def test_decimals_out_of_range(self):
        registry = InMemoryAssetRegistry()
        registry.register_fungible("WIDE", decimals=300)
        assert reason_of(AssetValidator(registry), "WIDE") == "MALFORMED_RESPONSE"

    def test_negative_total_supply(self):
        registry = InMemoryAssetRegistry()
        registry.register_fungible("NEG", total_supply=-1)
        assert reason_of(AssetValidator(registry), "NEG") == "MALFORMED_RESPONSE"

    def test_reverting_call(self):
        registry = RevertingDecimalsRegistry()
        registry.register_fungible("USDC")
        assert reason_of(AssetValidator(registry), "USDC") == "CALL_REVERTED"

    def test_call_over_budget(self):
        """A call that never returns in time rejects the asset instead of hanging."""
        registry = HangingRegistry()
        registry.register_fungible("SLOW")
        validator = AssetValidator(registry, AssetValidation(call_timeout_seconds=0.05))
        try:
            assert reason_of(validator, "SLOW") == "BUDGET_EXCEEDED"
        finally:
            registry.release.set()

    def test_error_carries_asset(self):
        validator = AssetValidator(InMemoryAssetRegistry())
        with pytest.raises(ValueError) as excinfo:
            validator.validate("NOPE")
        assert excinfo.value.asset_id == "NOPE"
        assert "NOPE" in str(excinfo.value)

    def test_hung_calls_do_not_starve_later_assets(self):
        """Calls left running past their budget never delay another asset."""
        registry = HangingDecimalsRegistry()
        registry.register_fungible("USDC", decimals=6)
        slow_ids = [f"SLOW-{i}" for i in range(8)]
        for asset_id in slow_ids:
            registry.register_fungible(asset_id)
        validator = AssetValidator(registry, AssetValidation(call_timeout_seconds=0.2))
        try:
            for asset_id in slow_ids:
                assert reason_of(validator, asset_id) == "BUDGET_EXCEEDED"
            assert validator.validate("USDC") == "fungible"
        finally:
            registry.release.set()
