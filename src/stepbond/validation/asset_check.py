"""Reserve asset validation.

An asset is accepted only when its claimed standard matches what it
actually implements. Each introspection call runs under a time budget
on its own daemon thread, so a call that never returns is abandoned
without holding up later validations. A call that overruns, raises, or
answers with the wrong shape rejects the asset rather than failing the
protocol.
"""

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, Hashable

from ..collaborators.interfaces import AssetProbe
from ..config.schema import AssetValidation
from ..engine.intmath import U256_MAX
from ..errors import InvalidReserveAsset

logger = logging.getLogger(__name__)

FUNGIBLE = "fungible"
SEMI_FUNGIBLE = "semi-fungible"
PROBE_HOLDER = "__probe__"
MAX_STANDARD_LENGTH = 64


def _is_uint(value: Any, upper: int = U256_MAX) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= upper


def _run_into(future: Future, fn: Callable, args: tuple) -> None:
    if not future.set_running_or_notify_cancel():
        return
    try:
        result = fn(*args)
    except Exception as exc:
        future.set_exception(exc)
    else:
        future.set_result(result)


class AssetValidator:
    """Decide whether an asset behaves as a fungible or semi-fungible token."""

    def __init__(self, probe: AssetProbe, settings: AssetValidation = None):
        """
        Initialize asset validator.

        Args:
            probe: AssetProbe implementation answering introspection calls
            settings: Budget and acceptance settings
        """
        self.probe = probe
        self.settings = settings or AssetValidation()

    def _call(self, asset_id: Hashable, label: str, fn: Callable, *args) -> Any:
        future: Future = Future()
        worker = threading.Thread(
            target=_run_into,
            args=(future, fn, args),
            name=f"asset-probe-{label}",
            daemon=True,
        )
        worker.start()
        try:
            return future.result(timeout=self.settings.call_timeout_seconds)
        except FutureTimeout:
            # The thread keeps running until the call returns; nothing waits on it
            raise InvalidReserveAsset(
                asset_id, "BUDGET_EXCEEDED",
                f"{label} exceeded {self.settings.call_timeout_seconds}s"
            ) from None
        except LookupError as exc:
            raise InvalidReserveAsset(asset_id, "UNKNOWN_ASSET", str(exc)) from exc
        except Exception as exc:
            raise InvalidReserveAsset(asset_id, "CALL_REVERTED", f"{label}: {exc}") from exc

    def validate(self, asset_id: Hashable) -> str:
        """
        Validate an asset and return its verified standard.

        Raises:
            InvalidReserveAsset: With a reason code describing the failure
        """
        try:
            return self._validate(asset_id)
        except InvalidReserveAsset as exc:
            logger.warning("Reserve asset rejected: %s", exc)
            raise

    def _validate(self, asset_id: Hashable) -> str:
        if asset_id is None or asset_id == "":
            raise InvalidReserveAsset(asset_id, "UNKNOWN_ASSET", "empty asset id")

        standard = self._call(asset_id, "token_standard", self.probe.token_standard, asset_id)
        if not isinstance(standard, str) or len(standard) > MAX_STANDARD_LENGTH:
            raise InvalidReserveAsset(asset_id, "MALFORMED_RESPONSE", f"token_standard={standard!r}")
        if standard not in self.settings.allowed_standards:
            raise InvalidReserveAsset(asset_id, "UNSUPPORTED_STANDARD", standard)

        other = SEMI_FUNGIBLE if standard == FUNGIBLE else FUNGIBLE
        claims_own = self._call(asset_id, "supports_interface", self.probe.supports_interface, asset_id, standard)
        claims_other = self._call(asset_id, "supports_interface", self.probe.supports_interface, asset_id, other)
        if not isinstance(claims_own, bool) or not isinstance(claims_other, bool):
            raise InvalidReserveAsset(asset_id, "MALFORMED_RESPONSE", "supports_interface must return bool")
        if not claims_own or claims_other:
            raise InvalidReserveAsset(
                asset_id, "STANDARD_MISMATCH",
                f"reports {standard} but interfaces say own={claims_own} other={claims_other}"
            )

        if standard == FUNGIBLE:
            self._check_fungible(asset_id)
        else:
            self._check_semi_fungible(asset_id)

        logger.debug("Reserve asset %r accepted as %s", asset_id, standard)
        return standard

    def _check_fungible(self, asset_id: Hashable) -> None:
        decimals = self._call(asset_id, "decimals", self.probe.decimals, asset_id)
        if not _is_uint(decimals, self.settings.max_decimals):
            raise InvalidReserveAsset(asset_id, "MALFORMED_RESPONSE", f"decimals={decimals!r}")

        supply = self._call(asset_id, "total_supply", self.probe.total_supply, asset_id)
        if not _is_uint(supply):
            raise InvalidReserveAsset(asset_id, "MALFORMED_RESPONSE", f"total_supply={supply!r}")

        balance = self._call(asset_id, "balance_of", self.probe.balance_of, asset_id, PROBE_HOLDER)
        if not _is_uint(balance):
            raise InvalidReserveAsset(asset_id, "MALFORMED_RESPONSE", f"balance_of={balance!r}")

    def _check_semi_fungible(self, asset_id: Hashable) -> None:
        holders = [PROBE_HOLDER, PROBE_HOLDER]
        ids = [0, 1]
        balances = self._call(
            asset_id, "balance_of_batch", self.probe.balance_of_batch, asset_id, holders, ids
        )
        if not isinstance(balances, (list, tuple)) or len(balances) != len(holders):
            raise InvalidReserveAsset(
                asset_id, "MALFORMED_RESPONSE",
                f"balance_of_batch returned {balances!r} for {len(holders)} queries"
            )
        if not all(_is_uint(b) for b in balances):
            raise InvalidReserveAsset(asset_id, "MALFORMED_RESPONSE", f"balance_of_batch={balances!r}")
