"""Step schedule: the ordered (range_to, price) table behind a bond.

Schedule rules:
- 1 <= len(steps) <= max_steps
- range_to strictly increasing, never zero
- range_to of the last step == max_supply
- price non-negative and non-decreasing (step 0 may be free)
"""

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, Tuple

from ..errors import InvalidSchedule
from .intmath import U128_MAX

DEFAULT_MAX_STEPS = 1000


@dataclass(frozen=True)
class BondStep:
    """One contiguous supply range sold at a fixed price per unit."""
    range_to: int  # Inclusive cumulative-supply upper bound
    price: int  # Reserve cost per price unit of supply


@dataclass(frozen=True)
class StepSchedule:
    """Validated, immutable step table. Build it with validate_schedule()."""
    steps: Tuple[BondStep, ...]

    @property
    def max_supply(self) -> int:
        return self.steps[-1].range_to

    @property
    def ranges(self) -> Tuple[int, ...]:
        return tuple(step.range_to for step in self.steps)

    @property
    def prices(self) -> Tuple[int, ...]:
        return tuple(step.price for step in self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[BondStep]:
        return iter(self.steps)

    def __getitem__(self, index: int) -> BondStep:
        return self.steps[index]


def _is_u128(value: Any) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value <= U128_MAX
    )


def coerce_step(raw: Any) -> BondStep:
    """Accept a BondStep, a (range_to, price) pair or a mapping."""
    if isinstance(raw, BondStep):
        return raw
    if isinstance(raw, Mapping):
        try:
            return BondStep(range_to=raw["range_to"], price=raw["price"])
        except KeyError as exc:
            raise InvalidSchedule("MALFORMED_STEP", f"missing key {exc}") from None
    try:
        range_to, price = raw
    except (TypeError, ValueError):
        raise InvalidSchedule("MALFORMED_STEP", repr(raw)) from None
    return BondStep(range_to=range_to, price=price)


def steps_from_lists(ranges: Sequence[int], prices: Sequence[int]) -> Tuple[BondStep, ...]:
    """Zip parallel range/price lists into steps."""
    if len(ranges) != len(prices):
        raise InvalidSchedule(
            "STEP_LENGTH_DO_NOT_MATCH",
            f"{len(ranges)} ranges vs {len(prices)} prices"
        )
    return tuple(BondStep(range_to=r, price=p) for r, p in zip(ranges, prices))


def validate_schedule(
    steps: Iterable[Any],
    max_supply: int,
    max_steps: int = DEFAULT_MAX_STEPS
) -> StepSchedule:
    """
    Validate a step table against its supply cap.

    Args:
        steps: BondStep objects, (range_to, price) pairs or mappings
        max_supply: Bond supply cap; must equal the last range_to
        max_steps: Maximum number of steps allowed

    Returns:
        Immutable StepSchedule

    Raises:
        InvalidSchedule: With a reason code naming the first rule broken
    """
    if not _is_u128(max_supply) or max_supply == 0:
        raise InvalidSchedule("INVALID_MAX_SUPPLY", f"max_supply={max_supply!r}")

    normalized = tuple(coerce_step(raw) for raw in steps)

    if len(normalized) == 0 or len(normalized) > max_steps:
        raise InvalidSchedule(
            "INVALID_STEP_LENGTH",
            f"{len(normalized)} steps (allowed 1..{max_steps})"
        )

    for i, step in enumerate(normalized):
        if not _is_u128(step.range_to):
            raise InvalidSchedule("VALUE_OUT_OF_RANGE", f"step {i} range_to={step.range_to!r}")
        if isinstance(step.price, int) and not isinstance(step.price, bool) and step.price < 0:
            raise InvalidSchedule("NEGATIVE_PRICE", f"step {i} price={step.price}")
        if not _is_u128(step.price):
            raise InvalidSchedule("VALUE_OUT_OF_RANGE", f"step {i} price={step.price!r}")

    if normalized[-1].range_to != max_supply:
        raise InvalidSchedule(
            "MAX_SUPPLY_MISMATCH",
            f"last range_to {normalized[-1].range_to} != max_supply {max_supply}"
        )

    previous: Optional[BondStep] = None
    for i, step in enumerate(normalized):
        if step.range_to == 0:
            raise InvalidSchedule("STEP_CANNOT_BE_ZERO", f"step {i}")
        if previous is not None:
            if step.range_to <= previous.range_to:
                raise InvalidSchedule(
                    "DECREASING_RANGE",
                    f"step {i} range_to {step.range_to} <= {previous.range_to}"
                )
            if step.price < previous.price:
                raise InvalidSchedule(
                    "DECREASING_PRICE",
                    f"step {i} price {step.price} < {previous.price}"
                )
        previous = step

    return StepSchedule(steps=normalized)
