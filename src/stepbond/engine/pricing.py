"""Pricing Engine - Reserve integrals over a stepped bonding curve.

Key Concepts:
- Step i covers supply positions (range_to[i-1], range_to[i]]
- Cost of a unit depends only on its position, not on who bought it
- Each step contributes units_in_step * price / price_unit
- Mint rounds each step contribution up, burn rounds it down (toward the pool)
- Contributions are summed in ascending step order with u256 overflow checks
"""

import logging
from bisect import bisect_right
from dataclasses import dataclass
from typing import List

from ..errors import InsufficientSupply, SupplyExceeded
from .intmath import add_u256, ceil_div, check_u128, mul_div_up, mul_u256, require_int
from .schedule import StepSchedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepSegment:
    """Portion of a pricing walk that falls inside one step."""
    step_index: int
    units: int
    price: int
    reserve: int


class PricingEngine:
    """Pure cost/refund calculations over a StepSchedule.

    The engine holds no state; identical inputs always produce identical
    outputs.
    """

    @staticmethod
    def step_index_at(schedule: StepSchedule, supply: int) -> int:
        """
        Index of the step that prices the next unit minted at `supply`.

        At max_supply there is no next unit; the last index is returned.
        """
        index = bisect_right(schedule.ranges, supply)
        return min(index, len(schedule) - 1)

    @staticmethod
    def current_price(schedule: StepSchedule, supply: int) -> int:
        """Price of the next unit minted at `supply`."""
        return schedule[PricingEngine.step_index_at(schedule, supply)].price

    @staticmethod
    def segments(
        schedule: StepSchedule,
        lower: int,
        upper: int,
        price_unit: int = 1,
        round_up: bool = True
    ) -> List[StepSegment]:
        """
        Break the supply interval (lower, upper] into per-step segments.

        Args:
            schedule: Step table
            lower: Exclusive lower supply position
            upper: Inclusive upper supply position (<= max_supply)
            price_unit: Supply units the step price is quoted for
            round_up: Round each segment's reserve up (mint) or down (burn)

        Returns:
            Segments in ascending step order
        """
        out: List[StepSegment] = []
        if upper <= lower:
            return out

        index = bisect_right(schedule.ranges, lower)
        cursor = lower
        while cursor < upper:
            step = schedule[index]
            segment_top = min(step.range_to, upper)
            units = segment_top - cursor
            gross = mul_u256(units, step.price)
            if price_unit != 1:
                gross = ceil_div(gross, price_unit) if round_up else gross // price_unit
            out.append(StepSegment(step_index=index, units=units, price=step.price, reserve=gross))
            cursor = segment_top
            index += 1
        return out

    @staticmethod
    def _integrate(
        schedule: StepSchedule,
        lower: int,
        upper: int,
        price_unit: int,
        round_up: bool
    ) -> int:
        total = 0
        for segment in PricingEngine.segments(schedule, lower, upper, price_unit, round_up):
            total = add_u256(total, segment.reserve)
        return total

    @staticmethod
    def cost_to_mint(
        schedule: StepSchedule,
        current_supply: int,
        amount: int,
        price_unit: int = 1
    ) -> int:
        """
        Gross reserve required to mint `amount` units starting at `current_supply`.

        Walks upward from current_supply to current_supply + amount.

        Raises:
            SupplyExceeded: If the target passes max_supply
            ArithmeticOverflow: If the integral leaves u256
        """
        require_int(amount)
        check_u128(current_supply, "current_supply")
        if amount == 0:
            return 0

        target = current_supply + amount
        if target > schedule.max_supply:
            raise SupplyExceeded(
                f"minting {amount} at supply {current_supply} exceeds max_supply {schedule.max_supply}"
            )

        gross = PricingEngine._integrate(schedule, current_supply, target, price_unit, round_up=True)
        logger.debug("cost_to_mint supply=%d amount=%d gross=%d", current_supply, amount, gross)
        return gross

    @staticmethod
    def refund_for_burn(
        schedule: StepSchedule,
        current_supply: int,
        amount: int,
        price_unit: int = 1
    ) -> int:
        """
        Gross reserve released by burning `amount` units down from `current_supply`.

        Covers the same positions a mint from current_supply - amount would,
        so burning prices each unit at the step it currently occupies.

        Raises:
            InsufficientSupply: If amount exceeds current_supply
            ArithmeticOverflow: If the integral leaves u256
        """
        require_int(amount)
        check_u128(current_supply, "current_supply")
        if amount == 0:
            return 0
        if amount > current_supply:
            raise InsufficientSupply(f"burning {amount} with supply {current_supply}")

        floor_supply = current_supply - amount
        gross = PricingEngine._integrate(schedule, floor_supply, current_supply, price_unit, round_up=False)
        logger.debug("refund_for_burn supply=%d amount=%d gross=%d", current_supply, amount, gross)
        return gross

    @staticmethod
    def tokens_for_reserve(
        schedule: StepSchedule,
        current_supply: int,
        reserve_amount: int,
        price_unit: int = 1
    ) -> int:
        """
        Largest mint amount whose cost_to_mint does not exceed `reserve_amount`.

        Free steps are consumed entirely. The result is capped by the
        remaining supply.
        """
        require_int(reserve_amount, "reserve_amount")
        check_u128(current_supply, "current_supply")

        remaining = reserve_amount
        cursor = current_supply
        index = bisect_right(schedule.ranges, current_supply)
        while index < len(schedule):
            step = schedule[index]
            room = step.range_to - cursor
            if step.price == 0:
                cursor = step.range_to
                index += 1
                continue
            full_cost = mul_div_up(room, step.price, price_unit)
            if full_cost <= remaining:
                remaining -= full_cost
                cursor = step.range_to
                index += 1
                continue
            # Partial step: units * price <= remaining * price_unit
            cursor += (remaining * price_unit) // step.price
            break

        return cursor - current_supply

