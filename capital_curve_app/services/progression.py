"""
Tier arithmetic shared by every cursor.

A tier is advanced by growing (or, past the trend change step, shrinking) the
level size and raising the price by the increment multiplier; regressing
applies the inverse. All divisions truncate, so a forward step followed by a
backward step is not guaranteed to restore the exact original level size.
"""

from enum import Enum
from typing import Tuple

from capital_curve_app.schemas import PERCENTAGE_DIVISOR, CurveConfig


class Direction(Enum):
    ADVANCE = "advance"
    REGRESS = "regress"


def sub_or_zero(a: int, b: int) -> int:
    """a - b, clamped at zero."""
    return a - b if a > b else 0


def next_level_size(
    level_size: int,
    step_after_advance: int,
    trend_change_step: int,
    rise_multiplier: int,
    fall_multiplier: int,
    denom: int = PERCENTAGE_DIVISOR,
) -> int:
    if step_after_advance <= trend_change_step:
        size = level_size * (denom + rise_multiplier) // denom
    else:
        size = level_size * (denom - fall_multiplier) // denom
    return max(size, 1)


def previous_level_size(
    level_size: int,
    step_before_regress: int,
    trend_change_step: int,
    rise_multiplier: int,
    fall_multiplier: int,
    denom: int = PERCENTAGE_DIVISOR,
) -> int:
    if step_before_regress <= trend_change_step:
        size = level_size * denom // (denom + rise_multiplier)
    else:
        size = level_size * denom // (denom - fall_multiplier)
    return max(size, 1)


def next_price(price: int, increment_multiplier: int, denom: int = PERCENTAGE_DIVISOR) -> int:
    return max(price * (denom + increment_multiplier) // denom, 1)


def previous_price(price: int, increment_multiplier: int, denom: int = PERCENTAGE_DIVISOR) -> int:
    return max(price * denom // (denom + increment_multiplier), 1)


def shift_tier(
    step: int,
    level_size: int,
    price: int,
    direction: Direction,
    config: CurveConfig,
) -> Tuple[int, int, int]:
    """Move one tier in `direction`; returns (step, level_size, price)."""
    if direction is Direction.ADVANCE:
        step += 1
        level_size = next_level_size(
            level_size,
            step,
            config.trend_change_step,
            config.level_increase_multiplier,
            config.level_decrease_multiplier,
        )
        price = next_price(price, config.price_increment_multiplier)
        return step, level_size, price

    if step == 0:
        raise ValueError("cannot regress below tier 0")
    level_size = previous_level_size(
        level_size,
        step,
        config.trend_change_step,
        config.level_increase_multiplier,
        config.level_decrease_multiplier,
    )
    price = previous_price(price, config.price_increment_multiplier)
    return step - 1, level_size, price


def adjusted_price(price: int, profit_percent: int, denom: int = PERCENTAGE_DIVISOR) -> int:
    """Price net of the profit skim, used when tokens are bought back."""
    return price * (denom - profit_percent) // denom


# ── Profit schedules ──

class DoublingProfitSchedule:
    def __init__(self, base_percent: int, trend_change_step: int):
        self.base_percent = base_percent
        self.trend_change_step = trend_change_step

    def percent_for(self, step: int) -> int:
        if step <= self.trend_change_step:
            return self.base_percent * 2
        return self.base_percent


class PreTrendProfitSchedule:
    def __init__(self, base_percent: int, before_trend_percent: int, trend_change_step: int):
        self.base_percent = base_percent
        self.before_trend_percent = before_trend_percent
        self.trend_change_step = trend_change_step

    def percent_for(self, step: int) -> int:
        if step <= self.trend_change_step:
            return self.before_trend_percent
        return self.base_percent


def build_profit_schedule(config: CurveConfig):
    if config.profit_before_trend_percent is not None:
        return PreTrendProfitSchedule(
            config.profit_percent,
            config.profit_before_trend_percent,
            config.trend_change_step,
        )
    return DoublingProfitSchedule(config.profit_percent, config.trend_change_step)
