"""
Conversions between collateral and tokens along the stepped curve.

Every converter mutates the cursor it is given in place. Callers hand in a
copy and only keep it once the converter has returned, so a raised error
leaves the ledger untouched.
"""

from typing import NamedTuple

from capital_curve_app.errors import InsufficientSellableTokens
from capital_curve_app.schemas import PERCENTAGE_DIVISOR, PRICE_SCALE, CurveConfig
from capital_curve_app.services.cursor import StepCursor
from capital_curve_app.services.progression import adjusted_price, sub_or_zero


class ForwardFill(NamedTuple):
    tokens_out: int
    profit: int
    collateral_spent: int


class OffsetBacking(NamedTuple):
    collateral_used: int
    tokens_backed: int


def forward_convert(
    sale: StepCursor,
    collateral_in: int,
    available_cap: int,
    config: CurveConfig,
    schedule,
) -> ForwardFill:
    """Collateral -> tokens, walking the sale cursor forward."""
    tokens_given = 0
    profit = 0
    spent = 0
    left = collateral_in

    while left > 0 and tokens_given < available_cap:
        tier_tokens = min(sale.remaining, available_cap - tokens_given)
        tier_cost = tier_tokens * sale.price // PRICE_SCALE
        percent = schedule.percent_for(sale.step)

        if left >= tier_cost:
            tokens_given += tier_tokens
            profit += tier_cost * percent // PERCENTAGE_DIVISOR
            spent += tier_cost
            left -= tier_cost
            if tier_tokens < sale.remaining:
                # pool ran out inside this tier
                sale.remaining -= tier_tokens
                break
            sale.advance(config)
        else:
            bought = min(left * PRICE_SCALE // sale.price, sale.remaining)
            if bought == 0:
                break
            tokens_given += bought
            profit += left * percent // PERCENTAGE_DIVISOR
            spent += left
            sale.remaining -= bought
            left = 0

    return ForwardFill(min(tokens_given, available_cap), profit, spent)


def reverse_convert(
    sale: StepCursor,
    tokens_in: int,
    floor_step: int,
    config: CurveConfig,
    schedule,
) -> int:
    """Tokens -> collateral for buybacks, walking the sale cursor backward."""
    payout = 0
    left = tokens_in

    while left > 0:
        available = sub_or_zero(sale.level_size, sale.remaining)
        unit_price = adjusted_price(sale.price, schedule.percent_for(sale.step))

        if left >= available:
            payout += available * unit_price // PRICE_SCALE
            left -= available
            if sale.step > floor_step:
                sale.regress(config)
            else:
                sale.remaining = sale.level_size
                break
        else:
            payout += left * unit_price // PRICE_SCALE
            sale.remaining += left
            left = 0

    if left > 0:
        raise InsufficientSellableTokens(tokens_in, tokens_in - left)
    return payout


def reverse_earned_convert(
    earned: StepCursor,
    tokens_in: int,
    sale: StepCursor,
    config: CurveConfig,
    schedule,
) -> int:
    """
    Tokens -> collateral for the return channel.

    The earned cursor walks forward through the tiers that were already sold,
    so returned tokens are paid at the historical price of those tiers. It
    never passes the sale cursor: in the sale cursor's own tier only the
    tokens actually sold there can be returned.
    """
    payout = 0
    left = tokens_in

    while left > 0:
        unit_price = adjusted_price(earned.price, schedule.percent_for(earned.step))

        if earned.step >= sale.step:
            available = sub_or_zero(sale.sold_in_tier(), earned.sold_in_tier())
            taken = min(left, available)
            payout += taken * unit_price // PRICE_SCALE
            earned.remaining -= taken
            left -= taken
            break

        available = earned.remaining
        if left >= available:
            payout += available * unit_price // PRICE_SCALE
            left -= available
            earned.advance(config)
        else:
            payout += left * unit_price // PRICE_SCALE
            earned.remaining -= left
            left = 0

    if left > 0:
        raise InsufficientSellableTokens(tokens_in, tokens_in - left)
    return payout


def seed_offset(offset: StepCursor, quantity: int, config: CurveConfig) -> None:
    """Walk the offset cursor forward over `quantity` unpaid tokens."""
    left = quantity
    while left > 0:
        if left >= offset.remaining:
            left -= offset.remaining
            offset.advance(config)
        else:
            offset.remaining -= left
            left = 0


def back_offset_convert(
    offset: StepCursor,
    collateral_in: int,
    unbacked_remaining: int,
    floor_step: int,
    config: CurveConfig,
    schedule,
) -> OffsetBacking:
    """Collateral -> retroactive backing, walking the offset cursor backward."""
    used = 0
    backed = 0

    while collateral_in > used and unbacked_remaining > backed:
        budget = collateral_in - used
        in_tier = sub_or_zero(offset.level_size, offset.remaining)
        tokens = min(in_tier, unbacked_remaining - backed)
        unit_price = adjusted_price(offset.price, schedule.percent_for(offset.step))
        cost = tokens * unit_price // PRICE_SCALE

        if budget >= cost and tokens == in_tier:
            used += cost
            backed += tokens
            if offset.step > floor_step:
                offset.regress(config)
            else:
                offset.remaining = offset.level_size
                break
        elif budget >= cost:
            used += cost
            backed += tokens
            offset.remaining += tokens
        else:
            tokens = min(budget * PRICE_SCALE // unit_price, tokens)
            if tokens == 0:
                break
            used += tokens * unit_price // PRICE_SCALE
            backed += tokens
            offset.remaining += tokens
            break

    return OffsetBacking(used, backed)
