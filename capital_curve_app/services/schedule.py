import numpy as np

from capital_curve_app.schemas import PRICE_SCALE, TOKEN_UNIT, CurveConfig
from capital_curve_app.services.cursor import StepCursor
from capital_curve_app.services.progression import build_profit_schedule


def _display(value: int, scale: int) -> float:
    """Float view of a fixed-point amount; inf once it leaves float range."""
    try:
        return value / scale
    except OverflowError:
        return float("inf")


def compute_curve_table(config: CurveConfig, steps: int):
    """Tier-by-tier preview of the curve from tier 0, exact ints plus float display columns."""
    schedule = build_profit_schedule(config)
    cursor = StepCursor.genesis(config)

    tiers = []
    for _ in range(steps):
        tier_cost = cursor.level_size * cursor.price // PRICE_SCALE
        tiers.append((cursor.step, cursor.level_size, cursor.price, tier_cost, schedule.percent_for(cursor.step)))
        cursor.advance(config)

    level_tokens = np.array([_display(t[1], TOKEN_UNIT) for t in tiers], dtype=float)
    prices = np.array([_display(t[2], PRICE_SCALE) for t in tiers], dtype=float)
    tier_costs = np.array([_display(t[3], TOKEN_UNIT) for t in tiers], dtype=float)
    with np.errstate(over="ignore", invalid="ignore"):
        cumulative_tokens = np.cumsum(level_tokens)
        cumulative_cost = np.cumsum(tier_costs)

    rows = []
    exact_tokens = 0
    exact_cost = 0
    for i, (step, level_size, price, tier_cost, percent) in enumerate(tiers):
        exact_tokens += level_size
        exact_cost += tier_cost
        rows.append({
            "step": step,
            "label": "trend change" if step == config.trend_change_step else f"T{step}",
            "level_size": level_size,
            "price": price,
            "tier_cost": tier_cost,
            "profit_percent": percent,
            "cumulative_tokens": exact_tokens,
            "cumulative_cost": exact_cost,
            "level_tokens_display": float(level_tokens[i]),
            "price_display": float(prices[i]),
            "cumulative_tokens_display": float(cumulative_tokens[i]),
            "cumulative_cost_display": float(cumulative_cost[i]),
        })

    peak_idx = int(np.argmax(level_tokens))
    total_tokens = float(cumulative_tokens[-1])
    total_cost = float(cumulative_cost[-1])

    return {
        "rows": rows,
        "summary": {
            "steps": steps,
            "peak_level_step": tiers[peak_idx][0],
            "peak_level_tokens": float(level_tokens[peak_idx]),
            "total_tokens": total_tokens,
            "total_cost": total_cost,
            "average_price": total_cost / total_tokens if total_tokens > 0 else 0.0,
            "final_price": float(prices[-1]),
        },
    }
