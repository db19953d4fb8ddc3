import math

import pytest
from pydantic import ValidationError

from capital_curve_app.schemas import CurveConfig, TOKEN_UNIT
from capital_curve_app.services.cursor import StepCursor
from capital_curve_app.services.progression import (
    Direction,
    DoublingProfitSchedule,
    PreTrendProfitSchedule,
    adjusted_price,
    build_profit_schedule,
    next_level_size,
    next_price,
    previous_level_size,
    previous_price,
    shift_tier,
    sub_or_zero,
)
from capital_curve_app.services.schedule import compute_curve_table


def test_level_grows_until_trend_change_then_shrinks():
    assert next_level_size(1000, 1, 5, 100, 50) == 1100
    assert next_level_size(1000, 5, 5, 100, 50) == 1100
    assert next_level_size(1000, 6, 5, 100, 50) == 950


def test_previous_level_inverts_exact_steps():
    assert previous_level_size(1100, 1, 5, 100, 50) == 1000
    assert previous_level_size(950, 6, 5, 100, 50) == 1000


def test_truncation_is_not_reversible():
    grown = next_level_size(1331, 4, 5, 100, 50)
    assert grown == 1464
    # accepted approximation: the round trip loses a unit
    assert previous_level_size(grown, 4, 5, 100, 50) == 1330


def test_level_and_price_never_reach_zero():
    assert next_level_size(1, 9, 5, 100, 999) == 1
    assert previous_price(1, 50) == 1


def test_price_step_and_inverse():
    assert next_price(10**18, 50) == 1_050_000_000_000_000_000
    assert previous_price(1_050_000_000_000_000_000, 50) == 10**18


def test_shift_tier_both_directions():
    config = CurveConfig()
    step, level, price = shift_tier(0, 1000 * TOKEN_UNIT, 10**18, Direction.ADVANCE, config)
    assert (step, level, price) == (1, 1100 * TOKEN_UNIT, 1_050_000_000_000_000_000)

    back = shift_tier(step, level, price, Direction.REGRESS, config)
    assert back == (0, 1000 * TOKEN_UNIT, 10**18)

    with pytest.raises(ValueError):
        shift_tier(0, level, price, Direction.REGRESS, config)


def test_sub_or_zero_clamps():
    assert sub_or_zero(5, 3) == 2
    assert sub_or_zero(3, 5) == 0


def test_adjusted_price_removes_skim():
    assert adjusted_price(10**18, 100) == 9 * 10**17


def test_doubling_schedule():
    schedule = DoublingProfitSchedule(50, 5)
    assert [schedule.percent_for(s) for s in (0, 5, 6, 40)] == [100, 100, 50, 50]


def test_pre_trend_schedule():
    schedule = PreTrendProfitSchedule(50, 150, 5)
    assert [schedule.percent_for(s) for s in (0, 5, 6)] == [150, 150, 50]


def test_schedule_selected_from_config():
    assert isinstance(build_profit_schedule(CurveConfig()), DoublingProfitSchedule)
    explicit = CurveConfig(profit_percent=50, profit_before_trend_percent=80)
    assert isinstance(build_profit_schedule(explicit), PreTrendProfitSchedule)


@pytest.mark.parametrize(
    "overrides",
    [
        {"level_decrease_multiplier": 1000},
        {"profit_percent": 500},
        {"initial_price": 999},
        {"initial_level_size": 0},
        {"royalty_profit_percent": 1001},
        {"trend_change_step": -1},
    ],
)
def test_invalid_config_rejected(overrides):
    with pytest.raises(ValidationError):
        CurveConfig(**overrides)


def test_explicit_pre_trend_allows_large_base():
    config = CurveConfig(profit_percent=500, profit_before_trend_percent=600)
    assert build_profit_schedule(config).percent_for(0) == 600


def test_cursor_invariant_check():
    cursor = StepCursor.genesis(CurveConfig())
    cursor.check()
    cursor.remaining = cursor.level_size + 1
    with pytest.raises(Exception, match="remaining"):
        cursor.check("sale")


def test_curve_table_peaks_at_trend_change():
    table = compute_curve_table(CurveConfig(), 10)
    rows = table["rows"]

    assert len(rows) == 10
    assert rows[1]["level_size"] == 1100 * TOKEN_UNIT
    assert rows[1]["tier_cost"] == 1155 * TOKEN_UNIT
    assert rows[5]["label"] == "trend change"
    assert table["summary"]["peak_level_step"] == 5
    assert rows[6]["level_size"] < rows[5]["level_size"]
    assert rows[2]["cumulative_tokens"] == 3310 * TOKEN_UNIT
    assert rows[2]["cumulative_tokens_display"] == pytest.approx(3310.0)


def test_curve_table_survives_amounts_beyond_float_range():
    config = CurveConfig(
        level_increase_multiplier=1000,
        price_increment_multiplier=1000,
        trend_change_step=1000,
    )
    table = compute_curve_table(config, 1000)
    last = table["rows"][-1]

    assert last["tier_cost"] == 1000 * TOKEN_UNIT * 4**999
    assert math.isinf(last["cumulative_cost_display"])
    assert math.isfinite(last["price_display"])
    assert math.isinf(table["summary"]["total_cost"])
