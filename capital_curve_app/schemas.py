from typing import Optional

from pydantic import BaseModel, field_validator, model_validator


PRICE_SCALE = 10**18
PERCENTAGE_DIVISOR = 1000
TOKEN_UNIT = 10**18


class CurveConfig(BaseModel):
    # All multipliers and percentages are per-mille of PERCENTAGE_DIVISOR (100 = 10%)
    initial_price: int = PRICE_SCALE
    initial_level_size: int = 1000 * TOKEN_UNIT
    level_increase_multiplier: int = 100
    level_decrease_multiplier: int = 50
    price_increment_multiplier: int = 50
    trend_change_step: int = 5

    # Profit skimmed from every purchase; doubled up to the trend change step
    # unless an explicit pre-trend percentage is configured
    profit_percent: int = 50
    profit_before_trend_percent: Optional[int] = None

    # Share of the skimmed profit credited to the royalty party
    royalty_profit_percent: int = 500

    # Supply that already exists at deployment but is not yet backed by collateral
    offset_tokens: int = 0

    @field_validator("initial_price")
    @classmethod
    def price_floor(cls, v):
        # below this the profit-adjusted buyback price truncates to zero
        if v < PERCENTAGE_DIVISOR:
            raise ValueError(f"initial_price must be >= {PERCENTAGE_DIVISOR}")
        return v

    @field_validator("initial_level_size")
    @classmethod
    def level_positive(cls, v):
        if v <= 0:
            raise ValueError("initial_level_size must be > 0")
        return v

    @field_validator("trend_change_step", "offset_tokens")
    @classmethod
    def non_negative(cls, v, info):
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @field_validator("level_increase_multiplier", "price_increment_multiplier", "royalty_profit_percent")
    @classmethod
    def per_mille_range(cls, v, info):
        if v < 0 or v > PERCENTAGE_DIVISOR:
            raise ValueError(f"{info.field_name} must be between 0 and {PERCENTAGE_DIVISOR}")
        return v

    @field_validator("level_decrease_multiplier", "profit_percent")
    @classmethod
    def below_divisor(cls, v, info):
        if v < 0 or v >= PERCENTAGE_DIVISOR:
            raise ValueError(f"{info.field_name} must be in [0, {PERCENTAGE_DIVISOR})")
        return v

    @field_validator("profit_before_trend_percent")
    @classmethod
    def optional_below_divisor(cls, v):
        if v is None:
            return v
        if v < 0 or v >= PERCENTAGE_DIVISOR:
            raise ValueError(f"profit_before_trend_percent must be in [0, {PERCENTAGE_DIVISOR})")
        return v

    @model_validator(mode="after")
    def doubled_profit_fits(self):
        if self.profit_before_trend_percent is None and self.profit_percent * 2 >= PERCENTAGE_DIVISOR:
            raise ValueError(
                f"profit_percent={self.profit_percent} is doubled before the trend change step "
                f"and must stay below {PERCENTAGE_DIVISOR // 2}"
            )
        return self


class CursorState(BaseModel):
    step: int
    price: int
    level_size: int
    remaining: int


class LedgerState(BaseModel):
    sale: CursorState
    earned: CursorState
    offset: CursorState
    pool_balance: int = 0
    tokens_sold: int = 0
    tokens_earned: int = 0
    offset_tokens: int = 0
    support_balance: int = 0
    royalty_profit_percent: int
    owner_profit: int = 0
    royalty_profit: int = 0


# ── Request bodies ──

class CollateralInput(BaseModel):
    collateral: int

    @field_validator("collateral")
    @classmethod
    def not_negative(cls, v):
        if v < 0:
            raise ValueError("collateral must be >= 0")
        return v


class TokenInput(BaseModel):
    tokens: int

    @field_validator("tokens")
    @classmethod
    def not_negative(cls, v):
        if v < 0:
            raise ValueError("tokens must be >= 0")
        return v


class ProfitShareInput(BaseModel):
    party: str
    percent: int

    @field_validator("party")
    @classmethod
    def valid_party(cls, v):
        vv = str(v).lower().strip()
        if vv not in {"owner", "royalty"}:
            raise ValueError("party must be one of: owner, royalty")
        return vv


class ClaimInput(BaseModel):
    party: str

    @field_validator("party")
    @classmethod
    def valid_party(cls, v):
        vv = str(v).lower().strip()
        if vv not in {"owner", "royalty"}:
            raise ValueError("party must be one of: owner, royalty")
        return vv


class CurveTableInput(BaseModel):
    steps: int = 20

    @field_validator("steps")
    @classmethod
    def steps_range(cls, v):
        if v < 1 or v > 1000:
            raise ValueError("steps must be between 1 and 1000")
        return v
