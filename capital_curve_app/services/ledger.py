"""
Capital-backed token pool driven by the stepped curve.

The ledger owns the three cursors (sale, earned, offset), the token and
collateral counters, and the profit split between the owner and the royalty
party. Each operation computes on cursor copies and writes the full state
back only when the converter succeeded.
"""

import logging
from enum import Enum
from typing import Dict, NamedTuple

from capital_curve_app.errors import (
    CursorInvariantError,
    InsufficientReserve,
    InsufficientSellableTokens,
    NoUnbackedSupply,
    PoolExhausted,
    ProfitShareError,
    ZeroAmount,
)
from capital_curve_app.schemas import PERCENTAGE_DIVISOR, CurveConfig, LedgerState
from capital_curve_app.services.converters import (
    back_offset_convert,
    forward_convert,
    reverse_convert,
    reverse_earned_convert,
    seed_offset,
)
from capital_curve_app.services.cursor import StepCursor
from capital_curve_app.services.progression import build_profit_schedule, sub_or_zero


logger = logging.getLogger(__name__)


class Party(str, Enum):
    OWNER = "owner"
    ROYALTY = "royalty"


class BuyResult(NamedTuple):
    tokens_out: int
    collateral_spent: int
    change: int
    profit: int
    owner_share: int
    royalty_share: int


class BackingResult(NamedTuple):
    collateral_used: int
    tokens_backed: int
    change: int


class WithdrawalResult(NamedTuple):
    tokens: int
    support: int


class CurveLedger:
    def __init__(self, config: CurveConfig):
        self.config = config
        self.schedule = build_profit_schedule(config)
        self.sale = StepCursor.genesis(config)
        self.earned = StepCursor.genesis(config)
        self.offset = StepCursor.genesis(config)

        self.pool_balance = 0
        self.tokens_sold = 0
        self.tokens_earned = 0
        self.offset_tokens = 0
        self.support_balance = 0

        self.royalty_profit_percent = config.royalty_profit_percent
        self.owner_profit = 0
        self.royalty_profit = 0

        if config.offset_tokens > 0:
            self._initialize_offset(config.offset_tokens)

    # ── Views ──

    @property
    def current_price(self) -> int:
        return self.sale.price

    @property
    def current_step(self) -> int:
        return self.sale.step

    @property
    def available_tokens(self) -> int:
        return sub_or_zero(self.pool_balance, self.tokens_sold)

    @property
    def unbacked_tokens(self) -> int:
        return sub_or_zero(self.offset_tokens, self.tokens_earned)

    @property
    def sellable_tokens(self) -> int:
        """Tokens the market maker can still sell back to the pool."""
        return sub_or_zero(self.tokens_sold, max(self.tokens_earned, self.offset_tokens))

    # ── Setup ──

    def _initialize_offset(self, quantity: int) -> None:
        offset = self.offset.copy()
        seed_offset(offset, quantity, self.config)
        self.offset = offset
        self.sale = offset.copy()
        self.pool_balance = quantity
        self.tokens_sold = quantity
        self.offset_tokens = quantity
        logger.info(
            "Seeded offset supply %d: sale cursor at step %d, price %d",
            quantity, self.sale.step, self.sale.price,
        )

    def deposit_tokens(self, tokens: int) -> int:
        if tokens <= 0:
            raise ZeroAmount("tokens")
        self.pool_balance += tokens
        logger.debug("Deposited %d tokens, pool balance %d", tokens, self.pool_balance)
        return self.pool_balance

    # ── Buying ──

    def _fill_buy(self, collateral: int):
        if collateral <= 0:
            raise ZeroAmount("collateral")
        if self.pool_balance <= self.tokens_sold:
            raise PoolExhausted(self.pool_balance, self.tokens_sold)
        sale = self.sale.copy()
        fill = forward_convert(sale, collateral, self.available_tokens, self.config, self.schedule)
        return sale, fill

    def quote_buy(self, collateral: int) -> BuyResult:
        _, fill = self._fill_buy(collateral)
        return self._buy_result(collateral, fill)

    def buy(self, collateral: int) -> BuyResult:
        sale, fill = self._fill_buy(collateral)
        result = self._buy_result(collateral, fill)
        self._check_cursors(sale, self.earned, self.offset)

        self.sale = sale
        self.tokens_sold += fill.tokens_out
        self.support_balance += fill.collateral_spent - fill.profit
        self.owner_profit += result.owner_share
        self.royalty_profit += result.royalty_share

        logger.info(
            "Buy: %d collateral -> %d tokens (profit %d), step %d price %d",
            fill.collateral_spent, fill.tokens_out, fill.profit, self.sale.step, self.sale.price,
        )
        return result

    def _buy_result(self, collateral: int, fill) -> BuyResult:
        royalty_share = fill.profit * self.royalty_profit_percent // PERCENTAGE_DIVISOR
        return BuyResult(
            tokens_out=fill.tokens_out,
            collateral_spent=fill.collateral_spent,
            change=collateral - fill.collateral_spent,
            profit=fill.profit,
            owner_share=fill.profit - royalty_share,
            royalty_share=royalty_share,
        )

    # ── Selling ──

    def _fill_sell(self, tokens: int):
        if tokens <= 0:
            raise ZeroAmount("tokens")
        if tokens > self.sellable_tokens:
            raise InsufficientSellableTokens(tokens, self.sellable_tokens)
        sale = self.sale.copy()
        payout = reverse_convert(sale, tokens, self.earned.step, self.config, self.schedule)
        if payout > self.support_balance:
            raise InsufficientReserve(payout, self.support_balance)
        return sale, payout

    def quote_sell(self, tokens: int) -> int:
        _, payout = self._fill_sell(tokens)
        return payout

    def market_maker_sell(self, tokens: int) -> int:
        sale, payout = self._fill_sell(tokens)
        self._check_cursors(sale, self.earned, self.offset)

        self.sale = sale
        self.tokens_sold -= tokens
        self.support_balance -= payout

        logger.info(
            "Market maker sell: %d tokens -> %d collateral, step %d price %d",
            tokens, payout, self.sale.step, self.sale.price,
        )
        return payout

    def return_channel_sell(self, tokens: int) -> int:
        if tokens <= 0:
            raise ZeroAmount("tokens")
        earned = self.earned.copy()
        payout = reverse_earned_convert(earned, tokens, self.sale, self.config, self.schedule)
        if payout > self.support_balance:
            raise InsufficientReserve(payout, self.support_balance)
        self._check_cursors(self.sale, earned, self.offset)

        self.earned = earned
        self.tokens_earned += tokens
        self.support_balance -= payout

        logger.info(
            "Return channel sell: %d tokens -> %d collateral, earned step %d",
            tokens, payout, self.earned.step,
        )
        return payout

    # ── Offset backing ──

    def back_offset(self, collateral: int) -> BackingResult:
        if collateral <= 0:
            raise ZeroAmount("collateral")
        unbacked = self.unbacked_tokens
        if unbacked == 0:
            raise NoUnbackedSupply()

        offset = self.offset.copy()
        backing = back_offset_convert(
            offset, collateral, unbacked, self.earned.step, self.config, self.schedule
        )
        self._check_cursors(self.sale, self.earned, offset)

        self.offset = offset
        self.offset_tokens -= backing.tokens_backed
        self.support_balance += backing.collateral_used

        logger.info(
            "Backed %d offset tokens with %d collateral, %d still unbacked",
            backing.tokens_backed, backing.collateral_used, self.unbacked_tokens,
        )
        return BackingResult(
            collateral_used=backing.collateral_used,
            tokens_backed=backing.tokens_backed,
            change=collateral - backing.collateral_used,
        )

    # ── Profit split ──

    def set_royalty_percent(self, party: Party, percent: int) -> int:
        party = Party(party)
        if percent < 0 or percent > PERCENTAGE_DIVISOR:
            raise ProfitShareError(f"percent must be between 0 and {PERCENTAGE_DIVISOR}")
        # The owner may only hand more to the royalty party, the royalty party may only give up share
        if party is Party.OWNER and percent <= self.royalty_profit_percent:
            raise ProfitShareError(
                f"owner can only raise the royalty share above {self.royalty_profit_percent}"
            )
        if party is Party.ROYALTY and percent >= self.royalty_profit_percent:
            raise ProfitShareError(
                f"royalty party can only lower its share below {self.royalty_profit_percent}"
            )
        logger.info("Royalty share %d -> %d (by %s)", self.royalty_profit_percent, percent, party.value)
        self.royalty_profit_percent = percent
        return percent

    def claim_profit(self, party: Party) -> int:
        party = Party(party)
        if party is Party.OWNER:
            amount, self.owner_profit = self.owner_profit, 0
        else:
            amount, self.royalty_profit = self.royalty_profit, 0
        if amount == 0:
            raise ZeroAmount(f"{party.value} profit")
        logger.info("Claimed %d profit for %s", amount, party.value)
        return amount

    # ── Reset ──

    def withdraw_all_and_reset(self) -> WithdrawalResult:
        """Withdraw every pool token and the whole reserve, then restart at tier 0."""
        result = WithdrawalResult(tokens=self.pool_balance, support=self.support_balance)
        self.sale = StepCursor.genesis(self.config)
        self.earned = StepCursor.genesis(self.config)
        self.offset = StepCursor.genesis(self.config)
        self.pool_balance = 0
        self.tokens_sold = 0
        self.tokens_earned = 0
        self.offset_tokens = 0
        self.support_balance = 0
        logger.warning("Withdrew %d tokens and %d support; curve reset", result.tokens, result.support)
        return result

    # ── Invariants & persistence ──

    def check_invariants(self) -> None:
        self._check_cursors(self.sale, self.earned, self.offset)

    @staticmethod
    def _check_cursors(sale: StepCursor, earned: StepCursor, offset: StepCursor) -> None:
        sale.check("sale")
        earned.check("earned")
        offset.check("offset")
        if earned.step > sale.step:
            raise CursorInvariantError(
                f"earned step {earned.step} is ahead of sale step {sale.step}"
            )

    def snapshot(self) -> LedgerState:
        return LedgerState(
            sale=self.sale.to_state(),
            earned=self.earned.to_state(),
            offset=self.offset.to_state(),
            pool_balance=self.pool_balance,
            tokens_sold=self.tokens_sold,
            tokens_earned=self.tokens_earned,
            offset_tokens=self.offset_tokens,
            support_balance=self.support_balance,
            royalty_profit_percent=self.royalty_profit_percent,
            owner_profit=self.owner_profit,
            royalty_profit=self.royalty_profit,
        )

    @classmethod
    def from_snapshot(cls, config: CurveConfig, state: LedgerState) -> "CurveLedger":
        ledger = cls(config.model_copy(update={"offset_tokens": 0}))
        ledger.config = config
        ledger.sale = StepCursor.from_state(state.sale)
        ledger.earned = StepCursor.from_state(state.earned)
        ledger.offset = StepCursor.from_state(state.offset)
        ledger.pool_balance = state.pool_balance
        ledger.tokens_sold = state.tokens_sold
        ledger.tokens_earned = state.tokens_earned
        ledger.offset_tokens = state.offset_tokens
        ledger.support_balance = state.support_balance
        ledger.royalty_profit_percent = state.royalty_profit_percent
        ledger.owner_profit = state.owner_profit
        ledger.royalty_profit = state.royalty_profit
        ledger.check_invariants()
        return ledger

    def describe(self) -> Dict[str, object]:
        state = self.snapshot().model_dump()
        state.update(
            current_price=self.current_price,
            current_step=self.current_step,
            available_tokens=self.available_tokens,
            sellable_tokens=self.sellable_tokens,
            unbacked_tokens=self.unbacked_tokens,
        )
        return state
