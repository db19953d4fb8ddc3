import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request

from capital_curve_app.errors import CurveError
from capital_curve_app.schemas import (
    ClaimInput,
    CollateralInput,
    CurveTableInput,
    ProfitShareInput,
    TokenInput,
)
from capital_curve_app.services.ledger import CurveLedger, Party
from capital_curve_app.services.schedule import compute_curve_table


logger = logging.getLogger(__name__)

router = APIRouter()


def _ledger(request: Request) -> CurveLedger:
    return request.app.state.ledger


def _rejected(exc: CurveError) -> HTTPException:
    logger.warning("Rejected: %s", exc)
    return HTTPException(status_code=exc.status_code, detail=str(exc))


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/state")
async def api_state(request: Request):
    return _ledger(request).describe()


@router.post("/buy")
async def api_buy(data: CollateralInput, request: Request):
    try:
        result = _ledger(request).buy(data.collateral)
    except CurveError as exc:
        raise _rejected(exc)
    return result._asdict()


@router.post("/quote/buy")
async def api_quote_buy(data: CollateralInput, request: Request):
    try:
        result = _ledger(request).quote_buy(data.collateral)
    except CurveError as exc:
        raise _rejected(exc)
    return result._asdict()


@router.post("/sell")
async def api_sell(data: TokenInput, request: Request):
    try:
        payout = _ledger(request).market_maker_sell(data.tokens)
    except CurveError as exc:
        raise _rejected(exc)
    return {"collateral_out": payout}


@router.post("/quote/sell")
async def api_quote_sell(data: TokenInput, request: Request):
    try:
        payout = _ledger(request).quote_sell(data.tokens)
    except CurveError as exc:
        raise _rejected(exc)
    return {"collateral_out": payout}


@router.post("/return-sell")
async def api_return_sell(data: TokenInput, request: Request):
    try:
        payout = _ledger(request).return_channel_sell(data.tokens)
    except CurveError as exc:
        raise _rejected(exc)
    return {"collateral_out": payout}


@router.post("/back-offset")
async def api_back_offset(data: CollateralInput, request: Request):
    try:
        result = _ledger(request).back_offset(data.collateral)
    except CurveError as exc:
        raise _rejected(exc)
    return result._asdict()


@router.post("/deposit")
async def api_deposit(data: TokenInput, request: Request):
    try:
        balance = _ledger(request).deposit_tokens(data.tokens)
    except CurveError as exc:
        raise _rejected(exc)
    return {"pool_balance": balance}


@router.post("/profit-share")
async def api_profit_share(data: ProfitShareInput, request: Request):
    try:
        percent = _ledger(request).set_royalty_percent(Party(data.party), data.percent)
    except CurveError as exc:
        raise _rejected(exc)
    return {"royalty_profit_percent": percent}


@router.post("/claim")
async def api_claim(data: ClaimInput, request: Request):
    try:
        amount = _ledger(request).claim_profit(Party(data.party))
    except CurveError as exc:
        raise _rejected(exc)
    return {"party": data.party, "amount": amount}


@router.post("/reset")
async def api_reset(request: Request):
    return _ledger(request).withdraw_all_and_reset()._asdict()


@router.post("/curve")
async def api_curve(data: CurveTableInput, request: Request):
    config = _ledger(request).config
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, compute_curve_table, config, data.steps)
