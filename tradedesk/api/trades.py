"""Trades API: order submission and trade management."""

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from tradedesk.api.deps import get_current_user, get_gateway_config, get_owned_trade, owned_account
from tradedesk.database import get_session
from tradedesk.models.account import TradingAccount
from tradedesk.models.trade import Trade
from tradedesk.models.user import User
from tradedesk.schemas.order import (
    CloseTradeRequest,
    ExecuteTradeRequest,
    PlaceOrderRequest,
    StopLossUpdate,
    TradeRead,
)
from tradedesk.schemas.results import OrderResult, VerificationResult
from tradedesk.services import orders
from tradedesk.services.gateway import GatewayConfig

router = APIRouter(prefix="/api/trades", tags=["trades"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=list[TradeRead])
def list_trades(
    account_id: int | None = None,
    bot_id: int | None = None,
    status: str | None = None,
    symbol: str | None = None,
    limit: int = 100,
    offset: int = 0,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    stmt = (
        select(Trade)
        .join(TradingAccount, TradingAccount.id == Trade.account_id)
        .where(TradingAccount.user_id == user.id)
        .order_by(Trade.created_at.desc())
    )
    if account_id is not None:
        stmt = stmt.where(Trade.account_id == account_id)
    if bot_id is not None:
        stmt = stmt.where(Trade.bot_id == bot_id)
    if status is not None:
        stmt = stmt.where(Trade.status == status)
    if symbol is not None:
        stmt = stmt.where(Trade.symbol == symbol.upper())
    stmt = stmt.offset(offset).limit(limit)
    return session.exec(stmt).all()


@router.post("/orders", response_model=OrderResult)
async def place_order(
    data: PlaceOrderRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    owned_account(session, user, data.account_id)
    return await orders.place_order(session, data, config)


@router.get("/orders/{order_id}/verify", response_model=VerificationResult)
async def verify_order(
    order_id: str,
    account_id: int,
    symbol: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    owned_account(session, user, account_id)
    return await orders.verify_order_execution(session, account_id, order_id, symbol.upper(), config)


@router.post("/orders/{order_id}/cancel", response_model=OrderResult)
async def cancel_order(
    order_id: str,
    account_id: int,
    symbol: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    owned_account(session, user, account_id)
    return await orders.cancel_order(session, account_id, order_id, symbol, config)


@router.post("/execute", response_model=OrderResult)
async def execute_trade(
    data: ExecuteTradeRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    owned_account(session, user, data.account_id)
    return await orders.execute_trade(session, data, config)


@router.get("/{trade_id}", response_model=TradeRead)
def get_trade(trade: Trade = Depends(get_owned_trade)):
    return trade


@router.post("/{trade_id}/close", response_model=OrderResult)
async def close_trade(
    data: CloseTradeRequest | None = None,
    trade: Trade = Depends(get_owned_trade),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    exit_price = data.exit_price if data else None
    return await orders.close_trade(session, trade.id, exit_price, config)


@router.put("/{trade_id}/stop-loss", response_model=OrderResult)
async def update_stop_loss(
    data: StopLossUpdate,
    trade: Trade = Depends(get_owned_trade),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await orders.update_stop_loss(session, trade.id, data, config)
