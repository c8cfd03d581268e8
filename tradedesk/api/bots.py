"""Trading bots API."""

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from tradedesk.api.deps import get_current_user, get_gateway_config, get_owned_bot, owned_account
from tradedesk.database import get_session
from tradedesk.models.account import TradingAccount
from tradedesk.models.bot import TradingBot
from tradedesk.models.user import User
from tradedesk.schemas.bot import BotCreate, BotRead, BotUpdate
from tradedesk.schemas.results import BotResult
from tradedesk.services import bots
from tradedesk.services.gateway import GatewayConfig
from tradedesk.services.strategies import STRATEGY_IDS, get_strategy, list_strategies

router = APIRouter(prefix="/api/bots", tags=["bots"], dependencies=[Depends(get_current_user)])


@router.get("/strategies")
def strategies():
    return [{"id": s.id, "name": s.name, "description": s.description} for s in list_strategies()]


@router.get("/strategies/{strategy_id}")
def strategy_settings(strategy_id: str):
    if strategy_id not in STRATEGY_IDS:
        raise HTTPException(status_code=404, detail="Strategy not found")
    strategy = get_strategy(strategy_id)
    return {
        "id": strategy.id,
        "name": strategy.name,
        "description": strategy.description,
        "settings": strategy.settings.to_dict(),
    }


@router.get("", response_model=list[BotRead])
def list_bots(
    account_id: int | None = None,
    status: str | None = None,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    stmt = (
        select(TradingBot)
        .join(TradingAccount, TradingAccount.id == TradingBot.account_id)
        .where(TradingAccount.user_id == user.id)
        .order_by(TradingBot.created_at.desc())
    )
    if account_id is not None:
        stmt = stmt.where(TradingBot.account_id == account_id)
    if status is not None:
        stmt = stmt.where(TradingBot.status == status)
    return session.exec(stmt).all()


@router.post("", response_model=BotResult, status_code=201)
def create_bot(
    data: BotCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    owned_account(session, user, data.account_id)
    return bots.create_bot(session, data)


@router.get("/{bot_id}", response_model=BotRead)
def get_bot(bot: TradingBot = Depends(get_owned_bot)):
    return bot


@router.put("/{bot_id}", response_model=BotRead)
def update_bot(
    data: BotUpdate,
    bot: TradingBot = Depends(get_owned_bot),
    session: Session = Depends(get_session),
):
    return bots.update_bot(session, bot.id, data)


@router.delete("/{bot_id}", response_model=BotResult)
async def delete_bot(
    bot: TradingBot = Depends(get_owned_bot),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await bots.delete_bot(session, bot.id, config)


@router.post("/{bot_id}/start", response_model=BotResult)
async def start_bot(
    bot: TradingBot = Depends(get_owned_bot),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await bots.start_bot(session, bot.id, config)


@router.post("/{bot_id}/stop", response_model=BotResult)
async def stop_bot(
    bot: TradingBot = Depends(get_owned_bot),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await bots.stop_bot(session, bot.id, config)


@router.post("/{bot_id}/pause", response_model=BotResult)
def pause_bot(
    bot: TradingBot = Depends(get_owned_bot),
    session: Session = Depends(get_session),
):
    return bots.pause_bot(session, bot.id)


@router.get("/{bot_id}/status")
def bot_status(
    bot: TradingBot = Depends(get_owned_bot),
    session: Session = Depends(get_session),
):
    return bots.get_bot_status(session, bot.id)
