"""System API: health check, trading logs, service status."""

from fastapi import APIRouter, Depends
from sqlmodel import Session, func, select

from tradedesk.api.deps import get_current_user
from tradedesk.config import settings
from tradedesk.database import SCHEMA_VERSION, get_session
from tradedesk.models.account import TradingAccount
from tradedesk.models.bot import TradingBot
from tradedesk.models.trade import Trade
from tradedesk.models.trading_log import TradingLog
from tradedesk.models.user import User

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/status")
def service_status(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Counts for the current user plus the gateway behaviour switches."""
    account_ids = select(TradingAccount.id).where(TradingAccount.user_id == user.id)
    accounts = session.exec(
        select(func.count()).select_from(TradingAccount).where(TradingAccount.user_id == user.id)
    ).one()
    real_accounts = session.exec(
        select(func.count()).select_from(TradingAccount).where(
            TradingAccount.user_id == user.id, TradingAccount.trading_mode == "real"
        )
    ).one()
    active_bots = session.exec(
        select(func.count()).select_from(TradingBot).where(
            TradingBot.account_id.in_(account_ids), TradingBot.status == "active"
        )
    ).one()
    open_trades = session.exec(
        select(func.count()).select_from(Trade).where(
            Trade.account_id.in_(account_ids), Trade.status == "open"
        )
    ).one()
    return {
        "schema_version": SCHEMA_VERSION,
        "accounts": accounts,
        "real_accounts": real_accounts,
        "active_bots": active_bots,
        "open_trades": open_trades,
        "simulate_on_gateway_failure": settings.simulate_on_gateway_failure,
        "real_mode_policy": settings.real_mode_policy,
    }


@router.get("/logs")
def trading_logs(
    account_id: int | None = None,
    bot_id: int | None = None,
    log_type: str | None = None,
    limit: int = 100,
    offset: int = 0,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    stmt = (
        select(TradingLog)
        .join(TradingAccount, TradingAccount.id == TradingLog.account_id)
        .where(TradingAccount.user_id == user.id)
        .order_by(TradingLog.created_at.desc(), TradingLog.id.desc())
    )
    if account_id is not None:
        stmt = stmt.where(TradingLog.account_id == account_id)
    if bot_id is not None:
        stmt = stmt.where(TradingLog.bot_id == bot_id)
    if log_type is not None:
        stmt = stmt.where(TradingLog.log_type == log_type)
    stmt = stmt.offset(offset).limit(limit)
    return session.exec(stmt).all()
