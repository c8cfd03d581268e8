"""Shared API dependencies."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session, select

from tradedesk.database import get_session
from tradedesk.models.account import TradingAccount
from tradedesk.models.bot import TradingBot
from tradedesk.models.trade import Trade
from tradedesk.models.user import User
from tradedesk.services.auth import decode_access_token
from tradedesk.services.gateway import GatewayConfig

bearer_scheme = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Validate JWT and return the current user."""
    username = decode_access_token(credentials.credentials)
    if username is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    user = session.exec(select(User).where(User.username == username)).first()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def get_gateway_config() -> GatewayConfig:
    return GatewayConfig.from_settings()


def owned_account(session: Session, user: User, account_id: int) -> TradingAccount:
    """Account by id if it belongs to `user`; 404 otherwise."""
    account = session.get(TradingAccount, account_id)
    if not account or account.user_id != user.id:
        raise HTTPException(status_code=404, detail="Account not found")
    return account


def get_owned_account(
    account_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TradingAccount:
    return owned_account(session, user, account_id)


def get_owned_bot(
    bot_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TradingBot:
    bot = session.get(TradingBot, bot_id)
    if not bot:
        raise HTTPException(status_code=404, detail="Bot not found")
    owned_account(session, user, bot.account_id)
    return bot


def get_owned_trade(
    trade_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Trade:
    trade = session.get(Trade, trade_id)
    if not trade:
        raise HTTPException(status_code=404, detail="Trade not found")
    owned_account(session, user, trade.account_id)
    return trade
