"""Trading bot lifecycle: create, start, pause, stop, delete and performance."""

import logging
from datetime import datetime, timezone

from sqlmodel import Session, select

from tradedesk.models.account import TradingAccount
from tradedesk.models.bot import TradingBot
from tradedesk.models.trade import Trade
from tradedesk.models.trading_log import TradingLog
from tradedesk.schemas.bot import BotCreate, BotUpdate
from tradedesk.schemas.results import BotResult
from tradedesk.services import gateway, trading_log
from tradedesk.services.credentials import get_account
from tradedesk.services.strategies import adjust_for_risk, auto_settings_for, get_strategy

logger = logging.getLogger(__name__)

DEFAULT_MAX_OPEN_TRADES = 5


def create_bot(session: Session, payload: BotCreate) -> BotResult:
    account = get_account(session, payload.account_id)
    if not account:
        return BotResult(success=False, message="Account not found")

    strategy = get_strategy(payload.strategy_type)
    settings = adjust_for_risk(strategy.settings, payload.risk_level)

    bot = TradingBot(
        account_id=account.id,
        name=payload.name,
        description=payload.description or f"Automated trading bot using the {strategy.name} strategy",
        strategy_type=strategy.id,
        asset_class=payload.asset_class,
        trading_pairs=payload.trading_pairs,
        risk_level=payload.risk_level,
        max_open_trades=payload.max_open_trades or settings.max_open_trades or DEFAULT_MAX_OPEN_TRADES,
        trading_mode=account.trading_mode,
        settings=settings.to_dict(),
        auto_management=payload.auto_management,
        auto_settings=auto_settings_for(payload.risk_level) if payload.auto_management else None,
    )
    session.add(bot)
    session.flush()
    trading_log.record(
        session,
        account.id,
        f"Bot '{bot.name}' created with strategy {strategy.id}",
        bot_id=bot.id,
        details={"risk_level": bot.risk_level, "trading_mode": bot.trading_mode},
    )
    session.commit()
    session.refresh(bot)

    warnings = []
    if bot.trading_mode == "real":
        warnings.append("This bot will trade with real funds")
    return BotResult(success=True, message="Trading bot created successfully", bot_id=bot.id, warnings=warnings)


def update_bot(session: Session, bot_id: int, payload: BotUpdate) -> TradingBot | None:
    bot = session.get(TradingBot, bot_id)
    if not bot:
        return None
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(bot, key, value)
    session.add(bot)
    session.commit()
    session.refresh(bot)
    return bot


def _readiness_error(account: TradingAccount) -> str | None:
    if account.is_metatrader:
        if not account.connection_status:
            return "MetaTrader account is not connected, set up the connection first"
    elif not account.is_api_verified:
        return "API keys are not verified, set up the API keys first"
    return None


async def start_bot(
    session: Session,
    bot_id: int,
    config: gateway.GatewayConfig | None = None,
) -> BotResult:
    bot = session.get(TradingBot, bot_id)
    if not bot:
        return BotResult(success=False, message="Bot not found")
    account = session.get(TradingAccount, bot.account_id)
    if not account:
        return BotResult(success=False, message="Account not found", bot_id=bot_id)

    problem = _readiness_error(account)
    if problem:
        return BotResult(success=False, message=problem, bot_id=bot_id)

    warnings = []
    if account.trading_mode == "real":
        warnings.append("Bot is trading with real funds on this account")

    bot.status = "active"
    bot.last_activity = datetime.now(timezone.utc)
    session.add(bot)
    trading_log.record(
        session,
        account.id,
        "Bot activated",
        bot_id=bot.id,
        details={"action": "start", "trading_mode": account.trading_mode},
    )
    session.commit()

    notified = await gateway.notify_gateway(
        gateway.GatewayAction.START_BOT, account, {"botId": bot.id}, config
    )
    if not notified:
        warnings.append("Broker gateway was not notified; the bot runs locally only")

    logger.info(f"Bot {bot.id} started on account {account.id}")
    return BotResult(success=True, message="Trading bot started successfully", bot_id=bot.id, warnings=warnings)


async def stop_bot(
    session: Session,
    bot_id: int,
    config: gateway.GatewayConfig | None = None,
) -> BotResult:
    bot = session.get(TradingBot, bot_id)
    if not bot:
        return BotResult(success=False, message="Bot not found")
    if bot.status == "stopped":
        return BotResult(success=True, message="Bot is already stopped", bot_id=bot.id)

    bot.status = "stopped"
    bot.last_activity = datetime.now(timezone.utc)
    session.add(bot)
    trading_log.record(session, bot.account_id, "Bot deactivated", bot_id=bot.id, details={"action": "stop"})
    session.commit()

    account = session.get(TradingAccount, bot.account_id)
    if account:
        await gateway.notify_gateway(gateway.GatewayAction.STOP_BOT, account, {"botId": bot.id}, config)
    logger.info(f"Bot {bot.id} stopped")
    return BotResult(success=True, message="Trading bot stopped successfully", bot_id=bot.id)


def pause_bot(session: Session, bot_id: int) -> BotResult:
    bot = session.get(TradingBot, bot_id)
    if not bot:
        return BotResult(success=False, message="Bot not found")
    if bot.status != "active":
        return BotResult(success=False, message=f"Only an active bot can be paused (status: {bot.status})", bot_id=bot.id)

    bot.status = "paused"
    bot.last_activity = datetime.now(timezone.utc)
    session.add(bot)
    trading_log.record(session, bot.account_id, "Bot paused", bot_id=bot.id, details={"action": "pause"})
    session.commit()
    return BotResult(success=True, message="Trading bot paused", bot_id=bot.id)


async def delete_bot(
    session: Session,
    bot_id: int,
    config: gateway.GatewayConfig | None = None,
) -> BotResult:
    bot = session.get(TradingBot, bot_id)
    if not bot:
        return BotResult(success=False, message="Bot not found")
    if bot.status in ("active", "paused"):
        await stop_bot(session, bot_id, config)

    account_id, name = bot.account_id, bot.name
    session.delete(bot)
    trading_log.record(session, account_id, f"Bot '{name}' deleted", details={"bot_id": bot_id})
    session.commit()
    return BotResult(success=True, message="Trading bot deleted", bot_id=bot_id)


def update_bot_performance(session: Session, bot: TradingBot, pnl: float):
    """Fold one closed trade into the bot's metrics. The caller commits."""
    bot.total_trades += 1
    if pnl > 0:
        bot.profitable_trades += 1
    bot.win_rate = round(bot.profitable_trades / bot.total_trades * 100, 2)
    bot.profit_loss = round(bot.profit_loss + pnl, 8)
    bot.last_activity = datetime.now(timezone.utc)
    session.add(bot)


def get_bot_status(session: Session, bot_id: int) -> dict | None:
    bot = session.get(TradingBot, bot_id)
    if not bot:
        return None

    recent_trades = session.exec(
        select(Trade).where(Trade.bot_id == bot_id).order_by(Trade.created_at.desc()).limit(10)
    ).all()
    logs = session.exec(
        select(TradingLog).where(TradingLog.bot_id == bot_id).order_by(TradingLog.created_at.desc()).limit(20)
    ).all()
    open_trades = session.exec(
        select(Trade.id).where(Trade.bot_id == bot_id, Trade.status == "open")
    ).all()

    return {
        "success": True,
        "bot_id": bot.id,
        "status": bot.status,
        "trading_mode": bot.trading_mode,
        "is_active": bot.status == "active",
        "last_activity": bot.last_activity,
        "performance": {
            "total_trades": bot.total_trades,
            "profitable_trades": bot.profitable_trades,
            "win_rate": bot.win_rate,
            "profit_loss": bot.profit_loss,
            "open_trades": len(open_trades),
        },
        "recent_trades": [t.model_dump() for t in recent_trades],
        "logs": [log.model_dump() for log in logs],
    }
