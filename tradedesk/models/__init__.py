"""Database models."""

from tradedesk.models.user import User
from tradedesk.models.account import TradingAccount
from tradedesk.models.bot import TradingBot
from tradedesk.models.trade import Trade
from tradedesk.models.trading_log import TradingLog

__all__ = [
    "User",
    "TradingAccount",
    "TradingBot",
    "Trade",
    "TradingLog",
]
