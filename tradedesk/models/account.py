"""TradingAccount model: one brokerage credential set and its last known state."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field

from tradedesk.utils.constants import METATRADER_PLATFORMS


class TradingAccount(SQLModel, table=True):
    __tablename__ = "trading_accounts"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="profiles.id", index=True)
    name: str
    platform: str = "binance"  # "binance", "bybit", "kucoin", "mt4", "mt5"

    # API key platforms
    api_key: str | None = None
    api_secret_encrypted: str | None = None  # Fernet-encrypted
    # MetaTrader platforms
    mt_login: str | None = None
    mt_password_encrypted: str | None = None  # Fernet-encrypted
    mt_server: str | None = None

    # Snapshot written by the account sync
    currency: str = "USDT"
    balance: float | None = None
    equity: float | None = None
    leverage: float = 1.0
    last_sync_time: datetime | None = None

    trading_mode: str = "demo"  # "real" or "demo"; only the trading-mode controller sets "real"
    connection_status: bool = False
    is_api_verified: bool = False

    risk_level: str = "medium"  # "low", "medium", "high"
    max_drawdown: float = 20.0  # percent
    daily_profit_target: float = 2.0  # percent

    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_metatrader(self) -> bool:
        return self.platform in METATRADER_PLATFORMS

    @property
    def has_credentials(self) -> bool:
        if self.is_metatrader:
            return bool(self.mt_login and self.mt_password_encrypted)
        return bool(self.api_key and self.api_secret_encrypted)

    @property
    def is_live_ready(self) -> bool:
        """Verified and connected: the state required for real trading."""
        return self.is_api_verified and self.connection_status
