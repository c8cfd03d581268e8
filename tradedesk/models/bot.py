"""TradingBot model: a strategy configuration bound to one account."""

from datetime import datetime, timezone
from typing import Any

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON


class TradingBot(SQLModel, table=True):
    __tablename__ = "trading_bots"

    id: int | None = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="trading_accounts.id", index=True, ondelete="CASCADE")
    name: str
    description: str | None = None
    strategy_type: str = "smart_auto"
    asset_class: str = "cryptocurrencies"
    trading_pairs: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    risk_level: str = "medium"
    max_open_trades: int = 5
    status: str = "stopped"  # "active", "paused", "stopped", "error"
    trading_mode: str = "demo"  # copied from the account at creation

    settings: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    auto_management: bool = True
    auto_settings: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))

    # Performance
    total_trades: int = 0
    profitable_trades: int = 0
    win_rate: float = 0.0
    profit_loss: float = 0.0

    last_activity: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
