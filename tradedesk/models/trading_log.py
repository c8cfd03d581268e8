"""TradingLog model: append-only audit trail of state-changing operations."""

from datetime import datetime, timezone
from typing import Any

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON


class TradingLog(SQLModel, table=True):
    __tablename__ = "trading_logs"

    id: int | None = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="trading_accounts.id", index=True, ondelete="CASCADE")
    bot_id: int | None = Field(default=None, foreign_key="trading_bots.id", index=True, ondelete="SET NULL")
    log_type: str = "info"  # "info", "success", "warning", "error"
    message: str
    details: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
