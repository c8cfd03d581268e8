"""Trade model: opened on order placement, immutable once closed."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class Trade(SQLModel, table=True):
    __tablename__ = "trades"

    id: int | None = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="trading_accounts.id", index=True, ondelete="CASCADE")
    bot_id: int | None = Field(default=None, foreign_key="trading_bots.id", index=True, ondelete="SET NULL")
    symbol: str
    side: str  # "buy" or "sell"
    order_type: str = "market"
    order_id: str | None = Field(default=None, index=True)
    entry_price: float
    exit_price: float | None = None
    lot_size: float
    stop_loss: float | None = None
    take_profit: float | None = None
    status: str = "open"  # "open", "closed", "cancelled"
    pnl: float | None = None
    is_simulated: bool = False  # filled on paper (demo mode)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    closed_at: datetime | None = None
