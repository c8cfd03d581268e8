"""Pydantic schemas for order submission and trade management."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from tradedesk.utils.constants import OrderType, TradeSide


class PlaceOrderRequest(BaseModel):
    account_id: int
    symbol: str = Field(min_length=1, max_length=32)
    side: TradeSide
    type: OrderType = "market"
    quantity: float = Field(gt=0)
    price: float | None = Field(default=None, gt=0)
    stop_price: float | None = Field(default=None, gt=0)
    time_in_force: Literal["GTC", "IOC", "FOK"] | None = None
    stop_loss: float | None = Field(default=None, gt=0)
    take_profit: float | None = Field(default=None, gt=0)
    bot_id: int | None = None

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        text = value.strip().upper()
        if not text:
            raise ValueError("must not be empty")
        return text

    @model_validator(mode="after")
    def _limit_needs_price(self):
        if self.type == "limit" and self.price is None:
            raise ValueError("limit orders require a price")
        return self


class ExecuteTradeRequest(BaseModel):
    account_id: int
    symbol: str = Field(min_length=1, max_length=32)
    type: TradeSide
    lot_size: float = Field(gt=0)
    stop_loss: float | None = Field(default=None, gt=0)
    take_profit: float | None = Field(default=None, gt=0)
    bot_id: int | None = None

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        text = value.strip().upper()
        if not text:
            raise ValueError("must not be empty")
        return text


class CloseTradeRequest(BaseModel):
    exit_price: float | None = Field(default=None, gt=0)  # paper trades only


class StopLossUpdate(BaseModel):
    stop_price: float = Field(gt=0)
    order_id: str | None = None  # existing stop order to replace


class TradeRead(BaseModel):
    id: int
    account_id: int
    bot_id: int | None
    symbol: str
    side: str
    order_type: str
    order_id: str | None
    entry_price: float
    exit_price: float | None
    lot_size: float
    stop_loss: float | None
    take_profit: float | None
    status: str
    pnl: float | None
    is_simulated: bool
    created_at: datetime
    closed_at: datetime | None

    model_config = {"from_attributes": True}
