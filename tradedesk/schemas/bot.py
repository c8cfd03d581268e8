"""Pydantic schemas for TradingBot API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from tradedesk.services.strategies import STRATEGY_IDS
from tradedesk.utils.constants import ASSET_CLASSES, RiskLevel


class BotCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    account_id: int
    strategy_type: str = "smart_auto"
    asset_class: str = "cryptocurrencies"
    trading_pairs: list[str] = Field(default_factory=list, max_length=50)
    risk_level: RiskLevel = "medium"
    max_open_trades: int | None = Field(default=None, ge=1, le=100)
    description: str | None = Field(default=None, max_length=500)
    auto_management: bool = True

    @field_validator("name")
    @classmethod
    def _trim_name(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must not be empty")
        return text

    @field_validator("strategy_type")
    @classmethod
    def _validate_strategy(cls, value: str) -> str:
        if value not in STRATEGY_IDS:
            allowed = ", ".join(STRATEGY_IDS)
            raise ValueError(f"must be one of: {allowed}")
        return value

    @field_validator("asset_class")
    @classmethod
    def _validate_asset_class(cls, value: str) -> str:
        if value not in ASSET_CLASSES:
            allowed = ", ".join(ASSET_CLASSES)
            raise ValueError(f"must be one of: {allowed}")
        return value

    @field_validator("trading_pairs")
    @classmethod
    def _normalize_pairs(cls, value: list[str]) -> list[str]:
        pairs = [p.strip().upper() for p in value if p.strip()]
        return list(dict.fromkeys(pairs))


class BotUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    trading_pairs: list[str] | None = Field(default=None, max_length=50)
    max_open_trades: int | None = Field(default=None, ge=1, le=100)
    auto_management: bool | None = None

    @field_validator("trading_pairs")
    @classmethod
    def _normalize_pairs(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        pairs = [p.strip().upper() for p in value if p.strip()]
        return list(dict.fromkeys(pairs))


class BotRead(BaseModel):
    id: int
    account_id: int
    name: str
    description: str | None
    strategy_type: str
    asset_class: str
    trading_pairs: list[str]
    risk_level: str
    max_open_trades: int
    status: str
    trading_mode: str
    settings: dict[str, Any] | None
    auto_management: bool
    auto_settings: dict[str, Any] | None
    total_trades: int
    profitable_trades: int
    win_rate: float
    profit_loss: float
    last_activity: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
