"""Pydantic schemas for TradingAccount API.

Credentials are a tagged union keyed by platform: API key platforms carry a
key/secret pair, MetaTrader platforms carry login/password/server. Each
variant only has the fields its platform uses, and both halves of a pair are
always required together.
"""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from tradedesk.utils.constants import Platform, RiskLevel, TradingMode


def _strip_required(value: str) -> str:
    text = value.strip()
    if not text:
        raise ValueError("must not be empty")
    return text


class ApiKeyCredentials(BaseModel):
    platform: Literal["binance", "bybit", "kucoin"] = "binance"
    api_key: str = Field(min_length=1, max_length=256)
    api_secret: str = Field(min_length=1, max_length=256)

    @field_validator("api_key", "api_secret")
    @classmethod
    def _trim(cls, value: str) -> str:
        return _strip_required(value)


class MetaTraderCredentials(BaseModel):
    platform: Literal["mt4", "mt5"] = "mt5"
    login: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=256)
    server: str = Field(min_length=1, max_length=120)
    enable_demo: bool = False

    @field_validator("login", "password", "server")
    @classmethod
    def _trim(cls, value: str) -> str:
        return _strip_required(value)


BrokerCredentials = Annotated[
    Union[ApiKeyCredentials, MetaTraderCredentials],
    Field(discriminator="platform"),
]


class AccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    platform: Platform = "binance"
    credentials: BrokerCredentials | None = None
    currency: str = Field(default="USDT", min_length=1, max_length=12)
    leverage: float = Field(default=1.0, gt=0, le=500)
    risk_level: RiskLevel = "medium"
    max_drawdown: float = Field(default=20.0, ge=0, le=100)
    daily_profit_target: float = Field(default=2.0, ge=0, le=100)

    @field_validator("name")
    @classmethod
    def _trim_name(cls, value: str) -> str:
        return _strip_required(value)

    @model_validator(mode="after")
    def _credentials_match_platform(self):
        if self.credentials is not None and self.credentials.platform != self.platform:
            raise ValueError(
                f"credentials are for {self.credentials.platform}, account platform is {self.platform}"
            )
        return self


class AccountUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    leverage: float | None = Field(default=None, gt=0, le=500)
    risk_level: RiskLevel | None = None
    max_drawdown: float | None = Field(default=None, ge=0, le=100)
    daily_profit_target: float | None = Field(default=None, ge=0, le=100)
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def _trim_optional_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _strip_required(value)


class TradingModeChange(BaseModel):
    mode: TradingMode


class AccountRead(BaseModel):
    id: int
    user_id: int
    name: str
    platform: str
    api_key: str | None
    mt_login: str | None
    mt_server: str | None
    currency: str
    balance: float | None
    equity: float | None
    leverage: float
    trading_mode: str
    connection_status: bool
    is_api_verified: bool
    risk_level: str
    max_drawdown: float
    daily_profit_target: float
    is_active: bool
    last_sync_time: datetime | None
    created_at: datetime
    # secrets are NEVER exposed

    model_config = {"from_attributes": True}
