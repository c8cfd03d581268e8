"""Result shapes returned by the account services.

Every public service function returns one of these instead of raising; the
routers hand them straight to the dashboard, which renders `message`.
Serialized field names are camelCase.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ServiceResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str


class OperationResult(ServiceResult):
    warnings: list[str] = Field(default_factory=list)


class ConnectionResult(ServiceResult):
    simulated: bool = False


class PermissionResult(ServiceResult):
    permissions: list[str] | None = None
    simulated: bool = False


class CredentialsResult(ServiceResult):
    trading_enabled: bool | None = None


class SyncResult(ServiceResult):
    real_trading_enabled: bool | None = None
    simulated: bool = False


class Recommendations(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    is_small_balance: bool
    recommended_pairs: list[str]
    max_risk_per_trade: float
    recommended_leverage: float
    take_profit: float
    stop_loss: float
    min_order_size: float


class OptimizationResult(ServiceResult):
    recommendations: Recommendations | None = None


class RecommendedSettings(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_risk_per_trade: float
    recommended_pairs: list[str]


class AccountAnalysisResult(ServiceResult):
    is_real_trading: bool = False
    affects_real_money: bool = False
    account_id: int | None = None
    trading_permissions: list[str] | None = None
    recommended_settings: RecommendedSettings | None = None
    warnings: list[str] = Field(default_factory=list)


class VerificationResult(ServiceResult):
    order_status: str | None = None


class OrderResult(ServiceResult):
    order_id: str | None = None
    trade_id: int | None = None
    status: str | None = None
    price: float | None = None
    verified: bool | None = None
    verification_message: str | None = None
    order_status: str | None = None
    simulated: bool = False
    raw: dict[str, Any] | None = None


class BotResult(ServiceResult):
    bot_id: int | None = None
    warnings: list[str] = Field(default_factory=list)
