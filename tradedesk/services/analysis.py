"""Risk recommender: balance-tier recommendations and real-trading readiness."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from tradedesk.schemas.results import (
    AccountAnalysisResult,
    OptimizationResult,
    Recommendations,
    RecommendedSettings,
)
from tradedesk.services import gateway
from tradedesk.services.account_sync import read_balance
from tradedesk.services.connection import test_connection, verify_trading_permissions
from tradedesk.services.credentials import get_account
from tradedesk.services.platforms import recommended_pairs_for_small_balance

logger = logging.getLogger(__name__)

SMALL_BALANCE = 100.0
MIN_ORDER_SIZE = 5.0

REAL_TRADING_WARNINGS = [
    "Warning: this is real trading and will affect your actual funds!",
    "Make sure risk levels are set appropriately before enabling automated trading.",
    "We recommend starting with a small amount to confirm the bot's behaviour.",
]


def recommend_for_balance(balance: float, min_order_size: float = MIN_ORDER_SIZE) -> Recommendations:
    """Risk recommendations for a balance in quote currency. Pure."""
    if balance < 10:
        max_risk = 1.0
    elif balance < 50:
        max_risk = 2.0
    else:
        max_risk = 3.0

    if balance < 20:
        leverage = 5.0
    elif balance < 50:
        leverage = 3.0
    else:
        leverage = 2.0

    return Recommendations(
        is_small_balance=balance < SMALL_BALANCE,
        recommended_pairs=recommended_pairs_for_small_balance(),
        max_risk_per_trade=max_risk,
        recommended_leverage=leverage,
        take_profit=1.5 if balance < 50 else 2.5,
        stop_loss=1.0 if balance < 50 else 2.0,
        min_order_size=min_order_size,
    )


async def analyze_account_for_optimization(
    session: Session,
    account_id: int,
    config: gateway.GatewayConfig | None = None,
) -> OptimizationResult:
    config = config or gateway.GatewayConfig.from_settings()
    account = get_account(session, account_id)
    if not account:
        return OptimizationResult(success=False, message="Account not found")

    balance, source = await read_balance(session, account, config)
    if balance is None:
        return OptimizationResult(
            success=False,
            message="Failed to analyze account: could not get account information",
        )

    recommendations = recommend_for_balance(balance, config.min_order_size)
    if recommendations.is_small_balance:
        summary = "This is a small balance account and has been optimized for micro-trading."
    else:
        summary = "This account has sufficient balance for standard trading."
    if source == "persisted":
        summary += " (based on the last synced balance)"

    return OptimizationResult(
        success=True,
        message=f"Account analyzed successfully. {summary}",
        recommendations=recommendations,
    )


async def perform_real_trading_analysis(
    session: Session,
    account_id: int,
    config: gateway.GatewayConfig | None = None,
) -> AccountAnalysisResult:
    """Is this account about to trade real money? Any failure answers no."""
    config = config or gateway.GatewayConfig.from_settings()
    logger.info(f"Analyzing account {account_id} for real trading readiness")

    try:
        account = get_account(session, account_id)
        if not account:
            return AccountAnalysisResult(
                success=False,
                message="Account not found",
                account_id=account_id,
                warnings=["Account not found"],
            )

        connection = await test_connection(session, account_id, config)
        if not connection.success:
            return AccountAnalysisResult(
                success=False,
                message="Connection to the trading platform is unavailable. Check the API keys.",
                account_id=account_id,
                warnings=["Failed to connect to the trading platform"],
            )

        permissions = await verify_trading_permissions(session, account_id, config)
        balance, _ = await read_balance(session, account, config)
        recommendations = (
            recommend_for_balance(balance, config.min_order_size) if balance is not None else None
        )

        session.refresh(account)
        is_real_mode = account.trading_mode == "real"
    except (gateway.GatewayError, SQLAlchemyError, ValueError) as e:
        logger.error(f"Real trading analysis for account {account_id} failed: {e}")
        return AccountAnalysisResult(
            success=False,
            message=f"Account analysis failed: {e}",
            account_id=account_id,
            warnings=["Failed to analyze the account's real trading readiness"],
        )

    is_real_trading = connection.success and permissions.success and is_real_mode
    affects_real_money = is_real_trading and (balance or 0) > 0

    if is_real_trading:
        message = "Account is ready for real trading. Your actual funds will be used!"
        warnings = list(REAL_TRADING_WARNINGS)
    else:
        message = "Account is not ready for real trading yet."
        warnings = ["The account is not currently configured for real trading."]
        if not permissions.success:
            warnings.append(f"Trading permissions: {permissions.message}")

    return AccountAnalysisResult(
        success=True,
        message=message,
        is_real_trading=is_real_trading,
        affects_real_money=affects_real_money,
        account_id=account_id,
        trading_permissions=permissions.permissions,
        recommended_settings=RecommendedSettings(
            max_risk_per_trade=recommendations.max_risk_per_trade,
            recommended_pairs=recommendations.recommended_pairs,
        ) if recommendations else None,
        warnings=warnings,
    )
