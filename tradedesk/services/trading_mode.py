"""Trading-mode controller: the only path that sets an account to real trading."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from tradedesk.schemas.results import OperationResult
from tradedesk.services import gateway, trading_log
from tradedesk.services.connection import verify_trading_permissions
from tradedesk.services.credentials import get_account
from tradedesk.utils.constants import TradingMode

logger = logging.getLogger(__name__)

MODE_LABELS = {"real": "real trading", "demo": "demo mode"}


async def change_trading_mode(
    session: Session,
    account_id: int,
    mode: TradingMode,
    config: gateway.GatewayConfig | None = None,
) -> OperationResult:
    """Switch an account between real and demo trading.

    With the "warn" policy the switch always persists and any readiness
    problems come back as warnings. With "block" a switch to real is
    refused unless the account is verified, connected and permitted to
    trade.
    """
    config = config or gateway.GatewayConfig.from_settings()
    if mode not in MODE_LABELS:
        return OperationResult(success=False, message=f"Invalid trading mode: {mode}")

    account = get_account(session, account_id)
    if not account:
        return OperationResult(success=False, message="Account not found")

    logger.info(f"Changing trading mode to {mode} for account {account_id}")
    warnings: list[str] = []

    if mode == "real":
        if not account.is_live_ready:
            warnings.append("Account API credentials are not verified or the account is not connected")
        permissions = await verify_trading_permissions(session, account_id, config)
        if not permissions.success:
            warnings.append(f"Trading permissions may be restricted: {permissions.message}")

        if warnings and config.real_mode_policy == "block":
            trading_log.record(
                session,
                account_id,
                "Switch to real trading refused",
                log_type="warning",
                details={"reasons": warnings},
            )
            session.commit()
            return OperationResult(
                success=False,
                message="Cannot switch to real trading: " + "; ".join(warnings),
                warnings=warnings,
            )

    previous = account.trading_mode
    account.trading_mode = mode
    session.add(account)
    trading_log.record(
        session,
        account_id,
        f"Trading mode changed from {previous} to {mode}",
        log_type="warning" if mode == "real" else "info",
        details={"previous": previous, "mode": mode, "warnings": warnings},
    )
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to persist trading mode for account {account_id}: {e}")
        return OperationResult(success=False, message=f"Failed to change trading mode: {e}")

    await gateway.notify_gateway(
        gateway.GatewayAction.SET_TRADING_MODE, account, {"mode": mode}, config
    )

    message = f"Trading mode changed to {MODE_LABELS[mode]}"
    if warnings:
        message += ", but " + "; ".join(warnings)
    else:
        message += " successfully"
    return OperationResult(success=True, message=message, warnings=warnings)
