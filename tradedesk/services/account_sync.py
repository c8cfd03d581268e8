"""Account synchronizer: reconcile a TradingAccount row with live broker state.

Sync order: connection test, account snapshot, permission check. When the
snapshot cannot be fetched and simulation is enabled, the persisted
balance and equity are kept as they are and only the sync time and
connection flag move, so repeated syncs never drift.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from tradedesk.models.account import TradingAccount
from tradedesk.schemas.results import SyncResult
from tradedesk.services import gateway, trading_log
from tradedesk.services.connection import get_account_info, test_connection, verify_trading_permissions
from tradedesk.services.credentials import get_account

logger = logging.getLogger(__name__)


async def sync_account(
    session: Session,
    account_id: int,
    config: gateway.GatewayConfig | None = None,
) -> SyncResult:
    config = config or gateway.GatewayConfig.from_settings()
    logger.info(f"Syncing account {account_id}")

    account = get_account(session, account_id)
    if not account:
        return SyncResult(success=False, message="Account not found")

    try:
        return await _sync(session, account, config)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Account sync for {account_id} failed to persist: {e}")
        return SyncResult(success=False, message=f"Failed to sync account: {e}")


async def _sync(session: Session, account: TradingAccount, config: gateway.GatewayConfig) -> SyncResult:
    connection = await test_connection(session, account.id, config)
    if not connection.success:
        trading_log.record(
            session, account.id, f"Account sync failed: {connection.message}", log_type="error"
        )
        session.commit()
        return SyncResult(success=False, message=connection.message)

    info = await get_account_info(session, account.id, config)
    now = datetime.now(timezone.utc)

    if not info.get("success"):
        if not config.simulate_on_failure:
            message = f"Failed to sync account: {info.get('message') or 'unknown error'}"
            trading_log.record(session, account.id, message, log_type="error")
            session.commit()
            return SyncResult(success=False, message=message)

        # keep what we have; seed only an account that was never synced
        if account.balance is None:
            account.balance = config.default_simulated_balance
        if account.equity is None:
            account.equity = account.balance
        account.last_sync_time = now
        account.connection_status = True
        session.add(account)
        trading_log.record(
            session,
            account.id,
            "Account synced with simulated data (gateway unavailable)",
            log_type="warning",
            details={"balance": account.balance, "equity": account.equity},
        )
        session.commit()
        return SyncResult(
            success=True,
            message="Account synced with simulated data (gateway unavailable)",
            real_trading_enabled=account.trading_mode == "real",
            simulated=True,
        )

    account.balance = float(info.get("balance") or 0)
    account.equity = float(info.get("equity") or account.balance)
    if info.get("leverage"):
        account.leverage = float(info["leverage"])
    account.last_sync_time = now
    account.connection_status = True
    session.add(account)
    session.commit()

    permissions = await verify_trading_permissions(session, account.id, config)
    trading_log.record(
        session,
        account.id,
        "Account synced successfully",
        log_type="success",
        details={
            "balance": account.balance,
            "equity": account.equity,
            "permissions": permissions.permissions,
        },
    )
    session.commit()

    return SyncResult(
        success=True,
        message="Account synced successfully",
        real_trading_enabled=permissions.success,
        simulated=connection.simulated,
    )


async def read_balance(
    session: Session,
    account: TradingAccount,
    config: gateway.GatewayConfig | None = None,
) -> tuple[float | None, str]:
    """Current balance and where it came from: "live", "persisted" or "unavailable"."""
    config = config or gateway.GatewayConfig.from_settings()
    info = await get_account_info(session, account.id, config)
    if info.get("success") and info.get("balance") is not None:
        return float(info["balance"]), "live"
    if config.simulate_on_failure and account.balance is not None:
        return float(account.balance), "persisted"
    return None, "unavailable"
