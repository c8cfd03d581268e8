"""Credential store: broker credential pairs on TradingAccount rows.

Secrets are Fernet-encrypted at rest. A pair is written and cleared as a
unit so an account never holds half a credential.
"""

import logging
from datetime import datetime, timezone

from sqlmodel import Session

from tradedesk.models.account import TradingAccount
from tradedesk.schemas.account import ApiKeyCredentials, MetaTraderCredentials
from tradedesk.schemas.results import ConnectionResult, CredentialsResult
from tradedesk.services import trading_log
from tradedesk.services.encryption import decrypt_secret, encrypt_secret

logger = logging.getLogger(__name__)


class MissingCredentialsError(ValueError):
    """The account has no stored credential pair."""


def get_account(session: Session, account_id: int) -> TradingAccount | None:
    return session.get(TradingAccount, account_id)


def load_credentials(account: TradingAccount) -> ApiKeyCredentials | MetaTraderCredentials:
    """Decrypt the account's credential pair into its platform variant."""
    if not account.has_credentials:
        raise MissingCredentialsError(f"Account {account.id} has no API credentials configured")
    if account.is_metatrader:
        return MetaTraderCredentials(
            platform=account.platform,
            login=account.mt_login,
            password=decrypt_secret(account.mt_password_encrypted),
            server=account.mt_server or "",
        )
    return ApiKeyCredentials(
        platform=account.platform,
        api_key=account.api_key,
        api_secret=decrypt_secret(account.api_secret_encrypted),
    )


def store_credentials(account: TradingAccount, credentials: ApiKeyCredentials | MetaTraderCredentials):
    """Write both halves of a credential pair. Marks the account unverified."""
    if credentials.platform != account.platform:
        raise ValueError(
            f"credentials are for {credentials.platform}, account platform is {account.platform}"
        )
    if isinstance(credentials, MetaTraderCredentials):
        account.mt_login = credentials.login
        account.mt_password_encrypted = encrypt_secret(credentials.password)
        account.mt_server = credentials.server
    else:
        account.api_key = credentials.api_key
        account.api_secret_encrypted = encrypt_secret(credentials.api_secret)
    account.is_api_verified = False
    account.connection_status = False


def clear_credentials(account: TradingAccount):
    account.api_key = None
    account.api_secret_encrypted = None
    account.mt_login = None
    account.mt_password_encrypted = None
    account.mt_server = None
    account.is_api_verified = False
    account.connection_status = False


async def save_api_credentials(
    session: Session,
    account_id: int,
    credentials: ApiKeyCredentials,
    config=None,
) -> CredentialsResult:
    """Store an API key pair, test it and record the verification flags.

    The account's trading mode is left alone; switching to real goes through
    the trading-mode controller.
    """
    from tradedesk.services.connection import test_connection, verify_trading_permissions

    account = get_account(session, account_id)
    if not account:
        return CredentialsResult(success=False, message="Account not found")
    try:
        store_credentials(account, credentials)
    except ValueError as e:
        return CredentialsResult(success=False, message=str(e))
    session.add(account)
    session.commit()

    connection = await test_connection(session, account_id, config)
    permissions = await verify_trading_permissions(session, account_id, config)

    session.refresh(account)
    account.is_api_verified = connection.success
    account.connection_status = connection.success
    account.last_sync_time = datetime.now(timezone.utc)
    session.add(account)
    trading_log.record(
        session,
        account_id,
        "API credentials verified" if connection.success else f"API credential check failed: {connection.message}",
        log_type="success" if connection.success else "error",
        details={"simulated": connection.simulated, "permissions": permissions.permissions},
    )
    session.commit()

    return CredentialsResult(
        success=connection.success,
        message="API credentials verified for real trading" if connection.success else connection.message,
        trading_enabled=permissions.success,
    )


async def connect_metatrader(
    session: Session,
    account_id: int,
    credentials: MetaTraderCredentials,
    config=None,
) -> ConnectionResult:
    """Store MetaTrader login details and open the bridge session."""
    from tradedesk.services import gateway

    config = config or gateway.GatewayConfig.from_settings()
    account = get_account(session, account_id)
    if not account:
        return ConnectionResult(success=False, message="Account not found")
    try:
        store_credentials(account, credentials)
    except ValueError as e:
        return ConnectionResult(success=False, message=str(e))
    session.add(account)
    session.commit()

    simulated = False
    try:
        response = await gateway.call_gateway(
            gateway.GatewayAction.CONNECT,
            account,
            {"enableDemo": credentials.enable_demo},
            config,
        )
        result = ConnectionResult(
            success=bool(response.get("success")),
            message=response.get("message") or "Successfully connected to MetaTrader",
        )
    except gateway.GatewayUnavailable as e:
        if not config.simulate_on_failure:
            result = ConnectionResult(success=False, message=e.message)
        else:
            logger.warning(f"MT bridge unavailable for account {account_id}, simulating connection: {e}")
            simulated = True
            result = ConnectionResult(
                success=True,
                message="Connected to MetaTrader (simulated)",
                simulated=True,
            )
    except gateway.GatewayError as e:
        result = ConnectionResult(success=False, message=e.message)

    account.connection_status = result.success
    account.is_api_verified = result.success
    if result.success:
        account.is_active = True
        account.last_sync_time = datetime.now(timezone.utc)
    session.add(account)
    trading_log.record(
        session,
        account_id,
        f"MetaTrader connection: {result.message}",
        log_type="success" if result.success else "error",
        details={"server": credentials.server, "simulated": simulated},
    )
    session.commit()
    return result
