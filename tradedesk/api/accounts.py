"""Trading accounts API: CRUD plus connection, sync, mode and analysis actions."""

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from tradedesk.api.deps import get_current_user, get_gateway_config, get_owned_account
from tradedesk.database import get_session
from tradedesk.models.account import TradingAccount
from tradedesk.models.trade import Trade
from tradedesk.models.user import User
from tradedesk.schemas.account import (
    AccountCreate,
    AccountRead,
    AccountUpdate,
    ApiKeyCredentials,
    MetaTraderCredentials,
    TradingModeChange,
)
from tradedesk.schemas.results import (
    AccountAnalysisResult,
    ConnectionResult,
    CredentialsResult,
    OperationResult,
    OptimizationResult,
    PermissionResult,
    SyncResult,
)
from tradedesk.services import analysis, connection, credentials, platforms
from tradedesk.services.account_sync import sync_account
from tradedesk.services.gateway import GatewayConfig
from tradedesk.services.trading_mode import change_trading_mode
from tradedesk.utils.constants import ASSET_CLASSES

router = APIRouter(prefix="/api/accounts", tags=["accounts"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=list[AccountRead])
def list_accounts(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    stmt = select(TradingAccount).where(TradingAccount.user_id == user.id).order_by(TradingAccount.created_at)
    return session.exec(stmt).all()


@router.post("", response_model=AccountRead, status_code=201)
async def create_account(
    data: AccountCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    account = TradingAccount(
        user_id=user.id,
        **data.model_dump(exclude={"credentials"}),
    )
    session.add(account)
    session.commit()
    session.refresh(account)

    if isinstance(data.credentials, ApiKeyCredentials):
        await credentials.save_api_credentials(session, account.id, data.credentials, config)
    elif isinstance(data.credentials, MetaTraderCredentials):
        await credentials.connect_metatrader(session, account.id, data.credentials, config)

    session.refresh(account)
    return account


@router.get("/{account_id}", response_model=AccountRead)
def get_account(account: TradingAccount = Depends(get_owned_account)):
    return account


@router.put("/{account_id}", response_model=AccountRead)
def update_account(
    data: AccountUpdate,
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
):
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(account, key, value)
    session.add(account)
    session.commit()
    session.refresh(account)
    return account


@router.delete("/{account_id}", status_code=204)
def delete_account(
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
):
    open_trade = session.exec(
        select(Trade).where(Trade.account_id == account.id, Trade.status == "open")
    ).first()
    if open_trade:
        raise HTTPException(status_code=409, detail="Account has open trades; close them first")
    session.delete(account)
    session.commit()


# ── Credentials & connection ───────────────────────────


@router.put("/{account_id}/credentials", response_model=CredentialsResult)
async def save_credentials(
    data: ApiKeyCredentials,
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await credentials.save_api_credentials(session, account.id, data, config)


@router.post("/{account_id}/metatrader", response_model=ConnectionResult)
async def connect_metatrader(
    data: MetaTraderCredentials,
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await credentials.connect_metatrader(session, account.id, data, config)


@router.post("/{account_id}/test", response_model=ConnectionResult)
async def test_connection(
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await connection.test_connection(session, account.id, config)


@router.post("/{account_id}/permissions", response_model=PermissionResult)
async def verify_permissions(
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await connection.verify_trading_permissions(session, account.id, config)


@router.post("/{account_id}/reset-connection", response_model=OperationResult)
async def reset_connection(
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await connection.reset_api_connection(session, account.id, config)


@router.get("/{account_id}/info")
async def account_info(
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    """Live snapshot from the broker."""
    return await connection.get_account_info(session, account.id, config)


@router.get("/{account_id}/assets")
async def account_assets(
    asset_class: str = "cryptocurrencies",
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    if asset_class not in ASSET_CLASSES:
        raise HTTPException(status_code=422, detail=f"Unknown asset class: {asset_class}")
    return await platforms.get_assets(session, account.id, asset_class, config)


# ── Sync, mode and analysis ────────────────────────────


@router.post("/{account_id}/sync", response_model=SyncResult)
async def sync(
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await sync_account(session, account.id, config)


@router.post("/{account_id}/trading-mode", response_model=OperationResult)
async def set_trading_mode(
    data: TradingModeChange,
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await change_trading_mode(session, account.id, data.mode, config)


@router.get("/{account_id}/analysis", response_model=AccountAnalysisResult)
async def real_trading_analysis(
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await analysis.perform_real_trading_analysis(session, account.id, config)


@router.get("/{account_id}/optimization", response_model=OptimizationResult)
async def optimization(
    account: TradingAccount = Depends(get_owned_account),
    session: Session = Depends(get_session),
    config: GatewayConfig = Depends(get_gateway_config),
):
    return await analysis.analyze_account_for_optimization(session, account.id, config)
