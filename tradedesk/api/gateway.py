"""Gateway API: action-multiplexed broker calls."""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from tradedesk.api.deps import get_current_user, get_gateway_config, owned_account
from tradedesk.database import get_session
from tradedesk.models.user import User
from tradedesk.schemas.gateway import GatewayRequest
from tradedesk.services import gateway

router = APIRouter(prefix="/api/gateway", tags=["gateway"], dependencies=[Depends(get_current_user)])


@router.post("")
async def dispatch(
    body: GatewayRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    config: gateway.GatewayConfig = Depends(get_gateway_config),
):
    """Run one broker action; the answer is always `{success, message, ...}`."""
    account = owned_account(session, user, body.account_id)
    return await gateway.dispatch(body.action, account, body.data, config)
