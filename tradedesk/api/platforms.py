"""Platform catalog API."""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from tradedesk.api.deps import get_current_user
from tradedesk.services.platforms import get_supported_platforms, recommended_pairs_for_small_balance

router = APIRouter(prefix="/api/platforms", tags=["platforms"], dependencies=[Depends(get_current_user)])


@router.get("")
def list_platforms():
    return [asdict(p) for p in get_supported_platforms()]


@router.get("/recommended-pairs")
def recommended_pairs():
    return {"pairs": recommended_pairs_for_small_balance()}
