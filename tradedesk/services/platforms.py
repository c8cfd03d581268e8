"""Supported platform catalog and tradable asset lookups."""

import logging
from dataclasses import dataclass

from sqlmodel import Session

from tradedesk.services import gateway
from tradedesk.services.credentials import MissingCredentialsError, get_account
from tradedesk.services.encryption import SecretDecryptionError
from tradedesk.utils.constants import DEMO_ASSETS, RECOMMENDED_PAIRS_SMALL_BALANCE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformInfo:
    id: str
    name: str
    description: str
    url: str
    connection_method: str  # "api" or "mt_protocol"
    asset_classes: tuple[str, ...]
    supported: bool = True  # a broker gateway exists for it


PLATFORMS: tuple[PlatformInfo, ...] = (
    PlatformInfo(
        id="binance",
        name="Binance",
        description="The world's largest cryptocurrency exchange",
        url="https://www.binance.com",
        connection_method="api",
        asset_classes=("cryptocurrencies", "futures"),
    ),
    PlatformInfo(
        id="bybit",
        name="Bybit",
        description="Cryptocurrency and derivatives exchange",
        url="https://www.bybit.com",
        connection_method="api",
        asset_classes=("cryptocurrencies", "futures"),
        supported=False,
    ),
    PlatformInfo(
        id="kucoin",
        name="KuCoin",
        description="Global cryptocurrency exchange",
        url="https://www.kucoin.com",
        connection_method="api",
        asset_classes=("cryptocurrencies", "futures"),
        supported=False,
    ),
    PlatformInfo(
        id="mt4",
        name="MT4",
        description="The most widely used forex and CFD trading platform",
        url="https://www.metatrader4.com",
        connection_method="mt_protocol",
        asset_classes=("forex", "stocks", "indices", "commodities", "bonds", "etfs", "futures"),
    ),
    PlatformInfo(
        id="mt5",
        name="MT5",
        description="MetaQuotes' multi-asset trading platform",
        url="https://www.metatrader5.com",
        connection_method="mt_protocol",
        asset_classes=(
            "forex", "stocks", "indices", "commodities",
            "cryptocurrencies", "bonds", "etfs", "futures",
        ),
    ),
)


def get_supported_platforms() -> list[PlatformInfo]:
    return list(PLATFORMS)


def recommended_pairs_for_small_balance() -> list[str]:
    return list(RECOMMENDED_PAIRS_SMALL_BALANCE)


async def get_assets(
    session: Session,
    account_id: int,
    asset_class: str,
    config: gateway.GatewayConfig | None = None,
) -> dict:
    """Tradable symbols for an asset class, from the broker when it answers."""
    config = config or gateway.GatewayConfig.from_settings()
    account = get_account(session, account_id)
    if not account:
        return {"success": False, "message": "Account not found"}

    try:
        data = await gateway.call_gateway(
            gateway.GatewayAction.GET_ASSETS, account, {"assetClass": asset_class}, config
        )
    except gateway.GatewayUnavailable as e:
        if not config.simulate_on_failure:
            return {"success": False, "message": e.message}
        logger.warning(f"Gateway unavailable for account {account_id}, returning sample assets: {e}")
        return {
            "success": True,
            "message": f"Fetched {asset_class} assets (simulated)",
            "assets": DEMO_ASSETS.get(asset_class, []),
            "simulated": True,
        }
    except gateway.GatewayError as e:
        return {"success": False, "message": e.message}
    except (MissingCredentialsError, SecretDecryptionError) as e:
        return {"success": False, "message": str(e)}

    return {
        "success": bool(data.get("success")),
        "message": data.get("message") or f"Fetched {asset_class} assets",
        "assets": data.get("assets", []),
    }
