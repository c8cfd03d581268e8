"""Broker gateway: one entry point for every broker-side action.

`call_gateway` resolves an account's stored credentials into a client for
its platform (Binance REST or the MetaTrader bridge), runs the action and
returns the broker's answer as a plain dict in the `{success, message, ...}`
shape the dashboard consumes. Failures surface as GatewayError subclasses;
the account services convert them into results.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

import httpx

from tradedesk.config import Settings, settings
from tradedesk.models.account import TradingAccount
from tradedesk.schemas.account import MetaTraderCredentials
from tradedesk.services.binance_client import (
    ORDER_NOT_FOUND,
    BinanceClient,
    average_fill_price,
)
from tradedesk.services.credentials import MissingCredentialsError, load_credentials
from tradedesk.services.encryption import SecretDecryptionError
from tradedesk.services.gateway_errors import (
    GatewayError,
    GatewayUnavailable,
    UnsupportedPlatformError,
)
from tradedesk.services.metatrader_client import MetaTraderBridge
from tradedesk.utils.constants import QUOTE_ASSET

logger = logging.getLogger(__name__)

__all__ = [
    "GatewayAction",
    "GatewayConfig",
    "GatewayError",
    "GatewayUnavailable",
    "ORDER_ACTIONS",
    "UnsupportedPlatformError",
    "call_gateway",
    "dispatch",
    "get_public_price",
    "notify_gateway",
    "summarize_account",
]


class GatewayAction(str, Enum):
    TEST_CONNECTION = "test_connection"
    GET_ACCOUNT_INFO = "get_account_info"
    VERIFY_TRADING_PERMISSIONS = "verify_trading_permissions"
    GET_PRICES = "get_prices"
    GET_OPEN_ORDERS = "get_open_orders"
    PLACE_ORDER = "place_order"
    VERIFY_ORDER = "verify_order"
    GET_ORDER_STATUS = "get_order_status"
    CANCEL_ORDER = "cancel_order"
    CLOSE_POSITION = "close_position"
    VERIFY_POSITION_CLOSURE = "verify_position_closure"
    UPDATE_STOP_LOSS = "update_stop_loss"
    SET_TRADING_MODE = "set_trading_mode"
    RESET_CONNECTION = "reset_connection"
    CONNECT = "connect"
    GET_ASSETS = "get_assets"
    START_BOT = "start_bot"
    STOP_BOT = "stop_bot"


ORDER_ACTIONS = frozenset({
    GatewayAction.PLACE_ORDER,
    GatewayAction.CANCEL_ORDER,
    GatewayAction.CLOSE_POSITION,
    GatewayAction.UPDATE_STOP_LOSS,
})


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable per-call gateway configuration."""

    binance_base_url: str = "https://api.binance.com"
    binance_recv_window: int = 60000
    mt_bridge_url: str = "http://localhost:8228/rpc"
    timeout: float = 15.0
    simulate_on_failure: bool = True
    real_mode_policy: str = "warn"
    default_simulated_balance: float = 1000.0
    min_order_size: float = 5.0
    transport: httpx.AsyncBaseTransport | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_settings(cls, source: Settings | None = None, **overrides) -> "GatewayConfig":
        s = source or settings
        values = dict(
            binance_base_url=s.binance_base_url,
            binance_recv_window=s.binance_recv_window,
            mt_bridge_url=s.mt_bridge_url,
            timeout=s.gateway_timeout,
            simulate_on_failure=s.simulate_on_gateway_failure,
            real_mode_policy=s.real_mode_policy,
            default_simulated_balance=s.default_simulated_balance,
            min_order_size=s.min_order_size,
        )
        values.update(overrides)
        return cls(**values)


# ── Binance actions ────────────────────────────────────


def _opposite(side: str) -> str:
    return "SELL" if side.upper() == "BUY" else "BUY"


def summarize_account(account: dict, prices: dict[str, float], quote: str = QUOTE_ASSET) -> dict:
    """Reduce a Binance account snapshot to balance/equity/positions.

    balance is the free quote-asset amount; equity values every non-zero
    holding in the quote asset. Holdings without a direct quote market are
    listed with value None and left out of equity.
    """
    balance = 0.0
    equity = 0.0
    positions = []
    for row in account.get("balances", []):
        free = float(row.get("free") or 0)
        locked = float(row.get("locked") or 0)
        total = free + locked
        if total <= 0:
            continue
        asset = row["asset"]
        if asset == quote:
            balance = free
            value = total
        else:
            price = prices.get(f"{asset}{quote}")
            value = total * price if price is not None else None
        if value is not None:
            equity += value
        positions.append({"asset": asset, "free": free, "locked": locked, "value": value})

    return {
        "balance": round(balance, 8),
        "equity": round(equity, 8),
        "positions": positions,
        "permissions": list(account.get("permissions") or []),
        "canTrade": bool(account.get("canTrade")),
    }


def _order_payload(order: dict) -> dict:
    return {
        "success": True,
        "orderId": str(order.get("orderId")),
        "symbol": order.get("symbol"),
        "status": order.get("status"),
        "price": average_fill_price(order),
        "executedQty": float(order.get("executedQty") or 0),
        "raw": order,
    }


async def _binance_action(client: BinanceClient, action: GatewayAction, data: dict) -> dict:
    if action in (GatewayAction.TEST_CONNECTION, GatewayAction.CONNECT):
        account = await client.get_account()
        return {
            "success": True,
            "message": "Successfully connected to Binance API",
            "canTrade": bool(account.get("canTrade")),
        }

    if action == GatewayAction.GET_ACCOUNT_INFO:
        account = await client.get_account()
        held = [
            b["asset"] for b in account.get("balances", [])
            if b["asset"] != QUOTE_ASSET and float(b.get("free") or 0) + float(b.get("locked") or 0) > 0
        ]
        prices = await client.get_prices([f"{a}{QUOTE_ASSET}" for a in held]) if held else {}
        return {"success": True, "message": "Account info retrieved", **summarize_account(account, prices)}

    if action == GatewayAction.VERIFY_TRADING_PERMISSIONS:
        account = await client.get_account()
        permissions = list(account.get("permissions") or [])
        can_trade = bool(account.get("canTrade"))
        has_all = can_trade and "SPOT" in permissions
        if has_all:
            message = "API key has all required trading permissions"
        elif not can_trade:
            message = "API key is not allowed to trade. Enable spot trading for this key"
        else:
            message = "API key is missing the SPOT trading permission"
        return {
            "success": True,
            "hasAllPermissions": has_all,
            "permissions": permissions,
            "canTrade": can_trade,
            "message": message,
        }

    if action == GatewayAction.GET_PRICES:
        prices = await client.get_prices(data.get("symbols"))
        return {
            "success": True,
            "prices": [{"symbol": s, "price": p} for s, p in prices.items()],
        }

    if action == GatewayAction.GET_OPEN_ORDERS:
        orders = await client.get_open_orders(data.get("symbol"))
        return {"success": True, "orders": orders}

    if action == GatewayAction.PLACE_ORDER:
        order = await client.place_order(
            symbol=data["symbol"],
            side=data["side"],
            order_type=data.get("type", "MARKET"),
            quantity=float(data["quantity"]),
            price=data.get("price"),
            time_in_force=data.get("timeInForce"),
            stop_price=data.get("stopPrice"),
        )
        return {"message": "Order placed", **_order_payload(order)}

    if action in (GatewayAction.VERIFY_ORDER, GatewayAction.GET_ORDER_STATUS):
        try:
            order = await client.get_order(data["symbol"], data["orderId"])
        except GatewayError as e:
            if e.code == ORDER_NOT_FOUND:
                return {"success": True, "orderExists": False, "message": "Order not found on exchange"}
            raise
        return {
            "success": True,
            "orderExists": True,
            "orderStatus": order.get("status"),
            "executedQty": float(order.get("executedQty") or 0),
            "message": f"Order status: {order.get('status')}",
        }

    if action == GatewayAction.CANCEL_ORDER:
        order = await client.cancel_order(data["symbol"], data["orderId"])
        return {
            "success": True,
            "orderId": str(order.get("orderId")),
            "status": order.get("status"),
            "message": "Order cancelled",
        }

    if action == GatewayAction.CLOSE_POSITION:
        order = await client.place_order(
            symbol=data["symbol"],
            side=_opposite(data["side"]),
            order_type="MARKET",
            quantity=float(data["quantity"]),
        )
        return {"message": "Position close order placed", **_order_payload(order)}

    if action == GatewayAction.VERIFY_POSITION_CLOSURE:
        try:
            order = await client.get_order(data["symbol"], data["orderId"])
        except GatewayError as e:
            if e.code == ORDER_NOT_FOUND:
                return {"success": True, "positionClosed": False, "message": "Close order not found on exchange"}
            raise
        closed = order.get("status") == "FILLED"
        return {
            "success": True,
            "positionClosed": closed,
            "orderStatus": order.get("status"),
            "message": "Position closed" if closed else f"Close order is {order.get('status')}",
        }

    if action == GatewayAction.UPDATE_STOP_LOSS:
        previous = data.get("orderId")
        if previous:
            try:
                await client.cancel_order(data["symbol"], previous)
            except GatewayError as e:
                if e.code != ORDER_NOT_FOUND:
                    raise
        stop = float(data["stopPrice"])
        order = await client.place_order(
            symbol=data["symbol"],
            side=_opposite(data["side"]),
            order_type="STOP_LOSS_LIMIT",
            quantity=float(data["quantity"]),
            price=stop,
            stop_price=stop,
        )
        return {
            "success": True,
            "orderId": str(order.get("orderId")),
            "status": order.get("status"),
            "message": "Stop loss updated",
        }

    if action == GatewayAction.GET_ASSETS:
        prices = await client.get_prices()
        assets = sorted(s for s in prices if s.endswith(QUOTE_ASSET))
        return {"success": True, "assets": assets, "message": f"Fetched {len(assets)} assets"}

    # set_trading_mode, reset_connection, start_bot, stop_bot: Binance keeps no such state
    return {"success": True, "message": f"{action.value} acknowledged"}


# ── Entry points ───────────────────────────────────────


async def call_gateway(
    action: GatewayAction | str,
    account: TradingAccount,
    data: dict | None = None,
    config: GatewayConfig | None = None,
) -> dict:
    """Run one broker action for `account`.

    Raises ValueError for an unknown action, MissingCredentialsError when the
    account has no credential pair, and GatewayError subclasses for broker
    failures.
    """
    config = config or GatewayConfig.from_settings()
    action = GatewayAction(action)
    credentials = load_credentials(account)

    if isinstance(credentials, MetaTraderCredentials):
        async with MetaTraderBridge(
            config.mt_bridge_url,
            account.id,
            credentials.login,
            credentials.password,
            credentials.server,
            timeout=config.timeout,
            transport=config.transport,
        ) as bridge:
            return await bridge.call(action.value, data)

    if credentials.platform != "binance":
        raise UnsupportedPlatformError(f"{credentials.platform} is not supported yet")

    async with BinanceClient(
        credentials.api_key,
        credentials.api_secret,
        base_url=config.binance_base_url,
        recv_window=config.binance_recv_window,
        timeout=config.timeout,
        transport=config.transport,
    ) as client:
        return await _binance_action(client, action, data or {})


async def get_public_price(symbol: str, config: GatewayConfig | None = None) -> float | None:
    """Last Binance ticker price for a symbol, or None when unknown or unreachable."""
    config = config or GatewayConfig.from_settings()
    async with BinanceClient(
        "",
        "",
        base_url=config.binance_base_url,
        timeout=config.timeout,
        transport=config.transport,
    ) as client:
        try:
            prices = await client.get_prices([symbol])
        except GatewayError as e:
            logger.warning(f"Public price lookup for {symbol} failed: {e}")
            return None
    return prices.get(symbol)


async def notify_gateway(
    action: GatewayAction | str,
    account: TradingAccount,
    data: dict | None = None,
    config: GatewayConfig | None = None,
) -> bool:
    """Fire a best-effort, at-most-once notification. Failures are logged, never raised."""
    try:
        await call_gateway(action, account, data, config)
        return True
    except (GatewayError, MissingCredentialsError, SecretDecryptionError) as e:
        logger.warning(f"Gateway notification {action} for account {account.id} failed: {e}")
        return False


async def dispatch(
    action: str,
    account: TradingAccount,
    data: dict | None = None,
    config: GatewayConfig | None = None,
) -> dict:
    """Action-multiplexed entry point behind POST /api/gateway.

    Order-mutating actions are refused for accounts not in real mode;
    demo orders go through the paper-fill path in services/orders.py.
    """
    try:
        resolved = GatewayAction(action)
    except ValueError:
        return {"success": False, "message": f"Unsupported action: {action}"}

    if resolved in ORDER_ACTIONS and account.trading_mode != "real":
        logger.warning(f"Refused {resolved.value} for account {account.id} in {account.trading_mode} mode")
        return {
            "success": False,
            "message": f"{resolved.value} requires real trading mode; account is in {account.trading_mode} mode",
        }

    try:
        return await call_gateway(resolved, account, data, config)
    except GatewayError as e:
        return {"success": False, "message": e.message}
    except (MissingCredentialsError, SecretDecryptionError) as e:
        return {"success": False, "message": str(e)}
    except KeyError as e:
        return {"success": False, "message": f"Missing field for {action}: {e.args[0]}"}
