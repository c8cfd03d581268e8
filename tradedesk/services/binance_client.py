"""Binance spot REST client.

Thin async wrapper over the signed REST endpoints the dashboard needs:
account snapshot, ticker prices, order placement/query/cancel and open
orders. Signed requests carry `timestamp` and `recvWindow` and an
HMAC-SHA256 signature of the url-encoded query string keyed by the API
secret; the API key travels in the `X-MBX-APIKEY` header.
"""

import hashlib
import hmac
import logging
import time
from urllib.parse import urlencode

import httpx

from tradedesk.services.gateway_errors import GatewayError, GatewayUnavailable

logger = logging.getLogger(__name__)

ORDER_NOT_FOUND = -2013  # "Order does not exist."


def sign_query(params: dict, api_secret: str) -> str:
    """Return the query string with its HMAC-SHA256 signature appended."""
    query = urlencode(params)
    signature = hmac.new(api_secret.encode(), query.encode(), hashlib.sha256).hexdigest()
    return f"{query}&signature={signature}"


def format_decimal(value: float) -> str:
    """Binance rejects exponent notation and trailing noise; 8 dp max."""
    text = f"{value:.8f}".rstrip("0").rstrip(".")
    return text or "0"


def average_fill_price(order: dict) -> float | None:
    """Volume-weighted fill price from a FULL order response, else its limit price."""
    fills = order.get("fills") or []
    qty = sum(float(f["qty"]) for f in fills)
    if qty > 0:
        return sum(float(f["price"]) * float(f["qty"]) for f in fills) / qty
    executed = float(order.get("executedQty") or 0)
    quote = float(order.get("cummulativeQuoteQty") or 0)
    if executed > 0 and quote > 0:
        return quote / executed
    price = float(order.get("price") or 0)
    return price or None


class BinanceClient:
    """Signed Binance REST client. Use as an async context manager."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = "https://api.binance.com",
        recv_window: int = 60000,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.recv_window = recv_window
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"X-MBX-APIKEY": api_key} if api_key else {},
            transport=transport,
        )

    async def __aenter__(self) -> "BinanceClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        signed: bool = True,
    ):
        params = dict(params or {})
        if signed:
            params["timestamp"] = int(time.time() * 1000)
            params["recvWindow"] = self.recv_window
            query = sign_query(params, self.api_secret)
        else:
            query = urlencode(params)

        url = f"{path}?{query}" if query else path
        try:
            response = await self._client.request(method, url)
        except httpx.TransportError as e:
            logger.warning(f"Binance {method} {path}: transport error: {e}")
            raise GatewayUnavailable(f"Binance unreachable: {e}") from e

        if response.status_code >= 500:
            logger.warning(f"Binance {method} {path}: HTTP {response.status_code}")
            raise GatewayUnavailable(f"Binance returned HTTP {response.status_code}")

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            message = body.get("msg") or response.reason_phrase
            code = body.get("code")
            logger.error(f"Binance {method} {path}: HTTP {response.status_code} code={code} {message}")
            raise GatewayError(f"Binance API error: {message}", code=code, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            # maintenance pages and proxy interstitials come back as HTML with a 2xx
            logger.warning(f"Binance {method} {path}: non-JSON body with HTTP {response.status_code}")
            raise GatewayUnavailable("Binance returned an invalid response") from e

    async def get_account(self) -> dict:
        return await self._request("GET", "/api/v3/account")

    async def get_prices(self, symbols: list[str] | None = None) -> dict[str, float]:
        """Latest price per symbol, optionally filtered to `symbols`."""
        params = {"symbol": symbols[0]} if symbols and len(symbols) == 1 else None
        rows = await self._request("GET", "/api/v3/ticker/price", params, signed=False)
        if isinstance(rows, dict):
            rows = [rows]
        wanted = set(symbols) if symbols else None
        return {
            row["symbol"]: float(row["price"])
            for row in rows
            if wanted is None or row["symbol"] in wanted
        }

    async def get_open_orders(self, symbol: str | None = None) -> list[dict]:
        params = {"symbol": symbol} if symbol else {}
        return await self._request("GET", "/api/v3/openOrders", params)

    async def place_order(
        self,
        symbol: str,
        side: str,
        order_type: str,
        quantity: float,
        price: float | None = None,
        time_in_force: str | None = None,
        stop_price: float | None = None,
    ) -> dict:
        order_type = order_type.upper()
        params = {
            "symbol": symbol,
            "side": side.upper(),
            "type": order_type,
            "quantity": format_decimal(quantity),
        }
        if price is not None:
            params["price"] = format_decimal(price)
        if stop_price is not None:
            params["stopPrice"] = format_decimal(stop_price)
        if time_in_force:
            params["timeInForce"] = time_in_force
        elif order_type in ("LIMIT", "STOP_LOSS_LIMIT", "TAKE_PROFIT_LIMIT"):
            params["timeInForce"] = "GTC"
        if order_type == "MARKET":
            params["newOrderRespType"] = "FULL"

        result = await self._request("POST", "/api/v3/order", params)
        logger.info(
            f"Binance order placed: {symbol} {side} {order_type} qty={params['quantity']} "
            f"id={result.get('orderId')} status={result.get('status')}"
        )
        return result

    async def get_order(self, symbol: str, order_id: str) -> dict:
        return await self._request("GET", "/api/v3/order", {"symbol": symbol, "orderId": order_id})

    async def cancel_order(self, symbol: str, order_id: str) -> dict:
        result = await self._request("DELETE", "/api/v3/order", {"symbol": symbol, "orderId": order_id})
        logger.info(f"Binance order cancelled: {symbol} id={order_id}")
        return result
