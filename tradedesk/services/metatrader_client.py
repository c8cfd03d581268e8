"""Client for the MetaTrader (MT4/MT5) bridge service.

The bridge is a JSON-over-HTTP endpoint that multiplexes on `action`.
Every call carries the account's login, password and server along with
the action payload; the bridge answers `{success, message, ...}`.
"""

import logging

import httpx

from tradedesk.services.gateway_errors import GatewayError, GatewayUnavailable

logger = logging.getLogger(__name__)


class MetaTraderBridge:
    def __init__(
        self,
        url: str,
        account_id: int,
        login: str,
        password: str,
        server: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.account_id = account_id
        self.login = login
        self.password = password
        self.server = server
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> "MetaTraderBridge":
        return self

    async def __aexit__(self, *exc_info):
        await self._client.aclose()

    async def call(self, action: str, data: dict | None = None) -> dict:
        body = {
            **(data or {}),
            "action": action,
            "accountId": self.account_id,
            "login": self.login,
            "password": self.password,
            "server": self.server,
        }
        logger.info(f"MT bridge action: {action}, accountId: {self.account_id}")
        try:
            response = await self._client.post(self.url, json=body)
        except httpx.TransportError as e:
            logger.warning(f"MT bridge unreachable for {action}: {e}")
            raise GatewayUnavailable(f"MetaTrader bridge unreachable: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code < 400 and not isinstance(payload, dict):
            logger.warning(f"MT bridge {action}: malformed body with HTTP {response.status_code}")
            raise GatewayUnavailable("MetaTrader bridge returned an invalid response")
        if not isinstance(payload, dict):
            payload = {}

        if response.status_code >= 500:
            logger.warning(f"MT bridge {action}: HTTP {response.status_code}")
            raise GatewayUnavailable(
                payload.get("message") or f"MetaTrader bridge returned HTTP {response.status_code}"
            )
        if response.status_code >= 400 or not payload.get("success", False):
            message = payload.get("message") or f"MetaTrader bridge rejected {action}"
            logger.error(f"MT bridge {action} failed: {message}")
            raise GatewayError(message, status_code=response.status_code)

        return payload
