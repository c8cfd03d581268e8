"""HTTP-level tests for the routers, with the database and gateway swapped out."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from tradedesk.api.deps import get_gateway_config
from tradedesk.database import get_session
from tradedesk.main import app
from tradedesk.models.account import TradingAccount
from tradedesk.models.trade import Trade
from tradedesk.models.user import User
from tradedesk.services.auth import hash_password
from tradedesk.services.gateway import GatewayConfig


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_gateway_config] = lambda: GatewayConfig()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers(client, user):
    response = client.post("/api/auth/login", json={"username": "trader", "password": "correct horse"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


# ---------------------------------------------------------------------------
# 1. Auth
# ---------------------------------------------------------------------------

def test_health(client):
    assert client.get("/api/system/health").json() == {"status": "ok"}


def test_login_rejects_bad_password(client, user):
    response = client.post("/api/auth/login", json={"username": "trader", "password": "wrong"})
    assert response.status_code == 401


def test_requires_token(client):
    assert client.get("/api/accounts").status_code in (401, 403)


def test_rejects_garbage_token(client):
    response = client.get("/api/accounts", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


# ---------------------------------------------------------------------------
# 2. Accounts
# ---------------------------------------------------------------------------

def test_list_accounts_hides_secrets(client, headers, account):
    body = client.get("/api/accounts", headers=headers).json()
    assert len(body) == 1
    assert body[0]["api_key"] == "test-key"
    assert "api_secret_encrypted" not in body[0]
    assert body[0]["trading_mode"] == "demo"


def test_other_users_account_is_hidden(client, headers, session):
    other = User(username="someone", hashed_password=hash_password("pw"))
    session.add(other)
    session.commit()
    theirs = TradingAccount(user_id=other.id, name="Theirs")
    session.add(theirs)
    session.commit()
    assert client.get(f"/api/accounts/{theirs.id}", headers=headers).status_code == 404


def test_create_account_rejects_mismatched_credentials(client, headers):
    payload = {
        "name": "MT",
        "platform": "mt5",
        "credentials": {"platform": "binance", "api_key": "k", "api_secret": "s"},
    }
    assert client.post("/api/accounts", json=payload, headers=headers).status_code == 422


def test_create_account_without_credentials(client, headers):
    response = client.post("/api/accounts", json={"name": "Spare"}, headers=headers)
    assert response.status_code == 201
    assert response.json()["is_api_verified"] is False


def test_sync_returns_camel_case(client, headers, account, fake_gateway):
    gw = fake_gateway({
        "test_connection": {"success": True, "message": "ok"},
        "get_account_info": {"success": True, "balance": 10.0, "equity": 10.0},
        "verify_trading_permissions": {"success": True, "hasAllPermissions": True, "permissions": ["SPOT"]},
    })
    with patch("tradedesk.services.gateway.call_gateway", gw):
        response = client.post(f"/api/accounts/{account.id}/sync", headers=headers)
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Account synced successfully",
        "realTradingEnabled": True,
        "simulated": False,
    }


def test_trading_mode_validation(client, headers, account):
    response = client.post(f"/api/accounts/{account.id}/trading-mode", json={"mode": "paper"}, headers=headers)
    assert response.status_code == 422


def test_unknown_asset_class(client, headers, account):
    response = client.get(f"/api/accounts/{account.id}/assets?asset_class=tulips", headers=headers)
    assert response.status_code == 422


def test_delete_account_with_open_trades(client, headers, session, account):
    session.add(Trade(account_id=account.id, symbol="BTCUSDT", side="buy", entry_price=1.0, lot_size=1.0))
    session.commit()
    assert client.delete(f"/api/accounts/{account.id}", headers=headers).status_code == 409


# ---------------------------------------------------------------------------
# 3. Bots, trades, gateway
# ---------------------------------------------------------------------------

def test_strategies(client, headers):
    assert len(client.get("/api/bots/strategies", headers=headers).json()) == 10
    detail = client.get("/api/bots/strategies/scalping", headers=headers).json()
    assert detail["settings"]["leverage"] == 10
    assert client.get("/api/bots/strategies/martingale", headers=headers).status_code == 404


def test_create_bot_on_foreign_account(client, headers):
    response = client.post("/api/bots", json={"name": "x", "account_id": 999}, headers=headers)
    assert response.status_code == 404


def test_paper_order(client, headers, account):
    payload = {"account_id": account.id, "symbol": "btcusdt", "side": "buy", "quantity": 0.01}
    with patch("tradedesk.services.gateway.get_public_price", AsyncMock(return_value=64000.0)):
        response = client.post("/api/trades/orders", json=payload, headers=headers)
    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["simulated"] is True
    assert body["orderId"].startswith("paper-")

    trades = client.get("/api/trades", headers=headers, params={"symbol": "btcusdt"}).json()
    assert [t["symbol"] for t in trades] == ["BTCUSDT"]


def test_gateway_unknown_action(client, headers, account):
    response = client.post("/api/gateway", json={"action": "withdraw", "accountId": account.id}, headers=headers)
    assert response.json() == {"success": False, "message": "Unsupported action: withdraw"}


def test_gateway_order_from_demo_account_is_refused(client, headers, account):
    payload = {
        "action": "place_order",
        "accountId": account.id,
        "data": {"symbol": "BTCUSDT", "side": "BUY", "type": "MARKET", "quantity": 1},
    }
    with patch("tradedesk.services.gateway.call_gateway", AsyncMock()) as call:
        response = client.post("/api/gateway", json=payload, headers=headers)
    body = response.json()
    assert response.status_code == 200
    assert body["success"] is False
    assert "demo mode" in body["message"]
    call.assert_not_called()


def test_platforms(client, headers):
    platforms = {p["id"]: p for p in client.get("/api/platforms", headers=headers).json()}
    assert set(platforms) == {"binance", "bybit", "kucoin", "mt4", "mt5"}
    assert platforms["bybit"]["supported"] is False
