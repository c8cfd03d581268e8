"""Tests for balance-tier recommendations and the real-trading readiness analysis."""

from unittest.mock import patch

import pytest

from tradedesk.services import analysis
from tradedesk.services.gateway_errors import GatewayError, GatewayUnavailable
from tradedesk.utils.constants import RECOMMENDED_PAIRS_SMALL_BALANCE


# ---------------------------------------------------------------------------
# 1. recommend_for_balance
# ---------------------------------------------------------------------------

class TestRecommendForBalance:
    def test_tiny_balance(self):
        r = analysis.recommend_for_balance(5)
        assert r.max_risk_per_trade == 1
        assert r.recommended_leverage == 5
        assert r.stop_loss == 1
        assert r.take_profit == 1.5
        assert r.min_order_size == 5
        assert r.is_small_balance is True

    def test_small_balance(self):
        r = analysis.recommend_for_balance(30)
        assert r.max_risk_per_trade == 2
        assert r.recommended_leverage == 3
        assert r.stop_loss == 1
        assert r.take_profit == 1.5

    def test_standard_balance(self):
        r = analysis.recommend_for_balance(500)
        assert r.max_risk_per_trade == 3
        assert r.recommended_leverage == 2
        assert r.stop_loss == 2
        assert r.take_profit == 2.5
        assert r.is_small_balance is False

    @pytest.mark.parametrize("balance,risk,leverage", [
        (9.99, 1, 5),
        (10, 2, 5),
        (19.99, 2, 5),
        (20, 2, 3),
        (49.99, 2, 3),
        (50, 3, 2),
    ])
    def test_tier_boundaries(self, balance, risk, leverage):
        r = analysis.recommend_for_balance(balance)
        assert r.max_risk_per_trade == risk
        assert r.recommended_leverage == leverage

    def test_small_balance_threshold(self):
        assert analysis.recommend_for_balance(99.99).is_small_balance is True
        assert analysis.recommend_for_balance(100).is_small_balance is False

    def test_risk_is_a_step_function_of_balance(self):
        balances = [0, 1, 5, 9, 10, 25, 49, 50, 75, 100, 1000, 10**6]
        risks = [analysis.recommend_for_balance(b).max_risk_per_trade for b in balances]
        leverages = [analysis.recommend_for_balance(b).recommended_leverage for b in balances]
        assert risks == sorted(risks)
        assert leverages == sorted(leverages, reverse=True)
        assert set(risks) == {1, 2, 3}

    def test_pure(self):
        assert analysis.recommend_for_balance(42) == analysis.recommend_for_balance(42)

    def test_recommended_pairs(self):
        r = analysis.recommend_for_balance(5)
        assert r.recommended_pairs == RECOMMENDED_PAIRS_SMALL_BALANCE

    def test_camel_case_serialization(self):
        dumped = analysis.recommend_for_balance(5).model_dump(by_alias=True)
        assert dumped["maxRiskPerTrade"] == 1
        assert dumped["recommendedLeverage"] == 5
        assert dumped["minOrderSize"] == 5


# ---------------------------------------------------------------------------
# 2. analyze_account_for_optimization
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_optimization_uses_live_balance(session, account, config, fake_gateway):
    gw = fake_gateway({"get_account_info": {"success": True, "balance": 30.0, "equity": 30.0}})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await analysis.analyze_account_for_optimization(session, account.id, config)
    assert result.success is True
    assert result.recommendations.max_risk_per_trade == 2
    assert "small balance" in result.message


@pytest.mark.asyncio
async def test_optimization_falls_back_to_persisted_balance(session, account, config, fake_gateway):
    account.balance = 500.0
    session.add(account)
    session.commit()
    gw = fake_gateway({"get_account_info": GatewayUnavailable("down")})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await analysis.analyze_account_for_optimization(session, account.id, config)
    assert result.success is True
    assert result.recommendations.max_risk_per_trade == 3
    assert "last synced" in result.message


@pytest.mark.asyncio
async def test_optimization_fails_without_any_balance(session, account, config, fake_gateway):
    gw = fake_gateway({"get_account_info": GatewayError("Invalid API-key")})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await analysis.analyze_account_for_optimization(session, account.id, config)
    assert result.success is False
    assert result.recommendations is None


# ---------------------------------------------------------------------------
# 3. perform_real_trading_analysis
# ---------------------------------------------------------------------------

def _live_gateway(fake_gateway, balance=250.0, has_all=True):
    return fake_gateway({
        "test_connection": {"success": True, "message": "ok"},
        "verify_trading_permissions": {
            "success": True,
            "hasAllPermissions": has_all,
            "permissions": ["SPOT"] if has_all else [],
            "message": "checked",
        },
        "get_account_info": {"success": True, "balance": balance, "equity": balance},
    })


@pytest.mark.asyncio
async def test_real_account_is_live(session, account, config, fake_gateway):
    account.trading_mode = "real"
    session.add(account)
    session.commit()
    with patch("tradedesk.services.gateway.call_gateway", _live_gateway(fake_gateway)):
        result = await analysis.perform_real_trading_analysis(session, account.id, config)
    assert result.success is True
    assert result.is_real_trading is True
    assert result.affects_real_money is True
    assert result.account_id == account.id
    assert result.trading_permissions == ["SPOT"]
    assert result.recommended_settings.max_risk_per_trade == 3
    assert len(result.warnings) == 3


@pytest.mark.asyncio
async def test_demo_account_is_not_live(session, account, config, fake_gateway):
    with patch("tradedesk.services.gateway.call_gateway", _live_gateway(fake_gateway)):
        result = await analysis.perform_real_trading_analysis(session, account.id, config)
    assert result.success is True
    assert result.is_real_trading is False
    assert result.affects_real_money is False


@pytest.mark.asyncio
async def test_empty_real_account_does_not_affect_money(session, account, config, fake_gateway):
    account.trading_mode = "real"
    session.add(account)
    session.commit()
    with patch("tradedesk.services.gateway.call_gateway", _live_gateway(fake_gateway, balance=0.0)):
        result = await analysis.perform_real_trading_analysis(session, account.id, config)
    assert result.is_real_trading is True
    assert result.affects_real_money is False


@pytest.mark.asyncio
async def test_missing_permissions_is_not_live(session, account, config, fake_gateway):
    account.trading_mode = "real"
    session.add(account)
    session.commit()
    with patch("tradedesk.services.gateway.call_gateway", _live_gateway(fake_gateway, has_all=False)):
        result = await analysis.perform_real_trading_analysis(session, account.id, config)
    assert result.is_real_trading is False
    assert any("permissions" in w.lower() for w in result.warnings)


@pytest.mark.asyncio
async def test_connection_failure_fails_closed(session, account, config, fake_gateway):
    account.trading_mode = "real"
    session.add(account)
    session.commit()
    gw = fake_gateway({"test_connection": GatewayError("Invalid API-key, IP, or permissions for action.")})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await analysis.perform_real_trading_analysis(session, account.id, config)
    assert result.success is False
    assert result.is_real_trading is False
    assert result.affects_real_money is False
    assert result.warnings


@pytest.mark.asyncio
async def test_unknown_account_fails_closed(session, config):
    result = await analysis.perform_real_trading_analysis(session, 999, config)
    assert result.success is False
    assert result.is_real_trading is False
    assert result.affects_real_money is False


@pytest.mark.asyncio
async def test_analysis_serializes_camel_case(session, account, config, fake_gateway):
    with patch("tradedesk.services.gateway.call_gateway", _live_gateway(fake_gateway)):
        result = await analysis.perform_real_trading_analysis(session, account.id, config)
    dumped = result.model_dump(by_alias=True)
    assert {"isRealTrading", "affectsRealMoney", "recommendedSettings", "tradingPermissions"} <= set(dumped)
    assert "maxRiskPerTrade" in dumped["recommendedSettings"]


@pytest.mark.asyncio
async def test_unknown_balance_omits_recommended_settings(session, account, config, fake_gateway):
    account.trading_mode = "real"
    session.add(account)
    session.commit()
    gw = fake_gateway({
        "test_connection": {"success": True, "message": "ok"},
        "verify_trading_permissions": {"success": True, "hasAllPermissions": True, "permissions": ["SPOT"]},
        "get_account_info": GatewayError("Binance API error: Timestamp for this request is outside of the recvWindow."),
    })
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await analysis.perform_real_trading_analysis(session, account.id, config)
    assert result.success is True
    assert result.is_real_trading is True
    assert result.affects_real_money is False
    assert result.recommended_settings is None
