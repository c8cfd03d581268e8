"""Tests for order placement, read-back verification and trade management."""

import logging
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError
from sqlmodel import select

from tradedesk.models.bot import TradingBot
from tradedesk.models.trade import Trade
from tradedesk.models.trading_log import TradingLog
from tradedesk.schemas.order import ExecuteTradeRequest, PlaceOrderRequest, StopLossUpdate
from tradedesk.services import orders
from tradedesk.services.gateway_errors import GatewayError, GatewayUnavailable


def _go_real(session, account):
    account.trading_mode = "real"
    account.is_api_verified = True
    account.connection_status = True
    session.add(account)
    session.commit()


def _order(account, **kwargs) -> PlaceOrderRequest:
    values = dict(account_id=account.id, symbol="BTCUSDT", side="buy", quantity=0.01)
    values.update(kwargs)
    return PlaceOrderRequest(**values)


PLACED = {"success": True, "orderId": "123", "status": "NEW", "price": 100.0, "message": "Order placed"}


# ---------------------------------------------------------------------------
# 1. Request validation
# ---------------------------------------------------------------------------

class TestPlaceOrderRequest:
    def test_symbol_normalized(self, account):
        assert _order(account, symbol=" btcusdt ").symbol == "BTCUSDT"

    def test_limit_requires_price(self, account):
        with pytest.raises(ValidationError):
            _order(account, type="limit")

    def test_quantity_must_be_positive(self, account):
        with pytest.raises(ValidationError):
            _order(account, quantity=0)

    def test_execute_request_symbol_normalized(self, account):
        req = ExecuteTradeRequest(account_id=account.id, symbol="ethusdt", type="sell", lot_size=1)
        assert req.symbol == "ETHUSDT"


def test_compute_pnl():
    assert orders.compute_pnl("buy", 100.0, 110.0, 2.0) == 20.0
    assert orders.compute_pnl("sell", 100.0, 110.0, 2.0) == -20.0
    assert orders.compute_pnl("sell", 100.0, 90.0, 0.5) == 5.0


# ---------------------------------------------------------------------------
# 2. Live placement and read-back
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_live_order_verified(session, account, config, fake_gateway):
    _go_real(session, account)
    gw = fake_gateway({
        "place_order": PLACED,
        "verify_order": {"success": True, "orderExists": True, "orderStatus": "NEW"},
    })
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.place_order(session, _order(account), config)

    assert result.success is True
    assert result.verified is True
    assert result.verification_message == "Order verified on exchange"
    assert result.order_status == "NEW"
    assert gw.call_count == 2

    trade = session.get(Trade, result.trade_id)
    assert trade.order_id == "123"
    assert trade.is_simulated is False
    assert trade.status == "open"


@pytest.mark.asyncio
async def test_unverified_order_keeps_success(session, account, config, fake_gateway):
    _go_real(session, account)
    gw = fake_gateway({
        "place_order": PLACED,
        "verify_order": {"success": True, "orderExists": False},
    })
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.place_order(session, _order(account), config)

    assert result.success is True
    assert result.verified is False
    assert result.verification_message == "Order not found on exchange"
    # exactly one read-back, no retry
    actions = [c.args[0].value for c in gw.call_args_list]
    assert actions == ["place_order", "verify_order"]


@pytest.mark.asyncio
async def test_read_back_error_keeps_success(session, account, config, fake_gateway):
    _go_real(session, account)
    gw = fake_gateway({
        "place_order": PLACED,
        "verify_order": GatewayUnavailable("Binance unreachable"),
    })
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.place_order(session, _order(account), config)
    assert result.success is True
    assert result.verified is False


@pytest.mark.asyncio
async def test_live_order_payload(session, account, config, fake_gateway):
    _go_real(session, account)
    gw = fake_gateway({"place_order": PLACED, "verify_order": {"success": True, "orderExists": True}})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        await orders.place_order(session, _order(account, type="limit", price=95.5), config)

    data = gw.call_args_list[0].args[2]
    assert data == {"symbol": "BTCUSDT", "side": "BUY", "type": "LIMIT", "quantity": 0.01, "price": 95.5}


@pytest.mark.asyncio
async def test_rejected_order(session, account, config, fake_gateway):
    _go_real(session, account)
    gw = fake_gateway({"place_order": GatewayError("Binance API error: Account has insufficient balance")})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.place_order(session, _order(account), config)

    assert result.success is False
    assert "insufficient balance" in result.message
    assert result.verified is None
    assert session.exec(select(Trade)).all() == []
    log = session.exec(select(TradingLog).where(TradingLog.log_type == "error")).one()
    assert log.message.startswith("Order rejected")


@pytest.mark.asyncio
async def test_live_order_never_simulated(session, account, config, fake_gateway):
    _go_real(session, account)
    gw = fake_gateway({"place_order": GatewayUnavailable("Binance unreachable")})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.place_order(session, _order(account), config)
    assert result.success is False
    assert result.simulated is False


@pytest.mark.asyncio
async def test_bot_from_other_account_rejected(session, account, config, fake_gateway):
    result = await orders.place_order(session, _order(account, bot_id=999), config)
    assert result.success is False
    assert "Bot" in result.message


# ---------------------------------------------------------------------------
# 3. Paper fills
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_demo_order_filled_on_paper(session, account, config, fake_gateway):
    gw = fake_gateway({})
    with patch("tradedesk.services.gateway.call_gateway", gw), \
            patch("tradedesk.services.gateway.get_public_price", AsyncMock(return_value=64000.0)):
        result = await orders.place_order(session, _order(account), config)

    assert result.success is True
    assert result.simulated is True
    assert result.status == "FILLED"
    assert result.price == 64000.0
    assert result.order_id.startswith("paper-")
    gw.assert_not_called()

    trade = session.get(Trade, result.trade_id)
    assert trade.is_simulated is True
    assert trade.entry_price == 64000.0


@pytest.mark.asyncio
async def test_demo_limit_order_uses_limit_price(session, account, config):
    lookup = AsyncMock(return_value=64000.0)
    with patch("tradedesk.services.gateway.get_public_price", lookup):
        result = await orders.place_order(session, _order(account, type="limit", price=63000.0), config)
    assert result.price == 63000.0
    lookup.assert_not_called()


@pytest.mark.asyncio
async def test_demo_order_without_price(session, account, config):
    with patch("tradedesk.services.gateway.get_public_price", AsyncMock(return_value=None)):
        result = await orders.place_order(session, _order(account), config)
    assert result.success is False
    assert "No market price" in result.message


@pytest.mark.asyncio
async def test_execute_trade_touches_bot(session, account, config):
    bot = TradingBot(account_id=account.id, name="Runner")
    session.add(bot)
    session.commit()
    request = ExecuteTradeRequest(account_id=account.id, symbol="ETHUSDT", type="sell", lot_size=0.5, bot_id=bot.id)
    with patch("tradedesk.services.gateway.get_public_price", AsyncMock(return_value=3000.0)):
        result = await orders.execute_trade(session, request, config)

    assert result.success is True
    session.refresh(bot)
    assert bot.last_activity is not None
    trade = session.get(Trade, result.trade_id)
    assert trade.side == "sell"
    assert trade.bot_id == bot.id


# ---------------------------------------------------------------------------
# 4. Closing, stop loss and cancel
# ---------------------------------------------------------------------------

def _open(session, account, simulated=True, **kwargs) -> Trade:
    values = dict(
        account_id=account.id, symbol="BTCUSDT", side="buy", order_id="123",
        entry_price=100.0, lot_size=2.0, is_simulated=simulated,
    )
    values.update(kwargs)
    trade = Trade(**values)
    session.add(trade)
    session.commit()
    session.refresh(trade)
    return trade


@pytest.mark.asyncio
async def test_close_paper_trade(session, account, config):
    bot = TradingBot(account_id=account.id, name="Runner")
    session.add(bot)
    session.commit()
    trade = _open(session, account, bot_id=bot.id)

    result = await orders.close_trade(session, trade.id, 110.0, config)

    assert result.success is True
    assert result.status == "CLOSED"
    session.refresh(trade)
    assert trade.status == "closed"
    assert trade.pnl == 20.0
    assert trade.closed_at is not None
    session.refresh(bot)
    assert bot.total_trades == 1
    assert bot.profitable_trades == 1
    assert bot.win_rate == 100.0


@pytest.mark.asyncio
async def test_closed_trade_is_immutable(session, account, config):
    trade = _open(session, account)
    await orders.close_trade(session, trade.id, 110.0, config)

    again = await orders.close_trade(session, trade.id, 90.0, config)
    assert again.success is False
    stop = await orders.update_stop_loss(session, trade.id, StopLossUpdate(stop_price=95.0), config)
    assert stop.success is False

    session.refresh(trade)
    assert trade.exit_price == 110.0
    assert trade.stop_loss is None


@pytest.mark.asyncio
async def test_close_live_trade_verifies_closure(session, account, config, fake_gateway):
    _go_real(session, account)
    trade = _open(session, account, simulated=False, side="sell")
    gw = fake_gateway({
        "close_position": {"success": True, "orderId": "456", "price": 90.0},
        "verify_position_closure": {"success": True, "positionClosed": True, "orderStatus": "FILLED"},
    })
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.close_trade(session, trade.id, None, config)

    assert result.success is True
    assert result.verified is True
    session.refresh(trade)
    assert trade.pnl == 20.0
    assert trade.exit_price == 90.0


@pytest.mark.asyncio
async def test_close_live_trade_without_fill_price_is_unverified(session, account, config, fake_gateway, caplog):
    _go_real(session, account)
    trade = _open(session, account, simulated=False)
    gw = fake_gateway({
        "close_position": {"success": True, "orderId": "457", "price": None},
        "verify_position_closure": {"success": True, "positionClosed": True, "orderStatus": "FILLED"},
    })
    with caplog.at_level(logging.WARNING), patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.close_trade(session, trade.id, None, config)

    assert result.success is True
    assert result.verified is False
    assert "No fill price" in result.verification_message
    assert "reported no fill price" in caplog.text
    session.refresh(trade)
    assert trade.status == "closed"
    assert trade.exit_price == 100.0


@pytest.mark.asyncio
async def test_close_live_trade_failure_leaves_trade_open(session, account, config, fake_gateway):
    _go_real(session, account)
    trade = _open(session, account, simulated=False)
    gw = fake_gateway({"close_position": GatewayError("Binance API error: Filter failure: LOT_SIZE")})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.close_trade(session, trade.id, None, config)
    assert result.success is False
    session.refresh(trade)
    assert trade.status == "open"


@pytest.mark.asyncio
async def test_update_stop_loss_live(session, account, config, fake_gateway):
    _go_real(session, account)
    trade = _open(session, account, simulated=False)
    gw = fake_gateway({"update_stop_loss": {"success": True, "orderId": "789"}})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.update_stop_loss(session, trade.id, StopLossUpdate(stop_price=95.0), config)

    assert result.success is True
    assert result.order_id == "789"
    session.refresh(trade)
    assert trade.stop_loss == 95.0
    assert gw.call_args.args[2]["stopPrice"] == 95.0


@pytest.mark.asyncio
async def test_cancel_paper_order(session, account, config, fake_gateway):
    trade = _open(session, account, order_id="paper-abc")
    gw = fake_gateway({})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.cancel_order(session, account.id, "paper-abc", "btcusdt", config)

    assert result.success is True
    assert result.simulated is True
    gw.assert_not_called()
    session.refresh(trade)
    assert trade.status == "cancelled"


@pytest.mark.asyncio
async def test_cancel_live_order(session, account, config, fake_gateway):
    _go_real(session, account)
    _open(session, account, simulated=False)
    gw = fake_gateway({"cancel_order": {"success": True, "orderId": "123", "status": "CANCELED"}})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.cancel_order(session, account.id, "123", "btcusdt", config)

    assert result.success is True
    assert gw.call_args.args[2] == {"symbol": "BTCUSDT", "orderId": "123"}


# ---------------------------------------------------------------------------
# 5. verify_order_execution
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_verify_order_execution_not_found(session, account, config, fake_gateway):
    gw = fake_gateway({"verify_order": {"success": True, "orderExists": False}})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.verify_order_execution(session, account.id, "42", "BTCUSDT", config)
    assert result.success is False
    assert result.message == "Order not found on exchange"


@pytest.mark.asyncio
async def test_verify_order_execution_error(session, account, config, fake_gateway):
    gw = fake_gateway({"verify_order": GatewayError("Binance API error: Invalid symbol.")})
    with patch("tradedesk.services.gateway.call_gateway", gw):
        result = await orders.verify_order_execution(session, account.id, "42", "XXX", config)
    assert result.success is False
    assert "Invalid symbol" in result.message
