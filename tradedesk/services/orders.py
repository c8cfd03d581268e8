"""Order submission with read-back verification.

Real-mode orders go to the broker gateway; after placement the order is
queried once by id and the outcome attached as `verified`. A failed
read-back never turns a placed order into a failure, and there is no
retry. Demo-mode accounts are filled on paper at the public ticker
price and never reach the broker.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from tradedesk.models.account import TradingAccount
from tradedesk.models.bot import TradingBot
from tradedesk.models.trade import Trade
from tradedesk.schemas.order import ExecuteTradeRequest, PlaceOrderRequest, StopLossUpdate
from tradedesk.schemas.results import OrderResult, VerificationResult
from tradedesk.services import gateway, trading_log
from tradedesk.services.bots import update_bot_performance
from tradedesk.services.credentials import MissingCredentialsError, get_account
from tradedesk.services.encryption import SecretDecryptionError

logger = logging.getLogger(__name__)

_CALL_ERRORS = (gateway.GatewayError, MissingCredentialsError, SecretDecryptionError)


def compute_pnl(side: str, entry_price: float, exit_price: float, quantity: float) -> float:
    direction = 1 if side == "buy" else -1
    return round((exit_price - entry_price) * quantity * direction, 8)


def _paper_order_id() -> str:
    return f"paper-{uuid.uuid4().hex[:16]}"


def _error_message(e: Exception) -> str:
    return e.message if isinstance(e, gateway.GatewayError) else str(e)


# ── Verification ───────────────────────────────────────


async def verify_order_execution(
    session: Session,
    account_id: int,
    order_id: str,
    symbol: str,
    config: gateway.GatewayConfig | None = None,
) -> VerificationResult:
    """Query the order back from the broker; success means it exists there."""
    account = get_account(session, account_id)
    if not account:
        return VerificationResult(success=False, message="Account not found")
    try:
        data = await gateway.call_gateway(
            gateway.GatewayAction.VERIFY_ORDER,
            account,
            {"orderId": order_id, "symbol": symbol},
            config,
        )
    except _CALL_ERRORS as e:
        logger.error(f"Order verification for {order_id} failed: {e}")
        return VerificationResult(success=False, message=_error_message(e))

    exists = data.get("orderExists") is True
    return VerificationResult(
        success=exists,
        message="Order verified on exchange" if exists else "Order not found on exchange",
        order_status=data.get("orderStatus"),
    )


async def _verify_position_closure(
    account: TradingAccount,
    order_id: str,
    symbol: str,
    config: gateway.GatewayConfig | None,
) -> VerificationResult:
    try:
        data = await gateway.call_gateway(
            gateway.GatewayAction.VERIFY_POSITION_CLOSURE,
            account,
            {"orderId": order_id, "symbol": symbol},
            config,
        )
    except _CALL_ERRORS as e:
        return VerificationResult(success=False, message=_error_message(e))

    closed = data.get("positionClosed") is True
    return VerificationResult(
        success=closed,
        message="Position closure verified on exchange" if closed else "Position may not be fully closed on exchange",
        order_status=data.get("orderStatus"),
    )


# ── Placement ──────────────────────────────────────────


def _open_trade(
    session: Session,
    account: TradingAccount,
    request: PlaceOrderRequest,
    order_id: str | None,
    price: float,
    simulated: bool,
) -> Trade:
    trade = Trade(
        account_id=account.id,
        bot_id=request.bot_id,
        symbol=request.symbol,
        side=request.side,
        order_type=request.type,
        order_id=order_id,
        entry_price=price,
        lot_size=request.quantity,
        stop_loss=request.stop_loss,
        take_profit=request.take_profit,
        is_simulated=simulated,
    )
    session.add(trade)
    session.flush()
    trading_log.record(
        session,
        account.id,
        f"{'Paper' if simulated else 'Live'} {request.side} {request.quantity} {request.symbol} @ {price}",
        log_type="success",
        bot_id=request.bot_id,
        details={"order_id": order_id, "trade_id": trade.id, "type": request.type},
    )
    return trade


async def _paper_fill(
    session: Session,
    account: TradingAccount,
    request: PlaceOrderRequest,
    config: gateway.GatewayConfig,
) -> OrderResult:
    price = request.price if request.type == "limit" else None
    if price is None:
        price = await gateway.get_public_price(request.symbol, config) or request.price
    if price is None:
        return OrderResult(
            success=False,
            message=f"No market price available for {request.symbol}; provide a price",
            simulated=True,
        )

    order_id = _paper_order_id()
    trade = _open_trade(session, account, request, order_id, price, simulated=True)
    session.commit()
    logger.info(f"Paper order {order_id} filled: {request.side} {request.quantity} {request.symbol} @ {price}")
    return OrderResult(
        success=True,
        message="Order filled in demo mode",
        order_id=order_id,
        trade_id=trade.id,
        status="FILLED",
        price=price,
        simulated=True,
    )


async def place_order(
    session: Session,
    request: PlaceOrderRequest,
    config: gateway.GatewayConfig | None = None,
) -> OrderResult:
    config = config or gateway.GatewayConfig.from_settings()
    account = get_account(session, request.account_id)
    if not account:
        return OrderResult(success=False, message="Account not found")
    if request.bot_id is not None:
        bot = session.get(TradingBot, request.bot_id)
        if not bot or bot.account_id != account.id:
            return OrderResult(success=False, message="Bot does not belong to this account")

    try:
        if account.trading_mode != "real":
            return await _paper_fill(session, account, request, config)
        return await _place_live(session, account, request, config)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to record order for account {account.id}: {e}")
        return OrderResult(success=False, message=f"Failed to record order: {e}")


async def _place_live(
    session: Session,
    account: TradingAccount,
    request: PlaceOrderRequest,
    config: gateway.GatewayConfig,
) -> OrderResult:
    logger.info(f"Placing live order on account {account.id}: {request.side} {request.quantity} {request.symbol}")
    data = {
        "symbol": request.symbol,
        "side": request.side.upper(),
        "type": request.type.upper(),
        "quantity": request.quantity,
        "price": request.price,
        "stopPrice": request.stop_price,
        "timeInForce": request.time_in_force,
        "stopLoss": request.stop_loss,
        "takeProfit": request.take_profit,
    }
    data = {k: v for k, v in data.items() if v is not None}

    try:
        response = await gateway.call_gateway(gateway.GatewayAction.PLACE_ORDER, account, data, config)
    except _CALL_ERRORS as e:
        message = _error_message(e)
        logger.error(f"Order placement on account {account.id} failed: {message}")
        trading_log.record(
            session, account.id, f"Order rejected: {message}", log_type="error",
            bot_id=request.bot_id, details={"symbol": request.symbol, "side": request.side},
        )
        session.commit()
        return OrderResult(success=False, message=message)

    success = bool(response.get("success"))
    order_id = response.get("orderId")
    order_id = str(order_id) if order_id is not None else None

    verified = verification_message = order_status = None
    if order_id:
        verification = await verify_order_execution(session, account.id, order_id, request.symbol, config)
        verified = verification.success
        verification_message = verification.message
        order_status = verification.order_status
        if not verified:
            logger.error(f"Order {order_id} verification failed: {verification.message}")

    trade_id = None
    price = response.get("price") or request.price
    if success:
        trade = _open_trade(session, account, request, order_id, float(price or 0.0), simulated=False)
        session.commit()
        trade_id = trade.id

    return OrderResult(
        success=success,
        message=response.get("message") or ("Order placed" if success else "Order was not placed"),
        order_id=order_id,
        trade_id=trade_id,
        status=response.get("status"),
        price=price,
        verified=verified,
        verification_message=verification_message,
        order_status=order_status,
        raw=response.get("raw"),
    )


async def execute_trade(
    session: Session,
    request: ExecuteTradeRequest,
    config: gateway.GatewayConfig | None = None,
) -> OrderResult:
    """Market order on behalf of a bot or the user."""
    order = PlaceOrderRequest(
        account_id=request.account_id,
        symbol=request.symbol,
        side=request.type,
        type="market",
        quantity=request.lot_size,
        stop_loss=request.stop_loss,
        take_profit=request.take_profit,
        bot_id=request.bot_id,
    )
    result = await place_order(session, order, config)

    if result.success and request.bot_id is not None:
        bot = session.get(TradingBot, request.bot_id)
        if bot:
            bot.last_activity = datetime.now(timezone.utc)
            session.add(bot)
            session.commit()
    return result


# ── Trade management ───────────────────────────────────


async def close_trade(
    session: Session,
    trade_id: int,
    exit_price: float | None = None,
    config: gateway.GatewayConfig | None = None,
) -> OrderResult:
    """Close an open trade with an opposite market order and book its pnl."""
    config = config or gateway.GatewayConfig.from_settings()
    trade = session.get(Trade, trade_id)
    if not trade:
        return OrderResult(success=False, message="Trade not found")
    if trade.status != "open":
        return OrderResult(success=False, message=f"Trade is already {trade.status}", trade_id=trade.id)
    account = session.get(TradingAccount, trade.account_id)
    if not account:
        return OrderResult(success=False, message="Account not found", trade_id=trade.id)

    verified = verification_message = None
    if trade.is_simulated:
        price = exit_price or await gateway.get_public_price(trade.symbol, config)
        if price is None:
            return OrderResult(
                success=False,
                message=f"No market price available for {trade.symbol}; provide an exit price",
                trade_id=trade.id,
            )
        order_id = _paper_order_id()
    else:
        try:
            response = await gateway.call_gateway(
                gateway.GatewayAction.CLOSE_POSITION,
                account,
                {"symbol": trade.symbol, "side": trade.side, "quantity": trade.lot_size, "orderId": trade.order_id},
                config,
            )
        except _CALL_ERRORS as e:
            return OrderResult(success=False, message=_error_message(e), trade_id=trade.id)
        if not response.get("success"):
            return OrderResult(
                success=False,
                message=response.get("message") or "Failed to close position",
                trade_id=trade.id,
            )

        order_id = response.get("orderId")
        price = response.get("price") or exit_price
        if order_id:
            verification = await _verify_position_closure(account, str(order_id), trade.symbol, config)
            verified = verification.success
            verification_message = verification.message
        if not price:
            logger.warning(f"Close of trade {trade.id} reported no fill price; booking exit at entry price")
            price = trade.entry_price
            verified = False
            verification_message = "No fill price reported; exit booked at entry price, check the broker"

    pnl = compute_pnl(trade.side, trade.entry_price, float(price), trade.lot_size)
    trade.exit_price = float(price)
    trade.pnl = pnl
    trade.status = "closed"
    trade.closed_at = datetime.now(timezone.utc)
    session.add(trade)

    if trade.bot_id is not None:
        bot = session.get(TradingBot, trade.bot_id)
        if bot:
            update_bot_performance(session, bot, pnl)

    trading_log.record(
        session,
        trade.account_id,
        f"Closed {trade.side} {trade.lot_size} {trade.symbol} @ {price}, pnl {pnl}",
        log_type="success" if pnl >= 0 else "warning",
        bot_id=trade.bot_id,
        details={"trade_id": trade.id, "order_id": order_id, "verified": verified},
    )
    session.commit()

    return OrderResult(
        success=True,
        message="Position closed",
        order_id=str(order_id) if order_id is not None else None,
        trade_id=trade.id,
        status="CLOSED",
        price=float(price),
        verified=verified,
        verification_message=verification_message,
        simulated=trade.is_simulated,
    )


async def update_stop_loss(
    session: Session,
    trade_id: int,
    update: StopLossUpdate,
    config: gateway.GatewayConfig | None = None,
) -> OrderResult:
    trade = session.get(Trade, trade_id)
    if not trade:
        return OrderResult(success=False, message="Trade not found")
    if trade.status != "open":
        return OrderResult(success=False, message=f"Trade is already {trade.status}", trade_id=trade.id)

    order_id = None
    if not trade.is_simulated:
        account = session.get(TradingAccount, trade.account_id)
        try:
            response = await gateway.call_gateway(
                gateway.GatewayAction.UPDATE_STOP_LOSS,
                account,
                {
                    "symbol": trade.symbol,
                    "side": trade.side,
                    "quantity": trade.lot_size,
                    "stopPrice": update.stop_price,
                    "orderId": update.order_id,
                },
                config,
            )
        except _CALL_ERRORS as e:
            return OrderResult(success=False, message=_error_message(e), trade_id=trade.id)
        if not response.get("success"):
            return OrderResult(
                success=False,
                message=response.get("message") or "Failed to update stop loss",
                trade_id=trade.id,
            )
        order_id = response.get("orderId")

    previous = trade.stop_loss
    trade.stop_loss = update.stop_price
    session.add(trade)
    trading_log.record(
        session,
        trade.account_id,
        f"Stop loss for {trade.symbol} moved from {previous} to {update.stop_price}",
        bot_id=trade.bot_id,
        details={"trade_id": trade.id, "order_id": order_id},
    )
    session.commit()
    return OrderResult(
        success=True,
        message="Stop loss updated",
        order_id=str(order_id) if order_id is not None else None,
        trade_id=trade.id,
        simulated=trade.is_simulated,
    )


async def cancel_order(
    session: Session,
    account_id: int,
    order_id: str,
    symbol: str,
    config: gateway.GatewayConfig | None = None,
) -> OrderResult:
    account = get_account(session, account_id)
    if not account:
        return OrderResult(success=False, message="Account not found")

    trade = session.exec(
        select(Trade).where(Trade.account_id == account_id, Trade.order_id == order_id)
    ).first()
    simulated = bool(trade and trade.is_simulated)

    if not simulated:
        try:
            response = await gateway.call_gateway(
                gateway.GatewayAction.CANCEL_ORDER,
                account,
                {"symbol": symbol.upper(), "orderId": order_id},
                config,
            )
        except _CALL_ERRORS as e:
            return OrderResult(success=False, message=_error_message(e), order_id=order_id)
        if not response.get("success"):
            return OrderResult(
                success=False,
                message=response.get("message") or "Failed to cancel order",
                order_id=order_id,
            )

    if trade and trade.status == "open":
        trade.status = "cancelled"
        trade.closed_at = datetime.now(timezone.utc)
        session.add(trade)
    trading_log.record(
        session,
        account_id,
        f"Order {order_id} on {symbol.upper()} cancelled",
        log_type="warning",
        bot_id=trade.bot_id if trade else None,
        details={"order_id": order_id},
    )
    session.commit()
    return OrderResult(
        success=True,
        message="Order cancelled",
        order_id=order_id,
        trade_id=trade.id if trade else None,
        status="CANCELED",
        simulated=simulated,
    )
