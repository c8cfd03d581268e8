"""Append-only trading log: audit events shown on the dashboard."""

import logging
from typing import Any

from sqlmodel import Session

from tradedesk.models.trading_log import TradingLog
from tradedesk.utils.constants import LogType

logger = logging.getLogger(__name__)

_LEVELS = {"info": logging.INFO, "success": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


def record(
    session: Session,
    account_id: int,
    message: str,
    log_type: LogType = "info",
    bot_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> TradingLog:
    """Add a log row to the session. The caller commits."""
    entry = TradingLog(
        account_id=account_id,
        bot_id=bot_id,
        log_type=log_type,
        message=message,
        details=details,
    )
    session.add(entry)
    logger.log(_LEVELS.get(log_type, logging.INFO), f"[account {account_id}] {message}")
    return entry
