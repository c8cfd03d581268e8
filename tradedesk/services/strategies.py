"""Strategy table for trading bots and the risk-tier adjustments applied to it.

Pure data and computation, no I/O. Stop loss and take profit are in pips;
max_risk_per_trade is a percentage of balance.
"""

from dataclasses import asdict, dataclass, field, replace
from typing import Any

from tradedesk.utils.constants import RiskLevel


@dataclass(frozen=True)
class StrategySettings:
    timeframes: list[str]
    indicators: list[str]
    entry_conditions: dict[str, Any]
    exit_conditions: dict[str, Any]
    risk_parameters: dict[str, Any]
    asset_classes: list[str]
    stop_loss: float | None = None
    take_profit: float | None = None
    leverage: float | None = None
    max_open_trades: int | None = None
    lot_size: float | None = None
    max_drawdown: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StrategyInfo:
    id: str
    name: str
    description: str
    settings: StrategySettings = field(repr=False)


# ---------------------------------------------------------------------------
# Strategy table
# ---------------------------------------------------------------------------

_STRATEGIES: dict[str, StrategyInfo] = {
    s.id: s
    for s in [
        StrategyInfo(
            id="trend_following",
            name="Trend Following",
            description="Follows the prevailing market direction using moving averages and trend-strength indicators",
            settings=StrategySettings(
                timeframes=["H1", "H4", "D1"],
                indicators=["Moving Average", "MACD", "ADX"],
                entry_conditions={"macd_crossover": True, "adx_threshold": 25, "ma_threshold": 0.5},
                exit_conditions={"macd_divergence": True, "trend_reversal": True, "target_reached": True},
                risk_parameters={"max_risk_per_trade": 2, "trailing_stop": True, "stop_loss_multiplier": 1.5},
                asset_classes=["forex", "indices", "commodities"],
                stop_loss=50,
                take_profit=100,
                max_open_trades=5,
            ),
        ),
        StrategyInfo(
            id="mean_reversion",
            name="Mean Reversion",
            description="Trades prices that have stretched far from their average, expecting a return",
            settings=StrategySettings(
                timeframes=["M15", "H1", "H4"],
                indicators=["Bollinger Bands", "RSI", "Stochastic"],
                entry_conditions={"oversold_threshold": 30, "overbought_threshold": 70, "band_deviation": 2.0},
                exit_conditions={"mean_returned": True, "rsi_normalized": True, "time_based_exit": 48},
                risk_parameters={"max_risk_per_trade": 1.5, "partial_take_profit": True, "multiple_take_profit": True},
                asset_classes=["forex", "stocks", "indices"],
                stop_loss=40,
                take_profit=50,
                max_open_trades=8,
            ),
        ),
        StrategyInfo(
            id="breakout",
            name="Breakout",
            description="Enters when price breaks strong support or resistance levels on rising volume",
            settings=StrategySettings(
                timeframes=["M30", "H1", "H4"],
                indicators=["Support/Resistance", "Volume", "ATR"],
                entry_conditions={"volume_increase": 1.5, "price_breakout": True, "consolidation_period": 20},
                exit_conditions={"false_breakout": True, "volume_decrease": True, "target_reached": True},
                risk_parameters={"max_risk_per_trade": 2.5, "wider_stops": True, "breakout_confirmation": True},
                asset_classes=["forex", "stocks", "indices", "commodities"],
                stop_loss=60,
                take_profit=120,
                max_open_trades=4,
            ),
        ),
        StrategyInfo(
            id="scalping",
            name="Scalping",
            description="Fast intraday trading for frequent small profits",
            settings=StrategySettings(
                timeframes=["M1", "M5", "M15"],
                indicators=["EMA", "Stochastic", "MACD"],
                entry_conditions={"fast_ema_crossover": True, "momentum_confirmation": True, "low_spread": True},
                exit_conditions={"small_profit_target": True, "quick_reversal_sign": True, "time_based_exit": 30},
                risk_parameters={"max_risk_per_trade": 1.0, "tight_stop_loss": True, "fast_exit_trigger": True},
                asset_classes=["forex", "stocks"],
                stop_loss=20,
                take_profit=30,
                leverage=10,
                max_open_trades=10,
            ),
        ),
        StrategyInfo(
            id="smart_auto",
            name="Smart Adaptive",
            description="Adapts its approach to current market conditions across several timeframes",
            settings=StrategySettings(
                timeframes=["M15", "H1", "H4", "D1"],
                indicators=["Moving Average", "RSI", "Bollinger Bands", "MACD", "Volume"],
                entry_conditions={
                    "adaptive_strategy": True,
                    "market_condition_analysis": True,
                    "multi_timeframe_confirmation": True,
                },
                exit_conditions={"adaptive_exits": True, "trailing_stop": True, "partial_profit_taking": True},
                risk_parameters={
                    "dynamic_position_sizing": True,
                    "adaptive_risk_per_trade": True,
                    "volatility_based_stops": True,
                },
                asset_classes=["forex", "stocks", "indices", "commodities", "cryptocurrencies"],
                stop_loss=45,
                take_profit=90,
                max_open_trades=6,
            ),
        ),
        StrategyInfo(
            id="grid_trading",
            name="Grid Trading",
            description="Places buy and sell orders at a ladder of price levels",
            settings=StrategySettings(
                timeframes=["H1", "H4", "D1"],
                indicators=["Support/Resistance", "Pivot Points", "ATR"],
                entry_conditions={
                    "grid_levels": [0.25, 0.5, 0.75, 1.0, 1.25, 1.5, 1.75],
                    "bidirectional": True,
                    "range_confirmation": True,
                },
                exit_conditions={"partial_closing": True, "entire_grid_profit": True, "trend_breakout": True},
                risk_parameters={"equal_position_sizing": True, "total_risk_control": True, "maximum_open_positions": 10},
                asset_classes=["forex", "cryptocurrencies"],
                stop_loss=100,
                leverage=5,
                max_open_trades=20,
            ),
        ),
        StrategyInfo(
            id="hedging",
            name="Hedging",
            description="Reduces exposure by holding offsetting positions in correlated markets",
            settings=StrategySettings(
                timeframes=["H4", "D1", "W1"],
                indicators=["Correlation", "Beta", "Volatility"],
                entry_conditions={"negative_correlation": -0.7, "risk_exposure": True, "market_event_based": True},
                exit_conditions={
                    "hedging_ratio_normalized": True,
                    "correlation_change": True,
                    "time_based_rebalancing": 168,
                },
                risk_parameters={"portfolio_balanced": True, "risk_parity_approach": True, "dynamic_hedge_ratio": True},
                asset_classes=["forex", "indices", "commodities", "bonds"],
                stop_loss=80,
                take_profit=120,
                max_open_trades=12,
            ),
        ),
        StrategyInfo(
            id="arbitrage",
            name="Arbitrage",
            description="Captures price differences for the same asset across markets",
            settings=StrategySettings(
                timeframes=["M1", "M5", "M15"],
                indicators=["Price Difference", "Spread Analysis", "Execution Time"],
                entry_conditions={"price_divergence": 0.5, "cost_factor": 0.2, "execution_speed": 0.5},
                exit_conditions={"convergence": True, "time_limit": 60, "min_profit_target": True},
                risk_parameters={
                    "balanced_exposure": True,
                    "minimum_spread_requirement": True,
                    "maximum_holding_time": 120,
                },
                asset_classes=["forex", "stocks", "cryptocurrencies"],
                stop_loss=15,
                take_profit=25,
                leverage=20,
                max_open_trades=15,
            ),
        ),
        StrategyInfo(
            id="news_based",
            name="News Trading",
            description="Trades the market reaction to high-impact economic releases",
            settings=StrategySettings(
                timeframes=["M5", "M15", "H1"],
                indicators=["Economic Calendar", "Volatility", "Volume"],
                entry_conditions={"news_impact": "high", "pre_news_entry_time": 15, "post_news_reaction": True},
                exit_conditions={"volatility_return": True, "time_based_exit": 60, "profit_target_reached": True},
                risk_parameters={"reduced_position_size": True, "wider_stop_loss": True, "news_specific_settings": True},
                asset_classes=["forex", "stocks", "indices"],
                stop_loss=70,
                take_profit=90,
                max_open_trades=3,
            ),
        ),
        StrategyInfo(
            id="adaptive_momentum",
            name="Adaptive Momentum",
            description="Follows the strength and speed of price moves with dynamic sizing",
            settings=StrategySettings(
                timeframes=["M15", "H1", "H4", "D1"],
                indicators=["ROC", "ADX", "Momentum", "Volume"],
                entry_conditions={"momentum_strength": 70, "direction_confirmation": True, "volume_support": True},
                exit_conditions={"momentum_weakening": True, "contrary_signals": True, "profit_protection": True},
                risk_parameters={"dynamic_position_sizing": True, "momentum_based_stop_loss": True, "scaled_exits": True},
                asset_classes=["forex", "stocks", "indices", "commodities"],
                stop_loss=50,
                take_profit=100,
                max_open_trades=8,
            ),
        ),
    ]
}

STRATEGY_IDS: tuple[str, ...] = tuple(_STRATEGIES)
DEFAULT_STRATEGY = "smart_auto"

# (risk per trade, stop loss, take profit) multipliers
RISK_MULTIPLIERS: dict[str, tuple[float, float, float]] = {
    "low": (0.5, 0.7, 0.8),
    "medium": (1.0, 1.0, 1.0),
    "high": (2.0, 1.3, 1.2),
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def list_strategies() -> list[StrategyInfo]:
    return list(_STRATEGIES.values())


def get_strategy(strategy_id: str) -> StrategyInfo:
    """Strategy by id; unknown ids fall back to smart_auto."""
    return _STRATEGIES.get(strategy_id) or _STRATEGIES[DEFAULT_STRATEGY]


def get_strategy_settings(strategy_id: str) -> StrategySettings:
    return get_strategy(strategy_id).settings


# ---------------------------------------------------------------------------
# Risk adjustment
# ---------------------------------------------------------------------------

def adjust_for_risk(settings: StrategySettings, risk_level: RiskLevel) -> StrategySettings:
    """Scale risk per trade, stop loss and take profit for a risk tier.

    Stop loss and take profit are rounded to whole pips. Values a strategy
    does not define stay undefined.
    """
    risk_mult, sl_mult, tp_mult = RISK_MULTIPLIERS.get(risk_level, RISK_MULTIPLIERS["medium"])

    risk_parameters = dict(settings.risk_parameters)
    if risk_parameters.get("max_risk_per_trade") is not None:
        risk_parameters["max_risk_per_trade"] = risk_parameters["max_risk_per_trade"] * risk_mult

    return replace(
        settings,
        risk_parameters=risk_parameters,
        stop_loss=_round_half_up(settings.stop_loss * sl_mult) if settings.stop_loss is not None else None,
        take_profit=_round_half_up(settings.take_profit * tp_mult) if settings.take_profit is not None else None,
    )


def _round_half_up(value: float) -> int:
    # builtin round() is banker's rounding; pips round .5 up
    return int(value + 0.5)


def auto_settings_for(risk_level: RiskLevel) -> dict[str, Any]:
    """Auto-management bundle stored on a bot."""
    return {
        "smart_position_sizing": True,
        "auto_strategy_rotation": False,
        "capital_preservation": risk_level == "low",
        "max_daily_trades": {"low": 3, "high": 15}.get(risk_level, 8),
        "profit_reinvestment_rate": {"low": 30, "high": 70}.get(risk_level, 50),
        "adaptive_risk_management": True,
    }
