"""Shared constants and literal types."""

from typing import Literal

Platform = Literal["binance", "bybit", "kucoin", "mt4", "mt5"]
TradingMode = Literal["real", "demo"]
RiskLevel = Literal["low", "medium", "high"]
BotStatus = Literal["active", "paused", "stopped", "error"]
TradeSide = Literal["buy", "sell"]
OrderType = Literal["market", "limit"]
LogType = Literal["info", "success", "warning", "error"]

API_KEY_PLATFORMS: tuple[str, ...] = ("binance", "bybit", "kucoin")
METATRADER_PLATFORMS: tuple[str, ...] = ("mt4", "mt5")

# Quote asset used to value Binance balances
QUOTE_ASSET = "USDT"

# Permissions reported when the gateway is unreachable and simulation is on
SIMULATED_PERMISSIONS = ["SPOT", "MARGIN", "FUTURES"]

RECOMMENDED_PAIRS_SMALL_BALANCE = [
    "BTCUSDT",
    "ETHUSDT",
    "BNBUSDT",
    "ADAUSDT",
    "DOGEUSDT",
    "XRPUSDT",
    "TRXUSDT",
    "LTCUSDT",
    "DOTUSDT",
    "MATICUSDT",
]

ASSET_CLASSES = (
    "forex",
    "stocks",
    "indices",
    "commodities",
    "cryptocurrencies",
    "bonds",
    "etfs",
    "futures",
)

# Offered when the MetaTrader bridge cannot list symbols
DEMO_ASSETS: dict[str, list[str]] = {
    "forex": ["EURUSD", "GBPUSD", "USDJPY", "AUDUSD", "USDCAD", "EURGBP", "NZDUSD"],
    "stocks": ["AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "META", "NVDA"],
    "indices": ["US30", "US500", "USTEC", "UK100", "GER40", "JPN225", "AUS200"],
    "commodities": ["XAUUSD", "XAGUSD", "USOIL", "UKOIL", "NATGAS", "COPPER", "SUGAR"],
    "cryptocurrencies": ["BTCUSD", "ETHUSD", "LTCUSD", "XRPUSD", "BNBUSD", "ADAUSD", "DOGEUSD"],
    "bonds": ["US10YR", "GER10YR", "UK10YR", "JPN10YR", "AUS10YR"],
    "etfs": ["SPY", "QQQ", "IWM", "EFA", "VGK", "EEM", "VWO"],
    "futures": ["ES", "NQ", "YM", "RTY", "CL", "GC", "SI"],
}
