CATEGORIES = [
    ("majors", "💱 جفت‌ارزهای ماجور"),
    ("metals", "🪙 فلزات"),
    ("stocks", "📊 سهام"),
    ("crypto", "₿ کریپتو"),
]

SYMBOLS = {
    "majors": [("EURUSD", "EUR/USD"), ("GBPUSD", "GBP/USD"), ("USDJPY", "USD/JPY"), ("USDCHF", "USD/CHF"),
               ("AUDUSD", "AUD/USD"), ("USDCAD", "USD/CAD"), ("NZDUSD", "NZD/USD")],
    "metals": [("XAUUSD", "طلا (XAU/USD)"), ("XAGUSD", "نقره (XAG/USD)")],
    "stocks": [("US30", "Dow Jones (US30)"), ("NAS100", "Nasdaq (NAS100)"), ("SPX500", "S&P 500 (SPX500)")],
    "crypto": [(s, f"{s[:-4]}/USDT") for s in (
        "BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT", "ADAUSDT", "DOGEUSDT", "AVAXUSDT",
        "DOTUSDT", "LINKUSDT", "MATICUSDT", "LTCUSDT", "TRXUSDT", "BCHUSDT", "SHIBUSDT")],
}


def is_known(category: str, symbol: str = None) -> bool:
    if category not in SYMBOLS:
        return False
    return symbol is None or any(s == symbol for s, _ in SYMBOLS[category])
