import json

CHART_USER_PROMPT = "تحلیل آموزشی بر اساس تصویر چارت"

SIGNAL_SYSTEM_PROMPT = "You are a trading assistant. Return ONLY valid JSON."

VISION_SYSTEM_PROMPT = (
    "You analyze trading charts. Reply in Persian with a compact bullet list summary: "
    "trend, structure, key levels, patterns, indicators if visible."
)

DISCLAIMER = "این خروجی صرفاً آموزشی است و توصیه مالی نیست."


def build_signal_prompt(req, vision_summary: str = "", news_block: str = "") -> str:
    template = {
        "symbol": req.symbol,
        "timeframe": req.timeframe or "H1",
        "style": req.style or "swing",
        "direction": "BUY",
        "entry": "string",
        "stopLoss": "string",
        "takeProfits": ["string"],
        "confidence": 70,
        "rationale": ["string"],
        "keyLevels": ["string"],
        "newsSummary": ["string"],
        "newsScore": 7,
        "riskNotes": ["string"],
        "disclaimer": DISCLAIMER,
    }
    return "\n".join([
        "تو یک دستیار حرفه‌ای ترید هستی که باید فقط خروجی ساختاریافته بدهی.",
        "هدف: تولید سیگنال آموزشی (نه مشاوره مالی) بر اساس: (۱) توضیح کاربر، (۲) خلاصه چارت، (۳) خبرها، (۴) حافظه کاربر.",
        "قوانین:",
        "- خروجی را به صورت JSON خالص بده (بدون توضیح اضافی، بدون ```).",
        "- اگر داده کافی نیست، direction را NEUTRAL و confidence را پایین بده.",
        "- اعداد را به شکل رشته (string) بنویس.",
        "- زبان خروجی فارسی باشد.",
        "",
        f"نماد: {req.symbol}",
        f"تایم‌فریم: {req.timeframe or ''}",
        f"سبک: {req.style or ''}",
        f"ریسک: {req.risk or ''}",
        f"توضیح کاربر: {req.user_prompt or '(ندارد)'}",
        "",
        "حافظه کاربر (خلاصه):",
        req.memory_summary or "(ندارد)",
        "",
        "خلاصه چارت (Vision):",
        vision_summary or "(چارت ارسال نشده یا قابل تحلیل نبود)",
        "",
        "خبرها:",
        news_block or "(خبر مرتبطی دریافت نشد)",
        "",
        "الگوی JSON خروجی (حتماً همین کلیدها):",
        json.dumps(template, ensure_ascii=False, indent=2),
    ])


def build_news_scoring_prompt(headlines) -> str:
    return "\n".join([
        "تو یک تحلیل‌گر خبر هستی.",
        "به اخبار مرتبط با کریپتو/فارکس از ۱ تا ۱۰ امتیاز بده (۱۰ یعنی خیلی تاثیرگذار برای بازار کوتاه‌مدت).",
        "فقط JSON بده.",
        "کلیدها: score (1-10), reasons (آرایه کوتاه)، summary (آرایه خلاصه خبرها).",
        "خبرها:",
        *[f"{i}. {h}" for i, h in enumerate(headlines, 1)],
    ])


def build_card_prompt(symbol: str, direction: str, timeframe: str) -> str:
    return "\n".join([
        "A clean trading signal card in Persian.",
        f"Asset: {symbol}",
        f"Direction: {direction}",
        f"Timeframe: {timeframe}",
        "Include: entry, SL, TP1/TP2/TP3, confidence meter, minimal chart-style background.",
        "Modern, readable typography, high contrast, no logos, no watermarks.",
    ])


HELP_TEXT = (
    "<b>ℹ️ راهنما</b>\n"
    "1) «📈 دریافت سیگنال» → دسته و نماد را انتخاب کنید.\n"
    "2) سپس «ارسال چارت» یا «نوشتن پرامپت» را بزنید.\n\n"
    "دستورها:\n"
    "• /start\n"
    "• /help"
)
