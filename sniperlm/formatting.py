from html import escape

from .prompts import DISCLAIMER


def welcome_text(p) -> str:
    return ("<b>🤖 SniperLM آماده است.</b>\n\n"
            "از منوی زیر یک گزینه را انتخاب کنید:\n\n"
            f"• سهمیه باقی‌مانده: رایگان <b>{p.free_uses_remaining}</b> | "
            f"بونوس <b>{p.bonus_uses_remaining}</b> | کیف‌پول <b>{p.wallet_balance}</b>")


def profile_text(p) -> str:
    lines = [
        "<b>👤 پروفایل شما</b>",
        f"• <b>آیدی:</b> <code>{p.id}</code>",
        f"• <b>یوزرنیم:</b> @{escape(p.username)}" if p.username else "",
        f"• <b>استفاده باقی‌مانده (رایگان):</b> {p.free_uses_remaining}",
        f"• <b>استفاده باقی‌مانده (بونوس):</b> {p.bonus_uses_remaining}",
        f"• <b>رفرال‌های موفق:</b> {p.referrals}",
        f"• <b>موجودی کیف پول:</b> {p.wallet_balance}",
        f"• <b>پلن:</b> {escape(p.plan)}",
    ]
    return "\n".join(x for x in lines if x)


def wallet_text(p) -> str:
    return ("<b>💳 کیف پول</b>\n"
            f"موجودی فعلی: <b>{p.wallet_balance}</b>\n\n"
            "روش شارژ:\n"
            "۱) مبلغ را واریز کنید.\n"
            "۲) رسید یا TXID را برای پشتیبانی ارسال کنید تا ادمین شارژ کند.")


def referral_text(p, bot_username: str, need: int, bonus: int) -> str:
    link = f"https://t.me/{bot_username}?start={p.referral_code}"
    return ("<b>🎁 رفرال</b>\n"
            f"کد شما: <code>{escape(p.referral_code)}</code>\n\n"
            f"لینک دعوت:\n{escape(link)}\n\n"
            f"با هر {need} دعوت موفق، {bonus} استفاده بونوس می‌گیرید.\n"
            f"دعوت‌های موفق تا الان: <b>{p.referrals}</b>")


def support_text() -> str:
    return ("<b>🆘 پشتیبانی</b>\n"
            "برای شارژ کیف پول یا مشکلات فنی به ادمین پیام بدهید.\n"
            "• همچنین می‌توانید از دستور /help استفاده کنید.")


def usage_blocked_text(need: int, bonus: int) -> str:
    return ("<b>⛔️ سهمیه شما تمام شده است.</b>\n\n"
            "برای ادامه یکی از کارهای زیر را انجام دهید:\n"
            f"1) {need} نفر را با لینک رفرال دعوت کنید ({bonus} استفاده بونوس می‌گیرید)\n"
            "2) کیف پول را شارژ کنید (از پشتیبانی/ادمین)\n\n"
            "دکمه «🎁 رفرال» یا «💳 کیف پول» را بزنید.")


def ask_chart_text(symbol: str) -> str:
    return (f"🖼 لطفاً عکس چارت <b>{escape(symbol)}</b> را ارسال کنید.\n"
            "نکته: بهتر است تایم‌فریم و محدوده قیمت روی تصویر مشخص باشد.")


def ask_prompt_text(symbol: str) -> str:
    return (f"✍️ لطفاً توضیح/پرامپت برای <b>{escape(symbol)}</b> را بنویسید.\n"
            "مثلاً: «اسکالپ، تایم‌فریم ۱۵ دقیقه، ریسک کم، فقط پرایس اکشن»")


def news_text(symbol: str, news) -> str:
    parts = [f"<b>📰 خبرهای مرتبط با {escape(symbol)}</b>", ""]
    parts += [f"{i}) {escape(h)}" for i, h in enumerate(news.headlines[:8], 1)] or ["—"]
    parts += ["", f"⭐️ امتیاز خبر: <b>{news.score}/10</b>"]
    if news.reasons:
        parts += ["دلایل:"] + [f"• {escape(r)}" for r in news.reasons]
    return "\n".join(parts)


def signal_text(sig: dict, llm_provider: str, vision_provider: str) -> str:
    dir_map = {"BUY": "📈 خرید", "SELL": "📉 فروش", "NEUTRAL": "⏸️ خنثی"}
    parts = [
        f"<b>📌 سیگنال آموزشی برای {escape(sig['symbol'])}</b>",
        f"⏱ تایم‌فریم: <b>{escape(sig['timeframe'])}</b> | سبک: <b>{escape(sig['style'])}</b>",
        f"🧭 جهت: <b>{dir_map.get(sig['direction'], escape(sig['direction']))}</b> | اطمینان: <b>{sig['confidence']}٪</b>",
        "",
        f"🎯 ورود: <code>{escape(sig['entry'])}</code>",
        f"🛑 حدضرر: <code>{escape(sig['stopLoss'])}</code>",
    ]
    if sig.get("takeProfits"):
        parts.append("✅ تارگت‌ها:")
        parts += [f"• <code>{escape(tp)}</code>" for tp in sig["takeProfits"]]
    if sig.get("keyLevels"):
        parts += ["", "🧱 سطوح کلیدی:"] + [f"• <code>{escape(lv)}</code>" for lv in sig["keyLevels"]]
    if sig.get("rationale"):
        parts += ["", "<b>📝 دلایل:</b>"] + [f"• {escape(r)}" for r in sig["rationale"]]
    if sig.get("newsSummary"):
        parts += ["", "<b>📰 خلاصه خبر:</b>"] + [f"• {escape(n)}" for n in sig["newsSummary"]]
        parts.append(f"⭐️ امتیاز خبر: <b>{sig.get('newsScore', 5)}/10</b>")
    if sig.get("riskNotes"):
        parts += ["", "<b>⚠️ ریسک‌ها:</b>"] + [f"• {escape(r)}" for r in sig["riskNotes"]]
    parts += [
        "",
        f"🤖 مدل متن: <b>{escape(llm_provider)}</b> | 👁️ مدل ویژن: <b>{escape(vision_provider)}</b>",
        "",
        f"<i>📎 {escape(sig.get('disclaimer') or DISCLAIMER)}</i>",
    ]
    return "\n".join(parts)
