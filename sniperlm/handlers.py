import asyncio, base64, logging
from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import (
    ApplicationBuilder, CommandHandler, MessageHandler, CallbackQueryHandler,
    ContextTypes, filters
)

from .config import BOT_TOKEN, BOT_USERNAME, DB_PATH, Settings
from .assets import CATEGORIES, SYMBOLS, is_known
from .analyze import summarize_chart
from .db import JsonStore
from .formatting import (
    welcome_text, profile_text, wallet_text, referral_text, support_text,
    usage_blocked_text, ask_chart_text, ask_prompt_text, news_text, signal_text
)
from .models import AWAITING_CHART, ChartImage, Status
from .news import fetch_news_bundle, render_news_block
from .prompts import HELP_TEXT
from .session import SessionDirectory
from .signals import generate_signal, generate_signal_card, note_from_signal
from .utils import chunk

log = logging.getLogger(__name__)

CB_HOME = "menu:home"
CB_SIGNAL = "menu:signal"
CB_PROFILE = "menu:profile"
CB_WALLET = "menu:wallet"
CB_REFERRAL = "menu:referral"
CB_SUPPORT = "menu:support"

PICK_FROM_MENU = "از منو یکی از گزینه‌ها را انتخاب کنید."

def _sessions(context: ContextTypes.DEFAULT_TYPE) -> SessionDirectory:
    return context.application.bot_data["sessions"]

def menu_kb():
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("📈 دریافت سیگنال", callback_data=CB_SIGNAL)],
        [InlineKeyboardButton("👤 پروفایل", callback_data=CB_PROFILE),
         InlineKeyboardButton("🎁 رفرال", callback_data=CB_REFERRAL)],
        [InlineKeyboardButton("💳 کیف پول", callback_data=CB_WALLET),
         InlineKeyboardButton("🆘 پشتیبانی", callback_data=CB_SUPPORT)],
    ])

def signal_kb():
    rows = [[InlineKeyboardButton(label, callback_data=f"cat:{key}")] for key, label in CATEGORIES]
    rows.append([InlineKeyboardButton("🔙 بازگشت", callback_data=CB_HOME)])
    return InlineKeyboardMarkup(rows)

def symbols_kb(cat: str):
    buttons = [InlineKeyboardButton(label, callback_data=f"sym:{cat}:{sym}") for sym, label in SYMBOLS[cat]]
    rows = chunk(buttons, 2)
    rows.append([InlineKeyboardButton("🔙 بازگشت", callback_data=CB_SIGNAL)])
    return InlineKeyboardMarkup(rows)

def asset_kb(cat: str, sym: str):
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("🖼 ارسال چارت (عکس)", callback_data=f"act:chart:{cat}:{sym}")],
        [InlineKeyboardButton("✍️ نوشتن پرامپت/توضیح", callback_data=f"act:prompt:{cat}:{sym}")],
        [InlineKeyboardButton("📰 خبر مرتبط", callback_data=f"act:news:{cat}:{sym}")],
        [InlineKeyboardButton("🔙 بازگشت", callback_data=f"cat:{cat}")],
    ])

async def _ensure(update: Update, context: ContextTypes.DEFAULT_TYPE, payload: str = ""):
    u = update.effective_user
    return await _sessions(context).ask(
        u.id, "ensure", username=u.username, first_name=u.first_name, referral_payload=payload
    )

def _blocked_text(context):
    s = _sessions(context).settings
    return usage_blocked_text(s.referrals_for_bonus, s.bonus_uses)

# ---- commands ----
async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    payload = context.args[0] if context.args else ""
    profile, _ = await _ensure(update, context, payload)
    await update.message.reply_text(welcome_text(profile), reply_markup=menu_kb(), parse_mode="HTML")

async def help_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _ensure(update, context)
    await update.message.reply_text(HELP_TEXT, reply_markup=menu_kb(), parse_mode="HTML")

def parse_admin_args(args):
    """``<userId> <amount>`` with both positive integers, else None."""
    try:
        target, n = int(args[0]), int(args[1])
    except (IndexError, ValueError, TypeError):
        return None
    if target <= 0 or n <= 0:
        return None
    return target, n

async def _admin_mutation(update: Update, context: ContextTypes.DEFAULT_TYPE, op: str, usage: str, done: str):
    sessions = _sessions(context)
    if not sessions.settings.is_admin(update.effective_user.id): return
    parsed = parse_admin_args(context.args)
    if not parsed:
        await update.message.reply_text(usage, parse_mode="HTML"); return
    target, n = parsed
    key = "amount" if op == "admin_add_balance" else "uses"
    await sessions.ask(target, op, **{key: n})
    log.info("admin %s: %s %s +%s", update.effective_user.id, op, target, n)
    await update.message.reply_text(done.format(target=target, n=n), parse_mode="HTML")

async def admin_add_balance(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _admin_mutation(update, context, "admin_add_balance",
                          "فرمت: <code>/admin_add_balance &lt;userId&gt; &lt;amount&gt;</code>",
                          "✅ شارژ شد: <code>{target}</code> +{n}")

async def admin_grant_uses(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await _admin_mutation(update, context, "admin_grant_uses",
                          "فرمت: <code>/admin_grant_uses &lt;userId&gt; &lt;uses&gt;</code>",
                          "✅ استفاده بونوس اضافه شد: <code>{target}</code> +{n}")

# ---- menus ----
async def menu_cb(update: Update, context: ContextTypes.DEFAULT_TYPE):
    q = update.callback_query; await q.answer()
    profile, _ = await _ensure(update, context)
    s = _sessions(context).settings
    if q.data == CB_SIGNAL:
        await q.message.edit_text("<b>📈 یک دسته را انتخاب کنید:</b>", parse_mode="HTML", reply_markup=signal_kb()); return
    texts = {
        CB_HOME: lambda: welcome_text(profile),
        CB_PROFILE: lambda: profile_text(profile),
        CB_WALLET: lambda: wallet_text(profile),
        CB_REFERRAL: lambda: referral_text(profile, BOT_USERNAME, s.referrals_for_bonus, s.bonus_uses),
        CB_SUPPORT: support_text,
    }
    render = texts.get(q.data, texts[CB_HOME])
    await q.message.edit_text(render(), parse_mode="HTML", reply_markup=menu_kb())

async def category_cb(update: Update, context: ContextTypes.DEFAULT_TYPE):
    q = update.callback_query; await q.answer()
    cat = q.data.split(":", 1)[1]
    if not is_known(cat):
        await q.message.edit_text("<b>📈 یک دسته را انتخاب کنید:</b>", parse_mode="HTML", reply_markup=signal_kb()); return
    await _ensure(update, context)
    await _sessions(context).ask(update.effective_user.id, "remember_selection", category=cat)
    await q.message.edit_text("نماد را انتخاب کنید:", parse_mode="HTML", reply_markup=symbols_kb(cat))

async def symbol_cb(update: Update, context: ContextTypes.DEFAULT_TYPE):
    q = update.callback_query; await q.answer()
    _, cat, sym = (q.data.split(":") + ["", ""])[:3]
    if not is_known(cat, sym):
        await q.message.edit_text("<b>📈 یک دسته را انتخاب کنید:</b>", parse_mode="HTML", reply_markup=signal_kb()); return
    await _ensure(update, context)
    await _sessions(context).ask(update.effective_user.id, "remember_selection", category=cat, symbol=sym)
    await q.message.edit_text(f"گزینه را انتخاب کنید: <b>{sym}</b>", parse_mode="HTML", reply_markup=asset_kb(cat, sym))

async def action_cb(update: Update, context: ContextTypes.DEFAULT_TYPE):
    q = update.callback_query; await q.answer()
    _, action, cat, sym = (q.data.split(":") + ["", "", ""])[:4]
    if not is_known(cat, sym):
        await q.message.edit_text("<b>📈 یک دسته را انتخاب کنید:</b>", parse_mode="HTML", reply_markup=signal_kb()); return
    await _ensure(update, context)

    if action == "news":
        news = await asyncio.to_thread(fetch_news_bundle, sym)
        await q.message.edit_text(news_text(sym, news), parse_mode="HTML", reply_markup=asset_kb(cat, sym)); return

    outcome = await _sessions(context).ask(update.effective_user.id, "begin_pending", action=action, category=cat, symbol=sym)
    if outcome.status == Status.BLOCKED:
        await q.message.reply_text(_blocked_text(context), parse_mode="HTML", reply_markup=menu_kb()); return
    if outcome.status != Status.OK:
        log.error("begin_pending failed: %s", outcome.error)
        await q.message.reply_text(PICK_FROM_MENU, reply_markup=menu_kb()); return
    ask = ask_chart_text if action == "chart" else ask_prompt_text
    await q.message.reply_text(ask(sym), parse_mode="HTML")

# ---- signal flow ----
async def produce_signal(req):
    """Vision, news and signal generation for a ready request.

    The providers are blocking HTTP clients, so each runs in a worker thread and
    the event loop keeps serving other users meanwhile.
    """
    vision_summary, vision_provider = "", "none"
    if req.chart_image is not None:
        vision_summary, vision_provider = await asyncio.to_thread(summarize_chart, req.chart_image, req.symbol)
    news = await asyncio.to_thread(fetch_news_bundle, req.symbol)
    req.news_digest = render_news_block(news)
    sig, provider = await asyncio.to_thread(generate_signal, req, vision_summary)
    sig["newsScore"] = news.score
    if news.summary: sig["newsSummary"] = news.summary
    return sig, provider, vision_provider

async def _deliver_signal(update: Update, context: ContextTypes.DEFAULT_TYPE, outcome):
    req = outcome.request
    waiting = await update.message.reply_text("<b>⏳ در حال تحلیل چارت و خبرها...</b>", parse_mode="HTML")
    try:
        sig, provider, vision_provider = await produce_signal(req)
        await waiting.edit_text(signal_text(sig, provider, vision_provider), parse_mode="HTML", reply_markup=menu_kb())
        await _sessions(context).ask(req.user_id, "record_note", text=note_from_signal(sig))
        card = await asyncio.to_thread(generate_signal_card, sig)
        if card:
            b64, _mime = card
            await context.bot.send_photo(chat_id=req.chat_id, photo=base64.b64decode(b64), caption="🧾 کارت سیگنال")
    except Exception:
        log.exception("Signal flow failed for user %s", req.user_id)
        await waiting.edit_text("⚠️ خطا در تولید سیگنال. دوباره امتحان کن.", parse_mode="HTML", reply_markup=menu_kb())

async def handle_image(update: Update, context: ContextTypes.DEFAULT_TYPE):
    msg = update.message
    _, memory = await _ensure(update, context)
    if memory.pending_action != AWAITING_CHART:
        await msg.reply_text("برای تحلیل، ابتدا از «📈 دریافت سیگنال» نماد را انتخاب کنید.", reply_markup=menu_kb()); return

    if msg.photo:
        file, mime = await msg.photo[-1].get_file(), "image/jpeg"
    else:
        file, mime = await msg.document.get_file(), msg.document.mime_type or "image/jpeg"
    data = bytes(await file.download_as_bytearray())

    outcome = await _sessions(context).ask(
        update.effective_user.id, "fulfill_with_image", image=ChartImage(data=data, mime=mime), chat_id=msg.chat_id
    )
    if outcome.status == Status.BLOCKED:
        await msg.reply_text(_blocked_text(context), parse_mode="HTML", reply_markup=menu_kb()); return
    if outcome.status != Status.READY:
        await msg.reply_text("ابتدا از منو نماد را انتخاب کنید.", reply_markup=menu_kb()); return
    await _deliver_signal(update, context, outcome)

async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE):
    msg = update.message
    await _ensure(update, context)
    outcome = await _sessions(context).ask(
        update.effective_user.id, "fulfill_with_text", text=msg.text, chat_id=msg.chat_id
    )
    if outcome.status == Status.READY:
        await _deliver_signal(update, context, outcome)
    elif outcome.status == Status.AWAIT_CHART:
        await msg.reply_text(f"لطفاً یک عکس چارت {outcome.symbol or ''} ارسال کنید.")
    elif outcome.status == Status.BLOCKED:
        await msg.reply_text(_blocked_text(context), parse_mode="HTML", reply_markup=menu_kb())
    else:
        await msg.reply_text(PICK_FROM_MENU, reply_markup=menu_kb())

async def _close_sessions(app):
    await app.bot_data["sessions"].close()

def build_app(store: JsonStore = None, settings: Settings = None):
    if not BOT_TOKEN: raise RuntimeError("BOT_TOKEN در Secrets تنظیم نشده است.")
    app = ApplicationBuilder().token(BOT_TOKEN).concurrent_updates(True).post_shutdown(_close_sessions).build()
    app.bot_data["sessions"] = SessionDirectory(store or JsonStore(DB_PATH), settings or Settings())

    app.add_handler(CommandHandler("start", start))
    app.add_handler(CommandHandler("help", help_cmd))
    app.add_handler(CommandHandler("admin_add_balance", admin_add_balance))
    app.add_handler(CommandHandler("admin_grant_uses", admin_grant_uses))

    app.add_handler(CallbackQueryHandler(menu_cb,     pattern=r"^menu:"))
    app.add_handler(CallbackQueryHandler(category_cb, pattern=r"^cat:"))
    app.add_handler(CallbackQueryHandler(symbol_cb,   pattern=r"^sym:"))
    app.add_handler(CallbackQueryHandler(action_cb,   pattern=r"^act:(chart|prompt|news):"))

    app.add_handler(MessageHandler(filters.PHOTO | filters.Document.IMAGE, handle_image))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))
    return app
