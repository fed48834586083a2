"""Signal generation: one structured signal per request, never an exception for a missing provider."""

import logging
import requests

from . import ai
from .config import SIGNAL_CARD
from .prompts import DISCLAIMER, SIGNAL_SYSTEM_PROMPT, build_card_prompt, build_signal_prompt
from .utils import safe_load_json

log = logging.getLogger(__name__)

DIRECTIONS = ("BUY", "SELL", "NEUTRAL")


def _str_list(value, limit):
    if not isinstance(value, list):
        return []
    return [str(x) for x in value][:limit]


def _clamp_int(value, lo, hi, default):
    try:
        n = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(lo, min(hi, n))


def sanitize_signal(s: dict) -> dict:
    direction = str(s.get("direction") or "NEUTRAL").upper()
    return {
        "symbol": str(s.get("symbol") or ""),
        "timeframe": str(s.get("timeframe") or "H1"),
        "style": str(s.get("style") or "swing"),
        "direction": direction if direction in DIRECTIONS else "NEUTRAL",
        "entry": str(s.get("entry") or "N/A"),
        "stopLoss": str(s.get("stopLoss") or "N/A"),
        "takeProfits": _str_list(s.get("takeProfits"), 5),
        "confidence": _clamp_int(s.get("confidence"), 0, 100, 0),
        "rationale": _str_list(s.get("rationale"), 8),
        "keyLevels": _str_list(s.get("keyLevels"), 10),
        "newsSummary": _str_list(s.get("newsSummary"), 8),
        "newsScore": _clamp_int(s.get("newsScore"), 1, 10, 5),
        "riskNotes": _str_list(s.get("riskNotes"), 6),
        "disclaimer": str(s.get("disclaimer") or DISCLAIMER),
    }


def fallback_signal(req) -> dict:
    return {
        "symbol": req.symbol,
        "timeframe": req.timeframe or "H1",
        "style": req.style or "swing",
        "direction": "NEUTRAL",
        "entry": "N/A",
        "stopLoss": "N/A",
        "takeProfits": [],
        "confidence": 10,
        "rationale": ["دسترسی به مدل‌ها ممکن نیست یا کلیدها تنظیم نشده‌اند."],
        "keyLevels": [],
        "newsSummary": [],
        "newsScore": 5,
        "riskNotes": ["لطفاً کلید API را در تنظیمات اضافه کنید."],
        "disclaimer": DISCLAIMER,
    }


def generate_signal(req, vision_summary: str = "", news_block: str = ""):
    """Returns ``(signal, provider)``; the neutral fallback has provider ``"none"``."""
    if ai.enabled():
        prompt = build_signal_prompt(req, vision_summary, news_block or req.news_digest)
        try:
            raw = ai.gpt_text(SIGNAL_SYSTEM_PROMPT, prompt, json_mode=True)
        except (requests.RequestException, KeyError, IndexError, ValueError):
            log.exception("signal generation failed for %s", req.symbol)
        else:
            parsed = safe_load_json(raw)
            if parsed is not None:
                signal = sanitize_signal(parsed)
                signal["symbol"] = signal["symbol"] or req.symbol
                return signal, "openai"
            log.error("signal reply was not JSON: %s", raw[:500])
    return fallback_signal(req), "none"


def note_from_signal(sig: dict) -> str:
    return f"{sig.get('symbol', '')} {sig.get('timeframe', '')} {sig.get('direction', '')} (conf {sig.get('confidence', '')}%) entry {sig.get('entry', '')}"


def generate_signal_card(sig: dict):
    """Optional picture card for a signal: ``(b64, mime)`` or None."""
    if not (SIGNAL_CARD and ai.enabled()):
        return None
    try:
        return ai.gpt_image(build_card_prompt(sig["symbol"], sig["direction"], sig["timeframe"]))
    except (requests.RequestException, KeyError, ValueError):
        log.exception("signal card generation failed")
        return None
