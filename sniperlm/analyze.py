import logging
import requests

from . import ai
from .config import AI_VISION_MODEL
from .prompts import VISION_SYSTEM_PROMPT
from .utils import image_bytes_to_data_url

log = logging.getLogger(__name__)


def summarize_chart(image, symbol: str):
    """Free-text technical summary of a chart image.

    Returns ``(summary, provider)``; ``("", "none")`` when no vision provider is
    configured or the call fails.
    """
    if not ai.enabled():
        return "", "none"

    data_url = image_bytes_to_data_url(image.data, image.mime)
    messages = [
        {"role": "system", "content": VISION_SYSTEM_PROMPT},
        {"role": "user", "content": [
            {"type": "text", "text": f"این تصویر چارت مربوط به {symbol} است. خلاصه تحلیل تکنیکال بده."},
            {"type": "image_url", "image_url": {"url": data_url}},
        ]},
    ]
    try:
        summary = ai.chat(messages, model=AI_VISION_MODEL, max_tokens=500, timeout=90)
    except (requests.RequestException, KeyError, IndexError, ValueError):
        log.exception("vision summary failed for %s", symbol)
        return "", "none"
    return (summary, "openai_vision") if summary else ("", "none")
