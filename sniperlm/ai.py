import json, logging, requests
from .config import API_GPT, AI_TEXT_MODEL, AI_IMAGE_MODEL, AI_TEMPERATURE, AI_MAX_TOKENS_TEXT

log = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_IMAGES_URL = "https://api.openai.com/v1/images/generations"


def enabled() -> bool:
    return bool(API_GPT)


def _headers():
    return {"Authorization": f"Bearer {API_GPT}", "Content-Type": "application/json"}


def chat(messages, model: str = None, max_tokens: int = None, temperature: float = None, json_mode=False, timeout=60) -> str:
    payload = {
        "model": model or AI_TEXT_MODEL,
        "temperature": AI_TEMPERATURE if temperature is None else temperature,
        "max_tokens": AI_MAX_TOKENS_TEXT if max_tokens is None else max_tokens,
        "messages": messages,
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}
    r = requests.post(OPENAI_CHAT_URL, headers=_headers(), data=json.dumps(payload), timeout=timeout)
    r.raise_for_status()
    data = r.json()
    return (data["choices"][0]["message"]["content"] or "").strip()


def gpt_text(system_prompt: str, user_text: str, max_tokens: int = None, temperature: float = None, json_mode=False) -> str:
    return chat([
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_text},
    ], max_tokens=max_tokens, temperature=temperature, json_mode=json_mode)


def gpt_image(prompt: str, size: str = "1024x1024"):
    """Generate one image; returns ``(png_bytes_b64, mime)`` or None if the reply has no image."""
    payload = {"model": AI_IMAGE_MODEL, "prompt": prompt, "size": size}
    r = requests.post(OPENAI_IMAGES_URL, headers=_headers(), data=json.dumps(payload), timeout=120)
    r.raise_for_status()
    items = r.json().get("data") or []
    b64 = items[0].get("b64_json") if items else None
    if not b64:
        log.warning("image reply without b64_json")
        return None
    return b64, "image/png"
