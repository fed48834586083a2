import base64
import json
import re

# 👇 تشخیص MIME با امضاهای باینری (بدون imghdr)
def guess_mime(image_bytes: bytes) -> str:
    b = image_bytes or b""
    if len(b) >= 8 and b[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if len(b) >= 3 and b[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if len(b) >= 12 and b[:4] == b"RIFF" and b[8:12] == b"WEBP":
        return "image/webp"
    return "application/octet-stream"

def image_bytes_to_data_url(image_bytes: bytes, mime=None) -> str:
    if not mime:
        mime = guess_mime(image_bytes)
    b64 = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime};base64,{b64}"

def strip_code_fences(text: str) -> str:
    t = text.strip()
    if t.startswith("```"):
        t = t.lstrip("`")
        if "\n" in t:
            t = t.split("\n", 1)[1]
        t = t.rstrip("`")
    return t.strip()

def extract_json(text: str):
    """The outermost {...} span of a reply, or None when there is none."""
    m = re.search(r"\{.*\}", strip_code_fences(text or ""), re.S)
    return m.group(0) if m else None

def safe_load_json(text: str):
    """Parse the first JSON object in a model reply; None when there is none."""
    raw = extract_json(text)
    if raw is None:
        return None
    try:
        data = json.loads(raw.replace("\ufeff", ""))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None

def chunk(items, size: int):
    return [items[i:i + size] for i in range(0, len(items), size)]
