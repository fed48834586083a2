"""Referral codes and the shared code -> owner registry."""

import logging
import string

from .db import JsonStore

log = logging.getLogger(__name__)

_DIGITS36 = string.digits + string.ascii_lowercase


def base36(n: int) -> str:
    if n == 0:
        return "0"
    sign = "-" if n < 0 else ""
    n = abs(n)
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_DIGITS36[r])
    return sign + "".join(reversed(out))


def fnv1a_hex(text: str) -> str:
    """32-bit FNV-1a of an ASCII string, as 8 hex digits."""
    h = 2166136261
    for ch in text:
        h ^= ord(ch)
        h = (h * 16777619) & 0xFFFFFFFF
    return f"{h:08x}"


def make_referral_code(user_id: int) -> str:
    core = base36(user_id)
    return f"{core}-{fnv1a_hex(core)[:4]}".upper()


def normalize_code(payload) -> str:
    return (payload or "").strip().upper()


class ReferralRegistry:
    """Write-once mapping from referral code to the user who owns it."""

    def __init__(self, store: JsonStore):
        self.store = store

    def put(self, code: str, user_id: int):
        if not self.store.put_ref(code, user_id):
            log.warning("referral code %s already owned by %s, not reassigning to %s",
                        code, self.store.get_ref(code), user_id)

    def get(self, code: str):
        code = normalize_code(code)
        if not code:
            return None
        return self.store.get_ref(code)
