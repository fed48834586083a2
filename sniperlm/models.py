"""Per-user records owned by the session actors, and the values they hand out."""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any

PENDING_NONE = "none"
AWAITING_CHART = "awaiting_chart"
AWAITING_PROMPT = "awaiting_prompt"

NOTES_CAPACITY = 12
SUMMARY_NOTES = 8


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _known(cls, data: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class Profile:
    """Quota balances, referral identity and plan tier of one user."""

    id: int
    referral_code: str
    username: str | None = None
    first_name: str | None = None
    language: str = "fa"
    created_at: str = field(default_factory=now_iso)
    free_uses_remaining: int = 0
    bonus_uses_remaining: int = 0
    wallet_balance: int = 0
    referred_by: str | None = None
    referrals: int = 0
    plan: str = "free"
    credited_referees: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        return cls(**_known(cls, data))


@dataclass
class Memory:
    """Conversational context: last selections, notes and the pending slot."""

    pending_action: str = PENDING_NONE
    pending_symbol: str | None = None
    pending_category: str | None = None
    last_category: str | None = None
    last_symbol: str | None = None
    last_timeframe: str | None = None
    last_style: str | None = None
    last_risk: str | None = None
    recent_notes: list[str] = field(default_factory=list)

    def set_pending(self, action: str, category: str, symbol: str) -> None:
        # single slot, a new expectation replaces the old one
        self.pending_action = action
        self.pending_category = category
        self.pending_symbol = symbol

    def clear_pending(self) -> None:
        self.pending_action = PENDING_NONE
        self.pending_category = None
        self.pending_symbol = None

    def has_pending_target(self) -> bool:
        return bool(self.pending_symbol and self.pending_category)

    def add_note(self, note: str, capacity: int = NOTES_CAPACITY) -> None:
        """Append a note, dropping the oldest ones beyond ``capacity``."""
        note = (note or "").strip()
        if not note:
            return
        self.recent_notes.append(note)
        if len(self.recent_notes) > capacity:
            del self.recent_notes[: len(self.recent_notes) - capacity]

    def summary(self, limit: int = SUMMARY_NOTES) -> str:
        notes = self.recent_notes[-limit:]
        return "\n".join(f"{i}. {n}" for i, n in enumerate(notes, 1))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Memory":
        return cls(**_known(cls, data))


@dataclass
class ChartImage:
    data: bytes
    mime: str = "image/jpeg"


@dataclass
class SignalRequest:
    """Everything the signal generator needs for one request."""

    user_id: int
    chat_id: int
    symbol: str
    category: str
    timeframe: str
    style: str
    risk: str
    user_prompt: str | None = None
    chart_image: ChartImage | None = None
    memory_summary: str = ""
    news_digest: str = ""


class Status(str, Enum):
    OK = "ok"
    BLOCKED = "blocked"
    NEED_MENU = "need_menu"
    READY = "ready"
    AWAIT_CHART = "await_chart"
    IGNORED = "ignored"
    FAILED = "failed"


@dataclass
class Outcome:
    """Result of a session operation that can end in more than one way."""

    status: Status
    request: SignalRequest | None = None
    memory_summary: str = ""
    symbol: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (Status.OK, Status.READY)
