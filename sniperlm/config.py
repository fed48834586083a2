import os
from dataclasses import dataclass, field

# --- telegram ---
BOT_TOKEN    = os.getenv("BOT_TOKEN", "")
BOT_USERNAME = os.getenv("BOT_USERNAME", "SniperLMBot")

# --- AI providers (empty key = provider disabled, bot falls back) ---
API_GPT            = os.getenv("API_GPT", "")
AI_TEXT_MODEL      = os.getenv("AI_TEXT_MODEL", "gpt-4o-mini")
AI_VISION_MODEL    = os.getenv("AI_VISION_MODEL", "gpt-4o-mini")
AI_IMAGE_MODEL     = os.getenv("AI_IMAGE_MODEL", "gpt-image-1")
AI_TEMPERATURE     = float(os.getenv("AI_TEMPERATURE", "0.2"))
AI_MAX_TOKENS_TEXT = int(os.getenv("AI_MAX_TOKENS_TEXT", "900"))
SIGNAL_CARD        = os.getenv("SIGNAL_CARD", "1") != "0"

# --- news ---
NEWSAPI_KEY    = os.getenv("NEWSAPI_KEY", "")
GOOGLE_CSE_KEY = os.getenv("GOOGLE_CSE_KEY", "")
GOOGLE_CSE_CX  = os.getenv("GOOGLE_CSE_CX", "")

# --- quota ---
FREE_USES           = int(os.getenv("FREE_USES", "3"))
REFERRALS_FOR_BONUS = int(os.getenv("REFERRALS_FOR_BONUS", "5"))
BONUS_USES          = int(os.getenv("BONUS_USES", "3"))

# --- defaults for users with no prior selection ---
DEFAULT_TIMEFRAME = os.getenv("DEFAULT_TIMEFRAME", "H1")
DEFAULT_STYLE     = os.getenv("DEFAULT_STYLE", "swing")
RISK_PROFILE      = os.getenv("RISK_PROFILE", "medium")
BOT_LOCALE        = os.getenv("BOT_LOCALE", "fa")

# --- admin ---
ADMIN_IDS = [int(x) for x in os.getenv("ADMIN_IDS", "").replace(" ", "").split(",") if x.lstrip("-").isdigit()]

# --- storage / logging ---
DB_PATH   = os.getenv("DB_PATH", "db.json")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


@dataclass
class Settings:
    """Quota and default values consumed by the session actors."""

    free_uses: int = FREE_USES
    referrals_for_bonus: int = REFERRALS_FOR_BONUS
    bonus_uses: int = BONUS_USES
    default_timeframe: str = DEFAULT_TIMEFRAME
    default_style: str = DEFAULT_STYLE
    default_risk: str = RISK_PROFILE
    language: str = BOT_LOCALE
    admin_ids: list[int] = field(default_factory=lambda: list(ADMIN_IDS))

    def is_admin(self, user_id: int) -> bool:
        return user_id in self.admin_ids
