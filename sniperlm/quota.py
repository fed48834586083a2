"""Quota buckets. Free and earned credit are always spent before paid credit."""

from .config import Settings
from .models import Profile


def can_consume(p: Profile) -> bool:
    return p.free_uses_remaining > 0 or p.bonus_uses_remaining > 0 or p.wallet_balance > 0


def consume_one_use(p: Profile) -> bool:
    """Debit one unit from the first non-empty bucket: free, bonus, wallet."""
    if p.free_uses_remaining > 0:
        p.free_uses_remaining -= 1
        return True
    if p.bonus_uses_remaining > 0:
        p.bonus_uses_remaining -= 1
        return True
    if p.wallet_balance > 0:
        p.wallet_balance -= 1
        p.plan = "wallet"
        return True
    return False


def apply_referral_credit(p: Profile, settings: Settings) -> bool:
    """Count one successful referral; returns True when a bonus was granted."""
    p.referrals += 1
    need = settings.referrals_for_bonus
    if need > 0 and p.referrals % need == 0:
        p.bonus_uses_remaining += settings.bonus_uses
        p.plan = "referral"
        return True
    return False


def add_balance(p: Profile, amount: int):
    p.wallet_balance = max(0, p.wallet_balance + int(amount))
    p.plan = "wallet"


def grant_uses(p: Profile, uses: int):
    p.bonus_uses_remaining = max(0, p.bonus_uses_remaining + int(uses))
