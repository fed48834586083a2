"""Tests for quota buckets and referral crediting."""

import pytest

from sniperlm.config import Settings
from sniperlm.models import Profile
from sniperlm.quota import add_balance, apply_referral_credit, can_consume, consume_one_use, grant_uses


def make_profile(free=0, bonus=0, wallet=0) -> Profile:
    return Profile(id=1, referral_code="1-X", free_uses_remaining=free,
                   bonus_uses_remaining=bonus, wallet_balance=wallet)


class TestConsume:
    def test_empty_profile_cannot_consume(self):
        p = make_profile()
        assert can_consume(p) is False
        assert consume_one_use(p) is False
        assert (p.free_uses_remaining, p.bonus_uses_remaining, p.wallet_balance) == (0, 0, 0)
        assert p.plan == "free"

    def test_draw_order_free_bonus_wallet(self):
        p = make_profile(free=1, bonus=1, wallet=1)
        drawn = []
        while consume_one_use(p):
            drawn.append((p.free_uses_remaining, p.bonus_uses_remaining, p.wallet_balance))
        assert drawn == [(0, 1, 1), (0, 0, 1), (0, 0, 0)]

    def test_plan_wallet_only_on_wallet_draw(self):
        p = make_profile(free=1, wallet=1)
        consume_one_use(p)
        assert p.plan == "free"
        consume_one_use(p)
        assert p.plan == "wallet"

    @pytest.mark.parametrize("free,bonus,wallet", [(3, 0, 0), (0, 2, 5), (1, 1, 1), (0, 0, 4)])
    def test_total_debits_never_exceed_balance(self, free, bonus, wallet):
        p = make_profile(free, bonus, wallet)
        successes = sum(consume_one_use(p) for _ in range(20))
        assert successes == free + bonus + wallet
        assert not can_consume(p)


class TestReferralCredit:
    @pytest.mark.parametrize("k", [0, 1, 4, 5, 9, 10, 16])
    def test_bonus_granted_floor_k_over_threshold(self, k):
        settings = Settings(referrals_for_bonus=5, bonus_uses=3)
        p = make_profile()
        grants = sum(apply_referral_credit(p, settings) for _ in range(k))
        assert p.referrals == k
        assert grants == k // 5
        assert p.bonus_uses_remaining == 3 * (k // 5)

    def test_grant_sets_referral_plan(self):
        settings = Settings(referrals_for_bonus=1, bonus_uses=2)
        p = make_profile()
        assert apply_referral_credit(p, settings) is True
        assert p.plan == "referral"


class TestAdmin:
    def test_add_balance_sets_wallet_plan(self):
        p = make_profile()
        add_balance(p, 10)
        assert p.wallet_balance == 10
        assert p.plan == "wallet"

    def test_add_balance_never_negative(self):
        p = make_profile(wallet=2)
        add_balance(p, -5)
        assert p.wallet_balance == 0

    def test_grant_uses_keeps_plan(self):
        p = make_profile()
        grant_uses(p, 5)
        assert p.bonus_uses_remaining == 5
        assert p.plan == "free"
