"""Tests for profile and memory records."""

from sniperlm.models import (
    AWAITING_CHART, NOTES_CAPACITY, PENDING_NONE, Memory, Outcome, Profile, Status,
)


class TestMemory:
    def test_defaults(self):
        m = Memory()
        assert m.pending_action == PENDING_NONE
        assert m.pending_symbol is None
        assert m.recent_notes == []

    def test_set_and_clear_pending(self):
        m = Memory()
        m.set_pending(AWAITING_CHART, "crypto", "BTCUSDT")
        assert m.has_pending_target()
        m.clear_pending()
        assert m.pending_action == PENDING_NONE
        assert m.pending_symbol is None
        assert m.pending_category is None

    def test_set_pending_overwrites(self):
        m = Memory()
        m.set_pending(AWAITING_CHART, "crypto", "BTCUSDT")
        m.set_pending("awaiting_prompt", "metals", "XAUUSD")
        assert (m.pending_action, m.pending_category, m.pending_symbol) == ("awaiting_prompt", "metals", "XAUUSD")

    def test_notes_are_bounded_newest_last(self):
        m = Memory()
        for i in range(30):
            m.add_note(f"note-{i}")
        assert len(m.recent_notes) == NOTES_CAPACITY
        assert m.recent_notes[0] == "note-18"
        assert m.recent_notes[-1] == "note-29"

    def test_blank_note_ignored(self):
        m = Memory()
        m.add_note("   ")
        m.add_note("")
        assert m.recent_notes == []

    def test_summary_uses_last_eight(self):
        m = Memory()
        for i in range(10):
            m.add_note(f"n{i}")
        lines = m.summary().splitlines()
        assert len(lines) == 8
        assert lines[0] == "1. n2"
        assert lines[-1] == "8. n9"

    def test_summary_empty(self):
        assert Memory().summary() == ""

    def test_serialization_ignores_unknown_keys(self):
        m = Memory(last_symbol="EURUSD")
        m.add_note("hello")
        data = m.to_dict()
        data["something_old"] = 1
        restored = Memory.from_dict(data)
        assert restored == m


class TestProfile:
    def test_roundtrip(self):
        p = Profile(id=7, referral_code="7-ABCD", free_uses_remaining=3)
        assert Profile.from_dict(p.to_dict()) == p
        assert p.plan == "free"


def test_outcome_ok():
    assert Outcome(Status.READY).ok
    assert Outcome(Status.OK).ok
    assert not Outcome(Status.BLOCKED).ok
