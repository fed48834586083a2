"""Tests for signal generation and its fallbacks."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from sniperlm import ai, signals
from sniperlm.models import SignalRequest


@pytest.fixture
def request_obj() -> SignalRequest:
    return SignalRequest(user_id=1, chat_id=1, symbol="BTCUSDT", category="crypto",
                         timeframe="H4", style="swing", risk="low", user_prompt="trend?")


class TestSanitize:
    def test_clamps_and_defaults(self):
        sig = signals.sanitize_signal({
            "direction": "buy",
            "confidence": 250,
            "newsScore": "abc",
            "takeProfits": [1, 2, 3, 4, 5, 6],
            "rationale": "not a list",
        })
        assert sig["direction"] == "BUY"
        assert sig["confidence"] == 100
        assert sig["newsScore"] == 5
        assert sig["takeProfits"] == ["1", "2", "3", "4", "5"]
        assert sig["rationale"] == []
        assert sig["entry"] == "N/A"
        assert sig["disclaimer"]

    def test_unknown_direction_is_neutral(self):
        assert signals.sanitize_signal({"direction": "MOON"})["direction"] == "NEUTRAL"


class TestGenerate:
    def test_fallback_without_provider(self, monkeypatch, request_obj):
        monkeypatch.setattr(ai, "API_GPT", "")
        sig, provider = signals.generate_signal(request_obj)
        assert provider == "none"
        assert sig["direction"] == "NEUTRAL"
        assert sig["confidence"] == 10
        assert sig["symbol"] == "BTCUSDT"
        assert sig["timeframe"] == "H4"

    def test_parses_model_reply(self, monkeypatch, request_obj):
        monkeypatch.setattr(ai, "API_GPT", "sk-test")
        reply = "```json\n" + json.dumps({"direction": "SELL", "confidence": 64, "entry": "42000"}) + "\n```"
        monkeypatch.setattr(ai, "gpt_text", MagicMock(return_value=reply))
        sig, provider = signals.generate_signal(request_obj, "uptrend", "news")
        assert provider == "openai"
        assert (sig["direction"], sig["confidence"], sig["entry"]) == ("SELL", 64, "42000")
        assert sig["symbol"] == "BTCUSDT"

    def test_http_error_falls_back(self, monkeypatch, request_obj):
        monkeypatch.setattr(ai, "API_GPT", "sk-test")
        monkeypatch.setattr(ai, "gpt_text", MagicMock(side_effect=requests.ConnectionError("down")))
        sig, provider = signals.generate_signal(request_obj)
        assert provider == "none"
        assert sig["direction"] == "NEUTRAL"

    def test_non_json_reply_falls_back(self, monkeypatch, request_obj):
        monkeypatch.setattr(ai, "API_GPT", "sk-test")
        monkeypatch.setattr(ai, "gpt_text", MagicMock(return_value="I cannot help with that"))
        _, provider = signals.generate_signal(request_obj)
        assert provider == "none"


def test_note_from_signal():
    sig = {"symbol": "XAUUSD", "timeframe": "H1", "direction": "BUY", "confidence": 70, "entry": "2350"}
    assert signals.note_from_signal(sig) == "XAUUSD H1 BUY (conf 70%) entry 2350"


def test_card_skipped_without_provider(monkeypatch):
    monkeypatch.setattr(ai, "API_GPT", "")
    assert signals.generate_signal_card({"symbol": "X", "direction": "BUY", "timeframe": "H1"}) is None
