"""Tests for the news aggregator."""

from unittest.mock import MagicMock

import pytest

from sniperlm import ai, news


@pytest.mark.parametrize("symbol,query", [
    ("BTCUSDT", "BTC crypto market news"),
    ("XAUUSD", "gold price news forex"),
    ("NAS100", "Nasdaq 100 futures news"),
    ("EURUSD", "EUR/USD forex news"),
])
def test_symbol_to_query(symbol, query):
    assert news.symbol_to_query(symbol) == query


def test_clamp_score():
    assert news.clamp_score(0) == 1
    assert news.clamp_score(42) == 10
    assert news.clamp_score("7.4") == 7
    assert news.clamp_score(None) == 5


def test_no_sources_configured(monkeypatch):
    monkeypatch.setattr(news, "NEWSAPI_KEY", "")
    monkeypatch.setattr(news, "GOOGLE_CSE_KEY", "")
    bundle = news.fetch_news_bundle("EURUSD")
    assert bundle.headlines == []
    assert bundle.score == 5


def test_headlines_deduplicated_and_scored(monkeypatch):
    monkeypatch.setattr(news, "NEWSAPI_KEY", "k")
    monkeypatch.setattr(news, "GOOGLE_CSE_KEY", "")
    monkeypatch.setattr(ai, "API_GPT", "sk-test")

    response = MagicMock()
    response.json.return_value = {"articles": [{"title": "Fed holds"}, {"title": "Fed holds"}, {"title": "BTC up"}, {}]}
    monkeypatch.setattr(news.requests, "get", MagicMock(return_value=response))
    monkeypatch.setattr(ai, "gpt_text", MagicMock(return_value='{"score": 12, "reasons": ["rates"], "summary": ["calm"]}'))

    bundle = news.fetch_news_bundle("BTCUSDT")
    assert bundle.headlines == ["Fed holds", "BTC up"]
    assert bundle.score == 10
    assert bundle.reasons == ["rates"]
    assert bundle.summary == ["calm"]


def test_render_news_block():
    block = news.render_news_block(news.NewsBundle(headlines=["a", "b"], score=8, reasons=["r"]))
    assert block.startswith("امتیاز خبر: 8/10")
    assert "1. a" in block and "2. b" in block
    assert "- r" in block
