"""Headlines for a symbol from NewsAPI and Google CSE, scored by the text model."""

import logging
from dataclasses import dataclass, field

import requests

from . import ai
from .config import GOOGLE_CSE_CX, GOOGLE_CSE_KEY, NEWSAPI_KEY
from .prompts import build_news_scoring_prompt
from .utils import safe_load_json

log = logging.getLogger(__name__)

NEWSAPI_URL = "https://newsapi.org/v2/everything"
GOOGLE_CSE_URL = "https://www.googleapis.com/customsearch/v1"
MAX_HEADLINES = 10
DEFAULT_SCORE = 5


@dataclass
class NewsBundle:
    headlines: list[str] = field(default_factory=list)
    score: int = DEFAULT_SCORE
    reasons: list[str] = field(default_factory=list)
    summary: list[str] = field(default_factory=list)
    sources: list[dict] = field(default_factory=list)


def symbol_to_query(symbol: str) -> str:
    s = symbol.upper()
    if "USDT" in s: return f"{s.replace('USDT', '')} crypto market news"
    if s == "XAUUSD": return "gold price news forex"
    if s == "XAGUSD": return "silver price news forex"
    if s == "US30": return "Dow Jones futures news"
    if s == "NAS100": return "Nasdaq 100 futures news"
    if s == "SPX500": return "S&P 500 futures news"
    return f"{s[:3]}/{s[3:]} forex news"


def clamp_score(value) -> int:
    try:
        n = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_SCORE
    return max(1, min(10, n))


def dedupe(items):
    seen, out = set(), []
    for x in items:
        if x not in seen:
            seen.add(x); out.append(x)
    return out


def _from_newsapi(query: str):
    r = requests.get(NEWSAPI_URL, headers={"X-Api-Key": NEWSAPI_KEY}, timeout=20, params={
        "q": query, "language": "en", "sortBy": "publishedAt", "pageSize": 7,
    })
    r.raise_for_status()
    return [{"from": "newsapi", "title": a["title"], "url": a.get("url"),
             "source": (a.get("source") or {}).get("name")}
            for a in r.json().get("articles") or [] if a.get("title")]


def _from_google(query: str):
    r = requests.get(GOOGLE_CSE_URL, timeout=20, params={
        "key": GOOGLE_CSE_KEY, "cx": GOOGLE_CSE_CX, "q": query, "num": 5,
    })
    r.raise_for_status()
    return [{"from": "google", "title": it["title"], "url": it.get("link"), "snippet": it.get("snippet")}
            for it in r.json().get("items") or [] if it.get("title")]


def score_headlines(headlines):
    """Ask the text model for an impact score; returns ``(score, reasons, summary)``."""
    if not headlines or not ai.enabled():
        return DEFAULT_SCORE, [], []
    try:
        raw = ai.gpt_text("Return ONLY valid JSON.", build_news_scoring_prompt(headlines), max_tokens=400, json_mode=True)
    except (requests.RequestException, KeyError, IndexError, ValueError):
        log.exception("news scoring failed")
        return DEFAULT_SCORE, [], []
    parsed = safe_load_json(raw) or {}
    reasons = [str(x) for x in parsed.get("reasons") or []][:5] if isinstance(parsed.get("reasons"), list) else []
    summary = [str(x) for x in parsed.get("summary") or []][:6] if isinstance(parsed.get("summary"), list) else []
    return clamp_score(parsed.get("score", DEFAULT_SCORE)), reasons, summary


def fetch_news_bundle(symbol: str) -> NewsBundle:
    query = symbol_to_query(symbol)
    sources = []
    if NEWSAPI_KEY:
        try:
            sources += _from_newsapi(query)
        except (requests.RequestException, ValueError):
            log.exception("NewsAPI request failed for %s", symbol)
    if GOOGLE_CSE_KEY and GOOGLE_CSE_CX:
        try:
            sources += _from_google(query)
        except (requests.RequestException, ValueError):
            log.exception("Google CSE request failed for %s", symbol)

    headlines = dedupe(s["title"] for s in sources)[:MAX_HEADLINES]
    score, reasons, summary = score_headlines(headlines)
    return NewsBundle(headlines=headlines, score=score, reasons=reasons, summary=summary, sources=sources)


def render_news_block(news: NewsBundle) -> str:
    h = "\n".join(f"{i}. {x}" for i, x in enumerate(news.headlines[:8], 1))
    r = ("\nدلایل:\n" + "\n".join(f"- {x}" for x in news.reasons[:4])) if news.reasons else ""
    return f"امتیاز خبر: {news.score}/10\nخبرها:\n{h}{r}"
