"""
engine_check.py — per-engine "is the brand in the AI answer" checks

For one question:
- Asks every configured AI answer engine (ChatGPT, Claude, Gemini, Perplexity)
  in parallel through their OpenAI-compatible chat endpoints
- Classifies each answer deterministically: mentioned?, bucket, sentiment,
  which tracked competitors showed up
- Never raises per engine: missing keys / HTTP errors come back as an
  EngineResult with `error` set (not mentioned, lowest bucket)
- Results are returned in engine invocation order so the aggregator's
  first-occurrence tie-break is reproducible
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import requests

from config import settings
from core.evs.aggregator import aggregate
from core.evs.models import Bucket, EngineResult, InvalidInput, QueryAggregate, Sentiment

logger = logging.getLogger(__name__)


ENGINE_ENDPOINTS: Dict[str, str] = {
    "ChatGPT": "https://api.openai.com/v1/chat/completions",
    "Claude": "https://api.anthropic.com/v1/chat/completions",
    "Gemini": "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions",
    "Perplexity": "https://api.perplexity.ai/chat/completions",
}

SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer the user's question directly. "
    "When relevant, recommend specific companies, brands, products or services by name."
)

# A brand named inside this many leading characters (and before any tracked
# competitor) counts as the top answer.
TOP_ANSWER_WINDOW = 300

POSITIVE_WORDS = {
    "best", "leading", "excellent", "great", "recommended", "top", "trusted",
    "reliable", "popular", "strong", "innovative", "outstanding", "reputable",
}
NEGATIVE_WORDS = {
    "worst", "poor", "bad", "avoid", "complaints", "unreliable", "expensive",
    "scam", "lawsuit", "negative", "issues", "problems", "criticized",
}


# -----------------------------
# Client
# -----------------------------

class ChatEngineClient:
    def __init__(self, engine: str, api_key: str, model: str, timeout: int, base_url: Optional[str] = None):
        if not api_key:
            raise ValueError(f"API key for {engine} is not set")
        self.engine = engine
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.base_url = base_url or ENGINE_ENDPOINTS[engine]

    def ask(self, question: str, *, max_tokens: int = 800) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": question},
            ],
            "temperature": 0.2,
            "max_tokens": max_tokens,
            "stream": False,
        }

        r = requests.post(self.base_url, headers=headers, json=payload, timeout=self.timeout)
        if r.status_code < 200 or r.status_code >= 300:
            raise RuntimeError(f"{self.engine} API error {r.status_code}: {r.text[:300]}")

        data = r.json()
        return str(data["choices"][0]["message"]["content"] or "")


def build_client(engine: str) -> Optional[ChatEngineClient]:
    api_key = settings.engine_credentials.get(engine)
    if not api_key or engine not in ENGINE_ENDPOINTS:
        return None
    return ChatEngineClient(
        engine=engine,
        api_key=api_key,
        model=settings.engine_models[engine],
        timeout=settings.ENGINE_TIMEOUT,
    )


# -----------------------------
# Answer classification
# -----------------------------

@dataclass
class AnswerClassification:
    is_mentioned: bool
    bucket: Bucket
    sentiment: Sentiment
    competitors_mentioned: List[str]


def _norm(s: str) -> str:
    return re.sub(r"\s+", " ", (s or "").strip()).lower()


def _name_position(answer_norm: str, name: str) -> Optional[int]:
    """
    Index of the first mention of `name`, or None.

    Falls back to "all significant tokens present" for multi-word names,
    e.g. "Acme Widgets Ltd" matching "... Acme's widgets ...".
    """
    n = _norm(name)
    if not n:
        return None
    idx = answer_norm.find(n)
    if idx >= 0:
        return idx
    tokens = [t for t in re.split(r"[^a-z0-9]+", n) if len(t) >= 4][:3]
    if len(tokens) < 2:
        return None
    positions = [answer_norm.find(t) for t in tokens]
    if any(p < 0 for p in positions):
        return None
    return min(positions)


def _bare_domain(domain: Optional[str]) -> str:
    d = _norm(domain or "")
    d = re.sub(r"^https?://", "", d)
    d = re.sub(r"^www\.", "", d)
    return d.split("/")[0]


def _sentiment(answer: str, brand: str) -> Sentiment:
    brand_norm = _norm(brand)
    sentences = [s for s in re.split(r"(?<=[.!?])\s+|\n+", answer) if brand_norm and brand_norm in _norm(s)]
    if not sentences:
        return "Neutral"
    words = re.findall(r"[a-z]+", " ".join(_norm(s) for s in sentences))
    pos = sum(1 for w in words if w in POSITIVE_WORDS)
    neg = sum(1 for w in words if w in NEGATIVE_WORDS)
    if pos > neg:
        return "Positive"
    if neg > pos:
        return "Negative"
    return "Neutral"


def classify_answer(
    answer: str,
    brand: str,
    competitors: Sequence[str],
    domain: Optional[str] = None,
) -> AnswerClassification:
    a = _norm(answer)

    competitor_hits: List[Tuple[str, int]] = []
    for c in competitors:
        pos = _name_position(a, c)
        if pos is not None:
            competitor_hits.append((c, pos))
    found_competitors = [c for c, _ in competitor_hits]

    brand_pos = _name_position(a, brand)
    bare = _bare_domain(domain)

    if brand_pos is not None:
        first_competitor = min((p for _, p in competitor_hits), default=None)
        leads = first_competitor is None or brand_pos < first_competitor
        bucket: Bucket = "Top Answer" if leads and brand_pos < TOP_ANSWER_WINDOW else "Mentioned"
        return AnswerClassification(
            is_mentioned=True,
            bucket=bucket,
            sentiment=_sentiment(answer, brand),
            competitors_mentioned=found_competitors,
        )

    if bare and bare in a:
        return AnswerClassification(
            is_mentioned=True,
            bucket="Cited",
            sentiment="Neutral",
            competitors_mentioned=found_competitors,
        )

    return AnswerClassification(
        is_mentioned=False,
        bucket="Not Found",
        sentiment="Neutral",
        competitors_mentioned=found_competitors,
    )


# -----------------------------
# Checks
# -----------------------------

ClientFactory = Callable[[str], Optional[ChatEngineClient]]


def check_engine(
    engine: str,
    question: str,
    brand: str,
    competitors: Sequence[str],
    domain: Optional[str] = None,
    client_factory: Optional[ClientFactory] = None,
) -> EngineResult:
    factory = client_factory or build_client
    try:
        client = factory(engine)
        if client is None:
            return EngineResult.failed(engine, "engine not configured")

        answer = client.ask(question)
        c = classify_answer(answer, brand, competitors, domain)
        return EngineResult(
            engine=engine,
            is_mentioned=c.is_mentioned,
            bucket=c.bucket,
            sentiment=c.sentiment,
            competitors_mentioned=c.competitors_mentioned,
            raw_response=answer,
        )
    except Exception as e:
        logger.warning("Engine check failed: engine=%s error=%s", engine, e)
        return EngineResult.failed(engine, str(e) or e.__class__.__name__)


def check_all_engines(
    question: str,
    brand: str,
    competitors: Sequence[str],
    engines: Sequence[str],
    domain: Optional[str] = None,
    client_factory: Optional[ClientFactory] = None,
) -> List[EngineResult]:
    if not engines:
        return []

    workers = max(1, min(settings.MAX_ENGINE_WORKERS, len(engines)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [
            pool.submit(check_engine, engine, question, brand, competitors, domain, client_factory)
            for engine in engines
        ]
        # collect in submission order, not completion order
        results = [f.result() for f in futures]

    mentioned = sum(1 for r in results if r.is_mentioned)
    logger.info("Engine check: %s/%s engines mention %r", mentioned, len(results), brand)
    return results


def check_query(
    question: str,
    brand: str,
    competitors: Sequence[str],
    engines: Sequence[str],
    domain: Optional[str] = None,
    client_factory: Optional[ClientFactory] = None,
) -> Tuple[QueryAggregate, List[EngineResult]]:
    if not engines:
        raise InvalidInput("no AI engines configured for this check")

    results = check_all_engines(question, brand, competitors, engines, domain, client_factory)
    return aggregate(question, results), results
