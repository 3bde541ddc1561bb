"""
quick_scan.py — HTTP-only lead pre-qualification

Fast and cheap (a few seconds, no AI calls):
- Probes robots.txt, sitemap.xml, llms.txt and the homepage in parallel
- Every probe has its own timeout; a failed probe is a negative signal, never fatal
- robots.txt body goes through the AI-crawler block analyzer
- Homepage HTML is checked for JSON-LD schema and a canonical link
- Bulk scans run in fixed-size batches to cap outbound connections

Scoring lives in core.evs.quick_score. Remember the scale is inverted:
lower quick score = more issues = hotter lead.
"""

from __future__ import annotations

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from config import settings
from core.evs import quick_score as quick_score_calc
from core.evs.models import QuickScanSignals, QuickScore
from core.evs.robots import analyze as analyze_robots

logger = logging.getLogger(__name__)

BOT_BLOCK_STATUSES = {403, 503}


# -----------------------------
# Types
# -----------------------------

@dataclass
class ProbeResponse:
    status: int
    ok: bool
    text: str = ""


@dataclass
class QuickScanResult:
    domain: str
    signals: QuickScanSignals
    quick_score: QuickScore
    quick_issues: List[str] = field(default_factory=list)
    scan_duration_ms: int = 0
    error: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        """Flat shape stored on the lead row (quick_score -1 = undetermined)."""
        s = self.signals
        return {
            "domain": self.domain,
            "robots_ok": bool(s.robots_ok and not s.blocks_ai_agents),
            "sitemap_ok": s.sitemap_ok,
            "schema_ok": s.schema_ok,
            "llms_txt_ok": s.llms_txt_ok,
            "canonical_ok": s.canonical_ok,
            "blocks_gptbot": s.blocks_ai_agents,
            "bot_blocked": s.bot_blocked,
            "quick_score": self.quick_score.as_int(),
            "quick_issues": list(self.quick_issues),
            "scan_duration_ms": self.scan_duration_ms,
            "error": self.error,
        }


# -----------------------------
# Helpers
# -----------------------------

def normalize_domain(raw: str) -> str:
    domain = (raw or "").strip().lower()
    domain = re.sub(r"^https?://", "", domain)
    return domain.rstrip("/")


def _headers() -> Dict[str, str]:
    return {
        "User-Agent": settings.PROBE_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    }


def _probe(session, url: str, timeout: float, method: str = "GET") -> Optional[ProbeResponse]:
    try:
        r = session.request(method, url, headers=_headers(), timeout=timeout, allow_redirects=True)
    except requests.RequestException as e:
        logger.info("Probe failed: %s %s (%s)", method, url, e.__class__.__name__)
        return None

    text = ""
    if method == "GET" and r.ok:
        text = r.text or ""
    return ProbeResponse(status=int(r.status_code), ok=bool(r.ok), text=text)


def has_json_ld(html: str) -> bool:
    return "application/ld+json" in html


def has_canonical(html: str) -> bool:
    return 'rel="canonical"' in html or "rel='canonical'" in html


def build_quick_issues(signals: QuickScanSignals, *, robots_reachable: bool, homepage_loaded: bool) -> List[str]:
    issues: List[str] = []

    if signals.bot_blocked:
        issues.append("Site blocks server-side requests (anti-bot)")

    if not robots_reachable:
        issues.append("robots.txt not reachable")
    elif signals.blocks_ai_agents:
        issues.append("robots.txt blocks GPTBot / AI crawlers")

    if not signals.sitemap_ok:
        issues.append("No sitemap.xml")
    if not signals.llms_txt_ok:
        issues.append("No llms.txt")

    if homepage_loaded:
        if not signals.schema_ok:
            issues.append("No Schema.org (JSON-LD) markup")
        if not signals.canonical_ok:
            issues.append("No canonical URL")
    else:
        issues.append("Homepage could not be loaded")

    return issues


# -----------------------------
# Scan
# -----------------------------

def _run_probes(session, url: str) -> Dict[str, Optional[ProbeResponse]]:
    probes = {
        "robots": (f"{url}/robots.txt", settings.PROBE_TIMEOUT, "GET"),
        "sitemap": (f"{url}/sitemap.xml", settings.PROBE_TIMEOUT, "HEAD"),
        "llms": (f"{url}/llms.txt", settings.PROBE_TIMEOUT, "HEAD"),
        "home": (url, settings.HOMEPAGE_TIMEOUT, "GET"),
    }
    with ThreadPoolExecutor(max_workers=len(probes)) as pool:
        futures = {
            name: pool.submit(_probe, session, probe_url, timeout, method)
            for name, (probe_url, timeout, method) in probes.items()
        }
        return {name: fut.result() for name, fut in futures.items()}


def _failed_result(domain: str, started: float, error: str) -> QuickScanResult:
    signals = QuickScanSignals()
    return QuickScanResult(
        domain=domain,
        signals=signals,
        quick_score=quick_score_calc.score(signals),
        quick_issues=["Error during scan"],
        scan_duration_ms=int((time.monotonic() - started) * 1000),
        error=error,
    )


def quick_scan_domain(raw_domain: str, session=None) -> QuickScanResult:
    started = time.monotonic()
    domain = normalize_domain(raw_domain)
    if not domain:
        return _failed_result(domain, started, "empty domain")

    url = f"https://{domain}"
    own_session = session is None
    if own_session:
        session = requests.Session()

    try:
        responses = _run_probes(session, url)

        home = responses["home"]
        robots = responses["robots"]
        sitemap = responses["sitemap"]
        llms = responses["llms"]

        bot_blocked = home is not None and home.status in BOT_BLOCK_STATUSES

        robots_ok = robots is not None and robots.ok
        blocks_ai_agents = robots_ok and analyze_robots(robots.text).blocks_ai_agents

        homepage_loaded = home is not None and home.ok
        html = home.text if homepage_loaded else ""

        signals = QuickScanSignals(
            robots_ok=robots_ok,
            sitemap_ok=sitemap is not None and sitemap.ok,
            schema_ok=homepage_loaded and has_json_ld(html),
            llms_txt_ok=llms is not None and llms.ok,
            canonical_ok=homepage_loaded and has_canonical(html),
            blocks_ai_agents=blocks_ai_agents,
            bot_blocked=bot_blocked,
        )
        result = QuickScanResult(
            domain=domain,
            signals=signals,
            quick_score=quick_score_calc.score(signals),
            quick_issues=build_quick_issues(
                signals, robots_reachable=robots_ok, homepage_loaded=homepage_loaded
            ),
            scan_duration_ms=int((time.monotonic() - started) * 1000),
        )
        logger.info(
            "Quick scan done: domain=%s score=%s duration_ms=%s",
            domain, result.quick_score.as_int(), result.scan_duration_ms,
        )
        return result
    except Exception as e:
        logger.exception("Quick scan failed: domain=%s", domain)
        return _failed_result(domain, started, str(e) or e.__class__.__name__)
    finally:
        if own_session:
            session.close()


def bulk_quick_scan(domains: List[str], batch_size: Optional[int] = None, session_factory=None) -> List[QuickScanResult]:
    """
    Scan many domains: batches run one after another, domains inside a batch
    run concurrently. Output order matches input order.
    """
    size = batch_size or settings.BULK_SCAN_BATCH_SIZE

    def scan_one(domain: str) -> QuickScanResult:
        session = session_factory() if session_factory else None
        return quick_scan_domain(domain, session=session)

    results: List[QuickScanResult] = []
    for i in range(0, len(domains), size):
        batch = domains[i:i + size]
        with ThreadPoolExecutor(max_workers=len(batch)) as pool:
            results.extend(pool.map(scan_one, batch))
        logger.info("Bulk quick scan: %s/%s domains done", len(results), len(domains))
    return results
