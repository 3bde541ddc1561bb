import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from config import settings
from core.evs import quick_score as quick_score_calc
from core.evs.aggregator import aggregate
from core.evs.models import AuditSnapshot, EngineResult, InvalidInput, QueryAggregate, VisibilityReport
from core.evs.report import evolution, quick_score_display, visibility_report
from core.evs.robots import analyze as analyze_robots
from core.evs.scoring import visibility_score
from core.evs.service_limits import SERVICE_LIMITS, cap_queries, engines_for, supports_delta
from engine_check import check_query
from quick_scan import bulk_quick_scan, normalize_domain, quick_scan_domain
from signal_adapters import build_off_site_qualitative, build_on_site_signals, build_query_aggregates

# -------------------------------------------------------------------
# Logging
# -------------------------------------------------------------------

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger("evs")

logger.info("AI engines configured: %s", ", ".join(settings.configured_engines) or "none")

# -------------------------------------------------------------------
# FastAPI App
# -------------------------------------------------------------------

app = FastAPI(
    title="EVS Scoring API",
    version="1.0.0",
    description="AI visibility scoring: lead quick scans, multi-engine mention checks, EVS score.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------------------------------------------------
# Models
# -------------------------------------------------------------------

MAX_BULK_DOMAINS = 200


def _validate_public_domain(v: str) -> str:
    # basic SSRF reduction
    domain = normalize_domain(v)
    if len(domain) < 3 or "." not in domain:
        raise ValueError("Invalid domain")
    blocked = ["localhost", "127.0.0.1", "0.0.0.0", "::1"]
    if any(b in domain for b in blocked):
        raise ValueError("Cannot scan localhost/internal addresses")
    if domain.startswith(("192.168.", "10.", "172.16.")):
        raise ValueError("Cannot scan private IP addresses")
    return domain


class RobotsRequest(BaseModel):
    text: str = ""


class QuickScanRequest(BaseModel):
    domain: str

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        return _validate_public_domain(v)


class BulkQuickScanRequest(BaseModel):
    domains: List[str] = Field(min_length=1, max_length=MAX_BULK_DOMAINS)

    @field_validator("domains")
    @classmethod
    def validate_domains(cls, v: List[str]) -> List[str]:
        return [_validate_public_domain(d) for d in v]


class AggregateRequest(BaseModel):
    query_text: str
    results: List[EngineResult]


class EngineCheckRequest(BaseModel):
    question: str
    brand: str
    competitors: List[str] = []
    domain: Optional[str] = None
    audit_type: str = "full"

    @field_validator("audit_type")
    @classmethod
    def validate_audit_type(cls, v: str) -> str:
        if v not in SERVICE_LIMITS:
            raise ValueError(f"audit_type must be one of {sorted(SERVICE_LIMITS)}")
        return v


class EngineCheckResponse(BaseModel):
    aggregate: QueryAggregate
    results: List[EngineResult]


class VisibilityRequest(BaseModel):
    on_site: Dict[str, Any] = {}
    off_site: Dict[str, Any] = {}
    queries: List[Dict[str, Any]] = []
    audit_type: Optional[str] = None
    # earlier audits, newest first
    history: List[AuditSnapshot] = []


class LeadIn(BaseModel):
    id: str
    domain: Optional[str] = None
    quick_score: Optional[int] = None

    @field_validator("quick_score")
    @classmethod
    def validate_quick_score(cls, v: Optional[int]) -> Optional[int]:
        if v is None or v == -1:
            return v
        if v < 0 or v > 100 or v % 20 != 0:
            raise ValueError("quick_score must be -1 or a multiple of 20 in 0..100")
        return v


class RankedLead(BaseModel):
    id: str
    domain: Optional[str] = None
    quick_score: Optional[int] = None
    display: Dict[str, Any]


class RankLeadsRequest(BaseModel):
    leads: List[LeadIn]

# -------------------------------------------------------------------
# Routes
# -------------------------------------------------------------------

@app.get("/")
def root():
    return {"status": "ok", "service": "EVS Scoring API", "version": "1.0.0"}


@app.get("/health")
def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "api": "operational",
            "engines": settings.configured_engines,
        },
    }


@app.post("/robots/analyze")
def robots_analyze(payload: RobotsRequest):
    return {"blocks_ai_agents": analyze_robots(payload.text).blocks_ai_agents}


@app.post("/quick_scan")
def quick_scan(payload: QuickScanRequest):
    logger.info("Quick scan requested: domain=%s", payload.domain)
    result = quick_scan_domain(payload.domain)
    record = result.to_record()
    record["display"] = quick_score_display(result.quick_score).model_dump()
    return record


@app.post("/bulk_quick_scan")
def bulk_scan(payload: BulkQuickScanRequest):
    logger.info("Bulk quick scan requested: %s domains", len(payload.domains))
    results = bulk_quick_scan(payload.domains)
    return {"results": [r.to_record() for r in results]}


@app.post("/aggregate", response_model=QueryAggregate)
def aggregate_query(payload: AggregateRequest):
    return aggregate(payload.query_text, payload.results)


@app.post("/engine_check", response_model=EngineCheckResponse)
def engine_check(payload: EngineCheckRequest):
    engines = [e for e in engines_for(payload.audit_type) if e in settings.configured_engines]
    agg, results = check_query(
        payload.question,
        payload.brand,
        payload.competitors,
        engines,
        domain=payload.domain,
    )
    return EngineCheckResponse(aggregate=agg, results=results)


@app.post("/visibility_score", response_model=VisibilityReport)
def score_visibility(payload: VisibilityRequest):
    queries = payload.queries
    if payload.audit_type:
        if payload.audit_type not in SERVICE_LIMITS:
            raise HTTPException(status_code=422, detail=f"unknown audit_type: {payload.audit_type}")
        keep = set(cap_queries(payload.audit_type, [str(q.get("query_text") or "") for q in queries]))
        queries = [q for q in queries if str(q.get("query_text") or "").strip() in keep]

    aggregates = build_query_aggregates(queries)
    score = visibility_score(
        build_on_site_signals(payload.on_site),
        build_off_site_qualitative(payload.off_site),
        aggregates,
    )
    logger.info("Visibility scored: on=%s off=%s total=%s", score.on_site, score.off_site, score.total)

    trend = None
    if payload.history and payload.audit_type and supports_delta(payload.audit_type):
        current = AuditSnapshot(
            version="current",
            score_total=score.total,
            score_onsite=score.on_site,
            score_offsite=score.off_site,
        )
        trend = evolution([current] + payload.history)
    return visibility_report(score, aggregates, trend)


@app.post("/leads/rank")
def rank_leads(payload: RankLeadsRequest):
    scored = [(lead, quick_score_calc.coerce_quick_score(lead.quick_score)) for lead in payload.leads]
    ranked = quick_score_calc.rank_prospects(scored, get_score=lambda pair: pair[1])
    return {
        "leads": [
            RankedLead(
                id=lead.id,
                domain=lead.domain,
                quick_score=lead.quick_score,
                display=quick_score_display(qs).model_dump(),
            )
            for lead, qs in ranked
        ]
    }


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return JSONResponse(
        status_code=422,
        content={"error": str(exc), "status_code": 422, "path": str(request.url)},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "status_code": exc.status_code, "path": str(request.url)},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
