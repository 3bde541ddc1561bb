from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


Bucket = Literal["Top Answer", "Mentioned", "Cited", "Not Found"]
Sentiment = Literal["Positive", "Neutral", "Negative"]

# Tie-break order only. Never used as a magnitude in score arithmetic.
BUCKET_PRIORITY: Dict[str, int] = {
    "Top Answer": 3,
    "Mentioned": 2,
    "Cited": 1,
    "Not Found": 0,
}

LOWEST_BUCKET: Bucket = "Not Found"

# stored quick_score column value for "could not assess"
UNDETERMINED_SENTINEL = -1


class InvalidInput(ValueError):
    """Raised when a scoring component is handed input it cannot work with."""


class OnSiteSignals(BaseModel):
    model_config = ConfigDict(frozen=True)

    robots_ok: bool = False
    sitemap_ok: bool = False
    schema_present: bool = False

    answer_box_score: int = Field(default=0, ge=0, le=10)
    structure_score: int = Field(default=0, ge=0, le=10)
    authority_score: int = Field(default=0, ge=0, le=10)


class OffSiteQualitative(BaseModel):
    """
    Research-derived off-site pillars.

    The two 0..10 scores plus the 5 point canonical bonus add up to at most 25;
    the score engine relies on that and does not re-cap the component.
    """

    model_config = ConfigDict(frozen=True)

    entity_consistency_score: int = Field(default=0, ge=0, le=10)
    canonical_sources_present: bool = False
    reputation_score: int = Field(default=0, ge=0, le=10)


class EngineResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    engine: str
    is_mentioned: bool = False
    bucket: Bucket = LOWEST_BUCKET
    sentiment: Sentiment = "Neutral"
    competitors_mentioned: List[str] = Field(default_factory=list)
    raw_response: str = ""
    error: Optional[str] = None

    @classmethod
    def failed(cls, engine: str, error: str) -> "EngineResult":
        return cls(engine=engine, error=error)

    @property
    def effective_mentioned(self) -> bool:
        return self.is_mentioned and not self.error

    @property
    def priority(self) -> int:
        if self.error:
            return BUCKET_PRIORITY[LOWEST_BUCKET]
        return BUCKET_PRIORITY[self.bucket]


class QueryAggregate(BaseModel):
    model_config = ConfigDict(frozen=True)

    query_text: str
    any_mentioned: bool
    best_result: EngineResult
    all_competitors: List[str] = Field(default_factory=list)


class VisibilityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    on_site: int = Field(ge=0, le=50)
    off_site: int = Field(ge=0, le=50)
    total: int = Field(ge=0, le=100)

    @model_validator(mode="after")
    def _total_is_sum(self) -> "VisibilityScore":
        if self.total != self.on_site + self.off_site:
            raise ValueError("total must equal on_site + off_site")
        return self


class QuickScanSignals(BaseModel):
    model_config = ConfigDict(frozen=True)

    robots_ok: bool = False
    sitemap_ok: bool = False
    schema_ok: bool = False
    llms_txt_ok: bool = False
    canonical_ok: bool = False
    blocks_ai_agents: bool = False
    bot_blocked: bool = False


class QuickScore(BaseModel):
    """
    Lead qualification score.

    Either undetermined (the target refused the probe) or a multiple of 20 in
    0..100. Lower scored values mean MORE missing signals, i.e. a hotter
    prospect. This runs opposite to the visibility score.
    """

    model_config = ConfigDict(frozen=True)

    determined: bool
    value: Optional[int] = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def _check_shape(self) -> "QuickScore":
        if self.determined:
            if self.value is None or self.value % 20 != 0:
                raise ValueError("scored quick score must be a multiple of 20")
        elif self.value is not None:
            raise ValueError("undetermined quick score carries no value")
        return self

    @classmethod
    def undetermined(cls) -> "QuickScore":
        return cls(determined=False)

    @classmethod
    def scored(cls, value: int) -> "QuickScore":
        return cls(determined=True, value=value)

    @classmethod
    def from_int(cls, raw: Optional[int]) -> Optional["QuickScore"]:
        """Read back a stored column value; None means never scanned."""
        if raw is None:
            return None
        if int(raw) < 0:
            return cls.undetermined()
        return cls.scored(int(raw))

    def as_int(self) -> int:
        return self.value if self.determined else UNDETERMINED_SENTINEL


# -----------------------------
# Display payloads
# -----------------------------

QuickScoreTier = Literal["unscanned", "blocked", "hot", "warm", "cool", "healthy"]
Trend = Literal["up", "down", "stable"]


class QuickScoreDisplay(BaseModel):
    text: str
    tier: QuickScoreTier
    description: str


class AuditSnapshot(BaseModel):
    version: str
    score_total: float = 0
    score_onsite: float = 0
    score_offsite: float = 0


class Evolution(BaseModel):
    audits: int
    delta: int
    trend: Trend


class VisibilityReport(BaseModel):
    score: VisibilityScore
    total_pct: int
    on_site_pct: int
    off_site_pct: int
    sov_pct: int
    queries_checked: int
    queries_mentioned: int
    evolution: Optional[Evolution] = None
