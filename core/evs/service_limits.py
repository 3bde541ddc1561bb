# core/evs/service_limits.py
from typing import Dict, List, Literal, Tuple

AuditType = Literal["mini", "full", "retainer"]

ALL_ENGINES: Tuple[str, ...] = ("ChatGPT", "Claude", "Gemini", "Perplexity")

SERVICE_LIMITS: Dict[str, Dict] = {
    "mini": {
        "max_queries": 5,
        "engines": ["ChatGPT", "Gemini"],
        "delta_comparison": False,
    },
    "full": {
        "max_queries": 20,
        "engines": list(ALL_ENGINES),
        "delta_comparison": False,
    },
    "retainer": {
        "max_queries": 15,
        "engines": list(ALL_ENGINES),
        "delta_comparison": True,
    },
}


def _limits(audit_type: str) -> Dict:
    limits = SERVICE_LIMITS.get(audit_type)
    if limits is None:
        raise ValueError(f"unknown audit type: {audit_type}")
    return limits


def engines_for(audit_type: str) -> List[str]:
    return list(_limits(audit_type)["engines"])


def supports_delta(audit_type: str) -> bool:
    return bool(_limits(audit_type)["delta_comparison"])


def cap_queries(audit_type: str, queries: List[str]) -> List[str]:
    """
    Trim query texts to the audit type's allowance.

    Blank texts are dropped and repeats collapse to their first occurrence, so
    stored rows (one per engine) count each question once.
    """
    limits = _limits(audit_type)
    distinct = list(dict.fromkeys(q.strip() for q in queries if q and q.strip()))
    return distinct[: limits["max_queries"]]
