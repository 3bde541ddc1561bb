"""
EVS (visibility scoring) core.

This package defines:
- Signal and result contracts (on-site, off-site, per-engine, quick scan)
- robots.txt AI-crawler block detection
- Quick score for lead qualification (inverted scale, undetermined state)
- Multi-engine aggregation per query
- Deterministic on-site / off-site visibility scoring
- Display helpers for the dashboard

Everything here is pure: no I/O, no shared state.
"""
