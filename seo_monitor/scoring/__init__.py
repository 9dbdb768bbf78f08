"""SEO metadata scoring."""

from seo_monitor.scoring.engine import (
    CHECK_POINTS,
    PageMetadata,
    ScoreEngine,
    ScoreResult,
    status_for_score,
)
from seo_monitor.scoring.overview import (
    SEOStats,
    filter_pages,
    page_attention,
    sort_by_score,
    summarize,
)

__all__ = [
    "CHECK_POINTS",
    "PageMetadata",
    "ScoreEngine",
    "ScoreResult",
    "status_for_score",
    "SEOStats",
    "filter_pages",
    "page_attention",
    "sort_by_score",
    "summarize",
]
