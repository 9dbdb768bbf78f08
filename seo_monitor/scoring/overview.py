"""Site-wide SEO overview: aggregate stats, attention flags and filtering."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from seo_monitor.scoring.engine import (
    STATUSES,
    PageMetadata,
    ScoreResult,
    clean_text,
    keyword_list,
)

logger = logging.getLogger(__name__)

# Descriptions shorter than this are flagged on the dashboard overview.
MIN_DESCRIPTION_LENGTH = 50

ATTENTION_FILTERS = ("all", "optimized", "needs-attention")


@dataclass
class SEOStats:
    """Aggregate SEO health numbers across all pages."""
    total_pages: int = 0
    optimized_pages: int = 0
    missing_descriptions: int = 0
    missing_keywords: int = 0
    missing_og_images: int = 0
    average_description_length: int = 0
    average_keywords_count: int = 0
    average_score: float = 0.0
    status_counts: dict[str, int] = field(
        default_factory=lambda: {status: 0 for status in STATUSES}
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_pages": self.total_pages,
            "optimized_pages": self.optimized_pages,
            "missing_descriptions": self.missing_descriptions,
            "missing_keywords": self.missing_keywords,
            "missing_og_images": self.missing_og_images,
            "average_description_length": self.average_description_length,
            "average_keywords_count": self.average_keywords_count,
            "average_score": self.average_score,
            "status_counts": dict(self.status_counts),
        }


def page_attention(page: PageMetadata) -> tuple[str, list[str]]:
    """Return ('optimized' | 'needs-attention', short issue labels)."""
    labels: list[str] = []
    if len(clean_text(page.description)) < MIN_DESCRIPTION_LENGTH:
        labels.append("Description")
    if not keyword_list(page.keywords):
        labels.append("Keywords")
    if not clean_text(page.og_image):
        labels.append("OG Image")
    return ("needs-attention" if labels else "optimized"), labels


def summarize(
    pages: Sequence[PageMetadata],
    results: Optional[Sequence[ScoreResult]] = None,
) -> SEOStats:
    """Compute overview statistics for a set of pages.

    Args:
        pages: Page metadata records.
        results: Optional score results aligned with ``pages``; when
                 given, average score and per-band counts are filled in.
    """
    stats = SEOStats(total_pages=len(pages))
    if not pages:
        return stats

    desc_lengths: list[int] = []
    kw_counts: list[int] = []
    for page in pages:
        description = clean_text(page.description)
        keywords = keyword_list(page.keywords)
        if len(description) < MIN_DESCRIPTION_LENGTH:
            stats.missing_descriptions += 1
        if description:
            desc_lengths.append(len(description))
        if keywords:
            kw_counts.append(len(keywords))
        else:
            stats.missing_keywords += 1
        if not clean_text(page.og_image):
            stats.missing_og_images += 1

    stats.optimized_pages = stats.total_pages - max(
        stats.missing_descriptions, stats.missing_keywords, stats.missing_og_images
    )
    if desc_lengths:
        stats.average_description_length = round(sum(desc_lengths) / len(desc_lengths))
    if kw_counts:
        stats.average_keywords_count = round(sum(kw_counts) / len(kw_counts))

    if results:
        for result in results:
            stats.status_counts[result.status] = stats.status_counts.get(result.status, 0) + 1
        stats.average_score = round(sum(r.score for r in results) / len(results), 1)

    return stats


def filter_pages(
    pages: Sequence[PageMetadata],
    results: Sequence[ScoreResult],
    search: str = "",
    attention: str = "all",
    status: Optional[str] = None,
) -> list[tuple[PageMetadata, ScoreResult]]:
    """Filter aligned (page, result) pairs.

    Args:
        search: Case-insensitive substring matched against title,
                page type and page URL.
        attention: One of ``all``, ``optimized``, ``needs-attention``.
        status: Optional score band (``excellent``, ``good``, ...).
    """
    if attention not in ATTENTION_FILTERS:
        raise ValueError(f"Unknown attention filter: {attention!r}")
    needle = search.strip().lower()
    matched: list[tuple[PageMetadata, ScoreResult]] = []
    for page, result in zip(pages, results):
        if needle:
            haystack = " ".join(
                clean_text(value).lower()
                for value in (page.title, page.page_type, page.page_url)
            )
            if needle not in haystack:
                continue
        if attention != "all" and page_attention(page)[0] != attention:
            continue
        if status and result.status != status:
            continue
        matched.append((page, result))
    return matched


def sort_by_score(
    pairs: Sequence[tuple[PageMetadata, ScoreResult]],
    descending: bool = False,
) -> list[tuple[PageMetadata, ScoreResult]]:
    """Sort (page, result) pairs by score; ties keep their input order."""
    return sorted(pairs, key=lambda pair: pair[1].score, reverse=descending)
