"""SEO quality score for page metadata records.

Scores a single page's metadata on a 0-100 scale from seven independent
checks (title, description, keywords, OG image, canonical URL,
structured data and title uniqueness).  Each check either earns its
full points or nothing; every failed check contributes exactly one
issue and one matching suggestion.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Check weights and status bands
# ---------------------------------------------------------------------------

CHECK_POINTS: dict[str, int] = {
    "title": 20,
    "description": 20,
    "keywords": 15,
    "og_image": 15,
    "canonical_url": 10,
    "structured_data": 10,
    "unique_title": 10,
}

_STATUS_BANDS = [
    (90, "excellent"),
    (70, "good"),
    (50, "needs-improvement"),
]

STATUSES = ("excellent", "good", "needs-improvement", "poor")

# Aliases accepted by PageMetadata.from_mapping (storage rows use snake_case).
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "og_image": ("ogImage", "og_image"),
    "canonical_url": ("canonicalUrl", "canonical_url"),
    "structured_data": ("structuredData", "structured_data", "schemaData", "schema_data"),
    "page_type": ("pageType", "page_type"),
    "page_url": ("pageUrl", "page_url"),
    "page_slug": ("pageSlug", "page_slug"),
}


def status_for_score(score: int) -> str:
    """Map a 0-100 score to its band name."""
    for threshold, status in _STATUS_BANDS:
        if score >= threshold:
            return status
    return "poor"


def clean_text(value: Any) -> str:
    """Return a stripped string, or '' for anything that is not text."""
    if isinstance(value, str):
        return value.strip()
    return ""


def keyword_list(value: Any) -> list[str]:
    """Coerce a keyword field into a list of non-blank strings."""
    if value is None:
        return []
    if isinstance(value, str):
        items: Sequence[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]


def _normalize_title(title: Any) -> str:
    return clean_text(title).lower()


@dataclass
class PageMetadata:
    """Read-only SEO metadata of one page, as fed to the ScoreEngine."""
    id: Any = None
    title: Optional[str] = None
    description: Optional[str] = None
    keywords: Any = None
    og_image: Optional[str] = None
    canonical_url: Optional[str] = None
    structured_data: Any = None
    page_type: Optional[str] = None
    page_url: Optional[str] = None
    page_slug: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PageMetadata":
        """Build from a dict using either camelCase or snake_case keys."""
        values: dict[str, Any] = {
            "id": data.get("id"),
            "title": data.get("title"),
            "description": data.get("description"),
            "keywords": data.get("keywords"),
        }
        for attr, aliases in _FIELD_ALIASES.items():
            for alias in aliases:
                if data.get(alias) is not None:
                    values[attr] = data[alias]
                    break
        return cls(**values)

    @classmethod
    def from_model(cls, row: Any) -> "PageMetadata":
        """Build from an ``SEOMetadata`` ORM row."""
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            keywords=row.keywords,
            og_image=row.og_image,
            canonical_url=row.canonical_url,
            structured_data=row.schema_data,
            page_type=row.page_type,
            page_url=row.page_url,
            page_slug=row.page_slug,
        )


@dataclass
class ScoreResult:
    """Score and diagnostics for one page (computed, never persisted)."""
    score: int
    status: str
    issues: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    breakdown: dict[str, int] = field(default_factory=dict)
    page_id: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_id": self.page_id,
            "score": self.score,
            "status": self.status,
            "issues": list(self.issues),
            "suggestions": list(self.suggestions),
            "breakdown": dict(self.breakdown),
        }


def _as_page(page: Any) -> PageMetadata:
    if page is None:
        return PageMetadata()
    if isinstance(page, PageMetadata):
        return page
    if isinstance(page, Mapping):
        return PageMetadata.from_mapping(page)
    return PageMetadata.from_model(page)


# ---------------------------------------------------------------------------
# ScoreEngine
# ---------------------------------------------------------------------------

class ScoreEngine:
    """Deterministic SEO quality scoring for page metadata.

    Usage::

        engine = ScoreEngine()
        result = engine.score(page, all_pages)
        results = engine.score_all(all_pages)
    """

    def __init__(
        self,
        title_range: tuple[int, int] = (30, 60),
        description_range: tuple[int, int] = (120, 155),
        keyword_range: tuple[int, int] = (3, 8),
    ) -> None:
        self._title_min, self._title_max = title_range
        self._desc_min, self._desc_max = description_range
        self._kw_min, self._kw_max = keyword_range

    def score(self, page: Any, all_pages: Sequence[Any] = ()) -> ScoreResult:
        """Score one page against its sibling set.

        ``all_pages`` may include ``page`` itself; the page is excluded
        from duplicate-title detection by identity and by id.  ``None``
        entries are ignored.  Missing or malformed fields fail their
        check; nothing here raises on bad input.
        """
        # Exclude the record itself before conversion; converted mappings
        # and rows are new objects.
        siblings = [
            _as_page(other) for other in all_pages
            if other is not None and other is not page
        ]
        page = _as_page(page)
        issues: list[str] = []
        suggestions: list[str] = []
        breakdown = {name: 0 for name in CHECK_POINTS}

        def fail(issue: str, suggestion: str) -> None:
            issues.append(issue)
            suggestions.append(suggestion)

        # Title
        title = clean_text(page.title)
        if not title:
            fail(
                "Title is missing",
                f"Add a title between {self._title_min} and {self._title_max} characters",
            )
        elif len(title) < self._title_min:
            fail(
                f"Title too short ({len(title)} chars, minimum {self._title_min})",
                f"Expand the title to at least {self._title_min} characters",
            )
        elif len(title) > self._title_max:
            fail(
                f"Title too long ({len(title)} chars, maximum {self._title_max})",
                f"Shorten the title to at most {self._title_max} characters",
            )
        else:
            breakdown["title"] = CHECK_POINTS["title"]

        # Description
        description = clean_text(page.description)
        if not description:
            fail(
                "Meta description is missing",
                f"Add a description between {self._desc_min} and {self._desc_max} characters",
            )
        elif len(description) < self._desc_min:
            fail(
                f"Description too short ({len(description)} chars, minimum {self._desc_min})",
                f"Expand the description to at least {self._desc_min} characters",
            )
        elif len(description) > self._desc_max:
            fail(
                f"Description too long ({len(description)} chars, maximum {self._desc_max})",
                f"Shorten the description to at most {self._desc_max} characters",
            )
        else:
            breakdown["description"] = CHECK_POINTS["description"]

        # Keywords
        keywords = keyword_list(page.keywords)
        if not keywords:
            fail(
                "No keywords defined",
                f"Add between {self._kw_min} and {self._kw_max} relevant keywords",
            )
        elif len(keywords) < self._kw_min:
            fail(
                f"Too few keywords ({len(keywords)}, minimum {self._kw_min})",
                f"Add keywords until there are at least {self._kw_min}",
            )
        elif len(keywords) > self._kw_max:
            fail(
                f"Too many keywords ({len(keywords)}, maximum {self._kw_max})",
                f"Keep only the {self._kw_max} most relevant keywords",
            )
        else:
            breakdown["keywords"] = CHECK_POINTS["keywords"]

        # Open Graph image
        if clean_text(page.og_image):
            breakdown["og_image"] = CHECK_POINTS["og_image"]
        else:
            fail("OG image is missing", "Add an Open Graph image for social sharing")

        # Canonical URL
        if clean_text(page.canonical_url):
            breakdown["canonical_url"] = CHECK_POINTS["canonical_url"]
        else:
            fail("Canonical URL is missing", "Set a canonical URL to avoid duplicate content")

        # Structured data
        structured = page.structured_data
        if isinstance(structured, Mapping) and len(structured) > 0:
            breakdown["structured_data"] = CHECK_POINTS["structured_data"]
        else:
            fail("Structured data is missing", "Add schema.org structured data (JSON-LD)")

        # Title uniqueness
        duplicates = self._count_duplicates(page, siblings)
        if duplicates:
            noun = "record" if duplicates == 1 else "records"
            fail(
                f"Duplicate title, found in {duplicates} other {noun}",
                "Rewrite the title so it is unique across the site",
            )
        else:
            breakdown["unique_title"] = CHECK_POINTS["unique_title"]

        score = sum(breakdown.values())
        return ScoreResult(
            score=score,
            status=status_for_score(score),
            issues=issues,
            suggestions=suggestions,
            breakdown=breakdown,
            page_id=page.id,
        )

    def score_all(self, pages: Sequence[Any]) -> list[ScoreResult]:
        """Score every page against the full set, preserving input order."""
        siblings = [_as_page(p) for p in pages]
        results = [self.score(p, siblings) for p in siblings]
        logger.debug("Scored %d pages", len(results))
        return results

    @staticmethod
    def _count_duplicates(page: PageMetadata, siblings: Sequence[PageMetadata]) -> int:
        normalized = _normalize_title(page.title)
        if not normalized:
            return 0
        count = 0
        for other in siblings:
            if page.id is not None and other.id == page.id:
                continue
            if _normalize_title(other.title) == normalized:
                count += 1
        return count
