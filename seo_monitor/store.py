"""SQL-backed stores for metric logs, performance alerts and page metadata.

``MetricStore`` and ``PageStore`` describe what the scoring and
monitoring code needs from persistence; ``SQLMetricStore`` and
``SQLPageStore`` implement them on top of the SQLAlchemy session in
``seo_monitor.database``.  Every database failure is re-raised as
``StoreError`` so callers only need to handle one exception type.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError

from seo_monitor.database import get_session
from seo_monitor.models import PerformanceAlert, SEOMetadata, SystemLog
from seo_monitor.scoring.engine import PageMetadata

logger = logging.getLogger(__name__)

ALERT_TYPES = ("threshold_exceeded", "cache_miss_spike", "query_slowdown")
ALERT_SEVERITIES = ("warning", "critical")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreError(Exception):
    """Raised when the backing store cannot be read or written."""


@dataclass
class MetricRecord:
    """One metric-log record (``performance_audit``, ``cache_hit``, ...)."""
    type: str
    context: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass
class AlertRecord:
    """A performance alert, before or after persistence."""
    type: str
    severity: str
    metric: str
    current_value: float
    threshold: float
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    acknowledged: bool = False
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row: PerformanceAlert) -> "AlertRecord":
        return cls(
            id=row.id,
            type=row.alert_type,
            severity=row.severity,
            metric=row.metric,
            current_value=row.current_value,
            threshold=row.threshold,
            message=row.message,
            context=dict(row.context or {}),
            acknowledged=bool(row.acknowledged),
            created_at=row.created_at,
            acknowledged_at=row.acknowledged_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "metric": self.metric,
            "current_value": self.current_value,
            "threshold": self.threshold,
            "message": self.message,
            "context": dict(self.context),
            "acknowledged": self.acknowledged,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "acknowledged_at": (
                self.acknowledged_at.isoformat() if self.acknowledged_at else None
            ),
        }


class MetricStore(Protocol):
    """What the alert monitor needs from persistence."""

    def query_records(self, since: datetime, types: Sequence[str]) -> list[MetricRecord]: ...

    def insert_alert(self, record: AlertRecord) -> AlertRecord: ...

    def list_alerts(self, acknowledged: bool = False, limit: int = 10) -> list[AlertRecord]: ...

    def acknowledge_alert(self, alert_id: int) -> bool: ...


class PageStore(Protocol):
    """Read access to page SEO metadata."""

    def list_pages(self) -> list[PageMetadata]: ...


# ---------------------------------------------------------------------------
# SQLMetricStore
# ---------------------------------------------------------------------------

class SQLMetricStore:
    """MetricStore backed by the ``system_logs`` and ``performance_alerts`` tables.

    Usage::

        store = SQLMetricStore()
        store.record_metric("performance_audit", {"lcp": 3100})
        records = store.query_records(since, ["performance_audit"])
    """

    def query_records(self, since: datetime, types: Sequence[str]) -> list[MetricRecord]:
        """Return records of the given types created at or after ``since``, oldest first."""
        try:
            with get_session() as session:
                rows = (
                    session.query(SystemLog)
                    .filter(SystemLog.created_at >= since)
                    .filter(SystemLog.type.in_(list(types)))
                    .order_by(SystemLog.created_at.asc(), SystemLog.id.asc())
                    .all()
                )
                return [
                    MetricRecord(
                        id=row.id,
                        type=row.type,
                        context=dict(row.context or {}),
                        created_at=row.created_at,
                    )
                    for row in rows
                ]
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to query metric records: {exc}") from exc

    def record_metric(
        self,
        metric_type: str,
        context: Mapping[str, Any],
        message: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Insert a metric-log record and return its id."""
        try:
            with get_session() as session:
                row = SystemLog(
                    type=metric_type,
                    message=message,
                    context=dict(context),
                    created_at=created_at or _utcnow(),
                )
                session.add(row)
                session.flush()
                return row.id
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to record metric {metric_type!r}: {exc}") from exc

    def insert_alert(self, record: AlertRecord) -> AlertRecord:
        """Persist an alert and return it with id and created_at filled in."""
        try:
            with get_session() as session:
                row = PerformanceAlert(
                    alert_type=record.type,
                    severity=record.severity,
                    metric=record.metric,
                    current_value=record.current_value,
                    threshold=record.threshold,
                    message=record.message,
                    context=dict(record.context),
                    acknowledged=record.acknowledged,
                )
                session.add(row)
                session.flush()
                return AlertRecord.from_model(row)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to insert alert for {record.metric!r}: {exc}") from exc

    def list_alerts(self, acknowledged: bool = False, limit: int = 10) -> list[AlertRecord]:
        """Return alerts with the given acknowledged flag, newest first."""
        try:
            with get_session() as session:
                rows = (
                    session.query(PerformanceAlert)
                    .filter(PerformanceAlert.acknowledged == acknowledged)
                    .order_by(desc(PerformanceAlert.created_at), desc(PerformanceAlert.id))
                    .limit(limit)
                    .all()
                )
                return [AlertRecord.from_model(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to list alerts: {exc}") from exc

    def acknowledge_alert(self, alert_id: int) -> bool:
        """Mark an alert acknowledged.  Returns False if it does not exist."""
        try:
            with get_session() as session:
                row = session.get(PerformanceAlert, alert_id)
                if row is None:
                    return False
                row.acknowledged = True
                row.acknowledged_at = _utcnow()
                return True
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to acknowledge alert {alert_id}: {exc}") from exc


# ---------------------------------------------------------------------------
# SQLPageStore
# ---------------------------------------------------------------------------

_PAGE_COLUMNS = {
    "page_type": ("page_type", "pageType"),
    "page_slug": ("page_slug", "pageSlug"),
    "page_url": ("page_url", "pageUrl"),
    "title": ("title",),
    "description": ("description",),
    "keywords": ("keywords",),
    "og_image": ("og_image", "ogImage"),
    "canonical_url": ("canonical_url", "canonicalUrl"),
    "schema_data": ("schema_data", "schemaData", "structured_data", "structuredData"),
}


class SQLPageStore:
    """PageStore backed by the ``seo_metadata`` table."""

    def list_pages(self) -> list[PageMetadata]:
        """Return every page, most recently updated first."""
        try:
            with get_session() as session:
                rows = (
                    session.query(SEOMetadata)
                    .order_by(desc(SEOMetadata.updated_at), desc(SEOMetadata.id))
                    .all()
                )
                return [PageMetadata.from_model(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to list pages: {exc}") from exc

    def upsert_page(self, data: Mapping[str, Any]) -> int:
        """Insert or update a page and return its id.

        An existing row is matched by ``id`` or, failing that, by
        ``(page_type, page_slug)``.
        """
        values: dict[str, Any] = {}
        for column, aliases in _PAGE_COLUMNS.items():
            for alias in aliases:
                if alias in data:
                    values[column] = data[alias]
                    break
        try:
            with get_session() as session:
                row = None
                if data.get("id") is not None:
                    row = session.get(SEOMetadata, data["id"])
                elif values.get("page_type") and values.get("page_slug"):
                    row = (
                        session.query(SEOMetadata)
                        .filter_by(page_type=values["page_type"], page_slug=values["page_slug"])
                        .first()
                    )
                if row is None:
                    row = SEOMetadata(**values)
                    session.add(row)
                else:
                    for column, value in values.items():
                        setattr(row, column, value)
                session.flush()
                return row.id
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to save page metadata: {exc}") from exc
