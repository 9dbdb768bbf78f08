"""SQLAlchemy ORM models -- import every model so Base.metadata is populated."""

from seo_monitor.models.seo import SEOMetadata
from seo_monitor.models.logs import (
    SystemLog,
    AppLog,
)
from seo_monitor.models.alert import PerformanceAlert

__all__ = [
    "SEOMetadata",
    "SystemLog",
    "AppLog",
    "PerformanceAlert",
]
