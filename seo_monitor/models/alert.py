"""Performance alert model."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Float, Integer, String, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from seo_monitor.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PerformanceAlert(Base):
    """Alert raised by the performance monitor when a threshold is breached."""

    __tablename__ = "performance_alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alert_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    severity: Mapped[str] = mapped_column(String(50), default="warning", nullable=False)
    metric: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    current_value: Mapped[float] = mapped_column(Float, nullable=False)
    threshold: Mapped[float] = mapped_column(Float, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    acknowledged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return (
            f"<PerformanceAlert id={self.id} type={self.alert_type!r} "
            f"metric={self.metric!r} severity={self.severity}>"
        )
