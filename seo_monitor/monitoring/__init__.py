"""Performance alert monitoring."""

from seo_monitor.monitoring.alert_monitor import AlertMonitor, calculate_averages
from seo_monitor.monitoring.thresholds import (
    AlertConfig,
    AlertThresholds,
    SeverityLevels,
)

__all__ = [
    "AlertMonitor",
    "calculate_averages",
    "AlertConfig",
    "AlertThresholds",
    "SeverityLevels",
]
