"""Alert thresholds and monitor configuration."""

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Any, Optional

# Metrics where a lower value is worse; every other metric is higher-is-worse.
LOWER_IS_WORSE = frozenset({"cache_hit_rate"})

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def to_metric_name(key: str) -> str:
    """Normalise a log-context key (``loadTime``) to a metric name (``load_time``)."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


@dataclass(frozen=True)
class AlertThresholds:
    """Per-metric alert thresholds."""
    lcp: float = 2500           # Largest Contentful Paint (ms)
    fid: float = 100            # First Input Delay (ms)
    cls: float = 0.1            # Cumulative Layout Shift
    fcp: float = 1800           # First Contentful Paint (ms)
    ttfb: float = 800           # Time to First Byte (ms)
    load_time: float = 3000     # Total load time (ms)
    query_time: float = 500     # Database query time (ms)
    cache_hit_rate: float = 80  # Cache hit rate (%)
    memory_usage: float = 100   # Memory usage (MB)

    def get(self, metric: str) -> Optional[float]:
        """Return the threshold for ``metric`` (camelCase or snake_case), or None."""
        name = to_metric_name(metric)
        if name not in self.metric_names():
            return None
        return getattr(self, name)

    @classmethod
    def metric_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(cls))

    def to_dict(self) -> dict[str, float]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class SeverityLevels:
    """Threshold multipliers at which a breach becomes warning / critical."""
    warning: float = 1.0
    critical: float = 1.5


@dataclass(frozen=True)
class AlertConfig:
    """Complete alert monitor configuration.  Immutable; use ``replace``."""
    thresholds: AlertThresholds = field(default_factory=AlertThresholds)
    enabled: bool = True
    cooldown_minutes: float = 15
    severity_levels: SeverityLevels = field(default_factory=SeverityLevels)
    interval_minutes: float = 5

    def replace(self, **changes: Any) -> "AlertConfig":
        """Return a copy with ``changes`` applied.

        ``thresholds`` and ``severity_levels`` may be given as dicts of
        partial overrides.
        """
        if isinstance(changes.get("thresholds"), dict):
            overrides = {to_metric_name(k): v for k, v in changes["thresholds"].items()}
            changes["thresholds"] = dataclasses.replace(
                self.thresholds, **_known(AlertThresholds, overrides)
            )
        if isinstance(changes.get("severity_levels"), dict):
            changes["severity_levels"] = dataclasses.replace(
                self.severity_levels, **_known(SeverityLevels, changes["severity_levels"])
            )
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "AlertConfig":
        """Build from the ``monitoring`` section of settings.yaml."""
        data = data or {}
        thresholds = {
            to_metric_name(k): v for k, v in (data.get("thresholds") or {}).items()
        }
        return cls(
            thresholds=AlertThresholds(**_known(AlertThresholds, thresholds)),
            enabled=bool(data.get("enabled", True)),
            cooldown_minutes=data.get("cooldown_minutes", 15),
            severity_levels=SeverityLevels(
                **_known(SeverityLevels, data.get("severity_levels") or {})
            ),
            interval_minutes=data.get("interval_minutes", 5),
        )


def _known(klass: type, values: dict[str, Any]) -> dict[str, Any]:
    """Reject keys that are not fields of ``klass``."""
    names = {f.name for f in dataclasses.fields(klass)}
    unknown = set(values) - names
    if unknown:
        raise ValueError(f"Unknown {klass.__name__} keys: {sorted(unknown)}")
    return dict(values)
