"""Performance alert monitor.

Periodically reads recent metric logs from the store, averages them,
compares the averages against configured thresholds and writes an
alert for every breach that is not in its cooldown window.

Three checks run on every tick, each isolated from the others:

* threshold check -- mean of every numeric context field over the last
  hour, except the metrics owned by the two checks below;
* cache check -- hit rate from ``cache_hit`` / ``cache_miss`` counts over
  the last six hours;
* query check -- mean of only the queries slower than the threshold over
  the last hour.
"""

import logging
import threading
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from seo_monitor.log_sink import LoggingSink, LogSink
from seo_monitor.monitoring.thresholds import (
    LOWER_IS_WORSE,
    AlertConfig,
    to_metric_name,
)
from seo_monitor.scheduler import MonitorScheduler
from seo_monitor.store import AlertRecord, MetricRecord, MetricStore, StoreError

logger = logging.getLogger(__name__)

METRIC_TYPES = ("performance_audit", "query_performance", "cache_hit", "cache_miss")
CACHE_TYPES = ("cache_hit", "cache_miss")

THRESHOLD_WINDOW = timedelta(hours=1)
CACHE_WINDOW = timedelta(hours=6)
QUERY_WINDOW = timedelta(hours=1)

# Below this fraction of the target hit rate a cache alert is critical.
CACHE_CRITICAL_FRACTION = 0.5
# Slow-query mean above this multiple of the threshold is critical.
QUERY_CRITICAL_MULTIPLIER = 2.0
# Metrics owned by the cache and query checks; the threshold check skips them.
DEDICATED_METRICS = frozenset({"cache_hit_rate", "query_time"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def calculate_averages(records: Sequence[MetricRecord]) -> dict[str, float]:
    """Mean of every numeric context field across the records that carry it."""
    sums: dict[str, float] = {}
    counts: dict[str, int] = {}
    for record in records:
        for key, value in (record.context or {}).items():
            if _is_number(value):
                sums[key] = sums.get(key, 0.0) + value
                counts[key] = counts.get(key, 0) + 1
    return {key: sums[key] / counts[key] for key in sums}


class AlertMonitor:
    """Timer-driven performance alert monitor with per-key cooldown.

    Usage::

        monitor = AlertMonitor(store=SQLMetricStore(), log_sink=DatabaseLogSink())
        monitor.start(interval_minutes=5)
        ...
        monitor.stop()

    ``run_check()`` runs a single tick synchronously and returns the
    alerts it persisted.
    """

    JOB_ID = "performance_alerts"
    SOURCE = "performance_alert"

    def __init__(
        self,
        store: MetricStore,
        config: Optional[AlertConfig] = None,
        log_sink: Optional[LogSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
        scheduler: Optional[MonitorScheduler] = None,
    ) -> None:
        self._store = store
        self._config = config or AlertConfig()
        self._sink = log_sink or LoggingSink()
        self._clock = clock or _utcnow
        self._scheduler = scheduler or MonitorScheduler()
        self._alert_history: dict[str, datetime] = {}
        self._tick_lock = threading.Lock()
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def config(self) -> AlertConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, interval_minutes: Optional[float] = None) -> None:
        """Run a check now and then every ``interval_minutes``.

        Calling ``start`` on a running monitor restarts it, so at most one
        schedule is ever active.
        """
        if self._running:
            self.stop()
        minutes = interval_minutes or self._config.interval_minutes
        self._scheduler.start()
        self._scheduler.add_interval_job(
            self.JOB_ID, self.run_check, minutes=minutes, run_immediately=True
        )
        self._running = True
        logger.info("Performance monitoring started (every %s min).", minutes)

    def stop(self) -> None:
        """Cancel future checks.  A check already in progress completes."""
        if not self._running:
            return
        self._scheduler.stop(wait=False)
        self._running = False
        logger.info("Performance monitoring stopped.")

    def update_config(self, **changes: Any) -> AlertConfig:
        """Replace configuration values (see ``AlertConfig.replace``)."""
        self._config = self._config.replace(**changes)
        logger.info("Alert configuration updated: %s", sorted(changes))
        return self._config

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def run_check(self) -> list[AlertRecord]:
        """Run one monitoring tick and return the alerts it persisted.

        Overlapping calls are skipped so cooldown bookkeeping stays
        consistent.  Never raises.
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Previous performance check still running; skipping tick.")
            return []
        try:
            return self._check_performance_metrics()
        except Exception as exc:
            self._report_error("tick", exc)
            return []
        finally:
            self._tick_lock.release()

    def _check_performance_metrics(self) -> list[AlertRecord]:
        if not self._config.enabled:
            logger.debug("Performance alerts disabled; skipping check.")
            return []

        emitted: list[AlertRecord] = []
        checks = (
            ("threshold", self._check_thresholds),
            ("cache", self._check_cache_performance),
            ("query", self._check_query_performance),
        )
        for name, check in checks:
            try:
                emitted.extend(check())
            except Exception as exc:
                self._report_error(name, exc)

        if emitted:
            logger.info("Performance check emitted %d alert(s).", len(emitted))
        return emitted

    def _check_thresholds(self) -> list[AlertRecord]:
        records = self._store.query_records(self._clock() - THRESHOLD_WINDOW, METRIC_TYPES)
        if not records:
            logger.info("No recent metrics found for monitoring.")
            return []

        emitted: list[AlertRecord] = []
        for metric, value in calculate_averages(records).items():
            try:
                alert = self._check_metric_threshold(metric, value)
            except Exception as exc:
                self._report_error(f"threshold:{metric}", exc)
                continue
            if alert is not None:
                emitted.append(alert)
        return emitted

    def _check_metric_threshold(self, metric: str, value: float) -> Optional[AlertRecord]:
        threshold = self._config.thresholds.get(metric)
        if not threshold or not value:
            return None

        name = to_metric_name(metric)
        if name in DEDICATED_METRICS:
            return None
        severity = self.calculate_severity(name, value, threshold)
        if severity == "info":
            return None
        if not self.can_alert(self.cooldown_key(name, severity)):
            return None

        state = "critical" if severity == "critical" else "elevated"
        alert = AlertRecord(
            type="threshold_exceeded",
            severity=severity,
            metric=name,
            current_value=round(value, 2),
            threshold=threshold,
            message=f"Metric {name} is {state}: {value:.2f} (threshold: {threshold})",
            context={
                "metric": name,
                "value": value,
                "threshold": threshold,
                "percentage": round(value / threshold * 100, 1),
            },
        )
        return self._send_alert(alert)

    def _check_cache_performance(self) -> list[AlertRecord]:
        records = self._store.query_records(self._clock() - CACHE_WINDOW, CACHE_TYPES)
        hits = sum(1 for r in records if r.type == "cache_hit")
        misses = sum(1 for r in records if r.type == "cache_miss")
        total = hits + misses
        if total == 0:
            return []

        hit_rate = hits / total * 100
        threshold = self._config.thresholds.cache_hit_rate
        severity = self.calculate_severity("cache_hit_rate", hit_rate, threshold)
        if severity == "info":
            return []
        if not self.can_alert(self.cooldown_key("cache_hit_rate", severity)):
            return []

        alert = AlertRecord(
            type="cache_miss_spike",
            severity=severity,
            metric="cache_hit_rate",
            current_value=round(hit_rate, 2),
            threshold=threshold,
            message=f"Cache hit rate is low: {hit_rate:.1f}% (target: {threshold}%)",
            context={"hit_rate": hit_rate, "hits": hits, "misses": misses, "total": total},
        )
        saved = self._send_alert(alert)
        return [saved] if saved else []

    def _check_query_performance(self) -> list[AlertRecord]:
        records = self._store.query_records(self._clock() - QUERY_WINDOW, ("query_performance",))
        threshold = self._config.thresholds.query_time

        slow: list[float] = []
        for record in records:
            context = record.context or {}
            query_time = context.get("queryTime", context.get("query_time", 0))
            if _is_number(query_time) and query_time > threshold:
                slow.append(query_time)
        if not slow:
            return []

        # Severity comes from the slow subset only, not from all queries.
        avg_slow = sum(slow) / len(slow)
        severity = "critical" if avg_slow > threshold * QUERY_CRITICAL_MULTIPLIER else "warning"
        if not self.can_alert(self.cooldown_key("query_time", severity)):
            return []

        alert = AlertRecord(
            type="query_slowdown",
            severity=severity,
            metric="query_time",
            current_value=round(avg_slow, 2),
            threshold=threshold,
            message=f"{len(slow)} slow queries detected (average: {avg_slow:.0f}ms)",
            context={
                "slow_query_count": len(slow),
                "avg_slow_query_time": avg_slow,
                "threshold": threshold,
            },
        )
        saved = self._send_alert(alert)
        return [saved] if saved else []

    # ------------------------------------------------------------------
    # Severity and cooldown
    # ------------------------------------------------------------------

    def calculate_severity(self, metric: str, value: float, threshold: float) -> str:
        """Return ``info``, ``warning`` or ``critical`` for a metric value."""
        if to_metric_name(metric) in LOWER_IS_WORSE:
            if value >= threshold:
                return "info"
            return "critical" if value < threshold * CACHE_CRITICAL_FRACTION else "warning"

        levels = self._config.severity_levels
        ratio = value / threshold
        if ratio >= levels.critical:
            return "critical"
        if ratio >= levels.warning:
            return "warning"
        return "info"

    @staticmethod
    def cooldown_key(metric: str, severity: str) -> str:
        return f"{metric}_{severity}"

    def can_alert(self, key: str) -> bool:
        """Claim the cooldown slot for ``key``; False while it is still cooling down."""
        now = self._clock()
        last = self._alert_history.get(key)
        cooldown = timedelta(minutes=self._config.cooldown_minutes)
        if last is None or now - last > cooldown:
            self._alert_history[key] = now
            return True
        logger.debug("Alert %s suppressed by cooldown.", key)
        return False

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _send_alert(self, alert: AlertRecord) -> Optional[AlertRecord]:
        try:
            saved = self._store.insert_alert(alert)
        except Exception as exc:
            logger.error("Failed to save %s alert for %s: %s", alert.severity, alert.metric, exc)
            self._emit("error", self.SOURCE, "save_failed", {
                "metric": alert.metric,
                "severity": alert.severity,
                "error": str(exc),
            })
            return None

        level = logging.CRITICAL if alert.severity == "critical" else logging.WARNING
        logger.log(level, "[Performance Alert] %s", alert.message)
        self._emit(alert.severity, self.SOURCE, "triggered", {
            "type": alert.type,
            "metric": alert.metric,
            "value": alert.current_value,
            "threshold": alert.threshold,
            "severity": alert.severity,
        })
        return saved

    def _report_error(self, scope: str, exc: Exception) -> None:
        logger.error("Performance check %s failed: %s", scope, exc)
        self._emit("error", self.SOURCE, "error", {"check": scope, "error": str(exc)})

    def _emit(self, level: str, source: str, action: str, details: dict[str, Any]) -> None:
        try:
            self._sink.emit(level, source, action, details)
        except Exception as exc:
            logger.warning("Log sink rejected %s/%s entry: %s", source, action, exc)

    # ------------------------------------------------------------------
    # Alert queries
    # ------------------------------------------------------------------

    def get_unacknowledged_alerts(self, limit: int = 10) -> list[AlertRecord]:
        """Newest unacknowledged alerts; empty list if the store is unreachable."""
        try:
            return self._store.list_alerts(acknowledged=False, limit=limit)
        except StoreError as exc:
            logger.error("Failed to fetch alerts: %s", exc)
            return []

    def acknowledge_alert(self, alert_id: int) -> bool:
        """Acknowledge an alert.  False if it is unknown or the store failed."""
        try:
            return self._store.acknowledge_alert(alert_id)
        except StoreError as exc:
            logger.error("Failed to acknowledge alert %s: %s", alert_id, exc)
            return False
