"""Application composition root for seo-monitor."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from seo_monitor.log_sink import DatabaseLogSink
from seo_monitor.monitoring import AlertConfig, AlertMonitor
from seo_monitor.scheduler import MonitorScheduler
from seo_monitor.scoring import ScoreEngine, ScoreResult, summarize
from seo_monitor.scoring.engine import PageMetadata
from seo_monitor.scoring.overview import SEOStats
from seo_monitor.store import SQLMetricStore, SQLPageStore

logger = logging.getLogger(__name__)


class SEOMonitorApp:
    """Central application class that wires stores, scoring and monitoring.

    Nothing starts on import; the host process decides when monitoring
    runs by calling ``start_monitoring()`` (or by setting
    ``monitoring.auto_start`` in the config).

    Usage::

        app = SEOMonitorApp()
        app.initialize()
        pages, results = app.score_pages()
        app.start_monitoring()
        status = app.get_status()
    """

    def __init__(
        self,
        config_path: str = "config/settings.yaml",
        env_path: str = ".env",
        database_url: Optional[str] = None,
    ):
        self._config_path = config_path
        self._env_path = env_path
        self._database_url = database_url
        self.config: dict[str, Any] = {}
        self._initialized = False
        self.metric_store: Optional[SQLMetricStore] = None
        self.page_store: Optional[SQLPageStore] = None
        self.score_engine: Optional[ScoreEngine] = None
        self.monitor: Optional[AlertMonitor] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load configuration and environment, initialise DB, build services."""
        if self._initialized:
            return

        env_file = Path(self._env_path)
        if env_file.exists():
            load_dotenv(env_file)
            logger.info("Loaded environment from %s", self._env_path)

        self.config = self._load_config()

        from seo_monitor.database import init_db
        db_cfg = self.config.get("database", {})
        db_url = self._database_url or os.getenv("DATABASE_URL") or db_cfg.get("url")
        init_db(database_url=db_url, echo=db_cfg.get("echo", False))

        self.metric_store = SQLMetricStore()
        self.page_store = SQLPageStore()
        self.score_engine = self._build_score_engine()

        mon_cfg = self.config.get("monitoring", {})
        self.monitor = AlertMonitor(
            store=self.metric_store,
            config=AlertConfig.from_dict(mon_cfg),
            log_sink=DatabaseLogSink(),
            scheduler=MonitorScheduler(timezone=mon_cfg.get("timezone", "UTC")),
        )

        self._initialized = True
        logger.info("SEOMonitorApp initialised.")

        if mon_cfg.get("auto_start", False):
            self.start_monitoring()

    def shutdown(self) -> None:
        """Stop background monitoring if it is running."""
        if self.monitor is not None:
            self.monitor.stop()

    def _load_config(self) -> dict[str, Any]:
        """Load the YAML configuration file."""
        config_file = Path(self._config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s -- using defaults.", self._config_path)
            return {}
        with open(config_file, "r", encoding="utf-8") as fh:
            config = yaml.safe_load(fh) or {}
        logger.info("Configuration loaded from %s", self._config_path)
        return config

    def _build_score_engine(self) -> ScoreEngine:
        scoring = self.config.get("scoring", {})
        ranges: dict[str, tuple[int, int]] = {}
        for key in ("title_range", "description_range", "keyword_range"):
            if scoring.get(key):
                low, high = scoring[key]
                ranges[key] = (int(low), int(high))
        return ScoreEngine(**ranges)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score_pages(self) -> tuple[list[PageMetadata], list[ScoreResult]]:
        """Load every page and score it against the full set."""
        self._ensure_initialized()
        pages = self.page_store.list_pages()
        return pages, self.score_engine.score_all(pages)

    def seo_overview(self) -> SEOStats:
        """Aggregate SEO stats for the whole site."""
        pages, results = self.score_pages()
        return summarize(pages, results)

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def start_monitoring(self, interval_minutes: Optional[float] = None) -> None:
        self._ensure_initialized()
        self.monitor.start(interval_minutes)

    def stop_monitoring(self) -> None:
        self._ensure_initialized()
        self.monitor.stop()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> dict[str, dict[str, Any]]:
        """Return health status of all major components."""
        self._ensure_initialized()
        status: dict[str, dict[str, Any]] = {}

        try:
            from seo_monitor.database import get_session
            from sqlalchemy import text
            with get_session() as session:
                session.execute(text("SELECT 1"))
            status["database"] = {"status": "ok", "details": "connected"}
        except Exception as exc:
            status["database"] = {"status": "error", "details": str(exc)}

        try:
            pages = self.page_store.list_pages()
            status["pages"] = {"status": "ok", "details": f"{len(pages)} pages"}
        except Exception as exc:
            status["pages"] = {"status": "error", "details": str(exc)}

        alerts = self.monitor.get_unacknowledged_alerts(limit=100)
        status["monitoring"] = {
            "status": "ok" if self.monitor.config.enabled else "warning",
            "details": (
                f"{'running' if self.monitor.is_running else 'stopped'}, "
                f"{len(alerts)} unacknowledged alerts"
            ),
        }

        status["config"] = {
            "status": "ok" if self.config else "warning",
            "details": f"{len(self.config)} sections loaded" if self.config else "no config",
        }
        return status

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Call initialize() before using the application.")
