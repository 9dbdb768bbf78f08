"""Integration tests for seo-monitor.

Covers database setup, model and module imports, the application
composition root, an end-to-end monitoring tick against SQLite,
configuration loading, CLI smoke and flow tests, and syntax
validation of every Python file in the project.
"""

import ast
import importlib
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml

# ---------------------------------------------------------------------------
# Project root (conftest.py already puts it on sys.path)
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _write_config(tmp_path, **monitoring):
    """Write a minimal settings.yaml pointing at a file database in tmp_path."""
    config = {
        "database": {"url": "sqlite:///" + str(tmp_path / "seo_monitor.db"), "echo": False},
        "scoring": {"title_range": [30, 60]},
        "monitoring": {"enabled": True, "auto_start": False, **monitoring},
    }
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


# ===========================================================================
# 1. Database setup
# ===========================================================================
class TestDatabaseSetup:
    """Verify that the database can be initialised with in-memory SQLite."""

    def test_init_db_creates_tables(self, test_db):
        """init_db with in-memory SQLite should create all expected tables."""
        from seo_monitor.database import get_engine
        from sqlalchemy import inspect

        table_names = inspect(get_engine()).get_table_names()
        for table in ("seo_metadata", "system_logs", "performance_alerts", "app_logs"):
            assert table in table_names, (
                "Missing table: " + table + ". Found: " + str(table_names)
            )

    def test_get_session_context_manager(self, test_db):
        from seo_monitor.database import get_session
        from sqlalchemy import text as sa_text

        with get_session() as session:
            row = session.execute(sa_text("SELECT 1")).fetchone()
            assert row[0] == 1

    def test_reset_db(self, test_db):
        """reset_db should drop and recreate all tables without error."""
        from seo_monitor.database import get_engine, reset_db
        from seo_monitor.store import SQLMetricStore
        from sqlalchemy import inspect

        SQLMetricStore().record_metric("cache_hit", {})
        reset_db()
        assert len(inspect(get_engine()).get_table_names()) == 4
        assert SQLMetricStore().list_alerts() == []

    def test_file_database_directory_created(self, tmp_path):
        from seo_monitor.database import init_db

        db_path = tmp_path / "nested" / "dir" / "seo.db"
        init_db(database_url="sqlite:///" + str(db_path))
        assert db_path.parent.exists()


# ===========================================================================
# 2. Model imports
# ===========================================================================
class TestModelImports:
    """All ORM models should be importable from seo_monitor.models."""

    @pytest.mark.parametrize("model_name", [
        "SEOMetadata",
        "SystemLog",
        "AppLog",
        "PerformanceAlert",
    ])
    def test_model_importable(self, model_name):
        import seo_monitor.models as models_pkg
        assert hasattr(models_pkg, model_name), (
            "Model not found in seo_monitor.models: " + model_name
        )


# ===========================================================================
# 3. Module imports
# ===========================================================================
class TestModuleImports:
    """All packages should expose their public classes."""

    @pytest.mark.parametrize("module_path,names", [
        ("seo_monitor.scoring", ["ScoreEngine", "ScoreResult", "PageMetadata", "summarize"]),
        ("seo_monitor.monitoring", ["AlertMonitor", "AlertConfig", "AlertThresholds"]),
        ("seo_monitor.store", ["SQLMetricStore", "SQLPageStore", "StoreError"]),
        ("seo_monitor.log_sink", ["LoggingSink", "DatabaseLogSink"]),
        ("seo_monitor.scheduler", ["MonitorScheduler"]),
        ("seo_monitor.app", ["SEOMonitorApp"]),
    ])
    def test_module_importable(self, module_path, names):
        mod = importlib.import_module(module_path)
        for name in names:
            assert hasattr(mod, name), (
                "Name " + name + " not found in " + module_path
            )

    def test_version(self):
        import seo_monitor
        assert seo_monitor.__version__


# ===========================================================================
# 4. SEOMonitorApp
# ===========================================================================
class TestSEOMonitorApp:
    """The composition root wires config, database and services."""

    def _app(self, tmp_path, **monitoring):
        from seo_monitor.app import SEOMonitorApp
        return SEOMonitorApp(
            config_path=str(_write_config(tmp_path, **monitoring)),
            env_path=str(tmp_path / ".env"),
            database_url="sqlite:///:memory:",
        )

    def test_requires_initialize(self, tmp_path):
        app = self._app(tmp_path)
        with pytest.raises(RuntimeError):
            app.score_pages()

    def test_initialize_builds_services(self, tmp_path):
        app = self._app(tmp_path, cooldown_minutes=30, thresholds={"loadTime": 4000})
        app.initialize()
        assert app.monitor.config.cooldown_minutes == 30
        assert app.monitor.config.thresholds.load_time == 4000
        assert app.monitor.is_running is False

    def test_missing_config_uses_defaults(self, tmp_path):
        from seo_monitor.app import SEOMonitorApp
        app = SEOMonitorApp(
            config_path=str(tmp_path / "missing.yaml"),
            env_path=str(tmp_path / ".env"),
            database_url="sqlite:///:memory:",
        )
        app.initialize()
        assert app.config == {}
        assert app.monitor.config.interval_minutes == 5

    def test_auto_start(self, tmp_path):
        from seo_monitor.app import SEOMonitorApp
        app = self._app(tmp_path, auto_start=True)
        with patch.object(SEOMonitorApp, "start_monitoring") as start:
            app.initialize()
        start.assert_called_once_with()

    def test_score_pages_and_overview(self, tmp_path):
        app = self._app(tmp_path)
        app.initialize()
        app.page_store.upsert_page({
            "page_type": "article",
            "page_slug": "guide",
            "title": "A complete guide to page metadata quality",
            "description": "d" * 130,
            "keywords": ["seo", "metadata", "guide"],
            "og_image": "https://example.com/guide.png",
            "canonical_url": "https://example.com/guide",
            "schema_data": {"@type": "Article"},
        })
        pages, results = app.score_pages()
        assert [r.score for r in results] == [100]
        overview = app.seo_overview()
        assert overview.total_pages == 1
        assert overview.optimized_pages == 1

    def test_start_and_shutdown(self, tmp_path):
        from seo_monitor.scheduler import MonitorScheduler

        app = self._app(tmp_path)
        app.initialize()
        app.monitor._scheduler = MagicMock(spec=MonitorScheduler)
        app.start_monitoring(2)
        assert app.monitor.is_running is True
        assert app.monitor._scheduler.add_interval_job.call_args.kwargs["minutes"] == 2
        app.shutdown()
        assert app.monitor.is_running is False

    def test_status(self, tmp_path):
        app = self._app(tmp_path)
        app.initialize()
        status = app.get_status()
        assert set(status) == {"database", "pages", "monitoring", "config"}
        assert status["database"]["status"] == "ok"
        assert "stopped" in status["monitoring"]["details"]

    def test_end_to_end_tick(self, tmp_path):
        """A recorded metric should produce a stored alert and an app log row."""
        from seo_monitor.database import get_session
        from seo_monitor.models import AppLog, PerformanceAlert

        app = self._app(tmp_path)
        app.initialize()
        app.metric_store.record_metric("performance_audit", {"lcp": 4000})

        alerts = app.monitor.run_check()
        assert [(a.metric, a.severity) for a in alerts] == [("lcp", "critical")]

        with get_session() as session:
            assert session.query(PerformanceAlert).count() == 1
            logs = session.query(AppLog).filter_by(action="triggered").all()
            assert len(logs) == 1
            assert logs[0].source == "performance_alert"
            assert logs[0].level == "critical"

        # Second tick inside the cooldown window adds nothing.
        assert app.monitor.run_check() == []


# ===========================================================================
# 5. Settings YAML
# ===========================================================================
class TestSettingsYaml:
    """Configuration file should be loadable."""

    def _load(self):
        settings_path = PROJECT_ROOT / "config" / "settings.yaml"
        with open(settings_path) as fh:
            return yaml.safe_load(fh)

    def test_settings_file_exists(self):
        assert (PROJECT_ROOT / "config" / "settings.yaml").exists()

    def test_settings_has_required_sections(self):
        config = self._load()
        for section in ("database", "scoring", "monitoring"):
            assert section in config, "Missing config section: " + section

    def test_monitoring_section_builds_config(self):
        from seo_monitor.monitoring import AlertConfig, AlertThresholds
        config = AlertConfig.from_dict(self._load()["monitoring"])
        assert config.thresholds == AlertThresholds()
        assert config.cooldown_minutes == 15


# ===========================================================================
# 6. CLI commands (smoke test via CliRunner)
# ===========================================================================
class TestCLICommands:
    """CLI help should work for all registered commands."""

    def _get_runner_and_app(self):
        from typer.testing import CliRunner
        from seo_monitor.cli import app
        return CliRunner(), app

    def test_main_help(self):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, ["--help"])
        assert result.exit_code == 0
        assert "SEO metadata scoring" in result.output

    @pytest.mark.parametrize("command", [
        "init",
        "score",
        "stats",
        "check",
        "monitor",
        "alerts",
        "ack",
        "log-metric",
        "status",
    ])
    def test_command_help(self, command):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, [command, "--help"])
        assert result.exit_code == 0, (
            "Command '" + command + "' --help failed with exit code "
            + str(result.exit_code) + ": " + result.output
        )


# ===========================================================================
# 7. CLI flow against a file database
# ===========================================================================
class TestCLIFlow:
    """Record a metric, raise an alert and acknowledge it via the CLI."""

    @pytest.fixture()
    def cli(self, tmp_path, monkeypatch):
        from typer.testing import CliRunner
        from seo_monitor.cli import app

        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.chdir(tmp_path)
        config = str(_write_config(tmp_path))
        runner = CliRunner()

        def invoke(*args):
            return runner.invoke(app, [*args, "--config", config])
        return invoke

    def test_alert_lifecycle(self, cli):
        result = cli("init")
        assert result.exit_code == 0, result.output
        assert "Database initialised" in result.output

        result = cli("log-metric", "performance_audit", "lcp=4000", "url=/home")
        assert result.exit_code == 0, result.output
        assert "Recorded performance_audit #1." in result.output

        result = cli("check")
        assert result.exit_code == 0, result.output
        assert "New Alerts" in result.output

        result = cli("alerts")
        assert result.exit_code == 0, result.output
        assert "Unacknowledged Alerts" in result.output

        result = cli("ack", "1")
        assert result.exit_code == 0, result.output
        assert "Alert 1 acknowledged." in result.output

        result = cli("alerts")
        assert "No unacknowledged alerts." in result.output

    def test_ack_unknown_alert(self, cli):
        result = cli("ack", "999")
        assert result.exit_code == 1

    def test_check_without_metrics(self, cli):
        result = cli("check")
        assert result.exit_code == 0, result.output
        assert "No new alerts." in result.output

    def test_log_metric_rejects_bad_pair(self, cli):
        result = cli("log-metric", "performance_audit", "lcp")
        assert result.exit_code == 1

    def test_score_empty_database(self, cli):
        result = cli("score")
        assert result.exit_code == 0, result.output
        assert "0 of 0 pages shown." in result.output

    def test_score_bad_attention_filter(self, cli):
        result = cli("score", "--attention", "broken")
        assert result.exit_code == 1

    def test_stats_store_failure(self, cli, monkeypatch):
        from seo_monitor.store import StoreError

        def fail(self):
            raise StoreError("pages unavailable")

        monkeypatch.setattr("seo_monitor.app.SEOMonitorApp.seo_overview", fail)
        result = cli("stats")
        assert result.exit_code == 1
        assert "pages unavailable" in result.output

    def test_log_metric_store_failure(self, cli, monkeypatch):
        from seo_monitor.store import StoreError

        def fail(self, metric_type, context, message=None, created_at=None):
            raise StoreError("write failed")

        monkeypatch.setattr("seo_monitor.store.SQLMetricStore.record_metric", fail)
        result = cli("log-metric", "performance_audit", "lcp=4000")
        assert result.exit_code == 1
        assert "write failed" in result.output

    def test_stats_and_status(self, cli):
        assert cli("stats").exit_code == 0
        result = cli("status")
        assert result.exit_code == 0, result.output
        assert "Component Status" in result.output


# ===========================================================================
# 8. All Python files syntax validation
# ===========================================================================
class TestAllPythonFilesSyntax:
    """Every .py file in seo_monitor/ and tests/ should pass ast.parse."""

    def _collect_python_files(self):
        files = []
        for directory in ("seo_monitor", "tests"):
            base = PROJECT_ROOT / directory
            if base.exists():
                for py_file in base.rglob("*.py"):
                    if "__pycache__" in py_file.parts:
                        continue
                    files.append(py_file)
        return sorted(files)

    def test_all_python_files_parse(self):
        py_files = self._collect_python_files()
        assert len(py_files) > 0, "No Python files found"
        errors = []
        for py_file in py_files:
            try:
                ast.parse(py_file.read_text(encoding="utf-8"))
            except SyntaxError as exc:
                rel = py_file.relative_to(PROJECT_ROOT)
                errors.append(str(rel) + ": " + str(exc))
        if errors:
            pytest.fail("Python syntax errors:\n" + "\n".join(errors))


# ===========================================================================
# 9. Requirements / key packages importable
# ===========================================================================
class TestRequirementsInstallable:
    """Key packages from requirements.txt should be importable."""

    @pytest.mark.parametrize("package", [
        "typer",
        "rich",
        "sqlalchemy",
        "apscheduler",
        "yaml",    # PyYAML
        "dotenv",  # python-dotenv
    ])
    def test_package_importable(self, package):
        try:
            importlib.import_module(package)
        except ImportError:
            pytest.skip("Package not installed: " + package)
