"""
Startup dependency checks for the cmdhandler service.

Validates critical dependencies before the application starts serving requests.
Fails fast with clear, actionable error messages when requirements aren't met.
"""

import logging
import shutil
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from cmdhandler.audit import ExecutionLog
from cmdhandler.config import settings
from cmdhandler.exceptions import AuditFailureError
from cmdhandler.loaders import LoaderRegistry

logger = logging.getLogger(__name__)


@dataclass
class StartupMetrics:
    """Metrics collected during startup checks."""

    started_at: datetime
    completed_at: Optional[datetime] = None
    total_duration_ms: Optional[float] = None
    plugin_root_check_ms: Optional[float] = None
    execution_log_check_ms: Optional[float] = None
    loaders_check_ms: Optional[float] = None
    checks_passed: bool = False
    warnings: Optional[list[str]] = None


# Global startup metrics (populated during startup)
startup_metrics = StartupMetrics(started_at=datetime.now(timezone.utc))


class StartupCheckError(Exception):
    """Raised when a critical startup check fails."""

    def __init__(self, message: str, hint: Optional[str] = None):
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        error_msg = f"\n{'='*70}\n❌ STARTUP CHECK FAILED\n{'='*70}\n\n{self.message}\n"
        if self.hint:
            error_msg += f"\n💡 Hint: {self.hint}\n"
        error_msg += f"{'='*70}\n"
        return error_msg


def check_plugin_root() -> Optional[str]:
    """
    Check that the plugin root directory exists.

    A missing root is not fatal: requests still get audited and the missing
    plugin is reported as a failed run.

    Returns:
        Warning message, or None if the directory exists
    """
    root = settings.plugin_root_path
    if not root.is_dir():
        return f"Plugin root does not exist: {root}"
    return None


def check_execution_log() -> None:
    """
    Verify the execution log can be opened for append.

    Raises:
        StartupCheckError: If the log is not writable
    """
    try:
        ExecutionLog(settings.execution_log).check_writable()
    except AuditFailureError as e:
        raise StartupCheckError(
            f"Cannot write execution log: {settings.execution_log}\n{e}",
            "Every plugin request would be rejected.\n"
            "  - Fix permissions on the log file or its directory\n"
            "  - Or point EXECUTION_LOG at a writable path",
        ) from e


def check_loader_executables(registry: Optional[LoaderRegistry] = None) -> Optional[str]:
    """
    Check which loader executables are on PATH.

    Returns:
        Warning listing missing executables, or None if all were found
    """
    if registry is None:
        registry = LoaderRegistry.default()
    missing = [
        f"{descriptor.id} ({descriptor.executable})"
        for descriptor in registry
        if shutil.which(descriptor.executable) is None
    ]
    if missing:
        return "Loader executables not found on PATH: " + ", ".join(missing)
    return None


def run_all_startup_checks() -> None:
    """
    Execute all startup dependency checks.

    Runs checks in order:
    1. Plugin root directory (warning only)
    2. Execution log writable
    3. Loader executables on PATH (warning only)

    Tracks timing metrics for each check.

    Raises:
        SystemExit: If a critical check fails
    """
    global startup_metrics
    startup_start = time.time()
    warnings: list[str] = []

    checks = [
        ("Plugin Root", check_plugin_root, "plugin_root_check_ms"),
        ("Execution Log", check_execution_log, "execution_log_check_ms"),
        ("Loader Executables", check_loader_executables, "loaders_check_ms"),
    ]

    logger.info("Running startup checks...")

    for check_name, check_func, metric_name in checks:
        check_start = time.time()
        try:
            warning = check_func()
        except StartupCheckError as e:
            setattr(startup_metrics, metric_name, (time.time() - check_start) * 1000)
            logger.error(f"Startup check failed: {check_name}{e}")
            sys.exit(1)

        check_duration = (time.time() - check_start) * 1000
        setattr(startup_metrics, metric_name, check_duration)
        if warning:
            warnings.append(warning)
            logger.warning(f"⚠️  {check_name}: {warning}")
        else:
            logger.info(f"✓ {check_name} ({check_duration:.1f}ms)")

    startup_metrics.completed_at = datetime.now(timezone.utc)
    startup_metrics.total_duration_ms = (time.time() - startup_start) * 1000
    startup_metrics.checks_passed = True
    startup_metrics.warnings = warnings

    logger.info(
        f"✓ All startup checks passed ({startup_metrics.total_duration_ms:.1f}ms)"
    )


def check_readiness() -> tuple[bool, dict]:
    """
    Quick readiness check for load balancer probes.

    Returns:
        tuple: (is_ready: bool, details: dict) where details contains:
            - ready: bool
            - execution_log: str (writable/unwritable)
            - startup_completed: bool
            - uptime_seconds: float
            - startup_metrics: dict with timing information
    """
    log_ready = True
    try:
        ExecutionLog(settings.execution_log).check_writable()
    except AuditFailureError:
        log_ready = False

    uptime = (datetime.now(timezone.utc) - startup_metrics.started_at).total_seconds()

    ready = startup_metrics.checks_passed and log_ready
    details = {
        "ready": ready,
        "execution_log": "writable" if log_ready else "unwritable",
        "startup_completed": startup_metrics.checks_passed,
        "uptime_seconds": uptime,
        "startup_metrics": {
            "total_duration_ms": startup_metrics.total_duration_ms,
            "plugin_root_check_ms": startup_metrics.plugin_root_check_ms,
            "execution_log_check_ms": startup_metrics.execution_log_check_ms,
            "loaders_check_ms": startup_metrics.loaders_check_ms,
            "warnings": startup_metrics.warnings or [],
            "started_at": startup_metrics.started_at.isoformat(),
            "completed_at": (
                startup_metrics.completed_at.isoformat()
                if startup_metrics.completed_at
                else None
            ),
        },
    }

    return ready, details
