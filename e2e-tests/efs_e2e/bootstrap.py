"""Suite bootstrap: report sinks, run identity and the execution engine.

The harness does not own test semantics. It hands a resolved configuration,
a list of test paths and the reporting sinks to an ``ExecutionEngine`` and
returns whatever exit code the engine reports. ``PytestEngine`` is the engine
used in practice.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

import pytest

from .config import ResolvedConfiguration
from .errors import SetupError

logger = logging.getLogger(__name__)

SUITE_NAME = "EFS CSI Suite"

RESOLVED_CONFIG_KEY = pytest.StashKey[ResolvedConfiguration]()

REPORT_DIR_MODE = 0o755


@dataclass(frozen=True)
class RunIdentity:
    """Identifies one run and the parallel worker executing it."""

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    worker_index: int = 1


def report_file_name(prefix: str, identity: RunIdentity) -> str:
    """JUnit file name for a worker: ``junit_<prefix><NN>.xml``.

    Distinct worker indices always yield distinct names, so workers sharing a
    report directory never overwrite each other.
    """
    return f"junit_{prefix}{identity.worker_index:02d}.xml"


def ensure_report_dir(path: str | Path) -> Path:
    """Create the report directory if needed.

    Safe to call from several workers at once.

    Raises:
        SetupError: If the directory cannot be created
    """
    report_dir = Path(path)
    try:
        report_dir.mkdir(mode=REPORT_DIR_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise SetupError(f"Failed creating report directory {report_dir}: {e}") from e
    return report_dir


@dataclass(frozen=True)
class JUnitReporter:
    """Reporting sink writing a JUnit XML file."""

    path: Path

    def pytest_args(self) -> list[str]:
        return [f"--junitxml={self.path}", "-o", f"junit_suite_name={SUITE_NAME}"]


class ExecutionEngine(Protocol):
    """Runs test specifications against a live cluster."""

    def run(
        self,
        config: ResolvedConfiguration,
        specs: list[str],
        reporters: list[JUnitReporter],
    ) -> int:
        """Run to completion and return the aggregate exit code (0 = passed)."""
        ...


class SuitePlugin:
    """pytest plugin carrying the resolved configuration into the session.

    Also attaches EFS driver errors to the report of every failed test.
    """

    def __init__(self, config: ResolvedConfiguration):
        self.config = config

    def pytest_configure(self, config: pytest.Config) -> None:
        config.stash[RESOLVED_CONFIG_KEY] = self.config

    @pytest.hookimpl(tryfirst=True, hookwrapper=True)
    def pytest_runtest_makereport(self, item: pytest.Item, call: pytest.CallInfo):
        outcome = yield
        report = outcome.get_result()
        if report.when == "call" and report.failed:
            self.attach_driver_errors(item, report)

    def attach_driver_errors(self, item: pytest.Item, report: pytest.TestReport) -> None:
        """Append driver log errors to a failed report's longrepr."""
        logs = getattr(item, "funcargs", {}).get("driver_logs")
        if logs is None:
            return

        try:
            errors = logs.find_errors(logs.collect())
        except Exception as e:
            # Log collection must not mask the original failure
            logger.warning("Could not collect driver logs for %s: %s", item.nodeid, e)
            return

        extra = logs.format_for_report(errors)
        if extra:
            report.longrepr = str(report.longrepr) + "\n" + extra


class PytestEngine:
    """Execution engine backed by ``pytest.main``."""

    def __init__(self, extra_args: list[str] | None = None):
        self.extra_args = list(extra_args or [])

    def run(
        self,
        config: ResolvedConfiguration,
        specs: list[str],
        reporters: list[JUnitReporter],
    ) -> int:
        args = list(specs)
        for reporter in reporters:
            args.extend(reporter.pytest_args())
        args.extend(self.extra_args)

        logger.debug("pytest arguments: %s", args)
        return int(pytest.main(args, plugins=[SuitePlugin(config)]))


class SuiteState(Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class SuiteBootstrapper:
    """Wire a resolved configuration into an execution engine and run it."""

    def __init__(
        self,
        engine: ExecutionEngine,
        report_dir: str = "",
        report_prefix: str = "",
        identity: RunIdentity | None = None,
    ):
        self.engine = engine
        self.report_dir = report_dir
        self.report_prefix = report_prefix
        self.identity = identity or RunIdentity()
        self.config: ResolvedConfiguration | None = None
        self.state = SuiteState.UNCONFIGURED

    def configure(self, config: ResolvedConfiguration) -> None:
        if self.state is not SuiteState.UNCONFIGURED:
            raise SetupError(f"Suite already {self.state.value}")
        self.config = config
        self.state = SuiteState.CONFIGURED

    def reporters(self) -> list[JUnitReporter]:
        """Reporting sinks for this worker, creating the report directory.

        Raises:
            SetupError: If the report directory cannot be created
        """
        if not self.report_dir:
            return []
        report_dir = ensure_report_dir(self.report_dir)
        return [JUnitReporter(report_dir / report_file_name(self.report_prefix, self.identity))]

    def run(self, specs: list[str]) -> int:
        """Run the suite and return the engine's exit code.

        Raises:
            SetupError: If the suite is not configured or reporting cannot be
                set up; the engine is not invoked in that case.
        """
        if self.state is not SuiteState.CONFIGURED:
            raise SetupError(f"Cannot run suite in state {self.state.value}")

        self.state = SuiteState.RUNNING
        try:
            reporters = self.reporters()
        except SetupError:
            self.state = SuiteState.ABORTED
            raise

        logger.info(
            "Starting e2e run %r on worker %d",
            self.identity.run_id,
            self.identity.worker_index,
        )
        exit_code = self.engine.run(self.config, specs, reporters)
        self.state = SuiteState.COMPLETED
        logger.info("e2e run %r finished with exit code %d", self.identity.run_id, exit_code)
        return exit_code
