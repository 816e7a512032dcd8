"""Log collection from EFS CSI driver pods for E2E failure reports."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping

from .k8s_client import K8sClient


@dataclass
class LogEntry:
    """A parsed log entry."""

    timestamp: datetime | None
    level: str
    message: str
    source: str
    raw: str


class LogCollector:
    """Collect logs from the driver pods selected by label."""

    # klog header: I0102 15:04:05.000000    1 file.go:42] message
    KLOG_PATTERN = re.compile(
        r"^([IWEF])(\d{4} \d{2}:\d{2}:\d{2}\.\d+)\s+\d+\s+[^\]]+\]\s?(.*)$"
    )

    KLOG_LEVELS = {"I": "INFO", "W": "WARNING", "E": "ERROR", "F": "FATAL"}

    ERROR_PATTERNS = [
        re.compile(r"error", re.IGNORECASE),
        re.compile(r"failed", re.IGNORECASE),
        re.compile(r"panic", re.IGNORECASE),
    ]

    def __init__(
        self,
        k8s: K8sClient,
        selectors: Mapping[str, str],
        container: str | None = "efs-plugin",
    ):
        """Initialize log collector.

        Args:
            k8s: K8sClient bound to the driver namespace
            selectors: Label selectors of the driver pods
            container: Driver container name, None for the pod default
        """
        self.k8s = k8s
        self.selectors = selectors
        self.container = container
        self.start_time: datetime | None = None

    def start_collection(self) -> None:
        """Mark the start time for log collection."""
        self.start_time = datetime.now(timezone.utc)

    def _since_duration(self) -> str:
        """Calculate duration since start for kubectl --since flag."""
        if not self.start_time:
            return "5m"

        delta = datetime.now(timezone.utc) - self.start_time
        seconds = int(delta.total_seconds()) + 10  # Add buffer
        return f"{seconds}s"

    def collect(self, since: str | None = None) -> dict[str, str]:
        """Collect logs from every driver pod.

        Returns:
            Mapping of pod name to log output
        """
        since = since or self._since_duration()
        logs = {}
        for pod in self.k8s.list_pods(self.selectors):
            name = pod["metadata"]["name"]
            logs[name] = self.k8s.get_pod_logs(name, container=self.container, since=since)
        return logs

    def parse_log_line(self, line: str, source: str) -> LogEntry:
        """Parse a single log line, keeping unknown formats as-is."""
        match = self.KLOG_PATTERN.match(line)
        if match:
            try:
                ts = datetime.strptime(match.group(2), "%m%d %H:%M:%S.%f")
            except ValueError:
                ts = None

            return LogEntry(
                timestamp=ts,
                level=self.KLOG_LEVELS[match.group(1)],
                message=match.group(3),
                source=source,
                raw=line,
            )

        return LogEntry(
            timestamp=None,
            level="UNKNOWN",
            message=line,
            source=source,
            raw=line,
        )

    def find_errors(self, logs: Mapping[str, str]) -> list[LogEntry]:
        """Extract error entries from collected logs.

        Args:
            logs: Mapping of pod name to log output

        Returns:
            List of error LogEntry objects
        """
        errors = []
        for source, content in logs.items():
            for line in content.split("\n"):
                if not line.strip():
                    continue

                entry = self.parse_log_line(line, source)
                if entry.level in ("ERROR", "FATAL") or any(
                    pattern.search(line) for pattern in self.ERROR_PATTERNS
                ):
                    errors.append(entry)

        return errors

    def format_for_report(self, errors: list[LogEntry], max_lines: int = 10) -> str:
        """Format error entries for inclusion in a test report."""
        if not errors:
            return ""

        lines = ["", "=== Errors in EFS driver logs ==="]
        for err in errors[:max_lines]:
            lines.append(f"[{err.source}] {err.message[:200]}")
        if len(errors) > max_lines:
            lines.append(f"[... {len(errors) - max_lines} more]")
        return "\n".join(lines)
