"""Progress lines, final report and summary log.

The final report depends only on the result set: it is sorted by
sequence index and contains no wall-clock values, so formatting the same
results twice yields identical text.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from wazuh_rollout.models import DeploymentResult, HostTask

logger = logging.getLogger(__name__)

SUMMARY_PREFIX = "bulk_deployment"
RULE = "=" * 38


@dataclass(frozen=True)
class RunReport:
    """Aggregated outcome of one run."""

    total: int
    results: tuple[DeploymentResult, ...] = field(default_factory=tuple)

    @property
    def successes(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failures(self) -> int:
        return sum(1 for r in self.results if not r.succeeded)

    @property
    def failed(self) -> list[DeploymentResult]:
        return [r for r in self.results if not r.succeeded]

    @property
    def exit_code(self) -> int:
        """0 iff every task succeeded."""
        return 0 if self.total > 0 and self.failures == 0 else 1


class Reporter:
    """Formats progress and the final report for one run."""

    def __init__(self, total: int, run_timestamp: str) -> None:
        self.total = total
        self.run_timestamp = run_timestamp

    def _counter(self, index: int) -> str:
        return f"[{index}/{self.total}]"

    def start_line(self, index: int, task: HostTask) -> str:
        """Line emitted when a task is admitted."""
        return f"{self._counter(index)} Deploying to: {task.host} (agent: {task.label}, group: {task.group})"

    def progress_line(self, result: DeploymentResult) -> str:
        """Line emitted when a task completes."""
        counter = self._counter(result.sequence_index)
        if result.succeeded:
            return f"{counter} SUCCESS: {result.task.host}"
        return f"{counter} FAILED: {result.task.host} (see {result.log_path})"

    def build(self, results: Iterable[DeploymentResult]) -> RunReport:
        """Sort results into input order and check they reconcile.

        Raises:
            ValueError: If the result set does not cover every task exactly once
        """
        ordered = tuple(sorted(results, key=lambda r: r.sequence_index))
        indexes = [r.sequence_index for r in ordered]
        if indexes != list(range(1, self.total + 1)):
            raise ValueError(
                f"Result set does not match {self.total} task(s): indexes {indexes}"
            )
        return RunReport(total=self.total, results=ordered)

    def format_report(self, report: RunReport) -> str:
        """Render the final report.

        Returns:
            Report text ending with a newline
        """
        lines = [
            "Wazuh Bulk Agent Deployment Summary",
            f"Run:         {self.run_timestamp}",
            f"Total hosts: {report.total}",
            f"Successful:  {report.successes}",
            f"Failed:      {report.failures}",
            RULE,
        ]
        for result in report.results:
            task = result.task
            status = "SUCCESS" if result.succeeded else "FAILED "
            line = (
                f"{self._counter(result.sequence_index)} {status} {task.host} "
                f"(agent: {task.label}, group: {task.group})"
            )
            if not result.succeeded:
                line += f" log: {result.log_path}"
            lines.append(line)

        if report.failures:
            lines.append("")
            lines.append("Failed deployments:")
            for result in report.failed:
                reason = f" [{result.error}]" if result.error else ""
                lines.append(
                    f"  {self._counter(result.sequence_index)} {result.task.host}{reason} -> {result.log_path}"
                )

        return "\n".join(lines) + "\n"


class SummaryLog:
    """Run-level log shared by all hosts of a run."""

    def __init__(self, log_dir: Path, run_timestamp: str) -> None:
        self.path = Path(log_dir) / f"{SUMMARY_PREFIX}_{run_timestamp}.log"

    def start(self, total: int, parallel: int, operation: str) -> None:
        self._write(
            "w",
            "Wazuh Bulk Agent Deployment\n"
            f"Started: {datetime.now().isoformat(timespec='seconds')}\n"
            f"Host Count: {total}\n"
            f"Parallel Jobs: {parallel}\n"
            f"Operation: {operation}\n"
            f"{RULE}\n\n",
        )

    def append(self, line: str) -> None:
        self._write("a", line.rstrip("\n") + "\n")

    def finish(self, report_text: str) -> None:
        self._write(
            "a",
            f"\n{report_text}\nCompleted: {datetime.now().isoformat(timespec='seconds')}\n",
        )

    def _write(self, mode: str, text: str) -> None:
        try:
            with self.path.open(mode, encoding="utf-8") as fh:
                fh.write(text)
        except OSError as e:
            logger.error("Cannot write summary log %s: %s", self.path, e)
