"""Run orchestration: parse, preflight, dispatch, report, verify.

The orchestrator wires the components of one run together. Nothing is
written to the log directory until the host list is parsed and the preflight
checks pass, so a configuration error leaves no artifacts behind.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from wazuh_rollout.config import Config
from wazuh_rollout.errors import RolloutError
from wazuh_rollout.models import DeploymentResult, HostTask, RegisteredAgent
from wazuh_rollout.protocols import DeployOperation
from wazuh_rollout.services.dispatcher import Dispatcher
from wazuh_rollout.services.manager import ManagerClient
from wazuh_rollout.services.operations import (
    ScriptDeployOperation,
    SSHDeployOperation,
    agent_name_for,
)
from wazuh_rollout.services.reporter import SUMMARY_PREFIX, Reporter, RunReport, SummaryLog

logger = logging.getLogger(__name__)

RUN_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

Emitter = Callable[[str], None]


class Orchestrator:
    """Execute one bulk deployment run."""

    def __init__(
        self,
        config: Config,
        operation: DeployOperation | None = None,
        manager: ManagerClient | None = None,
        clock: Callable[[], datetime] | None = None,
        emit: Emitter | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            config: Run configuration, resolved before the run
            operation: Deploy operation; built from the configured mode if None
            manager: Manager client used for preflight and verification
            clock: Source of the run timestamp
            emit: Receives the final report text; logged if None
        """
        self.config = config
        self._operation = operation
        self.manager = manager if manager is not None else ManagerClient.from_settings(config.settings)
        self.clock = clock or datetime.now
        self.emit = emit
        self.summary_path: Path | None = None
        self.registered: list[RegisteredAgent] | None = None

    async def run(self) -> RunReport:
        """Deploy to every host in the host list.

        Returns:
            RunReport; its exit_code is 0 iff every task succeeded

        Raises:
            ConfigurationError: If the host list is invalid or empty
            InfrastructureError: If a preflight check fails
        """
        settings = self.config.settings
        tasks = self.config.get_tasks()
        logger.info("Loaded %d host(s) from %s", len(tasks), self.config.parser.source)

        operation = await self.prepare()

        run_timestamp = self.clock().strftime(RUN_TIMESTAMP_FORMAT)
        log_dir = self.config.log_dir
        log_dir.mkdir(parents=True, exist_ok=True)

        summary = SummaryLog(log_dir, run_timestamp)
        summary.start(len(tasks), self.config.parallel, operation.describe())
        self.summary_path = summary.path

        reporter = Reporter(len(tasks), run_timestamp)

        def on_start(index: int, task: HostTask) -> None:
            line = reporter.start_line(index, task)
            logger.info("%s", line)
            summary.append(line)

        def on_result(result: DeploymentResult) -> None:
            line = reporter.progress_line(result)
            if result.succeeded:
                logger.info("%s (%.1fs)", line, result.duration)
            else:
                logger.warning("%s: %s", line, result.error)
            summary.append(line)

        logger.info(
            "Starting deployment of %d host(s), parallel=%d, logs in %s",
            len(tasks),
            self.config.parallel,
            log_dir,
        )
        dispatcher = Dispatcher(
            operation,
            parallel=self.config.parallel,
            log_dir=log_dir,
            run_timestamp=run_timestamp,
            task_timeout=self.config.task_timeout,
            reserved_names={SUMMARY_PREFIX},
        )
        results = await dispatcher.run(tasks, on_start=on_start, on_result=on_result)

        report = reporter.build(results)
        text = reporter.format_report(report)
        summary.finish(text)
        self._emit(text)
        logger.info(
            "Deployment completed: %d succeeded, %d failed; summary in %s",
            report.successes,
            report.failures,
            summary.path,
        )

        if settings.verify:
            self.registered = await self.verify(report)

        return report

    async def prepare(self) -> DeployOperation:
        """Run preflight checks and build the deploy operation.

        Raises:
            InfrastructureError: If the script, cluster or manager is unusable
        """
        settings = self.config.settings

        if self._operation is not None:
            operation = self._operation
            preflight = getattr(operation, "preflight", None)
            if callable(preflight):
                preflight()
            if settings.require_cluster:
                await self.manager.check_cluster()
            return operation

        if settings.mode == "ssh":
            if settings.require_cluster and self.manager.needs_cluster:
                await self.manager.check_cluster()
            endpoints = await self.manager.resolve_endpoints()
            return SSHDeployOperation.from_settings(settings, endpoints)

        script_operation = ScriptDeployOperation.from_settings(settings)
        script_operation.preflight()
        if settings.require_cluster:
            await self.manager.check_cluster()
        return script_operation

    async def verify(self, report: RunReport) -> list[RegisteredAgent] | None:
        """Show the agents registered with the manager.

        Never affects the run outcome; a failed query is a warning.

        Returns:
            Registered agents, or None if the query failed
        """
        logger.info("Checking registered agents on the manager")
        try:
            agents, lines = await self.manager.list_agents()
        except (RolloutError, OSError) as e:
            logger.warning("Could not list registered agents: %s", e)
            return None

        for line in lines:
            logger.info("  %s", line)

        registered = {agent.name: agent for agent in agents}
        expected = [self._expected_agent_name(r.task) for r in report.results if r.succeeded]
        missing = [name for name in expected if name not in registered]
        inactive = [
            f"{name} ({registered[name].status or 'unknown'})"
            for name in expected
            if name in registered and not registered[name].is_active
        ]
        if missing:
            logger.warning(
                "Not yet registered (may take a few moments): %s",
                ", ".join(missing),
            )
        if inactive:
            logger.warning("Registered but not active: %s", ", ".join(inactive))
        return agents

    def _expected_agent_name(self, task: HostTask) -> str:
        if self.config.mode == "ssh":
            return agent_name_for(task)
        return task.label

    def _emit(self, text: str) -> None:
        if self.emit is not None:
            self.emit(text)
            return
        for line in text.splitlines():
            logger.info("%s", line)
