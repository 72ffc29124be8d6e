"""Application configuration.

Delegates to specialized components:
- HostListParser: Reads the host list
- Settings: Environment variables and CLI overrides
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from wazuh_rollout.config.parser import HostListParser
from wazuh_rollout.config.settings import MODES, Settings
from wazuh_rollout.errors import ConfigurationError
from wazuh_rollout.models import HostTask

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Run configuration.

    Aggregates the host list parser and settings. Built once before any
    dispatch and passed explicitly to the orchestrator.
    """

    settings: Settings
    parser: HostListParser
    _tasks_cache: list[HostTask] = field(default_factory=list, init=False, repr=False)

    @classmethod
    def from_env(cls, host_list: Path | str) -> "Config":
        """Create config from environment.

        Args:
            host_list: Path to the host list file

        Returns:
            Configured instance with all components initialized
        """
        return cls(settings=Settings.from_env(), parser=HostListParser(host_list))

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with settings overridden by non-None values.

        Args:
            **overrides: Settings field names and values (None is ignored)

        Returns:
            New Config sharing the same parser

        Raises:
            ConfigurationError: If an override is out of range
        """
        values = {key: value for key, value in overrides.items() if value is not None}

        if "parallel" in values and values["parallel"] < 1:
            raise ConfigurationError(f"--parallel must be >= 1, got {values['parallel']}")
        if "task_timeout" in values and values["task_timeout"] < 0:
            raise ConfigurationError(f"--timeout must be >= 0, got {values['task_timeout']}")
        if "mode" in values and values["mode"] not in MODES:
            raise ConfigurationError(f"Unknown mode {values['mode']!r}, expected one of {MODES}")

        if values:
            logger.debug("Applying overrides: %s", ", ".join(sorted(values)))
        return Config(settings=replace(self.settings, **values), parser=self.parser)

    def get_tasks(self) -> list[HostTask]:
        """Get host tasks from the host list.

        Lazy loads and caches tasks on first call.

        Returns:
            Ordered list of HostTask

        Raises:
            ConfigurationError: If the host list is invalid or empty
        """
        if not self._tasks_cache:
            self._tasks_cache = self.parser.parse()
        return self._tasks_cache

    # Delegate to settings for convenience
    @property
    def parallel(self) -> int:
        """Concurrency ceiling."""
        return self.settings.parallel

    @property
    def task_timeout(self) -> float | None:
        """Per-task timeout in seconds, None if unbounded."""
        return self.settings.timeout_or_none

    @property
    def mode(self) -> str:
        """Single-host operation mode (script or ssh)."""
        return self.settings.mode

    @property
    def log_dir(self) -> Path:
        """Directory for summary and per-host logs."""
        return self.settings.log_dir

    @property
    def namespace(self) -> str:
        """Kubernetes namespace of the Wazuh manager."""
        return self.settings.namespace
