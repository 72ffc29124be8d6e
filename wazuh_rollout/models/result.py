"""Deployment result data models."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from wazuh_rollout.models.task import HostTask


class DeploymentStatus(Enum):
    """Outcome of one host deployment."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILED"


@dataclass(frozen=True)
class DeploymentResult:
    """Outcome of one HostTask, created once when its operation terminates."""

    task: HostTask
    status: DeploymentStatus
    log_path: Path
    sequence_index: int
    error: str | None = None
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        """Whether the deployment succeeded."""
        return self.status is DeploymentStatus.SUCCESS
