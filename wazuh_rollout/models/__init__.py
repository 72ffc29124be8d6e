"""Data models for wazuh-rollout."""

from wazuh_rollout.models.command import CommandResult
from wazuh_rollout.models.manager import ManagerEndpoints, RegisteredAgent
from wazuh_rollout.models.result import DeploymentResult, DeploymentStatus
from wazuh_rollout.models.target import SSHTarget
from wazuh_rollout.models.task import DEFAULT_GROUP, HostTask

__all__ = [
    "CommandResult",
    "DEFAULT_GROUP",
    "DeploymentResult",
    "DeploymentStatus",
    "HostTask",
    "ManagerEndpoints",
    "RegisteredAgent",
    "SSHTarget",
]
