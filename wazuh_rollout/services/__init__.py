"""Services for wazuh-rollout."""

from wazuh_rollout.services.connection import SSHConnectError, connect_with_retry
from wazuh_rollout.services.dispatcher import Dispatcher, assign_log_paths
from wazuh_rollout.services.installer import render_install_script
from wazuh_rollout.services.kubectl import kubectl_available, run_kubectl
from wazuh_rollout.services.manager import ManagerClient, parse_agent_list
from wazuh_rollout.services.operations import (
    ScriptDeployOperation,
    SSHDeployOperation,
    agent_name_for,
)
from wazuh_rollout.services.orchestrator import Orchestrator
from wazuh_rollout.services.reporter import Reporter, RunReport, SummaryLog

__all__ = [
    "Dispatcher",
    "ManagerClient",
    "Orchestrator",
    "Reporter",
    "RunReport",
    "SSHConnectError",
    "SSHDeployOperation",
    "ScriptDeployOperation",
    "SummaryLog",
    "agent_name_for",
    "assign_log_paths",
    "connect_with_retry",
    "kubectl_available",
    "parse_agent_list",
    "render_install_script",
    "run_kubectl",
]
