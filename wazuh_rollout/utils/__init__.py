"""Utilities for wazuh-rollout."""

from wazuh_rollout.utils.console import ColorfulFormatter, RolloutFormatter
from wazuh_rollout.utils.parser import parse_ssh_target
from wazuh_rollout.utils.shell import shell_assign
from wazuh_rollout.utils.validation import safe_filename, validate_hostname

__all__ = [
    "ColorfulFormatter",
    "parse_ssh_target",
    "RolloutFormatter",
    "safe_filename",
    "shell_assign",
    "validate_hostname",
]
