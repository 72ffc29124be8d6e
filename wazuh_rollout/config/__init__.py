"""Configuration module for wazuh-rollout.

Provides focused classes for different configuration concerns:
- Config: Main configuration class (aggregates all components)
- HostListParser: Parses host list CSV files
- Settings: Environment variable configuration
"""

from wazuh_rollout.config.main import Config
from wazuh_rollout.config.parser import HostListParser
from wazuh_rollout.config.settings import Settings

__all__ = ["Config", "HostListParser", "Settings"]
