"""Bulk Wazuh agent rollout with bounded concurrency."""

__version__ = "0.1.0"
