"""Wazuh manager data models."""

from dataclasses import dataclass

AGENT_PORT = 1514
REGISTRATION_PORT = 1515


@dataclass(frozen=True)
class ManagerEndpoints:
    """Manager addresses and enrollment secret, resolved once per run."""

    domain: str
    password: str = ""

    @property
    def manager_host(self) -> str:
        """Agent event endpoint (port 1514)."""
        return f"wazuh-manager.{self.domain}"

    @property
    def registration_host(self) -> str:
        """authd enrollment endpoint (port 1515)."""
        return f"wazuh-registration.{self.domain}"

    @property
    def manager_port(self) -> int:
        return AGENT_PORT

    @property
    def registration_port(self) -> int:
        return REGISTRATION_PORT


@dataclass(frozen=True)
class RegisteredAgent:
    """One row of `agent_control -l` output."""

    agent_id: str
    name: str
    ip: str = ""
    status: str = ""

    @property
    def is_active(self) -> bool:
        return self.status.lower().startswith("active")
