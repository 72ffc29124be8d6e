"""Wazuh manager control-plane client.

All queries go through kubectl against the manager namespace:

- Domain: host of the `wazuh-dashboard-ingress` rule with `wazuh.` stripped
- Enrollment password: secret `wazuh-authd-pass`, key `authd.pass`
  (falls back to a `WAZUH_AGENT_PASSWORD=` credentials file)
- Registered agents: `agent_control -l` inside the master manager pod
"""

import base64
import binascii
import logging
import re
from pathlib import Path

from wazuh_rollout.config.settings import Settings
from wazuh_rollout.errors import InfrastructureError
from wazuh_rollout.models import CommandResult, ManagerEndpoints, RegisteredAgent
from wazuh_rollout.services.kubectl import kubectl_available, run_kubectl

logger = logging.getLogger(__name__)

DASHBOARD_INGRESS = "wazuh-dashboard-ingress"
AUTHD_SECRET = "wazuh-authd-pass"
MASTER_SELECTOR = "app=wazuh-manager,node-type=master"
AGENT_CONTROL = "/var/ossec/bin/agent_control"
CREDENTIALS_KEY = "WAZUH_AGENT_PASSWORD"

AGENT_LINE = re.compile(
    r"ID:\s*(?P<id>[^,\s]+),\s*Name:\s*(?P<name>.+?),\s*IP:\s*(?P<ip>[^,]+?)(?:,\s*(?P<status>.+))?$"
)


def parse_agent_list(output: str) -> list[RegisteredAgent]:
    """Parse `agent_control -l` output into agents.

    Lines that do not describe an agent (headers, blank lines) are skipped.
    """
    agents: list[RegisteredAgent] = []
    for line in output.splitlines():
        match = AGENT_LINE.search(line.strip())
        if not match:
            continue
        agents.append(
            RegisteredAgent(
                agent_id=match.group("id"),
                name=match.group("name").strip(),
                ip=match.group("ip").strip(),
                status=(match.group("status") or "").strip(),
            )
        )
    return agents


def read_credentials_file(path: Path) -> str:
    """Read the agent password from a `KEY=value` credentials file.

    Returns:
        Password, or an empty string if the file or key is missing
    """
    try:
        content = path.read_text()
    except OSError as e:
        logger.debug("Cannot read credentials file %s: %s", path, e)
        return ""

    for line in content.splitlines():
        key, sep, value = line.strip().partition("=")
        if sep and key.strip() == CREDENTIALS_KEY:
            return value.strip().strip("\"'")
    return ""


class ManagerClient:
    """Read-only client for the Wazuh manager running in Kubernetes."""

    def __init__(
        self,
        namespace: str = "wazuh",
        kubectl: str = "kubectl",
        timeout: float = 30.0,
        domain: str | None = None,
        password: str | None = None,
        credentials_file: Path | None = None,
    ) -> None:
        """Initialize manager client.

        Args:
            namespace: Namespace of the Wazuh deployment
            kubectl: kubectl binary name or path
            timeout: Seconds per kubectl call
            domain: Known base domain (skips the ingress lookup)
            password: Known enrollment password (skips the secret lookup)
            credentials_file: Fallback file holding WAZUH_AGENT_PASSWORD
        """
        self.namespace = namespace
        self.kubectl = kubectl
        self.timeout = timeout
        self._domain = domain
        self._password = password
        self.credentials_file = credentials_file

    @classmethod
    def from_settings(cls, settings: Settings) -> "ManagerClient":
        """Create a client from run settings."""
        return cls(
            namespace=settings.namespace,
            kubectl=settings.kubectl,
            timeout=settings.kubectl_timeout,
            domain=settings.manager_domain,
            password=settings.agent_password,
            credentials_file=settings.credentials_file,
        )

    @property
    def needs_cluster(self) -> bool:
        """Whether endpoint resolution has to query the cluster."""
        return not (self._domain and (self._password or self.credentials_file))

    async def _kubectl(self, *args: str) -> CommandResult:
        if not kubectl_available(self.kubectl):
            raise InfrastructureError(f"{self.kubectl} is not installed")
        return await run_kubectl(list(args), kubectl=self.kubectl, timeout=self.timeout)

    async def check_cluster(self) -> None:
        """Verify kubectl can reach the cluster.

        Raises:
            InfrastructureError: If kubectl is missing or the cluster is unreachable
        """
        result = await self._kubectl("cluster-info")
        if not result.ok:
            raise InfrastructureError(
                f"kubectl cannot access Kubernetes cluster: {result.error.strip() or result.returncode}"
            )
        logger.info("Kubernetes cluster reachable")

    async def resolve_domain(self) -> str:
        """Resolve the base domain from the dashboard ingress.

        Raises:
            InfrastructureError: If the ingress is missing or has no host
        """
        if self._domain:
            return self._domain

        result = await self._kubectl(
            "get",
            "ingress",
            "-n",
            self.namespace,
            DASHBOARD_INGRESS,
            "-o",
            "jsonpath={.spec.rules[0].host}",
        )
        host = result.output.strip() if result.ok else ""
        domain = host.removeprefix("wazuh.")
        if not domain:
            raise InfrastructureError(
                f"Could not determine domain from ingress {self.namespace}/{DASHBOARD_INGRESS}"
            )

        self._domain = domain
        logger.info("Manager domain: %s", domain)
        return domain

    async def fetch_agent_password(self) -> str:
        """Fetch the authd enrollment password.

        Tries the Kubernetes secret first, then the credentials file.

        Raises:
            InfrastructureError: If no password can be found
        """
        if self._password:
            return self._password

        password = ""
        if kubectl_available(self.kubectl):
            result = await self._kubectl(
                "get",
                "secret",
                "-n",
                self.namespace,
                AUTHD_SECRET,
                "-o",
                r"jsonpath={.data.authd\.pass}",
            )
            if result.ok and result.output.strip():
                try:
                    password = base64.b64decode(result.output.strip()).decode("utf-8").strip()
                except (binascii.Error, UnicodeDecodeError) as e:
                    logger.warning("Secret %s is not valid base64: %s", AUTHD_SECRET, e)

        if not password and self.credentials_file is not None:
            password = read_credentials_file(self.credentials_file)
            if password:
                logger.info("Agent password read from %s", self.credentials_file)

        if not password:
            raise InfrastructureError(
                "Could not retrieve agent registration password "
                f"(secret {self.namespace}/{AUTHD_SECRET} or credentials file)"
            )

        self._password = password
        return password

    async def resolve_endpoints(self) -> ManagerEndpoints:
        """Resolve manager endpoints and the enrollment password.

        Raises:
            InfrastructureError: If either cannot be resolved
        """
        domain = await self.resolve_domain()
        password = await self.fetch_agent_password()
        endpoints = ManagerEndpoints(domain=domain, password=password)
        logger.info(
            "Manager %s:%d, registration %s:%d",
            endpoints.manager_host,
            endpoints.manager_port,
            endpoints.registration_host,
            endpoints.registration_port,
        )
        return endpoints

    async def find_master_pod(self) -> str:
        """Find the master manager pod.

        Raises:
            InfrastructureError: If no master pod is found
        """
        result = await self._kubectl(
            "get",
            "pods",
            "-n",
            self.namespace,
            "-l",
            MASTER_SELECTOR,
            "-o",
            "jsonpath={.items[0].metadata.name}",
        )
        pod = result.output.strip() if result.ok else ""
        if not pod:
            raise InfrastructureError(f"Could not find manager pod in namespace {self.namespace}")
        return pod

    async def list_agents(self) -> tuple[list[RegisteredAgent], list[str]]:
        """List agents registered with the manager.

        Returns:
            Tuple of (parsed agents, raw non-empty output lines)

        Raises:
            InfrastructureError: If the query cannot be run
        """
        pod = await self.find_master_pod()
        result = await self._kubectl("exec", "-n", self.namespace, pod, "--", AGENT_CONTROL, "-l")
        if not result.ok:
            raise InfrastructureError(
                f"agent_control failed in {pod}: {result.error.strip() or result.returncode}"
            )

        lines = [line for line in result.output.splitlines() if line.strip()]
        return parse_agent_list(result.output), lines
