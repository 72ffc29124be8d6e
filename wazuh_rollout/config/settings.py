"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

MODES = ("script", "ssh")


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Dispatch
    parallel: int = field(default=1)
    task_timeout: float = field(default=0.0)  # 0 = unbounded
    mode: str = field(default="script")
    deploy_script: Path = field(default_factory=lambda: Path("deploy-agent.sh"))
    log_dir: Path = field(default_factory=lambda: Path("logs"))

    # Control plane
    namespace: str = field(default="wazuh")
    kubectl: str = field(default="kubectl")
    kubectl_timeout: float = field(default=30.0)
    require_cluster: bool = field(default=True)
    verify: bool = field(default=True)
    manager_domain: str | None = field(default=None)
    agent_password: str | None = field(default=None, repr=False)
    credentials_file: Path | None = field(default=None)

    # SSH
    ssh_user: str | None = field(default=None)
    ssh_port: int = field(default=22)
    connect_timeout: float = field(default=10.0)
    known_hosts: str | None = field(
        default_factory=lambda: str(Path.home() / ".ssh" / "known_hosts")
    )
    strict_host_key_checking: bool = field(default=True)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Supports WAZUH_ROLLOUT_* variables; the namespace also honours the
        legacy WAZUH_NAMESPACE used by the deploy scripts. WAZUH_ROLLOUT_*
        takes precedence if both are set.

        Returns:
            Settings instance with values from environment
        """
        parallel = cls._get_int("WAZUH_ROLLOUT_PARALLEL", 1)
        if parallel < 1:
            logger.warning(
                "WAZUH_ROLLOUT_PARALLEL must be > 0, got %d. Using default: 1",
                parallel,
            )
            parallel = 1

        return cls(
            parallel=parallel,
            task_timeout=max(cls._get_float("WAZUH_ROLLOUT_TASK_TIMEOUT", 0.0), 0.0),
            mode=cls._get_mode(),
            deploy_script=Path(os.getenv("WAZUH_ROLLOUT_DEPLOY_SCRIPT", "deploy-agent.sh")),
            log_dir=Path(os.getenv("WAZUH_ROLLOUT_LOG_DIR", "logs")),
            namespace=(
                os.getenv("WAZUH_ROLLOUT_NAMESPACE")
                or os.getenv("WAZUH_NAMESPACE")
                or "wazuh"
            ),
            kubectl=os.getenv("WAZUH_ROLLOUT_KUBECTL", "kubectl"),
            kubectl_timeout=cls._get_float("WAZUH_ROLLOUT_KUBECTL_TIMEOUT", 30.0),
            require_cluster=cls._get_bool("WAZUH_ROLLOUT_REQUIRE_CLUSTER", True),
            verify=cls._get_bool("WAZUH_ROLLOUT_VERIFY", True),
            manager_domain=os.getenv("WAZUH_ROLLOUT_MANAGER_DOMAIN") or None,
            agent_password=os.getenv("WAZUH_ROLLOUT_AGENT_PASSWORD") or None,
            credentials_file=cls._get_path("WAZUH_ROLLOUT_CREDENTIALS_FILE"),
            ssh_user=os.getenv("WAZUH_ROLLOUT_SSH_USER") or None,
            ssh_port=cls._get_int("WAZUH_ROLLOUT_SSH_PORT", 22),
            connect_timeout=cls._get_float("WAZUH_ROLLOUT_CONNECT_TIMEOUT", 10.0),
            known_hosts=cls._get_known_hosts(),
            strict_host_key_checking=cls._get_bool(
                "WAZUH_ROLLOUT_STRICT_HOST_KEY_CHECKING", True
            ),
            log_level=os.getenv("WAZUH_ROLLOUT_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("WAZUH_ROLLOUT_LOG_COLORS", True),
        )

    @property
    def timeout_or_none(self) -> float | None:
        """Per-task timeout, or None when unbounded."""
        return self.task_timeout if self.task_timeout > 0 else None

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid number for %s: %s, using default %s", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_path(key: str) -> Path | None:
        value = os.getenv(key, "").strip()
        return Path(value).expanduser() if value else None

    @staticmethod
    def _get_mode() -> str:
        """Get deploy mode from environment with validation.

        Returns:
            Mode ("script" or "ssh")
        """
        mode = os.getenv("WAZUH_ROLLOUT_MODE", "").lower()
        if mode in MODES:
            return mode
        if mode:
            logger.warning("Unknown WAZUH_ROLLOUT_MODE %r, using script", mode)
        return "script"

    @staticmethod
    def _get_known_hosts() -> str | None:
        """Get known_hosts path; "none" disables host key verification."""
        value = os.getenv("WAZUH_ROLLOUT_KNOWN_HOSTS")
        if value is None:
            return str(Path.home() / ".ssh" / "known_hosts")
        if value.strip().lower() == "none":
            return None
        return os.path.expanduser(value.strip())
