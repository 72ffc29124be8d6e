"""Single-host deploy operations.

Two implementations of the DeployOperation protocol:

- ScriptDeployOperation: runs an external `deploy-agent.sh HOST LABEL GROUP`
  as a child process with stdout and stderr merged
- SSHDeployOperation: connects with asyncssh and pipes the rendered
  installer payload into `sudo bash -s` on the host

Both return a CommandResult; a non-zero return code is a failed deployment.
"""

import asyncio
import contextlib
import logging
import os
import signal
import stat
from pathlib import Path

from wazuh_rollout.config.settings import Settings
from wazuh_rollout.errors import InfrastructureError, TaskFailure
from wazuh_rollout.models import CommandResult, HostTask, ManagerEndpoints
from wazuh_rollout.services.connection import SSHConnectError, connect_with_retry
from wazuh_rollout.services.installer import REMOTE_COMMAND, render_install_script
from wazuh_rollout.utils.parser import parse_ssh_target

logger = logging.getLogger(__name__)


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def agent_name_for(task: HostTask) -> str:
    """Name the agent registers under when installed over SSH.

    A label that was defaulted to the host string would carry `user@`
    and `:port`; the bare hostname is used instead.
    """
    if task.label != task.host:
        return task.label
    try:
        return parse_ssh_target(task.host).hostname
    except ValueError:
        return task.label


class ScriptDeployOperation:
    """Deploy by running an external single-host deploy script."""

    def __init__(self, script: Path | str, namespace: str = "wazuh") -> None:
        """Initialize script operation.

        Args:
            script: Path to the single-host deploy script
            namespace: Exported to the script as WAZUH_NAMESPACE
        """
        self.script = Path(script)
        self.namespace = namespace

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScriptDeployOperation":
        return cls(script=settings.deploy_script, namespace=settings.namespace)

    def describe(self) -> str:
        return f"script {self.script}"

    def preflight(self) -> None:
        """Check the deploy script exists and is executable.

        A script that exists but lacks the execute bit is made executable.

        Raises:
            InfrastructureError: If the script is missing
        """
        if not self.script.is_file():
            raise InfrastructureError(f"Deploy script not found at: {self.script}")

        if not os.access(self.script, os.X_OK):
            logger.info("Marking %s executable", self.script)
            try:
                mode = self.script.stat().st_mode
                self.script.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            except OSError as e:
                raise InfrastructureError(f"Cannot make {self.script} executable: {e}") from e

        self.script = self.script.resolve()

    async def __call__(self, task: HostTask) -> CommandResult:
        """Run the deploy script for one host.

        The script runs in its own process group; if the call is cancelled
        (timeout) the whole group is killed, so children it started cannot
        keep the output pipe open.

        Raises:
            TaskFailure: If the script cannot be started
        """
        env = {**os.environ, "WAZUH_NAMESPACE": self.namespace}
        try:
            proc = await asyncio.create_subprocess_exec(
                str(self.script),
                task.host,
                task.label,
                task.group,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            raise TaskFailure(task.host, f"cannot run {self.script}: {e}") from e

        try:
            stdout, _ = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                logger.warning("Killing deploy script for %s (pid %d)", task.host, proc.pid)
                with contextlib.suppress(ProcessLookupError):
                    os.killpg(proc.pid, signal.SIGKILL)
                await proc.wait()
            raise

        returncode = proc.returncode if proc.returncode is not None else -1
        return CommandResult(output=_decode(stdout), error="", returncode=returncode)


class SSHDeployOperation:
    """Deploy by running the installer payload over SSH."""

    def __init__(
        self,
        endpoints: ManagerEndpoints,
        ssh_user: str | None = None,
        ssh_port: int = 22,
        known_hosts: str | None = None,
        strict_host_key_checking: bool = True,
        connect_timeout: float = 10.0,
    ) -> None:
        """Initialize SSH operation.

        Args:
            endpoints: Manager endpoints resolved before dispatch
            ssh_user: User for hosts without `user@`
            ssh_port: Port for hosts without `:port`
            known_hosts: Path to known_hosts file, or None to disable verification
            strict_host_key_checking: Whether to reject unknown host keys
            connect_timeout: Seconds allowed per connection attempt
        """
        self.endpoints = endpoints
        self.ssh_user = ssh_user
        self.ssh_port = ssh_port
        self.known_hosts = known_hosts
        self.strict_host_key_checking = strict_host_key_checking
        self.connect_timeout = connect_timeout

        if self.known_hosts is None:
            logger.warning(
                "SSH host key verification DISABLED - vulnerable to MITM attacks. "
                "Set WAZUH_ROLLOUT_KNOWN_HOSTS to a valid known_hosts file path."
            )

    @classmethod
    def from_settings(cls, settings: Settings, endpoints: ManagerEndpoints) -> "SSHDeployOperation":
        return cls(
            endpoints=endpoints,
            ssh_user=settings.ssh_user,
            ssh_port=settings.ssh_port,
            known_hosts=settings.known_hosts,
            strict_host_key_checking=settings.strict_host_key_checking,
            connect_timeout=settings.connect_timeout,
        )

    def describe(self) -> str:
        return f"ssh (manager {self.endpoints.manager_host}:{self.endpoints.manager_port})"

    async def __call__(self, task: HostTask) -> CommandResult:
        """Install the agent on one host over SSH.

        Raises:
            TaskFailure: If the target is invalid or unreachable
        """
        try:
            target = parse_ssh_target(task.host, self.ssh_user, self.ssh_port)
        except ValueError as e:
            raise TaskFailure(task.host, str(e)) from e

        name = agent_name_for(task)
        script = render_install_script(self.endpoints, name, task.group)

        try:
            conn = await connect_with_retry(
                target,
                known_hosts=self.known_hosts,
                strict_host_key_checking=self.strict_host_key_checking,
                connect_timeout=self.connect_timeout,
            )
        except SSHConnectError as e:
            raise TaskFailure(task.host, str(e)) from e

        async with conn:
            logger.debug("Running installer on %s (agent %s, group %s)", target, name, task.group)
            result = await conn.run(REMOTE_COMMAND, input=script, check=False)

        header = f"Connected to {target}; agent {name}, group {task.group}\n"
        returncode = result.returncode if result.returncode is not None else -1
        return CommandResult(
            output=header + _decode(result.stdout),
            error=_decode(result.stderr),
            returncode=returncode,
        )
