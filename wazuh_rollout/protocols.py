"""Protocol interfaces for dependency inversion.

The dispatcher and orchestrator depend on these protocols, not on the
concrete script or SSH operations, so tests can pass any async callable.

Usage Example:

    from wazuh_rollout.protocols import DeployOperation

    class AlwaysOk:
        async def __call__(self, task: HostTask) -> CommandResult:
            return CommandResult(output="ok", error="", returncode=0)

        def describe(self) -> str:
            return "always-ok"

    dispatcher = Dispatcher(AlwaysOk(), parallel=4, ...)
"""

from typing import Protocol, runtime_checkable

from wazuh_rollout.models import CommandResult, HostTask, RegisteredAgent


@runtime_checkable
class DeployOperation(Protocol):
    """Protocol for the single-host deploy operation.

    Implementations install an agent on one host and report the exit
    status with the captured output. They may raise; the dispatcher maps
    any exception to a failed result.
    """

    async def __call__(self, task: HostTask) -> CommandResult:
        """Deploy an agent to the task's host.

        Args:
            task: Host, label and group to deploy

        Returns:
            CommandResult with combined output and exit status
        """
        ...

    def describe(self) -> str:
        """Short description for logs and the summary header."""
        ...


@runtime_checkable
class AgentDirectory(Protocol):
    """Protocol for the read-only registered agent query."""

    async def list_agents(self) -> tuple[list[RegisteredAgent], list[str]]:
        """List agents registered with the manager.

        Returns:
            Tuple of (parsed agents, raw output lines)

        Raises:
            InfrastructureError: If the control plane cannot be queried
        """
        ...
