"""Async kubectl runner."""

import asyncio
import contextlib
import logging
import shutil

from wazuh_rollout.errors import InfrastructureError
from wazuh_rollout.models import CommandResult

logger = logging.getLogger(__name__)


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def kubectl_available(kubectl: str = "kubectl") -> bool:
    """Check whether the kubectl binary is on PATH (or is an existing path)."""
    return shutil.which(kubectl) is not None


async def run_kubectl(
    args: list[str],
    kubectl: str = "kubectl",
    timeout: float = 30.0,
) -> CommandResult:
    """Run a kubectl command and capture stdout/stderr separately.

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "wazuh"]``)
        kubectl: kubectl binary name or path
        timeout: Maximum seconds to wait for the command

    Returns:
        CommandResult with decoded output. A timeout is reported as
        returncode 124 with the reason in error.

    Raises:
        InfrastructureError: If kubectl cannot be executed at all
    """
    logger.debug("Running %s %s", kubectl, " ".join(args))
    try:
        proc = await asyncio.create_subprocess_exec(
            kubectl,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise InfrastructureError(f"Cannot execute {kubectl}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        logger.warning("%s %s timed out after %.0fs", kubectl, args[0] if args else "", timeout)
        return CommandResult(output="", error=f"timed out after {timeout:.0f}s", returncode=124)

    returncode = proc.returncode if proc.returncode is not None else -1
    return CommandResult(output=_decode(stdout), error=_decode(stderr), returncode=returncode)
