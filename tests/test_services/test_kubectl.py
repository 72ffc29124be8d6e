"""Tests for the async kubectl runner."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from wazuh_rollout.errors import InfrastructureError
from wazuh_rollout.services.kubectl import kubectl_available, run_kubectl


def make_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.wait = AsyncMock(return_value=returncode)
    proc.returncode = returncode
    return proc


@pytest.mark.asyncio
async def test_run_kubectl_captures_output() -> None:
    """stdout, stderr and the exit code are returned."""
    proc = make_process(b"pod-0\n", b"", 0)
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as mock_exec:
        result = await run_kubectl(["get", "pods", "-n", "wazuh"])

    assert result.ok
    assert result.output == "pod-0\n"
    args = mock_exec.call_args.args
    assert args == ("kubectl", "get", "pods", "-n", "wazuh")


@pytest.mark.asyncio
async def test_run_kubectl_non_zero_exit() -> None:
    proc = make_process(b"", b"error: not found\n", 1)
    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
        result = await run_kubectl(["get", "secret", "x"], kubectl="/usr/local/bin/kubectl")

    assert not result.ok
    assert result.error == "error: not found\n"


@pytest.mark.asyncio
async def test_run_kubectl_missing_binary() -> None:
    """An unexecutable binary is an infrastructure error."""
    with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("kubectl"))):
        with pytest.raises(InfrastructureError, match="Cannot execute"):
            await run_kubectl(["cluster-info"])


@pytest.mark.asyncio
async def test_run_kubectl_timeout_kills_process() -> None:
    """A hung kubectl is killed and reported as exit code 124."""
    proc = MagicMock()

    async def hang() -> tuple[bytes, bytes]:
        await asyncio.sleep(10)
        return b"", b""

    proc.communicate = hang
    proc.wait = AsyncMock(return_value=-9)
    proc.returncode = None

    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
        result = await run_kubectl(["cluster-info"], timeout=0.05)

    assert result.returncode == 124
    assert "timed out" in result.error
    proc.kill.assert_called_once()


@pytest.mark.asyncio
async def test_run_kubectl_timeout_tolerates_exited_process() -> None:
    """A kubectl that exits just as the timeout fires still yields exit code 124."""
    proc = MagicMock()

    async def hang() -> tuple[bytes, bytes]:
        await asyncio.sleep(10)
        return b"", b""

    proc.communicate = hang
    proc.kill.side_effect = ProcessLookupError
    proc.wait = AsyncMock(return_value=0)
    proc.returncode = None

    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
        result = await run_kubectl(["cluster-info"], timeout=0.05)

    assert result.returncode == 124
    proc.wait.assert_awaited_once()


def test_kubectl_available() -> None:
    with patch("shutil.which", return_value="/usr/bin/kubectl"):
        assert kubectl_available()
    with patch("shutil.which", return_value=None):
        assert not kubectl_available("kubectl-missing")
