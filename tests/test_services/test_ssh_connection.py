"""Tests for the SSH connection retry helper."""

from unittest.mock import AsyncMock, MagicMock, patch

import asyncssh
import pytest

from wazuh_rollout.models import SSHTarget
from wazuh_rollout.services.connection import SSHConnectError, connect_with_retry

TARGET = SSHTarget(hostname="web-01", user="ubuntu", port=22)


class TestConnectWithRetry:
    """Test connection retry helper."""

    @pytest.mark.asyncio
    async def test_success_first_try(self) -> None:
        """Connection succeeds on first attempt."""
        mock_conn = MagicMock()
        with patch("asyncssh.connect", AsyncMock(return_value=mock_conn)) as mock_connect:
            result = await connect_with_retry(TARGET, known_hosts=None, retry_delay=0)

        assert result is mock_conn
        mock_connect.assert_called_once()
        kwargs = mock_connect.call_args.kwargs
        assert kwargs["username"] == "ubuntu"
        assert kwargs["port"] == 22
        assert kwargs["known_hosts"] is None

    @pytest.mark.asyncio
    async def test_success_after_retry(self) -> None:
        """Connection fails first, succeeds on retry."""
        mock_conn = MagicMock()
        with patch(
            "asyncssh.connect",
            AsyncMock(side_effect=[OSError("Connection refused"), mock_conn]),
        ) as mock_connect:
            result = await connect_with_retry(TARGET, known_hosts=None, retry_delay=0)

        assert result is mock_conn
        assert mock_connect.call_count == 2

    @pytest.mark.asyncio
    async def test_failure_after_retry(self) -> None:
        """Connection fails on both attempts."""
        with patch(
            "asyncssh.connect",
            AsyncMock(side_effect=[OSError("refused"), OSError("still refused")]),
        ):
            with pytest.raises(SSHConnectError) as exc_info:
                await connect_with_retry(TARGET, known_hosts=None, retry_delay=0)

        assert exc_info.value.target == TARGET
        assert "still refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_host_key_rejection_not_retried(self) -> None:
        """Strict host key failures are final."""
        error = asyncssh.HostKeyNotVerifiable("unknown host key")
        with patch("asyncssh.connect", AsyncMock(side_effect=error)) as mock_connect:
            with pytest.raises(SSHConnectError):
                await connect_with_retry(TARGET, known_hosts="/tmp/known_hosts", retry_delay=0)

        mock_connect.assert_called_once()

    @pytest.mark.asyncio
    async def test_lenient_host_key_reconnects_without_verification(self) -> None:
        """With strict checking off, an unknown key falls back to no verification."""
        mock_conn = MagicMock()
        error = asyncssh.HostKeyNotVerifiable("unknown host key")
        with patch("asyncssh.connect", AsyncMock(side_effect=[error, mock_conn])) as mock_connect:
            result = await connect_with_retry(
                TARGET,
                known_hosts="/tmp/known_hosts",
                strict_host_key_checking=False,
                retry_delay=0,
            )

        assert result is mock_conn
        assert mock_connect.call_args_list[1].kwargs["known_hosts"] is None
