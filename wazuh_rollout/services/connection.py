"""SSH connection helper with automatic retry."""

import asyncio
import logging

import asyncssh

from wazuh_rollout.models import SSHTarget

logger = logging.getLogger(__name__)


class SSHConnectError(Exception):
    """Failed to establish SSH connection after retry."""

    def __init__(self, target: SSHTarget, original_error: Exception):
        """Initialize connection error.

        Args:
            target: SSH target that could not be reached
            original_error: Original exception that caused the failure
        """
        self.target = target
        self.original_error = original_error
        super().__init__(f"Cannot connect to {target}: {original_error}")


async def open_connection(
    target: SSHTarget,
    known_hosts: str | None,
    strict_host_key_checking: bool = True,
    connect_timeout: float = 10.0,
) -> asyncssh.SSHClientConnection:
    """Open one SSH connection honouring the host key policy.

    With strict checking disabled, an unverifiable host key is logged and
    the connection is retried without verification.
    """
    logger.info("Opening SSH connection to %s", target)
    try:
        return await asyncssh.connect(
            target.hostname,
            port=target.port,
            username=target.user,
            known_hosts=known_hosts,
            connect_timeout=connect_timeout,
        )
    except asyncssh.HostKeyNotVerifiable as e:
        if strict_host_key_checking:
            logger.error(
                "Host key verification failed for %s: %s. "
                "Add the host key to %s or set "
                "WAZUH_ROLLOUT_STRICT_HOST_KEY_CHECKING=false",
                target.hostname,
                e,
                known_hosts,
            )
            raise
        logger.warning(
            "Host key not verified for %s (strict mode disabled): %s",
            target.hostname,
            e,
        )
        return await asyncssh.connect(
            target.hostname,
            port=target.port,
            username=target.user,
            known_hosts=None,
            connect_timeout=connect_timeout,
        )


async def connect_with_retry(
    target: SSHTarget,
    known_hosts: str | None,
    strict_host_key_checking: bool = True,
    connect_timeout: float = 10.0,
    retry_delay: float = 1.0,
) -> asyncssh.SSHClientConnection:
    """Get SSH connection with automatic one-time retry on failure.

    Host key rejections are not retried.

    Args:
        target: SSH target to connect to
        known_hosts: Path to known_hosts, or None to disable verification
        strict_host_key_checking: Whether to reject unknown host keys
        connect_timeout: Seconds allowed for each connection attempt
        retry_delay: Seconds to wait before the retry

    Returns:
        Active SSH connection

    Raises:
        SSHConnectError: If connection fails after retry
    """
    try:
        return await open_connection(target, known_hosts, strict_host_key_checking, connect_timeout)
    except asyncssh.HostKeyNotVerifiable as e:
        raise SSHConnectError(target, e) from e
    except (OSError, asyncio.TimeoutError, asyncssh.Error) as first_error:
        logger.warning("Connection to %s failed: %s, retrying", target, first_error)

    await asyncio.sleep(retry_delay)
    try:
        conn = await open_connection(target, known_hosts, strict_host_key_checking, connect_timeout)
    except (OSError, asyncio.TimeoutError, asyncssh.Error) as retry_error:
        logger.error("Retry connection to %s failed: %s", target, retry_error)
        raise SSHConnectError(target, retry_error) from retry_error

    logger.info("Retry connection to %s succeeded", target)
    return conn
