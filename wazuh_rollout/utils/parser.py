"""SSH connection target parsing."""

from wazuh_rollout.models import SSHTarget
from wazuh_rollout.utils.validation import validate_hostname


def parse_ssh_target(
    target: str,
    default_user: str | None = None,
    default_port: int = 22,
) -> SSHTarget:
    """Parse an SSH connection target.

    Formats:
        - "host" / "192.168.1.10"
        - "user@host"
        - "host:2222" / "user@host:2222"
        - "[2001:db8::1]:2222" (bracketed IPv6 with port)

    Returns:
        SSHTarget with parsed components.

    Raises:
        ValueError: If target format is invalid.
    """
    target = target.strip()
    if not target:
        raise ValueError("Target cannot be empty")

    # Split on last @ only
    user, sep, rest = target.rpartition("@")
    if sep and not user:
        raise ValueError(f"Invalid target '{target}': empty user")
    if not sep:
        user = ""

    hostname = rest
    port = default_port

    if rest.startswith("["):
        # Bracketed IPv6, optional :port after the bracket
        end = rest.find("]")
        if end == -1:
            raise ValueError(f"Invalid target '{target}': unclosed bracket")
        hostname = rest[1:end]
        suffix = rest[end + 1 :]
        if suffix:
            if not suffix.startswith(":"):
                raise ValueError(f"Invalid target '{target}'")
            port = _parse_port(suffix[1:], target)
    elif rest.count(":") == 1:
        hostname, port_str = rest.split(":", 1)
        port = _parse_port(port_str, target)

    if ":" not in hostname:
        hostname = validate_hostname(hostname)
    elif not hostname:
        raise ValueError("Host cannot be empty")

    return SSHTarget(hostname=hostname, user=user or default_user, port=port)


def _parse_port(value: str, target: str) -> int:
    """Parse a TCP port from a target suffix."""
    try:
        port = int(value)
    except ValueError:
        raise ValueError(f"Invalid port in target '{target}': {value!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"Port out of range in target '{target}': {port}")
    return port
