"""Shell command safety utilities."""

import shlex


def shell_assign(name: str, value: str) -> str:
    """Render a `NAME=value` shell assignment with the value quoted."""
    return f"{name}={shlex.quote(value)}"
