"""Host and filename validation utilities."""

import re
from typing import Final

# Characters that could enable injection when a host reaches a shell
SUSPICIOUS_CHARS: Final[list[str]] = ["/", "\\", ";", "&", "|", "$", "`", "\n", "\r", "\x00", " "]

UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._@-]+")


def validate_hostname(hostname: str) -> str:
    """Validate a host name or address.

    Args:
        hostname: The host name to validate

    Returns:
        Validated host name

    Raises:
        ValueError: If host name is invalid
    """
    if not hostname:
        raise ValueError("Host cannot be empty")

    if len(hostname) > 253:
        raise ValueError(f"Host name too long: {len(hostname)} chars")

    for char in SUSPICIOUS_CHARS:
        if char in hostname:
            raise ValueError(f"Host contains invalid characters: {hostname!r}")

    return hostname


def safe_filename(label: str) -> str:
    """Turn a task label into a filename component.

    Path separators and other unsafe characters collapse to `_`; the
    result is never empty and never a dot-only name.
    """
    cleaned = UNSAFE_FILENAME.sub("_", label).strip("._")
    return cleaned or "host"
