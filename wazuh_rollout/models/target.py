"""SSH target data model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SSHTarget:
    """Parsed `[user@]host[:port]` connection target."""

    hostname: str
    user: str | None = None
    port: int = 22

    def __str__(self) -> str:
        prefix = f"{self.user}@" if self.user else ""
        return f"{prefix}{self.hostname}:{self.port}"
