"""Command execution data models."""

from dataclasses import dataclass


@dataclass
class CommandResult:
    """Result of a local or remote command execution."""

    output: str
    error: str
    returncode: int

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.returncode == 0

    @property
    def combined(self) -> str:
        """Stdout followed by stderr, as written to a host log."""
        if not self.error:
            return self.output
        if not self.output:
            return self.error
        separator = "" if self.output.endswith("\n") else "\n"
        return f"{self.output}{separator}{self.error}"
