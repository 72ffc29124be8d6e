"""Host task data model."""

from dataclasses import dataclass

DEFAULT_GROUP = "default"


@dataclass(frozen=True)
class HostTask:
    """One target machine to deploy an agent onto.

    Defaults for label and group are applied once, by the host list parser.
    """

    host: str
    label: str
    group: str = DEFAULT_GROUP

    @classmethod
    def create(
        cls,
        host: str,
        label: str | None = None,
        group: str | None = None,
    ) -> "HostTask":
        """Build a task, filling in defaults for missing optional fields.

        Args:
            host: Connection target (hostname, IP or user@host)
            label: Logical name, defaults to host
            group: Agent group, defaults to DEFAULT_GROUP

        Returns:
            HostTask with all fields populated

        Raises:
            ValueError: If host is empty
        """
        if not host:
            raise ValueError("Host cannot be empty")
        return cls(host=host, label=label or host, group=group or DEFAULT_GROUP)
