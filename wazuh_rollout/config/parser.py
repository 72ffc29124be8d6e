"""Host list file parser.

Reads a CSV host list (`host[,label[,group]]`, `#` comments) and produces
HostTask values in input order.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from wazuh_rollout.errors import ConfigurationError
from wazuh_rollout.models import HostTask

logger = logging.getLogger(__name__)

MAX_FIELDS = 3


class HostListParser:
    """Parser for host list files.

    Blank lines and lines starting with `#` are ignored. Records whose host
    field is empty are skipped with a warning. An input with no valid
    records is a ConfigurationError.
    """

    def __init__(self, path: Path | str | None = None, lines: Iterable[str] | None = None):
        """Initialize host list parser.

        Args:
            path: Path to the host list file
            lines: Pre-read lines, used instead of reading path
        """
        if path is None and lines is None:
            raise ValueError("Either path or lines is required")

        self.path = Path(path) if path is not None else None
        self._lines = list(lines) if lines is not None else None

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "HostListParser":
        """Create a parser over in-memory lines."""
        return cls(lines=lines)

    @property
    def source(self) -> str:
        """Name of the input for log messages."""
        return str(self.path) if self.path is not None else "<lines>"

    def parse(self) -> list[HostTask]:
        """Parse the host list and return tasks in input order.

        Returns:
            Ordered list of HostTask

        Raises:
            ConfigurationError: If the file is unreadable or has no valid records
        """
        tasks: list[HostTask] = []

        for line_number, raw in enumerate(self._read_lines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            task = self._parse_record(line, line_number)
            if task is not None:
                tasks.append(task)

        if not tasks:
            raise ConfigurationError(f"No valid host entries found in {self.source}")

        logger.info("Parsed %d host(s) from %s", len(tasks), self.source)
        return tasks

    def _read_lines(self) -> list[str]:
        """Read input lines from memory or disk.

        Raises:
            ConfigurationError: If the file is missing or unreadable
        """
        if self._lines is not None:
            return self._lines

        if self.path is None:
            raise ConfigurationError("No host list given")
        if not self.path.is_file():
            raise ConfigurationError(f"Host list file not found: {self.path}")

        try:
            logger.debug("Reading host list from %s", self.path)
            return self.path.read_text(encoding="utf-8-sig").splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read host list {self.path}: {e}") from e

    def _parse_record(self, line: str, line_number: int) -> HostTask | None:
        """Parse one `host[,label[,group]]` record.

        Args:
            line: Stripped, non-comment line
            line_number: 1-based line number for warnings

        Returns:
            HostTask, or None if the record is invalid
        """
        fields = [part.strip() for part in line.split(",")]
        if len(fields) > MAX_FIELDS:
            logger.warning(
                "%s:%d has %d fields, ignoring everything after the third",
                self.source,
                line_number,
                len(fields),
            )
            fields = fields[:MAX_FIELDS]

        # Pad to host, label, group
        fields += [""] * (MAX_FIELDS - len(fields))
        host, label, group = fields

        if not host:
            logger.warning("%s:%d has an empty host, skipping: %r", self.source, line_number, line)
            return None

        return HostTask.create(host, label or None, group or None)
