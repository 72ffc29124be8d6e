"""Colorful console logging formatter for rollout progress."""

import logging
import re
from datetime import datetime

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

# Log level colors
LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Component colors for logger names
COMPONENT_COLORS = {
    "wazuh_rollout.services.dispatcher": COLORS["bright_magenta"],
    "wazuh_rollout.services.orchestrator": COLORS["bright_cyan"],
    "wazuh_rollout.services.operations": COLORS["bright_blue"],
    "wazuh_rollout.services.manager": COLORS["cyan"],
    "wazuh_rollout.services": COLORS["blue"],
    "wazuh_rollout.config": COLORS["green"],
    "default": COLORS["white"],
}

PREFIX = "wazuh_rollout."

STATUS_PATTERN = re.compile(r"\b(SUCCESS|FAILED)\b")
DURATION_PATTERN = re.compile(r"(\d+\.?\d*s)\b")
SSH_PATTERN = re.compile(r"([\w.\-]+@[\w.\-]+:\d+)")
PROGRESS_PATTERN = re.compile(r"(\[\d+/\d+\])")


class ColorfulFormatter(logging.Formatter):
    """Colorful log formatter with component highlighting."""

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors.
        """
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _get_component_color(self, name: str) -> str:
        """Get color for a logger name/component."""
        for prefix, color in COMPONENT_COLORS.items():
            if prefix != "default" and name.startswith(prefix):
                return color
        return COMPONENT_COLORS["default"]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        return f"{dt.strftime('%H:%M:%S')}.{int(record.msecs):03d}"

    def _format_level(self, record: logging.LogRecord) -> str:
        """Format log level with color and fixed width."""
        level = record.levelname
        color = LEVEL_COLORS.get(level, COLORS["white"])
        return self._colorize(f"{level:<8}", color)

    def _format_component(self, record: logging.LogRecord) -> str:
        """Format component/logger name with color."""
        name = record.name
        if name.startswith(PREFIX):
            name = name[len(PREFIX) :]
        color = self._get_component_color(record.name)
        return self._colorize(f"{name:<22}", color)

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with colors."""
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._format_level(record)
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())

        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

    def _highlight_message(self, message: str) -> str:
        """Highlight statuses, progress counters, durations and SSH targets."""
        if not self.use_colors:
            return message

        def status_color(match: re.Match[str]) -> str:
            color = COLORS["bright_green"] if match.group(1) == "SUCCESS" else COLORS["bright_red"]
            return f"{color}{match.group(1)}{COLORS['reset']}"

        message = STATUS_PATTERN.sub(status_color, message)
        message = PROGRESS_PATTERN.sub(f"{COLORS['bold']}\\1{COLORS['reset']}", message)
        message = DURATION_PATTERN.sub(f"{COLORS['bright_yellow']}\\1{COLORS['reset']}", message)
        message = SSH_PATTERN.sub(f"{COLORS['bright_magenta']}\\1{COLORS['reset']}", message)
        return message


class RolloutFormatter(ColorfulFormatter):
    """Extended formatter with rollout event indicators."""

    def format(self, record: logging.LogRecord) -> str:
        """Format with a leading marker for notable events."""
        base = super().format(record)

        if not self.use_colors:
            return base

        message = record.getMessage()
        lowered = message.lower()

        if "FAILED" in message or record.levelno >= logging.ERROR:
            return f"{COLORS['bright_red']}!!{COLORS['reset']}  {base}"
        elif "SUCCESS" in message or "completed" in lowered:
            return f"{COLORS['bright_green']}OK{COLORS['reset']}  {base}"
        elif record.levelno == logging.WARNING:
            return f"{COLORS['bright_yellow']}!{COLORS['reset']}   {base}"
        elif "deploying to" in lowered or "starting" in lowered:
            return f"{COLORS['bright_cyan']}>>{COLORS['reset']}  {base}"

        return f"    {base}"
