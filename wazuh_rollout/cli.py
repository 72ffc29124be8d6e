"""Command-line interface for wazuh-rollout.

Commands:
- deploy: install agents on every host of a host list
- validate: parse a host list and print the resulting tasks
- agents: list agents registered with the manager
"""

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer

from wazuh_rollout import __version__
from wazuh_rollout.config import Config, HostListParser, Settings
from wazuh_rollout.errors import ConfigurationError, InfrastructureError
from wazuh_rollout.services.manager import ManagerClient
from wazuh_rollout.services.orchestrator import Orchestrator
from wazuh_rollout.utils.console import RolloutFormatter

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="wazuh-rollout",
    help="Bulk Wazuh agent deployment with bounded concurrency.",
    no_args_is_help=True,
    add_completion=False,
)


def configure_logging(level: str = "INFO", use_colors: bool = True) -> None:
    """Install the console handler on the wazuh_rollout logger.

    Replaces any handler installed by a previous call, so repeated
    invocations in one process always log to the current stderr.
    """
    if not sys.stderr.isatty():
        use_colors = False

    package_logger = logging.getLogger("wazuh_rollout")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(RolloutFormatter(use_colors=use_colors))
    package_logger.addHandler(handler)
    package_logger.propagate = False

    # Suppress noisy third-party loggers
    logging.getLogger("asyncssh").setLevel(logging.WARNING)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"wazuh-rollout {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Bulk Wazuh agent deployment with bounded concurrency."""


@app.command()
def deploy(
    host_list: Path = typer.Argument(..., help="CSV file with host[,label[,group]] lines"),
    parallel: Optional[int] = typer.Option(
        None, "--parallel", "-p", help="Maximum concurrent deployments (default 1)"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-host timeout in seconds, 0 for none"
    ),
    mode: Optional[str] = typer.Option(
        None, "--mode", help="Single-host operation: script or ssh"
    ),
    deploy_script: Optional[Path] = typer.Option(
        None, "--deploy-script", help="Single-host deploy script (script mode)"
    ),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Directory for run logs"),
    namespace: Optional[str] = typer.Option(
        None, "--namespace", "-n", help="Namespace of the Wazuh manager"
    ),
    no_verify: bool = typer.Option(
        False, "--no-verify", help="Skip the registered agent check after the run"
    ),
) -> None:
    """Deploy Wazuh agents to every host in HOST_LIST.

    Exits 0 if every deployment succeeded, 1 otherwise.
    """
    config = Config.from_env(host_list)
    configure_logging(config.settings.log_level, config.settings.log_colors)

    try:
        config = config.with_overrides(
            parallel=parallel,
            task_timeout=timeout,
            mode=mode,
            deploy_script=deploy_script,
            log_dir=log_dir,
            namespace=namespace,
            verify=False if no_verify else None,
        )
        orchestrator = Orchestrator(config, emit=lambda text: typer.echo(text, nl=False))
        report = asyncio.run(orchestrator.run())
    except ConfigurationError as e:
        logger.error("Invalid input: %s", e)
        raise typer.Exit(code=1) from e
    except InfrastructureError as e:
        logger.error("Preflight failed: %s", e)
        raise typer.Exit(code=1) from e

    raise typer.Exit(code=report.exit_code)


@app.command()
def validate(
    host_list: Path = typer.Argument(..., help="CSV file with host[,label[,group]] lines"),
) -> None:
    """Parse HOST_LIST and print the tasks it describes."""
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_colors)

    try:
        tasks = HostListParser(host_list).parse()
    except ConfigurationError as e:
        logger.error("Invalid input: %s", e)
        raise typer.Exit(code=1) from e

    for index, task in enumerate(tasks, start=1):
        typer.echo(f"[{index}/{len(tasks)}] {task.host} (agent: {task.label}, group: {task.group})")
    typer.echo(f"{len(tasks)} host(s) valid")


@app.command()
def agents(
    namespace: Optional[str] = typer.Option(
        None, "--namespace", "-n", help="Namespace of the Wazuh manager"
    ),
) -> None:
    """List agents registered with the Wazuh manager."""
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_colors)
    if namespace:
        settings = replace(settings, namespace=namespace)

    client = ManagerClient.from_settings(settings)
    try:
        _, lines = asyncio.run(client.list_agents())
    except InfrastructureError as e:
        logger.error("Cannot list agents: %s", e)
        raise typer.Exit(code=1) from e

    for line in lines:
        typer.echo(line)


if __name__ == "__main__":
    app()
