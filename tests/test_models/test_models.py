"""Tests for rollout data models."""

import dataclasses
from pathlib import Path

import pytest

from wazuh_rollout.models import (
    DEFAULT_GROUP,
    CommandResult,
    DeploymentResult,
    DeploymentStatus,
    HostTask,
    ManagerEndpoints,
    RegisteredAgent,
    SSHTarget,
)


def test_host_task_defaults() -> None:
    """Label defaults to host and group to the default group."""
    task = HostTask.create("10.0.0.1")

    assert task.label == "10.0.0.1"
    assert task.group == DEFAULT_GROUP


def test_host_task_requires_host() -> None:
    with pytest.raises(ValueError):
        HostTask.create("")


def test_host_task_is_immutable() -> None:
    """Tasks cannot change after parse."""
    task = HostTask.create("h1", "web")

    with pytest.raises(dataclasses.FrozenInstanceError):
        task.label = "other"  # type: ignore[misc]


def test_deployment_result_status() -> None:
    task = HostTask.create("h1")
    ok = DeploymentResult(task, DeploymentStatus.SUCCESS, Path("h1.log"), 1)
    failed = DeploymentResult(task, DeploymentStatus.FAILURE, Path("h1.log"), 2, error="exit code 3")

    assert ok.succeeded
    assert not failed.succeeded
    assert DeploymentStatus.FAILURE.value == "FAILED"


def test_command_result_combined() -> None:
    """Combined output joins stdout and stderr on separate lines."""
    assert CommandResult("out", "", 0).combined == "out"
    assert CommandResult("", "err", 1).combined == "err"
    assert CommandResult("out", "err", 1).combined == "out\nerr"
    assert CommandResult("out\n", "err", 1).combined == "out\nerr"
    assert not CommandResult("", "", 2).ok


def test_manager_endpoints() -> None:
    endpoints = ManagerEndpoints(domain="example.org", password="pw")

    assert endpoints.manager_host == "wazuh-manager.example.org"
    assert endpoints.registration_host == "wazuh-registration.example.org"
    assert (endpoints.manager_port, endpoints.registration_port) == (1514, 1515)
    assert "pw" not in str(endpoints.manager_host)


def test_registered_agent_active() -> None:
    assert RegisteredAgent("001", "web-01", "10.0.0.5", "Active").is_active
    assert not RegisteredAgent("002", "db", "any", "Disconnected").is_active


def test_ssh_target_str() -> None:
    assert str(SSHTarget("db.internal", "ubuntu", 2222)) == "ubuntu@db.internal:2222"
    assert str(SSHTarget("db.internal")) == "db.internal:22"
