"""Exception hierarchy for wazuh-rollout.

- ConfigurationError: invalid or empty input, fatal before dispatch
- InfrastructureError: required tooling unreachable
- TaskFailure: one host failed, always recovered by the dispatcher
"""


class RolloutError(Exception):
    """Base class for rollout errors."""

    pass


class ConfigurationError(RolloutError):
    """Host list or settings are invalid."""

    pass


class InfrastructureError(RolloutError):
    """Required tooling (kubectl, deploy script, cluster) is unavailable."""

    pass


class TaskFailure(RolloutError):
    """A single host deployment failed."""

    def __init__(self, host: str, reason: str):
        """Initialize task failure.

        Args:
            host: Connection target of the failed task
            reason: Human readable failure reason
        """
        self.host = host
        self.reason = reason
        super().__init__(f"Deployment to {host} failed: {reason}")
