"""Entry point for `python -m wazuh_rollout`."""

from wazuh_rollout.cli import app

if __name__ == "__main__":
    app(prog_name="wazuh-rollout")
