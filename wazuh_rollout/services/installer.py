"""Remote Wazuh agent installer payload.

The payload is piped into `sudo bash -s` on the target host. It replaces
any existing agent, installs `wazuh-agent` from the Wazuh apt repository
with enrollment settings in the environment, pins the manager address in
ossec.conf and starts the service.
"""

from wazuh_rollout.models import ManagerEndpoints
from wazuh_rollout.utils.shell import shell_assign

WAZUH_GPG_KEY_URL = "https://packages.wazuh.com/key/GPG-KEY-WAZUH"
WAZUH_APT_REPO = "https://packages.wazuh.com/4.x/apt/"
WAZUH_KEYRING = "/usr/share/keyrings/wazuh.gpg"
OSSEC_CONF = "/var/ossec/etc/ossec.conf"
START_WAIT_SECONDS = 5

REMOTE_COMMAND = "sudo bash -s"


def render_install_script(
    endpoints: ManagerEndpoints,
    agent_name: str,
    agent_group: str,
) -> str:
    """Render the installer script for one host.

    Args:
        endpoints: Resolved manager endpoints and enrollment password
        agent_name: Name the agent registers under
        agent_group: Agent group to enroll into

    Returns:
        Bash script text; every substituted value is shell-quoted
    """
    header = [
        "#!/bin/bash",
        "set -euo pipefail",
        shell_assign("WAZUH_MANAGER", endpoints.manager_host),
        shell_assign("WAZUH_REGISTRATION_SERVER", endpoints.registration_host),
        shell_assign("AGENT_PASSWORD", endpoints.password),
        shell_assign("AGENT_NAME", agent_name),
        shell_assign("AGENT_GROUP", agent_group),
    ]

    body = [
        'echo "Starting Wazuh agent installation on $(hostname)"',
        "if [[ $EUID -ne 0 ]]; then",
        '  echo "This script must be run as root or with sudo" >&2',
        "  exit 1",
        "fi",
        "if [[ ! -f /etc/os-release ]]; then",
        '  echo "Cannot detect OS version" >&2',
        "  exit 1",
        "fi",
        ". /etc/os-release",
        'echo "Detected OS: ${ID} ${VERSION_ID:-}"',
        # Remove an existing agent
        "if systemctl is-active --quiet wazuh-agent 2>/dev/null; then",
        '  echo "Existing Wazuh agent detected, removing"',
        "  systemctl stop wazuh-agent || true",
        "  systemctl disable wazuh-agent || true",
        "fi",
        "if dpkg -l | grep -q wazuh-agent; then",
        "  apt-get remove --purge -y wazuh-agent || true",
        "  rm -rf /var/ossec",
        "fi",
        # Repository
        "apt-get update -qq",
        "apt-get install -y curl apt-transport-https lsb-release gnupg",
        f"curl -s {WAZUH_GPG_KEY_URL} | gpg --no-default-keyring "
        f"--keyring gnupg-ring:{WAZUH_KEYRING} --import",
        f"chmod 644 {WAZUH_KEYRING}",
        f'echo "deb [signed-by={WAZUH_KEYRING}] {WAZUH_APT_REPO} stable main" '
        "> /etc/apt/sources.list.d/wazuh.list",
        "apt-get update -qq",
        # Install with enrollment settings
        'WAZUH_MANAGER="$WAZUH_MANAGER" \\',
        'WAZUH_REGISTRATION_SERVER="$WAZUH_REGISTRATION_SERVER" \\',
        'WAZUH_REGISTRATION_PASSWORD="$AGENT_PASSWORD" \\',
        'WAZUH_AGENT_NAME="$AGENT_NAME" \\',
        'WAZUH_AGENT_GROUP="$AGENT_GROUP" \\',
        "apt-get install -y wazuh-agent",
        "if [[ ! -f /var/ossec/bin/wazuh-control ]]; then",
        '  echo "Wazuh agent installation failed" >&2',
        "  exit 1",
        "fi",
        f'if ! grep -q "<address>$WAZUH_MANAGER</address>" {OSSEC_CONF}; then',
        f'  sed -i "s|<address>.*</address>|<address>$WAZUH_MANAGER</address>|g" {OSSEC_CONF}',
        "fi",
        # Start
        "systemctl daemon-reload",
        "systemctl enable wazuh-agent",
        "systemctl start wazuh-agent",
        f"sleep {START_WAIT_SECONDS}",
        "if ! systemctl is-active --quiet wazuh-agent; then",
        '  echo "Wazuh agent failed to start" >&2',
        "  systemctl status wazuh-agent --no-pager || true",
        "  exit 1",
        "fi",
        "/var/ossec/bin/wazuh-control status || true",
        "if [[ -s /var/ossec/etc/client.keys ]]; then",
        "  echo \"Agent registered, ID: $(grep -v '^$' /var/ossec/etc/client.keys | cut -d' ' -f1)\"",
        "else",
        '  echo "Agent not registered yet (may take a few moments)"',
        "fi",
        'echo "Wazuh agent deployment completed"',
    ]

    return "\n".join(header + body) + "\n"
