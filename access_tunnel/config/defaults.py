"""Project-wide default values for the access tunnel.

Paths, ports and timings used by the provisioning and tunnel steps are kept
here so they can be audited in one place.
"""

AUTHORIZED_KEYS_PATH = "~/.ssh/authorized_keys"
KICKSTART_PATH = (
    "/System/Library/CoreServices/RemoteManagement/ARDAgent.app/Contents/Resources/kickstart"
)

TUNNEL_BINARY = "ngrok"
TUNNEL_INSTALL_DIR = "/usr/local/bin"
TUNNEL_DOWNLOAD_URL = "https://bin.equinox.io/c/4VmDzA7iaHb/ngrok-stable-darwin-amd64.zip"
TUNNEL_DOWNLOAD_TIMEOUT_SECONDS = 120
# JSON is valid YAML, so the tunnel binary reads this file as-is.
TUNNEL_DESCRIPTOR_PATH = "/tmp/ngrok-config.yml"
CONTROL_API_URL = "http://127.0.0.1:4040/api/tunnels"

SSH_LOCAL_PORT = 22
VNC_LOCAL_PORT = 5900

DISCOVERY_MAX_ATTEMPTS = 3
DISCOVERY_RETRY_DELAY_SECONDS = 5.0
DISCOVERY_REQUEST_TIMEOUT_SECONDS = 10
IDLE_TICK_SECONDS = 10

# 环境变量名称
ENV_SSH_PUBLIC_KEY = "ssh_public_key"
ENV_DESKTOP_PASSWORD = "user_and_screen_share_password"
ENV_TUNNEL_AUTH_TOKEN = "ngrok_auth_token"
ENV_DEBUG = "is_step_debug_mode"

TRUTHY_VALUES = ("true", "1", "yes")
