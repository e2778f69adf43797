"""Shared constants for hetznerrunner."""

from pathlib import Path

WAIT_SEC = 10
HTTP_TIMEOUT = 30.0

HETZNER_API_URL = "https://api.hetzner.cloud/v1"
HETZNER_CONSOLE_URL = "https://console.hetzner.cloud/projects"
GITHUB_API_URL = "https://api.github.com"
GITHUB_SERVER_URL = "https://github.com"
GITHUB_API_VERSION = "2022-11-28"

MODES = ("create", "delete")
BOOLEAN_VALUES = ("true", "false")
NULL_SENTINEL = "null"
RESERVED_NAMES = ("hetzner",)

CAPACITY_FAILURE_MARKERS = ("resource_unavailable", "resource_limit_exceeded")
SERVER_RUNNING = "running"

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
CLOUD_INIT_TEMPLATE = TEMPLATES_DIR / "cloud-init.template.yml"
SERVER_TEMPLATE = TEMPLATES_DIR / "create-server.template.json"
INSTALL_SCRIPT = TEMPLATES_DIR / "install.sh"

DEFAULT_CONFIG_FILE = ".hetznerrunner.yml"
