"""Configuration loader for hetznerrunner."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from hetznerrunner.errors import ConfigurationError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "mode",
        "name",
        "location",
        "image",
        "server_type",
        "enable_ipv4",
        "enable_ipv6",
        "create_wait",
        "delete_wait",
        "runner_wait",
        "server_wait",
        "network",
        "ssh_key",
        "volume",
        "primary_ipv4",
        "primary_ipv6",
        "runner_dir",
        "runner_version",
        "pre_runner_script",
        "server_id",
        "github_token",
        "hcloud_token",
        "github_repository",
        "github_owner_id",
        "github_repo_id",
        "github_api_url",
        "github_server_url",
        "hetzner_api_url",
        "cloud_init_template",
        "server_template",
        "install_script",
        "http_timeout",
        "verbose",
        "log_file",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigurationError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ConfigurationError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise ConfigurationError(f"Unknown configuration keys: {unknown_list}")

        return parsed
