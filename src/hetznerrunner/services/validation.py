"""Input validation for hetznerrunner."""

import random
import re
from typing import Any, Dict, Mapping, Optional

from hetznerrunner.constants import (
    BOOLEAN_VALUES,
    GITHUB_API_URL,
    GITHUB_SERVER_URL,
    HETZNER_API_URL,
    HTTP_TIMEOUT,
    MODES,
    NULL_SENTINEL,
    RESERVED_NAMES,
)
from hetznerrunner.errors import ValidationError
from hetznerrunner.models import RunnerConfig

UNSIGNED_INT = re.compile(r"^[0-9]+$")
NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")
IMAGE_PATTERN = re.compile(r"^[a-zA-Z0-9._-]{1,63}$")
RUNNER_DIR_PATTERN = re.compile(r"^/([^/]+/)*[^/]+$")
RUNNER_VERSION_PATTERN = re.compile(r"^[0-9.]{1,63}$")
REPOSITORY_PATTERN = re.compile(r"^[^/\s]+/[^/\s]+$")


class ValidationService:
    """Turns raw, environment style inputs into a ``RunnerConfig``.

    Unset and empty values fall back to their defaults. Every rejection is a
    ``ValidationError`` naming the offending field.
    """

    DEFAULTS = {
        "mode": "create",
        "location": "nbg1",
        "image": "ubuntu-24.04",
        "server_type": "cx23",
        "enable_ipv4": "true",
        "enable_ipv6": "true",
        "create_wait": "360",
        "delete_wait": "360",
        "runner_wait": "60",
        "server_wait": "30",
        "network": NULL_SENTINEL,
        "ssh_key": NULL_SENTINEL,
        "volume": NULL_SENTINEL,
        "primary_ipv4": NULL_SENTINEL,
        "primary_ipv6": NULL_SENTINEL,
        "runner_dir": "/actions-runner",
        "runner_version": "latest",
        "pre_runner_script": "",
        "github_owner_id": "0",
        "github_repo_id": "0",
        "github_api_url": GITHUB_API_URL,
        "github_server_url": GITHUB_SERVER_URL,
        "hetzner_api_url": HETZNER_API_URL,
    }
    WAIT_FIELDS = ("create_wait", "delete_wait", "runner_wait", "server_wait")
    BOOLEAN_FIELDS = ("enable_ipv4", "enable_ipv6")
    NULLABLE_ID_FIELDS = ("network", "ssh_key", "volume", "primary_ipv4", "primary_ipv6")

    def __init__(self, random_module=random):
        self.random = random_module

    @staticmethod
    def normalize(value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        text = str(value).strip()
        return text or None

    def _get(self, values: Mapping[str, Any], key: str) -> str:
        value = self.normalize(values.get(key))
        if value is None:
            return self.DEFAULTS.get(key, "")
        return value

    def default_name(self) -> str:
        return f"gh-runner-{self.random.randint(0, 32767)}"

    def validate_mode(self, mode: str) -> str:
        if mode not in MODES:
            raise ValidationError("mode", "Mode must be 'create' or 'delete'.")
        return mode

    def validate_name(self, name: str) -> str:
        if not NAME_PATTERN.match(name):
            raise ValidationError("name", f"'{name}' is not a valid hostname or label!")
        if name in RESERVED_NAMES:
            raise ValidationError("name", f"'{name}' is not allowed as hostname!")
        return name

    def validate_wait(self, field: str, value: str) -> int:
        if not UNSIGNED_INT.match(value):
            raise ValidationError(
                field,
                f"The maximum retries '{field}' must be an integer, got '{value}'!",
            )
        return int(value)

    def validate_boolean(self, field: str, value: str) -> bool:
        if value not in BOOLEAN_VALUES:
            raise ValidationError(field, f"'{field}' must be 'true' or 'false'.")
        return value == "true"

    def validate_nullable_id(self, field: str, value: str) -> Optional[int]:
        if value == NULL_SENTINEL:
            return None
        if not UNSIGNED_INT.match(value):
            raise ValidationError(field, f"The {field} ID must be 'null' or an integer!")
        return int(value)

    def validate_image(self, image: str) -> str:
        if not IMAGE_PATTERN.match(image):
            raise ValidationError("image", f"'{image}' is not a valid OS image name!")
        return image

    def validate_runner_dir(self, runner_dir: str) -> str:
        if not RUNNER_DIR_PATTERN.match(runner_dir):
            raise ValidationError(
                "runner_dir",
                f"'{runner_dir}' is not a valid absolute directory path without a trailing slash!",
            )
        return runner_dir

    def validate_runner_version(self, runner_version: str) -> str:
        if runner_version in ("latest", "skip") or RUNNER_VERSION_PATTERN.match(runner_version):
            return runner_version
        raise ValidationError(
            "runner_version",
            f"'{runner_version}' is not a valid GitHub Actions Runner version! "
            "Enter 'latest', 'skip' or the version without 'v'.",
        )

    def validate_required(self, field: str, value: str, label: str) -> str:
        if not value:
            raise ValidationError(field, f"{label} is required!")
        return value

    def validate_repository(self, repository: str) -> str:
        self.validate_required("github_repository", repository, "GitHub repository")
        if not REPOSITORY_PATTERN.match(repository):
            raise ValidationError(
                "github_repository",
                f"'{repository}' is not a valid repository. Use the 'owner/repo' form.",
            )
        return repository

    def validate_http_timeout(self, value: Any) -> float:
        if value is None or value == "":
            return HTTP_TIMEOUT
        try:
            timeout = float(value)
        except (TypeError, ValueError) as exc:
            raise ValidationError("http_timeout", f"Invalid HTTP timeout '{value}'.") from exc
        if timeout <= 0:
            raise ValidationError("http_timeout", "HTTP timeout must be greater than zero.")
        return timeout

    def validate(self, values: Mapping[str, Any]) -> RunnerConfig:
        raw_name = self.normalize(values.get("name"))

        fields: Dict[str, Any] = {
            "mode": self.validate_mode(self._get(values, "mode")),
            "name": self.validate_name(raw_name if raw_name is not None else self.default_name()),
            "location": self._get(values, "location"),
            "image": self.validate_image(self._get(values, "image")),
            "server_type": self._get(values, "server_type"),
            "runner_dir": self.validate_runner_dir(self._get(values, "runner_dir")),
            "runner_version": self.validate_runner_version(self._get(values, "runner_version")),
            "pre_runner_script": str(values.get("pre_runner_script") or ""),
            "server_id": self.normalize(values.get("server_id")),
            "github_owner_id": self._get(values, "github_owner_id"),
            "github_repo_id": self._get(values, "github_repo_id"),
            "github_api_url": self._get(values, "github_api_url").rstrip("/"),
            "github_server_url": self._get(values, "github_server_url").rstrip("/"),
            "hetzner_api_url": self._get(values, "hetzner_api_url").rstrip("/"),
            "output_file": self.normalize(values.get("output_file")),
            "summary_file": self.normalize(values.get("summary_file")),
            "cloud_init_template": self.normalize(values.get("cloud_init_template")),
            "server_template": self.normalize(values.get("server_template")),
            "install_script": self.normalize(values.get("install_script")),
            "http_timeout": self.validate_http_timeout(values.get("http_timeout")),
        }

        for field in self.WAIT_FIELDS:
            fields[field] = self.validate_wait(field, self._get(values, field))
        for field in self.BOOLEAN_FIELDS:
            fields[field] = self.validate_boolean(field, self._get(values, field))
        for field in self.NULLABLE_ID_FIELDS:
            fields[field] = self.validate_nullable_id(field, self._get(values, field))

        fields["github_token"] = self.validate_required(
            "github_token",
            self._get(values, "github_token"),
            "GitHub Personal Access Token (PAT)",
        )
        fields["hcloud_token"] = self.validate_required(
            "hcloud_token",
            self._get(values, "hcloud_token"),
            "Hetzner Cloud API token",
        )
        fields["github_repository"] = self.validate_repository(
            self._get(values, "github_repository")
        )

        return RunnerConfig(**fields)
