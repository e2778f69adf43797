"""Server creation request rendering for the Hetzner Cloud API."""

import json
import re
from string import Template
from typing import Any, Dict

from hetznerrunner.errors import RenderError
from hetznerrunner.models import BootstrapPayload, RunnerConfig, ServerCreateRequest

PLACEHOLDER = re.compile(
    r"^\$(?:\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)\}|(?P<named>[A-Za-z_][A-Za-z0-9_]*))$"
)


class ServerRequestBuilder:
    """Populates the create-server template and appends optional fields.

    A string value that is exactly one placeholder takes the typed value
    (booleans stay booleans), any other string is substituted as text.
    """

    def __init__(self, logger):
        self.logger = logger

    def build_variables(self, config: RunnerConfig, payload: BootstrapPayload) -> Dict[str, Any]:
        return {
            "name": config.name,
            "location": config.location,
            "image": config.image,
            "server_type": config.server_type,
            "enable_ipv4": config.enable_ipv4,
            "enable_ipv6": config.enable_ipv6,
            "runner_version": config.runner_version,
            "github_owner_id": config.github_owner_id,
            "github_repo_id": config.github_repo_id,
            "cloud_init_yml": payload.content,
        }

    def render(
        self,
        config: RunnerConfig,
        payload: BootstrapPayload,
        template_text: str,
    ) -> ServerCreateRequest:
        try:
            template = json.loads(template_text)
        except ValueError as exc:
            raise RenderError(f"Invalid server request template: {exc}") from exc

        if not isinstance(template, dict):
            raise RenderError("Server request template must contain a JSON object at the root.")

        variables = self.build_variables(config, payload)
        request = ServerCreateRequest(body=self._resolve(template, variables))
        self.apply_optional_fields(request, config)
        return request.freeze()

    def _resolve(self, value: Any, variables: Dict[str, Any]) -> Any:
        if isinstance(value, dict):
            return {key: self._resolve(item, variables) for key, item in value.items()}
        if isinstance(value, list):
            return [self._resolve(item, variables) for item in value]
        if not isinstance(value, str):
            return value

        match = PLACEHOLDER.match(value)
        if match:
            key = match.group("braced") or match.group("named")
            if key not in variables:
                raise RenderError(f"Server request template references unknown variable: {key}")
            return variables[key]

        try:
            return Template(value).substitute(
                {key: str(item).lower() if isinstance(item, bool) else str(item)
                 for key, item in variables.items()}
            )
        except (KeyError, ValueError) as exc:
            raise RenderError(f"Could not populate server request template value '{value}': {exc}") from exc

    def apply_optional_fields(self, request: ServerCreateRequest, config: RunnerConfig):
        if request.frozen:
            raise RenderError("Server request is already frozen.")

        body = request.body
        if config.primary_ipv4 is not None:
            body.setdefault("public_net", {})["ipv4"] = config.primary_ipv4
            self.logger.info("Primary IPv4 ID added to server request.")
        if config.primary_ipv6 is not None:
            body.setdefault("public_net", {})["ipv6"] = config.primary_ipv6
            self.logger.info("Primary IPv6 ID added to server request.")
        if config.network is not None:
            self._append(body, "networks", config.network)
            self.logger.info("Network added to server request.")
        if config.ssh_key is not None:
            self._append(body, "ssh_keys", config.ssh_key)
            self.logger.info("SSH key added to server request.")
        if config.volume is not None:
            self._append(body, "volumes", config.volume)
            self.logger.info("Volume added to server request.")

    @staticmethod
    def _append(body: Dict[str, Any], key: str, value: int):
        current = body.get(key)
        if current is None:
            body[key] = [value]
        elif isinstance(current, list):
            current.append(value)
        else:
            raise RenderError(f"Server request field '{key}' must be a list.")
