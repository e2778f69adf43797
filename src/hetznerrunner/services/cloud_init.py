"""cloud-init bootstrap payload rendering."""

import base64
from pathlib import Path
from string import Template
from typing import Dict

from hetznerrunner.errors import TemplateError
from hetznerrunner.models import BootstrapPayload, RegistrationToken, RunnerConfig


class CloudInitService:
    """Renders the cloud-init document that installs and registers the runner."""

    def __init__(self, logger):
        self.logger = logger

    @staticmethod
    def encode(text: str) -> str:
        return base64.b64encode(text.encode("utf-8")).decode("ascii")

    def load_template(self, path) -> str:
        return self._read(path, "cloud-init template")

    def load_install_script(self, path) -> str:
        return self._read(path, "runner install script")

    def _read(self, path, label: str) -> str:
        file_path = Path(path)
        if not file_path.is_file():
            raise TemplateError(f"The {label} '{file_path}' was not found!")
        try:
            return file_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplateError(f"Could not read {label} '{file_path}': {exc}") from exc

    def build_variables(
        self,
        config: RunnerConfig,
        token: RegistrationToken,
        install_script: str,
    ) -> Dict[str, str]:
        return {
            "github_owner": config.github_owner,
            "github_repo_name": config.github_repo_name,
            "github_repository": config.github_repository,
            "github_server_url": config.github_server_url,
            "runner_registration_token": token.token,
            "install_sh_base64": self.encode(install_script),
            # trailing newline matches `echo "$script" | base64`
            "pre_runner_script_base64": self.encode(f"{config.pre_runner_script}\n"),
            "runner_name": config.name,
            "runner_dir": config.runner_dir,
            "runner_version": config.runner_version,
        }

    def render(self, template_text: str, variables: Dict[str, str]) -> str:
        try:
            return Template(template_text).substitute(variables)
        except KeyError as exc:
            raise TemplateError(
                f"cloud-init template references unset variable: {exc.args[0]}"
            ) from exc
        except ValueError as exc:
            raise TemplateError(f"Invalid placeholder in cloud-init template: {exc}") from exc

    def build(
        self,
        config: RunnerConfig,
        token: RegistrationToken,
        install_script: str,
        template_text: str,
    ) -> BootstrapPayload:
        variables = self.build_variables(config, token, install_script)
        content = self.render(template_text, variables)
        self.logger.debug("Rendered cloud-init document (%s bytes).", len(content))
        return BootstrapPayload(content=content)
