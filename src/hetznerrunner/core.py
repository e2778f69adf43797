import logging
import re
from typing import Optional, Tuple

import requests
from rich.console import Console

from .constants import (
    CLOUD_INIT_TEMPLATE,
    HETZNER_CONSOLE_URL,
    INSTALL_SCRIPT,
    MODES,
    SERVER_TEMPLATE,
    WAIT_SEC,
)
from .errors import ConfigurationError, RenderError, RunnerError
from .errors_catalog import actionable_error
from .models import ProvisionResult, RunnerConfig, ServerCreateRequest
from .services.cloud_init import CloudInitService
from .services.github import GitHubService
from .services.hetzner import HetznerService
from .services.outputs import OutputService
from .services.retry import RetryPolicy
from .services.server_request import ServerRequestBuilder

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger("hetznerrunner")

SERVER_ID_PATTERN = re.compile(r"^[0-9]+$")


class RunnerProvisioner:
    VALID_MODES = list(MODES)

    def __init__(
        self,
        config: RunnerConfig,
        requests_module=requests,
        wait_seconds: float = WAIT_SEC,
    ):
        self.config = config
        self.wait_seconds = wait_seconds

        self.cloud_init_service = CloudInitService(logger=logger)
        self.server_request_builder = ServerRequestBuilder(logger=logger)
        self.output_service = OutputService(
            logger=logger,
            output_file=config.output_file,
            summary_file=config.summary_file,
        )
        self.hetzner_service = HetznerService(
            token=config.hcloud_token,
            logger=logger,
            console=console,
            base_url=config.hetzner_api_url,
            requests_module=requests_module,
            timeout=config.http_timeout,
        )
        self.github_service = GitHubService(
            token=config.github_token,
            repository=config.github_repository,
            logger=logger,
            console=console,
            base_url=config.github_api_url,
            server_url=config.github_server_url,
            requests_module=requests_module,
            timeout=config.http_timeout,
        )

    def _policy(self, max_attempts: int) -> RetryPolicy:
        return RetryPolicy(max_attempts=max_attempts, delay=self.wait_seconds)

    def load_templates(self) -> Tuple[str, str, str]:
        """Read the install script, cloud-init template and server request template."""
        config = self.config
        install_script = self.cloud_init_service.load_install_script(
            config.install_script or INSTALL_SCRIPT
        )
        cloud_init_template = self.cloud_init_service.load_template(
            config.cloud_init_template or CLOUD_INIT_TEMPLATE
        )

        server_template_path = config.server_template or SERVER_TEMPLATE
        try:
            with open(server_template_path, "r", encoding="utf-8") as file_obj:
                server_template = file_obj.read()
        except OSError as exc:
            raise RenderError(
                f"Could not read server request template '{server_template_path}': {exc}"
            ) from exc

        return install_script, cloud_init_template, server_template

    def build_server_request(self, token, templates: Tuple[str, str, str]) -> ServerCreateRequest:
        """Render cloud-init and the create-server body for a registration token."""
        install_script, cloud_init_template, server_template = templates
        payload = self.cloud_init_service.build(
            config=self.config,
            token=token,
            install_script=install_script,
            template_text=cloud_init_template,
        )

        console.print("[blue]Generate server configuration...[/blue]")
        return self.server_request_builder.render(self.config, payload, server_template)

    def create(self) -> ProvisionResult:
        config = self.config

        templates = self.load_templates()
        token = self.github_service.create_registration_token()
        request = self.build_server_request(token, templates)

        response = self.hetzner_service.create_server(request, self._policy(config.create_wait))
        server_id = self.hetzner_service.extract_server_id(response, attempts=config.create_wait)
        logger.info("Hetzner Cloud Server %s created for runner '%s'.", server_id, config.name)

        self.output_service.set_output("label", config.name)
        self.output_service.set_output("server_id", server_id)

        self.hetzner_service.wait_until_running(server_id, self._policy(config.server_wait))
        runner = self.github_service.wait_for_runner(config.name, self._policy(config.runner_wait))

        runner_url = self.github_service.runner_url(runner.runner_id)
        console_url = HETZNER_CONSOLE_URL
        console.print()
        console.print(
            "[bold green]The Hetzner Cloud Server and its associated GitHub Actions Runner "
            "are ready for use.[/bold green]"
        )
        console.print(f"Server: {server_id} ({console_url})")
        console.print(f"Runner: {runner_url}")
        self.output_service.add_summary(
            f"The Hetzner Cloud Server `{server_id}` and its associated "
            f"[GitHub Actions Runner]({runner_url}) are ready for use 🚀"
        )
        return ProvisionResult(
            mode="create",
            label=config.name,
            server_id=server_id,
            runner_id=runner.runner_id,
            runner_url=runner_url,
            console_url=console_url,
        )

    def delete(self) -> ProvisionResult:
        config = self.config

        server_id_raw = config.server_id or ""
        if not SERVER_ID_PATTERN.match(server_id_raw):
            raise ConfigurationError(actionable_error("invalid_server_id"))
        server_id = int(server_id_raw)

        self.hetzner_service.delete_server(
            server_id,
            retry_count=config.delete_wait,
            retry_delay=self.wait_seconds,
        )

        runner = self.github_service.find_runner(config.name)
        self.github_service.delete_runner(runner.runner_id)

        console.print()
        console.print(
            "[bold green]The Hetzner Cloud Server and its associated GitHub Actions Runner "
            "have been deleted successfully.[/bold green]"
        )
        self.output_service.add_summary(
            "The Hetzner Cloud Server and its associated GitHub Actions Runner "
            "have been deleted successfully 🗑️"
        )
        return ProvisionResult(
            mode="delete",
            label=config.name,
            server_id=server_id,
            runner_id=runner.runner_id,
        )

    def run(self) -> int:
        result: Optional[ProvisionResult] = None

        try:
            logger.info("Starting hetznerrunner in %s mode...", self.config.mode)

            if self.config.mode not in self.VALID_MODES:
                raise ConfigurationError(
                    f"Invalid mode. Supported modes: {', '.join(self.VALID_MODES)}"
                )

            if self.config.mode == "delete":
                result = self.delete()
            else:
                result = self.create()

            logger.debug("Run finished: %s", result)
            return 0

        except KeyboardInterrupt:
            err_console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except RunnerError as exc:
            err_console.print(f"[bold red]FAILURE:[/bold red] {exc}")
            logger.error(str(exc))
            return 1
        except OSError as exc:
            err_console.print(f"[bold red]FAILURE:[/bold red] I/O error: {exc}")
            logger.exception("I/O error")
            return 1
        except Exception as exc:
            err_console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1
