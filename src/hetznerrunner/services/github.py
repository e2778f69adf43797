"""GitHub Actions self-hosted runner service."""

import re
import time
from typing import Any, List, Optional

import requests

from hetznerrunner.constants import GITHUB_API_VERSION
from hetznerrunner.errors import HostingAPIError, PollTimeoutError
from hetznerrunner.errors_catalog import actionable_error
from hetznerrunner.models import RegistrationToken, RunnerHandle
from hetznerrunner.services.api_client import ApiClient
from hetznerrunner.services.retry import RetryPolicy

NUMERIC_ID = re.compile(r"^[0-9]+$")


class GitHubService:
    """Mints registration tokens and finds/removes runners of one repository."""

    def __init__(
        self,
        token: str,
        repository: str,
        logger,
        console,
        base_url: str = "https://api.github.com",
        server_url: str = "https://github.com",
        requests_module=requests,
        timeout: float = 30.0,
    ):
        self.repository = repository
        self.server_url = server_url.rstrip("/")
        self.logger = logger
        self.console = console
        self.client = ApiClient(
            base_url=base_url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
            logger=logger,
            requests_module=requests_module,
            timeout=timeout,
            error_class=HostingAPIError,
        )

    @property
    def runners_path(self) -> str:
        return f"/repos/{self.repository}/actions/runners"

    @property
    def runners_url(self) -> str:
        return f"{self.server_url}/{self.repository}/settings/actions/runners"

    def runner_url(self, runner_id: int) -> str:
        return f"{self.runners_url}/{runner_id}"

    def create_registration_token(self) -> RegistrationToken:
        self.console.print("[blue]Create GitHub Actions Runner registration token...[/blue]")
        try:
            response = self.client.request("POST", f"{self.runners_path}/registration-token")
        except HostingAPIError as exc:
            raise HostingAPIError(
                f"Failed to retrieve GitHub Actions Runner registration token!\n{exc}"
            ) from exc

        data = response.data if isinstance(response.data, dict) else {}
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise HostingAPIError("GitHub API response does not contain a registration token.")
        return RegistrationToken(token=token, expires_at=data.get("expires_at"))

    def list_runners(self, check: bool = True) -> List[Any]:
        """Return the ``runners`` array; with ``check`` any failure raises."""
        try:
            response = self.client.request("GET", self.runners_path, check=check)
        except HostingAPIError as exc:
            raise HostingAPIError(
                f"Failed to list GitHub Actions runners from repository!\n{exc}"
            ) from exc

        data = response.data if isinstance(response.data, dict) else {}
        runners = data.get("runners")
        return runners if isinstance(runners, list) else []

    @staticmethod
    def match_runner(runners: List[Any], name: str) -> Optional[RunnerHandle]:
        for runner in runners:
            if not isinstance(runner, dict) or runner.get("name") != name:
                continue
            runner_id = runner.get("id")
            if runner_id is not None and NUMERIC_ID.match(str(runner_id)):
                return RunnerHandle(runner_id=int(runner_id), name=name)
        return None

    def find_runner(self, name: str) -> RunnerHandle:
        self.console.print("[blue]List self-hosted runners...[/blue]")
        handle = self.match_runner(self.list_runners(), name)
        if handle is None:
            raise HostingAPIError("Failed to get ID of the GitHub Actions Runner!")
        return handle

    def wait_for_runner(self, name: str, policy: RetryPolicy) -> RunnerHandle:
        """Poll the runner list until the bootstrapped VM has registered ``name``."""
        self.console.print("[yellow]Wait for GitHub Actions Runner registration...[/yellow]")

        for attempt in policy.attempts():
            handle = self.match_runner(self.list_runners(check=False), name)
            if handle is not None:
                self.console.print("[green]GitHub Actions Runner registered.[/green]")
                return handle

            self.console.print(
                f"[yellow]GitHub Actions Runner is not yet registered. Wait {policy.delay:g} "
                f"seconds... (Attempt {attempt}/{policy.max_attempts})[/yellow]"
            )
            time.sleep(policy.delay)

        raise PollTimeoutError(actionable_error("runner_not_registered", name=name))

    def delete_runner(self, runner_id: int):
        self.console.print("[blue]Delete GitHub Actions Runner...[/blue]")
        try:
            self.client.request("DELETE", f"{self.runners_path}/{runner_id}")
        except HostingAPIError as exc:
            raise HostingAPIError(
                f"{actionable_error('runner_delete_failed', url=self.runners_url)}\n{exc}"
            ) from exc
        self.console.print("[green]GitHub Actions Runner deleted successfully.[/green]")
