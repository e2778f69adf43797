"""Hetzner Cloud server lifecycle service."""

import json
import re
import time
from typing import Callable, Optional

import requests

from hetznerrunner.constants import SERVER_RUNNING
from hetznerrunner.errors import (
    FatalProviderError,
    PollTimeoutError,
    ProviderError,
    TransientProviderError,
)
from hetznerrunner.errors_catalog import actionable_error
from hetznerrunner.models import ApiResponse, ServerCreateRequest, ServerHandle
from hetznerrunner.services.api_client import ApiClient
from hetznerrunner.services.retry import FATAL, RetryPolicy, classify_create_failure

NUMERIC_ID = re.compile(r"^[0-9]+$")


class HetznerService:
    """Creates, polls and deletes servers through the Hetzner Cloud API."""

    def __init__(
        self,
        token: str,
        logger,
        console,
        base_url: str = "https://api.hetzner.cloud/v1",
        requests_module=requests,
        timeout: float = 30.0,
        classifier: Callable[[str], str] = classify_create_failure,
    ):
        self.logger = logger
        self.console = console
        self.classifier = classifier
        self.client = ApiClient(
            base_url=base_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {token}",
            },
            logger=logger,
            requests_module=requests_module,
            timeout=timeout,
            error_class=ProviderError,
        )

    def create_server(
        self,
        request: ServerCreateRequest,
        policy: RetryPolicy,
    ) -> Optional[ApiResponse]:
        """Submit the create request, retrying only capacity failures.

        Returns the last response seen, or ``None`` when the budget is zero.
        Running out of attempts is not an error here; ``extract_server_id``
        rejects the non-2xx response that is left over.
        """
        request_body = json.dumps(request.body, indent=2)
        response: Optional[ApiResponse] = None

        for attempt in policy.attempts():
            self.console.print("[blue]Create Server...[/blue]")
            try:
                response = self._submit_create(request, request_body)
            except TransientProviderError as exc:
                response = exc.response
            else:
                self.console.print("[green]Server created successfully.[/green]")
                return response

            self.logger.warning("Resource limitation detected.")
            self.console.print(
                f"[yellow]Failed to create Server. Wait {policy.delay:g} seconds... "
                f"(Attempt {attempt}/{policy.max_attempts})[/yellow]"
            )
            time.sleep(policy.delay)

        return response

    def _submit_create(self, request: ServerCreateRequest, request_body: str) -> ApiResponse:
        try:
            response = self.client.send("POST", "/servers", payload=request.body)
        except ProviderError as exc:
            self.logger.error("Create server request:\n%s", request_body)
            raise FatalProviderError(
                f"{actionable_error('server_create_failed')}\n{exc}",
                request_body=request_body,
            ) from exc

        if response.ok:
            return response

        if self.classifier(response.body) == FATAL:
            self.logger.error("Create server request:\n%s", request_body)
            self.logger.error("Create server response:\n%s", response.body)
            raise FatalProviderError(
                actionable_error("server_create_failed"),
                request_body=request_body,
                response_body=response.body,
            )

        raise TransientProviderError(response.body, response=response)

    def extract_server_id(self, response: Optional[ApiResponse], attempts: int) -> int:
        if response is None or not response.ok:
            raise PollTimeoutError(
                actionable_error("server_create_exhausted", attempts=str(attempts))
            )

        data = response.data if isinstance(response.data, dict) else {}
        server = data.get("server")
        server_id = server.get("id") if isinstance(server, dict) else None
        if server_id is None or not NUMERIC_ID.match(str(server_id)):
            raise FatalProviderError(
                actionable_error("invalid_server_id"),
                response_body=response.body,
            )
        return int(server_id)

    def get_server(self, server_id: int) -> ServerHandle:
        """Fetch the current status; error responses yield a handle without status."""
        response = self.client.send("GET", f"/servers/{server_id}")
        status = None
        if isinstance(response.data, dict):
            server = response.data.get("server")
            if isinstance(server, dict):
                status = server.get("status")
        if not response.ok:
            self.logger.debug("Server status request returned %s", response.status_code)
        return ServerHandle(server_id=server_id, status=status)

    def wait_until_running(self, server_id: int, policy: RetryPolicy) -> ServerHandle:
        self.console.print("[yellow]Wait for server...[/yellow]")

        for attempt in policy.attempts():
            try:
                handle = self.get_server(server_id)
            except ProviderError as exc:
                raise FatalProviderError(
                    f"Failed to get status of the Hetzner Cloud Server! {exc}"
                ) from exc

            if handle.status == SERVER_RUNNING:
                self.console.print("[green]Server is running.[/green]")
                return handle

            self.logger.debug("Server %s status: %s", server_id, handle.status)
            self.console.print(
                f"[yellow]Server is not running yet. Waiting {policy.delay:g} seconds... "
                f"(Attempt {attempt}/{policy.max_attempts})[/yellow]"
            )
            time.sleep(policy.delay)

        raise PollTimeoutError(actionable_error("server_not_running", server_id=str(server_id)))

    def delete_server(self, server_id: int, retry_count: int, retry_delay: float):
        """Delete the server; every failure counts against ``retry_count``."""
        self.console.print("[blue]Delete server...[/blue]")
        try:
            self.client.request(
                "DELETE",
                f"/servers/{server_id}",
                check=True,
                retry_count=retry_count,
                retry_delay=retry_delay,
            )
        except ProviderError as exc:
            raise FatalProviderError(
                actionable_error("server_delete_failed", server_id=str(server_id)) + f"\n{exc}"
            ) from exc
        self.console.print("[green]Hetzner Cloud Server deleted successfully.[/green]")
