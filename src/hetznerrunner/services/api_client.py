"""HTTP execution service for hetznerrunner."""

import json
import time
from typing import Any, Dict, Optional

import requests

from hetznerrunner.errors import RunnerError
from hetznerrunner.models import ApiResponse


class ApiClient:
    """Sends JSON requests to one API with consistent error handling."""

    def __init__(
        self,
        base_url: str,
        headers: Dict[str, str],
        logger,
        requests_module=requests,
        timeout: float = 30.0,
        error_class=RunnerError,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = headers
        self.logger = logger
        self.requests = requests_module
        self.timeout = timeout
        self.error_class = error_class

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def send(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        """Single attempt. Transport failures raise, HTTP errors are returned."""
        url = self.url(path)
        self.logger.debug("%s %s", method, url)

        try:
            response = self.requests.request(
                method,
                url,
                headers=self.headers,
                json=payload,
                timeout=self.timeout,
            )
        except self.requests.RequestException as exc:
            raise self.error_class(f"{method} {url} failed: {exc}") from exc

        body = response.text or ""
        try:
            data = json.loads(body) if body.strip() else None
        except ValueError:
            data = None

        self.logger.debug("%s %s -> %s", method, url, response.status_code)
        return ApiResponse(status_code=response.status_code, body=body, data=data)

    def request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        check: bool = True,
        retry_count: int = 0,
        retry_delay: float = 0.0,
    ) -> ApiResponse:
        """Send a request, retrying every failure up to ``retry_count`` times.

        With ``check`` a final non-2xx response raises ``error_class``.
        """
        url = self.url(path)
        max_attempts = max(1, retry_count + 1)

        for attempt in range(1, max_attempts + 1):
            try:
                response = self.send(method, path, payload=payload)
            except RunnerError:
                if attempt < max_attempts:
                    self.logger.warning(
                        "%s %s failed on attempt %s/%s. Retrying in %.1fs.",
                        method,
                        url,
                        attempt,
                        max_attempts,
                        retry_delay,
                    )
                    time.sleep(retry_delay)
                    continue
                raise

            if response.ok:
                return response

            message = f"{method} {url} failed ({response.status_code})"
            if response.body:
                message = f"{message}\n{response.body.strip()}"

            if attempt < max_attempts:
                self.logger.warning(
                    "Request failed on attempt %s/%s and will be retried in %.1fs.\n%s",
                    attempt,
                    max_attempts,
                    retry_delay,
                    message,
                )
                time.sleep(retry_delay)
                continue

            if check:
                raise self.error_class(message)

            self.logger.warning(message)
            return response
