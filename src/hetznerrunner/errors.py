"""Domain errors for hetznerrunner."""

from typing import Optional


class RunnerError(RuntimeError):
    """Raised when provisioning cannot continue safely."""


class ConfigurationError(RunnerError):
    """Invalid or missing input. Never retried."""


class ValidationError(ConfigurationError):
    """A single input field failed validation."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class TemplateError(RunnerError):
    """The bootstrap template is missing or references an unset variable."""


class RenderError(RunnerError):
    """The server request template is malformed or could not be populated."""


class ProviderError(RunnerError):
    """Hetzner Cloud API failure."""


class TransientProviderError(ProviderError):
    """Capacity related failure that is expected to resolve on retry."""

    def __init__(self, message: str, response=None):
        super().__init__(message)
        self.response = response


class FatalProviderError(ProviderError):
    """Provider failure that must not be retried."""

    def __init__(
        self,
        message: str,
        request_body: Optional[str] = None,
        response_body: Optional[str] = None,
    ):
        super().__init__(message)
        self.request_body = request_body
        self.response_body = response_body


class HostingAPIError(RunnerError):
    """GitHub API failure."""


class PollTimeoutError(RunnerError):
    """A wait loop used its whole attempt budget without success."""
