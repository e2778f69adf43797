"""Shared domain models for hetznerrunner."""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .constants import GITHUB_API_URL, GITHUB_SERVER_URL, HETZNER_API_URL, HTTP_TIMEOUT


@dataclass(frozen=True)
class RunnerConfig:
    """Validated inputs for a single create or delete run."""

    mode: str
    name: str
    github_token: str
    hcloud_token: str
    github_repository: str
    location: str = "nbg1"
    image: str = "ubuntu-24.04"
    server_type: str = "cx23"
    enable_ipv4: bool = True
    enable_ipv6: bool = True
    create_wait: int = 360
    delete_wait: int = 360
    runner_wait: int = 60
    server_wait: int = 30
    network: Optional[int] = None
    ssh_key: Optional[int] = None
    volume: Optional[int] = None
    primary_ipv4: Optional[int] = None
    primary_ipv6: Optional[int] = None
    runner_dir: str = "/actions-runner"
    runner_version: str = "latest"
    pre_runner_script: str = ""
    server_id: Optional[str] = None
    github_owner_id: str = "0"
    github_repo_id: str = "0"
    github_api_url: str = GITHUB_API_URL
    github_server_url: str = GITHUB_SERVER_URL
    hetzner_api_url: str = HETZNER_API_URL
    output_file: Optional[str] = None
    summary_file: Optional[str] = None
    cloud_init_template: Optional[str] = None
    server_template: Optional[str] = None
    install_script: Optional[str] = None
    http_timeout: float = HTTP_TIMEOUT

    @property
    def github_owner(self) -> str:
        return self.github_repository.rsplit("/", 1)[0]

    @property
    def github_repo_name(self) -> str:
        return self.github_repository.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class RegistrationToken:
    token: str
    expires_at: Optional[str] = None


@dataclass(frozen=True)
class BootstrapPayload:
    """Rendered cloud-init document, consumed by the provider on first boot."""

    content: str


@dataclass
class ServerCreateRequest:
    """Request body for ``POST /servers``.

    Optional fields are added while building; ``freeze`` returns a detached
    copy that is what actually gets sent.
    """

    body: Dict[str, Any] = field(default_factory=dict)
    frozen: bool = False

    def freeze(self) -> "ServerCreateRequest":
        return ServerCreateRequest(body=copy.deepcopy(self.body), frozen=True)


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    body: str
    data: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class ServerHandle:
    server_id: int
    status: Optional[str] = None


@dataclass(frozen=True)
class RunnerHandle:
    runner_id: int
    name: str


@dataclass(frozen=True)
class ProvisionResult:
    mode: str
    label: str
    server_id: Optional[int] = None
    runner_id: Optional[int] = None
    runner_url: Optional[str] = None
    console_url: Optional[str] = None
