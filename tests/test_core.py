import json

import pytest

import hetznerrunner.core as core_module
from hetznerrunner.core import RunnerProvisioner
from hetznerrunner.errors import ConfigurationError
from hetznerrunner.models import RunnerConfig

HCLOUD = "https://api.hetzner.cloud/v1"
GITHUB = "https://api.github.com/repos/octo/project/actions/runners"


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.text = json.dumps(payload) if payload is not None else ""


class RoutedRequestsModule:
    """Serves queued responses per (method, url) and records the call order."""

    class RequestException(Exception):
        pass

    def __init__(self, routes):
        self.routes = {key: list(value) for key, value in routes.items()}
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url))
        queue = self.routes.get((method, url))
        if not queue:
            raise AssertionError(f"unexpected request: {method} {url}")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response


def _config(tmp_path, **overrides):
    values = {
        "mode": "create",
        "name": "gh-runner-1",
        "github_token": "ghp_secret",
        "hcloud_token": "hcloud_secret",
        "github_repository": "octo/project",
        "create_wait": 3,
        "server_wait": 3,
        "runner_wait": 3,
        "delete_wait": 2,
        "output_file": str(tmp_path / "github_output"),
        "summary_file": str(tmp_path / "summary.md"),
    }
    values.update(overrides)
    return RunnerConfig(**values)


def _create_routes(overrides=None):
    routes = {
        ("POST", f"{GITHUB}/registration-token"): [FakeResponse(201, {"token": "AABBCC"})],
        ("POST", f"{HCLOUD}/servers"): [FakeResponse(201, {"server": {"id": 42, "status": "initializing"}})],
        ("GET", f"{HCLOUD}/servers/42"): [
            FakeResponse(200, {"server": {"id": 42, "status": "initializing"}}),
            FakeResponse(200, {"server": {"id": 42, "status": "running"}}),
        ],
        ("GET", GITHUB): [
            FakeResponse(200, {"runners": []}),
            FakeResponse(200, {"runners": [{"id": 77, "name": "gh-runner-1"}]}),
        ],
    }
    routes.update(overrides or {})
    return routes


def _provisioner(config, requests_module):
    return RunnerProvisioner(config=config, requests_module=requests_module, wait_seconds=0)


def test_create_provisions_server_and_waits_for_runner(tmp_path):
    fake = RoutedRequestsModule(_create_routes())
    provisioner = _provisioner(_config(tmp_path), fake)

    result = provisioner.create()

    assert result.server_id == 42
    assert result.runner_id == 77
    assert result.runner_url == "https://github.com/octo/project/settings/actions/runners/77"
    assert fake.calls[0] == ("POST", f"{GITHUB}/registration-token")
    assert fake.calls[1] == ("POST", f"{HCLOUD}/servers")
    assert (tmp_path / "github_output").read_text(encoding="utf-8") == "label=gh-runner-1\nserver_id=42\n"
    assert "runners/77" in (tmp_path / "summary.md").read_text(encoding="utf-8")


def test_create_sends_rendered_cloud_init(tmp_path):
    captured = {}
    fake = RoutedRequestsModule(_create_routes())
    routed_request = fake.request

    def capture(method, url, **kwargs):
        if (method, url) == ("POST", f"{HCLOUD}/servers"):
            captured.update(kwargs["json"])
        return routed_request(method, url, **kwargs)

    fake.request = capture
    _provisioner(_config(tmp_path, network=5), fake).create()

    assert captured["name"] == "gh-runner-1"
    assert captured["networks"] == [5]
    assert '--token "AABBCC"' in captured["user_data"]


def test_create_emits_outputs_before_server_is_running(tmp_path):
    fake = RoutedRequestsModule(
        _create_routes(
            {("GET", f"{HCLOUD}/servers/42"): [FakeResponse(200, {"server": {"status": "starting"}})]}
        )
    )
    provisioner = _provisioner(_config(tmp_path), fake)

    assert provisioner.run() == 1
    assert (tmp_path / "github_output").read_text(encoding="utf-8") == "label=gh-runner-1\nserver_id=42\n"
    assert not (tmp_path / "summary.md").exists()


def test_create_stops_when_registration_token_fails(tmp_path):
    fake = RoutedRequestsModule(
        {("POST", f"{GITHUB}/registration-token"): [FakeResponse(403, {"message": "Forbidden"})]}
    )

    assert _provisioner(_config(tmp_path), fake).run() == 1
    assert fake.calls == [("POST", f"{GITHUB}/registration-token")]


def test_create_fails_when_runner_never_registers(tmp_path):
    fake = RoutedRequestsModule(
        _create_routes({("GET", GITHUB): [FakeResponse(200, {"runners": []})]})
    )

    assert _provisioner(_config(tmp_path), fake).run() == 1
    assert fake.calls.count(("GET", GITHUB)) == 3
    assert not any(method == "DELETE" for method, _ in fake.calls)


def test_create_reports_missing_template(tmp_path):
    fake = RoutedRequestsModule(_create_routes())
    config = _config(tmp_path, cloud_init_template=str(tmp_path / "missing.yml"))

    assert _provisioner(config, fake).run() == 1
    assert fake.calls == []


def test_create_checks_server_template_before_requesting_token(tmp_path):
    fake = RoutedRequestsModule(_create_routes())
    config = _config(tmp_path, server_template=str(tmp_path / "missing.json"))

    assert _provisioner(config, fake).run() == 1
    assert fake.calls == []


def test_delete_removes_server_before_runner(tmp_path):
    fake = RoutedRequestsModule(
        {
            ("DELETE", f"{HCLOUD}/servers/42"): [FakeResponse(200, {"action": {"id": 1}})],
            ("GET", GITHUB): [FakeResponse(200, {"runners": [{"id": 77, "name": "gh-runner-1"}]})],
            ("DELETE", f"{GITHUB}/77"): [FakeResponse(204)],
        }
    )
    provisioner = _provisioner(_config(tmp_path, mode="delete", server_id="42"), fake)

    assert provisioner.run() == 0
    assert fake.calls == [
        ("DELETE", f"{HCLOUD}/servers/42"),
        ("GET", GITHUB),
        ("DELETE", f"{GITHUB}/77"),
    ]
    assert "deleted successfully" in (tmp_path / "summary.md").read_text(encoding="utf-8")


@pytest.mark.parametrize("server_id", [None, "", "abc", "42a", "-1"])
def test_delete_with_invalid_server_id_makes_no_network_call(tmp_path, server_id):
    fake = RoutedRequestsModule({})
    provisioner = _provisioner(_config(tmp_path, mode="delete", server_id=server_id), fake)

    with pytest.raises(ConfigurationError, match="Failed to get ID of the Hetzner Cloud Server"):
        provisioner.delete()

    assert provisioner.run() == 1
    assert fake.calls == []


def test_delete_retries_server_deletion_then_fails(tmp_path):
    fake = RoutedRequestsModule(
        {("DELETE", f"{HCLOUD}/servers/42"): [FakeResponse(500, {"error": {"code": "server_error"}})]}
    )

    assert _provisioner(_config(tmp_path, mode="delete", server_id="42"), fake).run() == 1
    assert fake.calls == [("DELETE", f"{HCLOUD}/servers/42")] * 3


def test_delete_fails_when_runner_is_missing(tmp_path):
    fake = RoutedRequestsModule(
        {
            ("DELETE", f"{HCLOUD}/servers/42"): [FakeResponse(200, {"action": {"id": 1}})],
            ("GET", GITHUB): [FakeResponse(200, {"runners": []})],
        }
    )

    assert _provisioner(_config(tmp_path, mode="delete", server_id="42"), fake).run() == 1
    assert fake.calls[-1] == ("GET", GITHUB)


def test_run_reports_failure_on_stderr(tmp_path, monkeypatch):
    printed = []

    class RecordingConsole:
        def print(self, *args, **_kwargs):
            printed.append(" ".join(str(arg) for arg in args))

    monkeypatch.setattr(core_module, "err_console", RecordingConsole())
    fake = RoutedRequestsModule({})

    code = _provisioner(_config(tmp_path, mode="delete", server_id="abc"), fake).run()

    assert code == 1
    assert any("FAILURE:" in line for line in printed)
