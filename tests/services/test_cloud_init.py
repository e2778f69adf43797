import base64

import pytest

from hetznerrunner.constants import CLOUD_INIT_TEMPLATE, INSTALL_SCRIPT
from hetznerrunner.errors import TemplateError
from hetznerrunner.models import RegistrationToken, RunnerConfig
from hetznerrunner.services.cloud_init import CloudInitService


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


def _config(**overrides):
    values = {
        "mode": "create",
        "name": "gh-runner-1",
        "github_token": "ghp_secret",
        "hcloud_token": "hcloud_secret",
        "github_repository": "octo/project",
        "pre_runner_script": "apt-get install -y make",
        "runner_version": "2.321.0",
    }
    values.update(overrides)
    return RunnerConfig(**values)


def _decode(value: str) -> str:
    return base64.b64decode(value).decode("utf-8")


def test_build_encodes_scripts_and_substitutes_variables():
    service = CloudInitService(logger=DummyLogger())
    template = (
        "install: ${install_sh_base64}\n"
        "pre: ${pre_runner_script_base64}\n"
        "runner: ${runner_name} ${runner_version} ${runner_dir}\n"
        "repo: ${github_owner}/${github_repo_name} token=${runner_registration_token}\n"
        "price: $$5\n"
    )

    payload = service.build(
        _config(),
        RegistrationToken(token="AABBCC"),
        install_script="#!/bin/bash\necho install\n",
        template_text=template,
    )

    lines = payload.content.splitlines()
    assert _decode(lines[0].split(": ", 1)[1]) == "#!/bin/bash\necho install\n"
    assert _decode(lines[1].split(": ", 1)[1]) == "apt-get install -y make\n"
    assert lines[2] == "runner: gh-runner-1 2.321.0 /actions-runner"
    assert lines[3] == "repo: octo/project token=AABBCC"
    assert lines[4] == "price: $5"


def test_build_encodes_without_line_wrapping():
    service = CloudInitService(logger=DummyLogger())

    payload = service.build(
        _config(),
        RegistrationToken(token="t"),
        install_script="x" * 500,
        template_text="${install_sh_base64}",
    )

    assert "\n" not in payload.content


def test_build_rejects_unset_variable():
    service = CloudInitService(logger=DummyLogger())

    with pytest.raises(TemplateError, match="unset variable: missing_value"):
        service.build(
            _config(),
            RegistrationToken(token="t"),
            install_script="",
            template_text="value: ${missing_value}",
        )


def test_load_template_rejects_missing_file(tmp_path):
    service = CloudInitService(logger=DummyLogger())

    with pytest.raises(TemplateError, match="was not found"):
        service.load_template(tmp_path / "cloud-init.template.yml")


def test_packaged_template_renders_registration_command():
    service = CloudInitService(logger=DummyLogger())

    payload = service.build(
        _config(),
        RegistrationToken(token="AABBCC"),
        install_script=service.load_install_script(INSTALL_SCRIPT),
        template_text=service.load_template(CLOUD_INIT_TEMPLATE),
    )

    assert payload.content.startswith("#cloud-config")
    assert '--token "AABBCC"' in payload.content
    assert '--name "gh-runner-1"' in payload.content
    assert "https://github.com/octo/project" in payload.content
