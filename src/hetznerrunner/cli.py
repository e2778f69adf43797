import logging
import os

import click
from rich.logging import RichHandler

from .constants import DEFAULT_CONFIG_FILE
from .core import RunnerProvisioner, err_console
from .errors import RunnerError
from .services.config_loader import ConfigLoader
from .services.validation import ValidationService

# (option, environment variable, help). Action inputs arrive as INPUT_<NAME>.
INPUT_OPTIONS = (
    ("mode", "INPUT_MODE", "'create' a runner or 'delete' a previously created one (default: create)."),
    ("name", "INPUT_NAME", "Server name and runner label (default: gh-runner-<random>)."),
    ("location", "INPUT_LOCATION", "Hetzner Cloud location (default: nbg1)."),
    ("image", "INPUT_IMAGE", "OS image name (default: ubuntu-24.04)."),
    ("server_type", "INPUT_SERVER_TYPE", "Hetzner Cloud server type (default: cx23)."),
    ("enable_ipv4", "INPUT_ENABLE_IPV4", "Attach a public IPv4 address: 'true' or 'false'."),
    ("enable_ipv6", "INPUT_ENABLE_IPV6", "Attach a public IPv6 address: 'true' or 'false'."),
    ("create_wait", "INPUT_CREATE_WAIT", "Attempts (x 10s) for server creation (default: 360)."),
    ("delete_wait", "INPUT_DELETE_WAIT", "Retries (x 10s) for server deletion (default: 360)."),
    ("runner_wait", "INPUT_RUNNER_WAIT", "Attempts (x 10s) for runner registration (default: 60)."),
    ("server_wait", "INPUT_SERVER_WAIT", "Attempts (x 10s) for the server to run (default: 30)."),
    ("network", "INPUT_NETWORK", "Network ID to attach, or 'null'."),
    ("ssh_key", "INPUT_SSH_KEY", "SSH key ID to add, or 'null'."),
    ("volume", "INPUT_VOLUME", "Volume ID to attach, or 'null'."),
    ("primary_ipv4", "INPUT_PRIMARY_IPV4", "Primary IPv4 ID to assign, or 'null'."),
    ("primary_ipv6", "INPUT_PRIMARY_IPV6", "Primary IPv6 ID to assign, or 'null'."),
    ("runner_dir", "INPUT_RUNNER_DIR", "Runner installation directory (default: /actions-runner)."),
    ("runner_version", "INPUT_RUNNER_VERSION", "Runner version: 'latest', 'skip' or e.g. 2.321.0."),
    ("pre_runner_script", "INPUT_PRE_RUNNER_SCRIPT", "Shell commands to run before the runner starts."),
    ("server_id", "INPUT_SERVER_ID", "ID of the server to delete (delete mode)."),
    ("github_token", "INPUT_GITHUB_TOKEN", "GitHub Personal Access Token (PAT)."),
    ("hcloud_token", "INPUT_HCLOUD_TOKEN", "Hetzner Cloud API token."),
    ("github_repository", "GITHUB_REPOSITORY", "Repository in 'owner/repo' form."),
    ("github_owner_id", "GITHUB_REPOSITORY_OWNER_ID", "Repository owner ID, used as server label."),
    ("github_repo_id", "GITHUB_REPOSITORY_ID", "Repository ID, used as server label."),
    ("github_api_url", "GITHUB_API_URL", "GitHub API base URL."),
    ("github_server_url", "GITHUB_SERVER_URL", "GitHub server URL, used for runner links."),
    ("hetzner_api_url", "HCLOUD_ENDPOINT", "Hetzner Cloud API base URL."),
    ("output_file", "GITHUB_OUTPUT", "File receiving the 'label' and 'server_id' outputs."),
    ("summary_file", "GITHUB_STEP_SUMMARY", "File receiving the job summary."),
    ("cloud_init_template", "INPUT_CLOUD_INIT_TEMPLATE", "Custom cloud-init template file."),
    ("server_template", "INPUT_SERVER_TEMPLATE", "Custom create-server JSON template file."),
    ("install_script", "INPUT_INSTALL_SCRIPT", "Custom runner install script."),
    ("http_timeout", "INPUT_HTTP_TIMEOUT", "Timeout in seconds for each API request (default: 30)."),
)


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


def input_options(func):
    for key, envvar, help_text in reversed(INPUT_OPTIONS):
        func = click.option(
            f"--{key.replace('_', '-')}",
            key,
            envvar=envvar,
            required=False,
            default=None,
            help=help_text,
        )(func)
    return func


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@input_options
def main(config, verbose, log_file, **inputs):
    """Create or delete an on-demand GitHub Actions runner on Hetzner Cloud."""
    logger = logging.getLogger("hetznerrunner")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except RunnerError as exc:
        err_console.print(f"[bold red]FAILURE:[/bold red] {exc}")
        raise SystemExit(1) from exc

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    values = {key: _resolve_option(value, config_values, key) for key, value in inputs.items()}

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    try:
        runner_config = ValidationService().validate(values)
        provisioner = RunnerProvisioner(config=runner_config)
    except RunnerError as exc:
        err_console.print(f"[bold red]FAILURE:[/bold red] {exc}")
        raise SystemExit(1) from exc

    raise SystemExit(provisioner.run())


if __name__ == "__main__":
    main()
