"""Actionable error catalog for hetznerrunner."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "invalid_server_id": {
        "what": "Failed to get ID of the Hetzner Cloud Server!",
        "next": "Pass the `server_id` output of the create step to the delete step.",
    },
    "server_create_failed": {
        "what": "Failed to create Server in Hetzner Cloud!",
        "next": "Review the request and response above and fix the server parameters.",
    },
    "server_create_exhausted": {
        "what": "Failed to create Server in Hetzner Cloud after {attempts} attempt(s).",
        "next": "Try another location or server type, or increase `create_wait`.",
    },
    "server_not_running": {
        "what": "Failed to start Hetzner Cloud Server {server_id}!",
        "next": "Please check manually in the Hetzner Cloud console.",
    },
    "server_delete_failed": {
        "what": "Error deleting server {server_id}!",
        "next": "Delete the server manually in the Hetzner Cloud console.",
    },
    "runner_not_registered": {
        "what": "GitHub Actions Runner '{name}' is not registered.",
        "next": "Please check installation manually (cloud-init log on the server).",
    },
    "runner_delete_failed": {
        "what": "Failed to delete GitHub Actions Runner from repository!",
        "next": "Please delete manually: {url}",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
