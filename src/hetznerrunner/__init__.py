"""
hetznerrunner - On-demand GitHub Actions runners on Hetzner Cloud
"""

__version__ = "1.0.0"

from .core import RunnerProvisioner
from .errors import RunnerError

__all__ = ["RunnerProvisioner", "RunnerError"]
