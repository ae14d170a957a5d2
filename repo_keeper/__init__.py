"""
repo-keeper - Keep a directory tree full of git repositories in sync
"""

from .__version__ import __version__
from .core.fleet_keeper import FleetKeeper
from .cli.main import main

__all__ = ["FleetKeeper", "main", "__version__"]
