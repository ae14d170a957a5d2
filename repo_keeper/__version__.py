"""Version information for repo-keeper."""

__version__ = "0.1.0"
