"""Read-only diagnostics for Traefik dynamic routing configuration."""

from .__version__ import __version__

__all__ = ["__version__"]
