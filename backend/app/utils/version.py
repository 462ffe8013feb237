"""Version utilities for DINO."""

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version

DIST_NAME = "dino-backend"


@lru_cache(maxsize=1)
def get_version() -> str:
    """Installed distribution version, or a dev marker when running from a checkout."""
    try:
        return version(DIST_NAME)
    except PackageNotFoundError:
        return "0.0.0-dev"
