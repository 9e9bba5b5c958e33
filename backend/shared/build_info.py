"""Build metadata exposed at runtime.

APP_VERSION can be pinned through the environment in CI; otherwise it is
read from the installed distribution metadata.
"""

import os
from importlib.metadata import PackageNotFoundError, version


def _installed_version() -> str:
    try:
        return version("fibber")
    except PackageNotFoundError:
        return "dev"


APP_VERSION: str = os.environ.get("APP_VERSION") or _installed_version()
