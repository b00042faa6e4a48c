"""
Version information for the Bonsol SDK.

Installed builds report the distribution metadata; a source checkout reads
``pyproject.toml`` next to the package.
"""
import importlib.metadata
import pathlib
from typing import Optional

import tomli

DISTRIBUTION = "bonsol-sdk"
DEFAULT_VERSION = "0.1.0"
PYPROJECT = pathlib.Path(__file__).resolve().parent.parent / "pyproject.toml"


def _version_from_pyproject(path: pathlib.Path) -> Optional[str]:
    try:
        with path.open("rb") as f:
            project = tomli.load(f).get("project", {})
    except (OSError, tomli.TOMLDecodeError):
        return None
    if project.get("name") != DISTRIBUTION:
        return None
    return project.get("version")


def get_version(distribution: str = DISTRIBUTION, pyproject: Optional[pathlib.Path] = None) -> str:
    """
    Resolve the SDK version.

    Args:
        distribution: Installed distribution to look up
        pyproject: Source tree manifest used when the distribution is not installed

    Returns:
        The version, or DEFAULT_VERSION when neither source has one
    """
    try:
        return importlib.metadata.version(distribution)
    except importlib.metadata.PackageNotFoundError:
        pass
    return _version_from_pyproject(pyproject or PYPROJECT) or DEFAULT_VERSION


__version__ = get_version()

USER_AGENT = f"{DISTRIBUTION}/{__version__}"
