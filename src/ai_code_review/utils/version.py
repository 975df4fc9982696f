"""
Version utility for reading the installed package version
"""

import re
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

DISTRIBUTION_NAME = "ai-code-review"

# Cache for the version to avoid repeated metadata lookups
_cached_version: Optional[str] = None


def get_version() -> str:
    """
    Get application version from the installed distribution metadata.

    Falls back to the package ``__version__`` when running from a source
    checkout that was never installed.

    Returns:
        Version string (e.g., "0.1.0")
    """
    global _cached_version

    if _cached_version is not None:
        return _cached_version

    try:
        _cached_version = version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        from ai_code_review import __version__

        _cached_version = __version__

    return _cached_version


def get_version_info() -> dict:
    """
    Get detailed version information.

    Returns:
        Dictionary containing version details
    """
    current = get_version()
    major, minor, patch = (current.split(".") + ["0", "0"])[:3]
    # Pre-release and local suffixes such as "0rc1" keep only the leading number
    patch_number = re.match(r"\d*", patch).group()

    return {
        "version": current,
        "major": int(major),
        "minor": int(minor),
        "patch": int(patch_number or 0),
        "full": f"v{current}",
    }
