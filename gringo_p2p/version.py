from __future__ import annotations

from .constants import USER_AGENT, WIRE_VERSION

# Semantic version of the package. Bump on API/behavior changes.
__version__ = "0.1.0"

__all__ = [
    "__version__",
    "user_agent",
    "version_info",
]


def user_agent() -> str:
    """Agent string a node announces to its peers."""
    return USER_AGENT


def version_info() -> dict:
    return {
        "version": __version__,
        "wire_version": WIRE_VERSION,
        "user_agent": USER_AGENT,
    }
