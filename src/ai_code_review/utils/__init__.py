"""
Utility modules for the DeepSeek AI Code Review tool
"""

from .version import get_version, get_version_info

__all__ = ["get_version", "get_version_info"]
