"""Installed palace version, "unknown" when running from a source tree."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("palace")
except PackageNotFoundError:
    __version__ = "unknown"
