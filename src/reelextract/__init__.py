# src/reelextract/__init__.py — v1
"""reelextract: structured business facts from walkthrough videos."""

from reelextract.version import __version__

__all__ = ["__version__"]
