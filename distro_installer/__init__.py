"""Headless installer core for provisioning Arch-based systems onto a disk."""

from .__version__ import __version__


__all__ = ["__version__"]
