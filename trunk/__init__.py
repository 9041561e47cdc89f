"""git-trunk: release shifting for trunk-based Git workflows."""

__version__ = "0.2.0"
