"""Build immutable SSH connection descriptors from loose credential input."""

__version__ = "0.1.0"
