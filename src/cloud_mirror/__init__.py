"""Local mirror of a remote cloud-drive node graph."""

__version__ = "0.1.0"
