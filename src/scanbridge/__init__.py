"""scanbridge: orchestration of advanced security scanners for IDE integrations."""

__version__ = "0.1.0"
