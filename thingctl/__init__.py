"""Command-line control of tagged devices exposed by a registry."""

__version__ = "0.3.0"
