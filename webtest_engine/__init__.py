"""Dependency-aware parallel browser test engine."""

__version__ = "0.1.0"
