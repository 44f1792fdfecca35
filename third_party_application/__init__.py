"""Lifecycle core for third-party API consumer applications."""

__version__ = "0.1.0"
