"""Coding-test review assistant GitHub App worker."""

__version__ = "0.1.0"
