"""
LECTIO - Command Line Interface

Main CLI entry point for importing and reading scripture versions.
"""
from cli.main import app

__all__ = ["app"]
