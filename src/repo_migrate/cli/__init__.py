"""Command line interface for repo-migrate."""

from .main import cli, main

__all__ = ['cli', 'main']
