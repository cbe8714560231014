"""Configuration management for repo-migrate."""

from .config import Config, GitOptions, LoggingConfig
from .builtins import BUILTINS, MigrationTable, evaluate, load_migrations

__all__ = [
    'Config',
    'GitOptions',
    'LoggingConfig',
    'BUILTINS',
    'MigrationTable',
    'evaluate',
    'load_migrations',
]
