"""Migrations: mirrors and workflows."""

from .base import Destination, Migration, TransformResult
from .workflow import Workflow

__all__ = ['Destination', 'Migration', 'TransformResult', 'Workflow']
