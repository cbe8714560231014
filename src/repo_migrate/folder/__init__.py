"""Folder (non-git) origin support."""

from .reference import FolderReference

__all__ = ['FolderReference']
