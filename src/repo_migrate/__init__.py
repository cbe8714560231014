"""repo-migrate

Moves code between repositories: mirrors git references and migrates the
tree of origin changes through reversible transformations.
"""

__version__ = '0.1.0'

from .cli import main

__all__ = ['main']
