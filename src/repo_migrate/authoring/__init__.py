"""Author identities and authoring policies."""

from .authoring import (
    Author,
    Authoring,
    AuthoringMappingMode,
    new_author,
    overwrite,
    pass_thru,
    whitelisted,
)

__all__ = [
    'Author',
    'Authoring',
    'AuthoringMappingMode',
    'new_author',
    'overwrite',
    'pass_thru',
    'whitelisted',
]
