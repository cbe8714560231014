"""Author identities and the author mapping between origin and destination."""

import re
from enum import Enum
from typing import FrozenSet, List

from pydantic import BaseModel, Field, ValidationError, validator

from ..exceptions import ValidationException

AUTHOR_PATTERN = re.compile(r'^(?P<name>[^<]+)<(?P<email>[^>]*)>$')


class Author(BaseModel):
    """Author of a change, in the form 'name <email>'."""

    name: str = Field(..., description='Author name')
    email: str = Field(..., description='Author email')

    class Config:
        """Pydantic configuration."""

        frozen = True

    @classmethod
    def parse(cls, author_string: str) -> 'Author':
        """Parse an author from a string with the form 'name <foo@bar.com>'.

        Args:
            author_string: String representation of the author

        Returns:
            Parsed author

        Raises:
            ValidationException: If the string doesn't match the format
        """
        match = AUTHOR_PATTERN.match(author_string.strip())
        if not match:
            raise ValidationException(
                f"Author '{author_string}' doesn't match the expected format "
                f"'name <mail@example.com>'"
            )
        return cls(name=match.group('name').strip(), email=match.group('email').strip())

    def __str__(self) -> str:
        return f'{self.name} <{self.email}>'


class AuthoringMappingMode(str, Enum):
    """Mode used for author mapping from origin to destination."""

    # Use the default author for all the submits in the destination
    USE_DEFAULT = 'use_default'
    # Use the origin author as the author in the destination, no whitelisting
    PASS_THRU = 'pass_thru'
    # Keep whitelisted origin authors, use the default author for the rest
    WHITELIST = 'whitelist'


class Authoring(BaseModel):
    """The authors mapping between an origin and a destination.

    For a given author in the origin, always provides an author in the
    destination.
    """

    default_author: Author = Field(
        ...,
        description='Author used in squash workflows, USE_DEFAULT mode and for '
        'non-whitelisted authors',
    )
    mode: AuthoringMappingMode = Field(..., description='Author mapping mode')
    whitelist: FrozenSet[str] = Field(
        default_factory=frozenset,
        description='Whitelisted origin author identifiers (typically emails)',
    )

    class Config:
        """Pydantic configuration."""

        frozen = True

    def __init__(self, **data):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ValidationException.from_pydantic(e) from e

    @validator('whitelist', pre=True, always=True)
    def validate_unique_entries(cls, v):
        """Reject duplicated whitelist entries instead of merging them."""
        if v is None:
            return frozenset()
        if isinstance(v, (set, frozenset)):
            return v
        seen = set()
        for author in v:
            if author in seen:
                raise ValueError(f"Duplicated whitelist entry '{author}'")
            seen.add(author)
        return seen

    @validator('whitelist', always=True)
    def validate_whitelist_mode(cls, v, values):
        """A WHITELIST mapping needs at least one whitelisted author."""
        if values.get('mode') == AuthoringMappingMode.WHITELIST and not v:
            raise ValueError(
                "'whitelisted' function requires a non-empty 'whitelist' field. "
                "For default mapping, use 'overwrite(...)' mode instead."
            )
        return frozenset(v)

    def use_author(self, user_id: str) -> bool:
        """Return True if the origin user can be used in the destination."""
        if self.mode == AuthoringMappingMode.PASS_THRU:
            return True
        if self.mode == AuthoringMappingMode.USE_DEFAULT:
            return False
        if self.mode == AuthoringMappingMode.WHITELIST:
            return user_id in self.whitelist
        raise ValueError(f"Mode '{self.mode}' not implemented.")

    def resolve_author(self, author: Author) -> Author:
        """Return the author a destination should record for an origin author."""
        return author if self.use_author(author.email) else self.default_author


def new_author(author_string: str) -> Author:
    """Create a new author from a string with the form 'name <foo@bar.com>'."""
    return Author.parse(author_string)


def pass_thru(default: str) -> Authoring:
    """Use the origin author as the author in the destination, no whitelisting."""
    return _create_authoring(default, AuthoringMappingMode.PASS_THRU, [])


def overwrite(default: str) -> Authoring:
    """Use the default author for all the submits in the destination."""
    return _create_authoring(default, AuthoringMappingMode.USE_DEFAULT, [])


def whitelisted(default: str, whitelist: List[str]) -> Authoring:
    """Keep whitelisted origin authors and use the default for the rest.

    Args:
        default: Default author for commits in the destination
        whitelist: Whitelisted authors in the origin, must be unique

    Returns:
        Authoring in WHITELIST mode
    """
    return _create_authoring(default, AuthoringMappingMode.WHITELIST, list(whitelist))


def _create_authoring(
    default: str, mode: AuthoringMappingMode, whitelist: List[str]
) -> Authoring:
    default_author = Author.parse(default)
    return Authoring(default_author=default_author, mode=mode, whitelist=whitelist)
