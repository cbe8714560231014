"""Changes read from an origin and the labels found in their messages."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, Generic, Mapping, TypeVar

from loguru import logger

from ..authoring.authoring import Author
from .reference import Reference

LABEL_PATTERN = re.compile(r'^(?P<name>[\w-]+)(?P<separator> *[:=] ?)(?P<value>.*)$')

R = TypeVar('R', bound=Reference)


class VisitResult(str, Enum):
    """What a history visitor wants to do after seeing a change."""

    CONTINUE = 'continue'
    TERMINATE = 'terminate'


def parse_labels(message: str) -> Dict[str, str]:
    """Extract 'key: value' labels from a commit message.

    When a label appears more than once the last value is kept, since the
    earlier occurrence is most likely part of the description.

    Args:
        message: Full commit message

    Returns:
        Label name to value mapping
    """
    labels: Dict[str, str] = {}
    for line in message.splitlines():
        match = LABEL_PATTERN.match(line)
        if not match:
            continue
        name, value = match.group('name'), match.group('value')
        # 'http://foo' is not a label
        if ':' in match.group('separator') and value.startswith('//'):
            continue
        if name in labels:
            logger.warning(
                f"Possible duplicate label '{name}' happening multiple times in commit. "
                f"Keeping only the last value: '{value}'\n"
                f"  Discarded value: '{labels[name]}'"
            )
        labels[name] = value
    return labels


@dataclass(frozen=True)
class Change(Generic[R]):
    """A single change of an origin, normalized for migration."""

    reference: R
    author: Author
    message: str
    date_time: datetime
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'labels', MappingProxyType(dict(self.labels)))

    def first_line_message(self) -> str:
        """Return the first line of the change message."""
        lines = self.message.splitlines()
        return lines[0] if lines else ''

    @classmethod
    def from_message(
        cls, reference: R, author: Author, message: str, date_time: datetime
    ) -> 'Change[R]':
        """Create a change, parsing its labels from the message."""
        return cls(
            reference=reference,
            author=author,
            message=message,
            date_time=date_time,
            labels=parse_labels(message),
        )
