"""References into the history of an origin."""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Reference(Protocol):
    """A pointer to a point in the history of an origin.

    Concrete origins (git, folder) provide their own variant; callers only rely
    on this capability set.
    """

    @property
    def label_name(self) -> str:
        """Name of the label that destinations use to record this reference."""
        ...

    def as_string(self) -> str:
        """Stable textual form of the reference."""
        ...

    def read_timestamp(self) -> Optional[datetime]:
        """Commit or creation time of the reference, None if unknown."""
        ...
