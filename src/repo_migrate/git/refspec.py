"""Git refspecs used to map references between repositories."""

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from ..exceptions import ValidationException

DEFAULT_REFSPEC = '+refs/heads/*:refs/heads/*'


@dataclass(frozen=True)
class RefSpec:
    """One 'source:destination' reference mapping, optionally forced."""

    source: str
    destination: str
    force: bool = False

    @classmethod
    def parse(cls, text: str) -> 'RefSpec':
        """Parse a refspec of the form '[+]source[:destination]'.

        Args:
            text: Refspec string

        Returns:
            Parsed refspec

        Raises:
            ValidationException: If the refspec is malformed
        """
        original = text
        force = text.startswith('+')
        if force:
            text = text[1:]
        if text.count(':') > 1:
            raise ValidationException(f"Invalid refspec '{original}': too many ':'")
        source, _, destination = text.partition(':')
        destination = destination or source
        if not source:
            raise ValidationException(f"Invalid refspec '{original}': empty source")

        source_wildcards = source.count('*')
        destination_wildcards = destination.count('*')
        if source_wildcards > 1 or destination_wildcards > 1:
            raise ValidationException(
                f"Invalid refspec '{original}': only one '*' is allowed per side"
            )
        if source_wildcards != destination_wildcards:
            raise ValidationException(
                f"Invalid refspec '{original}': wildcards must appear on both sides"
            )
        return cls(source=source, destination=destination, force=force)

    @property
    def is_wildcard(self) -> bool:
        return '*' in self.source

    def matches_source(self, ref: str) -> bool:
        return _match(self.source, ref) is not None

    def matches_destination(self, ref: str) -> bool:
        return _match(self.destination, ref) is not None

    def convert(self, ref: str) -> Optional[str]:
        """Map a source reference to its destination name, None if unmatched."""
        captured = _match(self.source, ref)
        if captured is None:
            return None
        return self.destination.replace('*', captured, 1) if self.is_wildcard else self.destination

    def with_force(self, force: bool) -> 'RefSpec':
        return replace(self, force=force)

    def local(self) -> 'RefSpec':
        """Refspec that fetches the source side into the same local names."""
        return RefSpec(source=self.source, destination=self.source, force=True)

    def __str__(self) -> str:
        return f"{'+' if self.force else ''}{self.source}:{self.destination}"


def parse_refspecs(refspecs: Optional[Iterable[str]]) -> List[RefSpec]:
    """Parse a list of refspecs, falling back to all branches."""
    specs = list(refspecs) if refspecs is not None else [DEFAULT_REFSPEC]
    if not specs:
        raise ValidationException('At least one refspec is required')
    return [RefSpec.parse(spec) for spec in specs]


def _match(pattern: str, ref: str) -> Optional[str]:
    if '*' not in pattern:
        return '' if pattern == ref else None
    prefix, suffix = pattern.split('*', 1)
    if len(ref) < len(prefix) + len(suffix):
        return None
    if ref.startswith(prefix) and ref.endswith(suffix):
        return ref[len(prefix) : len(ref) - len(suffix)]
    return None
