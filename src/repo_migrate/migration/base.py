"""Runnable migrations and the destinations they write to."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..authoring.authoring import Author
from ..core.change import Change


class Migration(ABC):
    """A named, runnable binding of an origin and a destination."""

    name: str

    @abstractmethod
    def run(self, workdir: Path, source_ref: Optional[str] = None) -> None:
        """Run the migration.

        Args:
            workdir: Scratch directory owned by this run
            source_ref: Origin reference to migrate, None for the configured default

        Raises:
            RepoException: On repository or hook failures
        """
        pass

    def describe(self) -> str:
        return f'{self.__class__.__name__} {self.name}'


@dataclass
class TransformResult:
    """A transformed tree ready to be written to a destination."""

    path: Path
    change: Change[Any]
    author: Author
    message: str


class Destination(ABC):
    """Writes transformed trees somewhere."""

    @abstractmethod
    def write(self, result: TransformResult) -> None:
        """Write a transformed tree.

        Args:
            result: Tree, originating change and destination author
        """
        pass
