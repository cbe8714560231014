"""Reversible transformations applied to a checked out working tree."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence

from loguru import logger

from ..exceptions import ValidationException
from .glob import Glob


@dataclass
class TransformWork:
    """Working tree and metadata handed to each transformation."""

    checkout_dir: Path
    message: str = ''

    def __post_init__(self):
        self.checkout_dir = Path(self.checkout_dir)


class Transformation(ABC):
    """A named operation over a working tree that declares its own reverse."""

    @abstractmethod
    def transform(self, work: TransformWork) -> None:
        """Apply the transformation to the working tree.

        Args:
            work: Working tree and change metadata
        """
        pass

    @abstractmethod
    def reverse(self) -> 'Transformation':
        """Return a transformation that undoes this one when applied."""
        pass

    @abstractmethod
    def describe(self) -> str:
        """Short human readable description, used in progress messages."""
        pass


class Move(Transformation):
    """Move or rename a file or directory inside the working tree."""

    def __init__(self, before: str, after: str):
        if not before or not after:
            raise ValidationException("'before' and 'after' must be non-empty paths")
        if Path(before).is_absolute() or Path(after).is_absolute():
            raise ValidationException(
                f"Paths must be relative: '{before}' -> '{after}'"
            )
        self.before = before
        self.after = after

    def transform(self, work: TransformWork) -> None:
        source = work.checkout_dir / self.before
        target = work.checkout_dir / self.after
        if not source.exists():
            raise ValidationException(
                f"Error moving '{self.before}'. It doesn't exist in the workdir"
            )
        if target.exists():
            raise ValidationException(
                f"Cannot move '{self.before}' to '{self.after}': destination exists"
            )
        target.parent.mkdir(parents=True, exist_ok=True)
        source.rename(target)

    def reverse(self) -> 'Move':
        return Move(self.after, self.before)

    def describe(self) -> str:
        return f'Moving {self.before} to {self.after}'

    def __repr__(self) -> str:
        return f'Move(before={self.before!r}, after={self.after!r})'


class Replace(Transformation):
    """Replace literal text in the files selected by a glob."""

    def __init__(self, before: str, after: str, paths: Optional[Glob] = None):
        if not before:
            raise ValidationException("'before' must be a non-empty string")
        self.before = before
        self.after = after
        self.paths = paths or Glob.ALL_FILES

    def transform(self, work: TransformWork) -> None:
        replaced = 0
        for path in self.paths.iter_files(work.checkout_dir):
            try:
                with open(path, 'r', encoding='utf-8', newline='') as f:
                    content = f.read()
            except UnicodeDecodeError:
                # Binary files are left untouched
                continue
            if self.before in content:
                with open(path, 'w', encoding='utf-8', newline='') as f:
                    f.write(content.replace(self.before, self.after))
                replaced += 1
        logger.debug(f"Replaced '{self.before}' in {replaced} file(s)")

    def reverse(self) -> 'Replace':
        if not self.after:
            raise ValidationException(
                f"Replace of '{self.before}' with an empty string is not reversible"
            )
        return Replace(self.after, self.before, self.paths)

    def describe(self) -> str:
        return f'Replace {self.before}'

    def __repr__(self) -> str:
        return f'Replace(before={self.before!r}, after={self.after!r})'


class TransformationPipeline(Transformation):
    """Ordered sequence of transformations with a user declared reversal.

    The reversal is never derived from the forward list: reversing a pipeline
    swaps the two sequences.
    """

    def __init__(
        self,
        transformations: Sequence[Transformation],
        reversal: Sequence[Transformation],
    ):
        """Initialize the pipeline.

        Args:
            transformations: Transformations applied by transform()
            reversal: Transformations applied by the reversed pipeline

        Raises:
            ValidationException: If any element is not a Transformation
        """
        self.transformations: List[Transformation] = _check_transformations(
            'transformations', transformations
        )
        self.reversal: List[Transformation] = _check_transformations(
            'reversal', reversal
        )
        self.logger = logger.bind(component='TransformationPipeline')

    def transform(self, work: TransformWork) -> None:
        total = len(self.transformations)
        width = len(str(total))
        for index, transformation in enumerate(self.transformations, start=1):
            self.logger.info(
                f'[{index:>{width}}/{total}] Transform {transformation.describe()}'
            )
            transformation.transform(work)

    def reverse(self) -> 'TransformationPipeline':
        return TransformationPipeline(self.reversal, self.transformations)

    def describe(self) -> str:
        return f'sequence of {len(self.transformations)} transformation(s)'

    def __repr__(self) -> str:
        return (
            f'TransformationPipeline(transformations={self.transformations!r}, '
            f'reversal={self.reversal!r})'
        )


def core_transform(
    transformations: Optional[Sequence[Any]] = None,
    reversal: Optional[Sequence[Any]] = None,
) -> TransformationPipeline:
    """Group transformations with an explicit reversal.

    Args:
        transformations: Transformations to apply
        reversal: Transformations applied when the group is reversed

    Returns:
        Transformation pipeline

    Raises:
        ValidationException: If an argument is missing or has the wrong type
    """
    if transformations is None:
        raise ValidationException(
            "missing mandatory argument 'transformations' in call to transform"
        )
    if reversal is None:
        raise ValidationException(
            "missing mandatory keyword argument 'reversal' in call to transform"
        )
    return TransformationPipeline(transformations, reversal)


def _check_transformations(name: str, elements: Any) -> List[Transformation]:
    if isinstance(elements, (str, bytes)) or not isinstance(elements, Sequence):
        raise ValidationException(
            f"expected a list of transformations for '{name}', "
            f'but got type {type(elements).__name__} instead'
        )
    for index, element in enumerate(elements):
        if not isinstance(element, Transformation):
            raise ValidationException(
                f"expected type transformation for '{name}' at index {index}, "
                f'but got type {type(element).__name__} instead'
            )
    return list(elements)
