"""Glob-style path filters relative to a checkout directory."""

import fnmatch
from pathlib import Path, PurePosixPath
from typing import ClassVar, Iterator, List, Tuple

from pydantic import BaseModel, Field, validator


class Glob(BaseModel):
    """Set of include and exclude patterns over relative POSIX paths.

    '*' matches across directory separators, so '**' behaves as expected.
    """

    include: Tuple[str, ...] = Field(..., description='Patterns to include')
    exclude: Tuple[str, ...] = Field(default=(), description='Patterns to exclude')

    ALL_FILES: ClassVar['Glob']

    class Config:
        """Pydantic configuration."""

        frozen = True

    @validator('include')
    def validate_include(cls, v):
        """A glob must include something."""
        if not v:
            raise ValueError('Glob requires at least one include pattern')
        return v

    @validator('include', 'exclude', each_item=True)
    def validate_relative(cls, v):
        """Patterns are relative to the checkout directory."""
        if v.startswith('/'):
            raise ValueError(f"Pattern '{v}' must be a relative path")
        return v

    def matches(self, path: str) -> bool:
        """Return True if the relative path is selected by this glob."""
        normalized = str(PurePosixPath(path))
        if not any(fnmatch.fnmatchcase(normalized, p) for p in self.include):
            return False
        return not any(fnmatch.fnmatchcase(normalized, p) for p in self.exclude)

    def is_all_files(self) -> bool:
        return self == Glob.ALL_FILES

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Yield files under root that this glob selects, skipping .git."""
        for candidate in sorted(root.rglob('*')):
            relative = candidate.relative_to(root)
            if relative.parts and relative.parts[0] == '.git':
                continue
            if candidate.is_file() and self.matches(relative.as_posix()):
                yield candidate

    def filter_paths(self, paths: List[str]) -> List[str]:
        return [p for p in paths if self.matches(p)]


Glob.ALL_FILES = Glob(include=('**',))
