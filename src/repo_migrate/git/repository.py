"""Synchronous wrapper over the native git binary."""

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from loguru import logger

from ..authoring.authoring import Author
from ..exceptions import (
    CannotResolveReferenceException,
    PushRejectedException,
    RepoException,
)
from .refspec import RefSpec

# Field and record separators for 'git log' output
FIELD_SEPARATOR = '\x1f'
RECORD_SEPARATOR = '\x1e'
LOG_FORMAT = '%H%x1f%P%x1f%an%x1f%ae%x1f%aI%x1f%B%x1e'


@dataclass
class CommandOutput:
    """Result of a git command."""

    stdout: str
    stderr: str
    returncode: int = 0


@dataclass
class GitLogEntry:
    """A raw commit as read from 'git log'."""

    sha1: str
    parents: List[str]
    author: Author
    author_date: datetime
    message: str

    @property
    def first_parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None


@dataclass
class GitRepository:
    """A git directory, and optionally a work tree, driven through git."""

    git_dir: Path
    work_tree: Optional[Path] = None
    environment: Dict[str, str] = field(default_factory=dict)
    verbose: bool = False

    def __post_init__(self):
        self.git_dir = Path(self.git_dir)
        if self.work_tree is not None:
            self.work_tree = Path(self.work_tree)
        self.logger = logger.bind(component='GitRepository')

    @classmethod
    def bare_repo(
        cls, path: Path, environment: Optional[Dict[str, str]] = None, verbose: bool = False
    ) -> 'GitRepository':
        """Return a repository for a bare git directory. Call init_git_dir() to create it."""
        return cls(git_dir=Path(path), environment=dict(environment or {}), verbose=verbose)

    @classmethod
    def init_scratch_repo(
        cls, path: Path, environment: Optional[Dict[str, str]] = None, verbose: bool = False
    ) -> 'GitRepository':
        """Initialize a non-bare repository whose initial branch is 'master'."""
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        repo = cls(
            git_dir=path / '.git',
            work_tree=path,
            environment=dict(environment or {}),
            verbose=verbose,
        )
        repo.git('-c', 'init.defaultBranch=master', 'init', '-q', str(path), cwd=path)
        return repo

    def init_git_dir(self) -> 'GitRepository':
        """Create the bare git directory if it doesn't exist yet."""
        self.git_dir.mkdir(parents=True, exist_ok=True)
        if not (self.git_dir / 'HEAD').exists():
            self.git(
                '-c', 'init.defaultBranch=master', 'init', '--bare', '-q', str(self.git_dir),
                cwd=self.git_dir,
            )
        return self

    def git(self, *args: str, cwd: Optional[Path] = None, check: bool = True) -> CommandOutput:
        """Run a git command.

        Args:
            *args: Git arguments, without the leading 'git'
            cwd: Working directory, defaults to the work tree or git dir
            check: Raise RepoException on a non-zero exit code

        Returns:
            Command output

        Raises:
            RepoException: If git can't be executed or fails and check is set
        """
        cmd = ['git', *args]
        work_dir = cwd or self.work_tree or self.git_dir
        env = {**os.environ, **self.environment}
        self.logger.debug(f'Executing: {" ".join(cmd)} (cwd={work_dir})')
        try:
            result = subprocess.run(
                cmd,
                cwd=str(work_dir),
                env=env,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise RepoException(f'Cannot execute git: {e}') from e

        output = CommandOutput(
            stdout=result.stdout, stderr=result.stderr, returncode=result.returncode
        )
        if self.verbose and result.stderr:
            self.logger.info(result.stderr.rstrip())
        if check and result.returncode != 0:
            raise RepoException(
                f'Error executing \'git {" ".join(args)}\': {result.stderr.strip()}',
                stderr=result.stderr,
            )
        return output

    def simple_command(self, *args: str, check: bool = True) -> CommandOutput:
        """Run a git command bound to this repository's git dir and work tree."""
        bound = ['--git-dir', str(self.git_dir)]
        if self.work_tree is not None:
            bound += ['--work-tree', str(self.work_tree)]
        return self.git(*bound, *args, check=check)

    def resolve_reference(self, expression: str) -> str:
        """Resolve a reference expression to a commit SHA-1.

        Raises:
            CannotResolveReferenceException: If the expression doesn't resolve
        """
        output = self.simple_command(
            'rev-parse', '--verify', '--quiet', f'{expression}^{{commit}}', check=False
        )
        if output.returncode != 0 or not output.stdout.strip():
            raise CannotResolveReferenceException(f"Cannot find reference '{expression}'")
        return output.stdout.strip()

    def checkout(self, ref: str, destination: Path) -> None:
        """Materialize the tree at ref into destination.

        Local modifications are overwritten and files that don't exist at ref
        are removed. A failed checkout may leave partial files.
        """
        destination = Path(destination)
        destination.mkdir(parents=True, exist_ok=True)
        bound = ['--git-dir', str(self.git_dir), '--work-tree', str(destination)]
        # Reset the index so paths removed since the previous checkout are dropped
        self.git(*bound, 'read-tree', '--reset', '-u', ref, cwd=destination)
        self.git(*bound, 'checkout-index', '-a', '-f', cwd=destination)
        self.git(*bound, 'clean', '-q', '-f', '-d', '-x', cwd=destination)

    def log(
        self,
        from_exclusive: Optional[str],
        to_inclusive: str,
        limit: Optional[int] = None,
        skip: int = 0,
        paths: Sequence[str] = (),
    ) -> List[GitLogEntry]:
        """Read first-parent history, newest first.

        Args:
            from_exclusive: Oldest excluded commit, None for the whole history
            to_inclusive: Newest included commit
            limit: Maximum number of entries
            skip: Number of entries to skip
            paths: Optional pathspecs

        Returns:
            Log entries, newest first
        """
        revision = f'{from_exclusive}..{to_inclusive}' if from_exclusive else to_inclusive
        args = ['log', '--no-color', '--first-parent', f'--format={LOG_FORMAT}']
        if limit is not None:
            args.append(f'-n{limit}')
        if skip:
            args.append(f'--skip={skip}')
        args += [revision, '--']
        args += list(paths)
        output = self.simple_command(*args)
        return self._parse_log(output.stdout)

    def changed_files(self, sha1: str, parent: Optional[str]) -> List[str]:
        """Files changed by a commit relative to its first parent."""
        if parent is None:
            output = self.simple_command(
                'diff-tree', '--no-commit-id', '--name-only', '-r', '--root', sha1
            )
        else:
            output = self.simple_command(
                'diff-tree', '--no-commit-id', '--name-only', '-r', parent, sha1
            )
        return [line for line in output.stdout.splitlines() if line.strip()]

    def read_timestamp(self, sha1: str) -> datetime:
        """Commit time of a commit as an aware UTC datetime."""
        output = self.simple_command('log', '-1', '--no-color', '--format=%ct', sha1)
        return datetime.fromtimestamp(int(output.stdout.strip()), tz=timezone.utc)

    def fetch(
        self,
        url: str,
        refspecs: Iterable[object],
        prune: bool = False,
        force: bool = False,
        tags: bool = False,
    ) -> CommandOutput:
        """Fetch refspecs from url into this repository."""
        args = ['fetch', '--tags' if tags else '--no-tags']
        if prune:
            args.append('--prune')
        if force:
            args.append('--force')
        args.append(url)
        args += [str(spec) for spec in refspecs]
        return self.simple_command(*args)

    def push(
        self, url: str, refspecs: Iterable[RefSpec], force: bool = False
    ) -> CommandOutput:
        """Push refspecs to url.

        Raises:
            PushRejectedException: If an update is rejected, e.g. non-fast-forward
            RepoException: On any other push failure
        """
        args = ['push', '--porcelain']
        if force:
            args.append('--force')
        args.append(url)
        args += [str(spec) for spec in refspecs]
        output = self.simple_command(*args, check=False)
        if output.returncode != 0:
            details = '\n'.join(
                text.strip() for text in (output.stdout, output.stderr) if text.strip()
            )
            if '[rejected]' in details or '[remote rejected]' in details:
                raise PushRejectedException(
                    f'Failed to push to {url}:\n{details}', stderr=output.stderr
                )
            raise RepoException(f'Failed to push to {url}:\n{details}', stderr=output.stderr)
        return output

    def delete_remote_refs(self, url: str, refs: Iterable[str]) -> None:
        """Delete references from a remote repository."""
        deletions = [f':{ref}' for ref in refs]
        if deletions:
            self.simple_command('push', '--porcelain', url, *deletions)

    def list_refs(self, patterns: Sequence[str] = (), url: Optional[str] = None) -> Dict[str, str]:
        """List references and their SHA-1, locally or in a remote.

        Args:
            patterns: Reference patterns (refspec sides, '*' allowed)
            url: Remote URL, None for this repository

        Returns:
            Reference name to SHA-1 mapping
        """
        if url is None:
            output = self.simple_command('show-ref', check=False)
            # show-ref exits with 1 when there are no refs
            if output.returncode not in (0, 1):
                raise RepoException(f'Cannot list references: {output.stderr.strip()}')
        else:
            output = self.simple_command('ls-remote', '--refs', url)

        refs = {}
        for line in output.stdout.splitlines():
            parts = line.split()
            if len(parts) != 2:
                continue
            sha1, ref = parts
            if not patterns or any(_ref_matches(p, ref) for p in patterns):
                refs[ref] = sha1
        return refs

    def remove(self) -> None:
        """Delete the git directory from disk."""
        shutil.rmtree(self.git_dir, ignore_errors=True)

    def _parse_log(self, text: str) -> List[GitLogEntry]:
        entries = []
        for record in text.split(RECORD_SEPARATOR):
            record = record.lstrip('\n')
            if not record:
                continue
            sha1, parents, name, email, date, body = record.split(FIELD_SEPARATOR, 5)
            message = body.strip('\n') + '\n'
            entries.append(
                GitLogEntry(
                    sha1=sha1,
                    parents=parents.split(),
                    author=Author(name=name, email=email),
                    author_date=datetime.fromisoformat(date),
                    message=message,
                )
            )
        return entries


def _ref_matches(pattern: str, ref: str) -> bool:
    if '*' not in pattern:
        return pattern == ref
    prefix, suffix = pattern.split('*', 1)
    return (
        len(ref) >= len(prefix) + len(suffix)
        and ref.startswith(prefix)
        and ref.endswith(suffix)
    )
