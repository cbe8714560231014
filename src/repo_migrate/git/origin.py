"""Git origin: resolves references, checks out trees and reads history."""

import os
import re
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from loguru import logger

from ..authoring.authoring import Authoring
from ..core.change import Change, VisitResult
from ..exceptions import (
    CannotResolveReferenceException,
    CheckoutHookException,
    RepoException,
    ValidationException,
)
from ..core.glob import Glob
from .cache import RepositoryCache
from .repository import GitLogEntry, GitRepository

GIT_ORIGIN_LABEL = 'GitOrigin-RevId'
SHA1_PATTERN = re.compile(r'^[0-9a-f]{40}$')
URL_PATTERN = re.compile(r'^(https?|file|ssh|git)://')
GITHUB_URL_PATTERN = re.compile(r'^(https?://|ssh://git@|git@)github\.com[/:]')

# Number of changes read per 'git log' call while visiting history
VISIT_BATCH_SIZE = 100


class GitRepoType(str, Enum):
    """Flavour of git server behind an origin."""

    GIT = 'GIT'
    GERRIT = 'GERRIT'
    GITHUB = 'GITHUB'


@dataclass(frozen=True)
class GitReference:
    """A resolved commit of a git origin."""

    sha1: str
    url: str
    repository: GitRepository = field(compare=False, repr=False)
    label_name: str = GIT_ORIGIN_LABEL

    def as_string(self) -> str:
        return self.sha1

    def read_timestamp(self) -> Optional[datetime]:
        return self.repository.read_timestamp(self.sha1)


ChangeVisitor = Callable[[Change[GitReference]], VisitResult]


class GitOrigin:
    """A git repository used as the source of truth."""

    def __init__(
        self,
        repo_url: str,
        ref: Optional[str],
        cache: RepositoryCache,
        repo_type: GitRepoType = GitRepoType.GIT,
        checkout_hook: Optional[str] = None,
    ):
        """Initialize git origin.

        Args:
            repo_url: URL of the origin repository
            ref: Default reference, used when none is passed to resolve()
            cache: Local repository cache
            repo_type: Kind of server hosting the repository
            checkout_hook: Executable run in the checkout directory after checkout
        """
        if not repo_url:
            raise ValidationException('Git origin requires a non-empty url')
        if repo_type == GitRepoType.GITHUB and not GITHUB_URL_PATTERN.match(repo_url):
            raise ValidationException(f'Invalid Github URL: {repo_url}')

        self.repo_url = repo_url
        self.ref = ref
        self.cache = cache
        self.repo_type = repo_type
        self.checkout_hook = checkout_hook
        self.logger = logger.bind(component='GitOrigin')

    def resolve(self, reference: Optional[str]) -> GitReference:
        """Resolve a reference expression into a commit of the origin.

        Args:
            reference: Branch, tag, SHA-1 or a URL overriding the origin URL.
                Empty means the configured default reference.

        Returns:
            Resolved reference

        Raises:
            CannotResolveReferenceException: If the reference doesn't exist
        """
        ref = reference or self.ref
        if not ref:
            raise CannotResolveReferenceException(
                f'No reference was passed and no default reference is configured '
                f'for {self.repo_url}'
            )

        url = self.repo_url
        if URL_PATTERN.match(ref):
            self.logger.warning(f'Git origin URL overwritten in the command line as {ref}')
            url, ref = ref, 'HEAD'

        with self.cache.lock(self.repo_url) as repo:
            sha1 = self._fetch_and_resolve(repo, url, ref)
        self.logger.debug(f"Resolved '{ref}' to {sha1}")
        return GitReference(sha1=sha1, url=url, repository=repo)

    def new_reader(self, path_filter: Glob, authoring: Authoring) -> 'GitReader':
        """Create a reader bound to a path filter and an authoring policy."""
        return GitReader(self, path_filter, authoring)

    def _fetch_and_resolve(self, repo: GitRepository, url: str, ref: str) -> str:
        self.logger.info(f'Fetching from {url}')
        repo.fetch(url, ['+refs/heads/*:refs/heads/*'], prune=True, force=True, tags=True)

        if SHA1_PATTERN.match(ref):
            return repo.resolve_reference(ref)

        # Symbolic names like HEAD only make sense in the remote
        if _is_fetchable(ref):
            try:
                repo.fetch(url, [ref], force=True)
            except RepoException:
                self.logger.debug(f"'{ref}' is not a remote reference, resolving locally")
            else:
                return repo.resolve_reference('FETCH_HEAD')
        return repo.resolve_reference(ref)

    def __str__(self) -> str:
        return (
            f'GitOrigin(repo_url={self.repo_url}, ref={self.ref}, '
            f'repo_type={self.repo_type.value})'
        )

    __repr__ = __str__


class GitReader:
    """Reads a git origin through a path filter and an authoring policy."""

    def __init__(self, origin: GitOrigin, path_filter: Glob, authoring: Authoring):
        self.origin = origin
        self.path_filter = path_filter
        self.authoring = authoring
        self.logger = logger.bind(component='GitReader')

    def checkout(self, ref: GitReference, workdir: Path) -> None:
        """Check out ref into workdir and run the checkout hook, if any.

        Raises:
            RepoException: If the checkout fails
            CheckoutHookException: If the checkout hook fails
        """
        workdir = Path(workdir)
        self.logger.info(f'Checking out {ref.sha1} into {workdir}')
        with self.origin.cache.lock(self.origin.repo_url) as repo:
            repo.checkout(ref.sha1, workdir)

        if not self.path_filter.is_all_files():
            self._remove_excluded_files(workdir)

        if self.origin.checkout_hook:
            self._run_checkout_hook(workdir)

    def changes(
        self, from_ref: Optional[GitReference], to_ref: GitReference
    ) -> List[Change[GitReference]]:
        """Changes after from_ref up to and including to_ref, oldest first.

        Only the first parent of merge commits is followed. A None from_ref
        means the beginning of history.
        """
        entries = to_ref.repository.log(from_ref.sha1 if from_ref else None, to_ref.sha1)
        entries = [entry for entry in entries if self._in_scope(to_ref.repository, entry)]
        return [self._to_change(to_ref, entry) for entry in reversed(entries)]

    def change(self, ref: GitReference) -> Change[GitReference]:
        """Return the change for a single commit."""
        entries = ref.repository.log(None, ref.sha1, limit=1)
        if not entries:
            raise CannotResolveReferenceException(f"Cannot find reference '{ref.sha1}'")
        return self._to_change(ref, entries[0])

    def visit_changes(self, start: GitReference, visitor: ChangeVisitor) -> None:
        """Visit changes from start backwards, newest first, first parent only.

        The visit stops when the visitor returns TERMINATE or when history is
        exhausted.
        """
        skip = 0
        while True:
            entries = start.repository.log(None, start.sha1, limit=VISIT_BATCH_SIZE, skip=skip)
            for entry in entries:
                if not self._in_scope(start.repository, entry):
                    continue
                if visitor(self._to_change(start, entry)) == VisitResult.TERMINATE:
                    return
            if len(entries) < VISIT_BATCH_SIZE:
                return
            skip += len(entries)

    def _to_change(self, ref: GitReference, entry: GitLogEntry) -> Change[GitReference]:
        reference = GitReference(sha1=entry.sha1, url=ref.url, repository=ref.repository)
        return Change.from_message(
            reference=reference,
            author=entry.author,
            message=entry.message,
            date_time=entry.author_date,
        )

    def _in_scope(self, repo: GitRepository, entry: GitLogEntry) -> bool:
        if self.path_filter.is_all_files():
            return True
        changed = repo.changed_files(entry.sha1, entry.first_parent)
        return bool(self.path_filter.filter_paths(changed))

    def _remove_excluded_files(self, workdir: Path) -> None:
        for path in sorted(workdir.rglob('*'), reverse=True):
            relative = path.relative_to(workdir).as_posix()
            if path.is_file() and not self.path_filter.matches(relative):
                path.unlink()
            elif path.is_dir() and not any(path.iterdir()):
                path.rmdir()

    def _run_checkout_hook(self, workdir: Path) -> None:
        hook = self.origin.checkout_hook
        self.logger.info(f'Running checkout hook {hook} in {workdir}')
        try:
            result = subprocess.run(
                [hook],
                cwd=str(workdir),
                env={**os.environ, **self.origin.cache.environment},
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise CheckoutHookException(
                f'Error executing the git checkout hook: {hook}: {e}'
            ) from e

        if result.returncode != 0:
            raise CheckoutHookException(
                f'Error executing the git checkout hook: {hook} exited with '
                f'{result.returncode}: {result.stderr.strip()}',
                exit_code=result.returncode,
                stderr=result.stderr,
            )


def _is_fetchable(ref: str) -> bool:
    # Expressions like 'HEAD~1' or 'master^' can only be resolved locally
    return not any(c in ref for c in '~^:@{ ')
