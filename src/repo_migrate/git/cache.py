"""Local cache of bare repositories shared between migrations."""

import fcntl
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional
from urllib.parse import quote

from loguru import logger

from .repository import GitRepository


class RepositoryCache:
    """Bare repositories stored under a storage path, keyed by URL.

    Concurrent runs serialize access to a cached repository with an exclusive
    file lock held for the duration of a fetch, checkout or push.
    """

    def __init__(
        self,
        storage_path: Path,
        environment: Optional[Dict[str, str]] = None,
        verbose: bool = False,
    ):
        """Initialize the cache.

        Args:
            storage_path: Directory holding the cached repositories
            environment: Environment overlay for git commands
            verbose: Log git stderr output
        """
        self.storage_path = Path(storage_path).expanduser()
        self.environment = dict(environment or {})
        self.verbose = verbose
        self.logger = logger.bind(component='RepositoryCache')

    def path_for(self, url: str) -> Path:
        return self.storage_path / quote(url, safe='')

    def get(self, url: str) -> GitRepository:
        """Return the cached bare repository for url, creating it if needed."""
        path = self.path_for(url)
        repo = GitRepository.bare_repo(path, self.environment, self.verbose)
        if not (path / 'HEAD').exists():
            self.logger.info(f'Initializing repository cache for {url} at {path}')
            repo.init_git_dir()
        return repo

    @contextmanager
    def lock(self, url: str) -> Iterator[GitRepository]:
        """Hold an exclusive lock on the cached repository for url.

        Yields:
            The cached repository
        """
        path = self.path_for(url)
        path.parent.mkdir(parents=True, exist_ok=True)
        lock_file = path.with_name(path.name + '.lock')
        lock_file.touch(exist_ok=True)

        with open(lock_file, 'r') as lock_f:
            fcntl.flock(lock_f.fileno(), fcntl.LOCK_EX)
            try:
                yield self.get(url)
            finally:
                fcntl.flock(lock_f.fileno(), fcntl.LOCK_UN)
