"""Shared fixtures for repo-migrate tests."""

import shutil
from pathlib import Path
from typing import List, Optional

import pytest
from loguru import logger

from repo_migrate.git.cache import RepositoryCache
from repo_migrate.git.repository import GitRepository

requires_git = pytest.mark.skipif(shutil.which('git') is None, reason='git is not installed')


class ScratchRepo:
    """Non-bare repository used to build origin histories in tests."""

    def __init__(self, path: Path):
        self.path = path
        self.repo = GitRepository.init_scratch_repo(path)

    def git(self, *args: str) -> str:
        return self.repo.git(*args, cwd=self.path).stdout

    def write(self, name: str, content: str) -> Path:
        target = self.path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        return target

    def commit(
        self,
        message: str,
        author: str = 'Foo Bar <foo@bar.com>',
        date: Optional[str] = None,
    ) -> str:
        """Stage everything, commit and return the new SHA-1.

        A date sets both the author and the committer time.
        """
        self.git('add', '-A')
        args = ['commit', '-q', '--allow-empty', f'--author={author}', '-m', message]
        if date is not None:
            args.append(f'--date={date}')
            self.repo.environment['GIT_COMMITTER_DATE'] = date
        try:
            self.git(*args)
        finally:
            self.repo.environment.pop('GIT_COMMITTER_DATE', None)
        return self.head()

    def head(self, ref: str = 'HEAD') -> str:
        return self.git('rev-parse', ref).strip()

    def url(self) -> str:
        return str(self.path)


@pytest.fixture
def git_env(tmp_path, monkeypatch):
    """Hermetic git environment: empty HOME, no system config, fixed committer."""
    home = tmp_path / 'home'
    home.mkdir()
    monkeypatch.setenv('HOME', str(home))
    monkeypatch.setenv('GIT_CONFIG_NOSYSTEM', '1')
    monkeypatch.setenv('GIT_COMMITTER_NAME', 'Committer')
    monkeypatch.setenv('GIT_COMMITTER_EMAIL', 'committer@example.com')
    monkeypatch.setenv('GIT_AUTHOR_NAME', 'Default Author')
    monkeypatch.setenv('GIT_AUTHOR_EMAIL', 'default@example.com')
    return home


@pytest.fixture
def origin_repo(tmp_path, git_env) -> ScratchRepo:
    return ScratchRepo(tmp_path / 'origin')


@pytest.fixture
def make_repo(tmp_path, git_env):
    """Factory for additional scratch repositories."""

    def factory(name: str) -> ScratchRepo:
        return ScratchRepo(tmp_path / name)

    return factory


@pytest.fixture
def make_bare_repo(tmp_path, git_env):
    """Factory for bare repositories used as push destinations."""

    def factory(name: str) -> GitRepository:
        return GitRepository.bare_repo(tmp_path / name).init_git_dir()

    return factory


@pytest.fixture
def cache(tmp_path, git_env) -> RepositoryCache:
    return RepositoryCache(tmp_path / 'cache')


@pytest.fixture
def log_messages() -> List[str]:
    """Collect the messages logged while the test runs."""
    messages: List[str] = []
    sink_id = logger.add(lambda m: messages.append(m.record['message']), level='DEBUG')
    yield messages
    logger.remove(sink_id)
