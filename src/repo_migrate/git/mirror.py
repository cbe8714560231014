"""Mirror references from one git repository to another."""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from loguru import logger

from ..migration.base import Migration
from .cache import RepositoryCache
from .refspec import RefSpec, parse_refspecs
from .repository import GitRepository


class MirrorState(str, Enum):
    """Progress of a mirror run."""

    INIT = 'init'
    FETCHED = 'fetched'
    PUSHED = 'pushed'
    PRUNED = 'pruned'
    DONE = 'done'
    FAILED = 'failed'


class GitMirror(Migration):
    """Synchronize destination references with the origin under refspecs.

    Without force_push only fast-forward updates are pushed and any rejected
    update fails the whole run. With prune, destination references covered by
    the refspecs that the origin no longer produces are deleted after a
    successful push.
    """

    def __init__(
        self,
        name: str,
        origin_url: str,
        destination_url: str,
        cache: RepositoryCache,
        refspecs: Optional[Sequence[str]] = None,
        prune: bool = False,
        force_push: bool = False,
    ):
        """Initialize git mirror.

        Args:
            name: Migration name, unique in a configuration
            origin_url: URL to read references from
            destination_url: URL to push references to
            cache: Local repository cache
            refspecs: Refspecs to mirror, all branches by default
            prune: Delete destination references missing in the origin
            force_push: Push non-fast-forward updates
        """
        self.name = name
        self.origin_url = origin_url
        self.destination_url = destination_url
        self.cache = cache
        self.refspecs: List[RefSpec] = parse_refspecs(refspecs)
        self.prune = prune
        self.force_push = force_push
        self.state = MirrorState.INIT
        self.logger = logger.bind(component='GitMirror', migration=name)

    def run(self, workdir: Path, source_ref: Optional[str] = None) -> None:
        """Fetch the origin references and push them to the destination.

        Raises:
            PushRejectedException: If an update is not a fast-forward
            RepoException: On any other git failure
        """
        if source_ref:
            self.logger.debug(f"Ignoring source reference '{source_ref}' for mirror")

        self.state = MirrorState.INIT
        self.logger.info(f'Mirroring {self.origin_url} to {self.destination_url}')
        try:
            with self.cache.lock(self.origin_url) as repo:
                self._fetch(repo)
                self.state = MirrorState.FETCHED

                self._push(repo)
                self.state = MirrorState.PUSHED

                if self.prune:
                    self._prune(repo)
                    self.state = MirrorState.PRUNED
                else:
                    self.state = MirrorState.DONE
        except Exception:
            self.state = MirrorState.FAILED
            raise

        self.logger.info(f'Mirror {self.name} finished: {self.state.value}')

    def _fetch(self, repo: GitRepository) -> None:
        # Local names mirror the origin so the cache can be shared by migrations
        local_specs = [spec.local() for spec in self.refspecs]
        repo.fetch(self.origin_url, local_specs, prune=True, force=True)

    def _push(self, repo: GitRepository) -> None:
        expected = self._expected_destination_refs(repo)
        if not expected:
            self.logger.warning(f'No references in {self.origin_url} match {self._specs_text()}')
            return
        push_specs = [spec.with_force(self.force_push) for spec in self.refspecs]
        repo.push(self.destination_url, push_specs, force=self.force_push)
        self.logger.info(f'Pushed {len(expected)} reference(s) to {self.destination_url}')

    def _prune(self, repo: GitRepository) -> None:
        expected = self._expected_destination_refs(repo)
        patterns = [spec.destination for spec in self.refspecs]
        existing = repo.list_refs(patterns, url=self.destination_url)
        stale = sorted(ref for ref in existing if ref not in expected)
        if not stale:
            return
        self.logger.info(f'Pruning {len(stale)} reference(s): {", ".join(stale)}')
        repo.delete_remote_refs(self.destination_url, stale)

    def _expected_destination_refs(self, repo: GitRepository) -> Dict[str, str]:
        local = repo.list_refs([spec.source for spec in self.refspecs])
        expected = {}
        for ref, sha1 in local.items():
            for spec in self.refspecs:
                destination = spec.convert(ref)
                if destination is not None:
                    expected[destination] = sha1
                    break
        return expected

    def _specs_text(self) -> str:
        return ', '.join(str(spec) for spec in self.refspecs)

    def __repr__(self) -> str:
        return (
            f'GitMirror(name={self.name!r}, origin={self.origin_url!r}, '
            f'destination={self.destination_url!r}, refspecs=[{self._specs_text()}], '
            f'prune={self.prune}, force_push={self.force_push})'
        )
