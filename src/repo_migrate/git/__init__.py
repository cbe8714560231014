"""Git origin, repository wrapper and mirror."""

from .repository import GitRepository, GitLogEntry, CommandOutput
from .refspec import RefSpec, DEFAULT_REFSPEC
from .cache import RepositoryCache
from .origin import GitOrigin, GitReader, GitReference, GitRepoType
from .mirror import GitMirror, MirrorState

__all__ = [
    'GitRepository',
    'GitLogEntry',
    'CommandOutput',
    'RefSpec',
    'DEFAULT_REFSPEC',
    'RepositoryCache',
    'GitOrigin',
    'GitReader',
    'GitReference',
    'GitRepoType',
    'GitMirror',
    'MirrorState',
]
