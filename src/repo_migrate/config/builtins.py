"""Builtin functions available to migration configuration files.

A configuration node of the form ``{<builtin-name>: {<arguments>}}`` is a
call to the builtin. Arguments are evaluated before the call, so calls nest:

    git.mirror:
      name: default
      origin: https://example.com/origin.git
      destination: https://example.com/destination.git

Arguments are validated by a pydantic model per builtin.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Type

from pydantic import BaseModel, Field, ValidationError

from ..authoring import authoring
from ..core.glob import Glob
from ..core.transform import Move, Replace, core_transform
from ..exceptions import ValidationException
from ..git.mirror import GitMirror
from ..git.origin import GitOrigin, GitRepoType
from ..migration.base import Migration
from ..utils.logging import get_logger
from .config import Config, GitOptions

logger = get_logger('builtins')


class BuiltinParams(BaseModel):
    """Base class for builtin argument models."""

    class Config:
        """Pydantic configuration."""

        extra = 'forbid'
        arbitrary_types_allowed = True


@dataclass
class Builtin:
    """A named function callable from configuration files."""

    name: str
    params: Type[BuiltinParams]
    factory: Callable[[Any, GitOptions], Any]
    description: str


BUILTINS: Dict[str, Builtin] = {}


def builtin(name: str, params: Type[BuiltinParams]):
    """Register a factory function as a configuration builtin."""

    def decorator(factory):
        BUILTINS[name] = Builtin(
            name=name,
            params=params,
            factory=factory,
            description=(factory.__doc__ or '').strip().splitlines()[0],
        )
        return factory

    return decorator


class DefaultAuthorParams(BuiltinParams):
    default: str = Field(..., description="Default author, 'name <email>'")


class WhitelistedParams(DefaultAuthorParams):
    whitelist: List[str] = Field(
        default_factory=list, description='Origin authors kept in the destination'
    )


class NewAuthorParams(BuiltinParams):
    author_string: str = Field(..., description="Author, 'name <email>'")


class GlobParams(BuiltinParams):
    include: List[str] = Field(..., description='Patterns to include')
    exclude: List[str] = Field(default_factory=list, description='Patterns to exclude')


class OriginParams(BuiltinParams):
    url: str = Field(..., description='Origin repository URL')
    ref: Optional[str] = Field(default=None, description='Default reference')


class MirrorParams(BuiltinParams):
    name: str = Field(default='default', description='Migration name')
    origin: str = Field(..., description='URL to mirror from')
    destination: str = Field(..., description='URL to mirror to')
    refspecs: Optional[List[str]] = Field(
        default=None, description='Refspecs to mirror, all branches by default'
    )
    prune: bool = Field(
        default=False, description='Delete destination refs missing in the origin'
    )


class TransformParams(BuiltinParams):
    transformations: Optional[List[Any]] = Field(default=None)
    reversal: Optional[List[Any]] = Field(default=None)


class MoveParams(BuiltinParams):
    before: str = Field(..., description='Path to move')
    after: str = Field(..., description='Destination path')


class ReplaceParams(BuiltinParams):
    before: str = Field(..., description='Text to replace')
    after: str = Field(..., description='Replacement text')
    paths: Optional[Glob] = Field(default=None, description='Files to modify')


@builtin('new_author', NewAuthorParams)
def _new_author(params: NewAuthorParams, options: GitOptions):
    """Create an author from a 'name <email>' string."""
    return authoring.new_author(params.author_string)


@builtin('authoring.pass_thru', DefaultAuthorParams)
def _pass_thru(params: DefaultAuthorParams, options: GitOptions):
    """Use the origin author as the author in the destination."""
    return authoring.pass_thru(params.default)


@builtin('authoring.overwrite', DefaultAuthorParams)
def _overwrite(params: DefaultAuthorParams, options: GitOptions):
    """Use the default author for all the changes in the destination."""
    return authoring.overwrite(params.default)


@builtin('authoring.whitelisted', WhitelistedParams)
def _whitelisted(params: WhitelistedParams, options: GitOptions):
    """Keep whitelisted origin authors and use the default for the rest."""
    return authoring.whitelisted(params.default, params.whitelist)


@builtin('glob', GlobParams)
def _glob(params: GlobParams, options: GitOptions):
    """Select files with include and exclude patterns."""
    return Glob(include=tuple(params.include), exclude=tuple(params.exclude))


def _origin(params: OriginParams, options: GitOptions, repo_type: GitRepoType) -> GitOrigin:
    return GitOrigin(
        repo_url=params.url,
        ref=params.ref,
        cache=options.repository_cache(),
        repo_type=repo_type,
        checkout_hook=options.checkout_hook,
    )


@builtin('git.origin', OriginParams)
def _git_origin(params: OriginParams, options: GitOptions):
    """Define a plain git origin."""
    return _origin(params, options, GitRepoType.GIT)


@builtin('git.gerrit_origin', OriginParams)
def _gerrit_origin(params: OriginParams, options: GitOptions):
    """Define a git origin hosted in Gerrit."""
    return _origin(params, options, GitRepoType.GERRIT)


@builtin('git.github_origin', OriginParams)
def _github_origin(params: OriginParams, options: GitOptions):
    """Define a git origin hosted in GitHub."""
    return _origin(params, options, GitRepoType.GITHUB)


@builtin('git.mirror', MirrorParams)
def _git_mirror(params: MirrorParams, options: GitOptions):
    """Mirror references between two git repositories."""
    return GitMirror(
        name=params.name,
        origin_url=params.origin,
        destination_url=params.destination,
        cache=options.repository_cache(),
        refspecs=params.refspecs,
        prune=params.prune,
        force_push=options.force_push,
    )


@builtin('core.transform', TransformParams)
def _core_transform(params: TransformParams, options: GitOptions):
    """Group transformations with an explicit reversal."""
    return core_transform(params.transformations, params.reversal)


@builtin('core.move', MoveParams)
def _core_move(params: MoveParams, options: GitOptions):
    """Move a file or directory."""
    return Move(params.before, params.after)


@builtin('core.replace', ReplaceParams)
def _core_replace(params: ReplaceParams, options: GitOptions):
    """Replace literal text in files."""
    return Replace(params.before, params.after, params.paths)


def is_call(node: Any) -> bool:
    """Return True if the node is a builtin call."""
    return isinstance(node, dict) and len(node) == 1 and next(iter(node)) in BUILTINS


def evaluate(node: Any, options: GitOptions) -> Any:
    """Evaluate a configuration node, calling builtins bottom-up.

    Args:
        node: Parsed YAML node
        options: Git options shared by origins and mirrors

    Returns:
        The evaluated value

    Raises:
        ValidationException: If a builtin receives invalid arguments
    """
    if isinstance(node, list):
        return [evaluate(item, options) for item in node]
    if not isinstance(node, dict):
        return node
    if not is_call(node):
        return {key: evaluate(value, options) for key, value in node.items()}

    name, args = next(iter(node.items()))
    if args is None:
        args = {}
    if not isinstance(args, dict):
        raise ValidationException(
            f"Arguments of '{name}' must be a mapping, got {type(args).__name__}"
        )

    function = BUILTINS[name]
    evaluated = {key: evaluate(value, options) for key, value in args.items()}
    try:
        params = function.params(**evaluated)
    except ValidationError as e:
        raise ValidationException.from_pydantic(e, context=name) from e
    logger.debug(f'Calling {name}')
    return function.factory(params, options)


class MigrationTable:
    """Migrations of a configuration, indexed by unique name."""

    def __init__(self):
        self._migrations: Dict[str, Migration] = {}

    def add(self, migration: Migration) -> None:
        if migration.name in self._migrations:
            raise ValidationException(
                f"A migration with name '{migration.name}' already exists"
            )
        self._migrations[migration.name] = migration

    def get(self, name: str) -> Migration:
        """Return the migration called name.

        Raises:
            ValidationException: If no migration has that name
        """
        if name not in self._migrations:
            available = ', '.join(sorted(self._migrations)) or '(none)'
            raise ValidationException(
                f"Migration '{name}' not found. Available migrations: {available}"
            )
        return self._migrations[name]

    def names(self) -> List[str]:
        return list(self._migrations)

    def __iter__(self) -> Iterator[Migration]:
        return iter(self._migrations.values())

    def __len__(self) -> int:
        return len(self._migrations)


def load_migrations(config: Config) -> MigrationTable:
    """Evaluate every migration entry of a configuration.

    Args:
        config: Loaded configuration

    Returns:
        Table of migrations by name

    Raises:
        ValidationException: If an entry is invalid or a name is duplicated
    """
    table = MigrationTable()
    for entry in config.migrations:
        name = next(iter(entry))
        if name not in BUILTINS:
            raise ValidationException(
                f"Unknown builtin '{name}'. Available builtins: {', '.join(sorted(BUILTINS))}"
            )
        value = evaluate(entry, config.git)
        if not isinstance(value, Migration):
            raise ValidationException(
                f"'{name}' does not define a migration, got {type(value).__name__}"
            )
        table.add(value)
    return table
