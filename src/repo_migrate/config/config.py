"""Configuration management for repo-migrate."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, validator

from ..git.cache import RepositoryCache

DEFAULT_REPO_STORAGE = '~/.cache/repo-migrate/repos'


class GitOptions(BaseModel):
    """Options shared by every git origin and mirror."""

    repo_storage: str = Field(
        default=DEFAULT_REPO_STORAGE,
        description='Directory where cached repositories are stored',
    )
    checkout_hook: Optional[str] = Field(
        default=None,
        description='Executable run inside the checkout directory after each checkout',
    )
    force_push: bool = Field(
        default=False, description='Allow non-fast-forward pushes in mirrors'
    )
    verbose: bool = Field(default=False, description='Log the output of git commands')

    @validator('repo_storage', always=True)
    def validate_repo_storage(cls, v):
        """Expand the user directory and reject empty paths."""
        if not v or not v.strip():
            raise ValueError('repo_storage must be a non-empty path')
        return str(Path(v).expanduser())

    @validator('checkout_hook')
    def validate_checkout_hook(cls, v):
        """The checkout hook must be an existing executable file."""
        if v is None:
            return v
        hook = Path(v).expanduser()
        if not hook.is_file():
            raise ValueError(f'checkout_hook does not exist: {v}')
        if not os.access(hook, os.X_OK):
            raise ValueError(f'checkout_hook is not executable: {v}')
        return str(hook)

    def repository_cache(self) -> RepositoryCache:
        """Build the repository cache for these options."""
        return RepositoryCache(Path(self.repo_storage), verbose=self.verbose)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')
    format: Optional[str] = Field(default=None, description='Console log format')

    @validator('level')
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class Config(BaseModel):
    """Main configuration class for repo-migrate."""

    git: GitOptions = Field(default_factory=GitOptions, description='Git options')
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description='Logging settings'
    )
    migrations: List[Dict[str, Any]] = Field(
        default_factory=list,
        description='Migration definitions, each one a single builtin call',
    )

    class Config:
        """Pydantic configuration."""

        extra = 'forbid'

    @validator('migrations', each_item=True)
    def validate_migration_entry(cls, v):
        """Each migration entry is a mapping with exactly one builtin name."""
        if len(v) != 1:
            raise ValueError(
                f'A migration entry must contain exactly one builtin call, got {sorted(v)}'
            )
        return v

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables.

        Only git and logging options can be set this way; migrations always
        come from a configuration file.
        """
        load_dotenv()

        force_push = os.getenv('REPO_MIGRATE_FORCE_PUSH')
        config_data = {
            'git': {
                'repo_storage': os.getenv('REPO_MIGRATE_STORAGE'),
                'checkout_hook': os.getenv('REPO_MIGRATE_CHECKOUT_HOOK'),
                'force_push': force_push.lower() == 'true' if force_push else None,
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL', 'INFO'),
                'file': os.getenv('LOG_FILE'),
            },
        }

        config_data = cls._remove_none_values(config_data)

        return cls(**config_data)

    @staticmethod
    def _remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively remove None values from dictionary."""
        if isinstance(data, dict):
            return {
                k: Config._remove_none_values(v)
                for k, v in data.items()
                if v is not None
            }
        return data

    def to_file(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(
                self.model_dump(exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )

    @staticmethod
    def create_template(output_path: str) -> None:
        """Create a configuration template file."""
        template_config = {
            'git': {
                'repo_storage': DEFAULT_REPO_STORAGE,
                'force_push': False,
                'verbose': False,
            },
            'logging': {
                'level': 'INFO',
                'file': 'repo-migrate.log',
            },
            'migrations': [
                {
                    'git.mirror': {
                        'name': 'default',
                        'origin': 'https://git.example.com/source.git',
                        'destination': 'https://git.example.com/mirror.git',
                        'refspecs': ['refs/heads/*'],
                        'prune': False,
                    }
                }
            ],
        }

        config_file = Path(output_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(
                template_config, f, default_flow_style=False, indent=2, sort_keys=False
            )
