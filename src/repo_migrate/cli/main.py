"""Main CLI entry point for repo-migrate."""

import sys
import tempfile
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..config import Config, load_migrations
from ..exceptions import CheckoutHookException, PushRejectedException
from ..utils.logging import setup_logging

console = Console()

DEFAULT_CONFIG_PATHS = ['repo-migrate.yaml', 'repo-migrate.yml', '.repo-migrate.yaml']


@click.group()
@click.version_option(version='0.1.0', prog_name='repo-migrate')
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging',
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """repo-migrate - Move code between repositories, transforming it on the way."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    setup_logging('DEBUG' if verbose else 'INFO')


@cli.command()
@click.option(
    '--output',
    '-o',
    default='repo-migrate.yaml',
    help='Output configuration file path',
)
def init(output: str) -> None:
    """Initialize a new configuration file."""
    console.print(
        Panel.fit(
            '[bold green]repo-migrate[/bold green]\nInitializing configuration...',
            border_style='green',
        )
    )

    try:
        Config.create_template(output)

        console.print(f'[green]✓[/green] Configuration template created at: {output}')
        console.print(f'[yellow]Please edit {output} with your repository URLs[/yellow]')

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {escape(str(e))}')
        sys.exit(1)


@cli.command()
@click.argument('name', default='default')
@click.argument('source_ref', required=False)
@click.option(
    '--workdir',
    type=click.Path(file_okay=False),
    help='Scratch directory for the run, a temporary one by default',
)
@click.option(
    '--force-push',
    is_flag=True,
    help='Allow non-fast-forward updates in the destination',
)
@click.pass_context
def migrate(
    ctx: click.Context,
    name: str,
    source_ref: Optional[str],
    workdir: Optional[str],
    force_push: bool,
) -> None:
    """Run the migration NAME, optionally from SOURCE_REF."""
    console.print(
        Panel.fit(
            f'[bold blue]repo-migrate[/bold blue]\nRunning migration {name}...',
            border_style='blue',
        )
    )

    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)

        if force_push:
            config.git.force_push = True

        migration = load_migrations(config).get(name)

        if workdir:
            Path(workdir).mkdir(parents=True, exist_ok=True)
            migration.run(Path(workdir), source_ref)
        else:
            with tempfile.TemporaryDirectory(prefix='repo-migrate-') as tmp:
                migration.run(Path(tmp), source_ref)

        console.print(f'[green]✓[/green] Migration {name} completed')

    except PushRejectedException as e:
        console.print(f'[red]✗[/red] Push rejected: {escape(str(e))}')
        console.print('[yellow]Use --force-push to overwrite the destination[/yellow]')
        sys.exit(1)
    except CheckoutHookException as e:
        console.print(f'[red]✗[/red] {escape(str(e))}')
        sys.exit(1)
    except Exception as e:
        console.print(f'[red]✗[/red] Migration failed: {escape(str(e))}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate the configuration and every migration in it."""
    console.print(
        Panel.fit(
            '[bold cyan]repo-migrate[/bold cyan]\nValidating configuration...',
            border_style='cyan',
        )
    )

    try:
        config = _load_config(ctx)
        migrations = load_migrations(config)

        console.print(f'[green]✓[/green] {len(migrations)} migration(s) loaded')
        console.print('[green]✓[/green] Configuration validation completed')

    except Exception as e:
        console.print(f'[red]✗[/red] Validation failed: {escape(str(e))}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show the configured migrations."""
    console.print(
        Panel.fit(
            '[bold magenta]repo-migrate[/bold magenta]\nConfigured migrations',
            border_style='magenta',
        )
    )

    try:
        config = _load_config(ctx)
        migrations = load_migrations(config)

        table = Table(title='Migrations')
        table.add_column('Name', style='cyan')
        table.add_column('Type', style='blue')
        table.add_column('Definition', style='green')

        for migration in migrations:
            table.add_row(migration.name, migration.describe(), repr(migration))

        console.print(table)
        console.print(f'\n[blue]Repository storage:[/blue] {config.git.repo_storage}')

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to load migrations: {escape(str(e))}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


def _load_config(ctx: click.Context) -> Config:
    """Load configuration from file, default locations or environment."""
    config_path = ctx.obj.get('config_path')

    if config_path:
        return Config.from_file(config_path)

    for path in DEFAULT_CONFIG_PATHS:
        if Path(path).exists():
            return Config.from_file(path)

    config = Config.from_env()
    if not config.migrations:
        raise FileNotFoundError(
            'No configuration found. Use --config to specify a file or run '
            '"repo-migrate init" to create one.'
        )
    return config


def _setup_logging_with_config(ctx: click.Context, config: Config) -> None:
    """Setup logging with the settings of the configuration file."""
    verbose = ctx.obj.get('verbose', False)

    log_level = 'DEBUG' if verbose or config.git.verbose else config.logging.level
    setup_logging(
        level=log_level, log_file=config.logging.file, log_format=config.logging.format
    )


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print('\n[red]Migration interrupted by user[/red]')
        sys.exit(1)
    except Exception as e:
        console.print(f'[red]Error: {escape(str(e))}[/red]')
        sys.exit(1)


if __name__ == '__main__':
    main()
