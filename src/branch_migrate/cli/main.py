"""Main CLI entry point for the branch migration tool."""

import sys
import asyncio
from typing import Optional, Tuple
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
)
from rich.markup import escape
from rich.table import Table

from ..config.config import Config, MigrationConfig
from ..git.discovery import RepositoryDiscoverer
from ..utils.logging import setup_logging
from ..migration.engine import BatchSummary, MigrationEngine

console = Console()

DEFAULT_CONFIG_PATHS = ['branch-migrate.yaml', 'branch-migrate.yml', '.branch-migrate.yaml']


@click.group()
@click.version_option(version='0.1.0', prog_name='branch-migrate')
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
    """Branch Migration Tool - Move GitHub repositories to a new default branch."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    setup_logging('DEBUG' if verbose else 'INFO')


@cli.command()
@click.option(
    '--output',
    '-o',
    default='branch-migrate.yaml',
    help='Output configuration file path',
)
def init(output: str) -> None:
    """Initialize a new configuration file."""
    console.print(
        Panel.fit(
            '[bold green]Branch Migration Tool[/bold green]\n'
            'Initializing configuration...',
            border_style='green',
        )
    )

    try:
        Config.create_template(output)

        console.print(f'[green]✓[/green] Configuration template created at: {output}')
        console.print(
            f'[yellow]Please edit {output} with your branches and GitHub token[/yellow]'
        )

    except OSError as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {e}')
        sys.exit(1)


@cli.command()
@click.argument('roots', nargs=-1, type=click.Path(file_okay=False))
@click.option('--from', 'source_branch', help='Branch being replaced')
@click.option('--to', 'target_branch', help='New default branch')
@click.option(
    '--no-push',
    is_flag=True,
    help='Commit workflow updates locally without pushing them',
)
@click.option(
    '--debug',
    is_flag=True,
    help='Log per-step migration details',
)
@click.pass_context
def migrate(
    ctx: click.Context,
    roots: Tuple[str, ...],
    source_branch: Optional[str],
    target_branch: Optional[str],
    no_push: bool,
    debug: bool,
) -> None:
    """Migrate every repository found beneath ROOTS."""
    console.print(
        Panel.fit(
            '[bold blue]Branch Migration Tool[/bold blue]\n'
            'Starting migration process...',
            border_style='blue',
        )
    )

    try:
        config = _load_config(ctx)
        config.migration = _override_migration(
            config.migration, source_branch, target_branch, no_push
        )

        _setup_logging_with_config(ctx, config, debug)

        search_roots = list(roots) or config.migration.roots or ['.']
        console.print(
            f'Migrating [cyan]{config.migration.source_branch}[/cyan] → '
            f'[cyan]{config.migration.target_branch}[/cyan] under {search_roots}'
        )

        summary = asyncio.run(_run_migration(config, search_roots, debug))

    except Exception as e:
        console.print(f'[red]✗[/red] Migration failed: {escape(str(e))}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)

    _display_migration_summary(summary)

    if summary.failed:
        console.print(
            f'[red]✗[/red] {len(summary.failed)} of {len(summary.outcomes)} '
            'repositories failed'
        )
        sys.exit(1)

    console.print('[green]✓[/green] Migration completed successfully')


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate configuration and GitHub connectivity."""
    console.print(
        Panel.fit(
            '[bold cyan]Branch Migration Tool[/bold cyan]\nValidating setup...',
            border_style='cyan',
        )
    )

    try:
        config = _load_config(ctx)
        console.print('[green]✓[/green] Configuration validation completed')

        engine = MigrationEngine(config)
        try:
            engine.test_connectivity()
        finally:
            engine.close()
        console.print('[green]✓[/green] Connectivity validation passed')

        roots = config.migration.roots or ['.']
        repositories = RepositoryDiscoverer().discover_repositories(roots)
        console.print(
            f'[green]✓[/green] Found {len(repositories)} repositories under {roots}'
        )

    except Exception as e:
        console.print(f'[red]✗[/red] Validation failed: {escape(str(e))}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the effective migration configuration."""
    console.print(
        Panel.fit(
            '[bold magenta]Branch Migration Tool[/bold magenta]\nMigration Status',
            border_style='magenta',
        )
    )

    try:
        config = _load_config(ctx)

        table = Table(title='Migration Configuration')
        table.add_column('Setting', style='cyan')
        table.add_column('Value', style='green')

        table.add_row('GitHub API URL', config.github.api_url)
        table.add_row('Token Configured', '✓' if config.github.token else '✗')
        table.add_row('Source Branch', config.migration.source_branch)
        table.add_row('Target Branch', config.migration.target_branch)
        table.add_row('Remote', config.migration.remote_name)
        table.add_row('Workflows Directory', config.migration.workflows_directory)
        table.add_row('Push Updates', '✓' if config.migration.push_updates else '✗')
        table.add_row('Pull Request Limit', str(config.migration.pull_request_limit))
        table.add_row('Roots', ', '.join(config.migration.roots) or '.')
        table.add_row('Git Timeout', f'{config.git.timeout}s')

        console.print(table)

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to load status: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


def _load_config(ctx: click.Context) -> Config:
    """Load configuration from file or environment."""
    config_path = ctx.obj.get('config_path')

    if config_path:
        return Config.from_file(config_path)

    for path in DEFAULT_CONFIG_PATHS:
        if Path(path).exists():
            return Config.from_file(path)

    try:
        return Config.from_env()
    except ValidationError as e:
        raise FileNotFoundError(
            'No usable configuration found. Use --config to specify a file or run '
            f'"branch-migrate init" to create one ({e.error_count()} invalid settings)'
        ) from e


def _override_migration(
    migration: MigrationConfig,
    source_branch: Optional[str],
    target_branch: Optional[str],
    no_push: bool,
) -> MigrationConfig:
    """Apply command line overrides, re-running validation."""
    settings = migration.model_dump()
    if source_branch is not None:
        settings['source_branch'] = source_branch
    if target_branch is not None:
        settings['target_branch'] = target_branch
    if no_push:
        settings['push_updates'] = False
    return MigrationConfig(**settings)


def _setup_logging_with_config(
    ctx: click.Context, config: Config, debug: bool = False
) -> None:
    """Setup logging with configuration from config file."""
    verbose = ctx.obj.get('verbose', False)

    log_level = 'DEBUG' if verbose or debug else config.logging.level
    setup_logging(
        level=log_level, log_file=config.logging.file, log_format=config.logging.format
    )


async def _run_migration(config: Config, roots, debug: bool) -> BatchSummary:
    """Run the batch with a progress display."""
    engine = MigrationEngine(config, enable_debug_logging=debug)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn('[progress.description]{task.description}'),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task('[blue]Discovering repositories...', total=None)

            def update_progress(completed: int, total: int, repository_path: str):
                description = (
                    f'[blue]Migrating {Path(repository_path).name}'
                    if repository_path
                    else '[green]Migration finished'
                )
                progress.update(
                    task, completed=completed, total=total, description=description
                )

            return await engine.migrate(roots, progress_callback=update_progress)
    finally:
        engine.close()


def _display_migration_summary(summary: BatchSummary) -> None:
    """Display per-repository migration results."""
    table = Table(title='Migration Summary')
    table.add_column('Repository', style='cyan')
    table.add_column('Workflows', style='blue')
    table.add_column('Pages', style='blue')
    table.add_column('Pull Requests', style='blue')
    table.add_column('Default Branch', style='blue')
    table.add_column('Safe To Delete')
    table.add_column('Status')

    for outcome in summary.outcomes:
        result = outcome.result
        name = outcome.repository_identifier or outcome.repository_path

        if result is None:
            table.add_row(name, '-', '-', '-', '-', '-', '[red]failed[/red]')
            continue

        safe = (
            '[green]yes[/green]'
            if result.safety_status.safe_to_delete
            else '[yellow]no[/yellow]'
        )
        table.add_row(
            name,
            str(len(result.workflow_outcome.updated_files)),
            '✓' if result.pages_configuration_updated else '-',
            str(len(result.retargeted_pull_requests)),
            '✓' if result.default_branch_updated else '-',
            safe,
            '[green]ok[/green]' if outcome.success else '[red]failed[/red]',
        )

    console.print(table)

    blocked = [
        outcome
        for outcome in summary.outcomes
        if outcome.result and outcome.result.safety_status.blocking_reasons
    ]
    if blocked:
        console.print(f'\n[yellow]Deletion blocked ({len(blocked)}):[/yellow]')
        for outcome in blocked:
            reasons = '; '.join(outcome.result.safety_status.blocking_reasons)
            console.print(f'  • {outcome.repository_identifier}: {escape(reasons)}')

    if summary.failed:
        console.print(f'\n[red]Errors ({len(summary.failed)}):[/red]')
        for outcome in summary.failed:
            console.print(f'  • {outcome.repository_path}: {escape(str(outcome.error))}')


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print('\n[red]Migration interrupted by user[/red]')
        sys.exit(1)


if __name__ == '__main__':
    main()
