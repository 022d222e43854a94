"""Migration engine - runs the orchestrator across many repositories."""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from loguru import logger

from ..api.client import GitHubClientFactory, GitHubOperations
from ..config.config import Config
from ..git.discovery import RepositoryDiscoverer
from ..git.executor import GitCommandError, GitCommandExecutor, GitExecutor
from ..git.repository import RemoteURLParseError, RepositoryManager, parse_remote_url
from ..models.migration import MigrationOptions, MigrationResult
from .errors import MigrationError
from .orchestrator import MigrationOrchestrator

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class RepositoryOutcome:
    """Outcome of migrating one discovered repository."""

    repository_path: str
    repository_identifier: Optional[str] = None
    result: Optional[MigrationResult] = None
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class BatchSummary:
    """Outcomes of a batch run in discovery order."""

    outcomes: List[RepositoryOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[RepositoryOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    @property
    def successful(self) -> List[RepositoryOutcome]:
        return [outcome for outcome in self.outcomes if outcome.success]


class MigrationEngine:
    """Coordinates branch migration across every repository under the roots.

    Repositories are processed one at a time. A failing repository is logged
    and recorded, and the batch moves on to the next one.
    """

    def __init__(
        self,
        config: Config,
        git_executor: Optional[GitExecutor] = None,
        github_client: Optional[GitHubOperations] = None,
        discoverer: Optional[RepositoryDiscoverer] = None,
        enable_debug_logging: bool = False,
    ):
        """Initialize migration engine.

        Args:
            config: Tool configuration
            git_executor: Git executor (built from config when omitted)
            github_client: GitHub operations (built from config when omitted)
            discoverer: Repository discoverer
            enable_debug_logging: Request per-step debug detail
        """
        self.config = config
        self.logger = logger.bind(component='MigrationEngine')
        self.enable_debug_logging = enable_debug_logging

        self.git_executor = git_executor or GitCommandExecutor(timeout=config.git.timeout)
        self.github_client = github_client or GitHubClientFactory.create_client(
            config.github
        )
        self.discoverer = discoverer or RepositoryDiscoverer()
        self.repository_manager = RepositoryManager(self.git_executor)

        self.orchestrator = MigrationOrchestrator(
            self.git_executor,
            self.github_client,
            git_config=config.git,
            pull_request_limit=config.migration.pull_request_limit,
        )

    async def migrate(
        self,
        roots: Sequence[str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BatchSummary:
        """Migrate every repository found beneath ``roots``.

        Args:
            roots: Directories to search for repositories
            progress_callback: Called with (completed, total, repository_path)
                before each repository and once more when the batch ends

        Returns:
            Batch summary

        Raises:
            FileNotFoundError: If a root does not exist
        """
        repositories = self.discoverer.discover_repositories(roots)
        summary = BatchSummary()

        total = len(repositories)
        for index, repository_path in enumerate(repositories):
            if progress_callback:
                progress_callback(index, total, repository_path)
            outcome = await self._migrate_repository(repository_path)
            summary.outcomes.append(outcome)

        if progress_callback:
            progress_callback(total, total, '')

        self.logger.info(
            f'Batch completed: {len(summary.successful)} succeeded, '
            f'{len(summary.failed)} failed'
        )
        return summary

    async def _migrate_repository(self, repository_path: str) -> RepositoryOutcome:
        migration = self.config.migration
        outcome = RepositoryOutcome(repository_path=repository_path)

        try:
            remote_url = await self.repository_manager.get_remote_url(
                repository_path, migration.remote_name
            )
            outcome.repository_identifier = parse_remote_url(remote_url).identifier
        except (GitCommandError, RemoteURLParseError) as e:
            self.logger.warning(
                f'Unable to resolve repository identifier for {repository_path}: {e}'
            )
            outcome.error = e
            return outcome

        options = MigrationOptions(
            repository_path=repository_path,
            repository_remote_name=migration.remote_name,
            repository_identifier=outcome.repository_identifier,
            workflows_directory=migration.workflows_directory,
            source_branch=migration.source_branch,
            target_branch=migration.target_branch,
            push_updates=migration.push_updates,
            enable_debug_logging=self.enable_debug_logging,
        )

        try:
            outcome.result = await self.orchestrator.execute(options)
        except MigrationError as e:
            self.logger.warning(f'Repository migration failed: {e}')
            outcome.result = e.result
            outcome.error = e
            return outcome

        if not outcome.result.safety_status.safe_to_delete:
            self.logger.warning(
                f'Branch deletion blocked by safety gates for {repository_path}: '
                f'{outcome.result.safety_status.blocking_reasons}'
            )

        return outcome

    def test_connectivity(self) -> None:
        """Test connectivity to GitHub.

        Raises:
            ConnectionError: If connectivity test fails
        """
        self.logger.info('Testing connectivity to GitHub')

        test_connection = getattr(self.github_client, 'test_connection', None)
        if test_connection is not None and not test_connection():
            raise ConnectionError('Cannot connect to GitHub')

        self.logger.info('Connectivity test passed')

    def close(self) -> None:
        """Release the GitHub client session."""
        close = getattr(self.github_client, 'close', None)
        if close is not None:
            close()
