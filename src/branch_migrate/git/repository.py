"""Local repository inspection helpers."""

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from .executor import CommandDetails, GitExecutor


class RemoteProtocol(str, Enum):
    """Supported git remote protocols."""

    SSH = 'ssh'
    HTTPS = 'https'


class RemoteURLParseError(ValueError):
    """Raised when a remote URL cannot be parsed."""

    def __init__(self, remote: str, message: str = 'invalid remote url'):
        super().__init__(f'{remote}: {message}')
        self.remote = remote


@dataclass
class RemoteURL:
    """Structured git remote URL."""

    protocol: RemoteProtocol
    host: str
    owner: str
    repository: str

    @property
    def identifier(self) -> str:
        """Return the ``owner/name`` identifier."""
        return f'{self.owner}/{self.repository}'


def parse_remote_url(remote: str) -> RemoteURL:
    """Parse an SSH or HTTPS remote URL.

    Args:
        remote: Remote URL as printed by ``git remote get-url``

    Returns:
        Structured remote URL

    Raises:
        RemoteURLParseError: If the URL is empty or not recognised
    """
    trimmed = remote.strip()
    if not trimmed:
        raise RemoteURLParseError(remote, 'value required')

    if trimmed.startswith('ssh://'):
        return _parse_ssh_remote(trimmed[len('ssh://') :])
    if trimmed.startswith('git@'):
        return _parse_ssh_remote(trimmed)
    if trimmed.startswith('https://'):
        return _parse_https_remote(trimmed[len('https://') :])

    raise RemoteURLParseError(remote)


def _parse_ssh_remote(remote: str) -> RemoteURL:
    _, separator, host_and_path = remote.partition('@')
    if not separator:
        raise RemoteURLParseError(remote)

    if ':' in host_and_path:
        host, _, path = host_and_path.partition(':')
    elif '/' in host_and_path:
        host, _, path = host_and_path.partition('/')
    else:
        raise RemoteURLParseError(remote)

    segments = path.split('/')
    if len(segments) != 2 or not segments[0]:
        raise RemoteURLParseError(remote)

    return RemoteURL(
        protocol=RemoteProtocol.SSH,
        host=host,
        owner=segments[0],
        repository=_normalize_repository_name(segments[1], remote),
    )


def _parse_https_remote(remote: str) -> RemoteURL:
    components = remote.rstrip('/').split('/')
    if len(components) < 3 or not components[1]:
        raise RemoteURLParseError(remote)

    return RemoteURL(
        protocol=RemoteProtocol.HTTPS,
        host=components[0],
        owner=components[1],
        repository=_normalize_repository_name('/'.join(components[2:]), remote),
    )


def _normalize_repository_name(repository: str, remote: str) -> str:
    if repository.endswith('.git'):
        repository = repository[: -len('.git')]
    if not repository:
        raise RemoteURLParseError(remote)
    return repository


class RepositoryManager:
    """Read-only queries against a local repository."""

    def __init__(self, executor: GitExecutor):
        self.executor = executor
        self.logger = logger.bind(component='RepositoryManager')

    async def check_clean_worktree(self, repository_path: str) -> bool:
        """Return True when ``git status --porcelain`` reports nothing."""
        result = await self.executor.execute_git(
            CommandDetails(
                arguments=['status', '--porcelain'], working_directory=repository_path
            )
        )
        return not result.stdout.strip()

    async def get_current_branch(self, repository_path: str) -> str:
        """Return the checked-out branch name."""
        result = await self.executor.execute_git(
            CommandDetails(
                arguments=['rev-parse', '--abbrev-ref', 'HEAD'],
                working_directory=repository_path,
            )
        )
        return result.stdout.strip()

    async def get_remote_url(self, repository_path: str, remote_name: str) -> str:
        """Return the URL configured for a remote."""
        result = await self.executor.execute_git(
            CommandDetails(
                arguments=['remote', 'get-url', remote_name],
                working_directory=repository_path,
            )
        )
        return result.stdout.strip()
