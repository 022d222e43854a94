"""Git operations module for branch migration."""

from .executor import (
    CommandDetails,
    CommandExecutionError,
    CommandFailedError,
    ExecutionResult,
    GitCommandError,
    GitCommandExecutor,
    GitExecutor,
)
from .repository import RemoteURL, RemoteURLParseError, RepositoryManager, parse_remote_url
from .discovery import RepositoryDiscoverer

__all__ = [
    'CommandDetails',
    'CommandExecutionError',
    'CommandFailedError',
    'ExecutionResult',
    'GitCommandError',
    'GitCommandExecutor',
    'GitExecutor',
    'RemoteURL',
    'RemoteURLParseError',
    'RepositoryManager',
    'parse_remote_url',
    'RepositoryDiscoverer',
]
