"""Data models for branch migration."""

from .github import (
    PagesBuildType,
    PagesConfiguration,
    PagesStatus,
    PullRequest,
    PullRequestListOptions,
    PullRequestState,
    RepositoryMetadata,
)
from .migration import MigrationOptions, MigrationResult, SafetyStatus, WorkflowOutcome

__all__ = [
    'PagesBuildType',
    'PagesConfiguration',
    'PagesStatus',
    'PullRequest',
    'PullRequestListOptions',
    'PullRequestState',
    'RepositoryMetadata',
    'MigrationOptions',
    'MigrationResult',
    'SafetyStatus',
    'WorkflowOutcome',
]
