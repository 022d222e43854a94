"""Branch migration orchestration."""

from .errors import (
    LocalGitError,
    MigrationError,
    MigrationValidationError,
    PlatformError,
    PullRequestRetargetError,
    PullRequestRetargetFailure,
)
from .workflows import WorkflowRewriteError, WorkflowRewriter
from .pages import PagesManager
from .safety import SafetyEvaluator
from .orchestrator import MigrationOrchestrator
from .engine import BatchSummary, MigrationEngine, RepositoryOutcome

__all__ = [
    'LocalGitError',
    'MigrationError',
    'MigrationValidationError',
    'PlatformError',
    'PullRequestRetargetError',
    'PullRequestRetargetFailure',
    'WorkflowRewriteError',
    'WorkflowRewriter',
    'PagesManager',
    'SafetyEvaluator',
    'MigrationOrchestrator',
    'BatchSummary',
    'MigrationEngine',
    'RepositoryOutcome',
]
