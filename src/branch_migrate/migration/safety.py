"""Safety gates for deleting the source branch."""

from typing import List

from loguru import logger

from ..api.client import GitHubOperations
from ..models.github import PullRequestListOptions, PullRequestState
from ..models.migration import SafetyStatus

OPEN_PULL_REQUESTS_REASON = 'open pull requests still target source branch'
BRANCH_PROTECTED_REASON = 'source branch is protected'
WORKFLOW_REFERENCES_REASON = 'workflow files still reference source branch'


class SafetyEvaluator:
    """Read-only verdict on whether the source branch may be deleted."""

    def __init__(self, github_client: GitHubOperations, pull_request_limit: int = 100):
        """Initialize safety evaluator.

        Args:
            github_client: GitHub operations used for the checks
            pull_request_limit: Maximum pull requests fetched per check
        """
        self.github_client = github_client
        self.pull_request_limit = pull_request_limit
        self.logger = logger.bind(component='SafetyEvaluator')

    async def evaluate(
        self,
        repository_identifier: str,
        source_branch: str,
        workflow_references: bool = False,
    ) -> SafetyStatus:
        """Check whether deleting ``source_branch`` is currently harmless.

        Checks run in a fixed order (open pull requests, branch protection,
        then leftover workflow references) and each contributes at most one
        reason.

        Args:
            repository_identifier: owner/name identifier
            source_branch: Branch that would be deleted
            workflow_references: Workflow files still name the branch

        Returns:
            Safety status with deduplicated, ordered blocking reasons
        """
        reasons: List[str] = []

        pull_requests = await self.github_client.list_pull_requests(
            repository_identifier,
            PullRequestListOptions(
                state=PullRequestState.OPEN,
                base_branch=source_branch,
                result_limit=self.pull_request_limit,
            ),
        )
        if any(pr.base_branch == source_branch for pr in pull_requests):
            _add_reason(reasons, OPEN_PULL_REQUESTS_REASON)

        if await self.github_client.check_branch_protection(
            repository_identifier, source_branch
        ):
            _add_reason(reasons, BRANCH_PROTECTED_REASON)

        if workflow_references:
            _add_reason(reasons, WORKFLOW_REFERENCES_REASON)

        status = SafetyStatus(safe_to_delete=not reasons, blocking_reasons=reasons)
        self.logger.debug(
            f'Safety evaluation for {repository_identifier}@{source_branch}: '
            f'safe_to_delete={status.safe_to_delete} reasons={reasons}'
        )
        return status


def _add_reason(reasons: List[str], reason: str) -> None:
    if reason not in reasons:
        reasons.append(reason)
