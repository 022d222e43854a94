"""Migration orchestrator for moving a repository to a new default branch."""

from typing import Dict, List, Optional

from loguru import logger

from ..api.client import GitHubOperations
from ..config.config import GitConfig
from ..git.executor import CommandDetails, CommandFailedError, GitCommandError, GitExecutor
from ..git.repository import RepositoryManager
from ..models.github import PullRequestListOptions, PullRequestState
from ..models.migration import MigrationOptions, MigrationResult
from .errors import (
    LocalGitError,
    MigrationValidationError,
    PlatformError,
    PullRequestRetargetError,
    PullRequestRetargetFailure,
)
from .pages import PagesManager
from .safety import SafetyEvaluator
from .workflows import WorkflowRewriteError, WorkflowRewriter

WORKFLOW_COMMIT_MESSAGE_TEMPLATE = 'CI: switch workflow branch filters to {target}'


class MigrationOrchestrator:
    """Migrates one repository from a source branch to a target branch.

    Steps run strictly in order: workflow rewrite and commit, push, GitHub
    Pages reconciliation, pull request retargeting, default branch update and
    finally the safety evaluation. The orchestrator keeps no state between
    calls; it must not run concurrently against the same repository path.
    """

    def __init__(
        self,
        git_executor: GitExecutor,
        github_client: GitHubOperations,
        git_config: Optional[GitConfig] = None,
        pull_request_limit: int = 100,
    ):
        """Initialize migration orchestrator.

        Args:
            git_executor: Runs git in the local repository
            github_client: GitHub operations scoped by owner/name
            git_config: Git settings (commit author)
            pull_request_limit: Maximum pull requests retargeted per call
        """
        self.git_executor = git_executor
        self.github_client = github_client
        self.git_config = git_config or GitConfig()
        self.pull_request_limit = pull_request_limit

        self.repository_manager = RepositoryManager(git_executor)
        self.workflow_rewriter = WorkflowRewriter()
        self.pages_manager = PagesManager(github_client)
        self.safety_evaluator = SafetyEvaluator(github_client, pull_request_limit)

        self.logger = logger.bind(component='MigrationOrchestrator')

    async def execute(self, options: MigrationOptions) -> MigrationResult:
        """Run the migration for a single repository.

        Args:
            options: Per-repository migration settings

        Returns:
            Migration result

        Raises:
            MigrationValidationError: If options are invalid (nothing was run)
            LocalGitError: If rewriting, committing or pushing failed
            PlatformError: If a GitHub configuration call failed
            PullRequestRetargetError: If some pull requests could not be
                retargeted; every other step still ran and ``error.result``
                holds the complete result
        """
        self._validate_options(options)

        self.logger.info(
            f'Migrating {options.repository_identifier} ({options.repository_path}) '
            f'from {options.source_branch} to {options.target_branch}'
        )
        self._debug(options, f'Migration options: {options.model_dump()}')

        result = MigrationResult()

        await self._ensure_clean_worktree(options)

        result.workflow_outcome = self._rewrite_workflows(options)
        committed = await self._commit_workflow_changes(options, result)

        if committed and options.push_updates:
            await self._push_workflow_changes(options, result)

        result.pages_configuration_updated = await self._reconcile_pages(
            options, result
        )

        retarget_error = await self._retarget_pull_requests(options, result)

        result.default_branch_updated = await self._update_default_branch(
            options, result
        )

        # Runs even with retarget failures pending so leftovers block deletion
        result.safety_status = await self._evaluate_safety(options, result)

        if retarget_error is not None:
            raise retarget_error

        self.logger.info(
            f'Migration of {options.repository_identifier} completed: '
            f'{len(result.workflow_outcome.updated_files)} workflow(s) updated, '
            f'{len(result.retargeted_pull_requests)} pull request(s) retargeted, '
            f'safe_to_delete={result.safety_status.safe_to_delete}'
        )
        return result

    def _validate_options(self, options: MigrationOptions) -> None:
        context = {
            'repository_path': options.repository_path,
            'repository_identifier': options.repository_identifier,
        }
        required = {
            'repository_path': options.repository_path,
            'repository_identifier': options.repository_identifier,
            'workflows_directory': options.workflows_directory.strip(),
            'source_branch': options.source_branch,
            'target_branch': options.target_branch,
        }
        if options.push_updates:
            required['repository_remote_name'] = options.repository_remote_name

        for field_name, value in required.items():
            if not value:
                raise MigrationValidationError(field_name, 'value required', **context)

        if options.source_branch == options.target_branch:
            raise MigrationValidationError(
                'target_branch', 'must differ from source_branch', **context
            )

    def _debug(self, options: MigrationOptions, message: str) -> None:
        if options.enable_debug_logging:
            self.logger.debug(message)

    def _context(self, options: MigrationOptions, result: Optional[MigrationResult]):
        return {
            'repository_path': options.repository_path,
            'repository_identifier': options.repository_identifier,
            'result': result,
        }

    async def _run_git(
        self,
        options: MigrationOptions,
        arguments: List[str],
        environment: Optional[Dict[str, str]] = None,
    ):
        return await self.git_executor.execute_git(
            CommandDetails(
                arguments=arguments,
                working_directory=options.repository_path,
                environment=environment or {},
            )
        )

    async def _ensure_clean_worktree(self, options: MigrationOptions) -> None:
        try:
            clean = await self.repository_manager.check_clean_worktree(
                options.repository_path
            )
        except GitCommandError as e:
            raise LocalGitError(
                f'unable to inspect worktree: {e}',
                step='worktree_check',
                **self._context(options, None),
            ) from e

        if not clean:
            raise LocalGitError(
                'repository worktree must be clean before migration',
                step='worktree_check',
                **self._context(options, None),
            )

    def _rewrite_workflows(self, options: MigrationOptions):
        try:
            outcome = self.workflow_rewriter.rewrite(
                options.repository_path,
                options.workflows_directory,
                options.source_branch,
                options.target_branch,
            )
        except WorkflowRewriteError as e:
            raise LocalGitError(
                f'workflow rewrite failed: {e}',
                step='workflow_rewrite',
                **self._context(options, None),
            ) from e

        self._debug(options, f'Updated workflow files: {outcome.updated_files}')
        return outcome

    def _commit_environment(self) -> Dict[str, str]:
        environment = {}
        if self.git_config.user_name:
            environment['GIT_AUTHOR_NAME'] = self.git_config.user_name
            environment['GIT_COMMITTER_NAME'] = self.git_config.user_name
        if self.git_config.user_email:
            environment['GIT_AUTHOR_EMAIL'] = self.git_config.user_email
            environment['GIT_COMMITTER_EMAIL'] = self.git_config.user_email
        return environment

    async def _commit_workflow_changes(
        self, options: MigrationOptions, result: MigrationResult
    ) -> bool:
        updated_files = result.workflow_outcome.updated_files
        if not updated_files:
            return False

        try:
            await self._run_git(options, ['add', '--', *updated_files])

            try:
                await self._run_git(
                    options, ['diff', '--cached', '--quiet', '--', *updated_files]
                )
            except CommandFailedError as e:
                # Exit code 1 means staged differences exist
                if e.exit_code != 1:
                    raise
            else:
                self.logger.info('No staged workflow changes; skipping commit')
                return False

            message = WORKFLOW_COMMIT_MESSAGE_TEMPLATE.format(
                target=options.target_branch
            )
            await self._run_git(
                options, ['commit', '-m', message], environment=self._commit_environment()
            )
        except GitCommandError as e:
            raise LocalGitError(
                f'unable to commit workflow updates: {e}',
                step='workflow_commit',
                **self._context(options, result),
            ) from e

        self.logger.info(
            f'Committed {len(updated_files)} workflow update(s) in {options.repository_path}'
        )
        return True

    async def _push_workflow_changes(
        self, options: MigrationOptions, result: MigrationResult
    ) -> None:
        try:
            branch = await self.repository_manager.get_current_branch(
                options.repository_path
            )
            if not branch or branch == 'HEAD':
                raise LocalGitError(
                    'cannot push workflow updates from a detached HEAD',
                    step='workflow_push',
                    **self._context(options, result),
                )
            await self._run_git(options, ['push', options.repository_remote_name, branch])
        except GitCommandError as e:
            raise LocalGitError(
                f'unable to push workflow updates: {e}',
                step='workflow_push',
                **self._context(options, result),
            ) from e

        self.logger.info(f'Pushed workflow updates to {options.repository_remote_name}/{branch}')

    async def _reconcile_pages(
        self, options: MigrationOptions, result: MigrationResult
    ) -> bool:
        try:
            return await self.pages_manager.ensure_legacy_branch(
                options.repository_identifier,
                options.source_branch,
                options.target_branch,
            )
        except Exception as e:
            raise PlatformError(
                f'GitHub Pages update failed: {e}',
                step='pages_update',
                **self._context(options, result),
            ) from e

    async def _retarget_pull_requests(
        self, options: MigrationOptions, result: MigrationResult
    ) -> Optional[PullRequestRetargetError]:
        try:
            pull_requests = await self.github_client.list_pull_requests(
                options.repository_identifier,
                PullRequestListOptions(
                    state=PullRequestState.OPEN,
                    base_branch=options.source_branch,
                    result_limit=self.pull_request_limit,
                ),
            )
        except Exception as e:
            raise PlatformError(
                f'unable to list pull requests: {e}',
                step='pull_request_listing',
                **self._context(options, result),
            ) from e

        failures: List[PullRequestRetargetFailure] = []
        for pull_request in pull_requests:
            if pull_request.base_branch != options.source_branch:
                continue
            try:
                await self.github_client.update_pull_request_base(
                    options.repository_identifier,
                    pull_request.number,
                    options.target_branch,
                )
            except Exception as e:
                self.logger.warning(
                    f'Unable to retarget pull request #{pull_request.number} '
                    f'in {options.repository_identifier}: {e}'
                )
                failures.append(PullRequestRetargetFailure(pull_request.number, e))
                continue

            result.retargeted_pull_requests.append(pull_request.number)
            self._debug(options, f'Retargeted pull request #{pull_request.number}')

        if not failures:
            return None
        return PullRequestRetargetError(failures, **self._context(options, result))

    async def _update_default_branch(
        self, options: MigrationOptions, result: MigrationResult
    ) -> bool:
        try:
            metadata = await self.github_client.get_repository_metadata(
                options.repository_identifier
            )
            if metadata.default_branch == options.target_branch:
                self.logger.info(
                    f'Default branch of {options.repository_identifier} already '
                    f'{options.target_branch}'
                )
                return False

            await self.github_client.set_default_branch(
                options.repository_identifier, options.target_branch
            )
        except Exception as e:
            raise PlatformError(
                f'unable to update default branch: {e}',
                step='default_branch_update',
                **self._context(options, result),
            ) from e

        self.logger.info(
            f'Default branch of {options.repository_identifier} set to '
            f'{options.target_branch}'
        )
        return True

    async def _evaluate_safety(self, options: MigrationOptions, result: MigrationResult):
        try:
            return await self.safety_evaluator.evaluate(
                options.repository_identifier,
                options.source_branch,
                workflow_references=result.workflow_outcome.remaining_source_references,
            )
        except Exception as e:
            raise PlatformError(
                f'unable to evaluate branch deletion safety: {e}',
                step='safety_evaluation',
                **self._context(options, result),
            ) from e
