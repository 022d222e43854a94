"""Tests for the single-repository migration orchestrator."""

import asyncio
from unittest.mock import patch

import pytest

from branch_migrate.api.exceptions import GitHubAPIError
from branch_migrate.config.config import GitConfig
from branch_migrate.git.executor import CommandDetails, CommandFailedError, ExecutionResult
from branch_migrate.migration.errors import (
    LocalGitError,
    MigrationValidationError,
    PlatformError,
    PullRequestRetargetError,
)
from branch_migrate.migration.orchestrator import MigrationOrchestrator
from branch_migrate.migration.safety import (
    OPEN_PULL_REQUESTS_REASON,
    WORKFLOW_REFERENCES_REASON,
)
from branch_migrate.migration.workflows import WorkflowRewriteError
from branch_migrate.models.migration import MigrationOptions

from conftest import (
    FakeGitExecutor,
    FakeGitHub,
    legacy_pages,
    make_pull_request,
    read_only_open,
)


def _options(repository, **overrides) -> MigrationOptions:
    settings = {
        'repository_path': str(repository),
        'repository_identifier': 'octo/app',
        'source_branch': 'main',
        'target_branch': 'master',
    }
    settings.update(overrides)
    return MigrationOptions(**settings)


def _failed(arguments, exit_code=128, stderr='fatal: boom'):
    return CommandFailedError(
        CommandDetails(arguments=arguments),
        ExecutionResult(stderr=stderr, exit_code=exit_code),
    )


class TestValidation:
    """Test option validation happens before any side effect."""

    @pytest.mark.asyncio
    async def test_same_branches_rejected(self, repository, git_executor, github):
        """Test identical branches fail without issuing commands."""
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(MigrationValidationError) as exc_info:
            await orchestrator.execute(_options(repository, target_branch='main'))

        assert exc_info.value.field_name == 'target_branch'
        assert exc_info.value.step == 'validation'
        assert git_executor.calls == []
        assert github.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        'field_name',
        ['repository_path', 'repository_identifier', 'source_branch', 'target_branch'],
    )
    async def test_required_fields(self, repository, git_executor, github, field_name):
        """Test blank required options are rejected."""
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(MigrationValidationError) as exc_info:
            await orchestrator.execute(_options(repository, **{field_name: '  '}))

        assert exc_info.value.field_name == field_name
        assert git_executor.calls == []
        assert github.calls == []

    @pytest.mark.asyncio
    async def test_remote_required_only_when_pushing(
        self, repository, git_executor, github
    ):
        """Test the remote name matters only when pushing."""
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(MigrationValidationError) as exc_info:
            await orchestrator.execute(_options(repository, repository_remote_name=''))
        assert exc_info.value.field_name == 'repository_remote_name'

        result = await orchestrator.execute(
            _options(repository, repository_remote_name='', push_updates=False)
        )
        assert result.default_branch_updated is True


class TestMigration:
    """Test the full migration sequence."""

    @pytest.mark.asyncio
    async def test_full_migration(self, repository, git_executor):
        """Test every step runs and is reported."""
        github = FakeGitHub(
            pages=legacy_pages(path='/docs'),
            pull_requests=[make_pull_request(1), make_pull_request(2)],
        )
        orchestrator = MigrationOrchestrator(git_executor, github)

        result = await orchestrator.execute(_options(repository))

        assert result.workflow_outcome.updated_files == ['.github/workflows/ci.yml']
        assert result.pages_configuration_updated is True
        assert result.retargeted_pull_requests == [1, 2]
        assert result.default_branch_updated is True
        assert result.safety_status.safe_to_delete is True
        assert result.safety_status.blocking_reasons == []

        workflow = (repository / '.github' / 'workflows' / 'ci.yml').read_text()
        assert '- master' in workflow
        assert github.default_branch == 'master'
        assert github.pages.source_branch == 'master'
        assert github.open_pull_request_bases() == {1: 'master', 2: 'master'}

    @pytest.mark.asyncio
    async def test_git_command_sequence(self, repository, git_executor, github):
        """Test workflow changes are staged, committed and pushed in order."""
        orchestrator = MigrationOrchestrator(git_executor, github)

        await orchestrator.execute(_options(repository))

        assert git_executor.subcommands == [
            'status',
            'add',
            'diff',
            'commit',
            'rev-parse',
            'push',
        ]
        assert git_executor.call_for('add').arguments == [
            'add',
            '--',
            '.github/workflows/ci.yml',
        ]
        assert git_executor.call_for('commit').arguments == [
            'commit',
            '-m',
            'CI: switch workflow branch filters to master',
        ]
        assert git_executor.call_for('push').arguments == ['push', 'origin', 'main']
        assert all(
            call.working_directory == str(repository) for call in git_executor.calls
        )

    @pytest.mark.asyncio
    async def test_platform_step_order(self, repository, git_executor):
        """Test GitHub calls follow pages, pull requests, default branch, safety."""
        github = FakeGitHub(pull_requests=[make_pull_request(1)])
        orchestrator = MigrationOrchestrator(git_executor, github)

        await orchestrator.execute(_options(repository))

        assert github.call_names() == [
            'get_pages_config',
            'list_pull_requests',
            'update_pull_request_base',
            'get_repository_metadata',
            'set_default_branch',
            'list_pull_requests',
            'check_branch_protection',
        ]

    @pytest.mark.asyncio
    async def test_push_disabled(self, repository, git_executor, github):
        """Test commits stay local when pushing is disabled."""
        orchestrator = MigrationOrchestrator(git_executor, github)

        await orchestrator.execute(_options(repository, push_updates=False))

        assert 'commit' in git_executor.subcommands
        assert 'push' not in git_executor.subcommands

    @pytest.mark.asyncio
    async def test_no_workflow_changes(self, tmp_path, git_executor, github):
        """Test nothing is committed when no workflow matches."""
        orchestrator = MigrationOrchestrator(git_executor, github)

        result = await orchestrator.execute(_options(tmp_path))

        assert result.workflow_outcome.updated_files == []
        assert git_executor.subcommands == ['status']
        assert result.default_branch_updated is True

    @pytest.mark.asyncio
    async def test_nothing_staged_skips_commit(self, repository, github):
        """Test a clean index after staging skips the commit and push."""
        git_executor = FakeGitExecutor({'diff': ExecutionResult()})
        orchestrator = MigrationOrchestrator(git_executor, github)

        await orchestrator.execute(_options(repository))

        assert git_executor.subcommands == ['status', 'add', 'diff']

    @pytest.mark.asyncio
    async def test_commit_author_override(self, repository, git_executor, github):
        """Test the configured author is applied to the workflow commit."""
        orchestrator = MigrationOrchestrator(
            git_executor,
            github,
            git_config=GitConfig(user_name='Release Bot', user_email='bot@example.com'),
        )

        await orchestrator.execute(_options(repository))

        environment = git_executor.call_for('commit').environment
        assert environment['GIT_AUTHOR_NAME'] == 'Release Bot'
        assert environment['GIT_COMMITTER_EMAIL'] == 'bot@example.com'

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, repository, git_executor):
        """Test a repeated migration makes no further changes."""
        github = FakeGitHub(
            pages=legacy_pages(), pull_requests=[make_pull_request(1)]
        )
        orchestrator = MigrationOrchestrator(git_executor, github)
        await orchestrator.execute(_options(repository))

        second_executor = FakeGitExecutor()
        github.calls.clear()
        result = await MigrationOrchestrator(second_executor, github).execute(
            _options(repository)
        )

        assert result.workflow_outcome.updated_files == []
        assert result.pages_configuration_updated is False
        assert result.retargeted_pull_requests == []
        assert result.default_branch_updated is False
        assert result.safety_status.safe_to_delete is True
        assert second_executor.subcommands == ['status']
        assert 'set_default_branch' not in github.call_names()
        assert 'update_pages_config' not in github.call_names()

    @pytest.mark.asyncio
    async def test_protected_source_branch_reported(self, repository, git_executor):
        """Test protection only affects the safety verdict."""
        github = FakeGitHub(protected_branches=['main'])
        orchestrator = MigrationOrchestrator(git_executor, github)

        result = await orchestrator.execute(_options(repository))

        assert result.default_branch_updated is True
        assert result.safety_status.safe_to_delete is False

    @pytest.mark.asyncio
    async def test_leftover_workflow_reference_reported(
        self, repository, git_executor, github
    ):
        """Test workflow mentions outside branch filters block deletion."""
        (repository / '.github' / 'workflows' / 'deploy.yml').write_text(
            "jobs:\n  deploy:\n    if: github.ref == 'refs/heads/main'\n",
            encoding='utf-8',
        )
        orchestrator = MigrationOrchestrator(git_executor, github)

        result = await orchestrator.execute(_options(repository))

        assert result.workflow_outcome.updated_files == ['.github/workflows/ci.yml']
        assert result.workflow_outcome.remaining_source_references is True
        assert result.default_branch_updated is True
        assert result.safety_status.safe_to_delete is False
        assert result.safety_status.blocking_reasons == [WORKFLOW_REFERENCES_REASON]


class TestPartialFailure:
    """Test failures during the migration."""

    @pytest.mark.asyncio
    async def test_retarget_failure_completes_remaining_steps(
        self, repository, git_executor
    ):
        """Test one failed retarget still updates the default branch."""
        github = FakeGitHub(pull_requests=[make_pull_request(1), make_pull_request(2)])
        github.failing_pull_requests.add(2)
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(PullRequestRetargetError) as exc_info:
            await orchestrator.execute(_options(repository))

        error = exc_info.value
        assert error.pull_request_numbers == [2]
        assert error.step == 'pull_request_retarget'
        assert error.result.retargeted_pull_requests == [1]
        assert error.result.default_branch_updated is True
        assert error.result.safety_status.safe_to_delete is False
        assert error.result.safety_status.blocking_reasons == [
            OPEN_PULL_REQUESTS_REASON
        ]
        assert github.default_branch == 'master'

    @pytest.mark.asyncio
    async def test_dirty_worktree(self, repository, github):
        """Test uncommitted changes stop the migration before any change."""
        git_executor = FakeGitExecutor({'status': ExecutionResult(stdout=' M README.md\n')})
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(LocalGitError) as exc_info:
            await orchestrator.execute(_options(repository))

        assert exc_info.value.step == 'worktree_check'
        assert exc_info.value.result is None
        assert 'branches:\n      - main' in (
            repository / '.github' / 'workflows' / 'ci.yml'
        ).read_text()
        assert github.calls == []

    @pytest.mark.asyncio
    async def test_undecodable_workflow_file(self, repository, git_executor, github):
        """Test workflow content that is not UTF-8 stops the migration."""
        (repository / '.github' / 'workflows' / 'ci.yml').write_bytes(
            b'on:\n  push:\n    branches: [main]  # caf\xe9\n'
        )
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(LocalGitError) as exc_info:
            await orchestrator.execute(_options(repository))

        assert exc_info.value.step == 'workflow_rewrite'
        assert exc_info.value.repository_identifier == 'octo/app'
        assert isinstance(exc_info.value.__cause__, WorkflowRewriteError)
        assert git_executor.subcommands == ['status']
        assert github.calls == []

    @pytest.mark.asyncio
    async def test_workflow_write_failure(self, repository, git_executor, github):
        """Test a workflow file that cannot be written stops the migration."""
        workflow = repository / '.github' / 'workflows' / 'ci.yml'
        original = workflow.read_text(encoding='utf-8')
        orchestrator = MigrationOrchestrator(git_executor, github)

        with patch(
            'branch_migrate.migration.workflows.open',
            side_effect=read_only_open,
            create=True,
        ):
            with pytest.raises(LocalGitError) as exc_info:
                await orchestrator.execute(_options(repository))

        assert exc_info.value.step == 'workflow_rewrite'
        assert isinstance(exc_info.value.__cause__, WorkflowRewriteError)
        assert workflow.read_text(encoding='utf-8') == original
        assert git_executor.subcommands == ['status']
        assert github.calls == []

    @pytest.mark.asyncio
    async def test_commit_failure_keeps_workflow_outcome(self, repository, github):
        """Test a failed commit reports which files were rewritten."""
        git_executor = FakeGitExecutor({'commit': _failed(['commit'])})
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(LocalGitError) as exc_info:
            await orchestrator.execute(_options(repository))

        error = exc_info.value
        assert error.step == 'workflow_commit'
        assert error.result.workflow_outcome.updated_files == [
            '.github/workflows/ci.yml'
        ]
        assert isinstance(error.__cause__, CommandFailedError)
        assert github.calls == []

    @pytest.mark.asyncio
    async def test_diff_error_is_not_treated_as_changes(self, repository, github):
        """Test only exit code 1 from the staged diff means changes exist."""
        git_executor = FakeGitExecutor({'diff': _failed(['diff'], exit_code=129)})
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(LocalGitError) as exc_info:
            await orchestrator.execute(_options(repository))

        assert exc_info.value.step == 'workflow_commit'
        assert 'commit' not in git_executor.subcommands

    @pytest.mark.asyncio
    async def test_push_failure(self, repository, github):
        """Test a rejected push stops before GitHub is touched."""
        git_executor = FakeGitExecutor({'push': _failed(['push', 'origin', 'main'])})
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(LocalGitError) as exc_info:
            await orchestrator.execute(_options(repository))

        assert exc_info.value.step == 'workflow_push'
        assert exc_info.value.result.workflow_outcome.updated_files
        assert github.calls == []

    @pytest.mark.asyncio
    async def test_detached_head_cannot_push(self, repository, github):
        """Test pushing from a detached HEAD is refused."""
        git_executor = FakeGitExecutor({'rev-parse': ExecutionResult(stdout='HEAD\n')})
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(LocalGitError) as exc_info:
            await orchestrator.execute(_options(repository))

        assert exc_info.value.step == 'workflow_push'
        assert 'push' not in git_executor.subcommands

    @pytest.mark.asyncio
    async def test_pages_failure(self, repository, git_executor, github):
        """Test a Pages failure stops before pull requests are touched."""
        github.errors['get_pages_config'] = GitHubAPIError('boom', status_code=500)
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(PlatformError) as exc_info:
            await orchestrator.execute(_options(repository))

        assert exc_info.value.step == 'pages_update'
        assert 'list_pull_requests' not in github.call_names()

    @pytest.mark.asyncio
    async def test_pull_request_listing_failure(self, repository, git_executor, github):
        """Test a failed listing stops before the default branch changes."""
        github.errors['list_pull_requests'] = GitHubAPIError('boom', status_code=500)
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(PlatformError) as exc_info:
            await orchestrator.execute(_options(repository))

        assert exc_info.value.step == 'pull_request_listing'
        assert 'set_default_branch' not in github.call_names()
        assert github.default_branch == 'main'

    @pytest.mark.asyncio
    async def test_default_branch_failure(self, repository, git_executor):
        """Test a failed default branch update keeps earlier results."""
        github = FakeGitHub(pull_requests=[make_pull_request(7)])
        github.errors['set_default_branch'] = GitHubAPIError('boom', status_code=403)
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(PlatformError) as exc_info:
            await orchestrator.execute(_options(repository))

        error = exc_info.value
        assert error.step == 'default_branch_update'
        assert error.repository_identifier == 'octo/app'
        assert error.result.retargeted_pull_requests == [7]
        assert 'check_branch_protection' not in github.call_names()

    @pytest.mark.asyncio
    async def test_safety_failure(self, repository, git_executor, github):
        """Test a failed safety check is reported with the full result."""
        github.errors['check_branch_protection'] = GitHubAPIError('boom', status_code=500)
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(PlatformError) as exc_info:
            await orchestrator.execute(_options(repository))

        assert exc_info.value.step == 'safety_evaluation'
        assert exc_info.value.result.default_branch_updated is True

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, repository, git_executor, github):
        """Test cancellation is never converted into a migration error."""
        github.errors['list_pull_requests'] = asyncio.CancelledError()
        orchestrator = MigrationOrchestrator(git_executor, github)

        with pytest.raises(asyncio.CancelledError):
            await orchestrator.execute(_options(repository))

        assert 'set_default_branch' not in github.call_names()
