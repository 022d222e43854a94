"""Shared test doubles for git and GitHub."""

import builtins
from typing import Dict, List, Optional

import pytest

from branch_migrate.api.exceptions import GitHubAPIError, GitHubNotFoundError
from branch_migrate.git.executor import CommandDetails, CommandFailedError, ExecutionResult
from branch_migrate.models.github import (
    PagesBuildType,
    PagesConfiguration,
    PagesStatus,
    PullRequest,
    PullRequestListOptions,
    RepositoryMetadata,
)


class FakeGitExecutor:
    """Records git invocations and answers them from a script.

    Responses are keyed by the git subcommand (``status``, ``commit`` ...).
    A response may be an ExecutionResult, an exception to raise or a
    callable taking the CommandDetails.
    """

    def __init__(self, responses: Optional[Dict[str, object]] = None):
        self.calls: List[CommandDetails] = []
        self.responses = {
            'status': ExecutionResult(stdout=''),
            'add': ExecutionResult(),
            'diff': self._staged_changes,
            'commit': ExecutionResult(stdout='[main abc1234] CI'),
            'rev-parse': ExecutionResult(stdout='main\n'),
            'push': ExecutionResult(),
            'remote': ExecutionResult(stdout='git@github.com:octo/app.git\n'),
        }
        self.responses.update(responses or {})

    @staticmethod
    def _staged_changes(details: CommandDetails):
        raise CommandFailedError(details, ExecutionResult(exit_code=1))

    @property
    def subcommands(self) -> List[str]:
        return [call.arguments[0] for call in self.calls]

    def call_for(self, subcommand: str) -> Optional[CommandDetails]:
        for call in self.calls:
            if call.arguments[0] == subcommand:
                return call
        return None

    async def execute_git(self, details: CommandDetails) -> ExecutionResult:
        self.calls.append(details)
        response = self.responses.get(details.arguments[0], ExecutionResult())
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(details)
        return response


class FakeGitHub:
    """In-memory GitHub repository state."""

    def __init__(
        self,
        default_branch: str = 'main',
        pages: Optional[PagesStatus] = None,
        pull_requests: Optional[List[PullRequest]] = None,
        protected_branches: Optional[List[str]] = None,
    ):
        self.default_branch = default_branch
        self.pages = pages or PagesStatus(enabled=False)
        self.pull_requests = pull_requests or []
        self.protected_branches = set(protected_branches or [])
        self.failing_pull_requests = set()
        self.errors: Dict[str, Exception] = {}
        self.calls: List[tuple] = []

    def _record(self, name: str, *args):
        self.calls.append((name, *args))
        if name in self.errors:
            raise self.errors[name]

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def open_pull_request_bases(self) -> Dict[int, str]:
        return {pr.number: pr.base_branch for pr in self.pull_requests}

    async def get_repository_metadata(self, repository: str) -> RepositoryMetadata:
        self._record('get_repository_metadata', repository)
        return RepositoryMetadata(
            name_with_owner=repository, default_branch=self.default_branch
        )

    async def get_pages_config(self, repository: str) -> PagesStatus:
        self._record('get_pages_config', repository)
        return self.pages

    async def update_pages_config(
        self, repository: str, configuration: PagesConfiguration
    ) -> None:
        self._record('update_pages_config', repository, configuration)
        self.pages = PagesStatus(
            enabled=True,
            build_type=configuration.build_type,
            source_branch=configuration.source_branch,
            source_path=configuration.source_path,
        )

    async def list_pull_requests(
        self, repository: str, options: PullRequestListOptions
    ) -> List[PullRequest]:
        self._record('list_pull_requests', repository, options)
        matching = [
            pr.model_copy()
            for pr in self.pull_requests
            if pr.base_branch == options.base_branch
        ]
        return matching[: options.result_limit]

    async def update_pull_request_base(
        self, repository: str, number: int, base_branch: str
    ) -> None:
        self._record('update_pull_request_base', repository, number, base_branch)
        if number in self.failing_pull_requests:
            raise GitHubAPIError(f'Validation failed for #{number}', status_code=422)
        for pr in self.pull_requests:
            if pr.number == number:
                pr.base_branch = base_branch
                return
        raise GitHubNotFoundError('Resource not found', status_code=404)

    async def set_default_branch(self, repository: str, branch: str) -> None:
        self._record('set_default_branch', repository, branch)
        self.default_branch = branch

    async def check_branch_protection(self, repository: str, branch: str) -> bool:
        self._record('check_branch_protection', repository, branch)
        return branch in self.protected_branches


def make_pull_request(number: int, base_branch: str = 'main') -> PullRequest:
    return PullRequest(
        number=number,
        title=f'Change {number}',
        base_branch=base_branch,
        head_branch=f'feature-{number}',
    )


def legacy_pages(branch: str = 'main', path: str = '/') -> PagesStatus:
    return PagesStatus(
        enabled=True,
        build_type=PagesBuildType.LEGACY,
        source_branch=branch,
        source_path=path,
    )


def read_only_open(file, mode='r', *args, **kwargs):
    """Stand-in for ``open`` that refuses writes regardless of privileges."""
    if 'w' in mode:
        raise PermissionError(13, 'Permission denied', str(file))
    return builtins.open(file, mode, *args, **kwargs)


@pytest.fixture
def git_executor():
    return FakeGitExecutor()


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def repository(tmp_path):
    """Repository checkout with one workflow filtering on ``main``."""
    workflows = tmp_path / 'app' / '.github' / 'workflows'
    workflows.mkdir(parents=True)
    (workflows / 'ci.yml').write_text(
        'on:\n  push:\n    branches:\n      - main\n', encoding='utf-8'
    )
    return tmp_path / 'app'
