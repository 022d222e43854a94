"""Branch migration error taxonomy."""

from dataclasses import dataclass
from typing import List, Optional

from ..models.migration import MigrationResult


class MigrationError(Exception):
    """Base exception for a failed repository migration.

    Carries the repository being migrated, the step that failed and, once
    any step has run, the partial result gathered so far.
    """

    def __init__(
        self,
        message: str,
        step: str,
        repository_path: str = '',
        repository_identifier: str = '',
        result: Optional[MigrationResult] = None,
    ):
        super().__init__(message)
        self.message = message
        self.step = step
        self.repository_path = repository_path
        self.repository_identifier = repository_identifier
        self.result = result

    def __str__(self) -> str:
        repository = self.repository_identifier or self.repository_path
        if repository:
            return f'{repository}: {self.step}: {self.message}'
        return f'{self.step}: {self.message}'


class MigrationValidationError(MigrationError):
    """Migration options were rejected before any change was made."""

    def __init__(self, field_name: str, message: str, **kwargs):
        super().__init__(f'{field_name}: {message}', step='validation', **kwargs)
        self.field_name = field_name


class LocalGitError(MigrationError):
    """Reading, writing, committing or pushing the local repository failed."""

    pass


class PlatformError(MigrationError):
    """A GitHub configuration call failed."""

    pass


@dataclass
class PullRequestRetargetFailure:
    """A single pull request that could not be retargeted."""

    number: int
    error: Exception

    def __str__(self) -> str:
        return f'#{self.number}: {self.error}'


class PullRequestRetargetError(MigrationError):
    """One or more pull requests kept their old base branch."""

    def __init__(self, failures: List[PullRequestRetargetFailure], **kwargs):
        details = '; '.join(str(failure) for failure in failures)
        super().__init__(
            f'unable to retarget {len(failures)} pull request(s): {details}',
            step='pull_request_retarget',
            **kwargs,
        )
        self.failures = failures

    @property
    def pull_request_numbers(self) -> List[int]:
        return [failure.number for failure in self.failures]
