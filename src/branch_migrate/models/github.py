"""GitHub entity models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PullRequestState(str, Enum):
    """Pull request state filter."""

    OPEN = 'open'
    CLOSED = 'closed'
    ALL = 'all'


class PullRequest(BaseModel):
    """Minimal pull request details."""

    number: int = Field(..., description='Pull request number')
    title: str = Field(default='', description='Pull request title')
    base_branch: str = Field(..., description='Branch the pull request merges into')
    head_branch: str = Field(..., description='Branch the pull request merges from')

    @classmethod
    def from_api(cls, data: dict) -> 'PullRequest':
        """Build a pull request from a REST API payload."""
        return cls(
            number=data['number'],
            title=data.get('title') or '',
            base_branch=data.get('base', {}).get('ref', ''),
            head_branch=data.get('head', {}).get('ref', ''),
        )


class PullRequestListOptions(BaseModel):
    """Filters for listing pull requests."""

    state: PullRequestState = Field(
        default=PullRequestState.OPEN, description='Pull request state'
    )
    base_branch: str = Field(..., description='Base branch filter')
    result_limit: int = Field(default=100, description='Maximum results to return')


class PagesBuildType(str, Enum):
    """GitHub Pages build types."""

    LEGACY = 'legacy'
    WORKFLOW = 'workflow'


class PagesStatus(BaseModel):
    """Current GitHub Pages publishing state."""

    enabled: bool = Field(default=False, description='Pages site is configured')
    build_type: Optional[PagesBuildType] = Field(
        default=None, description='Pages build type'
    )
    source_branch: Optional[str] = Field(
        default=None, description='Branch Pages publishes from'
    )
    source_path: str = Field(default='/', description='Path Pages publishes from')

    @classmethod
    def from_api(cls, data: dict) -> 'PagesStatus':
        """Build a status from a ``GET /pages`` payload."""
        source = data.get('source') or {}
        return cls(
            enabled=True,
            build_type=data.get('build_type') or PagesBuildType.LEGACY,
            source_branch=source.get('branch'),
            source_path=source.get('path') or '/',
        )


class PagesConfiguration(BaseModel):
    """Desired GitHub Pages publishing configuration."""

    build_type: PagesBuildType = Field(
        default=PagesBuildType.LEGACY, description='Pages build type'
    )
    source_branch: str = Field(..., description='Branch to publish from')
    source_path: str = Field(default='/', description='Path to publish from')

    def to_payload(self) -> dict:
        """Render the REST API request body."""
        return {
            'build_type': self.build_type.value,
            'source': {'branch': self.source_branch, 'path': self.source_path},
        }


class RepositoryMetadata(BaseModel):
    """Key repository details resolved from GitHub."""

    name_with_owner: str = Field(..., description='owner/name identifier')
    description: Optional[str] = Field(default=None, description='Description')
    default_branch: Optional[str] = Field(default=None, description='Default branch')
