"""GitHub API client implementation."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote, urljoin

import aiohttp
import requests
from loguru import logger
from pydantic import BaseModel

from ..config.config import GitHubConfig
from ..models.github import (
    PagesConfiguration,
    PagesStatus,
    PullRequest,
    PullRequestListOptions,
    RepositoryMetadata,
)
from .exceptions import (
    GitHubAPIError,
    GitHubAuthenticationError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubValidationError,
    error_for_status,
)
from .rate_limiter import RateLimiter

MAX_PAGE_SIZE = 100


class APIResponse(BaseModel):
    """Standard API response wrapper."""

    status_code: int
    data: Any
    headers: Dict[str, str]
    success: bool


class GitHubOperations(Protocol):
    """GitHub capabilities consumed by the migration core."""

    async def get_repository_metadata(self, repository: str) -> RepositoryMetadata:
        ...

    async def get_pages_config(self, repository: str) -> PagesStatus:
        ...

    async def update_pages_config(
        self, repository: str, configuration: PagesConfiguration
    ) -> None:
        ...

    async def list_pull_requests(
        self, repository: str, options: PullRequestListOptions
    ) -> List[PullRequest]:
        ...

    async def update_pull_request_base(
        self, repository: str, number: int, base_branch: str
    ) -> None:
        ...

    async def set_default_branch(self, repository: str, branch: str) -> None:
        ...

    async def check_branch_protection(self, repository: str, branch: str) -> bool:
        ...


def _require(value: str, field_name: str) -> str:
    trimmed = (value or '').strip()
    if not trimmed:
        raise GitHubValidationError(f'{field_name}: value required')
    return trimmed


def _require_repository(repository: str) -> str:
    identifier = _require(repository, 'repository')
    owner, _, name = identifier.partition('/')
    if not owner or not name or '/' in name:
        raise GitHubValidationError(
            f'repository: expected owner/name, got {identifier!r}'
        )
    return identifier


class GitHubClient:
    """GitHub REST API client with token authentication."""

    def __init__(self, config: GitHubConfig):
        """Initialize GitHub client.

        Args:
            config: GitHub API configuration
        """
        self.config = config
        self.base_url = config.api_url.rstrip('/')
        self.rate_limiter = RateLimiter(config.rate_limit_per_second)
        self.session = requests.Session()

        if not config.token:
            raise GitHubAuthenticationError('No authentication token provided')

        self.session.headers.update(self._headers())

        logger.info(f'Initialized GitHub client for {config.api_url}')

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.config.token}',
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': '2022-11-28',
            'User-Agent': 'branch-migrate/0.1.0',
        }

    def _build_url(self, endpoint: str) -> str:
        """Build full API URL from endpoint.

        Args:
            endpoint: API endpoint path

        Returns:
            Full API URL
        """
        return urljoin(self.base_url + '/', endpoint.lstrip('/'))

    def _raise_error(self, error: GitHubAPIError) -> None:
        if isinstance(error, GitHubRateLimitError):
            self.rate_limiter.defer(error.retry_after)
        raise error

    def _handle_response(self, response: requests.Response) -> APIResponse:
        """Handle API response and convert to standard format.

        Args:
            response: Raw HTTP response

        Returns:
            Standardized API response

        Raises:
            GitHubAPIError: For various API errors
        """
        headers = dict(response.headers)

        if response.status_code >= 400:
            try:
                error_data = response.json()
            except ValueError:
                error_data = None
            self._raise_error(
                error_for_status(
                    response.status_code, headers, error_data, response.text
                )
            )

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = response.text

        return APIResponse(
            status_code=response.status_code,
            data=data,
            headers=headers,
            success=200 <= response.status_code < 300,
        )

    async def _make_request_async(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> APIResponse:
        """Make asynchronous API request.

        Args:
            method: HTTP method
            endpoint: API endpoint
            params: Query parameters
            data: Request body data

        Returns:
            API response
        """
        url = self._build_url(endpoint)
        await self.rate_limiter.acquire()

        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        async with aiohttp.ClientSession(
            headers=self._headers(), timeout=timeout
        ) as session:
            try:
                async with session.request(
                    method=method, url=url, params=params, json=data
                ) as response:
                    response_headers = dict(response.headers)
                    response_text = await response.text()

                    try:
                        response_data = (
                            json.loads(response_text) if response_text else None
                        )
                    except ValueError:
                        response_data = response_text

                    error = error_for_status(
                        response.status, response_headers, response_data, response_text
                    )
                    if error is not None:
                        self._raise_error(error)

                    return APIResponse(
                        status_code=response.status,
                        data=response_data,
                        headers=response_headers,
                        success=200 <= response.status < 300,
                    )

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(f'Network error during API request: {e}')
                raise GitHubAPIError(f'Network error: {e}') from e

    def get(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs
    ) -> APIResponse:
        """Make GET request.

        Args:
            endpoint: API endpoint
            params: Query parameters
            **kwargs: Additional request arguments

        Returns:
            API response
        """
        url = self._build_url(endpoint)
        self.rate_limiter.acquire_sync()

        try:
            response = self.session.get(
                url, params=params, timeout=self.config.timeout, **kwargs
            )
            return self._handle_response(response)
        except requests.RequestException as e:
            logger.error(f'Network error during GET request: {e}')
            raise GitHubAPIError(f'Network error: {e}') from e

    async def get_repository_metadata(self, repository: str) -> RepositoryMetadata:
        """Retrieve canonical repository details.

        Args:
            repository: owner/name identifier

        Returns:
            Repository metadata including the default branch
        """
        identifier = _require_repository(repository)
        response = await self._make_request_async('GET', f'/repos/{identifier}')
        payload = response.data or {}
        return RepositoryMetadata(
            name_with_owner=payload.get('full_name', identifier),
            description=payload.get('description'),
            default_branch=payload.get('default_branch'),
        )

    async def get_pages_config(self, repository: str) -> PagesStatus:
        """Read the GitHub Pages configuration.

        Args:
            repository: owner/name identifier

        Returns:
            Pages status; ``enabled`` is False when Pages is not configured
        """
        identifier = _require_repository(repository)
        try:
            response = await self._make_request_async(
                'GET', f'/repos/{identifier}/pages'
            )
        except GitHubNotFoundError:
            return PagesStatus(enabled=False)

        return PagesStatus.from_api(response.data or {})

    async def update_pages_config(
        self, repository: str, configuration: PagesConfiguration
    ) -> None:
        """Update the GitHub Pages publishing source.

        Args:
            repository: owner/name identifier
            configuration: Desired build type, branch and path
        """
        identifier = _require_repository(repository)
        _require(configuration.source_branch, 'source_branch')
        await self._make_request_async(
            'PUT', f'/repos/{identifier}/pages', data=configuration.to_payload()
        )

    async def list_pull_requests(
        self, repository: str, options: PullRequestListOptions
    ) -> List[PullRequest]:
        """List pull requests filtered by state and base branch.

        Args:
            repository: owner/name identifier
            options: State, base branch and result limit

        Returns:
            Pull requests in API order, at most ``options.result_limit``
        """
        identifier = _require_repository(repository)
        base_branch = _require(options.base_branch, 'base_branch')
        result_limit = options.result_limit if options.result_limit > 0 else MAX_PAGE_SIZE
        per_page = min(result_limit, MAX_PAGE_SIZE)

        pull_requests: List[PullRequest] = []
        page = 1
        while len(pull_requests) < result_limit:
            response = await self._make_request_async(
                'GET',
                f'/repos/{identifier}/pulls',
                params={
                    'state': options.state.value,
                    'base': base_branch,
                    'per_page': per_page,
                    'page': page,
                },
            )
            items = response.data or []
            pull_requests.extend(PullRequest.from_api(item) for item in items)
            if len(items) < per_page:
                break
            page += 1

        return pull_requests[:result_limit]

    async def update_pull_request_base(
        self, repository: str, number: int, base_branch: str
    ) -> None:
        """Change the base branch of a pull request.

        Args:
            repository: owner/name identifier
            number: Pull request number
            base_branch: New base branch
        """
        identifier = _require_repository(repository)
        base = _require(base_branch, 'base_branch')
        await self._make_request_async(
            'PATCH', f'/repos/{identifier}/pulls/{number}', data={'base': base}
        )

    async def set_default_branch(self, repository: str, branch: str) -> None:
        """Set the repository default branch.

        Args:
            repository: owner/name identifier
            branch: New default branch
        """
        identifier = _require_repository(repository)
        default_branch = _require(branch, 'branch')
        await self._make_request_async(
            'PATCH', f'/repos/{identifier}', data={'default_branch': default_branch}
        )

    async def check_branch_protection(self, repository: str, branch: str) -> bool:
        """Report whether branch protection is enabled.

        Args:
            repository: owner/name identifier
            branch: Branch to inspect

        Returns:
            True if the branch is protected
        """
        identifier = _require_repository(repository)
        branch_name = quote(_require(branch, 'branch'), safe='')
        try:
            await self._make_request_async(
                'GET', f'/repos/{identifier}/branches/{branch_name}/protection'
            )
        except GitHubNotFoundError:
            return False
        return True

    def test_connection(self) -> bool:
        """Test connection to GitHub.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            response = self.get('/user')
            return response.success
        except GitHubAPIError as e:
            logger.error(f'Connection test failed: {e}')
            return False

    def close(self):
        """Close the client session."""
        self.session.close()
        logger.info('GitHub client session closed')

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class GitHubClientFactory:
    """Factory for creating GitHub API clients."""

    @staticmethod
    def create_client(config: GitHubConfig) -> GitHubClient:
        """Create GitHub client from configuration.

        Args:
            config: GitHub API configuration

        Returns:
            Configured GitHub client

        Raises:
            GitHubAuthenticationError: If no token is configured
        """
        if not config.token:
            raise GitHubAuthenticationError(
                'A GitHub token must be provided (set GITHUB_TOKEN)'
            )

        return GitHubClient(config)
