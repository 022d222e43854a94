"""GitHub API exceptions and HTTP status translation."""

import time
from typing import Any, Dict, Optional

DEFAULT_RETRY_AFTER = 60


class GitHubAPIError(Exception):
    """Base exception for GitHub API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data

    @property
    def documentation_url(self) -> Optional[str]:
        """Link GitHub attaches to most error payloads."""
        if isinstance(self.response_data, dict):
            return self.response_data.get('documentation_url')
        return None


class GitHubAuthenticationError(GitHubAPIError):
    """Token missing, expired or rejected."""


class GitHubRateLimitError(GitHubAPIError):
    """Primary or secondary rate limit hit.

    ``retry_after`` is the number of seconds GitHub asked callers to wait.
    """

    def __init__(self, message: str, retry_after: int = DEFAULT_RETRY_AFTER, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class GitHubNotFoundError(GitHubAPIError):
    """Repository, pull request or Pages site does not exist."""


class GitHubPermissionError(GitHubAPIError):
    """Token lacks the scope or role for the operation."""


class GitHubValidationError(GitHubAPIError):
    """Request rejected as unprocessable, or invalid before sending."""


class GitHubServerError(GitHubAPIError):
    """GitHub answered with a 5xx status."""


def _retry_after(headers: Dict[str, str]) -> int:
    value = headers.get('retry-after')
    if value is not None:
        try:
            return max(int(value), 0)
        except ValueError:
            pass
    # Primary limits only advertise the epoch second the window resets
    reset = headers.get('x-ratelimit-reset')
    if reset is not None:
        try:
            return max(int(reset) - int(time.time()), 0)
        except ValueError:
            pass
    return DEFAULT_RETRY_AFTER


def _error_message(status_code: int, payload: Any, text: Any) -> str:
    if isinstance(payload, dict) and payload.get('message'):
        message = payload['message']
        details = payload.get('errors')
        if isinstance(details, list) and details:
            parts = [
                item.get('message') or item.get('code', '')
                if isinstance(item, dict)
                else str(item)
                for item in details
            ]
            message = f"{message} ({'; '.join(part for part in parts if part)})"
        return message
    if isinstance(text, str) and text:
        return f'HTTP {status_code}: {text}'
    return f'HTTP {status_code}'


def error_for_status(
    status_code: int, headers: Dict[str, str], payload: Any = None, text: Any = None
) -> Optional[GitHubAPIError]:
    """Translate a GitHub HTTP error status into an exception.

    A 403 with an exhausted ``X-RateLimit-Remaining`` quota is rate limiting,
    not a permission problem.

    Args:
        status_code: HTTP status code
        headers: Response headers, in any letter case
        payload: Decoded JSON body, if any
        text: Raw response body

    Returns:
        Matching exception, or None for a non-error status
    """
    if status_code < 400:
        return None

    lowered = {key.lower(): value for key, value in headers.items()}
    message = _error_message(status_code, payload, text)
    response_data = payload if isinstance(payload, dict) else None

    if status_code == 429 or (
        status_code == 403 and lowered.get('x-ratelimit-remaining') == '0'
    ):
        retry_after = _retry_after(lowered)
        return GitHubRateLimitError(
            f'Rate limit exceeded. Retry after {retry_after} seconds',
            retry_after=retry_after,
            status_code=status_code,
            response_data=response_data,
        )
    if status_code == 401:
        return GitHubAuthenticationError(
            'Authentication failed', status_code=401, response_data=response_data
        )
    if status_code == 403:
        return GitHubPermissionError(
            f'Permission denied: {message}', status_code=403, response_data=response_data
        )
    if status_code == 404:
        return GitHubNotFoundError(
            'Resource not found', status_code=404, response_data=response_data
        )
    if status_code == 422:
        return GitHubValidationError(
            f'Validation failed: {message}', status_code=422, response_data=response_data
        )
    if status_code >= 500:
        return GitHubServerError(
            f'GitHub server error: {message}',
            status_code=status_code,
            response_data=response_data,
        )

    return GitHubAPIError(
        f'API request failed: {message}',
        status_code=status_code,
        response_data=response_data,
    )
