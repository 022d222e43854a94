"""GitHub REST API access."""

from .client import GitHubClient, GitHubClientFactory, GitHubOperations
from .exceptions import (
    GitHubAPIError,
    GitHubAuthenticationError,
    GitHubNotFoundError,
    GitHubPermissionError,
    GitHubRateLimitError,
    GitHubServerError,
    GitHubValidationError,
)
from .rate_limiter import RateLimiter

__all__ = [
    'GitHubClient',
    'GitHubClientFactory',
    'GitHubOperations',
    'GitHubAPIError',
    'GitHubAuthenticationError',
    'GitHubNotFoundError',
    'GitHubPermissionError',
    'GitHubRateLimitError',
    'GitHubServerError',
    'GitHubValidationError',
    'RateLimiter',
]
