"""Configuration management for the branch migration tool."""

from typing import Optional, Dict, Any, List
from pathlib import Path
import os

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
import yaml
from dotenv import load_dotenv


class GitHubConfig(BaseModel):
    """Configuration for the GitHub API."""

    api_url: str = Field(
        default='https://api.github.com', description='GitHub REST API base URL'
    )
    token: Optional[str] = Field(default=None, description='Personal access token')
    timeout: int = Field(default=30, description='Request timeout in seconds')
    rate_limit_per_second: float = Field(
        default=10.0, description='API requests per second limit'
    )

    @field_validator('api_url')
    @classmethod
    def validate_url(cls, v):
        """Validate API URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('rate_limit_per_second')
    @classmethod
    def validate_rate_limit(cls, v):
        """Validate rate limit is positive."""
        if v <= 0:
            raise ValueError('Rate limit must be positive')
        return v


class MigrationConfig(BaseModel):
    """Migration-specific configuration."""

    source_branch: str = Field(default='main', description='Branch being replaced')
    target_branch: str = Field(default='master', description='New default branch')
    remote_name: str = Field(default='origin', description='Remote to push to')
    workflows_directory: str = Field(
        default='.github/workflows', description='Workflows directory'
    )
    push_updates: bool = Field(default=True, description='Push workflow commits')
    pull_request_limit: int = Field(
        default=100, description='Maximum pull requests retargeted per repository'
    )
    roots: List[str] = Field(
        default_factory=list, description='Directories searched for repositories'
    )

    @field_validator('source_branch', 'target_branch', 'remote_name')
    @classmethod
    def validate_name(cls, v):
        """Validate names are not blank."""
        if not v.strip():
            raise ValueError('Value must not be empty')
        return v.strip()

    @field_validator('pull_request_limit')
    @classmethod
    def validate_pull_request_limit(cls, v):
        """Validate pull request limit is positive."""
        if v <= 0:
            raise ValueError('Pull request limit must be positive')
        return v

    @field_validator('roots')
    @classmethod
    def validate_roots(cls, v):
        """Drop blank roots."""
        return [root.strip() for root in v if root.strip()]

    @model_validator(mode='after')
    def validate_branches_differ(self):
        """Ensure source and target branches differ."""
        if self.source_branch == self.target_branch:
            raise ValueError('source_branch and target_branch must differ')
        return self


class GitConfig(BaseModel):
    """Git operations configuration."""

    timeout: int = Field(
        default=3600, description='Git operation timeout in seconds (default: 1 hour)'
    )
    user_name: Optional[str] = Field(
        default=None,
        description='Author name for workflow commits. Uses git config when unset.',
    )
    user_email: Optional[str] = Field(
        default=None,
        description='Author email for workflow commits. Uses git config when unset.',
    )

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError('Git timeout must be positive')
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')
    format: str = Field(
        default='{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}',
        description='Log format',
    )

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class Config(BaseModel):
    """Main configuration class for the branch migration tool."""

    model_config = ConfigDict(extra='forbid')

    github: GitHubConfig = Field(
        default_factory=GitHubConfig, description='GitHub API settings'
    )
    migration: MigrationConfig = Field(
        default_factory=MigrationConfig, description='Migration settings'
    )
    git: GitConfig = Field(
        default_factory=GitConfig, description='Git operations settings'
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description='Logging settings'
    )

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        config = cls(**config_data)
        # Token usually lives in the environment rather than the file
        if not config.github.token:
            load_dotenv()
            config.github.token = os.getenv('GITHUB_TOKEN')
        return config

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        # Load .env file if it exists
        load_dotenv()

        push_updates = os.getenv('MIGRATE_PUSH_UPDATES')
        config_data = {
            'github': {
                'api_url': os.getenv('GITHUB_API_URL'),
                'token': os.getenv('GITHUB_TOKEN'),
            },
            'migration': {
                'source_branch': os.getenv('MIGRATE_SOURCE_BRANCH'),
                'target_branch': os.getenv('MIGRATE_TARGET_BRANCH'),
                'remote_name': os.getenv('MIGRATE_REMOTE_NAME'),
                'push_updates': push_updates.lower() == 'true'
                if push_updates is not None
                else None,
            },
            'git': {
                'timeout': int(os.getenv('GIT_TIMEOUT', 3600)),
                'user_name': os.getenv('GIT_USER_NAME'),
                'user_email': os.getenv('GIT_USER_EMAIL'),
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL', 'INFO'),
                'file': os.getenv('LOG_FILE'),
            },
        }

        # Remove None values
        config_data = cls._remove_none_values(config_data)

        return cls(**config_data)

    @staticmethod
    def _remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively remove None values from dictionary."""
        if isinstance(data, dict):
            return {
                k: Config._remove_none_values(v)
                for k, v in data.items()
                if v is not None
            }
        return data

    def to_file(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                self.model_dump(mode='json'),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )

    @staticmethod
    def create_template(output_path: str) -> None:
        """Create a configuration template file."""
        template_config = {
            'github': {
                'api_url': 'https://api.github.com',
                'token': 'your-github-personal-access-token',
                'timeout': 30,
                'rate_limit_per_second': 10.0,
            },
            'migration': {
                'source_branch': 'main',
                'target_branch': 'master',
                'remote_name': 'origin',
                'workflows_directory': '.github/workflows',
                'push_updates': True,
                'pull_request_limit': 100,
                'roots': ['.'],
            },
            'git': {
                'timeout': 3600,
            },
            'logging': {
                'level': 'INFO',
                'file': 'branch-migrate.log',
                'format': '{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}',
            },
        }

        config_file = Path(output_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                template_config, f, default_flow_style=False, indent=2, sort_keys=False
            )
