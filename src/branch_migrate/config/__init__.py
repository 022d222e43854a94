"""Configuration models and loaders."""

from .config import Config, GitConfig, GitHubConfig, LoggingConfig, MigrationConfig

__all__ = ['Config', 'GitConfig', 'GitHubConfig', 'LoggingConfig', 'MigrationConfig']
