"""GitHub Pages source reconciliation."""

from loguru import logger

from ..api.client import GitHubOperations
from ..models.github import PagesBuildType, PagesConfiguration


class PagesManager:
    """Moves a legacy Pages site from one branch to another."""

    def __init__(self, github_client: GitHubOperations):
        self.github_client = github_client
        self.logger = logger.bind(component='PagesManager')

    async def ensure_legacy_branch(
        self, repository_identifier: str, source_branch: str, target_branch: str
    ) -> bool:
        """Point a legacy Pages site at ``target_branch``.

        Sites that are disabled, built by a workflow, or published from any
        other branch are left alone.

        Args:
            repository_identifier: owner/name identifier
            source_branch: Branch Pages must currently publish from
            target_branch: Branch to publish from afterwards

        Returns:
            True if the configuration was updated
        """
        status = await self.github_client.get_pages_config(repository_identifier)

        if not status.enabled:
            self.logger.info(f'GitHub Pages not configured for {repository_identifier}')
            return False

        if status.build_type != PagesBuildType.LEGACY:
            self.logger.info(
                f'GitHub Pages for {repository_identifier} uses build type '
                f'{status.build_type}; skipping'
            )
            return False

        if status.source_branch != source_branch:
            self.logger.info(
                f'GitHub Pages for {repository_identifier} publishes from '
                f'{status.source_branch}; skipping'
            )
            return False

        await self.github_client.update_pages_config(
            repository_identifier,
            PagesConfiguration(
                build_type=status.build_type,
                source_branch=target_branch,
                source_path=status.source_path,
            ),
        )
        self.logger.info(
            f'Updated GitHub Pages source for {repository_identifier} to '
            f'{target_branch} ({status.source_path})'
        )
        return True
