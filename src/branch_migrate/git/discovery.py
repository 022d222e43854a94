"""Repository discovery beneath filesystem roots."""

import os
from pathlib import Path
from typing import List, Sequence

from loguru import logger


class RepositoryDiscoverer:
    """Finds git repositories by walking directory trees."""

    def __init__(self):
        self.logger = logger.bind(component='RepositoryDiscoverer')

    def discover_repositories(self, roots: Sequence[str]) -> List[str]:
        """Locate repositories beneath the given roots.

        A directory is a repository when it contains ``.git``. Walking stops
        at the first repository on each branch of the tree.

        Args:
            roots: Directories to search

        Returns:
            Sorted, de-duplicated repository paths

        Raises:
            FileNotFoundError: If a root does not exist
        """
        repositories = set()

        for root in roots:
            root_path = Path(root).expanduser().resolve()
            if not root_path.is_dir():
                raise FileNotFoundError(f'Repository root not found: {root}')

            for current, directories, _ in os.walk(root_path):
                if '.git' in directories or (Path(current) / '.git').is_file():
                    repositories.add(current)
                    directories.clear()
                    continue
                # Skip hidden directories
                directories[:] = sorted(d for d in directories if not d.startswith('.'))

        discovered = sorted(repositories)
        self.logger.info(f'Discovered {len(discovered)} repositories under {list(roots)}')
        return discovered
