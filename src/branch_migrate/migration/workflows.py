"""GitHub Actions workflow branch-filter rewriting."""

import re
from pathlib import Path
from typing import List, Tuple

import yaml
from loguru import logger

from ..models.migration import WorkflowOutcome

BRANCH_FILTER_KEYS = ('branches', 'branches-ignore')
WORKFLOW_EXTENSIONS = ('.yml', '.yaml')
FLOW_INDICATORS = ',[]{}'


class WorkflowRewriteError(Exception):
    """Raised when a workflow file cannot be read or written."""

    def __init__(self, message: str, path: Path):
        super().__init__(message)
        self.path = path


def find_branch_filter_nodes(content: str, branch: str) -> List[yaml.ScalarNode]:
    """Locate branch-filter entries naming ``branch``.

    Only scalars under a ``branches`` or ``branches-ignore`` key count, either
    as the key's value or as items of the list it holds. Matching is exact,
    so ``main-2`` and ``main*`` never match ``main``.

    Args:
        content: Workflow file text
        branch: Branch name to look for

    Returns:
        Matching scalar nodes ordered by position in the text

    Raises:
        yaml.YAMLError: If the content is not valid YAML
    """
    matches = {}
    for document in yaml.compose_all(content, Loader=yaml.SafeLoader):
        if document is not None:
            _collect_filter_nodes(document, branch, matches)
    # Anchored or tagged scalars are left alone; their marks cover the prefix
    return [
        matches[index]
        for index in sorted(matches)
        if content[index : index + 1] not in ('&', '!')
    ]


def _collect_filter_nodes(node: yaml.Node, branch: str, matches: dict) -> None:
    if isinstance(node, yaml.MappingNode):
        for key, value in node.value:
            if isinstance(key, yaml.ScalarNode) and key.value in BRANCH_FILTER_KEYS:
                items = value.value if isinstance(value, yaml.SequenceNode) else [value]
                for item in items:
                    if (
                        isinstance(item, yaml.ScalarNode)
                        and item.style not in ('|', '>')
                        and item.value == branch
                    ):
                        # Aliases share the anchored node
                        matches[item.start_mark.index] = item
            else:
                _collect_filter_nodes(value, branch, matches)
    elif isinstance(node, yaml.SequenceNode):
        for item in node.value:
            _collect_filter_nodes(item, branch, matches)


def references_branch(content: str, branch: str) -> bool:
    """Whether ``branch`` appears anywhere in ``content`` as a whole name.

    Unlike the branch-filter scan this looks at the raw text, so ``if:``
    expressions, ``ref:`` inputs and comments count. Names such as
    ``main-2`` or ``domain`` do not count as ``main``.
    """
    pattern = rf'(?<![\w-]){re.escape(branch)}(?![\w-])'
    return re.search(pattern, content) is not None


def _is_safe_plain(value: str) -> bool:
    # Flow indicators would split or end an enclosing flow sequence
    if any(indicator in value for indicator in FLOW_INDICATORS):
        return False
    try:
        return yaml.safe_load(value) == value
    except yaml.YAMLError:
        return False


def _render_scalar(value: str, style: str) -> str:
    if style == '"':
        escaped = value.replace('\\', '\\\\').replace('"', '\\"')
        return f'"{escaped}"'
    if style == "'" or not _is_safe_plain(value):
        return "'" + value.replace("'", "''") + "'"
    return value


def rewrite_branch_filters(content: str, source_branch: str, target_branch: str) -> str:
    """Return ``content`` with branch-filter entries renamed.

    Everything outside the matched scalars, including comments, quoting and
    indentation, is left byte-for-byte unchanged.
    """
    nodes = find_branch_filter_nodes(content, source_branch)
    updated = content
    for node in reversed(nodes):
        start, end = node.start_mark.index, node.end_mark.index
        updated = (
            updated[:start] + _render_scalar(target_branch, node.style) + updated[end:]
        )
    return updated


class WorkflowRewriter:
    """Updates GitHub Actions workflows to target the desired branch."""

    def __init__(self):
        self.logger = logger.bind(component='WorkflowRewriter')

    def rewrite(
        self,
        repository_path: str,
        workflows_directory: str,
        source_branch: str,
        target_branch: str,
    ) -> WorkflowOutcome:
        """Apply branch replacements across workflow files.

        Args:
            repository_path: Repository root
            workflows_directory: Workflows directory relative to the root
            source_branch: Branch name to replace
            target_branch: Replacement branch name

        Returns:
            Outcome listing changed files relative to the repository root and
            whether any file still mentions the source branch

        Raises:
            WorkflowRewriteError: If a file cannot be read or written
        """
        outcome = WorkflowOutcome()
        repository_root = Path(repository_path)
        workflows_root = repository_root / workflows_directory

        if not workflows_root.exists():
            self.logger.info(
                f'Workflows directory not found; skipping rewrite: {workflows_root}'
            )
            return outcome

        if not workflows_root.is_dir():
            raise WorkflowRewriteError(
                f'Workflows path is not a directory: {workflows_root}', workflows_root
            )

        workflow_files = sorted(
            path
            for path in workflows_root.rglob('*')
            if path.is_file() and path.suffix.lower() in WORKFLOW_EXTENSIONS
        )

        for workflow_file in workflow_files:
            changed, remaining = self._rewrite_file(
                workflow_file, source_branch, target_branch
            )
            relative_path = workflow_file.relative_to(repository_root).as_posix()
            if changed:
                outcome.updated_files.append(relative_path)
            if remaining:
                self.logger.warning(
                    f'Workflow file still references {source_branch}: {relative_path}'
                )
                outcome.remaining_source_references = True

        self.logger.info(
            f'Workflow rewrite completed for {workflows_root}: '
            f'{len(outcome.updated_files)} file(s) updated'
        )
        return outcome

    def _rewrite_file(
        self, path: Path, source_branch: str, target_branch: str
    ) -> Tuple[bool, bool]:
        """Rewrite one file.

        Returns:
            Whether the file changed, and whether it still names the source
            branch anywhere afterwards
        """
        try:
            with open(path, 'r', encoding='utf-8', newline='') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise WorkflowRewriteError(
                f'Unable to read workflow file {path}: {e}', path
            ) from e

        try:
            updated = rewrite_branch_filters(content, source_branch, target_branch)
        except yaml.YAMLError as e:
            self.logger.warning(f'Skipping workflow file that is not valid YAML {path}: {e}')
            return False, references_branch(content, source_branch)

        if updated == content:
            self.logger.debug(f'No rewrites required: {path}')
            return False, references_branch(content, source_branch)

        try:
            with open(path, 'w', encoding='utf-8', newline='') as f:
                f.write(updated)
        except OSError as e:
            raise WorkflowRewriteError(
                f'Unable to write workflow file {path}: {e}', path
            ) from e

        self.logger.info(f'Rewrote workflow file: {path}')
        return True, references_branch(updated, source_branch)
