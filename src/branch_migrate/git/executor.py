"""Git command execution."""

import asyncio
import contextlib
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from loguru import logger


@dataclass
class CommandDetails:
    """Invocation properties for a git command."""

    arguments: List[str]
    working_directory: Optional[str] = None
    environment: Dict[str, str] = field(default_factory=dict)
    input_bytes: Optional[bytes] = None


@dataclass
class ExecutionResult:
    """Observable result of a finished command."""

    stdout: str = ''
    stderr: str = ''
    exit_code: int = 0


class GitCommandError(Exception):
    """Base exception for git command failures."""

    def __init__(self, message: str, details: CommandDetails):
        super().__init__(message)
        self.details = details


class CommandFailedError(GitCommandError):
    """Git ran but exited with a non-zero code."""

    def __init__(self, details: CommandDetails, result: ExecutionResult):
        """Initialize command failure.

        Args:
            details: Command that was run
            result: Captured output and exit code
        """
        stderr = result.stderr.strip()
        message = f'git {" ".join(details.arguments)} exited with code {result.exit_code}'
        if stderr:
            message = f'{message}: {stderr}'
        super().__init__(message, details)
        self.result = result

    @property
    def exit_code(self) -> int:
        return self.result.exit_code


class CommandExecutionError(GitCommandError):
    """Git could not be run at all (missing binary, timeout, OS error)."""

    pass


class GitExecutor(Protocol):
    """Capability to run git commands."""

    async def execute_git(self, details: CommandDetails) -> ExecutionResult:
        ...


async def _terminate(process: asyncio.subprocess.Process) -> None:
    # The child may have exited between the interruption and the kill
    with contextlib.suppress(ProcessLookupError):
        process.kill()
    await process.wait()


class GitCommandExecutor:
    """Runs git as a subprocess."""

    def __init__(self, timeout: Optional[float] = 3600, git_binary: str = 'git'):
        """Initialize git executor.

        Args:
            timeout: Seconds before a command is abandoned (None disables)
            git_binary: Git executable name or path
        """
        self.timeout = timeout
        self.git_binary = git_binary
        self.logger = logger.bind(component='GitCommandExecutor')

    async def execute_git(self, details: CommandDetails) -> ExecutionResult:
        """Run git with the provided details.

        Args:
            details: Arguments, working directory, environment and input

        Returns:
            Captured result of a successful command

        Raises:
            CommandFailedError: If git exits with a non-zero code
            CommandExecutionError: If git cannot be started or times out
        """
        cmd = [self.git_binary, *details.arguments]
        self.logger.debug(
            f'Running git command: {" ".join(cmd)} in {details.working_directory}'
        )

        env = None
        if details.environment:
            env = {**os.environ, **details.environment}

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE if details.input_bytes else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=details.working_directory,
                env=env,
            )
        except OSError as e:
            self.logger.error(f'Git command execution failed: {e}')
            raise CommandExecutionError(
                f'Unable to run {self.git_binary}: {e}', details
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(input=details.input_bytes), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            await _terminate(process)
            self.logger.error(f'Git command timed out after {self.timeout} seconds')
            raise CommandExecutionError(
                f'git {" ".join(details.arguments)} timed out after {self.timeout} seconds',
                details,
            ) from e
        except asyncio.CancelledError:
            await _terminate(process)
            raise

        result = ExecutionResult(
            stdout=stdout.decode(errors='replace') if stdout else '',
            stderr=stderr.decode(errors='replace') if stderr else '',
            exit_code=process.returncode,
        )

        self.logger.debug(f'Git command return code: {result.exit_code}')
        if result.exit_code != 0:
            self.logger.debug(f'Git command stderr: {result.stderr}')
            raise CommandFailedError(details, result)

        return result
