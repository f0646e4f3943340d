"""Thin async wrappers around the external binaries nestforge drives.

Every runner binds a binary name (``git``, ``npm``, ...) and executes one
command line through :func:`nestforge.utils.run_command`.  A non-zero exit is
turned into a :class:`RunnerError` so callers only ever deal with exceptions.
"""

from __future__ import annotations

import shlex
from pathlib import Path

from nestforge.utils import run_command


class RunnerError(Exception):
    """Raised when a runner's command exits with a non-zero code."""

    def __init__(
        self, message: str, command: str = "", stderr: str = "", returncode: int = 1
    ) -> None:
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(message)


class CommandRunner:
    """Runs ``<binary> <command>`` in a working directory."""

    binary: str = ""

    def __init__(self, binary: str | None = None) -> None:
        if binary is not None:
            self.binary = binary
        if not self.binary:
            raise ValueError(f"{type(self).__name__} needs a binary to run")

    def raw_full_command(self, command: str) -> str:
        return f"{self.binary} {command}".strip()

    async def run(
        self,
        command: str,
        silent: bool = False,
        cwd: str | Path | None = None,
    ) -> str:
        """Execute *command* with the runner's binary.

        Args:
            command: Arguments appended to the binary, shell-quoted as one string.
            silent: Capture the child's output instead of streaming it to the
                terminal.
            cwd: Working directory for the child process.

        Returns:
            Captured stdout (empty when *silent* is ``False``).

        Raises:
            RunnerError: If the process exits with a non-zero code.
        """
        full_command = self.raw_full_command(command)
        returncode, stdout, stderr = await run_command(
            [self.binary, *shlex.split(command)],
            cwd=cwd,
            capture=silent,
        )
        if returncode != 0:
            raise RunnerError(
                f"Command failed (exit {returncode}): {full_command}\n{stderr}".rstrip(),
                command=full_command,
                stderr=stderr,
                returncode=returncode,
            )
        return stdout


class GitRunner(CommandRunner):
    binary = "git"


class NpmRunner(CommandRunner):
    binary = "npm"


class YarnRunner(CommandRunner):
    binary = "yarn"


class PnpmRunner(CommandRunner):
    binary = "pnpm"


class SchematicRunner(CommandRunner):
    binary = "schematics"
