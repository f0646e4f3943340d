"""Shared utility functions for nestforge.

Provides async command execution, name normalisation, file-system helpers and
the Rich-based console output used by every stage of the ``new`` command.
"""

from __future__ import annotations

import asyncio
import errno
import os
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: str | list[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a shell command asynchronously.

    Args:
        cmd: Shell command string or list of arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
            ``None`` waits for the process however long it takes.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  If *capture* is ``False``
        the stdout/stderr strings will be empty.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    if isinstance(cmd, list):
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=stdout_pipe,
            stderr=stderr_pipe,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    else:
        process = await asyncio.create_subprocess_shell(
            cmd,
            stdout=stdout_pipe,
            stderr=stderr_pipe,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (
            -1,
            "",
            f"Command timed out after {timeout}s: {cmd if isinstance(cmd, str) else ' '.join(cmd)}",
        )

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def normalize_to_kebab_or_snake_case(name: str) -> str:
    """Turn a project name into a directory name.

    camelCase boundaries become hyphens, everything is lowercased and runs of
    whitespace become a single hyphen.  Existing hyphens and underscores are
    kept, so ``my_app`` stays snake case.

    Examples::

        normalize_to_kebab_or_snake_case("myCoolApp") -> "my-cool-app"
        normalize_to_kebab_or_snake_case("My App")    -> "my-app"
        normalize_to_kebab_or_snake_case("my_app")    -> "my_app"
    """
    result = re.sub(r"([a-z\d])([A-Z])", r"\1-\2", name)
    return re.sub(r"\s+", "-", result.lower())


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def file_exists(path: str | Path) -> bool:
    """Return ``True`` if *path* exists.

    Only a missing entry counts as "does not exist"; any other OS error (for
    example a permission problem on a parent directory) is re-raised.
    """
    try:
        os.stat(path)
    except OSError as exc:
        if exc.errno == errno.ENOENT:
            return False
        raise
    return True


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist.

    Returns:
        The resolved ``Path`` object.
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path.resolve()


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


EMOJIS: dict[str, str] = {
    "HEART": "❤️",
    "COFFEE": "☕",
    "BEER": "\U0001f37a",
    "BROKEN_HEART": "\U0001f494",
    "CRY": "\U0001f62d",
    "HEART_EYES": "\U0001f60d",
    "PRAY": "\U0001f64f",
    "ROCKET": "\U0001f680",
    "WINE": "\U0001f377",
}

MESSAGES: dict[str, str] = {
    "PROJECT_INFORMATION_START": f"{EMOJIS['ROCKET']}  We will scaffold your app in a few seconds..",
    "DRY_RUN_MODE": "Command has been executed in dry run mode, nothing changed!",
    "NAME_QUESTION": "What name would you like to use for the new project?",
    "PRISMA_QUESTION": "Would you like to set up Prisma as the data layer?",
    "USER_SERVICE_QUESTION": "Would you like to generate a user service?",
    "FIXTURES_QUESTION": "Would you like to add the fixtures and tooling files?",
    "PACKAGE_MANAGER_QUESTION": f"Which package manager would you {EMOJIS['HEART']}  to use?",
    "PACKAGE_MANAGER_INSTALLATION_IN_PROGRESS": f"Installation in progress... {EMOJIS['COFFEE']}",
    "PACKAGE_MANAGER_INSTALLATION_SUCCEED": "Successfully created project {name}",
    "PACKAGE_MANAGER_INSTALLATION_FAILED": (
        f"{EMOJIS['BROKEN_HEART']}  Packages installation failed!\n"
        "In case you don't see any errors above, consider manually running "
        "the failed command {command} to see more details on why it errored out."
    ),
    "PRISMA_FAILED": "could not generate the prisma files successfully",
    "USER_SERVICE_FAILED": "could not update the app.module file with user-service file",
    "FIXTURES_FAILED": "could not create the necessary files for fixtures",
    "GIT_INITIALIZATION_ERROR": "Git repository has not been initialized",
    "GITIGNORE_FAILED": "could not write the .gitignore file",
    "GENERATION_FAILED": "Failed to execute command: {command}",
}


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, Any], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, "-" if value is None else str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message.

    *message* is printed literally: subprocess output often contains
    bracketed paths that rich would otherwise parse as markup.
    """
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_info(message: str = "", style: str | None = None) -> None:
    console.print(Text(message, style=style or ""))


def print_dry_run_notice() -> None:
    """Print the notice shown in place of a side effect in dry-run mode."""
    console.print()
    console.print(f"[green]{MESSAGES['DRY_RUN_MODE']}[/green]")
    console.print()


def print_centered(message: str = "", style: str | None = None) -> None:
    """Print *message* centred to the current console width."""
    console.print(Text(message, style=style or ""), justify="center")


def print_closing_message(donate_url: str) -> None:
    """Print the thank-you banner shown once a project has been created."""
    print_centered()
    print_centered(f"Thanks for installing Nest {EMOJIS['PRAY']}", style="yellow")
    print_centered("Please consider donating to our open collective", style="dim")
    print_centered("to help us maintain this package.", style="dim")
    print_centered()
    print_centered()
    console.print(
        Text.assemble(
            (f"{EMOJIS['WINE']}  Donate:", "bold"),
            " ",
            (donate_url, "underline"),
        ),
        justify="center",
    )
    print_centered()
