"""Unit tests for the binary runners (nestforge.runners)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from nestforge.runners import (
    CommandRunner,
    GitRunner,
    NpmRunner,
    PnpmRunner,
    RunnerError,
    SchematicRunner,
    YarnRunner,
)

pytestmark = pytest.mark.unit


class TestCommandRunner:
    @pytest.mark.parametrize(
        "runner_cls, binary",
        [
            (GitRunner, "git"),
            (NpmRunner, "npm"),
            (YarnRunner, "yarn"),
            (PnpmRunner, "pnpm"),
            (SchematicRunner, "schematics"),
        ],
    )
    def test_bound_binaries(self, runner_cls, binary):
        assert runner_cls().binary == binary

    def test_binary_override(self):
        runner = SchematicRunner("/opt/bin/schematics")
        assert runner.raw_full_command("app:new") == "/opt/bin/schematics app:new"

    def test_base_class_needs_binary(self):
        with pytest.raises(ValueError, match="needs a binary"):
            CommandRunner()

    @pytest.mark.asyncio
    async def test_run_splits_arguments(self, tmp_path: Path):
        with patch(
            "nestforge.runners.run_command", AsyncMock(return_value=(0, "out", ""))
        ) as run:
            output = await GitRunner().run("commit -m 'initial commit'", cwd=tmp_path)

        assert output == "out"
        run.assert_awaited_once_with(
            ["git", "commit", "-m", "initial commit"], cwd=tmp_path, capture=False
        )

    @pytest.mark.asyncio
    async def test_silent_captures_output(self):
        with patch(
            "nestforge.runners.run_command", AsyncMock(return_value=(0, "", ""))
        ) as run:
            await NpmRunner().run("install --silent", silent=True)

        assert run.call_args.kwargs["capture"] is True

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises(self):
        with patch(
            "nestforge.runners.run_command",
            AsyncMock(return_value=(128, "", "fatal: not a git repository")),
        ):
            with pytest.raises(RunnerError) as exc_info:
                await GitRunner().run("status", silent=True)

        exc = exc_info.value
        assert exc.command == "git status"
        assert exc.returncode == 128
        assert exc.stderr == "fatal: not a git repository"
        assert "exit 128" in str(exc)

    @pytest.mark.asyncio
    async def test_real_process(self, tmp_path: Path):
        runner = CommandRunner("echo")
        assert await runner.run("hello world", silent=True, cwd=tmp_path) == "hello world"
