"""nestforge ``new`` orchestrator.

Runs the ``new`` command end to end:

1. RESOLVE   -- ask for every consulted option the operator left unset.
2. GENERATE  -- have the selected collection produce the project's file tree.
3. STAGES    -- the fixed, ordered post-generation steps:

   ========  =================  ==========================================
   Order     Stage              Gate
   ========  =================  ==========================================
   1         install            not skip-install
   2         data-layer         install gate and prisma = yes
   3         backend-service    install gate and user-service = yes
   4         git-init           not dry-run and not skip-git
   5         gitignore          same as git-init, always after it
   6         fixtures           not dry-run
   7         closing-message    not dry-run
   ========  =================  ==========================================

A generation failure is fatal (exit status 1, no stage runs).  A stage failure
is printed and the next stage runs anyway; reaching the end always yields
exit status 0.

Usage::

    nestforge new my-app --package-manager pnpm --prisma yes --user-service no
    nestforge new my-app --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from nestforge.config import Settings
from nestforge.options import (
    COLLECTION,
    DIRECTORY,
    DRY_RUN,
    FIXTURES,
    NAME,
    NO,
    PACKAGE_MANAGER,
    PRISMA,
    SKIP_GIT,
    SKIP_INSTALL,
    STRICT,
    USER_SERVICE,
    YES,
    Option,
    OptionStore,
    QuestionSource,
    ResolvedConfiguration,
    RichQuestionSource,
    resolve_missing,
)
from nestforge.package_managers import PackageManager, create_installer
from nestforge.runners import CommandRunner, GitRunner
from nestforge.scaffolder import (
    FixturesFeature,
    PrismaFeature,
    UserServiceFeature,
    create_collection,
)
from nestforge.utils import (
    MESSAGES,
    console,
    file_exists,
    print_closing_message,
    print_dry_run_notice,
    print_error,
    print_info,
    print_summary_table,
)

# ---------------------------------------------------------------------------
# Stage bookkeeping
# ---------------------------------------------------------------------------

INSTALL = "install"
DATA_LAYER = "data-layer"
BACKEND_SERVICE = "backend-service"
GIT_INIT = "git-init"
GITIGNORE = "gitignore"
FIXTURES_STAGE = "fixtures"
CLOSING_MESSAGE = "closing-message"

STAGES: tuple[str, ...] = (
    INSTALL,
    DATA_LAYER,
    BACKEND_SERVICE,
    GIT_INIT,
    GITIGNORE,
    FIXTURES_STAGE,
    CLOSING_MESSAGE,
)

# The fixtures toggle is pinned on; its question is never asked.
FIXTURES_ENABLED = True


class StageOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class StageResult(BaseModel):
    stage: str
    outcome: StageOutcome
    message: str = ""


class OrchestrationResult(BaseModel):
    """What the ``new`` command did; the CLI turns ``exit_code`` into the process status."""

    exit_code: int = 0
    stages: list[StageResult] = Field(default_factory=list)
    configuration: ResolvedConfiguration | None = None
    error: str | None = None

    def record(self, stage: str, outcome: StageOutcome, message: str = "") -> StageResult:
        result = StageResult(stage=stage, outcome=outcome, message=message)
        self.stages.append(result)
        return result

    def outcome_of(self, stage: str) -> StageOutcome | None:
        for result in self.stages:
            if result.stage == stage:
                return result.outcome
        return None


async def create_gitignore_file(directory: str | Path, content: str) -> bool:
    """Write ``<directory>/.gitignore`` unless one already exists.

    Returns:
        ``True`` if the file was written, ``False`` if it was already there.
    """
    path = Path(directory) / ".gitignore"
    if file_exists(path):
        return False
    await asyncio.to_thread(path.write_text, content, encoding="utf-8")
    return True


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class NewProjectPipeline:
    """Resolves options, generates the project, then runs the ordered stages.

    Every collaborator can be injected, which is how the tests drive the
    orchestration without touching package managers or git.

    Attributes:
        settings: Global nestforge settings.
        cwd: Directory the project directory is created in.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        question_source: QuestionSource | None = None,
        collection_factory: Callable[[str], Any] | None = None,
        installer_factory: Callable[[str], Any] = create_installer,
        git_runner: CommandRunner | None = None,
        prisma: Any = None,
        user_service: Any = None,
        fixtures: Any = None,
        cwd: str | Path | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.question_source = question_source or RichQuestionSource()
        self.collection_factory = collection_factory or partial(
            create_collection,
            schematics_binary=self.settings.schematics_binary,
            source_root=self.settings.source_root,
        )
        self.installer_factory = installer_factory
        self.git_runner = git_runner or GitRunner()
        self.prisma = prisma or PrismaFeature(source_root=self.settings.source_root)
        self.user_service = user_service or UserServiceFeature(
            source_root=self.settings.source_root
        )
        self.fixtures = fixtures or FixturesFeature(source_root=self.settings.source_root)
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()

    async def run(self, inputs: OptionStore, flags: OptionStore) -> OrchestrationResult:
        configuration = resolve_missing(
            inputs,
            flags,
            self.question_source,
            default_project_name=self.settings.default_project_name,
            default_collection=self.settings.default_collection,
        )
        result = OrchestrationResult(configuration=configuration)
        print_summary_table(configuration.summary(), title="New project")

        try:
            await self.dispatch_generation(configuration)
        except Exception as exc:
            print_error(str(exc))
            result.exit_code = 1
            result.error = str(exc)
            return result

        await self.run_stages(configuration, result)
        return result

    async def dispatch_generation(self, configuration: ResolvedConfiguration) -> None:
        """Invoke the configured collection once with every option but ``skip-install``."""
        collection = self.collection_factory(configuration.collection)
        await collection.execute(
            "application", configuration.generator_options(), self.cwd
        )
        console.print()

    async def run_stages(
        self, configuration: ResolvedConfiguration, result: OrchestrationResult
    ) -> OrchestrationResult:
        dry_run = configuration.dry_run
        project_dir = self.cwd / configuration.project_directory
        package_manager = configuration.package_manager

        if not configuration.skip_install:
            if dry_run:
                print_dry_run_notice()
                result.record(INSTALL, StageOutcome.SKIPPED, "dry run")
            else:
                await self._run_stage(
                    result,
                    INSTALL,
                    partial(self._install, configuration, project_dir),
                )

            await self._feature_stage(
                result,
                DATA_LAYER,
                enabled=configuration.data_layer,
                dry_run=dry_run,
                action=partial(self.prisma.create, project_dir, package_manager),
                failure_message=MESSAGES["PRISMA_FAILED"],
            )
            await self._feature_stage(
                result,
                BACKEND_SERVICE,
                enabled=configuration.backend_service,
                dry_run=dry_run,
                action=partial(self.user_service.create, project_dir),
                failure_message=MESSAGES["USER_SERVICE_FAILED"],
            )
        else:
            print_info("Skipping package installation (--skip-install).", style="dim")
            for stage in (INSTALL, DATA_LAYER, BACKEND_SERVICE):
                result.record(stage, StageOutcome.SKIPPED, "skip-install")

        if dry_run:
            for stage in (GIT_INIT, GITIGNORE, FIXTURES_STAGE, CLOSING_MESSAGE):
                result.record(stage, StageOutcome.SKIPPED, "dry run")
            return result

        if not configuration.skip_git:
            await self._run_stage(
                result,
                GIT_INIT,
                partial(
                    self.git_runner.run,
                    "init",
                    silent=self.settings.git_silent,
                    cwd=project_dir,
                ),
                failure_message=MESSAGES["GIT_INITIALIZATION_ERROR"],
            )
            await self._gitignore_stage(result, project_dir)
        else:
            for stage in (GIT_INIT, GITIGNORE):
                result.record(stage, StageOutcome.SKIPPED, "skip-git")

        await self._feature_stage(
            result,
            FIXTURES_STAGE,
            enabled=FIXTURES_ENABLED,
            dry_run=dry_run,
            action=partial(self.fixtures.create, project_dir, package_manager),
            failure_message=MESSAGES["FIXTURES_FAILED"],
        )

        print_closing_message(self.settings.donate_url)
        result.record(CLOSING_MESSAGE, StageOutcome.SUCCEEDED)
        return result

    # ------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------

    async def _install(self, configuration: ResolvedConfiguration, project_dir: Path) -> None:
        manager_name = configuration.package_manager or PackageManager.NPM.value
        installer = self.installer_factory(manager_name)
        await installer.install(
            project_dir,
            manager_name,
            configuration.data_layer,
            configuration.backend_service,
        )

    async def _run_stage(
        self,
        result: OrchestrationResult,
        stage: str,
        action: Callable[[], Awaitable[Any]],
        failure_message: str | None = None,
    ) -> StageResult:
        """Await *action*; a raised exception is printed and recorded, never re-raised."""
        try:
            await action()
        except Exception as exc:
            print_error(failure_message or str(exc))
            if failure_message:
                print_info(str(exc), style="dim")
            return result.record(stage, StageOutcome.FAILED, str(exc))
        return result.record(stage, StageOutcome.SUCCEEDED)

    async def _feature_stage(
        self,
        result: OrchestrationResult,
        stage: str,
        *,
        enabled: bool,
        dry_run: bool,
        action: Callable[[], Awaitable[Any]],
        failure_message: str,
    ) -> StageResult:
        if not enabled:
            return result.record(stage, StageOutcome.SKIPPED, "not requested")
        if dry_run:
            print_dry_run_notice()
            return result.record(stage, StageOutcome.SKIPPED, "dry run")
        return await self._run_stage(result, stage, action, failure_message)

    async def _gitignore_stage(self, result: OrchestrationResult, project_dir: Path) -> StageResult:
        try:
            written = await create_gitignore_file(project_dir, self.settings.gitignore)
        except OSError as exc:
            print_error(MESSAGES["GITIGNORE_FAILED"])
            return result.record(GITIGNORE, StageOutcome.FAILED, str(exc))
        if not written:
            return result.record(GITIGNORE, StageOutcome.SKIPPED, "already exists")
        return result.record(GITIGNORE, StageOutcome.SUCCEEDED)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nestforge",
        description="nestforge -- scaffold a new Nest application",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  nestforge new my-app\n"
            "  nestforge new my-app -p pnpm --prisma yes --user-service no\n"
            "  nestforge new my-app --dry-run --collection builtin\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    new = subparsers.add_parser("new", aliases=["n"], help="Generate a new application")
    new.add_argument("name", nargs="?", default=None, help="Name of the new project")
    new.add_argument(
        "--directory", "-d", default=None, help="Directory to create the project in"
    )
    new.add_argument(
        "--dry-run",
        action="store_true",
        help="Report actions that would be performed without writing out results",
    )
    new.add_argument(
        "--skip-install", "-s", action="store_true", help="Skip package installation"
    )
    new.add_argument(
        "--skip-git", "-g", action="store_true", help="Skip git repository initialization"
    )
    new.add_argument(
        "--package-manager",
        "-p",
        choices=PackageManager.choices(),
        default=None,
        help="Package manager to install dependencies with",
    )
    new.add_argument(
        "--prisma", choices=[YES, NO], default=None, help="Set up Prisma as the data layer"
    )
    new.add_argument(
        "--user-service", choices=[YES, NO], default=None, help="Generate a user service"
    )
    new.add_argument(
        "--collection", "-c", default=None, help="Schematics collection to use"
    )
    new.add_argument(
        "--strict", action="store_true", help="Enable strict mode in TypeScript"
    )
    return parser


def stores_from_args(args: argparse.Namespace) -> tuple[OptionStore, OptionStore]:
    """Build the positional and flag option stores from parsed arguments."""
    inputs = OptionStore([Option(NAME, args.name)])
    flags = OptionStore(
        [
            Option(DIRECTORY, args.directory),
            Option(DRY_RUN, args.dry_run),
            Option(SKIP_INSTALL, args.skip_install),
            Option(SKIP_GIT, args.skip_git),
            Option(PACKAGE_MANAGER, args.package_manager),
            Option(PRISMA, args.prisma),
            Option(USER_SERVICE, args.user_service),
            Option(FIXTURES, None),
            Option(COLLECTION, args.collection),
            Option(STRICT, args.strict),
        ]
    )
    return inputs, flags


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``nestforge`` / ``python -m nestforge``."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    inputs, flags = stores_from_args(args)

    pipeline = NewProjectPipeline(settings)
    result = asyncio.run(pipeline.run(inputs, flags))
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
