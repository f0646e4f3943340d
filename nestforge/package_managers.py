"""Package-manager installers.

``PackageManager`` is a closed enum; each member has exactly one installer
class.  Looking up a name outside the enum raises
:class:`UnknownPackageManagerError` instead of failing somewhere deep in a
subprocess call.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from nestforge.config import ConfigurationError
from nestforge.runners import CommandRunner, NpmRunner, PnpmRunner, RunnerError, YarnRunner
from nestforge.utils import MESSAGES, console, print_error, print_success

# Packages pulled in by the optional sub-features.
DATA_LAYER_PACKAGES: list[str] = ["@prisma/client"]
DATA_LAYER_DEV_PACKAGES: list[str] = ["prisma"]
BACKEND_SERVICE_PACKAGES: list[str] = ["@nestjs/jwt", "bcrypt"]
BACKEND_SERVICE_DEV_PACKAGES: list[str] = ["@types/bcrypt"]


class PackageManager(str, Enum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"

    @classmethod
    def choices(cls) -> list[str]:
        return [member.value for member in cls]


class UnknownPackageManagerError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__("package manager", name, PackageManager.choices())


class InstallationError(Exception):
    """Raised when a package manager fails to install the dependency tree."""

    def __init__(self, manager: str, command: str = "", stderr: str = "") -> None:
        self.manager = manager
        self.command = command
        self.stderr = stderr
        super().__init__(
            MESSAGES["PACKAGE_MANAGER_INSTALLATION_FAILED"].format(command=command)
        )


class PackageManagerInstaller:
    """Installs a freshly generated project's dependencies.

    Subclasses only declare their runner and the argument spelling of the
    three commands used (install everything, add, add as dev dependency).
    """

    manager: PackageManager
    install_args: str = "install"
    add_args: str = "add"
    add_dev_args: str = "add -D"
    exec_command: str = ""

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or self._default_runner()

    def _default_runner(self) -> CommandRunner:
        raise NotImplementedError

    @property
    def name(self) -> str:
        return self.manager.value

    async def install(
        self,
        target_dir: str | Path,
        manager_name: str,
        wants_data_layer: bool = False,
        wants_backend_service: bool = False,
    ) -> None:
        """Install the base dependency tree and any sub-feature packages.

        Raises:
            InstallationError: If any of the package manager commands fails.
        """
        console.print(f"[dim]{MESSAGES['PACKAGE_MANAGER_INSTALLATION_IN_PROGRESS']}[/dim]")

        await self._run(self.install_args, target_dir)
        if wants_data_layer:
            await self._add(DATA_LAYER_PACKAGES, DATA_LAYER_DEV_PACKAGES, target_dir)
        if wants_backend_service:
            await self._add(
                BACKEND_SERVICE_PACKAGES, BACKEND_SERVICE_DEV_PACKAGES, target_dir
            )

        print_success(
            MESSAGES["PACKAGE_MANAGER_INSTALLATION_SUCCEED"].format(
                name=Path(target_dir).name
            )
        )
        console.print(f"  [dim]{manager_name} {self._start_command()}[/dim]")

    def _start_command(self) -> str:
        return "run start"

    async def _add(
        self, packages: list[str], dev_packages: list[str], target_dir: str | Path
    ) -> None:
        if packages:
            await self._run(f"{self.add_args} {' '.join(packages)}", target_dir)
        if dev_packages:
            await self._run(f"{self.add_dev_args} {' '.join(dev_packages)}", target_dir)

    async def _run(self, command: str, target_dir: str | Path) -> None:
        try:
            await self.runner.run(command, silent=True, cwd=target_dir)
        except RunnerError as exc:
            print_error(exc.stderr or str(exc))
            raise InstallationError(
                self.name,
                command=self.runner.raw_full_command(command),
                stderr=exc.stderr,
            ) from exc


class NpmInstaller(PackageManagerInstaller):
    manager = PackageManager.NPM
    install_args = "install --silent"
    add_args = "install --save"
    add_dev_args = "install --save-dev"
    exec_command = "npx"

    def _default_runner(self) -> CommandRunner:
        return NpmRunner()


class YarnInstaller(PackageManagerInstaller):
    manager = PackageManager.YARN
    install_args = "install --silent"
    exec_command = "yarn"

    def _default_runner(self) -> CommandRunner:
        return YarnRunner()

    def _start_command(self) -> str:
        return "start"


class PnpmInstaller(PackageManagerInstaller):
    manager = PackageManager.PNPM
    install_args = "install --reporter=silent"
    exec_command = "pnpm exec"

    def _default_runner(self) -> CommandRunner:
        return PnpmRunner()


_INSTALLERS: dict[PackageManager, type[PackageManagerInstaller]] = {
    PackageManager.NPM: NpmInstaller,
    PackageManager.YARN: YarnInstaller,
    PackageManager.PNPM: PnpmInstaller,
}


def parse_package_manager(name: str | PackageManager) -> PackageManager:
    """Return the enum member for *name* or raise ``UnknownPackageManagerError``."""
    try:
        return PackageManager(name)
    except ValueError:
        raise UnknownPackageManagerError(str(name)) from None


def create_installer(name: str | PackageManager) -> PackageManagerInstaller:
    return _INSTALLERS[parse_package_manager(name)]()


def exec_command_for(name: str | PackageManager | None) -> str:
    """Return the "run a local binary" prefix for a package manager (``npx`` by default)."""
    if name is None:
        return NpmInstaller.exec_command
    return _INSTALLERS[parse_package_manager(name)].exec_command
