"""Generator collections: the pluggable producers of a new project's file tree.

``Collection`` is a closed enum with one handler class per member:

* ``@nestjs/schematics`` shells out to the ``schematics`` binary.
* ``builtin`` renders the Jinja2 application templates shipped with nestforge.

Both expose ``execute(schematic, options, cwd)`` and raise
:class:`GenerationError` when the file tree cannot be produced.
"""

from __future__ import annotations

import shlex
from enum import Enum
from pathlib import Path
from typing import Any

from rich.markup import escape

from nestforge.config import ConfigurationError
from nestforge.runners import CommandRunner, RunnerError, SchematicRunner
from nestforge.utils import MESSAGES, console, normalize_to_kebab_or_snake_case

from .templates import TemplateRenderer, output_path_for


class Collection(str, Enum):
    NESTJS = "@nestjs/schematics"
    BUILTIN = "builtin"

    @classmethod
    def choices(cls) -> list[str]:
        return [member.value for member in cls]


class UnknownCollectionError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__("collection", name, Collection.choices())


class GenerationError(Exception):
    """Raised when a collection fails to produce the project's file tree."""


def format_schematic_option(name: str, value: Any) -> str | None:
    """Render one option as a ``schematics`` command-line flag.

    ``None`` values are dropped, booleans become ``--flag`` / ``--no-flag`` and
    every other value is passed as ``--flag=value`` (shell-quoted).  The
    project name is normalised the same way the project directory is.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return f"--{name}" if value else f"--no-{name}"
    if isinstance(value, Enum):
        value = value.value
    if name == "name":
        value = normalize_to_kebab_or_snake_case(str(value))
    return f"--{name}={shlex.quote(str(value))}"


class SchematicsCollection:
    """Delegates generation to ``schematics <collection>:<schematic>``."""

    collection = Collection.NESTJS

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner or SchematicRunner()

    def build_command(self, schematic: str, options: list[tuple[str, Any]]) -> str:
        flags = [
            flag
            for flag in (format_schematic_option(name, value) for name, value in options)
            if flag is not None
        ]
        return " ".join([f"{self.collection.value}:{schematic}", *flags])

    async def execute(
        self,
        schematic: str,
        options: list[tuple[str, Any]],
        cwd: str | Path | None = None,
    ) -> None:
        command = self.build_command(schematic, options)
        try:
            await self.runner.run(command, silent=False, cwd=cwd)
        except RunnerError as exc:
            raise GenerationError(
                MESSAGES["GENERATION_FAILED"].format(command=exc.command)
            ) from exc


class BuiltinCollection:
    """Renders the bundled application templates into the project directory.

    Honours a ``dry-run`` option the same way ``schematics`` does: every file
    that would be written is listed and nothing touches the disk.
    """

    collection = Collection.BUILTIN
    schematics: tuple[str, ...] = ("application",)

    def __init__(
        self, renderer: TemplateRenderer | None = None, source_root: str = "src"
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.source_root = source_root

    def _build_context(self, values: dict[str, Any]) -> dict[str, Any]:
        name = str(values.get("name") or "")
        package_manager = values.get("package-manager") or "npm"
        if isinstance(package_manager, Enum):
            package_manager = package_manager.value
        return {
            "name": normalize_to_kebab_or_snake_case(name),
            "display_name": name,
            "source_root": self.source_root,
            "package_manager": package_manager,
            "strict": values.get("strict") is True,
        }

    async def execute(
        self,
        schematic: str,
        options: list[tuple[str, Any]],
        cwd: str | Path | None = None,
    ) -> None:
        if schematic not in self.schematics:
            raise GenerationError(
                f"Collection '{self.collection.value}' has no schematic '{schematic}'"
            )

        values = dict(options)
        if not values.get("name"):
            raise GenerationError("Cannot generate an application without a name")

        context = self._build_context(values)
        directory = values.get("directory") or context["name"]
        target = Path(cwd or Path.cwd()) / directory

        if target.is_dir() and any(target.iterdir()):
            raise GenerationError(f"Directory '{target}' already exists and is not empty")

        if values.get("dry-run") is True:
            for template in self.renderer.list_templates(schematic):
                rel = output_path_for(template[len(schematic) + 1 :], self.source_root)
                console.print(f"[green]CREATE[/green] {escape(str(Path(directory) / rel))}")
            return

        try:
            written = await self.renderer.render_tree(schematic, target, context)
        except OSError as exc:
            raise GenerationError(f"Could not write the project files: {exc}") from exc

        for path in written:
            console.print(f"[green]CREATE[/green] {escape(str(path.relative_to(target.parent)))}")


def parse_collection(name: str | Collection) -> Collection:
    try:
        return Collection(name)
    except ValueError:
        raise UnknownCollectionError(str(name)) from None


def create_collection(
    name: str | Collection, schematics_binary: str | None = None, source_root: str = "src"
) -> SchematicsCollection | BuiltinCollection:
    """Instantiate the handler for *name* or raise ``UnknownCollectionError``."""
    collection = parse_collection(name)
    if collection is Collection.BUILTIN:
        return BuiltinCollection(source_root=source_root)
    return SchematicsCollection(SchematicRunner(schematics_binary))
