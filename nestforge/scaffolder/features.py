"""Optional feature installers wired into a freshly generated project.

Three installers share one shape, ``create(target_dir, package_manager=None)``:

* ``PrismaFeature``       -- Prisma schema, ``PrismaService`` module and scripts.
* ``UserServiceFeature``  -- a ``user`` module registered in ``app.module.ts``.
* ``FixturesFeature``     -- git hooks, Docker, CI workflow and devcontainer files.

Each raises :class:`FeatureError` when the project cannot be updated.
"""

from __future__ import annotations

import asyncio
import json
import re
import stat
from pathlib import Path

from nestforge.package_managers import exec_command_for

from .templates import TemplateRenderer


class FeatureError(Exception):
    """Raised when an optional feature cannot be wired into the project."""

    def __init__(self, feature: str, message: str) -> None:
        self.feature = feature
        super().__init__(f"{feature}: {message}")


# ---------------------------------------------------------------------------
# Source patch helpers
# ---------------------------------------------------------------------------

_IMPORT_LINE_RE = re.compile(r"^import .*?;[ \t]*$", re.MULTILINE)
_MODULE_IMPORTS_RE = re.compile(r"imports:\s*\[(?P<body>[^\]]*)\]", re.DOTALL)


def register_module(source: str, module_name: str, import_path: str) -> str:
    """Return *source* with *module_name* imported and added to ``@Module.imports``.

    Already-registered modules are left alone.

    Raises:
        ValueError: If the source has no ``imports: [...]`` array.
    """
    import_line = f"import {{ {module_name} }} from '{import_path}';"
    if import_line in source:
        return source

    match = _MODULE_IMPORTS_RE.search(source)
    if match is None:
        raise ValueError("no 'imports: [...]' array found in the @Module decorator")

    body = match.group("body").strip().rstrip(",")
    new_body = f"{body}, {module_name}" if body else module_name
    source = source[: match.start("body")] + new_body + source[match.end("body") :]

    last_import = None
    for last_import in _IMPORT_LINE_RE.finditer(source):
        pass
    if last_import is None:
        return f"{import_line}\n{source}"
    return source[: last_import.end()] + f"\n{import_line}" + source[last_import.end() :]


def _make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


# ---------------------------------------------------------------------------
# Installers
# ---------------------------------------------------------------------------


class FeatureInstaller:
    """Renders one template tree into an existing project directory."""

    feature: str = ""
    template_prefix: str = ""

    def __init__(
        self, renderer: TemplateRenderer | None = None, source_root: str = "src"
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.source_root = source_root

    def _context(self, target: Path, package_manager: str | None) -> dict[str, object]:
        return {
            "name": target.name,
            "source_root": self.source_root,
            "package_manager": package_manager or "npm",
            "exec_command": exec_command_for(package_manager),
        }

    def _require_project(self, target_dir: str | Path) -> Path:
        target = Path(target_dir)
        if not target.is_dir():
            raise FeatureError(self.feature, f"project directory '{target}' does not exist")
        return target

    async def create(
        self, target_dir: str | Path, package_manager: str | None = None
    ) -> list[Path]:
        target = self._require_project(target_dir)
        context = self._context(target, package_manager)
        try:
            written = await self.renderer.render_tree(
                self.template_prefix, target, context, skip_existing=True
            )
            await self._after_render(target, context)
        except OSError as exc:
            raise FeatureError(self.feature, str(exc)) from exc
        return written

    async def _after_render(self, target: Path, context: dict[str, object]) -> None:
        pass

    async def _register_in_app_module(
        self, target: Path, module_name: str, import_path: str
    ) -> None:
        app_module = target / self.source_root / "app.module.ts"
        if not app_module.is_file():
            raise FeatureError(self.feature, f"'{app_module}' not found")

        source = await asyncio.to_thread(app_module.read_text, encoding="utf-8")
        try:
            patched = register_module(source, module_name, import_path)
        except ValueError as exc:
            raise FeatureError(self.feature, f"cannot update '{app_module}': {exc}") from exc
        if patched != source:
            await asyncio.to_thread(app_module.write_text, patched, encoding="utf-8")


class PrismaFeature(FeatureInstaller):
    feature = "prisma"
    template_prefix = "prisma"

    async def _after_render(self, target: Path, context: dict[str, object]) -> None:
        await self._add_scripts(target, str(context["exec_command"]))
        await self._register_in_app_module(target, "PrismaModule", "./prisma/prisma.module")

    async def _add_scripts(self, target: Path, exec_command: str) -> None:
        package_json = target / "package.json"
        if not package_json.is_file():
            raise FeatureError(self.feature, f"'{package_json}' not found")

        raw = await asyncio.to_thread(package_json.read_text, encoding="utf-8")
        try:
            manifest = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise FeatureError(self.feature, f"invalid package.json: {exc}") from exc

        scripts = manifest.setdefault("scripts", {})
        scripts.setdefault("prisma:generate", f"{exec_command} prisma generate")
        scripts.setdefault("prisma:migrate", f"{exec_command} prisma migrate dev")
        scripts.setdefault("prisma:studio", f"{exec_command} prisma studio")

        content = json.dumps(manifest, indent=2) + "\n"
        await asyncio.to_thread(package_json.write_text, content, encoding="utf-8")


class UserServiceFeature(FeatureInstaller):
    feature = "user-service"
    template_prefix = "user_service"

    async def _after_render(self, target: Path, context: dict[str, object]) -> None:
        await self._register_in_app_module(target, "UserModule", "./user/user.module")


class FixturesFeature(FeatureInstaller):
    """Adds tooling files in four steps: git hooks, Docker, CI, devcontainer."""

    feature = "fixtures"
    template_prefix = "fixtures"

    async def _after_render(self, target: Path, context: dict[str, object]) -> None:
        for script in (target / ".husky" / "pre-commit", *(target / "scripts").glob("*.sh")):
            if script.is_file():
                await asyncio.to_thread(_make_executable, script)
