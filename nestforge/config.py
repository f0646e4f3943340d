"""nestforge configuration.

Typed tuneables for the ``new`` command.  All settings use a Pydantic v2
model so they can be validated at construction time and serialised to/from
JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_GITIGNORE = """# compiled output
/dist
/node_modules

# Logs
logs
*.log
npm-debug.log*
pnpm-debug.log*
yarn-debug.log*
yarn-error.log*
lerna-debug.log*

# OS
.DS_Store

# Tests
/coverage
/.nyc_output

# IDEs and editors
/.idea
.project
.classpath
.c9/
*.launch
.settings/
*.sublime-workspace

# IDE - VSCode
.vscode/*
!.vscode/settings.json
!.vscode/tasks.json
!.vscode/launch.json
!.vscode/extensions.json"""


class ConfigurationError(Exception):
    """Raised when a named choice (package manager, collection) is not known."""

    def __init__(self, kind: str, name: str, choices: list[str]) -> None:
        self.kind = kind
        self.name = name
        self.choices = choices
        super().__init__(
            f"Unknown {kind} '{name}' (expected one of: {', '.join(choices)})"
        )


class Settings(BaseModel):
    """Global nestforge settings.

    Instances are typically created once by the CLI entry point and handed to
    ``NewProjectPipeline``.  Nothing in here is asked interactively: these are
    the defaults an operator can only change through the environment or a
    saved settings file.
    """

    default_collection: str = Field(default="@nestjs/schematics")
    default_project_name: str = Field(default="nest-app")
    source_root: str = Field(default="src")
    schematics_binary: str = Field(default="schematics")
    git_silent: bool = Field(
        default=True, description="Capture git output instead of streaming it"
    )
    gitignore: str = Field(default=DEFAULT_GITIGNORE)
    donate_url: str = Field(default="https://opencollective.com/nest")

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the settings to a JSON file and return the written path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Settings":
        """Load previously-saved settings from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            NESTFORGE_COLLECTION, NESTFORGE_SOURCE_ROOT,
            NESTFORGE_SCHEMATICS_BIN, NESTFORGE_GIT_SILENT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("NESTFORGE_COLLECTION"):
            kwargs["default_collection"] = os.environ["NESTFORGE_COLLECTION"]
        if os.environ.get("NESTFORGE_SOURCE_ROOT"):
            kwargs["source_root"] = os.environ["NESTFORGE_SOURCE_ROOT"]
        if os.environ.get("NESTFORGE_SCHEMATICS_BIN"):
            kwargs["schematics_binary"] = os.environ["NESTFORGE_SCHEMATICS_BIN"]
        if os.environ.get("NESTFORGE_GIT_SILENT"):
            kwargs["git_silent"] = os.environ["NESTFORGE_GIT_SILENT"].strip().lower() in (
                "1",
                "true",
                "yes",
                "on",
            )
        return cls(**kwargs)
