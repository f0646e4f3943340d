"""Shared pytest fixtures for the nestforge test suite.

Provides reusable fixtures for:
- Option stores built from keyword arguments
- A scripted question source that records what it was asked
- Mocked collaborators (collection, installer, git runner, feature installers)
- A ``NewProjectPipeline`` wired to those mocks
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from nestforge.config import Settings
from nestforge.options import Option, OptionStore, Question
from nestforge.pipeline import NewProjectPipeline

# Flag defaults as the CLI produces them when nothing is typed.
DEFAULT_FLAGS: dict[str, Any] = {
    "directory": None,
    "dry-run": False,
    "skip-install": False,
    "skip-git": False,
    "package-manager": None,
    "prisma": None,
    "user-service": None,
    "fixtures": None,
    "collection": None,
    "strict": False,
}


class ScriptedQuestionSource:
    """Answers questions from a dict and records every question asked."""

    def __init__(self, answers: dict[str, Any] | None = None) -> None:
        self.answers = {
            "name": "prompted-app",
            "prisma": "no",
            "user-service": "no",
            "package-manager": "npm",
            "fixtures": "yes",
            **(answers or {}),
        }
        self.asked: list[Question] = []

    @property
    def asked_names(self) -> list[str]:
        return [question.name for question in self.asked]

    def ask(self, question: Question) -> dict[str, Any]:
        self.asked.append(question)
        return {question.name: self.answers[question.name]}


def build_stores(name: str | None = "demo", **flags: Any) -> tuple[OptionStore, OptionStore]:
    """Build ``(inputs, flags)``; keyword names use underscores for hyphens."""
    values = dict(DEFAULT_FLAGS)
    for key, value in flags.items():
        values[key.replace("_", "-")] = value
    inputs = OptionStore([Option("name", name)])
    return inputs, OptionStore.from_pairs(values.items())


@pytest.fixture
def make_stores():
    return build_stores


@pytest.fixture
def question_source() -> ScriptedQuestionSource:
    return ScriptedQuestionSource()


@pytest.fixture
def mock_collection() -> MagicMock:
    collection = MagicMock()
    collection.execute = AsyncMock(return_value=None)
    return collection


@pytest.fixture
def mock_installer() -> MagicMock:
    installer = MagicMock()
    installer.install = AsyncMock(return_value=None)
    return installer


@pytest.fixture
def mock_git_runner() -> MagicMock:
    runner = MagicMock()
    runner.run = AsyncMock(return_value="")
    return runner


def _mock_feature() -> MagicMock:
    feature = MagicMock()
    feature.create = AsyncMock(return_value=[])
    return feature


@pytest.fixture
def mock_features() -> dict[str, MagicMock]:
    return {
        "prisma": _mock_feature(),
        "user_service": _mock_feature(),
        "fixtures": _mock_feature(),
    }


@pytest.fixture
def project_cwd(tmp_path: Path) -> Path:
    """Working directory the generated project lands in."""
    cwd = tmp_path / "workspace"
    cwd.mkdir()
    return cwd


@pytest.fixture
def pipeline(
    question_source,
    mock_collection,
    mock_installer,
    mock_git_runner,
    mock_features,
    project_cwd,
) -> NewProjectPipeline:
    """A pipeline whose collaborators are all mocks.

    The mock collection creates the project directory so the gitignore stage
    has somewhere to write.
    """

    async def fake_execute(schematic, options, cwd):
        values = dict(options)
        directory = values.get("directory") or values["name"]
        (Path(cwd) / directory).mkdir(parents=True, exist_ok=True)

    mock_collection.execute.side_effect = fake_execute
    pipe = NewProjectPipeline(
        Settings(),
        question_source=question_source,
        collection_factory=MagicMock(return_value=mock_collection),
        installer_factory=MagicMock(return_value=mock_installer),
        git_runner=mock_git_runner,
        prisma=mock_features["prisma"],
        user_service=mock_features["user_service"],
        fixtures=mock_features["fixtures"],
        cwd=project_cwd,
    )
    return pipe


@pytest.fixture
def make_question_source():
    return ScriptedQuestionSource
