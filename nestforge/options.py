"""Option stores and the interactive resolution protocol.

The ``new`` command works on two ordered stores of named options: the
positional *inputs* (the project name) and the *flags*.  CLI parsing fills
whatever the operator typed; :func:`resolve_missing` asks for the rest, one
question per missing option, and freezes both stores into a
:class:`ResolvedConfiguration` that every later step only reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from pydantic import BaseModel, ConfigDict
from rich.prompt import Prompt

from nestforge.package_managers import PackageManager
from nestforge.utils import MESSAGES, console, normalize_to_kebab_or_snake_case

# Option names shared by the CLI, the resolver and the pipeline.
NAME = "name"
DIRECTORY = "directory"
DRY_RUN = "dry-run"
SKIP_INSTALL = "skip-install"
SKIP_GIT = "skip-git"
PACKAGE_MANAGER = "package-manager"
PRISMA = "prisma"
USER_SERVICE = "user-service"
FIXTURES = "fixtures"
COLLECTION = "collection"
STRICT = "strict"

YES = "yes"
NO = "no"


# ---------------------------------------------------------------------------
# Option store
# ---------------------------------------------------------------------------


@dataclass
class Option:
    name: str
    value: Any = None

    @property
    def is_missing(self) -> bool:
        return self.value is None or self.value == ""


@dataclass
class OptionStore:
    """An ordered list of uniquely named options."""

    options: list[Option] = field(default_factory=list)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for option in self.options:
            if option.name in seen:
                raise ValueError(f"Duplicate option name: {option.name}")
            seen.add(option.name)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Any]]) -> "OptionStore":
        return cls([Option(name, value) for name, value in pairs])

    def __iter__(self):
        return iter(self.options)

    def __len__(self) -> int:
        return len(self.options)

    def get(self, name: str) -> Option | None:
        for option in self.options:
            if option.name == name:
                return option
        return None

    def ensure(self, name: str) -> Option:
        """Return the option called *name*, appending a pending one if absent."""
        option = self.get(name)
        if option is None:
            option = Option(name)
            self.options.append(option)
        return option

    def value_of(self, name: str, default: Any = None) -> Any:
        option = self.get(name)
        if option is None or option.value is None:
            return default
        return option.value

    def is_missing(self, name: str) -> bool:
        option = self.get(name)
        return option is None or option.is_missing

    def fill(self, answers: dict[str, Any]) -> None:
        """Write answers into entries that are still missing.

        Values the caller supplied are never overwritten.
        """
        for option in self.options:
            if option.is_missing and option.name in answers:
                option.value = answers[option.name]

    def items(self) -> list[tuple[str, Any]]:
        return [(option.name, option.value) for option in self.options]


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Question:
    """A single free-text (no choices) or single-choice question."""

    name: str
    message: str
    choices: tuple[str, ...] = ()
    default: str | None = None


class QuestionSource(Protocol):
    def ask(self, question: Question) -> dict[str, Any]:
        """Ask *question* and return ``{question.name: answer}``."""
        ...


class RichQuestionSource:
    """Asks questions on the terminal with ``rich.prompt``."""

    def ask(self, question: Question) -> dict[str, Any]:
        if question.choices:
            answer = Prompt.ask(
                question.message,
                choices=list(question.choices),
                default=question.default or question.choices[0],
                console=console,
            )
        else:
            answer = Prompt.ask(question.message, default=question.default, console=console)
        return {question.name: answer}


def name_question(default: str = "nest-app") -> Question:
    return Question(NAME, MESSAGES["NAME_QUESTION"], default=default)


PRISMA_QUESTION = Question(PRISMA, MESSAGES["PRISMA_QUESTION"], choices=(YES, NO))
USER_SERVICE_QUESTION = Question(
    USER_SERVICE, MESSAGES["USER_SERVICE_QUESTION"], choices=(YES, NO)
)
PACKAGE_MANAGER_QUESTION = Question(
    PACKAGE_MANAGER,
    MESSAGES["PACKAGE_MANAGER_QUESTION"],
    choices=tuple(PackageManager.choices()),
)
# Never asked: the fixtures stage is pinned on.  Kept so the toggle can be
# re-exposed by adding it to the resolution order.
FIXTURES_QUESTION = Question(FIXTURES, MESSAGES["FIXTURES_QUESTION"], choices=(YES, NO))

# (store, question) in the order questions are asked.  "inputs" or "flags".
RESOLUTION_ORDER: tuple[tuple[str, str], ...] = (
    ("inputs", NAME),
    ("flags", PRISMA),
    ("flags", USER_SERVICE),
    ("flags", PACKAGE_MANAGER),
)


# ---------------------------------------------------------------------------
# Resolved configuration
# ---------------------------------------------------------------------------


class ResolvedConfiguration(BaseModel):
    """Read-only union of both option stores after resolution."""

    model_config = ConfigDict(frozen=True)

    inputs: tuple[tuple[str, Any], ...] = ()
    flags: tuple[tuple[str, Any], ...] = ()
    default_collection: str = "@nestjs/schematics"

    @classmethod
    def from_stores(
        cls,
        inputs: OptionStore,
        flags: OptionStore,
        default_collection: str = "@nestjs/schematics",
    ) -> "ResolvedConfiguration":
        return cls(
            inputs=tuple(inputs.items()),
            flags=tuple(flags.items()),
            default_collection=default_collection,
        )

    def _input(self, name: str) -> Any:
        return dict(self.inputs).get(name)

    def _flag(self, name: str) -> Any:
        return dict(self.flags).get(name)

    @property
    def project_name(self) -> str:
        return str(self._input(NAME) or "")

    @property
    def directory(self) -> str | None:
        return self._flag(DIRECTORY) or None

    @property
    def project_directory(self) -> str:
        """The explicit ``--directory`` or the normalised project name."""
        return self.directory or normalize_to_kebab_or_snake_case(self.project_name)

    @property
    def dry_run(self) -> bool:
        return self._flag(DRY_RUN) is True

    @property
    def skip_install(self) -> bool:
        return self._flag(SKIP_INSTALL) is True

    @property
    def skip_git(self) -> bool:
        return self._flag(SKIP_GIT) is True

    @property
    def package_manager(self) -> str | None:
        value = self._flag(PACKAGE_MANAGER)
        if isinstance(value, PackageManager):
            return value.value
        return value

    @property
    def data_layer(self) -> bool:
        return self._flag(PRISMA) == YES

    @property
    def backend_service(self) -> bool:
        return self._flag(USER_SERVICE) == YES

    @property
    def collection(self) -> str:
        return self._flag(COLLECTION) or self.default_collection

    def generator_options(self) -> list[tuple[str, Any]]:
        """Every resolved option except ``skip-install``, in store order."""
        return [
            (name, value)
            for name, value in (*self.inputs, *self.flags)
            if name != SKIP_INSTALL
        ]

    def summary(self) -> dict[str, Any]:
        return {
            "Project": self.project_name,
            "Directory": self.project_directory,
            "Collection": self.collection,
            "Package manager": self.package_manager,
            "Prisma": self._flag(PRISMA),
            "User service": self._flag(USER_SERVICE),
            "Dry run": self.dry_run,
        }


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve_missing(
    inputs: OptionStore,
    flags: OptionStore,
    source: QuestionSource,
    default_project_name: str = "nest-app",
    default_collection: str = "@nestjs/schematics",
) -> ResolvedConfiguration:
    """Ask for every consulted option the caller left unset.

    Options are visited in :data:`RESOLUTION_ORDER`; an option that already
    has a value is skipped, otherwise exactly one question is asked and the
    answer written back into the same store.  An empty answer to the name
    question becomes *default_project_name*.  Errors raised by *source*
    propagate unchanged.
    """
    console.print(MESSAGES["PROJECT_INFORMATION_START"])
    console.print()

    questions = {
        NAME: name_question(default_project_name),
        PRISMA: PRISMA_QUESTION,
        USER_SERVICE: USER_SERVICE_QUESTION,
        PACKAGE_MANAGER: PACKAGE_MANAGER_QUESTION,
    }
    stores = {"inputs": inputs, "flags": flags}

    for store_name, option_name in RESOLUTION_ORDER:
        store = stores[store_name]
        if not store.ensure(option_name).is_missing:
            continue
        question = questions[option_name]
        store.fill(source.ask(question))
        # An empty answer falls back to the question's default.
        if store.is_missing(option_name) and question.default is not None:
            store.fill({option_name: question.default})

    return ResolvedConfiguration.from_stores(
        inputs, flags, default_collection=default_collection
    )
