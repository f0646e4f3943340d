"""Unit tests for option stores and interactive resolution (nestforge.options)."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from nestforge.options import (
    FIXTURES_QUESTION,
    PACKAGE_MANAGER_QUESTION,
    Option,
    OptionStore,
    Question,
    ResolvedConfiguration,
    RichQuestionSource,
    resolve_missing,
)
from nestforge.package_managers import PackageManager

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# OptionStore
# ---------------------------------------------------------------------------


class TestOptionStore:
    def test_rejects_duplicate_names(self):
        with pytest.raises(ValueError, match="Duplicate"):
            OptionStore([Option("name", "a"), Option("name", "b")])

    def test_preserves_order(self):
        store = OptionStore.from_pairs([("b", 1), ("a", 2)])
        assert store.items() == [("b", 1), ("a", 2)]

    def test_value_of_default(self):
        store = OptionStore([Option("x")])
        assert store.value_of("x", "fallback") == "fallback"
        assert store.value_of("missing", 3) == 3

    def test_empty_string_counts_as_missing(self):
        store = OptionStore([Option("name", "")])
        assert store.is_missing("name")

    def test_false_is_a_value(self):
        store = OptionStore([Option("dry-run", False)])
        assert not store.is_missing("dry-run")

    def test_fill_never_overwrites(self):
        store = OptionStore([Option("a", "kept"), Option("b")])
        store.fill({"a": "new", "b": "filled"})
        assert store.items() == [("a", "kept"), ("b", "filled")]

    def test_ensure_appends_pending_option(self):
        store = OptionStore()
        option = store.ensure("prisma")
        assert option.is_missing
        assert len(store) == 1
        assert store.ensure("prisma") is option


# ---------------------------------------------------------------------------
# resolve_missing
# ---------------------------------------------------------------------------


class TestResolveMissing:
    def test_no_questions_when_everything_supplied(self, make_stores, make_question_source):
        source = make_question_source()
        inputs, flags = make_stores(
            "demo", package_manager="yarn", prisma="no", user_service="yes"
        )
        resolve_missing(inputs, flags, source)
        assert source.asked == []

    def test_all_missing_asked_in_fixed_order(self, make_stores, make_question_source):
        source = make_question_source()
        inputs, flags = make_stores(None)
        resolve_missing(inputs, flags, source)
        assert source.asked_names == ["name", "prisma", "user-service", "package-manager"]

    @pytest.mark.parametrize(
        "supplied, expected",
        [
            ({"name": "demo"}, ["prisma", "user-service", "package-manager"]),
            ({"prisma": "yes"}, ["name", "user-service", "package-manager"]),
            ({"user_service": "no", "package_manager": "npm"}, ["name", "prisma"]),
            ({"name": "demo", "prisma": "no", "user_service": "no"}, ["package-manager"]),
        ],
    )
    def test_one_question_per_missing_option(self, make_stores, make_question_source, supplied, expected):
        source = make_question_source()
        supplied = dict(supplied)
        name = supplied.pop("name", None)
        inputs, flags = make_stores(name, **supplied)
        resolve_missing(inputs, flags, source)
        assert source.asked_names == expected

    def test_answers_written_back_into_stores(self, make_stores, make_question_source):
        source = make_question_source(
            {"name": "shop", "prisma": "yes", "user-service": "no", "package-manager": "pnpm"}
        )
        inputs, flags = make_stores(None)

        config = resolve_missing(inputs, flags, source)

        assert inputs.value_of("name") == "shop"
        assert flags.value_of("prisma") == "yes"
        assert flags.value_of("package-manager") == "pnpm"
        assert config.project_name == "shop"
        assert config.data_layer is True
        assert config.backend_service is False
        assert config.package_manager == "pnpm"

    def test_fixtures_never_asked(self, make_stores, make_question_source):
        source = make_question_source()
        inputs, flags = make_stores(None)
        resolve_missing(inputs, flags, source)
        assert "fixtures" not in source.asked_names
        assert flags.is_missing("fixtures")

    def test_absent_entries_are_created_and_asked(self, make_question_source):
        source = make_question_source()
        config = resolve_missing(OptionStore(), OptionStore(), source)
        assert source.asked_names == ["name", "prisma", "user-service", "package-manager"]
        assert config.project_name == "prompted-app"

    def test_name_question_uses_default(self, make_stores, make_question_source):
        source = make_question_source()
        inputs, flags = make_stores(None)
        resolve_missing(inputs, flags, source, default_project_name="my-default")
        assert source.asked[0].default == "my-default"

    @pytest.mark.parametrize("answer", ["", None])
    def test_empty_name_answer_falls_back_to_default(self, make_stores, make_question_source, answer):
        source = make_question_source({"name": answer})
        inputs, flags = make_stores(None)

        config = resolve_missing(inputs, flags, source, default_project_name="nest-app")

        assert config.project_name == "nest-app"
        assert config.project_directory == "nest-app"
        assert ("name", "nest-app") in config.generator_options()

    def test_empty_choice_answer_stays_missing(self, make_stores, make_question_source):
        source = make_question_source({"prisma": ""})
        inputs, flags = make_stores("demo")
        config = resolve_missing(inputs, flags, source)
        assert config.data_layer is False

    def test_source_error_propagates(self, make_stores):
        class Broken:
            def ask(self, question):
                raise KeyboardInterrupt

        inputs, flags = make_stores(None)
        with pytest.raises(KeyboardInterrupt):
            resolve_missing(inputs, flags, Broken())

    def test_package_manager_question_lists_every_manager(self):
        assert PACKAGE_MANAGER_QUESTION.choices == ("npm", "yarn", "pnpm")
        assert FIXTURES_QUESTION.choices == ("yes", "no")


# ---------------------------------------------------------------------------
# ResolvedConfiguration
# ---------------------------------------------------------------------------


class TestResolvedConfiguration:
    def _config(self, make_stores, name="demo", **flags) -> ResolvedConfiguration:
        inputs, store = make_stores(name, **flags)
        return ResolvedConfiguration.from_stores(inputs, store)

    def test_is_frozen(self, make_stores):
        config = self._config(make_stores)
        with pytest.raises(ValidationError):
            config.flags = ()

    def test_project_directory_from_name(self, make_stores):
        assert self._config(make_stores, "My Cool App").project_directory == "my-cool-app"

    def test_directory_flag_wins(self, make_stores):
        config = self._config(make_stores, directory="elsewhere")
        assert config.project_directory == "elsewhere"

    def test_boolean_flags_need_true(self, make_stores):
        config = self._config(make_stores, dry_run="yes", skip_install=True)
        assert config.dry_run is False
        assert config.skip_install is True
        assert config.skip_git is False

    def test_toggles_need_yes(self, make_stores):
        config = self._config(make_stores, prisma=True, user_service="yes")
        assert config.data_layer is False
        assert config.backend_service is True

    def test_package_manager_enum_unwrapped(self, make_stores):
        config = self._config(make_stores, package_manager=PackageManager.YARN)
        assert config.package_manager == "yarn"

    def test_collection_default_and_override(self, make_stores):
        assert self._config(make_stores).collection == "@nestjs/schematics"
        assert self._config(make_stores, collection="builtin").collection == "builtin"

    def test_generator_options_drop_skip_install(self, make_stores):
        config = self._config(make_stores, skip_install=True)
        options = config.generator_options()
        assert ("name", "demo") == options[0]
        assert "skip-install" not in dict(options)
        assert dict(options)["fixtures"] is None

    def test_summary_has_project(self, make_stores):
        assert self._config(make_stores).summary()["Project"] == "demo"


# ---------------------------------------------------------------------------
# RichQuestionSource
# ---------------------------------------------------------------------------


class TestRichQuestionSource:
    def test_select_question_passes_choices(self):
        question = Question("prisma", "Prisma?", choices=("yes", "no"))
        with patch("nestforge.options.Prompt.ask", return_value="no") as ask:
            answer = RichQuestionSource().ask(question)
        assert answer == {"prisma": "no"}
        assert ask.call_args.kwargs["choices"] == ["yes", "no"]
        assert ask.call_args.kwargs["default"] == "yes"

    def test_input_question_uses_default(self):
        question = Question("name", "Name?", default="nest-app")
        with patch("nestforge.options.Prompt.ask", return_value="nest-app") as ask:
            answer = RichQuestionSource().ask(question)
        assert answer == {"name": "nest-app"}
        assert "choices" not in ask.call_args.kwargs
