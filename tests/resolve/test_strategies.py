"""Tests for the two-pass and whole-program strategies."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from gosym.analysis.importer import ImporterSpec
from gosym.parsing.files import Location
from gosym.resolve.context import QueryContext
from gosym.resolve.loader import LoadedQuery, load_query
from gosym.resolve.strategies import STRATEGIES, two_pass, whole_program
from tests.go_workspace import B_EXTERNAL_TEST_GO, B_INTERNAL_TEST_GO, LABELS_GO, GoWorkspace, offset_of


def _query(ws: GoWorkspace, path: Path, needle: str, occurrence: int = 0, delta: int = 0) -> tuple[
    QueryContext, LoadedQuery
]:
    ctx = QueryContext.create(ws.config(), path)
    return ctx, load_query(ctx, path, offset_of(path, needle, occurrence, delta))


def _b(ws: GoWorkspace, line: int, column: int) -> Location:
    return Location(str(ws.path("example.com/b", "b.go")), line, column)


# (needle, occurrence, delta) in a.go -> (line, column) in b.go
CROSS_PACKAGE = [
    (("Foo", 0, 0), (10, 6)),
    (("NewThing", 0, 0), (18, 6)),
    (("Describe", 0, 0), (14, 17)),
    (("t.Name", 0, 2), (7, 2)),
]


class TestTwoPass:
    @pytest.mark.parametrize(("needle", "expected"), CROSS_PACKAGE)
    def test_cross_package(
        self, go_workspace: GoWorkspace, needle: tuple[str, int, int], expected: tuple[int, int]
    ) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")
        ctx, query = _query(go_workspace, a_go, *needle)

        binding = two_pass(ctx, query)

        assert binding is not None
        assert binding.package == "example.com/b"
        assert binding.location == _b(go_workspace, *expected)

    def test_same_file_skips_second_pass(self, go_workspace: GoWorkspace) -> None:
        """A declaration in the target package is answered by the first pass."""
        same_go = go_workspace.path("example.com/same", "same.go")
        ctx, query = _query(go_workspace, same_go, "Local()", occurrence=1)

        with patch.object(ImporterSpec, "hybrid", wraps=ImporterSpec.hybrid) as hybrid:
            binding = two_pass(ctx, query)

        assert binding is not None
        assert binding.location == Location(str(same_go), 3, 6)
        hybrid.assert_not_called()

    def test_foreign_package_uses_hybrid_for_that_package(self, go_workspace: GoWorkspace) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")
        ctx, query = _query(go_workspace, a_go, "Foo")

        with patch.object(ImporterSpec, "hybrid", wraps=ImporterSpec.hybrid) as hybrid:
            two_pass(ctx, query)

        hybrid.assert_called_once_with("example.com/b")

    def test_declaration_site_is_left_to_whole_program(self, go_workspace: GoWorkspace) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")
        ctx, query = _query(go_workspace, a_go, "func helper", delta=5)

        assert two_pass(ctx, query) is None

    def test_builtin_has_no_location(self, go_workspace: GoWorkspace) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")
        ctx, query = _query(go_workspace, a_go, "len(")

        binding = two_pass(ctx, query)

        assert binding is not None
        assert binding.kind == "builtin"
        assert binding.location is None

    def test_failures_are_absorbed(self, go_workspace: GoWorkspace) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")
        ctx, query = _query(go_workspace, a_go, "Foo")

        with patch("gosym.resolve.strategies.Checker", side_effect=RuntimeError("bug")):
            assert two_pass(ctx, query) is None


class TestWholeProgram:
    @pytest.mark.parametrize(("needle", "expected"), CROSS_PACKAGE)
    def test_cross_package(
        self, go_workspace: GoWorkspace, needle: tuple[str, int, int], expected: tuple[int, int]
    ) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")
        ctx, query = _query(go_workspace, a_go, *needle)

        binding = whole_program(ctx, query)

        assert binding is not None
        assert binding.location == _b(go_workspace, *expected)

    def test_declaration_resolves_to_itself(self, go_workspace: GoWorkspace) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")
        ctx, query = _query(go_workspace, a_go, "func helper", delta=5)

        binding = whole_program(ctx, query)

        assert binding is not None
        assert binding.location == query.target.location == Location(str(a_go), 5, 6)

    def test_declaration_in_foreign_file_resolves_to_itself(self, go_workspace: GoWorkspace) -> None:
        b_go = go_workspace.path("example.com/b", "b.go")
        ctx, query = _query(go_workspace, b_go, "func Foo", delta=5)

        binding = whole_program(ctx, query)

        assert binding is not None
        assert binding.location == Location(str(b_go), 10, 6)

    def test_failures_are_absorbed(self, go_workspace: GoWorkspace) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")
        ctx, query = _query(go_workspace, a_go, "Foo")

        with patch("gosym.resolve.strategies.WholeProgramBuilder", side_effect=RuntimeError("bug")):
            assert whole_program(ctx, query) is None


class TestAgreement:
    @pytest.mark.parametrize(
        "needle",
        [("Foo", 0, 0), ("Describe", 0, 0), ("t.Name", 0, 2), ("helper()", 1, 0), ("s)", 0, 0)],
    )
    def test_strategies_agree(self, go_workspace: GoWorkspace, needle: tuple[str, int, int]) -> None:
        """Whichever strategy wins the race, the answer is the same."""
        a_go = go_workspace.path("example.com/app", "a.go")
        ctx, query = _query(go_workspace, a_go, *needle)

        results = {name: strategy(ctx, query) for name, strategy in STRATEGIES.items()}

        locations = {name: b.location if b is not None else None for name, b in results.items()}
        assert None not in locations.values()
        assert len(set(locations.values())) == 1


class TestTestPackages:
    def test_external_test_package_has_its_own_identity(self, go_workspace: GoWorkspace) -> None:
        """``package b_test`` in b's directory imports b like any other client."""
        test_go = go_workspace.write("example.com/b", "b_external_test.go", B_EXTERNAL_TEST_GO)
        ctx, query = _query(go_workspace, test_go, "Foo")

        assert query.package_path == "example.com/b_test"
        assert [f.path for f in query.files] == [str(test_go)]

    @pytest.mark.parametrize("strategy", [two_pass, whole_program])
    def test_external_test_package_resolves_into_package_under_test(
        self, go_workspace: GoWorkspace, strategy: object
    ) -> None:
        test_go = go_workspace.write("example.com/b", "b_external_test.go", B_EXTERNAL_TEST_GO)
        ctx, query = _query(go_workspace, test_go, "Foo")

        binding = strategy(ctx, query)  # type: ignore[operator]

        assert binding is not None
        assert binding.location == _b(go_workspace, 10, 6)

    @pytest.mark.parametrize(
        ("needle", "expected"),
        [("NewThing", (18, 6)), ("Greeting", (4, 7)), ("Describe", (14, 17))],
    )
    def test_internal_test_file_resolves_into_sibling(
        self, go_workspace: GoWorkspace, needle: str, expected: tuple[int, int]
    ) -> None:
        """A ``package b`` test file sees b's non-test files as its own package."""
        test_go = go_workspace.write("example.com/b", "b_internal_test.go", B_INTERNAL_TEST_GO)
        ctx, query = _query(go_workspace, test_go, needle)

        assert query.package_path == "example.com/b"
        for strategy in (two_pass, whole_program):
            binding = strategy(ctx, query)
            assert binding is not None
            assert binding.location == _b(go_workspace, *expected)

    def test_position_less_answer_is_no_answer(self, go_workspace: GoWorkspace) -> None:
        """If the second pass still has no position, two-pass gives up."""
        a_go = go_workspace.path("example.com/app", "a.go")
        ctx, query = _query(go_workspace, a_go, "Foo")

        with patch.object(ImporterSpec, "hybrid", return_value=ImporterSpec.metadata()):
            assert two_pass(ctx, query) is None


class TestLabels:
    @pytest.mark.parametrize(
        ("needle", "occurrence", "expected"),
        [
            ("continue Outer", 0, (5, 1)),
            ("break Outer", 0, (5, 1)),
            ("goto Done", 0, (21, 1)),
        ],
    )
    def test_branch_target_resolves_to_label(
        self, go_workspace: GoWorkspace, needle: str, occurrence: int, expected: tuple[int, int]
    ) -> None:
        labels_go = go_workspace.write("example.com/labels", "labels.go", LABELS_GO)
        delta = needle.index(" ") + 1
        ctx, query = _query(go_workspace, labels_go, needle, occurrence, delta)

        for strategy in (two_pass, whole_program):
            binding = strategy(ctx, query)
            assert binding is not None
            assert binding.kind == "label"
            assert binding.location == Location(str(labels_go), *expected)

    def test_label_declaration_resolves_to_itself(self, go_workspace: GoWorkspace) -> None:
        labels_go = go_workspace.write("example.com/labels", "labels.go", LABELS_GO)
        ctx, query = _query(go_workspace, labels_go, "Done:")

        binding = whole_program(ctx, query)

        assert binding is not None
        assert binding.location == Location(str(labels_go), 21, 1)
