"""Tests for loading a query: target package and target identifier."""

from __future__ import annotations

from pathlib import Path

import pytest

from gosym.core.errors import ErrorCode, NoIdentifierError
from gosym.parsing.files import Location
from gosym.resolve.cache import fingerprint
from gosym.resolve.context import QueryContext
from gosym.resolve.loader import load_query
from tests.go_workspace import GoWorkspace, offset_of


def _load(ws: GoWorkspace, path: Path, offset: int, body: bytes | None = None):  # type: ignore[no-untyped-def]
    ctx = QueryContext.create(ws.config(), path)
    return load_query(ctx, path, offset, body)


class TestTargetIdentifier:
    def test_identifier_under_offset(self, go_workspace: GoWorkspace) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")

        query = _load(go_workspace, a_go, offset_of(a_go, "Foo", delta=1))

        assert query.target.name == "Foo"
        assert query.target.location == Location(str(a_go), 10, 9)
        assert query.key == f"{a_go}:10:9"
        assert query.fingerprint == fingerprint(a_go.read_bytes())
        assert query.package_path == "example.com/app"
        assert query.imports == ["example.com/b"]

    def test_target_belongs_to_the_loaded_target_file(self, go_workspace: GoWorkspace) -> None:
        """The handle refers to the tree that strategies will analyze."""
        a_go = go_workspace.path("example.com/app", "a.go")

        query = _load(go_workspace, a_go, offset_of(a_go, "Foo"))

        assert query.files[0].file_id == query.target.file_id == query.target.handle.file_id
        assert query.files[0].path == str(a_go)

    def test_package_identifier_counts(self, go_workspace: GoWorkspace) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")

        query = _load(go_workspace, a_go, offset_of(a_go, "b.Foo"))

        assert query.target.name == "b"

    @pytest.mark.parametrize("needle", ["s := ", "func main() {\n"])
    def test_whitespace_is_not_an_identifier(self, go_workspace: GoWorkspace, needle: str) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")
        # The needle ends in whitespace
        offset = offset_of(a_go, needle, delta=len(needle) - 1)

        with pytest.raises(NoIdentifierError) as exc_info:
            _load(go_workspace, a_go, offset)

        assert exc_info.value.code is ErrorCode.NO_IDENTIFIER

    @pytest.mark.parametrize("offset", [0, -3, 10_000])
    def test_offset_outside_file(self, go_workspace: GoWorkspace, offset: int) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")

        with pytest.raises(NoIdentifierError):
            _load(go_workspace, a_go, offset)

    def test_unreadable_file(self, go_workspace: GoWorkspace) -> None:
        missing = go_workspace.path("example.com/app", "missing.go")

        with pytest.raises(NoIdentifierError) as exc_info:
            _load(go_workspace, missing, 1)

        assert exc_info.value.code is ErrorCode.UNREADABLE_SOURCE


class TestPackageFiles:
    def test_body_replaces_disk_contents(self, go_workspace: GoWorkspace) -> None:
        a_go = go_workspace.path("example.com/app", "a.go")
        body = b"package main\n\nfunc Edited() {}\n"

        query = _load(go_workspace, a_go, body.index(b"Edited") + 1, body)

        assert query.target.name == "Edited"
        assert query.body == body
        assert query.fingerprint == fingerprint(body)

    def test_sibling_files_are_parsed(self, go_workspace: GoWorkspace) -> None:
        go_workspace.write("example.com/app", "util.go", "package main\n\nfunc util() {}\n")
        a_go = go_workspace.path("example.com/app", "a.go")

        query = _load(go_workspace, a_go, offset_of(a_go, "helper"))

        assert sorted(Path(f.path).name for f in query.files) == ["a.go", "util.go"]

    def test_test_files_only_for_test_queries(self, go_workspace: GoWorkspace) -> None:
        test_go = go_workspace.write(
            "example.com/app", "a_test.go", "package main\n\nfunc testHelper() int { return helper() }\n"
        )
        go_workspace.write("example.com/app", "x_test.go", "package main_test\n\nfunc External() {}\n")
        a_go = go_workspace.path("example.com/app", "a.go")

        plain = _load(go_workspace, a_go, offset_of(a_go, "helper"))
        tests = _load(go_workspace, test_go, offset_of(test_go, "helper()", delta=1))

        assert sorted(Path(f.path).name for f in plain.files) == ["a.go"]
        # External test packages are a different package and stay out
        assert sorted(Path(f.path).name for f in tests.files) == ["a.go", "a_test.go"]

    def test_package_discovery_failure_degrades_to_single_file(self, tmp_path: Path) -> None:
        ws = GoWorkspace(gopath=tmp_path / "gopath", goroot=tmp_path / "goroot")
        ghost = tmp_path / "nowhere" / "ghost.go"
        body = b"package ghost\n\nfunc Ghost() {}\n"

        query = _load(ws, ghost, body.index(b"Ghost") + 1, body)

        assert [f.path for f in query.files] == [str(ghost)]
        assert query.target.name == "Ghost"
