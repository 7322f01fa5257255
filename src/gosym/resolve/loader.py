"""Load the target package and find the queried identifier."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from gosym.config.constants import IDENTIFIER_NODE_TYPES
from gosym.core.errors import NoIdentifierError, PackageNotFoundError
from gosym.parsing.files import Location, NodeHandle, SourceFile
from gosym.parsing.locator import is_test_file, scan_imports
from gosym.resolve.cache import fingerprint
from gosym.resolve.context import QueryContext

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TargetIdentifier:
    """The identifier token under the query offset."""

    name: str
    handle: NodeHandle
    location: Location
    file_id: int


@dataclass
class LoadedQuery:
    """The parsed target package plus the identifier to resolve."""

    filename: str
    body: bytes
    fingerprint: str
    package_path: str
    files: list[SourceFile]
    imports: list[str]
    target: TargetIdentifier

    @property
    def key(self) -> str:
        """Cache key: the identifier's ``path:line:column``."""
        return str(self.target.location)


def load_query(ctx: QueryContext, filename: str | Path, offset: int, body: bytes | None = None) -> LoadedQuery:
    """Parse the package of ``filename`` and locate the identifier at ``offset``.

    Args:
        ctx: Query context.
        filename: The queried Go file.
        offset: 1-based byte offset into the file.
        body: File contents to use instead of reading the file (``-i``).

    Raises:
        NoIdentifierError: Unreadable file, offset outside the file, or no
            identifier token at the offset.
    """
    path = str(Path(filename).absolute())
    if body is None:
        try:
            body = Path(path).read_bytes()
        except OSError as e:
            raise NoIdentifierError.unreadable(path, str(e)) from e

    index = offset - 1
    if index < 0 or index >= len(body):
        raise NoIdentifierError.at_offset(path, offset, f"outside file of {len(body)} bytes")

    target_file = ctx.files.add(path, body)
    files = [target_file]
    try:
        package = ctx.locator.package_for_file(path, include_tests=ctx.include_tests)
        package_path = package.import_path
        others = [p for p in package.files if str(p.absolute()) != path]
    except PackageNotFoundError as e:
        # Degrade to analyzing the file on its own
        log.debug("package_discovery_failed", path=path, error=e.message)
        package_path = ctx.locator.import_path_for(path)
        others = []

    # go/build names an external test package (package foo_test) <import path>_test
    name = target_file.package_name
    if name and name.endswith("_test") and is_test_file(path) and not package_path.endswith("_test"):
        package_path += "_test"

    for other in others:
        try:
            source = ctx.files.add(other)
        except OSError as e:
            log.debug("package_file_unreadable", path=str(other), error=str(e))
            continue
        # External test packages (package foo_test) are a different package
        if source.package_name == target_file.package_name:
            files.append(source)

    node = target_file.root.descendant_for_byte_range(index, index + 1)
    if node is None or node.type not in IDENTIFIER_NODE_TYPES:
        raise NoIdentifierError.at_offset(path, offset, f"found {node.type if node else 'nothing'}")

    target = TargetIdentifier(
        name=target_file.text(node),
        handle=target_file.handle(node),
        location=target_file.location(node),
        file_id=target_file.file_id,
    )
    imports = sorted({p for f in files for p in scan_imports(f.content)})
    log.debug(
        "query_loaded",
        target=target.name,
        at=str(target.location),
        package=package_path,
        files=len(files),
    )
    return LoadedQuery(
        filename=path,
        body=body,
        fingerprint=fingerprint(body),
        package_path=package_path,
        files=files,
        imports=imports,
        target=target,
    )
