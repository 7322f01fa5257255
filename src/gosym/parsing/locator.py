"""Go package discovery: import paths to directories and files.

Supports the three layouts a Go toolchain searches:

- Module mode: the nearest ``go.mod`` above the queried file, its ``vendor/``
  directory, and required modules in the module cache.
- ``GOROOT/src`` for the standard library.
- Each ``GOPATH/src`` entry.

File selection follows the go tool's filename rules (``_test.go``,
``_GOOS``/``_GOARCH`` suffixes, ``_``/``.`` prefixes) and honours the
``ignore`` build tag. Full build-constraint evaluation is out of scope.
"""

from __future__ import annotations

import os
import platform
import re
import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from gosym.core.errors import PackageNotFoundError

log = structlog.get_logger(__name__)

_KNOWN_OS = frozenset(
    {
        "aix", "android", "darwin", "dragonfly", "freebsd", "hurd", "illumos", "ios",
        "js", "linux", "nacl", "netbsd", "openbsd", "plan9", "solaris", "wasip1",
        "windows", "zos",
    }
)  # fmt: skip
_KNOWN_ARCH = frozenset(
    {
        "386", "amd64", "arm", "arm64", "loong64", "mips", "mipsle", "mips64",
        "mips64le", "ppc64", "ppc64le", "riscv64", "s390x", "wasm",
    }
)  # fmt: skip
_MACHINE_TO_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}

_PACKAGE_RE = re.compile(rb"^package\s+(\w+)", re.M)
_IGNORE_TAG_RE = re.compile(rb"^//\s*(?:go:build|\+build)\s+ignore\b", re.M)
_IMPORT_BLOCK_RE = re.compile(rb"^import\s*\((.*?)\)", re.M | re.S)
_IMPORT_SINGLE_RE = re.compile(rb"^import\s+(?:[\w.]+\s+)?[\"`]([^\"`]+)[\"`]", re.M)
_IMPORT_SPEC_RE = re.compile(rb"[\"`]([^\"`]+)[\"`]")
_LINE_COMMENT_RE = re.compile(rb"//[^\n]*")
_DECL_START_RE = re.compile(rb"^(?:func|type|var|const)\b", re.M)
_MODULE_RE = re.compile(r"^module\s+\"?([^\s\"]+)\"?", re.M)
_REQUIRE_RE = re.compile(r"^\s*(?:require\s+)?([^\s()]+)\s+(v[^\s]+)", re.M)


def host_platform() -> tuple[str, str]:
    """Return the (GOOS, GOARCH) pair for this machine."""
    goos = os.environ.get("GOOS") or platform.system().lower()
    goarch = os.environ.get("GOARCH") or _MACHINE_TO_ARCH.get(platform.machine().lower(), "")
    return goos, goarch


def is_test_file(filename: str | Path) -> bool:
    return Path(filename).stem.endswith("_test")


def matches_platform(filename: str, goos: str, goarch: str) -> bool:
    """Apply the go tool's ``name_GOOS_GOARCH.go`` filename constraint."""
    stem = Path(filename).stem
    if stem.endswith("_test"):
        stem = stem[: -len("_test")]
    parts = stem.split("_")
    if len(parts) < 2:
        return True
    last = parts[-1]
    if len(parts) >= 3 and parts[-2] in _KNOWN_OS and last in _KNOWN_ARCH:
        return parts[-2] == goos and last == goarch
    if last in _KNOWN_OS:
        return last == goos
    if last in _KNOWN_ARCH:
        return last == goarch
    return True


def _header(content: bytes) -> bytes:
    match = _DECL_START_RE.search(content)
    return content[: match.start()] if match else content


def scan_imports(content: bytes) -> list[str]:
    """Cheap import scan of one file, without parsing it."""
    header = _LINE_COMMENT_RE.sub(b"", _header(content))
    paths = [m.group(1) for m in _IMPORT_SINGLE_RE.finditer(header)]
    for block in _IMPORT_BLOCK_RE.finditer(header):
        paths.extend(m.group(1) for m in _IMPORT_SPEC_RE.finditer(block.group(1)))
    return [p.decode("utf-8", errors="replace") for p in paths]


def scan_package_name(content: bytes) -> str | None:
    match = _PACKAGE_RE.search(content)
    return match.group(1).decode() if match else None


def _escape_module_path(path: str) -> str:
    """Module cache case-encoding: uppercase letters become ``!`` + lowercase."""
    return "".join(f"!{c.lower()}" if c.isupper() else c for c in path)


@dataclass(frozen=True)
class PackageFiles:
    """One package as seen by the locator."""

    import_path: str
    directory: Path
    files: tuple[Path, ...]
    name: str | None
    imports: tuple[str, ...]  # the package's ImportSet


@dataclass(frozen=True)
class GoModule:
    root: Path
    path: str
    requires: dict[str, str] = field(default_factory=dict)

    @classmethod
    def find(cls, start: Path) -> GoModule | None:
        """Find the nearest go.mod at or above ``start``."""
        current = start.resolve()
        while True:
            go_mod = current / "go.mod"
            if go_mod.is_file():
                try:
                    text = go_mod.read_text(errors="replace")
                except OSError as e:
                    log.debug("go_mod_unreadable", path=str(go_mod), error=str(e))
                    return None
                match = _MODULE_RE.search(text)
                if match is None:
                    return None
                requires = {
                    m.group(1): m.group(2)
                    for m in _REQUIRE_RE.finditer(text)
                    if m.group(1) not in ("module", "go", "toolchain")
                }
                return cls(root=current, path=match.group(1), requires=requires)
            if current.parent == current:
                return None
            current = current.parent


class GoPackageLocator:
    """Maps import paths and files to the files of their Go package.

    Results are memoized and the locator is safe to share between the
    concurrent strategies of one query.
    """

    def __init__(
        self,
        gopath: list[str] | None = None,
        goroot: str | None = None,
        module: GoModule | None = None,
    ) -> None:
        self._gopath = [Path(p).expanduser() for p in (gopath or [])]
        self._goroot = Path(goroot).expanduser() if goroot else _guess_goroot()
        self._module = module
        self._goos, self._goarch = host_platform()
        self._cache: dict[tuple[str, bool], PackageFiles] = {}
        self._lock = threading.Lock()

    @classmethod
    def for_file(
        cls, filename: str | Path, gopath: list[str] | None = None, goroot: str | None = None
    ) -> GoPackageLocator:
        return cls(gopath=gopath, goroot=goroot, module=GoModule.find(Path(filename).parent))

    @property
    def module(self) -> GoModule | None:
        return self._module

    def import_path_for(self, filename: str | Path) -> str:
        """Import path of the package containing ``filename``."""
        directory = Path(filename).parent
        if self._module is not None:
            try:
                rel = directory.resolve().relative_to(self._module.root)
            except ValueError:
                pass
            else:
                rel_str = rel.as_posix()
                return self._module.path if rel_str == "." else f"{self._module.path}/{rel_str}"
        posix = directory.as_posix()
        idx = posix.rfind("/src/")
        if idx < 0:
            return "main"
        return posix[idx + len("/src/") :]

    def package_for_file(self, filename: str | Path, *, include_tests: bool = False) -> PackageFiles:
        """The package made of the files in ``filename``'s directory."""
        import_path = self.import_path_for(filename)
        return self._from_directory(import_path, Path(filename).parent, include_tests)

    def locate(self, import_path: str, *, include_tests: bool = False) -> PackageFiles:
        """Find the files of an imported package.

        Raises:
            PackageNotFoundError: No search root holds a buildable package.
        """
        key = (import_path, include_tests)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        searched: list[str] = []
        for directory in self._candidate_dirs(import_path):
            searched.append(str(directory))
            if not directory.is_dir():
                continue
            try:
                pkg = self._from_directory(import_path, directory, include_tests)
            except PackageNotFoundError:
                continue
            with self._lock:
                self._cache[key] = pkg
            return pkg
        raise PackageNotFoundError.for_path(import_path, f"searched {searched or 'nothing'}")

    def _candidate_dirs(self, import_path: str) -> list[Path]:
        dirs: list[Path] = []
        module = self._module
        if module is not None:
            if import_path == module.path:
                dirs.append(module.root)
            elif import_path.startswith(module.path + "/"):
                dirs.append(module.root / import_path[len(module.path) + 1 :])
            dirs.append(module.root / "vendor" / import_path)
            dirs.extend(self._module_cache_dirs(import_path, module))
        if self._goroot is not None:
            dirs.append(self._goroot / "src" / import_path)
        dirs.extend(root / "src" / import_path for root in self._gopath)
        return dirs

    def _module_cache_dirs(self, import_path: str, module: GoModule) -> list[Path]:
        cache_root = os.environ.get("GOMODCACHE")
        roots = [Path(cache_root)] if cache_root else [p / "pkg" / "mod" for p in self._gopath]
        dirs = []
        for mod_path, version in module.requires.items():
            if import_path != mod_path and not import_path.startswith(mod_path + "/"):
                continue
            rest = import_path[len(mod_path) :].lstrip("/")
            for root in roots:
                dirs.append(root / f"{_escape_module_path(mod_path)}@{version}" / rest)
        return dirs

    def _from_directory(self, import_path: str, directory: Path, include_tests: bool) -> PackageFiles:
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            raise PackageNotFoundError.for_path(import_path, str(e)) from e

        files: list[Path] = []
        imports: set[str] = set()
        names: list[str] = []
        for entry in entries:
            name = entry.name
            if not name.endswith(".go") or name.startswith(("_", ".")):
                continue
            if is_test_file(name) and not include_tests:
                continue
            if not matches_platform(name, self._goos, self._goarch):
                continue
            try:
                content = entry.read_bytes()
            except OSError as e:
                log.debug("go_file_unreadable", path=str(entry), error=str(e))
                continue
            if _IGNORE_TAG_RE.search(_header(content)):
                continue
            files.append(entry)
            imports.update(scan_imports(content))
            if (pkg_name := scan_package_name(content)) is not None:
                names.append(pkg_name)

        if not files:
            raise PackageNotFoundError.for_path(import_path, f"no Go files in {directory}")

        # External test packages (foo_test) never name the package itself
        primary = [n for n in names if not n.endswith("_test")]
        return PackageFiles(
            import_path=import_path,
            directory=directory,
            files=tuple(files),
            name=(primary or names or [None])[0],
            imports=tuple(sorted(imports)),
        )


def _guess_goroot() -> Path | None:
    """GOROOT of the ``go`` binary on PATH, if any."""
    go = shutil.which("go")
    if go is None:
        return None
    root = Path(go).resolve().parent.parent
    return root if (root / "src").is_dir() else None
