"""Go parsing and package discovery."""

from gosym.parsing.files import FileSet, Location, NodeHandle, SourceFile
from gosym.parsing.locator import GoPackageLocator, PackageFiles
from gosym.parsing.treesitter import GoParser, ParseResult

__all__ = [
    "FileSet",
    "GoPackageLocator",
    "GoParser",
    "Location",
    "NodeHandle",
    "PackageFiles",
    "ParseResult",
    "SourceFile",
]
