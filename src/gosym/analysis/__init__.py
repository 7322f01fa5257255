"""Semantic analysis: scopes, binding tables, importers and whole programs."""

from gosym.analysis.checker import Checker
from gosym.analysis.importer import Importer, ImporterSpec, ImportMode
from gosym.analysis.objects import Binding, Info, Obj, ObjKind, Package, Scope
from gosym.analysis.program import Program, WholeProgramBuilder

__all__ = [
    "Binding",
    "Checker",
    "Importer",
    "ImporterSpec",
    "ImportMode",
    "Info",
    "Obj",
    "ObjKind",
    "Package",
    "Program",
    "Scope",
    "WholeProgramBuilder",
]
