"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local gosym package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of gosym modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("gosym"):
        del sys.modules[module_name]

from tests.go_workspace import A_GO, B_GO, SAME_GO, GoWorkspace  # noqa: E402


@pytest.fixture
def go_workspace(tmp_path: Path) -> GoWorkspace:
    """GOPATH with ``example.com/app`` importing ``example.com/b``."""
    ws = GoWorkspace(gopath=tmp_path / "gopath", goroot=tmp_path / "goroot")
    (ws.goroot / "src").mkdir(parents=True)
    ws.write("example.com/b", "b.go", B_GO)
    ws.write("example.com/app", "a.go", A_GO)
    ws.write("example.com/same", "same.go", SAME_GO)
    return ws
