import os
import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from helpers.cache_utils import reset_rnkit_caches
from helpers.projects import init_project


@pytest.fixture(autouse=True)
def _isolate_rnkit(monkeypatch: pytest.MonkeyPatch):
    """Drop cached config and logging handlers, and strip RNKIT_* env vars."""
    for key in list(os.environ):
        if key.startswith("RNKIT_"):
            monkeypatch.delenv(key, raising=False)
    reset_rnkit_caches()
    yield
    reset_rnkit_caches()


@pytest.fixture
def templates_root(tmp_path: Path) -> Path:
    """Empty templates tree with a minimal base pack."""
    from helpers.packs import write_base_pack

    root = tmp_path / "templates"
    write_base_pack(root)
    return root


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "app"
    root.mkdir()
    return root


@pytest.fixture
def project(project_root: Path, templates_root: Path) -> Path:
    """Initialized project: base pack attached and manifest written."""
    init_project(project_root, templates_root)
    return project_root
