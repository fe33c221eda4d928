import sys
from pathlib import Path

import pytest

# Make src/ importable for tests without installing the package.
SRC_DIR = Path(__file__).resolve().parent.parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

# A marker name nothing above tmp_path will ever contain.
TEST_MARKER = "ROOT-MARKER.rst-test"


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """A repository root marked with TEST_MARKER, holding src/Foo/."""
    root = tmp_path.resolve() / "repo"
    (root / "src" / "Foo").mkdir(parents=True)
    (root / TEST_MARKER).write_text("")
    return root


@pytest.fixture
def markers() -> tuple[str, ...]:
    return (TEST_MARKER,)


@pytest.fixture
def project_dir(repo: Path) -> Path:
    return repo / "src" / "Foo"
