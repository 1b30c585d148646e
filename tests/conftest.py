"""Pytest configuration and fixtures for importprune tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, Optional

import pytest

from importprune.config_manager import PruneConfig
from importprune.filesystem import InMemoryFileRepository
from importprune.orchestrator import PruneOrchestrator
from importprune.parser import SourceExtractor

MEMORY_ROOT = Path("/proj")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp()).resolve()
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def sample_project_copy(temp_dir: Path, sample_project_path: Path) -> Path:
    """A writable copy of the sample project."""
    target = temp_dir / "sample_project"
    shutil.copytree(sample_project_path, target)
    return target


@pytest.fixture(scope="session")
def extractor() -> SourceExtractor:
    """Extractor with grammars loaded once per test session."""
    return SourceExtractor()


@pytest.fixture
def memory_project() -> Callable[..., PruneOrchestrator]:
    """Build an orchestrator over an in-memory project rooted at ``/proj``.

    Keys of *files* are paths relative to the root.
    """

    def _build(
        files: Dict[str, str],
        aliases: Optional[Dict[str, str]] = None,
        **options,
    ) -> PruneOrchestrator:
        repo = InMemoryFileRepository({MEMORY_ROOT / rel: text for rel, text in files.items()})
        config = PruneConfig(
            root=MEMORY_ROOT,
            aliases={k: MEMORY_ROOT / v for k, v in (aliases or {}).items()},
            **options,
        )
        return PruneOrchestrator(config, repository=repo)

    return _build
