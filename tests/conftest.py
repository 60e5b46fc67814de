"""Pytest configuration and fixtures for GroupCode CLI tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from groupcode_cli.languages import LanguageRegistry
from groupcode_cli.models import CodeGroup
from groupcode_cli.parser import CommentScanner


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path: Path) -> Path:
    """Point the user config file at a throwaway directory."""
    base_dir = tmp_path / "groupcode_home"
    monkeypatch.setattr("groupcode_cli.config.BASE_DIR", base_dir)
    monkeypatch.setattr("groupcode_cli.config.CONFIG_FILE", base_dir / "config.toml")
    return base_dir / "config.toml"


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def sample_workspace(temp_dir: Path, sample_project_path: Path) -> Path:
    """Copy the sample project so tests may write a store into it."""
    workspace = temp_dir / "workspace"
    shutil.copytree(sample_project_path, workspace)
    return workspace


@pytest.fixture
def registry() -> LanguageRegistry:
    """A registry backed by the packaged language table."""
    return LanguageRegistry()


@pytest.fixture
def scanner(registry: LanguageRegistry) -> CommentScanner:
    return CommentScanner(registry)


@pytest.fixture
def make_group():
    """Factory for code groups with sensible defaults."""

    def _make(
        functionality: str,
        file_path: str = "/ws/src/app.js",
        line_numbers: List[int] = None,
        description: str = "",
    ) -> CodeGroup:
        return CodeGroup(
            functionality=functionality,
            file_path=file_path,
            line_numbers=line_numbers if line_numbers is not None else [1, 2, 3],
            description=description,
        )

    return _make
