"""Shared pytest fixtures for TagViewFS tests."""
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator

import pytest
import yaml

from tagviewfs.core.file_ops import LocalFileSystem
from tagviewfs.core.logging import Logger, set_global_logger
from tagviewfs.views.base import TagSelector, ViewDefinition, Workspace
from tagviewfs.views.catalog import TagCatalog
from tagviewfs.views.manager import VirtualViewService
from tagviewfs.views.store import YamlViewStore

WORKSPACE_ID = "ws"


def _tag(dimension_id: str, tag_value: str) -> TagSelector:
    return TagSelector(dimension_id, dimension_id.title(), tag_value)


def _view(view_id: str, *tags: TagSelector, name: str = None, workspace_id: str = WORKSPACE_ID) -> ViewDefinition:
    return ViewDefinition(id=view_id, name=name or view_id, workspace_id=workspace_id, chain=tags)


def _tree(root: Path) -> set:
    return {str(p.relative_to(root)) for p in root.rglob("*")}


@pytest.fixture
def tag():
    """Build a tag selector: tag("genre", "Doc")."""
    return _tag


@pytest.fixture
def view():
    """Build a view in the test workspace: view("v1", tag(...), ...)."""
    return _view


@pytest.fixture
def tree():
    """Relative paths of every file and directory below a root."""
    return _tree


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def workspace_root(temp_dir: Path) -> Path:
    """Create a workspace root with a few source files."""
    root = temp_dir / "workspace"
    root.mkdir()

    (root / "a.txt").write_text("alpha")
    (root / "b.txt").write_text("bravo")
    (root / "c.pdf").write_text("charlie")

    (root / "sub").mkdir()
    (root / "sub" / "d.txt").write_text("delta")

    return root


@pytest.fixture
def virtual_root(workspace_root: Path) -> Path:
    """Path of the workspace's virtual root (not created)."""
    return workspace_root / ".VirtualDirectory"


@pytest.fixture
def quiet_logger() -> Logger:
    """Logger that discards output."""
    logger = Logger("tagviewfs.test", level="DEBUG", handlers=[logging.NullHandler()])
    set_global_logger(logger)
    yield logger
    set_global_logger(None)


@pytest.fixture
def fs() -> LocalFileSystem:
    return LocalFileSystem()


@pytest.fixture
def store(workspace_root: Path) -> YamlViewStore:
    """In-memory view store with one registered workspace."""
    store = YamlViewStore()
    store.add_workspace(Workspace(id=WORKSPACE_ID, root=str(workspace_root)))
    return store


@pytest.fixture
def catalog(workspace_root: Path) -> TagCatalog:
    """In-memory catalog of the workspace files.

    a.txt  genre=Doc
    b.txt  genre=Doc, format=PDF
    c.pdf  format=PDF
    d.txt  (untagged)
    """
    catalog = TagCatalog()
    catalog.add_file("a", WORKSPACE_ID, str(workspace_root / "a.txt"), tags=[("genre", "Doc")])
    catalog.add_file("b", WORKSPACE_ID, str(workspace_root / "b.txt"), tags=[("genre", "Doc"), ("format", "PDF")])
    catalog.add_file("c", WORKSPACE_ID, str(workspace_root / "c.pdf"), tags=[("format", "PDF")])
    catalog.add_file("d", WORKSPACE_ID, str(workspace_root / "sub" / "d.txt"))
    return catalog


@pytest.fixture
def service(fs, catalog, store, quiet_logger) -> VirtualViewService:
    return VirtualViewService(fs, catalog, store, logger=quiet_logger)


@pytest.fixture
def sample_config() -> Dict[str, Any]:
    """Provide a sample TagViewFS configuration."""
    return {
        "tagviewfs": {
            "version": "1.0",
            "virtual_root_name": ".Views",
            "thumbnail_folder": ".thumbnail",
            "language": "zh-CN",
            "store_file": "/tmp/views.yaml",
            "catalog_file": "/tmp/tags.yaml",
            "logging": {
                "level": "DEBUG",
                "file": None,
            },
        }
    }


@pytest.fixture
def config_file(temp_dir: Path, sample_config: Dict[str, Any]) -> Path:
    """Create a configuration file."""
    config_path = temp_dir / "tagviewfs.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config, f)
    return config_path
