"""
TagViewFS Views: Data Model and Collaborator Interfaces.

This module provides the types shared by every engine component:
- TagSelector / ViewDefinition: a named, ordered tag chain
- Workspace: a root directory hosting one virtual root
- QualifyingFile: a tagged source file as returned by the tag query
- ConflictResult / SaveResult / ReconcileResult: operation outcomes
- FileQuery / ViewStore: abstract collaborators injected into the engine

The engine never owns file or tag state; it asks a FileQuery for the files
matching a chain prefix and a ViewStore for view records.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TagSelector:
    """
    One element of a tag chain.

    Attributes:
        dimension_id: Identifier of the dimension (e.g. "topic")
        dimension_name: Display name of the dimension
        tag_value: Tag within the dimension; also the directory name
        level: Dimension level as recorded by the tag store (informational)
    """

    dimension_id: str
    dimension_name: str
    tag_value: str
    level: int = 0

    @property
    def key(self) -> Tuple[str, str]:
        """Equality key used for prefix comparison."""
        return (self.dimension_id, self.tag_value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dimension_id": self.dimension_id,
            "dimension_name": self.dimension_name,
            "tag_value": self.tag_value,
            "level": self.level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TagSelector":
        return cls(
            dimension_id=str(data["dimension_id"]),
            dimension_name=str(data.get("dimension_name") or data["dimension_id"]),
            tag_value=str(data["tag_value"]),
            level=int(data.get("level", 0)),
        )


TagChain = Tuple[TagSelector, ...]


def chain_keys(chain: Sequence[TagSelector]) -> Tuple[Tuple[str, str], ...]:
    """Return the comparison keys of a chain."""
    return tuple(selector.key for selector in chain)


def chain_values(chain: Sequence[TagSelector]) -> Tuple[str, ...]:
    """Return the tag values of a chain (its directory names)."""
    return tuple(selector.tag_value for selector in chain)


@dataclass(frozen=True)
class ViewDefinition:
    """
    A saved virtual directory: a named, ordered tag chain in one workspace.

    The chain order is fixed at creation and defines nesting order, shallow
    to deep. parent_id only groups views for display and never affects the
    materialized paths.
    """

    id: str
    name: str
    workspace_id: str
    chain: TagChain
    parent_id: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    # Set by saves only; orders exclusivity on refresh
    saved_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        # Accept any sequence for convenience but store an immutable tuple
        if not isinstance(self.chain, tuple):
            object.__setattr__(self, "chain", tuple(self.chain))

    @property
    def depth(self) -> int:
        return len(self.chain)

    @property
    def tag_values(self) -> Tuple[str, ...]:
        return chain_values(self.chain)

    def prefix(self, level: int) -> TagChain:
        """Chain truncated to its first ``level`` elements."""
        return self.chain[:level]

    def renamed(self, new_name: str) -> "ViewDefinition":
        return replace(self, name=new_name, updated_at=utcnow())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "workspace_id": self.workspace_id,
            "chain": [selector.to_dict() for selector in self.chain],
            "parent_id": self.parent_id,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "saved_at": self.saved_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ViewDefinition":
        kwargs: Dict[str, Any] = {}
        for stamp in ("created_at", "updated_at", "saved_at"):
            value = data.get(stamp)
            if isinstance(value, str):
                kwargs[stamp] = datetime.fromisoformat(value)
            elif isinstance(value, datetime):
                kwargs[stamp] = value
        if "saved_at" not in kwargs and "updated_at" in kwargs:
            kwargs["saved_at"] = kwargs["updated_at"]

        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            workspace_id=str(data["workspace_id"]),
            chain=tuple(TagSelector.from_dict(item) for item in data.get("chain", [])),
            parent_id=data.get("parent_id"),
            description=data.get("description"),
            **kwargs,
        )


@dataclass(frozen=True)
class Workspace:
    """A workspace: a root directory whose files can be viewed by tag."""

    id: str
    root: str

    def virtual_root(self, folder_name: str) -> str:
        return os.path.join(self.root, folder_name)


@dataclass(frozen=True)
class QualifyingFile:
    """
    A source file as seen by the engine.

    Attributes:
        file_id: Identifier in the tag store
        path: Current real path of the file
        name: Original file name (its extension is always kept)
        display_name: Optional user-assigned alias used for link names
    """

    file_id: str
    path: str
    name: str
    display_name: Optional[str] = None


@dataclass(frozen=True)
class ConflictResult:
    """A save rejected because a longer view already uses the chain as prefix."""

    view_id: str
    view_name: str
    kind: str = "longer"

    def describe(self) -> str:
        return f"Tag chain is a prefix of existing view '{self.view_name}'"


@dataclass
class SaveResult:
    """Outcome of saving a view."""

    view_id: str
    virtual_path: Optional[str] = None
    conflict: Optional[ConflictResult] = None
    removed_view_ids: List[str] = field(default_factory=list)
    linked: int = 0

    @property
    def ok(self) -> bool:
        return self.conflict is None


@dataclass
class ReconcileResult:
    """Counts from a stale-link reconciliation pass."""

    scanned: int = 0
    removed_links: int = 0
    removed_directories: int = 0
    failures: int = 0


class FileQuery(ABC):
    """Tag/dimension query collaborator."""

    @abstractmethod
    def list_qualifying_files(
        self, workspace_id: str, prefix: Sequence[TagSelector]
    ) -> List[QualifyingFile]:
        """
        Files under the workspace root, eligible (analyzed), whose tags
        contain every (dimension_id, tag_value) pair in prefix. An empty
        prefix returns every eligible file.
        """

    @abstractmethod
    def get_file(self, file_id: str) -> Optional[QualifyingFile]:
        """Look up one file by id."""

    def list_eligible_files(self, workspace_id: str) -> List[QualifyingFile]:
        return self.list_qualifying_files(workspace_id, ())

    def workspace_of(self, file_id: str) -> Optional[str]:
        """Workspace a file belongs to, if the store knows it."""
        return None

    def update_file_path(self, file_id: str, new_path: str) -> None:
        """Record a file's new real path. Read-only stores may ignore this."""


class ViewStore(ABC):
    """Persistence for workspaces and view definitions."""

    @abstractmethod
    def get_workspace(self, workspace_id: str) -> Optional[Workspace]:
        """Look up a workspace by id."""

    @abstractmethod
    def get_view(self, view_id: str) -> Optional[ViewDefinition]:
        """Look up a view by id."""

    @abstractmethod
    def put_view(self, view: ViewDefinition) -> None:
        """Insert or replace a view record."""

    @abstractmethod
    def delete_view(self, view_id: str) -> bool:
        """Delete a view record; returns False if it didn't exist."""

    @abstractmethod
    def list_views(self, workspace_id: str) -> List[ViewDefinition]:
        """All views of a workspace."""
