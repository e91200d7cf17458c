"""
TagViewFS Views: YAML Tag Catalog.

Reference FileQuery implementation: a catalog of tagged files persisted in
a YAML document.

    files:
      - id: f1
        workspace_id: docs
        path: /home/user/Documents/scan_001.pdf
        name: scan_001.pdf
        display_name: Tax return 2023
        analyzed: true
        tags:
          - {dimension_id: topic, tag_value: Finance}

Only analyzed files are eligible for views. A file qualifies for a chain
prefix when its tags contain every (dimension_id, tag_value) pair of the
prefix.
"""

import os
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from tagviewfs.core.constants import ErrorCode
from tagviewfs.views.base import FileQuery, QualifyingFile, TagSelector, chain_keys
from tagviewfs.views.store import StoreError, dump_yaml_document, load_yaml_document


class CatalogError(Exception):
    """Tag catalog failure."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        super().__init__(message)
        self.error_code = error_code


@dataclass
class CatalogEntry:
    """A file known to the catalog."""

    id: str
    workspace_id: str
    path: str
    name: str
    display_name: Optional[str] = None
    analyzed: bool = True
    tags: Set[Tuple[str, str]] = field(default_factory=set)

    def to_file(self) -> QualifyingFile:
        return QualifyingFile(file_id=self.id, path=self.path, name=self.name, display_name=self.display_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "path": self.path,
            "name": self.name,
            "display_name": self.display_name,
            "analyzed": self.analyzed,
            "tags": [{"dimension_id": d, "tag_value": v} for d, v in sorted(self.tags)],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogEntry":
        path = str(data["path"])
        return cls(
            id=str(data["id"]),
            workspace_id=str(data["workspace_id"]),
            path=path,
            name=str(data.get("name") or os.path.basename(path)),
            display_name=data.get("display_name"),
            analyzed=bool(data.get("analyzed", True)),
            tags={(str(t["dimension_id"]), str(t["tag_value"])) for t in data.get("tags") or []},
        )


class TagCatalog(FileQuery):
    """FileQuery backed by an in-memory catalog, optionally persisted to YAML."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.RLock()
        self._files: Dict[str, CatalogEntry] = {}

        if path:
            self._load()

    def _load(self) -> None:
        try:
            data = load_yaml_document(self.path)
        except StoreError as e:
            raise CatalogError(str(e), e.error_code)

        try:
            for item in data.get("files") or []:
                entry = CatalogEntry.from_dict(item)
                self._files[entry.id] = entry
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogError(f"Malformed catalog {self.path}: {e}")

    def _save(self) -> None:
        if not self.path:
            return
        try:
            dump_yaml_document(self.path, {"files": [e.to_dict() for e in self._files.values()]})
        except StoreError as e:
            raise CatalogError(str(e), e.error_code)

    def _entry(self, file_id: str) -> CatalogEntry:
        entry = self._files.get(file_id)
        if entry is None:
            raise CatalogError(f"Unknown file: {file_id}", ErrorCode.NOT_FOUND)
        return entry

    def add_file(
        self,
        file_id: str,
        workspace_id: str,
        path: str,
        name: Optional[str] = None,
        display_name: Optional[str] = None,
        analyzed: bool = True,
        tags: Sequence[Tuple[str, str]] = (),
    ) -> QualifyingFile:
        """Add or replace a file record."""
        with self._lock:
            entry = CatalogEntry(
                id=file_id,
                workspace_id=workspace_id,
                path=os.path.abspath(path),
                name=name or os.path.basename(path),
                display_name=display_name,
                analyzed=analyzed,
                tags=set(tags),
            )
            self._files[file_id] = entry
            self._save()
            return entry.to_file()

    def remove_file(self, file_id: str) -> bool:
        with self._lock:
            if self._files.pop(file_id, None) is None:
                return False
            self._save()
            return True

    def assign_tag(self, file_id: str, dimension_id: str, tag_value: str) -> None:
        with self._lock:
            self._entry(file_id).tags.add((dimension_id, tag_value))
            self._save()

    def remove_tag(self, file_id: str, dimension_id: str, tag_value: str) -> None:
        with self._lock:
            self._entry(file_id).tags.discard((dimension_id, tag_value))
            self._save()

    def set_analyzed(self, file_id: str, analyzed: bool = True) -> None:
        with self._lock:
            self._entry(file_id).analyzed = analyzed
            self._save()

    def tags_of(self, file_id: str) -> Set[Tuple[str, str]]:
        with self._lock:
            return set(self._entry(file_id).tags)

    def list_qualifying_files(self, workspace_id: str, prefix: Sequence[TagSelector]) -> List[QualifyingFile]:
        required = set(chain_keys(prefix))
        with self._lock:
            return [
                entry.to_file()
                for entry in sorted(self._files.values(), key=lambda e: e.id)
                if entry.workspace_id == workspace_id and entry.analyzed and required <= entry.tags
            ]

    def get_file(self, file_id: str) -> Optional[QualifyingFile]:
        with self._lock:
            entry = self._files.get(file_id)
            return entry.to_file() if entry else None

    def workspace_of(self, file_id: str) -> Optional[str]:
        with self._lock:
            entry = self._files.get(file_id)
            return entry.workspace_id if entry else None

    def update_file_path(self, file_id: str, new_path: str) -> None:
        with self._lock:
            entry = self._entry(file_id)
            entry.path = os.path.abspath(new_path)
            entry.name = os.path.basename(new_path)
            self._save()
