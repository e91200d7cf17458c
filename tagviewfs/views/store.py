"""
TagViewFS Views: YAML View Store.

Reference ViewStore keeping workspaces and view definitions in one YAML
document:

    workspaces:
      - id: docs
        root: /home/user/Documents
    views:
      - id: v1
        name: Invoices
        workspace_id: docs
        chain:
          - {dimension_id: topic, dimension_name: Topic, tag_value: Finance, level: 0}

Without a path the store lives in memory only.
"""

import os
import threading
from typing import Any, Dict, List, Optional

import yaml

from tagviewfs.core.constants import ErrorCode
from tagviewfs.views.base import ViewDefinition, ViewStore, Workspace


class StoreError(Exception):
    """View store read/write failure."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.IO_ERROR):
        super().__init__(message)
        self.error_code = error_code


def load_yaml_document(path: str) -> Dict[str, Any]:
    """Load a YAML mapping; a missing or empty file is an empty mapping."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise StoreError(f"Invalid YAML in {path}: {e}", ErrorCode.INVALID_INPUT)
    except OSError as e:
        raise StoreError(f"Cannot read {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise StoreError(f"Expected a mapping in {path}", ErrorCode.INVALID_INPUT)
    return data


def dump_yaml_document(path: str, data: Dict[str, Any]) -> None:
    """Write a YAML mapping, replacing the file in one rename."""
    directory = os.path.dirname(os.path.abspath(path))
    tmp_path = path + ".tmp"
    try:
        os.makedirs(directory, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        os.replace(tmp_path, path)
    except OSError as e:
        raise StoreError(f"Cannot write {path}: {e}")


class YamlViewStore(ViewStore):
    """ViewStore persisted to a YAML file."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.RLock()
        self._workspaces: Dict[str, Workspace] = {}
        self._views: Dict[str, ViewDefinition] = {}

        if path:
            self._load()

    def _load(self) -> None:
        data = load_yaml_document(self.path)
        try:
            for item in data.get("workspaces") or []:
                workspace = Workspace(id=str(item["id"]), root=str(item["root"]))
                self._workspaces[workspace.id] = workspace
            for item in data.get("views") or []:
                view = ViewDefinition.from_dict(item)
                self._views[view.id] = view
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Malformed view store {self.path}: {e}", ErrorCode.INVALID_INPUT)

    def _save(self) -> None:
        if not self.path:
            return
        dump_yaml_document(
            self.path,
            {
                "workspaces": [{"id": w.id, "root": w.root} for w in self._workspaces.values()],
                "views": [v.to_dict() for v in self._views.values()],
            },
        )

    def add_workspace(self, workspace: Workspace) -> None:
        with self._lock:
            self._workspaces[workspace.id] = workspace
            self._save()

    def list_workspaces(self) -> List[Workspace]:
        with self._lock:
            return list(self._workspaces.values())

    def get_workspace(self, workspace_id: str) -> Optional[Workspace]:
        with self._lock:
            return self._workspaces.get(workspace_id)

    def get_view(self, view_id: str) -> Optional[ViewDefinition]:
        with self._lock:
            return self._views.get(view_id)

    def put_view(self, view: ViewDefinition) -> None:
        with self._lock:
            self._views[view.id] = view
            self._save()

    def delete_view(self, view_id: str) -> bool:
        with self._lock:
            if self._views.pop(view_id, None) is None:
                return False
            self._save()
            return True

    def list_views(self, workspace_id: str) -> List[ViewDefinition]:
        with self._lock:
            return [view for view in self._views.values() if view.workspace_id == workspace_id]
