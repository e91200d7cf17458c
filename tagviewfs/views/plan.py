"""
TagViewFS Views: Plan Materializer.

Materializes an externally computed directory plan (for example a
classification preview) instead of saved tag chains. The plan is a list of
nodes, each naming its parent node, plus an assignment of files to node
names. Existing virtual content is replaced; only the marker read-me and
the thumbnail folder survive.

Two layouts:
- tree: one directory per node, nested by parent, files linked into the
  directory of the node they are assigned to;
- flatten: every assigned file linked directly into the virtual root.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from tagviewfs.core.constants import THUMBNAIL_FOLDER, is_marker_name
from tagviewfs.core.file_ops import FileOperationError, FileSystem
from tagviewfs.core.logging import Logger, get_logger
from tagviewfs.core.validators import ValidationError, validate_link_name, validate_path_component
from tagviewfs.views.base import TagChain, TagSelector
from tagviewfs.views.paths import build_link_name
from tagviewfs.views.projector import HardlinkProjector
from tagviewfs.views.reconciler import EmptyDirectoryPruner


@dataclass(frozen=True)
class PlanNode:
    """One directory of a plan; nodes carrying tag data can become views."""

    name: str
    parent: Optional[str] = None
    description: Optional[str] = None
    dimension_id: Optional[str] = None
    dimension_name: Optional[str] = None
    tag_value: Optional[str] = None

    @property
    def has_tag(self) -> bool:
        return bool(self.dimension_id and self.dimension_name and self.tag_value)

    @property
    def selector(self) -> Optional[TagSelector]:
        if not self.has_tag:
            return None
        return TagSelector(
            dimension_id=self.dimension_id,
            dimension_name=self.dimension_name,
            tag_value=self.tag_value,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanNode":
        def text(key: str) -> Optional[str]:
            value = data.get(key)
            return None if value is None or value == "" else str(value)

        return cls(
            name=str(data["name"]),
            parent=text("parent"),
            description=text("description"),
            dimension_id=text("dimension_id"),
            dimension_name=text("dimension_name"),
            tag_value=text("tag_value"),
        )


@dataclass(frozen=True)
class PlanFile:
    """A file assigned to a plan node."""

    name: str
    path: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def link_name(self) -> str:
        return build_link_name(self.name, self.display_name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanFile":
        return cls(
            name=str(data["name"]),
            path=data.get("path"),
            display_name=data.get("display_name"),
        )


@dataclass
class PlanOptions:
    flatten_to_root: bool = False
    skip_empty_directories: bool = True
    save_views: bool = True


@dataclass
class PlanResult:
    """Outcome of materializing a plan."""

    linked_count: int = 0
    skipped: int = 0
    removed_directories: int = 0
    saved_view_ids: List[str] = field(default_factory=list)


def node_chains(nodes: Sequence[PlanNode]) -> Dict[str, TagChain]:
    """
    Cumulative tag chain of every node.

    A node with tag data extends its parent's chain; a node without tag
    data gets an empty chain. Nodes are expected parents first.
    """
    chains: Dict[str, TagChain] = {}
    for node in nodes:
        selector = node.selector
        if selector is None:
            chains[node.name] = ()
            continue
        parent_chain = chains.get(node.parent, ()) if node.parent else ()
        level = len(parent_chain)
        chains[node.name] = parent_chain + (
            TagSelector(selector.dimension_id, selector.dimension_name, selector.tag_value, level),
        )
    return chains


class PlanMaterializer:
    """Writes a plan into one virtual root."""

    def __init__(
        self,
        fs: FileSystem,
        projector: HardlinkProjector,
        virtual_root: str,
        logger: Optional[Logger] = None,
        thumbnail_folder: str = THUMBNAIL_FOLDER,
    ):
        self.fs = fs
        self.projector = projector
        self.virtual_root = virtual_root
        self.logger = logger or get_logger()
        self.thumbnail_folder = thumbnail_folder

    def clear(self) -> int:
        """Remove everything in the virtual root but the read-me and thumbnails."""
        removed = 0
        for name in self.fs.list_dir(self.virtual_root):
            if is_marker_name(name) or name == self.thumbnail_folder:
                continue
            path = os.path.join(self.virtual_root, name)
            try:
                if self.fs.remove_tree(path):
                    removed += 1
            except FileOperationError as e:
                self.logger.error("Cannot clear virtual entry", path=path, error=str(e))
        return removed

    def _link(self, file: PlanFile, directory: str, result: PlanResult) -> None:
        if not file.path:
            self.logger.warning("Plan file has no path, skipped", name=file.name)
            result.skipped += 1
            return

        identity = self.fs.identity(file.path)
        if identity is None:
            self.logger.warning("Source file missing, link skipped", source=file.path)
            result.skipped += 1
            return

        try:
            validate_link_name(file.link_name)
        except ValidationError as e:
            self.logger.warning("Unusable link name, skipped", source=file.path, error=str(e))
            result.skipped += 1
            return

        outcome = self.projector.ensure_link(file.path, identity, os.path.join(directory, file.link_name))
        if outcome.present:
            result.linked_count += 1
        else:
            result.skipped += 1

    def _materialize_flat(self, assignments: Mapping[str, Sequence[PlanFile]], result: PlanResult) -> None:
        for files in assignments.values():
            for file in files:
                self._link(file, self.virtual_root, result)

    def _materialize_tree(
        self,
        nodes: Sequence[PlanNode],
        assignments: Mapping[str, Sequence[PlanFile]],
        result: PlanResult,
    ) -> None:
        children: Dict[Optional[str], List[PlanNode]] = {}
        names = {node.name for node in nodes}
        for node in nodes:
            parent = node.parent
            if parent is not None and parent not in names:
                self.logger.warning("Plan node has unknown parent, skipped", node=node.name, parent=parent)
                continue
            children.setdefault(parent, []).append(node)

        stack = [(node, self.virtual_root) for node in reversed(children.get(None, []))]
        visited = set()

        while stack:
            node, parent_dir = stack.pop()
            if node.name in visited:
                self.logger.warning("Plan node visited twice, skipped", node=node.name)
                continue
            visited.add(node.name)

            try:
                validate_path_component(node.name, "plan node name")
            except ValidationError as e:
                self.logger.warning("Unusable plan node name, skipped", node=node.name, error=str(e))
                continue

            directory = os.path.join(parent_dir, node.name)
            try:
                self.fs.mkdir_all(directory)
            except FileOperationError as e:
                self.logger.error("Cannot create plan directory", path=directory, error=str(e))
                continue

            for file in assignments.get(node.name, ()):
                self._link(file, directory, result)

            for child in reversed(children.get(node.name, [])):
                stack.append((child, directory))

        unreached = names - visited
        if unreached:
            self.logger.warning("Plan nodes not reachable from a top-level node", nodes=",".join(sorted(unreached)))

    def materialize(
        self,
        nodes: Sequence[PlanNode],
        assignments: Mapping[str, Sequence[PlanFile]],
        options: PlanOptions,
    ) -> PlanResult:
        """
        Replace the virtual root's content with the plan.

        Returns:
            PlanResult with the number of links created
        """
        result = PlanResult()
        self.clear()

        if options.flatten_to_root:
            self._materialize_flat(assignments, result)
        else:
            self._materialize_tree(nodes, assignments, result)

        if options.skip_empty_directories:
            pruner = EmptyDirectoryPruner(self.fs, self.logger, self.thumbnail_folder)
            result.removed_directories, _ = pruner.prune(self.virtual_root)

        self.logger.info(
            "Plan materialized",
            root=self.virtual_root,
            mode="flatten" if options.flatten_to_root else "tree",
            linked=result.linked_count,
            skipped=result.skipped,
        )
        return result
