"""
TagViewFS Views: Stale-Link Reconciler and Empty-Directory Pruner.

Runs independently of saves (e.g. when a workspace is opened) and brings a
virtual tree back in line with the tag store:

- an entry whose name is no eligible file's link name is removed;
- an entry whose (device, inode) differs from the eligible source with that
  link name is removed (source deleted, replaced, or unreadable);
- an entry in a view's level directory whose file no longer qualifies for
  that level's prefix is removed (tag removed).

Empty directories are then pruned bottom-up. The virtual root itself and
the thumbnail folder are never removed.
"""

import os
from typing import Dict, Iterable, List, Optional, Set, Tuple

from tagviewfs.core.constants import THUMBNAIL_FOLDER, Limits
from tagviewfs.core.file_ops import FileIdentity, FileOperationError, FileSystem
from tagviewfs.core.logging import Logger, get_logger
from tagviewfs.views.base import FileQuery, ReconcileResult, ViewDefinition, chain_keys
from tagviewfs.views.paths import VirtualPathBuilder, build_link_name
from tagviewfs.views.projector import walk_link_entries


class StaleLinkReconciler:
    """
    Removes orphaned links from one workspace's virtual tree.

    Attributes:
        fs: Filesystem primitives
        query: Tag query collaborator
        paths: Path builder for the workspace's virtual root
        thumbnail_folder: Reserved folder name that is never walked
    """

    def __init__(
        self,
        fs: FileSystem,
        query: FileQuery,
        paths: VirtualPathBuilder,
        logger: Optional[Logger] = None,
        thumbnail_folder: str = THUMBNAIL_FOLDER,
        max_depth: int = Limits.MAX_WALK_DEPTH,
    ):
        self.fs = fs
        self.query = query
        self.paths = paths
        self.logger = logger or get_logger()
        self.thumbnail_folder = thumbnail_folder
        self.max_depth = max_depth

    def _eligible_by_name(self, workspace_id: str) -> Dict[str, Set[FileIdentity]]:
        """Map each eligible link name to the identities of its sources."""
        by_name: Dict[str, Set[FileIdentity]] = {}
        for file in self.query.list_eligible_files(workspace_id):
            identity = self.fs.identity(file.path)
            if identity is None:
                self.logger.warning("Source file missing", file_id=file.file_id, source=file.path)
                continue
            by_name.setdefault(build_link_name(file.name, file.display_name), set()).add(identity)
        return by_name

    def _level_membership(self, workspace_id: str, views: Iterable[ViewDefinition]) -> Dict[str, Set[FileIdentity]]:
        """Map each view level directory to the identities qualifying for it."""
        by_prefix: Dict[Tuple[Tuple[str, str], ...], Set[FileIdentity]] = {}
        membership: Dict[str, Set[FileIdentity]] = {}

        for view in views:
            for level in range(1, view.depth + 1):
                prefix = view.prefix(level)
                key = chain_keys(prefix)
                if key not in by_prefix:
                    identities = set()
                    for file in self.query.list_qualifying_files(workspace_id, prefix):
                        identity = self.fs.identity(file.path)
                        if identity is not None:
                            identities.add(identity)
                    by_prefix[key] = identities
                # Chains with equal tag values share a directory
                directory = self.paths.level_dir(view.chain, level)
                membership.setdefault(directory, set()).update(by_prefix[key])

        return membership

    def remove_stale_links(
        self, workspace_id: str, views: Iterable[ViewDefinition], result: Optional[ReconcileResult] = None
    ) -> ReconcileResult:
        """Walk the virtual tree and remove entries that no longer belong."""
        result = result or ReconcileResult()
        root = self.paths.virtual_root
        eligible = self._eligible_by_name(workspace_id)
        membership = self._level_membership(workspace_id, views)

        for entry in walk_link_entries(self.fs, root, self.thumbnail_folder, self.max_depth, self.logger):
            result.scanned += 1
            sources = eligible.get(entry.name)

            if sources is None:
                reason = "no eligible file with this name"
            elif entry.identity not in sources:
                reason = "identity mismatch"
            elif entry.directory in membership and entry.identity not in membership[entry.directory]:
                reason = "file no longer qualifies for this level"
            else:
                continue

            try:
                if self.fs.remove(entry.path):
                    result.removed_links += 1
                    self.logger.info("Removed stale link", path=entry.path, reason=reason)
            except FileOperationError as e:
                result.failures += 1
                self.logger.error("Cannot remove stale link", path=entry.path, error=str(e))

        return result

    def reconcile(self, workspace_id: str, views: Iterable[ViewDefinition]) -> ReconcileResult:
        """
        Full reconciliation pass: stale links first, then empty directories.

        Returns:
            ReconcileResult with scan and removal counts
        """
        result = self.remove_stale_links(workspace_id, list(views))
        pruner = EmptyDirectoryPruner(self.fs, self.logger, self.thumbnail_folder, self.max_depth)
        pruned, failures = pruner.prune(self.paths.virtual_root)
        result.removed_directories += pruned
        result.failures += failures

        self.logger.info(
            "Reconciled workspace",
            workspace=workspace_id,
            scanned=result.scanned,
            removed_links=result.removed_links,
            removed_directories=result.removed_directories,
            failures=result.failures,
        )
        return result


class EmptyDirectoryPruner:
    """Deletes empty directories below a root, deepest first."""

    def __init__(
        self,
        fs: FileSystem,
        logger: Optional[Logger] = None,
        thumbnail_folder: str = THUMBNAIL_FOLDER,
        max_depth: int = Limits.MAX_WALK_DEPTH,
    ):
        self.fs = fs
        self.logger = logger or get_logger()
        self.thumbnail_folder = thumbnail_folder
        self.max_depth = max_depth

    def _collect(self, root: str) -> List[str]:
        """Directories below root in pre-order."""
        found: List[str] = []
        stack = [(root, 0)]
        while stack:
            directory, depth = stack.pop()
            try:
                names = self.fs.list_dir(directory)
            except FileOperationError as e:
                self.logger.warning("Cannot list directory", path=directory, error=str(e))
                continue
            for name in names:
                if name == self.thumbnail_folder:
                    continue
                path = os.path.join(directory, name)
                entry = self.fs.stat(path)
                if entry is None or not entry.is_dir:
                    continue
                if depth + 1 > self.max_depth:
                    self.logger.warning("Directory too deep, skipped", path=path, max_depth=self.max_depth)
                    continue
                found.append(path)
                stack.append((path, depth + 1))
        return found

    def prune(self, root: str) -> Tuple[int, int]:
        """
        Remove every empty directory below ``root``; never ``root`` itself.

        Children always appear after their parent in pre-order, so walking
        the list backwards empties children before their parent is checked.

        Returns:
            (directories removed, failures)
        """
        removed = 0
        failures = 0

        for directory in reversed(self._collect(root)):
            try:
                if self.fs.list_dir(directory):
                    continue
                if self.fs.remove(directory):
                    removed += 1
                    self.logger.debug("Removed empty directory", path=directory)
            except FileOperationError as e:
                failures += 1
                self.logger.error("Cannot remove empty directory", path=directory, error=str(e))

        return removed, failures
