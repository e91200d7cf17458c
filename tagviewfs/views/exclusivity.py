"""
TagViewFS Views: Cross-View Exclusivity Enforcer.

A physical file captured by the view just saved must not stay visible in
any other view of the same workspace. Links elsewhere are found by
probing each level directory of every other view for the captured file's
link name and comparing identities; the most recently saved view wins.
"""

import os
from typing import Iterable, List, Optional, Set, Tuple

from tagviewfs.core.file_ops import FileIdentity, FileOperationError, FileSystem
from tagviewfs.core.logging import Logger, get_logger
from tagviewfs.views.base import QualifyingFile, ViewDefinition
from tagviewfs.views.conflicts import same_chain
from tagviewfs.views.paths import VirtualPathBuilder


class ExclusivityEnforcer:
    """Removes links to captured files from other views' trees."""

    def __init__(self, fs: FileSystem, paths: VirtualPathBuilder, logger: Optional[Logger] = None):
        self.fs = fs
        self.paths = paths
        self.logger = logger or get_logger()

    def _targets(self, captured: Iterable[QualifyingFile]) -> List[Tuple[str, FileIdentity]]:
        targets = []
        for file in captured:
            identity = self.fs.identity(file.path)
            if identity is not None:
                targets.append((self.paths.link_name(file), identity))
        return targets

    def enforce(
        self,
        view: ViewDefinition,
        captured: Iterable[QualifyingFile],
        others: Iterable[ViewDefinition],
    ) -> int:
        """
        Remove links to ``captured`` files from every other view.

        Args:
            view: The view just materialized
            captured: Files qualifying for the view's full chain
            others: The other views of the workspace

        Returns:
            Number of links removed
        """
        targets = self._targets(captured)
        if not targets or not view.chain:
            return 0

        own_dir = self.paths.level_dir(view.chain, view.depth)
        protected: Set[str] = {os.path.join(own_dir, name) for name, _ in targets}
        visited: Set[str] = set()
        removed = 0

        for other in others:
            if other.id == view.id or same_chain(other.chain, view.chain):
                continue

            for directory in self.paths.level_dirs(other.chain):
                if directory in visited:
                    continue
                visited.add(directory)

                for name, identity in targets:
                    path = os.path.join(directory, name)
                    if path in protected:
                        continue
                    entry = self.fs.stat(path)
                    if entry is None or not entry.is_file or entry.identity != identity:
                        continue
                    try:
                        if self.fs.remove(path):
                            removed += 1
                            self.logger.info(
                                "Removed link captured by another view",
                                path=path,
                                view=other.id,
                                captured_by=view.id,
                            )
                    except FileOperationError as e:
                        self.logger.error("Cannot remove link from other view", path=path, error=str(e))

        return removed
