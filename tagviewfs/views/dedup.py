"""
TagViewFS Views: Bottom-Up Deduplicator.

A file qualifying for a deep level of a chain also qualifies for every
shallower level, so projection links it at each of them. Working from the
deepest level up, this pass removes the shallower copies so a captured file
is visible only at the deepest level it matches.
"""

import os
from typing import Optional

from tagviewfs.core.constants import is_marker_name
from tagviewfs.core.file_ops import FileOperationError, FileSystem
from tagviewfs.core.logging import Logger, get_logger
from tagviewfs.views.base import ViewDefinition
from tagviewfs.views.paths import VirtualPathBuilder


class BottomUpDeduplicator:
    """Removes ancestor-level links shadowed by a deeper link of the same file."""

    def __init__(self, fs: FileSystem, paths: VirtualPathBuilder, logger: Optional[Logger] = None):
        self.fs = fs
        self.paths = paths
        self.logger = logger or get_logger()

    def deduplicate(self, view: ViewDefinition) -> int:
        """
        Deduplicate one view's tree.

        For level L from N down to 2, every file entry directly inside the
        level-L directory is looked up by name in each ancestor level
        directory; a same-named entry with the same identity is removed.

        Returns:
            Number of shallower links removed
        """
        removed = 0

        for level in range(view.depth, 1, -1):
            directory = self.paths.level_dir(view.chain, level)
            try:
                names = self.fs.list_dir(directory)
            except FileOperationError as e:
                self.logger.warning("Cannot list level directory", path=directory, error=str(e))
                continue

            for name in names:
                if is_marker_name(name):
                    continue
                deep = self.fs.stat(os.path.join(directory, name))
                if deep is None or not deep.is_file:
                    continue

                for ancestor in range(level - 1, 0, -1):
                    shallow_path = os.path.join(self.paths.level_dir(view.chain, ancestor), name)
                    shallow = self.fs.stat(shallow_path)
                    if shallow is None or not shallow.is_file or shallow.identity != deep.identity:
                        continue
                    try:
                        if self.fs.remove(shallow_path):
                            removed += 1
                            self.logger.debug(
                                "Removed shadowed link",
                                view=view.id,
                                path=shallow_path,
                                deeper_level=level,
                            )
                    except FileOperationError as e:
                        self.logger.error("Cannot remove shadowed link", path=shallow_path, error=str(e))

        if removed:
            self.logger.info("Deduplicated view", view=view.id, removed=removed)
        return removed
