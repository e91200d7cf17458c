"""
TagViewFS Views: Move-Time Relinker.

When a source file is physically relocated its links can end up pointing
at a stale inode (copy-and-delete moves, replaced files). The relinker
records where a file is linked before the move and, afterwards, replaces
every recorded entry whose identity no longer matches the file's new path.
A move that renames the file renames its links too.
"""

import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from tagviewfs.core.constants import THUMBNAIL_FOLDER
from tagviewfs.core.file_ops import FileIdentity, FileOperationError, FileSystem
from tagviewfs.core.logging import Logger, get_logger
from tagviewfs.views.base import FileQuery
from tagviewfs.views.paths import build_link_name
from tagviewfs.views.projector import find_links, walk_link_entries


@dataclass(frozen=True)
class LinkSnapshot:
    """Identity and link locations of a file, taken before it moves."""

    file_id: str
    identity: FileIdentity
    link_paths: Tuple[str, ...]


class MoveTimeRelinker:
    """
    Repairs one workspace's links to a file after the file moved.

    Attributes:
        fs: Filesystem primitives
        query: Tag query collaborator
        workspace_id: Workspace the virtual root belongs to
        virtual_root: Absolute path of the virtual root
    """

    def __init__(
        self,
        fs: FileSystem,
        query: FileQuery,
        workspace_id: str,
        virtual_root: str,
        logger: Optional[Logger] = None,
        thumbnail_folder: str = THUMBNAIL_FOLDER,
    ):
        self.fs = fs
        self.query = query
        self.workspace_id = workspace_id
        self.virtual_root = virtual_root
        self.logger = logger or get_logger()
        self.thumbnail_folder = thumbnail_folder

    def capture(self, file_id: str) -> Optional[LinkSnapshot]:
        """
        Record every link of ``file_id`` under the virtual root.

        Returns:
            LinkSnapshot, or None if the file is unknown or unreadable
        """
        file = self.query.get_file(file_id)
        if file is None:
            self.logger.warning("Unknown file, nothing to capture", file_id=file_id)
            return None

        identity = self.fs.identity(file.path)
        if identity is None:
            self.logger.warning("Source file missing, nothing to capture", file_id=file_id, source=file.path)
            return None

        paths = find_links(self.fs, self.virtual_root, identity, self.thumbnail_folder, self.logger)
        self.logger.debug("Captured links", file_id=file_id, links=len(paths))
        return LinkSnapshot(file_id=file_id, identity=identity, link_paths=tuple(paths))

    def _other_identities(self, file_id: str) -> Set[FileIdentity]:
        identities = set()
        for file in self.query.list_eligible_files(self.workspace_id):
            if file.file_id == file_id:
                continue
            identity = self.fs.identity(file.path)
            if identity is not None:
                identities.add(identity)
        return identities

    def locate(self, file_id: str, new_path: str) -> List[str]:
        """
        Find a file's links without a snapshot.

        Entries are matched by the file's link name; entries whose identity
        belongs to another eligible file are left alone.
        """
        file = self.query.get_file(file_id)
        if file is None:
            name = os.path.basename(new_path)
        else:
            name = build_link_name(file.name, file.display_name)

        others = self._other_identities(file_id)
        return sorted(
            entry.path
            for entry in walk_link_entries(self.fs, self.virtual_root, self.thumbnail_folder, logger=self.logger)
            if entry.name == name and entry.identity not in others
        )

    def _relink_one(self, new_path: str, identity: FileIdentity, link_path: str) -> bool:
        entry = self.fs.stat(link_path)
        if entry is not None and entry.is_file and entry.identity == identity:
            return False

        try:
            if entry is not None:
                if entry.is_dir:
                    self.logger.error("Directory occupies link path", path=link_path)
                    return False
                self.fs.remove(link_path)
            self.fs.mkdir_all(os.path.dirname(link_path))
            self.fs.create_hardlink(new_path, link_path)
        except FileOperationError as e:
            self.logger.error("Relink failed", path=link_path, source=new_path, error=str(e))
            return False

        self.logger.info("Relinked", path=link_path, source=new_path)
        return True

    def _drop_old_name(self, path: str, identities: Set[Optional[FileIdentity]]) -> None:
        entry = self.fs.stat(path)
        if entry is None or not entry.is_file or entry.identity not in identities:
            return
        try:
            self.fs.remove(path)
            self.logger.debug("Removed link under old name", path=path)
        except FileOperationError as e:
            self.logger.error("Cannot remove link under old name", path=path, error=str(e))

    def relink(self, file_id: str, new_path: str, snapshot: Optional[LinkSnapshot] = None) -> int:
        """
        Point the file's links at ``new_path``.

        Args:
            file_id: Moved file
            new_path: The file's current real path
            snapshot: Links captured before the move, if available

        Returns:
            Number of links recreated
        """
        identity = self.fs.identity(new_path)
        if identity is None:
            self.logger.warning("Moved file not found, links left alone", file_id=file_id, path=new_path)
            return 0

        link_paths: Iterable[str]
        if snapshot is not None:
            link_paths = snapshot.link_paths
        else:
            link_paths = self.locate(file_id, new_path)

        file = self.query.get_file(file_id)
        link_name = build_link_name(file.name, file.display_name) if file is not None else None
        old_identity = snapshot.identity if snapshot is not None else None

        relinked = 0
        for path in link_paths:
            target = path
            if link_name and os.path.basename(path) != link_name:
                # The move changed the file name; the link follows it
                target = os.path.join(os.path.dirname(path), link_name)
                self._drop_old_name(path, {identity, old_identity})
            if self._relink_one(new_path, identity, target):
                relinked += 1
        if relinked:
            self.logger.info("Links repaired after move", file_id=file_id, relinked=relinked)
        return relinked
