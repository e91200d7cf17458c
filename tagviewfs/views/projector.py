"""
TagViewFS Views: Hardlink Projector.

Materializes one view as hardlinks: for every level L of the chain, every
file qualifying for the first L tags gets a link in the level-L directory.
Existing links are kept when their (device, inode) already matches the
source and replaced when it doesn't. Entries left in a level directory
that no longer qualify for that level are swept.

Also provides the link-discovery walk over a virtual root, shared with the
reconciler and the move-time relinker.

Example structure for chain [Doc, PDF]:
    .VirtualDirectory/
        ReadMe_en-US.txt
        Doc/
            a.txt          # qualifies for [Doc] only
            PDF/
                b.pdf      # qualifies for [Doc, PDF]
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

import os

from tagviewfs.core.constants import THUMBNAIL_FOLDER, Limits, is_marker_name
from tagviewfs.core.file_ops import FileIdentity, FileOperationError, FileSystem
from tagviewfs.core.logging import Logger, get_logger
from tagviewfs.core.validators import ValidationError, validate_link_name
from tagviewfs.views.base import FileQuery, QualifyingFile, ViewDefinition
from tagviewfs.views.paths import VirtualPathBuilder


class LinkOutcome(Enum):
    """Result of ensuring one link."""

    UNCHANGED = "unchanged"
    CREATED = "created"
    REPAIRED = "repaired"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def present(self) -> bool:
        """True if the link exists and points at the source afterwards."""
        return self in (LinkOutcome.UNCHANGED, LinkOutcome.CREATED, LinkOutcome.REPAIRED)


@dataclass(frozen=True)
class LinkEntry:
    """A regular file found under the virtual root."""

    path: str
    name: str
    directory: str
    identity: FileIdentity
    depth: int


def walk_link_entries(
    fs: FileSystem,
    root: str,
    thumbnail_folder: str = THUMBNAIL_FOLDER,
    max_depth: int = Limits.MAX_WALK_DEPTH,
    logger: Optional[Logger] = None,
) -> Iterator[LinkEntry]:
    """
    Yield every link entry below ``root``.

    The walk uses an explicit stack, skips marker read-me files and the
    thumbnail folder, and doesn't descend below ``max_depth`` directory
    levels. Unreadable directories are logged and skipped.
    """
    log = logger or get_logger()
    stack = [(root, 0)]

    while stack:
        directory, depth = stack.pop()
        try:
            names = fs.list_dir(directory)
        except FileOperationError as e:
            log.warning("Cannot list directory", path=directory, error=str(e))
            continue

        for name in names:
            path = os.path.join(directory, name)
            entry = fs.stat(path)
            if entry is None:
                continue

            if entry.is_dir:
                if name == thumbnail_folder:
                    continue
                if depth + 1 > max_depth:
                    log.warning("Directory too deep, skipped", path=path, max_depth=max_depth)
                    continue
                stack.append((path, depth + 1))
            elif entry.is_file and not is_marker_name(name):
                yield LinkEntry(
                    path=path,
                    name=name,
                    directory=directory,
                    identity=entry.identity,
                    depth=depth,
                )


def find_links(
    fs: FileSystem,
    root: str,
    identity: FileIdentity,
    thumbnail_folder: str = THUMBNAIL_FOLDER,
    logger: Optional[Logger] = None,
) -> List[str]:
    """Paths of every entry below ``root`` sharing ``identity``."""
    return sorted(
        entry.path
        for entry in walk_link_entries(fs, root, thumbnail_folder, logger=logger)
        if entry.identity == identity
    )


@dataclass
class ProjectionResult:
    """Files per level and link outcome counts for one projection."""

    levels: Dict[int, List[QualifyingFile]] = field(default_factory=dict)
    outcomes: Dict[LinkOutcome, int] = field(default_factory=dict)
    swept: int = 0

    def record(self, outcome: LinkOutcome) -> None:
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1

    def count(self, outcome: LinkOutcome) -> int:
        return self.outcomes.get(outcome, 0)

    @property
    def captured(self) -> List[QualifyingFile]:
        """Files qualifying for the full chain."""
        if not self.levels:
            return []
        return self.levels[max(self.levels)]

    @property
    def linked(self) -> int:
        return sum(count for outcome, count in self.outcomes.items() if outcome.present)


class HardlinkProjector:
    """
    Creates and repairs per-level hardlinks for one view.

    Attributes:
        fs: Filesystem primitives
        query: Tag query collaborator
        paths: Path builder for the workspace's virtual root
    """

    def __init__(
        self,
        fs: FileSystem,
        query: FileQuery,
        paths: VirtualPathBuilder,
        logger: Optional[Logger] = None,
    ):
        self.fs = fs
        self.query = query
        self.paths = paths
        self.logger = logger or get_logger()

    def ensure_link(self, source_path: str, identity: FileIdentity, link_path: str) -> LinkOutcome:
        """
        Make ``link_path`` a hardlink of the file with ``identity``.

        Args:
            source_path: Real path of the source file
            identity: Identity of the source, stat'ed by the caller
            link_path: Desired link location

        Returns:
            LinkOutcome describing what happened
        """
        existing = self.fs.stat(link_path)
        outcome = LinkOutcome.CREATED

        if existing is not None:
            if existing.is_file and existing.identity == identity:
                return LinkOutcome.UNCHANGED
            if existing.is_dir:
                self.logger.error("Directory occupies link path", path=link_path)
                return LinkOutcome.FAILED
            try:
                self.fs.remove(link_path)
            except FileOperationError as e:
                self.logger.error("Cannot replace stale link", path=link_path, error=str(e))
                return LinkOutcome.FAILED
            outcome = LinkOutcome.REPAIRED

        try:
            self.fs.create_hardlink(source_path, link_path)
        except FileOperationError as e:
            # Another pass may have created the same link in between
            current = self.fs.stat(link_path)
            if current is not None and current.is_file and current.identity == identity:
                return LinkOutcome.UNCHANGED
            self.logger.error(
                "Hardlink creation failed",
                source=source_path,
                path=link_path,
                error=str(e),
                code=e.error_code.name,
            )
            return LinkOutcome.FAILED

        self.logger.debug("Hardlink %s" % outcome.value, path=link_path, source=source_path)
        return outcome

    def link_files(self, files: List[QualifyingFile], directory: str, result: ProjectionResult) -> Dict[str, FileIdentity]:
        """
        Link ``files`` into ``directory``.

        Returns:
            Mapping of link name to identity for links present afterwards
        """
        present: Dict[str, FileIdentity] = {}
        claimed: Dict[str, FileIdentity] = {}

        for file in files:
            name = self.paths.link_name(file)
            try:
                validate_link_name(name)
            except ValidationError as e:
                self.logger.warning("Unusable link name, skipped", file_id=file.file_id, error=str(e))
                result.record(LinkOutcome.SKIPPED)
                continue

            identity = self.fs.identity(file.path)
            if identity is None:
                self.logger.warning("Source file missing, link skipped", file_id=file.file_id, source=file.path)
                result.record(LinkOutcome.SKIPPED)
                continue

            if name in claimed and claimed[name] != identity:
                self.logger.warning(
                    "Link name already used by another file at this level",
                    file_id=file.file_id,
                    name=name,
                    directory=directory,
                )
                result.record(LinkOutcome.SKIPPED)
                continue
            claimed[name] = identity

            outcome = self.ensure_link(file.path, identity, os.path.join(directory, name))
            result.record(outcome)
            if outcome.present:
                present[name] = identity

        return present

    def sweep_level(self, directory: str, expected: Dict[str, FileIdentity]) -> int:
        """
        Remove file entries directly in ``directory`` that aren't expected.

        Returns:
            Number of entries removed
        """
        removed = 0
        try:
            names = self.fs.list_dir(directory)
        except FileOperationError as e:
            self.logger.warning("Cannot list level directory", path=directory, error=str(e))
            return 0

        for name in names:
            if is_marker_name(name):
                continue
            path = os.path.join(directory, name)
            entry = self.fs.stat(path)
            if entry is None or not entry.is_file:
                continue
            if expected.get(name) == entry.identity:
                continue
            try:
                if self.fs.remove(path):
                    removed += 1
                    self.logger.info("Removed link no longer in view", path=path)
            except FileOperationError as e:
                self.logger.error("Cannot remove stale link", path=path, error=str(e))
        return removed

    def project(self, view: ViewDefinition) -> ProjectionResult:
        """
        Materialize every level of ``view``.

        Returns:
            ProjectionResult with per-level files and outcome counts
        """
        result = ProjectionResult()

        for level in range(1, view.depth + 1):
            prefix = view.prefix(level)
            files = self.query.list_qualifying_files(view.workspace_id, prefix)
            result.levels[level] = files
            directory = self.paths.level_dir(view.chain, level)

            self.logger.debug(
                "Projecting level",
                view=view.id,
                level=f"{level}/{view.depth}",
                chain=" -> ".join(s.tag_value for s in prefix),
                files=len(files),
            )

            try:
                self.fs.mkdir_all(directory)
            except FileOperationError as e:
                self.logger.error("Cannot create level directory", path=directory, error=str(e))
                continue

            present = self.link_files(files, directory, result)
            result.swept += self.sweep_level(directory, present)

        return result
