"""
TagViewFS Core: Filesystem Primitives.

Directory-entry level operations used by the view engine: stat with
(device, inode) identity, hardlink creation, unlink, mkdir -p, recursive
removal, listing and rename. File content is never read or copied.

Every operation treats "already in the desired state" as success
(creating an existing directory, removing a missing entry). Any other
failure raises FileOperationError carrying an ErrorCode.
"""
import errno
import os
import shutil
import stat
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Union

from tagviewfs.core.constants import ErrorCode

PathLike = Union[str, "os.PathLike[str]"]


class FileOperationError(Exception):
    """Filesystem operation failure."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        super().__init__(message)
        self.error_code = error_code


@dataclass(frozen=True)
class FileIdentity:
    """Filesystem identity of a file: the (device, inode) pair.

    Two entries with equal identity are the same logical file regardless of
    name. Inode numbers are only unique per device, so both fields are
    always compared together.
    """

    device: int
    inode: int

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "FileIdentity":
        return cls(device=st.st_dev, inode=st.st_ino)


@dataclass(frozen=True)
class FileStat:
    """Subset of stat() results the engine relies on."""

    identity: FileIdentity
    mode: int
    nlink: int

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def is_file(self) -> bool:
        return stat.S_ISREG(self.mode)


def _error_code_for(exc: OSError) -> ErrorCode:
    """Map an OSError to an ErrorCode."""
    if exc.errno in (errno.EACCES, errno.EPERM, errno.EROFS):
        return ErrorCode.PERMISSION_DENIED
    if exc.errno == errno.EXDEV:
        return ErrorCode.CROSS_DEVICE
    if exc.errno in (errno.ENOSPC, errno.EDQUOT):
        return ErrorCode.NO_SPACE
    if exc.errno == errno.ENOENT:
        return ErrorCode.NOT_FOUND
    if exc.errno == errno.EEXIST:
        return ErrorCode.CONFLICT
    return ErrorCode.IO_ERROR


def _fail(action: str, path: PathLike, exc: OSError) -> FileOperationError:
    return FileOperationError(f"Cannot {action} {os.fspath(path)}: {exc.strerror or exc}", _error_code_for(exc))


def stat_entry(path: PathLike) -> Optional[FileStat]:
    """Stat a path without following a final symlink.

    Returns:
        FileStat, or None when the entry doesn't exist or can't be stat'ed
    """
    try:
        st = os.lstat(path)
    except OSError:
        return None
    return FileStat(identity=FileIdentity.from_stat(st), mode=st.st_mode, nlink=st.st_nlink)


def make_directories(path: PathLike) -> None:
    """Create a directory and its parents (mkdir -p)."""
    try:
        os.makedirs(path, exist_ok=True)
    except FileExistsError as e:
        # A non-directory entry occupies the path
        raise _fail("create directory", path, e)
    except OSError as e:
        raise _fail("create directory", path, e)


def create_hardlink(source: PathLike, link_path: PathLike) -> None:
    """Create a hardlink at link_path pointing at source's inode."""
    try:
        os.link(source, link_path)
    except OSError as e:
        raise _fail(f"link {os.fspath(source)} to", link_path, e)


def remove_entry(path: PathLike) -> bool:
    """Remove a file entry or an empty directory.

    Returns:
        True if something was removed, False if it was already gone
    """
    try:
        if os.path.isdir(path) and not os.path.islink(path):
            os.rmdir(path)
        else:
            os.unlink(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        raise _fail("remove", path, e)
    return True


def remove_tree(path: PathLike) -> bool:
    """Remove a directory tree (rm -rf).

    Returns:
        True if something was removed, False if it was already gone
    """
    if not os.path.lexists(path):
        return False
    try:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.unlink(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        raise _fail("remove tree", path, e)
    return True


def list_directory(path: PathLike) -> List[str]:
    """List entry names in a directory, sorted; missing directory lists empty."""
    try:
        return sorted(os.listdir(path))
    except FileNotFoundError:
        return []
    except OSError as e:
        raise _fail("list", path, e)


def rename_entry(source: PathLike, destination: PathLike) -> None:
    """Rename a directory entry (no content copy)."""
    try:
        os.rename(source, destination)
    except OSError as e:
        raise _fail(f"rename {os.fspath(source)} to", destination, e)


def write_text(path: PathLike, content: str) -> None:
    """Write a small UTF-8 text file (used for the marker read-me)."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise _fail("write", path, e)


class FileSystem(ABC):
    """Filesystem primitives injected into the view engine."""

    @abstractmethod
    def stat(self, path: PathLike) -> Optional[FileStat]:
        """Return entry metadata, or None if the entry is not visible."""

    @abstractmethod
    def mkdir_all(self, path: PathLike) -> None:
        """Create a directory and any missing parents."""

    @abstractmethod
    def create_hardlink(self, source: PathLike, link_path: PathLike) -> None:
        """Create a hardlink to source at link_path."""

    @abstractmethod
    def remove(self, path: PathLike) -> bool:
        """Remove a file entry or empty directory."""

    @abstractmethod
    def remove_tree(self, path: PathLike) -> bool:
        """Remove a directory and everything below it."""

    @abstractmethod
    def list_dir(self, path: PathLike) -> List[str]:
        """List entry names of a directory."""

    @abstractmethod
    def rename(self, source: PathLike, destination: PathLike) -> None:
        """Rename a directory entry."""

    @abstractmethod
    def write_text(self, path: PathLike, content: str) -> None:
        """Write a small text file."""

    def exists(self, path: PathLike) -> bool:
        return self.stat(path) is not None

    def identity(self, path: PathLike) -> Optional[FileIdentity]:
        """Identity of a regular file, or None if missing or not a file."""
        entry = self.stat(path)
        if entry is None or not entry.is_file:
            return None
        return entry.identity


class LocalFileSystem(FileSystem):
    """FileSystem backed by the local OS via the module-level functions."""

    def stat(self, path: PathLike) -> Optional[FileStat]:
        return stat_entry(path)

    def mkdir_all(self, path: PathLike) -> None:
        make_directories(path)

    def create_hardlink(self, source: PathLike, link_path: PathLike) -> None:
        create_hardlink(source, link_path)

    def remove(self, path: PathLike) -> bool:
        return remove_entry(path)

    def remove_tree(self, path: PathLike) -> bool:
        return remove_tree(path)

    def list_dir(self, path: PathLike) -> List[str]:
        return list_directory(path)

    def rename(self, source: PathLike, destination: PathLike) -> None:
        rename_entry(source, destination)

    def write_text(self, path: PathLike, content: str) -> None:
        write_text(path, content)
