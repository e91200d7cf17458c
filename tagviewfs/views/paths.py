"""
TagViewFS Views: Virtual Path Builder.

Maps a tag chain to directories under the virtual root:

    <workspace>/.VirtualDirectory/<tag 1>/<tag 2>/.../<tag L>/<link name>

and derives link names from a file's display name, keeping the original
file's extension.
"""

import os
from typing import List, Optional, Sequence

from tagviewfs.views.base import QualifyingFile, TagSelector


def build_link_name(name: str, display_name: Optional[str] = None) -> str:
    """
    Derive the link file name for a source file.

    The display name wins over the original name, but the original
    extension is always kept: it is spliced onto the display name when the
    display name has no extension or a different one.

    Example:
        >>> build_link_name("scan_001.pdf", "Tax return 2023")
        'Tax return 2023.pdf'
        >>> build_link_name("scan_001.pdf", "Tax return.docx")
        'Tax return.pdf'
    """
    if not display_name:
        return name

    original_ext = os.path.splitext(name)[1]
    stem, display_ext = os.path.splitext(display_name)

    if display_ext and display_ext == original_ext:
        return display_name
    if not display_ext:
        return display_name + original_ext
    return stem + original_ext


class VirtualPathBuilder:
    """
    Deterministic tag chain to path mapping for one virtual root.

    Attributes:
        virtual_root: Absolute path of the workspace's virtual root folder
    """

    def __init__(self, virtual_root: str):
        self.virtual_root = virtual_root

    def level_dir(self, chain: Sequence[TagSelector], level: int) -> str:
        """Directory for the first ``level`` elements of ``chain`` (1-based)."""
        if level < 1 or level > len(chain):
            raise ValueError(f"Level {level} out of range for chain of length {len(chain)}")
        return os.path.join(self.virtual_root, *(s.tag_value for s in chain[:level]))

    def level_dirs(self, chain: Sequence[TagSelector]) -> List[str]:
        """Directories for every level, shallow to deep."""
        return [self.level_dir(chain, level) for level in range(1, len(chain) + 1)]

    def link_name(self, file: QualifyingFile) -> str:
        return build_link_name(file.name, file.display_name)

    def link_path(self, chain: Sequence[TagSelector], level: int, file: QualifyingFile) -> str:
        """Candidate link path for ``file`` matched at ``level``."""
        return os.path.join(self.level_dir(chain, level), self.link_name(file))

    def relative_parts(self, path: str) -> List[str]:
        """Components of ``path`` relative to the virtual root."""
        rel = os.path.relpath(path, self.virtual_root)
        if rel == os.curdir:
            return []
        return rel.split(os.sep)
