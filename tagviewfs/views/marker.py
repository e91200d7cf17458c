"""
TagViewFS Views: Marker Read-Me Writer.

Each virtual root carries one language-specific read-me
(``ReadMe_<lang>.txt``) explaining that the folder is generated. It is
rendered from a Jinja2 template the first time a virtual root is
materialized and is never treated as a link.
"""

import os
from typing import Any, Dict, Optional

import jinja2

from tagviewfs.core.constants import (
    DEFAULT_LANGUAGE,
    MARKER_PREFIX,
    THUMBNAIL_FOLDER,
    VIRTUAL_ROOT_NAME,
    marker_file_name,
)
from tagviewfs.core.file_ops import FileOperationError, FileSystem
from tagviewfs.core.logging import Logger, get_logger

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")


class MarkerWriter:
    """Renders the marker read-me into a virtual root if it has none."""

    def __init__(
        self,
        fs: FileSystem,
        language: str = DEFAULT_LANGUAGE,
        logger: Optional[Logger] = None,
        template_dir: str = TEMPLATE_DIR,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.fs = fs
        self.language = language
        self.logger = logger or get_logger()
        self._context = {
            "virtual_root_name": VIRTUAL_ROOT_NAME,
            "thumbnail_folder": THUMBNAIL_FOLDER,
            "language": language,
        }
        self._context.update(context or {})
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(template_dir),
            keep_trailing_newline=True,
        )

    @property
    def file_name(self) -> str:
        return marker_file_name(self.language)

    def has_marker(self, virtual_root: str) -> bool:
        try:
            names = self.fs.list_dir(virtual_root)
        except FileOperationError:
            return False
        return any(name.startswith(MARKER_PREFIX) for name in names)

    def render(self) -> str:
        """Render the read-me for the configured language."""
        template = self._env.get_template(self.file_name + ".j2")
        return template.render(**self._context)

    def ensure(self, virtual_root: str) -> bool:
        """
        Write the read-me unless any read-me already exists.

        A missing template or a write failure is logged and ignored; the
        virtual tree is usable without the read-me.

        Returns:
            True if a read-me was written
        """
        if self.has_marker(virtual_root):
            return False

        try:
            content = self.render()
        except jinja2.TemplateNotFound:
            self.logger.warning("No read-me template for language", language=self.language)
            return False

        path = os.path.join(virtual_root, self.file_name)
        try:
            self.fs.write_text(path, content)
        except FileOperationError as e:
            self.logger.warning("Cannot write read-me", path=path, error=str(e))
            return False

        self.logger.info("Wrote read-me", path=path)
        return True
