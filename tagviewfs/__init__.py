"""TagViewFS - tag-chain views of a workspace, materialized as hardlinks."""

from tagviewfs.core.constants import TAGVIEWFS_VERSION

__version__ = TAGVIEWFS_VERSION
