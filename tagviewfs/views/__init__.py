"""
TagViewFS Views - Virtual view materialization engine.

This package projects saved tag chains ("views") onto a workspace as a
tree of hardlinks under its hidden virtual root, and keeps that tree
consistent as tags, files and views change.

Public API:
-----------

Data Model:
    TagSelector: One (dimension, tag) element of a chain
    ViewDefinition: A named, ordered tag chain in one workspace
    Workspace: A root directory hosting one virtual root
    QualifyingFile: A tagged source file

Collaborators:
    FileQuery: Abstract tag query (TagCatalog is the YAML implementation)
    ViewStore: Abstract view persistence (YamlViewStore)

Service:
    VirtualViewService: Save, delete, reconcile, relink and plan operations

Usage Example:
--------------

    from tagviewfs.core.file_ops import LocalFileSystem
    from tagviewfs.views import (
        TagCatalog,
        TagSelector,
        ViewDefinition,
        VirtualViewService,
        Workspace,
        YamlViewStore,
    )

    store = YamlViewStore()
    store.add_workspace(Workspace(id="docs", root="/home/user/Documents"))
    catalog = TagCatalog()
    catalog.add_file("f1", "docs", "/home/user/Documents/a.txt", tags=[("genre", "Doc")])

    service = VirtualViewService(LocalFileSystem(), catalog, store)
    service.save_view(
        ViewDefinition(
            id="v1",
            name="Documents",
            workspace_id="docs",
            chain=[TagSelector("genre", "Genre", "Doc")],
        )
    )
    # /home/user/Documents/.VirtualDirectory/Doc/a.txt now exists
"""

from tagviewfs.views.base import (
    ConflictResult,
    FileQuery,
    QualifyingFile,
    ReconcileResult,
    SaveResult,
    TagSelector,
    ViewDefinition,
    ViewStore,
    Workspace,
)
from tagviewfs.views.catalog import CatalogError, TagCatalog
from tagviewfs.views.manager import ViewNotFoundError, VirtualViewService, WorkspaceError
from tagviewfs.views.plan import PlanFile, PlanNode, PlanOptions, PlanResult
from tagviewfs.views.relinker import LinkSnapshot
from tagviewfs.views.store import StoreError, YamlViewStore

__all__ = [
    # Data model
    "TagSelector",
    "ViewDefinition",
    "Workspace",
    "QualifyingFile",
    # Results
    "ConflictResult",
    "SaveResult",
    "ReconcileResult",
    "LinkSnapshot",
    "PlanResult",
    # Plans
    "PlanNode",
    "PlanFile",
    "PlanOptions",
    # Collaborators
    "FileQuery",
    "ViewStore",
    "TagCatalog",
    "YamlViewStore",
    # Service
    "VirtualViewService",
    # Errors
    "WorkspaceError",
    "ViewNotFoundError",
    "CatalogError",
    "StoreError",
]
