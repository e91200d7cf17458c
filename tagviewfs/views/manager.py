"""
TagViewFS Views: Virtual View Service.

Facade over the view engine. Each public operation is a one-shot pass that
converges a workspace's virtual tree towards its invariants:

- no view's chain is a strict prefix of another's;
- a captured file is linked once per view, at the deepest matching level,
  and in no other view;
- every link matches a currently tagged, currently existing source file;
- no empty directories remain below the virtual root.

Per-file failures are logged and skipped; running the pass again repairs
whatever was left behind. Only workspace-level failures propagate.

Example:
    >>> service = VirtualViewService(LocalFileSystem(), catalog, store)
    >>> result = service.save_view(view)
    >>> result.ok, result.virtual_path
    (True, '/home/user/Documents/.VirtualDirectory/Finance/Invoices')
"""

import os
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from tagviewfs.core.constants import (
    DEFAULT_LANGUAGE,
    THUMBNAIL_FOLDER,
    VIRTUAL_ROOT_NAME,
    ConfigKey,
    ErrorCode,
)
from tagviewfs.core.file_ops import FileOperationError, FileSystem
from tagviewfs.core.logging import Logger, get_logger
from tagviewfs.core.validators import (
    ValidationError,
    validate_path_component,
    validate_tag_chain,
    validate_view_definition,
)
from tagviewfs.views.base import (
    ConflictResult,
    FileQuery,
    ReconcileResult,
    SaveResult,
    TagSelector,
    ViewDefinition,
    ViewStore,
    Workspace,
    chain_values,
    utcnow,
)
from tagviewfs.views.conflicts import (
    check_conflict,
    find_superseded_views,
    is_strict_prefix,
    shares_directories,
)
from tagviewfs.views.dedup import BottomUpDeduplicator
from tagviewfs.views.exclusivity import ExclusivityEnforcer
from tagviewfs.views.marker import MarkerWriter
from tagviewfs.views.paths import VirtualPathBuilder
from tagviewfs.views.plan import (
    PlanFile,
    PlanMaterializer,
    PlanNode,
    PlanOptions,
    PlanResult,
    node_chains,
)
from tagviewfs.views.projector import HardlinkProjector, ProjectionResult
from tagviewfs.views.reconciler import EmptyDirectoryPruner, StaleLinkReconciler
from tagviewfs.views.relinker import LinkSnapshot, MoveTimeRelinker


class WorkspaceError(Exception):
    """Workspace-level failure: unknown workspace or unusable virtual root."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.NOT_FOUND):
        super().__init__(message)
        self.error_code = error_code


class ViewNotFoundError(Exception):
    """A view id that isn't in the store."""

    def __init__(self, view_id: str):
        super().__init__(f"View not found: {view_id}")
        self.view_id = view_id
        self.error_code = ErrorCode.NOT_FOUND


class VirtualViewService:
    """
    Materializes tag-chain views of workspaces as hardlink trees.

    Attributes:
        fs: Filesystem primitives
        query: Tag query collaborator
        store: View and workspace persistence
        virtual_root_name: Name of the hidden folder under each workspace root
        thumbnail_folder: Reserved folder below the virtual root, never walked
        language: Language of the marker read-me
    """

    def __init__(
        self,
        fs: FileSystem,
        query: FileQuery,
        store: ViewStore,
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize the service.

        Args:
            fs: Filesystem primitives
            query: Tag query collaborator
            store: View store
            config: The ``tagviewfs`` configuration section
            logger: Logger; components log through children of it
        """
        config = config or {}
        self.fs = fs
        self.query = query
        self.store = store
        self.logger = logger or get_logger()
        self.virtual_root_name = config.get(ConfigKey.VIRTUAL_ROOT_NAME) or VIRTUAL_ROOT_NAME
        self.thumbnail_folder = config.get(ConfigKey.THUMBNAIL_FOLDER) or THUMBNAIL_FOLDER
        self.language = config.get(ConfigKey.LANGUAGE) or DEFAULT_LANGUAGE

        self.marker = MarkerWriter(
            fs,
            language=self.language,
            logger=self.logger.child("marker"),
            context={
                "virtual_root_name": self.virtual_root_name,
                "thumbnail_folder": self.thumbnail_folder,
            },
        )

    # Workspace helpers

    def _workspace(self, workspace_id: str) -> Workspace:
        workspace = self.store.get_workspace(workspace_id)
        if workspace is None:
            raise WorkspaceError(f"Workspace not found: {workspace_id}")
        return workspace

    def virtual_root(self, workspace: Workspace) -> str:
        return workspace.virtual_root(self.virtual_root_name)

    def _prepare_root(self, workspace: Workspace) -> str:
        """Create the virtual root and its read-me."""
        root = self.virtual_root(workspace)
        try:
            self.fs.mkdir_all(root)
        except FileOperationError as e:
            raise WorkspaceError(f"Cannot create virtual root {root}: {e}", e.error_code)
        self.marker.ensure(root)
        return root

    def _resolve_file_workspace(self, file_id: str, workspace_id: Optional[str]) -> Workspace:
        workspace_id = workspace_id or self.query.workspace_of(file_id)
        if workspace_id is None:
            raise WorkspaceError(f"Cannot tell which workspace file {file_id} belongs to")
        return self._workspace(workspace_id)

    def _projector(self, paths: VirtualPathBuilder) -> HardlinkProjector:
        return HardlinkProjector(self.fs, self.query, paths, self.logger.child("projector"))

    def _pruner(self) -> EmptyDirectoryPruner:
        return EmptyDirectoryPruner(self.fs, self.logger.child("pruner"), self.thumbnail_folder)

    # Conflicts

    def check_conflict(
        self,
        workspace_id: str,
        chain: Sequence[TagSelector],
        exclude_view_id: Optional[str] = None,
    ) -> Optional[ConflictResult]:
        """
        Check whether a chain may be saved in a workspace.

        Returns:
            ConflictResult naming the longer view that blocks the save, or None
        """
        validate_tag_chain(chain)
        return check_conflict(chain, self.store.list_views(workspace_id), exclude_view_id)

    # Saving

    def _materialize(self, view: ViewDefinition, root: str, others: Sequence[ViewDefinition]) -> ProjectionResult:
        """Project, deduplicate, enforce exclusivity and prune for one view."""
        paths = VirtualPathBuilder(root)

        with self.logger.add_context(view=view.id):
            projection = self._projector(paths).project(view)
            dedup = BottomUpDeduplicator(self.fs, paths, self.logger.child("dedup"))
            dedup.deduplicate(view)
            # Projection refills shared ancestor directories, so views sharing
            # them need their deeper links deduplicated again
            for other in others:
                if shares_directories(view, other):
                    dedup.deduplicate(other)
            ExclusivityEnforcer(self.fs, paths, self.logger.child("exclusivity")).enforce(
                view, projection.captured, others
            )
            self._pruner().prune(root)

        return projection

    def save_view(self, definition: ViewDefinition) -> SaveResult:
        """
        Save and materialize a view.

        A chain that is a prefix of a longer existing view is rejected and
        reported in the result. Existing views whose chains are prefixes of
        this one are deleted.

        Raises:
            ValidationError: If the definition is malformed
            WorkspaceError: If the workspace is unknown or its root unusable
        """
        validate_view_definition(definition)
        workspace = self._workspace(definition.workspace_id)
        views = self.store.list_views(workspace.id)

        conflict = check_conflict(definition.chain, views, definition.id)
        if conflict is not None:
            self.logger.warning(
                "View rejected, chain is a prefix of a longer view",
                view=definition.id,
                blocking_view=conflict.view_id,
                blocking_name=conflict.view_name,
            )
            return SaveResult(view_id=definition.id, conflict=conflict)

        root = self._prepare_root(workspace)
        paths = VirtualPathBuilder(root)

        removed_ids = []
        for old in find_superseded_views(definition.chain, views, definition.id):
            self.store.delete_view(old.id)
            removed_ids.append(old.id)
            self.logger.info("Removed superseded view", view=old.id, name=old.name, superseded_by=definition.id)

        existing = self.store.get_view(definition.id)
        now = utcnow()
        view = replace(
            definition,
            created_at=existing.created_at if existing else definition.created_at,
            updated_at=now,
            saved_at=now,
        )
        self.store.put_view(view)

        remaining = [v for v in views if v.id != view.id and v.id not in removed_ids]
        if existing is not None and chain_values(existing.chain) != chain_values(view.chain):
            self._remove_chain_dirs(existing, remaining + [view], paths)

        projection = self._materialize(view, root, remaining)
        self.logger.info(
            "Saved view",
            view=view.id,
            name=view.name,
            chain=" -> ".join(view.tag_values),
            linked=projection.linked,
            captured=len(projection.captured),
        )

        return SaveResult(
            view_id=view.id,
            virtual_path=paths.level_dir(view.chain, view.depth),
            removed_view_ids=removed_ids,
            linked=projection.linked,
        )

    def batch_save_views(
        self,
        workspace_id: str,
        specs: Sequence[Union[ViewDefinition, Mapping[str, Any]]],
    ) -> List[SaveResult]:
        """
        Save several views in order.

        Specs may be ViewDefinitions or dictionaries in ViewDefinition.to_dict
        form; a missing id is generated. Conflicting and invalid specs are
        logged and skipped.
        """
        results = []
        for spec in specs:
            if isinstance(spec, ViewDefinition):
                view = replace(spec, workspace_id=workspace_id)
            else:
                data = dict(spec)
                data["workspace_id"] = workspace_id
                data.setdefault("id", uuid.uuid4().hex)
                try:
                    view = ViewDefinition.from_dict(data)
                except (KeyError, TypeError, ValueError) as e:
                    self.logger.error("Invalid view spec, skipped", error=str(e))
                    continue

            try:
                result = self.save_view(view)
            except ValidationError as e:
                self.logger.error("Invalid view, skipped", view=view.id, error=str(e))
                continue

            if not result.ok:
                self.logger.warning("Conflicting view skipped", view=view.id, blocking_view=result.conflict.view_id)
            results.append(result)
        return results

    # Deleting and renaming

    def _remove_chain_dirs(
        self,
        view: ViewDefinition,
        remaining: Sequence[ViewDefinition],
        paths: VirtualPathBuilder,
    ) -> int:
        """
        Remove a view's level directories from the deepest up.

        Stops at the first level whose directory is still the prefix
        directory of another view.
        """
        removed = 0
        for level in range(view.depth, 0, -1):
            prefix = chain_values(view.chain[:level])
            if any(chain_values(other.chain[:level]) == prefix for other in remaining):
                break

            directory = paths.level_dir(view.chain, level)
            try:
                if self.fs.remove_tree(directory):
                    removed += 1
                    self.logger.debug("Removed view directory", view=view.id, path=directory)
            except FileOperationError as e:
                self.logger.error("Cannot remove view directory", path=directory, error=str(e))
                break
        return removed

    def delete_view(self, view_id: str) -> None:
        """
        Delete a view record and its tag-chain directories.

        Raises:
            ViewNotFoundError: If no such view exists
        """
        view = self.store.get_view(view_id)
        if view is None:
            raise ViewNotFoundError(view_id)

        self.store.delete_view(view_id)
        workspace = self.store.get_workspace(view.workspace_id)
        if workspace is None:
            self.logger.warning("Deleted view of unknown workspace", view=view_id, workspace=view.workspace_id)
            return

        root = self.virtual_root(workspace)
        remaining = self.store.list_views(workspace.id)
        removed = self._remove_chain_dirs(view, remaining, VirtualPathBuilder(root))
        self._pruner().prune(root)
        self.logger.info("Deleted view", view=view_id, name=view.name, removed_directories=removed)

    def rename_view(self, view_id: str, new_name: str) -> None:
        """Rename a view. Paths depend on tags only and are left alone."""
        if not isinstance(new_name, str) or not new_name.strip():
            raise ValidationError("View name must be a non-empty string")

        view = self.store.get_view(view_id)
        if view is None:
            raise ViewNotFoundError(view_id)

        self.store.put_view(view.renamed(new_name))
        self.logger.info("Renamed view", view=view_id, old_name=view.name, new_name=new_name)

    def list_views(self, workspace_id: str) -> List[ViewDefinition]:
        return sorted(self.store.list_views(workspace_id), key=lambda v: (v.created_at, v.id))

    # Workspace-wide passes

    def reconcile_workspace(self, workspace_id: str) -> ReconcileResult:
        """
        Remove stale links and empty directories from a workspace.

        Returns:
            ReconcileResult with scan and removal counts
        """
        workspace = self._workspace(workspace_id)
        root = self.virtual_root(workspace)
        if not self.fs.exists(root):
            self.logger.debug("No virtual root to reconcile", workspace=workspace_id)
            return ReconcileResult()

        reconciler = StaleLinkReconciler(
            self.fs,
            self.query,
            VirtualPathBuilder(root),
            self.logger.child("reconciler"),
            self.thumbnail_folder,
        )
        return reconciler.reconcile(workspace_id, self.store.list_views(workspace_id))

    def refresh_workspace(self, workspace_id: str) -> int:
        """
        Re-materialize every view of a workspace, oldest save first.

        Used after a batch of tag changes. The most recently saved view
        wins any exclusivity contest, as it would on individual saves.

        Returns:
            Number of views refreshed
        """
        workspace = self._workspace(workspace_id)
        root = self._prepare_root(workspace)
        views = sorted(self.store.list_views(workspace_id), key=lambda v: (v.saved_at, v.id))

        for view in views:
            others = [v for v in views if v.id != view.id]
            self._materialize(view, root, others)

        self.logger.info("Refreshed workspace", workspace=workspace_id, views=len(views))
        return len(views)

    # Moves

    def _relinker(self, workspace: Workspace) -> MoveTimeRelinker:
        return MoveTimeRelinker(
            self.fs,
            self.query,
            workspace.id,
            self.virtual_root(workspace),
            self.logger.child("relinker"),
            self.thumbnail_folder,
        )

    def capture_links(self, file_id: str, workspace_id: Optional[str] = None) -> Optional[LinkSnapshot]:
        """Record a file's links before it moves."""
        workspace = self._resolve_file_workspace(file_id, workspace_id)
        return self._relinker(workspace).capture(file_id)

    def relink_after_move(
        self,
        file_id: str,
        new_path: str,
        snapshot: Optional[LinkSnapshot] = None,
        workspace_id: Optional[str] = None,
    ) -> int:
        """
        Repair a moved file's links.

        Returns:
            Number of links recreated
        """
        workspace = self._resolve_file_workspace(file_id, workspace_id)
        return self._relinker(workspace).relink(file_id, new_path, snapshot)

    def move_file(self, file_id: str, new_path: str, workspace_id: Optional[str] = None) -> int:
        """
        Move a source file and keep its links valid.

        Captures the links, renames the directory entry, records the new
        path with the query collaborator, and relinks.

        Raises:
            ValidationError: If the file is unknown
            FileOperationError: If the rename fails

        Returns:
            Number of links recreated
        """
        file = self.query.get_file(file_id)
        if file is None:
            raise ValidationError(f"Unknown file: {file_id}", ErrorCode.NOT_FOUND)

        workspace = self._resolve_file_workspace(file_id, workspace_id)
        relinker = self._relinker(workspace)
        snapshot = relinker.capture(file_id)

        new_path = os.path.abspath(new_path)
        self.fs.mkdir_all(os.path.dirname(new_path))
        self.fs.rename(file.path, new_path)
        self.query.update_file_path(file_id, new_path)
        self.logger.info("Moved file", file_id=file_id, source=file.path, destination=new_path)

        return relinker.relink(file_id, new_path, snapshot)

    # Plans

    def _save_plan_views(self, workspace: Workspace, nodes: Sequence[PlanNode]) -> List[str]:
        """
        Persist tagged plan nodes as views with cumulative chains.

        Only the deepest tagged nodes are saved, since a parent node's chain
        is a prefix of its children's.
        """
        chains = node_chains(nodes)
        tagged = [node for node in nodes if chains.get(node.name)]
        existing_by_name = {v.name: v for v in self.store.list_views(workspace.id)}
        saved = []

        for node in tagged:
            chain = chains[node.name]
            if any(is_strict_prefix(chain, chains[other.name]) for other in tagged):
                continue
            try:
                validate_tag_chain(chain)
            except ValidationError as e:
                self.logger.warning("Plan node chain invalid, not saved", node=node.name, error=str(e))
                continue

            previous = existing_by_name.get(node.name)
            views = self.store.list_views(workspace.id)
            view_id = previous.id if previous else f"plan-{uuid.uuid4().hex[:12]}"

            conflict = check_conflict(chain, views, view_id)
            if conflict is not None:
                self.logger.warning("Plan node conflicts with a view, not saved", node=node.name, blocking_view=conflict.view_id)
                continue
            for old in find_superseded_views(chain, views, view_id):
                self.store.delete_view(old.id)

            parent = existing_by_name.get(node.parent) if node.parent else None
            self.store.put_view(
                ViewDefinition(
                    id=view_id,
                    name=node.name,
                    workspace_id=workspace.id,
                    chain=chain,
                    parent_id=parent.id if parent else None,
                    description=node.description,
                    created_at=previous.created_at if previous else utcnow(),
                )
            )
            saved.append(view_id)

        return saved

    def generate_from_plan(
        self,
        workspace_id: str,
        directory_tree: Sequence[Union[PlanNode, Mapping[str, Any]]],
        file_assignments: Mapping[str, Sequence[Union[PlanFile, Mapping[str, Any]]]],
        options: Optional[PlanOptions] = None,
    ) -> PlanResult:
        """
        Replace a workspace's virtual tree with an externally computed plan.

        Args:
            workspace_id: Target workspace
            directory_tree: Plan nodes, parents first
            file_assignments: Node name to files linked into that node
            options: Layout and persistence options

        Returns:
            PlanResult with the number of links created
        """
        options = options or PlanOptions()
        workspace = self._workspace(workspace_id)

        nodes = [n if isinstance(n, PlanNode) else PlanNode.from_dict(dict(n)) for n in directory_tree]
        for node in nodes:
            validate_path_component(node.name, "plan node name")
        assignments = {
            str(name): [f if isinstance(f, PlanFile) else PlanFile.from_dict(dict(f)) for f in files or []]
            for name, files in file_assignments.items()
        }

        root = self._prepare_root(workspace)
        paths = VirtualPathBuilder(root)
        materializer = PlanMaterializer(
            self.fs,
            self._projector(paths),
            root,
            self.logger.child("plan"),
            self.thumbnail_folder,
        )

        try:
            result = materializer.materialize(nodes, assignments, options)
        except FileOperationError as e:
            raise WorkspaceError(f"Cannot materialize plan into {root}: {e}", e.error_code)

        if options.save_views:
            result.saved_view_ids = self._save_plan_views(workspace, nodes)
        return result
