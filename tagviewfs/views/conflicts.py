"""
TagViewFS Views: Tag-Chain Conflict Checker.

Within one workspace no view's chain may be a strict ordered prefix of
another's:

- a candidate that is a prefix of a longer existing view is rejected
  (the broader view would shadow the more specific one);
- existing views that are prefixes of the candidate are superseded and
  removed when the candidate is saved.

Chain elements compare by (dimension_id, tag_value), position by position.
"""

from typing import Iterable, List, Optional, Sequence

from tagviewfs.views.base import ConflictResult, TagSelector, ViewDefinition, chain_keys


def is_strict_prefix(shorter: Sequence[TagSelector], longer: Sequence[TagSelector]) -> bool:
    """True if ``shorter`` is an ordered leading subsequence of a longer ``longer``."""
    if len(shorter) >= len(longer):
        return False
    return chain_keys(shorter) == chain_keys(longer[: len(shorter)])


def same_chain(a: Sequence[TagSelector], b: Sequence[TagSelector]) -> bool:
    return chain_keys(a) == chain_keys(b)


def shares_directories(a: ViewDefinition, b: ViewDefinition) -> bool:
    """True if two views materialize into at least one common level directory."""
    return bool(a.chain) and bool(b.chain) and a.chain[0].tag_value == b.chain[0].tag_value


def _others(views: Iterable[ViewDefinition], exclude_view_id: Optional[str]) -> List[ViewDefinition]:
    return [view for view in views if view.id != exclude_view_id]


def find_blocking_view(
    chain: Sequence[TagSelector],
    views: Iterable[ViewDefinition],
    exclude_view_id: Optional[str] = None,
) -> Optional[ViewDefinition]:
    """Return the first existing view the candidate chain is a prefix of."""
    for view in _others(views, exclude_view_id):
        if is_strict_prefix(chain, view.chain):
            return view
    return None


def find_superseded_views(
    chain: Sequence[TagSelector],
    views: Iterable[ViewDefinition],
    exclude_view_id: Optional[str] = None,
) -> List[ViewDefinition]:
    """Return every existing view whose chain is a prefix of the candidate."""
    return [view for view in _others(views, exclude_view_id) if is_strict_prefix(view.chain, chain)]


def check_conflict(
    chain: Sequence[TagSelector],
    views: Iterable[ViewDefinition],
    exclude_view_id: Optional[str] = None,
) -> Optional[ConflictResult]:
    """
    Check whether saving ``chain`` must be rejected.

    Args:
        chain: Candidate tag chain
        views: All views of the workspace
        exclude_view_id: Id of the view being re-saved, if any

    Returns:
        ConflictResult naming the blocking view, or None if the save may proceed
    """
    blocker = find_blocking_view(chain, views, exclude_view_id)
    if blocker is None:
        return None
    return ConflictResult(view_id=blocker.id, view_name=blocker.name)
