"""Ordering rules for live resources held against a plan limit."""
from __future__ import annotations

from datetime import timezone
from typing import List, Protocol, Sequence

from ..limits import Limit, is_unlimited
from .models import LiveResource, LiveResourceType


class LiveResourceRepository(Protocol):
    """Data access layer for workspaces and team members."""

    def list_active(self, owner_id: str, resource_type: LiveResourceType) -> Sequence[LiveResource]:
        ...

    def deactivate_excess(self, owner_id: str, resource_type: LiveResourceType, keep: int) -> List[str]:
        """Deactivate every active row beyond the ``keep`` most recently used ones.

        Returns the ids that were deactivated by this call.
        """
        ...


def _usage_key(resource: LiveResource):
    created = resource.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    last_used = resource.last_used_at
    if last_used is not None and last_used.tzinfo is None:
        last_used = last_used.replace(tzinfo=timezone.utc)
    return (last_used or created, created, resource.id)


def most_recently_used_first(resources: Sequence[LiveResource]) -> List[LiveResource]:
    """Order resources so the ones to keep come first.

    A row that was never used counts as used when it was created. Ties fall
    back to newer ``created_at`` and then the larger id.
    """

    return sorted(resources, key=_usage_key, reverse=True)


def select_excess(resources: Sequence[LiveResource], limit: Limit) -> List[LiveResource]:
    """Return the rows that fall outside ``limit``, least recently used first."""

    if is_unlimited(limit):
        return []
    ordered = most_recently_used_first(resources)
    return list(reversed(ordered[max(int(limit), 0):]))


__all__ = [
    "LiveResourceRepository",
    "most_recently_used_first",
    "select_excess",
]
