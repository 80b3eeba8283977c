"""Exception taxonomy for anchoring, rendering and restoring regions.

Four failure kinds, each handled differently by callers:

- ``RangeRejected``: a captured selection does not intersect the document
  root.  Capture never raises it; rejected ranges are handed back to the
  caller instead.  The class exists so callers can surface the condition
  uniformly if they want to.
- ``AnchorResolutionError``: an anchor cannot be located in the current
  document.  Batch binding skips the affected region and carries on.
- ``MalformedRecord``: a persisted record is missing or has invalid anchor
  fields.  Batch restore rejects that record only.
- ``StructuralMutationConflict``: a wrap/unwrap precondition was violated
  (boundaries never split, marker detached).  Programming error; fatal to
  the call.
"""

from __future__ import annotations

from typing import Any


class RegionError(Exception):
    """Base class for all htmlregions errors."""


class RangeRejected(RegionError):
    """A live range has no intersection with the document root."""


class AnchorResolutionError(RegionError):
    """An anchor path or offset does not exist in the current document.

    Attributes:
        path: The path that failed to resolve.
        component: Index into *path* of the failing component, or ``None``
            when the failure is in the offset rather than the path.
    """

    def __init__(
        self,
        message: str,
        path: tuple[int, ...] = (),
        component: int | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.component = component


class MalformedRecord(RegionError):
    """A persisted region record cannot be turned into a region.

    Attributes:
        record: The offending raw record (as received).
    """

    def __init__(self, message: str, record: Any = None) -> None:
        super().__init__(message)
        self.record = record


class StructuralMutationConflict(RegionError):
    """Marker wrap/unwrap invoked on a tree that violates its preconditions."""
