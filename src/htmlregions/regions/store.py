"""Ordered collection of the regions of one document."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from htmlregions.dom.anchoring import Path
    from htmlregions.regions.models import Region

logger = logging.getLogger(__name__)


class RegionStore:
    """Regions in insertion order.

    Insertion order is render order: later regions are drawn on top of (and
    nested inside the markers of) earlier ones.  Linear scans are fine for
    the handful of regions a document carries.
    """

    def __init__(self) -> None:
        self._regions: list[Region] = []

    def __iter__(self) -> Iterator[Region]:
        return iter(list(self._regions))

    def __len__(self) -> int:
        return len(self._regions)

    def __contains__(self, region: object) -> bool:
        return any(existing is region for existing in self._regions)

    def add(self, region: Region) -> Region:
        """Append *region*.

        Raises:
            ValueError: If a region with the same id is already stored.
        """
        if self.get(region.id) is not None:
            msg = f"Region id {region.id!r} already in store"
            raise ValueError(msg)
        self._regions.append(region)
        return region

    def remove(self, region: Region) -> None:
        """Release *region*'s markers and drop it from the store.

        Raises:
            KeyError: If *region* is not in the store.
        """
        for index, existing in enumerate(self._regions):
            if existing is region:
                region.release_markers()
                del self._regions[index]
                logger.debug("Removed region %s", region.id)
                return
        raise KeyError(region.id)

    def get(self, region_id: str) -> Region | None:
        return next((r for r in self._regions if r.id == region_id), None)

    def find(
        self,
        start_path: Path,
        start_offset: int,
        end_path: Path,
        end_offset: int,
    ) -> Region | None:
        """First region whose anchor matches the tuple exactly."""
        key = (tuple(start_path), start_offset, tuple(end_path), end_offset)
        return next((r for r in self._regions if r.anchor.key == key), None)

    def pending(self) -> list[Region]:
        """Regions without markers, in store order."""
        return [r for r in self._regions if not r.is_bound]

    def release_all(self) -> None:
        """Unwrap every region's markers, newest first."""
        for region in reversed(self._regions):
            region.release_markers()

    def clear(self) -> None:
        self.release_all()
        self._regions.clear()
