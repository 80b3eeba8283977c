"""Region and persisted-record models.

``Region`` is the logical, in-memory object: an anchor plus label-state
snapshots plus (while its document is mounted) the markers drawing it.
``RegionRecord`` is the persisted form, one record per region/label-state
pairing, validated with pydantic on the way in.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from htmlregions.dom.anchoring import Anchor
from htmlregions.dom.highlight import MarkerHandle, unwrap_markers
from htmlregions.errors import MalformedRecord

if TYPE_CHECKING:
    from htmlregions.dom.tree import LiveRange
    from htmlregions.labels import LabelStateRef

# Record ``type`` of a region with no label state attached
BARE_REGION_TYPE = "htmlregion"


@dataclass(eq=False)
class Region:
    """An anchored span of a document with its attached label states.

    Attributes:
        anchor: Where the region is, independent of the live tree.
        label_states: Snapshots of the label states active when the region
            was created (or restored from records).
        id: Unique within a RegionStore; shared by all records of the region.
        text: Covered text, filled in whenever the region is bound.
        document: Name of the owning document (a relation, not ownership).
        source: The owning document's raw value/template source.
        normalization: Optional note carried through persistence unchanged.
        markers: Marker ownership while bound to a mounted document.
        live_range: Range in the live tree from the last bind; only valid
            until the tree is next mutated.
    """

    anchor: Anchor
    label_states: list[LabelStateRef] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid4().hex)
    text: str = ""
    document: str = ""
    source: str = ""
    normalization: str | None = None
    markers: MarkerHandle | None = field(default=None, repr=False)
    live_range: LiveRange | None = field(default=None, repr=False)
    selected: bool = False
    highlighted: bool = False

    @property
    def is_bound(self) -> bool:
        return self.markers is not None and not self.markers.released

    @property
    def is_bare(self) -> bool:
        return not self.label_states

    def release_markers(self) -> None:
        """Unwrap this region's markers (if any) and forget the live range."""
        if self.markers is not None:
            unwrap_markers(self.markers)
        self.markers = None
        self.live_range = None
        self.selected = False
        self.highlighted = False


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


class RecordValue(BaseModel):
    """``value`` of a record: anchor fields plus an optional label payload.

    The label payload is keyed by label kind (``{"labels": ["PER"]}``) and
    kept as an extra field.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    start_offset: int = Field(alias="startOffset", ge=0)
    end_offset: int = Field(alias="endOffset", ge=0)
    start: str
    end: str


class RegionRecord(BaseModel):
    """One persisted region/label-state pairing."""

    model_config = ConfigDict(extra="ignore")

    id: str
    from_name: str
    to_name: str
    source: str = ""
    type: str
    value: RecordValue
    normalization: str | None = None

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> RegionRecord:
        """Validate *raw*.

        Raises:
            MalformedRecord: If required fields are missing or invalid.
        """
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            msg = f"Malformed region record: {exc.error_count()} validation error(s)"
            raise MalformedRecord(msg, raw) from exc

    def anchor(self) -> Anchor:
        return Anchor.from_strings(
            self.value.start,
            self.value.start_offset,
            self.value.end,
            self.value.end_offset,
        )

    def label_values(self, kind: str | None = None) -> tuple[str, ...]:
        """Selected values stored under *kind* (default: the record type)."""
        payload = (self.value.model_extra or {}).get(kind or self.type)
        if payload is None:
            return ()
        if isinstance(payload, (list, tuple)):
            return tuple(str(item) for item in payload)
        return (str(payload),)

    def dump(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
