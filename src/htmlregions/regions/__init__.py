"""Logical regions: model, ordered store, and record serialisation."""

from htmlregions.regions.models import (
    BARE_REGION_TYPE,
    RecordValue,
    Region,
    RegionRecord,
)
from htmlregions.regions.serializer import (
    BindReport,
    RegionSerializer,
    flat_control_predicate,
)
from htmlregions.regions.store import RegionStore

__all__ = [
    "BARE_REGION_TYPE",
    "BindReport",
    "RecordValue",
    "Region",
    "RegionRecord",
    "RegionSerializer",
    "RegionStore",
    "flat_control_predicate",
]
