"""Record grid projection: filter, sort, group and distinguish a record library."""

from recordgrid.models import (
    DistinguishConfig,
    DistinguishedGroup,
    FilterConfig,
    GroupConfig,
    Projection,
    Record,
    RegularGroup,
    SomeFilters,
    SortPill,
    ViewConfig,
)
from recordgrid.projection import ProjectionCache, project

__version__ = "0.1.0"
