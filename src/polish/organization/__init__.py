"""Organization pipeline: placement, archive expansion, and the engine."""

from .archives import ArchiveError, ArchiveExpander
from .engine import OrganizationEngine
from .models import FailedFile, OrganizationResult, OrganizationSummary, ProcessedFile
from .placement import PlacementPlanner

__all__ = [
    "ArchiveError",
    "ArchiveExpander",
    "FailedFile",
    "OrganizationEngine",
    "OrganizationResult",
    "OrganizationSummary",
    "PlacementPlanner",
    "ProcessedFile",
]
