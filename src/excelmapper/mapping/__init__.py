"""Template-column to source-column mappings."""

from .models import ColumnMapping, MappingIssue, MissingMappingTargetError
from .registry import MappingRegistry

__all__ = [
    "ColumnMapping",
    "MappingIssue",
    "MissingMappingTargetError",
    "MappingRegistry",
]
