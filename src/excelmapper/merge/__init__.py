"""Merge strategies producing the mapped output table."""

from .models import MergedTable, records_to_table
from .concat import concatenate_rows
from .lookup import lookup_join, lookup_table

__all__ = [
    "MergedTable",
    "records_to_table",
    "concatenate_rows",
    "lookup_join",
    "lookup_table",
]
