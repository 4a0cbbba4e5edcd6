"""Excel Mapper - spreadsheet column mapping and merge engine."""

__version__ = "0.1.0"
