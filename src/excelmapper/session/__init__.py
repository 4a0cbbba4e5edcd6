"""Server-held upload records and interactive mapping workspaces."""

from .models import SessionRecord, NotFoundError
from .store import RecordStore, SessionStore
from .workspace import (
    MapperWorkspace,
    WorkspaceManager,
    TemplateNotReadyError,
    DuplicateWorkbookError,
    UnknownTemplateColumnError,
    ROLE_TEMPLATE,
    ROLE_SOURCE,
)

__all__ = [
    "SessionRecord",
    "NotFoundError",
    "RecordStore",
    "SessionStore",
    "MapperWorkspace",
    "WorkspaceManager",
    "TemplateNotReadyError",
    "DuplicateWorkbookError",
    "UnknownTemplateColumnError",
    "ROLE_TEMPLATE",
    "ROLE_SOURCE",
]
