"""
Domain exceptions.
Structural failures only; malformed business data never raises (it coerces to zero).
"""
from __future__ import annotations


class WorkspaceError(Exception):
    """Base class for errors the API layer maps to a stable client response."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidOrganizationError(WorkspaceError):
    def __init__(self, message: str = "Organization not found") -> None:
        super().__init__(message)


class InvalidIdentifierError(WorkspaceError):
    def __init__(self, message: str = "Invalid document id") -> None:
        super().__init__(message)


class InvalidFilterError(WorkspaceError):
    pass


class DocumentNotFoundError(WorkspaceError):
    def __init__(self, label: str, document_id: str = "") -> None:
        super().__init__(f"{label} not found")
        self.label = label
        self.document_id = document_id
