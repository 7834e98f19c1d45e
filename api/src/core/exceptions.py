"""
Core Exceptions

Custom exceptions for the app import/export engine.
Routers translate these into HTTP responses; services never raise HTTP errors.
"""

from uuid import UUID


class InvalidSnapshotError(Exception):
    """
    Raised when an import document cannot be read as an app snapshot.

    Raised before any database work, so nothing is ever persisted for
    a rejected snapshot.
    """

    def __init__(self, message: str = "Invalid params for app import"):
        self.message = message
        super().__init__(self.message)


class AppNotFoundError(Exception):
    """
    Raised when an application does not exist in the caller's organization.

    Applications owned by other organizations are reported the same way
    as missing ones.
    """

    def __init__(self, app_id: UUID | str, message: str | None = None):
        self.app_id = app_id
        self.message = message or f"Application '{app_id}' not found"
        super().__init__(self.message)


class EnvironmentNotFoundError(Exception):
    """Raised when data source options have no environment to attach to."""

    def __init__(self, message: str = "Environment not found"):
        self.message = message
        super().__init__(self.message)


class SlugAssignmentError(Exception):
    """
    Raised when the post-commit slug assignment of an import fails.

    The application itself is already committed at this point; it keeps
    a NULL slug until repaired or re-imported.
    """

    def __init__(self, app_id: UUID, message: str | None = None):
        self.app_id = app_id
        self.message = message or f"Imported application {app_id} has no slug"
        super().__init__(self.message)
