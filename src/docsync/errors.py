"""Exception types and error classification."""

from enum import Enum


class ErrorKind(str, Enum):
    """Broad classes of failure, used to decide how far an error propagates."""

    TRANSIENT = "transient"
    CONFIGURATION = "configuration"
    MALFORMED_INPUT = "malformed_input"
    CONCURRENCY = "concurrency"
    CANCELLED = "cancelled"


class DocSyncError(Exception):
    """Base class for docsync errors."""

    kind = ErrorKind.TRANSIENT


class ConfigError(DocSyncError):
    """A configuration value is missing or malformed."""

    kind = ErrorKind.CONFIGURATION


class FolderNotFoundError(DocSyncError):
    """A registered folder path is missing or not a directory."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, folder_path: str):
        super().__init__(f"Folder not found or not a directory: {folder_path}")
        self.folder_path = folder_path


class UnknownFolderError(DocSyncError):
    """No sync folder is registered under the given id."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, folder_id: str):
        super().__init__(f"Unknown sync folder: {folder_id}")
        self.folder_id = folder_id


class SyncConflictError(DocSyncError):
    """A folder path is already registered for the same agent."""

    kind = ErrorKind.CONCURRENCY


def classify_error(error: BaseException) -> ErrorKind:
    """Map an arbitrary exception onto an ErrorKind."""
    if isinstance(error, DocSyncError):
        return error.kind
    if isinstance(error, (FileNotFoundError, NotADirectoryError, PermissionError)):
        return ErrorKind.CONFIGURATION
    if isinstance(error, (ValueError, UnicodeError)):
        return ErrorKind.MALFORMED_INPUT
    return ErrorKind.TRANSIENT
