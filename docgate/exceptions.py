"""Custom exceptions for docgate."""

from __future__ import annotations


class DocgateError(Exception):
    """Base exception for all docgate errors.

    Each subclass names the HTTP status and CouchDB-style error identifier the
    API layer renders it with.
    """

    status_code: int = 500
    error: str = "unknown_error"


class ConfigurationError(DocgateError):
    """Raised when configuration is invalid or missing."""

    pass


class ConfigKeyNotFoundError(DocgateError):
    """Raised when a configuration section or key has no value."""

    status_code = 404
    error = "not_found"


class DirectoryCreationError(ConfigurationError):
    """Raised when the storage directory cannot be created."""

    pass


class ConfigRebuildError(DocgateError):
    """Raised when a bound rebuild function fails."""

    pass


class InitialRebuildError(ConfigRebuildError):
    """Raised when a rebuild fails while establishing initial state."""

    def __init__(self, binding: str, cause: BaseException) -> None:
        super().__init__(f"Initial rebuild of binding '{binding}' failed: {cause}")
        self.binding = binding
        self.cause = cause


class BackendNotFoundError(ConfigurationError):
    """Raised when a requested storage backend is not registered."""

    pass


class AuthenticationError(DocgateError):
    """Raised when a guarded request carries missing or wrong credentials."""

    status_code = 401
    error = "unauthorized"


class PortInUseError(DocgateError):
    """Raised when the listening port is already bound by another process."""

    def __init__(self, host: str, port: int) -> None:
        super().__init__(f"Port {port} on {host} is already in use")
        self.host = host
        self.port = port


class InvalidRequestError(DocgateError):
    """Raised when a request body or parameter is malformed."""

    status_code = 400
    error = "bad_request"


class DatabaseNotFoundError(DocgateError):
    """Raised when a database does not exist."""

    status_code = 404
    error = "not_found"


class DatabaseExistsError(DocgateError):
    """Raised when creating a database that already exists."""

    status_code = 412
    error = "file_exists"


class DocumentNotFoundError(DocgateError):
    """Raised when a document is missing or deleted."""

    status_code = 404
    error = "not_found"


class DocumentConflictError(DocgateError):
    """Raised when a write names a stale or missing revision."""

    status_code = 409
    error = "conflict"
