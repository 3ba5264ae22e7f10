"""Domain exceptions."""

from pathlib import Path
from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so log lines and callers can use it
    # without parsing str(exception). Never raise this directly, raise a subclass so callers
    # can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when input violates a business rule (empty title, negative duration)."""

    pass


class DuplicateEntityException(DomainException):
    """Raised when trying to create a duplicate entity.

    For songs this means another row already owns the same relative file path.
    The scanner treats it as "already catalogued", never as a failure.
    """

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} already exists")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConfigurationError(DomainException):
    """Raised when settings are invalid at startup (unwritable DB dir, bad URL)."""

    pass


# =============================================================================
# LIBRARY PIPELINE ERRORS
# Hey future me - every one of these is contained to ONE file or ONE field!
# None of them may stop a scan pass. Catch them per file, log, move on.
# =============================================================================


class MetadataUnreadableError(DomainException):
    """Raised when neither tags nor a size-based duration could be obtained for a file."""

    def __init__(self, path: Path | str, reason: str = "") -> None:
        message = f"Could not read metadata from {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = str(path)


class InvalidFilenameError(DomainException):
    """Raised when a file name has no usable stem (e.g. '.mp3')."""

    def __init__(self, filename: str) -> None:
        super().__init__(f"Cannot infer metadata from file name '{filename}'")
        self.filename = filename


class EnrichmentMissError(DomainException):
    """Raised when the lookup service has nothing for a song.

    Covers non-200 answers, empty bodies, timeouts and transport errors alike.
    The field simply stays unresolved until a later pass.
    """

    def __init__(self, kind: str, title: str, reason: str = "") -> None:
        message = f"No {kind} found for '{title}'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.kind = kind
        self.title = title


class SidecarWriteError(DomainException):
    """Raised when a .lrc/.jpg/.png sidecar could not be written next to the audio file."""

    def __init__(self, path: Path | str, reason: str = "") -> None:
        message = f"Failed to write sidecar {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = str(path)


class DirectoryWalkError(DomainException):
    """A directory below the music root could not be listed; logged, subtree skipped."""

    def __init__(self, path: Path | str, reason: str = "") -> None:
        message = f"Cannot walk directory {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = str(path)


class ScanAlreadyRunningError(DomainException):
    """Raised when a scan is triggered while another pass is still in flight."""

    def __init__(self) -> None:
        super().__init__("A library scan is already running")


__all__ = [
    "ConfigurationError",
    "DirectoryWalkError",
    "DomainException",
    "DuplicateEntityException",
    "EnrichmentMissError",
    "EntityNotFoundException",
    "InvalidFilenameError",
    "MetadataUnreadableError",
    "ScanAlreadyRunningError",
    "SidecarWriteError",
    "ValidationException",
]
