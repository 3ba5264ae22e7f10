"""Human-readable OSError messages for filesystem failures in the library pipeline."""

import errno
from pathlib import Path
from typing import Any

# Hey future me - maps errno codes to a short description plus a hint about what to check.
# The music root is usually a network share or a bind mount, so most failures are
# permissions, read-only mounts or vanished paths. Add entries when users report new ones.
ERRNO_MESSAGES = {
    errno.EACCES: (
        "Permission denied",
        "Check that the service user can read the music directory and write next to the audio files.",
    ),
    errno.EPERM: (
        "Operation not permitted",
        "Check ownership of the music directory.",
    ),
    errno.EROFS: (
        "Read-only filesystem",
        "The music directory is mounted read-only, sidecars (.lrc/.jpg) cannot be written.",
    ),
    errno.ENOSPC: (
        "No space left on device",
        "Disk is full. Free some space so sidecars can be written.",
    ),
    errno.ENOENT: (
        "File or directory not found",
        "The file vanished during the scan or the music directory is not mounted.",
    ),
    errno.EISDIR: (
        "Is a directory",
        "A directory has the name of the expected sidecar file.",
    ),
    errno.ENOTDIR: (
        "Not a directory",
        "A file sits where a directory was expected.",
    ),
    errno.ELOOP: (
        "Too many levels of symbolic links",
        "A symlink loop exists below the music directory.",
    ),
    errno.EIO: (
        "Input/output error",
        "The disk or network share reported a read error.",
    ),
}


def describe_oserror(e: OSError) -> str:
    """Short description like "Permission denied (Errno 13 / EACCES)"."""
    if e.errno is None:
        return str(e)
    error_name = errno.errorcode.get(e.errno, f"UNKNOWN_{e.errno}")
    description = ERRNO_MESSAGES.get(e.errno, (e.strerror or str(e), ""))[0]
    return f"{description} (Errno {e.errno} / {error_name})"


def format_oserror_message(
    e: OSError,
    operation: str,
    path: Path | str | None = None,
    extra_context: dict[str, Any] | None = None,
) -> str:
    """Format OSError with a readable description and a hint.

    Example:
        Failed to write sidecar '/music/a.lrc': Read-only filesystem (Errno 30 / EROFS)
        HINT: The music directory is mounted read-only, sidecars (.lrc/.jpg) cannot be written.

    Args:
        e: The OSError exception
        operation: What was being attempted (e.g., "write sidecar", "walk directory")
        path: The file/directory path involved
        extra_context: Additional key/value context

    Returns:
        Formatted single message (two lines when a hint exists)
    """
    if e.errno is None:
        hint = ""
    else:
        hint = ERRNO_MESSAGES.get(e.errno, ("", "Check system logs and file permissions."))[1]

    message = f"Failed to {operation}"
    if path:
        message += f" '{path}'"
    message += f": {describe_oserror(e)}"

    if extra_context:
        context_str = ", ".join(f"{k}={v}" for k, v in extra_context.items())
        message += f" [{context_str}]"

    if hint:
        message += f"\nHINT: {hint}"
    return message
