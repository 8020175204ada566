#!/usr/bin/env python3
"""
Error types for the Logga tailer

Every failure the tailer can hit while opening, inspecting or reading the
tailed file maps to one TailError subclass, so the polling loop can log it
and carry on with the next poll.
"""


class TailError(Exception):
    """Base class for all tailer failures."""
    pass


class FileOpenError(TailError):
    """
    Raised when the tailed file cannot be opened.

    Fatal at construction time: the tailer is unusable without a handle.
    """

    def __init__(self, path: str, cause: Exception = None):
        self.path = path
        self.cause = cause
        message = f"failed to open {path}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class MetadataError(TailError):
    """Raised when file metadata (inode, size) cannot be read."""
    pass


class FileOperationError(TailError):
    """Raised when rotation/truncation detection fails."""
    pass


class SeekError(TailError):
    """Raised when seeking to the current offset fails."""
    pass


class BufferReadError(TailError):
    """Raised when reading the next chunk fails."""
    pass


class CheckpointError(TailError):
    """
    Raised when no checkpoint can be restored or saved.

    Non-fatal for loading: the tailer starts from offset 0 instead.
    """
    pass


class CheckpointParseError(CheckpointError):
    """Raised when a checkpoint file exists but its first line is not an offset."""
    pass
