#!/usr/bin/env python3
"""
Tail for Logga
Incrementally reads a growing log file from a remembered offset

The tailer keeps one open handle on the log file. Every poll checks the
live file for truncation and rotation, then reads the next chunk from
the current offset and advances by the bytes actually read.
"""

import os
import logging
from typing import Callable

from logga.checkpoint_store import CheckpointStore
from logga.errors import (
    BufferReadError,
    CheckpointError,
    FileOpenError,
    MetadataError,
    SeekError,
)
from logga.file_state import FileStateDetector

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 65536


class TailState:
    """
    Snapshot of the tailer's state.

    Attributes:
        path (str): Tailed file path
        fd (int): File descriptor of the held handle
        offset (int): Bytes already consumed from the current file
        inode (int): Inode of the held file at the last state check
        buffer_size (int): Maximum bytes read per poll
    """

    def __init__(self, path: str, fd: int, offset: int, inode: int, buffer_size: int):
        self.path = path
        self.fd = fd
        self.offset = offset
        self.inode = inode
        self.buffer_size = buffer_size

    def __repr__(self):
        return (
            f"TailState(path={self.path!r}, fd={self.fd}, offset={self.offset}, "
            f"inode={self.inode}, buffer_size={self.buffer_size})"
        )


class Tail:
    """
    Follows a log file across truncation and rotation.

    Poll order:
    1. Truncated (same inode, size < offset)? -> offset = 0
    2. Rotated (different inode at path)? -> reopen, refresh inode, offset = 0
    3. Seek to offset, read up to buffer_size bytes
    4. offset += bytes read

    The truncation check runs against the pre-rotation inode, so a
    truncation that coincides with a rotation is still caught.

    Example:
        >>> tail = Tail('/var/log/nginx/access.log')
        >>> chunk = tail.poll()
        >>> tail.save_checkpoint()
        True

    Attributes:
        path (str): Tailed file path
        buffer_size (int): Maximum bytes read per poll
        checkpoint_store (CheckpointStore): Offset persistence
        detector (FileStateDetector): Rotation/truncation detection
    """

    def __init__(self, path: str, buffer_size: int = DEFAULT_BUFFER_SIZE,
                 checkpoint_store: CheckpointStore = None):
        """
        Open the file and restore the last checkpoint.

        Args:
            path: Log file to tail
            buffer_size: Maximum bytes read per poll
            checkpoint_store: Checkpoint persistence (default: sidecar .checkpoint)

        Raises:
            FileOpenError: If the file cannot be opened
            MetadataError: If the opened file cannot be stat'ed
        """
        self.path = str(path)
        self.buffer_size = buffer_size
        self.checkpoint_store = checkpoint_store or CheckpointStore()
        self.detector = FileStateDetector(self.path)

        self._fd = self._open()
        self._inode = self._fstat_inode()
        self._offset = 0

        self.load_checkpoint()

        logger.info(f"Tailing {self.path} from offset {self._offset}")

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def inode(self) -> int:
        return self._inode

    @property
    def state(self) -> TailState:
        return TailState(self.path, self._fd.fileno(), self._offset, self._inode, self.buffer_size)

    def _open(self):
        try:
            # Unbuffered: every read after a seek hits the file
            return open(self.path, 'rb', buffering=0)
        except OSError as e:
            raise FileOpenError(self.path, e) from e

    def _fstat_inode(self) -> int:
        try:
            return os.fstat(self._fd.fileno()).st_ino
        except OSError as e:
            raise MetadataError(f"read metadata: {e}") from e

    def load_checkpoint(self) -> bool:
        """
        Restore the offset from the checkpoint store.

        A missing or corrupt checkpoint is not an error for the tailer:
        the offset stays 0 and the whole file is read once.

        Returns:
            bool: True if a checkpoint was restored
        """
        try:
            self._offset = self.checkpoint_store.load(self.path)
            return True
        except CheckpointError as e:
            logger.warning(f"No usable checkpoint, starting from offset 0: {e}")
            self._offset = 0
            return False

    def save_checkpoint(self) -> bool:
        """
        Persist the current offset.

        Returns:
            bool: True if saved, False if the write failed (logged)
        """
        logger.debug("saving checkpoint")
        try:
            target = self.checkpoint_store.save(self.path, self._offset)
        except CheckpointError as e:
            logger.error(f"Failed to save checkpoint: {e}")
            return False

        logger.info(f"Checkpoint saved: offset {self._offset} -> {target}")
        return True

    def _handle_file_operations(self):
        # Truncation keeps the inode but drops content below our offset
        if self.detector.was_truncated(self._inode, self._offset):
            self._offset = 0
            logger.debug("file was truncated")

        # Rotation puts a new file (new inode) at the same path
        if self.detector.was_rotated(self._inode):
            new_fd = self._open()
            self._fd.close()
            self._fd = new_fd
            self._inode = self._fstat_inode()
            self._offset = 0
            logger.debug("file was rotated")

    def poll(self) -> bytes:
        """
        Read the next chunk of the file.

        Returns:
            bytes: Up to buffer_size new bytes (empty at end of file)

        Raises:
            FileOperationError: If rotation/truncation detection fails
            FileOpenError: If a rotated file cannot be reopened
            SeekError: If seeking to the offset fails (offset unchanged)
            BufferReadError: If reading fails (offset unchanged)
        """
        self._handle_file_operations()

        try:
            self._fd.seek(self._offset)
        except (OSError, ValueError) as e:
            raise SeekError(f"start seeking: {e}") from e

        try:
            data = self._fd.read(self.buffer_size)
        except (OSError, ValueError) as e:
            raise BufferReadError(f"buffer reader: {e}") from e

        if data is None:
            data = b''

        self._offset += len(data)
        return data

    def poll_then(self, consumer: Callable[[bytes], None]) -> int:
        """
        Poll and hand a non-empty chunk to consumer.

        Returns:
            int: Number of bytes forwarded
        """
        data = self.poll()
        if data:
            consumer(data)
        return len(data)

    def close(self):
        """Close the held file handle."""
        if not self._fd.closed:
            self._fd.close()
