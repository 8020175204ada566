#!/usr/bin/env python3
"""
File State Detector for Logga
Detects rotation and truncation of the tailed file

Metadata is read fresh from the path on every call. A stat of the open
descriptor would keep reporting the renamed file after a rotation, so the
path is what identifies the "live" file.
"""

import os
import logging

from logga.errors import FileOperationError

logger = logging.getLogger(__name__)


class FileStateDetector:
    """
    Compares the live file at a path against the last known inode/offset.

    Example:
        >>> detector = FileStateDetector('/var/log/nginx/access.log')
        >>> inode = detector.current_inode()
        >>> detector.was_rotated(inode)
        False
    """

    def __init__(self, path: str):
        self.path = str(path)

    def _stat(self) -> os.stat_result:
        try:
            return os.stat(self.path)
        except OSError as e:
            raise FileOperationError(f"detecting file operation on {self.path}: {e}") from e

    def current_inode(self) -> int:
        """Return the inode of the file currently at the path."""
        return self._stat().st_ino

    def was_rotated(self, current_inode: int) -> bool:
        """
        Check whether the file was replaced by a new one.

        Args:
            current_inode: Inode recorded at the last state check

        Returns:
            bool: True if the live file has a different inode

        Raises:
            FileOperationError: If the path cannot be stat'ed
        """
        return self._stat().st_ino != current_inode

    def was_truncated(self, current_inode: int, current_offset: int) -> bool:
        """
        Check whether the file was shrunk in place.

        Args:
            current_inode: Inode recorded at the last state check
            current_offset: Byte offset already read

        Returns:
            bool: True if the inode is unchanged and the size is below the offset

        Raises:
            FileOperationError: If the path cannot be stat'ed
        """
        st = self._stat()
        return st.st_ino == current_inode and st.st_size < current_offset
