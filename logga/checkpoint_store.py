#!/usr/bin/env python3
"""
Checkpoint Store for Logga
Persists the last read byte offset of the tailed file

The checkpoint is a small sidecar text file whose first line is the
offset in decimal. Anything after the first line is ignored.
"""

import os
import re
import logging
from pathlib import Path
from typing import List

from logga.errors import CheckpointError, CheckpointParseError

logger = logging.getLogger(__name__)

DEFAULT_CHECKPOINT_NAME = '.checkpoint'
OFFSET_PATTERN = re.compile(r'[0-9]+')


class CheckpointStore:
    """
    Loads and saves checkpoints across candidate locations.

    Search order:
    1. Explicit checkpoint_path (if configured)
    2. <checkpoint name> next to the tailed file
    3. <checkpoint name> in the home directory, only when the tailed
       path has no parent directory

    Saving is best-effort and latest-write-wins. It only happens on
    graceful shutdown, so an ungraceful kill loses progress made since
    the last save.

    Example:
        >>> store = CheckpointStore()
        >>> store.save('/var/log/app/access.log', 4096)
        PosixPath('/var/log/app/.checkpoint')
        >>> store.load('/var/log/app/access.log')
        4096
    """

    def __init__(self, file_name: str = DEFAULT_CHECKPOINT_NAME, checkpoint_path: str = None):
        """
        Initialize checkpoint store.

        Args:
            file_name: Name of the sidecar checkpoint file
            checkpoint_path: Optional explicit checkpoint file, searched first
        """
        self.file_name = file_name
        self.checkpoint_path = Path(checkpoint_path) if checkpoint_path else None

    def candidates(self, tailed_path: str) -> List[Path]:
        """Return checkpoint locations for a tailed file, in search order."""
        paths = []
        if self.checkpoint_path is not None:
            paths.append(self.checkpoint_path)

        tailed = Path(tailed_path)
        parent = tailed.parent
        if str(tailed_path) and parent != tailed:
            paths.append(parent / self.file_name)
        else:
            paths.append(Path(os.path.expanduser('~')) / self.file_name)

        return paths

    def load(self, tailed_path: str) -> int:
        """
        Restore the saved offset for a tailed file.

        Args:
            tailed_path: Path of the tailed log file

        Returns:
            int: Restored byte offset

        Raises:
            CheckpointParseError: If a checkpoint exists but is not a valid offset
            CheckpointError: If no checkpoint file exists
        """
        parse_error = None

        for candidate in self.candidates(tailed_path):
            try:
                with open(candidate, 'r') as f:
                    first_line = f.readline()
            except FileNotFoundError:
                continue
            except (OSError, UnicodeDecodeError) as e:
                parse_error = CheckpointParseError(f"cannot read checkpoint {candidate}: {e}")
                continue

            text = first_line.strip()
            if not OFFSET_PATTERN.fullmatch(text):
                parse_error = CheckpointParseError(
                    f"cast string to int: {text!r} in {candidate}"
                )
                continue

            offset = int(text)
            logger.debug(f"checkpoint restored: {offset} (from {candidate})")
            return offset

        if parse_error is not None:
            raise parse_error

        raise CheckpointError(
            f"no checkpoint found for {tailed_path} "
            f"(searched: {', '.join(str(p) for p in self.candidates(tailed_path))})"
        )

    def save(self, tailed_path: str, offset: int) -> Path:
        """
        Persist an offset for a tailed file.

        Written atomically via a temp file and rename.

        Args:
            tailed_path: Path of the tailed log file
            offset: Byte offset to persist

        Returns:
            Path: Checkpoint file that was written

        Raises:
            CheckpointError: If the checkpoint cannot be written
        """
        if offset < 0:
            raise CheckpointError(f"refusing to save negative offset {offset}")

        target = self.candidates(tailed_path)[0]
        temp_file = target.with_name(target.name + '.tmp')

        try:
            with open(temp_file, 'w') as f:
                f.write(f"{offset}\n")
            temp_file.replace(target)
        except OSError as e:
            temp_file.unlink(missing_ok=True)
            raise CheckpointError(f"cannot write checkpoint {target}: {e}") from e

        logger.debug(f"checkpoint saved: {offset} -> {target}")
        return target
