#!/usr/bin/env python3
"""
Tests for Tail
"""

import os
from unittest.mock import Mock

import pytest

from logga.checkpoint_store import CheckpointStore
from logga.errors import (
    BufferReadError,
    CheckpointError,
    FileOpenError,
    FileOperationError,
    SeekError,
)
from logga.tail import Tail


def append(path, data: bytes):
    with open(path, "ab") as f:
        f.write(data)


def drain(tail) -> bytes:
    """Poll until a poll returns nothing"""
    out = b""
    while True:
        chunk = tail.poll()
        if not chunk:
            return out
        out += chunk


class TestConstruction:
    """Opening the file and restoring checkpoints"""

    def test_missing_file_raises_file_open_error(self, temp_dir):
        with pytest.raises(FileOpenError, match="failed to open"):
            Tail(str(temp_dir / "missing.log"))

    def test_initial_state(self, log_file):
        tail = Tail(str(log_file), buffer_size=512)

        state = tail.state
        assert state.path == str(log_file)
        assert state.offset == 0
        assert state.inode == os.stat(log_file).st_ino
        assert state.buffer_size == 512
        tail.close()

    def test_restores_checkpoint(self, log_file):
        append(log_file, b"a" * 50)
        CheckpointStore().save(str(log_file), 42)

        tail = Tail(str(log_file))

        assert tail.offset == 42
        assert tail.poll() == b"a" * 8
        tail.close()

    def test_missing_checkpoint_starts_at_zero(self, log_file):
        tail = Tail(str(log_file))
        assert tail.offset == 0
        tail.close()

    def test_corrupt_checkpoint_starts_at_zero(self, log_file):
        (log_file.parent / ".checkpoint").write_text("not-a-number\n")

        tail = Tail(str(log_file))

        assert tail.offset == 0
        tail.close()


class TestPolling:
    """Reading appended bytes"""

    def test_empty_file_returns_nothing(self, log_file):
        tail = Tail(str(log_file))
        assert tail.poll() == b""
        assert tail.offset == 0
        tail.close()

    def test_appended_bytes_returned_exactly_once(self, log_file):
        tail = Tail(str(log_file))
        writes = [b"GET / 200\n", b"GET /a 404\n", b"", b"POST /b 201\n"]

        received = b""
        for data in writes:
            append(log_file, data)
            received += tail.poll()
            assert tail.poll() == b""

        assert received == b"".join(writes)
        assert tail.offset == len(received)
        tail.close()

    def test_reads_at_most_buffer_size(self, log_file):
        content = bytes(range(256)) * 10
        append(log_file, content)
        tail = Tail(str(log_file), buffer_size=100)

        first = tail.poll()

        assert len(first) == 100
        assert tail.offset == 100
        assert first + drain(tail) == content
        tail.close()

    def test_poll_then_forwards_non_empty_chunks(self, log_file):
        tail = Tail(str(log_file))
        consumer = Mock()

        assert tail.poll_then(consumer) == 0
        consumer.assert_not_called()

        append(log_file, b"line\n")
        assert tail.poll_then(consumer) == 5
        consumer.assert_called_once_with(b"line\n")
        tail.close()


class TestRotationAndTruncation:
    """Offset resets"""

    def test_rotation_reads_new_file_from_start(self, log_file):
        append(log_file, b"old content\n")
        tail = Tail(str(log_file))
        assert tail.poll() == b"old content\n"
        old_inode = tail.inode

        log_file.rename(log_file.with_suffix(".log.1"))
        log_file.write_bytes(b"new\n")

        assert tail.poll() == b"new\n"
        assert tail.offset == 4
        assert tail.inode != old_inode
        assert tail.inode == os.stat(log_file).st_ino
        tail.close()

    def test_rotation_to_larger_file(self, log_file):
        """Rotation resets the offset even if the new file is bigger"""
        append(log_file, b"abc")
        tail = Tail(str(log_file))
        drain(tail)

        log_file.rename(log_file.with_suffix(".log.1"))
        log_file.write_bytes(b"0123456789")

        assert tail.poll() == b"0123456789"
        tail.close()

    def test_truncation_resets_offset(self, log_file):
        append(log_file, b"x" * 100)
        tail = Tail(str(log_file))
        drain(tail)
        assert tail.offset == 100
        inode = tail.inode

        with open(log_file, "r+b") as f:
            f.truncate(0)
        append(log_file, b"fresh\n")

        assert tail.poll() == b"fresh\n"
        assert tail.offset == 6
        assert tail.inode == inode
        tail.close()

    def test_checkpoint_beyond_file_size_treated_as_truncation(self, log_file):
        append(log_file, b"short\n")
        CheckpointStore().save(str(log_file), 1000)
        tail = Tail(str(log_file))

        assert tail.poll() == b"short\n"
        tail.close()


class TestPollErrors:
    """Per-poll failures leave the tailer usable"""

    def test_missing_path_raises_file_operation_error(self, log_file):
        append(log_file, b"abc")
        tail = Tail(str(log_file))
        tail.poll()

        log_file.unlink()

        with pytest.raises(FileOperationError):
            tail.poll()
        assert tail.offset == 3

        # File comes back (new inode): tailing resumes from its start
        log_file.write_bytes(b"back\n")
        assert tail.poll() == b"back\n"
        tail.close()

    def test_seek_error_does_not_advance_offset(self, log_file):
        append(log_file, b"abc")
        tail = Tail(str(log_file))
        real_fd = tail._fd
        tail._fd = Mock()
        tail._fd.seek.side_effect = OSError("bad seek")

        with pytest.raises(SeekError, match="start seeking"):
            tail.poll()
        assert tail.offset == 0

        tail._fd = real_fd
        assert tail.poll() == b"abc"
        tail.close()

    def test_read_error_does_not_advance_offset(self, log_file):
        append(log_file, b"abc")
        tail = Tail(str(log_file))
        real_fd = tail._fd
        tail._fd = Mock()
        tail._fd.read.side_effect = OSError("EIO")

        with pytest.raises(BufferReadError, match="buffer reader"):
            tail.poll()
        assert tail.offset == 0

        tail._fd = real_fd
        tail.close()


class TestCheckpointing:
    """Saving and restoring offsets"""

    def test_checkpoint_round_trip(self, log_file):
        append(log_file, b"0123456789" * 3)
        tail = Tail(str(log_file), buffer_size=7)
        tail.poll()
        tail.poll()
        assert tail.offset == 14

        assert tail.save_checkpoint() is True
        tail.close()

        restored = Tail(str(log_file))
        assert restored.offset == 14
        assert drain(restored) == (b"0123456789" * 3)[14:]
        restored.close()

    def test_save_failure_returns_false(self, log_file):
        store = Mock()
        store.load.return_value = 0
        store.save.side_effect = CheckpointError("disk full")
        tail = Tail(str(log_file), checkpoint_store=store)

        assert tail.save_checkpoint() is False
        tail.close()
