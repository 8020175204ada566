#!/usr/bin/env python3
"""
Upload Dispatcher for Logga
Uploads completed log archives reported by the directory watcher

Each matching create event results in exactly one put_object call.
There is no retry and the source file is never moved or marked: a
failed upload is logged and the event is dropped.
"""

import logging
from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError

from logga.directory_watcher import EVENT_CREATE, WatchEvent

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_EXTENSION = 'zip'


class UploadError(Exception):
    """
    Raised when a single archive upload fails.

    Wraps file read errors and S3 client errors; the dispatcher logs it
    and moves on to the next event.
    """

    def __init__(self, path: str, cause):
        self.path = path
        self.cause = cause
        super().__init__(f"Problem uploading {path}: {cause}")


class UploadRequest:
    """
    One put_object call: bucket, key (file base name) and file body.

    Built per matching event and discarded once the call returns.
    """

    def __init__(self, bucket: str, key: str, body: bytes):
        self.bucket = bucket
        self.key = key
        self.body = body

    @classmethod
    def from_file(cls, bucket: str, file_path: Path) -> 'UploadRequest':
        """Read the whole file and key it by its base name."""
        with open(file_path, 'rb') as f:
            body = f.read()
        return cls(bucket, file_path.name, body)

    def __repr__(self):
        return f"UploadRequest(bucket={self.bucket!r}, key={self.key!r}, size={len(self.body)})"


class UploadDispatcher:
    """
    Filters watch events by extension and uploads matching archives.

    Example:
        >>> s3 = boto3.session.Session().client('s3')
        >>> dispatcher = UploadDispatcher(s3, 'log-archive', extension='zip')
        >>> dispatcher.dispatch(WatchEvent('create', ['/var/log/nginx/access.zip']))
        True

    Attributes:
        client: Object-store client exposing put_object(Bucket, Key, Body)
        bucket (str): Target bucket
        extension (str): Archive extension, lowercase, without dot
        stats (dict): Event and upload counters
    """

    def __init__(self, client, bucket: str, extension: str = DEFAULT_ARCHIVE_EXTENSION):
        self.client = client
        self.bucket = bucket
        self.extension = extension.lstrip('.').lower()

        self.stats = {
            'events_received': 0,
            'uploads_attempted': 0,
            'files_uploaded': 0,
            'files_failed': 0,
            'bytes_uploaded': 0,
        }

        logger.info(f"Uploading *.{self.extension} archives to bucket: {bucket}")

    def matches(self, file_path: Path) -> bool:
        """
        Check the file name against the archive extension (case-insensitive).

        Multi-part extensions such as tar.gz match on the full name ending.
        A bare ".zip" dotfile has no extension and never matches.
        """
        name = file_path.name.lower()
        suffix = f".{self.extension}"
        return len(name) > len(suffix) and name.endswith(suffix)

    def dispatch(self, event: WatchEvent) -> bool:
        """
        Handle one watch event.

        Args:
            event: Event from DirectoryWatcher

        Returns:
            bool: True if an archive was uploaded, False otherwise
        """
        self.stats['events_received'] += 1

        if event.kind != EVENT_CREATE:
            return False

        if not event.paths:
            logger.warning(f"{event.kind} event paths was empty")
            return False

        file_path = Path(event.paths[0])
        if not self.matches(file_path):
            logger.debug(f"Ignoring non-archive file: {file_path.name}")
            return False

        self.stats['uploads_attempted'] += 1
        try:
            request = self.upload(file_path)
        except UploadError as e:
            self.stats['files_failed'] += 1
            logger.error(str(e))
            return False

        self.stats['files_uploaded'] += 1
        self.stats['bytes_uploaded'] += len(request.body)
        logger.info(f"{file_path} backed up successfully")
        return True

    def upload(self, file_path: Path) -> UploadRequest:
        """
        Upload a single file under its base name.

        Args:
            file_path: Archive to upload

        Returns:
            UploadRequest: The request that was sent

        Raises:
            UploadError: If the file cannot be read or put_object fails
        """
        logger.info(f"uploading file: {file_path}")

        try:
            request = UploadRequest.from_file(self.bucket, file_path)
            self.client.put_object(Bucket=request.bucket, Key=request.key, Body=request.body)
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', '')
            raise UploadError(str(file_path), f"{error_code} - {e}") from e
        except (BotoCoreError, OSError) as e:
            raise UploadError(str(file_path), e) from e

        logger.debug(f"SUCCESS: {file_path.name} -> s3://{self.bucket}/{request.key}")
        return request
