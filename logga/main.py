#!/usr/bin/env python3
"""
Logga - Main Application
Wires the tailer, the archive watcher and the shutdown signal handler

Execution contexts:
- Tailer thread: poll the access log every interval, forward new bytes
- Main thread: block on directory events, upload matching archives
- Signal handler: on SIGINT/SIGTERM save the tail checkpoint and exit
"""

import sys
import signal
import logging
import threading
from typing import Callable

import yaml
from botocore.exceptions import BotoCoreError

from logga.checkpoint_store import CheckpointStore
from logga.config_manager import ConfigManager, ConfigValidationError
from logga.directory_watcher import DirectoryWatcher
from logga.errors import TailError
from logga.s3_client import CredentialsError, create_s3_client
from logga.tail import Tail
from logga.upload_dispatcher import UploadDispatcher

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = '/etc/logga/config.yaml'


def write_to_stdout(data: bytes):
    """Default chunk consumer: echo tailed bytes to stdout."""
    sys.stdout.buffer.write(data)
    sys.stdout.flush()


class LogShipper:
    """
    Coordinates the two long-running loops of the agent.

    The tail state is shared between the polling thread and the signal
    handler, guarded by one lock. The lock is held for a single poll or a
    single checkpoint save, never while forwarding or uploading.

    Example:
        >>> config = ConfigManager('/etc/logga/config.yaml')
        >>> shipper = LogShipper(config, client=s3)
        >>> shipper.install_signal_handlers()
        >>> shipper.run()  # blocks

    Attributes:
        config (ConfigManager): Loaded configuration
        tail (Tail): Access log tailer
        dispatcher (UploadDispatcher): Archive uploader
        watcher (DirectoryWatcher): Archive directory watcher
    """

    def __init__(self, config: ConfigManager, client=None,
                 consumer: Callable[[bytes], None] = None,
                 watcher: DirectoryWatcher = None):
        """
        Build the tailer, dispatcher and watcher.

        Args:
            config: Loaded configuration
            client: S3 client (default: built from config and environment)
            consumer: Receives each tailed chunk (default: stdout)
            watcher: Directory watcher (default: new DirectoryWatcher)

        Raises:
            FileOpenError: If the access log cannot be opened
            CredentialsError: If no client is given and credentials are missing
        """
        self.config = config
        self.poll_interval = config.get('tail.poll_interval_ms') / 1000.0
        self.watch_directory = config.get('watch.directory')
        self.consumer = consumer or write_to_stdout

        self.tail = Tail(
            config.get('tail.path'),
            buffer_size=config.get('tail.buffer_size'),
            checkpoint_store=CheckpointStore(checkpoint_path=config.get('tail.checkpoint_file')),
        )
        self._tail_lock = threading.Lock()

        if client is None:
            client = create_s3_client(
                region=config.get('s3.region'),
                endpoint=config.get('s3.endpoint'),
                profile_name=config.get('s3.profile'),
            )
        self.dispatcher = UploadDispatcher(
            client,
            config.get('s3.bucket'),
            extension=config.get('watch.extension'),
        )
        self.watcher = watcher or DirectoryWatcher()

        self._stop_event = threading.Event()
        self._tail_thread = None
        self._shutting_down = False

    def poll_once(self) -> int:
        """
        Poll the tailer once and forward any new bytes.

        Tail errors are logged; the next poll tries again.

        Returns:
            int: Number of bytes forwarded
        """
        with self._tail_lock:
            try:
                data = self.tail.poll()
            except TailError as e:
                logger.error(f"tail error: {e}")
                return 0

        if not data:
            return 0

        try:
            self.consumer(data)
        except Exception as e:
            logger.error(f"Consumer failed for {len(data)} bytes: {e}")
            return 0

        return len(data)

    def _tail_loop(self):
        logger.info(f"Tailer started (interval: {self.poll_interval * 1000:.0f} ms)")

        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self.poll_interval)

        logger.info("Tailer stopped")

    def start_tailer(self):
        """Start the tail-and-forward loop on a daemon thread."""
        if self._tail_thread and self._tail_thread.is_alive():
            logger.warning("Tailer already running")
            return

        self._stop_event.clear()
        self._tail_thread = threading.Thread(target=self._tail_loop, name='logga-tailer', daemon=True)
        self._tail_thread.start()

    def run_watcher(self):
        """Block on archive directory events and upload matches."""
        logger.debug(f"Watching directory: {self.watch_directory}")
        try:
            for event in self.watcher.watch(self.watch_directory):
                self.dispatcher.dispatch(event)
        except OSError as e:
            # Missing directory or inotify watch limit reached
            logger.error(f"Problem watching directory: {e}")

    def run(self):
        """
        Run both loops until the process is signalled.

        If the watch loop ends on its own (event source failure) the
        tailer keeps running.
        """
        self.start_tailer()
        self.run_watcher()

        if self._tail_thread:
            self._tail_thread.join()

    def save_checkpoint(self) -> bool:
        """Save the tail checkpoint under the tail lock."""
        with self._tail_lock:
            return self.tail.save_checkpoint()

    def handle_signal(self, signum, frame):
        """
        SIGINT/SIGTERM handler.

        Saves the checkpoint and exits. In-flight uploads are not drained.
        A second signal arriving while the first is being handled returns
        immediately: the tail lock may be held by this same thread.
        """
        if self._shutting_down:
            logger.info(f"Received signal {signum} during shutdown, ignoring")
            return
        self._shutting_down = True

        logger.info(f"Received signal {signum}")
        self.save_checkpoint()
        self._print_statistics()
        logger.debug("stopping gracefully...")
        sys.exit(0)

    def install_signal_handlers(self):
        """Register handle_signal for SIGTERM and SIGINT (main thread only)."""
        signal.signal(signal.SIGTERM, self.handle_signal)
        signal.signal(signal.SIGINT, self.handle_signal)

    def stop(self):
        """Stop both loops and close the tailed file."""
        self.watcher.stop()
        self._stop_event.set()

        if self._tail_thread:
            self._tail_thread.join(timeout=5)

        self.tail.close()

    def _print_statistics(self):
        stats = self.dispatcher.stats
        logger.info("=" * 60)
        logger.info("STATISTICS")
        logger.info(f"Tail offset:      {self.tail.offset}")
        logger.info(f"Events received:  {stats['events_received']}")
        logger.info(f"Files uploaded:   {stats['files_uploaded']}")
        logger.info(f"Files failed:     {stats['files_failed']}")
        logger.info(f"Bytes uploaded:   {stats['bytes_uploaded']}")
        logger.info("=" * 60)


def main():
    """
    Main entry point for Logga.

    Command-line arguments:
        --config: Path to configuration file
        --access-log-path: Log file to tail (overrides tail.path)
        --watch-dir: Archive directory to watch (overrides watch.directory)
        --log-level: Logging level (DEBUG, INFO, WARNING, ERROR)
        --test-config: Validate configuration and exit
    """
    import argparse

    parser = argparse.ArgumentParser(description='Logga log shipping agent')
    parser.add_argument(
        '--config',
        default=DEFAULT_CONFIG_PATH,
        help='Path to configuration file'
    )
    parser.add_argument(
        '--access-log-path',
        help='Log file to tail (overrides tail.path)'
    )
    parser.add_argument(
        '--watch-dir',
        help='Directory to watch for archives (overrides watch.directory)'
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )
    parser.add_argument(
        '--test-config',
        action='store_true',
        help='Test configuration and exit'
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s [%(name)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr,
    )

    overrides = {
        'tail.path': args.access_log_path,
        'watch.directory': args.watch_dir,
    }
    try:
        config = ConfigManager(args.config, overrides=overrides)
    except (FileNotFoundError, yaml.YAMLError, ConfigValidationError) as e:
        logger.error(f"Problem parsing config yaml: {e}")
        sys.exit(1)

    if args.test_config:
        logger.info("Configuration valid!")
        logger.info(f"S3 Bucket: {config.get('s3.bucket')}")
        logger.info(f"Tailed file: {config.get('tail.path')}")
        logger.info(f"Watched directory: {config.get('watch.directory')}")
        sys.exit(0)

    try:
        client = create_s3_client(
            region=config.get('s3.region'),
            endpoint=config.get('s3.endpoint'),
            profile_name=config.get('s3.profile'),
        )
    except (CredentialsError, BotoCoreError) as e:
        logger.error(f"Couldn't create AWS client: {e}")
        sys.exit(1)

    try:
        shipper = LogShipper(config, client=client)
    except TailError as e:
        logger.error(f"creating tailer: {e}")
        sys.exit(1)

    shipper.install_signal_handlers()
    shipper.run()


if __name__ == '__main__':
    main()
