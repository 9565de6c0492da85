#!/usr/bin/env python3
"""logcollectd: receive UDP syslog datagrams into hourly SQLite buckets."""

import argparse
import logging
import os
import signal
import sys
import threading

from logcollectd.archival import ArchivalSweep
from logcollectd.config import load_config, load_yaml_config
from logcollectd.ingest_queue import IngestQueue
from logcollectd.listener import Listener
from logcollectd.metrics import Metrics
from logcollectd.rotation import BucketOpenError, RotationPolicy
from logcollectd.worker import PersistenceWorker

VERSION = "0.1"

logger = logging.getLogger("logcollectd")


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logcollectd",
        description="Collect UDP log datagrams into hourly SQLite files.",
    )
    parser.add_argument(
        "-d", "--db-dir", default=None,
        help="Directory holding the hourly bucket files (default: ./db, must exist)",
    )
    parser.add_argument(
        "-p", "--port", type=int, default=None,
        help="UDP port to listen on (default: 514 as root, 5140 otherwise)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Verbose diagnostics",
    )
    parser.add_argument(
        "-c", "--config", default=None,
        help="Path to an optional YAML config file",
    )
    return parser


def main(argv=None) -> int:
    args = build_cli_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [logcollectd] %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
    config = load_config(args, load_yaml_config(args.config))
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("logcollectd %s started", VERSION)
    logger.debug("Config: %s", config)

    if not os.path.isdir(config.storage_dir):
        logger.error("Storage directory %s does not exist", config.storage_dir)
        return 1

    shutdown_event = threading.Event()
    metrics = Metrics()
    ingest = IngestQueue(config.queue_capacity)
    rotation = RotationPolicy(config.storage_dir)

    try:
        rotation.check()
    except BucketOpenError as exc:
        logger.error("%s", exc)
        return 1

    listener = Listener(config, ingest, shutdown_event, metrics)
    try:
        listener.open()
    except OSError as exc:
        logger.error("Cannot listen on %s:%d: %s", config.host, config.port, exc)
        rotation.close()
        return 1

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    worker = PersistenceWorker(ingest, rotation, metrics, config.pop_timeout_sec)
    sweep = ArchivalSweep(
        config.storage_dir,
        config.retention_seconds,
        active_bucket=rotation.active_filename,
        interval_sec=config.sweep_interval_sec,
        preset=config.compression_preset,
        metrics=metrics,
    )
    worker.start()
    sweep.start()

    try:
        listener.start()
    finally:
        listener.stop()
        sweep.stop()
        sweep.join()
        worker.stop()
        worker.join()
        logger.info("logcollectd stopped. Stats: %s", metrics.snapshot())
    return 0


if __name__ == "__main__":
    sys.exit(main())
