#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
import logging
import signal
import sys
import time
from dataclasses import asdict
from threading import Event
from types import FrameType
from typing import Optional

import configargparse
import humanfriendly
from prometheus_client import REGISTRY, start_http_server

from rds_exporter import __version__
from rds_exporter.collector import RDSCollector
from rds_exporter.config import (
    DEFAULT_DELAY,
    DEFAULT_MAX_WORKERS,
    DEFAULT_PERIOD,
    DEFAULT_RANGE,
    DEFAULT_SCRAPE_TIMEOUT,
    init_scrape_settings,
    load_config,
)
from rds_exporter.exceptions import ConfigError, MemoryCatalogLoadError
from rds_exporter.exporter_types import listen_address, positive_integer, positive_timespan, size_in_bytes
from rds_exporter.log import get_logger_adapter, initial_root_logger_setup
from rds_exporter.memory_catalog import InstanceMemoryCatalog
from rds_exporter.metrics.catalog import BASIC_METRICS
from rds_exporter.sessions import Boto3SessionProvider
from rds_exporter.state import init_state

DEFAULT_CONFIG_FILE = "config.yml"
DEFAULT_LISTEN_ADDRESS = ":9042"
DEFAULT_LOG_FILE = "/var/log/rds_exporter/rds_exporter.log"
DEFAULT_LOG_MAX_SIZE = 1024 * 1024 * 5
DEFAULT_LOG_BACKUP_COUNT = 1

# 1 KeyboardInterrupt raised per this many seconds, no matter how many SIGINTs we get.
SIGINT_RATELIMIT = 0.5

logger = get_logger_adapter("rds_exporter.main")

last_signal_ts: Optional[float] = None


def sigint_handler(sig: int, frame: Optional[FrameType]) -> None:
    global last_signal_ts
    ts = time.monotonic()
    # no need for atomicity here: we can't get another SIGINT before this one returns.
    if last_signal_ts is None or ts > last_signal_ts + SIGINT_RATELIMIT:
        last_signal_ts = ts
        raise KeyboardInterrupt


def setup_signals() -> None:
    signal.signal(signal.SIGINT, sigint_handler)
    # handle SIGTERM in the same manner - gracefully stop.
    signal.signal(signal.SIGTERM, sigint_handler)


def parse_cmd_args(argv: Optional[list] = None) -> configargparse.Namespace:
    parser = configargparse.ArgumentParser(
        description="Exports AWS RDS CloudWatch (basic monitoring) metrics in the Prometheus format.",
        auto_env_var_prefix="rds_exporter_",
        add_config_file_help=True,
        add_env_var_help=False,
        default_config_files=["/etc/rds_exporter/settings.ini"],
    )
    parser.add_argument("--settings", is_config_file=True, help="Settings file path")
    parser.add_argument(
        "--config.file",
        dest="config_file",
        type=str,
        default=DEFAULT_CONFIG_FILE,
        help="Path to the instances configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        type=listen_address,
        default=DEFAULT_LISTEN_ADDRESS,
        help="Address to listen on for the metrics endpoint (default: %(default)s)",
    )

    cloudwatch_options = parser.add_argument_group("CloudWatch")
    cloudwatch_options.add_argument(
        "--period",
        type=positive_timespan,
        default=DEFAULT_PERIOD,
        help="Granularity of the datapoints, human friendly timespans supported, e.g '1m' (default: %(default)ss)",
    )
    cloudwatch_options.add_argument(
        "--delay",
        type=positive_timespan,
        default=DEFAULT_DELAY,
        help="How far back from now the query window ends (default: %(default)ss)",
    )
    cloudwatch_options.add_argument(
        "--range",
        type=positive_timespan,
        default=DEFAULT_RANGE,
        help="Length of the query window (default: %(default)ss)",
    )
    cloudwatch_options.add_argument(
        "--scrape-timeout",
        type=positive_timespan,
        default=DEFAULT_SCRAPE_TIMEOUT,
        help="Deadline of a single scrape of an instance; metrics not collected by then are skipped"
        " (default: %(default)ss)",
    )
    cloudwatch_options.add_argument(
        "--max-workers",
        type=positive_integer,
        default=DEFAULT_MAX_WORKERS,
        help="Maximum number of concurrent CloudWatch queries per instance (default: %(default)s)",
    )

    logging_options = parser.add_argument_group("logging")
    logging_options.add_argument("-v", "--verbose", action="store_true", default=False, help="Debug logging")
    logging_options.add_argument("--log-file", action="store", type=str, dest="log_file", default=DEFAULT_LOG_FILE)
    logging_options.add_argument(
        "--log-rotate-max-size",
        action="store",
        type=size_in_bytes,
        dest="log_rotate_max_size",
        default=DEFAULT_LOG_MAX_SIZE,
        help="Human friendly sizes supported, e.g '5mb'",
    )
    logging_options.add_argument(
        "--log-rotate-backup-count",
        action="store",
        type=positive_integer,
        dest="log_rotate_backup_count",
        default=DEFAULT_LOG_BACKUP_COUNT,
    )

    return parser.parse_args(argv)


def main() -> None:
    args = parse_cmd_args()

    state = init_state()

    global logger
    logger = initial_root_logger_setup(
        logging.DEBUG if args.verbose else logging.INFO,
        args.log_file,
        args.log_rotate_max_size,
        args.log_rotate_backup_count,
    )

    setup_signals()

    try:
        logger.info("Running rds_exporter", version=__version__, commandline=" ".join(sys.argv[1:]))

        # before anything else: never scrape with a partially loaded catalog.
        try:
            memory_catalog = InstanceMemoryCatalog.load()
        except MemoryCatalogLoadError as e:
            logger.error(f"Failed to load the instance memory catalog: {e}")
            sys.exit(1)

        try:
            config = load_config(args.config_file)
            settings = init_scrape_settings(
                period=args.period,
                delay=args.delay,
                range=args.range,
                scrape_timeout=args.scrape_timeout,
                max_workers=args.max_workers,
            )
        except ConfigError as e:
            logger.error(f"Invalid configuration: {e}")
            sys.exit(1)

        logger.info(
            "Scrape settings",
            window=f"{humanfriendly.format_timespan(settings.range)} ending "
            f"{humanfriendly.format_timespan(settings.delay)} ago",
            **asdict(settings),
        )

        collector = RDSCollector(state)
        registered = collector.register_instances(
            config.instances, Boto3SessionProvider(config.instances), BASIC_METRICS, memory_catalog
        )
        logger.info(f"Registered {registered} of {len(config.instances)} configured instances")

        REGISTRY.register(collector)
        host, port = args.listen_address
        start_http_server(port, addr=host)
        logger.info(f"Listening on {host}:{port}")

        # serving happens on the HTTP server's thread, just wait for a signal.
        Event().wait()
    except KeyboardInterrupt:
        pass
    except Exception:
        logger.exception("Unexpected error occurred")
        sys.exit(1)


if __name__ == "__main__":
    main()
