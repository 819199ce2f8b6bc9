#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
import logging
import logging.handlers
import os
import re
import sys
import time
from typing import Any, List

import structlog

from rds_exporter.state import get_state, is_state_initialized

RUN_ID_KEY = "run_id"
CYCLE_ID_KEY = "cycle_id"
LOGGER_NAME_RE = re.compile(r"rds_exporter(?:\..+)?")


def add_state_ids(logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> structlog.types.EventDict:
    # run_id is fixed for the process, cycle_id changes on every collection. Explicitly bound values win.
    if is_state_initialized():
        state = get_state()
        event_dict.setdefault(RUN_ID_KEY, state.run_id)
        if state.cycle_id is not None:
            event_dict.setdefault(CYCLE_ID_KEY, state.cycle_id)
    return event_dict


# processors shared by records coming from structlog and from plain stdlib loggers (boto3, urllib3...)
_SHARED_PROCESSORS: List[Any] = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    add_state_ids,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]

structlog.configure(
    processors=_SHARED_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)


def get_logger_adapter(logger_name: str) -> structlog.stdlib.BoundLogger:
    # Validate the name starts with rds_exporter (the root logger name), so logging parent logger propagation will work.
    assert LOGGER_NAME_RE.match(logger_name) is not None, "logger name must start with 'rds_exporter'"
    return structlog.get_logger(logger_name)


class _ExtraRenderer:
    """
    Renders "message (k=v, k=v)", the same shape for the console and the log file.
    """

    FILTERED_EXTRA_KEYS = ["event", "level", "logger", "timestamp", "_record", "_from_structlog"]

    def __init__(self, show_run_id: bool) -> None:
        # run_id is the same on every line, only the log file carries it
        self._filtered_keys = self.FILTERED_EXTRA_KEYS if show_run_id else self.FILTERED_EXTRA_KEYS + [RUN_ID_KEY]

    def __call__(self, logger: Any, method_name: str, event_dict: structlog.types.EventDict) -> str:
        formatted = str(event_dict.get("event", ""))
        formatted_extra = ", ".join(
            f"{k}={v}" for k, v in event_dict.items() if k not in self._filtered_keys and k != "exception"
        )
        if formatted_extra:
            formatted = f"{formatted} ({formatted_extra})"
        if "exception" in event_dict:
            formatted = f"{formatted}\n{event_dict['exception']}"
        return formatted


class RDSExporterFormatter(structlog.stdlib.ProcessorFormatter):
    # Patch formatTime to be GMT (UTC) for all formatters,
    # see https://docs.python.org/3/library/logging.html?highlight=formattime#logging.Formatter.formatTime
    converter = time.gmtime

    def __init__(self, fmt: str, datefmt: str = None, show_run_id: bool = False) -> None:
        super().__init__(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _ExtraRenderer(show_run_id)],
            foreign_pre_chain=_SHARED_PROCESSORS,
            fmt=fmt,
            datefmt=datefmt,
        )


def initial_root_logger_setup(
    stream_level: int,
    log_file_path: str,
    rotate_max_bytes: int,
    rotate_backup_count: int,
) -> structlog.stdlib.BoundLogger:
    root_logger = logging.getLogger("rds_exporter")
    root_logger.setLevel(logging.DEBUG)

    stream_handler = logging.StreamHandler(stream=sys.stdout)
    stream_handler.setLevel(stream_level)
    if stream_level < logging.INFO:
        stream_handler.setFormatter(RDSExporterFormatter("[%(asctime)s] %(levelname)s: %(name)s: %(message)s"))
    else:
        stream_handler.setFormatter(RDSExporterFormatter("[%(asctime)s] %(message)s", "%H:%M:%S"))
    root_logger.addHandler(stream_handler)

    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=rotate_max_bytes,
        backupCount=rotate_backup_count,
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        RDSExporterFormatter("[%(asctime)s] %(levelname)s: %(name)s: %(message)s", show_run_id=True)
    )
    root_logger.addHandler(file_handler)

    return get_logger_adapter("rds_exporter")
