#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
from typing import Tuple

import configargparse
import humanfriendly


def positive_integer(value_str: str) -> int:
    value = int(value_str)
    if value <= 0:
        raise configargparse.ArgumentTypeError("invalid positive integer value: {!r}".format(value))
    return value


def positive_timespan(value_str: str) -> float:
    """
    Parses "60", "90s", "10m", "1h" into seconds.
    """
    try:
        value = humanfriendly.parse_timespan(value_str)
    except humanfriendly.InvalidTimespan as e:
        raise configargparse.ArgumentTypeError(str(e))
    if value <= 0:
        raise configargparse.ArgumentTypeError("invalid positive timespan value: {!r}".format(value_str))
    return value


def size_in_bytes(value_str: str) -> int:
    try:
        value = humanfriendly.parse_size(value_str)
    except humanfriendly.InvalidSize as e:
        raise configargparse.ArgumentTypeError(str(e))
    if value <= 0:
        raise configargparse.ArgumentTypeError("invalid positive size value: {!r}".format(value_str))
    return value


def listen_address(value_str: str) -> Tuple[str, int]:
    host, sep, port_str = value_str.rpartition(":")
    if not sep:
        raise configargparse.ArgumentTypeError(f"listen address must be in the form [host]:port, got {value_str!r}")
    try:
        port = int(port_str)
    except ValueError:
        raise configargparse.ArgumentTypeError(f"invalid port in listen address {value_str!r}")
    if not 0 < port < 65536:
        raise configargparse.ArgumentTypeError(f"port out of range in listen address {value_str!r}")
    return host or "0.0.0.0", port
