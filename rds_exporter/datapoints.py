#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional


@dataclass(frozen=True)
class Datapoint:
    timestamp: datetime
    average: float


def datapoints_from_response(response: Mapping[str, Any]) -> List[Datapoint]:
    """
    Converts the "Datapoints" of a GetMetricStatistics response, keeping CloudWatch's order.
    Points without an average (we only ask for Average, but be safe) are dropped.
    """
    return [
        Datapoint(timestamp=dp["Timestamp"], average=float(dp["Average"]))
        for dp in response.get("Datapoints", [])
        if dp.get("Average") is not None
    ]


def get_latest_datapoint(datapoints: Iterable[Datapoint]) -> Optional[Datapoint]:
    latest: Optional[Datapoint] = None
    for dp in datapoints:
        # strictly greater: on equal timestamps the first one seen is kept
        if latest is None or latest.timestamp < dp.timestamp:
            latest = dp
    return latest
