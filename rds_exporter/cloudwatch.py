#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from rds_exporter.config import ScrapeSettings
from rds_exporter.datapoints import Datapoint, datapoints_from_response

RDS_NAMESPACE = "AWS/RDS"
AVERAGE_STATISTIC = "Average"
INSTANCE_DIMENSION = "DBInstanceIdentifier"


def build_metric_statistics_query(
    metric_name: str, instance_identifier: str, settings: ScrapeSettings, now: datetime = None
) -> Dict[str, Any]:
    """
    GetMetricStatistics parameters for a single RDS metric: averages over
    [now - delay - range, now - delay], one point per period.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    end = now - timedelta(seconds=settings.delay)
    return {
        "Namespace": RDS_NAMESPACE,
        "MetricName": metric_name,
        "Dimensions": [{"Name": INSTANCE_DIMENSION, "Value": instance_identifier}],
        "StartTime": end - timedelta(seconds=settings.range),
        "EndTime": end,
        "Period": int(settings.period),
        "Statistics": [AVERAGE_STATISTIC],
    }


def get_metric_datapoints(
    client: Any, metric_name: str, instance_identifier: str, settings: ScrapeSettings, now: datetime = None
) -> List[Datapoint]:
    """
    Issues one GetMetricStatistics call. Errors propagate to the caller - no retries here, and the
    client itself is configured with a single attempt.
    """
    params = build_metric_statistics_query(metric_name, instance_identifier, settings, now)
    response = client.get_metric_statistics(**params)
    return datapoints_from_response(response)
