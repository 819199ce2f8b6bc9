#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
from datetime import datetime, timedelta, timezone

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from rds_exporter.cloudwatch import build_metric_statistics_query, get_metric_datapoints
from rds_exporter.config import ScrapeSettings
from rds_exporter.datapoints import Datapoint
from tests.conftest import BASE_TIME, FakeCloudWatchClient, cw_datapoint

NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def cloudwatch_client():
    return boto3.client(
        "cloudwatch", region_name="us-east-1", aws_access_key_id="testing", aws_secret_access_key="testing"
    )


def test_query_shape() -> None:
    params = build_metric_statistics_query("CPUUtilization", "db1", ScrapeSettings(), NOW)
    assert params == {
        "Namespace": "AWS/RDS",
        "MetricName": "CPUUtilization",
        "Dimensions": [{"Name": "DBInstanceIdentifier", "Value": "db1"}],
        "StartTime": NOW - timedelta(seconds=1200),
        "EndTime": NOW - timedelta(seconds=600),
        "Period": 60,
        "Statistics": ["Average"],
    }


def test_query_window_follows_settings() -> None:
    settings = ScrapeSettings(period=300, delay=120, range=3600)
    params = build_metric_statistics_query("ReadIOPS", "db1", settings, NOW)
    assert params["EndTime"] == NOW - timedelta(seconds=120)
    assert params["StartTime"] == NOW - timedelta(seconds=120 + 3600)
    assert params["Period"] == 300


def test_query_defaults_to_now() -> None:
    before = datetime.now(timezone.utc)
    params = build_metric_statistics_query("ReadIOPS", "db1", ScrapeSettings())
    after = datetime.now(timezone.utc)
    assert before - timedelta(seconds=600) <= params["EndTime"] <= after - timedelta(seconds=600)


def test_request_matches_cloudwatch_api(cloudwatch_client) -> None:
    with Stubber(cloudwatch_client) as stubber:
        stubber.add_response(
            "get_metric_statistics",
            {"Label": "FreeStorageSpace", "Datapoints": [{"Timestamp": BASE_TIME, "Average": 42.0, "Unit": "Bytes"}]},
            build_metric_statistics_query("FreeStorageSpace", "db1", ScrapeSettings(), NOW),
        )
        datapoints = get_metric_datapoints(cloudwatch_client, "FreeStorageSpace", "db1", ScrapeSettings(), NOW)
        stubber.assert_no_pending_responses()
    assert datapoints == [Datapoint(BASE_TIME, 42.0)]


def test_client_errors_propagate(cloudwatch_client) -> None:
    with Stubber(cloudwatch_client) as stubber:
        stubber.add_client_error("get_metric_statistics", service_error_code="Throttling", http_status_code=400)
        with pytest.raises(ClientError):
            get_metric_datapoints(cloudwatch_client, "ReadIOPS", "db1", ScrapeSettings(), NOW)


def test_datapoints_conversion() -> None:
    client = FakeCloudWatchClient({"ReadIOPS": [cw_datapoint(0, 3), cw_datapoint(1, 4.5)]})
    datapoints = get_metric_datapoints(client, "ReadIOPS", "db1", ScrapeSettings(), NOW)
    assert [dp.average for dp in datapoints] == [3.0, 4.5]
    assert client.calls[0]["Dimensions"] == [{"Name": "DBInstanceIdentifier", "Value": "db1"}]
