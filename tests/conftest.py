#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from pytest import fixture

from rds_exporter.config import Instance, ScrapeSettings, init_scrape_settings, reset_scrape_settings
from rds_exporter.memory_catalog import InstanceMemoryCatalog
from rds_exporter.sessions import SessionInstance, SessionProviderBase
from rds_exporter.sink import QueueSink

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def cw_datapoint(minutes: int, average: float) -> Dict[str, Any]:
    """
    A datapoint the way boto3 returns it in GetMetricStatistics' "Datapoints".
    """
    return {"Timestamp": BASE_TIME + timedelta(minutes=minutes), "Average": average, "Unit": "None"}


class FakeCloudWatchClient:
    """
    Answers get_metric_statistics() from a metric name -> datapoints mapping (missing metrics have no datapoints),
    or raises the configured error for the metric.
    """

    def __init__(
        self,
        datapoints: Mapping[str, List[Dict[str, Any]]] = None,
        errors: Mapping[str, Exception] = None,
    ) -> None:
        self._datapoints = dict(datapoints or {})
        self._errors = dict(errors or {})
        self._lock = threading.Lock()
        self.calls: List[Dict[str, Any]] = []

    def get_metric_statistics(self, **params: Any) -> Dict[str, Any]:
        with self._lock:
            self.calls.append(params)
        metric_name = params["MetricName"]
        if metric_name in self._errors:
            raise self._errors[metric_name]
        return {"Label": metric_name, "Datapoints": list(self._datapoints.get(metric_name, []))}


class FailingCloudWatchClient:
    def get_metric_statistics(self, **params: Any) -> Dict[str, Any]:
        raise ConnectionError(f"could not reach CloudWatch for {params['MetricName']}")


class BlockingCloudWatchClient(FakeCloudWatchClient):
    """
    Hangs on the given metric until release() is called.
    """

    def __init__(self, blocking_metric: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._blocking_metric = blocking_metric
        self._released = threading.Event()
        self.finished = threading.Event()

    def release(self) -> None:
        self._released.set()

    def get_metric_statistics(self, **params: Any) -> Dict[str, Any]:
        if params["MetricName"] != self._blocking_metric:
            return super().get_metric_statistics(**params)
        try:
            self._released.wait(10)
            return {"Datapoints": [cw_datapoint(0, 1.0)]}
        finally:
            self.finished.set()


class StaticSessionProvider(SessionProviderBase):
    def __init__(self, sessions: Mapping[Tuple[str, str], Tuple[Any, SessionInstance]]) -> None:
        self._sessions = dict(sessions)

    def get_session(self, region: str, instance: str) -> Optional[Tuple[Any, SessionInstance]]:
        return self._sessions.get((region, instance))


@fixture(autouse=True)
def clean_scrape_settings() -> Iterator[None]:
    reset_scrape_settings()
    yield
    reset_scrape_settings()


@fixture
def scrape_settings() -> ScrapeSettings:
    return init_scrape_settings(period=60, delay=600, range=600, scrape_timeout=5, max_workers=8)


@fixture
def memory_catalog() -> InstanceMemoryCatalog:
    return InstanceMemoryCatalog.from_mapping({"db.r5.large": 16, "db.t3.micro": 1, "db.m1.small": 1.7})


@fixture
def instance() -> Instance:
    return Instance(region="us-east-1", instance="rds-mysql57")


@fixture
def session_instance(instance: Instance) -> SessionInstance:
    return SessionInstance(
        region=instance.region, instance=instance.instance, allocated_storage=100, instance_class="db.r5.large"
    )


@fixture
def sink() -> QueueSink:
    return QueueSink()
