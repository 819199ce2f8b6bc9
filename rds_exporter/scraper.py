#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
import concurrent.futures
import time
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Any, Dict, List, Optional, Sequence

from rds_exporter.cloudwatch import get_metric_datapoints
from rds_exporter.config import Instance, ScrapeSettings, get_scrape_settings
from rds_exporter.datapoints import get_latest_datapoint
from rds_exporter.exceptions import UnknownInstanceTypeError
from rds_exporter.log import get_logger_adapter
from rds_exporter.memory_catalog import InstanceMemoryCatalog
from rds_exporter.metrics import (
    COMPUTED_STRATEGY,
    EMITTED,
    FAILED,
    SKIPPED,
    STATISTICS_STRATEGY,
    TIMED_OUT,
    CycleReport,
    MetricOutcome,
    Sample,
)
from rds_exporter.metrics.catalog import MetricDefinition
from rds_exporter.policies import ComputeContext, build_base_labels, build_sample_labels, get_metric_policy
from rds_exporter.sessions import SessionInstance, SessionProviderBase
from rds_exporter.sink import SampleSink
from rds_exporter.state import generate_random_id

DEADLINE_EXCEEDED = "cycle deadline exceeded"

logger = get_logger_adapter(__name__)


class _Cycle:
    """
    One scrape() invocation. Closed when the cycle ends (normally or at the deadline); tasks still running
    past that point must not issue queries or write samples, so they don't leak into the next cycle.
    """

    def __init__(self, cycle_id: str, sink: SampleSink, cycle_logger: Any) -> None:
        self.cycle_id = cycle_id
        self.logger = cycle_logger
        self._sink = sink
        self._lock = Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def emit(self, sample: Sample) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._sink.put(sample)
            return True


class Scraper:
    """
    Scrapes the basic (CloudWatch) metrics of a single RDS instance.

    Every scrape() runs one task per catalog metric on a thread pool. Each task first tries to compute
    the value locally (see policies.METRIC_POLICIES), then asks CloudWatch for the latest average.
    Each of the two can write one sample to the sink; failures are logged and reported, never raised.
    """

    def __init__(
        self,
        instance: Instance,
        session_instance: SessionInstance,
        cloudwatch_client: Any,
        metrics: Sequence[MetricDefinition],
        memory_catalog: InstanceMemoryCatalog,
        sink: SampleSink,
    ) -> None:
        self._instance = instance
        self._session_instance = session_instance
        self._client = cloudwatch_client
        self._metrics = tuple(metrics)
        self._sink = sink
        self._compute_context = ComputeContext(session_instance=session_instance, memory_catalog=memory_catalog)
        self._base_labels = build_base_labels(instance.region, instance.instance, instance.labels)

    @property
    def instance(self) -> Instance:
        return self._instance

    @property
    def base_labels(self) -> Dict[str, str]:
        return dict(self._base_labels)

    def scrape(self, cycle_id: str = None) -> CycleReport:
        settings = get_scrape_settings()
        cycle_id = cycle_id or generate_random_id()
        report = CycleReport(region=self._instance.region, instance=self._instance.instance, cycle_id=cycle_id)
        cycle = _Cycle(
            cycle_id,
            self._sink,
            logger.bind(region=self._instance.region, instance=self._instance.instance, cycle_id=cycle_id),
        )
        if not self._metrics:
            return report

        start_time = time.monotonic()
        executor = ThreadPoolExecutor(
            max_workers=min(len(self._metrics), settings.max_workers),
            thread_name_prefix=f"scrape-{self._instance.instance}",
        )
        try:
            futures: Dict[Future, MetricDefinition] = {
                executor.submit(self._scrape_metric, metric, settings, cycle): metric for metric in self._metrics
            }
            done, not_done = concurrent.futures.wait(futures, timeout=settings.scrape_timeout)
        finally:
            cycle.close()
            # don't wait for stuck tasks, a hung CloudWatch call must not hold the barrier.
            executor.shutdown(wait=False, cancel_futures=True)

        # tasks that finished between the deadline and close() may have emitted, take their outcomes as is.
        finished_late = {future for future in not_done if future.done() and not future.cancelled()}
        done, not_done = done | finished_late, not_done - finished_late

        for future in done:
            metric = futures[future]
            try:
                report.outcomes.extend(future.result())
            except Exception as e:
                # _scrape_metric handles its own errors, this is a bug - still, don't let it kill the cycle.
                cycle.logger.exception("Metric task crashed", metric=metric.cw_name)
                report.outcomes.append(MetricOutcome(metric.cw_name, STATISTICS_STRATEGY, FAILED, repr(e)))

        for future in not_done:
            metric = futures[future]
            cycle.logger.error("Metric scrape timed out", metric=metric.cw_name, timeout=settings.scrape_timeout)
            report.outcomes.append(MetricOutcome(metric.cw_name, STATISTICS_STRATEGY, TIMED_OUT, DEADLINE_EXCEEDED))

        report.duration = time.monotonic() - start_time
        cycle.logger.debug(
            "Scrape finished",
            emitted=report.emitted,
            failed=report.failed,
            timed_out=report.timed_out,
            duration=round(report.duration, 3),
        )
        return report

    def _scrape_metric(self, metric: MetricDefinition, settings: ScrapeSettings, cycle: _Cycle) -> List[MetricOutcome]:
        outcomes = []

        computed = self._scrape_computed_value(metric, cycle)
        if computed is not None:
            outcomes.append(computed)
        outcomes.append(self._scrape_metric_statistics(metric, settings, cycle))

        return outcomes

    def _scrape_computed_value(self, metric: MetricDefinition, cycle: _Cycle) -> Optional[MetricOutcome]:
        compute = get_metric_policy(metric.cw_name).compute
        if compute is None:
            return None

        try:
            value = compute(self._compute_context)
        except UnknownInstanceTypeError as e:
            cycle.logger.error("Failed to compute metric", metric=metric.cw_name, error=str(e))
            return MetricOutcome(metric.cw_name, COMPUTED_STRATEGY, FAILED, str(e))
        except Exception as e:
            # the statistics strategy of this metric still runs
            cycle.logger.exception("Failed to compute metric", metric=metric.cw_name)
            return MetricOutcome(metric.cw_name, COMPUTED_STRATEGY, FAILED, repr(e))

        sample = Sample(
            name=metric.prometheus_name, help=metric.prometheus_help, labels=dict(self._base_labels), value=value
        )
        if not cycle.emit(sample):
            return MetricOutcome(metric.cw_name, COMPUTED_STRATEGY, TIMED_OUT, DEADLINE_EXCEEDED)
        return MetricOutcome(metric.cw_name, COMPUTED_STRATEGY, EMITTED)

    def _scrape_metric_statistics(
        self, metric: MetricDefinition, settings: ScrapeSettings, cycle: _Cycle
    ) -> MetricOutcome:
        if cycle.closed:
            return MetricOutcome(metric.cw_name, STATISTICS_STRATEGY, TIMED_OUT, DEADLINE_EXCEEDED)

        try:
            datapoints = get_metric_datapoints(self._client, metric.cw_name, self._instance.instance, settings)
        except Exception as e:
            cycle.logger.error("Failed to get metric statistics", metric=metric.cw_name, error=str(e))
            return MetricOutcome(metric.cw_name, STATISTICS_STRATEGY, FAILED, str(e))

        # There's nothing in there, don't publish the metric
        latest = get_latest_datapoint(datapoints)
        if latest is None:
            return MetricOutcome(metric.cw_name, STATISTICS_STRATEGY, SKIPPED)

        value = latest.average
        transform = get_metric_policy(metric.cw_name).transform
        if transform is not None:
            value = transform(value)

        labels = build_sample_labels(self._base_labels, metric.cw_name, self._instance.disable_enhanced_metrics)
        sample = Sample(name=metric.prometheus_name, help=metric.prometheus_help, labels=labels, value=value)
        if not cycle.emit(sample):
            return MetricOutcome(metric.cw_name, STATISTICS_STRATEGY, TIMED_OUT, DEADLINE_EXCEEDED)
        return MetricOutcome(metric.cw_name, STATISTICS_STRATEGY, EMITTED)


def new_scraper(
    instance: Instance,
    session_provider: SessionProviderBase,
    metrics: Sequence[MetricDefinition],
    memory_catalog: InstanceMemoryCatalog,
    sink: SampleSink,
) -> Optional[Scraper]:
    """
    Returns None when no AWS session is available for the instance; it won't be scraped.
    """
    session = session_provider.get_session(instance.region, instance.instance)
    if session is None:
        logger.warning(
            "No session for instance, it won't be scraped", region=instance.region, instance=instance.instance
        )
        return None

    cloudwatch_client, session_instance = session
    return Scraper(instance, session_instance, cloudwatch_client, metrics, memory_catalog, sink)
