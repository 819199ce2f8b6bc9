#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
import concurrent.futures
import time
from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Dict, Iterable, List, Sequence

from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from rds_exporter.config import Instance
from rds_exporter.log import get_logger_adapter
from rds_exporter.memory_catalog import InstanceMemoryCatalog
from rds_exporter.metrics import CycleReport, Sample
from rds_exporter.metrics.catalog import MetricDefinition
from rds_exporter.scraper import Scraper, new_scraper
from rds_exporter.sessions import SessionProviderBase
from rds_exporter.sink import QueueSink
from rds_exporter.state import State

logger = get_logger_adapter(__name__)


def samples_to_metric_families(samples: Iterable[Sample]) -> List[Metric]:
    """
    Groups samples into one gauge family per name. Label sets may differ between samples of the same family
    (e.g the extra "cpu"/"mode" labels), which is why we don't use GaugeMetricFamily's fixed label names here.
    """
    families: Dict[str, Metric] = {}
    for sample in samples:
        family = families.get(sample.name)
        if family is None:
            family = families[sample.name] = Metric(sample.name, sample.help, "gauge")
        family.add_sample(sample.name, sample.labels, sample.value)
    return list(families.values())


class RDSCollector(Collector):
    """
    Bridges the scrapers to a prometheus_client registry: each registry collection is one scrape cycle of
    all registered instances.
    """

    def __init__(self, state: State) -> None:
        self._state = state
        self._sink = QueueSink()
        self._scrapers: List[Scraper] = []
        self._last_reports: List[CycleReport] = []
        # one cycle at a time - concurrent /metrics requests would otherwise mix their samples in the sink.
        self._cycle_lock = Lock()

    @property
    def scrapers(self) -> List[Scraper]:
        return list(self._scrapers)

    @property
    def last_reports(self) -> List[CycleReport]:
        return list(self._last_reports)

    def register_instances(
        self,
        instances: Iterable[Instance],
        session_provider: SessionProviderBase,
        metrics: Sequence[MetricDefinition],
        memory_catalog: InstanceMemoryCatalog,
    ) -> int:
        registered = 0
        for instance in instances:
            if instance.disable_basic_metrics:
                logger.info("Basic metrics disabled for instance", region=instance.region, instance=instance.instance)
                continue
            scraper = new_scraper(instance, session_provider, metrics, memory_catalog, self._sink)
            if scraper is not None:
                self._scrapers.append(scraper)
                registered += 1
        return registered

    def _scrape_all(self, cycle_id: str) -> List[CycleReport]:
        if not self._scrapers:
            return []

        reports = []
        with ThreadPoolExecutor(max_workers=len(self._scrapers)) as executor:
            futures = {executor.submit(scraper.scrape, cycle_id): scraper for scraper in self._scrapers}
            for future in concurrent.futures.as_completed(futures):
                # if a scraper fails - log it, and continue.
                try:
                    reports.append(future.result())
                except Exception:
                    instance = futures[future].instance
                    logger.exception("Scrape failed", region=instance.region, instance=instance.instance)
        return reports

    def collect(self) -> Iterable[Metric]:
        with self._cycle_lock:
            cycle_id = self._state.init_new_cycle()
            start_time = time.monotonic()
            reports = self._scrape_all(cycle_id)
            samples = self._sink.drain()
            duration = time.monotonic() - start_time
            self._state.set_cycle_id(None)
            self._last_reports = reports

        logger.debug("Scrape cycle finished", cycle_id=cycle_id, samples=len(samples), duration=round(duration, 3))

        yield from samples_to_metric_families(samples)

        errors = GaugeMetricFamily(
            "rds_exporter_scrape_errors",
            "Number of metrics that failed or timed out in the last scrape of the instance.",
            labels=["region", "instance"],
        )
        for report in reports:
            errors.add_metric([report.region, report.instance], report.failed + report.timed_out)
        yield errors

        yield GaugeMetricFamily(
            "rds_exporter_scrape_duration_seconds", "Duration of the last scrape of all instances.", value=duration
        )

    def describe(self) -> Iterable[Metric]:
        # don't let the registry scrape AWS on register()
        return []
