#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
"""
Per-metric behavior, keyed by CloudWatch metric name.

A metric may have a "compute" function - a value we know locally without asking CloudWatch - and/or a
"transform" applied to the value CloudWatch returned. Metrics that aren't listed have neither.
"""
import time
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional

from rds_exporter.memory_catalog import InstanceMemoryCatalog
from rds_exporter.metrics.catalog import (
    CPU_UTILIZATION,
    ENGINE_UPTIME,
    FREE_STORAGE_SPACE,
    TOTAL_MEMORY,
    TOTAL_STORAGE_SPACE,
)
from rds_exporter.sessions import SessionInstance

# Gigabyte values can be multiplied with this to get bytes.
GB_TO_BYTE = 1e9


@dataclass(frozen=True)
class ComputeContext:
    session_instance: SessionInstance
    memory_catalog: InstanceMemoryCatalog


ComputeFunction = Callable[[ComputeContext], float]
TransformFunction = Callable[[float], float]


@dataclass(frozen=True)
class MetricPolicy:
    compute: Optional[ComputeFunction] = None
    transform: Optional[TransformFunction] = None


def compute_total_storage(context: ComputeContext) -> float:
    return float(context.session_instance.allocated_storage) * GB_TO_BYTE


def compute_total_memory(context: ComputeContext) -> float:
    # raises UnknownInstanceTypeError for classes missing from the catalog
    return context.memory_catalog.get_instance_max_memory(context.session_instance.instance_class) * GB_TO_BYTE


def engine_uptime_to_boot_time(uptime: float) -> float:
    # Fake EngineUptime -> node_boot_time with now - EngineUptime, both truncated to whole seconds.
    return float(int(time.time()) - int(uptime))


METRIC_POLICIES: Mapping[str, MetricPolicy] = {
    TOTAL_STORAGE_SPACE: MetricPolicy(compute=compute_total_storage),
    TOTAL_MEMORY: MetricPolicy(compute=compute_total_memory),
    ENGINE_UPTIME: MetricPolicy(transform=engine_uptime_to_boot_time),
}

NO_POLICY = MetricPolicy()

# Labels added to metrics that enhanced monitoring also provides, so both sources share a label schema.
# Only applied to instances with enhanced monitoring disabled.
ENHANCED_METRICS_LABELS: Mapping[str, Mapping[str, str]] = {
    CPU_UTILIZATION: {"cpu": "All", "mode": "total"},
    FREE_STORAGE_SPACE: {"mountpoint": "/rdsdbdata"},
}


def get_metric_policy(cw_name: str) -> MetricPolicy:
    return METRIC_POLICIES.get(cw_name, NO_POLICY)


def build_base_labels(region: str, instance: str, overrides: Mapping[str, str]) -> Dict[str, str]:
    labels = {"region": region, "instance": instance}
    for name, value in overrides.items():
        if value == "":
            labels.pop(name, None)
        else:
            labels[name] = value
    return labels


def build_sample_labels(
    base_labels: Mapping[str, str], cw_name: str, disable_enhanced_metrics: bool
) -> Dict[str, str]:
    labels = dict(base_labels)
    if disable_enhanced_metrics:
        labels.update(ENHANCED_METRICS_LABELS.get(cw_name, {}))
    return labels
