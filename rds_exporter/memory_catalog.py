#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
import json
import numbers
from types import MappingProxyType
from typing import Mapping

import importlib_resources

from rds_exporter.exceptions import MemoryCatalogLoadError, UnknownInstanceTypeError
from rds_exporter.log import get_logger_adapter

MEMORY_RESOURCE_PACKAGE = "rds_exporter"
MEMORY_RESOURCE_PATH = "resources/rds-max-memory.json"

logger = get_logger_adapter(__name__)


class InstanceMemoryCatalog:
    """
    Maps an RDS instance class (e.g "db.r5.large") to its maximum memory, in GiB.

    Built once at startup and shared (read-only) by all scrapers.
    """

    def __init__(self, memory_by_class: Mapping[str, float]) -> None:
        self._memory_by_class = MappingProxyType(dict(memory_by_class))

    @classmethod
    def from_mapping(cls, raw: object) -> "InstanceMemoryCatalog":
        if not isinstance(raw, dict):
            raise MemoryCatalogLoadError(f"Expected a JSON object, got {type(raw).__name__}")
        for instance_class, value in raw.items():
            # bool is an Integral, but "db.t3.micro": true is garbage
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise MemoryCatalogLoadError(f"Invalid max memory value for {instance_class!r}: {value!r}")
        return cls({instance_class: float(value) for instance_class, value in raw.items()})

    @classmethod
    def load(cls) -> "InstanceMemoryCatalog":
        resource = importlib_resources.files(MEMORY_RESOURCE_PACKAGE).joinpath(MEMORY_RESOURCE_PATH)
        try:
            content = resource.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MemoryCatalogLoadError(f"Could not read {MEMORY_RESOURCE_PATH!r}: {e}") from e
        try:
            raw = json.loads(content)
        except ValueError as e:
            raise MemoryCatalogLoadError(f"Malformed {MEMORY_RESOURCE_PATH!r}: {e}") from e

        catalog = cls.from_mapping(raw)
        logger.debug("Loaded instance memory catalog", instance_classes=len(catalog))
        return catalog

    def get_instance_max_memory(self, instance_class: str) -> float:
        try:
            return self._memory_by_class[instance_class]
        except KeyError:
            raise UnknownInstanceTypeError(instance_class) from None

    def __len__(self) -> int:
        return len(self._memory_by_class)
