#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import pytest

from rds_exporter import memory_catalog as memory_catalog_module
from rds_exporter.exceptions import MemoryCatalogLoadError, UnknownInstanceTypeError
from rds_exporter.memory_catalog import InstanceMemoryCatalog
from tests import RESOURCES_DIRECTORY


def test_bundled_catalog_loads() -> None:
    catalog = InstanceMemoryCatalog.load()
    raw = json.loads((RESOURCES_DIRECTORY / "rds-max-memory.json").read_text())
    assert len(catalog) == len(raw)
    for instance_class, value in raw.items():
        assert catalog.get_instance_max_memory(instance_class) == value


@pytest.mark.parametrize(
    "instance_class, expected",
    [
        pytest.param("db.t3.micro", 1, id="t3.micro"),
        pytest.param("db.r5.large", 16, id="r5.large"),
        pytest.param("db.m1.small", 1.7, id="fractional"),
    ],
)
def test_known_class_lookup(memory_catalog: InstanceMemoryCatalog, instance_class: str, expected: float) -> None:
    assert memory_catalog.get_instance_max_memory(instance_class) == expected


@pytest.mark.parametrize("instance_class", ["db.r99.huge", "", "DB.R5.LARGE", "db.r5.large "])
def test_unknown_class_raises(memory_catalog: InstanceMemoryCatalog, instance_class: str) -> None:
    with pytest.raises(UnknownInstanceTypeError) as e:
        memory_catalog.get_instance_max_memory(instance_class)
    assert e.value.instance_class == instance_class
    assert "UnknownInstanceType" in str(e.value)


@pytest.mark.parametrize(
    "raw",
    [
        pytest.param([], id="list"),
        pytest.param("db.t3.micro", id="string"),
        pytest.param({"db.t3.micro": "1"}, id="string-value"),
        pytest.param({"db.t3.micro": None}, id="null-value"),
        pytest.param({"db.t3.micro": True}, id="bool-value"),
    ],
)
def test_malformed_mapping_rejected(raw: Any) -> None:
    with pytest.raises(MemoryCatalogLoadError):
        InstanceMemoryCatalog.from_mapping(raw)


def test_catalog_is_read_only(memory_catalog: InstanceMemoryCatalog) -> None:
    source = {"db.t3.micro": 1}
    catalog = InstanceMemoryCatalog.from_mapping(source)
    source["db.t3.micro"] = 100
    assert catalog.get_instance_max_memory("db.t3.micro") == 1
    with pytest.raises(TypeError):
        memory_catalog._memory_by_class["db.t3.micro"] = 5  # type: ignore


def test_concurrent_lookups_are_consistent(memory_catalog: InstanceMemoryCatalog) -> None:
    classes = ["db.t3.micro", "db.r5.large", "db.m1.small"] * 200
    with ThreadPoolExecutor(max_workers=16) as executor:
        results = list(executor.map(memory_catalog.get_instance_max_memory, classes))
    assert results == [1, 16, 1.7] * 200


def test_missing_resource_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(memory_catalog_module, "MEMORY_RESOURCE_PATH", "resources/no-such-file.json")
    with pytest.raises(MemoryCatalogLoadError, match="Could not read"):
        InstanceMemoryCatalog.load()


@pytest.mark.parametrize(
    "content, error",
    [
        pytest.param('{"db.t3.micro": 1,', "Malformed", id="truncated"),
        pytest.param("", "Malformed", id="empty"),
        pytest.param('["db.t3.micro"]', "Expected a JSON object", id="list"),
        pytest.param('{"db.t3.micro": "1GiB"}', "Invalid max memory value", id="string-value"),
    ],
)
def test_invalid_resource_is_fatal(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, content: str, error: str
) -> None:
    resource = tmp_path / memory_catalog_module.MEMORY_RESOURCE_PATH
    resource.parent.mkdir(parents=True)
    resource.write_text(content)
    monkeypatch.setattr(memory_catalog_module.importlib_resources, "files", lambda package: tmp_path)

    with pytest.raises(MemoryCatalogLoadError, match=error):
        InstanceMemoryCatalog.load()
