#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
from datetime import timedelta
from typing import List, Optional

import pytest

from rds_exporter.datapoints import Datapoint, datapoints_from_response, get_latest_datapoint
from tests.conftest import BASE_TIME, cw_datapoint


def _dp(minutes: int, average: float) -> Datapoint:
    return Datapoint(timestamp=BASE_TIME + timedelta(minutes=minutes), average=average)


@pytest.mark.parametrize(
    "datapoints, expected",
    [
        pytest.param([], None, id="empty"),
        pytest.param([_dp(0, 1.0)], _dp(0, 1.0), id="single"),
        pytest.param([_dp(0, 1.0), _dp(1, 2.0), _dp(2, 3.0)], _dp(2, 3.0), id="ascending"),
        pytest.param([_dp(2, 3.0), _dp(1, 2.0), _dp(0, 1.0)], _dp(2, 3.0), id="descending"),
        pytest.param([_dp(1, 2.0), _dp(5, 9.0), _dp(3, 4.0)], _dp(5, 9.0), id="unordered"),
    ],
)
def test_latest_datapoint(datapoints: List[Datapoint], expected: Optional[Datapoint]) -> None:
    assert get_latest_datapoint(datapoints) == expected


def test_latest_datapoint_tie_keeps_first_seen() -> None:
    first = _dp(3, 10.0)
    tied = _dp(3, 20.0)
    assert get_latest_datapoint([_dp(1, 0.0), first, tied]) is first
    assert get_latest_datapoint([tied, first]) is tied


def test_latest_datapoint_later_strictly_greater_wins_after_tie() -> None:
    assert get_latest_datapoint([_dp(3, 10.0), _dp(3, 20.0), _dp(4, 30.0)]) == _dp(4, 30.0)


def test_latest_datapoint_accepts_iterators() -> None:
    assert get_latest_datapoint(iter([_dp(0, 1.0), _dp(1, 2.0)])) == _dp(1, 2.0)


def test_datapoints_from_response_keeps_order() -> None:
    response = {"Datapoints": [cw_datapoint(5, 1.5), cw_datapoint(1, 2)]}
    assert datapoints_from_response(response) == [_dp(5, 1.5), _dp(1, 2.0)]


def test_datapoints_from_response_drops_points_without_average() -> None:
    response = {"Datapoints": [{"Timestamp": BASE_TIME, "Maximum": 3.0}, cw_datapoint(1, 2.0)]}
    assert datapoints_from_response(response) == [_dp(1, 2.0)]


def test_datapoints_from_empty_response() -> None:
    assert datapoints_from_response({}) == []
    assert datapoints_from_response({"Datapoints": []}) == []
