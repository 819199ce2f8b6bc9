#
# Copyright (c) Granulate. All rights reserved.
# Licensed under the AGPL3 License. See LICENSE.md in the project root for license information.
#
import queue
from abc import ABCMeta, abstractmethod
from typing import List

from rds_exporter.metrics import Sample


class SampleSink(metaclass=ABCMeta):
    """
    Destination of scraped samples. Written concurrently by all metric tasks of all scrapers.
    """

    @abstractmethod
    def put(self, sample: Sample) -> None:
        pass


class QueueSink(SampleSink):
    def __init__(self) -> None:
        self._queue: "queue.Queue[Sample]" = queue.Queue()

    def put(self, sample: Sample) -> None:
        self._queue.put(sample)

    def drain(self) -> List[Sample]:
        samples = []
        while True:
            try:
                samples.append(self._queue.get_nowait())
            except queue.Empty:
                return samples
