from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union


@dataclass(frozen=True)
class Sample:
    # One gauge value, fully labeled. A sample is only built once both the value and the labels are known.
    name: str  # metric name
    help: str
    labels: Dict[str, str]
    value: Union[int, float]


# MetricOutcome.status values
EMITTED = "emitted"
SKIPPED = "skipped"
FAILED = "failed"
TIMED_OUT = "timed_out"

# MetricOutcome.strategy values
COMPUTED_STRATEGY = "computed"
STATISTICS_STRATEGY = "statistics"


@dataclass(frozen=True)
class MetricOutcome:
    metric: str  # CloudWatch metric name
    strategy: str
    status: str
    error: Optional[str] = None


@dataclass
class CycleReport:
    region: str
    instance: str
    cycle_id: str
    duration: float = 0.0
    outcomes: List[MetricOutcome] = field(default_factory=list)

    def _count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def emitted(self) -> int:
        return self._count(EMITTED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    @property
    def timed_out(self) -> int:
        return self._count(TIMED_OUT)

    def failures(self) -> List[MetricOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status in (FAILED, TIMED_OUT)]
